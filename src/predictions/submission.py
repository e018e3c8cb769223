from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from core.logging import get_logger
from core.session_store import SessionContext
from providers.remote_store.base import RemoteStoreBase
from providers.remote_store.exceptions import RemoteStoreError
from .buffer import PredictionBuffer
from .points import PointsRefresher

logger = get_logger("predictions.submission")

DEFAULT_FAILURE_REASON = "Failed to save predictions"


@dataclass(frozen=True)
class SaveResult:
    ok: bool
    submitted: int = 0
    reason: Optional[str] = None
    points_refreshed: bool = False
    ack: Any = None


class SubmissionCoordinator:
    """
    Bulk save dei pronostici.

    save():
      1) proietta il buffer al momento della chiamata
      2) un'unica richiesta di bulk upsert (tutto o niente)
      3) se accettata, refresh dei punti
    Il buffer non viene mai modificato (né in caso di successo né di errore).
    Nessun retry e nessuna serializzazione di chiamate concorrenti: il
    chiamante deve disabilitare il salvataggio mentre uno è in corso.
    """

    def __init__(self, store: RemoteStoreBase, points: PointsRefresher) -> None:
        self._store = store
        self._points = points

    async def save(self, session: SessionContext, buffer: PredictionBuffer) -> SaveResult:
        payload = buffer.project()
        # Un reset della cache punti durante il save (logout) ne blocca il refresh
        generation = self._points.generation
        try:
            ack = await self._store.save_predictions(session, payload)
        except RemoteStoreError as e:
            reason = e.reason or DEFAULT_FAILURE_REASON
            logger.warning(
                "bulk save failed",
                extra={"save_summary": {"ok": False, "submitted": len(payload), "reason": reason}},
            )
            return SaveResult(ok=False, submitted=len(payload), reason=reason)

        try:
            refreshed = await self._points.refresh(session, generation=generation)
            points_refreshed = refreshed is not None
        except RemoteStoreError as e:
            # Save già accettato: il refresh fallito non lo annulla
            points_refreshed = False
            logger.warning("points refresh after save failed: %s", e.reason)

        logger.info(
            "bulk save ok",
            extra={
                "save_summary": {
                    "ok": True,
                    "submitted": len(payload),
                    "points_refreshed": points_refreshed,
                }
            },
        )
        return SaveResult(ok=True, submitted=len(payload), points_refreshed=points_refreshed, ack=ack)


__all__ = ["SaveResult", "SubmissionCoordinator", "DEFAULT_FAILURE_REASON"]
