from __future__ import annotations

from typing import Optional

from core.logging import get_logger
from core.models import PointsSummary
from core.session_store import SessionContext
from providers.remote_store.base import RemoteStoreBase

logger = get_logger("predictions.points")


class PointsRefresher:
    """
    Cache del PointsSummary. refresh() sostituisce in blocco il summary con
    quello remoto (nessun merge, il server vince sempre).

    reset() incrementa `generation`: un refresh avviato prima del reset non
    scrive più nella cache.
    """

    def __init__(self, store: RemoteStoreBase, summary: Optional[PointsSummary] = None) -> None:
        self._store = store
        self._summary = summary or PointsSummary()
        self._generation = 0

    @property
    def summary(self) -> PointsSummary:
        return self._summary

    @property
    def generation(self) -> int:
        return self._generation

    def replace(self, summary: PointsSummary) -> None:
        self._summary = summary

    async def refresh(
        self, session: SessionContext, *, generation: Optional[int] = None
    ) -> Optional[PointsSummary]:
        """
        Ritorna il nuovo summary, oppure None se la cache è stata resettata
        dopo `generation` (in quel caso il risultato viene scartato).
        """
        if generation is None:
            generation = self._generation
        if generation != self._generation:
            logger.info("points refresh skipped: cache reset")
            return None
        summary = await self._store.fetch_points(session)
        if generation != self._generation:
            logger.info("points refresh discarded: cache reset during fetch")
            return None
        self._summary = summary
        logger.info("points refreshed total=%s matches=%s", summary.total, len(summary.per_match))
        return summary

    def reset(self) -> None:
        self._summary = PointsSummary()
        self._generation += 1
