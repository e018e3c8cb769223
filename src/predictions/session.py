from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Literal, Optional

from core.logging import get_logger
from core.models import GroupStanding, LeaderboardEntry, Match, PointsSummary
from core.session_store import SessionContext, TokenStore
from monitoring.prometheus_exporter import record_bootstrap, record_save, record_save_rejected
from providers.remote_store.base import RemoteStoreBase
from providers.remote_store.exceptions import RemoteStoreError
from .buffer import Entry, PredictionBuffer
from .lock_window import LockWindow
from .points import PointsRefresher
from .submission import SaveResult, SubmissionCoordinator

logger = get_logger("predictions.session")

BannerKind = Literal["info", "success", "error"]

MSG_AUTH_FAILED = "Authentication failed"
MSG_BOOTSTRAP_FAILED = "Failed to load data from server"
MSG_SAVE_OK = "Predictions saved successfully"
MSG_LOCKED = "Prediction window closed"
MSG_SAVE_IN_PROGRESS = "Save already in progress"
MSG_LOADING = "Loading in progress, please wait"
MSG_NOT_AUTHENTICATED = "Not authenticated"


@dataclass(frozen=True)
class Banner:
    kind: BannerKind
    text: str


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PredictionSession:
    """
    Stato della sessione utente consumato dalla view:
    partite, buffer pronostici, lock window, punti e banner.

    Il lock è uno snapshot preso al bootstrap; i punti vengono ricalcolati
    solo dopo bootstrap o save riuscito.

    `_generation` cambia ad ogni login/logout: bootstrap e save in volo
    scartano il proprio risultato se la sessione è cambiata nel frattempo.
    """

    def __init__(
        self,
        store: RemoteStoreBase,
        token_store: TokenStore,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._token_store = token_store
        self._clock = clock
        self._context: Optional[SessionContext] = token_store.load()
        self._generation = 0

        self.matches: List[Match] = []
        self.buffer = PredictionBuffer()
        self.lock = LockWindow.closed(clock())
        self.leaderboard: List[LeaderboardEntry] = []
        self.group_standings: List[GroupStanding] = []

        self._points = PointsRefresher(store)
        self._coordinator = SubmissionCoordinator(store, self._points)

        self.loading = False
        self.saving = False
        self.message: Optional[str] = None
        self.error: Optional[str] = None

    # ------------------------------------------------------------------
    # Stato
    # ------------------------------------------------------------------

    @property
    def is_authenticated(self) -> bool:
        return self._context is not None

    @property
    def username(self) -> str:
        return self._context.username if self._context else ""

    @property
    def context(self) -> Optional[SessionContext]:
        return self._context

    @property
    def points(self) -> PointsSummary:
        return self._points.summary

    @property
    def locked(self) -> bool:
        return self.lock.locked

    def banners(self) -> List[Banner]:
        out: List[Banner] = []
        if self.loading:
            out.append(Banner("info", "Loading, please wait..."))
        if self.message:
            out.append(Banner("success", self.message))
        if self.error:
            out.append(Banner("error", self.error))
        return out

    def _clear_banners(self) -> None:
        self.message = None
        self.error = None

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    async def login(self, username: str, password: str) -> bool:
        return await self._authenticate(self._store.login, username, password)

    async def register(self, username: str, password: str) -> bool:
        return await self._authenticate(self._store.register, username, password)

    async def _authenticate(
        self,
        fn: Callable[[str, str], Awaitable[Any]],
        username: str,
        password: str,
    ) -> bool:
        self._clear_banners()
        self.loading = True
        try:
            result = await fn(username, password)
        except RemoteStoreError as e:
            self.error = e.reason or MSG_AUTH_FAILED
            logger.warning("auth failed user=%s reason=%s", username, self.error)
            return False
        finally:
            self.loading = False
        # Nuovo utente: lo stato della sessione precedente non sopravvive
        self._discard_state()
        self._context = SessionContext(token=result.token, username=result.username)
        self._token_store.save(self._context)
        logger.info("auth ok user=%s", result.username)
        return True

    def logout(self) -> None:
        self._token_store.clear()
        self._context = None
        self._discard_state()
        self._clear_banners()
        logger.info("logout")

    def _discard_state(self) -> None:
        self._generation += 1
        self.matches = []
        self.buffer.clear()
        self._points.reset()
        self.lock = LockWindow.closed(self._clock())
        self.leaderboard = []
        self.group_standings = []
        self.loading = False
        self.saving = False

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    # ------------------------------------------------------------------
    # Bootstrap
    # ------------------------------------------------------------------

    async def bootstrap(self, now: Optional[datetime] = None) -> bool:
        """
        Fetch concorrente di partite, pronostici e punti.
        In caso di errore la sessione resta autenticata con i dati precedenti
        e un banner di errore. Se nel frattempo c'è stato un logout (o un
        nuovo login) il risultato viene scartato e ritorna False.
        """
        ctx = self._context
        if ctx is None:
            self.error = MSG_NOT_AUTHENTICATED
            return False
        generation = self._generation
        self._clear_banners()
        self.loading = True
        start = time.perf_counter()
        try:
            results = await asyncio.gather(
                self._store.fetch_matches(ctx),
                self._store.fetch_my_predictions(ctx),
                self._store.fetch_points(ctx),
                return_exceptions=True,
            )
        finally:
            if self._is_current(generation):
                self.loading = False
        elapsed_ms = (time.perf_counter() - start) * 1000

        if not self._is_current(generation):
            logger.info("bootstrap discarded: session changed user=%s", ctx.username)
            return False

        for res in results:
            if isinstance(res, RemoteStoreError):
                self.error = MSG_BOOTSTRAP_FAILED
                logger.error("bootstrap failed: %s", res.reason)
                record_bootstrap(False)
                return False
            if isinstance(res, BaseException):
                raise res

        matches, predictions, points = results
        self.matches = list(matches)
        self.buffer.reconcile(self.matches, predictions)
        self.lock = LockWindow.snapshot(self.matches, now or self._clock())
        self._points.replace(points)

        stats: Dict[str, Any] = {
            "matches": len(self.matches),
            "predictions": len(predictions),
            "buffer": len(self.buffer),
            "locked": self.lock.locked,
            "points_total": points.total,
            # durata delle tre fetch concorrenti insieme
            "latency_ms": round(elapsed_ms, 2),
        }
        logger.info("bootstrap ok", extra={"bootstrap_stats": stats})
        record_bootstrap(True, stats)
        return True

    # ------------------------------------------------------------------
    # Edit / save
    # ------------------------------------------------------------------

    def edit(self, match_id: int, field: str, value: Any) -> Optional[Entry]:
        """
        Modifica di un campo del pronostico. Ritorna la entry aggiornata,
        None se la finestra è chiusa o la partita non è nota.
        """
        if self.lock.locked:
            logger.info("edit ignored (locked) match_id=%s", match_id)
            return None
        try:
            return self.buffer.set_field(match_id, field, value)
        except KeyError:
            logger.warning("edit ignored (unknown match) match_id=%s", match_id)
            return None

    async def save(self) -> SaveResult:
        ctx = self._context
        if ctx is None:
            return self._reject(MSG_NOT_AUTHENTICATED)
        if self.lock.locked:
            return self._reject(MSG_LOCKED)
        if self.saving:
            return self._reject(MSG_SAVE_IN_PROGRESS)
        if self.loading:
            return self._reject(MSG_LOADING)

        generation = self._generation
        self._clear_banners()
        self.saving = True
        self.loading = True
        try:
            result = await self._coordinator.save(ctx, self.buffer)
        finally:
            if self._is_current(generation):
                self.saving = False
                self.loading = False

        if not self._is_current(generation):
            # Il server ha già risposto, ma la sessione non è più quella del save
            logger.info("save result discarded: session changed user=%s ok=%s", ctx.username, result.ok)
            return result

        if result.ok:
            self.message = MSG_SAVE_OK
        else:
            self.error = result.reason
        record_save(
            result.ok,
            buffer_size=len(self.buffer),
            points_total=self.points.total if result.points_refreshed else None,
        )
        return result

    def _reject(self, reason: str) -> SaveResult:
        self.error = reason
        logger.info("save rejected: %s", reason)
        record_save_rejected()
        return SaveResult(ok=False, reason=reason)

    # ------------------------------------------------------------------
    # Viste extra
    # ------------------------------------------------------------------

    async def load_leaderboard(self) -> List[LeaderboardEntry]:
        ctx = self._context
        if ctx is None:
            self.error = MSG_NOT_AUTHENTICATED
            return []
        generation = self._generation
        try:
            board = await self._store.fetch_leaderboard(ctx)
        except RemoteStoreError as e:
            if self._is_current(generation):
                self.error = "Failed to load leaderboard"
            logger.error("leaderboard fetch failed: %s", e.reason)
            return self.leaderboard
        if self._is_current(generation):
            self.leaderboard = board
        return board

    async def load_group_standings(self) -> List[GroupStanding]:
        ctx = self._context
        if ctx is None:
            self.error = MSG_NOT_AUTHENTICATED
            return []
        generation = self._generation
        try:
            standings = await self._store.fetch_group_standings(ctx)
        except RemoteStoreError as e:
            if self._is_current(generation):
                self.error = "Failed to load group standings"
            logger.error("group standings fetch failed: %s", e.reason)
            return self.group_standings
        if self._is_current(generation):
            self.group_standings = standings
        return standings


__all__ = ["Banner", "PredictionSession"]
