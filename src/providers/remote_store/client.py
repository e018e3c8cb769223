from __future__ import annotations

from typing import Any, Callable, List, Optional, Sequence, TypeVar

from core.logging import get_logger
from core.models import (
    AuthResult,
    GroupStanding,
    LeaderboardEntry,
    Match,
    PointsSummary,
    Prediction,
    parse_list,
)
from core.session_store import SessionContext
from .base import RemoteStoreBase
from .exceptions import MalformedPayloadError
from .http_client import RemoteStoreHttpClient

log = get_logger(__name__)

T = TypeVar("T")


def _decode(path: str, raw: Any, parser: Callable[[Any], T]) -> T:
    try:
        return parser(raw)
    except (KeyError, TypeError, ValueError) as e:
        log.warning("payload malformato su %s: %s", path, e)
        raise MalformedPayloadError(f"Invalid response from {path}: {e}") from e


class RemoteStoreClient(RemoteStoreBase):
    """
    Implementazione HTTP del Remote Store.
    - Usa RemoteStoreHttpClient (httpx, async)
    - Converte ogni payload in record tipizzati (core.models)
    """

    def __init__(self, http: Optional[RemoteStoreHttpClient] = None) -> None:
        self._http = http or RemoteStoreHttpClient()

    async def register(self, username: str, password: str) -> AuthResult:
        path = "/auth/register"
        raw = await self._http.request("POST", path, json={"username": username, "password": password})
        return _decode(path, raw, AuthResult.from_api)

    async def login(self, username: str, password: str) -> AuthResult:
        path = "/auth/login"
        raw = await self._http.request("POST", path, json={"username": username, "password": password})
        return _decode(path, raw, AuthResult.from_api)

    async def fetch_matches(self, session: SessionContext) -> List[Match]:
        path = "/matches"
        raw = await self._http.request("GET", path, session=session)
        return _decode(path, raw, lambda r: parse_list(r, Match))

    async def fetch_my_predictions(self, session: SessionContext) -> List[Prediction]:
        path = "/predictions/mine"
        raw = await self._http.request("GET", path, session=session)
        return _decode(path, raw, lambda r: parse_list(r, Prediction))

    async def save_predictions(self, session: SessionContext, predictions: Sequence[Prediction]) -> Any:
        path = "/predictions/bulk"
        body = {"predictions": [p.to_api() for p in predictions]}
        log.info("bulk save predictions count=%s", len(body["predictions"]))
        return await self._http.request("POST", path, session=session, json=body)

    async def fetch_points(self, session: SessionContext) -> PointsSummary:
        path = "/predictions/points"
        raw = await self._http.request("GET", path, session=session)
        return _decode(path, raw, PointsSummary.from_api)

    async def fetch_leaderboard(self, session: SessionContext) -> List[LeaderboardEntry]:
        path = "/users/leaderboard"
        raw = await self._http.request("GET", path, session=session)
        return _decode(path, raw, lambda r: parse_list(r, LeaderboardEntry))

    async def fetch_group_standings(self, session: SessionContext) -> List[GroupStanding]:
        path = "/groups/standings"
        raw = await self._http.request("GET", path, session=session)
        return _decode(path, raw, lambda r: parse_list(r, GroupStanding))

    async def aclose(self) -> None:
        await self._http.aclose()


__all__ = ["RemoteStoreClient"]
