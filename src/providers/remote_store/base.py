from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, List, Sequence

from core.models import (
    AuthResult,
    GroupStanding,
    LeaderboardEntry,
    Match,
    PointsSummary,
    Prediction,
)
from core.session_store import SessionContext


class RemoteStoreBase(ABC):
    """
    Interfaccia astratta del Remote Store (sorgente autorevole di partite,
    pronostici e punti).

    Tutte le operazioni sono asincrone. Le operazioni autenticate ricevono
    un SessionContext esplicito. Le implementazioni sollevano solo
    sottoclassi di RemoteStoreError.
    """

    @abstractmethod
    async def register(self, username: str, password: str) -> AuthResult:
        raise NotImplementedError

    @abstractmethod
    async def login(self, username: str, password: str) -> AuthResult:
        raise NotImplementedError

    @abstractmethod
    async def fetch_matches(self, session: SessionContext) -> List[Match]:
        raise NotImplementedError

    @abstractmethod
    async def fetch_my_predictions(self, session: SessionContext) -> List[Prediction]:
        raise NotImplementedError

    @abstractmethod
    async def save_predictions(self, session: SessionContext, predictions: Sequence[Prediction]) -> Any:
        """
        Bulk upsert: atomico dal punto di vista del chiamante (tutto accettato
        oppure errore). Ritorna l'acknowledgement del server.
        """
        raise NotImplementedError

    @abstractmethod
    async def fetch_points(self, session: SessionContext) -> PointsSummary:
        raise NotImplementedError

    @abstractmethod
    async def fetch_leaderboard(self, session: SessionContext) -> List[LeaderboardEntry]:
        raise NotImplementedError

    @abstractmethod
    async def fetch_group_standings(self, session: SessionContext) -> List[GroupStanding]:
        raise NotImplementedError
