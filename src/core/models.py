from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional


def _require(raw: Mapping[str, Any], key: str) -> Any:
    if not isinstance(raw, Mapping):
        raise ValueError(f"record non valido (atteso oggetto): {raw!r}")
    if key not in raw or raw[key] is None:
        raise ValueError(f"campo obbligatorio mancante: {key}")
    return raw[key]


def _as_int(value: Any, key: str) -> int:
    # bool è sottoclasse di int: non è un punteggio / id valido
    if isinstance(value, bool):
        raise ValueError(f"campo {key} non intero: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise ValueError(f"campo {key} non intero: {value!r}")


def _as_opt_int(value: Any, key: str) -> Optional[int]:
    if value is None:
        return None
    return _as_int(value, key)


def _as_non_negative(value: Any, key: str) -> int:
    out = _as_int(value, key)
    if out < 0:
        raise ValueError(f"campo {key} negativo: {out}")
    return out


def parse_kickoff(value: Any) -> datetime:
    """
    Parsing ISO 8601 del kickoff. Suffisso 'Z' accettato; timestamp senza
    offset interpretati come UTC.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError as e:
            raise ValueError(f"kickoff_at non ISO 8601: {value!r}") from e
    else:
        raise ValueError(f"kickoff_at non valido: {value!r}")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


@dataclass(frozen=True)
class Match:
    id: int
    home_team_id: int
    away_team_id: int
    home_team_name: str
    away_team_name: str
    kickoff_at: datetime
    stage: str
    result_home: Optional[int] = None
    result_away: Optional[int] = None

    @property
    def is_finished(self) -> bool:
        return self.result_home is not None and self.result_away is not None

    @classmethod
    def from_api(cls, raw: Mapping[str, Any]) -> "Match":
        return cls(
            id=_as_int(_require(raw, "id"), "id"),
            home_team_id=_as_int(_require(raw, "home_team_id"), "home_team_id"),
            away_team_id=_as_int(_require(raw, "away_team_id"), "away_team_id"),
            home_team_name=str(raw.get("home_team_name") or ""),
            away_team_name=str(raw.get("away_team_name") or ""),
            kickoff_at=parse_kickoff(_require(raw, "kickoff_at")),
            stage=str(raw.get("stage") or ""),
            result_home=_as_opt_int(raw.get("result_home"), "result_home"),
            result_away=_as_opt_int(raw.get("result_away"), "result_away"),
        )


@dataclass(frozen=True)
class Prediction:
    match_id: int
    home: int
    away: int

    @classmethod
    def from_api(cls, raw: Mapping[str, Any]) -> "Prediction":
        # Formato di GET /predictions/mine
        return cls(
            match_id=_as_int(_require(raw, "match_id"), "match_id"),
            home=_as_non_negative(_require(raw, "predicted_home"), "predicted_home"),
            away=_as_non_negative(_require(raw, "predicted_away"), "predicted_away"),
        )

    def to_api(self) -> Dict[str, int]:
        # Formato atteso da POST /predictions/bulk
        return {"matchId": self.match_id, "home": self.home, "away": self.away}


@dataclass(frozen=True)
class PointsSummary:
    total: int = 0
    per_match: Dict[int, int] = field(default_factory=dict)

    @classmethod
    def from_api(cls, raw: Mapping[str, Any]) -> "PointsSummary":
        total = _as_int(_require(raw, "totalPoints"), "totalPoints")
        items = raw.get("perMatch") or []
        if not isinstance(items, list):
            raise ValueError("perMatch deve essere una lista")
        per_match: Dict[int, int] = {}
        for item in items:
            mid = _as_int(_require(item, "matchId"), "matchId")
            per_match[mid] = _as_int(_require(item, "points"), "points")
        return cls(total=total, per_match=per_match)

    def points_for(self, match_id: int) -> Optional[int]:
        return self.per_match.get(match_id)


@dataclass(frozen=True)
class LeaderboardEntry:
    user_id: int
    username: str
    total_points: int

    @classmethod
    def from_api(cls, raw: Mapping[str, Any]) -> "LeaderboardEntry":
        return cls(
            user_id=_as_int(_require(raw, "userId"), "userId"),
            username=str(_require(raw, "username")),
            total_points=_as_int(raw.get("totalPoints") or 0, "totalPoints"),
        )


@dataclass(frozen=True)
class GroupStanding:
    group: str
    team: str
    goals_for: int
    goals_against: int
    points: int

    @property
    def goal_difference(self) -> int:
        return self.goals_for - self.goals_against

    @classmethod
    def from_api(cls, raw: Mapping[str, Any]) -> "GroupStanding":
        return cls(
            group=str(_require(raw, "group")),
            team=str(_require(raw, "team")),
            goals_for=_as_int(raw.get("goalsFor") or 0, "goalsFor"),
            goals_against=_as_int(raw.get("goalsAgainst") or 0, "goalsAgainst"),
            points=_as_int(raw.get("points") or 0, "points"),
        )


@dataclass(frozen=True)
class AuthResult:
    token: str
    username: str

    @classmethod
    def from_api(cls, raw: Mapping[str, Any]) -> "AuthResult":
        token = _require(raw, "token")
        user = _require(raw, "user")
        username = _require(user, "username")
        if not isinstance(token, str) or not token:
            raise ValueError("token non valido")
        return cls(token=token, username=str(username))


def parse_list(raw: Any, record_cls: Any) -> List[Any]:
    """Applica record_cls.from_api ad ogni elemento; il payload deve essere una lista."""
    if not isinstance(raw, list):
        raise ValueError(f"atteso array JSON, ricevuto {type(raw).__name__}")
    return [record_cls.from_api(item) for item in raw]


__all__ = [
    "Match",
    "Prediction",
    "PointsSummary",
    "LeaderboardEntry",
    "GroupStanding",
    "AuthResult",
    "parse_kickoff",
    "parse_list",
]
