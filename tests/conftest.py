import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import asyncio  # noqa: E402
import secrets  # noqa: E402
from dataclasses import dataclass, field  # noqa: E402
from typing import Any, Dict, List, Optional  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi import Depends, FastAPI, Header, HTTPException  # noqa: E402
from fastapi.responses import JSONResponse  # noqa: E402

from core.config import _reset_settings_cache_for_tests  # noqa: E402
from core.models import AuthResult, Match, PointsSummary, Prediction, parse_list  # noqa: E402
from core.session_store import TokenStore  # noqa: E402
from providers.remote_store.base import RemoteStoreBase  # noqa: E402
from providers.remote_store.client import RemoteStoreClient  # noqa: E402
from providers.remote_store.exceptions import AuthError, NetworkError  # noqa: E402
from providers.remote_store.http_client import RemoteStoreHttpClient  # noqa: E402


MATCHES: List[Dict[str, Any]] = [
    {
        "id": 1,
        "home_team_id": 10,
        "away_team_id": 11,
        "home_team_name": "Brazil",
        "away_team_name": "Spain",
        "kickoff_at": "2000-01-01T18:00:00Z",
        "stage": "Group A",
        "result_home": 2,
        "result_away": 1,
    },
    {
        "id": 2,
        "home_team_id": 12,
        "away_team_id": 13,
        "home_team_name": "Argentina",
        "away_team_name": "Portugal",
        "kickoff_at": "2099-01-01T18:00:00Z",
        "stage": "Group B",
        "result_home": None,
        "result_away": None,
    },
    {
        "id": 5,
        "home_team_id": 14,
        "away_team_id": 15,
        "home_team_name": "Iran",
        "away_team_name": "Japan",
        "kickoff_at": "2099-01-02T18:00:00Z",
        "stage": "Quarter-final",
        "result_home": None,
        "result_away": None,
    },
]


@pytest.fixture(autouse=True)
def reset_settings_cache(monkeypatch, tmp_path):
    monkeypatch.setenv("PREDICTOR_API_URL", "http://testserver")
    monkeypatch.setenv("PREDICTOR_DATA_DIR", str(tmp_path))
    _reset_settings_cache_for_tests()
    yield
    _reset_settings_cache_for_tests()


# ---------------------------------------------------------------------------
# Remote Store finto (FastAPI servito via httpx.ASGITransport)
# ---------------------------------------------------------------------------


@dataclass
class FakeStoreState:
    users: Dict[str, str] = field(default_factory=lambda: {"alice": "secret"})
    tokens: Dict[str, str] = field(default_factory=dict)
    matches: List[Dict[str, Any]] = field(default_factory=lambda: [dict(m) for m in MATCHES])
    predictions: Dict[str, Dict[int, Dict[str, int]]] = field(
        default_factory=lambda: {"alice": {1: {"home": 2, "away": 0}}}
    )
    points: Dict[str, Any] = field(
        default_factory=lambda: {"totalPoints": 3, "perMatch": [{"matchId": 1, "points": 3}]}
    )
    leaderboard: List[Dict[str, Any]] = field(
        default_factory=lambda: [
            {"userId": 1, "username": "alice", "totalPoints": 3},
            {"userId": 2, "username": "bob", "totalPoints": 0},
        ]
    )
    standings: List[Dict[str, Any]] = field(
        default_factory=lambda: [
            {"group": "A", "team": "Brazil", "goalsFor": 2, "goalsAgainst": 1, "points": 3},
            {"group": "A", "team": "Spain", "goalsFor": 1, "goalsAgainst": 2, "points": 0},
        ]
    )
    save_status: Optional[int] = None
    points_status: Optional[int] = None
    matches_status: Optional[int] = None
    saved_payloads: List[Any] = field(default_factory=list)

    def issue_token(self, username: str) -> str:
        token = secrets.token_hex(8)
        self.tokens[token] = username
        return token


def build_fake_app(state: FakeStoreState) -> FastAPI:
    app = FastAPI()

    def current_user(authorization: Optional[str] = Header(None)) -> str:
        if not authorization or not authorization.startswith("Bearer "):
            raise HTTPException(status_code=401, detail="Missing token")
        user = state.tokens.get(authorization[len("Bearer "):])
        if user is None:
            raise HTTPException(status_code=401, detail="Invalid token")
        return user

    def _fail(status: int) -> JSONResponse:
        return JSONResponse(status_code=status, content={"message": f"forced failure {status}"})

    @app.post("/api/auth/register")
    def register(body: Dict[str, Any]):
        username = body.get("username")
        if username in state.users:
            return JSONResponse(status_code=400, content={"message": "Username already taken"})
        state.users[username] = body.get("password")
        return {"token": state.issue_token(username), "user": {"username": username}}

    @app.post("/api/auth/login")
    def login(body: Dict[str, Any]):
        username = body.get("username")
        if state.users.get(username) != body.get("password"):
            return JSONResponse(status_code=401, content={"message": "Invalid credentials"})
        return {"token": state.issue_token(username), "user": {"username": username}}

    @app.get("/api/matches")
    def matches(user: str = Depends(current_user)):
        if state.matches_status:
            return _fail(state.matches_status)
        return state.matches

    @app.get("/api/predictions/mine")
    def mine(user: str = Depends(current_user)):
        return [
            {"match_id": mid, "predicted_home": p["home"], "predicted_away": p["away"]}
            for mid, p in state.predictions.get(user, {}).items()
        ]

    @app.post("/api/predictions/bulk")
    def bulk(body: Dict[str, Any], user: str = Depends(current_user)):
        state.saved_payloads.append(body)
        if state.save_status:
            return _fail(state.save_status)
        mine = state.predictions.setdefault(user, {})
        for item in body.get("predictions", []):
            mine[int(item["matchId"])] = {"home": int(item["home"]), "away": int(item["away"])}
        return {"saved": len(body.get("predictions", []))}

    @app.get("/api/predictions/points")
    def points(user: str = Depends(current_user)):
        if state.points_status:
            return _fail(state.points_status)
        return state.points

    @app.get("/api/users/leaderboard")
    def leaderboard(user: str = Depends(current_user)):
        return state.leaderboard

    @app.get("/api/groups/standings")
    def standings(user: str = Depends(current_user)):
        return state.standings

    return app


@pytest.fixture
def store_state() -> FakeStoreState:
    return FakeStoreState()


@pytest.fixture
def remote_client(store_state) -> RemoteStoreClient:
    transport = httpx.ASGITransport(app=build_fake_app(store_state))
    http = RemoteStoreHttpClient("http://testserver", timeout=5.0, transport=transport)
    return RemoteStoreClient(http)


@pytest.fixture
def logged_in_token(store_state) -> str:
    return store_state.issue_token("alice")


@pytest.fixture
def token_store(tmp_path) -> TokenStore:
    return TokenStore(tmp_path / "session.json", persist=True)


# ---------------------------------------------------------------------------
# Remote Store in memoria (unit test senza HTTP)
# ---------------------------------------------------------------------------


class MemoryStore(RemoteStoreBase):
    """
    Store in-process: `fail_save` / `fail_points` simulano errori di rete,
    i gate (asyncio.Event) sospendono save e fetch dei punti.
    """

    def __init__(self) -> None:
        self.matches = parse_list([dict(m) for m in MATCHES], Match)
        self.predictions: List[Prediction] = [Prediction(match_id=1, home=2, away=0)]
        self.points = PointsSummary(total=3, per_match={1: 3})
        self.saved: List[List[Prediction]] = []
        self.fail_save = False
        self.fail_points = False
        self.save_gate: Optional[asyncio.Event] = None
        self.save_started: Optional[asyncio.Event] = None
        self.points_gate: Optional[asyncio.Event] = None
        self.points_started: Optional[asyncio.Event] = None

    async def register(self, username, password):
        return AuthResult(token="tok-" + username, username=username)

    async def login(self, username, password):
        if password != "secret":
            raise AuthError("Invalid credentials", status=401)
        return AuthResult(token="tok-" + username, username=username)

    async def fetch_matches(self, session):
        return list(self.matches)

    async def fetch_my_predictions(self, session):
        return list(self.predictions)

    async def save_predictions(self, session, predictions):
        if self.save_started is not None:
            self.save_started.set()
        if self.save_gate is not None:
            await self.save_gate.wait()
        self.saved.append(list(predictions))
        if self.fail_save:
            raise NetworkError("server error 503", status=503)
        return {"saved": len(predictions)}

    async def fetch_points(self, session):
        if self.points_started is not None:
            self.points_started.set()
        if self.points_gate is not None:
            await self.points_gate.wait()
        if self.fail_points:
            raise NetworkError("server error 502", status=502)
        return self.points

    async def fetch_leaderboard(self, session):
        return []

    async def fetch_group_standings(self, session):
        return []


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def matches() -> List[Match]:
    return parse_list([dict(m) for m in MATCHES], Match)
