from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from json import JSONDecodeError
from pathlib import Path
from typing import Any, Optional

from core.config import get_settings

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionContext:
    """
    Contesto di sessione esplicito passato ad ogni chiamata autenticata
    verso il Remote Store (niente token globale).
    """

    token: str
    username: str

    def auth_headers(self) -> dict:
        return {"Authorization": f"Bearer {self.token}"}


# ---------------------------------------------------------------------------
# Low level
# ---------------------------------------------------------------------------


def _write_json_atomic(path: Path, data: Any, indent: int = 2, mode: int = 0o600) -> None:
    # Il file contiene un bearer token: leggibile solo dal proprietario
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    if tmp_path.exists():
        tmp_path.unlink()
    fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, mode)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=indent)
        f.flush()
        os.fsync(f.fileno())
    os.replace(tmp_path, path)


class TokenStore:
    """
    Storage durevole del token di sessione (file JSON nella data dir).

    - save(): scrittura atomica {token, username}
    - load(): None se file assente, corrotto o incompleto
    - clear(): rimuove il file (logout)
    Con PREDICTOR_PERSIST_TOKEN=false lo store vive solo in memoria.
    """

    def __init__(self, path: Optional[Path] = None, *, persist: Optional[bool] = None) -> None:
        if path is None or persist is None:
            settings = get_settings()
            if path is None:
                path = Path(settings.data_dir) / settings.token_file
            if persist is None:
                persist = settings.persist_token
        self._path = path
        self._persist = persist
        self._memory: Optional[SessionContext] = None

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Optional[SessionContext]:
        if not self._persist:
            return self._memory
        if not self._path.exists():
            return None
        try:
            with self._path.open("r", encoding="utf-8") as f:
                raw = json.load(f)
        except JSONDecodeError:
            LOGGER.warning("Invalid / corrupt session JSON at %s", self._path)
            return None
        except OSError as e:
            LOGGER.warning("Error reading session file %s: %s", self._path, e)
            return None
        if not isinstance(raw, dict):
            return None
        token = raw.get("token")
        username = raw.get("username") or ""
        if not isinstance(token, str) or not token:
            return None
        return SessionContext(token=token, username=str(username))

    def save(self, context: SessionContext) -> None:
        self._memory = context
        if not self._persist:
            return
        _write_json_atomic(self._path, {"token": context.token, "username": context.username})

    def clear(self) -> None:
        self._memory = None
        if self._persist and self._path.exists():
            self._path.unlink()


__all__ = ["SessionContext", "TokenStore"]
