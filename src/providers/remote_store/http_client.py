from __future__ import annotations

import time
from typing import Any, Dict, Optional

import httpx

from core.config import get_settings
from core.logging import get_logger
from core.session_store import SessionContext
from .exceptions import AuthError, NetworkError, RemoteStoreError, RequestRejected

log = get_logger(__name__)


def _error_message(resp: httpx.Response, default: str) -> str:
    # Il server risponde con {"message": "..."} sugli errori
    try:
        payload = resp.json()
    except ValueError:
        return default
    if isinstance(payload, dict):
        msg = payload.get("message") or payload.get("detail")
        if isinstance(msg, str) and msg:
            return msg
    return default


class RemoteStoreHttpClient:
    """
    Client HTTP asincrono (httpx) verso il Remote Store, base path /api.
    Mappa gli esiti HTTP sulla tassonomia RemoteStoreError e ritorna JSON.
    Nessun retry: ogni recupero è a carico dell'utente (nuovo invio).

    Telemetria minima (popolata ad ogni request):
      - _last_latency_ms: durata della chiamata in millisecondi
      - _last_status: ultimo HTTP status code (None se nessuna risposta)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if base_url is None or timeout is None:
            settings = get_settings()
            base_url = base_url or settings.api_url
            timeout = timeout or settings.http_timeout
        self._client = httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}/api",
            timeout=timeout,
            headers={"Accept": "application/json"},
            transport=transport,
        )
        self._last_latency_ms: float = 0.0
        self._last_status: Optional[int] = None

    async def request(
        self,
        method: str,
        path: str,
        *,
        session: Optional[SessionContext] = None,
        json: Any = None,
    ) -> Any:
        headers: Dict[str, str] = session.auth_headers() if session else {}
        log.debug("remote_store %s %s", method, path)
        start = time.perf_counter()
        self._last_status = None
        try:
            resp = await self._client.request(method, path, json=json, headers=headers)
        except httpx.TimeoutException as e:
            self._last_latency_ms = (time.perf_counter() - start) * 1000
            log.error("Timeout %s %s dopo %.1fms", method, path, self._last_latency_ms)
            raise NetworkError(f"timeout: {e.__class__.__name__}") from e
        except httpx.RequestError as e:
            self._last_latency_ms = (time.perf_counter() - start) * 1000
            log.error("Errore rete %s %s: %s", method, path, e)
            raise NetworkError(f"network:{e.__class__.__name__}") from e
        self._last_latency_ms = (time.perf_counter() - start) * 1000
        self._last_status = resp.status_code

        if 200 <= resp.status_code < 300:
            if not resp.content:
                return None
            try:
                return resp.json()
            except ValueError as e:
                raise NetworkError(
                    f"Risposta non valida (non JSON) status={resp.status_code}",
                    status=resp.status_code,
                ) from e

        log.warning(
            "Status %s %s %s (%.1fms) body=%s",
            resp.status_code,
            method,
            path,
            self._last_latency_ms,
            resp.text[:300],
        )
        if resp.status_code in (401, 403):
            raise AuthError(_error_message(resp, "Authentication failed"), status=resp.status_code)
        if resp.status_code == 429 or resp.status_code >= 500:
            raise NetworkError(_error_message(resp, f"server error {resp.status_code}"), status=resp.status_code)
        if 400 <= resp.status_code < 500:
            raise RequestRejected(_error_message(resp, f"request rejected {resp.status_code}"), status=resp.status_code)
        raise RemoteStoreError(f"Risposta inattesa (status={resp.status_code})", status=resp.status_code)

    def get_stats(self) -> Dict[str, Any]:
        """
        Ritorna telemetria dell'ultima chiamata:
          latency_ms: durata complessiva
          last_status: ultimo status code visto
        """
        return {
            "latency_ms": round(self._last_latency_ms, 2),
            "last_status": self._last_status,
        }

    async def aclose(self) -> None:
        await self._client.aclose()
