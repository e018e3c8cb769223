from __future__ import annotations

from typing import Any, Dict, Optional

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    generate_latest,
)
from core.config import get_settings
from core.logging import get_logger

logger = get_logger("monitoring.prometheus_exporter")

# Registry globale (semplice) – non quello di default del processo.
_REGISTRY = CollectorRegistry()

BOOTSTRAP_TOTAL = Counter("predictor_bootstrap_total", "Numero bootstrap eseguiti", registry=_REGISTRY)
BOOTSTRAP_FAILURES = Counter("predictor_bootstrap_failures_total", "Bootstrap falliti", registry=_REGISTRY)
SAVE_ATTEMPTS = Counter("predictor_save_attempts_total", "Bulk save inviati", registry=_REGISTRY)
SAVE_FAILURES = Counter("predictor_save_failures_total", "Bulk save falliti", registry=_REGISTRY)
SAVE_REJECTED = Counter(
    "predictor_save_rejected_total", "Save rifiutati lato client (lock / in corso)", registry=_REGISTRY
)
MATCHES_TOTAL = Gauge("predictor_matches_total", "Partite note dopo ultimo bootstrap", registry=_REGISTRY)
BUFFER_ENTRIES = Gauge("predictor_buffer_entries", "Entry nel buffer pronostici", registry=_REGISTRY)
LOCKED = Gauge("predictor_locked", "1 se finestra pronostici chiusa", registry=_REGISTRY)
POINTS_TOTAL = Gauge("predictor_points_total", "Punti totali ultimo refresh", registry=_REGISTRY)
BOOTSTRAP_LATENCY_MS = Gauge(
    "predictor_bootstrap_latency_ms", "Durata delle fetch concorrenti dell'ultimo bootstrap in ms", registry=_REGISTRY
)


def _enabled() -> bool:
    try:
        settings = get_settings()
    except ValueError:
        logger.debug("Config non disponibile, skip metrics update")
        return False
    return settings.enable_prometheus_exporter


def record_bootstrap(ok: bool, stats: Optional[Dict[str, Any]] = None) -> None:
    """
    Aggiorna le metriche dopo un bootstrap.
    stats: {"matches": int, "buffer": int, "locked": bool, "points_total": int, "latency_ms": float}
    """
    if not _enabled():
        return
    BOOTSTRAP_TOTAL.inc()
    if not ok:
        BOOTSTRAP_FAILURES.inc()
        return
    s = stats or {}
    MATCHES_TOTAL.set(s.get("matches", 0) or 0)
    BUFFER_ENTRIES.set(s.get("buffer", 0) or 0)
    LOCKED.set(1 if s.get("locked") else 0)
    POINTS_TOTAL.set(s.get("points_total", 0) or 0)
    BOOTSTRAP_LATENCY_MS.set(s.get("latency_ms", 0) or 0)


def record_save(ok: bool, *, buffer_size: int, points_total: Optional[int] = None) -> None:
    if not _enabled():
        return
    SAVE_ATTEMPTS.inc()
    if not ok:
        SAVE_FAILURES.inc()
    BUFFER_ENTRIES.set(buffer_size)
    if points_total is not None:
        POINTS_TOTAL.set(points_total)


def record_save_rejected() -> None:
    if not _enabled():
        return
    SAVE_REJECTED.inc()


def generate_prometheus_text() -> bytes:
    return generate_latest(_REGISTRY)


__all__ = [
    "record_bootstrap",
    "record_save",
    "record_save_rejected",
    "generate_prometheus_text",
    "_REGISTRY",
]
