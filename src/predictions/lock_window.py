from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional

from core.models import Match


def _aware(now: datetime) -> datetime:
    # now senza tz interpretato come UTC (coerente con parse_kickoff)
    return now if now.tzinfo is not None else now.replace(tzinfo=timezone.utc)


def is_locked(matches: Iterable[Match], now: datetime) -> bool:
    """
    True se nessuna partita ha kickoff strettamente successivo a `now`.
    Set vuoto -> True (nessuna partita futura).
    """
    ref = _aware(now)
    return not any(m.kickoff_at > ref for m in matches)


def next_kickoff(matches: Iterable[Match], now: datetime) -> Optional[datetime]:
    ref = _aware(now)
    future = [m.kickoff_at for m in matches if m.kickoff_at > ref]
    return min(future) if future else None


@dataclass(frozen=True)
class LockWindow:
    """
    Snapshot del lock calcolato al bootstrap e tenuto per tutta la sessione.
    Non viene ricalcolato ad ogni render: una sessione che attraversa un
    kickoff resta aperta fino al bootstrap successivo.
    """

    locked: bool
    evaluated_at: datetime
    next_kickoff: Optional[datetime] = None

    @classmethod
    def snapshot(cls, matches: Iterable[Match], now: Optional[datetime] = None) -> "LockWindow":
        ref = _aware(now or datetime.now(timezone.utc))
        items = list(matches)
        return cls(
            locked=is_locked(items, ref),
            evaluated_at=ref,
            next_kickoff=next_kickoff(items, ref),
        )

    @classmethod
    def closed(cls, now: Optional[datetime] = None) -> "LockWindow":
        # Stato prima del bootstrap: nessuna partita nota
        return cls(locked=True, evaluated_at=_aware(now or datetime.now(timezone.utc)))


__all__ = ["LockWindow", "is_locked", "next_kickoff"]
