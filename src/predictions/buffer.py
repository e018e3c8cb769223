from __future__ import annotations

import copy
import math
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from core.logging import get_logger
from core.models import Match, Prediction

logger = get_logger("predictions.buffer")

Entry = Dict[str, int]

_FIELDS = ("home", "away")


class ValidationError(ValueError):
    """Input punteggio non numerico o negativo."""


def parse_score(value: Any) -> int:
    """
    Versione stretta: ritorna un intero >= 0 o solleva ValidationError.
    Accetta int, float interi e stringhe numeriche (es. "2", " 3 ").
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"punteggio non valido: {value!r}")
    if isinstance(value, int):
        score = value
    elif isinstance(value, float):
        if not math.isfinite(value) or not value.is_integer():
            raise ValidationError(f"punteggio non intero: {value!r}")
        score = int(value)
    elif isinstance(value, str):
        text = value.strip()
        try:
            score = int(text)
        except ValueError:
            try:
                as_float = float(text)
            except ValueError as e:
                raise ValidationError(f"punteggio non numerico: {value!r}") from e
            return parse_score(as_float)
    else:
        raise ValidationError(f"punteggio non valido: {value!r}")
    if score < 0:
        raise ValidationError(f"punteggio negativo: {score}")
    return score


def coerce_score(value: Any, default: int = 0) -> int:
    """
    Confine di edit: input non valido diventa `default` (0) invece di propagarsi.
    Stringa vuota = 0 (campo svuotato dall'utente).
    """
    try:
        return parse_score(value)
    except ValidationError as e:
        if value != "":
            logger.warning("score input coerced to %s: %s", default, e)
        return default


class PredictionBuffer:
    """
    Buffer locale dei pronostici: match_id -> {"home": int, "away": int}.

    - reconcile(): idratazione da partite + pronostici remoti
    - set_field(): modifica di un solo campo
    - project(): lista di Prediction per il bulk save

    Le partite senza pronostico non hanno entry finché l'utente non le modifica.
    """

    def __init__(self) -> None:
        self._entries: Dict[int, Entry] = {}
        self._known: Optional[set] = None

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def reconcile(self, matches: Iterable[Match], predictions: Iterable[Prediction]) -> None:
        """
        Ricostruisce il buffer da zero.
        Ogni pronostico sovrascrive una entry precedente per la stessa partita
        (vince l'ultimo); pronostici su partite assenti dal set vengono scartati.
        """
        known = {m.id for m in matches}
        entries: Dict[int, Entry] = {}
        dropped = 0
        for p in predictions:
            if p.match_id not in known:
                dropped += 1
                continue
            entries[p.match_id] = {
                "home": coerce_score(p.home),
                "away": coerce_score(p.away),
            }
        if dropped:
            logger.info("reconcile dropped stale predictions=%s", dropped)
        self._entries = entries
        self._known = known

    # ------------------------------------------------------------------
    # Edit
    # ------------------------------------------------------------------

    def set_field(self, match_id: int, field: str, value: Any) -> Entry:
        """
        Aggiorna esattamente un campo della partita, preservando l'altro.
        Una entry nuova parte da 0 nel campo non toccato.
        """
        if field not in _FIELDS:
            raise ValueError(f"campo non valido: {field!r} (atteso 'home' o 'away')")
        if self._known is not None and match_id not in self._known:
            raise KeyError(match_id)
        score = coerce_score(value)
        entry = self._entries.get(match_id)
        if entry is None:
            entry = {"home": 0, "away": 0}
            self._entries[match_id] = entry
        entry[field] = score
        return dict(entry)

    # ------------------------------------------------------------------
    # Projection / read
    # ------------------------------------------------------------------

    def project(self) -> List[Prediction]:
        # Ordine per match_id: stabile e deterministico
        return [
            Prediction(match_id=mid, home=e["home"], away=e["away"])
            for mid, e in sorted(self._entries.items())
        ]

    def get(self, match_id: int) -> Optional[Entry]:
        entry = self._entries.get(match_id)
        return dict(entry) if entry is not None else None

    def display_score(self, match_id: int) -> Tuple[int, int]:
        """Valore da mostrare: (0, 0) se non ancora pronosticata, senza creare la entry."""
        entry = self._entries.get(match_id)
        if entry is None:
            return 0, 0
        return entry["home"], entry["away"]

    def snapshot(self) -> Dict[int, Entry]:
        return copy.deepcopy(self._entries)

    def clear(self) -> None:
        self._entries = {}
        self._known = None

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, match_id: object) -> bool:
        return match_id in self._entries

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self._entries))

    def __repr__(self) -> str:
        return f"PredictionBuffer({self._entries!r})"


__all__ = [
    "PredictionBuffer",
    "ValidationError",
    "parse_score",
    "coerce_score",
]
