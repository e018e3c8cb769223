"""
Predictions package.

Contiene:
- buffer: PredictionBuffer (reconcile / set_field / project)
- lock_window: is_locked e snapshot LockWindow
- submission: SubmissionCoordinator (bulk save)
- points: PointsRefresher
- session: PredictionSession (bootstrap, auth, banner)
"""
from .buffer import PredictionBuffer, ValidationError, coerce_score, parse_score  # noqa: F401
from .lock_window import LockWindow, is_locked, next_kickoff  # noqa: F401
from .points import PointsRefresher  # noqa: F401
from .submission import SaveResult, SubmissionCoordinator  # noqa: F401
from .session import Banner, PredictionSession  # noqa: F401


__all__ = [
    "PredictionBuffer",
    "ValidationError",
    "coerce_score",
    "parse_score",
    "LockWindow",
    "is_locked",
    "next_kickoff",
    "PointsRefresher",
    "SaveResult",
    "SubmissionCoordinator",
    "Banner",
    "PredictionSession",
]
