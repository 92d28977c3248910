"""Focus session violation tracking and scoring."""

from .errors import FocusError, InvalidStateError, PreconditionError
from .scoring import ScoringPolicy, compute_score
from .session import FocusSession, SessionRecord, SessionState
from .tracker import ViolationTracker
from .violation import Violation

__version__ = "0.1.0"

__all__ = [
    "FocusError",
    "FocusSession",
    "InvalidStateError",
    "PreconditionError",
    "ScoringPolicy",
    "SessionRecord",
    "SessionState",
    "Violation",
    "ViolationTracker",
    "compute_score",
]
