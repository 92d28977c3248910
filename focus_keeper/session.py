import datetime
import threading
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from .errors import InvalidStateError, PreconditionError
from .logging_setup import get_logger
from .scoring import DEFAULT_POLICY, ScoringPolicy
from .violation import Violation


logger = get_logger("session")


class SessionState(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


def _unique(items: Iterable[str]) -> tuple[str, ...]:
    seen: list[str] = []
    for item in items or ():
        item = str(item).strip()
        if item and item not in seen:
            seen.append(item)
    return tuple(seen)


@dataclass(frozen=True)
class SessionRecord:
    """Read-only snapshot of a finished session, shaped for persistence."""

    id: str
    start_time: datetime.datetime
    planned_duration_sec: int
    actual_duration_sec: float
    score: int
    completed: bool
    blocked_apps: tuple[str, ...] = ()
    blocked_domains: tuple[str, ...] = ()
    violations: tuple[dict, ...] = field(default_factory=tuple)

    @property
    def date(self) -> str:
        return self.start_time.date().isoformat()

    @property
    def total_distracted_sec(self) -> float:
        return sum(v.get("duration_sec", 0) for v in self.violations)

    @property
    def total_dismissals(self) -> int:
        return sum(int(v.get("dismissals", 0)) for v in self.violations)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.date,
            "start_time": self.start_time.isoformat(),
            "planned_duration_sec": self.planned_duration_sec,
            "actual_duration_sec": self.actual_duration_sec,
            "score": self.score,
            "completed": self.completed,
            "blocked_apps": list(self.blocked_apps),
            "blocked_domains": list(self.blocked_domains),
            "violations": [dict(v) for v in self.violations],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SessionRecord":
        return cls(
            id=str(data["id"]),
            start_time=datetime.datetime.fromisoformat(str(data["start_time"])),
            planned_duration_sec=int(data["planned_duration_sec"]),
            actual_duration_sec=data.get("actual_duration_sec", 0),
            score=int(data["score"]),
            completed=bool(data.get("completed", False)),
            blocked_apps=tuple(data.get("blocked_apps") or ()),
            blocked_domains=tuple(data.get("blocked_domains") or ()),
            violations=tuple(dict(v) for v in (data.get("violations") or ())),
        )


class FocusSession:
    """State machine for one timed focus session: running, then completed or abandoned."""

    def __init__(
        self,
        planned_duration_sec: int,
        blocked_apps: Iterable[str] = (),
        blocked_domains: Iterable[str] = (),
        policy: ScoringPolicy = DEFAULT_POLICY,
        session_id: str | None = None,
        start_time: datetime.datetime | None = None,
    ):
        if planned_duration_sec is None or planned_duration_sec <= 0:
            raise PreconditionError(f"planned duration must be > 0 seconds, got {planned_duration_sec}")

        self._lock = threading.RLock()
        self._policy = policy

        self.id = session_id or str(uuid.uuid4())
        self.start_time = start_time or datetime.datetime.now()
        self.planned_duration_sec = int(planned_duration_sec)
        self.blocked_apps = _unique(blocked_apps)
        self.blocked_domains = _unique(d.lower() for d in (blocked_domains or ()))

        self._actual_duration_sec: float = 0
        self._state = SessionState.RUNNING
        self._history: list[Violation] = []
        self._open: Violation | None = None
        self._score = policy.score(0, 0, 0)

    @classmethod
    def start(
        cls,
        planned_duration_sec: int,
        blocked_apps: Iterable[str] = (),
        blocked_domains: Iterable[str] = (),
        policy: ScoringPolicy = DEFAULT_POLICY,
    ) -> "FocusSession":
        session = cls(planned_duration_sec, blocked_apps, blocked_domains, policy=policy)
        logger.info(
            f"Session start id={session.id} planned_sec={session.planned_duration_sec} "
            f"apps={list(session.blocked_apps)} domains={list(session.blocked_domains)}"
        )
        return session

    # State
    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    @property
    def is_running(self) -> bool:
        return self.state is SessionState.RUNNING

    @property
    def is_terminal(self) -> bool:
        return not self.is_running

    @property
    def completed(self) -> bool:
        return self.state is SessionState.COMPLETED

    @property
    def score(self) -> int:
        with self._lock:
            return self._score

    @property
    def actual_duration_sec(self) -> float:
        with self._lock:
            return self._actual_duration_sec

    @property
    def policy(self) -> ScoringPolicy:
        return self._policy

    @property
    def date(self) -> str:
        return self.start_time.date().isoformat()

    @property
    def open_violation(self) -> Violation | None:
        with self._lock:
            return self._open

    @property
    def has_open_violation(self) -> bool:
        return self.open_violation is not None

    @property
    def violations(self) -> tuple[Violation, ...]:
        with self._lock:
            return tuple(self._history)

    # Mutations
    def start_violation(self, target: str) -> Violation:
        if not target:
            raise PreconditionError("violation target must be a non-empty string")
        with self._lock:
            self._ensure_running("start_violation")
            if self._open is not None:
                if self._open.target == target:
                    return self._open
                self._close_open()
            self._open = Violation.create(target)
            logger.info(f"Violation OPEN target={target}")
            return self._open

    def add_violation_duration(self, seconds: float) -> None:
        if seconds is None or seconds < 0:
            raise PreconditionError(f"cannot add negative duration ({seconds})")
        with self._lock:
            self._ensure_running("add_violation_duration")
            if self._open is not None:
                self._open.add_duration(seconds)

    def record_dismissal(self) -> None:
        with self._lock:
            self._ensure_running("record_dismissal")
            if self._open is not None:
                self._open.record_dismissal()

    def end_current_violation(self) -> None:
        with self._lock:
            self._ensure_running("end_current_violation")
            if self._open is not None:
                self._close_open()

    def complete(self, actual_duration_sec: float) -> None:
        self._terminate(SessionState.COMPLETED, actual_duration_sec)

    def abandon(self, actual_duration_sec: float) -> None:
        self._terminate(SessionState.ABANDONED, actual_duration_sec)

    def _terminate(self, new_state: SessionState, actual_duration_sec: float) -> None:
        with self._lock:
            self._ensure_running(new_state.value)
            if actual_duration_sec is None or actual_duration_sec < 0:
                raise PreconditionError(f"actual duration must be >= 0, got {actual_duration_sec}")
            if self._open is not None:
                self._close_open()
            self._actual_duration_sec = actual_duration_sec
            self._state = new_state
            score = self._score
            count = len(self._history)

        logger.info(
            f"Session {new_state.value} id={self.id} actual_sec={actual_duration_sec} "
            f"score={score} violations={count}"
        )

    def _close_open(self) -> None:
        violation = self._open
        self._open = None
        violation.close()
        self._history.append(violation)
        self._recalculate_score()
        logger.info(
            f"Violation CLOSE target={violation.target} duration={violation.duration_sec}s "
            f"dismissals={violation.dismissals} score={self._score}"
        )

    def _recalculate_score(self) -> None:
        self._score = self._policy.score(
            len(self._history),
            sum(v.dismissals for v in self._history),
            sum(v.duration_sec for v in self._history),
        )

    def _ensure_running(self, operation: str) -> None:
        if self._state is not SessionState.RUNNING:
            raise InvalidStateError(f"cannot {operation}: session {self.id} is {self._state.value}")

    # Queries
    @property
    def violation_count(self) -> int:
        with self._lock:
            return len(self._history)

    @property
    def total_dismissals(self) -> int:
        with self._lock:
            return sum(v.dismissals for v in self._history)

    @property
    def total_distracted_sec(self) -> float:
        with self._lock:
            return sum(v.duration_sec for v in self._history)

    def most_distracting_target(self) -> str | None:
        """Target with the most summed distracted time; first seen wins ties."""
        with self._lock:
            totals: dict[str, float] = {}
            for v in self._history:
                totals[v.target] = totals.get(v.target, 0) + v.duration_sec

        best = None
        best_sec = -1.0
        for target, sec in totals.items():
            if sec > best_sec:
                best, best_sec = target, sec
        return best

    def qualifies_for_streak(self) -> bool:
        with self._lock:
            return self._policy.qualifies_for_streak(
                self._state is SessionState.COMPLETED,
                self._actual_duration_sec,
                self._score,
            )

    # Persistence boundary
    def to_record(self) -> SessionRecord:
        with self._lock:
            if self._state is SessionState.RUNNING:
                raise InvalidStateError(f"session {self.id} is still running")
            return SessionRecord(
                id=self.id,
                start_time=self.start_time,
                planned_duration_sec=self.planned_duration_sec,
                actual_duration_sec=self._actual_duration_sec,
                score=self._score,
                completed=self._state is SessionState.COMPLETED,
                blocked_apps=self.blocked_apps,
                blocked_domains=self.blocked_domains,
                violations=tuple(v.to_dict() for v in self._history),
            )

    @classmethod
    def from_record(cls, record: SessionRecord, policy: ScoringPolicy = DEFAULT_POLICY) -> "FocusSession":
        """Rebuild a finished session. The stored score is kept as-is."""
        session = cls(
            record.planned_duration_sec,
            record.blocked_apps,
            record.blocked_domains,
            policy=policy,
            session_id=record.id,
            start_time=record.start_time,
        )
        session._history = [Violation.from_dict(v) for v in record.violations]
        session._actual_duration_sec = record.actual_duration_sec
        session._score = int(record.score)
        session._state = SessionState.COMPLETED if record.completed else SessionState.ABANDONED
        return session

    def __repr__(self) -> str:
        return (
            f"FocusSession(id={self.id!r}, state={self.state.value}, "
            f"planned={self.planned_duration_sec}s, actual={self.actual_duration_sec}s, "
            f"score={self.score}, violations={self.violation_count})"
        )
