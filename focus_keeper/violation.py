import datetime

from .errors import InvalidStateError, PreconditionError


class Violation:
    """One continuous episode of a blocked app or site being frontmost."""

    def __init__(
        self,
        target: str,
        started_at: datetime.datetime | None = None,
        duration_sec: float = 0,
        dismissals: int = 0,
        closed: bool = False,
    ):
        if not target:
            raise PreconditionError("violation target must be a non-empty string")
        if duration_sec < 0:
            raise PreconditionError(f"duration must be >= 0, got {duration_sec}")
        if dismissals < 0:
            raise PreconditionError(f"dismissals must be >= 0, got {dismissals}")

        self._target = target
        self._started_at = started_at or datetime.datetime.now()
        self._duration_sec = duration_sec
        self._dismissals = int(dismissals)
        self._closed = closed

    @classmethod
    def create(cls, target: str) -> "Violation":
        return cls(target)

    @property
    def target(self) -> str:
        return self._target

    @property
    def started_at(self) -> datetime.datetime:
        return self._started_at

    @property
    def duration_sec(self) -> float:
        return self._duration_sec

    @property
    def duration_minutes(self) -> int:
        return int(self._duration_sec // 60)

    @property
    def dismissals(self) -> int:
        return self._dismissals

    @property
    def closed(self) -> bool:
        return self._closed

    def add_duration(self, seconds: float) -> None:
        if seconds < 0:
            raise PreconditionError(f"cannot add negative duration ({seconds})")
        self._ensure_open()
        self._duration_sec += seconds

    def record_dismissal(self) -> None:
        self._ensure_open()
        self._dismissals += 1

    def close(self) -> None:
        self._closed = True

    def _ensure_open(self) -> None:
        if self._closed:
            raise InvalidStateError(f"violation for {self._target!r} is closed")

    def to_dict(self) -> dict:
        return {
            "target": self._target,
            "started_at": self._started_at.isoformat(),
            "duration_sec": self._duration_sec,
            "dismissals": self._dismissals,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Violation":
        return cls(
            target=str(data["target"]),
            started_at=datetime.datetime.fromisoformat(str(data["started_at"])),
            duration_sec=data.get("duration_sec", 0),
            dismissals=int(data.get("dismissals", 0)),
            closed=True,
        )

    def __repr__(self) -> str:
        return (
            f"Violation(target={self._target!r}, duration={self._duration_sec}s, "
            f"dismissals={self._dismissals}, started_at={self._started_at:%Y-%m-%d %H:%M:%S})"
        )
