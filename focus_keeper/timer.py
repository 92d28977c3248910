from .config import MIN_DURATION_SEC, MAX_DURATION_SEC
from .errors import PreconditionError
from .utils import format_hms


def snap_duration(seconds: float) -> int:
    """Round a picked duration to whole minutes inside the allowed range."""
    minutes = int(round(float(seconds) / 60.0))
    snapped = minutes * 60
    return max(MIN_DURATION_SEC, min(MAX_DURATION_SEC, snapped))


class SessionTimer:
    """Tick-driven countdown for a session's planned duration."""

    def __init__(self, total_sec: int):
        if total_sec <= 0:
            raise PreconditionError(f"timer duration must be > 0, got {total_sec}")
        self._total_sec = int(total_sec)
        self._elapsed_sec: float = 0
        self._running = False
        self._paused = False

    @property
    def total_sec(self) -> int:
        return self._total_sec

    @property
    def elapsed_sec(self) -> float:
        return self._elapsed_sec

    @property
    def remaining_sec(self) -> float:
        return max(0, self._total_sec - self._elapsed_sec)

    @property
    def finished(self) -> bool:
        return self._elapsed_sec >= self._total_sec

    @property
    def running(self) -> bool:
        return self._running and not self._paused

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def progress(self) -> float:
        return min(1.0, self._elapsed_sec / self._total_sec)

    @property
    def remaining_progress(self) -> float:
        return 1.0 - self.progress

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._paused = False

    def pause(self) -> None:
        if not self._running or self._paused:
            return
        self._paused = True

    def resume(self) -> None:
        if not self._running or not self._paused:
            return
        self._paused = False

    def cancel(self) -> None:
        self._running = False
        self._paused = False

    def advance(self, seconds: float = 1) -> bool:
        """Count down one tick. Returns True on the tick that finishes the timer."""
        if not self.running or self.finished:
            return False
        self._elapsed_sec = min(self._total_sec, self._elapsed_sec + seconds)
        if self.finished:
            self._running = False
            return True
        return False

    def formatted_remaining(self) -> str:
        return format_hms(self.remaining_sec)

    def __repr__(self) -> str:
        return (
            f"SessionTimer(remaining={format_hms(self.remaining_sec)}, "
            f"elapsed={format_hms(self._elapsed_sec)}, running={self.running}, paused={self._paused})"
        )
