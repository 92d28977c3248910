import time
import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeout
from dataclasses import dataclass
from typing import Callable

from .config import (
    TICK_INTERVAL_SEC,
    WEBSITE_CHECK_EVERY_TICKS,
    REMINDER_COOLDOWN_TICKS,
    OBSERVER_TIMEOUT_SEC,
    WEBSITE_TARGET_PREFIX,
)
from .errors import InvalidStateError, PreconditionError
from .logging_setup import get_logger
from .process_monitor import (
    AppMatcher,
    DomainMatcher,
    ForegroundObserver,
    WebsiteObserver,
    create_foreground_observer,
    create_website_observer,
)
from .session import FocusSession
from .timer import SessionTimer


logger = get_logger("tracker")


def website_target(domain: str) -> str:
    return f"{WEBSITE_TARGET_PREFIX}{domain}"


def is_website_target(target: str | None) -> bool:
    return bool(target) and target.startswith(WEBSITE_TARGET_PREFIX)


class ReminderGate:
    """Per-channel reminder rate limit, counted in ticks."""

    def __init__(self, cooldown_ticks: int):
        self.cooldown_ticks = cooldown_ticks
        self.last_tick: int | None = None

    def due(self, tick: int, target_changed: bool = False) -> bool:
        if not target_changed and self.last_tick is not None:
            if tick - self.last_tick < self.cooldown_ticks:
                return False
        self.last_tick = tick
        return True


@dataclass
class TickResult:
    tick: int
    frontmost_app: str | None = None
    app_target: str | None = None
    site_target: str | None = None
    website_checked: bool = False
    reminder: str | None = None
    completed: bool = False


class ViolationTracker:
    """Samples the foreground every tick and feeds blocked hits into the session."""

    def __init__(
        self,
        session: FocusSession,
        foreground: ForegroundObserver | None = None,
        website: WebsiteObserver | None = None,
        on_reminder: Callable[[str], None] | None = None,
        on_complete: Callable[[FocusSession], None] | None = None,
        tick_interval: float = TICK_INTERVAL_SEC,
        website_every: int = WEBSITE_CHECK_EVERY_TICKS,
        reminder_cooldown: int = REMINDER_COOLDOWN_TICKS,
        observer_timeout: float = OBSERVER_TIMEOUT_SEC,
        browser_name: str | None = None,
    ):
        if tick_interval <= 0:
            raise PreconditionError(f"tick interval must be > 0, got {tick_interval}")
        if website_every < 1:
            raise PreconditionError(f"website interval must be >= 1 tick, got {website_every}")
        if reminder_cooldown < 0:
            raise PreconditionError(f"reminder cool-down must be >= 0, got {reminder_cooldown}")

        self.session = session
        self.timer = SessionTimer(session.planned_duration_sec)
        self.timer.start()

        self._foreground = foreground if foreground is not None else create_foreground_observer()
        self._website = website if website is not None else create_website_observer()
        self._on_reminder = on_reminder
        self._on_complete = on_complete

        self._tick_interval = float(tick_interval)
        self._website_every = int(website_every)
        self._reminder_cooldown = int(reminder_cooldown)
        self._observer_timeout = observer_timeout
        self._browser_name = (browser_name or self._website.browser_name or "").lower()

        self._apps = AppMatcher(session.blocked_apps)
        self._domains = DomainMatcher(session.blocked_domains)

        self._tick_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._paused = False
        self._thread: threading.Thread | None = None
        self._executor: ThreadPoolExecutor | None = None
        self._executor_lock = threading.Lock()

        self._tick_index = 0
        self._app_reminders = ReminderGate(self._reminder_cooldown)
        self._site_reminders = ReminderGate(self._reminder_cooldown)
        self._prev_target: str | None = None

    # Properties
    @property
    def tick_index(self) -> int:
        return self._tick_index

    @property
    def app_credit_sec(self) -> float:
        return self._tick_interval

    @property
    def website_credit_sec(self) -> float:
        return self._tick_interval * self._website_every

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # Lifecycle
    def start(self) -> None:
        if self.session.is_terminal:
            raise InvalidStateError(f"session {self.session.id} is already {self.session.state.value}")
        if self._stop_event.is_set():
            raise InvalidStateError("tracker was stopped and cannot be restarted")
        if self.running:
            return

        self._thread = threading.Thread(target=self._loop, name="focus-tracker", daemon=True)
        self._thread.start()
        logger.info(f"Tracker start session={self.session.id} interval={self._tick_interval}s")

    def pause(self) -> None:
        if self._paused or self.stopped:
            return
        self._paused = True
        self.timer.pause()
        logger.info(f"Tracker paused at tick={self._tick_index} elapsed={self.timer.elapsed_sec}s")

    def resume(self) -> None:
        if not self._paused or self.stopped:
            return
        self._paused = False
        self.timer.resume()
        logger.info(f"Tracker resumed at tick={self._tick_index}")

    def stop(self, abandon: bool = True) -> None:
        """Stop sampling. A still-running session is abandoned with the time elapsed so far."""
        if self._stop_event.is_set():
            return
        self._stop_event.set()
        self.timer.cancel()
        self._shutdown_executor()

        if abandon and self.session.is_running:
            try:
                self.session.abandon(self.timer.elapsed_sec)
            except InvalidStateError:
                logger.info(f"Session {self.session.id} ended before stop, nothing to abandon")
        logger.info(f"Tracker stopped at tick={self._tick_index} state={self.session.state.value}")

    def close(self) -> None:
        """Stop sampling and release observer threads, leaving the session as it is."""
        self.stop(abandon=False)

    def __enter__(self) -> "ViolationTracker":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=timeout)

    def record_dismissal(self) -> None:
        """Forward a reminder dismissal to the session."""
        self.session.record_dismissal()
        open_v = self.session.open_violation
        if open_v is not None:
            logger.info(f"Reminder dismissed target={open_v.target} dismissals={open_v.dismissals}")

    def _loop(self) -> None:
        next_at = time.monotonic()
        while not self._stop_event.is_set():
            if not self._paused:
                try:
                    self.tick()
                except Exception:
                    logger.exception("Tracker tick failed")

            next_at += self._tick_interval
            delay = next_at - time.monotonic()
            if delay < 0:
                next_at = time.monotonic()
                delay = 0
            self._stop_event.wait(delay)

    # Sampling
    def tick(self) -> TickResult | None:
        """Run one sampling step. Returns None when paused, stopped or finished."""
        with self._tick_lock:
            if self._paused or self._stop_event.is_set() or self.session.is_terminal:
                return None

            self._tick_index += 1
            result = TickResult(tick=self._tick_index)
            result.website_checked = self._tick_index % self._website_every == 0
            # Both observer calls share one budget so a tick never outlasts its interval.
            deadline = time.monotonic() + min(self._observer_timeout, self._tick_interval)

            result.frontmost_app = self._query(self._foreground.current_frontmost_application, deadline)
            result.app_target = self._apps.match(result.frontmost_app)

            if result.website_checked and self._domains.domains and self._is_browser(result.frontmost_app):
                domain = self._query(self._website.active_browser_domain, deadline)
                matched = self._domains.match(domain)
                if matched:
                    result.site_target = website_target(matched)

            # Observer results are stale if the session ended while we waited.
            if self._stop_event.is_set() or self.session.is_terminal:
                return None

            try:
                self._apply(result)
                result.completed = self._advance_timer()
            except InvalidStateError:
                logger.info(f"Tick {result.tick} discarded, session ended mid-tick")
                return None

        if result.reminder:
            self._emit_reminder(result.reminder)
        if result.completed and self._on_complete is not None:
            self._on_complete(self.session)
        return result

    def _apply(self, result: TickResult) -> None:
        session = self.session

        if result.app_target:
            target = result.app_target
            session.start_violation(target)
            session.add_violation_duration(self.app_credit_sec)
            if self._app_reminders.due(self._tick_index, target != self._prev_target):
                result.reminder = target
        elif result.site_target:
            target = result.site_target
            session.start_violation(target)
            session.add_violation_duration(self.website_credit_sec)
            if self._site_reminders.due(self._tick_index, target != self._prev_target):
                result.reminder = target
        else:
            target = None
            open_v = session.open_violation
            # Website hits are only re-checked every few ticks, hold them open until then.
            if open_v is not None and not (is_website_target(open_v.target) and not result.website_checked):
                session.end_current_violation()
            elif open_v is not None:
                target = open_v.target

        if target != self._prev_target:
            if target and not self._prev_target:
                logger.info(f"Blocked focus ENTER target={target} app={result.frontmost_app}")
            elif not target:
                logger.info(f"Blocked focus EXIT target={self._prev_target}")
            else:
                logger.info(f"Blocked focus SWITCH {self._prev_target} -> {target}")
            self._prev_target = target

    def _advance_timer(self) -> bool:
        if not self.timer.advance(self._tick_interval):
            return False
        self.session.complete(self.session.planned_duration_sec)
        self._stop_event.set()
        self._shutdown_executor()
        return True

    def _emit_reminder(self, target: str) -> None:
        logger.info(f"Reminder target={target} tick={self._tick_index}")
        if self._on_reminder is None:
            return
        try:
            self._on_reminder(target)
        except Exception:
            logger.exception(f"Reminder sink failed for target={target}")

    def _is_browser(self, app_name: str | None) -> bool:
        if not app_name or not self._browser_name:
            return False
        return app_name.strip().lower() == self._browser_name

    def _get_executor(self) -> ThreadPoolExecutor | None:
        with self._executor_lock:
            if self._executor is None and not self._stop_event.is_set():
                self._executor = ThreadPoolExecutor(
                    max_workers=2,
                    thread_name_prefix=f"focus-observer-{self.session.id[:8]}",
                )
            return self._executor

    def _shutdown_executor(self) -> None:
        with self._executor_lock:
            executor = self._executor
        if executor is not None:
            executor.shutdown(wait=False, cancel_futures=True)

    def _query(self, fn: Callable[[], str | None], deadline: float) -> str | None:
        """Call an observer, waiting no later than ``deadline``. Failures and timeouts read as no signal."""
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            logger.warning(f"No time left this tick for observer {getattr(fn, '__qualname__', fn)}")
            return None
        executor = self._get_executor()
        if executor is None:
            return None
        try:
            future = executor.submit(fn)
        except RuntimeError:
            return None
        try:
            return future.result(timeout=remaining)
        except FuturesTimeout:
            logger.warning(f"Observer {getattr(fn, '__qualname__', fn)} timed out after {remaining:.2f}s")
            return None
        except Exception:
            logger.exception(f"Observer {getattr(fn, '__qualname__', fn)} failed")
            return None
