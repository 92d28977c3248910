import datetime
import threading

from .logging_setup import get_logger
from .scoring import DEFAULT_POLICY, ScoringPolicy
from .session import SessionRecord


logger = get_logger("history")


class SessionHistory:
    """In-memory collection of finished session records and their totals."""

    def __init__(self, records=None, policy: ScoringPolicy = DEFAULT_POLICY):
        self._lock = threading.RLock()
        self._policy = policy
        self._records: list[SessionRecord] = []
        for record in records or ():
            self.add(record)

    def add(self, record: SessionRecord) -> None:
        with self._lock:
            if any(r.id == record.id for r in self._records):
                logger.warning(f"History already has session id={record.id}, ignoring duplicate")
                return
            self._records.append(record)
            self._records.sort(key=lambda r: r.start_time)
        logger.info(
            f"History add id={record.id} date={record.date} score={record.score} "
            f"completed={record.completed}"
        )

    @property
    def count(self) -> int:
        with self._lock:
            return len(self._records)

    @property
    def records(self) -> list[SessionRecord]:
        with self._lock:
            return list(self._records)

    def sessions_on(self, day: str | datetime.date) -> list[SessionRecord]:
        key = day.isoformat() if isinstance(day, datetime.date) else str(day)
        with self._lock:
            return [r for r in self._records if r.date == key]

    def qualifies(self, record: SessionRecord) -> bool:
        return self._policy.qualifies_for_streak(record.completed, record.actual_duration_sec, record.score)

    def total_focus_sec(self) -> float:
        with self._lock:
            return sum(r.actual_duration_sec for r in self._records if r.completed)

    def average_score(self) -> float:
        with self._lock:
            if not self._records:
                return 0.0
            return sum(r.score for r in self._records) / len(self._records)

    def most_distracting_target(self) -> str | None:
        totals: dict[str, float] = {}
        with self._lock:
            for r in self._records:
                for v in r.violations:
                    target = v.get("target")
                    if target:
                        totals[target] = totals.get(target, 0) + v.get("duration_sec", 0)
        best = None
        best_sec = -1.0
        for target, sec in totals.items():
            if sec > best_sec:
                best, best_sec = target, sec
        return best

    def _streak_days(self) -> list[datetime.date]:
        with self._lock:
            days = {r.start_time.date() for r in self._records if self.qualifies(r)}
        return sorted(days)

    def current_streak(self, today: datetime.date | None = None) -> int:
        """Consecutive days with a qualifying session, ending today or yesterday."""
        today = today or datetime.date.today()
        days = set(self._streak_days())
        if today in days:
            cursor = today
        elif today - datetime.timedelta(days=1) in days:
            cursor = today - datetime.timedelta(days=1)
        else:
            return 0

        streak = 0
        while cursor in days:
            streak += 1
            cursor -= datetime.timedelta(days=1)
        return streak

    def best_streak(self) -> int:
        best = 0
        cur = 0
        prev = None
        for day in self._streak_days():
            if prev is not None and day - prev == datetime.timedelta(days=1):
                cur += 1
            else:
                cur = 1
            best = max(best, cur)
            prev = day
        return best

    def snapshot(self, today: datetime.date | None = None) -> dict:
        with self._lock:
            records = [r.to_dict() for r in self._records]
            completed = sum(1 for r in self._records if r.completed)
        return {
            "schema": 1,
            "sessions": records,
            "lifetime": {
                "total_sessions": len(records),
                "completed_sessions": completed,
                "total_focus_sec": self.total_focus_sec(),
                "average_score": round(self.average_score(), 1),
                "current_streak": self.current_streak(today),
                "best_streak": self.best_streak(),
                "most_distracting": self.most_distracting_target(),
            },
        }

    @classmethod
    def from_dict(cls, data: dict, policy: ScoringPolicy = DEFAULT_POLICY) -> "SessionHistory":
        records = []
        for item in (data or {}).get("sessions", []) or []:
            try:
                records.append(SessionRecord.from_dict(item))
            except (KeyError, TypeError, ValueError):
                logger.exception("Skipping malformed session record")
        return cls(records, policy=policy)
