from dataclasses import dataclass

from .config import (
    SCORE_BASE,
    SCORE_VIOLATION_PENALTY,
    SCORE_DISMISSAL_PENALTY,
    SCORE_TIME_PENALTY_PER_MINUTE,
    SCORE_MIN,
    SCORE_MAX,
    MIN_STREAK_DURATION_MINUTES,
    MIN_STREAK_SCORE,
)
from .errors import PreconditionError
from .utils import clamp


@dataclass(frozen=True)
class ScoringPolicy:
    base: int = SCORE_BASE
    per_violation_penalty: int = SCORE_VIOLATION_PENALTY
    per_dismissal_penalty: int = SCORE_DISMISSAL_PENALTY
    per_minute_penalty: int = SCORE_TIME_PENALTY_PER_MINUTE
    min_streak_minutes: int = MIN_STREAK_DURATION_MINUTES
    min_streak_score: int = MIN_STREAK_SCORE

    def score(self, violation_count: int, total_dismissals: int, total_distracted_sec: float) -> int:
        if violation_count < 0 or total_dismissals < 0 or total_distracted_sec < 0:
            raise PreconditionError(
                "score inputs must be non-negative "
                f"(violations={violation_count}, dismissals={total_dismissals}, "
                f"seconds={total_distracted_sec})"
            )

        pts = self.base
        pts -= int(violation_count) * self.per_violation_penalty
        pts -= int(total_dismissals) * self.per_dismissal_penalty
        # Partial minutes are free.
        pts -= int(total_distracted_sec // 60) * self.per_minute_penalty

        return clamp(pts, SCORE_MIN, SCORE_MAX)

    def qualifies_for_streak(self, completed: bool, actual_duration_sec: float, score: int) -> bool:
        if not completed:
            return False
        return (actual_duration_sec / 60) >= self.min_streak_minutes and score >= self.min_streak_score


DEFAULT_POLICY = ScoringPolicy()


def compute_score(
    violation_count: int,
    total_dismissals: int,
    total_distracted_sec: float,
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> int:
    return policy.score(violation_count, total_dismissals, total_distracted_sec)
