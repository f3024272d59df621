"""Behavioral rules (habit layer) and compliance streaks.

Daily booleans are derived from the day's engine output and the last 7 days
of workout dates; streaks walk backwards through stored behavior rows.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Dict, List

from .constants import (
    MAX_BALANCED_CONSECUTIVE_DAYS,
    SLEEP_TARGET_DEBT_MINUTES,
    STREAK_MAX_LOOKBACK_DAYS,
)
from .types import BehaviorRow, Recommendation
from .utils import DateLike, parse_date, safe_number


@dataclass(frozen=True)
class BehavioralInput:
    recommendation: str                 # "rest" | "moderate" | "train"
    workout_logged_today: bool
    sleep_debt_minutes: float
    last_7_days_workout_dates: List[str]
    overtraining_flag: bool


@dataclass(frozen=True)
class BehavioralOutput:
    recovery_compliant: bool
    sleep_target_met: bool
    balanced_training: bool


@dataclass(frozen=True)
class StreakOutput:
    recovery_streak: int
    sleep_streak: int
    balance_streak: int


def is_recovery_compliant(recommendation: str, workout_logged_today: bool) -> bool:
    """Rested on a rest day, or trained on a train day."""
    if recommendation == Recommendation.REST.value and not workout_logged_today:
        return True
    if recommendation == Recommendation.TRAIN.value and workout_logged_today:
        return True
    return False


def is_sleep_target_met(sleep_debt_minutes: float) -> bool:
    return max(0.0, safe_number(sleep_debt_minutes, 0)) <= SLEEP_TARGET_DEBT_MINUTES


def max_consecutive_training_days(dates: List[DateLike]) -> int:
    """Longest run of calendar days (exactly one day apart) with a workout."""
    days = sorted({d for d in (parse_date(value) for value in dates or []) if d is not None})
    if not days:
        return 0
    longest = 1
    run = 1
    for previous, current in zip(days, days[1:]):
        if (current - previous).days == 1:
            run += 1
            longest = max(longest, run)
        else:
            run = 1
    return longest


def is_balanced_training(overtraining_flag: bool, last_7_days_workout_dates: List[DateLike]) -> bool:
    if overtraining_flag:
        return False
    return max_consecutive_training_days(last_7_days_workout_dates) <= MAX_BALANCED_CONSECUTIVE_DAYS


def run_behavior_engine(behavior_input: BehavioralInput) -> BehavioralOutput:
    """Compute the day's behavioral booleans."""
    return BehavioralOutput(
        recovery_compliant=is_recovery_compliant(
            behavior_input.recommendation, behavior_input.workout_logged_today
        ),
        sleep_target_met=is_sleep_target_met(behavior_input.sleep_debt_minutes),
        balanced_training=is_balanced_training(
            behavior_input.overtraining_flag, behavior_input.last_7_days_workout_dates
        ),
    )


def _count_streak(rows_by_date: Dict[str, BehaviorRow], as_of_date, value: Callable[[BehaviorRow], bool],
                  max_lookback_days: int) -> int:
    count = 0
    for offset in range(max_lookback_days):
        day = (as_of_date - timedelta(days=offset)).isoformat()
        row = rows_by_date.get(day)
        if row is None or not value(row):
            break
        count += 1
    return count


def run_streak_engine(history: List[BehaviorRow], as_of_date: DateLike,
                      max_lookback_days: int = STREAK_MAX_LOOKBACK_DAYS) -> StreakOutput:
    """
    Count consecutive compliant days ending on as_of_date.

    A missing day or a false value stops the count; rows dated after
    as_of_date are ignored; the first row seen for a date wins.
    """
    as_of = parse_date(as_of_date)
    if as_of is None:
        return StreakOutput(recovery_streak=0, sleep_streak=0, balance_streak=0)

    rows_by_date: Dict[str, BehaviorRow] = {}
    for row in history or []:
        row_date = parse_date(row.date)
        if row_date is None or row_date > as_of:
            continue
        rows_by_date.setdefault(row_date.isoformat(), row)

    return StreakOutput(
        recovery_streak=_count_streak(rows_by_date, as_of, lambda r: r.recovery_compliant, max_lookback_days),
        sleep_streak=_count_streak(rows_by_date, as_of, lambda r: r.sleep_target_met, max_lookback_days),
        balance_streak=_count_streak(rows_by_date, as_of, lambda r: r.balanced_training, max_lookback_days),
    )
