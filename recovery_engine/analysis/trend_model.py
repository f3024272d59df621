"""Trend / safety model: overtraining and deload detection from recent
snapshots, workout cadence, sleep debt and the CNS score.

The two flags are independent detectors; both may be raised at once.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple

from .constants import (
    DEFAULT_CNS_SCORE,
    DEFAULT_READINESS,
    DELOAD_CNS_SUPPRESSION_SCORE,
    DELOAD_CNS_SUPPRESSION_SNAPSHOTS,
    DELOAD_MIN_DAYS_DATA,
    DELOAD_MIN_RECENT_WORKOUTS,
    DELOAD_TREND_POINTS,
    DELOAD_WEEKS_CONSISTENT_LOAD,
    OVERTRAINING_CONSECUTIVE_TRAINING_DAYS,
    OVERTRAINING_LOOKBACK_DAYS,
    OVERTRAINING_MAX_GAP_DAYS,
    OVERTRAINING_RECOVERY_DOWN_DAYS,
    OVERTRAINING_SLEEP_DEBT_MINUTES,
)
from .types import RecoverySnapshotInput, WorkoutInput
from .utils import DateLike, days_before, parse_timestamp, safe_number


@dataclass(frozen=True)
class TrendModelOutput:
    overtraining_flag: bool
    deload_flag: bool


def _sorted_snapshots(snapshots: List[RecoverySnapshotInput]) -> List[Tuple[datetime, float]]:
    """(date, readiness) pairs, newest first; unparsable dates dropped."""
    dated = []
    for snapshot in snapshots or []:
        taken = parse_timestamp(snapshot.snapshot_date)
        if taken is None:
            continue
        dated.append((taken, safe_number(snapshot.readiness_score, DEFAULT_READINESS)))
    dated.sort(key=lambda item: item[0], reverse=True)
    return dated


def is_declining(scores_newest_first: List[float]) -> bool:
    """True when every newer score is strictly below the one before it."""
    if len(scores_newest_first) < 2:
        return False
    return all(
        scores_newest_first[i] < scores_newest_first[i + 1]
        for i in range(len(scores_newest_first) - 1)
    )


def max_consecutive_training_days(workout_times: List[datetime],
                                  max_gap_days: float = OVERTRAINING_MAX_GAP_DAYS) -> int:
    """Longest run of distinct training days separated by at most max_gap_days."""
    unique_days = sorted({parse_timestamp(t.date()) for t in workout_times})
    longest = 0
    current = 0
    previous = None
    for day in unique_days:
        if previous is not None and (day - previous).total_seconds() / 86400 <= max_gap_days:
            current += 1
        else:
            current = 1
        longest = max(longest, current)
        previous = day
    return longest


class TrendModel:
    """Short-horizon overtraining and long-horizon deload detectors."""

    def overtraining(self, snapshots: List[Tuple[datetime, float]], workout_times: List[datetime],
                     sleep_debt_minutes: float, as_of: Optional[datetime] = None) -> bool:
        if as_of is not None:
            cutoff = days_before(as_of, OVERTRAINING_LOOKBACK_DAYS)
            workout_times = [t for t in workout_times if t >= cutoff]
        recovery_trending_down = (
            len(snapshots) >= OVERTRAINING_RECOVERY_DOWN_DAYS
            and is_declining([score for _, score in snapshots[:OVERTRAINING_RECOVERY_DOWN_DAYS]])
        )
        training_streak = max_consecutive_training_days(workout_times) >= OVERTRAINING_CONSECUTIVE_TRAINING_DAYS
        sleep_debt = max(0.0, safe_number(sleep_debt_minutes, 0)) > OVERTRAINING_SLEEP_DEBT_MINUTES
        return recovery_trending_down or training_streak or sleep_debt

    def deload(self, snapshots: List[Tuple[datetime, float]], workout_times: List[datetime],
               as_of: datetime, cns_score: float) -> bool:
        cutoff = days_before(as_of, max(DELOAD_WEEKS_CONSISTENT_LOAD * 7, DELOAD_MIN_DAYS_DATA))
        recent_workouts = [t for t in workout_times if cutoff <= t <= as_of]

        span_days = (snapshots[0][0] - snapshots[-1][0]).days if len(snapshots) >= 2 else 0
        enough_history = span_days >= DELOAD_MIN_DAYS_DATA or len(recent_workouts) >= DELOAD_MIN_RECENT_WORKOUTS
        if not enough_history:
            return False

        weeks_with_load = {tuple(t.isocalendar())[:2] for t in recent_workouts}
        if len(weeks_with_load) < DELOAD_WEEKS_CONSISTENT_LOAD:
            return False

        downward_trend = (
            len(snapshots) >= DELOAD_TREND_POINTS
            and is_declining([score for _, score in snapshots[:DELOAD_TREND_POINTS]])
        )
        cns_suppressed = (
            safe_number(cns_score, DEFAULT_CNS_SCORE) < DELOAD_CNS_SUPPRESSION_SCORE
            and len(snapshots) >= DELOAD_CNS_SUPPRESSION_SNAPSHOTS
        )
        return downward_trend or cns_suppressed

    def evaluate(self, recent_snapshots: List[RecoverySnapshotInput], workouts: List[WorkoutInput],
                 sleep_debt_minutes: float, cns_score: float,
                 as_of_date: Optional[DateLike] = None) -> TrendModelOutput:
        """
        Args:
            recent_snapshots: Historical snapshots (any order)
            workouts: Recent workouts
            sleep_debt_minutes: Cumulative sleep debt from the sleep model
            cns_score: CNS score from the CNS model
            as_of_date: Evaluation date; defaults to the newest snapshot date

        Returns:
            TrendModelOutput with independent overtraining and deload flags
        """
        snapshots = _sorted_snapshots(recent_snapshots)

        as_of = parse_timestamp(as_of_date) if as_of_date is not None else None
        if as_of is None and snapshots:
            as_of = snapshots[0][0]

        workout_times = []
        for workout in workouts or []:
            workout_time = parse_timestamp(workout.workout_date)
            if workout_time is None or (as_of is not None and workout_time > as_of):
                continue
            workout_times.append(workout_time)

        overtraining_flag = self.overtraining(snapshots, workout_times, sleep_debt_minutes, as_of)
        deload_flag = as_of is not None and self.deload(snapshots, workout_times, as_of, cns_score)
        return TrendModelOutput(overtraining_flag=bool(overtraining_flag), deload_flag=bool(deload_flag))
