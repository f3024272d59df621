"""
CNS Recovery Model

Single-track recovery of the central nervous system, keyed to the most
neurologically demanding workouts of the last 14 days. Recovery follows

    R(t) = 1 - e^(-ln2 * t / half_life)

and the CNS score is the worst (minimum) recovery across qualifying workouts.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from .constants import (
    CNS_HALF_LIFE_RANGE,
    CNS_HIGH_RPE,
    CNS_LOOKBACK_DAYS,
    CNS_LOW_DEEP_SLEEP_FACTOR,
    CNS_LOW_DEEP_SLEEP_MINUTES,
    CNS_LOW_HRV_DEVIATION_PERCENT,
    CNS_LOW_HRV_FACTOR,
    CNS_PATTERN_VERSION,
    CNS_PATTERNS,
    CNS_PROJECTION_HALF_LIFE,
    CNS_PROJECTION_TARGET,
    CNS_PROJECTION_THRESHOLD,
    CNS_RPE_ONLY_HALF_LIFE,
    DEFAULT_RPE,
    STRESS_MODIFIER_RANGE,
)
from .types import WorkoutInput
from .utils import DateLike, clamp, days_before, hours_between, parse_timestamp, round_half_up, safe_number


@dataclass(frozen=True)
class CnsDemand:
    """Classifier verdict for one workout."""
    high: bool
    by_rpe: bool
    tags: Tuple[str, ...]
    pattern_version: int = CNS_PATTERN_VERSION


@dataclass(frozen=True)
class CnsModelOutput:
    cns_score: int
    projected_full_recovery: Optional[datetime]


def _workout_texts(workout: WorkoutInput) -> List[str]:
    texts = [str(workout.name or "")]
    for exercise in workout.exercises or []:
        texts.append(str(getattr(exercise, "exercise_name", "") or ""))
    return texts


def classify_cns_demand(workout: WorkoutInput) -> CnsDemand:
    """Tag a workout as high-CNS by RPE >= 8 or by name/exercise patterns."""
    rpe = safe_number(workout.perceived_exertion, 0)
    by_rpe = rpe >= CNS_HIGH_RPE
    texts = _workout_texts(workout)
    tags = tuple(
        tag for tag, pattern in CNS_PATTERNS
        if any(pattern.search(text) for text in texts)
    )
    return CnsDemand(high=by_rpe or bool(tags), by_rpe=by_rpe, tags=tags)


def is_high_cns(workout: WorkoutInput) -> bool:
    return classify_cns_demand(workout).high


def half_life_hours(workout: WorkoutInput, demand: Optional[CnsDemand] = None) -> float:
    """Base CNS half-life in [48, 120] hours."""
    demand = demand or classify_cns_demand(workout)
    rpe = clamp(safe_number(workout.perceived_exertion, DEFAULT_RPE), 1, 10)
    if demand.tags or rpe >= 9:
        half_life = 96 + 24 * (rpe / 10)
    elif rpe >= CNS_HIGH_RPE:
        half_life = CNS_RPE_ONLY_HALF_LIFE
    else:
        half_life = CNS_HALF_LIFE_RANGE[0]
    return clamp(half_life, *CNS_HALF_LIFE_RANGE)


def recovery_fraction(hours_elapsed: float, half_life: float) -> float:
    """Fraction of CNS recovery after hours_elapsed (0 to 1)."""
    if not math.isfinite(hours_elapsed) or hours_elapsed <= 0:
        return 0.0
    r = 1 - math.exp(-math.log(2) * hours_elapsed / max(1.0, half_life))
    return clamp(r, 0, 1)


def hours_to_recovery(target: float, half_life: float) -> float:
    """Hours needed to reach a recovery fraction at a given half-life."""
    return half_life / math.log(2) * math.log(1 / (1 - target))


class CnsRecoveryModel:
    """CNS recovery keyed to high-neural-demand workouts."""

    def __init__(self, lookback_days: int = CNS_LOOKBACK_DAYS):
        self.lookback_days = lookback_days

    def effective_half_life(self, base_half_life: float, deep_sleep_minutes: Optional[float],
                            hrv_deviation_percent: Optional[float], stress_modifier: float) -> float:
        half_life = base_half_life
        deep = safe_number(deep_sleep_minutes, math.nan)
        if not math.isnan(deep) and deep < CNS_LOW_DEEP_SLEEP_MINUTES:
            half_life *= CNS_LOW_DEEP_SLEEP_FACTOR
        hrv = safe_number(hrv_deviation_percent, math.nan)
        if not math.isnan(hrv) and hrv < CNS_LOW_HRV_DEVIATION_PERCENT:
            half_life *= CNS_LOW_HRV_FACTOR
        stress_mod = clamp(safe_number(stress_modifier, 1.0), *STRESS_MODIFIER_RANGE)
        return max(1.0, half_life / stress_mod)

    def evaluate(self, workouts: List[WorkoutInput], as_of_date: DateLike,
                 deep_sleep_last_night_minutes: Optional[float] = None,
                 hrv_deviation_percent: Optional[float] = None,
                 stress_modifier: float = 1.0) -> CnsModelOutput:
        """
        Calculate the CNS score and projected full-recovery time.

        Args:
            workouts: Recent workouts
            as_of_date: Evaluation date
            deep_sleep_last_night_minutes: Deep sleep of the last night (None if unknown)
            hrv_deviation_percent: HRV deviation from baseline in percent (None if unknown)
            stress_modifier: Stress modifier, clamped to [0.8, 1.1]

        Returns:
            CnsModelOutput; score 100 and no projection without high-CNS work
        """
        as_of = parse_timestamp(as_of_date)
        if as_of is None:
            return CnsModelOutput(cns_score=100, projected_full_recovery=None)

        cutoff = days_before(as_of, self.lookback_days)
        worst_recovery = 1.0
        latest_heavy: Optional[datetime] = None

        for workout in workouts or []:
            workout_time = parse_timestamp(workout.workout_date)
            if workout_time is None or workout_time > as_of or workout_time < cutoff:
                continue
            demand = classify_cns_demand(workout)
            if not demand.high:
                continue

            half_life = self.effective_half_life(
                half_life_hours(workout, demand),
                deep_sleep_last_night_minutes,
                hrv_deviation_percent,
                stress_modifier,
            )
            recovery = recovery_fraction(hours_between(workout_time, as_of), half_life)
            worst_recovery = min(worst_recovery, recovery)
            if latest_heavy is None or workout_time > latest_heavy:
                latest_heavy = workout_time

        if latest_heavy is None:
            return CnsModelOutput(cns_score=100, projected_full_recovery=None)

        cns_score = int(clamp(round_half_up(worst_recovery * 100), 0, 100))

        projected = None
        if worst_recovery < CNS_PROJECTION_THRESHOLD:
            hours_needed = hours_to_recovery(CNS_PROJECTION_TARGET, CNS_PROJECTION_HALF_LIFE)
            full_at = latest_heavy + timedelta(hours=hours_needed)
            if full_at > as_of:
                projected = full_at.replace(tzinfo=timezone.utc)

        return CnsModelOutput(cns_score=cns_score, projected_full_recovery=projected)
