"""
Muscle Recovery Model

Per-muscle-group exponential fatigue decay over the last 14 days of workouts.
Each exposure leaves a fatigue residue that halves every `effective hours`:

    remaining = load * e^(-ln2 * hours_elapsed / effective_hours)

where effective_hours is the size x RPE base recovery time scaled by the
sleep, stress and age modifiers.
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional

from .constants import (
    AGE_FACTOR_RANGE,
    BASE_RECOVERY_HOURS,
    DEFAULT_DURATION_MINUTES,
    DEFAULT_MUSCLE_GROUP,
    DEFAULT_RPE,
    MAX_INITIAL_LOAD,
    MUSCLE_ALIASES,
    MUSCLE_GROUPS,
    MUSCLE_LOOKBACK_DAYS,
    MUSCLE_MAX_FATIGUE,
    MUSCLE_SIZE,
    SLEEP_MODIFIER_RANGE,
    STRESS_MODIFIER_RANGE,
)
from .types import RPEIntensity, WorkoutInput
from .utils import DateLike, clamp, days_before, hours_between, parse_timestamp, round_half_up, safe_number

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MuscleModelOutput:
    per_group_score: Dict[str, int]
    aggregate_score: int


def map_rpe(rpe: float) -> RPEIntensity:
    """Bucket an RPE value into light / moderate / heavy."""
    if rpe <= 4:
        return RPEIntensity.LIGHT
    if rpe <= 7:
        return RPEIntensity.MODERATE
    return RPEIntensity.HEAVY


def normalize_muscle_group(label: Optional[str]) -> str:
    """Map a free-text muscle label onto the 9-group taxonomy (fallback: core)."""
    lower = str(label or "").strip().lower()
    if not lower:
        return DEFAULT_MUSCLE_GROUP
    if lower in MUSCLE_ALIASES:
        return MUSCLE_ALIASES[lower]
    for group in MUSCLE_GROUPS:
        if group in lower or lower in group:
            return group
    for alias, group in MUSCLE_ALIASES.items():
        if alias in lower:
            return group
    return DEFAULT_MUSCLE_GROUP


def workout_muscle_groups(workout: WorkoutInput) -> List[str]:
    """Distinct taxonomy groups trained by a workout, in declaration order."""
    declared = workout.muscle_groups or []
    if not declared:
        return [DEFAULT_MUSCLE_GROUP]
    groups = []
    for entry in declared:
        group = normalize_muscle_group(getattr(entry, "muscle_group", None))
        if group not in groups:
            groups.append(group)
    return groups


def base_recovery_hours(muscle_group: str, rpe: float) -> float:
    """Base recovery time from the size x RPE table."""
    size = MUSCLE_SIZE.get(muscle_group, "medium")
    return float(BASE_RECOVERY_HOURS[size][map_rpe(rpe).value])


class MuscleRecoveryModel:
    """Exponential fatigue decay per muscle group."""

    def __init__(self, lookback_days: int = MUSCLE_LOOKBACK_DAYS):
        self.lookback_days = lookback_days

    def effective_recovery_hours(self, base_hours: float, sleep_modifier: float,
                                 stress_modifier: float, age_factor: float) -> float:
        """Scale base recovery hours by 1/sleep x 1/stress x 1/age (modifiers clamped)."""
        safe_hours = max(1.0, safe_number(base_hours, 48))
        sleep_mod = clamp(safe_number(sleep_modifier, 1.0), *SLEEP_MODIFIER_RANGE)
        stress_mod = clamp(safe_number(stress_modifier, 1.0), *STRESS_MODIFIER_RANGE)
        age_mod = clamp(safe_number(age_factor, 1.0), *AGE_FACTOR_RANGE)
        return max(1.0, safe_hours / sleep_mod / stress_mod / age_mod)

    def remaining_fatigue(self, load: float, hours_elapsed: float, effective_hours: float) -> float:
        """Fatigue left from one exposure; never negative."""
        if load <= 0:
            return 0.0
        decay = math.exp(-math.log(2) * max(0.0, hours_elapsed) / max(1.0, effective_hours))
        return load * max(0.0, decay)

    def initial_load(self, workout: WorkoutInput) -> float:
        """(RPE/10) x duration, capped at MAX_INITIAL_LOAD."""
        rpe = clamp(safe_number(workout.perceived_exertion, DEFAULT_RPE), 1, 10)
        duration = max(0.0, safe_number(workout.duration_minutes, DEFAULT_DURATION_MINUTES))
        return min(MAX_INITIAL_LOAD, (rpe / 10.0) * duration)

    def evaluate(self, workouts: List[WorkoutInput], as_of_date: DateLike,
                 sleep_modifier: float = 1.0, stress_modifier: float = 1.0,
                 age_factor: float = 1.0) -> MuscleModelOutput:
        """
        Calculate per-group and aggregate muscular recovery.

        Args:
            workouts: Recent workouts (future-dated or unparsable ones are ignored)
            as_of_date: Evaluation date
            sleep_modifier: Sleep recovery modifier, clamped to [0.8, 1.2]
            stress_modifier: Stress modifier, clamped to [0.8, 1.1]
            age_factor: Age factor, clamped to [0.5, 1.5]

        Returns:
            MuscleModelOutput with 0-100 scores (100 = fully recovered)
        """
        as_of = parse_timestamp(as_of_date)
        if as_of is None:
            logger.warning(f"Unparsable as-of date {as_of_date!r}; muscle model returns neutral scores")
            return self._fully_recovered()

        cutoff = days_before(as_of, self.lookback_days)
        fatigue_by_group = {group: 0.0 for group in MUSCLE_GROUPS}

        for workout in workouts or []:
            workout_time = parse_timestamp(workout.workout_date)
            if workout_time is None or workout_time > as_of or workout_time < cutoff:
                continue

            rpe = clamp(safe_number(workout.perceived_exertion, DEFAULT_RPE), 1, 10)
            load = self.initial_load(workout)
            hours_elapsed = hours_between(workout_time, as_of)

            for group in workout_muscle_groups(workout):
                effective_hours = self.effective_recovery_hours(
                    base_recovery_hours(group, rpe), sleep_modifier, stress_modifier, age_factor
                )
                fatigue_by_group[group] += self.remaining_fatigue(load, hours_elapsed, effective_hours)

        per_group = {}
        total = 0.0
        for group in MUSCLE_GROUPS:
            fatigue = max(0.0, fatigue_by_group[group])
            score = clamp(100 - (fatigue / MUSCLE_MAX_FATIGUE) * 100, 0, 100)
            per_group[group] = round_half_up(score)
            total += score

        aggregate = int(clamp(round_half_up(total / len(MUSCLE_GROUPS)), 0, 100))
        return MuscleModelOutput(per_group_score=per_group, aggregate_score=aggregate)

    @staticmethod
    def _fully_recovered() -> MuscleModelOutput:
        return MuscleModelOutput(
            per_group_score={group: 100 for group in MUSCLE_GROUPS},
            aggregate_score=100,
        )
