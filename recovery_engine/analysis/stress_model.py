"""Stress model: average stress level to modifier, level bucket and score."""

from dataclasses import dataclass
from typing import List

import numpy as np

from .constants import (
    DEFAULT_STRESS_LEVEL,
    STRESS_LOOKBACK_DAYS,
    STRESS_MODIFIERS,
    STRESS_NO_DATA_SCORE,
)
from .types import StressLevel, StressLogInput
from .utils import DateLike, clamp, days_before, parse_timestamp, round_half_up, safe_number


@dataclass(frozen=True)
class StressModelOutput:
    stress_score: int
    stress_modifier: float
    level: StressLevel
    average_stress: float = DEFAULT_STRESS_LEVEL


def level_from_stress(value: float) -> StressLevel:
    s = clamp(value, 1, 10)
    if s <= 3:
        return StressLevel.LOW
    if s <= 5:
        return StressLevel.MODERATE
    if s <= 7:
        return StressLevel.HIGH
    return StressLevel.VERY_HIGH


def stress_score(average: float) -> int:
    """Linear, decreasing map of average stress (1-10) onto 0-100."""
    return int(clamp(round_half_up(100 - (average - 1) * (100 / 9)), 0, 100))


class StressModel:
    """Stress over a trailing 7-day window."""

    def __init__(self, lookback_days: int = STRESS_LOOKBACK_DAYS):
        self.lookback_days = lookback_days

    def recent_logs(self, stress_logs: List[StressLogInput], as_of_date: DateLike) -> List[StressLogInput]:
        as_of = parse_timestamp(as_of_date)
        if as_of is None:
            return []
        cutoff = days_before(as_of, self.lookback_days)
        recent = []
        for log in stress_logs or []:
            logged = parse_timestamp(log.log_date)
            if logged is not None and cutoff <= logged <= as_of:
                recent.append(log)
        return recent

    def evaluate(self, stress_logs: List[StressLogInput], as_of_date: DateLike) -> StressModelOutput:
        if parse_timestamp(as_of_date) is None:
            return StressModelOutput(
                stress_score=STRESS_NO_DATA_SCORE,
                stress_modifier=STRESS_MODIFIERS[StressLevel.MODERATE.value],
                level=StressLevel.MODERATE,
            )

        levels = [
            clamp(safe_number(log.stress_level, DEFAULT_STRESS_LEVEL), 1, 10)
            for log in self.recent_logs(stress_logs, as_of_date)
        ]
        average = float(np.mean(levels)) if levels else DEFAULT_STRESS_LEVEL
        level = level_from_stress(average)

        return StressModelOutput(
            stress_score=stress_score(average),
            stress_modifier=STRESS_MODIFIERS[level.value],
            level=level,
            average_stress=average,
        )
