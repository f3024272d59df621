"""Sleep model: nightly sleep quality, cumulative sleep debt and the recovery
modifier consumed by the muscle and CNS models."""

from dataclasses import dataclass, field
from typing import List

import numpy as np

from .constants import (
    DEFAULT_SLEEP_QUALITY,
    SLEEP_ARCHITECTURE_BONUS,
    SLEEP_ARCHITECTURE_RATIO,
    SLEEP_AWAKENING_PENALTY,
    SLEEP_AWAKENING_PENALTY_CAP,
    SLEEP_DURATION_WEIGHT,
    SLEEP_LOOKBACK_DAYS,
    SLEEP_MODIFIER_RANGE,
    SLEEP_NO_DATA_SCORE,
    SLEEP_OPTIMAL_RANGE,
    SLEEP_QUALITY_WEIGHT,
    SLEEP_TARGET_MINUTES,
)
from .types import SleepLogInput
from .utils import DateLike, clamp, days_before, parse_timestamp, round_half_up, safe_number


@dataclass(frozen=True)
class SleepModelOutput:
    sleep_score: int
    cumulative_sleep_debt_minutes: float
    recovery_modifier: float
    deep_sleep_ratio: float = 0.0
    nightly_scores: List[float] = field(default_factory=list)


def duration_score(total_minutes: float) -> float:
    """Duration component: 100 inside the 7-9h band, linear ramps outside."""
    low, high = SLEEP_OPTIMAL_RANGE
    if total_minutes <= 0:
        return 50.0
    if low <= total_minutes <= high:
        return 100.0
    if total_minutes > high:
        return max(0.0, 100 - (total_minutes - high) / 60 * 15)
    if total_minutes >= 360:
        return 70 + (total_minutes - 360) / 60 * 15
    return max(0.0, 30 + (total_minutes / 360) * 40)


def nightly_score(log: SleepLogInput) -> float:
    """Score one night 0-100 from duration, quality, architecture and awakenings."""
    total = max(0.0, safe_number(log.total_minutes, 0))
    quality = clamp(safe_number(log.quality, DEFAULT_SLEEP_QUALITY), 1, 10)
    deep = max(0.0, safe_number(log.deep_sleep_minutes, 0))
    rem = max(0.0, safe_number(log.rem_minutes, 0))
    awakenings = max(0.0, safe_number(log.awakenings, 0))

    architecture_ratio = (deep + rem) / total if total > 0 else 0.0
    bonus = SLEEP_ARCHITECTURE_BONUS if architecture_ratio >= SLEEP_ARCHITECTURE_RATIO else 0
    penalty = min(SLEEP_AWAKENING_PENALTY_CAP, awakenings * SLEEP_AWAKENING_PENALTY)

    score = (
        duration_score(total) * SLEEP_DURATION_WEIGHT
        + quality * 10 * SLEEP_QUALITY_WEIGHT
        + bonus
        - penalty
    )
    return clamp(score, 0, 100)


def sleep_debt_minutes(log: SleepLogInput) -> float:
    """Shortfall against the 8-hour target for one night."""
    total = max(0.0, safe_number(log.total_minutes, 0))
    return max(0.0, SLEEP_TARGET_MINUTES - total)


class SleepModel:
    """Sleep quality and debt over a trailing 7-day window."""

    def __init__(self, lookback_days: int = SLEEP_LOOKBACK_DAYS):
        self.lookback_days = lookback_days

    def recent_logs(self, sleep_logs: List[SleepLogInput], as_of_date: DateLike) -> List[SleepLogInput]:
        """Logs inside [as_of - lookback, as_of], newest first."""
        as_of = parse_timestamp(as_of_date)
        if as_of is None:
            return []
        cutoff = days_before(as_of, self.lookback_days)
        dated = []
        for log in sleep_logs or []:
            night = parse_timestamp(log.sleep_date)
            if night is not None and cutoff <= night <= as_of:
                dated.append((night, log))
        dated.sort(key=lambda item: item[0], reverse=True)
        return [log for _, log in dated]

    def evaluate(self, sleep_logs: List[SleepLogInput], as_of_date: DateLike) -> SleepModelOutput:
        """
        Args:
            sleep_logs: Nightly sleep logs (any field may be missing)
            as_of_date: Evaluation date

        Returns:
            SleepModelOutput (score 70 and no debt when there is no data)
        """
        recent = self.recent_logs(sleep_logs, as_of_date)
        if not recent:
            return SleepModelOutput(
                sleep_score=SLEEP_NO_DATA_SCORE,
                cumulative_sleep_debt_minutes=0.0,
                recovery_modifier=self.recovery_modifier(SLEEP_NO_DATA_SCORE),
            )

        nightly = [nightly_score(log) for log in recent]
        raw_score = clamp(float(np.mean(nightly)), 0, 100)
        debt = max(0.0, float(sum(sleep_debt_minutes(log) for log in recent)))

        total_sleep = sum(max(0.0, safe_number(log.total_minutes, 0)) for log in recent)
        total_deep = sum(max(0.0, safe_number(log.deep_sleep_minutes, 0)) for log in recent)
        deep_ratio = clamp(total_deep / total_sleep, 0, 1) if total_sleep > 0 else 0.0

        return SleepModelOutput(
            sleep_score=int(clamp(round_half_up(raw_score), 0, 100)),
            cumulative_sleep_debt_minutes=debt,
            recovery_modifier=self.recovery_modifier(raw_score),
            deep_sleep_ratio=deep_ratio,
            nightly_scores=nightly,
        )

    @staticmethod
    def recovery_modifier(sleep_score: float) -> float:
        """0.8 + (score/100) * 0.4, clamped to [0.8, 1.2]."""
        normalized = clamp(sleep_score / 100, 0, 1)
        return clamp(0.8 + normalized * 0.4, *SLEEP_MODIFIER_RANGE)
