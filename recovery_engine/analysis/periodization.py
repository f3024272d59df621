"""Deload periodization over 28 days of stored recovery snapshots.

Deload is recommended only if ALL hold:
- at least 28 days of snapshot data
- downward readiness trend over the last 10 days (mean of the last 5 below
  the mean of the first 5)
- at least 2 overtraining-flagged days in the last 14
- 28-day average sleep debt above 5 hours

While a deload cycle is active the check is skipped and the cycle's own
volume reduction is reported.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

import numpy as np

from .constants import (
    DEFAULT_READINESS,
    DELOAD_REASON,
    DELOAD_SUGGESTED_REDUCTION_PERCENT,
    PERIODIZATION_MIN_DAYS,
    PERIODIZATION_OVERTRAINING_LOOKBACK,
    PERIODIZATION_OVERTRAINING_MIN,
    PERIODIZATION_SLEEP_DEBT_MINUTES,
    PERIODIZATION_TREND_DAYS,
)
from .types import DeloadCycleState, DeloadSnapshotRow
from .utils import DateLike, date_key, days_before, parse_timestamp, safe_number


class DeloadPhase(Enum):
    """Where the athlete stands in the deload cycle."""
    NORMAL = "normal"              # No cycle, no recommendation
    RECOMMENDED = "recommended"    # Start a new cycle
    ACTIVE = "active"              # Cycle running, check skipped


@dataclass(frozen=True)
class DeloadOutput:
    deload_recommended: bool
    reason: Optional[str]
    suggested_reduction_percent: Optional[int]


@dataclass(frozen=True)
class DeloadStatus:
    phase: DeloadPhase
    deload_recommended: bool
    start_cycle: bool
    reason: Optional[str]
    volume_reduction_percent: Optional[float]

    @property
    def in_deload(self) -> bool:
        return self.phase in (DeloadPhase.ACTIVE, DeloadPhase.RECOMMENDED)


NO_DELOAD = DeloadOutput(deload_recommended=False, reason=None, suggested_reduction_percent=None)


def _window_rows(snapshots: List[DeloadSnapshotRow], as_of_date: DateLike) -> List[DeloadSnapshotRow]:
    """Rows inside [as_of - 28 d, as_of], one per date, oldest first."""
    as_of = parse_timestamp(as_of_date)
    if as_of is None:
        return []
    cutoff = days_before(as_of, PERIODIZATION_MIN_DAYS)

    by_date = {}
    for row in snapshots or []:
        taken = parse_timestamp(row.snapshot_date)
        if taken is None or taken > as_of or taken < cutoff:
            continue
        by_date.setdefault(date_key(taken), row)
    return [by_date[key] for key in sorted(by_date)]


def _mean(values: List[float]) -> float:
    return float(np.mean(values)) if values else 0.0


def run_periodization_engine(snapshots: List[DeloadSnapshotRow], as_of_date: DateLike) -> DeloadOutput:
    """
    Recommend a deload from the last 28 days of snapshots.

    Args:
        snapshots: Stored snapshot rows (readiness, overtraining flag, sleep debt)
        as_of_date: Evaluation date

    Returns:
        DeloadOutput; never recommends with fewer than 28 days of data
    """
    rows = _window_rows(snapshots, as_of_date)
    if len(rows) < PERIODIZATION_MIN_DAYS:
        return NO_DELOAD

    readiness = [safe_number(row.readiness_score, DEFAULT_READINESS) for row in rows]
    last_window = readiness[-PERIODIZATION_TREND_DAYS:]
    half = PERIODIZATION_TREND_DAYS // 2
    downward_trend = _mean(last_window[half:]) < _mean(last_window[:half])

    recent = rows[-PERIODIZATION_OVERTRAINING_LOOKBACK:]
    overtraining_days = sum(1 for row in recent if row.overtraining_flag)
    overtraining_met = overtraining_days >= PERIODIZATION_OVERTRAINING_MIN

    average_debt = _mean([max(0.0, safe_number(row.sleep_debt, 0)) for row in rows])
    sleep_debt_high = average_debt > PERIODIZATION_SLEEP_DEBT_MINUTES

    if downward_trend and overtraining_met and sleep_debt_high:
        return DeloadOutput(
            deload_recommended=True,
            reason=DELOAD_REASON,
            suggested_reduction_percent=DELOAD_SUGGESTED_REDUCTION_PERCENT,
        )
    return NO_DELOAD


def evaluate_deload_status(snapshots: List[DeloadSnapshotRow], as_of_date: DateLike,
                           active_cycle: Optional[DeloadCycleState] = None) -> DeloadStatus:
    """Combine the periodization check with the current deload-cycle state."""
    if active_cycle is not None and active_cycle.active:
        return DeloadStatus(
            phase=DeloadPhase.ACTIVE,
            deload_recommended=False,
            start_cycle=False,
            reason=active_cycle.reason,
            volume_reduction_percent=active_cycle.volume_reduction_pct,
        )

    result = run_periodization_engine(snapshots, as_of_date)
    if result.deload_recommended:
        return DeloadStatus(
            phase=DeloadPhase.RECOMMENDED,
            deload_recommended=True,
            start_cycle=True,
            reason=result.reason,
            volume_reduction_percent=result.suggested_reduction_percent,
        )
    return DeloadStatus(
        phase=DeloadPhase.NORMAL,
        deload_recommended=False,
        start_cycle=False,
        reason=None,
        volume_reduction_percent=None,
    )
