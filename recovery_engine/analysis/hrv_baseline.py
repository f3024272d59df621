"""
HRV Baseline Analysis

Derives the recent HRV reading and a personal baseline from the stress logs
of the trailing window, and expresses the recent reading as a percentage
deviation from that baseline. Negative deviation means elevated
physiological stress; the CNS model slows recovery below -10 %.
"""

from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from .constants import HRV_BASELINE_MIN_READINGS, STRESS_LOOKBACK_DAYS
from .types import StressLogInput
from .utils import DateLike, date_key, days_before, parse_timestamp, round_half_up, safe_number


@dataclass(frozen=True)
class HRVBaseline:
    """Individual HRV baseline parameters"""
    mean_rmssd: float
    std_deviation: float
    coefficient_variation: float
    lower_threshold: float      # Mean - 1 SD
    upper_threshold: float      # Mean + 1 SD
    readings: int


@dataclass(frozen=True)
class HRVContext:
    recent_hrv_ms: Optional[float]
    baseline_hrv_ms: Optional[float]
    deviation_percent: Optional[float]
    baseline: Optional[HRVBaseline] = None


def hrv_deviation_percent(recent_hrv_ms: Optional[float], baseline_hrv_ms: Optional[float]) -> Optional[float]:
    """(recent - baseline) / baseline * 100, or None if either side is missing."""
    recent = safe_number(recent_hrv_ms, float("nan"))
    baseline = safe_number(baseline_hrv_ms, float("nan"))
    if np.isnan(recent) or np.isnan(baseline) or baseline <= 0:
        return None
    return (recent - baseline) / baseline * 100


class HRVBaselineAnalyzer:
    """Recent HRV vs. rolling personal baseline."""

    def __init__(self, lookback_days: int = STRESS_LOOKBACK_DAYS,
                 min_readings: int = HRV_BASELINE_MIN_READINGS):
        self.lookback_days = lookback_days
        self.min_readings = min_readings

    def _readings(self, stress_logs: List[StressLogInput], as_of_date: DateLike):
        as_of = parse_timestamp(as_of_date)
        if as_of is None:
            return []
        cutoff = days_before(as_of, self.lookback_days)
        readings = []
        for log in stress_logs or []:
            logged = parse_timestamp(log.log_date)
            hrv = safe_number(log.hrv_ms, float("nan"))
            if logged is None or np.isnan(hrv) or hrv <= 0:
                continue
            if cutoff <= logged <= as_of:
                readings.append((logged, hrv))
        readings.sort(key=lambda item: item[0], reverse=True)
        return readings

    def calculate_baseline(self, stress_logs: List[StressLogInput], as_of_date: DateLike) -> Optional[HRVBaseline]:
        """Baseline from all readings in the window; None below min_readings."""
        values = np.array([hrv for _, hrv in self._readings(stress_logs, as_of_date)])
        if len(values) < self.min_readings:
            return None

        mean = float(np.mean(values))
        std = float(np.std(values))
        return HRVBaseline(
            mean_rmssd=mean,
            std_deviation=std,
            coefficient_variation=(std / mean * 100) if mean > 0 else 0.0,
            lower_threshold=mean - std,
            upper_threshold=mean + std,
            readings=len(values),
        )

    def recent_reading(self, stress_logs: List[StressLogInput], as_of_date: DateLike) -> Optional[float]:
        """The as-of day's HRV reading, else the most recent one in the window."""
        readings = self._readings(stress_logs, as_of_date)
        if not readings:
            return None
        today = date_key(as_of_date)
        for logged, hrv in readings:
            if logged.date().isoformat() == today:
                return hrv
        return readings[0][1]

    def analyze(self, stress_logs: List[StressLogInput], as_of_date: DateLike) -> HRVContext:
        baseline = self.calculate_baseline(stress_logs, as_of_date)
        recent = self.recent_reading(stress_logs, as_of_date)
        baseline_ms = float(round_half_up(baseline.mean_rmssd)) if baseline else None
        return HRVContext(
            recent_hrv_ms=recent,
            baseline_hrv_ms=baseline_ms,
            deviation_percent=hrv_deviation_percent(recent, baseline_ms),
            baseline=baseline,
        )
