"""
Recovery Orchestrator

Composes the sleep, stress, muscle, CNS and trend models for one user and
one as-of date into a single RecoveryEngineOutput. Sleep and stress run
first because their modifiers feed the muscle and CNS decay rates.

Readiness weighting: 0.4 muscular + 0.3 CNS + 0.2 sleep + 0.1 stress.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from .cns_model import CnsRecoveryModel
from .constants import (
    AGE_FACTOR_OLDER,
    AGE_FACTOR_THRESHOLD_YEARS,
    MODERATE_THRESHOLD,
    READINESS_WEIGHTS,
    TRAIN_THRESHOLD,
)
from .hrv_baseline import HRVBaselineAnalyzer, hrv_deviation_percent
from .muscle_model import MuscleRecoveryModel
from .sleep_model import SleepModel
from .stress_model import StressModel
from .trend_model import TrendModel
from .types import Recommendation, RecoveryEngineInput, RecoveryEngineOutput
from .utils import clamp, date_key, parse_date, round_half_up, safe_number

logger = logging.getLogger(__name__)


def age_factor(age_years: Optional[float]) -> float:
    if age_years is not None and safe_number(age_years, 0) >= AGE_FACTOR_THRESHOLD_YEARS:
        return AGE_FACTOR_OLDER
    return 1.0


def recommendation_for(overall_score: int) -> Recommendation:
    if overall_score >= TRAIN_THRESHOLD:
        return Recommendation.TRAIN
    if overall_score >= MODERATE_THRESHOLD:
        return Recommendation.MODERATE
    return Recommendation.REST


def overall_score(muscular: float, cns: float, sleep: float, stress: float) -> int:
    weighted = (
        muscular * READINESS_WEIGHTS["muscular"]
        + cns * READINESS_WEIGHTS["cns"]
        + sleep * READINESS_WEIGHTS["sleep"]
        + stress * READINESS_WEIGHTS["stress"]
    )
    return int(clamp(round_half_up(weighted), 0, 100))


class RecoveryEngine:
    """Runs every recovery model over one input bundle."""

    def __init__(self):
        self.muscle_model = MuscleRecoveryModel()
        self.cns_model = CnsRecoveryModel()
        self.sleep_model = SleepModel()
        self.stress_model = StressModel()
        self.trend_model = TrendModel()
        self.hrv_analyzer = HRVBaselineAnalyzer()

    def _hrv_deviation(self, engine_input: RecoveryEngineInput) -> Optional[float]:
        recent = engine_input.recent_hrv_ms
        baseline = engine_input.baseline_hrv_ms
        if recent is None or baseline is None:
            derived = self.hrv_analyzer.analyze(engine_input.stress_logs, engine_input.as_of_date)
            recent = recent if recent is not None else derived.recent_hrv_ms
            baseline = baseline if baseline is not None else derived.baseline_hrv_ms
        return hrv_deviation_percent(recent, baseline)

    @staticmethod
    def _deep_sleep_last_night(engine_input: RecoveryEngineInput) -> Optional[float]:
        """Deep sleep from the log dated as-of, else the one dated the day before."""
        as_of = parse_date(engine_input.as_of_date)
        if as_of is None:
            return None
        by_date = {}
        for log in engine_input.sleep_logs or []:
            key = date_key(log.sleep_date)
            if key is not None:
                by_date.setdefault(key, log)
        for day in (as_of, as_of - timedelta(days=1)):
            log = by_date.get(day.isoformat())
            if log is not None:
                return log.deep_sleep_minutes
        return None

    def run(self, engine_input: RecoveryEngineInput, now: Optional[datetime] = None) -> RecoveryEngineOutput:
        """
        Compute the full recovery record.

        Args:
            engine_input: Bounded history for one user and date
            now: Generation timestamp (defaults to current UTC time)

        Returns:
            RecoveryEngineOutput with every field populated
        """
        as_of = engine_input.as_of_date
        if parse_date(as_of) is None:
            logger.warning(f"Unparsable as-of date {as_of!r}; models fall back to neutral defaults")

        sleep = self.sleep_model.evaluate(engine_input.sleep_logs, as_of)
        stress = self.stress_model.evaluate(engine_input.stress_logs, as_of)

        muscle = self.muscle_model.evaluate(
            engine_input.workouts,
            as_of,
            sleep.recovery_modifier,
            stress.stress_modifier,
            age_factor(engine_input.age_years),
        )

        hrv_deviation = self._hrv_deviation(engine_input)
        cns = self.cns_model.evaluate(
            engine_input.workouts,
            as_of,
            self._deep_sleep_last_night(engine_input),
            hrv_deviation,
            stress.stress_modifier,
        )

        trend = self.trend_model.evaluate(
            engine_input.recent_snapshots,
            engine_input.workouts,
            sleep.cumulative_sleep_debt_minutes,
            cns.cns_score,
            as_of_date=as_of,
        )

        overall = overall_score(muscle.aggregate_score, cns.cns_score, sleep.sleep_score, stress.stress_score)
        recommendation = recommendation_for(overall)

        logger.debug(
            f"Recovery {date_key(as_of)}: muscular={muscle.aggregate_score} cns={cns.cns_score} "
            f"sleep={sleep.sleep_score} stress={stress.stress_score} overall={overall}"
        )

        return RecoveryEngineOutput(
            muscular_score=muscle.aggregate_score,
            muscle_breakdown=muscle.per_group_score,
            cns_score=cns.cns_score,
            sleep_score=sleep.sleep_score,
            sleep_debt=sleep.cumulative_sleep_debt_minutes,
            stress_score=stress.stress_score,
            overall_score=overall,
            recommendation=recommendation.value,
            projected_full_recovery=cns.projected_full_recovery,
            overtraining_flag=trend.overtraining_flag,
            deload_flag=trend.deload_flag,
            generated_at=now or datetime.now(timezone.utc),
            recovery_modifier=sleep.recovery_modifier,
            stress_level=stress.level.value,
            hrv_deviation_percent=hrv_deviation,
        )


def run_recovery_engine(engine_input: RecoveryEngineInput, now: Optional[datetime] = None) -> RecoveryEngineOutput:
    """Single computation entry point."""
    return RecoveryEngine().run(engine_input, now=now)
