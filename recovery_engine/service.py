"""Daily recovery pipeline and the triggers that run it after log writes."""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import pandas as pd
from sqlalchemy.exc import SQLAlchemyError

from .analysis import (
    evaluate_deload_status,
    run_behavior_engine,
    run_recovery_engine,
    run_streak_engine,
)
from .analysis.behavior import BehavioralInput, BehavioralOutput, StreakOutput
from .analysis.periodization import DeloadStatus
from .analysis.types import RecoveryEngineOutput, RecoveryHistoryPoint
from .analysis.utils import parse_date
from .config import config
from .db.database import Database, get_db
from .db.repository import RecoveryRepository
from .exceptions import InvalidDateError

logger = logging.getLogger(__name__)


@dataclass
class DailyRecoveryReport:
    """Everything the daily pipeline produced for one date."""
    as_of: date
    recovery: RecoveryEngineOutput
    behavior: BehavioralOutput
    streaks: StreakOutput
    deload: DeloadStatus
    deload_cycle_started: bool = False


def resolve_date(value: Any, default: Optional[date] = None) -> date:
    """Turn a user-supplied date into a ``date``; raises InvalidDateError."""
    if value is None or (isinstance(value, str) and not value.strip()):
        if default is None:
            raise InvalidDateError(value)
        return default
    parsed = parse_date(value)
    if parsed is None:
        raise InvalidDateError(value)
    return parsed


class RecoveryService:
    """Runs the recovery engine against stored history for one user."""

    def __init__(self, user_id: str = config.DEFAULT_USER_ID, db: Optional[Database] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.user_id = user_id
        self.db = db or get_db()
        self.repository = RecoveryRepository(self.db, user_id=user_id)
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def today(self) -> date:
        return self.clock().date()

    def resolve_as_of(self, as_of: Any) -> date:
        return resolve_date(as_of, default=self.today())

    def _compute(self, as_of: date) -> RecoveryEngineOutput:
        engine_input = self.repository.fetch_recovery_input(as_of, age_years=config.get_age_years())
        return run_recovery_engine(engine_input, now=self.clock())

    def calculate(self, as_of: Any = None, save: bool = True) -> RecoveryEngineOutput:
        """
        Compute recovery for a date, saving it only if no snapshot exists yet.

        Args:
            as_of: Date (YYYY-MM-DD or date); defaults to today
            save: Persist the result when the day has no snapshot

        Returns:
            Freshly computed RecoveryEngineOutput
        """
        day = self.resolve_as_of(as_of)
        output = self._compute(day)
        if save and not self.repository.snapshot_exists(day):
            self.repository.save_snapshot(day, output)
        return output

    def recalculate(self, as_of: Any = None) -> DailyRecoveryReport:
        """
        Run the full daily pipeline.

        Steps run in order and the first failure aborts the rest:
        recompute and upsert the snapshot, upsert behavior metrics,
        compute streaks, then evaluate (and possibly start) a deload cycle.
        """
        day = self.resolve_as_of(as_of)
        logger.info(f"Recalculating recovery for {self.user_id} as of {day}")

        output = self._compute(day)
        self.repository.save_snapshot(day, output)

        workout_dates = self.repository.fetch_workout_dates(day)
        behavior = run_behavior_engine(BehavioralInput(
            recommendation=output.recommendation,
            workout_logged_today=day.isoformat() in workout_dates,
            sleep_debt_minutes=output.sleep_debt,
            last_7_days_workout_dates=workout_dates,
            overtraining_flag=output.overtraining_flag,
        ))
        self.repository.upsert_behavioral_metrics(day, behavior)

        streaks = run_streak_engine(self.repository.fetch_behavior_history(day), day)

        status = evaluate_deload_status(
            self.repository.fetch_deload_input(day),
            day,
            active_cycle=self.repository.get_active_deload(),
        )
        started = False
        if status.start_cycle:
            started = self.repository.start_deload_cycle(
                day, status.reason, status.volume_reduction_percent
            )

        return DailyRecoveryReport(
            as_of=day,
            recovery=output,
            behavior=behavior,
            streaks=streaks,
            deload=status,
            deload_cycle_started=started,
        )

    def _trigger(self) -> Optional[DailyRecoveryReport]:
        """Recalculate today after a log write; storage errors are logged, not raised."""
        try:
            return self.recalculate(self.today())
        except SQLAlchemyError as e:
            logger.error(f"Recovery recalculation failed for {self.user_id}: {e}")
            return None

    def log_workout(self, workout_date: Any = None, perceived_exertion: Optional[float] = None,
                    duration_minutes: Optional[float] = None, name: Optional[str] = None,
                    notes: Optional[str] = None, muscle_groups: Optional[List[str]] = None,
                    exercises: Optional[List[Dict[str, Any]]] = None
                    ) -> Tuple[int, Optional[DailyRecoveryReport]]:
        """Store a workout, then rerun the daily pipeline."""
        day = self.resolve_as_of(workout_date)
        workout_id = self.repository.add_workout(
            day,
            perceived_exertion=perceived_exertion,
            duration_minutes=duration_minutes,
            name=name,
            notes=notes,
            muscle_groups=muscle_groups,
            exercises=exercises,
        )
        return workout_id, self._trigger()

    def log_sleep(self, sleep_date: Any = None, total_minutes: Optional[float] = None,
                  quality: Optional[float] = None, deep_sleep_minutes: Optional[float] = None,
                  rem_minutes: Optional[float] = None, awakenings: Optional[int] = None
                  ) -> Tuple[int, Optional[DailyRecoveryReport]]:
        """Store a sleep log, then rerun the daily pipeline."""
        day = self.resolve_as_of(sleep_date)
        log_id = self.repository.add_sleep_log(
            day,
            total_minutes=total_minutes,
            quality=quality,
            deep_sleep_minutes=deep_sleep_minutes,
            rem_minutes=rem_minutes,
            awakenings=awakenings,
        )
        return log_id, self._trigger()

    def log_stress(self, log_date: Any = None, stress_level: Optional[float] = None,
                   hrv_ms: Optional[float] = None) -> Tuple[int, Optional[DailyRecoveryReport]]:
        """Store a stress/HRV reading, then rerun the daily pipeline."""
        day = self.resolve_as_of(log_date)
        log_id = self.repository.add_stress_log(day, stress_level=stress_level, hrv_ms=hrv_ms)
        return log_id, self._trigger()

    def streaks(self, as_of: Any = None) -> StreakOutput:
        day = self.resolve_as_of(as_of)
        return run_streak_engine(self.repository.fetch_behavior_history(day), day)

    def deload_status(self, as_of: Any = None) -> DeloadStatus:
        """Current deload state without starting a cycle."""
        day = self.resolve_as_of(as_of)
        return evaluate_deload_status(
            self.repository.fetch_deload_input(day),
            day,
            active_cycle=self.repository.get_active_deload(),
        )

    def end_deload(self, end_date: Any = None) -> bool:
        return self.repository.end_deload_cycle(self.resolve_as_of(end_date))

    def history(self, range_key: str = "7d", as_of: Any = None) -> List[RecoveryHistoryPoint]:
        """Stored history points for a "7d" or "30d" range, oldest first."""
        return self.repository.fetch_history(config.get_history_days(range_key), self.resolve_as_of(as_of))

    def history_frame(self, range_key: str = "7d", as_of: Any = None) -> pd.DataFrame:
        """History as a DataFrame indexed by date, with a 7-day rolling readiness mean."""
        points = self.history(range_key, as_of)
        columns = ["overall_score", "muscular_score", "cns_score", "sleep_score", "stress_score", "sleep_debt"]
        if not points:
            df = pd.DataFrame(columns=columns + ["readiness_7d"])
            df.index.name = "date"
            return df

        df = pd.DataFrame([
            {"date": pd.Timestamp(p.date), **{c: getattr(p, c) for c in columns}}
            for p in points
        ]).set_index("date")
        df["readiness_7d"] = df["overall_score"].rolling("7D", min_periods=1).mean().round(1)
        return df
