"""Bounded history reads and keyed writes for the recovery pipeline."""

import json
import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from ..analysis.types import (
    BehaviorRow,
    DeloadCycleState,
    DeloadSnapshotRow,
    ExerciseInput,
    MuscleGroupInput,
    RecoveryEngineInput,
    RecoveryEngineOutput,
    RecoveryHistoryPoint,
    RecoverySnapshotInput,
    SleepLogInput,
    StressLogInput,
    WorkoutInput,
)
from ..analysis.behavior import BehavioralOutput
from ..config import config
from .database import Database, get_db
from .models import (
    BehavioralMetric,
    DeloadCycle,
    RecoverySnapshot,
    SleepLog,
    StressLog,
    Workout,
    WorkoutExercise,
    WorkoutMuscleGroup,
    utcnow,
)

logger = logging.getLogger(__name__)


def _workout_input(workout: Workout) -> WorkoutInput:
    return WorkoutInput(
        id=str(workout.id),
        workout_date=workout.workout_date.isoformat(),
        duration_minutes=workout.duration_minutes,
        perceived_exertion=workout.perceived_exertion,
        name=workout.name,
        notes=workout.notes,
        exercises=[
            ExerciseInput(
                exercise_name=e.exercise_name,
                sets=e.sets,
                reps=e.reps,
                weight_kg=e.weight_kg,
            )
            for e in workout.exercises
        ],
        muscle_groups=[
            MuscleGroupInput(muscle_group=m.muscle_group, intensity=m.intensity)
            for m in workout.muscle_groups
        ],
    )


def _snapshot_output(snapshot: RecoverySnapshot) -> RecoveryEngineOutput:
    """Rebuild an engine output from the stored columns plus the raw payload."""
    data: Dict[str, Any] = snapshot.get_raw_data()
    data.update({
        "overall_score": snapshot.readiness_score,
        "sleep_score": snapshot.sleep_score,
        "stress_score": snapshot.stress_score,
        "muscle_breakdown": snapshot.get_muscle_breakdown(),
        "overtraining_flag": bool(snapshot.overtraining_flag),
        "deload_flag": bool(snapshot.deload_flag),
        "sleep_debt": snapshot.sleep_debt,
    })
    return RecoveryEngineOutput.from_dict(data)


class RecoveryRepository:
    """SQLAlchemy-backed persistence for one user."""

    def __init__(self, db: Optional[Database] = None, user_id: str = config.DEFAULT_USER_ID):
        self.db = db or get_db()
        self.user_id = user_id

    # ------------------------------------------------------------------
    # Engine input
    # ------------------------------------------------------------------

    def fetch_recovery_input(self, as_of: date, age_years: Optional[float] = None) -> RecoveryEngineInput:
        """
        Fetch the bounded history the engine needs for one as-of date.

        Args:
            as_of: Evaluation date
            age_years: Optional athlete age

        Returns:
            RecoveryEngineInput (newest rows first)
        """
        # The deload detector looks back further than the muscle and CNS models
        workout_days = max(config.WORKOUT_LOOKBACK_DAYS, config.TREND_LOOKBACK_DAYS)
        snapshot_days = max(config.SNAPSHOT_LOOKBACK_DAYS, config.TREND_LOOKBACK_DAYS)
        workout_from = as_of - timedelta(days=workout_days)
        wellness_from = as_of - timedelta(days=config.SLEEP_STRESS_LOOKBACK_DAYS)
        snapshot_from = as_of - timedelta(days=snapshot_days)

        with self.db.get_session() as session:
            workouts = session.query(Workout).filter(
                Workout.user_id == self.user_id,
                Workout.deleted_at.is_(None),
                Workout.workout_date >= workout_from,
                Workout.workout_date <= as_of,
            ).order_by(Workout.workout_date.desc()).all()

            sleep_logs = session.query(SleepLog).filter(
                SleepLog.user_id == self.user_id,
                SleepLog.deleted_at.is_(None),
                SleepLog.sleep_date >= wellness_from,
                SleepLog.sleep_date <= as_of,
            ).order_by(SleepLog.sleep_date.desc()).all()

            stress_logs = session.query(StressLog).filter(
                StressLog.user_id == self.user_id,
                StressLog.deleted_at.is_(None),
                StressLog.log_date >= wellness_from,
                StressLog.log_date <= as_of,
            ).order_by(StressLog.log_date.desc()).all()

            snapshots = session.query(RecoverySnapshot).filter(
                RecoverySnapshot.user_id == self.user_id,
                RecoverySnapshot.deleted_at.is_(None),
                RecoverySnapshot.snapshot_date >= snapshot_from,
                RecoverySnapshot.snapshot_date <= as_of,
            ).order_by(RecoverySnapshot.snapshot_date.desc()).limit(snapshot_days + 1).all()

            # Convert inside the session to avoid detached lazy loads
            return RecoveryEngineInput(
                as_of_date=as_of.isoformat(),
                workouts=[_workout_input(w) for w in workouts],
                sleep_logs=[
                    SleepLogInput(
                        sleep_date=s.sleep_date.isoformat(),
                        total_minutes=s.total_minutes,
                        quality=s.quality,
                        deep_sleep_minutes=s.deep_sleep_minutes,
                        rem_minutes=s.rem_minutes,
                        awakenings=s.awakenings,
                    )
                    for s in sleep_logs
                ],
                stress_logs=[
                    StressLogInput(
                        log_date=s.log_date.isoformat(),
                        stress_level=s.stress_level,
                        hrv_ms=s.hrv_ms,
                    )
                    for s in stress_logs
                ],
                recent_snapshots=[
                    RecoverySnapshotInput(
                        snapshot_date=s.snapshot_date.isoformat(),
                        readiness_score=s.readiness_score,
                        sleep_score=s.sleep_score,
                    )
                    for s in snapshots
                ],
                age_years=age_years,
            )

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def snapshot_exists(self, snapshot_date: date) -> bool:
        with self.db.get_session() as session:
            return session.query(RecoverySnapshot.id).filter(
                RecoverySnapshot.user_id == self.user_id,
                RecoverySnapshot.snapshot_date == snapshot_date,
                RecoverySnapshot.deleted_at.is_(None),
            ).first() is not None

    def get_snapshot(self, snapshot_date: date) -> Optional[RecoveryEngineOutput]:
        with self.db.get_session() as session:
            snapshot = session.query(RecoverySnapshot).filter(
                RecoverySnapshot.user_id == self.user_id,
                RecoverySnapshot.snapshot_date == snapshot_date,
                RecoverySnapshot.deleted_at.is_(None),
            ).first()
            return _snapshot_output(snapshot) if snapshot else None

    def save_snapshot(self, snapshot_date: date, output: RecoveryEngineOutput) -> None:
        """Insert or update the snapshot keyed by (user, date)."""
        calculated_at = utcnow()
        payload = output.to_dict()
        raw_data = {
            "muscular_score": payload["muscular_score"],
            "cns_score": payload["cns_score"],
            "recommendation": payload["recommendation"],
            "projected_full_recovery": payload["projected_full_recovery"],
            "generated_at": payload["generated_at"],
            "recovery_modifier": payload["recovery_modifier"],
            "stress_level": payload["stress_level"],
            "hrv_deviation_percent": payload["hrv_deviation_percent"],
        }
        breakdown = output.muscle_breakdown or {}

        with self.db.get_session() as session:
            snapshot = session.query(RecoverySnapshot).filter_by(
                user_id=self.user_id, snapshot_date=snapshot_date
            ).first()
            if snapshot is None:
                snapshot = RecoverySnapshot(user_id=self.user_id, snapshot_date=snapshot_date)
                session.add(snapshot)

            snapshot.readiness_score = output.overall_score
            snapshot.sleep_score = output.sleep_score
            snapshot.stress_score = output.stress_score
            snapshot.muscle_breakdown = json.dumps(breakdown) if breakdown else None
            snapshot.overtraining_flag = output.overtraining_flag is True
            snapshot.deload_flag = output.deload_flag is True
            snapshot.sleep_debt = output.sleep_debt or 0.0
            snapshot.calculated_at = calculated_at
            snapshot.raw_data = json.dumps(raw_data)
            snapshot.updated_at = calculated_at
            # Re-saving a soft-deleted day restores it
            snapshot.deleted_at = None

        logger.info(f"Saved recovery snapshot {snapshot_date} for {self.user_id}: readiness {output.overall_score}")

    def fetch_history(self, days: int, as_of: Optional[date] = None) -> List[RecoveryHistoryPoint]:
        """Snapshots from the last ``days`` days, oldest first."""
        as_of = as_of or utcnow().date()
        start = as_of - timedelta(days=days)
        with self.db.get_session() as session:
            rows = session.query(RecoverySnapshot).filter(
                RecoverySnapshot.user_id == self.user_id,
                RecoverySnapshot.deleted_at.is_(None),
                RecoverySnapshot.snapshot_date >= start,
                RecoverySnapshot.snapshot_date <= as_of,
            ).order_by(RecoverySnapshot.snapshot_date.asc()).all()

            points = []
            for row in rows:
                raw = row.get_raw_data()
                points.append(RecoveryHistoryPoint(
                    date=row.snapshot_date.isoformat(),
                    overall_score=int(row.readiness_score or 0),
                    muscular_score=int(raw.get("muscular_score", raw.get("muscularScore")) or 0),
                    cns_score=int(raw.get("cns_score", raw.get("cnsScore")) or 0),
                    sleep_score=int(row.sleep_score or 0),
                    stress_score=int(row.stress_score or 0),
                    sleep_debt=float(row.sleep_debt or 0),
                ))
            return points

    def fetch_deload_input(self, as_of: date) -> List[DeloadSnapshotRow]:
        """Snapshots in [as_of - 28 d, as_of], oldest first."""
        start = as_of - timedelta(days=config.DELOAD_SNAPSHOT_DAYS)
        with self.db.get_session() as session:
            rows = session.query(RecoverySnapshot).filter(
                RecoverySnapshot.user_id == self.user_id,
                RecoverySnapshot.deleted_at.is_(None),
                RecoverySnapshot.snapshot_date >= start,
                RecoverySnapshot.snapshot_date <= as_of,
            ).order_by(RecoverySnapshot.snapshot_date.asc()).all()

            return [
                DeloadSnapshotRow(
                    snapshot_date=row.snapshot_date.isoformat(),
                    readiness_score=row.readiness_score,
                    overtraining_flag=row.overtraining_flag is True,
                    sleep_debt=row.sleep_debt,
                )
                for row in rows
            ]

    # ------------------------------------------------------------------
    # Behavior
    # ------------------------------------------------------------------

    def fetch_workout_dates(self, as_of: date, days: int = config.BEHAVIOR_WORKOUT_DAYS) -> List[str]:
        """Workout dates in the ``days`` days ending on as_of (inclusive)."""
        start = as_of - timedelta(days=days - 1)
        with self.db.get_session() as session:
            rows = session.query(Workout.workout_date).filter(
                Workout.user_id == self.user_id,
                Workout.deleted_at.is_(None),
                Workout.workout_date >= start,
                Workout.workout_date <= as_of,
            ).order_by(Workout.workout_date.desc()).all()
            return [row[0].isoformat() for row in rows]

    def upsert_behavioral_metrics(self, metric_date: date, behavior: BehavioralOutput) -> None:
        with self.db.get_session() as session:
            metric = session.query(BehavioralMetric).filter_by(
                user_id=self.user_id, date=metric_date
            ).first()
            if metric is None:
                metric = BehavioralMetric(user_id=self.user_id, date=metric_date)
                session.add(metric)
            metric.recovery_compliant = behavior.recovery_compliant
            metric.sleep_target_met = behavior.sleep_target_met
            metric.balanced_training = behavior.balanced_training

    def fetch_behavior_history(self, as_of: date,
                               limit: int = config.BEHAVIOR_LOOKBACK_DAYS) -> List[BehaviorRow]:
        """Behavior rows in the ``limit`` days ending on as_of, newest first."""
        start = as_of - timedelta(days=limit - 1)
        with self.db.get_session() as session:
            rows = session.query(BehavioralMetric).filter(
                BehavioralMetric.user_id == self.user_id,
                BehavioralMetric.date >= start,
                BehavioralMetric.date <= as_of,
            ).order_by(BehavioralMetric.date.desc()).limit(limit).all()
            return [
                BehaviorRow(
                    date=row.date.isoformat(),
                    recovery_compliant=row.recovery_compliant is True,
                    sleep_target_met=row.sleep_target_met is True,
                    balanced_training=row.balanced_training is True,
                )
                for row in rows
            ]

    # ------------------------------------------------------------------
    # Deload cycles
    # ------------------------------------------------------------------

    def get_active_deload(self) -> Optional[DeloadCycleState]:
        with self.db.get_session() as session:
            cycle = session.query(DeloadCycle).filter(
                DeloadCycle.user_id == self.user_id,
                DeloadCycle.end_date.is_(None),
                DeloadCycle.deleted_at.is_(None),
            ).order_by(DeloadCycle.start_date.desc()).first()
            if cycle is None:
                return None
            return DeloadCycleState(
                start_date=cycle.start_date.isoformat(),
                end_date=None,
                reason=cycle.reason,
                volume_reduction_pct=cycle.volume_reduction_pct,
            )

    def start_deload_cycle(self, start_date: date, reason: str, volume_reduction_percent: float) -> bool:
        """Open a deload cycle; refused (False) while another one is active."""
        if self.get_active_deload() is not None:
            logger.info(f"Deload cycle already active for {self.user_id}; not starting another")
            return False

        with self.db.get_session() as session:
            session.add(DeloadCycle(
                user_id=self.user_id,
                start_date=start_date,
                end_date=None,
                reason=reason,
                volume_reduction_pct=int(round(volume_reduction_percent)),
            ))
        logger.info(f"Started deload cycle for {self.user_id} on {start_date}: {reason}")
        return True

    def end_deload_cycle(self, end_date: date) -> bool:
        """Close the active deload cycle. Returns False when none is active."""
        with self.db.get_session() as session:
            cycle = session.query(DeloadCycle).filter(
                DeloadCycle.user_id == self.user_id,
                DeloadCycle.end_date.is_(None),
                DeloadCycle.deleted_at.is_(None),
            ).order_by(DeloadCycle.start_date.desc()).first()
            if cycle is None:
                return False
            cycle.end_date = end_date
        logger.info(f"Ended deload cycle for {self.user_id} on {end_date}")
        return True

    # ------------------------------------------------------------------
    # Log writes
    # ------------------------------------------------------------------

    def add_workout(self, workout_date: date, perceived_exertion: Optional[float] = None,
                    duration_minutes: Optional[float] = None, name: Optional[str] = None,
                    notes: Optional[str] = None, muscle_groups: Optional[List[str]] = None,
                    exercises: Optional[List[Dict[str, Any]]] = None) -> int:
        """Insert a workout with its muscle groups and exercises; returns its id."""
        with self.db.get_session() as session:
            workout = Workout(
                user_id=self.user_id,
                workout_date=workout_date,
                perceived_exertion=perceived_exertion,
                duration_minutes=duration_minutes,
                name=name,
                notes=notes,
            )
            for group in muscle_groups or []:
                workout.muscle_groups.append(WorkoutMuscleGroup(muscle_group=group, intensity="primary"))
            for exercise in exercises or []:
                workout.exercises.append(WorkoutExercise(
                    exercise_name=exercise["exercise_name"],
                    sets=exercise.get("sets"),
                    reps=exercise.get("reps"),
                    weight_kg=exercise.get("weight_kg"),
                ))
            session.add(workout)
            session.flush()
            return workout.id

    def add_sleep_log(self, sleep_date: date, total_minutes: Optional[float] = None,
                      quality: Optional[float] = None, deep_sleep_minutes: Optional[float] = None,
                      rem_minutes: Optional[float] = None, awakenings: Optional[int] = None) -> int:
        with self.db.get_session() as session:
            log = SleepLog(
                user_id=self.user_id,
                sleep_date=sleep_date,
                total_minutes=total_minutes,
                quality=quality,
                deep_sleep_minutes=deep_sleep_minutes,
                rem_minutes=rem_minutes,
                awakenings=awakenings,
            )
            session.add(log)
            session.flush()
            return log.id

    def add_stress_log(self, log_date: date, stress_level: Optional[float] = None,
                       hrv_ms: Optional[float] = None) -> int:
        with self.db.get_session() as session:
            log = StressLog(
                user_id=self.user_id,
                log_date=log_date,
                stress_level=stress_level,
                hrv_ms=hrv_ms,
            )
            session.add(log)
            session.flush()
            return log.id

    def soft_delete_workout(self, workout_id: int) -> bool:
        with self.db.get_session() as session:
            workout = session.query(Workout).filter_by(id=workout_id, user_id=self.user_id).first()
            if workout is None or workout.deleted_at is not None:
                return False
            workout.deleted_at = utcnow()
            return True
