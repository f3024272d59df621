"""Database models for workouts, wellness logs and recovery state."""

import json
from datetime import datetime, timezone
from sqlalchemy import (
    Column, Integer, String, Float, Date, DateTime, Boolean, Text, ForeignKey, UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp for DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Workout(Base):
    """Logged workout."""

    __tablename__ = "workouts"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(50), default="default", nullable=False, index=True)
    workout_date = Column(Date, nullable=False)
    duration_minutes = Column(Float)
    perceived_exertion = Column(Float)  # RPE 1-10
    name = Column(String(255))
    notes = Column(Text)
    created_at = Column(DateTime, default=utcnow)
    deleted_at = Column(DateTime)  # Soft delete

    exercises = relationship("WorkoutExercise", back_populates="workout",
                             cascade="all, delete-orphan", lazy="selectin")
    muscle_groups = relationship("WorkoutMuscleGroup", back_populates="workout",
                                 cascade="all, delete-orphan", lazy="selectin")

    def __repr__(self):
        return f"<Workout(date={self.workout_date}, name={self.name}, rpe={self.perceived_exertion})>"


class WorkoutExercise(Base):
    """Exercise performed within a workout."""

    __tablename__ = "workout_exercises"

    id = Column(Integer, primary_key=True)
    workout_id = Column(Integer, ForeignKey("workouts.id"), nullable=False)
    exercise_name = Column(String(255), nullable=False)
    sets = Column(Integer)
    reps = Column(Integer)
    weight_kg = Column(Float)

    workout = relationship("Workout", back_populates="exercises")


class WorkoutMuscleGroup(Base):
    """Muscle group trained by a workout."""

    __tablename__ = "workout_muscle_groups"

    id = Column(Integer, primary_key=True)
    workout_id = Column(Integer, ForeignKey("workouts.id"), nullable=False)
    muscle_group = Column(String(50), nullable=False)
    intensity = Column(String(20))  # primary, secondary, tertiary

    workout = relationship("Workout", back_populates="muscle_groups")


class SleepLog(Base):
    """Nightly sleep log."""

    __tablename__ = "sleep_logs"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(50), default="default", nullable=False, index=True)
    sleep_date = Column(Date, nullable=False)  # Night of sleep
    total_minutes = Column(Float)
    quality = Column(Float)  # 1-10
    deep_sleep_minutes = Column(Float)
    rem_minutes = Column(Float)
    awakenings = Column(Integer)
    created_at = Column(DateTime, default=utcnow)
    deleted_at = Column(DateTime)

    def __repr__(self):
        return f"<SleepLog(date={self.sleep_date}, total={self.total_minutes}, quality={self.quality})>"


class StressLog(Base):
    """Daily stress level and HRV reading."""

    __tablename__ = "stress_logs"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(50), default="default", nullable=False, index=True)
    log_date = Column(Date, nullable=False)
    stress_level = Column(Float)  # 1-10
    hrv_ms = Column(Float)  # RMSSD (ms)
    created_at = Column(DateTime, default=utcnow)
    deleted_at = Column(DateTime)

    def __repr__(self):
        return f"<StressLog(date={self.log_date}, stress={self.stress_level}, hrv={self.hrv_ms})>"


class RecoverySnapshot(Base):
    """Persisted engine output, one per user and date."""

    __tablename__ = "recovery_snapshots"
    __table_args__ = (UniqueConstraint("user_id", "snapshot_date", name="uq_snapshot_user_date"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(String(50), default="default", nullable=False, index=True)
    snapshot_date = Column(Date, nullable=False)
    readiness_score = Column(Integer, nullable=False)  # Overall score
    sleep_score = Column(Integer)
    stress_score = Column(Integer)
    muscle_breakdown = Column(Text)  # JSON: group -> score
    overtraining_flag = Column(Boolean, default=False)
    deload_flag = Column(Boolean, default=False)
    sleep_debt = Column(Float, default=0.0)  # minutes
    calculated_at = Column(DateTime)
    raw_data = Column(Text)  # JSON payload with the remaining output fields
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    deleted_at = Column(DateTime)

    def get_raw_data(self) -> dict:
        if not self.raw_data:
            return {}
        try:
            return json.loads(self.raw_data)
        except ValueError:
            return {}

    def get_muscle_breakdown(self) -> dict:
        if not self.muscle_breakdown:
            return {}
        try:
            return json.loads(self.muscle_breakdown)
        except ValueError:
            return {}

    def __repr__(self):
        return f"<RecoverySnapshot(date={self.snapshot_date}, readiness={self.readiness_score})>"


class BehavioralMetric(Base):
    """Daily behavioral compliance booleans."""

    __tablename__ = "behavioral_metrics"
    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_behavior_user_date"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(String(50), default="default", nullable=False, index=True)
    date = Column(Date, nullable=False)
    recovery_compliant = Column(Boolean, default=False)
    sleep_target_met = Column(Boolean, default=False)
    balanced_training = Column(Boolean, default=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return (f"<BehavioralMetric(date={self.date}, recovery={self.recovery_compliant}, "
                f"sleep={self.sleep_target_met}, balanced={self.balanced_training})>")


class DeloadCycle(Base):
    """Deload mitigation period; active while end_date is null."""

    __tablename__ = "deload_cycles"
    __table_args__ = (UniqueConstraint("user_id", "start_date", name="uq_deload_user_start"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(String(50), default="default", nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date)
    reason = Column(String(255))
    volume_reduction_pct = Column(Integer)
    created_at = Column(DateTime, default=utcnow)
    deleted_at = Column(DateTime)

    @property
    def is_active(self) -> bool:
        return self.end_date is None

    def __repr__(self):
        return f"<DeloadCycle(start={self.start_date}, end={self.end_date}, pct={self.volume_reduction_pct})>"
