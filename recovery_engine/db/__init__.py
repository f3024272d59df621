"""Database module for the recovery engine."""

from .database import Database, get_db, set_db, close_db
from .models import (
    Workout,
    WorkoutExercise,
    WorkoutMuscleGroup,
    SleepLog,
    StressLog,
    RecoverySnapshot,
    BehavioralMetric,
    DeloadCycle,
)

__all__ = [
    "Database",
    "get_db",
    "set_db",
    "close_db",
    "Workout",
    "WorkoutExercise",
    "WorkoutMuscleGroup",
    "SleepLog",
    "StressLog",
    "RecoverySnapshot",
    "BehavioralMetric",
    "DeloadCycle",
]
