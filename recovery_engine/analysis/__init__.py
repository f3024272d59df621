"""Analysis module for recovery scoring."""

from .recovery_engine import RecoveryEngine, run_recovery_engine
from .behavior import run_behavior_engine, run_streak_engine
from .periodization import run_periodization_engine, evaluate_deload_status
from .types import RecoveryEngineInput, RecoveryEngineOutput

__all__ = [
    "RecoveryEngine",
    "run_recovery_engine",
    "run_behavior_engine",
    "run_streak_engine",
    "run_periodization_engine",
    "evaluate_deload_status",
    "RecoveryEngineInput",
    "RecoveryEngineOutput",
]
