"""Value records passed into and out of the recovery engine."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from .utils import DateLike, parse_timestamp, safe_number


class RPEIntensity(Enum):
    """RPE buckets used by the muscle model."""
    LIGHT = "light"          # RPE <= 4
    MODERATE = "moderate"    # RPE 5-7
    HEAVY = "heavy"          # RPE >= 8


class StressLevel(Enum):
    """Average stress buckets."""
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    VERY_HIGH = "very_high"


class Recommendation(Enum):
    """Training recommendation derived from the overall score."""
    TRAIN = "train"
    MODERATE = "moderate"
    REST = "rest"


@dataclass(frozen=True)
class ExerciseInput:
    exercise_name: str
    sets: Optional[int] = None
    reps: Optional[int] = None
    weight_kg: Optional[float] = None


@dataclass(frozen=True)
class MuscleGroupInput:
    muscle_group: str
    intensity: Optional[str] = None  # primary, secondary, tertiary


@dataclass(frozen=True)
class WorkoutInput:
    id: str
    workout_date: DateLike
    duration_minutes: Optional[float] = None
    perceived_exertion: Optional[float] = None
    name: Optional[str] = None
    notes: Optional[str] = None
    exercises: List[ExerciseInput] = field(default_factory=list)
    muscle_groups: List[MuscleGroupInput] = field(default_factory=list)


@dataclass(frozen=True)
class SleepLogInput:
    sleep_date: DateLike
    total_minutes: Optional[float] = None
    quality: Optional[float] = None
    deep_sleep_minutes: Optional[float] = None
    rem_minutes: Optional[float] = None
    awakenings: Optional[int] = None


@dataclass(frozen=True)
class StressLogInput:
    log_date: DateLike
    stress_level: Optional[float] = None
    hrv_ms: Optional[float] = None


@dataclass(frozen=True)
class RecoverySnapshotInput:
    snapshot_date: DateLike
    readiness_score: Optional[float] = None
    sleep_score: Optional[float] = None


@dataclass(frozen=True)
class BehaviorRow:
    date: str
    recovery_compliant: bool
    sleep_target_met: bool
    balanced_training: bool


@dataclass(frozen=True)
class DeloadSnapshotRow:
    snapshot_date: DateLike
    readiness_score: Optional[float] = None
    overtraining_flag: bool = False
    sleep_debt: Optional[float] = None


@dataclass(frozen=True)
class DeloadCycleState:
    start_date: str
    end_date: Optional[str] = None
    reason: Optional[str] = None
    volume_reduction_pct: Optional[float] = None

    @property
    def active(self) -> bool:
        return self.end_date is None


@dataclass(frozen=True)
class RecoveryEngineInput:
    """Bounded history for one user and one as-of date."""
    as_of_date: DateLike
    workouts: List[WorkoutInput] = field(default_factory=list)
    sleep_logs: List[SleepLogInput] = field(default_factory=list)
    stress_logs: List[StressLogInput] = field(default_factory=list)
    recent_snapshots: List[RecoverySnapshotInput] = field(default_factory=list)
    recent_hrv_ms: Optional[float] = None
    baseline_hrv_ms: Optional[float] = None
    age_years: Optional[float] = None


@dataclass(frozen=True)
class RecoveryHistoryPoint:
    date: str
    overall_score: int
    muscular_score: int
    cns_score: int
    sleep_score: int
    stress_score: int
    sleep_debt: float


# camelCase names used by stored payloads and older API responses
_CAMEL_KEYS = {
    "muscular_score": "muscularScore",
    "muscle_breakdown": "muscleBreakdown",
    "cns_score": "cnsScore",
    "sleep_score": "sleepScore",
    "sleep_debt": "sleepDebt",
    "stress_score": "stressScore",
    "overall_score": "overallScore",
    "projected_full_recovery": "projectedFullRecovery",
    "overtraining_flag": "overtrainingFlag",
    "deload_flag": "deloadFlag",
    "generated_at": "generatedAt",
}


@dataclass(frozen=True)
class RecoveryEngineOutput:
    """Canonical engine result. Scores are integers in [0, 100]."""
    muscular_score: int
    muscle_breakdown: Dict[str, int]
    cns_score: int
    sleep_score: int
    sleep_debt: float
    stress_score: int
    overall_score: int
    recommendation: str
    projected_full_recovery: Optional[datetime]
    overtraining_flag: bool
    deload_flag: bool
    generated_at: datetime
    recovery_modifier: float = 1.0
    stress_level: str = StressLevel.MODERATE.value
    hrv_deviation_percent: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "muscular_score": self.muscular_score,
            "muscle_breakdown": dict(self.muscle_breakdown),
            "cns_score": self.cns_score,
            "sleep_score": self.sleep_score,
            "sleep_debt": self.sleep_debt,
            "stress_score": self.stress_score,
            "overall_score": self.overall_score,
            "recommendation": self.recommendation,
            "projected_full_recovery": (
                self.projected_full_recovery.isoformat() if self.projected_full_recovery else None
            ),
            "overtraining_flag": self.overtraining_flag,
            "deload_flag": self.deload_flag,
            "generated_at": self.generated_at.isoformat(),
            "recovery_modifier": self.recovery_modifier,
            "stress_level": self.stress_level,
            "hrv_deviation_percent": self.hrv_deviation_percent,
        }

    @classmethod
    def empty(cls, generated_at: Optional[datetime] = None) -> "RecoveryEngineOutput":
        """Record shown when no result is available."""
        return cls(
            muscular_score=0,
            muscle_breakdown={},
            cns_score=0,
            sleep_score=0,
            sleep_debt=0.0,
            stress_score=0,
            overall_score=0,
            recommendation=Recommendation.REST.value,
            projected_full_recovery=None,
            overtraining_flag=False,
            deload_flag=False,
            generated_at=generated_at or datetime.now(timezone.utc),
        )

    @classmethod
    def from_dict(cls, data: Any) -> "RecoveryEngineOutput":
        """Rebuild an output from a stored or serialized payload.

        Accepts snake_case or camelCase keys; anything missing falls back to
        the empty record.
        """
        if not isinstance(data, dict):
            return cls.empty()

        def pick(key):
            if key in data and data[key] is not None:
                return data[key]
            return data.get(_CAMEL_KEYS.get(key, key))

        def score(key):
            return int(safe_number(pick(key), 0))

        breakdown = pick("muscle_breakdown")
        if not isinstance(breakdown, dict):
            breakdown = {}

        generated_at = parse_timestamp(pick("generated_at"))
        if generated_at is None:
            generated_at = datetime.now(timezone.utc)
        elif generated_at.tzinfo is None:
            generated_at = generated_at.replace(tzinfo=timezone.utc)

        projected = pick("projected_full_recovery")
        if projected is None:
            projected = data.get("projected_full_recovery_timestamp")
        projected_at = parse_timestamp(projected) if isinstance(projected, (str, datetime)) else None
        if projected_at is not None:
            projected_at = projected_at.replace(tzinfo=timezone.utc)

        return cls(
            muscular_score=score("muscular_score"),
            muscle_breakdown={str(k): int(safe_number(v, 0)) for k, v in breakdown.items()},
            cns_score=score("cns_score"),
            sleep_score=score("sleep_score"),
            sleep_debt=max(0.0, safe_number(pick("sleep_debt"), 0.0)),
            stress_score=score("stress_score"),
            overall_score=score("overall_score"),
            recommendation=str(pick("recommendation") or Recommendation.REST.value),
            projected_full_recovery=projected_at,
            overtraining_flag=pick("overtraining_flag") is True,
            deload_flag=pick("deload_flag") is True,
            generated_at=generated_at,
        )
