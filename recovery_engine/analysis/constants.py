"""Biological constants for the recovery engine.

One canonical parameter set: 9 muscle groups and the 0.4/0.3/0.2/0.1
readiness weighting.
"""

import re

# Muscle groups (fixed taxonomy)
MUSCLE_GROUPS = (
    "chest",
    "back",
    "shoulders",
    "arms",
    "quads",
    "hamstrings",
    "glutes",
    "calves",
    "core",
)

DEFAULT_MUSCLE_GROUP = "core"

MUSCLE_SIZE = {
    "chest": "medium",
    "back": "large",
    "shoulders": "medium",
    "arms": "small",
    "quads": "large",
    "hamstrings": "medium",
    "glutes": "large",
    "calves": "small",
    "core": "medium",
}

# Common labels that do not contain a taxonomy name
MUSCLE_ALIASES = {
    "quadriceps": "quads",
    "quad": "quads",
    "legs": "quads",
    "biceps": "arms",
    "triceps": "arms",
    "forearms": "arms",
    "lats": "back",
    "traps": "back",
    "abs": "core",
    "obliques": "core",
    "delts": "shoulders",
    "pecs": "chest",
}

# Base recovery hours by muscle size x RPE bucket
BASE_RECOVERY_HOURS = {
    "small": {"light": 36, "moderate": 48, "heavy": 60},
    "medium": {"light": 48, "moderate": 60, "heavy": 72},
    "large": {"light": 60, "moderate": 72, "heavy": 96},
}

MAX_INITIAL_LOAD = 150.0
MUSCLE_MAX_FATIGUE = 50.0
MUSCLE_LOOKBACK_DAYS = 14

DEFAULT_RPE = 6.0
DEFAULT_DURATION_MINUTES = 45.0

# Modifier bounds
SLEEP_MODIFIER_RANGE = (0.8, 1.2)
STRESS_MODIFIER_RANGE = (0.8, 1.1)
AGE_FACTOR_RANGE = (0.5, 1.5)
AGE_FACTOR_THRESHOLD_YEARS = 40
AGE_FACTOR_OLDER = 0.95

# CNS model
CNS_LOOKBACK_DAYS = 14
CNS_HIGH_RPE = 8
CNS_HALF_LIFE_RANGE = (48.0, 120.0)
CNS_RPE_ONLY_HALF_LIFE = 72.0
CNS_LOW_DEEP_SLEEP_MINUTES = 60
CNS_LOW_DEEP_SLEEP_FACTOR = 1.2
CNS_LOW_HRV_DEVIATION_PERCENT = -10
CNS_LOW_HRV_FACTOR = 1.1
CNS_PROJECTION_THRESHOLD = 0.95
CNS_PROJECTION_HALF_LIFE = 96.0
CNS_PROJECTION_TARGET = 0.99

# High-neural-demand workout patterns; bump the version when the list changes
CNS_PATTERN_VERSION = 1
CNS_PATTERNS = (
    ("conditioning", re.compile(r"\b(hiit|sprints?|intervals?|metcon|wod|amrap|emom)\b", re.IGNORECASE)),
    ("max_effort", re.compile(r"\b(max|1rm|heavy|deadlifts?|squats?|cleans?|snatch(es)?|jerks?|oly)\b", re.IGNORECASE)),
    ("explosive", re.compile(r"\b(power|explosive|plyometrics?|plyo|jumps?)\b", re.IGNORECASE)),
)

# Sleep model
SLEEP_LOOKBACK_DAYS = 7
SLEEP_TARGET_MINUTES = 480
SLEEP_OPTIMAL_RANGE = (420, 540)
SLEEP_NO_DATA_SCORE = 70
SLEEP_DURATION_WEIGHT = 0.4
SLEEP_QUALITY_WEIGHT = 0.5
SLEEP_ARCHITECTURE_RATIO = 0.35
SLEEP_ARCHITECTURE_BONUS = 10
SLEEP_AWAKENING_PENALTY = 3
SLEEP_AWAKENING_PENALTY_CAP = 15
DEFAULT_SLEEP_QUALITY = 5.0

# Stress model
STRESS_LOOKBACK_DAYS = 7
DEFAULT_STRESS_LEVEL = 5.0
STRESS_NO_DATA_SCORE = 70
STRESS_MODIFIERS = {
    "low": 1.1,
    "moderate": 1.0,
    "high": 0.9,
    "very_high": 0.8,
}

# HRV baseline
HRV_BASELINE_MIN_READINGS = 3

# Trend / safety model
OVERTRAINING_RECOVERY_DOWN_DAYS = 5
OVERTRAINING_CONSECUTIVE_TRAINING_DAYS = 6
OVERTRAINING_MAX_GAP_DAYS = 1.5
OVERTRAINING_SLEEP_DEBT_MINUTES = 480
OVERTRAINING_LOOKBACK_DAYS = 14
DELOAD_WEEKS_CONSISTENT_LOAD = 4
DELOAD_CNS_SUPPRESSION_SCORE = 50
DELOAD_CNS_SUPPRESSION_SNAPSHOTS = 5
DELOAD_MIN_DAYS_DATA = 28
DELOAD_MIN_RECENT_WORKOUTS = 10
DELOAD_TREND_POINTS = 3
DEFAULT_READINESS = 70.0
DEFAULT_CNS_SCORE = 70.0

# Periodization layer
PERIODIZATION_MIN_DAYS = 28
PERIODIZATION_TREND_DAYS = 10
PERIODIZATION_OVERTRAINING_LOOKBACK = 14
PERIODIZATION_OVERTRAINING_MIN = 2
PERIODIZATION_SLEEP_DEBT_MINUTES = 300
DELOAD_SUGGESTED_REDUCTION_PERCENT = 30
DELOAD_REASON = "Accumulated fatigue trend detected"

# Behavioral & streak layer
SLEEP_TARGET_DEBT_MINUTES = 60
MAX_BALANCED_CONSECUTIVE_DAYS = 3
STREAK_MAX_LOOKBACK_DAYS = 60

# Orchestrator
READINESS_WEIGHTS = {
    "muscular": 0.4,
    "cns": 0.3,
    "sleep": 0.2,
    "stress": 0.1,
}
TRAIN_THRESHOLD = 85
MODERATE_THRESHOLD = 60
