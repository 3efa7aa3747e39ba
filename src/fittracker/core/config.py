"""
Configuration constants for workout import, estimation and execution.

All adjustable heuristics are centralized here for easy tuning.
"""

from typing import Final

# =============================================================================
# CSV IMPORT
# =============================================================================

REQUIRED_COLUMNS: Final[tuple[str, ...]] = (
    "Day",
    "Exercise",
    "Sets",
    "Reps/Time",
    "Weight",
    "Notes",
    "Form Guidance",
    "Muscle Group",
    "Main Muscle",
)

# Day-name keyword -> tag, checked in this order
DAY_TAG_KEYWORDS: Final[tuple[tuple[str, str], ...]] = (
    ("push", "Push"),
    ("pull", "Pull"),
    ("legs", "Legs"),
    ("shoulders", "Shoulders"),
    ("abs", "Abs"),
    ("cardio", "Cardio"),
    ("arms", "Arms"),
)
CONDITIONING_KEYWORDS: Final[tuple[str, ...]] = ("cardio",)
STRENGTH_KEYWORDS: Final[tuple[str, ...]] = ("strength", "power")
FALLBACK_TAG: Final[str] = "General"

# =============================================================================
# REST HEURISTIC (three tiers keyed on muscle group)
# =============================================================================

COMPOUND_GROUPS: Final[tuple[str, ...]] = ("chest", "back", "legs")
ISOLATION_GROUPS: Final[tuple[str, ...]] = ("shoulders", "triceps", "biceps")
CONDITIONING_GROUPS: Final[tuple[str, ...]] = ("conditioning", "cardio", "core")

REST_COMPOUND_SECONDS: Final[int] = 120
REST_COMPOUND_HEAVY_SECONDS: Final[int] = 180  # compound with >= HEAVY_SETS_THRESHOLD sets
HEAVY_SETS_THRESHOLD: Final[int] = 4
REST_ISOLATION_SECONDS: Final[int] = 90
REST_CONDITIONING_SECONDS: Final[int] = 60
REST_DEFAULT_SECONDS: Final[int] = 90

# =============================================================================
# DURATION ESTIMATE (minutes per set)
# =============================================================================

TIMED_SET_SETUP_SECONDS: Final[int] = 30
TIMED_SET_FALLBACK_SECONDS: Final[int] = 60
STEPS_SET_MINUTES: Final[float] = 3.0
REPS_FALLBACK: Final[int] = 10

# (exclusive lower bound on average reps, minutes per set), highest first
REPS_SET_MINUTES: Final[tuple[tuple[int, float], ...]] = (
    (15, 3.0),
    (8, 2.5),
)
REPS_SET_MINUTES_FLOOR: Final[float] = 2.0

# =============================================================================
# WORKOUT EXECUTION
# =============================================================================

DEFAULT_REST_SECONDS: Final[int] = 60  # rest timer when an exercise has none
TIMER_TICK_SECONDS: Final[float] = 1.0
MAX_SETS_PER_EXERCISE: Final[int] = 12  # add_set cap in the set list

# Pre-filled set inputs when an exercise gives no prescription bound
DEFAULT_INPUT_REPS: Final[int] = 8
DEFAULT_INPUT_SECONDS: Final[int] = 30
DEFAULT_INPUT_STEPS: Final[int] = 10

# =============================================================================
# STORAGE
# =============================================================================

DATA_DIR_ENV: Final[str] = "FITTRACKER_HOME"
DEFAULT_DATA_DIRNAME: Final[str] = ".fittracker"
CONFIG_FILENAME: Final[str] = "config.yaml"

TEMPLATES_FILENAME: Final[str] = "session_templates.json"
INSTANCES_FILENAME: Final[str] = "session_instances.json"
PROGRESS_FILENAME: Final[str] = "workout_progress.json"
ACTIVE_WORKOUT_FILENAME: Final[str] = "active_workout.json"
