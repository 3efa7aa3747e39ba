"""
Data models for fittracker.

All core dataclasses representing templates, scheduled instances and the
progress recorded while a workout runs.  Templates own their exercises;
instances own an independent snapshot; progress records point at both by id.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

Unit = Literal["reps", "seconds", "steps"]
SessionStatus = Literal["scheduled", "in_progress", "completed", "skipped"]
TimerType = Literal["rest", "stopwatch"]
SetStatus = Literal["not_started", "in_progress", "completed"]

UNITS: tuple[str, ...] = ("reps", "seconds", "steps")
SESSION_STATUSES: tuple[str, ...] = ("scheduled", "in_progress", "completed", "skipped")
TIMER_TYPES: tuple[str, ...] = ("rest", "stopwatch")


def validate_local_date(date_str: str) -> None:
    """Validate date string is a local calendar date YYYY-MM-DD."""
    if not isinstance(date_str, str) or not re.match(r"^\d{4}-\d{2}-\d{2}$", date_str):
        raise ValueError(f"Invalid date format: {date_str}. Expected YYYY-MM-DD")
    try:
        datetime.strptime(date_str, "%Y-%m-%d")
    except ValueError as e:
        raise ValueError(f"Invalid date: {date_str}") from e


def validate_time_of_day(time_str: str) -> None:
    """Validate time string is HH:MM (24h)."""
    if not isinstance(time_str, str) or not re.match(r"^\d{2}:\d{2}$", time_str):
        raise ValueError(f"Invalid time format: {time_str}. Expected HH:MM")
    hours, minutes = (int(p) for p in time_str.split(":"))
    if hours > 23 or minutes > 59:
        raise ValueError(f"Invalid time: {time_str}")


@dataclass
class ParsedPrescription:
    """
    Normalized form of a free-text reps/time cell.

    Only the bounds matching ``unit`` are populated.  A result with
    ``unit == "reps"`` and no rep bounds is the malformed-token signal.
    """

    unit: Unit = "reps"
    reps_min: int | None = None
    reps_max: int | None = None
    time_seconds_min: int | None = None
    time_seconds_max: int | None = None
    steps_count: int | None = None
    per_side: bool = False

    @property
    def is_malformed(self) -> bool:
        """True when the parser could not classify the token."""
        return self.unit == "reps" and self.reps_min is None and self.reps_max is None


@dataclass
class SessionExercise:
    """
    One prescribed movement within a template.

    Exactly one measurement family is meaningful, selected by ``unit``.
    """

    id: str
    name: str
    sets: int
    unit: Unit = "reps"
    per_side: bool = False
    reps_min: int | None = None
    reps_max: int | None = None
    time_seconds_min: int | None = None
    time_seconds_max: int | None = None
    steps_count: int | None = None
    weight: float | None = None  # kg
    notes: str | None = None
    form_guidance: str | None = None
    muscle_group: str = ""
    main_muscle: str = ""
    rest_seconds: int | None = None  # rest between sets of this exercise

    def __post_init__(self) -> None:
        """Validate exercise data."""
        if self.unit not in UNITS:
            raise ValueError(f"Invalid unit: {self.unit}")
        if self.sets < 1:
            raise ValueError("sets must be at least 1")
        if (
            self.reps_min is not None
            and self.reps_max is not None
            and self.reps_min > self.reps_max
        ):
            raise ValueError("reps_min must not exceed reps_max")
        if (
            self.time_seconds_min is not None
            and self.time_seconds_max is not None
            and self.time_seconds_min > self.time_seconds_max
        ):
            raise ValueError("time_seconds_min must not exceed time_seconds_max")
        if self.weight is not None and self.weight < 0:
            raise ValueError("weight must be non-negative")
        if self.rest_seconds is not None and self.rest_seconds < 0:
            raise ValueError("rest_seconds must be non-negative")


@dataclass
class SessionTemplate:
    """
    A reusable, editable workout definition.

    ``id`` is None until the template is first saved; saving stamps
    ``created_at``/``updated_at`` (ISO 8601).  Exercise order is the
    execution order.
    """

    name: str
    exercises: list[SessionExercise] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    description: str | None = None
    estimated_duration_minutes: int | None = None
    id: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class TemplateSnapshot:
    """Point-in-time copy of the template fields an instance executes."""

    name: str
    exercises: list[SessionExercise] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    description: str | None = None
    estimated_duration_minutes: int | None = None


@dataclass
class SessionInstance:
    """
    A template scheduled onto a calendar date.

    ``template_id`` is a lookup reference only: the instance executes its
    own ``template_snapshot`` and never re-reads the live template.
    """

    template_id: str
    template_snapshot: TemplateSnapshot
    date: str  # local date YYYY-MM-DD
    status: SessionStatus = "scheduled"
    start_time: str | None = None  # HH:MM
    id: str | None = None
    scheduled_at: str | None = None
    started_at: str | None = None
    completed_at: str | None = None
    notes: str | None = None

    def __post_init__(self) -> None:
        """Validate instance data."""
        validate_local_date(self.date)
        if self.start_time is not None:
            validate_time_of_day(self.start_time)
        if self.status not in SESSION_STATUSES:
            raise ValueError(f"Invalid status: {self.status}")

    @property
    def exercises(self) -> list[SessionExercise]:
        """Exercises this instance executes (from the snapshot)."""
        return self.template_snapshot.exercises


@dataclass
class SetProgress:
    """
    One performed set.

    Only the value matching the exercise unit is populated.
    """

    set_number: int  # 1-based
    completed: bool = False
    reps: int | None = None
    weight: float | None = None
    time_seconds: int | None = None
    steps: int | None = None
    completed_at: str | None = None
    rest_timer_used: bool = False

    def __post_init__(self) -> None:
        """Validate set data."""
        if self.set_number < 1:
            raise ValueError("set_number must be at least 1")
        for name in ("reps", "weight", "time_seconds", "steps"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValueError(f"{name} must be non-negative")

    @property
    def has_data(self) -> bool:
        """True if any performed value was entered."""
        return any(
            v is not None for v in (self.reps, self.weight, self.time_seconds, self.steps)
        )


@dataclass
class WorkoutProgress:
    """
    Actual performance for one exercise within one session instance.

    At most one record exists per (session_id, exercise_id).
    """

    session_id: str
    exercise_id: str
    sets: list[SetProgress] = field(default_factory=list)
    started_at: str | None = None
    completed_at: str | None = None
    notes: str | None = None

    def __post_init__(self) -> None:
        """Validate set numbering."""
        numbers = [s.set_number for s in self.sets]
        if len(numbers) != len(set(numbers)):
            raise ValueError(
                f"Duplicate set numbers in progress for exercise {self.exercise_id}"
            )

    def get_set(self, set_number: int) -> SetProgress | None:
        """Return the set with the given 1-based number, if recorded."""
        for s in self.sets:
            if s.set_number == set_number:
                return s
        return None


@dataclass
class TimerState:
    """
    Persisted timer snapshot used to resume after a reload.

    ``start_time`` is epoch seconds at which the timer would have read its
    initial value; ``duration`` is set for rest timers only.  A paused
    timer keeps its displayed value in ``paused_seconds``.
    """

    type: TimerType
    start_time: float
    is_running: bool
    duration: int | None = None
    paused_seconds: int | None = None

    def __post_init__(self) -> None:
        if self.type not in TIMER_TYPES:
            raise ValueError(f"Invalid timer type: {self.type}")
        if self.type == "rest" and self.duration is None:
            raise ValueError("rest timers need a duration")


@dataclass
class ActiveWorkoutState:
    """Singleton record describing the workout currently on screen."""

    session_id: str
    started_at: str
    current_exercise_index: int = 0
    current_set_index: int = 0
    timer_state: TimerState | None = None

    def __post_init__(self) -> None:
        if self.current_exercise_index < 0 or self.current_set_index < 0:
            raise ValueError("cursor indexes must be non-negative")


@dataclass
class SessionProgress:
    """Completion summary for a list of exercises."""

    completed_exercises: int
    total_exercises: int
    completed_sets: int
    total_sets: int
    percentage: int
