"""
JSON serialization for the session data model.

Handles conversion between dataclasses and JSON-compatible dicts.  Stored
records are never trusted: every decoder checks types and required fields,
fills defaults for missing optional fields, and raises ValidationError
rather than handing back a half-built object.
"""

import json
from typing import Any

from ..core.models import (
    UNITS,
    ActiveWorkoutState,
    SessionExercise,
    SessionInstance,
    SessionTemplate,
    SetProgress,
    TemplateSnapshot,
    TimerState,
    WorkoutProgress,
)


class ValidationError(Exception):
    """Raised when data validation fails."""

    pass


def require_str(data: dict[str, Any], key: str) -> str:
    """
    Fetch a required non-empty string field.

    Raises:
        ValidationError: If the field is missing, not a string or blank
    """
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{key} must be a non-empty string, got {value!r}")
    return value


def optional_str(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string, got {value!r}")
    return value


def optional_int(data: dict[str, Any], key: str) -> int | None:
    """
    Fetch an optional integer field.

    Integral floats (e.g. 12.0) are accepted; booleans are not.

    Raises:
        ValidationError: If the value is present but not an integer
    """
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value != int(value):
        raise ValidationError(f"{key} must be an integer, got {value!r}")
    return int(value)


def optional_float(data: dict[str, Any], key: str) -> float | None:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{key} must be a number, got {value!r}")
    return float(value)


def require_list(data: dict[str, Any], key: str) -> list:
    """Fetch a list field; a missing field defaults to []."""
    value = data.get(key, [])
    if not isinstance(value, list):
        raise ValidationError(f"{key} must be a list, got {type(value).__name__}")
    return value


def _build(cls, **kwargs):
    """Construct a dataclass, turning __post_init__ errors into ValidationError."""
    try:
        return cls(**kwargs)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid {cls.__name__}: {e}") from e


def _expect_dict(data: Any, what: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise ValidationError(f"{what} must be an object, got {type(data).__name__}")
    return data


def _drop_none(d: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in d.items() if v is not None}


# ---------------------------------------------------------------------------
# Exercises and templates
# ---------------------------------------------------------------------------


def session_exercise_to_dict(exercise: SessionExercise) -> dict[str, Any]:
    """Convert SessionExercise to a dict, omitting unset optional fields."""
    return _drop_none({
        "id": exercise.id,
        "name": exercise.name,
        "sets": exercise.sets,
        "unit": exercise.unit,
        "per_side": exercise.per_side,
        "reps_min": exercise.reps_min,
        "reps_max": exercise.reps_max,
        "time_seconds_min": exercise.time_seconds_min,
        "time_seconds_max": exercise.time_seconds_max,
        "steps_count": exercise.steps_count,
        "weight": exercise.weight,
        "notes": exercise.notes,
        "form_guidance": exercise.form_guidance,
        "muscle_group": exercise.muscle_group,
        "main_muscle": exercise.main_muscle,
        "rest_seconds": exercise.rest_seconds,
    })


def dict_to_session_exercise(data: dict[str, Any]) -> SessionExercise:
    """
    Convert dict to SessionExercise.

    Raises:
        ValidationError: If data is invalid
    """
    data = _expect_dict(data, "exercise")
    unit = data.get("unit", "reps")
    if unit not in UNITS:
        raise ValidationError(f"Invalid unit: {unit!r}. Must be one of {UNITS}")
    sets = optional_int(data, "sets")
    if sets is None:
        raise ValidationError("sets is required")

    return _build(
        SessionExercise,
        id=require_str(data, "id"),
        name=require_str(data, "name"),
        sets=sets,
        unit=unit,
        per_side=bool(data.get("per_side", False)),
        reps_min=optional_int(data, "reps_min"),
        reps_max=optional_int(data, "reps_max"),
        time_seconds_min=optional_int(data, "time_seconds_min"),
        time_seconds_max=optional_int(data, "time_seconds_max"),
        steps_count=optional_int(data, "steps_count"),
        weight=optional_float(data, "weight"),
        notes=optional_str(data, "notes"),
        form_guidance=optional_str(data, "form_guidance"),
        muscle_group=optional_str(data, "muscle_group") or "",
        main_muscle=optional_str(data, "main_muscle") or "",
        rest_seconds=optional_int(data, "rest_seconds"),
    )


def _tags(data: dict[str, Any]) -> list[str]:
    tags = require_list(data, "tags")
    if not all(isinstance(t, str) for t in tags):
        raise ValidationError("tags must be a list of strings")
    return list(tags)


def session_template_to_dict(template: SessionTemplate) -> dict[str, Any]:
    """Convert SessionTemplate to a JSON-compatible dict."""
    return _drop_none({
        "id": template.id,
        "name": template.name,
        "description": template.description,
        "exercises": [session_exercise_to_dict(e) for e in template.exercises],
        "estimated_duration_minutes": template.estimated_duration_minutes,
        "tags": list(template.tags),
        "created_at": template.created_at,
        "updated_at": template.updated_at,
    })


def dict_to_session_template(data: dict[str, Any]) -> SessionTemplate:
    """
    Convert a stored dict to SessionTemplate.

    Stored templates must carry an id and timestamps.

    Raises:
        ValidationError: If data is invalid
    """
    data = _expect_dict(data, "template")
    return _build(
        SessionTemplate,
        id=require_str(data, "id"),
        name=require_str(data, "name"),
        description=optional_str(data, "description"),
        exercises=[dict_to_session_exercise(e) for e in require_list(data, "exercises")],
        estimated_duration_minutes=optional_int(data, "estimated_duration_minutes"),
        tags=_tags(data),
        created_at=require_str(data, "created_at"),
        updated_at=require_str(data, "updated_at"),
    )


# ---------------------------------------------------------------------------
# Instances
# ---------------------------------------------------------------------------


def template_snapshot_to_dict(snapshot: TemplateSnapshot) -> dict[str, Any]:
    return _drop_none({
        "name": snapshot.name,
        "description": snapshot.description,
        "exercises": [session_exercise_to_dict(e) for e in snapshot.exercises],
        "estimated_duration_minutes": snapshot.estimated_duration_minutes,
        "tags": list(snapshot.tags),
    })


def dict_to_template_snapshot(data: dict[str, Any]) -> TemplateSnapshot:
    data = _expect_dict(data, "template_snapshot")
    return _build(
        TemplateSnapshot,
        name=require_str(data, "name"),
        description=optional_str(data, "description"),
        exercises=[dict_to_session_exercise(e) for e in require_list(data, "exercises")],
        estimated_duration_minutes=optional_int(data, "estimated_duration_minutes"),
        tags=_tags(data),
    )


def session_instance_to_dict(instance: SessionInstance) -> dict[str, Any]:
    """Convert SessionInstance to a JSON-compatible dict."""
    return _drop_none({
        "id": instance.id,
        "template_id": instance.template_id,
        "template_snapshot": template_snapshot_to_dict(instance.template_snapshot),
        "date": instance.date,
        "start_time": instance.start_time,
        "status": instance.status,
        "scheduled_at": instance.scheduled_at,
        "started_at": instance.started_at,
        "completed_at": instance.completed_at,
        "notes": instance.notes,
    })


def dict_to_session_instance(data: dict[str, Any]) -> SessionInstance:
    """
    Convert a stored dict to SessionInstance.

    Raises:
        ValidationError: If data is invalid (including date/time format)
    """
    data = _expect_dict(data, "instance")
    return _build(
        SessionInstance,
        id=require_str(data, "id"),
        template_id=require_str(data, "template_id"),
        template_snapshot=dict_to_template_snapshot(data.get("template_snapshot")),
        date=require_str(data, "date"),
        start_time=optional_str(data, "start_time"),
        status=data.get("status", "scheduled"),
        scheduled_at=optional_str(data, "scheduled_at"),
        started_at=optional_str(data, "started_at"),
        completed_at=optional_str(data, "completed_at"),
        notes=optional_str(data, "notes"),
    )


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


def set_progress_to_dict(s: SetProgress) -> dict[str, Any]:
    d = _drop_none({
        "set_number": s.set_number,
        "reps": s.reps,
        "weight": s.weight,
        "time_seconds": s.time_seconds,
        "steps": s.steps,
        "completed_at": s.completed_at,
    })
    d["completed"] = s.completed
    d["rest_timer_used"] = s.rest_timer_used
    return d


def dict_to_set_progress(data: dict[str, Any]) -> SetProgress:
    data = _expect_dict(data, "set")
    set_number = optional_int(data, "set_number")
    if set_number is None:
        raise ValidationError("set_number is required")
    return _build(
        SetProgress,
        set_number=set_number,
        completed=bool(data.get("completed", False)),
        reps=optional_int(data, "reps"),
        weight=optional_float(data, "weight"),
        time_seconds=optional_int(data, "time_seconds"),
        steps=optional_int(data, "steps"),
        completed_at=optional_str(data, "completed_at"),
        rest_timer_used=bool(data.get("rest_timer_used", False)),
    )


def workout_progress_to_dict(progress: WorkoutProgress) -> dict[str, Any]:
    """Convert WorkoutProgress to a JSON-compatible dict."""
    return _drop_none({
        "session_id": progress.session_id,
        "exercise_id": progress.exercise_id,
        "sets": [set_progress_to_dict(s) for s in progress.sets],
        "started_at": progress.started_at,
        "completed_at": progress.completed_at,
        "notes": progress.notes,
    })


def dict_to_workout_progress(data: dict[str, Any]) -> WorkoutProgress:
    """
    Convert a stored dict to WorkoutProgress.

    Raises:
        ValidationError: If data is invalid or set numbers repeat
    """
    data = _expect_dict(data, "progress")
    return _build(
        WorkoutProgress,
        session_id=require_str(data, "session_id"),
        exercise_id=require_str(data, "exercise_id"),
        sets=[dict_to_set_progress(s) for s in require_list(data, "sets")],
        started_at=optional_str(data, "started_at"),
        completed_at=optional_str(data, "completed_at"),
        notes=optional_str(data, "notes"),
    )


# ---------------------------------------------------------------------------
# Active workout
# ---------------------------------------------------------------------------


def timer_state_to_dict(state: TimerState) -> dict[str, Any]:
    return _drop_none({
        "type": state.type,
        "start_time": state.start_time,
        "is_running": state.is_running,
        "duration": state.duration,
        "paused_seconds": state.paused_seconds,
    })


def dict_to_timer_state(data: dict[str, Any]) -> TimerState:
    data = _expect_dict(data, "timer_state")
    start_time = optional_float(data, "start_time")
    if start_time is None:
        raise ValidationError("start_time is required")
    return _build(
        TimerState,
        type=data.get("type"),
        start_time=start_time,
        is_running=bool(data.get("is_running", False)),
        duration=optional_int(data, "duration"),
        paused_seconds=optional_int(data, "paused_seconds"),
    )


def active_workout_to_dict(state: ActiveWorkoutState) -> dict[str, Any]:
    """Convert ActiveWorkoutState to a JSON-compatible dict."""
    d: dict[str, Any] = {
        "session_id": state.session_id,
        "current_exercise_index": state.current_exercise_index,
        "current_set_index": state.current_set_index,
        "started_at": state.started_at,
    }
    if state.timer_state is not None:
        d["timer_state"] = timer_state_to_dict(state.timer_state)
    return d


def dict_to_active_workout(data: dict[str, Any]) -> ActiveWorkoutState:
    """
    Convert a stored dict to ActiveWorkoutState.

    Raises:
        ValidationError: If data is invalid
    """
    data = _expect_dict(data, "active workout")
    timer = data.get("timer_state")
    return _build(
        ActiveWorkoutState,
        session_id=require_str(data, "session_id"),
        started_at=require_str(data, "started_at"),
        current_exercise_index=optional_int(data, "current_exercise_index") or 0,
        current_set_index=optional_int(data, "current_set_index") or 0,
        timer_state=dict_to_timer_state(timer) if timer is not None else None,
    )


def to_json(data: Any) -> str:
    """Serialize a dict/list produced by the *_to_dict helpers."""
    return json.dumps(data, indent=2, ensure_ascii=False)
