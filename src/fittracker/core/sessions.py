"""
Template and instance operations.

Pure functions that build, snapshot and transition the session data model.
Persistence lives in ``fittracker.io.session_store``; everything here takes
the current time as an argument so the rules can be tested in isolation.
"""

import copy
import uuid
from dataclasses import replace

from .models import (
    SESSION_STATUSES,
    SessionExercise,
    SessionInstance,
    SessionStatus,
    SessionTemplate,
    TemplateSnapshot,
    validate_local_date,
    validate_time_of_day,
)

# Lifecycle: scheduled -> in_progress -> completed, scheduled/in_progress -> skipped.
# Re-applying the current status is a no-op.  Only reschedule() moves backwards.
_TRANSITIONS: dict[str, frozenset[str]] = {
    "scheduled": frozenset({"in_progress", "skipped"}),
    "in_progress": frozenset({"completed", "skipped"}),
    "completed": frozenset(),
    "skipped": frozenset(),
}


class InvalidTransitionError(ValueError):
    """Raised when a status change violates the instance lifecycle."""

    pass


def generate_id() -> str:
    """Opaque unique id for templates, exercises and instances."""
    return uuid.uuid4().hex


def stamp_template(template: SessionTemplate, now: str) -> SessionTemplate:
    """
    Return the record to store for a template save.

    New templates (no id) get a fresh id and ``created_at = updated_at = now``.
    Existing ones keep id and ``created_at`` and always refresh ``updated_at``.
    """
    if template.id is None:
        return replace(template, id=generate_id(), created_at=now, updated_at=now)
    return replace(template, created_at=template.created_at or now, updated_at=now)


def snapshot_template(template: SessionTemplate) -> TemplateSnapshot:
    """Deep copy of the executable part of a template."""
    return TemplateSnapshot(
        name=template.name,
        description=template.description,
        exercises=copy.deepcopy(template.exercises),
        estimated_duration_minutes=template.estimated_duration_minutes,
        tags=list(template.tags),
    )


def build_session_instance(
    template: SessionTemplate,
    date: str,
    now: str,
    start_time: str | None = None,
) -> SessionInstance:
    """
    Schedule a template onto a date.

    This is the only path from template data to instance data: the
    snapshot is a deep copy, so later edits to ``template`` never reach
    the instance.
    """
    if template.id is None:
        raise ValueError("Template must be saved before it can be scheduled")
    return SessionInstance(
        id=generate_id(),
        template_id=template.id,
        template_snapshot=snapshot_template(template),
        date=date,
        start_time=start_time,
        status="scheduled",
        scheduled_at=now,
    )


def transition_status(instance: SessionInstance, status: SessionStatus, now: str) -> SessionInstance:
    """
    Return a copy of ``instance`` moved to ``status``.

    Stamps ``started_at`` on the first move to in_progress and
    ``completed_at`` on completion.

    Raises:
        InvalidTransitionError: If the lifecycle forbids the move
    """
    if status not in SESSION_STATUSES:
        raise InvalidTransitionError(f"Invalid status: {status}")
    if status == instance.status:
        return instance
    if status not in _TRANSITIONS[instance.status]:
        raise InvalidTransitionError(
            f"Cannot move session {instance.id} from {instance.status} to {status}"
        )

    updated = replace(instance, status=status)
    if status == "in_progress" and not instance.started_at:
        updated.started_at = now
    if status == "completed":
        updated.completed_at = now
    return updated


def reschedule(instance: SessionInstance, date: str, start_time: str | None = None) -> SessionInstance:
    """
    Move an instance to another date and put it back to scheduled.

    Raises:
        InvalidTransitionError: If the instance is already completed
    """
    if instance.status == "completed":
        raise InvalidTransitionError(f"Session {instance.id} is completed and cannot be rescheduled")
    validate_local_date(date)
    if start_time is not None:
        validate_time_of_day(start_time)
    return replace(
        instance,
        date=date,
        start_time=start_time if start_time is not None else instance.start_time,
        status="scheduled",
        started_at=None,
        completed_at=None,
    )


def validate_exercise_data(exercise: SessionExercise) -> list[str]:
    """Human-readable problems with an edited exercise (empty list if valid)."""
    errors: list[str] = []

    if not exercise.name.strip():
        errors.append("Exercise name is required")
    if exercise.sets < 1:
        errors.append("Sets must be at least 1")

    if exercise.unit == "reps":
        if exercise.reps_min is not None and exercise.reps_min < 1:
            errors.append("Minimum reps must be at least 1")
        if exercise.reps_min and exercise.reps_max and exercise.reps_max < exercise.reps_min:
            errors.append("Maximum reps must be greater than or equal to minimum reps")
    elif exercise.unit == "seconds":
        if exercise.time_seconds_min is not None and exercise.time_seconds_min < 1:
            errors.append("Minimum time must be at least 1 second")
        if (
            exercise.time_seconds_min
            and exercise.time_seconds_max
            and exercise.time_seconds_max < exercise.time_seconds_min
        ):
            errors.append("Maximum time must be greater than or equal to minimum time")
    elif exercise.unit == "steps":
        if exercise.steps_count is not None and exercise.steps_count < 1:
            errors.append("Steps count must be at least 1")

    if exercise.weight is not None and exercise.weight < 0:
        errors.append("Weight cannot be negative")
    if exercise.rest_seconds is not None and exercise.rest_seconds < 0:
        errors.append("Rest time cannot be negative")

    return errors
