"""
Set-list mutation rules for WorkoutProgress.

Every function returns a new WorkoutProgress and leaves its input
untouched, so callers can replace the record in their in-memory list and
persist it in one step.

Rules:
- touching set N backfills missing sets 1..N-1 with empty placeholders
- editing a completed set's values un-completes it
- removing a set renumbers the remaining ones 1..n
"""

import copy
from dataclasses import replace

from .config import MAX_SETS_PER_EXERCISE
from .models import SessionExercise, SetProgress, Unit, WorkoutProgress

_UNIT_FIELD: dict[str, str] = {
    "reps": "reps",
    "seconds": "time_seconds",
    "steps": "steps",
}


def new_workout_progress(session_id: str, exercise_id: str, now: str) -> WorkoutProgress:
    """Empty progress record for one exercise of one session."""
    return WorkoutProgress(session_id=session_id, exercise_id=exercise_id, sets=[], started_at=now)


def _copy(progress: WorkoutProgress) -> WorkoutProgress:
    return replace(progress, sets=copy.deepcopy(progress.sets))


def _backfill(sets: list[SetProgress], up_to: int) -> list[SetProgress]:
    present = {s.set_number for s in sets}
    filled = list(sets)
    for n in range(1, up_to + 1):
        if n not in present:
            filled.append(SetProgress(set_number=n))
    filled.sort(key=lambda s: s.set_number)
    return filled


def ensure_sets(progress: WorkoutProgress, up_to: int) -> WorkoutProgress:
    """Return a copy holding set entries 1..up_to (placeholders where missing)."""
    updated = _copy(progress)
    updated.sets = _backfill(updated.sets, up_to)
    return updated


def _with_set(progress: WorkoutProgress, set_number: int) -> tuple[WorkoutProgress, SetProgress]:
    """Backfilled copy of ``progress`` plus its entry for ``set_number``."""
    if set_number < 1:
        raise ValueError(f"Set number must be 1 or more, got {set_number}")
    updated = ensure_sets(progress, set_number)
    current = updated.get_set(set_number)
    if current is None:
        raise ValueError(f"Set {set_number} missing from progress for {progress.exercise_id}")
    return updated, current


def _replace_set(progress: WorkoutProgress, set_number: int, **changes) -> WorkoutProgress:
    updated, _ = _with_set(progress, set_number)
    updated.sets = [
        replace(s, **changes) if s.set_number == set_number else s for s in updated.sets
    ]
    return updated


def mark_set_completed(
    progress: WorkoutProgress,
    set_number: int,
    now: str,
    *,
    reps: int | None = None,
    weight: float | None = None,
    time_seconds: int | None = None,
    steps: int | None = None,
    rest_timer_used: bool = False,
) -> WorkoutProgress:
    """Mark one set completed with the values actually performed."""
    return _replace_set(
        progress,
        set_number,
        completed=True,
        completed_at=now,
        reps=reps,
        weight=weight,
        time_seconds=time_seconds,
        steps=steps,
        rest_timer_used=rest_timer_used,
    )


def update_set_values(
    progress: WorkoutProgress,
    set_number: int,
    unit: Unit,
    value: int,
    weight: float,
) -> WorkoutProgress:
    """
    Edit a set from the set list.

    ``value`` is written to the field matching ``unit``; ``weight`` of 0 or
    less clears the weight.  If the set was completed and anything changed,
    it is un-completed: a changed value invalidates the prior completion.
    """
    updated, current = _with_set(progress, set_number)

    new_values = {
        "reps": current.reps,
        "time_seconds": current.time_seconds,
        "steps": current.steps,
    }
    new_values[_UNIT_FIELD[unit]] = value
    new_weight = weight if weight > 0 else None

    changed = new_weight != current.weight or any(
        new_values[k] != getattr(current, k) for k in new_values
    )
    reset = current.completed and changed

    return _replace_set(
        updated,
        set_number,
        weight=new_weight,
        completed=False if reset else current.completed,
        completed_at=None if reset else current.completed_at,
        **new_values,
    )


def toggle_set_complete(progress: WorkoutProgress, set_number: int, now: str) -> WorkoutProgress:
    """Flip a set's completed flag, stamping or clearing ``completed_at``."""
    updated, current = _with_set(progress, set_number)
    done = not current.completed
    return _replace_set(updated, set_number, completed=done, completed_at=now if done else None)


def remove_set(progress: WorkoutProgress, exercise: SessionExercise, set_number: int) -> WorkoutProgress:
    """
    Drop a set and renumber the rest 1..n.

    Raises:
        ValueError: If only one set would remain on screen
    """
    if max(exercise.sets, len(progress.sets)) <= 1:
        raise ValueError("Cannot remove the last set. At least one set is required.")

    kept = [s for s in copy.deepcopy(progress.sets) if s.set_number != set_number]
    kept.sort(key=lambda s: s.set_number)
    return replace(
        progress,
        sets=[replace(s, set_number=i) for i, s in enumerate(kept, 1)],
    )


def add_set(progress: WorkoutProgress, limit: int = MAX_SETS_PER_EXERCISE) -> WorkoutProgress:
    """
    Append an empty set after the highest recorded set number.

    Raises:
        ValueError: If the record already holds ``limit`` sets
    """
    if len(progress.sets) >= limit:
        raise ValueError(f"An exercise can have at most {limit} sets")
    next_number = max((s.set_number for s in progress.sets), default=0) + 1
    updated = _copy(progress)
    updated.sets.append(SetProgress(set_number=next_number))
    return updated
