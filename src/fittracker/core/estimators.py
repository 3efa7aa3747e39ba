"""
Derived statistics over exercises and recorded progress.

Pure functions only: session duration estimate, completion summaries,
per-set status and the muscle-group rest heuristic.
"""

import math
from collections.abc import Iterable

from .config import (
    COMPOUND_GROUPS,
    CONDITIONING_GROUPS,
    DEFAULT_REST_SECONDS,
    HEAVY_SETS_THRESHOLD,
    ISOLATION_GROUPS,
    REPS_FALLBACK,
    REPS_SET_MINUTES,
    REPS_SET_MINUTES_FLOOR,
    REST_COMPOUND_HEAVY_SECONDS,
    REST_COMPOUND_SECONDS,
    REST_CONDITIONING_SECONDS,
    REST_DEFAULT_SECONDS,
    REST_ISOLATION_SECONDS,
    STEPS_SET_MINUTES,
    TIMED_SET_FALLBACK_SECONDS,
    TIMED_SET_SETUP_SECONDS,
)
from .models import (
    SessionExercise,
    SessionInstance,
    SessionProgress,
    SetStatus,
    WorkoutProgress,
)


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (not banker's rounding)."""
    return int(math.floor(value + 0.5))


def calculate_rest_time(muscle_group: str, sets: int) -> int:
    """
    Rest seconds between sets from the muscle group text.

    Three tiers: compound groups (chest/back/legs) get the longest rest,
    longer still with many sets; isolation groups get medium rest;
    conditioning/core groups get the shortest.  Matching is by substring,
    first tier wins, so "Chest + Triceps" is compound.
    """
    group = (muscle_group or "").lower()

    if any(k in group for k in COMPOUND_GROUPS):
        return REST_COMPOUND_HEAVY_SECONDS if sets >= HEAVY_SETS_THRESHOLD else REST_COMPOUND_SECONDS
    if any(k in group for k in ISOLATION_GROUPS):
        return REST_ISOLATION_SECONDS
    if any(k in group for k in CONDITIONING_GROUPS):
        return REST_CONDITIONING_SECONDS
    return REST_DEFAULT_SECONDS


def _average(lo: int | None, hi: int | None, fallback: float) -> float:
    if lo and hi:
        return (lo + hi) / 2
    return lo or fallback


def estimate_set_minutes(exercise: SessionExercise) -> float:
    """Working time for one set of the exercise, in minutes."""
    if exercise.unit == "seconds":
        avg = _average(exercise.time_seconds_min, exercise.time_seconds_max, TIMED_SET_FALLBACK_SECONDS)
        return (avg + TIMED_SET_SETUP_SECONDS) / 60
    if exercise.unit == "steps":
        return STEPS_SET_MINUTES

    avg_reps = _average(exercise.reps_min, exercise.reps_max, REPS_FALLBACK)
    for threshold, minutes in REPS_SET_MINUTES:
        if avg_reps > threshold:
            return minutes
    return REPS_SET_MINUTES_FLOOR


def estimate_session_duration(exercises: Iterable[SessionExercise]) -> int:
    """
    Estimated session length in whole minutes.

    Per exercise: sets × set_time + (sets − 1) × rest.  Rest only falls
    between sets of the same exercise, not after the last one.
    """
    total = 0.0
    for exercise in exercises:
        rest_seconds = (
            exercise.rest_seconds if exercise.rest_seconds is not None else DEFAULT_REST_SECONDS
        )
        total += exercise.sets * estimate_set_minutes(exercise)
        total += (exercise.sets - 1) * (rest_seconds / 60)
    return round_half_up(total)


def calculate_completed_sets(progress: WorkoutProgress | None) -> int:
    """Number of sets marked completed in a progress record."""
    if progress is None:
        return 0
    return sum(1 for s in progress.sets if s.completed)


def is_exercise_completed(exercise: SessionExercise, progress: WorkoutProgress | None) -> bool:
    """True once at least ``exercise.sets`` sets are completed."""
    if progress is None:
        return False
    return calculate_completed_sets(progress) >= exercise.sets


def get_next_incomplete_set(exercise: SessionExercise, progress: WorkoutProgress | None) -> int:
    """1-based number of the first set not yet completed (last set if all are)."""
    if progress is None:
        return 1
    for set_number in range(1, exercise.sets + 1):
        s = progress.get_set(set_number)
        if s is None or not s.completed:
            return set_number
    return exercise.sets


def get_set_status(progress: WorkoutProgress | None, set_number: int) -> SetStatus:
    """Status of one set: completed, in_progress (values entered) or not_started."""
    if progress is None:
        return "not_started"
    s = progress.get_set(set_number)
    if s is None:
        return "not_started"
    if s.completed:
        return "completed"
    return "in_progress" if s.has_data else "not_started"


def get_all_sets_status(exercise: SessionExercise, progress: WorkoutProgress | None) -> list[SetStatus]:
    """Status for each prescribed set of the exercise, in order."""
    return [get_set_status(progress, n) for n in range(1, exercise.sets + 1)]


def get_completion_percentage(exercise: SessionExercise, progress: WorkoutProgress | None) -> int:
    """Completed sets as a percentage of prescribed sets (may exceed 100)."""
    if progress is None:
        return 0
    return round_half_up(100 * calculate_completed_sets(progress) / exercise.sets)


def _find_progress(progress_list: Iterable[WorkoutProgress], exercise_id: str) -> WorkoutProgress | None:
    for p in progress_list:
        if p.exercise_id == exercise_id:
            return p
    return None


def calculate_session_progress(
    exercises: list[SessionExercise],
    progress_list: list[WorkoutProgress],
) -> SessionProgress:
    """
    Completion summary across a session's exercises.

    ``progress_list`` is expected to hold the records of a single session;
    they are matched to exercises by ``exercise_id``.
    """
    total_sets = sum(ex.sets for ex in exercises)
    completed_sets = 0
    completed_exercises = 0

    for exercise in exercises:
        done = calculate_completed_sets(_find_progress(progress_list, exercise.id))
        completed_sets += done
        if done >= exercise.sets:
            completed_exercises += 1

    percentage = round_half_up(100 * completed_sets / total_sets) if total_sets > 0 else 0

    return SessionProgress(
        completed_exercises=completed_exercises,
        total_exercises=len(exercises),
        completed_sets=completed_sets,
        total_sets=total_sets,
        percentage=percentage,
    )


def calculate_instance_progress(
    instance: SessionInstance, progress_list: list[WorkoutProgress]
) -> SessionProgress:
    """calculate_session_progress over an instance's snapshot exercises."""
    return calculate_session_progress(instance.exercises, progress_list)


def is_instance_completed(instance: SessionInstance, progress_list: list[WorkoutProgress]) -> bool:
    """True when every snapshot exercise has all its sets completed."""
    summary = calculate_instance_progress(instance, progress_list)
    return summary.completed_exercises >= summary.total_exercises


def get_instance_duration(instance: SessionInstance) -> int:
    """Snapshot duration estimate, computed from the exercises when absent."""
    snapshot = instance.template_snapshot
    return snapshot.estimated_duration_minutes or estimate_session_duration(snapshot.exercises)
