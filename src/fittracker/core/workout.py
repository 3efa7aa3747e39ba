"""
Workout execution controller.

WorkoutSession drives one session instance through

    not_started -> started -> (sets of each exercise) -> finished

keeping a (exercise index, set index) cursor, the per-exercise progress
records and the rest/stopwatch timer.  Every change while started is
written to the active-workout record so that a later WorkoutSession for
the same instance resumes where this one stopped.
"""

import functools
import logging
import threading
import time
from collections.abc import Callable
from typing import Any, Literal, Protocol

from . import progress as set_rules
from .config import (
    DEFAULT_INPUT_REPS,
    DEFAULT_INPUT_SECONDS,
    DEFAULT_INPUT_STEPS,
    DEFAULT_REST_SECONDS,
)
from .estimators import (
    calculate_session_progress,
    get_next_incomplete_set,
    is_exercise_completed,
)
from .models import (
    ActiveWorkoutState,
    SessionExercise,
    SessionInstance,
    SessionProgress,
    WorkoutProgress,
)
from .timer import RepeatingTicker, WorkoutTimer

logger = logging.getLogger(__name__)

WorkoutPhase = Literal["not_started", "started", "finished"]


class WorkoutError(RuntimeError):
    """Raised when an operation does not fit the current workout state."""

    pass


class Ticker(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...


TickerFactory = Callable[[Callable[[], None]], Ticker]


def _default_ticker_factory(callback: Callable[[], None]) -> Ticker:
    return RepeatingTicker(callback)


def _synchronized(method):
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)

    return wrapper


class WorkoutSession:
    """
    Controller for one live workout.

    Args:
        store: SessionStore holding instances, progress and the active record
        session_id: Instance to execute
        ticker_factory: Builds the repeating tick handle for the timer
        default_rest_seconds: Rest length for exercises without rest_seconds
        clock: Epoch-seconds source used for timer snapshots
    """

    def __init__(
        self,
        store: Any,
        session_id: str,
        *,
        ticker_factory: TickerFactory | None = None,
        default_rest_seconds: int = DEFAULT_REST_SECONDS,
        clock: Callable[[], float] = time.time,
        on_timer_finished: Callable[[], None] | None = None,
    ):
        self.store = store
        self.session_id = session_id
        self.ticker_factory = ticker_factory or _default_ticker_factory
        self.default_rest_seconds = default_rest_seconds
        self.clock = clock
        self.on_timer_finished = on_timer_finished

        self.phase: WorkoutPhase = "not_started"
        self.instance: SessionInstance | None = None
        self.progress_list: list[WorkoutProgress] = []
        self.exercise_index = 0
        self.set_index = 0
        self.started_at: str | None = None
        self.timer = WorkoutTimer()
        self._ticker: Ticker | None = None
        self._ticker_generation = 0
        self._lock = threading.RLock()

    # -------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------

    @_synchronized
    def load(self) -> "WorkoutSession":
        """
        Read the instance and its progress, resuming if possible.

        An in-progress instance resumes from the active-workout record when
        that record belongs to it, otherwise from the first unfinished set.

        Raises:
            NotFoundError: If the instance does not exist
            WorkoutError: If the instance was skipped
        """
        instance = self.store.require_session_instance(self.session_id)
        if instance.status == "skipped":
            raise WorkoutError(f"Session {self.session_id} was skipped")

        self.instance = instance
        self.progress_list = self.store.get_workout_progress(self.session_id)

        if instance.status == "completed":
            self.phase = "finished"
            return self
        if instance.status == "scheduled":
            self.phase = "not_started"
            return self

        self.phase = "started"
        active = self.store.load_active_workout_state()
        if active is not None and active.session_id == self.session_id:
            self.started_at = active.started_at
            self.exercise_index = min(active.current_exercise_index, max(len(self.exercises) - 1, 0))
            self.set_index = active.current_set_index
            self.timer = WorkoutTimer.from_state(active.timer_state, self.clock())
            if self.timer.is_running:
                self._start_ticker()
            logger.debug("Workout resumed: %s", self.session_id)
        else:
            self.started_at = instance.started_at or self.store.clock()
            self._move_to_first_unfinished()
            self._save_state()
        return self

    def _move_to_first_unfinished(self) -> None:
        for i, exercise in enumerate(self.exercises):
            progress = self._progress_for(exercise)
            if not is_exercise_completed(exercise, progress):
                self.exercise_index = i
                self.set_index = get_next_incomplete_set(exercise, progress) - 1
                return
        self.exercise_index = max(len(self.exercises) - 1, 0)
        self.set_index = 0

    # -------------------------------------------------------------------
    # Read-only views
    # -------------------------------------------------------------------

    @property
    def exercises(self) -> list[SessionExercise]:
        if self.instance is None:
            return []
        return self.instance.exercises

    @property
    def current_exercise(self) -> SessionExercise | None:
        if 0 <= self.exercise_index < len(self.exercises):
            return self.exercises[self.exercise_index]
        return None

    @property
    def summary(self) -> SessionProgress:
        return calculate_session_progress(self.exercises, self.progress_list)

    def _progress_for(self, exercise: SessionExercise) -> WorkoutProgress | None:
        for p in self.progress_list:
            if p.exercise_id == exercise.id:
                return p
        return None

    def default_set_inputs(self) -> dict[str, float | int | None]:
        """
        Pre-filled values for the current set.

        Values already entered on the set win; otherwise the prescription
        lower bound for the unit and the template weight are used.
        """
        exercise = self.current_exercise
        if exercise is None:
            return {}

        progress = self._progress_for(exercise)
        existing = progress.get_set(self.set_index + 1) if progress else None

        if exercise.unit == "seconds":
            key = "time_seconds"
            fallback = exercise.time_seconds_min or DEFAULT_INPUT_SECONDS
        elif exercise.unit == "steps":
            key = "steps"
            fallback = exercise.steps_count or DEFAULT_INPUT_STEPS
        else:
            key = "reps"
            fallback = exercise.reps_min or DEFAULT_INPUT_REPS

        value = getattr(existing, key) if existing else None
        weight = existing.weight if existing and existing.weight is not None else exercise.weight
        return {key: value if value is not None else fallback, "weight": weight}

    # -------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------

    def _require_loaded(self) -> SessionInstance:
        if self.instance is None:
            raise WorkoutError("Workout not loaded")
        return self.instance

    @_synchronized
    def start(self) -> None:
        """Move a scheduled instance to in_progress; no-op once started."""
        instance = self._require_loaded()
        if self.phase == "finished":
            raise WorkoutError("Workout already finished")
        if self.phase == "started":
            return
        if not self.exercises:
            raise WorkoutError("Session has no exercises")

        state = self.store.start_workout_session(instance)
        self.instance = self.store.require_session_instance(self.session_id)
        self.started_at = state.started_at
        self.exercise_index = 0
        self.set_index = 0
        self.phase = "started"
        logger.info("Workout started: %s", self.session_id)

    @_synchronized
    def complete_set(
        self,
        *,
        reps: int | None = None,
        weight: float | None = None,
        time_seconds: int | None = None,
        steps: int | None = None,
    ) -> WorkoutProgress:
        """
        Complete the set under the cursor and advance.

        Only the value matching the exercise unit is recorded, and weight
        only when positive.  Completing the last set of the last exercise
        finishes the workout.

        Returns:
            The saved progress record for the exercise
        """
        if self.phase == "finished":
            raise WorkoutError("Workout already finished")
        if self.phase == "not_started":
            self.start()

        exercise = self.current_exercise
        if exercise is None:
            raise WorkoutError("No current exercise")

        set_number = self.set_index + 1
        values: dict[str, Any] = {}
        if exercise.unit == "seconds":
            values["time_seconds"] = time_seconds
        elif exercise.unit == "steps":
            values["steps"] = steps
        else:
            values["reps"] = reps
        if weight is not None and weight > 0:
            values["weight"] = weight

        now = self.store.clock()
        progress = self._progress_for(exercise) or set_rules.new_workout_progress(
            self.session_id, exercise.id, now
        )
        progress = set_rules.ensure_sets(progress, set_number)
        progress = set_rules.mark_set_completed(
            progress,
            set_number,
            now,
            rest_timer_used=self.timer.timer_type == "rest",
            **values,
        )
        saved = self.store.save_workout_progress(progress)
        self.progress_list = [p for p in self.progress_list if p.exercise_id != exercise.id]
        self.progress_list.append(saved)
        logger.debug("Set %d of %s completed", set_number, exercise.name)

        if self.set_index < exercise.sets - 1:
            self.set_index += 1
            self._save_state()
        elif self.exercise_index < len(self.exercises) - 1:
            self.next_exercise()
        else:
            self.finish()
        return saved

    @_synchronized
    def next_exercise(self) -> None:
        """Advance to the next exercise; the set cursor resets and the timer stops."""
        self._require_started()
        if self.exercise_index >= len(self.exercises) - 1:
            return
        self.exercise_index += 1
        self.set_index = 0
        self.stop_timer()

    @_synchronized
    def previous_exercise(self) -> None:
        """
        Go back one exercise.

        The set cursor resets to 0 rather than returning to the set last
        reached on that exercise.
        """
        self._require_started()
        if self.exercise_index == 0:
            return
        self.exercise_index -= 1
        self.set_index = 0
        self.stop_timer()

    @_synchronized
    def finish(self) -> None:
        """Mark the instance completed and drop the active-workout record."""
        self._require_loaded()
        self._cancel_ticker()
        self.timer.stop()
        self.instance = self.store.complete_workout_session(self.session_id)
        self.phase = "finished"
        logger.info("Workout finished: %s", self.session_id)

    @_synchronized
    def exit(self) -> None:
        """Leave the workout without finishing it; progress stays saved."""
        self._cancel_ticker()
        self.timer.stop()
        self.store.clear_active_workout_state()
        self.phase = "not_started"
        logger.info("Workout exited: %s", self.session_id)

    def _require_started(self) -> None:
        if self.phase != "started":
            raise WorkoutError(f"Workout is {self.phase.replace('_', ' ')}")

    # -------------------------------------------------------------------
    # Timer
    # -------------------------------------------------------------------

    @_synchronized
    def start_rest_timer(self) -> int:
        """Start the rest countdown for the current exercise; returns its length."""
        self._require_started()
        exercise = self.current_exercise
        duration = self.default_rest_seconds
        if exercise is not None and exercise.rest_seconds is not None:
            duration = exercise.rest_seconds
        self._cancel_ticker()
        self.timer.start_rest(duration)
        self._start_ticker()
        self._save_state()
        return duration

    @_synchronized
    def start_stopwatch(self) -> None:
        self._require_started()
        self._cancel_ticker()
        self.timer.start_stopwatch()
        self._start_ticker()
        self._save_state()

    @_synchronized
    def stop_timer(self) -> None:
        self._cancel_ticker()
        self.timer.stop()
        self._save_state()

    @_synchronized
    def toggle_timer(self) -> None:
        """Pause or resume the active timer."""
        if self.timer.timer_type is None:
            return
        self.timer.toggle()
        if self.timer.is_running:
            self._start_ticker()
        else:
            self._cancel_ticker()
        self._save_state()

    @_synchronized
    def reset_timer(self) -> None:
        """Rewind the active timer and pause it."""
        exercise = self.current_exercise
        rest = exercise.rest_seconds if exercise is not None else None
        self._cancel_ticker()
        self.timer.reset(rest if rest is not None else self.default_rest_seconds)
        self._save_state()

    def tick(self) -> None:
        """Advance the timer one second."""
        with self._lock:
            finished = self._advance_timer()
        if finished and self.on_timer_finished is not None:
            self.on_timer_finished()

    def _on_tick(self, generation: int) -> None:
        # Drop ticks from a ticker cancelled while this call waited for the lock.
        with self._lock:
            if generation != self._ticker_generation:
                return
            finished = self._advance_timer()
        if finished and self.on_timer_finished is not None:
            self.on_timer_finished()

    def _advance_timer(self) -> bool:
        finished = self.timer.tick()
        if finished:
            self._cancel_ticker()
            logger.debug("Rest timer finished")
        self._save_state()
        return finished

    @_synchronized
    def detach(self) -> None:
        """
        Stop ticking in this process without touching the timer.

        The saved snapshot is wall-clock based, so a running timer keeps
        running for the next WorkoutSession that loads this instance.
        """
        self._cancel_ticker()

    def _start_ticker(self) -> None:
        if self._ticker is not None:
            return
        generation = self._ticker_generation
        self._ticker = self.ticker_factory(lambda: self._on_tick(generation))
        self._ticker.start()

    def _cancel_ticker(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None
            self._ticker_generation += 1

    # -------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------

    def _save_state(self) -> None:
        if self.phase != "started" or self.started_at is None:
            return
        self.store.save_active_workout_state(
            ActiveWorkoutState(
                session_id=self.session_id,
                started_at=self.started_at,
                current_exercise_index=self.exercise_index,
                current_set_index=self.set_index,
                timer_state=self.timer.to_state(self.clock()),
            )
        )
