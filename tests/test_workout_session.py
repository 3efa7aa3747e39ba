"""
Tests for the WorkoutSession controller: cursor advancement, completion,
timer ownership and resume from the active-workout record.

The repeating ticker is replaced by a fake so timer ticks are driven by
the test instead of wall-clock time.
"""

import tempfile
import time
from pathlib import Path

import pytest

from fittracker.core.models import SessionExercise, SessionTemplate
from fittracker.core.timer import RepeatingTicker
from fittracker.core.workout import WorkoutError, WorkoutSession
from fittracker.io.session_store import NotFoundError, SessionStore


class FakeTicker:
    def __init__(self, callback):
        self.callback = callback
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True


class FakeTickerFactory:
    def __init__(self):
        self.tickers: list[FakeTicker] = []

    def __call__(self, callback):
        ticker = FakeTicker(callback)
        self.tickers.append(ticker)
        return ticker

    @property
    def active(self) -> list[FakeTicker]:
        return [t for t in self.tickers if t.started and not t.cancelled]


@pytest.fixture
def store():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield SessionStore(Path(tmpdir))


@pytest.fixture
def session_id(store):
    template = store.save_session_template(
        SessionTemplate(
            name="Push",
            exercises=[
                SessionExercise(
                    id="bench", name="Bench Press", sets=3, reps_min=8, reps_max=12,
                    weight=80, muscle_group="Chest", rest_seconds=120,
                ),
                SessionExercise(
                    id="plank", name="Plank", sets=2, unit="seconds",
                    time_seconds_min=30, time_seconds_max=45, muscle_group="Core",
                ),
            ],
        )
    )
    return store.create_session_instance_from_template(template, "2026-03-02").id


def _schedule_single(store, **exercise_fields) -> str:
    """Schedule a one-exercise session and return its id."""
    template = store.save_session_template(
        SessionTemplate(name="Single", exercises=[SessionExercise(id="only", name="Squat", **exercise_fields)])
    )
    return store.create_session_instance_from_template(template, "2026-03-02").id


def _open(store, session_id, factory=None, now=1000.0, **kwargs) -> WorkoutSession:
    session = WorkoutSession(
        store,
        session_id,
        ticker_factory=factory or FakeTickerFactory(),
        clock=lambda: now,
        **kwargs,
    )
    return session.load()


class TestLoad:
    def test_unknown_session(self, store):
        with pytest.raises(NotFoundError):
            WorkoutSession(store, "missing").load()

    def test_scheduled_is_not_started(self, store, session_id):
        session = _open(store, session_id)
        assert session.phase == "not_started"
        assert session.current_exercise.id == "bench"
        assert store.load_active_workout_state() is None

    def test_skipped_session_refused(self, store, session_id):
        store.skip_session_instance(session_id)
        with pytest.raises(WorkoutError):
            _open(store, session_id)

    def test_start_marks_in_progress(self, store, session_id):
        session = _open(store, session_id)
        session.start()
        assert session.phase == "started"
        instance = store.require_session_instance(session_id)
        assert instance.status == "in_progress"
        assert instance.started_at is not None
        assert store.load_active_workout_state().session_id == session_id


class TestCompleteSet:
    def test_first_set_starts_workout(self, store, session_id):
        session = _open(store, session_id)
        saved = session.complete_set(reps=10, weight=80)

        assert session.phase == "started"
        assert store.require_session_instance(session_id).status == "in_progress"
        assert saved.get_set(1).completed
        assert (saved.get_set(1).reps, saved.get_set(1).weight) == (10, 80)
        assert session.set_index == 1

        active = store.load_active_workout_state()
        assert (active.current_exercise_index, active.current_set_index) == (0, 1)

    def test_progress_replaced_by_exercise(self, store, session_id):
        session = _open(store, session_id)
        session.complete_set(reps=10)
        session.complete_set(reps=9)
        assert len(session.progress_list) == 1
        assert [s.reps for s in session.progress_list[0].sets] == [10, 9]
        assert len(store.get_workout_progress(session_id)) == 1

    def test_only_unit_value_and_positive_weight_recorded(self, store, session_id):
        session = _open(store, session_id)
        for _ in range(3):
            session.complete_set(reps=10, weight=0)
        assert session.progress_list[0].get_set(1).weight is None

        saved = session.complete_set(reps=5, time_seconds=40, weight=10)
        s = saved.get_set(1)
        assert s.time_seconds == 40
        assert s.reps is None
        assert s.weight == 10

    def test_last_set_of_exercise_moves_on(self, store, session_id):
        session = _open(store, session_id)
        for _ in range(3):
            session.complete_set(reps=10)
        assert session.exercise_index == 1
        assert session.set_index == 0
        assert session.current_exercise.id == "plank"

    def test_last_set_of_last_exercise_completes_session(self, store, session_id):
        session = _open(store, session_id)
        for _ in range(3):
            session.complete_set(reps=10)
        session.complete_set(time_seconds=30)
        session.complete_set(time_seconds=30)

        assert session.phase == "finished"
        instance = store.require_session_instance(session_id)
        assert instance.status == "completed"
        assert instance.completed_at is not None
        assert store.load_active_workout_state() is None
        assert session.summary.percentage == 100

        with pytest.raises(WorkoutError):
            session.complete_set(reps=1)

    def test_rest_timer_usage_recorded(self, store, session_id):
        session = _open(store, session_id)
        session.complete_set(reps=10)
        session.start_rest_timer()
        saved = session.complete_set(reps=10)
        assert saved.get_set(2).rest_timer_used is True
        assert saved.get_set(1).rest_timer_used is False


class TestNavigation:
    def test_previous_exercise_resets_set_cursor(self, store, session_id):
        """Going back starts the exercise over at its first set, not the set last reached."""
        session = _open(store, session_id)
        session.complete_set(reps=10)
        session.complete_set(reps=10)
        assert session.set_index == 2

        session.next_exercise()
        session.complete_set(time_seconds=30)
        session.previous_exercise()

        assert session.exercise_index == 0
        assert session.set_index == 0

    def test_bounds(self, store, session_id):
        session = _open(store, session_id)
        session.start()
        session.previous_exercise()
        assert session.exercise_index == 0
        session.next_exercise()
        session.next_exercise()
        assert session.exercise_index == 1

    def test_navigation_requires_start(self, store, session_id):
        session = _open(store, session_id)
        with pytest.raises(WorkoutError):
            session.next_exercise()

    def test_default_set_inputs(self, store, session_id):
        session = _open(store, session_id)
        assert session.default_set_inputs() == {"reps": 8, "weight": 80}
        session.complete_set(reps=11, weight=82.5)
        assert session.default_set_inputs() == {"reps": 8, "weight": 80}
        session.next_exercise()
        session.previous_exercise()
        assert session.set_index == 0
        assert session.default_set_inputs() == {"reps": 11, "weight": 82.5}
        session.next_exercise()
        assert session.default_set_inputs() == {"time_seconds": 30, "weight": None}


class TestTimer:
    def test_rest_counts_down_and_stops(self, store, session_id):
        factory = FakeTickerFactory()
        finished = []
        session = _open(store, session_id, factory, on_timer_finished=lambda: finished.append(True))
        session.start()

        assert session.start_rest_timer() == 120
        assert len(factory.active) == 1
        ticker = factory.active[0]

        for _ in range(119):
            ticker.callback()
        assert session.timer.seconds == 1
        assert finished == []

        ticker.callback()
        assert session.timer.timer_type is None
        assert ticker.cancelled
        assert finished == [True]

    def test_default_rest_when_exercise_has_none(self, store, session_id):
        session = _open(store, session_id, default_rest_seconds=75)
        session.start()
        session.next_exercise()
        assert session.start_rest_timer() == 75

    def test_stopwatch_replaces_rest(self, store, session_id):
        factory = FakeTickerFactory()
        session = _open(store, session_id, factory)
        session.start()
        session.start_rest_timer()
        rest_ticker = factory.tickers[-1]

        session.start_stopwatch()
        assert rest_ticker.cancelled
        assert session.timer.timer_type == "stopwatch"
        assert session.timer.seconds == 0
        factory.active[0].callback()
        factory.active[0].callback()
        assert session.timer.seconds == 2

    def test_exercise_change_cancels_timer(self, store, session_id):
        factory = FakeTickerFactory()
        session = _open(store, session_id, factory)
        session.start()
        session.start_stopwatch()
        session.next_exercise()
        assert factory.active == []
        assert session.timer.timer_type is None

    def test_finish_cancels_timer(self, store, session_id):
        factory = FakeTickerFactory()
        session = _open(store, session_id, factory)
        session.start()
        session.start_rest_timer()
        session.finish()
        assert factory.active == []
        assert session.phase == "finished"

    def test_toggle_pauses_ticker(self, store, session_id):
        factory = FakeTickerFactory()
        session = _open(store, session_id, factory)
        session.start()
        session.start_rest_timer()
        session.toggle_timer()
        assert factory.active == []
        assert session.timer.is_running is False
        session.toggle_timer()
        assert len(factory.active) == 1

    def test_reset_rewinds_and_pauses(self, store, session_id):
        factory = FakeTickerFactory()
        session = _open(store, session_id, factory)
        session.start()
        session.start_rest_timer()
        factory.active[0].callback()
        session.reset_timer()
        assert session.timer.seconds == 120
        assert session.timer.is_running is False
        assert factory.active == []


class TestResume:
    def test_resume_cursor_and_running_rest(self, store, session_id):
        first = _open(store, session_id, now=1000.0)
        first.complete_set(reps=10)
        first.start_rest_timer()

        factory = FakeTickerFactory()
        second = _open(store, session_id, factory, now=1030.0)

        assert second.phase == "started"
        assert (second.exercise_index, second.set_index) == (0, 1)
        assert second.timer.timer_type == "rest"
        assert second.timer.seconds == 90
        assert len(factory.active) == 1

    def test_expired_rest_is_dropped(self, store, session_id):
        first = _open(store, session_id, now=1000.0)
        first.start()
        first.start_rest_timer()

        second = _open(store, session_id, now=2000.0)
        assert second.timer.timer_type is None

    def test_paused_timer_keeps_value(self, store, session_id):
        factory = FakeTickerFactory()
        first = _open(store, session_id, factory, now=1000.0)
        first.start()
        first.start_stopwatch()
        for _ in range(5):
            factory.active[0].callback()
        first.toggle_timer()

        second = _open(store, session_id, now=5000.0)
        assert second.timer.timer_type == "stopwatch"
        assert second.timer.seconds == 5
        assert second.timer.is_running is False

    def test_without_active_record_uses_progress(self, store, session_id):
        first = _open(store, session_id)
        for _ in range(3):
            first.complete_set(reps=10)
        first.exit()
        assert store.load_active_workout_state() is None

        second = _open(store, session_id)
        assert second.phase == "started"
        assert (second.exercise_index, second.set_index) == (1, 0)
        assert store.load_active_workout_state().session_id == session_id

    def test_detach_leaves_timer_running(self, store, session_id):
        factory = FakeTickerFactory()
        first = _open(store, session_id, factory, now=1000.0)
        first.start()
        first.start_rest_timer()
        first.detach()
        assert factory.active == []
        assert first.timer.is_running is True

        second = _open(store, session_id, now=1010.0)
        assert (second.timer.timer_type, second.timer.seconds) == ("rest", 110)


class TestTimerEdges:
    def test_reset_keeps_zero_rest(self, store):
        session_id = _schedule_single(store, sets=3, reps_min=10, reps_max=10, rest_seconds=0)
        session = _open(store, session_id, default_rest_seconds=90)
        session.start()
        assert session.start_rest_timer() == 0
        session.reset_timer()
        assert (session.timer.timer_type, session.timer.seconds) == ("rest", 0)

    def test_tick_from_cancelled_ticker_is_ignored(self, store, session_id):
        factory = FakeTickerFactory()
        session = _open(store, session_id, factory)
        session.start()
        session.start_stopwatch()
        late = factory.active[0]
        session.stop_timer()
        session.start_stopwatch()

        late.callback()
        assert session.timer.seconds == 0
        factory.active[0].callback()
        assert session.timer.seconds == 1


class TestTickerThread:
    def test_ticks_and_set_completion_do_not_collide(self, store):
        session_id = _schedule_single(store, sets=10, reps_min=5, reps_max=5)
        session = WorkoutSession(
            store,
            session_id,
            ticker_factory=lambda callback: RepeatingTicker(callback, interval=0.0005),
        ).load()
        session.start()
        session.start_stopwatch()
        try:
            for _ in range(9):
                session.complete_set(reps=5)
                time.sleep(0.002)
        finally:
            session.detach()

        active = store.load_active_workout_state()
        assert (active.current_exercise_index, active.current_set_index) == (0, 9)
        assert active.timer_state.type == "stopwatch"
        progress = store.get_exercise_progress(session_id, "only")
        assert [s.set_number for s in progress.sets if s.completed] == list(range(1, 10))
        assert list(store.data_dir.glob("*.tmp")) == []
