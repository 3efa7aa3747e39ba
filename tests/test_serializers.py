"""
Tests for dict <-> dataclass conversion of stored records.
"""

import pytest

from fittracker.core.models import SessionExercise, SetProgress, WorkoutProgress
from fittracker.io.serializers import (
    ValidationError,
    dict_to_active_workout,
    dict_to_session_exercise,
    dict_to_session_instance,
    dict_to_session_template,
    dict_to_workout_progress,
    optional_int,
    session_exercise_to_dict,
    workout_progress_to_dict,
)


def _exercise_dict(**overrides):
    data = {"id": "bench", "name": "Bench Press", "sets": 3, "reps_min": 8, "reps_max": 12}
    data.update(overrides)
    return data


class TestFieldHelpers:
    def test_optional_int_accepts_integral_float(self):
        assert optional_int({"n": 12.0}, "n") == 12
        assert optional_int({}, "n") is None

    @pytest.mark.parametrize("value", [True, "3", 2.5])
    def test_optional_int_rejects(self, value):
        with pytest.raises(ValidationError):
            optional_int({"n": value}, "n")


class TestExercise:
    def test_defaults_filled(self):
        ex = dict_to_session_exercise(_exercise_dict())
        assert ex.unit == "reps"
        assert ex.per_side is False
        assert ex.muscle_group == ""
        assert ex.rest_seconds is None

    def test_unset_fields_omitted(self):
        d = session_exercise_to_dict(SessionExercise(id="a", name="A", sets=1, reps_min=5, reps_max=5))
        assert "weight" not in d
        assert "time_seconds_min" not in d
        assert d["per_side"] is False

    @pytest.mark.parametrize(
        "overrides",
        [
            {"unit": "minutes"},
            {"sets": None},
            {"sets": 0},
            {"name": ""},
            {"reps_min": 12, "reps_max": 8},
            {"weight": -1},
            {"weight": "heavy"},
        ],
    )
    def test_invalid(self, overrides):
        with pytest.raises(ValidationError):
            dict_to_session_exercise(_exercise_dict(**overrides))

    def test_not_a_dict(self):
        with pytest.raises(ValidationError):
            dict_to_session_exercise(["bench"])


class TestTemplateAndInstance:
    def test_template_requires_timestamps(self):
        with pytest.raises(ValidationError):
            dict_to_session_template({"id": "t1", "name": "Push", "exercises": []})

    def test_template_tags_must_be_strings(self):
        with pytest.raises(ValidationError):
            dict_to_session_template({
                "id": "t1", "name": "Push", "tags": [1],
                "created_at": "2026-03-02T09:00:00.000Z", "updated_at": "2026-03-02T09:00:00.000Z",
            })

    def test_instance_bad_date(self):
        with pytest.raises(ValidationError):
            dict_to_session_instance({
                "id": "s1", "template_id": "t1", "date": "03/02/2026",
                "template_snapshot": {"name": "Push", "exercises": []},
            })

    def test_instance_bad_status(self):
        with pytest.raises(ValidationError):
            dict_to_session_instance({
                "id": "s1", "template_id": "t1", "date": "2026-03-02", "status": "done",
                "template_snapshot": {"name": "Push", "exercises": []},
            })


class TestProgress:
    def test_round_trip(self):
        progress = WorkoutProgress(
            session_id="s1",
            exercise_id="bench",
            sets=[SetProgress(set_number=1, completed=True, reps=10, weight=80, rest_timer_used=True)],
        )
        assert dict_to_workout_progress(workout_progress_to_dict(progress)) == progress

    def test_duplicate_set_numbers(self):
        with pytest.raises(ValidationError):
            dict_to_workout_progress({
                "session_id": "s1", "exercise_id": "bench",
                "sets": [{"set_number": 1}, {"set_number": 1}],
            })


class TestActiveWorkout:
    def test_cursor_defaults(self):
        state = dict_to_active_workout({"session_id": "s1", "started_at": "2026-03-02T09:00:00.000Z"})
        assert (state.current_exercise_index, state.current_set_index) == (0, 0)
        assert state.timer_state is None

    def test_bad_timer_type(self):
        with pytest.raises(ValidationError):
            dict_to_active_workout({
                "session_id": "s1", "started_at": "2026-03-02T09:00:00.000Z",
                "timer_state": {"type": "lap", "start_time": 1.0, "is_running": True},
            })

    def test_negative_cursor(self):
        with pytest.raises(ValidationError):
            dict_to_active_workout({
                "session_id": "s1", "started_at": "2026-03-02T09:00:00.000Z",
                "current_set_index": -1,
            })
