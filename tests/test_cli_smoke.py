"""
Smoke tests for the fittracker CLI.

Covers the main path end to end:
- CSV import and template listing
- Scheduling and the calendar
- Running a workout set by set
- Error exits for unknown references
"""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from fittracker.cli.main import app
from fittracker.core.models import ActiveWorkoutState
from fittracker.io.session_store import SessionStore


runner = CliRunner()

CSV = """Day,Exercise,Sets,Reps/Time,Weight,Notes,Form Guidance,Muscle Group,Main Muscle
Day 1 - Push,Bench Press,2,8-12,80kg,,,Chest,Upper Chest
Day 1 - Push,Plank,1,30s,,,,Core,Abs
Day 2 - Pull,Row,3,10,60,,,Back,Lats
"""


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    """Isolated data directory; $FITTRACKER_HOME points there too."""
    monkeypatch.setenv("FITTRACKER_HOME", str(tmp_path))
    return tmp_path / "data"


@pytest.fixture
def csv_file(tmp_path):
    path = tmp_path / "plan.csv"
    path.write_text(CSV, encoding="utf-8")
    return path


def _invoke(data_dir: Path, *args: str):
    return runner.invoke(app, [*args, "--data-dir", str(data_dir)])


def _import(data_dir: Path, csv_file: Path) -> None:
    result = _invoke(data_dir, "import-csv", str(csv_file))
    assert result.exit_code == 0, result.output


def _schedule(data_dir: Path, template: str = "1", date: str = "2026-03-02") -> str:
    result = _invoke(data_dir, "schedule", template, "--date", date, "--json")
    assert result.exit_code == 0, result.output
    return json.loads(result.output)["id"]


class TestCLISmoke:
    """Basic smoke tests for CLI commands."""

    def test_app_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "import-csv" in result.output

    def test_import_creates_templates(self, data_dir, csv_file):
        _import(data_dir, csv_file)
        assert (data_dir / "session_templates.json").exists()

        result = _invoke(data_dir, "templates", "--json")
        assert result.exit_code == 0
        templates = json.loads(result.output)
        assert [t["name"] for t in templates] == ["Day 1 - Push", "Day 2 - Pull"]
        assert templates[0]["exercises"][0]["rest_seconds"] == 120
        assert templates[0]["exercises"][1]["unit"] == "seconds"
        assert templates[0]["tags"] == ["Push"]

    def test_import_preview_saves_nothing(self, data_dir, csv_file):
        result = _invoke(data_dir, "import-csv", str(csv_file), "--preview", "--json")
        assert result.exit_code == 0
        report = json.loads(result.output)
        assert report["stats"]["valid_rows"] == 3
        assert report["stats"]["unit_counts"] == {"reps": 2, "seconds": 1, "steps": 0}

        result = _invoke(data_dir, "templates", "--json")
        assert json.loads(result.output) == []

    def test_import_without_valid_rows_fails(self, data_dir, tmp_path):
        bad = tmp_path / "bad.csv"
        bad.write_text("Day,Exercise\nDay 1,Squat\n", encoding="utf-8")
        result = _invoke(data_dir, "import-csv", str(bad))
        assert result.exit_code == 1
        assert "Missing required column" in result.output

    def test_show_template(self, data_dir, csv_file):
        _import(data_dir, csv_file)
        result = _invoke(data_dir, "show-template", "2")
        assert result.exit_code == 0
        assert "Row" in result.output

    def test_schedule_and_calendar(self, data_dir, csv_file):
        _import(data_dir, csv_file)
        session_id = _schedule(data_dir)

        result = _invoke(data_dir, "calendar", "--from", "2026-03-01", "--to", "2026-03-07", "--json")
        assert result.exit_code == 0
        sessions = json.loads(result.output)
        assert [s["id"] for s in sessions] == [session_id]
        assert sessions[0]["status"] == "scheduled"

        result = _invoke(data_dir, "calendar", "--from", "2026-03-01", "--to", "2026-03-07")
        assert result.exit_code == 0

    def test_skip_and_reschedule(self, data_dir, csv_file):
        _import(data_dir, csv_file)
        session_id = _schedule(data_dir)

        assert _invoke(data_dir, "skip", session_id[:8]).exit_code == 0
        assert _invoke(data_dir, "reschedule", session_id, "--date", "2026-03-04").exit_code == 0

        result = _invoke(data_dir, "calendar", "--from", "2026-03-04", "--to", "2026-03-04", "--json")
        assert json.loads(result.output)[0]["status"] == "scheduled"

    def test_delete_session(self, data_dir, csv_file):
        _import(data_dir, csv_file)
        session_id = _schedule(data_dir)
        assert _invoke(data_dir, "delete-session", session_id, "--force").exit_code == 0
        result = _invoke(data_dir, "calendar", "--from", "2026-03-02", "--to", "2026-03-02", "--json")
        assert json.loads(result.output) == []

    def test_workout_flow(self, data_dir, csv_file):
        _import(data_dir, csv_file)
        session_id = _schedule(data_dir)

        result = _invoke(data_dir, "workout", "start", session_id, "--json")
        assert result.exit_code == 0, result.output
        status = json.loads(result.output)
        assert status["status"] == "in_progress"
        assert status["exercise"] == "Bench Press"
        assert status["suggested"] == {"reps": 8, "weight": 80.0}

        result = _invoke(data_dir, "workout", "complete-set", "--reps", "10", "--json")
        assert result.exit_code == 0, result.output
        out = json.loads(result.output)
        assert out["set_index"] == 1
        assert out["sets"][0]["reps"] == 10
        assert out["sets"][0]["weight"] == 80.0

        assert _invoke(data_dir, "workout", "rest", "--background").exit_code == 0
        result = _invoke(data_dir, "workout", "status", "--json")
        assert json.loads(result.output)["timer"]["type"] == "rest"
        assert _invoke(data_dir, "workout", "rest", "--stop").exit_code == 0

        assert _invoke(data_dir, "workout", "complete-set").exit_code == 0
        result = _invoke(data_dir, "workout", "complete-set", "--seconds", "35")
        assert result.exit_code == 0
        assert "Workout complete!" in result.output

        result = _invoke(data_dir, "calendar", "--from", "2026-03-02", "--to", "2026-03-02", "--json")
        assert json.loads(result.output)[0]["status"] == "completed"

        result = _invoke(data_dir, "workout", "status")
        assert result.exit_code == 1
        assert "No active workout" in result.output

    def test_exit_keeps_progress(self, data_dir, csv_file):
        _import(data_dir, csv_file)
        session_id = _schedule(data_dir)
        _invoke(data_dir, "workout", "start", session_id)
        _invoke(data_dir, "workout", "complete-set", "--reps", "9")
        assert _invoke(data_dir, "workout", "exit").exit_code == 0

        result = _invoke(data_dir, "workout", "status", session_id, "--json")
        status = json.loads(result.output)
        assert status["completed_sets"] == 1
        assert status["set_index"] == 1

    def test_unknown_session_fails(self, data_dir, csv_file):
        _import(data_dir, csv_file)
        result = _invoke(data_dir, "workout", "start", "nope")
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_unknown_template_fails(self, data_dir):
        result = _invoke(data_dir, "schedule", "42", "--date", "2026-03-02")
        assert result.exit_code == 1

    def test_invalid_date_fails(self, data_dir, csv_file):
        _import(data_dir, csv_file)
        result = _invoke(data_dir, "schedule", "1", "--date", "2026-02-30")
        assert result.exit_code == 1

    def test_deleting_active_session_clears_workout(self, data_dir, csv_file):
        _import(data_dir, csv_file)
        session_id = _schedule(data_dir)
        assert _invoke(data_dir, "workout", "start", session_id).exit_code == 0

        assert _invoke(data_dir, "delete-session", session_id, "--force").exit_code == 0
        result = _invoke(data_dir, "workout", "status")
        assert result.exit_code == 1
        assert "No active workout" in result.output

    def test_rescheduling_active_session_clears_workout(self, data_dir, csv_file):
        _import(data_dir, csv_file)
        session_id = _schedule(data_dir)
        _invoke(data_dir, "workout", "start", session_id)

        assert _invoke(data_dir, "reschedule", session_id, "--date", "2026-03-05").exit_code == 0
        assert not (data_dir / "active_workout.json").exists()

    def test_exit_clears_record_of_missing_session(self, data_dir):
        SessionStore(data_dir).save_active_workout_state(
            ActiveWorkoutState(session_id="gone", started_at="2026-03-02T09:00:00.000Z")
        )
        result = _invoke(data_dir, "workout", "status")
        assert result.exit_code == 1
        assert "workout exit" in result.output

        result = _invoke(data_dir, "workout", "exit")
        assert result.exit_code == 0, result.output
        assert "Cleared stale active workout" in result.output
        assert not (data_dir / "active_workout.json").exists()
