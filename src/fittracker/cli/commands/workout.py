"""Workout commands: start, status, complete-set, next, prev, exit, rest, stopwatch."""

import json
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.live import Live

from ...core.workout import WorkoutError, WorkoutSession
from ...io.serializers import set_progress_to_dict
from ...io.session_store import NotFoundError, StoreError
from .. import views
from ..app import DataDirOption, JsonOption, app, get_config, get_store, resolve_session_id

workout_app = typer.Typer(help="Run a scheduled session set by set.")
app.add_typer(workout_app, name="workout")

SessionRefArgument = Annotated[
    Optional[str],
    typer.Argument(help="Session id or id prefix (default: the active workout)"),
]


@contextmanager
def _open_workout(data_dir: Path | None, session_ref: str | None) -> Iterator[WorkoutSession]:
    """
    Load the referenced session, or the one recorded as active.

    The timer ticker is released when the command ends; a running timer
    carries on from its saved wall-clock snapshot.
    """
    store = get_store(data_dir)
    if session_ref is None:
        active = store.load_active_workout_state()
        if active is None:
            views.print_error("No active workout. Run 'workout start <session>' first.")
            raise typer.Exit(1)
        session_id = active.session_id
    else:
        session_id = resolve_session_id(store, session_ref)

    session = WorkoutSession(
        store,
        session_id,
        default_rest_seconds=get_config(data_dir).default_rest_seconds,
    )
    try:
        session.load()
    except (NotFoundError, WorkoutError, StoreError) as e:
        views.print_error(str(e))
        if session_ref is None:
            views.print_info("Run 'workout exit' to clear the active workout.")
        raise typer.Exit(1)
    try:
        yield session
    finally:
        session.detach()


def _status_dict(session: WorkoutSession) -> dict:
    summary = session.summary
    exercise = session.current_exercise
    return {
        "session_id": session.session_id,
        "phase": session.phase,
        "status": session.instance.status if session.instance else None,
        "exercise_index": session.exercise_index,
        "set_index": session.set_index,
        "exercise": exercise.name if exercise else None,
        "suggested": session.default_set_inputs(),
        "timer": {
            "type": session.timer.timer_type,
            "seconds": session.timer.seconds,
            "is_running": session.timer.is_running,
        },
        "completed_sets": summary.completed_sets,
        "total_sets": summary.total_sets,
        "percentage": summary.percentage,
    }


def _run_timer(session: WorkoutSession) -> None:
    """Show the running timer until it ends or Ctrl+C stops it."""
    try:
        with Live(console=views.console, refresh_per_second=4) as live:
            while session.timer.timer_type is not None and session.timer.is_running:
                label = "Rest" if session.timer.timer_type == "rest" else "Stopwatch"
                live.update(f"{label}: [bold]{views.format_timer(session.timer.seconds)}[/bold]")
                time.sleep(0.25)
    except KeyboardInterrupt:
        elapsed = session.timer.seconds
        session.stop_timer()
        views.print_info(f"Timer stopped at {views.format_timer(elapsed)}")
        return
    views.print_success("Rest over. Next set!")


@workout_app.command("start")
def start(
    session_ref: Annotated[str, typer.Argument(help="Session id or id prefix")],
    data_dir: DataDirOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Start (or resume) a scheduled session.
    """
    active = get_store(data_dir).load_active_workout_state()
    with _open_workout(data_dir, session_ref) as session:
        if active is not None and active.session_id != session.session_id:
            views.print_warning(f"Replacing active workout {active.session_id[:8]}")

        try:
            session.start()
        except (WorkoutError, ValueError, StoreError) as e:
            views.print_error(str(e))
            raise typer.Exit(1)

        if json_out:
            print(json.dumps(_status_dict(session), indent=2))
            return
        views.print_workout(session)


@workout_app.command("status")
def status(
    session_ref: SessionRefArgument = None,
    data_dir: DataDirOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Show the current exercise, set, timer and progress.
    """
    with _open_workout(data_dir, session_ref) as session:
        if json_out:
            print(json.dumps(_status_dict(session), indent=2))
            return
        views.print_workout(session)


@workout_app.command("complete-set")
def complete_set(
    reps: Annotated[
        Optional[int],
        typer.Option("--reps", "-r", min=0, help="Reps performed (default: suggested)"),
    ] = None,
    weight: Annotated[
        Optional[float],
        typer.Option("--weight", "-w", min=0, help="Weight used in kg"),
    ] = None,
    seconds: Annotated[
        Optional[int],
        typer.Option("--seconds", "-s", min=0, help="Seconds held (timed exercises)"),
    ] = None,
    steps: Annotated[
        Optional[int],
        typer.Option("--steps", min=0, help="Steps performed"),
    ] = None,
    rest: Annotated[
        bool,
        typer.Option("--rest/--no-rest", help="Run the rest timer after the set"),
    ] = False,
    data_dir: DataDirOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Complete the current set and move on.

    Values not given fall back to the suggested inputs for the set.
    """
    with _open_workout(data_dir, None) as session:
        exercise = session.current_exercise
        suggested = session.default_set_inputs()

        try:
            saved = session.complete_set(
                reps=reps if reps is not None else suggested.get("reps"),
                weight=weight if weight is not None else suggested.get("weight"),
                time_seconds=seconds if seconds is not None else suggested.get("time_seconds"),
                steps=steps if steps is not None else suggested.get("steps"),
            )
        except (WorkoutError, ValueError, StoreError) as e:
            views.print_error(str(e))
            raise typer.Exit(1)

        if json_out:
            out = _status_dict(session)
            out["sets"] = [set_progress_to_dict(s) for s in saved.sets]
            print(json.dumps(out, indent=2))
            return

        if exercise is not None:
            views.print_success(f"Set done: {exercise.name}")
        if session.phase == "finished":
            views.print_success("Workout complete!")
            views.print_workout(session)
            return

        views.print_workout(session)
        if rest:
            session.start_rest_timer()
            _run_timer(session)


@workout_app.command("next")
def next_exercise(data_dir: DataDirOption = None) -> None:
    """Skip ahead to the next exercise."""
    with _open_workout(data_dir, None) as session:
        try:
            session.next_exercise()
        except WorkoutError as e:
            views.print_error(str(e))
            raise typer.Exit(1)
        views.print_workout(session)


@workout_app.command("prev")
def previous_exercise(data_dir: DataDirOption = None) -> None:
    """Go back to the previous exercise (starts again from its first set)."""
    with _open_workout(data_dir, None) as session:
        try:
            session.previous_exercise()
        except WorkoutError as e:
            views.print_error(str(e))
            raise typer.Exit(1)
        views.print_workout(session)


@workout_app.command("exit")
def exit_workout(
    finish: Annotated[
        bool,
        typer.Option("--finish", help="Mark the session completed instead of leaving it in progress"),
    ] = False,
    data_dir: DataDirOption = None,
) -> None:
    """
    Leave the active workout. Recorded sets are kept.
    """
    store = get_store(data_dir)
    try:
        active = store.load_active_workout_state()
        instance = store.get_session_instance(active.session_id) if active else None
    except StoreError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if active is not None and (instance is None or instance.status in ("skipped", "completed")):
        store.clear_active_workout_state()
        views.print_warning(f"Cleared stale active workout {active.session_id[:8]}")
        return

    with _open_workout(data_dir, None) as session:
        try:
            if finish:
                session.finish()
            else:
                session.exit()
        except (WorkoutError, ValueError, StoreError) as e:
            views.print_error(str(e))
            raise typer.Exit(1)

    if finish:
        views.print_success("Workout marked completed.")
    else:
        views.print_info("Workout left in progress. Resume with 'workout start'.")


@workout_app.command("rest")
def rest_timer(
    stop: Annotated[
        bool,
        typer.Option("--stop", help="Stop the running timer"),
    ] = False,
    background: Annotated[
        bool,
        typer.Option("--background", "-b", help="Start the timer without showing the countdown"),
    ] = False,
    data_dir: DataDirOption = None,
) -> None:
    """
    Start the rest countdown for the current exercise.
    """
    with _open_workout(data_dir, None) as session:
        try:
            if stop:
                session.stop_timer()
                views.print_info("Timer stopped.")
                return
            duration = session.start_rest_timer()
        except WorkoutError as e:
            views.print_error(str(e))
            raise typer.Exit(1)

        views.print_info(f"Resting {views.format_rest_time(duration)}")
        if not background:
            _run_timer(session)


@workout_app.command("stopwatch")
def stopwatch(
    stop: Annotated[
        bool,
        typer.Option("--stop", help="Stop the running stopwatch"),
    ] = False,
    background: Annotated[
        bool,
        typer.Option("--background", "-b", help="Start the stopwatch without showing it"),
    ] = False,
    data_dir: DataDirOption = None,
) -> None:
    """
    Time a set with a stopwatch. Press Ctrl+C to stop it.
    """
    with _open_workout(data_dir, None) as session:
        try:
            if stop:
                elapsed = session.timer.seconds
                session.stop_timer()
                views.print_info(f"Stopwatch stopped at {views.format_timer(elapsed)}")
                return
            session.start_stopwatch()
        except WorkoutError as e:
            views.print_error(str(e))
            raise typer.Exit(1)

        if not background:
            _run_timer(session)
