"""Calendar commands: schedule, calendar, skip, reschedule, delete-session."""

from typing import Annotated, Optional

import typer

from ...core.calendar import get_week_dates, parse_local_date, today_string
from ...core.models import validate_local_date, validate_time_of_day
from ...io.serializers import session_instance_to_dict, to_json
from ...io.session_store import StoreError
from .. import views
from ..app import (
    DataDirOption,
    JsonOption,
    app,
    get_store,
    resolve_id,
    resolve_session_id,
)


def _check_date(value: str) -> str:
    try:
        validate_local_date(value)
    except ValueError as e:
        views.print_error(str(e))
        raise typer.Exit(1)
    return value


def _check_time(value: str | None) -> str | None:
    if value is None:
        return None
    try:
        validate_time_of_day(value)
    except ValueError as e:
        views.print_error(str(e))
        raise typer.Exit(1)
    return value


@app.command()
def schedule(
    template_ref: Annotated[
        str,
        typer.Argument(help="Template id, id prefix or # from 'templates'"),
    ],
    date: Annotated[
        Optional[str],
        typer.Option("--date", "-d", help="Session date (YYYY-MM-DD, default: today)"),
    ] = None,
    start_time: Annotated[
        Optional[str],
        typer.Option("--time", "-t", help="Start time (HH:MM)"),
    ] = None,
    data_dir: DataDirOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Schedule a template on a date.

    The session keeps its own copy of the template's exercises; later
    template edits do not change it.
    """
    date = _check_date(date or today_string())
    start_time = _check_time(start_time)

    store = get_store(data_dir)
    templates = store.load_session_templates()
    template_id = resolve_id(template_ref, [t.id for t in templates if t.id], "Template")
    template = store.require_session_template(template_id)

    try:
        instance = store.create_session_instance_from_template(template, date, start_time)
    except StoreError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        print(to_json(session_instance_to_dict(instance)))
        return

    when = f"{date} {start_time}" if start_time else date
    views.print_success(f"Scheduled {template.name} on {when} (session {instance.id[:8]})")


@app.command()
def calendar(
    start: Annotated[
        Optional[str],
        typer.Option("--from", help="First date (YYYY-MM-DD, default: start of this week)"),
    ] = None,
    end: Annotated[
        Optional[str],
        typer.Option("--to", help="Last date (YYYY-MM-DD, default: end of that week)"),
    ] = None,
    data_dir: DataDirOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Show scheduled sessions for a week (Sunday to Saturday) or a date range.
    """
    if start is not None:
        _check_date(start)
    if end is not None:
        _check_date(end)

    week = get_week_dates(parse_local_date(start) if start else None)
    start = start or week[0]
    end = end or week[-1]
    if end < start:
        views.print_error(f"--to ({end}) is before --from ({start})")
        raise typer.Exit(1)

    store = get_store(data_dir)
    try:
        instances = store.get_session_instances_for_date_range(start, end)
        progress = store.load_all_workout_progress()
    except StoreError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        print(to_json([session_instance_to_dict(s) for s in instances]))
        return

    views.print_calendar(instances, progress, title=f"Sessions {start} to {end}")


@app.command()
def skip(
    session_ref: Annotated[str, typer.Argument(help="Session id or id prefix")],
    data_dir: DataDirOption = None,
) -> None:
    """
    Mark a scheduled or in-progress session as skipped.
    """
    store = get_store(data_dir)
    session_id = resolve_session_id(store, session_ref)
    try:
        instance = store.skip_session_instance(session_id)
    except (ValueError, StoreError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    views.print_success(f"Skipped {instance.template_snapshot.name} on {instance.date}")


@app.command()
def reschedule(
    session_ref: Annotated[str, typer.Argument(help="Session id or id prefix")],
    date: Annotated[
        str,
        typer.Option("--date", "-d", help="New date (YYYY-MM-DD)"),
    ],
    start_time: Annotated[
        Optional[str],
        typer.Option("--time", "-t", help="New start time (HH:MM)"),
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """
    Move a session to another date; it becomes scheduled again.
    """
    _check_date(date)
    _check_time(start_time)

    store = get_store(data_dir)
    session_id = resolve_session_id(store, session_ref)
    try:
        instance = store.reschedule_session_instance(session_id, date, start_time)
    except (ValueError, StoreError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    views.print_success(f"Moved {instance.template_snapshot.name} to {instance.date}")


@app.command("delete-session")
def delete_session(
    session_ref: Annotated[str, typer.Argument(help="Session id or id prefix")],
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Skip confirmation prompt"),
    ] = False,
    data_dir: DataDirOption = None,
) -> None:
    """
    Remove a scheduled session from the calendar.
    """
    store = get_store(data_dir)
    session_id = resolve_session_id(store, session_ref)
    instance = store.require_session_instance(session_id)

    views.console.print(
        f"Session to delete: [bold]{instance.template_snapshot.name}[/bold] on {instance.date}"
    )
    if not force and not views.confirm_action("Delete this session?"):
        views.print_info("Cancelled.")
        raise typer.Exit(0)

    try:
        store.delete_session_instance(session_id)
    except StoreError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    views.print_success(f"Deleted session {session_id[:8]}")
