"""
CLI view formatters using Rich for pretty console output.

Handles table formatting and display of templates, the calendar and the
live workout.
"""

from rich.console import Console
from rich.table import Table

from ..core.estimators import (
    calculate_completed_sets,
    calculate_instance_progress,
    get_all_sets_status,
    get_instance_duration,
)
from ..core.models import (
    SessionExercise,
    SessionInstance,
    SessionTemplate,
    WorkoutProgress,
)
from ..core.prescription import format_prescription
from ..core.workout import WorkoutSession
from ..io.csv_import import ImportReport, ParsedTrainingCSV

console = Console()

STATUS_LABELS: dict[str, str] = {
    "scheduled": "Scheduled",
    "in_progress": "In Progress",
    "completed": "Completed",
    "skipped": "Skipped",
}

STATUS_STYLES: dict[str, str] = {
    "scheduled": "cyan",
    "in_progress": "yellow",
    "completed": "green",
    "skipped": "dim",
}

SET_MARKS: dict[str, str] = {
    "completed": "[green]●[/green]",
    "in_progress": "[yellow]◐[/yellow]",
    "not_started": "[dim]○[/dim]",
}


# ---------------------------------------------------------------------------
# Plain-text formatting
# ---------------------------------------------------------------------------


def format_exercise_prescription(exercise: SessionExercise) -> str:
    """Prescription text for an exercise, e.g. "8-12 reps" or "30s per side"."""
    text = format_prescription(
        exercise.unit,
        reps_min=exercise.reps_min,
        reps_max=exercise.reps_max,
        time_seconds_min=exercise.time_seconds_min,
        time_seconds_max=exercise.time_seconds_max,
        steps_count=exercise.steps_count,
    )
    return f"{text} per side" if exercise.per_side else text


def format_weight(weight: float | None) -> str:
    """80 -> "80kg", 32.5 -> "32.5kg", None -> "-"."""
    if weight is None:
        return "-"
    if float(weight).is_integer():
        return f"{int(weight)}kg"
    return f"{weight:g}kg"


def format_rest_time(seconds: int | None) -> str:
    """90 -> "1m 30s", 45 -> "45s", 120 -> "2m"."""
    if seconds is None:
        return "-"
    if seconds < 60:
        return f"{seconds}s"
    minutes, secs = divmod(seconds, 60)
    return f"{minutes}m {secs}s" if secs else f"{minutes}m"


def format_duration(minutes: int | None) -> str:
    """45 -> "45m", 65 -> "1h 5m", 120 -> "2h"."""
    if minutes is None:
        return "-"
    if minutes < 60:
        return f"{minutes}m"
    hours, mins = divmod(minutes, 60)
    return f"{hours}h {mins}m" if mins else f"{hours}h"


def format_timer(seconds: int) -> str:
    """Clock display, 75 -> "01:15"."""
    minutes, secs = divmod(max(seconds, 0), 60)
    return f"{minutes:02d}:{secs:02d}"


def format_status(status: str) -> str:
    label = STATUS_LABELS.get(status, status)
    style = STATUS_STYLES.get(status)
    return f"[{style}]{label}[/{style}]" if style else label


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------


def format_templates_table(templates: list[SessionTemplate]) -> Table:
    """
    Create a Rich table listing session templates.

    Args:
        templates: Templates to display

    Returns:
        Rich Table object
    """
    table = Table(title="Session Templates")

    table.add_column("#", justify="right", style="dim", width=3)
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Tags", style="magenta")
    table.add_column("Exercises", justify="right")
    table.add_column("Duration", justify="right")

    for i, t in enumerate(templates, 1):
        table.add_row(
            str(i),
            (t.id or "")[:8],
            t.name,
            ", ".join(t.tags),
            str(len(t.exercises)),
            format_duration(t.estimated_duration_minutes),
        )

    return table


def format_exercises_table(
    exercises: list[SessionExercise],
    title: str,
    progress_list: list[WorkoutProgress] | None = None,
    current_index: int | None = None,
) -> Table:
    """
    Create a Rich table of exercises, with set marks when progress is given.

    Args:
        exercises: Exercises in execution order
        title: Table title
        progress_list: Progress records of a session instance
        current_index: Exercise to highlight

    Returns:
        Rich Table object
    """
    table = Table(title=title)

    table.add_column("#", justify="right", style="dim", width=3)
    table.add_column("Exercise", style="cyan")
    table.add_column("Sets", justify="right")
    table.add_column("Target")
    table.add_column("Weight", justify="right")
    table.add_column("Rest", justify="right")
    table.add_column("Muscle", style="green")
    if progress_list is not None:
        table.add_column("Done")

    by_exercise = {p.exercise_id: p for p in progress_list or []}

    for i, ex in enumerate(exercises):
        row = [
            str(i + 1),
            f"[bold]{ex.name}[/bold]" if i == current_index else ex.name,
            str(ex.sets),
            format_exercise_prescription(ex),
            format_weight(ex.weight),
            format_rest_time(ex.rest_seconds),
            ex.main_muscle or ex.muscle_group,
        ]
        if progress_list is not None:
            progress = by_exercise.get(ex.id)
            marks = "".join(SET_MARKS[s] for s in get_all_sets_status(ex, progress))
            row.append(f"{marks} {calculate_completed_sets(progress)}/{ex.sets}")
        table.add_row(*row)

    return table


def format_calendar_table(
    instances: list[SessionInstance],
    progress_list: list[WorkoutProgress],
    title: str = "Scheduled Sessions",
) -> Table:
    table = Table(title=title)

    table.add_column("Date", style="cyan")
    table.add_column("Time")
    table.add_column("ID", style="dim")
    table.add_column("Session", style="bold")
    table.add_column("Status")
    table.add_column("Progress", justify="right")
    table.add_column("Duration", justify="right")

    for inst in instances:
        own = [p for p in progress_list if p.session_id == inst.id]
        summary = calculate_instance_progress(inst, own)
        table.add_row(
            inst.date,
            inst.start_time or "-",
            (inst.id or "")[:8],
            inst.template_snapshot.name,
            format_status(inst.status),
            f"{summary.percentage}%",
            format_duration(get_instance_duration(inst)),
        )

    return table


# ---------------------------------------------------------------------------
# Printers
# ---------------------------------------------------------------------------


def print_templates(templates: list[SessionTemplate]) -> None:
    if not templates:
        console.print("[yellow]No session templates yet. Import a CSV first.[/yellow]")
        return
    console.print(format_templates_table(templates))


def print_template(template: SessionTemplate) -> None:
    """
    Print one template with its exercises.

    Args:
        template: Template to display
    """
    console.print()
    console.print(f"[bold cyan]{template.name}[/bold cyan]  [dim]{template.id}[/dim]")
    if template.description:
        console.print(template.description)
    console.print(
        f"Tags: {', '.join(template.tags) or '-'}   "
        f"Estimated: {format_duration(template.estimated_duration_minutes)}"
    )
    console.print(format_exercises_table(template.exercises, "Exercises"))
    for ex in template.exercises:
        if ex.notes or ex.form_guidance:
            console.print(f"[bold]{ex.name}[/bold]")
            if ex.notes:
                console.print(f"  Notes: {ex.notes}")
            if ex.form_guidance:
                console.print(f"  Form: {ex.form_guidance}")


def print_calendar(
    instances: list[SessionInstance],
    progress_list: list[WorkoutProgress],
    title: str = "Scheduled Sessions",
) -> None:
    if not instances:
        console.print("[yellow]No sessions scheduled in this range.[/yellow]")
        return
    console.print(format_calendar_table(instances, progress_list, title))


def print_import_result(result: ParsedTrainingCSV) -> None:
    for template in result.sessions:
        console.print(
            f"  [green]+[/green] {template.name}: {len(template.exercises)} exercises, "
            f"~{format_duration(template.estimated_duration_minutes)}"
        )
    for error in result.errors:
        print_warning(error)


def print_import_report(report: ImportReport) -> None:
    """
    Print the row-level import preview.

    Args:
        report: Result of parse_csv
    """
    for error in report.errors:
        print_error(error)
    if not report.data:
        console.print("[yellow]No valid rows.[/yellow]")
        return

    table = Table(title="Import Preview")
    table.add_column("Day", style="cyan")
    table.add_column("Exercise", style="bold")
    table.add_column("Sets", justify="right")
    table.add_column("Target")
    table.add_column("Weight", justify="right")
    table.add_column("Muscle", style="green")

    for row in report.data:
        p = row.prescription
        target = format_prescription(
            p.unit,
            reps_min=p.reps_min,
            reps_max=p.reps_max,
            time_seconds_min=p.time_seconds_min,
            time_seconds_max=p.time_seconds_max,
            steps_count=p.steps_count,
        )
        if p.per_side:
            target += " per side"
        table.add_row(row.day, row.exercise, str(row.sets), target, format_weight(row.weight), row.muscle_group)

    console.print(table)

    stats = report.stats
    console.print(
        f"Rows: {stats.total_rows} total, {stats.valid_rows} valid, {stats.invalid_rows} invalid   "
        f"Units: {stats.unit_counts['reps']} reps, {stats.unit_counts['seconds']} timed, "
        f"{stats.unit_counts['steps']} steps   "
        f"[dim]({stats.parsing_time_ms:.1f} ms)[/dim]"
    )
    if stats.malformed_tokens:
        print_warning(f"Unrecognized Reps/Time values: {', '.join(stats.malformed_tokens)}")


def print_workout(session: WorkoutSession) -> None:
    """
    Print the live workout: current exercise and set, timer and overall progress.

    Args:
        session: Loaded workout controller
    """
    instance = session.instance
    if instance is None:
        return

    summary = session.summary
    console.print()
    console.print(
        f"[bold cyan]{instance.template_snapshot.name}[/bold cyan]  {format_status(instance.status)}  "
        f"{summary.completed_sets}/{summary.total_sets} sets ({summary.percentage}%)"
    )
    console.print(
        format_exercises_table(
            session.exercises,
            f"Session {(instance.id or '')[:8]} on {instance.date}",
            session.progress_list,
            current_index=session.exercise_index if session.phase == "started" else None,
        )
    )

    exercise = session.current_exercise
    if session.phase != "started" or exercise is None:
        return

    console.print(
        f"Now: [bold]{exercise.name}[/bold]  exercise {session.exercise_index + 1}/{len(session.exercises)}, "
        f"set {session.set_index + 1}/{exercise.sets}  target {format_exercise_prescription(exercise)}"
    )
    inputs = session.default_set_inputs()
    shown = ", ".join(
        f"{k.replace('_', ' ')} {format_weight(v) if k == 'weight' else v}"
        for k, v in inputs.items()
        if v is not None
    )
    console.print(f"[dim]Suggested: {shown}[/dim]")
    if exercise.form_guidance:
        console.print(f"[dim]Form: {exercise.form_guidance}[/dim]")

    timer = session.timer
    if timer.timer_type is not None:
        label = "Rest" if timer.timer_type == "rest" else "Stopwatch"
        state = "" if timer.is_running else " (paused)"
        console.print(f"{label}: [bold]{format_timer(timer.seconds)}[/bold]{state}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]{message}[/green]")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]Error: {message}[/red]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]Warning: {message}[/yellow]")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]{message}[/blue]")


def confirm_action(message: str) -> bool:
    """
    Prompt user for confirmation.

    Args:
        message: Confirmation message

    Returns:
        True if confirmed, False otherwise
    """
    response = console.input(f"{message} [y/N]: ")
    return response.lower() in ("y", "yes")
