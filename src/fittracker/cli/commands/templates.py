"""Template commands: import-csv, templates, show-template, delete-template."""

from pathlib import Path
from typing import Annotated

import typer

from ...io.csv_import import parse_csv, parse_training_csv
from ...io.serializers import session_template_to_dict, to_json
from ...io.session_store import StoreError
from .. import views
from ..app import DataDirOption, JsonOption, app, get_store, resolve_id


def _read_csv(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        views.print_error(f"Cannot read {path}: {e}")
        raise typer.Exit(1)


@app.command("import-csv")
def import_csv(
    csv_path: Annotated[
        Path,
        typer.Argument(help="Training CSV (Day, Exercise, Sets, Reps/Time, Weight, ...)"),
    ],
    preview: Annotated[
        bool,
        typer.Option("--preview", help="Show the parsed rows without saving anything"),
    ] = False,
    data_dir: DataDirOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Import a training CSV; each Day becomes a session template.

    Rows that cannot be converted are reported and skipped; the rest of
    their day is still imported.
    """
    content = _read_csv(csv_path)

    if preview:
        report = parse_csv(content)
        if json_out:
            print(to_json({
                "rows": [
                    {
                        "day": r.day,
                        "day_key": r.day_key,
                        "exercise": r.exercise,
                        "sets": r.sets,
                        "unit": r.prescription.unit,
                        "per_side": r.prescription.per_side,
                        "weight": r.weight,
                        "muscle_group": r.muscle_group,
                    }
                    for r in report.data
                ],
                "stats": {
                    "total_rows": report.stats.total_rows,
                    "valid_rows": report.stats.valid_rows,
                    "invalid_rows": report.stats.invalid_rows,
                    "unit_counts": report.stats.unit_counts,
                    "malformed_tokens": report.stats.malformed_tokens,
                },
                "errors": report.errors,
            }))
            return
        views.print_import_report(report)
        return

    result = parse_training_csv(content)
    if not result.sessions:
        for error in result.errors:
            views.print_error(error)
        views.print_error("Nothing imported.")
        raise typer.Exit(1)

    store = get_store(data_dir)
    try:
        saved = store.save_session_templates(result.sessions)
    except StoreError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        print(to_json({
            "templates": [session_template_to_dict(t) for t in saved],
            "errors": result.errors,
        }))
        return

    views.print_success(f"Imported {len(saved)} session template(s) from {csv_path.name}")
    views.print_import_result(result)


@app.command("templates")
def list_templates(
    data_dir: DataDirOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    List saved session templates.
    """
    store = get_store(data_dir)
    try:
        templates = store.load_session_templates()
    except StoreError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        print(to_json([session_template_to_dict(t) for t in templates]))
        return

    views.print_templates(templates)


@app.command("show-template")
def show_template(
    template_ref: Annotated[
        str,
        typer.Argument(help="Template id, id prefix or # from 'templates'"),
    ],
    data_dir: DataDirOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Show one template with its exercises.
    """
    store = get_store(data_dir)
    templates = store.load_session_templates()
    template_id = resolve_id(template_ref, [t.id for t in templates if t.id], "Template")
    template = store.require_session_template(template_id)

    if json_out:
        print(to_json(session_template_to_dict(template)))
        return

    views.print_template(template)


@app.command("delete-template")
def delete_template(
    template_ref: Annotated[
        str,
        typer.Argument(help="Template id, id prefix or # from 'templates'"),
    ],
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Skip confirmation prompt"),
    ] = False,
    data_dir: DataDirOption = None,
) -> None:
    """
    Delete a template.

    Sessions already scheduled from it keep their own copy and are not touched.
    """
    store = get_store(data_dir)
    templates = store.load_session_templates()
    template_id = resolve_id(template_ref, [t.id for t in templates if t.id], "Template")
    template = store.require_session_template(template_id)

    views.console.print(f"Template to delete: [bold]{template.name}[/bold]")
    if not force and not views.confirm_action("Delete this template?"):
        views.print_info("Cancelled.")
        raise typer.Exit(0)

    try:
        store.delete_session_template(template_id)
    except StoreError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    views.print_success(f"Deleted template: {template.name}")
