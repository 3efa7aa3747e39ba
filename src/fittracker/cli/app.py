"""Shared Typer app object, shared option types, and store utility."""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.logging import RichHandler

from ..core.config_loader import AppConfig, load_app_config
from ..io.session_store import SessionStore
from . import views

# Shared --data-dir option type used across all commands
DataDirOption = Annotated[
    Optional[Path],
    typer.Option("--data-dir", "-D", help="Data directory (default: $FITTRACKER_HOME or ~/.fittracker)"),
]

# Shared --json flag
JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Output machine-readable JSON"),
]

app = typer.Typer(
    name="fittracker",
    help="Import CSV training plans, schedule sessions and track workouts set by set.",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging"),
    ] = False,
) -> None:
    """
    Workout tracker: templates, calendar and guided sessions.
    """
    level = logging.DEBUG if verbose else getattr(logging, load_app_config().log_level)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=views.console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


def get_config(data_dir: Path | None) -> AppConfig:
    """Resolved settings, with --data-dir taking precedence."""
    return load_app_config(data_dir)


def get_store(data_dir: Path | None) -> SessionStore:
    """Get the session store for the given or configured data directory."""
    store = SessionStore(get_config(data_dir).data_dir)
    store.init()
    return store


def resolve_id(ref: str, ids: list[str], what: str, *, by_index: bool = True) -> str:
    """
    Match a user-typed reference to one stored id.

    Accepts a full id, a unique id prefix (tables show the first 8
    characters) or, with ``by_index``, a 1-based row number from the listing.
    """
    if ref in ids:
        return ref
    if by_index and ref.isdigit() and 1 <= int(ref) <= len(ids):
        return ids[int(ref) - 1]
    matches = [i for i in ids if i.startswith(ref)]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        views.print_error(f"{what} not found: {ref}")
    else:
        views.print_error(f"Ambiguous {what.lower()} reference: {ref}")
    raise typer.Exit(1)


def resolve_session_id(store: SessionStore, ref: str) -> str:
    """Session instance id from a full id or unique prefix."""
    ids = [s.id for s in store.load_session_instances() if s.id]
    return resolve_id(ref, ids, "Session", by_index=False)
