"""
CLI entry point using Typer.

Provides commands for training plan management:
- import-csv: Import a training CSV as session templates
- templates / show-template / delete-template: Manage templates
- schedule / calendar / skip / reschedule / delete-session: Plan sessions
- workout ...: Run a session set by set with rest timer and stopwatch
"""

from .app import app  # noqa: F401

# Import command modules to register their @app.command() decorators
from .commands import calendar, templates, workout  # noqa: F401

if __name__ == "__main__":
    app()
