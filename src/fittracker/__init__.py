"""fittracker: CSV-driven workout templates, calendar scheduling and guided sessions."""

__version__ = "0.3.0"
