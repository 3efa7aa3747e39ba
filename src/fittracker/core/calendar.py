"""Local calendar-date and timestamp helpers."""

from datetime import date, datetime, timedelta, timezone


def utc_now_iso() -> str:
    """Current UTC time as ISO 8601 with millisecond precision ("...Z")."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_local_date(d: date | None = None) -> str:
    """Format a date (default: today, local time) as YYYY-MM-DD."""
    return (d or datetime.now().date()).strftime("%Y-%m-%d")


def parse_local_date(date_str: str) -> date:
    """Parse YYYY-MM-DD as a local calendar date (no timezone shift)."""
    return datetime.strptime(date_str, "%Y-%m-%d").date()


def today_string() -> str:
    return format_local_date()


def add_days(date_str: str, days: int) -> str:
    """Shift a YYYY-MM-DD date by a number of days."""
    return format_local_date(parse_local_date(date_str) + timedelta(days=days))


def get_week_dates(d: date | None = None) -> list[str]:
    """
    The seven dates of the week containing ``d``.

    Weeks start on Sunday, matching the calendar view.
    """
    d = d or datetime.now().date()
    # weekday(): Monday=0 .. Sunday=6
    start = d - timedelta(days=(d.weekday() + 1) % 7)
    return [format_local_date(start + timedelta(days=i)) for i in range(7)]
