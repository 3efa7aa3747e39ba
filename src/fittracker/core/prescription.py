"""
Prescription grammar for free-text "Reps/Time" cells.

Converts human-entered strings such as "8-12", "30s", "2 min",
"10 steps/side" into a ParsedPrescription.  Rules are ordered and the
first match wins; unit suffixes are checked before bare numbers because
they are the only reliable unit discriminator:

    1. normalize (trim, lowercase)
    2. detect and strip a per-side marker ("per side", "/leg", "each side")
    3. canonicalize "A-B" / "A–B" / "A to B" into "A to B"
    4. minutes      "2 min"        -> seconds, 120
    5. steps        "10 steps"     -> steps, 10
    6. seconds      "30-60s", "45s"-> seconds
    7. reps         "8 to 12", "15"-> reps (default)
    8. otherwise    malformed (unit=reps, no bounds)

The parser never raises.
"""

import re

from .models import ParsedPrescription

_PER_SIDE = re.compile(r"per\s*(?:side|leg)|/\s*(?:side|leg)|each\s*(?:side|leg)")
_RANGE = re.compile(r"(\d+)\s*(?:-|–|—|\bto\b)\s*(\d+)")
_MINUTES = re.compile(r"(\d+)\s*min")
_HAS_STEPS = re.compile(r"steps?\b")
_STEPS = re.compile(r"(\d+)\s*steps?\b")
_SECONDS_SUFFIX = r"\s*(?:s|secs?|seconds?)\b"
_HAS_SECONDS = re.compile(r"\d" + _SECONDS_SUFFIX)
_SECONDS_RANGE = re.compile(r"(\d+)\s*to\s*(\d+)" + _SECONDS_SUFFIX)
_SECONDS_SINGLE = re.compile(r"(\d+)" + _SECONDS_SUFFIX)
_REPS_RANGE = re.compile(r"(\d+)\s*to\s*(\d+)")
_REPS_SINGLE = re.compile(r"^(\d+)\s*(?:reps?)?$")
_ANY_INT = re.compile(r"\d+")


def _ordered(a: int, b: int) -> tuple[int, int]:
    return (a, b) if a <= b else (b, a)


def parse_prescription(raw: str | None, *, lenient: bool = False) -> ParsedPrescription:
    """
    Parse a free-text prescription cell.

    Args:
        raw: Cell text ("8-12", "30s", "2 min", "12 reps per side", ...)
        lenient: When True, fall back to the first integer anywhere in the
            text as a single rep count before giving up.  The training-CSV
            converter uses this; the import report does not.

    Returns:
        ParsedPrescription.  Unparseable input yields the default structure
        (``is_malformed`` is True).
    """
    out = ParsedPrescription()
    if raw is None:
        return out

    text = str(raw).strip().lower()

    if _PER_SIDE.search(text):
        out.per_side = True
        text = _PER_SIDE.sub(" ", text).strip()

    text = _RANGE.sub(r"\1 to \2", text, count=1)

    m = _MINUTES.search(text)
    if m:
        out.unit = "seconds"
        out.time_seconds_min = out.time_seconds_max = int(m.group(1)) * 60
        return out

    if _HAS_STEPS.search(text):
        m = _STEPS.search(text)
        if m:
            out.unit = "steps"
            out.steps_count = int(m.group(1))
            return out

    if _HAS_SECONDS.search(text):
        m = _SECONDS_RANGE.search(text)
        if m:
            out.unit = "seconds"
            out.time_seconds_min, out.time_seconds_max = _ordered(
                int(m.group(1)), int(m.group(2))
            )
            return out
        m = _SECONDS_SINGLE.search(text)
        if m:
            out.unit = "seconds"
            out.time_seconds_min = out.time_seconds_max = int(m.group(1))
            return out

    m = _REPS_RANGE.search(text)
    if m:
        out.reps_min, out.reps_max = _ordered(int(m.group(1)), int(m.group(2)))
        return out

    m = _REPS_SINGLE.match(text)
    if m:
        out.reps_min = out.reps_max = int(m.group(1))
        return out

    if lenient:
        m = _ANY_INT.search(text)
        if m:
            out.reps_min = out.reps_max = int(m.group(0))

    return out


def format_prescription(
    unit: str,
    *,
    reps_min: int | None = None,
    reps_max: int | None = None,
    time_seconds_min: int | None = None,
    time_seconds_max: int | None = None,
    steps_count: int | None = None,
) -> str:
    """Render bounds back to short text: "8-12 reps", "30s", "10 steps"."""
    if unit == "seconds":
        lo, hi, suffix, empty = time_seconds_min, time_seconds_max, "s", "Time"
    elif unit == "steps":
        return f"{steps_count} steps" if steps_count else "Steps"
    else:
        lo, hi, suffix, empty = reps_min, reps_max, " reps", "Reps"

    if lo and hi:
        if lo == hi:
            return f"{lo}{suffix}"
        return f"{lo}-{hi}{suffix}"
    return f"{lo}{suffix}" if lo else empty
