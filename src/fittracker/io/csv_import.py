"""
Training CSV import.

Expected header (any column order, exact names):

    Day, Exercise, Sets, Reps/Time, Weight, Notes, Form Guidance,
    Muscle Group, Main Muscle

Rows are grouped by Day in first-seen order; each day becomes one
SessionTemplate whose exercises keep row order.  Errors are collected,
never raised past parse_training_csv():

- a missing header column aborts the whole file
- a row with the wrong field count, or without a Day, is skipped
- an exercise that fails to convert is dropped from its day; the day is
  still emitted with its remaining exercises, unless none are left
"""

import logging
import re
import time
from collections.abc import Mapping
from dataclasses import dataclass, field

from ..core.calendar import utc_now_iso
from ..core.config import (
    CONDITIONING_KEYWORDS,
    DAY_TAG_KEYWORDS,
    FALLBACK_TAG,
    REQUIRED_COLUMNS,
    STRENGTH_KEYWORDS,
)
from ..core.estimators import calculate_rest_time, estimate_session_duration
from ..core.models import ParsedPrescription, SessionExercise, SessionTemplate
from ..core.prescription import parse_prescription
from ..core.sessions import generate_id

logger = logging.getLogger(__name__)

_WEIGHT = re.compile(r"(\d+(?:\.\d+)?)")

CSVRow = Mapping[str, str]


class ConversionError(ValueError):
    """Raised when one CSV row cannot become a SessionExercise."""

    pass


@dataclass
class ParsedTrainingCSV:
    """Result of parse_training_csv: templates plus accumulated error strings."""

    sessions: list[SessionTemplate] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def parse_csv_line(line: str) -> list[str]:
    """
    Split one CSV line into fields.

    A double quote toggles "inside quotes", where commas are literal.
    Quote characters themselves are dropped; doubled quotes ("") are not
    treated as an escaped quote.  Empty fields are kept as "".
    """
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False

    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(char)

    fields.append("".join(current))
    return fields


def _split_lines(content: str) -> list[str]:
    # Only \r\n, \r and \n end a row; str.splitlines would also break on
    # \u2028, \x0b and friends inside a cell.  A leading BOM is dropped.
    text = content.lstrip("\ufeff").strip()
    if not text:
        return []
    return re.split(r"\r\n|\r|\n", text)


def _parse_header(line: str) -> list[str]:
    return [col.strip() for col in parse_csv_line(line)]


def _missing_columns(header: list[str]) -> list[str]:
    return [col for col in REQUIRED_COLUMNS if col not in header]


def _parse_rows(lines: list[str], header: list[str], errors: list[str]) -> list[dict[str, str]]:
    rows: list[dict[str, str]] = []
    for line_no, line in enumerate(lines[1:], start=2):
        if not line.strip():
            continue
        values = parse_csv_line(line)
        if len(values) != len(header):
            errors.append(f"Row {line_no}: Expected {len(header)} columns, got {len(values)}")
            continue
        rows.append({col: value.strip() for col, value in zip(header, values)})
    return rows


def parse_training_csv(content: str, now: str | None = None) -> ParsedTrainingCSV:
    """
    Parse training CSV text into session templates.

    Args:
        content: Raw CSV text
        now: Timestamp for created_at/updated_at (default: current time)

    Returns:
        ParsedTrainingCSV with templates in first-seen day order and any
        error strings.  Never raises for bad input.
    """
    result = ParsedTrainingCSV()
    now = now or utc_now_iso()

    lines = _split_lines(content)
    if len(lines) < 2:
        result.errors.append("CSV file must have at least a header and one data row")
        return result

    header = _parse_header(lines[0])
    missing = _missing_columns(header)
    if missing:
        result.errors.extend(f"Missing required column: {col}" for col in missing)
        return result

    rows = _parse_rows(lines, header, result.errors)

    day_groups: dict[str, list[dict[str, str]]] = {}
    for row in rows:
        day = row.get("Day", "")
        if not day:
            result.errors.append(f'Row with exercise "{row.get("Exercise", "")}" has no Day specified')
            continue
        day_groups.setdefault(day, []).append(row)

    for day_name, day_rows in day_groups.items():
        try:
            template = convert_day_to_session_template(day_name, day_rows, result.errors, now=now)
        except ConversionError as e:
            # Each failing exercise was already reported
            logger.warning("Skipping day %s: %s", day_name, e)
            continue
        result.sessions.append(template)

    logger.info(
        "Parsed training CSV: %d sessions, %d errors", len(result.sessions), len(result.errors)
    )
    return result


def convert_day_to_session_template(
    day_name: str,
    rows: list[CSVRow],
    errors: list[str] | None = None,
    *,
    now: str | None = None,
) -> SessionTemplate:
    """
    Build one SessionTemplate from a day's rows.

    Rows that fail conversion are skipped and reported into ``errors`` as
    ``Error processing <day>: Exercise "<name>": <reason>``.

    Raises:
        ConversionError: If no row of the day converts
    """
    exercises: list[SessionExercise] = []
    for row in rows:
        try:
            exercises.append(convert_row_to_session_exercise(row))
        except ConversionError as e:
            message = f'Error processing {day_name}: Exercise "{row.get("Exercise", "")}": {e}'
            logger.warning(message)
            if errors is not None:
                errors.append(message)

    if not exercises:
        raise ConversionError("no valid exercises")

    tags = extract_tags_from_day_name(day_name)
    now = now or utc_now_iso()
    return SessionTemplate(
        id=generate_id(),
        name=day_name,
        description=f"{len(exercises)} exercises targeting {', '.join(tags).lower()}",
        exercises=exercises,
        estimated_duration_minutes=estimate_session_duration(exercises),
        tags=tags,
        created_at=now,
        updated_at=now,
    )


def parse_sets(raw: str) -> int:
    """
    Parse the Sets cell.

    Raises:
        ConversionError: Unless the cell is an integer >= 1
    """
    text = (raw or "").strip()
    m = re.match(r"^[+]?(\d+)", text)
    sets = int(m.group(1)) if m else 0
    if sets < 1:
        raise ConversionError(f'Invalid sets value: "{raw}"')
    return sets


def parse_weight(raw: str | None) -> float | None:
    """Leading decimal number of the Weight cell ("32.5kg" -> 32.5); None if absent."""
    if not raw or not raw.strip():
        return None
    m = _WEIGHT.search(raw)
    return float(m.group(1)) if m else None


def convert_row_to_session_exercise(row: CSVRow) -> SessionExercise:
    """
    Convert one CSV row to a SessionExercise.

    Raises:
        ConversionError: On invalid Sets or an unparseable Reps/Time cell
    """
    sets = parse_sets(row.get("Sets", ""))

    raw_prescription = row.get("Reps/Time", "")
    prescription = parse_prescription(raw_prescription, lenient=True)
    if prescription.is_malformed:
        raise ConversionError(f'Unable to parse reps/time: "{raw_prescription}"')

    muscle_group = row.get("Muscle Group", "")
    try:
        return SessionExercise(
            id=generate_id(),
            name=row.get("Exercise", ""),
            sets=sets,
            unit=prescription.unit,
            per_side=prescription.per_side,
            reps_min=prescription.reps_min,
            reps_max=prescription.reps_max,
            time_seconds_min=prescription.time_seconds_min,
            time_seconds_max=prescription.time_seconds_max,
            steps_count=prescription.steps_count,
            weight=parse_weight(row.get("Weight")),
            notes=row.get("Notes") or None,
            form_guidance=row.get("Form Guidance") or None,
            muscle_group=muscle_group,
            main_muscle=row.get("Main Muscle", ""),
            rest_seconds=calculate_rest_time(muscle_group, sets),
        )
    except ValueError as e:
        raise ConversionError(str(e)) from e


def extract_tags_from_day_name(day_name: str) -> list[str]:
    """
    Tags from keywords in the day name ("Day 1 – Push" -> ["Push"]).

    Falls back to ["General"] when nothing matches.
    """
    lower = day_name.lower()
    tags = [tag for keyword, tag in DAY_TAG_KEYWORDS if keyword in lower]

    if any(k in lower for k in CONDITIONING_KEYWORDS):
        tags.append("Conditioning")
    if any(k in lower for k in STRENGTH_KEYWORDS):
        tags.append("Strength")

    return tags or [FALLBACK_TAG]


# ---------------------------------------------------------------------------
# Import report
# ---------------------------------------------------------------------------


def create_day_key(day_label: str) -> str:
    """Machine-friendly key: "Day 1 – Push" -> "day_1__push"."""
    return re.sub(r"[^\w]", "", re.sub(r"\s+", "_", day_label.lower()))


def create_muscle_slug(muscle_group: str) -> str:
    """Slug for a muscle group: "Chest + Triceps" -> "chest__triceps"."""
    return re.sub(r"[^\w]", "", re.sub(r"\s+", "_", muscle_group.lower()))


@dataclass
class ParsedExerciseRow:
    """One CSV row with its prescription parsed, before grouping."""

    id: str
    day: str
    day_key: str
    exercise: str
    sets: int
    prescription: ParsedPrescription
    muscle_group: str
    main_muscle: str
    weight: float | None = None
    notes: str | None = None
    form_guidance: str | None = None


@dataclass
class ImportStats:
    total_rows: int = 0
    valid_rows: int = 0
    invalid_rows: int = 0
    unit_counts: dict[str, int] = field(
        default_factory=lambda: {"reps": 0, "seconds": 0, "steps": 0}
    )
    malformed_tokens: list[str] = field(default_factory=list)
    parsing_time_ms: float = 0.0


@dataclass
class ImportReport:
    """Row-level view of a CSV used to preview an import."""

    data: list[ParsedExerciseRow] = field(default_factory=list)
    stats: ImportStats = field(default_factory=ImportStats)
    errors: list[str] = field(default_factory=list)


def parse_csv(content: str) -> ImportReport:
    """
    Parse CSV text into a per-row import report.

    Uses the strict prescription grammar; tokens it cannot classify are
    listed in ``stats.malformed_tokens`` and still counted as reps.  Rows
    without Day, Exercise or a valid Sets value are counted invalid.
    """
    started = time.perf_counter()
    report = ImportReport()

    lines = _split_lines(content)
    if not lines:
        report.errors.append("CSV file is empty")
        return report

    header = _parse_header(lines[0])
    missing = _missing_columns(header)
    if missing:
        report.errors.extend(f"Missing required column: {col}" for col in missing)
        return report

    data_lines = [line for line in lines[1:] if line.strip()]
    report.stats.total_rows = len(data_lines)
    rows = _parse_rows(lines, header, report.errors)

    for row in rows:
        try:
            sets = parse_sets(row["Sets"])
        except ConversionError:
            continue
        if not row["Day"] or not row["Exercise"]:
            continue

        raw = row["Reps/Time"]
        prescription = parse_prescription(raw)
        if prescription.is_malformed:
            report.stats.malformed_tokens.append(raw or "empty")
        report.stats.unit_counts[prescription.unit] += 1

        report.data.append(
            ParsedExerciseRow(
                id=f"exercise-{len(report.data) + 1}",
                day=row["Day"],
                day_key=create_day_key(row["Day"]),
                exercise=row["Exercise"],
                sets=sets,
                prescription=prescription,
                weight=parse_weight(row["Weight"]),
                notes=row["Notes"] or None,
                form_guidance=row["Form Guidance"] or None,
                muscle_group=row["Muscle Group"],
                main_muscle=row["Main Muscle"],
            )
        )

    report.stats.valid_rows = len(report.data)
    report.stats.invalid_rows = report.stats.total_rows - report.stats.valid_rows
    report.stats.parsing_time_ms = (time.perf_counter() - started) * 1000
    return report
