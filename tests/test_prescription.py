"""
Unit tests for the Reps/Time prescription grammar.

Covers the unit discriminators (min, steps, s), ranges, the per-side
marker and the malformed-token signal.
"""

import pytest

from fittracker.core.prescription import format_prescription, parse_prescription


class TestReps:
    """Bare numbers and ranges default to reps."""

    @pytest.mark.parametrize("raw", ["8-12", "8 - 12", "8 to 12", "8–12", "8—12"])
    def test_range_forms(self, raw):
        p = parse_prescription(raw)
        assert p.unit == "reps"
        assert (p.reps_min, p.reps_max) == (8, 12)
        assert p.per_side is False

    def test_single_value(self):
        p = parse_prescription("15")
        assert p.unit == "reps"
        assert p.reps_min == p.reps_max == 15

    def test_reps_suffix(self):
        p = parse_prescription("10 reps")
        assert p.reps_min == p.reps_max == 10

    def test_reversed_range_is_ordered(self):
        p = parse_prescription("12-8")
        assert (p.reps_min, p.reps_max) == (8, 12)

    def test_whitespace_and_case(self):
        p = parse_prescription("  10 TO 12  ")
        assert (p.reps_min, p.reps_max) == (10, 12)


class TestTime:
    """Seconds and minutes."""

    @pytest.mark.parametrize("raw,expected", [("30s", 30), ("45 sec", 45), ("60 seconds", 60), ("20 s", 20)])
    def test_single_seconds(self, raw, expected):
        p = parse_prescription(raw)
        assert p.unit == "seconds"
        assert p.time_seconds_min == p.time_seconds_max == expected
        assert p.reps_min is None

    def test_seconds_range(self):
        p = parse_prescription("30-60s")
        assert p.unit == "seconds"
        assert (p.time_seconds_min, p.time_seconds_max) == (30, 60)

    def test_minutes(self):
        p = parse_prescription("2 min")
        assert p.unit == "seconds"
        assert p.time_seconds_min == p.time_seconds_max == 120

    def test_minutes_beat_seconds(self):
        p = parse_prescription("1 mins")
        assert p.time_seconds_min == 60


class TestSteps:
    def test_steps(self):
        p = parse_prescription("10 steps")
        assert p.unit == "steps"
        assert p.steps_count == 10
        assert p.reps_min is None

    def test_single_step(self):
        assert parse_prescription("1 step").steps_count == 1


class TestPerSide:
    """Per-side markers are detected and stripped before classification."""

    def test_reps_per_side(self):
        p = parse_prescription("12 reps per side")
        assert p.per_side is True
        assert p.unit == "reps"
        assert p.reps_min == p.reps_max == 12

    @pytest.mark.parametrize("raw", ["12/side", "12 / leg", "12 each side", "12 per leg"])
    def test_marker_variants(self, raw):
        p = parse_prescription(raw)
        assert p.per_side is True
        assert p.reps_min == 12

    def test_steps_per_side(self):
        p = parse_prescription("10 steps/side")
        assert p.unit == "steps"
        assert p.steps_count == 10
        assert p.per_side is True

    def test_timed_per_side(self):
        p = parse_prescription("30s per side")
        assert p.unit == "seconds"
        assert p.time_seconds_min == 30
        assert p.per_side is True


class TestMalformed:
    """Unparseable text returns the default structure instead of raising."""

    @pytest.mark.parametrize("raw", ["garbage", "", "AMRAP", None])
    def test_malformed_signal(self, raw):
        p = parse_prescription(raw)
        assert p.unit == "reps"
        assert p.reps_min is None and p.reps_max is None
        assert p.is_malformed

    def test_strict_rejects_embedded_number(self):
        assert parse_prescription("about 10 or so").is_malformed

    def test_lenient_takes_first_number(self):
        p = parse_prescription("about 10 or so", lenient=True)
        assert not p.is_malformed
        assert p.reps_min == p.reps_max == 10

    def test_lenient_still_malformed_without_digits(self):
        assert parse_prescription("max effort", lenient=True).is_malformed


class TestFormatPrescription:
    def test_reps_range(self):
        assert format_prescription("reps", reps_min=8, reps_max=12) == "8-12 reps"

    def test_single_seconds(self):
        assert format_prescription("seconds", time_seconds_min=30, time_seconds_max=30) == "30s"

    def test_steps(self):
        assert format_prescription("steps", steps_count=10) == "10 steps"

    def test_empty_bounds(self):
        assert format_prescription("reps") == "Reps"
        assert format_prescription("seconds") == "Time"
        assert format_prescription("steps") == "Steps"
