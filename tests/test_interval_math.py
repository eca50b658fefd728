"""
Tests for minute-of-day arithmetic.
"""

import pytest

from bookingcore.domain.exceptions import FormatError, ValidationError
from bookingcore.domain.interval_math import from_minutes, overlaps, parse_date, to_minutes
from bookingcore.domain.models import TimeInterval


class TestToMinutes:
    """Tests for HH:MM parsing."""

    def test_parses_zero_padded_time(self):
        """Test converting valid times to minutes."""
        assert to_minutes("00:00") == 0
        assert to_minutes("09:30") == 570
        assert to_minutes("23:59") == 1439

    @pytest.mark.parametrize("value", ["9:00", "09:0", "0900", "09:00:00", "ab:cd", "", " 09:00"])
    def test_rejects_malformed_time(self, value):
        """Test that anything but HH:MM raises FormatError."""
        with pytest.raises(FormatError, match="Invalid time format"):
            to_minutes(value)

    def test_rejects_impossible_time(self):
        """Test that well-formed but impossible times are rejected."""
        with pytest.raises(FormatError, match="out of range"):
            to_minutes("24:00")
        with pytest.raises(FormatError):
            to_minutes("12:60")

    def test_format_error_is_validation_error(self):
        """Callers can catch every input problem as ValidationError."""
        with pytest.raises(ValidationError):
            to_minutes("noon")


def test_from_minutes_round_trips_known_values():
    assert from_minutes(0) == "00:00"
    assert from_minutes(540) == "09:00"
    assert from_minutes(1439) == "23:59"


class TestOverlaps:
    """Tests for the half-open overlap rule."""

    def test_adjacent_intervals_do_not_overlap(self):
        """An interval ending when another begins is not a conflict."""
        a = TimeInterval(start=0, end=60)
        b = TimeInterval(start=60, end=120)

        assert not overlaps(a, b)
        assert not overlaps(b, a)

    def test_partial_and_contained_overlap(self):
        """Test partial overlap and full containment."""
        outer = TimeInterval(start=540, end=720)
        partial = TimeInterval(start=700, end=760)
        inner = TimeInterval(start=600, end=630)

        assert overlaps(outer, partial)
        assert overlaps(outer, inner)
        assert overlaps(inner, outer)

    @pytest.mark.parametrize(
        "a, b",
        [
            ((0, 60), (30, 90)),
            ((0, 60), (60, 120)),
            ((540, 660), (600, 720)),
            ((100, 200), (300, 400)),
            ((100, 400), (200, 300)),
        ],
    )
    def test_overlap_is_symmetric(self, a, b):
        """overlaps(A, B) always equals overlaps(B, A)."""
        first = TimeInterval(*a)
        second = TimeInterval(*b)

        assert overlaps(first, second) == overlaps(second, first)


class TestParseDate:
    """Tests for YYYY-MM-DD parsing."""

    def test_parses_valid_date(self):
        parsed = parse_date("2025-01-15")

        assert (parsed.year, parsed.month, parsed.day) == (2025, 1, 15)

    @pytest.mark.parametrize("value", ["2025-1-15", "15.01.2025", "2025/01/15", "tomorrow"])
    def test_rejects_wrong_shape(self, value):
        with pytest.raises(FormatError, match="Invalid date format"):
            parse_date(value)

    def test_rejects_impossible_date(self):
        """Test that a correctly shaped but non-existent date is rejected."""
        with pytest.raises(FormatError):
            parse_date("2025-02-30")
