"""
Minute-of-day arithmetic shared by slot generation and conflict checks.

Times are handled as integer minutes since midnight; intervals are
half-open, so an interval ending at 10:00 does not collide with one
starting at 10:00.
"""

import re
from typing import Protocol

import pendulum
from pendulum import Date

from .exceptions import FormatError

MINUTES_PER_DAY = 24 * 60

_TIME_PATTERN = re.compile(r"\d{2}:\d{2}")
_DATE_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}")


class IntervalLike(Protocol):
    start: int
    end: int


def to_minutes(value: str) -> int:
    """
    Convert a zero-padded 24-hour ``HH:MM`` string to minutes since midnight.

    Raises:
        FormatError: If the string is not ``HH:MM`` or names an impossible time
    """
    if not isinstance(value, str) or not _TIME_PATTERN.fullmatch(value):
        raise FormatError(f"Invalid time format: {value!r} (expected HH:MM)")

    hours, minutes = (int(part) for part in value.split(":"))
    if hours > 23 or minutes > 59:
        raise FormatError(f"Time out of range: {value!r}")

    return hours * 60 + minutes


def from_minutes(minutes: int) -> str:
    """Format minutes since midnight as ``HH:MM``."""
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f"Minute of day must be between 0 and 1439, got {minutes}")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def overlaps(a: IntervalLike, b: IntervalLike) -> bool:
    """Half-open overlap test: touching intervals do not overlap."""
    return a.start < b.end and b.start < a.end


def parse_date(value: str) -> Date:
    """
    Parse a ``YYYY-MM-DD`` calendar date.

    Raises:
        FormatError: If the string has the wrong shape or is not a real date
    """
    if not isinstance(value, str) or not _DATE_PATTERN.fullmatch(value):
        raise FormatError(f"Invalid date format: {value!r} (expected YYYY-MM-DD)")

    try:
        return pendulum.from_format(value, "YYYY-MM-DD").date()
    except ValueError as exc:
        raise FormatError(f"Invalid date: {value!r}") from exc
