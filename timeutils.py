"""Wall-clock arithmetic for booking slots.

Times of day travel through the system as "HH:MM" strings and are compared
as integer minute offsets from midnight. Intervals are half-open:
[start, end).
"""
import re

MINUTES_PER_HOUR = 60
MINUTES_PER_DAY = 24 * MINUTES_PER_HOUR

_TIME_RE = re.compile(r"([0-9]{1,2}):([0-9]{2})")


class TimeFormatError(ValueError):
    """Raised for a time string or minute offset that can't be used."""


def parse_time(value: str) -> int:
    """Convert "HH:MM" to minutes since midnight.

    Hour must be 0-23 and minute 0-59. Anything else fails closed with
    TimeFormatError rather than coercing to midnight.
    """
    if not isinstance(value, str):
        raise TimeFormatError(f"Expected an 'HH:MM' string, got {value!r}")

    match = _TIME_RE.fullmatch(value)
    if not match:
        raise TimeFormatError(f"Invalid time format: {value!r}")

    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise TimeFormatError(f"Time out of range: {value!r}")

    return hour * MINUTES_PER_HOUR + minute


def format_time(minutes: int) -> str:
    """Convert minutes since midnight back to a zero-padded "HH:MM".

    Only offsets inside a single day (0 <= minutes < 1440) are accepted;
    there is no wrap to the next day.
    """
    if isinstance(minutes, bool) or not isinstance(minutes, int):
        raise TimeFormatError(f"Expected integer minutes, got {minutes!r}")
    if minutes < 0 or minutes >= MINUTES_PER_DAY:
        raise TimeFormatError(f"Minutes out of range for a single day: {minutes}")

    hour, minute = divmod(minutes, MINUTES_PER_HOUR)
    return f"{hour:02d}:{minute:02d}"


def overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    # Touching endpoints don't overlap
    return a_start < b_end and b_start < a_end
