"""Minute-of-day conversions for "HH:MM" times and "HH:MM-HH:MM" intervals."""

import re

MINUTES_PER_DAY = 24 * 60

_TIME_RE = re.compile(r"^(\d{2}):(\d{2})$")


def time_to_minutes(value: str) -> int:
    """Convert "HH:MM" to minutes since midnight. "24:00" is end of day.

    Raises:
        ValueError: If the value is not a valid 24-hour clock time.
    """
    match = _TIME_RE.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValueError(f"Invalid time {value!r}, expected HH:MM")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if minutes > 59 or hours > 24 or (hours == 24 and minutes != 0):
        raise ValueError(f"Invalid time {value!r}, expected HH:MM")
    return hours * 60 + minutes


def minutes_to_time(minutes: int) -> str:
    """Convert minutes since midnight back to zero-padded "HH:MM"."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_interval(value: str) -> tuple[int, int]:
    """Split "HH:MM-HH:MM" into (start, end) minutes.

    Raises:
        ValueError: If either side is malformed or start is not before end.
    """
    parts = value.split("-") if isinstance(value, str) else []
    if len(parts) != 2:
        raise ValueError(f"Invalid interval {value!r}, expected HH:MM-HH:MM")
    start, end = time_to_minutes(parts[0]), time_to_minutes(parts[1])
    if start >= end:
        raise ValueError(f"Invalid interval {value!r}, start must be before end")
    return start, end


def format_interval(start: int, end: int) -> str:
    return f"{minutes_to_time(start)}-{minutes_to_time(end)}"


def is_interval(value: str) -> bool:
    try:
        parse_interval(value)
    except ValueError:
        return False
    return True


def overlaps(a: tuple[int, int], b: tuple[int, int]) -> bool:
    """Half-open overlap test; touching intervals do not overlap."""
    return a[0] < b[1] and b[0] < a[1]
