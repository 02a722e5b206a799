"""
Free-slot calculator ("ruler" algorithm).

Tiles a technician's shift with fixed-length service windows, walking a
cursor left to right and jumping over each booking. Windows are aligned to
the shift start and to booking ends, not to every free sub-interval.

Usage:
    calculate_free_slots("09:00-18:00", [{"start": "11:00", "end": "12:30"}])
    # -> ["09:00-11:00", "12:30-14:30", "14:30-16:30"]
"""

from collections.abc import Iterable, Mapping

from serveeasy.scheduling.time_math import format_interval, parse_interval, time_to_minutes

DEFAULT_SERVICE_DURATION = 120


def calculate_free_slots(
    working_hours: str,
    booked_slots: Iterable[Mapping[str, str]],
    duration: int = DEFAULT_SERVICE_DURATION,
) -> list[str]:
    """
    Compute open service windows for one technician on one date.

    Args:
        working_hours: Single contiguous shift, "HH:MM-HH:MM".
        booked_slots: Bookings as ``{"start": "HH:MM", "end": "HH:MM"}`` in any order.
        duration: Window length in minutes.

    Returns:
        Chronological "HH:MM-HH:MM" windows inside the shift that do not
        overlap any booking.
    """
    if duration <= 0:
        raise ValueError(f"duration must be positive, got {duration}")
    work_start, work_end = parse_interval(working_hours)
    bookings = sorted(
        (time_to_minutes(slot["start"]), time_to_minutes(slot["end"])) for slot in booked_slots
    )

    free: list[str] = []
    cursor = work_start

    for booked_start, booked_end in bookings:
        limit = min(booked_start, work_end)
        while cursor + duration <= limit:
            free.append(format_interval(cursor, cursor + duration))
            cursor += duration
        cursor = max(cursor, booked_end)

    while cursor + duration <= work_end:
        free.append(format_interval(cursor, cursor + duration))
        cursor += duration

    return free
