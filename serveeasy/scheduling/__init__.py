from serveeasy.scheduling.date_resolver import DateInfo, TimeWindow, resolve_date_info
from serveeasy.scheduling.free_slots import calculate_free_slots
from serveeasy.scheduling.time_math import minutes_to_time, parse_interval, time_to_minutes

__all__ = [
    "calculate_free_slots",
    "resolve_date_info",
    "DateInfo",
    "TimeWindow",
    "time_to_minutes",
    "minutes_to_time",
    "parse_interval",
]
