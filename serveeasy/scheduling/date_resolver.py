"""
Day/time preference resolver.

Turns a caller's preference ("tomorrow afternoon", "next Friday morning",
"18-10-2026") into a civil date in the service timezone, its weekday name,
and a time-of-day window in minutes. Past dates are rejected.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Optional

import dateparser

from serveeasy.config import settings
from serveeasy.errors import UnresolvableDateError

logger = logging.getLogger(__name__)

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


@dataclass(frozen=True)
class TimeWindow:
    """Half-open [start, end) range of minutes since midnight."""

    start: int
    end: int

    def contains(self, minute: int) -> bool:
        return self.start <= minute < self.end


@dataclass(frozen=True)
class DateInfo:
    date_string: str
    day_of_week: str
    time_window: TimeWindow


TIME_WINDOWS: dict[str, TimeWindow] = {
    "morning": TimeWindow(9 * 60, 12 * 60),
    "afternoon": TimeWindow(12 * 60, 17 * 60),
    "evening": TimeWindow(17 * 60, 21 * 60),
}
FULL_DAY = TimeWindow(0, 24 * 60)

# (text, relative_base) -> datetime or None
PhraseParser = Callable[[str, datetime], Optional[datetime]]

_LITERAL_DATE_RE = re.compile(r"^(\d{2})-(\d{2})-(\d{4})$")
_WINDOW_WORDS_RE = re.compile(r"\b(?:in\s+the\s+|this\s+)?(?:morning|afternoon|evening)\b")
_WEEKDAY_QUALIFIER_RE = re.compile(
    r"\b(?:next|this|coming)\s+(?=(?:" + "|".join(WEEKDAYS) + r")\b)"
)


def service_timezone() -> timezone:
    return timezone(timedelta(minutes=settings.scheduling.utc_offset_minutes))


def local_now(now: Optional[datetime] = None) -> datetime:
    """Current time in the service timezone. Naive ``now`` values are taken as UTC."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(service_timezone())


def detect_time_window(phrase: str) -> TimeWindow:
    lowered = phrase.lower()
    for keyword, window in TIME_WINDOWS.items():
        if keyword in lowered:
            return window
    return FULL_DAY


def parse_with_dateparser(text: str, relative_base: datetime) -> Optional[datetime]:
    """Default phrase parser backed by ``dateparser``, preferring future dates."""
    return dateparser.parse(
        text,
        languages=["en"],
        settings={
            "PREFER_DATES_FROM": "future",
            "DATE_ORDER": "DMY",
            "RELATIVE_BASE": relative_base,
            "RETURN_AS_TIMEZONE_AWARE": False,
        },
    )


def _strip_window_words(phrase: str) -> str:
    stripped = _WINDOW_WORDS_RE.sub(" ", phrase.lower())
    stripped = _WEEKDAY_QUALIFIER_RE.sub("", stripped)
    return " ".join(stripped.split())


def _parse_literal(text: str) -> Optional[date]:
    match = _LITERAL_DATE_RE.match(text)
    if not match:
        return None
    day, month, year = (int(g) for g in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        raise UnresolvableDateError(f"'{text}' is not a valid calendar date.") from None


def resolve_date_info(
    preference: str,
    now: Optional[datetime] = None,
    phrase_parser: PhraseParser = parse_with_dateparser,
) -> DateInfo:
    """
    Resolve a day/time preference to a bookable date and time window.

    Args:
        preference: Free text or a strict DD-MM-YYYY literal, optionally
            with "morning", "afternoon" or "evening".
        now: Reference instant; defaults to the current UTC time.
        phrase_parser: Natural-language interpreter for non-literal phrases.

    Raises:
        UnresolvableDateError: If the phrase cannot be parsed or falls
            before today in the service timezone.
    """
    if not preference or not preference.strip():
        raise UnresolvableDateError("A preferred day is required.")

    current = local_now(now)
    today = current.date()
    window = detect_time_window(preference)
    remainder = _strip_window_words(preference)

    if not remainder:
        resolved = today
    else:
        resolved = _parse_literal(remainder)
        if resolved is None:
            parsed = phrase_parser(remainder, current.replace(tzinfo=None))
            if parsed is None:
                raise UnresolvableDateError(f"Could not understand the preferred day '{preference}'.")
            resolved = parsed.date()

    if resolved < today:
        raise UnresolvableDateError(
            f"The preferred day '{preference}' resolves to {resolved.isoformat()}, which is in the past."
        )

    info = DateInfo(
        date_string=resolved.isoformat(),
        day_of_week=WEEKDAYS[resolved.weekday()],
        time_window=window,
    )
    logger.debug("Resolved '%s' to %s (%s)", preference, info.date_string, info.day_of_week)
    return info
