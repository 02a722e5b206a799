"""
Availability orchestrator.

Resolves the caller's day preference, narrows the skill-indexed technician
pool by region, appliance and working day, runs the free-slot calculator per
technician, and returns the earliest few windows inside the requested time
of day.
"""

from datetime import datetime
from typing import Any, Optional, TypedDict

from pydantic import ValidationError

from serveeasy.config import settings
from serveeasy.errors import DuplicateBookingError, InvalidRequestError
from serveeasy.logging_context import get_request_logger
from serveeasy.scheduling.date_resolver import PhraseParser, parse_with_dateparser, resolve_date_info
from serveeasy.scheduling.eligibility import is_eligible
from serveeasy.scheduling.free_slots import calculate_free_slots
from serveeasy.scheduling.time_math import parse_interval
from serveeasy.schemas.technician_schema import Technician
from serveeasy.schemas.ticket_schema import OPEN_STATUSES, AppointmentPointer
from serveeasy.store import paths
from serveeasy.store.base import DocumentStore, is_valid_key
from serveeasy.utils import local_phone

logger = get_request_logger(__name__)

NO_AVAILABILITY_MESSAGE = "No available slots found for the requested day and time."


class SlotOffer(TypedDict):
    """A single bookable window on one technician's calendar."""

    time: str
    techId: str
    techName: str


class AvailabilityResult(TypedDict, total=False):
    """Result from find_available_slots."""

    slots: list[SlotOffer]
    error: str


async def find_open_ticket(store: DocumentStore, phone: str) -> Optional[dict[str, Any]]:
    """Return the earliest-created open ticket for a customer phone, if any."""
    tickets = await store.query(paths.TICKETS, "customerPhone", local_phone(phone))
    open_tickets = [
        t for t in tickets.values() if t.get("status") in {s.value for s in OPEN_STATUSES}
    ]
    if not open_tickets:
        return None
    return min(open_tickets, key=lambda t: (t.get("createdAt", ""), t.get("ticketId", "")))


def booked_intervals(bucket: Any, tech_id: str) -> list[dict[str, str]]:
    """Extract ``{start, end}`` bookings from a technician's date bucket, skipping bad entries."""
    if not isinstance(bucket, dict):
        return []
    intervals = []
    for key, raw in bucket.items():
        try:
            pointer = AppointmentPointer.model_validate(raw)
        except ValidationError:
            logger.warning("Skipping malformed appointment %s for technician %s", key, tech_id)
            continue
        intervals.append({"start": pointer.start, "end": pointer.end})
    return intervals


def _load_technician(tech_id: str, record: Any) -> Optional[Technician]:
    if not isinstance(record, dict):
        return None
    try:
        return Technician.from_store(tech_id, record)
    except ValidationError as exc:
        logger.warning("Ignoring invalid technician record %s: %s", tech_id, exc.errors()[0]["msg"])
        return None


async def find_available_slots(
    store: DocumentStore,
    region: str,
    skill: str,
    appliance: str,
    time_preference: str,
    customer_phone: Optional[str] = None,
    now: Optional[datetime] = None,
    phrase_parser: PhraseParser = parse_with_dateparser,
) -> AvailabilityResult:
    """
    Find the earliest open service windows for a job.

    Raises:
        DuplicateBookingError: The customer already has a Booked or InProgress ticket.
        UnresolvableDateError: The day preference is unparseable or in the past.
        InvalidRequestError: A required parameter is missing or unusable.
    """
    missing = [
        name for name, value in [("region", region), ("skill", skill), ("appliance", appliance)]
        if not value or not value.strip()
    ]
    if missing:
        raise InvalidRequestError(f"Missing required fields: {', '.join(missing)}.")
    skill = skill.strip()
    if not is_valid_key(skill):
        raise InvalidRequestError(f"Invalid skill name '{skill}'.")

    if customer_phone:
        existing = await find_open_ticket(store, customer_phone)
        if existing:
            logger.info("Open ticket %s already exists for caller", existing.get("ticketId"))
            raise DuplicateBookingError(
                "You already have an open booking. Please reschedule or cancel it instead.",
                existing_ticket_id=existing.get("ticketId"),
            )

    info = resolve_date_info(time_preference, now=now, phrase_parser=phrase_parser)
    logger.info(
        "Finding slots: region=%s skill=%s appliance=%s date=%s (%s)",
        region, skill, appliance, info.date_string, info.day_of_week,
    )

    index = await store.get(paths.skill_index(skill))
    if not isinstance(index, dict) or not index:
        logger.info("No technicians indexed for skill '%s'", skill)
        return {"slots": []}
    candidate_ids = sorted(tech_id for tech_id, enabled in index.items() if enabled)

    todays_appointments = await store.get(paths.appointments_on(info.date_string)) or {}
    records = await store.get_many(paths.technician(tech_id) for tech_id in candidate_ids)

    offers: dict[tuple[str, str], SlotOffer] = {}
    for tech_id in candidate_ids:
        technician = _load_technician(tech_id, records.get(paths.technician(tech_id)))
        if not is_eligible(technician, region, appliance, info.day_of_week):
            continue
        bookings = booked_intervals(todays_appointments.get(tech_id), tech_id)
        free = calculate_free_slots(
            technician.hours_on(info.day_of_week),
            bookings,
            duration=settings.scheduling.service_duration_minutes,
        )
        logger.debug("Technician %s has %d free slots on %s", tech_id, len(free), info.date_string)
        for window in free:
            start, _ = parse_interval(window)
            if info.time_window.contains(start):
                offers[(window, tech_id)] = {
                    "time": window, "techId": tech_id, "techName": technician.name,
                }

    ordered = sorted(offers.values(), key=lambda o: (parse_interval(o["time"])[0], o["techId"]))
    slots = ordered[: settings.scheduling.max_slots_returned]
    if not slots:
        logger.info("No availability on %s", info.date_string)
        return {"slots": [], "error": NO_AVAILABILITY_MESSAGE}

    logger.info("Returning %d slots for %s", len(slots), info.date_string)
    return {"slots": slots}
