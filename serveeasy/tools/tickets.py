"""
Ticket lifecycle manager.

Creates, reads, updates, reschedules and cancels service tickets while
keeping each ticket's appointment pointer in step with it: a live ticket
owns exactly one pointer at ``appointments/{appointmentDate}/{TechId}/*``
and a cancelled ticket owns none. Every write that touches both a ticket
and a pointer goes through one store transaction, and the pointers it
removes are taken from that transaction's snapshot.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Optional, TypedDict

from pydantic import ValidationError

from serveeasy.errors import (
    ConflictError,
    DuplicateBookingError,
    InvalidRequestError,
    InvalidTransitionError,
    SlotUnavailableError,
    StoreError,
    TechnicianNotFoundError,
    TicketNotFoundError,
)
from serveeasy.logging_context import get_request_logger
from serveeasy.scheduling.ticket_state import ensure_transition
from serveeasy.scheduling.time_math import overlaps, parse_interval
from serveeasy.schemas.technician_schema import Technician
from serveeasy.schemas.ticket_schema import (
    OPEN_STATUSES,
    AppointmentPointer,
    CreateTicketRequest,
    RescheduleRequest,
    SimpleUpdate,
    Ticket,
    TicketStatus,
    parse_update_request,
)
from serveeasy.store import paths
from serveeasy.store.base import DocumentStore, is_valid_key
from serveeasy.utils import generate_ticket_id, local_phone, normalize_key

logger = get_request_logger(__name__)

TICKET_ID_ATTEMPTS = 3
# Retries when the ticket moves between the read and the write
TICKET_WRITE_ATTEMPTS = 3


class TicketResult(TypedDict):
    """Result from create, update, reschedule and cancel."""

    status: str
    ticketId: str


class TicketLookup(TypedDict):
    ticket: dict[str, Any]


class _TicketIdTaken(Exception):
    """Generated ticket id already exists; retry with a fresh one."""


class _TicketMoved(Exception):
    """Ticket date or technician changed after it was read; retry from a fresh read."""


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _describe_errors(exc: ValidationError, prefix: str = "") -> str:
    missing, invalid = [], []
    for err in exc.errors():
        location = prefix + ".".join(str(part) for part in err["loc"])
        if err["type"] in ("missing", "string_too_short"):
            missing.append(location)
        else:
            invalid.append(f"{location} ({err['msg']})")
    parts = []
    if missing:
        parts.append(f"missing required fields: {', '.join(missing)}")
    if invalid:
        parts.append(f"invalid fields: {', '.join(invalid)}")
    return "; ".join(parts)


def _conflicting_pointer(
    bucket: Any, time: str, ignore_ticket: Optional[str] = None
) -> Optional[dict[str, Any]]:
    """Return the first pointer in a date bucket that overlaps ``time``."""
    if not isinstance(bucket, dict):
        return None
    wanted = parse_interval(time)
    for raw in bucket.values():
        if not isinstance(raw, dict) or raw.get("ticketId") == ignore_ticket:
            continue
        try:
            held = parse_interval(f"{raw.get('start')}-{raw.get('end')}")
        except ValueError:
            continue
        if overlaps(wanted, held):
            return raw
    return None


def _owned_pointers(bucket: Any, bucket_path: str, ticket_id: str) -> list[str]:
    """Paths of every pointer in a date bucket snapshot that belongs to ``ticket_id``."""
    if not isinstance(bucket, dict):
        return []
    return sorted(
        f"{bucket_path}/{key}" for key, raw in bucket.items()
        if isinstance(raw, dict) and raw.get("ticketId") == ticket_id
    )


def _unmoved(snapshot: dict[str, Any], ticket_path: str, seen: Ticket) -> dict[str, Any]:
    """Return the ticket document from a snapshot, checking it still sits where it was read."""
    current = snapshot[ticket_path]
    if not isinstance(current, dict):
        raise TicketNotFoundError(seen.ticket_id)
    if (current.get("appointmentDate"), current.get("TechId")) != (seen.appointment_date, seen.tech_id):
        raise _TicketMoved(seen.ticket_id)
    return current


async def _fetch_technician(store: DocumentStore, tech_id: str) -> Technician:
    record = await store.get(paths.technician(tech_id))
    if not isinstance(record, dict):
        raise TechnicianNotFoundError(tech_id)
    try:
        return Technician.from_store(tech_id, record)
    except ValidationError:
        logger.warning("Technician record %s failed validation", tech_id)
        raise TechnicianNotFoundError(tech_id) from None


async def _fetch_ticket(store: DocumentStore, ticket_id: str) -> Ticket:
    if not ticket_id or not is_valid_key(ticket_id):
        raise InvalidRequestError("A valid ticketId is required.")
    record = await store.get(paths.ticket(ticket_id))
    if not isinstance(record, dict):
        raise TicketNotFoundError(ticket_id)
    try:
        return Ticket.model_validate(record)
    except ValidationError as exc:
        logger.error("Stored ticket %s is malformed: %s", ticket_id, exc.errors()[0]["msg"])
        raise StoreError(f"Stored ticket {ticket_id} is malformed") from exc


def _calendar_bucket(ticket: Ticket) -> str:
    if not (is_valid_key(ticket.appointment_date) and is_valid_key(ticket.tech_id)):
        raise StoreError(f"Stored ticket {ticket.ticket_id} has an unusable appointment location")
    return paths.tech_appointments(ticket.appointment_date, ticket.tech_id)


# ---------------------------------------------------------------------- #
# Create
# ---------------------------------------------------------------------- #


async def _find_open_ticket_for_appliance(
    store: DocumentStore, phone: str, appliance: str
) -> Optional[dict[str, Any]]:
    tickets = await store.query(paths.TICKETS, "customerPhone", phone)
    wanted = normalize_key(appliance)
    for record in sorted(tickets.values(), key=lambda t: t.get("createdAt", "")):
        if (
            record.get("status") in {s.value for s in OPEN_STATUSES}
            and normalize_key(str(record.get("appliance", ""))) == wanted
        ):
            return record
    return None


async def create_ticket(
    store: DocumentStore,
    payload: dict[str, Any],
    id_factory: Callable[[], str] = generate_ticket_id,
) -> TicketResult:
    """
    Book a slot and open a ticket.

    Raises:
        InvalidRequestError: Required fields missing or malformed.
        DuplicateBookingError: Same customer already has an open ticket for this appliance.
        SlotUnavailableError: The technician is already booked at that time.
        TechnicianNotFoundError: The selected technician does not exist.
    """
    try:
        request = CreateTicketRequest.model_validate(payload)
    except ValidationError as exc:
        raise InvalidRequestError(f"Cannot create ticket - {_describe_errors(exc)}.") from None

    date_string = request.appointment_date
    tech_id = request.slot.tech_id
    time = request.slot.time
    phone = local_phone(request.customer_info.phone)
    if not is_valid_key(tech_id):
        raise InvalidRequestError(f"Invalid technician id '{tech_id}'.")

    existing = await _find_open_ticket_for_appliance(store, phone, request.job_info.appliance)
    if existing:
        raise DuplicateBookingError(
            f"An open ticket already exists for this {request.job_info.appliance}.",
            existing_ticket_id=existing.get("ticketId"),
        )

    bucket_path = paths.tech_appointments(date_string, tech_id)
    if _conflicting_pointer(await store.get(bucket_path), time):
        raise SlotUnavailableError(f"The {time} slot on {date_string} is no longer available.")

    technician = await _fetch_technician(store, tech_id)

    for attempt in range(1, TICKET_ID_ATTEMPTS + 1):
        ticket_id = id_factory()
        ticket = Ticket(
            ticket_id=ticket_id,
            status=TicketStatus.BOOKED,
            customer_name=request.customer_info.name,
            customer_phone=phone,
            customer_address=request.customer_info.address,
            tech_id=tech_id,
            tech_name=technician.name,
            tech_phone=technician.phone,
            appliance=request.job_info.appliance,
            description=request.job_info.description,
            request_type=request.job_info.request_type,
            urgency=request.job_info.urgency,
            model_info=request.job_info.model_info,
            appointment_date=date_string,
            appointment_time=time,
            created_at=_now_iso(),
        )
        pointer = AppointmentPointer.for_slot(time, ticket_id)
        pointer_path = paths.appointment(date_string, tech_id, store.generate_key())
        ticket_path = paths.ticket(ticket_id)

        def reserve(snapshot: dict[str, Any]) -> dict[str, Any]:
            if snapshot[ticket_path] is not None:
                raise _TicketIdTaken(ticket_id)
            if _conflicting_pointer(snapshot[bucket_path], time):
                raise SlotUnavailableError(f"The {time} slot on {date_string} is no longer available.")
            return {
                ticket_path: ticket.to_store(),
                pointer_path: pointer.model_dump(by_alias=True),
            }

        try:
            await store.transaction([ticket_path, bucket_path], reserve)
        except _TicketIdTaken:
            logger.warning("Ticket id %s collided (attempt %d)", ticket_id, attempt)
            continue

        logger.info("Ticket created: %s with %s on %s at %s", ticket_id, tech_id, date_string, time)
        return {"status": "confirmed", "ticketId": ticket_id}

    raise ConflictError("Could not allocate a unique ticket id, please retry.")


# ---------------------------------------------------------------------- #
# Read
# ---------------------------------------------------------------------- #


async def get_ticket(store: DocumentStore, ticket_id: str) -> TicketLookup:
    """Fetch a ticket by id. Raises TicketNotFoundError when absent."""
    ticket = await _fetch_ticket(store, ticket_id)
    return {"ticket": ticket.to_store()}


# ---------------------------------------------------------------------- #
# Update / reschedule
# ---------------------------------------------------------------------- #


async def update_ticket(store: DocumentStore, ticket_id: str, updates: dict[str, Any]) -> TicketResult:
    """
    Apply an update request: a plain field merge or, when a ``reschedule``
    object is present, a move to a new date/technician/time.
    """
    if not isinstance(updates, dict) or not updates:
        raise InvalidRequestError("An updates object is required.")
    try:
        request = parse_update_request(updates)
    except ValidationError as exc:
        raise InvalidRequestError(
            f"Cannot reschedule ticket - {_describe_errors(exc, prefix='reschedule.')}."
        ) from None

    if isinstance(request, RescheduleRequest):
        return await _reschedule(store, ticket_id, request)
    return await _apply_simple_update(store, ticket_id, request)


async def _apply_simple_update(store: DocumentStore, ticket_id: str, request: SimpleUpdate) -> TicketResult:
    fields = request.fields
    if not fields:
        raise InvalidRequestError("No updatable fields supplied.")
    bad_keys = [key for key in fields if not is_valid_key(key)]
    if bad_keys:
        raise InvalidRequestError(f"Invalid field names: {', '.join(bad_keys)}.")

    target: Optional[TicketStatus] = None
    if "status" in fields:
        try:
            target = TicketStatus(fields["status"])
        except ValueError:
            allowed = [s.value for s in TicketStatus]
            raise InvalidRequestError(f"Unknown status '{fields['status']}'. Allowed: {allowed}") from None
        fields = {**fields, "status": target.value}
    cancelling = target == TicketStatus.CANCELLED
    ticket_path = paths.ticket(ticket_id)

    for attempt in range(1, TICKET_WRITE_ATTEMPTS + 1):
        ticket = await _fetch_ticket(store, ticket_id)
        if target is not None:
            ensure_transition(ticket.status, target)
        read_paths = [ticket_path]
        bucket_path = None
        if cancelling:
            bucket_path = _calendar_bucket(ticket)
            read_paths.append(bucket_path)
        now = _now_iso()

        def merge(snapshot: dict[str, Any]) -> dict[str, Any]:
            if cancelling:
                current = _unmoved(snapshot, ticket_path, ticket)
            else:
                current = snapshot[ticket_path]
                if not isinstance(current, dict):
                    raise TicketNotFoundError(ticket_id)
            status = TicketStatus(current["status"])
            if target is not None:
                ensure_transition(status, target)
            writes: dict[str, Any] = {f"{ticket_path}/{key}": value for key, value in fields.items()}
            writes[f"{ticket_path}/updatedAt"] = now
            if cancelling and status != TicketStatus.CANCELLED:
                writes[f"{ticket_path}/cancelledAt"] = now
                writes.update({path: None for path in _owned_pointers(snapshot[bucket_path], bucket_path, ticket_id)})
            return writes

        try:
            await store.transaction(read_paths, merge)
        except _TicketMoved:
            logger.warning("Ticket %s moved during update (attempt %d)", ticket_id, attempt)
            continue

        logger.info("Ticket %s updated: %s", ticket_id, sorted(fields))
        return {"status": "updated", "ticketId": ticket_id}

    raise ConflictError(f"Ticket {ticket_id} changed while updating, please retry.")


async def _reschedule(store: DocumentStore, ticket_id: str, request: RescheduleRequest) -> TicketResult:
    new_date = request.new_date
    new_tech_id = request.new_slot.tech_id
    new_time = request.new_slot.time
    if not is_valid_key(new_tech_id):
        raise InvalidRequestError(f"Invalid technician id '{new_tech_id}'.")
    for name, value in (("oldDate", request.old_date), ("oldTechId", request.old_tech_id)):
        if value is not None and not is_valid_key(value):
            raise InvalidRequestError(f"Invalid reschedule.{name} '{value}'.")

    ticket = await _fetch_ticket(store, ticket_id)
    technician = await _fetch_technician(store, new_tech_id)

    ticket_path = paths.ticket(ticket_id)
    bucket_path = paths.tech_appointments(new_date, new_tech_id)
    pointer = AppointmentPointer.for_slot(new_time, ticket_id)

    for attempt in range(1, TICKET_WRITE_ATTEMPTS + 1):
        if attempt > 1:
            ticket = await _fetch_ticket(store, ticket_id)
        if ticket.status not in OPEN_STATUSES:
            raise InvalidTransitionError(
                f"Ticket {ticket_id} is {ticket.status.value} and cannot be rescheduled."
            )

        # The ticket's own location, plus the caller's stated old location when it differs
        cleanup = [_calendar_bucket(ticket)]
        if request.old_date or request.old_tech_id:
            stated = paths.tech_appointments(
                request.old_date or ticket.appointment_date, request.old_tech_id or ticket.tech_id
            )
            if stated not in cleanup:
                cleanup.append(stated)

        pointer_path = paths.appointment(new_date, new_tech_id, store.generate_key())
        now = _now_iso()

        def move(snapshot: dict[str, Any]) -> dict[str, Any]:
            current = _unmoved(snapshot, ticket_path, ticket)
            if current.get("status") not in {s.value for s in OPEN_STATUSES}:
                raise InvalidTransitionError(f"Ticket {ticket_id} can no longer be rescheduled.")
            if _conflicting_pointer(snapshot[bucket_path], new_time, ignore_ticket=ticket_id):
                raise SlotUnavailableError(f"The {new_time} slot on {new_date} is no longer available.")
            old_paths = [p for bucket in cleanup for p in _owned_pointers(snapshot[bucket], bucket, ticket_id)]
            if not old_paths:
                logger.warning("No appointment found for %s; rescheduling without cleanup", ticket_id)
            writes: dict[str, Any] = {path: None for path in old_paths}
            writes.update({
                f"{ticket_path}/appointmentDate": new_date,
                f"{ticket_path}/appointmentTime": new_time,
                f"{ticket_path}/TechId": new_tech_id,
                f"{ticket_path}/techName": technician.name,
                f"{ticket_path}/techPhone": technician.phone,
                f"{ticket_path}/updatedAt": now,
                pointer_path: pointer.model_dump(by_alias=True),
            })
            return writes

        try:
            await store.transaction([ticket_path, bucket_path, *cleanup], move)
        except _TicketMoved:
            logger.warning("Ticket %s moved during reschedule (attempt %d)", ticket_id, attempt)
            continue

        logger.info(
            "Ticket %s rescheduled: %s/%s -> %s/%s at %s",
            ticket_id, ticket.appointment_date, ticket.tech_id, new_date, new_tech_id, new_time,
        )
        return {"status": "rescheduled", "ticketId": ticket_id}

    raise ConflictError(f"Ticket {ticket_id} changed while rescheduling, please retry.")


# ---------------------------------------------------------------------- #
# Cancel
# ---------------------------------------------------------------------- #


async def cancel_ticket(store: DocumentStore, ticket_id: str) -> TicketResult:
    """
    Cancel a ticket and free its calendar slot in the same write.

    The ticket document is kept with status Cancelled. Cancelling twice is
    a no-op; cancelling a Completed ticket raises InvalidTransitionError.
    """
    ticket_path = paths.ticket(ticket_id)

    for attempt in range(1, TICKET_WRITE_ATTEMPTS + 1):
        ticket = await _fetch_ticket(store, ticket_id)
        if ticket.status == TicketStatus.CANCELLED:
            logger.info("Ticket %s already cancelled", ticket_id)
            return {"status": "cancelled", "ticketId": ticket_id}
        ensure_transition(ticket.status, TicketStatus.CANCELLED)

        bucket_path = _calendar_bucket(ticket)
        now = _now_iso()

        def flip(snapshot: dict[str, Any]) -> dict[str, Any]:
            current = _unmoved(snapshot, ticket_path, ticket)
            status = TicketStatus(current["status"])
            if status == TicketStatus.CANCELLED:
                return {}
            ensure_transition(status, TicketStatus.CANCELLED)
            writes: dict[str, Any] = {
                path: None for path in _owned_pointers(snapshot[bucket_path], bucket_path, ticket_id)
            }
            writes.update({
                f"{ticket_path}/status": TicketStatus.CANCELLED.value,
                f"{ticket_path}/cancelledAt": now,
                f"{ticket_path}/updatedAt": now,
            })
            return writes

        try:
            writes = await store.transaction([ticket_path, bucket_path], flip)
        except _TicketMoved:
            logger.warning("Ticket %s moved during cancel (attempt %d)", ticket_id, attempt)
            continue

        released = sum(1 for value in writes.values() if value is None)
        logger.info("Ticket cancelled: %s (%d calendar entries released)", ticket_id, released)
        return {"status": "cancelled", "ticketId": ticket_id}

    raise ConflictError(f"Ticket {ticket_id} changed while cancelling, please retry.")
