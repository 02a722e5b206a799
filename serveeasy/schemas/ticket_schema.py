"""Ticket, appointment-pointer and ticket request models."""

from datetime import date
from enum import Enum
from typing import Annotated, Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator
from pydantic.alias_generators import to_camel

from serveeasy.scheduling.time_math import parse_interval

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]

RESCHEDULE_KEY = "reschedule"


class TicketStatus(str, Enum):
    BOOKED = "Booked"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


OPEN_STATUSES = frozenset({TicketStatus.BOOKED, TicketStatus.IN_PROGRESS})


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, protected_namespaces=())


def _check_date(value: str) -> str:
    try:
        date.fromisoformat(value)
    except ValueError:
        raise ValueError("must be a YYYY-MM-DD date") from None
    if len(value) != 10:
        raise ValueError("must be a YYYY-MM-DD date")
    return value


def _check_interval(value: str) -> str:
    parse_interval(value)
    return value


class AppointmentPointer(_CamelModel):
    """One reserved interval on a technician's calendar for one date."""

    start: str
    end: str
    ticket_id: str

    @field_validator("end")
    @classmethod
    def end_after_start(cls, value: str, info) -> str:
        start = info.data.get("start")
        if start is not None:
            parse_interval(f"{start}-{value}")
        return value

    @classmethod
    def for_slot(cls, time: str, ticket_id: str) -> "AppointmentPointer":
        start, end = time.split("-")
        return cls(start=start, end=end, ticket_id=ticket_id)

    @property
    def interval(self) -> str:
        return f"{self.start}-{self.end}"


class Ticket(_CamelModel):
    """Durable booking record stored under ``tickets/{ticketId}``."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, protected_namespaces=(), extra="allow"
    )

    ticket_id: str
    status: TicketStatus = TicketStatus.BOOKED
    customer_name: str
    customer_phone: str
    customer_address: str
    tech_id: str = Field(alias="TechId")
    tech_name: str = ""
    tech_phone: str = ""
    appliance: str
    description: str = ""
    request_type: str
    urgency: Optional[str] = None
    model_info: Optional[Any] = None
    appointment_date: str
    appointment_time: str
    created_at: str
    updated_at: Optional[str] = None
    cancelled_at: Optional[str] = None

    def to_store(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# Fields only the create and reschedule paths may write
SCHEDULING_FIELDS = frozenset({
    "ticketId", "TechId", "techName", "techPhone",
    "appointmentDate", "appointmentTime", "createdAt",
})


class SlotSelection(_CamelModel):
    tech_id: NonEmptyStr
    time: NonEmptyStr

    @field_validator("time")
    @classmethod
    def check_time(cls, value: str) -> str:
        return _check_interval(value)


class CustomerInfo(_CamelModel):
    name: NonEmptyStr
    phone: NonEmptyStr
    address: NonEmptyStr


class JobInfo(_CamelModel):
    request_type: NonEmptyStr
    appliance: NonEmptyStr
    description: str = ""
    urgency: Optional[str] = None
    model_info: Optional[Any] = None


class CreateTicketRequest(_CamelModel):
    appointment_date: NonEmptyStr
    slot: SlotSelection
    customer_info: CustomerInfo
    job_info: JobInfo

    @field_validator("appointment_date")
    @classmethod
    def check_date(cls, value: str) -> str:
        return _check_date(value)


class SimpleUpdate(BaseModel):
    """Plain field merge into the ticket document."""

    fields: dict[str, Any]


class RescheduleRequest(_CamelModel):
    """Move a ticket to a new date, technician and time."""

    new_date: NonEmptyStr
    new_slot: SlotSelection
    old_date: Optional[str] = None
    old_tech_id: Optional[str] = None

    @field_validator("new_date")
    @classmethod
    def check_new_date(cls, value: str) -> str:
        return _check_date(value)


UpdateRequest = Union[SimpleUpdate, RescheduleRequest]


def parse_update_request(updates: dict[str, Any]) -> UpdateRequest:
    """Classify an update payload once, at the boundary.

    A ``reschedule`` object selects the reschedule path. Otherwise the
    payload is a simple update with the reschedule key and every
    scheduling field removed.
    """
    intent = updates.get(RESCHEDULE_KEY)
    if isinstance(intent, dict):
        return RescheduleRequest.model_validate(intent)
    fields = {
        key: value for key, value in updates.items()
        if key != RESCHEDULE_KEY and key not in SCHEDULING_FIELDS
    }
    return SimpleUpdate(fields=fields)
