"""Request envelopes for the task router."""

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field


class FindSlotsRequest(BaseModel):
    region: str = ""
    skill: str = ""
    appliance: str = ""
    preferred_day: str = Field(
        default="",
        validation_alias=AliasChoices("preferred_day", "timePreference", "preferredDay"),
    )
    customer_phone: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("customerPhone", "customer_phone")
    )


class TicketRef(BaseModel):
    ticket_id: str = Field(default="", validation_alias=AliasChoices("ticketId", "ticket_id"))


class UpdateTicketBody(TicketRef):
    updates: dict[str, Any] = Field(default_factory=dict)


class PhoneLookup(BaseModel):
    phone: str = ""


class PincodeLookup(BaseModel):
    pincode: str = ""
