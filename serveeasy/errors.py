"""Error taxonomy for the scheduling core.

Every expected failure is a ``SchedulingError`` subclass so the request
layer can map it to a response without inspecting messages. Anything else
that escapes an operation is an internal fault.
"""

from typing import Optional


class SchedulingError(Exception):
    """Base class for recoverable, caller-reportable failures."""

    status_code: int = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidRequestError(SchedulingError):
    """Missing or malformed input fields."""


class UnresolvableDateError(SchedulingError):
    """The day/time preference could not be turned into a bookable date."""


class NotFoundError(SchedulingError):
    status_code = 404


class TicketNotFoundError(NotFoundError):
    def __init__(self, ticket_id: str) -> None:
        super().__init__(f"Ticket {ticket_id} not found.")
        self.ticket_id = ticket_id


class TechnicianNotFoundError(NotFoundError):
    def __init__(self, tech_id: str) -> None:
        super().__init__(f"Technician {tech_id} not found.")
        self.tech_id = tech_id


class ConflictError(SchedulingError):
    """The request collides with existing state."""

    status_code = 409

    def __init__(self, message: str, existing_ticket_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.existing_ticket_id = existing_ticket_id


class DuplicateBookingError(ConflictError):
    """The customer already holds an open ticket."""


class SlotUnavailableError(ConflictError):
    """The technician's calendar already has a booking at that time."""


class InvalidTransitionError(ConflictError):
    """Raised when a ticket status change is not allowed from its current status."""


class StoreError(Exception):
    """Raised by store backends for faults that are not caller errors."""
