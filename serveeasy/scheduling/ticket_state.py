"""
Ticket status state machine.

    Booked -> InProgress -> Completed
    Booked | InProgress -> Cancelled

Completed and Cancelled are terminal. Forward progress arrives through
simple updates; cancellation also frees the technician's calendar.

Usage:
    ensure_transition(TicketStatus.BOOKED, TicketStatus.IN_PROGRESS)
    is_terminal(TicketStatus.CANCELLED)  # True
"""

from dataclasses import dataclass

from serveeasy.errors import InvalidTransitionError
from serveeasy.schemas.ticket_schema import TicketStatus


@dataclass(frozen=True)
class Transition:
    """A single valid status transition."""
    from_status: TicketStatus
    to_status: TicketStatus


TRANSITIONS: list[Transition] = [
    # --- Work progress ---
    Transition(TicketStatus.BOOKED, TicketStatus.IN_PROGRESS),
    Transition(TicketStatus.IN_PROGRESS, TicketStatus.COMPLETED),

    # --- Cancellation ---
    Transition(TicketStatus.BOOKED, TicketStatus.CANCELLED),
    Transition(TicketStatus.IN_PROGRESS, TicketStatus.CANCELLED),
]

TERMINAL_STATUSES = frozenset({TicketStatus.COMPLETED, TicketStatus.CANCELLED})


def valid_targets(current: TicketStatus) -> list[TicketStatus]:
    """Return every status reachable in one step from ``current``."""
    return [t.to_status for t in TRANSITIONS if t.from_status == current]


def is_terminal(status: TicketStatus) -> bool:
    return status in TERMINAL_STATUSES


def ensure_transition(current: TicketStatus, target: TicketStatus) -> None:
    """
    Validate a status change. Re-asserting the current status is allowed.

    Raises:
        InvalidTransitionError: If ``target`` is not reachable from ``current``.
    """
    if current == target:
        return
    if target not in valid_targets(current):
        allowed = [s.value for s in valid_targets(current)]
        raise InvalidTransitionError(
            f"Cannot change ticket status from '{current.value}' to '{target.value}'. "
            f"Allowed: {allowed}"
        )
