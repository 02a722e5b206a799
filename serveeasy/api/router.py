"""
Task router.

A single endpoint receives every call from the voice agent and dispatches on
the ``task`` field to the scheduling core. Expected failures come back as
``{"error": ...}`` with a 4xx status; anything unexpected is logged and
reported as a generic 500.
"""

from typing import Any, Awaitable, Callable

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from serveeasy.errors import ConflictError, SchedulingError
from serveeasy.logging_context import get_request_logger
from serveeasy.schemas.request_schema import (
    FindSlotsRequest,
    PhoneLookup,
    PincodeLookup,
    TicketRef,
    UpdateTicketBody,
)
from serveeasy.store.base import DocumentStore
from serveeasy.tools.availability import find_available_slots
from serveeasy.tools.customer import get_customer_by_phone
from serveeasy.tools.regions import get_region_by_key
from serveeasy.tools.tickets import cancel_ticket, create_ticket, get_ticket, update_ticket

logger = get_request_logger(__name__)

router = APIRouter(tags=["dispatch"])

TaskHandler = Callable[[DocumentStore, dict[str, Any]], Awaitable[Any]]

FIND_SLOTS_TASK = "findAvailableSlots"


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


async def _find_available_slots(store: DocumentStore, body: dict[str, Any]) -> Any:
    req = FindSlotsRequest.model_validate(body)
    return await find_available_slots(
        store, req.region, req.skill, req.appliance, req.preferred_day,
        customer_phone=req.customer_phone,
    )


async def _create_ticket(store: DocumentStore, body: dict[str, Any]) -> Any:
    payload = {key: value for key, value in body.items() if key != "task"}
    return await create_ticket(store, payload)


async def _get_ticket(store: DocumentStore, body: dict[str, Any]) -> Any:
    return await get_ticket(store, TicketRef.model_validate(body).ticket_id)


async def _update_ticket(store: DocumentStore, body: dict[str, Any]) -> Any:
    req = UpdateTicketBody.model_validate(body)
    return await update_ticket(store, req.ticket_id, req.updates)


async def _cancel_ticket(store: DocumentStore, body: dict[str, Any]) -> Any:
    return await cancel_ticket(store, TicketRef.model_validate(body).ticket_id)


async def _get_customer_by_phone(store: DocumentStore, body: dict[str, Any]) -> Any:
    return await get_customer_by_phone(store, PhoneLookup.model_validate(body).phone)


async def _get_region_by_key(store: DocumentStore, body: dict[str, Any]) -> Any:
    return await get_region_by_key(store, PincodeLookup.model_validate(body).pincode)


TASK_HANDLERS: dict[str, TaskHandler] = {
    FIND_SLOTS_TASK: _find_available_slots,
    "createTicket": _create_ticket,
    "getTicket": _get_ticket,
    "updateTicket": _update_ticket,
    "cancelTicket": _cancel_ticket,
    "getCustomerByPhone": _get_customer_by_phone,
    "getRegionByKey": _get_region_by_key,
}


def _error_response(task: str, status_code: int, content: dict[str, Any]) -> JSONResponse:
    if task == FIND_SLOTS_TASK:
        content = {"slots": [], **content}
    return JSONResponse(status_code=status_code, content=content)


@router.post("/api/handler")
async def handle_task(request: Request, store: DocumentStore = Depends(get_store)):
    """Dispatch a voice-agent call to the matching scheduling operation."""
    try:
        body = await request.json()
    except ValueError:
        return JSONResponse(status_code=400, content={"error": "Request body must be JSON."})
    if not isinstance(body, dict):
        return JSONResponse(status_code=400, content={"error": "Request body must be a JSON object."})

    task = body.get("task")
    handler = TASK_HANDLERS.get(task) if isinstance(task, str) else None
    if handler is None:
        return JSONResponse(status_code=400, content={"error": "Invalid task specified"})

    try:
        return await handler(store, body)
    except SchedulingError as exc:
        logger.info("Task %s rejected: %s", task, exc.message)
        content: dict[str, Any] = {"error": exc.message}
        if isinstance(exc, ConflictError) and exc.existing_ticket_id:
            content["existingTicketId"] = exc.existing_ticket_id
        return _error_response(task, exc.status_code, content)
    except ValidationError as exc:
        logger.info("Task %s has malformed fields: %s", task, exc.errors()[0]["msg"])
        return _error_response(task, 400, {"error": "Malformed request fields."})
    except Exception:
        logger.exception("Error processing task %s", task)
        return _error_response(task, 500, {"error": "An internal server error occurred."})
