"""
Customer lookup by phone number.

Identifies returning callers from ``customers/{phone}`` so the agent can
skip re-collecting their name and address.
"""

import logging
from typing import Any, Optional, TypedDict

from serveeasy.errors import InvalidRequestError
from serveeasy.store import paths
from serveeasy.store.base import DocumentStore
from serveeasy.utils import local_phone

logger = logging.getLogger(__name__)

PHONE_DIGITS = 10


class CustomerLookup(TypedDict):
    customer: Optional[dict[str, Any]]


async def get_customer_by_phone(store: DocumentStore, phone: str) -> CustomerLookup:
    """Look up a customer by phone number. ``customer`` is None if not found."""
    cleaned = local_phone(phone or "")
    if len(cleaned) != PHONE_DIGITS:
        raise InvalidRequestError(f"A valid {PHONE_DIGITS}-digit phone number is required.")
    record = await store.get(paths.customer(cleaned))
    if record:
        logger.debug("Returning customer found for %s", cleaned)
    return {"customer": record or None}
