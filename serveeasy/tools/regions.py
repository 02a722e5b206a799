"""Service region lookup from a postal pincode."""

import logging
from typing import Optional, TypedDict

from serveeasy.errors import InvalidRequestError
from serveeasy.store import paths
from serveeasy.store.base import DocumentStore

logger = logging.getLogger(__name__)

PINCODE_DIGITS = 6
# Regions are keyed by the sorting district, the first three digits
PREFIX_DIGITS = 3


class RegionLookup(TypedDict):
    region: Optional[str]


async def get_region_by_key(store: DocumentStore, pincode: str) -> RegionLookup:
    """Map a 6-digit pincode to its service region name, or None when unmapped."""
    pincode = str(pincode or "").strip()
    if len(pincode) != PINCODE_DIGITS or not pincode.isdigit():
        raise InvalidRequestError(f"A valid {PINCODE_DIGITS}-digit pincode is required.")
    region = await store.get(paths.region(pincode[:PREFIX_DIGITS]))
    if region is None:
        logger.info("No region mapped for pincode prefix %s", pincode[:PREFIX_DIGITS])
    return {"region": region}
