"""Shared utilities used across the scheduling core."""

import re
import time
import uuid


def normalize_phone(value: str) -> str:
    """Normalize a phone number by stripping everything except digits and a leading +.

    Examples:
        >>> normalize_phone("98450 12345")
        '9845012345'
        >>> normalize_phone("+91 (984) 501-2345")
        '+919845012345'
    """
    value = value.strip()
    if value.startswith("+"):
        return "+" + re.sub(r"[^\d]", "", value[1:])
    return re.sub(r"[^\d]", "", value)


def local_phone(value: str) -> str:
    """Reduce a phone number to its 10-digit national form where possible.

    This is the canonical form for every stored and queried customer phone.

    Examples:
        >>> local_phone("+91 98450 12345")
        '9845012345'
        >>> local_phone("098450 12345")
        '9845012345'
    """
    digits = normalize_phone(value).lstrip("+")
    if len(digits) == 12 and digits.startswith("91"):
        return digits[2:]
    if len(digits) == 11 and digits.startswith("0"):
        return digits[1:]
    return digits


def normalize_key(value: str) -> str:
    """Canonical form for region names and appliance codes.

    Examples:
        >>> normalize_key("  Bangalore   North ")
        'bangalore north'
        >>> normalize_key("AC")
        'ac'
    """
    return " ".join(value.split()).casefold()


def generate_ticket_id() -> str:
    """Time-derived ticket id with a random suffix to separate same-millisecond bookings."""
    return f"TICKET-{int(time.time() * 1000)}-{uuid.uuid4().hex[:4].upper()}"
