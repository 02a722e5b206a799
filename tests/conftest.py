"""Shared test fixtures and helpers."""

import copy
from datetime import datetime, timezone
from typing import Any, Optional

import pytest

from serveeasy.store.memory import InMemoryStore

# Wednesday 2026-10-14, 10:00 in the service timezone (UTC+5:30)
FIXED_NOW = datetime(2026, 10, 14, 4, 30, tzinfo=timezone.utc)
THURSDAY = "2026-10-15"
FRIDAY = "2026-10-16"

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def _hours(weekday: str, saturday: str = "none", sunday: str = "none") -> dict[str, str]:
    hours = {day: weekday for day in WEEKDAYS[:5]}
    hours["saturday"] = saturday
    hours["sunday"] = sunday
    return hours


SEED: dict[str, Any] = {
    "regions": {"560": "Bangalore North"},
    "customers": {
        "9845012345": {"name": "Priya Nair", "phone": "9845012345", "address": "12 MG Road"},
    },
    "techniciansBySkill": {
        "repair": {"TECH001": True, "TECH002": True, "TECH003": True, "TECH404": True, "TECH005": True},
        "installation": {"TECH001": True},
    },
    "technicians": {
        "TECH001": {
            "name": "Ravi Kumar",
            "phone": "9000000001",
            "region": "Bangalore North",
            "appliancesSupported": ["AC", "FRIDGE"],
            "workingHours": _hours("09:00-18:00", saturday="09:00-18:00"),
        },
        "TECH002": {
            "name": "Anita Sharma",
            "phone": "9000000002",
            "region": "bangalore north",
            "appliancesSupported": {"ac": True, "washer": True},
            "workingHours": _hours("10:00-16:00"),
        },
        "TECH003": {
            "name": "Suresh Gowda",
            "phone": "9000000003",
            "region": "Mysore",
            "appliancesSupported": ["AC"],
            "workingHours": _hours("08:00-20:00", "08:00-20:00", "08:00-20:00"),
        },
        "TECH005": {
            "name": "Broken Record",
            "region": "Bangalore North",
            "appliancesSupported": ["AC"],
            "workingHours": {"thursday": "9am to 5pm"},
        },
    },
}


def make_seed() -> dict[str, Any]:
    return copy.deepcopy(SEED)


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore(make_seed())


def make_create_payload(
    tech_id: str = "TECH001",
    time: str = "09:00-11:00",
    date: str = THURSDAY,
    phone: str = "9845012345",
    appliance: str = "AC",
    name: Optional[str] = "Priya Nair",
    **job_overrides: Any,
) -> dict[str, Any]:
    """Helper to build a createTicket payload with sensible defaults."""
    job = {
        "requestType": "repair",
        "appliance": appliance,
        "description": "AC not cooling",
        **job_overrides,
    }
    return {
        "appointmentDate": date,
        "slot": {"techId": tech_id, "time": time},
        "customerInfo": {"name": name, "phone": phone, "address": "12 MG Road, Bangalore"},
        "jobInfo": job,
    }


def make_ticket(ticket_id: str, status: str = "Booked", phone: str = "9845012345", **fields: Any) -> dict[str, Any]:
    """Helper to create a stored ticket document."""
    return {
        "ticketId": ticket_id,
        "status": status,
        "customerName": "Priya Nair",
        "customerPhone": phone,
        "customerAddress": "12 MG Road",
        "TechId": "TECH001",
        "techName": "Ravi Kumar",
        "techPhone": "9000000001",
        "appliance": "AC",
        "description": "",
        "requestType": "repair",
        "appointmentDate": THURSDAY,
        "appointmentTime": "09:00-11:00",
        "createdAt": "2026-10-13T10:00:00+00:00",
        **fields,
    }


def pointers(store: InMemoryStore, date: str, tech_id: str) -> list[dict[str, Any]]:
    """Appointment pointers currently stored for a technician on a date."""
    bucket = store.dump().get("appointments", {}).get(date, {}).get(tech_id, {})
    return sorted(bucket.values(), key=lambda p: p["start"])


def live_pointers(store: InMemoryStore, ticket_id: str) -> list[tuple[str, str, dict[str, Any]]]:
    """Every (date, techId, pointer) in the calendar that belongs to ``ticket_id``."""
    found = []
    for date, techs in store.dump().get("appointments", {}).items():
        for tech_id, bucket in techs.items():
            for pointer in bucket.values():
                if pointer.get("ticketId") == ticket_id:
                    found.append((date, tech_id, pointer))
    return sorted(found, key=lambda item: (item[0], item[1], item[2]["start"]))
