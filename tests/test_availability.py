"""Tests for the availability orchestrator."""

import dataclasses
from datetime import datetime

import pytest

from serveeasy.errors import DuplicateBookingError, InvalidRequestError, UnresolvableDateError
from serveeasy.tools import availability
from serveeasy.tools.availability import NO_AVAILABILITY_MESSAGE, booked_intervals, find_available_slots
from serveeasy.tools.tickets import cancel_ticket, create_ticket
from tests.conftest import FIXED_NOW, THURSDAY, make_create_payload, make_ticket


async def find(store, preference="15-10-2026", appliance="ac", region="Bangalore North", **kwargs):
    return await find_available_slots(
        store, region, "repair", appliance, preference, now=FIXED_NOW, **kwargs
    )


def offered(result):
    return [(slot["time"], slot["techId"]) for slot in result["slots"]]


class TestFindAvailableSlots:
    @pytest.mark.asyncio
    async def test_full_day_earliest_four(self, store):
        result = await find(store)
        assert offered(result) == [
            ("09:00-11:00", "TECH001"),
            ("10:00-12:00", "TECH002"),
            ("11:00-13:00", "TECH001"),
            ("12:00-14:00", "TECH002"),
        ]
        assert "error" not in result

    @pytest.mark.asyncio
    async def test_slots_carry_technician_name(self, store):
        result = await find(store)
        assert result["slots"][0] == {"time": "09:00-11:00", "techId": "TECH001", "techName": "Ravi Kumar"}

    @pytest.mark.asyncio
    async def test_afternoon_window(self, store):
        result = await find(store, "15-10-2026 afternoon")
        assert offered(result) == [
            ("12:00-14:00", "TECH002"),
            ("13:00-15:00", "TECH001"),
            ("14:00-16:00", "TECH002"),
            ("15:00-17:00", "TECH001"),
        ]

    @pytest.mark.asyncio
    async def test_morning_window_excludes_noon_start(self, store):
        result = await find(store, "15-10-2026 morning")
        assert offered(result) == [
            ("09:00-11:00", "TECH001"),
            ("10:00-12:00", "TECH002"),
            ("11:00-13:00", "TECH001"),
        ]

    @pytest.mark.asyncio
    async def test_evening_has_nothing(self, store):
        result = await find(store, "15-10-2026 evening")
        assert result == {"slots": [], "error": NO_AVAILABILITY_MESSAGE}

    @pytest.mark.asyncio
    async def test_only_technicians_working_that_day(self, store):
        result = await find(store, "17-10-2026")
        assert {tech for _, tech in offered(result)} == {"TECH001"}

    @pytest.mark.asyncio
    async def test_nobody_works_sunday(self, store):
        result = await find(store, "18-10-2026")
        assert result["slots"] == []
        assert result["error"] == NO_AVAILABILITY_MESSAGE

    @pytest.mark.asyncio
    async def test_appliance_filter(self, store):
        result = await find(store, appliance="FRIDGE")
        assert offered(result) == [
            ("09:00-11:00", "TECH001"),
            ("11:00-13:00", "TECH001"),
            ("13:00-15:00", "TECH001"),
            ("15:00-17:00", "TECH001"),
        ]

    @pytest.mark.asyncio
    async def test_other_region(self, store):
        result = await find(store, region="mysore")
        assert {tech for _, tech in offered(result)} == {"TECH003"}

    @pytest.mark.asyncio
    async def test_existing_booking_shifts_ruler(self, store):
        await store.update({
            f"appointments/{THURSDAY}/TECH001/k1": {"start": "11:00", "end": "12:30", "ticketId": "T-X"},
        })
        result = await find(store)
        assert offered(result) == [
            ("09:00-11:00", "TECH001"),
            ("10:00-12:00", "TECH002"),
            ("12:00-14:00", "TECH002"),
            ("12:30-14:30", "TECH001"),
        ]

    @pytest.mark.asyncio
    async def test_same_start_orders_by_technician_id(self, store):
        await store.update({"technicians/TECH002/workingHours/thursday": "09:00-18:00"})
        result = await find(store)
        assert offered(result)[:2] == [("09:00-11:00", "TECH001"), ("09:00-11:00", "TECH002")]

    @pytest.mark.asyncio
    async def test_result_cap_follows_settings(self, store, monkeypatch):
        narrowed = dataclasses.replace(
            availability.settings,
            scheduling=dataclasses.replace(availability.settings.scheduling, max_slots_returned=2),
        )
        monkeypatch.setattr(availability, "settings", narrowed)
        result = await find(store)
        assert len(result["slots"]) == 2

    @pytest.mark.asyncio
    async def test_unknown_skill_returns_empty(self, store):
        result = await find_available_slots(
            store, "Bangalore North", "plumbing", "ac", "15-10-2026", now=FIXED_NOW
        )
        assert result == {"slots": []}

    @pytest.mark.asyncio
    async def test_booking_then_cancel_restores_slot(self, store):
        created = await create_ticket(store, make_create_payload())
        after_booking = await find(store)
        assert offered(after_booking) == [
            ("10:00-12:00", "TECH002"),
            ("11:00-13:00", "TECH001"),
            ("12:00-14:00", "TECH002"),
            ("13:00-15:00", "TECH001"),
        ]
        await cancel_ticket(store, created["ticketId"])
        after_cancel = await find(store)
        assert offered(after_cancel)[0] == ("09:00-11:00", "TECH001")

    @pytest.mark.asyncio
    async def test_natural_language_through_parser_seam(self, store):
        result = await find(store, "next thursday", phrase_parser=lambda text, base: datetime(2026, 10, 15))
        assert offered(result)[0] == ("09:00-11:00", "TECH001")


class TestRequestValidation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", ["region", "appliance"])
    async def test_missing_field(self, store, field):
        with pytest.raises(InvalidRequestError, match=field):
            await find(store, **{field: "  "})

    @pytest.mark.asyncio
    async def test_invalid_skill_key(self, store):
        with pytest.raises(InvalidRequestError):
            await find_available_slots(store, "Bangalore North", "re/pair", "ac", "15-10-2026", now=FIXED_NOW)

    @pytest.mark.asyncio
    async def test_past_date(self, store):
        with pytest.raises(UnresolvableDateError):
            await find(store, "13-10-2026")


class TestDuplicateGuard:
    @pytest.mark.asyncio
    async def test_open_ticket_blocks_search(self, store):
        await store.update({"tickets/TICKET-1": make_ticket("TICKET-1")})
        with pytest.raises(DuplicateBookingError) as exc_info:
            await find(store, customer_phone="98450 12345")
        assert exc_info.value.existing_ticket_id == "TICKET-1"
        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_in_progress_ticket_blocks_search(self, store):
        await store.update({"tickets/TICKET-1": make_ticket("TICKET-1", status="InProgress")})
        with pytest.raises(DuplicateBookingError):
            await find(store, customer_phone="9845012345")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["Completed", "Cancelled"])
    async def test_closed_tickets_do_not_block(self, store, status):
        await store.update({"tickets/TICKET-1": make_ticket("TICKET-1", status=status)})
        result = await find(store, customer_phone="9845012345")
        assert len(result["slots"]) == 4

    @pytest.mark.asyncio
    async def test_other_callers_unaffected(self, store):
        await store.update({"tickets/TICKET-1": make_ticket("TICKET-1")})
        result = await find(store, customer_phone="9000012345")
        assert len(result["slots"]) == 4

    @pytest.mark.asyncio
    @pytest.mark.parametrize("booked_with, searched_with", [
        ("+91 98450 12345", "9845012345"),
        ("9845012345", "+91-98450-12345"),
        ("098450 12345", "+919845012345"),
    ])
    async def test_international_and_local_formats_match(self, store, booked_with, searched_with):
        ticket_id = (await create_ticket(store, make_create_payload(phone=booked_with)))["ticketId"]
        with pytest.raises(DuplicateBookingError) as exc_info:
            await find(store, customer_phone=searched_with)
        assert exc_info.value.existing_ticket_id == ticket_id


class TestBookedIntervals:
    def test_skips_malformed_pointers(self):
        bucket = {
            "a": {"start": "09:00", "end": "11:00", "ticketId": "T1"},
            "b": {"start": "11:00"},
            "c": "garbage",
            "d": {"start": "14:00", "end": "13:00", "ticketId": "T2"},
        }
        assert booked_intervals(bucket, "TECH001") == [{"start": "09:00", "end": "11:00"}]

    def test_missing_bucket(self):
        assert booked_intervals(None, "TECH001") == []
