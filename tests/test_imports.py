"""Tests for import chains and module integrity.

Ensures all public modules can be imported without errors and
that re-exports from __init__.py files work correctly.
"""


class TestSchedulingImports:
    def test_import_scheduling_package(self):
        from serveeasy.scheduling import DateInfo, TimeWindow, calculate_free_slots, resolve_date_info
        assert callable(calculate_free_slots)
        assert callable(resolve_date_info)
        assert TimeWindow(0, 60).contains(0)
        assert DateInfo is not None

    def test_import_state_machine(self):
        from serveeasy.scheduling.ticket_state import TRANSITIONS, ensure_transition
        assert len(TRANSITIONS) == 4
        assert callable(ensure_transition)

    def test_import_eligibility(self):
        from serveeasy.scheduling.eligibility import is_eligible
        assert callable(is_eligible)


class TestSchemaImports:
    def test_import_ticket_schema(self):
        from serveeasy.schemas.ticket_schema import Ticket, TicketStatus, parse_update_request
        assert TicketStatus.IN_PROGRESS == "InProgress"
        assert Ticket is not None
        assert callable(parse_update_request)

    def test_import_technician_schema(self):
        from serveeasy.schemas.technician_schema import Technician
        assert Technician is not None

    def test_import_request_schema(self):
        from serveeasy.schemas.request_schema import FindSlotsRequest
        assert FindSlotsRequest().region == ""


class TestToolImports:
    def test_import_availability(self):
        from serveeasy.tools.availability import find_available_slots
        assert callable(find_available_slots)

    def test_import_tickets(self):
        from serveeasy.tools.tickets import cancel_ticket, create_ticket, get_ticket, update_ticket
        assert all(callable(f) for f in (create_ticket, get_ticket, update_ticket, cancel_ticket))

    def test_import_lookups(self):
        from serveeasy.tools.customer import get_customer_by_phone
        from serveeasy.tools.regions import get_region_by_key
        assert callable(get_customer_by_phone)
        assert callable(get_region_by_key)


class TestPackageImports:
    def test_import_store_package(self):
        from serveeasy.store import DocumentStore, InMemoryStore
        assert issubclass(InMemoryStore, DocumentStore)

    def test_import_api_package(self):
        from serveeasy.api import create_app
        assert callable(create_app)

    def test_router_registers_every_task(self):
        from serveeasy.api.router import TASK_HANDLERS
        assert set(TASK_HANDLERS) == {
            "findAvailableSlots", "createTicket", "getTicket", "updateTicket",
            "cancelTicket", "getCustomerByPhone", "getRegionByKey",
        }
