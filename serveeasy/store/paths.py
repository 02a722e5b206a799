"""Store path layout shared by the orchestrator and the ticket manager."""


def technician(tech_id: str) -> str:
    return f"technicians/{tech_id}"


def skill_index(skill: str) -> str:
    return f"techniciansBySkill/{skill}"


def appointments_on(date_string: str) -> str:
    return f"appointments/{date_string}"


def tech_appointments(date_string: str, tech_id: str) -> str:
    return f"appointments/{date_string}/{tech_id}"


def appointment(date_string: str, tech_id: str, key: str) -> str:
    return f"appointments/{date_string}/{tech_id}/{key}"


TICKETS = "tickets"


def ticket(ticket_id: str) -> str:
    return f"tickets/{ticket_id}"


def customer(phone: str) -> str:
    return f"customers/{phone}"


def region(prefix: str) -> str:
    return f"regions/{prefix}"
