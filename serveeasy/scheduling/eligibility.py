"""Technician eligibility filter: region, appliance capability, working day."""

from typing import Optional

from serveeasy.logging_context import get_request_logger
from serveeasy.schemas.technician_schema import Technician

logger = get_request_logger(__name__)


def is_eligible(
    technician: Optional[Technician], region: str, appliance: str, day_of_week: str
) -> bool:
    """Check whether a technician can take a job in this region, for this appliance, on this day.

    Missing technicians and every failed condition are reported as ``False``;
    none of them is an error.
    """
    if technician is None:
        return False
    if not technician.serves(region):
        logger.debug(
            "Technician %s excluded: region '%s' != '%s'", technician.id, technician.region, region
        )
        return False
    if not technician.supports(appliance):
        logger.debug("Technician %s excluded: does not service '%s'", technician.id, appliance)
        return False
    if technician.hours_on(day_of_week) is None:
        logger.debug("Technician %s excluded: not working on %s", technician.id, day_of_week)
        return False
    return True
