"""Technician record as stored under ``technicians/{id}``."""

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from serveeasy.scheduling.date_resolver import WEEKDAYS
from serveeasy.scheduling.time_math import is_interval
from serveeasy.utils import normalize_key

OFF_DUTY = "none"


class Technician(BaseModel):
    """Read-only technician profile. Legacy field names are accepted on read."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    name: str = Field(default="", validation_alias=AliasChoices("name", "TechName"))
    phone: str = Field(default="", validation_alias=AliasChoices("phone", "TechPhone"))
    region: str = Field(validation_alias=AliasChoices("region", "TechRegion"))
    appliances_supported: frozenset[str] = Field(
        default_factory=frozenset,
        validation_alias=AliasChoices("appliancesSupported", "appliances_supported"),
    )
    working_hours: dict[str, str] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("workingHours", "working_hours"),
    )

    @field_validator("appliances_supported", mode="before")
    @classmethod
    def coerce_appliances(cls, value: Any) -> Any:
        # Stored either as a list or as a {code: true} map
        if isinstance(value, dict):
            return [code for code, enabled in value.items() if enabled]
        return value

    @field_validator("working_hours")
    @classmethod
    def check_working_hours(cls, value: dict[str, str]) -> dict[str, str]:
        normalized: dict[str, str] = {}
        for day, hours in value.items():
            key = day.strip().lower()
            if key not in WEEKDAYS:
                raise ValueError(f"unknown weekday {day!r}")
            hours = hours.strip()
            if hours.lower() == OFF_DUTY:
                hours = OFF_DUTY
            elif not is_interval(hours):
                raise ValueError(f"invalid working hours {hours!r} for {key}")
            normalized[key] = hours
        return normalized

    @classmethod
    def from_store(cls, tech_id: str, record: dict) -> "Technician":
        return cls.model_validate({**record, "id": tech_id})

    def hours_on(self, day_of_week: str) -> Optional[str]:
        """Shift interval for the weekday, or None when off duty."""
        hours = self.working_hours.get(day_of_week)
        if not hours or hours == OFF_DUTY:
            return None
        return hours

    def supports(self, appliance: str) -> bool:
        wanted = normalize_key(appliance)
        return any(normalize_key(code) == wanted for code in self.appliances_supported)

    def serves(self, region: str) -> bool:
        return normalize_key(self.region) == normalize_key(region)
