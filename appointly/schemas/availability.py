from datetime import date, datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

import pytz
from pydantic import BaseModel, Field, field_validator, model_validator

from appointly.utils.timeutils import parse_hhmm


WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

DEFAULT_SLOT_DURATION = 60
DEFAULT_BUFFER_TIME = 15

DEFAULT_WORKING_HOURS: Dict[str, Dict[str, Any]] = {
    "monday": {"start": "09:00", "end": "17:00", "enabled": True},
    "tuesday": {"start": "09:00", "end": "17:00", "enabled": True},
    "wednesday": {"start": "09:00", "end": "17:00", "enabled": True},
    "thursday": {"start": "09:00", "end": "17:00", "enabled": True},
    "friday": {"start": "09:00", "end": "17:00", "enabled": True},
    "saturday": {"start": "10:00", "end": "14:00", "enabled": False},
    "sunday": {"start": "10:00", "end": "14:00", "enabled": False},
}


class DayHours(BaseModel):
    """Working hours for a single weekday."""
    start: str = "09:00"
    end: str = "17:00"
    enabled: bool = True

    @field_validator("start", "end")
    @classmethod
    def validate_clock(cls, value: str) -> str:
        parse_hhmm(value)
        return value.strip()

    @model_validator(mode="after")
    def check_order(self) -> "DayHours":
        if self.enabled and parse_hhmm(self.end) <= parse_hhmm(self.start):
            raise ValueError(f"Working hours end ({self.end}) must be after start ({self.start})")
        return self


class AvailabilitySettings(BaseModel):
    """
    A seller's weekly availability template.

    Accepts both the snake_case keys used by this API and the camelCase keys
    (``workingHours``, ``slotDuration``, ``bufferTime``) found in documents
    written by older clients. Anything missing falls back to the defaults.
    """

    working_hours: Dict[str, DayHours] = Field(default_factory=dict, alias="workingHours")
    slot_duration: int = Field(DEFAULT_SLOT_DURATION, gt=0, le=24 * 60, alias="slotDuration")
    buffer_time: int = Field(DEFAULT_BUFFER_TIME, ge=0, le=24 * 60, alias="bufferTime")
    timezone: str = "UTC"

    class Config:
        populate_by_name = True

    @field_validator("slot_duration", "buffer_time", "timezone", mode="before")
    @classmethod
    def null_means_default(cls, value, info):
        if value is None:
            return cls.model_fields[info.field_name].default
        return value

    @field_validator("working_hours", mode="before")
    @classmethod
    def normalize_weekdays(cls, value):
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise ValueError("working hours must be an object keyed by weekday")
        normalized = {}
        for day, hours in value.items():
            key = str(day).strip().lower()
            if key not in WEEKDAYS:
                raise ValueError(f"Unknown weekday '{day}'")
            normalized[key] = hours
        return normalized

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        try:
            pytz.timezone(value)
        except pytz.exceptions.UnknownTimeZoneError:
            raise ValueError(f"Unknown timezone '{value}'")
        return value

    @model_validator(mode="after")
    def fill_missing_days(self) -> "AvailabilitySettings":
        for day in WEEKDAYS:
            if day not in self.working_hours:
                self.working_hours[day] = DayHours(**DEFAULT_WORKING_HOURS[day])
        return self

    @classmethod
    def from_raw(cls, raw: Optional[Dict[str, Any]]) -> "AvailabilitySettings":
        """Build settings from a stored document; empty or null means defaults."""
        return cls.model_validate(raw or {})

    def hours_for(self, day: date) -> DayHours:
        """Working hours for the weekday ``day`` falls on."""
        return self.working_hours[WEEKDAYS[day.weekday()]]


class AvailabilityRequest(BaseModel):
    """Request model for a seller's slots on one date."""
    seller_id: UUID
    date: date


class TimeSlotResponse(BaseModel):
    """A bookable slot and whether it is still free."""
    start: datetime
    end: datetime
    available: bool


class AvailabilityResponse(BaseModel):
    """Response model for the slot listing."""
    slots: List[TimeSlotResponse]
