from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from appointly.models.user import UserRole
from appointly.schemas.availability import TimeSlotResponse
from appointly.utils.timeutils import ensure_utc


class TokenStoreRequest(BaseModel):
    """Request model for storing Google Calendar tokens."""
    user_type: UserRole
    access_token: str = Field(..., min_length=1)
    refresh_token: Optional[str] = None
    token_type: Optional[str] = None
    expires_at: Optional[datetime] = None
    expires_in: Optional[int] = Field(None, gt=0)


class StoredTokens(BaseModel):
    """Stored token details."""
    user_type: UserRole
    access_token: str
    refresh_token: Optional[str] = None
    token_type: Optional[str] = None
    expires_at: datetime

    class Config:
        from_attributes = True

    @field_validator("expires_at")
    @classmethod
    def as_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class TokenStatusResponse(BaseModel):
    """Response model for stored tokens."""
    connected: bool
    tokens: StoredTokens


class ConnectionResponse(BaseModel):
    """Response model for calendar connection status."""
    connected: bool


class CalendarEventCreate(BaseModel):
    """Request model for creating a calendar event."""
    summary: str = Field(..., min_length=1)
    start: datetime
    end: datetime
    attendees: List[EmailStr] = []
    description: Optional[str] = None

    @field_validator("start", "end")
    @classmethod
    def as_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @model_validator(mode="after")
    def check_range(self) -> "CalendarEventCreate":
        if self.end <= self.start:
            raise ValueError("end must be after start")
        return self


class Attendee(BaseModel):
    email: Optional[str] = None
    display_name: Optional[str] = None
    response_status: Optional[str] = None


class CalendarEvent(BaseModel):
    """Normalized Google Calendar event."""
    id: Optional[str] = None
    summary: str
    start: Dict[str, Any]
    end: Dict[str, Any]
    attendees: List[Attendee] = []
    meet_link: Optional[str] = None


class FreeBusyRequest(BaseModel):
    """Request model for free/busy slots."""
    time_min: datetime
    time_max: datetime
    calendar_id: str = "primary"

    @field_validator("time_min", "time_max")
    @classmethod
    def as_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @model_validator(mode="after")
    def check_range(self) -> "FreeBusyRequest":
        if self.time_max <= self.time_min:
            raise ValueError("time_max must be after time_min")
        return self


class FreeBusyResponse(BaseModel):
    """Response model for free/busy slots."""
    slots: List[TimeSlotResponse]
