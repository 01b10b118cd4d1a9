from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from appointly.models.appointment import AppointmentStatus
from appointly.utils.timeutils import ensure_utc


class AppointmentCreate(BaseModel):
    """Request model for booking an appointment."""
    seller_id: UUID
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    start_time: datetime
    end_time: datetime

    @field_validator("start_time", "end_time")
    @classmethod
    def as_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class AppointmentStatusUpdate(BaseModel):
    """Request model for changing an appointment's status."""
    status: AppointmentStatus


class AppointmentResponse(BaseModel):
    """Response model for appointment details."""
    id: UUID
    buyer_id: UUID
    seller_id: UUID
    title: str
    description: Optional[str] = None
    start_time: datetime
    end_time: datetime
    status: AppointmentStatus
    buyer_email: Optional[str] = None
    seller_email: Optional[str] = None
    google_calendar_event_id: Optional[str] = None
    meet_link: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator("start_time", "end_time", "created_at", "updated_at")
    @classmethod
    def as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value)


class CalendarSyncResult(BaseModel):
    """Outcome of creating calendar events for both participants."""
    buyer_event_created: bool = False
    seller_event_created: bool = False
    buyer_event_id: Optional[str] = None
    seller_event_id: Optional[str] = None
    errors: List[str] = []


class AppointmentCreateResponse(BaseModel):
    """Response model for a new booking."""
    appointment: AppointmentResponse
    google_calendar: CalendarSyncResult


class Counterpart(BaseModel):
    """The other side of an appointment, as shown to the caller."""
    full_name: Optional[str] = None
    email: Optional[str] = None
    business_name: Optional[str] = None
    location: Optional[str] = None


class AppointmentListItem(AppointmentResponse):
    """Appointment with the other participant's details."""
    counterpart: Counterpart


class AppointmentListResponse(BaseModel):
    """Response model for listing appointments."""
    appointments: List[AppointmentListItem]


class AppointmentUpdateResponse(BaseModel):
    """Response model for a status change."""
    success: bool = True
    appointment: AppointmentResponse
