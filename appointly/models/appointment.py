import enum
import uuid

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.sql import func

from appointly.db.base import Base


class AppointmentStatus(str, enum.Enum):
    """Enumeration of appointment statuses."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


# Statuses that occupy a seller's time
BLOCKING_STATUSES = (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED)


class Appointment(Base):
    """
    Appointment between a buyer and a seller.

    Participant emails are copied onto the row at booking time. Calendar
    fields are filled in when event creation on Google Calendar succeeds.
    """

    __tablename__ = "appointments"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    buyer_id = Column(Uuid(as_uuid=True), ForeignKey("user_profiles.id"), nullable=False, index=True)
    seller_id = Column(Uuid(as_uuid=True), ForeignKey("sellers.id"), nullable=False, index=True)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    status = Column(
        Enum(AppointmentStatus, name="appointment_status", values_callable=lambda e: [m.value for m in e]),
        default=AppointmentStatus.PENDING,
        nullable=False,
        index=True,
    )

    buyer_email = Column(String, nullable=True)
    seller_email = Column(String, nullable=True)

    google_calendar_event_id = Column(String, nullable=True)
    meet_link = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True)

    # Conflict checks scan a seller's appointments by time range
    __table_args__ = (
        Index("ix_appointments_seller_time", "seller_id", "start_time", "end_time"),
    )

    def is_blocking(self) -> bool:
        """Check if the appointment occupies the seller's time."""
        return self.status in BLOCKING_STATUSES
