from appointly.models.user import UserProfile, UserRole
from appointly.models.seller import Seller
from appointly.models.appointment import Appointment, AppointmentStatus, BLOCKING_STATUSES
from appointly.models.calendar_token import GoogleCalendarToken

__all__ = [
    "Appointment",
    "AppointmentStatus",
    "BLOCKING_STATUSES",
    "GoogleCalendarToken",
    "Seller",
    "UserProfile",
    "UserRole",
]
