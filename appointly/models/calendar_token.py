import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Enum, ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.sql import func

from appointly.db.base import Base
from appointly.models.user import UserRole
from appointly.utils.timeutils import ensure_utc


class GoogleCalendarToken(Base):
    """
    Google Calendar OAuth tokens stored for a user.

    A user may connect once per role, so rows are unique on
    ``(user_id, user_type)``.
    """

    __tablename__ = "google_calendar_tokens"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("user_profiles.id"), nullable=False, index=True)
    user_type = Column(
        Enum(UserRole, name="calendar_user_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text, nullable=True)
    token_type = Column(String, nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "user_type", name="uq_google_calendar_tokens_user_type"),
    )

    def is_expired(self) -> bool:
        """Check if the access token has expired."""
        return datetime.now(timezone.utc) >= ensure_utc(self.expires_at)
