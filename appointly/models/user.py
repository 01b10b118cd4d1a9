import enum
import uuid

from sqlalchemy import Column, DateTime, Enum, String, Uuid
from sqlalchemy.sql import func

from appointly.db.base import Base


class UserRole(str, enum.Enum):
    """Roles a user can pick after signing in."""
    BUYER = "buyer"
    SELLER = "seller"


class UserProfile(Base):
    """
    Profile row for an authenticated user.

    The id is the identity provider's user id (the JWT ``sub`` claim), so
    profiles are created on role selection rather than on sign-up.
    """

    __tablename__ = "user_profiles"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    email = Column(String, nullable=False, index=True)
    full_name = Column(String, nullable=True)
    role = Column(
        Enum(UserRole, name="user_role", values_callable=lambda e: [m.value for m in e]),
        nullable=True,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())
