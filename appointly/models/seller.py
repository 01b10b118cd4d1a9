import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, JSON, String, Text, Uuid
from sqlalchemy.sql import func

from appointly.db.base import Base


class Seller(Base):
    """
    Seller profile offering bookable time.

    One-to-one with UserProfile. ``availability_settings`` holds the raw
    working-hours document; it is parsed by the slot engine, which fills in
    defaults for anything missing.
    """

    __tablename__ = "sellers"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("user_profiles.id"), unique=True, nullable=False, index=True)
    business_name = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    location = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    availability_settings = Column(JSON, default=dict, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
