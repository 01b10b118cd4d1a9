from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from appointly.models.user import UserRole


class UserResponse(BaseModel):
    """Schema for user response to client."""
    id: UUID
    email: str
    full_name: Optional[str] = None
    role: Optional[UserRole] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RoleSelection(BaseModel):
    """Schema for picking a role after first sign-in."""
    role: UserRole
    full_name: Optional[str] = None
