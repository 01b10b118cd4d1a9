from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel


class SellerResponse(BaseModel):
    """Schema for a seller's own profile."""
    id: UUID
    user_id: UUID
    business_name: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SellerUpdate(BaseModel):
    """Schema for updating a seller profile; omitted fields are left as they are."""
    business_name: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    is_active: Optional[bool] = None


class SellerContact(BaseModel):
    """Contact details of the user behind a seller."""
    email: str
    full_name: str


class AvailableSeller(BaseModel):
    """Seller directory entry."""
    id: UUID
    business_name: str
    description: str
    location: str
    user_profile: SellerContact
    has_google_calendar: bool
    is_online: bool


class AvailableSellersResponse(BaseModel):
    """Response model for the seller directory."""
    sellers: List[AvailableSeller]
