"""
Seller endpoints.

Directory of active sellers, the caller's own seller profile and
availability template, and slot listing for a date.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from appointly.db.session import get_db
from appointly.dependencies.auth import get_current_user, get_current_user_id
from appointly.models.user import UserProfile
from appointly.schemas.availability import (
    AvailabilityRequest,
    AvailabilityResponse,
    AvailabilitySettings,
    TimeSlotResponse,
)
from appointly.schemas.seller import AvailableSellersResponse, SellerResponse, SellerUpdate
from appointly.services.seller_service import SellerService


logger = logging.getLogger(__name__)

sellers_router = APIRouter()


@sellers_router.get("/available", response_model=AvailableSellersResponse)
async def list_available_sellers(
    _user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """
    List active sellers with contact details and calendar status.

    Returns:
        AvailableSellersResponse: Seller directory.
    """
    sellers = await SellerService.list_available_sellers(db)
    return AvailableSellersResponse(sellers=sellers)


@sellers_router.post("/availability", response_model=AvailabilityResponse)
async def get_seller_availability(
    request: AvailabilityRequest,
    _user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """
    List a seller's slots for one date.

    Args:
        request: Seller id and date (in the seller's timezone).
        db: Database session.

    Returns:
        AvailabilityResponse: Slots with availability flags.
    """
    slots = await SellerService.get_available_slots(request.seller_id, request.date, db)
    return AvailabilityResponse(
        slots=[TimeSlotResponse(start=s.start, end=s.end, available=s.available) for s in slots]
    )


@sellers_router.get("/me", response_model=SellerResponse)
async def get_my_seller_profile(
    current_user: UserProfile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get the caller's seller profile."""
    return await SellerService.get_seller_for_user(current_user.id, db)


@sellers_router.put("/me", response_model=SellerResponse)
async def update_my_seller_profile(
    update: SellerUpdate,
    current_user: UserProfile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Update business name, description, location or active flag."""
    seller = await SellerService.get_seller_for_user(current_user.id, db)
    return await SellerService.update_profile(seller, update, db)


@sellers_router.get(
    "/me/availability-settings",
    response_model=AvailabilitySettings,
    response_model_by_alias=False,
)
async def get_my_availability_settings(
    current_user: UserProfile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get the caller's effective availability template, defaults filled in."""
    seller = await SellerService.get_seller_for_user(current_user.id, db)
    return SellerService.get_settings(seller)


@sellers_router.put(
    "/me/availability-settings",
    response_model=AvailabilitySettings,
    response_model_by_alias=False,
)
async def update_my_availability_settings(
    availability: AvailabilitySettings,
    current_user: UserProfile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Replace the caller's availability template."""
    seller = await SellerService.get_seller_for_user(current_user.id, db)
    return await SellerService.update_settings(seller, availability, db)
