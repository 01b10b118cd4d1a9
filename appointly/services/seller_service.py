import logging
from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from fastapi import HTTPException, status
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from appointly.core.config import settings
from appointly.models.seller import Seller
from appointly.models.user import UserProfile
from appointly.schemas.availability import AvailabilitySettings
from appointly.schemas.seller import AvailableSeller, SellerContact, SellerUpdate
from appointly.services.appointment_service import AppointmentService
from appointly.services.availability import TimeSlot, generate_slots, local_day_bounds
from appointly.services.calendar_token_service import CalendarTokenService


logger = logging.getLogger(__name__)


class SellerService:
    """Service class for seller profiles, directory and availability."""

    @staticmethod
    async def get_seller(seller_id: UUID, db: AsyncSession) -> Optional[Seller]:
        """Get a seller by id."""
        return await db.get(Seller, seller_id)

    @staticmethod
    async def get_seller_for_user(user_id: UUID, db: AsyncSession) -> Seller:
        """
        Get the caller's seller profile.

        Raises:
            HTTPException: If the user has no seller profile.
        """
        result = await db.execute(select(Seller).where(Seller.user_id == user_id))
        seller = result.scalars().first()
        if not seller:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Seller not found")
        return seller

    @staticmethod
    async def list_available_sellers(db: AsyncSession) -> List[AvailableSeller]:
        """
        List active sellers with their contact and calendar status.

        ``has_google_calendar`` means tokens were stored at some point;
        ``is_online`` means at least one of them is still valid.
        """
        result = await db.execute(
            select(Seller, UserProfile)
            .join(UserProfile, Seller.user_id == UserProfile.id)
            .where(Seller.is_active.is_(True))
            .order_by(Seller.created_at)
        )
        rows = result.all()

        tokens = await CalendarTokenService.get_tokens_for_users([seller.user_id for seller, _ in rows], db)

        sellers = []
        for seller, user in rows:
            user_tokens = tokens.get(seller.user_id, [])
            sellers.append(AvailableSeller(
                id=seller.id,
                business_name=seller.business_name or "Unknown Business",
                description=seller.description or "No description available",
                location=seller.location or "Location not specified",
                user_profile=SellerContact(
                    email=user.email or "",
                    full_name=user.full_name or "Unknown",
                ),
                has_google_calendar=bool(user_tokens),
                is_online=any(not token.is_expired() for token in user_tokens),
            ))
        return sellers

    @staticmethod
    async def update_profile(seller: Seller, update: SellerUpdate, db: AsyncSession) -> Seller:
        """Apply the fields present in ``update`` to the seller profile."""
        for field, value in update.model_dump(exclude_unset=True).items():
            if field == "is_active" and value is None:
                continue
            setattr(seller, field, value)

        await db.commit()
        await db.refresh(seller)
        logger.info(f"Updated seller profile {seller.id}")
        return seller

    @staticmethod
    def get_settings(seller: Seller) -> AvailabilitySettings:
        """
        Effective availability settings for a seller.

        Raises:
            HTTPException: If the stored document cannot be parsed.
        """
        try:
            return AvailabilitySettings.from_raw(seller.availability_settings)
        except ValidationError as e:
            logger.error(f"Invalid availability settings stored for seller {seller.id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Seller availability settings are invalid",
            )

    @staticmethod
    async def update_settings(
        seller: Seller,
        availability: AvailabilitySettings,
        db: AsyncSession
    ) -> AvailabilitySettings:
        """Replace the seller's availability settings."""
        seller.availability_settings = availability.model_dump(mode="json")
        await db.commit()
        await db.refresh(seller)
        logger.info(f"Updated availability settings for seller {seller.id}")
        return AvailabilitySettings.from_raw(seller.availability_settings)

    @staticmethod
    async def get_available_slots(
        seller_id: UUID,
        day: date,
        db: AsyncSession,
        now: Optional[datetime] = None
    ) -> List[TimeSlot]:
        """
        Slots a seller offers on ``day``, marked against existing bookings.

        Args:
            seller_id: Seller to list slots for.
            day: Calendar date in the seller's timezone.
            db: Database session.
            now: Reference time for hiding past slots.

        Returns:
            List[TimeSlot]: Slots in chronological order.

        Raises:
            HTTPException: 404 for an unknown seller, 400 when the seller has
                not connected Google Calendar and that is required.
        """
        seller = await SellerService.get_seller(seller_id, db)
        if not seller:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Seller not found")

        if settings.require_seller_calendar:
            tokens = await CalendarTokenService.get_user_tokens(seller.user_id, db)
            if not tokens:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Seller has not connected Google Calendar",
                )

        availability = SellerService.get_settings(seller)
        day_start, day_end = local_day_bounds(availability.timezone, day)
        booked = await AppointmentService.get_blocking_intervals(seller.id, day_start, day_end, db)

        return generate_slots(availability, day, booked, now)
