import logging
from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import Select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from appointly.core.google_calendar import CalendarClientFactory
from appointly.models.appointment import Appointment, AppointmentStatus, BLOCKING_STATUSES
from appointly.models.seller import Seller
from appointly.models.user import UserProfile, UserRole
from appointly.schemas.appointment import (
    AppointmentCreate,
    AppointmentCreateResponse,
    AppointmentListItem,
    AppointmentResponse,
    Counterpart,
)
from appointly.services.availability import Interval, find_conflicts
from appointly.services.calendar_service import CalendarService
from appointly.utils.timeutils import ensure_utc, utcnow


logger = logging.getLogger(__name__)


class AppointmentService:
    """
    Service for booking and managing appointments.

    Conflict checks go through the slot engine so the availability listing
    and the booking path agree on what "taken" means.
    """

    @staticmethod
    async def get_blocking_intervals(
        seller_id: UUID,
        start: datetime,
        end: datetime,
        db: AsyncSession,
        exclude_appointment_id: Optional[UUID] = None
    ) -> List[Interval]:
        """
        Load the seller's pending/confirmed appointments that overlap a range.

        Args:
            seller_id: Seller to check.
            start: Range start.
            end: Range end.
            db: Database session.
            exclude_appointment_id: Appointment to ignore (the one being changed).

        Returns:
            List: ``(start_time, end_time)`` pairs in UTC.
        """
        query = select(Appointment.start_time, Appointment.end_time).where(
            Appointment.seller_id == seller_id,
            Appointment.status.in_(BLOCKING_STATUSES),
            Appointment.start_time < ensure_utc(end),
            Appointment.end_time > ensure_utc(start),
        )
        if exclude_appointment_id:
            query = query.where(Appointment.id != exclude_appointment_id)

        result = await db.execute(query.order_by(Appointment.start_time))
        return [(ensure_utc(row.start_time), ensure_utc(row.end_time)) for row in result.all()]

    @staticmethod
    def seller_lock_query(seller_id: UUID) -> Select:
        """``SELECT ... FOR UPDATE`` on one seller row."""
        return select(Seller).where(Seller.id == seller_id).with_for_update()

    @staticmethod
    async def lock_seller(seller_id: UUID, db: AsyncSession) -> Optional[Seller]:
        """
        Lock a seller row for the rest of the transaction.

        Every write that can make an appointment blocking takes this lock
        before its conflict check, so those writes serialize per seller.
        """
        result = await db.execute(AppointmentService.seller_lock_query(seller_id))
        return result.scalars().first()

    @staticmethod
    async def ensure_slot_free(
        seller_id: UUID,
        start: datetime,
        end: datetime,
        db: AsyncSession,
        exclude_appointment_id: Optional[UUID] = None
    ) -> None:
        """
        Raise 409 if the range overlaps one of the seller's active appointments.
        """
        booked = await AppointmentService.get_blocking_intervals(
            seller_id, start, end, db, exclude_appointment_id
        )
        if find_conflicts(start, end, booked):
            logger.info(f"Rejected booking for seller {seller_id}: {start} - {end} overlaps {len(booked)} appointment(s)")
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Time slot is no longer available",
            )

    @staticmethod
    async def create_appointment(
        buyer: UserProfile,
        appointment_data: AppointmentCreate,
        db: AsyncSession,
        client_factory: CalendarClientFactory
    ) -> AppointmentCreateResponse:
        """
        Book a pending appointment with a seller.

        The seller row is locked while checking for conflicts so two bookings
        for the same seller cannot both pass the check (on backends that
        support ``SELECT ... FOR UPDATE``).

        Args:
            buyer: Caller's profile.
            appointment_data: Requested slot and details.
            db: Database session.
            client_factory: Builds a calendar client from an access token.

        Returns:
            AppointmentCreateResponse: Stored appointment plus calendar outcome.

        Raises:
            HTTPException: 400 for a bad range or self-booking, 404 for an
                unknown seller, 409 for a conflict.
        """
        start = appointment_data.start_time
        end = appointment_data.end_time
        if end <= start:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="end_time must be after start_time",
            )

        seller = await AppointmentService.lock_seller(appointment_data.seller_id, db)
        if not seller or not seller.is_active:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Seller not found")

        if seller.user_id == buyer.id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You cannot book an appointment with yourself",
            )

        seller_user = await db.get(UserProfile, seller.user_id)
        if not seller_user:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Seller not found")

        await AppointmentService.ensure_slot_free(seller.id, start, end, db)

        appointment = Appointment(
            buyer_id=buyer.id,
            seller_id=seller.id,
            title=appointment_data.title,
            description=appointment_data.description,
            start_time=start,
            end_time=end,
            status=AppointmentStatus.PENDING,
            buyer_email=buyer.email,
            seller_email=seller_user.email,
        )
        db.add(appointment)
        await db.commit()
        await db.refresh(appointment)

        logger.info(f"Created appointment {appointment.id} for buyer {buyer.id} with seller {seller.id}")

        calendar_result = await CalendarService.sync_appointment_events(
            appointment, buyer, seller_user, db, client_factory
        )

        return AppointmentCreateResponse(
            appointment=AppointmentResponse.model_validate(appointment),
            google_calendar=calendar_result,
        )

    @staticmethod
    async def list_appointments(
        user_id: UUID,
        role: UserRole,
        db: AsyncSession
    ) -> List[AppointmentListItem]:
        """
        List the caller's appointments ordered by start time.

        As a buyer, each item carries the seller's business and contact; as
        a seller, the buyer's name and email. A user with no seller row has
        no seller-side appointments.
        """
        items = []

        if role == UserRole.BUYER:
            result = await db.execute(
                select(Appointment, Seller, UserProfile)
                .join(Seller, Appointment.seller_id == Seller.id)
                .join(UserProfile, Seller.user_id == UserProfile.id)
                .where(Appointment.buyer_id == user_id)
                .order_by(Appointment.start_time)
            )
            for appointment, seller, seller_user in result.all():
                counterpart = Counterpart(
                    full_name=seller_user.full_name,
                    email=seller_user.email,
                    business_name=seller.business_name,
                    location=seller.location,
                )
                items.append(AppointmentService._list_item(appointment, counterpart))
            return items

        result = await db.execute(select(Seller).where(Seller.user_id == user_id))
        seller = result.scalars().first()
        if not seller:
            return items

        result = await db.execute(
            select(Appointment, UserProfile)
            .join(UserProfile, Appointment.buyer_id == UserProfile.id)
            .where(Appointment.seller_id == seller.id)
            .order_by(Appointment.start_time)
        )
        for appointment, buyer in result.all():
            counterpart = Counterpart(full_name=buyer.full_name, email=buyer.email or appointment.buyer_email)
            items.append(AppointmentService._list_item(appointment, counterpart))
        return items

    @staticmethod
    def _list_item(appointment: Appointment, counterpart: Counterpart) -> AppointmentListItem:
        data = AppointmentResponse.model_validate(appointment).model_dump()
        return AppointmentListItem(**data, counterpart=counterpart)

    @staticmethod
    async def get_for_participant(
        appointment_id: UUID,
        user_id: UUID,
        db: AsyncSession
    ) -> Tuple[Appointment, Seller]:
        """
        Fetch an appointment the caller takes part in.

        Raises:
            HTTPException: 404 if missing, 403 if the caller is neither the
                buyer nor the seller.
        """
        result = await db.execute(
            select(Appointment, Seller)
            .join(Seller, Appointment.seller_id == Seller.id)
            .where(Appointment.id == appointment_id)
        )
        row = result.first()
        if not row:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")

        appointment, seller = row
        if appointment.buyer_id != user_id and seller.user_id != user_id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unauthorized")

        return appointment, seller

    @staticmethod
    async def update_status(
        appointment_id: UUID,
        user_id: UUID,
        new_status: AppointmentStatus,
        db: AsyncSession
    ) -> Appointment:
        """
        Change an appointment's status on behalf of a participant.

        Reviving a cancelled or completed appointment re-runs the conflict
        check, since its slot may have been booked since.

        Raises:
            HTTPException: 404, 403, or 409 when a revived slot is taken.
        """
        appointment, seller = await AppointmentService.get_for_participant(appointment_id, user_id, db)

        if new_status in BLOCKING_STATUSES and not appointment.is_blocking():
            await AppointmentService.lock_seller(seller.id, db)
            await AppointmentService.ensure_slot_free(
                seller.id,
                ensure_utc(appointment.start_time),
                ensure_utc(appointment.end_time),
                db,
                exclude_appointment_id=appointment.id,
            )

        previous = appointment.status
        appointment.status = new_status
        appointment.updated_at = utcnow()
        await db.commit()
        await db.refresh(appointment)

        logger.info(f"Appointment {appointment.id} status {previous.value} -> {new_status.value} by user {user_id}")
        return appointment
