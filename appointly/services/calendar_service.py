import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from appointly.core.google_calendar import CalendarClientFactory, GoogleCalendarError
from appointly.models.appointment import Appointment
from appointly.models.user import UserProfile, UserRole
from appointly.schemas.appointment import CalendarSyncResult
from appointly.services.availability import TimeSlot, split_range
from appointly.services.calendar_token_service import CalendarTokenService


logger = logging.getLogger(__name__)

FREEBUSY_STEP_MINUTES = 30


def _parse_busy(block: Dict[str, str]) -> tuple:
    return (
        datetime.fromisoformat(block["start"].replace("Z", "+00:00")),
        datetime.fromisoformat(block["end"].replace("Z", "+00:00")),
    )


class CalendarService:
    """
    Google Calendar operations performed on behalf of a stored user.

    Every call needs an unexpired access token stored for the user.
    Provider failures surface as ``GoogleCalendarError``; routes turn them
    into 502 responses.
    """

    @staticmethod
    async def _access_token_or_400(
        user: UserProfile,
        db: AsyncSession
    ) -> str:
        access_token = await CalendarTokenService.get_valid_access_token(user.id, db, preferred_type=user.role)
        if not access_token:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Google Calendar not connected",
            )
        return access_token

    @staticmethod
    async def create_event(
        user: UserProfile,
        summary: str,
        start: datetime,
        end: datetime,
        attendees: List[str],
        description: Optional[str],
        db: AsyncSession,
        client_factory: CalendarClientFactory
    ) -> Dict[str, Any]:
        """Create an event with a Meet link on the user's primary calendar."""
        access_token = await CalendarService._access_token_or_400(user, db)
        async with client_factory(access_token) as client:
            event = await client.create_event(summary, start, end, attendees, description)
        logger.info(f"Created calendar event {event.get('id')} for user {user.id}")
        return event

    @staticmethod
    async def list_events(
        user: UserProfile,
        time_min: datetime,
        time_max: datetime,
        db: AsyncSession,
        client_factory: CalendarClientFactory
    ) -> List[Dict[str, Any]]:
        """List events on the user's primary calendar in a range."""
        access_token = await CalendarService._access_token_or_400(user, db)
        async with client_factory(access_token) as client:
            return await client.list_events(time_min, time_max)

    @staticmethod
    async def freebusy_slots(
        user: UserProfile,
        time_min: datetime,
        time_max: datetime,
        calendar_id: str,
        db: AsyncSession,
        client_factory: CalendarClientFactory
    ) -> List[TimeSlot]:
        """
        Split a range into 30-minute slots marked against Google busy blocks.
        """
        access_token = await CalendarService._access_token_or_400(user, db)
        async with client_factory(access_token) as client:
            busy = await client.freebusy(time_min, time_max, calendar_id)
        return split_range(time_min, time_max, FREEBUSY_STEP_MINUTES, [_parse_busy(b) for b in busy])

    @staticmethod
    async def get_user_info(
        user: UserProfile,
        db: AsyncSession,
        client_factory: CalendarClientFactory
    ) -> Dict[str, Any]:
        """Fetch the Google profile behind the user's stored token."""
        access_token = await CalendarService._access_token_or_400(user, db)
        async with client_factory(access_token) as client:
            return await client.get_user_info()

    @staticmethod
    async def _create_participant_event(
        label: str,
        access_token: Optional[str],
        summary: str,
        description: str,
        appointment: Appointment,
        client_factory: CalendarClientFactory,
        errors: List[str]
    ) -> Optional[Dict[str, Any]]:
        if not access_token:
            errors.append(f"{label} calendar: Google Calendar not connected")
            return None

        try:
            async with client_factory(access_token) as client:
                return await client.create_event(
                    summary,
                    appointment.start_time,
                    appointment.end_time,
                    [appointment.buyer_email, appointment.seller_email],
                    description,
                )
        except GoogleCalendarError as e:
            logger.error(f"{label} calendar event failed for appointment {appointment.id}: {e.message}")
            errors.append(f"{label} calendar: {e.message}")
            return None

    @staticmethod
    async def sync_appointment_events(
        appointment: Appointment,
        buyer: UserProfile,
        seller_user: UserProfile,
        db: AsyncSession,
        client_factory: CalendarClientFactory
    ) -> CalendarSyncResult:
        """
        Put a new appointment on both participants' calendars.

        Best effort: a participant without a usable token, or a provider
        failure, is recorded in ``errors`` and never fails the booking. The
        appointment keeps the buyer's event id when there is one, else the
        seller's, plus the first Meet link returned.

        Tokens are read up front and the transaction is closed before
        calling Google, so no connection sits idle in a transaction while
        the provider responds.

        Args:
            appointment: Freshly created appointment.
            buyer: Buyer profile.
            seller_user: Profile of the user behind the seller.
            db: Database session.
            client_factory: Builds a calendar client from an access token.

        Returns:
            CalendarSyncResult: What was created and what failed.
        """
        result = CalendarSyncResult()
        details = appointment.description or ""

        buyer_token = await CalendarTokenService.get_valid_access_token(
            buyer.id, db, preferred_type=UserRole.BUYER
        )
        seller_token = await CalendarTokenService.get_valid_access_token(
            seller_user.id, db, preferred_type=UserRole.SELLER
        )
        await db.commit()

        buyer_event = await CalendarService._create_participant_event(
            "Buyer",
            buyer_token,
            f"{appointment.title} - Meeting with {seller_user.full_name or 'Seller'}",
            f"{details}\n\nAppointment with: {seller_user.full_name or ''}\nEmail: {seller_user.email}",
            appointment,
            client_factory,
            result.errors,
        )
        seller_event = await CalendarService._create_participant_event(
            "Seller",
            seller_token,
            f"{appointment.title} - Meeting with {buyer.full_name or 'Client'}",
            f"{details}\n\nAppointment with: {buyer.full_name or ''}\nEmail: {buyer.email}",
            appointment,
            client_factory,
            result.errors,
        )

        if buyer_event:
            result.buyer_event_created = True
            result.buyer_event_id = buyer_event.get("id")
        if seller_event:
            result.seller_event_created = True
            result.seller_event_id = seller_event.get("id")

        event_id = result.buyer_event_id or result.seller_event_id
        if event_id:
            appointment.google_calendar_event_id = event_id
            appointment.meet_link = next(
                (e.get("meet_link") for e in (buyer_event, seller_event) if e and e.get("meet_link")),
                None,
            )
            await db.commit()
            await db.refresh(appointment)

        return result
