"""
Google Calendar endpoints.

Token storage and connection status, plus a thin proxy to the caller's
calendar using the stored access token.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from appointly.core.google_calendar import (
    CalendarClientFactory,
    GoogleCalendarError,
    get_calendar_client_factory,
)
from appointly.db.session import get_db
from appointly.dependencies.auth import get_current_user, get_current_user_id
from appointly.models.user import UserProfile, UserRole
from appointly.schemas.availability import TimeSlotResponse
from appointly.schemas.calendar import (
    CalendarEvent,
    CalendarEventCreate,
    ConnectionResponse,
    FreeBusyRequest,
    FreeBusyResponse,
    StoredTokens,
    TokenStatusResponse,
    TokenStoreRequest,
)
from appointly.services.calendar_service import CalendarService
from appointly.services.calendar_token_service import CalendarTokenService
from appointly.utils.timeutils import ensure_utc


logger = logging.getLogger(__name__)

calendar_router = APIRouter()


def _provider_error(e: GoogleCalendarError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)


@calendar_router.post("/tokens", response_model=TokenStatusResponse)
async def store_tokens(
    token_data: TokenStoreRequest,
    current_user: UserProfile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Store Google Calendar tokens the client obtained for this user.

    Args:
        token_data: Tokens and the role they were granted for.
        current_user: Authenticated user.
        db: Database session.

    Returns:
        TokenStatusResponse: Stored tokens and connection flag.
    """
    token = await CalendarTokenService.store_tokens(current_user.id, token_data, db)
    return TokenStatusResponse(connected=not token.is_expired(), tokens=StoredTokens.model_validate(token))


@calendar_router.get("/tokens", response_model=TokenStatusResponse)
async def get_tokens(
    user_type: UserRole = Query(...),
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """Get the tokens stored for the caller and role."""
    token = await CalendarTokenService.get_tokens(user_id, user_type, db)
    if not token:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tokens not found")
    return TokenStatusResponse(connected=not token.is_expired(), tokens=StoredTokens.model_validate(token))


@calendar_router.get("/connection", response_model=ConnectionResponse)
async def test_connection(
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """
    Report whether the caller has a usable Google Calendar token.

    Returns:
        ConnectionResponse: ``connected`` is false when nothing valid is stored.
    """
    return ConnectionResponse(connected=await CalendarTokenService.is_connected(user_id, db))


@calendar_router.post("/events", response_model=CalendarEvent, status_code=201)
async def create_event(
    event_data: CalendarEventCreate,
    current_user: UserProfile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    client_factory: CalendarClientFactory = Depends(get_calendar_client_factory)
):
    """Create an event with a Google Meet link on the caller's calendar."""
    try:
        return await CalendarService.create_event(
            current_user,
            event_data.summary,
            event_data.start,
            event_data.end,
            [str(email) for email in event_data.attendees],
            event_data.description,
            db,
            client_factory,
        )
    except GoogleCalendarError as e:
        raise _provider_error(e)


@calendar_router.get("/events", response_model=List[CalendarEvent])
async def list_events(
    time_min: datetime = Query(...),
    time_max: datetime = Query(...),
    current_user: UserProfile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    client_factory: CalendarClientFactory = Depends(get_calendar_client_factory)
):
    """List events on the caller's primary calendar in a range."""
    time_min, time_max = ensure_utc(time_min), ensure_utc(time_max)
    if time_max <= time_min:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="time_max must be after time_min")
    try:
        return await CalendarService.list_events(current_user, time_min, time_max, db, client_factory)
    except GoogleCalendarError as e:
        raise _provider_error(e)


@calendar_router.post("/freebusy", response_model=FreeBusyResponse)
async def freebusy(
    request: FreeBusyRequest,
    current_user: UserProfile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    client_factory: CalendarClientFactory = Depends(get_calendar_client_factory)
):
    """Split a range into 30-minute slots marked against the caller's busy time."""
    try:
        slots = await CalendarService.freebusy_slots(
            current_user, request.time_min, request.time_max, request.calendar_id, db, client_factory
        )
    except GoogleCalendarError as e:
        raise _provider_error(e)
    return FreeBusyResponse(
        slots=[TimeSlotResponse(start=s.start, end=s.end, available=s.available) for s in slots]
    )


@calendar_router.get("/user-info")
async def user_info(
    current_user: UserProfile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    client_factory: CalendarClientFactory = Depends(get_calendar_client_factory)
) -> Dict[str, Any]:
    """Get the Google profile behind the caller's stored token."""
    try:
        return await CalendarService.get_user_info(current_user, db, client_factory)
    except GoogleCalendarError as e:
        raise _provider_error(e)
