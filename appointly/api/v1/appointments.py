"""
Appointment endpoints.

Booking, listing, and status changes. Routes stay thin; rules live in
AppointmentService.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from appointly.core.google_calendar import CalendarClientFactory, get_calendar_client_factory
from appointly.db.session import get_db
from appointly.dependencies.auth import get_current_user, get_current_user_id
from appointly.models.user import UserProfile, UserRole
from appointly.schemas.appointment import (
    AppointmentCreate,
    AppointmentCreateResponse,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatusUpdate,
    AppointmentUpdateResponse,
)
from appointly.services.appointment_service import AppointmentService


logger = logging.getLogger(__name__)

appointments_router = APIRouter()


@appointments_router.post("", response_model=AppointmentCreateResponse, status_code=201)
async def create_appointment(
    appointment_data: AppointmentCreate,
    current_user: UserProfile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    client_factory: CalendarClientFactory = Depends(get_calendar_client_factory)
):
    """
    Book an appointment with a seller as the authenticated buyer.

    Calendar events are created for both participants when they have
    connected Google Calendar; failures there are reported, not raised.

    Args:
        appointment_data: Seller, time range, title and description.
        current_user: Authenticated buyer.
        db: Database session.
        client_factory: Google Calendar client factory.

    Returns:
        AppointmentCreateResponse: Appointment and calendar outcome.
    """
    try:
        return await AppointmentService.create_appointment(current_user, appointment_data, db, client_factory)
    except Exception as e:
        logger.error(f"Failed to create appointment for user {current_user.id}: {e}")
        raise


@appointments_router.get("", response_model=AppointmentListResponse)
async def list_appointments(
    role: UserRole = Query(...),
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """
    List the caller's appointments as buyer or as seller.

    Args:
        role: Which side of the appointments to list.
        user_id: Authenticated user id.
        db: Database session.

    Returns:
        AppointmentListResponse: Appointments ordered by start time.
    """
    appointments = await AppointmentService.list_appointments(user_id, role, db)
    return AppointmentListResponse(appointments=appointments)


@appointments_router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """Get one appointment the caller takes part in."""
    appointment, _ = await AppointmentService.get_for_participant(appointment_id, user_id, db)
    return appointment


@appointments_router.patch("/{appointment_id}/status", response_model=AppointmentUpdateResponse)
async def update_appointment_status(
    appointment_id: UUID,
    update: AppointmentStatusUpdate,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """
    Change an appointment's status as its buyer or seller.

    Args:
        appointment_id: Appointment to update.
        update: New status.
        user_id: Authenticated user id.
        db: Database session.

    Returns:
        AppointmentUpdateResponse: Updated appointment.
    """
    appointment = await AppointmentService.update_status(appointment_id, user_id, update.status, db)
    return AppointmentUpdateResponse(appointment=AppointmentResponse.model_validate(appointment))
