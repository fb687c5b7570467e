"""Appointment endpoints."""

from datetime import date
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Query, status

from app.core.scheduling import AppointmentStatus
from app.dependencies import AdminUser, CurrentUser, DatabaseSession
from app.schemas.appointments import (
    AppointmentCreate,
    AppointmentDetailResponse,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatusUpdate,
    AppointmentUpdate,
    PublicBookingRequest,
    PublicBookingResponse,
)
from app.services.appointment_service import AppointmentService

router = APIRouter()


@router.post(
    "/",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Appointments"],
    summary="Create new appointment",
)
async def create_appointment(
    data: AppointmentCreate,
    current_user: AdminUser,
    db: DatabaseSession,
) -> AppointmentResponse:
    """
    Book an appointment for a patient of the admin's clinic.

    Args:
        data: Appointment creation data
        current_user: Authenticated admin
        db: Database session

    Returns:
        Created appointment
    """
    service = AppointmentService(db)
    return await service.create_appointment(current_user["clinic_id"], data)


@router.post(
    "/book",
    response_model=PublicBookingResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Appointments"],
    summary="Book appointment from the public website",
)
async def book_appointment(
    data: PublicBookingRequest,
    db: DatabaseSession,
) -> PublicBookingResponse:
    """
    Public booking: no authentication required.

    Args:
        data: Visitor's contact details and requested slot
        db: Database session

    Returns:
        Booking confirmation
    """
    service = AppointmentService(db)
    return await service.book_public_appointment(data)


@router.get(
    "/",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List appointments",
)
async def list_appointments(
    current_user: AdminUser,
    db: DatabaseSession,
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    patient_id: UUID | None = Query(None),
    dentist_id: UUID | None = Query(None),
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    search: str | None = Query(None, max_length=100),
    sort_by: Literal["appointment_date", "appointment_time", "created_at", "status"] = Query(
        "appointment_date"
    ),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
) -> AppointmentListResponse:
    """
    List the clinic's appointments with filtering.

    Args:
        current_user: Authenticated admin
        db: Database session
        status_filter: Filter by status
        patient_id: Filter by patient ID
        dentist_id: Filter by dentist ID
        date_from: Earliest appointment date
        date_to: Latest appointment date
        search: Patient name or number fragment
        sort_by: Sort column
        sort_order: Sort direction
        page: Page number
        limit: Items per page

    Returns:
        Paginated list of appointments
    """
    filters = AppointmentFilters(
        status=status_filter,
        patient_id=patient_id,
        dentist_id=dentist_id,
        date_from=date_from,
        date_to=date_to,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )

    service = AppointmentService(db)
    return await service.list_appointments(current_user["clinic_id"], filters)


@router.get(
    "/me",
    response_model=list[AppointmentDetailResponse],
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List my appointments",
)
async def list_my_appointments(
    current_user: CurrentUser,
    db: DatabaseSession,
) -> list[AppointmentDetailResponse]:
    """
    List the signed-in patient's own appointments.

    Args:
        current_user: Authenticated user
        db: Database session

    Returns:
        Appointments with attached treatments, most recent first
    """
    service = AppointmentService(db)
    return await service.list_my_appointments(current_user["clinic_id"], current_user["id"])


@router.get(
    "/{appointment_id}",
    response_model=AppointmentDetailResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: UUID,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> AppointmentDetailResponse:
    """
    Get a specific appointment by ID.

    Patients only see their own appointments.

    Args:
        appointment_id: Appointment ID
        current_user: Authenticated user
        db: Database session

    Returns:
        Appointment details
    """
    service = AppointmentService(db)
    return await service.get_appointment(current_user["clinic_id"], appointment_id, current_user)


@router.put(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Update appointment",
)
async def update_appointment(
    appointment_id: UUID,
    data: AppointmentUpdate,
    current_user: AdminUser,
    db: DatabaseSession,
) -> AppointmentResponse:
    """
    Update an existing appointment.

    Args:
        appointment_id: Appointment ID
        data: Update data
        current_user: Authenticated admin
        db: Database session

    Returns:
        Updated appointment
    """
    service = AppointmentService(db)
    return await service.update_appointment(current_user["clinic_id"], appointment_id, data)


@router.patch(
    "/{appointment_id}/status",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Update appointment status",
)
async def update_appointment_status(
    appointment_id: UUID,
    data: AppointmentStatusUpdate,
    current_user: AdminUser,
    db: DatabaseSession,
) -> AppointmentResponse:
    """
    Update appointment status (e.g., confirm, cancel, complete).

    Args:
        appointment_id: Appointment ID
        data: Status update data
        current_user: Authenticated admin
        db: Database session

    Returns:
        Updated appointment
    """
    service = AppointmentService(db)
    return await service.update_appointment_status(
        current_user["clinic_id"], appointment_id, data
    )


@router.delete(
    "/{appointment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Appointments"],
    summary="Delete appointment",
)
async def delete_appointment(
    appointment_id: UUID,
    current_user: AdminUser,
    db: DatabaseSession,
) -> None:
    """
    Permanently delete an appointment that is not completed.

    Args:
        appointment_id: Appointment ID
        current_user: Authenticated admin
        db: Database session
    """
    service = AppointmentService(db)
    await service.delete_appointment(current_user["clinic_id"], appointment_id)
