"""Patient endpoints (clinic administrators only)."""

from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Query, status

from app.dependencies import AdminUser, DatabaseSession
from app.schemas.appointments import AppointmentResponse
from app.schemas.patients import (
    Gender,
    PatientCreate,
    PatientFilters,
    PatientListResponse,
    PatientResponse,
    PatientUpdate,
)
from app.schemas.transactions import TransactionResponse
from app.services.patient_service import PatientService
from app.services.transaction_service import TransactionService

router = APIRouter()


@router.post(
    "/",
    response_model=PatientResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register patient",
)
async def create_patient(
    data: PatientCreate,
    current_user: AdminUser,
    db: DatabaseSession,
) -> PatientResponse:
    """Register a patient and assign the next patient number."""
    service = PatientService(db)
    return await service.create_patient(current_user["clinic_id"], data)


@router.get(
    "/",
    response_model=PatientListResponse,
    status_code=status.HTTP_200_OK,
    summary="List patients",
)
async def list_patients(
    current_user: AdminUser,
    db: DatabaseSession,
    search: str | None = Query(None, max_length=100),
    gender: Gender | None = Query(None),
    sort_by: Literal["created_at", "first_name", "last_name", "patient_number"] = Query(
        "created_at"
    ),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
) -> PatientListResponse:
    """List the clinic's patients with search and pagination."""
    filters = PatientFilters(
        search=search,
        gender=gender,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )

    service = PatientService(db)
    return await service.list_patients(current_user["clinic_id"], filters)


@router.get(
    "/{patient_id}",
    response_model=PatientResponse,
    status_code=status.HTTP_200_OK,
    summary="Get patient by ID",
)
async def get_patient(
    patient_id: UUID,
    current_user: AdminUser,
    db: DatabaseSession,
) -> PatientResponse:
    """Get a patient of the clinic."""
    service = PatientService(db)
    return await service.get_patient(current_user["clinic_id"], patient_id)


@router.put(
    "/{patient_id}",
    response_model=PatientResponse,
    status_code=status.HTTP_200_OK,
    summary="Update patient",
)
async def update_patient(
    patient_id: UUID,
    data: PatientUpdate,
    current_user: AdminUser,
    db: DatabaseSession,
) -> PatientResponse:
    """Update a patient's details."""
    service = PatientService(db)
    return await service.update_patient(current_user["clinic_id"], patient_id, data)


@router.delete(
    "/{patient_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete patient",
)
async def delete_patient(
    patient_id: UUID,
    current_user: AdminUser,
    db: DatabaseSession,
) -> None:
    """Delete a patient who has no appointments."""
    service = PatientService(db)
    await service.delete_patient(current_user["clinic_id"], patient_id)


@router.get(
    "/{patient_id}/appointments",
    response_model=list[AppointmentResponse],
    status_code=status.HTTP_200_OK,
    summary="List patient appointments",
)
async def list_patient_appointments(
    patient_id: UUID,
    current_user: AdminUser,
    db: DatabaseSession,
) -> list[AppointmentResponse]:
    """List a patient's appointments, most recent first."""
    service = PatientService(db)
    return await service.list_patient_appointments(current_user["clinic_id"], patient_id)


@router.get(
    "/{patient_id}/transactions",
    response_model=list[TransactionResponse],
    status_code=status.HTTP_200_OK,
    summary="List patient transactions",
)
async def list_patient_transactions(
    patient_id: UUID,
    current_user: AdminUser,
    db: DatabaseSession,
) -> list[TransactionResponse]:
    """List a patient's transactions, most recent first."""
    await PatientService(db).get_patient_row(current_user["clinic_id"], patient_id)

    service = TransactionService(db)
    return await service.list_patient_transactions(current_user["clinic_id"], patient_id)
