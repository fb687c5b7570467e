"""Treatment catalogue endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from app.dependencies import AdminUser, CurrentUser, DatabaseSession
from app.schemas.treatments import (
    TreatmentCreate,
    TreatmentFilters,
    TreatmentListResponse,
    TreatmentResponse,
    TreatmentUpdate,
)
from app.services.treatment_service import TreatmentService

router = APIRouter()


@router.post(
    "/",
    response_model=TreatmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create treatment",
)
async def create_treatment(
    data: TreatmentCreate,
    current_user: AdminUser,
    db: DatabaseSession,
) -> TreatmentResponse:
    """Add a treatment to the clinic catalogue."""
    service = TreatmentService(db)
    return await service.create_treatment(current_user["clinic_id"], data)


@router.get(
    "/",
    response_model=TreatmentListResponse,
    status_code=status.HTTP_200_OK,
    summary="List treatments",
)
async def list_treatments(
    current_user: CurrentUser,
    db: DatabaseSession,
    search: str | None = Query(None, max_length=100),
    is_active: bool | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
) -> TreatmentListResponse:
    """List the clinic's treatments."""
    filters = TreatmentFilters(search=search, is_active=is_active, page=page, limit=limit)

    service = TreatmentService(db)
    return await service.list_treatments(current_user["clinic_id"], filters)


@router.get(
    "/{treatment_id}",
    response_model=TreatmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Get treatment by ID",
)
async def get_treatment(
    treatment_id: UUID,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> TreatmentResponse:
    """Get a treatment of the clinic."""
    service = TreatmentService(db)
    return await service.get_treatment(current_user["clinic_id"], treatment_id)


@router.put(
    "/{treatment_id}",
    response_model=TreatmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Update treatment",
)
async def update_treatment(
    treatment_id: UUID,
    data: TreatmentUpdate,
    current_user: AdminUser,
    db: DatabaseSession,
) -> TreatmentResponse:
    """Update a treatment."""
    service = TreatmentService(db)
    return await service.update_treatment(current_user["clinic_id"], treatment_id, data)


@router.delete(
    "/{treatment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete treatment",
)
async def delete_treatment(
    treatment_id: UUID,
    current_user: AdminUser,
    db: DatabaseSession,
) -> None:
    """Delete a treatment no appointment uses."""
    service = TreatmentService(db)
    await service.delete_treatment(current_user["clinic_id"], treatment_id)
