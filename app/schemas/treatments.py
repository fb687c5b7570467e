"""Treatment schemas."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.common import PaginationMeta


class TreatmentBase(BaseModel):
    """Base treatment schema."""

    name: str = Field(..., min_length=2, max_length=100)
    description: str | None = Field(None, max_length=500)
    duration_minutes: int | None = Field(None, ge=15, le=480)
    price: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=2)
    is_active: bool = True


class TreatmentCreate(TreatmentBase):
    """Schema for adding a treatment to the clinic catalogue."""


class TreatmentUpdate(BaseModel):
    """Schema for updating a treatment."""

    name: str | None = Field(None, min_length=2, max_length=100)
    description: str | None = Field(None, max_length=500)
    duration_minutes: int | None = Field(None, ge=15, le=480)
    price: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=2)
    is_active: bool | None = None


class TreatmentResponse(TreatmentBase):
    """Schema for treatment response."""

    id: UUID
    clinic_id: UUID
    name: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TreatmentFilters(BaseModel):
    """Schema for treatment filtering."""

    search: str | None = None
    is_active: bool | None = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)


class TreatmentListResponse(BaseModel):
    """Schema for paginated treatment list response."""

    items: list[TreatmentResponse]
    pagination: PaginationMeta


class AppointmentTreatmentResponse(BaseModel):
    """Treatment attached to an appointment."""

    id: UUID
    treatment_id: UUID
    name: str
    quantity: int
    price: Decimal | None = None
    notes: str | None = None
