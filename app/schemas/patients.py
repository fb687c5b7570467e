"""Patient schemas for request/response validation."""

from datetime import date, datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from app.schemas.common import PHONE_PATTERN, PaginationMeta, SortOrder

Gender = Literal["male", "female", "other"]


class PatientBase(BaseModel):
    """Base patient schema with common fields."""

    first_name: str = Field(..., min_length=2, max_length=50)
    last_name: str = Field(..., min_length=2, max_length=50)
    date_of_birth: date | None = None
    gender: Gender | None = None
    phone: str | None = Field(None, pattern=PHONE_PATTERN)
    email: EmailStr | None = None
    address: str | None = Field(None, max_length=500)
    emergency_contact_name: str | None = Field(None, max_length=100)
    emergency_contact_phone: str | None = Field(None, pattern=PHONE_PATTERN)
    medical_history: str | None = Field(None, max_length=2000)
    allergies: str | None = Field(None, max_length=1000)
    insurance_provider: str | None = Field(None, max_length=100)
    insurance_number: str | None = Field(None, max_length=100)


class PatientCreate(PatientBase):
    """Schema for registering a patient."""


class PatientUpdate(BaseModel):
    """Schema for updating a patient; omitted fields are left untouched."""

    first_name: str | None = Field(None, min_length=2, max_length=50)
    last_name: str | None = Field(None, min_length=2, max_length=50)
    date_of_birth: date | None = None
    gender: Gender | None = None
    phone: str | None = Field(None, pattern=PHONE_PATTERN)
    email: EmailStr | None = None
    address: str | None = Field(None, max_length=500)
    emergency_contact_name: str | None = Field(None, max_length=100)
    emergency_contact_phone: str | None = Field(None, pattern=PHONE_PATTERN)
    medical_history: str | None = Field(None, max_length=2000)
    allergies: str | None = Field(None, max_length=1000)
    insurance_provider: str | None = Field(None, max_length=100)
    insurance_number: str | None = Field(None, max_length=100)


class PatientResponse(PatientBase):
    """Schema for patient response."""

    id: UUID
    clinic_id: UUID
    user_id: UUID | None = None
    patient_number: str
    # Stored data may predate current validation rules
    first_name: str
    last_name: str
    phone: str | None = None
    email: str | None = None
    emergency_contact_phone: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PatientSummary(BaseModel):
    """Patient fields embedded in appointment responses."""

    first_name: str
    last_name: str
    patient_number: str
    phone: str | None = None
    email: str | None = None


class PatientFilters(BaseModel):
    """Schema for patient filtering."""

    search: str | None = None
    gender: Gender | None = None
    sort_by: Literal["created_at", "first_name", "last_name", "patient_number"] = "created_at"
    sort_order: SortOrder = "desc"
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)


class PatientListResponse(BaseModel):
    """Schema for paginated patient list response."""

    items: list[PatientResponse]
    pagination: PaginationMeta
