"""Appointment schemas for request/response validation."""

from datetime import date, datetime, time
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.core.scheduling import (
    DEFAULT_DURATION_MINUTES,
    MAX_DURATION_MINUTES,
    MIN_DURATION_MINUTES,
    AppointmentStatus,
)
from app.schemas.common import PHONE_PATTERN, PaginationMeta, SortOrder, coerce_time
from app.schemas.patients import PatientSummary
from app.schemas.treatments import AppointmentTreatmentResponse


class AppointmentCreate(BaseModel):
    """Schema for creating a new appointment."""

    patient_id: UUID
    dentist_id: UUID | None = None
    appointment_date: date
    appointment_time: time = Field(..., description="Start time as HH:MM")
    duration_minutes: int = Field(
        default=DEFAULT_DURATION_MINUTES,
        ge=MIN_DURATION_MINUTES,
        le=MAX_DURATION_MINUTES,
    )
    notes: str | None = Field(None, max_length=1000)
    treatment_ids: list[UUID] = Field(default_factory=list)

    @field_validator("appointment_time", mode="before")
    @classmethod
    def validate_time(cls, v: object) -> time | None:
        """Accept HH:MM (or HH:MM:SS) start times."""
        return coerce_time(v)


class AppointmentUpdate(BaseModel):
    """Schema for updating an existing appointment."""

    patient_id: UUID | None = None
    dentist_id: UUID | None = None
    appointment_date: date | None = None
    appointment_time: time | None = None
    duration_minutes: int | None = Field(
        None,
        ge=MIN_DURATION_MINUTES,
        le=MAX_DURATION_MINUTES,
    )
    status: AppointmentStatus | None = None
    notes: str | None = Field(None, max_length=1000)
    diagnosis: str | None = Field(None, max_length=2000)
    treatment_plan: str | None = Field(None, max_length=2000)
    treatment_ids: list[UUID] | None = None

    @field_validator("appointment_time", mode="before")
    @classmethod
    def validate_time(cls, v: object) -> time | None:
        """Accept HH:MM (or HH:MM:SS) start times."""
        return coerce_time(v)

    @property
    def reschedules(self) -> bool:
        """Whether the update moves or resizes the slot."""
        return any(
            value is not None
            for value in (self.appointment_date, self.appointment_time, self.duration_minutes)
        )


class AppointmentStatusUpdate(BaseModel):
    """Schema for updating appointment status."""

    status: AppointmentStatus
    notes: str | None = Field(None, max_length=1000)


class AppointmentResponse(BaseModel):
    """Schema for appointment response."""

    id: UUID
    clinic_id: UUID
    patient_id: UUID
    dentist_id: UUID | None = None
    appointment_date: date
    appointment_time: time
    duration_minutes: int | None = None
    status: AppointmentStatus
    notes: str | None = None
    diagnosis: str | None = None
    treatment_plan: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AppointmentWithPatient(AppointmentResponse):
    """Appointment with the patient's identifying fields."""

    patient: PatientSummary | None = None


class AppointmentDetailResponse(AppointmentWithPatient):
    """Appointment with patient and attached treatments."""

    treatments: list[AppointmentTreatmentResponse] = Field(default_factory=list)


class AppointmentListResponse(BaseModel):
    """Schema for paginated appointment list response."""

    items: list[AppointmentWithPatient]
    pagination: PaginationMeta


class AppointmentFilters(BaseModel):
    """Schema for appointment filtering."""

    status: AppointmentStatus | None = None
    patient_id: UUID | None = None
    dentist_id: UUID | None = None
    date_from: date | None = None
    date_to: date | None = None
    search: str | None = None
    sort_by: Literal["appointment_date", "appointment_time", "created_at", "status"] = (
        "appointment_date"
    )
    sort_order: SortOrder = "desc"
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)


class PublicBookingRequest(BaseModel):
    """Appointment request submitted from the public website."""

    first_name: str = Field(..., min_length=2, max_length=50)
    last_name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    phone: str | None = Field(None, pattern=PHONE_PATTERN)
    appointment_date: date
    appointment_time: time
    service: str = Field(..., min_length=1, max_length=200)
    notes: str | None = Field(None, max_length=1000)

    @field_validator("appointment_time", mode="before")
    @classmethod
    def validate_time(cls, v: object) -> time | None:
        """Accept HH:MM (or HH:MM:SS) start times."""
        return coerce_time(v)


class PublicBookingResponse(BaseModel):
    """Confirmation returned to the public website."""

    appointment_id: UUID
    patient_id: UUID
    appointment_date: date
    appointment_time: time
    status: AppointmentStatus
