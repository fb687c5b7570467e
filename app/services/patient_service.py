"""Patient service for business logic."""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import and_, delete, func, insert, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BadRequestException, ConflictException, NotFoundException
from app.core.patient_numbers import next_patient_number
from app.models.appointments import appointments
from app.models.patients import patients
from app.schemas.appointments import AppointmentResponse
from app.schemas.common import PaginationMeta
from app.schemas.patients import (
    PatientCreate,
    PatientFilters,
    PatientListResponse,
    PatientResponse,
    PatientUpdate,
)

logger = structlog.get_logger()

# Columns a partial update never sets to NULL
_REQUIRED_FIELDS = frozenset({"first_name", "last_name"})


class PatientService:
    """Service for managing a clinic's patients."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def generate_patient_number(self, clinic_id: UUID) -> str:
        """
        Allocate the next patient number for a clinic.

        Reads the clinic's most recently created patient and increments its
        number. Two registrations racing for the same clinic can receive the
        same number; nothing enforces uniqueness at the database level.

        Args:
            clinic_id: Clinic scope

        Returns:
            Patient number such as ``P000042``
        """
        stmt = (
            select(patients.c.patient_number)
            .where(patients.c.clinic_id == clinic_id)
            .order_by(patients.c.created_at.desc(), patients.c.patient_number.desc())
            .limit(1)
        )
        result = await self.db.execute(stmt)
        return next_patient_number(result.scalar())

    async def _email_taken(
        self,
        clinic_id: UUID,
        email: str,
        exclude_patient_id: UUID | None = None,
    ) -> bool:
        conditions = [
            patients.c.clinic_id == clinic_id,
            func.lower(patients.c.email) == email.lower(),
        ]
        if exclude_patient_id is not None:
            conditions.append(patients.c.id != exclude_patient_id)

        stmt = select(patients.c.id).where(and_(*conditions)).limit(1)
        result = await self.db.execute(stmt)
        return result.first() is not None

    async def insert_patient(self, clinic_id: UUID, values: dict[str, Any]) -> dict:
        """
        Insert a patient with a freshly generated number, without committing.

        Used by flows that commit the patient together with other records.
        """
        patient_number = await self.generate_patient_number(clinic_id)
        stmt = (
            insert(patients)
            .values(clinic_id=clinic_id, patient_number=patient_number, **values)
            .returning(patients)
        )
        result = await self.db.execute(stmt)
        patient = dict(result.mappings().one())

        logger.info(
            "patient_created",
            clinic_id=str(clinic_id),
            patient_id=str(patient["id"]),
            patient_number=patient_number,
        )
        return patient

    async def create_patient(self, clinic_id: UUID, data: PatientCreate) -> PatientResponse:
        """
        Register a new patient.

        Raises:
            ConflictException: If another patient of the clinic has the same email
        """
        if data.email and await self._email_taken(clinic_id, data.email):
            raise ConflictException("Patient with this email already exists")

        patient = await self.insert_patient(clinic_id, data.model_dump())
        await self.db.commit()

        return PatientResponse.model_validate(patient)

    async def find_by_email(self, clinic_id: UUID, email: str) -> dict | None:
        """Find a clinic's patient by email (case-insensitive)."""
        stmt = (
            select(patients)
            .where(
                patients.c.clinic_id == clinic_id,
                func.lower(patients.c.email) == email.lower(),
            )
            .order_by(patients.c.created_at)
            .limit(1)
        )
        result = await self.db.execute(stmt)
        patient = result.mappings().first()
        return dict(patient) if patient else None

    async def find_by_user(self, clinic_id: UUID, user_id: UUID) -> dict | None:
        """Find the patient record linked to a login account."""
        stmt = select(patients).where(
            patients.c.clinic_id == clinic_id,
            patients.c.user_id == user_id,
        )
        result = await self.db.execute(stmt)
        patient = result.mappings().first()
        return dict(patient) if patient else None

    async def link_user(self, patient_id: UUID, user_id: UUID) -> None:
        """Attach a login account to an existing patient record, without committing."""
        stmt = (
            update(patients)
            .where(patients.c.id == patient_id)
            .values(user_id=user_id, updated_at=datetime.now(UTC))
        )
        await self.db.execute(stmt)

    async def get_patient_row(self, clinic_id: UUID, patient_id: UUID) -> dict:
        """
        Get a clinic's patient record.

        Raises:
            NotFoundException: If the patient does not belong to the clinic
        """
        stmt = select(patients).where(
            patients.c.id == patient_id,
            patients.c.clinic_id == clinic_id,
        )
        result = await self.db.execute(stmt)
        patient = result.mappings().first()

        if not patient:
            raise NotFoundException("Patient not found")

        return dict(patient)

    async def get_patient(self, clinic_id: UUID, patient_id: UUID) -> PatientResponse:
        """Get patient by ID."""
        return PatientResponse.model_validate(await self.get_patient_row(clinic_id, patient_id))

    async def list_patients(self, clinic_id: UUID, filters: PatientFilters) -> PatientListResponse:
        """
        List patients with search, filtering and pagination.

        Args:
            clinic_id: Clinic scope
            filters: Filter, sort and pagination parameters

        Returns:
            Paginated list of patients
        """
        conditions = [patients.c.clinic_id == clinic_id]

        if filters.search:
            pattern = f"%{filters.search}%"
            conditions.append(
                or_(
                    patients.c.first_name.ilike(pattern),
                    patients.c.last_name.ilike(pattern),
                    patients.c.email.ilike(pattern),
                    patients.c.patient_number.ilike(pattern),
                )
            )

        if filters.gender:
            conditions.append(patients.c.gender == filters.gender)

        count_stmt = select(func.count()).select_from(patients).where(and_(*conditions))
        total = (await self.db.execute(count_stmt)).scalar() or 0

        sort_column = patients.c[filters.sort_by]
        order = sort_column.asc() if filters.sort_order == "asc" else sort_column.desc()

        stmt = (
            select(patients)
            .where(and_(*conditions))
            .order_by(order, patients.c.id)
            .limit(filters.limit)
            .offset((filters.page - 1) * filters.limit)
        )
        result = await self.db.execute(stmt)

        return PatientListResponse(
            items=[PatientResponse.model_validate(dict(row)) for row in result.mappings()],
            pagination=PaginationMeta.build(filters.page, filters.limit, total),
        )

    async def update_patient(
        self,
        clinic_id: UUID,
        patient_id: UUID,
        data: PatientUpdate,
    ) -> PatientResponse:
        """
        Update a patient; only provided fields change.

        Raises:
            NotFoundException: If the patient does not belong to the clinic
            ConflictException: If the new email is used by another patient
        """
        await self.get_patient_row(clinic_id, patient_id)

        update_values = {
            field: value
            for field, value in data.model_dump(exclude_unset=True).items()
            if value is not None or field not in _REQUIRED_FIELDS
        }

        if update_values.get("email") and await self._email_taken(
            clinic_id, update_values["email"], exclude_patient_id=patient_id
        ):
            raise ConflictException("Patient with this email already exists")

        if not update_values:
            return await self.get_patient(clinic_id, patient_id)

        update_values["updated_at"] = datetime.now(UTC)

        stmt = (
            update(patients)
            .where(patients.c.id == patient_id, patients.c.clinic_id == clinic_id)
            .values(**update_values)
            .returning(patients)
        )
        result = await self.db.execute(stmt)
        patient = dict(result.mappings().one())
        await self.db.commit()

        return PatientResponse.model_validate(patient)

    async def delete_patient(self, clinic_id: UUID, patient_id: UUID) -> None:
        """
        Delete a patient that has no appointments.

        Raises:
            NotFoundException: If the patient does not belong to the clinic
            BadRequestException: If the patient has appointments
        """
        await self.get_patient_row(clinic_id, patient_id)

        stmt = select(appointments.c.id).where(appointments.c.patient_id == patient_id).limit(1)
        if (await self.db.execute(stmt)).first() is not None:
            raise BadRequestException("Cannot delete patient with existing appointments")

        await self.db.execute(
            delete(patients).where(patients.c.id == patient_id, patients.c.clinic_id == clinic_id)
        )
        await self.db.commit()

        logger.info("patient_deleted", clinic_id=str(clinic_id), patient_id=str(patient_id))

    async def list_patient_appointments(
        self,
        clinic_id: UUID,
        patient_id: UUID,
    ) -> list[AppointmentResponse]:
        """List a patient's appointments, most recent date first."""
        await self.get_patient_row(clinic_id, patient_id)

        stmt = (
            select(appointments)
            .where(
                appointments.c.patient_id == patient_id,
                appointments.c.clinic_id == clinic_id,
            )
            .order_by(
                appointments.c.appointment_date.desc(),
                appointments.c.appointment_time.desc(),
            )
        )
        result = await self.db.execute(stmt)
        return [AppointmentResponse.model_validate(dict(row)) for row in result.mappings()]
