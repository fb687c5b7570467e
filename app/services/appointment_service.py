"""Appointment service for business logic."""

from collections import defaultdict
from collections.abc import Sequence
from datetime import UTC, date, datetime, time
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import and_, delete, func, insert, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import (
    AppointmentConflictException,
    BadRequestException,
    NotFoundException,
)
from app.core.scheduling import (
    DEFAULT_DURATION_MINUTES,
    AppointmentStatus,
    ScheduleSlot,
    check_conflict,
    ensure_deletable,
    validate_status,
)
from app.models.appointments import appointment_treatments, appointments
from app.models.patients import patients
from app.models.treatments import treatments
from app.schemas.appointments import (
    AppointmentCreate,
    AppointmentDetailResponse,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatusUpdate,
    AppointmentUpdate,
    AppointmentWithPatient,
    PublicBookingRequest,
    PublicBookingResponse,
)
from app.schemas.common import PaginationMeta
from app.schemas.treatments import AppointmentTreatmentResponse
from app.services.clinic_service import ClinicService
from app.services.patient_service import PatientService
from app.services.treatment_service import TreatmentService

logger = structlog.get_logger()

# Patient fields embedded in appointment listings
_PATIENT_COLUMNS = {
    "first_name": patients.c.first_name,
    "last_name": patients.c.last_name,
    "patient_number": patients.c.patient_number,
    "phone": patients.c.phone,
    "email": patients.c.email,
}

# Columns a partial update never sets to NULL
_REQUIRED_FIELDS = frozenset(
    {"patient_id", "appointment_date", "appointment_time", "duration_minutes", "status"}
)


def _select_with_patient() -> Any:
    """Select appointments joined with their patient's summary fields."""
    return select(
        appointments,
        *(column.label(f"patient_{name}") for name, column in _PATIENT_COLUMNS.items()),
    ).select_from(appointments.join(patients, appointments.c.patient_id == patients.c.id))


def _split_patient(row: Any) -> dict:
    data = {key: row[key] for key in appointments.c.keys()}
    data["patient"] = {name: row[f"patient_{name}"] for name in _PATIENT_COLUMNS}
    return data


class AppointmentService:
    """Service for managing appointments."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db
        self.clinics = ClinicService(db)
        self.patients = PatientService(db)
        self.treatments = TreatmentService(db)

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    async def _load_day_schedule(self, clinic_id: UUID, day: date) -> list[ScheduleSlot]:
        """Non-cancelled appointments of one clinic on one calendar date."""
        stmt = (
            select(
                appointments.c.id,
                appointments.c.appointment_date,
                appointments.c.appointment_time,
                appointments.c.duration_minutes,
                appointments.c.status,
            )
            .where(
                appointments.c.clinic_id == clinic_id,
                appointments.c.appointment_date == day,
                appointments.c.status != AppointmentStatus.CANCELLED.value,
            )
            .order_by(appointments.c.appointment_time, appointments.c.id)
        )
        result = await self.db.execute(stmt)
        return [ScheduleSlot.from_mapping(row) for row in result.mappings()]

    async def _ensure_slot_available(
        self,
        clinic_id: UUID,
        day: date,
        start: time,
        duration_minutes: int | None,
        exclude_appointment_id: UUID | None = None,
    ) -> None:
        """
        Check a slot against the clinic's schedule for that day.

        Must run after ``ClinicService.lock_clinic`` in the same transaction.

        Raises:
            AppointmentConflictException: If the slot overlaps a booking
        """
        schedule = await self._load_day_schedule(clinic_id, day)
        try:
            check_conflict(
                day,
                start,
                schedule,
                duration_minutes=duration_minutes,
                exclude_appointment_id=exclude_appointment_id,
            )
        except AppointmentConflictException as e:
            await self.db.rollback()
            logger.info(
                "appointment_conflict",
                clinic_id=str(clinic_id),
                appointment_date=day.isoformat(),
                appointment_time=start.isoformat(timespec="minutes"),
                duration_minutes=duration_minutes,
                conflicting_appointment_id=str(e.conflicting_appointment_id),
            )
            raise

    # ------------------------------------------------------------------
    # Treatment attachments
    # ------------------------------------------------------------------

    async def _attach_treatments(
        self,
        clinic_id: UUID,
        appointment_id: UUID,
        treatment_ids: Sequence[UUID],
    ) -> None:
        """
        Attach treatments to a committed appointment.

        Failures are logged and swallowed; the appointment itself stands.
        """
        if not treatment_ids:
            return

        try:
            known = await self.treatments.get_clinic_treatments(clinic_id, treatment_ids)
            unknown = [str(tid) for tid in treatment_ids if tid not in known]
            if unknown:
                logger.warning(
                    "appointment_treatments_unknown",
                    appointment_id=str(appointment_id),
                    treatment_ids=unknown,
                )

            rows = [
                {
                    "appointment_id": appointment_id,
                    "treatment_id": tid,
                    "quantity": 1,
                    "price": known[tid]["price"],
                }
                for tid in dict.fromkeys(treatment_ids)
                if tid in known
            ]
            if rows:
                await self.db.execute(insert(appointment_treatments), rows)
                await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                "appointment_treatments_attach_failed",
                appointment_id=str(appointment_id),
                error=str(e),
            )

    async def _replace_treatments(
        self,
        clinic_id: UUID,
        appointment_id: UUID,
        treatment_ids: Sequence[UUID],
    ) -> None:
        """
        Drop every attachment of the appointment, then attach the new set.

        Failures are logged and swallowed like in ``_attach_treatments``.
        """
        try:
            await self.db.execute(
                delete(appointment_treatments).where(
                    appointment_treatments.c.appointment_id == appointment_id
                )
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                "appointment_treatments_clear_failed",
                appointment_id=str(appointment_id),
                error=str(e),
            )
            return

        await self._attach_treatments(clinic_id, appointment_id, treatment_ids)

    async def _load_treatments(
        self,
        appointment_ids: Sequence[UUID],
    ) -> dict[UUID, list[AppointmentTreatmentResponse]]:
        if not appointment_ids:
            return {}

        stmt = (
            select(
                appointment_treatments.c.id,
                appointment_treatments.c.appointment_id,
                appointment_treatments.c.treatment_id,
                appointment_treatments.c.quantity,
                appointment_treatments.c.price,
                appointment_treatments.c.notes,
                treatments.c.name,
            )
            .select_from(
                appointment_treatments.join(
                    treatments, appointment_treatments.c.treatment_id == treatments.c.id
                )
            )
            .where(appointment_treatments.c.appointment_id.in_(list(appointment_ids)))
            .order_by(appointment_treatments.c.created_at, treatments.c.name)
        )
        result = await self.db.execute(stmt)

        grouped: dict[UUID, list[AppointmentTreatmentResponse]] = defaultdict(list)
        for row in result.mappings():
            grouped[row["appointment_id"]].append(
                AppointmentTreatmentResponse.model_validate(dict(row))
            )
        return grouped

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    async def _get_row(self, clinic_id: UUID, appointment_id: UUID) -> dict:
        stmt = select(appointments).where(
            appointments.c.id == appointment_id,
            appointments.c.clinic_id == clinic_id,
        )
        row = (await self.db.execute(stmt)).mappings().first()

        if not row:
            raise NotFoundException("Appointment not found")

        return dict(row)

    async def create_appointment(
        self,
        clinic_id: UUID,
        data: AppointmentCreate,
    ) -> AppointmentResponse:
        """
        Book an appointment for one of the clinic's patients.

        Args:
            clinic_id: Clinic of the booking staff member
            data: Appointment creation data

        Returns:
            Created appointment

        Raises:
            NotFoundException: If the patient does not belong to the clinic
            AppointmentConflictException: If the slot overlaps another booking
        """
        await self.patients.get_patient_row(clinic_id, data.patient_id)

        await self.clinics.lock_clinic(clinic_id)
        await self._ensure_slot_available(
            clinic_id,
            data.appointment_date,
            data.appointment_time,
            data.duration_minutes,
        )

        values = {
            "clinic_id": clinic_id,
            "patient_id": data.patient_id,
            "dentist_id": data.dentist_id,
            "appointment_date": data.appointment_date,
            "appointment_time": data.appointment_time,
            "duration_minutes": data.duration_minutes,
            "status": AppointmentStatus.SCHEDULED.value,
            "notes": data.notes,
        }

        stmt = insert(appointments).values(**values).returning(appointments)
        result = await self.db.execute(stmt)
        appointment = dict(result.mappings().one())
        await self.db.commit()

        logger.info(
            "appointment_created",
            clinic_id=str(clinic_id),
            appointment_id=str(appointment["id"]),
            patient_id=str(data.patient_id),
        )

        await self._attach_treatments(clinic_id, appointment["id"], data.treatment_ids)

        return AppointmentResponse.model_validate(appointment)

    async def get_appointment(
        self,
        clinic_id: UUID,
        appointment_id: UUID,
        user: dict | None = None,
    ) -> AppointmentDetailResponse:
        """
        Get appointment by ID with patient and treatments.

        Patients can only see their own appointments.

        Raises:
            NotFoundException: If appointment not found or not visible to the user
        """
        conditions = [
            appointments.c.id == appointment_id,
            appointments.c.clinic_id == clinic_id,
        ]

        if user is not None and user["role"] == "patient":
            patient = await self.patients.find_by_user(clinic_id, user["id"])
            if not patient:
                raise NotFoundException("Patient record not found")
            conditions.append(appointments.c.patient_id == patient["id"])

        result = await self.db.execute(_select_with_patient().where(and_(*conditions)))
        row = result.mappings().first()

        if not row:
            raise NotFoundException("Appointment not found")

        attached = await self._load_treatments([row["id"]])
        return AppointmentDetailResponse(
            **_split_patient(row), treatments=attached.get(row["id"], [])
        )

    async def list_appointments(
        self,
        clinic_id: UUID,
        filters: AppointmentFilters,
    ) -> AppointmentListResponse:
        """
        List appointments with filtering, sorting and pagination.

        Args:
            clinic_id: Clinic scope
            filters: Filter and pagination parameters

        Returns:
            Paginated list of appointments
        """
        conditions = [appointments.c.clinic_id == clinic_id]

        if filters.status:
            conditions.append(appointments.c.status == filters.status.value)

        if filters.patient_id:
            conditions.append(appointments.c.patient_id == filters.patient_id)

        if filters.dentist_id:
            conditions.append(appointments.c.dentist_id == filters.dentist_id)

        if filters.date_from:
            conditions.append(appointments.c.appointment_date >= filters.date_from)

        if filters.date_to:
            conditions.append(appointments.c.appointment_date <= filters.date_to)

        if filters.search:
            pattern = f"%{filters.search}%"
            conditions.append(
                or_(
                    patients.c.first_name.ilike(pattern),
                    patients.c.last_name.ilike(pattern),
                    patients.c.patient_number.ilike(pattern),
                )
            )

        joined = appointments.join(patients, appointments.c.patient_id == patients.c.id)

        # Count total
        count_stmt = select(func.count()).select_from(joined).where(and_(*conditions))
        total = (await self.db.execute(count_stmt)).scalar() or 0

        sort_column = appointments.c[filters.sort_by]
        order = sort_column.asc() if filters.sort_order == "asc" else sort_column.desc()

        stmt = (
            _select_with_patient()
            .where(and_(*conditions))
            .order_by(order, appointments.c.appointment_time, appointments.c.id)
            .limit(filters.limit)
            .offset((filters.page - 1) * filters.limit)
        )
        result = await self.db.execute(stmt)

        return AppointmentListResponse(
            items=[AppointmentWithPatient(**_split_patient(row)) for row in result.mappings()],
            pagination=PaginationMeta.build(filters.page, filters.limit, total),
        )

    async def list_my_appointments(
        self,
        clinic_id: UUID,
        user_id: UUID,
    ) -> list[AppointmentDetailResponse]:
        """
        List the signed-in patient's appointments, most recent date first.

        Raises:
            NotFoundException: If the user has no patient record in the clinic
        """
        patient = await self.patients.find_by_user(clinic_id, user_id)
        if not patient:
            raise NotFoundException("Patient record not found")

        stmt = (
            _select_with_patient()
            .where(
                appointments.c.patient_id == patient["id"],
                appointments.c.clinic_id == clinic_id,
            )
            .order_by(
                appointments.c.appointment_date.desc(),
                appointments.c.appointment_time.desc(),
            )
        )
        rows = (await self.db.execute(stmt)).mappings().all()
        attached = await self._load_treatments([row["id"] for row in rows])

        return [
            AppointmentDetailResponse(**_split_patient(row), treatments=attached.get(row["id"], []))
            for row in rows
        ]

    async def update_appointment(
        self,
        clinic_id: UUID,
        appointment_id: UUID,
        data: AppointmentUpdate,
    ) -> AppointmentResponse:
        """
        Update an existing appointment.

        Only provided fields change. Moving or resizing the slot re-runs the
        conflict check against the rest of the clinic's schedule. A provided
        ``treatment_ids`` list replaces the attached treatments.

        Raises:
            NotFoundException: If appointment or new patient not found
            AppointmentConflictException: If the new slot overlaps another booking
        """
        existing = await self._get_row(clinic_id, appointment_id)

        if data.patient_id is not None:
            await self.patients.get_patient_row(clinic_id, data.patient_id)

        if data.reschedules:
            await self.clinics.lock_clinic(clinic_id)
            await self._ensure_slot_available(
                clinic_id,
                data.appointment_date or existing["appointment_date"],
                data.appointment_time or existing["appointment_time"],
                data.duration_minutes or existing["duration_minutes"] or DEFAULT_DURATION_MINUTES,
                exclude_appointment_id=appointment_id,
            )

        # Explicit nulls clear optional columns; required ones keep their value
        update_values: dict[str, Any] = {}
        for field, value in data.model_dump(exclude_unset=True, exclude={"treatment_ids"}).items():
            if value is None and field in _REQUIRED_FIELDS:
                continue
            if isinstance(value, AppointmentStatus):
                update_values[field] = value.value
            else:
                update_values[field] = value

        if update_values:
            update_values["updated_at"] = datetime.now(UTC)

            stmt = (
                update(appointments)
                .where(
                    appointments.c.id == appointment_id,
                    appointments.c.clinic_id == clinic_id,
                )
                .values(**update_values)
                .returning(appointments)
            )
            result = await self.db.execute(stmt)
            appointment = dict(result.mappings().one())
            await self.db.commit()

            logger.info(
                "appointment_updated",
                clinic_id=str(clinic_id),
                appointment_id=str(appointment_id),
                fields=sorted(update_values),
            )
        else:
            appointment = existing

        if data.treatment_ids is not None:
            await self._replace_treatments(clinic_id, appointment_id, data.treatment_ids)

        return AppointmentResponse.model_validate(appointment)

    async def update_appointment_status(
        self,
        clinic_id: UUID,
        appointment_id: UUID,
        data: AppointmentStatusUpdate,
    ) -> AppointmentResponse:
        """
        Set an appointment's status; any status may follow any other.

        Raises:
            NotFoundException: If appointment not found
        """
        new_status = validate_status(data.status)
        current = await self._get_row(clinic_id, appointment_id)

        update_values: dict[str, Any] = {
            "status": new_status.value,
            "updated_at": datetime.now(UTC),
        }

        if data.notes:
            update_values["notes"] = data.notes

        stmt = (
            update(appointments)
            .where(
                appointments.c.id == appointment_id,
                appointments.c.clinic_id == clinic_id,
            )
            .values(**update_values)
            .returning(appointments)
        )
        result = await self.db.execute(stmt)
        appointment = dict(result.mappings().one())
        await self.db.commit()

        logger.info(
            "appointment_status_changed",
            clinic_id=str(clinic_id),
            appointment_id=str(appointment_id),
            old_status=current["status"],
            new_status=new_status.value,
        )

        return AppointmentResponse.model_validate(appointment)

    async def delete_appointment(self, clinic_id: UUID, appointment_id: UUID) -> None:
        """
        Permanently delete an appointment and its treatment attachments.

        Raises:
            NotFoundException: If appointment not found
            InvalidStateException: If the appointment is completed
        """
        existing = await self._get_row(clinic_id, appointment_id)
        ensure_deletable(existing["status"])

        await self.db.execute(
            delete(appointment_treatments).where(
                appointment_treatments.c.appointment_id == appointment_id
            )
        )
        await self.db.execute(
            delete(appointments).where(
                appointments.c.id == appointment_id,
                appointments.c.clinic_id == clinic_id,
            )
        )
        await self.db.commit()

        logger.info(
            "appointment_deleted",
            clinic_id=str(clinic_id),
            appointment_id=str(appointment_id),
        )

    async def book_public_appointment(self, data: PublicBookingRequest) -> PublicBookingResponse:
        """
        Book an appointment from the public website.

        The patient is matched by email within the default clinic, or
        registered with a newly generated patient number.

        Raises:
            BadRequestException: If no default clinic is configured
            NotFoundException: If the default clinic does not exist
            AppointmentConflictException: If the slot overlaps another booking
        """
        clinic_id = settings.default_clinic_id
        if clinic_id is None:
            raise BadRequestException("Clinic configuration not found")

        await self.clinics.get_clinic(clinic_id)
        await self.clinics.lock_clinic(clinic_id)

        patient = await self.patients.find_by_email(clinic_id, data.email)
        if patient is None:
            patient = await self.patients.insert_patient(
                clinic_id,
                {
                    "first_name": data.first_name,
                    "last_name": data.last_name,
                    "email": data.email,
                    "phone": data.phone,
                },
            )

        duration = settings.default_appointment_duration
        await self._ensure_slot_available(
            clinic_id,
            data.appointment_date,
            data.appointment_time,
            duration,
        )

        stmt = (
            insert(appointments)
            .values(
                clinic_id=clinic_id,
                patient_id=patient["id"],
                appointment_date=data.appointment_date,
                appointment_time=data.appointment_time,
                duration_minutes=duration,
                status=AppointmentStatus.SCHEDULED.value,
                notes=f"Service: {data.service}\nNotes: {data.notes or 'N/A'}",
            )
            .returning(appointments.c.id)
        )
        appointment_id = (await self.db.execute(stmt)).scalar_one()
        await self.db.commit()

        logger.info(
            "appointment_booked",
            clinic_id=str(clinic_id),
            appointment_id=str(appointment_id),
            patient_id=str(patient["id"]),
        )

        return PublicBookingResponse(
            appointment_id=appointment_id,
            patient_id=patient["id"],
            appointment_date=data.appointment_date,
            appointment_time=data.appointment_time,
            status=AppointmentStatus.SCHEDULED,
        )
