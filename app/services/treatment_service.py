"""Treatment catalogue service."""

from collections.abc import Sequence
from datetime import UTC, datetime
from uuid import UUID

import structlog
from sqlalchemy import and_, delete, func, insert, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BadRequestException, ConflictException, NotFoundException
from app.models.appointments import appointment_treatments
from app.models.treatments import treatments
from app.schemas.common import PaginationMeta
from app.schemas.treatments import (
    TreatmentCreate,
    TreatmentFilters,
    TreatmentListResponse,
    TreatmentResponse,
    TreatmentUpdate,
)

logger = structlog.get_logger()

# Columns a partial update never sets to NULL
_REQUIRED_FIELDS = frozenset({"name", "is_active"})


class TreatmentService:
    """Service for managing a clinic's treatment catalogue."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def _name_taken(
        self,
        clinic_id: UUID,
        name: str,
        exclude_treatment_id: UUID | None = None,
    ) -> bool:
        conditions = [
            treatments.c.clinic_id == clinic_id,
            func.lower(treatments.c.name) == name.lower(),
        ]
        if exclude_treatment_id is not None:
            conditions.append(treatments.c.id != exclude_treatment_id)

        result = await self.db.execute(select(treatments.c.id).where(and_(*conditions)).limit(1))
        return result.first() is not None

    async def _get_row(self, clinic_id: UUID, treatment_id: UUID) -> dict:
        stmt = select(treatments).where(
            treatments.c.id == treatment_id,
            treatments.c.clinic_id == clinic_id,
        )
        row = (await self.db.execute(stmt)).mappings().first()

        if not row:
            raise NotFoundException("Treatment not found")

        return dict(row)

    async def create_treatment(self, clinic_id: UUID, data: TreatmentCreate) -> TreatmentResponse:
        """
        Add a treatment to the clinic catalogue.

        Raises:
            ConflictException: If the clinic already has a treatment with that name
        """
        if await self._name_taken(clinic_id, data.name):
            raise ConflictException("Treatment with this name already exists")

        stmt = (
            insert(treatments)
            .values(clinic_id=clinic_id, **data.model_dump())
            .returning(treatments)
        )
        result = await self.db.execute(stmt)
        treatment = dict(result.mappings().one())
        await self.db.commit()

        logger.info(
            "treatment_created",
            clinic_id=str(clinic_id),
            treatment_id=str(treatment["id"]),
        )
        return TreatmentResponse.model_validate(treatment)

    async def get_treatment(self, clinic_id: UUID, treatment_id: UUID) -> TreatmentResponse:
        """
        Get treatment by ID.

        Raises:
            NotFoundException: If the treatment does not belong to the clinic
        """
        return TreatmentResponse.model_validate(await self._get_row(clinic_id, treatment_id))

    async def get_clinic_treatments(
        self,
        clinic_id: UUID,
        treatment_ids: Sequence[UUID],
    ) -> dict[UUID, dict]:
        """Resolve treatment ids that belong to the clinic, keyed by id."""
        if not treatment_ids:
            return {}

        stmt = select(treatments).where(
            treatments.c.clinic_id == clinic_id,
            treatments.c.id.in_(list(treatment_ids)),
        )
        result = await self.db.execute(stmt)
        return {row["id"]: dict(row) for row in result.mappings()}

    async def list_treatments(
        self,
        clinic_id: UUID,
        filters: TreatmentFilters,
    ) -> TreatmentListResponse:
        """List the clinic's treatments with search and pagination."""
        conditions = [treatments.c.clinic_id == clinic_id]

        if filters.search:
            pattern = f"%{filters.search}%"
            conditions.append(
                or_(treatments.c.name.ilike(pattern), treatments.c.description.ilike(pattern))
            )

        if filters.is_active is not None:
            conditions.append(treatments.c.is_active.is_(filters.is_active))

        count_stmt = select(func.count()).select_from(treatments).where(and_(*conditions))
        total = (await self.db.execute(count_stmt)).scalar() or 0

        stmt = (
            select(treatments)
            .where(and_(*conditions))
            .order_by(treatments.c.name, treatments.c.id)
            .limit(filters.limit)
            .offset((filters.page - 1) * filters.limit)
        )
        result = await self.db.execute(stmt)

        return TreatmentListResponse(
            items=[TreatmentResponse.model_validate(dict(row)) for row in result.mappings()],
            pagination=PaginationMeta.build(filters.page, filters.limit, total),
        )

    async def update_treatment(
        self,
        clinic_id: UUID,
        treatment_id: UUID,
        data: TreatmentUpdate,
    ) -> TreatmentResponse:
        """
        Update a treatment; only provided fields change.

        Raises:
            NotFoundException: If the treatment does not belong to the clinic
            ConflictException: If the new name is used by another treatment
        """
        current = await self._get_row(clinic_id, treatment_id)

        update_values = {
            field: value
            for field, value in data.model_dump(exclude_unset=True).items()
            if value is not None or field not in _REQUIRED_FIELDS
        }

        if "name" in update_values and await self._name_taken(
            clinic_id, update_values["name"], exclude_treatment_id=treatment_id
        ):
            raise ConflictException("Treatment with this name already exists")

        if not update_values:
            return TreatmentResponse.model_validate(current)

        update_values["updated_at"] = datetime.now(UTC)

        stmt = (
            update(treatments)
            .where(treatments.c.id == treatment_id, treatments.c.clinic_id == clinic_id)
            .values(**update_values)
            .returning(treatments)
        )
        result = await self.db.execute(stmt)
        treatment = dict(result.mappings().one())
        await self.db.commit()

        return TreatmentResponse.model_validate(treatment)

    async def delete_treatment(self, clinic_id: UUID, treatment_id: UUID) -> None:
        """
        Delete a treatment that no appointment references.

        Raises:
            NotFoundException: If the treatment does not belong to the clinic
            BadRequestException: If an appointment uses the treatment
        """
        await self._get_row(clinic_id, treatment_id)

        in_use = select(appointment_treatments.c.id).where(
            appointment_treatments.c.treatment_id == treatment_id
        )
        if (await self.db.execute(in_use.limit(1))).first() is not None:
            raise BadRequestException("Cannot delete treatment that is used in appointments")

        await self.db.execute(
            delete(treatments).where(
                treatments.c.id == treatment_id,
                treatments.c.clinic_id == clinic_id,
            )
        )
        await self.db.commit()
