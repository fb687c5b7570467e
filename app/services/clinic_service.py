"""Clinic service for tenant lookups."""

from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundException
from app.models.clinics import clinics

logger = structlog.get_logger()


class ClinicService:
    """Service for clinic operations."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def create_clinic(self, name: str, **fields: Any) -> dict:
        """
        Create a clinic without committing.

        The caller commits together with the records that depend on it.
        """
        stmt = insert(clinics).values(name=name, **fields).returning(clinics)
        result = await self.db.execute(stmt)
        clinic = dict(result.mappings().one())

        logger.info("clinic_created", clinic_id=str(clinic["id"]), name=name)
        return clinic

    async def get_clinic(self, clinic_id: UUID) -> dict:
        """
        Get an active clinic by ID.

        Raises:
            NotFoundException: If the clinic does not exist or is inactive
        """
        stmt = select(clinics).where(clinics.c.id == clinic_id, clinics.c.is_active.is_(True))
        result = await self.db.execute(stmt)
        clinic = result.mappings().first()

        if not clinic:
            raise NotFoundException("Clinic not found")

        return dict(clinic)

    async def lock_clinic(self, clinic_id: UUID) -> None:
        """
        Take a row lock on the clinic for the rest of the transaction.

        Bookings for one clinic read its schedule, check for overlaps and
        write inside this lock, so concurrent requests cannot both pass the
        check. SQLite has no row locks and ignores ``FOR UPDATE``.

        Raises:
            NotFoundException: If the clinic does not exist
        """
        stmt = select(clinics.c.id).where(clinics.c.id == clinic_id).with_for_update()
        result = await self.db.execute(stmt)

        if result.first() is None:
            raise NotFoundException("Clinic not found")
