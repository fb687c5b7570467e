"""Tests for patient number allocation."""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.patient_numbers import FIRST_PATIENT_NUMBER, next_patient_number
from app.models.patients import patients
from app.services.patient_service import PatientService


@pytest.mark.parametrize(
    ("last", "expected"),
    [
        (None, "P000001"),
        ("", "P000001"),
        ("P000001", "P000002"),
        ("P000041", "P000042"),
        ("P999999", "P1000000"),
        ("LEGACY-17", "P000018"),
        ("PXXXX", "P000001"),
    ],
)
def test_next_patient_number(last: str | None, expected: str) -> None:
    """Digits are extracted, incremented and zero-padded to six."""
    assert next_patient_number(last) == expected


def test_first_patient_number() -> None:
    assert FIRST_PATIENT_NUMBER == "P000001"


@pytest.mark.asyncio
async def test_generate_patient_number_for_empty_clinic(
    db_session: AsyncSession,
    clinic: dict,
) -> None:
    """A clinic's first patient gets P000001."""
    assert await PatientService(db_session).generate_patient_number(clinic["id"]) == "P000001"


@pytest.mark.asyncio
async def test_generate_patient_number_follows_latest_patient(
    db_session: AsyncSession,
    clinic: dict,
) -> None:
    """The most recently created patient decides the next number."""
    now = datetime.now(UTC)
    await db_session.execute(
        insert(patients),
        [
            {
                "clinic_id": clinic["id"],
                "patient_number": "P000090",
                "first_name": "Old",
                "last_name": "Patient",
                "created_at": now - timedelta(days=1),
                "updated_at": now - timedelta(days=1),
            },
            {
                "clinic_id": clinic["id"],
                "patient_number": "P000007",
                "first_name": "New",
                "last_name": "Patient",
                "created_at": now,
                "updated_at": now,
            },
        ],
    )
    await db_session.commit()

    assert await PatientService(db_session).generate_patient_number(clinic["id"]) == "P000008"


@pytest.mark.asyncio
async def test_patient_numbers_are_scoped_per_clinic(
    db_session: AsyncSession,
    clinic: dict,
    other_clinic: dict,
    patient: dict,
) -> None:
    """Another clinic's sequence starts from scratch."""
    assert patient["patient_number"] == "P000001"

    service = PatientService(db_session)
    assert await service.generate_patient_number(clinic["id"]) == "P000002"
    assert await service.generate_patient_number(other_clinic["id"]) == "P000001"
