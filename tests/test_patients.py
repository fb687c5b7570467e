"""Tests for patient endpoints."""

from uuid import uuid4

import pytest
from httpx import AsyncClient

BASE = "/api/v1/patients"


@pytest.fixture
def sample_patient_data() -> dict:
    """Sample patient data for testing."""
    return {
        "first_name": "Ahmed",
        "last_name": "Karimi",
        "date_of_birth": "1988-04-12",
        "gender": "male",
        "phone": "+15557654321",
        "email": "ahmed@example.com",
        "allergies": "Penicillin",
    }


@pytest.mark.asyncio
async def test_create_patient_assigns_sequential_numbers(
    client: AsyncClient,
    auth_headers: dict,
    sample_patient_data: dict,
) -> None:
    response = await client.post(f"{BASE}/", json=sample_patient_data, headers=auth_headers)
    assert response.status_code == 201
    first = response.json()
    assert first["patient_number"] == "P000001"
    assert first["allergies"] == "Penicillin"

    response = await client.post(
        f"{BASE}/",
        json={"first_name": "Lea", "last_name": "Berg"},
        headers=auth_headers,
    )
    assert response.status_code == 201
    assert response.json()["patient_number"] == "P000002"


@pytest.mark.asyncio
async def test_duplicate_patient_email_is_rejected(
    client: AsyncClient,
    auth_headers: dict,
    sample_patient_data: dict,
) -> None:
    await client.post(f"{BASE}/", json=sample_patient_data, headers=auth_headers)

    response = await client.post(
        f"{BASE}/",
        json={**sample_patient_data, "email": "AHMED@example.com"},
        headers=auth_headers,
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_list_and_search_patients(
    client: AsyncClient,
    auth_headers: dict,
    sample_patient_data: dict,
    patient: dict,
) -> None:
    await client.post(f"{BASE}/", json=sample_patient_data, headers=auth_headers)

    response = await client.get(f"{BASE}/", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["pagination"]["total"] == 2

    response = await client.get(f"{BASE}/", params={"search": "karimi"}, headers=auth_headers)
    items = response.json()["items"]
    assert [item["last_name"] for item in items] == ["Karimi"]

    response = await client.get(
        f"{BASE}/",
        params={"sort_by": "patient_number", "sort_order": "asc"},
        headers=auth_headers,
    )
    numbers = [item["patient_number"] for item in response.json()["items"]]
    assert numbers == ["P000001", "P000002"]


@pytest.mark.asyncio
async def test_patients_are_scoped_to_clinic(
    client: AsyncClient,
    other_admin_headers: dict,
    patient: dict,
) -> None:
    response = await client.get(f"{BASE}/{patient['id']}", headers=other_admin_headers)
    assert response.status_code == 404

    response = await client.get(f"{BASE}/", headers=other_admin_headers)
    assert response.json()["pagination"]["total"] == 0


@pytest.mark.asyncio
async def test_update_patient(
    client: AsyncClient,
    auth_headers: dict,
    patient: dict,
) -> None:
    response = await client.put(
        f"{BASE}/{patient['id']}",
        json={"phone": "+15559990000", "medical_history": "Asthma"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["phone"] == "+15559990000"
    assert data["medical_history"] == "Asthma"
    assert data["patient_number"] == patient["patient_number"]


@pytest.mark.asyncio
async def test_update_patient_with_null_clears_optional_fields(
    client: AsyncClient,
    auth_headers: dict,
    patient: dict,
) -> None:
    """Explicit nulls clear contact details but never the name."""
    response = await client.put(
        f"{BASE}/{patient['id']}",
        json={"phone": None, "email": None, "first_name": None},
        headers=auth_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["phone"] is None
    assert data["email"] is None
    assert data["first_name"] == "Maria"


@pytest.mark.asyncio
async def test_delete_patient(
    client: AsyncClient,
    auth_headers: dict,
    sample_patient_data: dict,
) -> None:
    response = await client.post(f"{BASE}/", json=sample_patient_data, headers=auth_headers)
    patient_id = response.json()["id"]

    response = await client.delete(f"{BASE}/{patient_id}", headers=auth_headers)
    assert response.status_code == 204

    response = await client.get(f"{BASE}/{patient_id}", headers=auth_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_patient_with_appointments_cannot_be_deleted(
    client: AsyncClient,
    auth_headers: dict,
    sample_appointment_data: dict,
    patient: dict,
) -> None:
    await client.post("/api/v1/appointments/", json=sample_appointment_data, headers=auth_headers)

    response = await client.delete(f"{BASE}/{patient['id']}", headers=auth_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_list_patient_appointments(
    client: AsyncClient,
    auth_headers: dict,
    sample_appointment_data: dict,
    patient: dict,
) -> None:
    await client.post("/api/v1/appointments/", json=sample_appointment_data, headers=auth_headers)

    response = await client.get(f"{BASE}/{patient['id']}/appointments", headers=auth_headers)
    assert response.status_code == 200
    assert len(response.json()) == 1

    response = await client.get(f"{BASE}/{uuid4()}/appointments", headers=auth_headers)
    assert response.status_code == 404
