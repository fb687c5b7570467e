"""Tests for appointment endpoints."""

from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy import Delete
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.appointments import appointment_treatments

BASE = "/api/v1/appointments"


async def _book(client: AsyncClient, headers: dict, data: dict, **overrides) -> dict:
    response = await client.post(f"{BASE}/", json={**data, **overrides}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_create_appointment(
    client: AsyncClient,
    auth_headers: dict,
    sample_appointment_data: dict,
) -> None:
    """Test creating an appointment."""
    response = await client.post(f"{BASE}/", json=sample_appointment_data, headers=auth_headers)
    assert response.status_code == 201
    data = response.json()
    assert data["patient_id"] == sample_appointment_data["patient_id"]
    assert data["appointment_time"].startswith("09:00")
    assert data["duration_minutes"] == 60
    assert data["status"] == "scheduled"
    assert "id" in data


@pytest.mark.asyncio
async def test_overlapping_appointment_is_rejected(
    client: AsyncClient,
    auth_headers: dict,
    sample_appointment_data: dict,
) -> None:
    """A second booking inside an occupied slot gets 409 with the blocking id."""
    first = await _book(client, auth_headers, sample_appointment_data)

    response = await client.post(
        f"{BASE}/",
        json={**sample_appointment_data, "appointment_time": "09:30"},
        headers=auth_headers,
    )
    assert response.status_code == 409
    data = response.json()
    assert data["error"] == "AppointmentConflictException"
    assert data["message"] == "Appointment time conflicts with existing appointment"
    assert data["conflicting_appointment_id"] == first["id"]


@pytest.mark.asyncio
async def test_back_to_back_appointments_are_allowed(
    client: AsyncClient,
    auth_headers: dict,
    sample_appointment_data: dict,
) -> None:
    """Touching intervals do not conflict."""
    await _book(client, auth_headers, sample_appointment_data)
    await _book(client, auth_headers, sample_appointment_data, appointment_time="10:00")
    await _book(
        client,
        auth_headers,
        sample_appointment_data,
        appointment_time="08:30",
        duration_minutes=30,
    )


@pytest.mark.asyncio
async def test_default_duration_is_sixty_minutes(
    client: AsyncClient,
    auth_headers: dict,
    sample_appointment_data: dict,
) -> None:
    """Omitting the duration books a one-hour slot."""
    payload = {k: v for k, v in sample_appointment_data.items() if k != "duration_minutes"}
    created = await _book(client, auth_headers, payload)
    assert created["duration_minutes"] == 60

    response = await client.post(
        f"{BASE}/",
        json={**payload, "appointment_time": "09:45", "duration_minutes": 15},
        headers=auth_headers,
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_cancelled_appointment_frees_its_slot(
    client: AsyncClient,
    auth_headers: dict,
    sample_appointment_data: dict,
) -> None:
    """After cancellation the same slot can be booked again."""
    first = await _book(client, auth_headers, sample_appointment_data)

    response = await client.patch(
        f"{BASE}/{first['id']}/status",
        json={"status": "cancelled"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"

    await _book(client, auth_headers, sample_appointment_data)


@pytest.mark.asyncio
async def test_other_dates_do_not_conflict(
    client: AsyncClient,
    auth_headers: dict,
    sample_appointment_data: dict,
) -> None:
    """Only the same calendar date is compared."""
    await _book(client, auth_headers, sample_appointment_data)
    await _book(client, auth_headers, sample_appointment_data, appointment_date="2031-01-15")


@pytest.mark.asyncio
async def test_clinics_do_not_share_schedules(
    client: AsyncClient,
    auth_headers: dict,
    other_admin_headers: dict,
    sample_appointment_data: dict,
) -> None:
    """Two clinics can book the same time."""
    await _book(client, auth_headers, sample_appointment_data)

    response = await client.post(
        "/api/v1/patients/",
        json={"first_name": "Tom", "last_name": "Harbor"},
        headers=other_admin_headers,
    )
    assert response.status_code == 201
    other_patient_id = response.json()["id"]

    await _book(client, other_admin_headers, sample_appointment_data, patient_id=other_patient_id)


@pytest.mark.asyncio
async def test_cannot_book_another_clinics_patient(
    client: AsyncClient,
    other_admin_headers: dict,
    sample_appointment_data: dict,
) -> None:
    """The patient must belong to the admin's clinic."""
    response = await client.post(
        f"{BASE}/", json=sample_appointment_data, headers=other_admin_headers
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_invalid_time_and_duration_are_rejected(
    client: AsyncClient,
    auth_headers: dict,
    sample_appointment_data: dict,
) -> None:
    """Malformed times and out-of-range durations fail validation."""
    response = await client.post(
        f"{BASE}/",
        json={**sample_appointment_data, "appointment_time": "25:00"},
        headers=auth_headers,
    )
    assert response.status_code == 422

    response = await client.post(
        f"{BASE}/",
        json={**sample_appointment_data, "duration_minutes": 10},
        headers=auth_headers,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_treatments_are_attached(
    client: AsyncClient,
    auth_headers: dict,
    sample_appointment_data: dict,
) -> None:
    """Known treatments are attached with their catalogue price."""
    response = await client.post(
        "/api/v1/treatments/",
        json={"name": "Scaling", "price": "80.00", "duration_minutes": 30},
        headers=auth_headers,
    )
    assert response.status_code == 201
    treatment_id = response.json()["id"]

    created = await _book(
        client, auth_headers, sample_appointment_data, treatment_ids=[treatment_id]
    )

    response = await client.get(f"{BASE}/{created['id']}", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert len(data["treatments"]) == 1
    assert data["treatments"][0]["name"] == "Scaling"
    assert data["treatments"][0]["quantity"] == 1
    assert data["patient"]["patient_number"] == "P000001"


@pytest.mark.asyncio
async def test_unknown_treatment_does_not_fail_booking(
    client: AsyncClient,
    auth_headers: dict,
    sample_appointment_data: dict,
) -> None:
    """Unknown treatment ids are skipped; the appointment still exists."""
    created = await _book(
        client, auth_headers, sample_appointment_data, treatment_ids=[str(uuid4())]
    )

    response = await client.get(f"{BASE}/{created['id']}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["treatments"] == []


@pytest.mark.asyncio
async def test_list_appointments(
    client: AsyncClient,
    auth_headers: dict,
    sample_appointment_data: dict,
) -> None:
    """Test listing and filtering appointments."""
    await _book(client, auth_headers, sample_appointment_data)
    second = await _book(client, auth_headers, sample_appointment_data, appointment_time="11:00")
    await client.patch(
        f"{BASE}/{second['id']}/status", json={"status": "confirmed"}, headers=auth_headers
    )

    response = await client.get(f"{BASE}/", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["pagination"]["total"] == 2
    assert len(data["items"]) == 2
    assert data["items"][0]["patient"]["last_name"] == "Lopez"

    response = await client.get(f"{BASE}/", params={"status": "confirmed"}, headers=auth_headers)
    assert response.status_code == 200
    items = response.json()["items"]
    assert [item["id"] for item in items] == [second["id"]]

    response = await client.get(f"{BASE}/", params={"search": "lop"}, headers=auth_headers)
    assert response.json()["pagination"]["total"] == 2

    response = await client.get(f"{BASE}/", params={"limit": 1, "page": 2}, headers=auth_headers)
    pagination = response.json()["pagination"]
    assert pagination["total_pages"] == 2
    assert pagination["has_prev"] is True
    assert pagination["has_next"] is False


@pytest.mark.asyncio
async def test_reschedule_ignores_own_slot(
    client: AsyncClient,
    auth_headers: dict,
    sample_appointment_data: dict,
) -> None:
    """Shifting an appointment within its own slot is allowed."""
    created = await _book(client, auth_headers, sample_appointment_data)

    response = await client.put(
        f"{BASE}/{created['id']}",
        json={"appointment_time": "09:30"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json()["appointment_time"].startswith("09:30")


@pytest.mark.asyncio
async def test_reschedule_into_occupied_slot_is_rejected(
    client: AsyncClient,
    auth_headers: dict,
    sample_appointment_data: dict,
) -> None:
    """Moving onto another booking is a conflict."""
    first = await _book(client, auth_headers, sample_appointment_data)
    second = await _book(client, auth_headers, sample_appointment_data, appointment_time="12:00")

    response = await client.put(
        f"{BASE}/{second['id']}",
        json={"appointment_time": "09:15"},
        headers=auth_headers,
    )
    assert response.status_code == 409
    assert response.json()["conflicting_appointment_id"] == first["id"]

    response = await client.put(
        f"{BASE}/{first['id']}",
        json={"duration_minutes": 240},
        headers=auth_headers,
    )
    assert response.status_code == 409
    assert response.json()["conflicting_appointment_id"] == second["id"]


@pytest.mark.asyncio
async def test_update_clinical_fields_without_reschedule(
    client: AsyncClient,
    auth_headers: dict,
    sample_appointment_data: dict,
) -> None:
    """Non-slot fields change without touching the schedule."""
    created = await _book(client, auth_headers, sample_appointment_data)

    response = await client.put(
        f"{BASE}/{created['id']}",
        json={"diagnosis": "Mild gingivitis", "treatment_plan": "Cleaning every 6 months"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["diagnosis"] == "Mild gingivitis"
    assert data["appointment_time"].startswith("09:00")


@pytest.mark.asyncio
async def test_update_with_null_clears_optional_fields(
    client: AsyncClient,
    auth_headers: dict,
    sample_appointment_data: dict,
) -> None:
    """Explicit nulls clear optional fields; required ones are left alone."""
    created = await _book(
        client, auth_headers, sample_appointment_data, dentist_id=str(uuid4())
    )
    assert created["dentist_id"] is not None
    assert created["notes"] == "Routine cleaning"

    response = await client.put(
        f"{BASE}/{created['id']}",
        json={"dentist_id": None, "notes": None, "appointment_date": None, "status": None},
        headers=auth_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["dentist_id"] is None
    assert data["notes"] is None
    assert data["appointment_date"] == sample_appointment_data["appointment_date"]
    assert data["status"] == "scheduled"


@pytest.mark.asyncio
async def test_failed_treatment_replacement_keeps_update(
    client: AsyncClient,
    db_session: AsyncSession,
    auth_headers: dict,
    sample_appointment_data: dict,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """A database error while swapping treatments does not fail the update."""
    response = await client.post(
        "/api/v1/treatments/", json={"name": "Scaling"}, headers=auth_headers
    )
    treatment_id = response.json()["id"]
    created = await _book(
        client, auth_headers, sample_appointment_data, treatment_ids=[treatment_id]
    )

    original_execute = db_session.execute

    async def failing_execute(statement, *args, **kwargs):
        if isinstance(statement, Delete) and statement.table is appointment_treatments:
            raise OperationalError(str(statement), {}, Exception("database is locked"))
        return await original_execute(statement, *args, **kwargs)

    monkeypatch.setattr(db_session, "execute", failing_execute)

    response = await client.put(
        f"{BASE}/{created['id']}",
        json={"diagnosis": "Tartar build-up", "treatment_ids": []},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json()["diagnosis"] == "Tartar build-up"

    response = await client.get(f"{BASE}/{created['id']}", headers=auth_headers)
    assert response.json()["diagnosis"] == "Tartar build-up"
    assert [item["name"] for item in response.json()["treatments"]] == ["Scaling"]


@pytest.mark.asyncio
async def test_invalid_status_is_rejected(
    client: AsyncClient,
    auth_headers: dict,
    sample_appointment_data: dict,
) -> None:
    created = await _book(client, auth_headers, sample_appointment_data)

    response = await client.patch(
        f"{BASE}/{created['id']}/status", json={"status": "archived"}, headers=auth_headers
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_any_status_transition_is_allowed(
    client: AsyncClient,
    auth_headers: dict,
    sample_appointment_data: dict,
) -> None:
    """Completed appointments can still be moved to another status."""
    created = await _book(client, auth_headers, sample_appointment_data)

    for status in ("completed", "scheduled", "no_show"):
        response = await client.patch(
            f"{BASE}/{created['id']}/status", json={"status": status}, headers=auth_headers
        )
        assert response.status_code == 200
        assert response.json()["status"] == status


@pytest.mark.asyncio
async def test_completed_appointment_cannot_be_deleted(
    client: AsyncClient,
    auth_headers: dict,
    sample_appointment_data: dict,
) -> None:
    created = await _book(client, auth_headers, sample_appointment_data)
    await client.patch(
        f"{BASE}/{created['id']}/status", json={"status": "completed"}, headers=auth_headers
    )

    response = await client.delete(f"{BASE}/{created['id']}", headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Cannot delete completed appointments"


@pytest.mark.asyncio
async def test_delete_appointment(
    client: AsyncClient,
    auth_headers: dict,
    sample_appointment_data: dict,
) -> None:
    """Test deleting an appointment."""
    created = await _book(client, auth_headers, sample_appointment_data)

    response = await client.delete(f"{BASE}/{created['id']}", headers=auth_headers)
    assert response.status_code == 204

    response = await client.get(f"{BASE}/{created['id']}", headers=auth_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_get_unknown_appointment(client: AsyncClient, auth_headers: dict) -> None:
    response = await client.get(f"{BASE}/{uuid4()}", headers=auth_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_unauthorized_access(client: AsyncClient) -> None:
    """Test accessing protected endpoint without auth."""
    response = await client.get(f"{BASE}/")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_patient_cannot_use_admin_routes(
    client: AsyncClient,
    patient_headers: dict,
    sample_appointment_data: dict,
) -> None:
    response = await client.get(f"{BASE}/", headers=patient_headers)
    assert response.status_code == 403

    response = await client.post(f"{BASE}/", json=sample_appointment_data, headers=patient_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_patient_sees_only_own_appointments(
    client: AsyncClient,
    auth_headers: dict,
    patient_headers: dict,
    sample_appointment_data: dict,
) -> None:
    """Patients list and read their own bookings only."""
    own = await _book(client, auth_headers, sample_appointment_data)

    response = await client.post(
        "/api/v1/patients/",
        json={"first_name": "Sam", "last_name": "Other"},
        headers=auth_headers,
    )
    other = await _book(
        client,
        auth_headers,
        sample_appointment_data,
        patient_id=response.json()["id"],
        appointment_time="14:00",
    )

    response = await client.get(f"{BASE}/me", headers=patient_headers)
    assert response.status_code == 200
    assert [item["id"] for item in response.json()] == [own["id"]]

    response = await client.get(f"{BASE}/{own['id']}", headers=patient_headers)
    assert response.status_code == 200

    response = await client.get(f"{BASE}/{other['id']}", headers=patient_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_public_booking_registers_new_patient(
    client: AsyncClient,
    clinic: dict,
    appointment_day: str,
) -> None:
    """A website visitor becomes a patient with a generated number."""
    payload = {
        "first_name": "Lena",
        "last_name": "Fischer",
        "email": "lena@example.com",
        "phone": "+4915112345678",
        "appointment_date": appointment_day,
        "appointment_time": "15:00",
        "service": "Whitening",
    }
    response = await client.post(f"{BASE}/book", json=payload)
    assert response.status_code == 201
    booking = response.json()
    assert booking["status"] == "scheduled"

    response = await client.post(
        f"{BASE}/book", json={**payload, "email": "LENA@example.com", "appointment_time": "16:00"}
    )
    assert response.status_code == 201
    assert response.json()["patient_id"] == booking["patient_id"]


@pytest.mark.asyncio
async def test_public_booking_respects_schedule(
    client: AsyncClient,
    auth_headers: dict,
    sample_appointment_data: dict,
) -> None:
    """Website bookings go through the same conflict check."""
    existing = await _book(client, auth_headers, sample_appointment_data)

    response = await client.post(
        f"{BASE}/book",
        json={
            "first_name": "Lena",
            "last_name": "Fischer",
            "email": "lena@example.com",
            "appointment_date": sample_appointment_data["appointment_date"],
            "appointment_time": "09:30",
            "service": "Checkup",
        },
    )
    assert response.status_code == 409
    assert response.json()["conflicting_appointment_id"] == existing["id"]


@pytest.mark.asyncio
async def test_public_booking_stores_service_in_notes(
    client: AsyncClient,
    auth_headers: dict,
    appointment_day: str,
) -> None:
    response = await client.post(
        f"{BASE}/book",
        json={
            "first_name": "Lena",
            "last_name": "Fischer",
            "email": "lena@example.com",
            "appointment_date": appointment_day,
            "appointment_time": "15:00",
            "service": "Checkup",
        },
    )
    appointment_id = response.json()["appointment_id"]

    response = await client.get(f"{BASE}/{appointment_id}", headers=auth_headers)
    data = response.json()
    assert data["notes"] == "Service: Checkup\nNotes: N/A"
    assert data["duration_minutes"] == 60
