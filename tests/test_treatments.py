"""Tests for treatment catalogue endpoints."""

from decimal import Decimal

import pytest
from httpx import AsyncClient

BASE = "/api/v1/treatments"


@pytest.mark.asyncio
async def test_create_and_get_treatment(client: AsyncClient, auth_headers: dict) -> None:
    response = await client.post(
        f"{BASE}/",
        json={"name": "Root canal", "price": "450.00", "duration_minutes": 90},
        headers=auth_headers,
    )
    assert response.status_code == 201
    created = response.json()
    assert created["is_active"] is True
    assert Decimal(str(created["price"])) == Decimal("450.00")

    response = await client.get(f"{BASE}/{created['id']}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["name"] == "Root canal"


@pytest.mark.asyncio
async def test_duplicate_treatment_name_is_rejected(
    client: AsyncClient,
    auth_headers: dict,
) -> None:
    await client.post(f"{BASE}/", json={"name": "Filling"}, headers=auth_headers)

    response = await client.post(f"{BASE}/", json={"name": "filling"}, headers=auth_headers)
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_patients_can_browse_but_not_edit(
    client: AsyncClient,
    auth_headers: dict,
    patient_headers: dict,
) -> None:
    await client.post(f"{BASE}/", json={"name": "Whitening"}, headers=auth_headers)

    response = await client.get(f"{BASE}/", headers=patient_headers)
    assert response.status_code == 200
    assert response.json()["pagination"]["total"] == 1

    response = await client.post(f"{BASE}/", json={"name": "Crown"}, headers=patient_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_update_and_filter_treatments(client: AsyncClient, auth_headers: dict) -> None:
    response = await client.post(f"{BASE}/", json={"name": "Sealant"}, headers=auth_headers)
    treatment_id = response.json()["id"]
    await client.post(f"{BASE}/", json={"name": "Extraction"}, headers=auth_headers)

    response = await client.put(
        f"{BASE}/{treatment_id}", json={"is_active": False}, headers=auth_headers
    )
    assert response.status_code == 200
    assert response.json()["is_active"] is False

    response = await client.get(f"{BASE}/", params={"is_active": "true"}, headers=auth_headers)
    assert [item["name"] for item in response.json()["items"]] == ["Extraction"]


@pytest.mark.asyncio
async def test_update_treatment_with_null_clears_price(
    client: AsyncClient,
    auth_headers: dict,
) -> None:
    response = await client.post(
        f"{BASE}/",
        json={"name": "Fluoride", "price": "25.00", "duration_minutes": 15},
        headers=auth_headers,
    )
    treatment_id = response.json()["id"]

    response = await client.put(
        f"{BASE}/{treatment_id}",
        json={"price": None, "duration_minutes": None, "name": None},
        headers=auth_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["price"] is None
    assert data["duration_minutes"] is None
    assert data["name"] == "Fluoride"


@pytest.mark.asyncio
async def test_delete_treatment(
    client: AsyncClient,
    auth_headers: dict,
    sample_appointment_data: dict,
) -> None:
    response = await client.post(f"{BASE}/", json={"name": "Polish"}, headers=auth_headers)
    unused_id = response.json()["id"]
    response = await client.post(f"{BASE}/", json={"name": "Scaling"}, headers=auth_headers)
    used_id = response.json()["id"]

    await client.post(
        "/api/v1/appointments/",
        json={**sample_appointment_data, "treatment_ids": [used_id]},
        headers=auth_headers,
    )

    response = await client.delete(f"{BASE}/{used_id}", headers=auth_headers)
    assert response.status_code == 400

    response = await client.delete(f"{BASE}/{unused_id}", headers=auth_headers)
    assert response.status_code == 204
