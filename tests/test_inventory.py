"""Tests for inventory endpoints."""

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from httpx import AsyncClient

BASE = "/api/v1/inventory"


async def _add_item(client: AsyncClient, headers: dict, name: str, **overrides) -> dict:
    payload = {
        "item_name": name,
        "category": "Consumables",
        "current_stock": 10,
        "minimum_stock": 5,
        **overrides,
    }
    response = await client.post(f"{BASE}/", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_create_and_get_item(client: AsyncClient, auth_headers: dict) -> None:
    created = await _add_item(
        client,
        auth_headers,
        "Nitrile gloves",
        brand="SafeHands",
        unit_cost="12.50",
        expiry_date="2027-06-30",
    )
    assert created["current_stock"] == 10
    assert Decimal(str(created["unit_cost"])) == Decimal("12.50")

    response = await client.get(f"{BASE}/{created['id']}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["brand"] == "SafeHands"
    assert response.json()["expiry_date"] == "2027-06-30"


@pytest.mark.asyncio
async def test_duplicate_item_name_is_rejected(client: AsyncClient, auth_headers: dict) -> None:
    await _add_item(client, auth_headers, "Face masks")

    response = await client.post(
        f"{BASE}/",
        json={"item_name": "face masks", "category": "PPE", "current_stock": 1, "minimum_stock": 1},
        headers=auth_headers,
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_negative_stock_is_rejected(client: AsyncClient, auth_headers: dict) -> None:
    response = await client.post(
        f"{BASE}/",
        json={
            "item_name": "Gauze",
            "category": "Consumables",
            "current_stock": -1,
            "minimum_stock": 0,
        },
        headers=auth_headers,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_low_stock_items(client: AsyncClient, auth_headers: dict) -> None:
    """Items at or below their minimum are listed, scarcest first."""
    await _add_item(client, auth_headers, "Composite resin", current_stock=5, minimum_stock=5)
    await _add_item(client, auth_headers, "Cotton rolls", current_stock=50, minimum_stock=20)
    await _add_item(client, auth_headers, "Anesthetic", current_stock=2, minimum_stock=10)

    response = await client.get(f"{BASE}/low-stock", headers=auth_headers)
    assert response.status_code == 200
    assert [item["item_name"] for item in response.json()] == ["Anesthetic", "Composite resin"]

    response = await client.get(f"{BASE}/", params={"low_stock": "true"}, headers=auth_headers)
    assert response.json()["pagination"]["total"] == 2


@pytest.mark.asyncio
async def test_expiring_items(client: AsyncClient, auth_headers: dict) -> None:
    """Expired and soon-to-expire items are listed, soonest first."""
    today = date.today()

    def in_days(days: int) -> str:
        return (today + timedelta(days=days)).isoformat()

    await _add_item(client, auth_headers, "Old bonding agent", expiry_date=in_days(-1))
    await _add_item(client, auth_headers, "Impression gel", expiry_date=in_days(10))
    await _add_item(client, auth_headers, "Fluoride varnish", expiry_date=in_days(60))
    await _add_item(client, auth_headers, "Mirrors")

    response = await client.get(f"{BASE}/expiring", headers=auth_headers)
    assert response.status_code == 200
    assert [item["item_name"] for item in response.json()] == [
        "Old bonding agent",
        "Impression gel",
    ]

    response = await client.get(f"{BASE}/expiring", params={"days": 90}, headers=auth_headers)
    assert len(response.json()) == 3

    response = await client.get(
        f"{BASE}/", params={"expiring_soon": "true"}, headers=auth_headers
    )
    assert response.json()["pagination"]["total"] == 2


@pytest.mark.asyncio
async def test_categories_are_distinct_and_sorted(client: AsyncClient, auth_headers: dict) -> None:
    await _add_item(client, auth_headers, "Scalers", category="Instruments")
    await _add_item(client, auth_headers, "Bibs", category="Consumables")
    await _add_item(client, auth_headers, "Explorers", category="Instruments")

    response = await client.get(f"{BASE}/categories", headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == ["Consumables", "Instruments"]


@pytest.mark.asyncio
async def test_stock_adjustments(client: AsyncClient, auth_headers: dict) -> None:
    """Add, subtract (floored at zero) and set the stock level."""
    item = await _add_item(client, auth_headers, "Saliva ejectors", current_stock=10)
    url = f"{BASE}/{item['id']}/stock"

    response = await client.patch(url, json={"quantity": 5, "type": "add"}, headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["current_stock"] == 15
    assert data["stock_change"]["previous_stock"] == 10
    assert data["stock_change"]["new_stock"] == 15

    response = await client.patch(
        url,
        json={"quantity": 100, "type": "subtract", "notes": "Disposed after audit"},
        headers=auth_headers,
    )
    assert response.json()["current_stock"] == 0
    assert response.json()["stock_change"]["notes"] == "Disposed after audit"

    response = await client.patch(url, json={"quantity": 7, "type": "set"}, headers=auth_headers)
    assert response.json()["current_stock"] == 7

    response = await client.get(f"{BASE}/{item['id']}", headers=auth_headers)
    assert response.json()["current_stock"] == 7


@pytest.mark.asyncio
async def test_invalid_stock_adjustment(client: AsyncClient, auth_headers: dict) -> None:
    item = await _add_item(client, auth_headers, "Needles")
    url = f"{BASE}/{item['id']}/stock"

    response = await client.patch(url, json={"quantity": 5, "type": "double"}, headers=auth_headers)
    assert response.status_code == 422

    response = await client.patch(url, json={"quantity": -5, "type": "add"}, headers=auth_headers)
    assert response.status_code == 422

    response = await client.patch(
        f"{BASE}/{uuid4()}/stock", json={"quantity": 5, "type": "add"}, headers=auth_headers
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_and_delete_item(client: AsyncClient, auth_headers: dict) -> None:
    item = await _add_item(client, auth_headers, "Suction tips", brand="AcmeDent")

    response = await client.put(
        f"{BASE}/{item['id']}",
        json={"minimum_stock": 25, "brand": None, "item_name": None},
        headers=auth_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["minimum_stock"] == 25
    assert data["brand"] is None
    assert data["item_name"] == "Suction tips"

    response = await client.delete(f"{BASE}/{item['id']}", headers=auth_headers)
    assert response.status_code == 204

    response = await client.get(f"{BASE}/{item['id']}", headers=auth_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_inventory_is_scoped_and_admin_only(
    client: AsyncClient,
    auth_headers: dict,
    other_admin_headers: dict,
    patient_headers: dict,
) -> None:
    item = await _add_item(client, auth_headers, "X-ray film")

    response = await client.get(f"{BASE}/{item['id']}", headers=other_admin_headers)
    assert response.status_code == 404

    response = await client.get(f"{BASE}/", headers=patient_headers)
    assert response.status_code == 403
