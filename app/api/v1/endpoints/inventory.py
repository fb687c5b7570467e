"""Inventory endpoints (clinic administrators only)."""

from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Query, status

from app.dependencies import AdminUser, DatabaseSession
from app.schemas.inventory import (
    EXPIRY_WARNING_DAYS,
    InventoryFilters,
    InventoryItemCreate,
    InventoryItemResponse,
    InventoryItemUpdate,
    InventoryListResponse,
    StockAdjustment,
    StockUpdateResponse,
)
from app.services.inventory_service import InventoryService

router = APIRouter()


@router.post(
    "/",
    response_model=InventoryItemResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create inventory item",
)
async def create_inventory_item(
    data: InventoryItemCreate,
    current_user: AdminUser,
    db: DatabaseSession,
) -> InventoryItemResponse:
    """Add an item to the clinic inventory."""
    service = InventoryService(db)
    return await service.create_item(current_user["clinic_id"], data)


@router.get(
    "/",
    response_model=InventoryListResponse,
    status_code=status.HTTP_200_OK,
    summary="List inventory items",
)
async def list_inventory_items(
    current_user: AdminUser,
    db: DatabaseSession,
    search: str | None = Query(None, max_length=100),
    category: str | None = Query(None),
    brand: str | None = Query(None),
    supplier: str | None = Query(None),
    low_stock: bool = Query(False),
    expiring_soon: bool = Query(False),
    sort_by: Literal["created_at", "item_name", "category", "current_stock", "expiry_date"] = Query(
        "created_at"
    ),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
) -> InventoryListResponse:
    """
    List the clinic's inventory.

    Args:
        current_user: Authenticated admin
        db: Database session
        search: Name, category, brand or supplier fragment
        category: Exact category
        brand: Exact brand
        supplier: Exact supplier
        low_stock: Only items at or below their minimum stock
        expiring_soon: Only items expiring within 30 days
        sort_by: Sort column
        sort_order: Sort direction
        page: Page number
        limit: Items per page

    Returns:
        Paginated list of inventory items
    """
    filters = InventoryFilters(
        search=search,
        category=category,
        brand=brand,
        supplier=supplier,
        low_stock=low_stock,
        expiring_soon=expiring_soon,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )

    service = InventoryService(db)
    return await service.list_items(current_user["clinic_id"], filters)


@router.get(
    "/low-stock",
    response_model=list[InventoryItemResponse],
    status_code=status.HTTP_200_OK,
    summary="List low stock items",
)
async def list_low_stock_items(
    current_user: AdminUser,
    db: DatabaseSession,
) -> list[InventoryItemResponse]:
    """Items at or below their minimum stock level."""
    service = InventoryService(db)
    return await service.list_low_stock(current_user["clinic_id"])


@router.get(
    "/expiring",
    response_model=list[InventoryItemResponse],
    status_code=status.HTTP_200_OK,
    summary="List expiring items",
)
async def list_expiring_items(
    current_user: AdminUser,
    db: DatabaseSession,
    days: int = Query(EXPIRY_WARNING_DAYS, ge=0, le=3650),
) -> list[InventoryItemResponse]:
    """Items expiring within the given number of days, already expired included."""
    service = InventoryService(db)
    return await service.list_expiring(current_user["clinic_id"], days)


@router.get(
    "/categories",
    response_model=list[str],
    status_code=status.HTTP_200_OK,
    summary="List inventory categories",
)
async def list_inventory_categories(
    current_user: AdminUser,
    db: DatabaseSession,
) -> list[str]:
    """Distinct categories used in the clinic inventory."""
    service = InventoryService(db)
    return await service.list_categories(current_user["clinic_id"])


@router.get(
    "/{item_id}",
    response_model=InventoryItemResponse,
    status_code=status.HTTP_200_OK,
    summary="Get inventory item by ID",
)
async def get_inventory_item(
    item_id: UUID,
    current_user: AdminUser,
    db: DatabaseSession,
) -> InventoryItemResponse:
    """Get an inventory item of the clinic."""
    service = InventoryService(db)
    return await service.get_item(current_user["clinic_id"], item_id)


@router.put(
    "/{item_id}",
    response_model=InventoryItemResponse,
    status_code=status.HTTP_200_OK,
    summary="Update inventory item",
)
async def update_inventory_item(
    item_id: UUID,
    data: InventoryItemUpdate,
    current_user: AdminUser,
    db: DatabaseSession,
) -> InventoryItemResponse:
    """Update an inventory item."""
    service = InventoryService(db)
    return await service.update_item(current_user["clinic_id"], item_id, data)


@router.patch(
    "/{item_id}/stock",
    response_model=StockUpdateResponse,
    status_code=status.HTTP_200_OK,
    summary="Adjust stock level",
)
async def adjust_stock(
    item_id: UUID,
    data: StockAdjustment,
    current_user: AdminUser,
    db: DatabaseSession,
) -> StockUpdateResponse:
    """
    Add to, subtract from or set an item's stock.

    Subtracting more than is on hand leaves the item at zero.
    """
    service = InventoryService(db)
    return await service.adjust_stock(current_user["clinic_id"], item_id, data)


@router.delete(
    "/{item_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete inventory item",
)
async def delete_inventory_item(
    item_id: UUID,
    current_user: AdminUser,
    db: DatabaseSession,
) -> None:
    """Delete an inventory item."""
    service = InventoryService(db)
    await service.delete_item(current_user["clinic_id"], item_id)
