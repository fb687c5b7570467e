"""Inventory schemas."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.common import PaginationMeta, SortOrder

# Items expiring within this many days count as "expiring soon"
EXPIRY_WARNING_DAYS = 30


class StockOperation(str, Enum):
    """How a stock adjustment applies its quantity."""

    ADD = "add"
    SUBTRACT = "subtract"
    SET = "set"


class InventoryItemBase(BaseModel):
    """Base inventory item schema."""

    item_name: str = Field(..., min_length=2, max_length=100)
    category: str = Field(..., min_length=2, max_length=50)
    brand: str | None = Field(None, max_length=50)
    supplier: str | None = Field(None, max_length=100)
    current_stock: int = Field(..., ge=0)
    minimum_stock: int = Field(..., ge=0)
    unit_cost: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=2)
    expiry_date: date | None = None
    notes: str | None = Field(None, max_length=500)


class InventoryItemCreate(InventoryItemBase):
    """Schema for adding an item to the clinic inventory."""


class InventoryItemUpdate(BaseModel):
    """Schema for updating an inventory item; omitted fields are left untouched."""

    item_name: str | None = Field(None, min_length=2, max_length=100)
    category: str | None = Field(None, min_length=2, max_length=50)
    brand: str | None = Field(None, max_length=50)
    supplier: str | None = Field(None, max_length=100)
    current_stock: int | None = Field(None, ge=0)
    minimum_stock: int | None = Field(None, ge=0)
    unit_cost: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=2)
    expiry_date: date | None = None
    notes: str | None = Field(None, max_length=500)


class InventoryItemResponse(InventoryItemBase):
    """Schema for inventory item response."""

    id: UUID
    clinic_id: UUID
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class StockAdjustment(BaseModel):
    """Stock movement applied to a single item."""

    quantity: int = Field(..., ge=0)
    type: StockOperation
    notes: str | None = Field(None, max_length=500)


class StockChange(BaseModel):
    """Record of one stock movement."""

    type: StockOperation
    quantity: int
    previous_stock: int
    new_stock: int
    notes: str | None = None


class StockUpdateResponse(InventoryItemResponse):
    """Inventory item after a stock movement."""

    stock_change: StockChange


class InventoryFilters(BaseModel):
    """Schema for inventory filtering."""

    search: str | None = None
    category: str | None = None
    brand: str | None = None
    supplier: str | None = None
    low_stock: bool = False
    expiring_soon: bool = False
    sort_by: Literal["created_at", "item_name", "category", "current_stock", "expiry_date"] = (
        "created_at"
    )
    sort_order: SortOrder = "desc"
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)


class InventoryListResponse(BaseModel):
    """Schema for paginated inventory list response."""

    items: list[InventoryItemResponse]
    pagination: PaginationMeta
