"""Inventory service for clinic supplies."""

from datetime import UTC, date, datetime, timedelta
from uuid import UUID

import structlog
from sqlalchemy import and_, delete, distinct, func, insert, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictException, NotFoundException
from app.models.inventory import inventory
from app.schemas.common import PaginationMeta
from app.schemas.inventory import (
    EXPIRY_WARNING_DAYS,
    InventoryFilters,
    InventoryItemCreate,
    InventoryItemResponse,
    InventoryItemUpdate,
    InventoryListResponse,
    StockAdjustment,
    StockChange,
    StockOperation,
    StockUpdateResponse,
)

logger = structlog.get_logger()

# Columns a partial update never sets to NULL
_REQUIRED_FIELDS = frozenset({"item_name", "category", "current_stock", "minimum_stock"})


def apply_stock_operation(current: int, operation: StockOperation, quantity: int) -> int:
    """
    Compute the stock level after a movement.

    Subtracting more than is on hand leaves the item at zero.
    """
    if operation is StockOperation.ADD:
        return current + quantity
    if operation is StockOperation.SUBTRACT:
        return max(0, current - quantity)
    return quantity


class InventoryService:
    """Service for managing a clinic's supply inventory."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def _name_taken(
        self,
        clinic_id: UUID,
        item_name: str,
        exclude_item_id: UUID | None = None,
    ) -> bool:
        conditions = [
            inventory.c.clinic_id == clinic_id,
            func.lower(inventory.c.item_name) == item_name.lower(),
        ]
        if exclude_item_id is not None:
            conditions.append(inventory.c.id != exclude_item_id)

        result = await self.db.execute(select(inventory.c.id).where(and_(*conditions)).limit(1))
        return result.first() is not None

    async def _get_row(self, clinic_id: UUID, item_id: UUID) -> dict:
        stmt = select(inventory).where(
            inventory.c.id == item_id,
            inventory.c.clinic_id == clinic_id,
        )
        row = (await self.db.execute(stmt)).mappings().first()

        if not row:
            raise NotFoundException("Inventory item not found")

        return dict(row)

    async def create_item(
        self,
        clinic_id: UUID,
        data: InventoryItemCreate,
    ) -> InventoryItemResponse:
        """
        Add an item to the clinic inventory.

        Raises:
            ConflictException: If the clinic already stocks an item with that name
        """
        if await self._name_taken(clinic_id, data.item_name):
            raise ConflictException("Inventory item with this name already exists")

        stmt = (
            insert(inventory)
            .values(clinic_id=clinic_id, **data.model_dump())
            .returning(inventory)
        )
        result = await self.db.execute(stmt)
        item = dict(result.mappings().one())
        await self.db.commit()

        logger.info(
            "inventory_item_created",
            clinic_id=str(clinic_id),
            item_id=str(item["id"]),
            current_stock=item["current_stock"],
        )
        return InventoryItemResponse.model_validate(item)

    async def get_item(self, clinic_id: UUID, item_id: UUID) -> InventoryItemResponse:
        """
        Get inventory item by ID.

        Raises:
            NotFoundException: If the item does not belong to the clinic
        """
        return InventoryItemResponse.model_validate(await self._get_row(clinic_id, item_id))

    async def list_items(
        self,
        clinic_id: UUID,
        filters: InventoryFilters,
    ) -> InventoryListResponse:
        """
        List inventory with search, filtering and pagination.

        The low-stock and expiring-soon filters are applied in the query, so
        the pagination totals reflect them.
        """
        conditions = [inventory.c.clinic_id == clinic_id]

        if filters.search:
            pattern = f"%{filters.search}%"
            conditions.append(
                or_(
                    inventory.c.item_name.ilike(pattern),
                    inventory.c.category.ilike(pattern),
                    inventory.c.brand.ilike(pattern),
                    inventory.c.supplier.ilike(pattern),
                )
            )

        if filters.category:
            conditions.append(inventory.c.category == filters.category)

        if filters.brand:
            conditions.append(inventory.c.brand == filters.brand)

        if filters.supplier:
            conditions.append(inventory.c.supplier == filters.supplier)

        if filters.low_stock:
            conditions.append(inventory.c.current_stock <= inventory.c.minimum_stock)

        if filters.expiring_soon:
            cutoff = date.today() + timedelta(days=EXPIRY_WARNING_DAYS)
            conditions.append(inventory.c.expiry_date.is_not(None))
            conditions.append(inventory.c.expiry_date <= cutoff)

        count_stmt = select(func.count()).select_from(inventory).where(and_(*conditions))
        total = (await self.db.execute(count_stmt)).scalar() or 0

        sort_column = inventory.c[filters.sort_by]
        order = sort_column.asc() if filters.sort_order == "asc" else sort_column.desc()

        stmt = (
            select(inventory)
            .where(and_(*conditions))
            .order_by(order, inventory.c.id)
            .limit(filters.limit)
            .offset((filters.page - 1) * filters.limit)
        )
        result = await self.db.execute(stmt)

        return InventoryListResponse(
            items=[InventoryItemResponse.model_validate(dict(row)) for row in result.mappings()],
            pagination=PaginationMeta.build(filters.page, filters.limit, total),
        )

    async def update_item(
        self,
        clinic_id: UUID,
        item_id: UUID,
        data: InventoryItemUpdate,
    ) -> InventoryItemResponse:
        """
        Update an inventory item; only provided fields change.

        Raises:
            NotFoundException: If the item does not belong to the clinic
            ConflictException: If the new name is used by another item
        """
        current = await self._get_row(clinic_id, item_id)

        update_values = {
            field: value
            for field, value in data.model_dump(exclude_unset=True).items()
            if value is not None or field not in _REQUIRED_FIELDS
        }

        if "item_name" in update_values and await self._name_taken(
            clinic_id, update_values["item_name"], exclude_item_id=item_id
        ):
            raise ConflictException("Inventory item with this name already exists")

        if not update_values:
            return InventoryItemResponse.model_validate(current)

        update_values["updated_at"] = datetime.now(UTC)

        stmt = (
            update(inventory)
            .where(inventory.c.id == item_id, inventory.c.clinic_id == clinic_id)
            .values(**update_values)
            .returning(inventory)
        )
        result = await self.db.execute(stmt)
        item = dict(result.mappings().one())
        await self.db.commit()

        return InventoryItemResponse.model_validate(item)

    async def adjust_stock(
        self,
        clinic_id: UUID,
        item_id: UUID,
        data: StockAdjustment,
    ) -> StockUpdateResponse:
        """
        Add to, subtract from or overwrite an item's stock level.

        Args:
            clinic_id: Clinic scope
            item_id: Inventory item
            data: Movement to apply

        Returns:
            Updated item together with the applied change

        Raises:
            NotFoundException: If the item does not belong to the clinic
        """
        current = await self._get_row(clinic_id, item_id)
        previous_stock = current["current_stock"]
        new_stock = apply_stock_operation(previous_stock, data.type, data.quantity)

        stmt = (
            update(inventory)
            .where(inventory.c.id == item_id, inventory.c.clinic_id == clinic_id)
            .values(current_stock=new_stock, updated_at=datetime.now(UTC))
            .returning(inventory)
        )
        result = await self.db.execute(stmt)
        item = dict(result.mappings().one())
        await self.db.commit()

        logger.info(
            "inventory_stock_adjusted",
            clinic_id=str(clinic_id),
            item_id=str(item_id),
            operation=data.type.value,
            quantity=data.quantity,
            previous_stock=previous_stock,
            new_stock=new_stock,
        )

        return StockUpdateResponse(
            **item,
            stock_change=StockChange(
                type=data.type,
                quantity=data.quantity,
                previous_stock=previous_stock,
                new_stock=new_stock,
                notes=data.notes,
            ),
        )

    async def delete_item(self, clinic_id: UUID, item_id: UUID) -> None:
        """
        Delete an inventory item.

        Raises:
            NotFoundException: If the item does not belong to the clinic
        """
        await self._get_row(clinic_id, item_id)

        await self.db.execute(
            delete(inventory).where(inventory.c.id == item_id, inventory.c.clinic_id == clinic_id)
        )
        await self.db.commit()

        logger.info("inventory_item_deleted", clinic_id=str(clinic_id), item_id=str(item_id))

    async def list_low_stock(self, clinic_id: UUID) -> list[InventoryItemResponse]:
        """Items at or below their minimum stock, scarcest first."""
        stmt = (
            select(inventory)
            .where(
                inventory.c.clinic_id == clinic_id,
                inventory.c.current_stock <= inventory.c.minimum_stock,
            )
            .order_by(inventory.c.current_stock, inventory.c.item_name)
        )
        result = await self.db.execute(stmt)
        return [InventoryItemResponse.model_validate(dict(row)) for row in result.mappings()]

    async def list_expiring(
        self,
        clinic_id: UUID,
        days: int = EXPIRY_WARNING_DAYS,
    ) -> list[InventoryItemResponse]:
        """Items whose expiry date falls within ``days`` from today, soonest first."""
        cutoff = date.today() + timedelta(days=days)
        stmt = (
            select(inventory)
            .where(
                inventory.c.clinic_id == clinic_id,
                inventory.c.expiry_date.is_not(None),
                inventory.c.expiry_date <= cutoff,
            )
            .order_by(inventory.c.expiry_date, inventory.c.item_name)
        )
        result = await self.db.execute(stmt)
        return [InventoryItemResponse.model_validate(dict(row)) for row in result.mappings()]

    async def list_categories(self, clinic_id: UUID) -> list[str]:
        """Distinct categories used by the clinic, alphabetically."""
        stmt = (
            select(distinct(inventory.c.category))
            .where(inventory.c.clinic_id == clinic_id)
            .order_by(inventory.c.category)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars())
