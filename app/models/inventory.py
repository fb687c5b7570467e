"""Clinic supply inventory model using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Table,
    Text,
    Uuid,
)

from app.models.base import metadata, utc_now

inventory = Table(
    "inventory",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column(
        "clinic_id",
        Uuid,
        ForeignKey("clinics.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    # Item identity
    Column("item_name", String(100), nullable=False),
    Column("category", String(50), nullable=False),
    Column("brand", String(50)),
    Column("supplier", String(100)),
    # Stock levels
    Column("current_stock", Integer, nullable=False, default=0),
    Column("minimum_stock", Integer, nullable=False, default=0),
    Column("unit_cost", Numeric(10, 2)),
    Column("expiry_date", Date),
    Column("notes", Text),
    # Audit
    Column("created_at", DateTime(timezone=True), nullable=False, default=utc_now),
    Column("updated_at", DateTime(timezone=True), nullable=False, default=utc_now),
    CheckConstraint("current_stock >= 0", name="inventory_current_stock_check"),
    CheckConstraint("minimum_stock >= 0", name="inventory_minimum_stock_check"),
)

Index("idx_inventory_clinic_expiry", inventory.c.clinic_id, inventory.c.expiry_date)
