"""Clinic model definition using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    String,
    Table,
    Text,
    Uuid,
)

from app.models.base import metadata, utc_now

clinics = Table(
    "clinics",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("name", String(255), nullable=False, index=True),
    Column("address", Text),
    Column("phone", String(20)),
    Column("email", String(255)),
    Column("is_active", Boolean, nullable=False, default=True),
    # Audit
    Column("created_at", DateTime(timezone=True), nullable=False, default=utc_now),
    Column("updated_at", DateTime(timezone=True), nullable=False, default=utc_now),
)
