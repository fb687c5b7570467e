"""User model definition using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    String,
    Table,
    Text,
    Uuid,
)

from app.models.base import metadata, utc_now

users = Table(
    "users",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # Tenant
    Column(
        "clinic_id",
        Uuid,
        ForeignKey("clinics.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    # Credentials
    Column("email", String(255), nullable=False, unique=True, index=True),
    Column("password_hash", Text, nullable=False),
    # Profile
    Column("full_name", Text),
    Column("role", String(20), nullable=False, default="patient", server_default="patient"),
    # Account state
    Column("is_active", Boolean, nullable=False, default=True),
    # Audit
    Column("created_at", DateTime(timezone=True), nullable=False, default=utc_now),
    Column("updated_at", DateTime(timezone=True), nullable=False, default=utc_now),
    Column("last_login_at", DateTime(timezone=True)),
    CheckConstraint("role IN ('admin', 'patient')", name="users_role_check"),
)
