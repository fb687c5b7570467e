"""Patient model definition using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    String,
    Table,
    Text,
    Uuid,
)

from app.models.base import metadata, utc_now

patients = Table(
    "patients",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column(
        "clinic_id",
        Uuid,
        ForeignKey("clinics.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    # Login account of a patient-role user, if any
    Column("user_id", Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
    # Not unique: numbers are allocated read-then-write
    Column("patient_number", String(20), nullable=False),
    # Personal information
    Column("first_name", String(50), nullable=False),
    Column("last_name", String(50), nullable=False),
    Column("date_of_birth", Date),
    Column("gender", String(10)),
    Column("phone", String(20)),
    Column("email", String(255)),
    Column("address", Text),
    # Emergency contact
    Column("emergency_contact_name", String(100)),
    Column("emergency_contact_phone", String(20)),
    # Medical information
    Column("medical_history", Text),
    Column("allergies", Text),
    # Insurance information
    Column("insurance_provider", String(100)),
    Column("insurance_number", String(100)),
    # Metadata
    Column("created_at", DateTime(timezone=True), nullable=False, default=utc_now),
    Column("updated_at", DateTime(timezone=True), nullable=False, default=utc_now),
)

Index("idx_patients_clinic_created", patients.c.clinic_id, patients.c.created_at)
Index("idx_patients_clinic_email", patients.c.clinic_id, patients.c.email)
