"""Appointments table model using SQLAlchemy Core."""

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
    Time,
    Uuid,
)

from app.models.base import metadata, utc_now

# Appointments table
appointments = Table(
    "appointments",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # Ownership / references
    Column(
        "clinic_id",
        Uuid,
        ForeignKey("clinics.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("patient_id", Uuid, ForeignKey("patients.id"), nullable=False, index=True),
    Column("dentist_id", Uuid, nullable=True),
    # Slot; duration may be NULL on legacy rows and then counts as 60 minutes
    Column("appointment_date", Date, nullable=False),
    Column("appointment_time", Time, nullable=False),
    Column("duration_minutes", Integer, nullable=True, default=60),
    # Status management
    Column(
        "status",
        String(20),
        nullable=False,
        default="scheduled",
        server_default="scheduled",
    ),
    # Clinical notes
    Column("notes", Text),
    Column("diagnosis", Text),
    Column("treatment_plan", Text),
    # Audit fields
    Column("created_at", DateTime(timezone=True), nullable=False, default=utc_now),
    Column("updated_at", DateTime(timezone=True), nullable=False, default=utc_now),
    # Constraints
    CheckConstraint(
        "status IN ('scheduled', 'confirmed', 'completed', 'cancelled', 'no_show')",
        name="appointments_status_check",
    ),
    CheckConstraint(
        "duration_minutes IS NULL OR duration_minutes > 0",
        name="appointments_duration_check",
    ),
)

# Conflict checks read one clinic's day at a time
Index(
    "idx_appointments_clinic_date",
    appointments.c.clinic_id,
    appointments.c.appointment_date,
)

# Treatments performed during an appointment
appointment_treatments = Table(
    "appointment_treatments",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column(
        "appointment_id",
        Uuid,
        ForeignKey("appointments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("treatment_id", Uuid, ForeignKey("treatments.id"), nullable=False, index=True),
    Column("quantity", Integer, nullable=False, default=1),
    Column("price", Numeric(10, 2)),
    Column("notes", Text),
    Column("created_at", DateTime(timezone=True), nullable=False, default=utc_now),
)
