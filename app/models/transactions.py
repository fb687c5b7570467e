"""Financial transactions model using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Table,
    Text,
    Uuid,
)

from app.models.base import metadata, utc_now

transactions = Table(
    "transactions",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column(
        "clinic_id",
        Uuid,
        ForeignKey("clinics.id", ondelete="CASCADE"),
        nullable=False,
    ),
    # Optional links; history survives deletion of the patient or appointment
    Column("patient_id", Uuid, ForeignKey("patients.id", ondelete="SET NULL"), index=True),
    Column("appointment_id", Uuid, ForeignKey("appointments.id", ondelete="SET NULL")),
    # Money
    Column("transaction_type", String(20), nullable=False),
    Column("payment_method", String(20), nullable=False),
    Column("amount", Numeric(10, 2), nullable=False),
    Column("description", Text, nullable=False),
    Column("transaction_date", Date, nullable=False),
    Column("reference_number", String(100)),
    Column("notes", Text),
    # Audit
    Column("created_at", DateTime(timezone=True), nullable=False, default=utc_now),
    Column("updated_at", DateTime(timezone=True), nullable=False, default=utc_now),
    CheckConstraint(
        "transaction_type IN ('payment', 'refund', 'expense')",
        name="transactions_type_check",
    ),
    CheckConstraint(
        "payment_method IN "
        "('cash', 'bank_transfer', 'credit_card', 'easypaisa', 'jazzcash', 'insurance')",
        name="transactions_payment_method_check",
    ),
    CheckConstraint("amount >= 0", name="transactions_amount_check"),
)

# Reports read one clinic's date range at a time
Index(
    "idx_transactions_clinic_date",
    transactions.c.clinic_id,
    transactions.c.transaction_date,
)
