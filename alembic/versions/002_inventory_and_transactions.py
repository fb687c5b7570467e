"""Add inventory and transactions

Revision ID: 002
Revises: 001
Create Date: 2026-10-18

"""

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None


def _id_column() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        server_default=sa.text("gen_random_uuid()"),
        nullable=False,
    )


def _timestamp_column(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=sa.text("NOW()"),
        nullable=False,
    )


def upgrade() -> None:
    """Create inventory and transactions tables."""
    op.create_table(
        "inventory",
        _id_column(),
        sa.Column(
            "clinic_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("clinics.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("item_name", sa.String(length=100), nullable=False),
        sa.Column("category", sa.String(length=50), nullable=False),
        sa.Column("brand", sa.String(length=50), nullable=True),
        sa.Column("supplier", sa.String(length=100), nullable=True),
        sa.Column("current_stock", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("minimum_stock", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("unit_cost", sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column("expiry_date", sa.Date(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _timestamp_column("created_at"),
        _timestamp_column("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("current_stock >= 0", name="inventory_current_stock_check"),
        sa.CheckConstraint("minimum_stock >= 0", name="inventory_minimum_stock_check"),
    )
    op.create_index("ix_inventory_clinic_id", "inventory", ["clinic_id"])
    op.create_index("idx_inventory_clinic_expiry", "inventory", ["clinic_id", "expiry_date"])

    op.create_table(
        "transactions",
        _id_column(),
        sa.Column(
            "clinic_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("clinics.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "patient_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("patients.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "appointment_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("appointments.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("transaction_type", sa.String(length=20), nullable=False),
        sa.Column("payment_method", sa.String(length=20), nullable=False),
        sa.Column("amount", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("transaction_date", sa.Date(), nullable=False),
        sa.Column("reference_number", sa.String(length=100), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _timestamp_column("created_at"),
        _timestamp_column("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "transaction_type IN ('payment', 'refund', 'expense')",
            name="transactions_type_check",
        ),
        sa.CheckConstraint(
            "payment_method IN "
            "('cash', 'bank_transfer', 'credit_card', 'easypaisa', 'jazzcash', 'insurance')",
            name="transactions_payment_method_check",
        ),
        sa.CheckConstraint("amount >= 0", name="transactions_amount_check"),
    )
    op.create_index("ix_transactions_patient_id", "transactions", ["patient_id"])
    op.create_index(
        "idx_transactions_clinic_date", "transactions", ["clinic_id", "transaction_date"]
    )


def downgrade() -> None:
    """Drop inventory and transactions tables."""
    op.drop_table("transactions")
    op.drop_table("inventory")
