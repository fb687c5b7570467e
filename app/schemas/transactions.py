"""Transaction schemas for request/response validation."""

from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.common import PaginationMeta, SortOrder
from app.schemas.patients import PatientSummary


class TransactionType(str, Enum):
    """Direction of a money movement."""

    PAYMENT = "payment"
    REFUND = "refund"
    EXPENSE = "expense"


class PaymentMethod(str, Enum):
    """Supported payment channels."""

    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    CREDIT_CARD = "credit_card"
    EASYPAISA = "easypaisa"
    JAZZCASH = "jazzcash"
    INSURANCE = "insurance"


class TransactionBase(BaseModel):
    """Base transaction schema."""

    transaction_type: TransactionType
    payment_method: PaymentMethod
    amount: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    description: str = Field(..., min_length=2, max_length=500)
    transaction_date: date
    reference_number: str | None = Field(None, max_length=100)
    patient_id: UUID | None = None
    appointment_id: UUID | None = None
    notes: str | None = Field(None, max_length=1000)


class TransactionCreate(TransactionBase):
    """Schema for recording a transaction."""


class TransactionUpdate(BaseModel):
    """Schema for updating a transaction; omitted fields are left untouched."""

    transaction_type: TransactionType | None = None
    payment_method: PaymentMethod | None = None
    amount: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=2)
    description: str | None = Field(None, min_length=2, max_length=500)
    transaction_date: date | None = None
    reference_number: str | None = Field(None, max_length=100)
    patient_id: UUID | None = None
    appointment_id: UUID | None = None
    notes: str | None = Field(None, max_length=1000)


class TransactionResponse(TransactionBase):
    """Schema for transaction response."""

    id: UUID
    clinic_id: UUID
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AppointmentSummary(BaseModel):
    """Appointment fields embedded in transaction responses."""

    appointment_date: date
    appointment_time: time
    status: str


class TransactionDetailResponse(TransactionResponse):
    """Transaction with its patient and appointment, when linked."""

    patient: PatientSummary | None = None
    appointment: AppointmentSummary | None = None


class TransactionFilters(BaseModel):
    """Schema for transaction filtering."""

    search: str | None = None
    transaction_type: TransactionType | None = None
    payment_method: PaymentMethod | None = None
    patient_id: UUID | None = None
    appointment_id: UUID | None = None
    date_from: date | None = None
    date_to: date | None = None
    min_amount: Decimal | None = Field(None, ge=0)
    max_amount: Decimal | None = Field(None, ge=0)
    sort_by: Literal["transaction_date", "amount", "created_at"] = "transaction_date"
    sort_order: SortOrder = "desc"
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)


class TransactionListResponse(BaseModel):
    """Schema for paginated transaction list response."""

    items: list[TransactionDetailResponse]
    pagination: PaginationMeta


class TypeTotal(BaseModel):
    """Count and sum of one transaction type."""

    count: int = 0
    amount: Decimal = Decimal("0")


class TransactionSummary(BaseModel):
    """Totals over a date range."""

    total_payments: Decimal = Decimal("0")
    total_refunds: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")
    net_income: Decimal = Decimal("0")
    transaction_count: int = 0
    payment_methods: dict[str, Decimal] = Field(default_factory=dict)
    transaction_types: dict[str, TypeTotal] = Field(default_factory=dict)


class ReportBucket(BaseModel):
    """Per-type sums for one hour or one day of a report."""

    payments: Decimal = Decimal("0")
    expenses: Decimal = Decimal("0")
    refunds: Decimal = Decimal("0")
    count: int = 0


class HourlyBucket(ReportBucket):
    """Hour of a daily report, labelled ``HH:00``."""

    hour: str


class DailyBucket(ReportBucket):
    """Day of a monthly report."""

    day: int
    transaction_date: date


class ReportTotals(BaseModel):
    """Totals of a daily or monthly report."""

    total_transactions: int = 0
    total_payments: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")
    total_refunds: Decimal = Decimal("0")


class DailyReport(BaseModel):
    """Transactions of one day grouped by the hour they were recorded."""

    report_date: date
    hourly_data: list[HourlyBucket]
    summary: ReportTotals


class MonthlyReport(BaseModel):
    """Transactions of one month grouped by transaction date."""

    year: int
    month: int
    daily_data: list[DailyBucket]
    summary: ReportTotals
