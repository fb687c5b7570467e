"""Transaction service for payments, refunds and expenses."""

import calendar
from collections.abc import Iterable
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import and_, delete, func, insert, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundException
from app.models.appointments import appointments
from app.models.patients import patients
from app.models.transactions import transactions
from app.schemas.common import PaginationMeta
from app.schemas.transactions import (
    DailyBucket,
    DailyReport,
    HourlyBucket,
    MonthlyReport,
    ReportBucket,
    ReportTotals,
    TransactionCreate,
    TransactionDetailResponse,
    TransactionFilters,
    TransactionListResponse,
    TransactionResponse,
    TransactionSummary,
    TransactionType,
    TransactionUpdate,
    TypeTotal,
)

logger = structlog.get_logger()

# Columns a partial update never sets to NULL
_REQUIRED_FIELDS = frozenset(
    {"transaction_type", "payment_method", "amount", "description", "transaction_date"}
)

_PATIENT_COLUMNS = {
    "first_name": patients.c.first_name,
    "last_name": patients.c.last_name,
    "patient_number": patients.c.patient_number,
    "phone": patients.c.phone,
    "email": patients.c.email,
}

_APPOINTMENT_COLUMNS = {
    "appointment_date": appointments.c.appointment_date,
    "appointment_time": appointments.c.appointment_time,
    "status": appointments.c.status,
}


def _select_with_links() -> Any:
    """Select transactions joined with their optional patient and appointment."""
    return select(
        transactions,
        *(column.label(f"patient_{name}") for name, column in _PATIENT_COLUMNS.items()),
        *(column.label(f"appointment_{name}") for name, column in _APPOINTMENT_COLUMNS.items()),
    ).select_from(
        transactions.outerjoin(patients, transactions.c.patient_id == patients.c.id).outerjoin(
            appointments, transactions.c.appointment_id == appointments.c.id
        )
    )


def _split_links(row: Any) -> dict:
    data = {key: row[key] for key in transactions.c.keys()}
    data["patient"] = (
        {name: row[f"patient_{name}"] for name in _PATIENT_COLUMNS}
        if row["patient_first_name"] is not None
        else None
    )
    data["appointment"] = (
        {name: row[f"appointment_{name}"] for name in _APPOINTMENT_COLUMNS}
        if row["appointment_appointment_date"] is not None
        else None
    )
    return data


def _add_to_bucket(bucket: ReportBucket, transaction_type: str, amount: Decimal) -> None:
    bucket.count += 1
    if transaction_type == TransactionType.PAYMENT.value:
        bucket.payments += amount
    elif transaction_type == TransactionType.EXPENSE.value:
        bucket.expenses += amount
    elif transaction_type == TransactionType.REFUND.value:
        bucket.refunds += amount


def _report_totals(buckets: Iterable[ReportBucket]) -> ReportTotals:
    totals = ReportTotals()
    for bucket in buckets:
        totals.total_transactions += bucket.count
        totals.total_payments += bucket.payments
        totals.total_expenses += bucket.expenses
        totals.total_refunds += bucket.refunds
    return totals


def summarize_transactions(rows: Iterable[Any]) -> TransactionSummary:
    """
    Aggregate transactions into per-type and per-method totals.

    Net income is payments minus refunds and expenses.

    Args:
        rows: Mappings with ``transaction_type``, ``payment_method`` and ``amount``

    Returns:
        Summary over all given rows
    """
    summary = TransactionSummary()

    for row in rows:
        amount = Decimal(row["amount"])
        transaction_type = row["transaction_type"]
        method = row["payment_method"]

        if transaction_type == TransactionType.PAYMENT.value:
            summary.total_payments += amount
        elif transaction_type == TransactionType.REFUND.value:
            summary.total_refunds += amount
        elif transaction_type == TransactionType.EXPENSE.value:
            summary.total_expenses += amount

        summary.transaction_count += 1
        summary.payment_methods[method] = summary.payment_methods.get(method, Decimal("0")) + amount

        type_total = summary.transaction_types.setdefault(transaction_type, TypeTotal())
        type_total.count += 1
        type_total.amount += amount

    summary.net_income = summary.total_payments - summary.total_refunds - summary.total_expenses
    return summary


class TransactionService:
    """Service for recording and reporting a clinic's transactions."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def _ensure_links(
        self,
        clinic_id: UUID,
        patient_id: UUID | None,
        appointment_id: UUID | None,
    ) -> None:
        """
        Check that linked records belong to the clinic.

        Raises:
            NotFoundException: If the patient or appointment is not the clinic's
        """
        if patient_id is not None:
            stmt = select(patients.c.id).where(
                patients.c.id == patient_id,
                patients.c.clinic_id == clinic_id,
            )
            if (await self.db.execute(stmt)).first() is None:
                raise NotFoundException("Patient not found")

        if appointment_id is not None:
            stmt = select(appointments.c.id).where(
                appointments.c.id == appointment_id,
                appointments.c.clinic_id == clinic_id,
            )
            if (await self.db.execute(stmt)).first() is None:
                raise NotFoundException("Appointment not found")

    async def _get_row(self, clinic_id: UUID, transaction_id: UUID) -> dict:
        stmt = select(transactions).where(
            transactions.c.id == transaction_id,
            transactions.c.clinic_id == clinic_id,
        )
        row = (await self.db.execute(stmt)).mappings().first()

        if not row:
            raise NotFoundException("Transaction not found")

        return dict(row)

    async def create_transaction(
        self,
        clinic_id: UUID,
        data: TransactionCreate,
    ) -> TransactionResponse:
        """
        Record a payment, refund or expense.

        Raises:
            NotFoundException: If a linked patient or appointment is not the clinic's
        """
        await self._ensure_links(clinic_id, data.patient_id, data.appointment_id)

        values = data.model_dump()
        values["transaction_type"] = data.transaction_type.value
        values["payment_method"] = data.payment_method.value

        stmt = insert(transactions).values(clinic_id=clinic_id, **values).returning(transactions)
        result = await self.db.execute(stmt)
        transaction = dict(result.mappings().one())
        await self.db.commit()

        logger.info(
            "transaction_created",
            clinic_id=str(clinic_id),
            transaction_id=str(transaction["id"]),
            transaction_type=transaction["transaction_type"],
            amount=str(transaction["amount"]),
        )
        return TransactionResponse.model_validate(transaction)

    async def get_transaction(
        self,
        clinic_id: UUID,
        transaction_id: UUID,
    ) -> TransactionDetailResponse:
        """
        Get transaction by ID with its linked patient and appointment.

        Raises:
            NotFoundException: If the transaction does not belong to the clinic
        """
        stmt = _select_with_links().where(
            transactions.c.id == transaction_id,
            transactions.c.clinic_id == clinic_id,
        )
        row = (await self.db.execute(stmt)).mappings().first()

        if not row:
            raise NotFoundException("Transaction not found")

        return TransactionDetailResponse(**_split_links(row))

    async def list_transactions(
        self,
        clinic_id: UUID,
        filters: TransactionFilters,
    ) -> TransactionListResponse:
        """
        List transactions with filtering, sorting and pagination.

        Args:
            clinic_id: Clinic scope
            filters: Filter and pagination parameters

        Returns:
            Paginated list of transactions
        """
        conditions = [transactions.c.clinic_id == clinic_id]

        if filters.search:
            pattern = f"%{filters.search}%"
            conditions.append(
                or_(
                    transactions.c.description.ilike(pattern),
                    transactions.c.reference_number.ilike(pattern),
                    patients.c.first_name.ilike(pattern),
                    patients.c.last_name.ilike(pattern),
                )
            )

        if filters.transaction_type:
            conditions.append(transactions.c.transaction_type == filters.transaction_type.value)

        if filters.payment_method:
            conditions.append(transactions.c.payment_method == filters.payment_method.value)

        if filters.patient_id:
            conditions.append(transactions.c.patient_id == filters.patient_id)

        if filters.appointment_id:
            conditions.append(transactions.c.appointment_id == filters.appointment_id)

        if filters.date_from:
            conditions.append(transactions.c.transaction_date >= filters.date_from)

        if filters.date_to:
            conditions.append(transactions.c.transaction_date <= filters.date_to)

        if filters.min_amount is not None:
            conditions.append(transactions.c.amount >= filters.min_amount)

        if filters.max_amount is not None:
            conditions.append(transactions.c.amount <= filters.max_amount)

        joined = transactions.outerjoin(patients, transactions.c.patient_id == patients.c.id)
        count_stmt = select(func.count()).select_from(joined).where(and_(*conditions))
        total = (await self.db.execute(count_stmt)).scalar() or 0

        sort_column = transactions.c[filters.sort_by]
        order = sort_column.asc() if filters.sort_order == "asc" else sort_column.desc()

        stmt = (
            _select_with_links()
            .where(and_(*conditions))
            .order_by(order, transactions.c.created_at, transactions.c.id)
            .limit(filters.limit)
            .offset((filters.page - 1) * filters.limit)
        )
        result = await self.db.execute(stmt)

        return TransactionListResponse(
            items=[TransactionDetailResponse(**_split_links(row)) for row in result.mappings()],
            pagination=PaginationMeta.build(filters.page, filters.limit, total),
        )

    async def list_patient_transactions(
        self,
        clinic_id: UUID,
        patient_id: UUID,
    ) -> list[TransactionResponse]:
        """List a patient's transactions, most recent date first."""
        stmt = (
            select(transactions)
            .where(
                transactions.c.patient_id == patient_id,
                transactions.c.clinic_id == clinic_id,
            )
            .order_by(transactions.c.transaction_date.desc(), transactions.c.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return [TransactionResponse.model_validate(dict(row)) for row in result.mappings()]

    async def update_transaction(
        self,
        clinic_id: UUID,
        transaction_id: UUID,
        data: TransactionUpdate,
    ) -> TransactionResponse:
        """
        Update a transaction; only provided fields change.

        Raises:
            NotFoundException: If the transaction, or a newly linked patient or
                appointment, does not belong to the clinic
        """
        current = await self._get_row(clinic_id, transaction_id)
        await self._ensure_links(clinic_id, data.patient_id, data.appointment_id)

        update_values: dict[str, Any] = {}
        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None and field in _REQUIRED_FIELDS:
                continue
            update_values[field] = value.value if isinstance(value, Enum) else value

        if not update_values:
            return TransactionResponse.model_validate(current)

        update_values["updated_at"] = datetime.now(UTC)

        stmt = (
            update(transactions)
            .where(transactions.c.id == transaction_id, transactions.c.clinic_id == clinic_id)
            .values(**update_values)
            .returning(transactions)
        )
        result = await self.db.execute(stmt)
        transaction = dict(result.mappings().one())
        await self.db.commit()

        logger.info(
            "transaction_updated",
            clinic_id=str(clinic_id),
            transaction_id=str(transaction_id),
            fields=sorted(update_values),
        )
        return TransactionResponse.model_validate(transaction)

    async def delete_transaction(self, clinic_id: UUID, transaction_id: UUID) -> None:
        """
        Delete a transaction.

        Raises:
            NotFoundException: If the transaction does not belong to the clinic
        """
        await self._get_row(clinic_id, transaction_id)

        await self.db.execute(
            delete(transactions).where(
                transactions.c.id == transaction_id,
                transactions.c.clinic_id == clinic_id,
            )
        )
        await self.db.commit()

        logger.info(
            "transaction_deleted",
            clinic_id=str(clinic_id),
            transaction_id=str(transaction_id),
        )

    async def _rows_between(self, clinic_id: UUID, start: date | None, end: date | None) -> list:
        conditions = [transactions.c.clinic_id == clinic_id]
        if start is not None:
            conditions.append(transactions.c.transaction_date >= start)
        if end is not None:
            conditions.append(transactions.c.transaction_date <= end)

        stmt = (
            select(transactions)
            .where(and_(*conditions))
            .order_by(transactions.c.transaction_date, transactions.c.created_at)
        )
        return list((await self.db.execute(stmt)).mappings())

    async def get_summary(
        self,
        clinic_id: UUID,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> TransactionSummary:
        """Totals of the clinic's transactions, optionally within a date range."""
        return summarize_transactions(await self._rows_between(clinic_id, date_from, date_to))

    async def get_daily_report(self, clinic_id: UUID, day: date) -> DailyReport:
        """
        Transactions of one day grouped by the UTC hour they were recorded.

        Args:
            clinic_id: Clinic scope
            day: Transaction date to report on

        Returns:
            Twenty-four hourly buckets with the day's totals
        """
        hourly = [HourlyBucket(hour=f"{hour:02d}:00") for hour in range(24)]

        for row in await self._rows_between(clinic_id, day, day):
            created_at = row["created_at"]
            if created_at.tzinfo is not None:
                created_at = created_at.astimezone(UTC)
            _add_to_bucket(hourly[created_at.hour], row["transaction_type"], row["amount"])

        return DailyReport(report_date=day, hourly_data=hourly, summary=_report_totals(hourly))

    async def get_monthly_report(self, clinic_id: UUID, year: int, month: int) -> MonthlyReport:
        """
        Transactions of one calendar month grouped by transaction date.

        Args:
            clinic_id: Clinic scope
            year: Report year
            month: Report month (1-12)

        Returns:
            One bucket per day of the month with the month's totals
        """
        days_in_month = calendar.monthrange(year, month)[1]
        daily = [
            DailyBucket(day=day, transaction_date=date(year, month, day))
            for day in range(1, days_in_month + 1)
        ]

        first_day = date(year, month, 1)
        last_day = date(year, month, days_in_month)
        for row in await self._rows_between(clinic_id, first_day, last_day):
            bucket = daily[row["transaction_date"].day - 1]
            _add_to_bucket(bucket, row["transaction_type"], row["amount"])

        return MonthlyReport(
            year=year,
            month=month,
            daily_data=daily,
            summary=_report_totals(daily),
        )
