"""Transaction endpoints (clinic administrators only)."""

from datetime import date
from decimal import Decimal
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Query, status

from app.dependencies import AdminUser, DatabaseSession
from app.schemas.transactions import (
    DailyReport,
    MonthlyReport,
    PaymentMethod,
    TransactionCreate,
    TransactionDetailResponse,
    TransactionFilters,
    TransactionListResponse,
    TransactionResponse,
    TransactionSummary,
    TransactionType,
    TransactionUpdate,
)
from app.services.transaction_service import TransactionService

router = APIRouter()


@router.post(
    "/",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record transaction",
)
async def create_transaction(
    data: TransactionCreate,
    current_user: AdminUser,
    db: DatabaseSession,
) -> TransactionResponse:
    """Record a payment, refund or expense."""
    service = TransactionService(db)
    return await service.create_transaction(current_user["clinic_id"], data)


@router.get(
    "/",
    response_model=TransactionListResponse,
    status_code=status.HTTP_200_OK,
    summary="List transactions",
)
async def list_transactions(
    current_user: AdminUser,
    db: DatabaseSession,
    search: str | None = Query(None, max_length=100),
    transaction_type: TransactionType | None = Query(None),
    payment_method: PaymentMethod | None = Query(None),
    patient_id: UUID | None = Query(None),
    appointment_id: UUID | None = Query(None),
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    min_amount: Decimal | None = Query(None, ge=0),
    max_amount: Decimal | None = Query(None, ge=0),
    sort_by: Literal["transaction_date", "amount", "created_at"] = Query("transaction_date"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
) -> TransactionListResponse:
    """
    List the clinic's transactions with filtering.

    Args:
        current_user: Authenticated admin
        db: Database session
        search: Description, reference number or patient name fragment
        transaction_type: Filter by type
        payment_method: Filter by payment method
        patient_id: Filter by patient ID
        appointment_id: Filter by appointment ID
        date_from: Earliest transaction date
        date_to: Latest transaction date
        min_amount: Smallest amount
        max_amount: Largest amount
        sort_by: Sort column
        sort_order: Sort direction
        page: Page number
        limit: Items per page

    Returns:
        Paginated list of transactions
    """
    filters = TransactionFilters(
        search=search,
        transaction_type=transaction_type,
        payment_method=payment_method,
        patient_id=patient_id,
        appointment_id=appointment_id,
        date_from=date_from,
        date_to=date_to,
        min_amount=min_amount,
        max_amount=max_amount,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )

    service = TransactionService(db)
    return await service.list_transactions(current_user["clinic_id"], filters)


@router.get(
    "/summary",
    response_model=TransactionSummary,
    status_code=status.HTTP_200_OK,
    summary="Transaction summary",
)
async def get_transaction_summary(
    current_user: AdminUser,
    db: DatabaseSession,
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
) -> TransactionSummary:
    """Totals per type and payment method, and net income."""
    service = TransactionService(db)
    return await service.get_summary(current_user["clinic_id"], date_from, date_to)


@router.get(
    "/reports/daily",
    response_model=DailyReport,
    status_code=status.HTTP_200_OK,
    summary="Daily report",
)
async def get_daily_report(
    current_user: AdminUser,
    db: DatabaseSession,
    report_date: date | None = Query(None, alias="date"),
) -> DailyReport:
    """Hour-by-hour totals for one day (today by default)."""
    service = TransactionService(db)
    return await service.get_daily_report(current_user["clinic_id"], report_date or date.today())


@router.get(
    "/reports/monthly",
    response_model=MonthlyReport,
    status_code=status.HTTP_200_OK,
    summary="Monthly report",
)
async def get_monthly_report(
    current_user: AdminUser,
    db: DatabaseSession,
    year: int | None = Query(None, ge=1900, le=9999),
    month: int | None = Query(None, ge=1, le=12),
) -> MonthlyReport:
    """Day-by-day totals for one month (the current month by default)."""
    today = date.today()
    service = TransactionService(db)
    return await service.get_monthly_report(
        current_user["clinic_id"], year or today.year, month or today.month
    )


@router.get(
    "/{transaction_id}",
    response_model=TransactionDetailResponse,
    status_code=status.HTTP_200_OK,
    summary="Get transaction by ID",
)
async def get_transaction(
    transaction_id: UUID,
    current_user: AdminUser,
    db: DatabaseSession,
) -> TransactionDetailResponse:
    """Get a transaction with its patient and appointment."""
    service = TransactionService(db)
    return await service.get_transaction(current_user["clinic_id"], transaction_id)


@router.put(
    "/{transaction_id}",
    response_model=TransactionResponse,
    status_code=status.HTTP_200_OK,
    summary="Update transaction",
)
async def update_transaction(
    transaction_id: UUID,
    data: TransactionUpdate,
    current_user: AdminUser,
    db: DatabaseSession,
) -> TransactionResponse:
    """Update a transaction."""
    service = TransactionService(db)
    return await service.update_transaction(current_user["clinic_id"], transaction_id, data)


@router.delete(
    "/{transaction_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete transaction",
)
async def delete_transaction(
    transaction_id: UUID,
    current_user: AdminUser,
    db: DatabaseSession,
) -> None:
    """Delete a transaction."""
    service = TransactionService(db)
    await service.delete_transaction(current_user["clinic_id"], transaction_id)
