"""
Ledger API Endpoints.

Reconciled ledger views for all three dashboards, plus manual entry
creation for staff. Entries are immutable: there is no update or delete.
"""

import math
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.dependencies import get_current_user
from backend.app.core.guards import require_staff, customer_guard, is_customer
from backend.app.db.session import get_db
from backend.app.domain.ledger.ledger_service import LedgerService
from backend.app.domain.ledger.query import LedgerFilters, parse_scope
from backend.app.domain.ledger.reconciliation import StatementTotals, is_debtor
from backend.app.schemas.ledger import (
    BalanceResponse,
    CustomerStatementResponse,
    LedgerEntryCreate,
    LedgerEntryResponse,
    LedgerListResponse,
    StatementRowResponse,
    StatementTotalsResponse,
)
from backend.app.services.cache import CacheBackend, get_cache

router = APIRouter(prefix="/ledger", tags=["Ledger"])


@router.get("", response_model=LedgerListResponse)
async def list_ledger_entries(
    customer_id: Optional[str] = Query(None, description="Customer id, or 'all'"),
    text: Optional[str] = Query(None, description="Matches description, reference or customer name"),
    on_date: Optional[date] = Query(None, description="Exact entry date"),
    entry_type: Optional[str] = Query(None, alias="type", description="Entry type, or 'all'"),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    latest_first: bool = Query(False, description="Newest rows first"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Reconciled ledger rows with running balances, oldest first unless
    latest_first is set.

    The running balance is computed over the whole filtered set before
    paging, so it is the same on every page. CUSTOMER users are always
    pinned to their own account.
    """
    if is_customer(current_user):
        own_id = customer_guard.scope_for(current_user)
        if own_id is None:
            return LedgerListResponse(
                rows=[],
                totals=StatementTotalsResponse.model_validate(StatementTotals()),
                total=0, page=page, page_size=page_size, pages=0
            )
        scope = own_id
    else:
        scope = parse_scope(customer_id)

    filters = LedgerFilters(text=text, on_date=on_date, entry_type=entry_type)
    statement = await LedgerService.list_entries(db, scope, filters, start_date, end_date)

    rows = statement.latest_first() if latest_first else statement.rows
    total = len(rows)
    offset = (page - 1) * page_size
    return LedgerListResponse(
        rows=[StatementRowResponse.model_validate(row) for row in rows[offset:offset + page_size]],
        totals=StatementTotalsResponse.model_validate(statement.totals),
        total=total,
        page=page,
        page_size=page_size,
        pages=math.ceil(total / page_size)
    )


@router.get("/customer/{customer_id}", response_model=CustomerStatementResponse)
async def get_customer_statement(
    customer_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    latest_first: bool = Query(False, description="Reverse rows for display"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: CacheBackend = Depends(get_cache)
):
    """Account statement for a customer: rows with running balances, and totals."""
    customer_guard.enforce(customer_id, current_user)
    return await LedgerService.customer_statement(
        db, customer_id, cache=cache,
        start_date=start_date, end_date=end_date, latest_first=latest_first
    )


@router.get("/customer/{customer_id}/balance", response_model=BalanceResponse)
async def get_customer_balance(
    customer_id: int,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: CacheBackend = Depends(get_cache)
):
    """Final balance only."""
    customer_guard.enforce(customer_id, current_user)
    statement = await LedgerService.customer_statement(db, customer_id, cache=cache)
    return BalanceResponse(
        customer_id=customer_id,
        balance=statement.totals.balance,
        is_debtor=is_debtor(statement.totals.balance),
        entry_count=statement.totals.entry_count
    )


@router.post("", response_model=LedgerEntryResponse, status_code=status.HTTP_201_CREATED)
async def create_ledger_entry(
    entry_data: LedgerEntryCreate,
    current_user: dict = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
    cache: CacheBackend = Depends(get_cache)
):
    """Create a manual ledger entry (admin, salesman)."""
    entry = await LedgerService.create_entry(db, entry_data, current_user, cache=cache)
    return LedgerEntryResponse.model_validate(entry)
