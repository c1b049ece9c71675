"""
Ledger Service (Domain Logic).

Fetches ledger entries from the database, reconciles them and records
manual entries. Reconciliation itself is pure (see reconciliation.py);
this layer owns I/O, caching and the customer's outstanding amount.
"""

import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import ResourceNotFoundError
from backend.app.domain.ledger.query import ALL, CustomerScope, LedgerFilters, filter_entries
from backend.app.domain.ledger.reconciliation import Statement, compute_statement, final_balance
from backend.app.domain.ledger.types import Entry, ZERO
from backend.app.models.customer import Customer
from backend.app.models.ledger_entry import LedgerEntry
from backend.app.schemas.ledger import (
    CustomerStatementResponse,
    CustomerSummary,
    LedgerEntryCreate,
    StatementRowResponse,
    StatementTotalsResponse,
)
from backend.app.services.audit import AuditAction, log_event
from backend.app.services.cache import CacheBackend

logger = logging.getLogger("distribution")

STATEMENT_KEY_PREFIX = "ledger:statement:"
GENERATION_KEY_PREFIX = "ledger:generation:"


async def _generation(cache: CacheBackend, customer_id: int) -> str:
    return await cache.get(f"{GENERATION_KEY_PREFIX}{customer_id}") or "0"


def _date_part(value: Optional[date]) -> str:
    return value.isoformat() if value else "-"


async def statement_cache_key(
    cache: CacheBackend,
    customer_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None
) -> str:
    """Cache key for a statement; embeds the customer's generation counter."""
    generation = await _generation(cache, customer_id)
    return (
        f"{STATEMENT_KEY_PREFIX}{customer_id}:g{generation}:"
        f"{_date_part(start_date)}:{_date_part(end_date)}"
    )


async def invalidate_customer_statements(cache: CacheBackend, customer_id: int) -> int:
    """
    Bump the generation counter so every cached statement for the customer
    misses, then drop the superseded statements.
    """
    generation = await cache.incr(f"{GENERATION_KEY_PREFIX}{customer_id}")
    await cache.delete_prefix(f"{STATEMENT_KEY_PREFIX}{customer_id}:")
    logger.info("Statement cache invalidated", extra={"customer_id": customer_id, "generation": generation})
    return generation


def lock_customer_stmt(customer_id: int):
    return (
        select(Customer)
        .where(Customer.id == customer_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )


def build_statement_response(customer: Customer, statement: Statement, latest_first: bool = False) -> CustomerStatementResponse:
    rows = statement.latest_first() if latest_first else statement.rows
    return CustomerStatementResponse(
        customer=CustomerSummary.model_validate(customer),
        rows=[StatementRowResponse.model_validate(row) for row in rows],
        totals=StatementTotalsResponse.model_validate(statement.totals),
    )


class LedgerService:

    @staticmethod
    async def get_customer(db: AsyncSession, customer_id: int) -> Customer:
        customer = await db.get(Customer, customer_id)
        if not customer:
            raise ResourceNotFoundError("Customer", customer_id)
        return customer

    @staticmethod
    async def lock_customer(db: AsyncSession, customer_id: int) -> Customer:
        """
        Load a customer with a row lock held until the transaction ends.

        Writes for one customer are serialized, so each recompute of the
        outstanding amount sees every entry committed before it.
        """
        result = await db.execute(lock_customer_stmt(customer_id))
        customer = result.scalar_one_or_none()
        if not customer:
            raise ResourceNotFoundError("Customer", customer_id)
        return customer

    @staticmethod
    async def fetch_entries(
        db: AsyncSession,
        scope: CustomerScope = ALL,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> List[Entry]:
        """
        Load entries for one customer or for all customers.

        Rows come back in no particular order; callers reconcile through
        compute_statement, which sorts.
        """
        stmt = select(LedgerEntry, Customer.name).join(Customer, Customer.id == LedgerEntry.customer_id)
        if scope != ALL:
            stmt = stmt.where(LedgerEntry.customer_id == scope)
        if start_date:
            stmt = stmt.where(LedgerEntry.entry_date >= start_date)
        if end_date:
            stmt = stmt.where(LedgerEntry.entry_date <= end_date)

        result = await db.execute(stmt)
        return [Entry.from_model(row, customer_name=name) for row, name in result.all()]

    @staticmethod
    async def list_entries(
        db: AsyncSession,
        scope: CustomerScope = ALL,
        filters: Optional[LedgerFilters] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> Statement:
        """Fetch, filter and reconcile entries in one pass."""
        entries = await LedgerService.fetch_entries(db, scope, start_date, end_date)
        return compute_statement(filter_entries(entries, filters))

    @staticmethod
    async def customer_statement(
        db: AsyncSession,
        customer_id: int,
        cache: Optional[CacheBackend] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        latest_first: bool = False
    ) -> CustomerStatementResponse:
        """
        Account statement for a customer.

        Cached in ascending order; latest_first only reverses on the way out.
        """
        customer = await LedgerService.get_customer(db, customer_id)

        key = None
        if cache is not None:
            key = await statement_cache_key(cache, customer_id, start_date, end_date)
            cached = await cache.get(key)
            if cached:
                response = CustomerStatementResponse.model_validate_json(cached)
                if latest_first:
                    response.rows.reverse()
                return response

        entries = await LedgerService.fetch_entries(db, customer_id, start_date, end_date)
        response = build_statement_response(customer, compute_statement(entries))

        if cache is not None:
            await cache.set(key, response.model_dump_json())

        if latest_first:
            response.rows.reverse()
        return response

    @staticmethod
    async def create_entry(
        db: AsyncSession,
        data: LedgerEntryCreate,
        actor: dict,
        cache: Optional[CacheBackend] = None
    ) -> Entry:
        """
        Record a manual ledger entry.

        Flow:
        1. Lock the customer row (404 if it does not exist)
        2. Validate the entry (raises LedgerValidationError)
        3. Persist it
        4. Refresh the customer's outstanding amount from the reconciled balance
        5. Audit, commit, invalidate cached statements
        """
        customer = await LedgerService.lock_customer(db, data.customer_id)

        entry = Entry(
            customer_id=customer.id,
            entry_date=data.entry_date,
            entry_type=data.entry_type,
            amount=data.amount,
            description=data.description,
            reference=data.reference,
            direction=data.direction,
            reference_id=data.reference_id,
            reference_model=data.reference_model,
        )

        row = LedgerEntry(
            customer_id=entry.customer_id,
            entry_date=entry.entry_date,
            description=entry.description,
            entry_type=entry.entry_type,
            direction=entry.direction,
            amount=entry.amount,
            reference=entry.reference,
            reference_id=entry.reference_id,
            reference_model=entry.reference_model,
            created_by=actor.get("user_id"),
        )
        db.add(row)
        await db.flush()

        balance = final_balance(await LedgerService.fetch_entries(db, customer.id))
        customer.outstanding_amount = max(ZERO, balance)

        await log_event(
            db=db,
            action=AuditAction.LEDGER_ENTRY_CREATED,
            actor_id=actor.get("user_id"),
            actor_username=actor.get("sub"),
            target_type="ledger_entry",
            target_id=row.id,
            metadata={
                "customer_id": customer.id,
                "entry_type": entry.entry_type.value,
                "amount": str(entry.amount),
            },
            commit=False,
        )
        await db.commit()
        await db.refresh(row)

        logger.info(
            "Ledger entry created",
            extra={
                "entry_id": row.id,
                "customer_id": customer.id,
                "entry_type": entry.entry_type.value,
                "balance": str(balance),
            }
        )

        if cache is not None:
            await invalidate_customer_statements(cache, customer.id)

        return Entry.from_model(row, customer_name=customer.name)
