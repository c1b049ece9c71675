"""
Balance Reconciliation Engine.

Folds a customer's ledger entries, in date order, into a running balance
and assembles the account statement shown to admins, salesmen and customers.

Sign rules:
    debit, order       -> balance += amount
    credit, payment    -> balance -= amount
    adjustment         -> balance += amount (-= when direction is DECREASE)
    opening_balance    -> balance  = amount (discards prior accumulation)

A positive balance is a debtor position (the customer owes money).
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence

from backend.app.core.exceptions import LedgerValidationError
from backend.app.domain.ledger.types import Entry, ZERO
from backend.app.models.ledger_enums import LedgerEntryType, AdjustmentDirection

DEBIT_TYPES = frozenset({LedgerEntryType.DEBIT, LedgerEntryType.ORDER})
CREDIT_TYPES = frozenset({LedgerEntryType.CREDIT, LedgerEntryType.PAYMENT})

_EPOCH = datetime.min


def _created_key(created_at: Optional[datetime]) -> datetime:
    if created_at is None:
        return _EPOCH
    if created_at.tzinfo is not None:
        return created_at.astimezone(timezone.utc).replace(tzinfo=None)
    return created_at


def sort_key(entry: Entry):
    return (entry.entry_date, _created_key(entry.created_at), entry.id if entry.id is not None else -1)


def sort_entries(entries: Iterable[Entry]) -> List[Entry]:
    """
    Order entries for reconciliation.

    Ascending by entry_date, then created_at, then id. Python's sort is
    stable, so entries that tie on all three keep their input order.
    """
    return sorted(entries, key=sort_key)


def apply_entry(balance: Decimal, entry: Entry) -> Decimal:
    """Apply one entry to a balance and return the new balance."""
    entry_type = entry.entry_type
    if entry_type in DEBIT_TYPES:
        return balance + entry.amount
    if entry_type in CREDIT_TYPES:
        return balance - entry.amount
    if entry_type == LedgerEntryType.ADJUSTMENT:
        if entry.direction == AdjustmentDirection.DECREASE:
            return balance - entry.amount
        return balance + entry.amount
    if entry_type == LedgerEntryType.OPENING_BALANCE:
        return entry.amount
    raise LedgerValidationError(
        f"Unhandled entry type: {entry_type!r}", field="entry_type", value=entry_type
    )


def running_balances(entries: Iterable[Entry]) -> List[Decimal]:
    """Running balance after each entry, in reconciliation order."""
    balances = []
    balance = ZERO
    for entry in sort_entries(entries):
        balance = apply_entry(balance, entry)
        balances.append(balance)
    return balances


def final_balance(entries: Iterable[Entry]) -> Decimal:
    """Current balance of an account; zero when there are no entries."""
    balance = ZERO
    for entry in sort_entries(entries):
        balance = apply_entry(balance, entry)
    return balance


def is_debtor(balance: Decimal) -> bool:
    return balance > ZERO


@dataclass(frozen=True)
class StatementRow:
    """An entry with its running balance and its amount split into a display column."""
    entry: Entry
    running_balance: Decimal
    debit: Optional[Decimal] = None
    credit: Optional[Decimal] = None


@dataclass(frozen=True)
class StatementTotals:
    debits: Decimal = ZERO
    credits: Decimal = ZERO
    balance: Decimal = ZERO
    entry_count: int = 0

    @property
    def is_debtor(self) -> bool:
        return is_debtor(self.balance)


@dataclass(frozen=True)
class Statement:
    rows: List[StatementRow] = field(default_factory=list)
    totals: StatementTotals = field(default_factory=StatementTotals)

    def latest_first(self) -> List[StatementRow]:
        return list(reversed(self.rows))


def compute_statement(entries: Sequence[Entry]) -> Statement:
    """
    Reconcile entries into a statement.

    Entries may arrive in any order. The fold runs once over the sorted
    sequence, capturing each intermediate balance (prefix scan).

    totals.debits/credits only count debit/order and credit/payment, so
    debits - credits differs from balance when opening balances or
    adjustments are present.
    """
    rows = []
    debits = ZERO
    credits = ZERO
    balance = ZERO

    for entry in sort_entries(entries):
        balance = apply_entry(balance, entry)
        debit = credit = None
        if entry.entry_type in DEBIT_TYPES:
            debit = entry.amount
            debits += entry.amount
        elif entry.entry_type in CREDIT_TYPES:
            credit = entry.amount
            credits += entry.amount
        rows.append(StatementRow(entry=entry, running_balance=balance, debit=debit, credit=credit))

    return Statement(
        rows=rows,
        totals=StatementTotals(
            debits=debits,
            credits=credits,
            balance=balance,
            entry_count=len(rows),
        ),
    )
