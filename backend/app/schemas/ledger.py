"""
Ledger Pydantic schemas.

Monetary fields are Decimal and serialize as strings in JSON.
"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List
from backend.app.models.ledger_enums import LedgerEntryType, AdjustmentDirection, ReferenceModel


class LedgerEntryCreate(BaseModel):
    """Schema for a manual ledger entry."""
    customer_id: int = Field(..., gt=0)
    entry_date: date
    description: str = Field(..., min_length=1, max_length=500)
    entry_type: LedgerEntryType
    amount: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    reference: Optional[str] = Field(None, max_length=100)
    direction: Optional[AdjustmentDirection] = Field(
        None, description="Adjustments only: increase (default) or decrease the balance"
    )
    reference_id: Optional[int] = None
    reference_model: Optional[ReferenceModel] = None


class LedgerEntryResponse(BaseModel):
    """Schema for displaying a ledger entry."""
    id: Optional[int]
    customer_id: int
    customer_name: Optional[str] = None
    entry_date: date
    description: str
    entry_type: LedgerEntryType
    direction: Optional[AdjustmentDirection] = None
    amount: Decimal
    reference: Optional[str] = None
    reference_id: Optional[int] = None
    reference_model: Optional[ReferenceModel] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class StatementRowResponse(BaseModel):
    """An entry with its running balance and debit/credit display columns."""
    entry: LedgerEntryResponse
    running_balance: Decimal
    debit: Optional[Decimal] = None
    credit: Optional[Decimal] = None

    class Config:
        from_attributes = True


class StatementTotalsResponse(BaseModel):
    debits: Decimal
    credits: Decimal
    balance: Decimal
    entry_count: int
    is_debtor: bool

    class Config:
        from_attributes = True


class LedgerListResponse(BaseModel):
    """Paginated, reconciled ledger rows."""
    rows: List[StatementRowResponse]
    totals: StatementTotalsResponse
    total: int
    page: int
    page_size: int
    pages: int


class CustomerSummary(BaseModel):
    id: int
    name: str
    mobile: Optional[str] = None
    credit_limit: Decimal
    outstanding_amount: Decimal
    available_credit: Decimal

    class Config:
        from_attributes = True


class CustomerStatementResponse(BaseModel):
    """Account statement for one customer."""
    customer: CustomerSummary
    rows: List[StatementRowResponse]
    totals: StatementTotalsResponse


class BalanceResponse(BaseModel):
    """Final balance only."""
    customer_id: int
    balance: Decimal
    is_debtor: bool
    entry_count: int
