"""
Ledger Entry database model.

Immutable record of one financial event against a customer account.
"""

from sqlalchemy import Column, Integer, ForeignKey, Date, DateTime, Enum, String, Numeric, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.ledger_enums import LedgerEntryType, AdjustmentDirection, ReferenceModel


class LedgerEntry(Base):
    """
    Ledger Entry model.

    The sign of an entry comes from entry_type (and direction for
    adjustments), never from amount, which is always >= 0.
    The running balance is derived on read and is NOT stored.
    NO updates or deletions allowed.
    """
    __tablename__ = "ledger_entries"
    __table_args__ = (
        Index("ix_ledger_entries_customer_date", "customer_id", "entry_date"),
    )
    # fetch created_at on INSERT; it is an ordering tie-break
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Linkage
    customer_id = Column(Integer, ForeignKey('customers.id'), nullable=False, index=True)

    # Entry details
    entry_date = Column(Date, nullable=False)
    description = Column(String(500), nullable=False)
    entry_type = Column(Enum(LedgerEntryType), nullable=False, index=True)
    direction = Column(Enum(AdjustmentDirection), nullable=True)  # adjustments only

    # Financials
    amount = Column(Numeric(12, 2), nullable=False)

    # Source record (set for system-generated entries)
    reference = Column(String(100), nullable=True)
    reference_id = Column(Integer, nullable=True, index=True)
    reference_model = Column(Enum(ReferenceModel), nullable=True)

    created_by = Column(Integer, ForeignKey('users.id'), nullable=True)

    # Timestamps (Immutable - no updated_at)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    customer = relationship("Customer", back_populates="ledger_entries", lazy="noload")

    def __repr__(self):
        return f"<LedgerEntry(id={self.id}, type='{self.entry_type.value}', amount={self.amount})>"
