"""
Customer database model.
"""

from decimal import Decimal

from sqlalchemy import Column, Integer, String, DateTime, Enum, ForeignKey, Numeric
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.ledger_enums import CustomerType


class Customer(Base):
    """
    Customer account.

    outstanding_amount is a denormalized copy of the reconciled ledger
    balance (clamped at zero), refreshed whenever an entry is created.
    """
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Login account for the CUSTOMER role (optional)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=True, unique=True, index=True)

    name = Column(String(200), nullable=False, index=True)
    mobile = Column(String(20), nullable=True)
    address = Column(String(500), nullable=False)
    gst_number = Column(String(15), nullable=True, index=True)
    territory = Column(String(100), nullable=True, index=True)
    customer_type = Column(Enum(CustomerType), default=CustomerType.RETAIL, nullable=False)

    # Credit
    credit_limit = Column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    outstanding_amount = Column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    payment_terms = Column(Integer, default=30, nullable=False)  # days

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    ledger_entries = relationship("LedgerEntry", back_populates="customer", lazy="noload")

    @property
    def available_credit(self) -> Decimal:
        return Decimal(self.credit_limit or 0) - Decimal(self.outstanding_amount or 0)

    def __repr__(self):
        return f"<Customer(id={self.id}, name='{self.name}', outstanding={self.outstanding_amount})>"
