"""
Ledger and customer enumerations.
"""

import enum


class LedgerEntryType(str, enum.Enum):
    """Ledger entry type enumeration."""
    DEBIT = "debit"  # Manual charge, customer owes more
    CREDIT = "credit"  # Manual credit note, customer owes less
    ORDER = "order"  # Delivered order, behaves like DEBIT
    PAYMENT = "payment"  # Approved collection, behaves like CREDIT
    ADJUSTMENT = "adjustment"  # Signed by its direction
    OPENING_BALANCE = "opening_balance"  # Resets the running total


class AdjustmentDirection(str, enum.Enum):
    """Which way an adjustment moves the balance."""
    INCREASE = "increase"
    DECREASE = "decrease"


class ReferenceModel(str, enum.Enum):
    """Source record kinds a system-generated entry can point at."""
    ORDER = "order"
    COLLECTION = "collection"
    USER = "user"


class CustomerType(str, enum.Enum):
    """Customer segment."""
    RETAIL = "retail"
    WHOLESALE = "wholesale"
    DISTRIBUTOR = "distributor"
