"""
Ledger domain value types.

Entry is the validated, immutable input to the reconciliation engine.
Construction fails fast with LedgerValidationError on a malformed entry.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional, Any

from backend.app.core.exceptions import LedgerValidationError
from backend.app.models.ledger_enums import LedgerEntryType, AdjustmentDirection, ReferenceModel

ZERO = Decimal("0")


def _coerce_enum(enum_cls, value: Any, field_name: str):
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise LedgerValidationError(
            f"Invalid {field_name}: {value!r}", field=field_name, value=value
        )


def to_amount(value: Any) -> Decimal:
    """Coerce a monetary value to Decimal, rejecting negatives and non-finite values."""
    if isinstance(value, bool):
        raise LedgerValidationError("Amount must be numeric", field="amount", value=value)
    try:
        # str() keeps floats like 1108.8 from picking up binary noise
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise LedgerValidationError("Amount must be numeric", field="amount", value=value)
    if not amount.is_finite():
        raise LedgerValidationError("Amount must be finite", field="amount", value=value)
    if amount < ZERO:
        raise LedgerValidationError("Amount cannot be negative", field="amount", value=value)
    return amount


@dataclass(frozen=True)
class Entry:
    """
    One financial event against a customer account.

    Attributes:
        customer_id: Owning customer
        entry_date: Calendar date used for ordering
        entry_type: Closed set of six types (see LedgerEntryType)
        amount: Non-negative magnitude; sign comes from entry_type
        description: Free-text label
        reference: Optional pointer to the source record (order/collection number)
        direction: Adjustments only; defaults to INCREASE when absent
        id / created_at: Persistence identity, used as ordering tie-breaks
        customer_name: Display name, searched by the text filter
    """
    customer_id: int
    entry_date: date
    entry_type: LedgerEntryType
    amount: Decimal
    description: str = ""
    reference: Optional[str] = None
    direction: Optional[AdjustmentDirection] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    reference_id: Optional[int] = None
    reference_model: Optional[ReferenceModel] = None
    customer_name: Optional[str] = field(default=None, compare=False)

    def __post_init__(self):
        entry_type = _coerce_enum(LedgerEntryType, self.entry_type, "entry_type")
        if entry_type is None:
            raise LedgerValidationError("Entry type is required", field="entry_type", value=None)
        object.__setattr__(self, "entry_type", entry_type)
        object.__setattr__(self, "amount", to_amount(self.amount))

        direction = _coerce_enum(AdjustmentDirection, self.direction, "direction")
        if direction is not None and entry_type != LedgerEntryType.ADJUSTMENT:
            raise LedgerValidationError(
                "Direction is only allowed on adjustment entries",
                field="direction", value=direction.value
            )
        object.__setattr__(self, "direction", direction)
        object.__setattr__(
            self, "reference_model",
            _coerce_enum(ReferenceModel, self.reference_model, "reference_model")
        )

        entry_date = self.entry_date
        if isinstance(entry_date, datetime):
            entry_date = entry_date.date()
        elif isinstance(entry_date, str):
            try:
                entry_date = date.fromisoformat(entry_date[:10])
            except ValueError:
                raise LedgerValidationError("Invalid entry date", field="entry_date", value=entry_date)
        if not isinstance(entry_date, date):
            raise LedgerValidationError("Entry date is required", field="entry_date", value=entry_date)
        object.__setattr__(self, "entry_date", entry_date)

    @property
    def is_system_generated(self) -> bool:
        return self.reference_id is not None

    @classmethod
    def from_model(cls, row, customer_name: Optional[str] = None) -> "Entry":
        """Build an Entry from a LedgerEntry ORM row."""
        return cls(
            id=row.id,
            customer_id=row.customer_id,
            entry_date=row.entry_date,
            entry_type=row.entry_type,
            amount=row.amount,
            description=row.description or "",
            reference=row.reference,
            direction=row.direction,
            created_at=row.created_at,
            reference_id=row.reference_id,
            reference_model=row.reference_model,
            customer_name=customer_name,
        )
