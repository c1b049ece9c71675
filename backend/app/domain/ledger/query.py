"""
Ledger Query Layer.

Pure filtering over already-fetched entries. Fetching lives in
LedgerService; this module never touches the database.
"""

from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional, Union

from backend.app.core.exceptions import LedgerValidationError
from backend.app.domain.ledger.types import Entry
from backend.app.models.ledger_enums import LedgerEntryType

ALL = "all"

# A customer id, or "all" for every customer
CustomerScope = Union[int, str]


def parse_scope(value: Optional[Union[int, str]]) -> CustomerScope:
    """Normalize a scope from a query string: None, "" and "all" mean every customer."""
    if value is None or value == "" or value == ALL:
        return ALL
    if isinstance(value, int):
        return value
    try:
        return int(value)
    except ValueError:
        raise LedgerValidationError("Invalid customer scope", field="customer_id", value=value)


@dataclass(frozen=True)
class LedgerFilters:
    """
    Optional filters, combined with logical AND.

    text: case-insensitive substring over description, reference and customer name
    on_date: exact entry_date match
    entry_type: exact type match, or "all"
    """
    text: Optional[str] = None
    on_date: Optional[date] = None
    entry_type: Optional[Union[LedgerEntryType, str]] = None

    def __post_init__(self):
        entry_type = self.entry_type
        if entry_type is None or entry_type == "" or entry_type == ALL:
            object.__setattr__(self, "entry_type", None)
        elif not isinstance(entry_type, LedgerEntryType):
            try:
                object.__setattr__(self, "entry_type", LedgerEntryType(entry_type))
            except ValueError:
                raise LedgerValidationError("Invalid entry type filter", field="type", value=entry_type)

    def matches(self, entry: Entry) -> bool:
        if self.text:
            needle = self.text.lower()
            haystacks = (entry.description, entry.reference, entry.customer_name)
            if not any(h and needle in h.lower() for h in haystacks):
                return False
        if self.on_date is not None and entry.entry_date != self.on_date:
            return False
        if self.entry_type is not None and entry.entry_type != self.entry_type:
            return False
        return True


def filter_entries(entries: Iterable[Entry], filters: Optional[LedgerFilters] = None) -> List[Entry]:
    """Return the entries matching every filter. An empty result is valid."""
    if filters is None:
        return list(entries)
    return [entry for entry in entries if filters.matches(entry)]
