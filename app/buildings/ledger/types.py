"""
Data types for ledger operations.

This module defines dataclasses used throughout the ledger system
for type-safe data transfer between layers.

Types:
    RecordEntryParams: Parameters for recording a ledger entry
    LedgerPage: One page of an apartment's ledger
    BalanceDiscrepancy: Cached balance that disagrees with the ledger
    ReconciliationReport: Result of a reconciliation pass

Usage:
    from buildings.ledger.types import RecordEntryParams

    params = RecordEntryParams(
        apartment_id=apartment.id,
        entry_type=EntryType.CREDIT,
        amount=Decimal("250.00"),
        reference_type=ReferenceType.PAYMENT,
        reference_id=payment.id,
        description="Payment of 250.00",
    )
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

from buildings.ledger.exceptions import InvalidLedgerAmount
from buildings.ledger.models import EntryType, LedgerEntry, ReferenceType

MONTH_KEY_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


@dataclass
class RecordEntryParams:
    """
    Parameters for recording a ledger entry.

    Required Attributes:
        apartment_id: UUID of the apartment whose ledger receives the entry
        entry_type: "debit" or "credit"
        amount: Non-negative amount with at most two decimal places
        reference_type: Semantic origin (see ReferenceType)

    Optional Attributes:
        reference_id: UUID of the originating record
        description: Human-readable description
        created_by: Actor posting the entry (None for batch jobs)
        occupancy_period_id: Tenancy to tag the entry with
        billing_month: YYYY-MM month a subscription charge covers
        source_apartment_id: Unit actually billed, when routed to a parent

    Raises:
        InvalidLedgerAmount: If amount is negative, not a number, or has
            sub-cent precision
        ValueError: If entry_type, reference_type or billing_month is
            malformed

    Example:
        params = RecordEntryParams(
            apartment_id=parent.id,
            entry_type=EntryType.DEBIT,
            amount=Decimal("50.00"),
            reference_type=ReferenceType.SUBSCRIPTION,
            description="Storage S-1 subscription 2024-03",
            billing_month="2024-03",
            source_apartment_id=storage.id,
        )
    """

    # Required fields
    apartment_id: uuid.UUID
    entry_type: str
    amount: Decimal
    reference_type: str

    # Optional fields
    reference_id: uuid.UUID | None = None
    description: str = ""
    created_by: str | None = None
    occupancy_period_id: uuid.UUID | None = None
    billing_month: str | None = None
    source_apartment_id: uuid.UUID | None = None

    def __post_init__(self) -> None:
        """Validate params after initialization."""
        try:
            amount = Decimal(str(self.amount)) if isinstance(self.amount, float) else Decimal(self.amount)
        except (InvalidOperation, TypeError, ValueError) as e:
            raise InvalidLedgerAmount(
                f"Ledger amount is not a number: {self.amount!r}",
                details={"amount": repr(self.amount)},
            ) from e
        if not amount.is_finite() or amount < 0:
            raise InvalidLedgerAmount(
                f"Ledger amount must be non-negative, got {amount}",
                details={"amount": str(amount)},
            )
        if amount != amount.quantize(Decimal("0.01")):
            raise InvalidLedgerAmount(
                f"Ledger amount must have at most two decimal places, got {amount}",
                details={"amount": str(amount)},
            )
        self.amount = amount.quantize(Decimal("0.01"))

        if self.entry_type not in EntryType.values:
            raise ValueError(f"Unknown entry_type: {self.entry_type!r}")
        if self.reference_type not in ReferenceType.values:
            raise ValueError(f"Unknown reference_type: {self.reference_type!r}")
        if self.billing_month is not None and not MONTH_KEY_RE.match(self.billing_month):
            raise ValueError(f"billing_month must be YYYY-MM, got {self.billing_month!r}")


@dataclass
class LedgerPage:
    """
    One page of an apartment's ledger, newest entries first.

    Attributes:
        entries: Entries on this page
        total: Number of entries matching the query across all pages
        limit: Page size used
        offset: Number of entries skipped
    """

    entries: list[LedgerEntry]
    total: int
    limit: int
    offset: int

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.entries) < self.total


@dataclass
class BalanceDiscrepancy:
    """
    An apartment whose cached balance disagrees with its ledger sum.

    Attributes:
        apartment_id: Apartment with drift
        apartment_number: Unit number, for display
        building_id: Building of the apartment
        building_name: Building name, for display
        cached_balance: Value stored on the apartment
        ledger_balance: Freshly computed signed ledger sum
    """

    apartment_id: uuid.UUID
    apartment_number: str
    building_id: uuid.UUID
    building_name: str
    cached_balance: Decimal
    ledger_balance: Decimal

    @property
    def difference(self) -> Decimal:
        return self.cached_balance - self.ledger_balance

    def to_dict(self) -> dict[str, Any]:
        return {
            "apartment_id": str(self.apartment_id),
            "apartment_number": self.apartment_number,
            "building_id": str(self.building_id),
            "building_name": self.building_name,
            "cached_balance": str(self.cached_balance),
            "ledger_balance": str(self.ledger_balance),
            "difference": str(self.difference),
        }


@dataclass
class ReconciliationReport:
    """
    Result of comparing every cached balance to its ledger.

    Attributes:
        apartments_checked: Number of apartments compared
        discrepancies: Apartments whose values differ by more than epsilon
    """

    apartments_checked: int = 0
    discrepancies: list[BalanceDiscrepancy] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not self.discrepancies
