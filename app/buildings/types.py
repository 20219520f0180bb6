"""
Data types for building service operations.

Types:
    ExpenseAllocation: Part of a payment applied to an expense share
    SubscriptionAllocation: Part of a payment applied to a subscription debit
    PeriodStatement: Balance and ledger page scoped to an occupancy period
    PendingCharge / UpcomingCharges: What an apartment is about to owe

Usage:
    from buildings.types import ExpenseAllocation

    PaymentService.create_payment(
        apartment.id, "2024-03", Decimal("400.00"),
        allocations=[ExpenseAllocation(share.id, Decimal("100.00"))],
    )
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING

from buildings.ledger.proration import to_money

if TYPE_CHECKING:
    from buildings.ledger.types import LedgerPage
    from buildings.models import OccupancyPeriod


@dataclass
class ExpenseAllocation:
    """
    Apply ``amount`` of a payment to one apartment expense share.

    Attributes:
        apartment_expense_id: Share being paid
        amount: Amount to apply (positive)
    """

    apartment_expense_id: uuid.UUID
    amount: Decimal

    def __post_init__(self) -> None:
        self.amount = to_money(self.amount)
        if self.amount <= 0:
            raise ValueError(f"Allocation amount must be positive, got {self.amount}")


@dataclass
class SubscriptionAllocation:
    """
    Apply ``amount`` of a payment to one subscription debit entry.

    Attributes:
        ledger_entry_id: Subscription debit being paid
        amount: Amount to apply (positive)
    """

    ledger_entry_id: uuid.UUID
    amount: Decimal

    def __post_init__(self) -> None:
        self.amount = to_money(self.amount)
        if self.amount <= 0:
            raise ValueError(f"Allocation amount must be positive, got {self.amount}")


@dataclass
class PeriodStatement:
    """
    Balance and entries of one occupancy period (or of all time).

    Attributes:
        apartment_id: Apartment the statement is for
        period: The period, or None for an all-time statement
        balance: Signed sum of the statement's entries
        ledger: Newest-first page of the statement's entries
    """

    apartment_id: uuid.UUID
    period: OccupancyPeriod | None
    balance: Decimal
    ledger: LedgerPage


@dataclass
class PendingCharge:
    apartment_expense_id: uuid.UUID
    description: str
    remaining: Decimal


@dataclass
class UpcomingCharges:
    """
    Subscription amount plus unpaid expense remainders.

    Attributes:
        subscription_amount: Monthly subscription of the apartment
        pending_expenses: Unpaid, non-canceled expense shares
    """

    subscription_amount: Decimal
    pending_expenses: list[PendingCharge] = field(default_factory=list)

    @property
    def total(self) -> Decimal:
        return to_money(self.subscription_amount + sum((p.remaining for p in self.pending_expenses), Decimal("0")))
