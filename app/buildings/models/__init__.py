"""
Building domain models.

This module contains all building-related models:
- Building: A residential building
- Apartment: A billed unit (regular apartment, storage or parking)
- OccupancyPeriod: One tenancy of an apartment
- Expense / ApartmentExpense: Building expenses and per-apartment shares
- Payment / PaymentAllocation: Money received and what it paid for
- LedgerEntry: Append-only ledger rows (defined in buildings.ledger)
"""

from buildings.ledger.models import EntryType, LedgerEntry, ReferenceType
from buildings.models.apartment import (
    Apartment,
    ApartmentStatus,
    ApartmentType,
    SubscriptionStatus,
)
from buildings.models.building import Building
from buildings.models.expense import ApartmentExpense, Expense, RecurringType
from buildings.models.occupancy import OccupancyPeriod, OccupancyPeriodStatus
from buildings.models.payment import Payment, PaymentAllocation

__all__ = [
    "Apartment",
    "ApartmentExpense",
    "ApartmentStatus",
    "ApartmentType",
    "Building",
    "EntryType",
    "Expense",
    "LedgerEntry",
    "OccupancyPeriod",
    "OccupancyPeriodStatus",
    "Payment",
    "PaymentAllocation",
    "RecurringType",
    "ReferenceType",
    "SubscriptionStatus",
]
