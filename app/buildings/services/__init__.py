"""
Building services for apartment, occupancy, expense and payment operations.

This module provides:
- ApartmentService: Apartment creation, move-in/move-out, write-off, deletion
- OccupancyService: Occupancy periods and period statements
- SubscriptionService: Monthly subscription charges and backfill
- ExpenseService: Expense splitting, recurrence and move-in backfill
- PaymentService: Payments and their allocations
- ReconciliationService: Cached balance drift detection

Usage:
    from buildings.services import ApartmentService, ExpenseService

    apartment = ApartmentService.start_occupancy(apartment.id, date(2024, 1, 15))

    ExpenseService.create_expense(
        building.id, Decimal("100.00"), date(2024, 3, 5), description="Elevator repair",
    )

    # Check for drift
    from buildings.services import ReconciliationService

    report = ReconciliationService.get_reconciliation()
"""

from buildings.services.apartment_service import ApartmentService
from buildings.services.expense_service import ExpenseService
from buildings.services.occupancy_service import (
    ALL_PERIODS,
    CURRENT_PERIOD,
    OccupancyService,
)
from buildings.services.payment_service import PaymentService
from buildings.services.reconciliation_service import ReconciliationService
from buildings.services.subscription_service import (
    SubscriptionService,
    subscription_description,
)

__all__ = [
    "ALL_PERIODS",
    "CURRENT_PERIOD",
    "ApartmentService",
    "ExpenseService",
    "OccupancyService",
    "PaymentService",
    "ReconciliationService",
    "SubscriptionService",
    "subscription_description",
]
