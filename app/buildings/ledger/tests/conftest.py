"""
Pytest fixtures for ledger tests.

Sections:
    - Period Fixtures: Occupancy periods to tag entries with
    - Entry Fixtures: Pre-configured ledger entries
"""

from decimal import Decimal

import pytest

from buildings.ledger.models import EntryType, ReferenceType
from buildings.ledger.tests.factories import LedgerEntryFactory
from buildings.tests.factories import OccupancyPeriodFactory

# ==========================================================================
# Period Fixtures
# ==========================================================================


@pytest.fixture
def period(db, apartment):
    """Active occupancy period on ``apartment``."""
    return OccupancyPeriodFactory(apartment=apartment)


# ==========================================================================
# Entry Fixtures
# ==========================================================================


@pytest.fixture
def debit_entry(db, apartment):
    """300.00 subscription debit for 2024-03."""
    return LedgerEntryFactory(
        apartment=apartment,
        entry_type=EntryType.DEBIT,
        amount=Decimal("300.00"),
        reference_type=ReferenceType.SUBSCRIPTION,
        reference_id=None,
        description="Monthly subscription 2024-03",
        billing_month="2024-03",
        source_apartment_id=apartment.id,
    )


@pytest.fixture
def credit_entry(db, apartment):
    """120.00 payment credit."""
    return LedgerEntryFactory(
        apartment=apartment,
        entry_type=EntryType.CREDIT,
        amount=Decimal("120.00"),
        reference_type=ReferenceType.PAYMENT,
        description="Payment of 120.00",
    )
