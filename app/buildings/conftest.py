"""
Pytest fixtures shared by the buildings test packages.

Fixtures that only create rows use the factories; fixtures that need the
ledger to follow (move-ins, charges) go through the services, so their
cached balances always match the ledger.

Sections:
    - Building Fixtures
    - Apartment Fixtures: vacant, occupied, child units
"""

from datetime import date
from decimal import Decimal

import pytest

from buildings.models import ApartmentStatus, SubscriptionStatus
from buildings.services import ApartmentService
from buildings.tests.factories import (
    ApartmentFactory,
    BuildingFactory,
    StorageUnitFactory,
)

# ==========================================================================
# Building Fixtures
# ==========================================================================


@pytest.fixture
def building(db):
    """An empty building."""
    return BuildingFactory(name="Rothschild 12")


@pytest.fixture
def other_building(db):
    return BuildingFactory(name="Dizengoff 80")


# ==========================================================================
# Apartment Fixtures
# ==========================================================================


@pytest.fixture
def apartment(db, building):
    """Vacant regular apartment with an active 300.00 subscription."""
    return ApartmentFactory(building=building, apartment_number="1")


@pytest.fixture
def occupied_apartment(db, building):
    """
    Regular apartment occupied since 2024-01-01.

    Moved in through ApartmentService with January as the last billed
    month, so its ledger holds one 300.00 subscription debit.
    """
    apartment = ApartmentFactory(building=building, apartment_number="2")
    return ApartmentService.start_occupancy(
        apartment.id,
        occupancy_start=date(2024, 1, 1),
        tenant_name="Dana Levi",
        as_of=date(2024, 1, 31),
    )


@pytest.fixture
def occupied_without_ledger(db, building):
    """
    Occupied regular apartment created directly, with no period or entries.

    Useful for expense splitting tests where subscriptions would only add
    noise to the ledger.
    """

    def make(number: str, occupancy_start: date = date(2024, 1, 1)):
        return ApartmentFactory(
            building=building,
            apartment_number=number,
            status=ApartmentStatus.OCCUPIED,
            occupancy_start=occupancy_start,
            subscription_status=SubscriptionStatus.INACTIVE,
        )

    return make


@pytest.fixture
def storage_unit(db, apartment):
    """Vacant storage unit S-1 attached to ``apartment``, 50.00 a month."""
    return StorageUnitFactory(
        parent_apartment=apartment,
        apartment_number="S-1",
        subscription_amount=Decimal("50.00"),
    )
