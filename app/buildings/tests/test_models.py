"""
Tests for building domain models.

Covers the derived properties services rely on (ledger routing, billing
eligibility, share remainders) and the database constraints that back
the service-level rules.
"""

import datetime
from decimal import Decimal

import pytest
from django.db import IntegrityError, transaction

from buildings.models import (
    ApartmentStatus,
    ApartmentType,
    OccupancyPeriodStatus,
    PaymentAllocation,
    SubscriptionStatus,
)
from buildings.tests.factories import (
    ApartmentExpenseFactory,
    ApartmentFactory,
    ExpenseFactory,
    OccupancyPeriodFactory,
    ParkingUnitFactory,
    PaymentFactory,
    StorageUnitFactory,
)


class TestApartmentLedgerOwner:
    """Tests for Apartment.ledger_owner_id."""

    def test_regular_apartment_owns_its_ledger(self, db, apartment):
        assert apartment.ledger_owner_id == apartment.id
        assert apartment.is_child_unit is False

    def test_storage_posts_to_parent(self, db, apartment, storage_unit):
        assert storage_unit.ledger_owner_id == apartment.id
        assert storage_unit.is_child_unit is True

    def test_parking_posts_to_parent(self, db, apartment):
        parking = ParkingUnitFactory(parent_apartment=apartment)

        assert parking.ledger_owner_id == apartment.id

    def test_orphan_child_falls_back_to_itself(self, db, building):
        orphan = ApartmentFactory(building=building, apartment_type=ApartmentType.STORAGE)

        assert orphan.ledger_owner_id == orphan.id

    def test_str_uses_type_and_number(self, db, storage_unit):
        assert str(storage_unit) == "Storage S-1"


class TestBillsSubscription:
    """Tests for Apartment.bills_subscription."""

    def test_occupied_active_positive(self, db, building):
        apartment = ApartmentFactory(
            building=building,
            status=ApartmentStatus.OCCUPIED,
            occupancy_start=datetime.date(2024, 1, 1),
        )

        assert apartment.bills_subscription is True

    @pytest.mark.parametrize(
        "overrides",
        [
            {"status": ApartmentStatus.VACANT},
            {"subscription_status": SubscriptionStatus.INACTIVE},
            {"subscription_amount": Decimal("0.00")},
            {"occupancy_start": None},
        ],
    )
    def test_not_billed(self, db, building, overrides):
        values = {
            "building": building,
            "status": ApartmentStatus.OCCUPIED,
            "occupancy_start": datetime.date(2024, 1, 1),
        }
        values.update(overrides)

        assert ApartmentFactory(**values).bills_subscription is False


class TestApartmentConstraints:
    """Tests for Apartment database constraints."""

    def test_number_unique_within_building(self, db, apartment):
        with pytest.raises(IntegrityError), transaction.atomic():
            ApartmentFactory(building=apartment.building, apartment_number=apartment.apartment_number)

    def test_same_number_in_other_building(self, db, apartment, other_building):
        twin = ApartmentFactory(building=other_building, apartment_number=apartment.apartment_number)

        assert twin.id != apartment.id


class TestOccupancyPeriodConstraints:
    """Tests for OccupancyPeriod database constraints."""

    def test_one_active_period_per_apartment(self, db, apartment):
        OccupancyPeriodFactory(apartment=apartment)

        with pytest.raises(IntegrityError), transaction.atomic():
            OccupancyPeriodFactory(apartment=apartment)

    def test_closed_periods_do_not_count(self, db, apartment):
        OccupancyPeriodFactory(apartment=apartment, status=OccupancyPeriodStatus.CLOSED)
        OccupancyPeriodFactory(apartment=apartment, status=OccupancyPeriodStatus.CLOSED)

        active = OccupancyPeriodFactory(apartment=apartment)

        assert active.is_active is True


class TestApartmentExpense:
    """Tests for ApartmentExpense."""

    def test_remaining(self, db):
        share = ApartmentExpenseFactory(amount=Decimal("100.00"), amount_paid=Decimal("40.00"))

        assert share.remaining == Decimal("60.00")

    def test_remaining_never_negative(self, db):
        share = ApartmentExpenseFactory(amount=Decimal("100.00"), amount_paid=Decimal("120.00"))

        assert share.remaining == Decimal("0.00")

    def test_one_share_per_apartment_and_expense(self, db):
        share = ApartmentExpenseFactory()

        with pytest.raises(IntegrityError), transaction.atomic():
            ApartmentExpenseFactory(apartment=share.apartment, expense=share.expense)


class TestExpenseConstraints:
    """Tests for Expense database constraints."""

    def test_one_child_per_parent_and_date(self, db, building):
        parent = ExpenseFactory(building=building, is_recurring=True)
        ExpenseFactory(building=building, parent_expense=parent, expense_date=datetime.date(2024, 3, 1))

        with pytest.raises(IntegrityError), transaction.atomic():
            ExpenseFactory(building=building, parent_expense=parent, expense_date=datetime.date(2024, 3, 1))

    def test_unparented_expenses_may_share_a_date(self, db, building):
        ExpenseFactory(building=building, expense_date=datetime.date(2024, 3, 1))
        ExpenseFactory(building=building, expense_date=datetime.date(2024, 3, 1))

        assert building.expenses.count() == 2


class TestPaymentAllocationConstraints:
    """Tests for PaymentAllocation target constraint."""

    def test_requires_exactly_one_target(self, db):
        payment = PaymentFactory()

        with pytest.raises(IntegrityError), transaction.atomic():
            PaymentAllocation.objects.create(payment=payment, amount_allocated=Decimal("1.00"))

    def test_expense_target(self, db):
        share = ApartmentExpenseFactory()
        payment = PaymentFactory(apartment=share.apartment)

        allocation = PaymentAllocation.objects.create(
            payment=payment,
            apartment_expense=share,
            amount_allocated=Decimal("10.00"),
        )

        assert allocation.ledger_entry_id is None


class TestFactories:
    def test_storage_factory_shares_parent_building(self, db):
        storage = StorageUnitFactory()

        assert storage.building_id == storage.parent_apartment.building_id
