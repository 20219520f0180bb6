"""
Tests for ApartmentService.

Tests cover:
- Creation of regular, storage and parking units
- Move-in (period, subscription backfill) and move-out (termination credit,
  cascade to child units, period close)
- Write-off, upcoming charges and guarded deletion
"""

import uuid
from datetime import date
from decimal import Decimal

import pytest

from buildings.exceptions import (
    ApartmentAlreadyOccupied,
    ApartmentDeletionBlocked,
    ApartmentNotFound,
    ApartmentNotOccupied,
    BalanceAlreadyZero,
    BuildingNotFound,
    InvalidParentApartment,
)
from buildings.ledger.models import EntryType, LedgerEntry, ReferenceType
from buildings.ledger.services import LedgerService
from buildings.models import (
    Apartment,
    ApartmentStatus,
    ApartmentType,
    OccupancyPeriod,
    OccupancyPeriodStatus,
    SubscriptionStatus,
)
from buildings.services import ApartmentService, ExpenseService, OccupancyService
from buildings.tests.factories import ApartmentFactory


def balance_of(apartment):
    apartment.refresh_from_db()
    return apartment.cached_balance


@pytest.fixture
def april_tenancy(db, apartment, storage_unit):
    """Parent (300.00) and storage unit (50.00) both occupied since April 1."""
    ApartmentService.start_occupancy(apartment.id, occupancy_start=date(2024, 4, 1), as_of=date(2024, 4, 30))
    ApartmentService.start_occupancy(storage_unit.id, occupancy_start=date(2024, 4, 1), as_of=date(2024, 4, 30))
    return apartment, storage_unit


class TestCreateApartment:
    """Tests for ApartmentService.create_apartment()."""

    def test_vacant_by_default(self, db, building):
        apartment = ApartmentService.create_apartment(building.id, "7", floor=2)

        assert apartment.status == ApartmentStatus.VACANT
        assert apartment.subscription_status == SubscriptionStatus.INACTIVE
        assert apartment.cached_balance == Decimal("0.00")
        assert not OccupancyPeriod.objects.filter(apartment=apartment).exists()

    def test_created_occupied_goes_through_move_in(self, db, building):
        apartment = ApartmentService.create_apartment(
            building.id,
            "7",
            subscription_amount=Decimal("300.00"),
            subscription_status=SubscriptionStatus.ACTIVE,
            status=ApartmentStatus.OCCUPIED,
            occupancy_start=date(2024, 1, 15),
            tenant_name="Yossi",
            as_of=date(2024, 1, 31),
        )

        period = OccupancyService.get_active_period(apartment.id)
        assert apartment.status == ApartmentStatus.OCCUPIED
        assert apartment.cached_balance == Decimal("-164.52")
        assert period.start_date == date(2024, 1, 15)
        assert period.tenant_name == "Yossi"

    def test_storage_unit_with_parent(self, db, building, apartment):
        storage = ApartmentService.create_apartment(
            building.id,
            "S-9",
            apartment_type=ApartmentType.STORAGE,
            parent_apartment_id=apartment.id,
        )

        assert storage.parent_apartment_id == apartment.id
        assert storage.ledger_owner_id == apartment.id

    def test_regular_apartment_drops_parent(self, db, building, apartment):
        regular = ApartmentService.create_apartment(building.id, "8", parent_apartment_id=apartment.id)

        assert regular.parent_apartment_id is None

    def test_child_unit_requires_parent(self, db, building):
        with pytest.raises(InvalidParentApartment):
            ApartmentService.create_apartment(building.id, "P-1", apartment_type=ApartmentType.PARKING)

    def test_parent_must_be_regular(self, db, building, storage_unit):
        with pytest.raises(InvalidParentApartment):
            ApartmentService.create_apartment(
                building.id,
                "P-1",
                apartment_type=ApartmentType.PARKING,
                parent_apartment_id=storage_unit.id,
            )

    def test_parent_must_share_building(self, db, other_building, apartment):
        with pytest.raises(InvalidParentApartment) as exc_info:
            ApartmentService.create_apartment(
                other_building.id,
                "P-1",
                apartment_type=ApartmentType.PARKING,
                parent_apartment_id=apartment.id,
            )

        assert exc_info.value.error_code == "INVALID_PARENT_APARTMENT"
        assert not Apartment.objects.filter(building=other_building).exists()

    def test_unknown_parent(self, db, building):
        with pytest.raises(InvalidParentApartment):
            ApartmentService.create_apartment(
                building.id,
                "S-2",
                apartment_type=ApartmentType.STORAGE,
                parent_apartment_id=uuid.uuid4(),
            )

    def test_unknown_building(self, db):
        with pytest.raises(BuildingNotFound):
            ApartmentService.create_apartment(uuid.uuid4(), "1")


class TestStartOccupancy:
    """Tests for ApartmentService.start_occupancy()."""

    def test_already_occupied(self, db, occupied_apartment):
        with pytest.raises(ApartmentAlreadyOccupied):
            ApartmentService.start_occupancy(occupied_apartment.id, occupancy_start=date(2024, 2, 1))

    def test_unknown_apartment(self, db):
        with pytest.raises(ApartmentNotFound):
            ApartmentService.start_occupancy(uuid.uuid4(), occupancy_start=date(2024, 2, 1))

    def test_sets_occupancy_start(self, db, apartment):
        occupied = ApartmentService.start_occupancy(
            apartment.id, occupancy_start=date(2024, 2, 10), as_of=date(2024, 2, 29)
        )

        assert occupied.status == ApartmentStatus.OCCUPIED
        assert occupied.occupancy_start == date(2024, 2, 10)

    def test_charges_share_of_earlier_expense_in_month(self, db, building, occupied_without_ledger, apartment):
        occupied_without_ledger("3")
        ExpenseService.create_expense(building.id, Decimal("100.00"), date(2024, 3, 2))

        ApartmentService.start_occupancy(apartment.id, occupancy_start=date(2024, 3, 1), as_of=date(2024, 3, 1))

        entries = LedgerEntry.objects.filter(apartment=apartment, reference_type=ReferenceType.EXPENSE)
        assert entries.get().amount == Decimal("50.00")
        assert balance_of(apartment) == Decimal("-350.00")


class TestTerminateOccupancy:
    """Tests for ApartmentService.terminate_occupancy()."""

    def test_mid_month_move_out(self, db, apartment):
        """300.00 for April, out on the 10th: 20 unused days credited."""
        ApartmentService.start_occupancy(apartment.id, occupancy_start=date(2024, 4, 1), as_of=date(2024, 4, 30))

        vacated = ApartmentService.terminate_occupancy(apartment.id, terminated_on=date(2024, 4, 10))

        credit = LedgerEntry.objects.get(apartment=apartment, reference_type=ReferenceType.OCCUPANCY_CREDIT)
        period = OccupancyPeriod.objects.get(apartment=apartment)
        assert credit.amount == Decimal("200.00")
        assert credit.entry_type == EntryType.CREDIT
        assert credit.description == "Occupancy termination credit 2024-04-10"
        assert credit.occupancy_period_id == period.id
        assert vacated.status == ApartmentStatus.VACANT
        assert vacated.occupancy_start is None
        assert vacated.cached_balance == Decimal("-100.00")
        assert period.status == OccupancyPeriodStatus.CLOSED
        assert period.end_date == date(2024, 4, 10)
        assert period.closing_balance == Decimal("-100.00")

    def test_last_day_of_month_posts_no_credit(self, db, occupied_apartment):
        ApartmentService.terminate_occupancy(occupied_apartment.id, terminated_on=date(2024, 1, 31))

        assert not LedgerEntry.objects.filter(reference_type=ReferenceType.OCCUPANCY_CREDIT).exists()
        assert balance_of(occupied_apartment) == Decimal("-300.00")

    def test_inactive_subscription_posts_no_credit(self, db, occupied_without_ledger):
        tenant = occupied_without_ledger("3")

        ApartmentService.terminate_occupancy(tenant.id, terminated_on=date(2024, 4, 10))

        assert not LedgerEntry.objects.exists()

    def test_vacant_apartment_rejected(self, db, apartment):
        with pytest.raises(ApartmentNotOccupied):
            ApartmentService.terminate_occupancy(apartment.id, terminated_on=date(2024, 4, 10))

    def test_cascades_to_child_units(self, db, april_tenancy):
        """Parent credit 200.00 plus storage credit 33.33 on the parent's ledger."""
        apartment, storage = april_tenancy
        assert balance_of(apartment) == Decimal("-350.00")

        ApartmentService.terminate_occupancy(apartment.id, terminated_on=date(2024, 4, 10))

        credits = dict(
            LedgerEntry.objects.filter(apartment=apartment, reference_type=ReferenceType.OCCUPANCY_CREDIT).values_list(
                "source_apartment_id", "amount"
            )
        )
        storage_credit = LedgerEntry.objects.get(source_apartment_id=storage.id, reference_type=ReferenceType.OCCUPANCY_CREDIT)
        storage.refresh_from_db()
        assert credits == {apartment.id: Decimal("200.00"), storage.id: Decimal("33.33")}
        assert storage_credit.description == "Storage S-1 occupancy credit 2024-04-10"
        assert balance_of(apartment) == Decimal("-116.67")
        assert storage.status == ApartmentStatus.VACANT
        assert OccupancyService.get_active_period(storage.id) is None

    def test_parent_closing_balance_includes_child_credit(self, db, april_tenancy):
        apartment, _ = april_tenancy

        ApartmentService.terminate_occupancy(apartment.id, terminated_on=date(2024, 4, 10))

        period = OccupancyPeriod.objects.get(apartment=apartment)
        assert period.closing_balance == Decimal("-116.67")

    def test_child_unit_alone(self, db, april_tenancy):
        apartment, storage = april_tenancy

        ApartmentService.terminate_occupancy(storage.id, terminated_on=date(2024, 4, 10))

        apartment.refresh_from_db()
        assert apartment.status == ApartmentStatus.OCCUPIED
        assert apartment.cached_balance == Decimal("-316.67")
        assert balance_of(storage) == Decimal("0.00")


class TestWriteOffBalance:
    """Tests for ApartmentService.write_off_balance()."""

    def test_clears_debt_with_waiver(self, db, occupied_apartment):
        previous = ApartmentService.write_off_balance(occupied_apartment.id, actor="treasurer")

        entry = LedgerEntry.objects.get(reference_type=ReferenceType.WAIVER)
        assert previous == Decimal("-300.00")
        assert entry.entry_type == EntryType.CREDIT
        assert entry.amount == Decimal("300.00")
        assert entry.description == "Balance write-off (debt cleared)"
        assert entry.occupancy_period_id == OccupancyService.get_active_period_id(occupied_apartment.id)
        assert balance_of(occupied_apartment) == Decimal("0.00")

    def test_clears_overpayment_with_debit(self, db, apartment):
        LedgerService.record_payment(apartment.id, uuid.uuid4(), Decimal("50.00"))

        previous = ApartmentService.write_off_balance(apartment.id)

        entry = LedgerEntry.objects.get(reference_type=ReferenceType.WAIVER)
        assert previous == Decimal("50.00")
        assert entry.entry_type == EntryType.DEBIT
        assert entry.description == "Balance write-off (overpayment cleared)"
        assert balance_of(apartment) == Decimal("0.00")

    def test_zero_balance_rejected(self, db, apartment):
        with pytest.raises(BalanceAlreadyZero):
            ApartmentService.write_off_balance(apartment.id)


class TestGetUpcomingCharges:
    """Tests for ApartmentService.get_upcoming_charges()."""

    def test_subscription_plus_unpaid_shares(self, db, building, occupied_apartment):
        kept = ExpenseService.create_expense(
            building.id, Decimal("100.00"), date(2024, 3, 5), description="Boiler", apartment_id=occupied_apartment.id
        )
        canceled = ExpenseService.create_expense(
            building.id, Decimal("40.00"), date(2024, 3, 6), apartment_id=occupied_apartment.id
        )
        ExpenseService.cancel_apartment_expense(canceled.shares.get().id)

        upcoming = ApartmentService.get_upcoming_charges(occupied_apartment.id)

        assert upcoming.subscription_amount == Decimal("300.00")
        assert [charge.apartment_expense_id for charge in upcoming.pending_expenses] == [kept.shares.get().id]
        assert upcoming.pending_expenses[0].description == "Boiler"
        assert upcoming.total == Decimal("400.00")

    def test_inactive_subscription_counts_zero(self, db, occupied_without_ledger):
        tenant = occupied_without_ledger("3")

        upcoming = ApartmentService.get_upcoming_charges(tenant.id)

        assert upcoming.subscription_amount == Decimal("0.00")
        assert upcoming.pending_expenses == []


class TestDeleteApartment:
    """Tests for ApartmentService.delete_apartment()."""

    def test_vacant_settled_apartment_deleted(self, db, occupied_apartment):
        ApartmentService.terminate_occupancy(occupied_apartment.id, terminated_on=date(2024, 1, 31))
        ApartmentService.write_off_balance(occupied_apartment.id)

        ApartmentService.delete_apartment(occupied_apartment.id)

        assert not Apartment.objects.filter(id=occupied_apartment.id).exists()
        assert not LedgerEntry.objects.filter(apartment_id=occupied_apartment.id).exists()

    @pytest.mark.parametrize(
        ("setup", "reason"),
        [
            ("occupied", "occupied"),
            ("balance", "balance"),
            ("children", "children"),
        ],
    )
    def test_blocked(self, db, building, setup, reason):
        apartment = ApartmentFactory(building=building)
        if setup == "occupied":
            ApartmentService.start_occupancy(apartment.id, occupancy_start=date(2024, 1, 1), as_of=date(2024, 1, 1))
        elif setup == "balance":
            LedgerService.record_payment(apartment.id, uuid.uuid4(), Decimal("10.00"))
        else:
            ApartmentFactory(
                building=building,
                apartment_type=ApartmentType.PARKING,
                apartment_number="P-1",
                parent_apartment=apartment,
            )

        with pytest.raises(ApartmentDeletionBlocked) as exc_info:
            ApartmentService.delete_apartment(apartment.id)

        assert exc_info.value.details["reason"] == reason
        assert Apartment.objects.filter(id=apartment.id).exists()
