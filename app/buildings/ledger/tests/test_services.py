"""
Tests for LedgerService.

This module tests the service layer for ledger operations, including
entry recording, reversals, duplicate subscription handling, paging and
the lookups used for idempotency and period tagging.
"""

import uuid
from decimal import Decimal

import pytest
from django.conf import settings
from freezegun import freeze_time

from buildings.ledger.balance import BalanceService
from buildings.ledger.models import EntryType, LedgerEntry, ReferenceType
from buildings.ledger.services import LedgerService
from buildings.ledger.tests.factories import LedgerEntryFactory
from buildings.ledger.types import RecordEntryParams
from core.services import unit_of_work


class TestRecordEntry:
    """Tests for LedgerService.record_entry()."""

    def test_creates_entry_with_all_fields(self, db, apartment, period):
        """Should persist every field from the params."""
        reference_id = uuid.uuid4()
        params = RecordEntryParams(
            apartment_id=apartment.id,
            entry_type=EntryType.CREDIT,
            amount=Decimal("250.00"),
            reference_type=ReferenceType.PAYMENT,
            reference_id=reference_id,
            description="Payment of 250.00",
            created_by="admin@example.com",
            occupancy_period_id=period.id,
        )

        entry = LedgerService.record_entry(params)

        entry.refresh_from_db()
        assert entry.apartment_id == apartment.id
        assert entry.entry_type == EntryType.CREDIT
        assert entry.amount == Decimal("250.00")
        assert entry.reference_type == ReferenceType.PAYMENT
        assert entry.reference_id == reference_id
        assert entry.created_by == "admin@example.com"
        assert entry.occupancy_period_id == period.id
        assert entry.created_at is not None

    def test_does_not_touch_cached_balance(self, db, apartment):
        """Recording is separate from refreshing; callers refresh explicitly."""
        LedgerService.record_payment(apartment.id, uuid.uuid4(), Decimal("10.00"))

        apartment.refresh_from_db()
        assert apartment.cached_balance == Decimal("0.00")

    def test_duplicate_subscription_returns_existing_entry(self, db, apartment):
        """A second charge for the same unit and month writes nothing."""
        first = LedgerService.record_subscription_charge(apartment.id, Decimal("300.00"), "2024-03")

        second = LedgerService.record_subscription_charge(
            apartment.id,
            Decimal("300.00"),
            "2024-03",
            description="March, posted again",
        )

        assert second.id == first.id
        assert LedgerEntry.objects.filter(apartment=apartment, reference_type=ReferenceType.SUBSCRIPTION).count() == 1

    def test_duplicate_inside_unit_of_work_keeps_transaction_usable(self, db, apartment):
        """The duplicate is absorbed in a savepoint; later writes still commit."""
        with unit_of_work() as uow:
            LedgerService.record_subscription_charge(apartment.id, Decimal("300.00"), "2024-03", uow=uow)
            LedgerService.record_subscription_charge(apartment.id, Decimal("300.00"), "2024-03", uow=uow)
            LedgerService.record_payment(apartment.id, uuid.uuid4(), Decimal("300.00"), uow=uow)

        assert LedgerEntry.objects.filter(apartment=apartment).count() == 2

    def test_rolled_back_with_unit_of_work(self, db, apartment):
        """Entries posted in a failed unit of work are discarded."""
        with pytest.raises(RuntimeError), unit_of_work() as uow:
            LedgerService.record_payment(apartment.id, uuid.uuid4(), Decimal("10.00"), uow=uow)
            raise RuntimeError("boom")

        assert not LedgerEntry.objects.filter(apartment=apartment).exists()


class TestRecordReversal:
    """Tests for LedgerService.record_reversal()."""

    def test_reversal_offsets_original(self, db, apartment):
        """Should post the opposite direction against the same reference."""
        share_id = uuid.uuid4()
        LedgerService.record_expense_charge(apartment.id, share_id, Decimal("40.00"), "Elevator repair")

        reversal = LedgerService.record_reversal(
            apartment.id,
            share_id,
            Decimal("40.00"),
            EntryType.DEBIT,
            f"Reversal of expense charge {share_id}",
        )

        assert reversal.entry_type == EntryType.CREDIT
        assert reversal.reference_type == ReferenceType.REVERSAL
        assert reversal.reference_id == share_id
        assert BalanceService.get_balance(apartment.id) == Decimal("0.00")

    def test_reverse_then_repost_nets_to_single_debit(self, db, apartment):
        """Debit, reverse, then debit X again should equal one debit of X."""
        share_id = uuid.uuid4()
        LedgerService.record_expense_charge(apartment.id, share_id, Decimal("40.00"), "Elevator repair")
        LedgerService.record_reversal(
            apartment.id,
            share_id,
            Decimal("40.00"),
            EntryType.DEBIT,
            f"Reversal of expense charge {share_id} (redistributed)",
        )

        LedgerService.record_expense_charge(apartment.id, share_id, Decimal("26.67"), "Elevator repair")

        assert BalanceService.get_balance(apartment.id) == Decimal("-26.67")
        assert LedgerEntry.objects.filter(apartment=apartment, reference_id=share_id).count() == 3

    def test_reversing_a_credit_posts_a_debit(self, db, apartment):
        payment_id = uuid.uuid4()
        LedgerService.record_payment(apartment.id, payment_id, Decimal("75.00"))

        reversal = LedgerService.record_reversal(
            apartment.id, payment_id, Decimal("75.00"), EntryType.CREDIT, f"Reversal of payment {payment_id}"
        )

        assert reversal.entry_type == EntryType.DEBIT


class TestTypedWriters:
    """Tests for the typed record_* helpers."""

    def test_record_payment_description(self, db, apartment):
        entry = LedgerService.record_payment(apartment.id, uuid.uuid4(), 250)

        assert entry.description == "Payment of 250.00"
        assert entry.entry_type == EntryType.CREDIT

    def test_record_subscription_charge_defaults(self, db, apartment):
        """Description and billed unit default from the ledger owner."""
        entry = LedgerService.record_subscription_charge(apartment.id, Decimal("300.00"), "2024-03")

        assert entry.description == "Monthly subscription 2024-03"
        assert entry.source_apartment_id == apartment.id
        assert entry.billing_month == "2024-03"
        assert entry.entry_type == EntryType.DEBIT

    def test_record_waiver_keeps_reference(self, db, apartment):
        share_id = uuid.uuid4()

        entry = LedgerService.record_waiver(apartment.id, Decimal("12.00"), "Waiver", reference_id=share_id)

        assert entry.reference_type == ReferenceType.WAIVER
        assert entry.entry_type == EntryType.CREDIT
        assert entry.reference_id == share_id

    def test_record_debit_adjustment_is_waiver_debit(self, db, apartment):
        entry = LedgerService.record_debit_adjustment(apartment.id, Decimal("5.00"), "Balance write-off")

        assert entry.reference_type == ReferenceType.WAIVER
        assert entry.entry_type == EntryType.DEBIT

    def test_record_occupancy_credit(self, db, apartment, storage_unit):
        entry = LedgerService.record_occupancy_credit(
            apartment.id,
            Decimal("33.33"),
            "Storage S-1 occupancy credit 2024-04-10",
            source_apartment_id=storage_unit.id,
        )

        assert entry.reference_type == ReferenceType.OCCUPANCY_CREDIT
        assert entry.entry_type == EntryType.CREDIT
        assert entry.source_apartment_id == storage_unit.id


class TestGetLedger:
    """Tests for LedgerService.get_ledger()."""

    def test_newest_first(self, db, apartment):
        with freeze_time("2024-03-01 10:00:00") as frozen:
            oldest = LedgerEntryFactory(apartment=apartment)
            frozen.tick()
            middle = LedgerEntryFactory(apartment=apartment)
            frozen.tick()
            newest = LedgerEntryFactory(apartment=apartment)

        page = LedgerService.get_ledger(apartment.id)

        assert [entry.id for entry in page.entries] == [newest.id, middle.id, oldest.id]

    def test_paging(self, db, apartment):
        LedgerEntryFactory.create_batch(5, apartment=apartment)

        first = LedgerService.get_ledger(apartment.id, limit=2)
        last = LedgerService.get_ledger(apartment.id, limit=2, offset=4)

        assert len(first.entries) == 2
        assert first.total == 5
        assert first.has_more is True
        assert len(last.entries) == 1
        assert last.has_more is False

    def test_pages_do_not_overlap(self, db, apartment):
        LedgerEntryFactory.create_batch(4, apartment=apartment)

        first = LedgerService.get_ledger(apartment.id, limit=2)
        second = LedgerService.get_ledger(apartment.id, limit=2, offset=2)

        assert {e.id for e in first.entries}.isdisjoint({e.id for e in second.entries})

    def test_default_and_clamped_limits(self, db, apartment):
        LedgerEntryFactory(apartment=apartment)

        assert LedgerService.get_ledger(apartment.id).limit == settings.LEDGER_PAGE_SIZE
        assert LedgerService.get_ledger(apartment.id, limit=0).limit == 1
        assert LedgerService.get_ledger(apartment.id, limit=10**6).limit == settings.LEDGER_MAX_PAGE_SIZE
        assert LedgerService.get_ledger(apartment.id, offset=-5).offset == 0

    def test_filters_by_period(self, db, apartment, period):
        tagged = LedgerEntryFactory(apartment=apartment, occupancy_period=period)
        LedgerEntryFactory(apartment=apartment)

        page = LedgerService.get_ledger(apartment.id, period_id=period.id)

        assert page.total == 1
        assert page.entries[0].id == tagged.id

    def test_only_this_apartment(self, db, apartment):
        LedgerEntryFactory(apartment=apartment)
        LedgerEntryFactory()

        assert LedgerService.get_ledger(apartment.id).total == 1


class TestGetEntry:
    """Tests for LedgerService.get_entry()."""

    def test_returns_entry(self, db, credit_entry):
        assert LedgerService.get_entry(credit_entry.id).id == credit_entry.id

    def test_returns_none_when_missing(self, db):
        assert LedgerService.get_entry(uuid.uuid4()) is None


class TestFindEntryPeriodId:
    """Tests for LedgerService.find_entry_period_id()."""

    def test_returns_period_of_original_entry(self, db, apartment, period):
        payment_id = uuid.uuid4()
        LedgerService.record_payment(apartment.id, payment_id, Decimal("50.00"), occupancy_period_id=period.id)

        assert LedgerService.find_entry_period_id(apartment.id, ReferenceType.PAYMENT, payment_id) == period.id

    def test_returns_none_for_unknown_reference(self, db, apartment):
        assert LedgerService.find_entry_period_id(apartment.id, ReferenceType.PAYMENT, uuid.uuid4()) is None


class TestHasEntryForMonth:
    """Tests for LedgerService.has_entry_for_month()."""

    def test_found_regardless_of_description(self, db, apartment):
        LedgerService.record_subscription_charge(
            apartment.id, Decimal("300.00"), "2024-03", description="March fee (manual)"
        )

        assert LedgerService.has_entry_for_month(apartment.id, ReferenceType.SUBSCRIPTION, "2024-03") is True

    def test_other_month_not_found(self, db, debit_entry, apartment):
        assert LedgerService.has_entry_for_month(apartment.id, ReferenceType.SUBSCRIPTION, "2024-04") is False

    def test_keyed_by_billed_unit(self, db, apartment, storage_unit, debit_entry):
        """The parent's own charge does not count as the storage unit's."""
        assert (
            LedgerService.has_entry_for_month(
                apartment.id,
                ReferenceType.SUBSCRIPTION,
                "2024-03",
                source_apartment_id=storage_unit.id,
            )
            is False
        )


class TestHasEntryByDescription:
    """Tests for LedgerService.has_entry_by_description()."""

    def test_exact_match(self, db, apartment, debit_entry):
        assert LedgerService.has_entry_by_description(
            apartment.id, ReferenceType.SUBSCRIPTION, "Monthly subscription 2024-03"
        )

    def test_different_text_not_found(self, db, apartment, debit_entry):
        assert not LedgerService.has_entry_by_description(
            apartment.id, ReferenceType.SUBSCRIPTION, "Monthly subscription 2024-04"
        )
