"""
Tests for ledger data types.

RecordEntryParams validates amounts before anything reaches the database;
the report types carry the arithmetic reconciliation relies on.
"""

import uuid
from decimal import Decimal

import pytest

from buildings.ledger.exceptions import InvalidLedgerAmount, LedgerError
from buildings.ledger.models import EntryType, ReferenceType
from buildings.ledger.types import (
    BalanceDiscrepancy,
    LedgerPage,
    ReconciliationReport,
    RecordEntryParams,
)
from core.exceptions import ValidationError


def make_params(**overrides):
    values = {
        "apartment_id": uuid.uuid4(),
        "entry_type": EntryType.DEBIT,
        "amount": Decimal("10.00"),
        "reference_type": ReferenceType.EXPENSE,
    }
    values.update(overrides)
    return RecordEntryParams(**values)


class TestRecordEntryParams:
    """Tests for RecordEntryParams validation."""

    def test_valid_params(self):
        params = make_params(amount=Decimal("25.5"))

        assert params.amount == Decimal("25.50")
        assert params.description == ""
        assert params.reference_id is None

    def test_zero_amount_allowed(self):
        assert make_params(amount=Decimal("0")).amount == Decimal("0.00")

    def test_float_amount_coerced_through_str(self):
        """0.1 should become 0.10, not its binary expansion."""
        assert make_params(amount=0.1).amount == Decimal("0.10")

    def test_negative_amount_rejected(self):
        with pytest.raises(InvalidLedgerAmount) as exc_info:
            make_params(amount=Decimal("-0.01"))

        assert exc_info.value.error_code == "INVALID_LEDGER_AMOUNT"
        assert exc_info.value.details == {"amount": "-0.01"}

    def test_sub_cent_amount_rejected(self):
        with pytest.raises(InvalidLedgerAmount):
            make_params(amount=Decimal("1.005"))

    def test_non_numeric_amount_rejected(self):
        with pytest.raises(InvalidLedgerAmount):
            make_params(amount="ten")

    def test_infinite_amount_rejected(self):
        with pytest.raises(InvalidLedgerAmount):
            make_params(amount=Decimal("Infinity"))

    def test_invalid_amount_is_a_validation_error(self):
        """Callers may catch either the ledger family or the core family."""
        with pytest.raises(LedgerError):
            make_params(amount=Decimal("-1"))
        with pytest.raises(ValidationError):
            make_params(amount=Decimal("-1"))

    def test_unknown_entry_type_rejected(self):
        with pytest.raises(ValueError, match="entry_type"):
            make_params(entry_type="sideways")

    def test_unknown_reference_type_rejected(self):
        with pytest.raises(ValueError, match="reference_type"):
            make_params(reference_type="gift")

    @pytest.mark.parametrize("month", ["2024-13", "2024-3", "24-03", "2024-00"])
    def test_malformed_billing_month_rejected(self, month):
        with pytest.raises(ValueError, match="billing_month"):
            make_params(billing_month=month)

    def test_billing_month_accepted(self):
        assert make_params(billing_month="2024-12").billing_month == "2024-12"


class TestLedgerPage:
    """Tests for LedgerPage.has_more."""

    def test_has_more_when_entries_remain(self):
        page = LedgerPage(entries=[object(), object()], total=5, limit=2, offset=0)

        assert page.has_more is True

    def test_last_page(self):
        page = LedgerPage(entries=[object()], total=5, limit=2, offset=4)

        assert page.has_more is False


class TestBalanceDiscrepancy:
    """Tests for BalanceDiscrepancy."""

    def test_difference_is_cached_minus_ledger(self):
        discrepancy = BalanceDiscrepancy(
            apartment_id=uuid.uuid4(),
            apartment_number="4B",
            building_id=uuid.uuid4(),
            building_name="Rothschild 12",
            cached_balance=Decimal("10.00"),
            ledger_balance=Decimal("-290.00"),
        )

        assert discrepancy.difference == Decimal("300.00")

    def test_to_dict_serializes_values_as_strings(self):
        apartment_id = uuid.uuid4()
        discrepancy = BalanceDiscrepancy(
            apartment_id=apartment_id,
            apartment_number="4B",
            building_id=uuid.uuid4(),
            building_name="Rothschild 12",
            cached_balance=Decimal("0.00"),
            ledger_balance=Decimal("-50.00"),
        )

        data = discrepancy.to_dict()

        assert data["apartment_id"] == str(apartment_id)
        assert data["cached_balance"] == "0.00"
        assert data["ledger_balance"] == "-50.00"
        assert data["difference"] == "50.00"


class TestReconciliationReport:
    def test_empty_report_is_clean(self):
        assert ReconciliationReport().is_clean is True
