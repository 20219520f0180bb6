"""
Tests for proration, calendar-month and splitting arithmetic.

These are pure functions, so no database access is needed except for
billing_today(), which reads settings.
"""

from datetime import date
from decimal import Decimal

import pytest
from django.test import override_settings
from freezegun import freeze_time

from buildings.ledger.proration import (
    add_months,
    billing_today,
    days_in_month,
    first_month_charge,
    month_key,
    month_range,
    occupied_days,
    prorate,
    remaining_days,
    split_evenly,
    split_largest_remainder,
    termination_credit,
    to_money,
)


class TestToMoney:
    """Tests for to_money()."""

    def test_float_goes_through_str(self):
        assert to_money(0.1) == Decimal("0.10")

    def test_rounds_half_up(self):
        assert to_money("2.005") == Decimal("2.01")
        assert to_money("2.004") == Decimal("2.00")

    def test_int(self):
        assert to_money(300) == Decimal("300.00")


class TestCalendarHelpers:
    """Tests for the calendar-month helpers."""

    def test_days_in_month_handles_leap_years(self):
        assert days_in_month(2024, 2) == 29
        assert days_in_month(2023, 2) == 28
        assert days_in_month(2024, 4) == 30

    def test_month_key_is_zero_padded(self):
        assert month_key(date(2024, 3, 9)) == "2024-03"

    def test_add_months_crosses_year(self):
        assert add_months(date(2024, 11, 20), 2) == date(2025, 1, 1)

    def test_add_months_backwards(self):
        assert add_months(date(2024, 1, 5), -1) == date(2023, 12, 1)

    def test_month_range_inclusive(self):
        assert month_range(date(2024, 11, 20), date(2025, 1, 3)) == [
            date(2024, 11, 1),
            date(2024, 12, 1),
            date(2025, 1, 1),
        ]

    def test_month_range_same_month(self):
        assert month_range(date(2024, 3, 31), date(2024, 3, 1)) == [date(2024, 3, 1)]

    def test_month_range_end_before_start_is_empty(self):
        assert month_range(date(2024, 3, 1), date(2024, 2, 29)) == []


class TestBillingToday:
    """Tests for billing_today()."""

    @freeze_time("2024-01-31 23:30:00")
    def test_uses_billing_time_zone(self):
        """A UTC evening can already be the next month on the billing clock."""
        with override_settings(BILLING_TIME_ZONE="Asia/Jerusalem"):
            assert billing_today() == date(2024, 2, 1)
        with override_settings(BILLING_TIME_ZONE="UTC"):
            assert billing_today() == date(2024, 1, 31)


class TestOccupiedDays:
    """Tests for occupied_days()."""

    def test_start_inside_month(self):
        assert occupied_days(date(2024, 1, 15), date(2024, 1, 1)) == 17

    def test_start_on_first_is_full_month(self):
        assert occupied_days(date(2024, 1, 1), date(2024, 1, 1)) == 31

    def test_start_on_last_day_is_one_day(self):
        assert occupied_days(date(2024, 2, 29), date(2024, 2, 1)) == 1

    def test_start_in_earlier_month_is_full_month(self):
        assert occupied_days(date(2023, 12, 20), date(2024, 2, 1)) == 29

    def test_start_after_month_is_zero(self):
        assert occupied_days(date(2024, 3, 1), date(2024, 2, 1)) == 0

    def test_unknown_start_is_full_month(self):
        assert occupied_days(None, date(2024, 4, 1)) == 30


class TestProrate:
    """Tests for prorate()."""

    def test_full_month_returns_amount(self):
        assert prorate(Decimal("299.99"), 31, 31) == Decimal("299.99")

    def test_zero_days(self):
        assert prorate(Decimal("300.00"), 0, 30) == Decimal("0.00")

    def test_rounds_half_up(self):
        # 0.20 / 8 = 0.025
        assert prorate(Decimal("0.20"), 1, 8) == Decimal("0.03")

    @pytest.mark.parametrize("days", [-1, 32])
    def test_days_out_of_range(self, days):
        with pytest.raises(ValueError):
            prorate(Decimal("300.00"), days, 31)


class TestFirstMonthCharge:
    """Tests for first_month_charge()."""

    def test_mid_month_start(self):
        """300.00 starting Jan 15 bills 17 of 31 days."""
        assert first_month_charge(Decimal("300.00"), date(2024, 1, 15)) == Decimal("164.52")

    def test_start_on_first_bills_full_amount(self):
        assert first_month_charge(Decimal("300.00"), date(2024, 4, 1)) == Decimal("300.00")

    def test_start_on_last_day_bills_one_day(self):
        assert first_month_charge(Decimal("300.00"), date(2024, 1, 31)) == Decimal("9.68")


class TestTerminationCredit:
    """Tests for termination_credit() and remaining_days()."""

    def test_mid_month_termination(self):
        """Terminating on day 10 of a 30-day month credits 20 days."""
        assert remaining_days(date(2024, 4, 10)) == 20
        assert termination_credit(Decimal("300.00"), date(2024, 4, 10)) == Decimal("200.00")

    def test_last_day_credits_nothing(self):
        assert termination_credit(Decimal("300.00"), date(2024, 4, 30)) == Decimal("0.00")

    def test_first_day_credits_all_but_one_day(self):
        assert termination_credit(Decimal("310.00"), date(2024, 1, 1)) == Decimal("300.00")


class TestSplitLargestRemainder:
    """Tests for split_largest_remainder()."""

    def test_weighted_split(self):
        assert split_largest_remainder(Decimal("10.00"), [("a", 31), ("b", 17)]) == [
            ("a", Decimal("6.46")),
            ("b", Decimal("3.54")),
        ]

    def test_even_three_way_split(self):
        assert split_evenly(Decimal("100.00"), ["a", "b", "c"]) == [
            ("a", Decimal("33.34")),
            ("b", Decimal("33.33")),
            ("c", Decimal("33.33")),
        ]

    def test_ties_go_to_smallest_key_and_order_is_kept(self):
        """Equal remainders are broken by key, whatever the input order."""
        assert split_evenly(Decimal("0.02"), ["c", "b", "a"]) == [
            ("c", Decimal("0.00")),
            ("b", Decimal("0.01")),
            ("a", Decimal("0.01")),
        ]

    def test_zero_weight_party_gets_nothing(self):
        assert split_largest_remainder(Decimal("5.00"), [("a", 0), ("b", 3)]) == [
            ("a", Decimal("0.00")),
            ("b", Decimal("5.00")),
        ]

    def test_zero_total(self):
        assert split_evenly(Decimal("0"), ["a", "b"]) == [("a", Decimal("0.00")), ("b", Decimal("0.00"))]

    def test_empty_parties_rejected(self):
        with pytest.raises(ValueError):
            split_largest_remainder(Decimal("1.00"), [])

    def test_negative_weight_rejected(self):
        with pytest.raises(ValueError):
            split_largest_remainder(Decimal("1.00"), [("a", -1), ("b", 2)])

    def test_all_zero_weights_rejected(self):
        with pytest.raises(ValueError):
            split_largest_remainder(Decimal("1.00"), [("a", 0), ("b", 0)])

    def test_negative_total_rejected(self):
        with pytest.raises(ValueError):
            split_evenly(Decimal("-1.00"), ["a"])
