"""
Proration, calendar-month and penny-splitting arithmetic.

Everything here except billing_today() is a pure function over Decimal
and datetime.date values. Amounts are always quantized to cents with
ROUND_HALF_UP.

Functions:
    to_money: Coerce a number to a two-decimal Decimal
    days_in_month / month_key / first_of_month / add_months / month_range:
        Calendar-month helpers (month boundaries are plain calendar dates)
    occupied_days: Days of a month covered by an occupancy
    prorate: Daily-rate proration of a monthly amount
    first_month_charge / termination_credit: The two proration cases
    split_largest_remainder / split_evenly: Penny-exact splitting

Usage:
    from buildings.ledger.proration import first_month_charge, split_evenly

    first_month_charge(Decimal("300.00"), date(2024, 1, 15))
    # Decimal('164.52')

    split_evenly(Decimal("100.00"), ["a", "b", "c"])
    # [('a', Decimal('33.34')), ('b', Decimal('33.33')), ('c', Decimal('33.33'))]
"""

from __future__ import annotations

import calendar
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, TypeVar
from zoneinfo import ZoneInfo

from django.conf import settings
from django.utils import timezone

if TYPE_CHECKING:
    from collections.abc import Hashable, Iterable, Sequence

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

K = TypeVar("K")


def to_money(value) -> Decimal:
    """
    Coerce an int, str, float or Decimal to a cent-quantized Decimal.

    Floats go through str() first so 0.1 becomes Decimal("0.10") rather
    than its binary expansion.
    """
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def billing_today() -> date:
    """Current calendar date on the billing clock (BILLING_TIME_ZONE)."""
    return timezone.localdate(timezone=ZoneInfo(settings.BILLING_TIME_ZONE))


# =============================================================================
# Calendar months
# =============================================================================


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def month_key(day: date) -> str:
    """Return the YYYY-MM key of the month containing ``day``."""
    return f"{day.year:04d}-{day.month:02d}"


def first_of_month(day: date) -> date:
    return day.replace(day=1)


def add_months(day: date, months: int) -> date:
    """Return the first day of the month ``months`` after ``day``'s month."""
    index = day.year * 12 + (day.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def month_range(start: date, end: date) -> list[date]:
    """
    First-of-month dates from ``start``'s month to ``end``'s month, inclusive.

    Returns an empty list when ``end`` falls in an earlier month than
    ``start``.

    Example:
        month_range(date(2024, 11, 20), date(2025, 1, 3))
        # [date(2024, 11, 1), date(2024, 12, 1), date(2025, 1, 1)]
    """
    months = []
    current = first_of_month(start)
    last = first_of_month(end)
    while current <= last:
        months.append(current)
        current = add_months(current, 1)
    return months


# =============================================================================
# Proration
# =============================================================================


def occupied_days(occupancy_start: date | None, month: date) -> int:
    """
    Days of ``month`` covered by an occupancy that began on ``occupancy_start``.

    Returns:
        The full month if occupancy began in an earlier month (or the start
        is unknown), ``days_in_month - start_day + 1`` if it began inside
        the month, and 0 if it begins after the month.
    """
    dim = days_in_month(month.year, month.month)
    if occupancy_start is None:
        return dim
    start_month = (occupancy_start.year, occupancy_start.month)
    target_month = (month.year, month.month)
    if start_month < target_month:
        return dim
    if start_month == target_month:
        return dim - occupancy_start.day + 1
    return 0


def prorate(monthly_amount, days: int, month_days: int) -> Decimal:
    """
    Charge ``days`` out of ``month_days`` at the daily rate of ``monthly_amount``.

    Raises:
        ValueError: If days is outside [0, month_days]
    """
    if month_days <= 0 or not 0 <= days <= month_days:
        raise ValueError(f"Cannot prorate {days} days of a {month_days}-day month")
    if days == month_days:
        return to_money(monthly_amount)
    exact = to_money(monthly_amount) * days / month_days
    return exact.quantize(CENT, rounding=ROUND_HALF_UP)


def first_month_charge(monthly_amount, occupancy_start: date) -> Decimal:
    """
    Subscription charge for the month occupancy starts in.

    The start day itself is billed, so starting on the 1st bills the full
    amount and starting on the last day bills one day.
    """
    dim = days_in_month(occupancy_start.year, occupancy_start.month)
    return prorate(monthly_amount, dim - occupancy_start.day + 1, dim)


def remaining_days(terminated_on: date) -> int:
    """Days of the month left after ``terminated_on`` (the last occupied day)."""
    return days_in_month(terminated_on.year, terminated_on.month) - terminated_on.day


def termination_credit(monthly_amount, terminated_on: date) -> Decimal:
    """Credit for the unused days of the month occupancy ends in."""
    dim = days_in_month(terminated_on.year, terminated_on.month)
    return prorate(monthly_amount, remaining_days(terminated_on), dim)


# =============================================================================
# Splitting
# =============================================================================


def split_largest_remainder(total, parties: Sequence[tuple[K, int | Decimal]]) -> list[tuple[K, Decimal]]:
    """
    Split ``total`` across weighted parties so the shares sum to it exactly.

    Each party first receives ``floor(cents * weight / total_weight)``
    cents. The cents left over go one each to the parties with the
    largest fractional remainder. Equal remainders are ordered by the
    party key compared as a string, ascending, so the result does not
    depend on the order rows came back from the database.

    Args:
        total: Non-negative amount to split
        parties: (key, weight) pairs; weights are non-negative and at
            least one is positive

    Returns:
        (key, share) pairs in the same order as ``parties``

    Raises:
        ValueError: On an empty party list, a negative weight or total,
            or all-zero weights

    Example:
        split_largest_remainder(Decimal("10.00"), [("a", 31), ("b", 17)])
        # [('a', Decimal('6.46')), ('b', Decimal('3.54'))]
    """
    if not parties:
        raise ValueError("Cannot split an amount among zero parties")
    amount = to_money(total)
    if amount < 0:
        raise ValueError(f"Cannot split a negative amount: {amount}")
    weights = [weight for _, weight in parties]
    if any(weight < 0 for weight in weights):
        raise ValueError("Split weights must be non-negative")
    total_weight = sum(weights)
    if total_weight <= 0:
        raise ValueError("At least one split weight must be positive")

    cents = int(amount / CENT)
    floors = []
    remainders = []
    for weight in weights:
        numerator = cents * weight
        share = int(numerator // total_weight)
        floors.append(share)
        # Remainder kept as a numerator over total_weight to compare exactly
        remainders.append(numerator - share * total_weight)

    leftover = cents - sum(floors)
    order = sorted(
        range(len(parties)),
        key=lambda i: (-remainders[i], str(parties[i][0])),
    )
    for i in order[:leftover]:
        floors[i] += 1

    return [(key, Decimal(share) * CENT) for (key, _), share in zip(parties, floors)]


def split_evenly(total, keys: Iterable[Hashable]) -> list[tuple[Hashable, Decimal]]:
    """Split ``total`` into equal-weight shares, one per key."""
    return split_largest_remainder(total, [(key, 1) for key in keys])
