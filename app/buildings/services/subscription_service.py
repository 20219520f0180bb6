"""
Monthly subscription charges.

Every (billed unit, calendar month) moves one way from not-yet-charged to
charged. backfill_subscriptions() posts whatever months are missing from
the occupancy start to the current month, so the monthly batch and an
on-demand backfill are the same operation and both are safe to repeat.

Charges for storage and parking units are posted to the parent
apartment's ledger with a description naming the unit, e.g.
"Storage S-1 subscription 2024-03".

Usage:
    from buildings.services import SubscriptionService

    # Inside a move-in
    SubscriptionService.backfill_subscriptions(apartment.id, uow=uow)

    # Scheduled batch, one unit of work per apartment
    stats = SubscriptionService.generate_monthly_subscriptions()
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from buildings.ledger.balance import BalanceService
from buildings.ledger.models import ReferenceType
from buildings.ledger.proration import (
    billing_today,
    first_month_charge,
    month_key,
    month_range,
    to_money,
)
from buildings.ledger.services import LedgerService
from buildings.models import Apartment, ApartmentStatus, SubscriptionStatus
from buildings.services.occupancy_service import OccupancyService
from core.services import BaseService, unit_of_work

if TYPE_CHECKING:
    import uuid
    from datetime import date

    from core.services import UnitOfWork

logger = logging.getLogger(__name__)


def subscription_description(apartment: Apartment, billing_month: str) -> str:
    """
    Ledger description for one month of an apartment's subscription.

    Regular apartments use "Monthly subscription YYYY-MM"; child units are
    prefixed by their type and number so the parent's ledger stays readable.
    """
    if apartment.is_child_unit:
        return f"{apartment.get_apartment_type_display()} {apartment.apartment_number} subscription {billing_month}"
    return f"Monthly subscription {billing_month}"


class SubscriptionService(BaseService):
    """Post monthly subscription debits, idempotently."""

    @classmethod
    def backfill_subscriptions(
        cls,
        apartment_id: uuid.UUID,
        actor: str | None = None,
        as_of: date | None = None,
        uow: UnitOfWork | None = None,
    ) -> int:
        """
        Post every missing subscription month from occupancy start to ``as_of``.

        No-op unless the apartment is occupied, its subscription is active,
        its amount is positive and it has an occupancy start. The first
        month is prorated from the start day; later months are charged in
        full. A month is skipped when the ledger owner already has a charge
        for this unit and month (structural key) or an entry with the same
        description.

        Args:
            apartment_id: Apartment (or child unit) to bill
            actor: Who triggered the backfill (None for the batch job)
            as_of: Last month to bill (default: today on the billing clock)
            uow: Caller's unit of work (optional)

        Returns:
            Number of charges posted
        """
        with cls.atomic(uow) as uow:
            apartment = uow.manager(Apartment).filter(id=apartment_id).first()
            if apartment is None or not apartment.bills_subscription:
                return 0

            target_id = apartment.ledger_owner_id
            period_id = OccupancyService.get_active_period_id(target_id, uow=uow)
            months = month_range(apartment.occupancy_start, as_of or billing_today())
            full_amount = to_money(apartment.subscription_amount)

            posted = 0
            for index, month in enumerate(months):
                billing_month = month_key(month)
                description = subscription_description(apartment, billing_month)

                already_charged = LedgerService.has_entry_for_month(
                    target_id,
                    ReferenceType.SUBSCRIPTION,
                    billing_month,
                    source_apartment_id=apartment.id,
                    uow=uow,
                ) or LedgerService.has_entry_by_description(
                    target_id, ReferenceType.SUBSCRIPTION, description, uow=uow
                )
                if already_charged:
                    continue

                if index == 0:
                    amount = first_month_charge(full_amount, apartment.occupancy_start)
                else:
                    amount = full_amount
                if amount <= 0:
                    continue

                LedgerService.record_subscription_charge(
                    target_id,
                    amount,
                    billing_month,
                    description=description,
                    source_apartment_id=apartment.id,
                    created_by=actor,
                    occupancy_period_id=period_id,
                    uow=uow,
                )
                posted += 1

            BalanceService.refresh_cached_balance(target_id, uow=uow)

        if posted:
            logger.info(
                "Subscription charges backfilled",
                extra={
                    "apartment_id": str(apartment_id),
                    "ledger_owner_id": str(target_id),
                    "charges_posted": posted,
                },
            )
        return posted

    @classmethod
    def generate_monthly_subscriptions(cls, as_of: date | None = None) -> dict:
        """
        Backfill every billable apartment, each in its own unit of work.

        A failure on one apartment is logged and counted; the rest of the
        batch still runs.

        Returns:
            Dict with month, apartments, charges_posted and failed counts
        """
        today = as_of or billing_today()
        stats = {"month": month_key(today), "apartments": 0, "charges_posted": 0, "failed": 0}

        apartment_ids = list(
            Apartment.objects.filter(
                status=ApartmentStatus.OCCUPIED,
                subscription_status=SubscriptionStatus.ACTIVE,
                subscription_amount__gt=0,
            )
            .order_by("id")
            .values_list("id", flat=True)
        )

        logger.info(
            "Generating subscription charges",
            extra={"month": stats["month"], "apartment_count": len(apartment_ids)},
        )

        for apartment_id in apartment_ids:
            try:
                with unit_of_work() as uow:
                    posted = cls.backfill_subscriptions(apartment_id, as_of=today, uow=uow)
                stats["apartments"] += 1
                stats["charges_posted"] += posted
            except Exception:
                stats["failed"] += 1
                logger.exception(
                    "Failed to charge subscription for apartment",
                    extra={"apartment_id": str(apartment_id), "month": stats["month"]},
                )

        logger.info("Generated subscription charges", extra=stats)
        return stats
