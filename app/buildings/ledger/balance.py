"""
Balance engine: derive an apartment's balance from its ledger.

The ledger is the source of truth. Apartment.cached_balance is a
denormalized copy that refresh_cached_balance() rewrites from the ledger;
every code path that posts entries calls it before its unit of work
commits.

Usage:
    from buildings.ledger.balance import BalanceService

    BalanceService.get_balance(apartment.id)
    BalanceService.get_balance(apartment.id, period_id=period.id)
    BalanceService.refresh_cached_balance(apartment.id, uow=uow)
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import TYPE_CHECKING

from django.db.models import Q, Sum
from django.utils import timezone

from buildings.ledger.models import EntryType, LedgerEntry
from buildings.ledger.proration import to_money
from buildings.models import Apartment
from core.services import BaseService

if TYPE_CHECKING:
    import uuid
    from collections.abc import Iterable

    from core.services import UnitOfWork

logger = logging.getLogger(__name__)


class BalanceService(BaseService):
    """
    Signed-sum balance over ledger entries.

    Sign convention:
        Positive balance: apartment is in credit (paid ahead)
        Negative balance: apartment owes money
    """

    @staticmethod
    def _signed_sum(queryset) -> Decimal:
        totals = queryset.aggregate(
            credits=Sum("amount", filter=Q(entry_type=EntryType.CREDIT), default=Decimal("0")),
            debits=Sum("amount", filter=Q(entry_type=EntryType.DEBIT), default=Decimal("0")),
        )
        return to_money(totals["credits"] - totals["debits"])

    @classmethod
    def get_balance(
        cls,
        apartment_id: uuid.UUID,
        period_id: uuid.UUID | None = None,
        uow: UnitOfWork | None = None,
    ) -> Decimal:
        """
        Compute an apartment's balance from its ledger.

        Args:
            apartment_id: Apartment whose ledger to sum
            period_id: Only sum entries tagged with this occupancy period
            uow: Caller's unit of work; pass it whenever the caller has
                just posted entries so the sum includes them

        Returns:
            Sum of credits minus sum of debits, quantized to cents
        """
        with cls.atomic(uow) as uow:
            queryset = uow.manager(LedgerEntry).filter(apartment_id=apartment_id)
            if period_id is not None:
                queryset = queryset.filter(occupancy_period_id=period_id)
            return cls._signed_sum(queryset)

    @classmethod
    def refresh_cached_balance(cls, apartment_id: uuid.UUID, uow: UnitOfWork | None = None) -> Decimal:
        """
        Recompute the balance and write it to Apartment.cached_balance.

        Also bumps updated_at, since QuerySet.update() bypasses auto_now.

        Returns:
            The new balance
        """
        with cls.atomic(uow) as uow:
            balance = cls.get_balance(apartment_id, uow=uow)
            uow.manager(Apartment).filter(id=apartment_id).update(
                cached_balance=balance,
                updated_at=timezone.now(),
            )
        logger.debug(
            "Cached balance refreshed",
            extra={"apartment_id": str(apartment_id), "balance": str(balance)},
        )
        return balance

    @classmethod
    def refresh_many(cls, apartment_ids: Iterable[uuid.UUID], uow: UnitOfWork | None = None) -> dict:
        """Refresh several apartments in one unit of work; returns {id: balance}."""
        with cls.atomic(uow) as uow:
            return {apartment_id: cls.refresh_cached_balance(apartment_id, uow=uow) for apartment_id in apartment_ids}

    @classmethod
    def ledger_balances(cls, uow: UnitOfWork | None = None) -> dict:
        """
        Signed ledger sum of every apartment that has entries, in one query.

        Returns:
            {apartment_id: balance}
        """
        with cls.atomic(uow) as uow:
            rows = (
                uow.manager(LedgerEntry)
                .values("apartment_id")
                .annotate(
                    credits=Sum("amount", filter=Q(entry_type=EntryType.CREDIT), default=Decimal("0")),
                    debits=Sum("amount", filter=Q(entry_type=EntryType.DEBIT), default=Decimal("0")),
                )
                .order_by()
            )
            return {row["apartment_id"]: to_money(row["credits"] - row["debits"]) for row in rows}
