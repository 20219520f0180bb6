"""
Reconciliation of cached balances against the ledger.

Detection only: apartments whose cached balance differs from the live
signed ledger sum by more than RECONCILIATION_EPSILON are reported with
both values. Nothing is corrected here; drift means some code path
posted an entry without refreshing the cache, and a silent fix would
hide it.

Usage:
    from buildings.services import ReconciliationService

    report = ReconciliationService.get_reconciliation()
    if not report.is_clean:
        for discrepancy in report.discrepancies:
            print(discrepancy.to_dict())
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from django.conf import settings

from buildings.ledger.balance import BalanceService
from buildings.ledger.proration import ZERO
from buildings.ledger.types import BalanceDiscrepancy, ReconciliationReport
from buildings.models import Apartment
from core.services import BaseService

if TYPE_CHECKING:
    from core.services import UnitOfWork


class ReconciliationService(BaseService):
    """Compare every apartment's cached balance with its ledger."""

    @classmethod
    def get_reconciliation(cls, uow: UnitOfWork | None = None) -> ReconciliationReport:
        """
        Check every apartment for cached-balance drift.

        Both sides are read in the same unit of work, so a concurrent
        posting cannot show up on one side only.

        Returns:
            ReconciliationReport listing only the apartments that drifted
        """
        epsilon = Decimal(str(settings.RECONCILIATION_EPSILON))
        report = ReconciliationReport()

        with cls.atomic(uow) as uow:
            ledger = BalanceService.ledger_balances(uow=uow)
            apartments = uow.manager(Apartment).select_related("building").order_by("building__name", "apartment_number")
            for apartment in apartments:
                report.apartments_checked += 1
                ledger_balance = ledger.get(apartment.id, ZERO)
                if abs(apartment.cached_balance - ledger_balance) > epsilon:
                    report.discrepancies.append(
                        BalanceDiscrepancy(
                            apartment_id=apartment.id,
                            apartment_number=apartment.apartment_number,
                            building_id=apartment.building_id,
                            building_name=apartment.building.name,
                            cached_balance=apartment.cached_balance,
                            ledger_balance=ledger_balance,
                        )
                    )

        if report.is_clean:
            cls.get_logger().info(
                "Balance reconciliation clean",
                extra={"apartments_checked": report.apartments_checked},
            )
        else:
            for discrepancy in report.discrepancies:
                cls.get_logger().warning("Cached balance drift detected", extra=discrepancy.to_dict())
            cls.get_logger().warning(
                "Balance reconciliation found discrepancies",
                extra={
                    "apartments_checked": report.apartments_checked,
                    "discrepancies": len(report.discrepancies),
                },
            )
        return report
