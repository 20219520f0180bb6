"""
Occupancy period tracking.

At most one period per apartment is active at a time. Ledger entries are
tagged with the period active on the ledger owner when they are posted,
so a period's balance can be read without the rest of the apartment's
history.

Usage:
    from buildings.services import OccupancyService

    with unit_of_work() as uow:
        period = OccupancyService.create_period(
            apartment.id, start_date=date(2024, 1, 15), tenant_name="Dana", uow=uow,
        )
        ...
        OccupancyService.close_period(apartment.id, uow=uow)
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from django.db import IntegrityError, transaction

from buildings.exceptions import ActivePeriodExists, ApartmentNotFound, OccupancyPeriodNotFound
from buildings.ledger.balance import BalanceService
from buildings.ledger.proration import billing_today
from buildings.ledger.services import LedgerService
from buildings.models import Apartment, OccupancyPeriod, OccupancyPeriodStatus
from buildings.types import PeriodStatement
from core.services import BaseService

if TYPE_CHECKING:
    from datetime import date

    from core.services import UnitOfWork

logger = logging.getLogger(__name__)

CURRENT_PERIOD = "current"
ALL_PERIODS = "all"


class OccupancyService(BaseService):
    """Open, close and query occupancy periods."""

    @classmethod
    def get_active_period(cls, apartment_id: uuid.UUID, uow: UnitOfWork | None = None) -> OccupancyPeriod | None:
        with cls.atomic(uow) as uow:
            return (
                uow.manager(OccupancyPeriod)
                .filter(apartment_id=apartment_id, status=OccupancyPeriodStatus.ACTIVE)
                .first()
            )

    @classmethod
    def get_active_period_id(cls, apartment_id: uuid.UUID, uow: UnitOfWork | None = None) -> uuid.UUID | None:
        """Id of the active period, for tagging new ledger entries."""
        with cls.atomic(uow) as uow:
            return (
                uow.manager(OccupancyPeriod)
                .filter(apartment_id=apartment_id, status=OccupancyPeriodStatus.ACTIVE)
                .values_list("id", flat=True)
                .first()
            )

    @classmethod
    def create_period(
        cls,
        apartment_id: uuid.UUID,
        start_date: date,
        tenant_id: uuid.UUID | None = None,
        tenant_name: str = "",
        uow: UnitOfWork | None = None,
    ) -> OccupancyPeriod:
        """
        Open a new active period.

        Raises:
            ActivePeriodExists: If the apartment already has an active period
        """
        with cls.atomic(uow) as uow:
            existing_id = cls.get_active_period_id(apartment_id, uow=uow)
            if existing_id is not None:
                raise ActivePeriodExists(
                    "An active occupancy period already exists for this apartment",
                    details={"apartment_id": str(apartment_id), "period_id": str(existing_id)},
                )
            try:
                with transaction.atomic(using=uow.using):
                    period = uow.manager(OccupancyPeriod).create(
                        apartment_id=apartment_id,
                        tenant_id=tenant_id,
                        tenant_name=tenant_name or "",
                        start_date=start_date,
                    )
            except IntegrityError as e:
                # Lost a race with a concurrent move-in
                raise ActivePeriodExists(
                    "An active occupancy period already exists for this apartment",
                    details={"apartment_id": str(apartment_id)},
                ) from e

        logger.info(
            "Occupancy period opened",
            extra={"apartment_id": str(apartment_id), "period_id": str(period.id)},
        )
        return period

    @classmethod
    def close_period(
        cls,
        apartment_id: uuid.UUID,
        closed_on: date | None = None,
        uow: UnitOfWork | None = None,
    ) -> OccupancyPeriod | None:
        """
        Close the active period and snapshot its balance.

        The closing balance is the signed sum of entries tagged with this
        period only, not the apartment's all-time balance.

        Returns:
            The closed period, or None if nothing was active
        """
        with cls.atomic(uow) as uow:
            period = cls.get_active_period(apartment_id, uow=uow)
            if period is None:
                return None
            period.closing_balance = BalanceService.get_balance(apartment_id, period_id=period.id, uow=uow)
            period.status = OccupancyPeriodStatus.CLOSED
            period.end_date = closed_on or billing_today()
            period.save(using=uow.using, update_fields=["status", "end_date", "closing_balance", "updated_at"])

        logger.info(
            "Occupancy period closed",
            extra={
                "apartment_id": str(apartment_id),
                "period_id": str(period.id),
                "closing_balance": str(period.closing_balance),
            },
        )
        return period

    @classmethod
    def list_periods(cls, apartment_id: uuid.UUID, uow: UnitOfWork | None = None) -> list[OccupancyPeriod]:
        """All periods of an apartment, newest start date first."""
        with cls.atomic(uow) as uow:
            return list(
                uow.manager(OccupancyPeriod)
                .filter(apartment_id=apartment_id)
                .order_by("-start_date", "-created_at")
            )

    @classmethod
    def get_period_statement(
        cls,
        apartment_id: uuid.UUID,
        period: str | uuid.UUID = CURRENT_PERIOD,
        limit: int | None = None,
        offset: int = 0,
        uow: UnitOfWork | None = None,
    ) -> PeriodStatement:
        """
        Balance and ledger page for one period.

        Args:
            apartment_id: Apartment to report on
            period: "current" for the active period (all-time when the
                apartment is vacant), "all" for all-time, or a period id

        Raises:
            ApartmentNotFound: If the apartment does not exist
            OccupancyPeriodNotFound: If the period id does not belong to
                the apartment
        """
        with cls.atomic(uow) as uow:
            if not uow.manager(Apartment).filter(id=apartment_id).exists():
                raise ApartmentNotFound(
                    f"Apartment {apartment_id} not found",
                    details={"apartment_id": str(apartment_id)},
                )

            if period == CURRENT_PERIOD:
                resolved = cls.get_active_period(apartment_id, uow=uow)
            elif period == ALL_PERIODS:
                resolved = None
            else:
                resolved = None
                try:
                    period_uuid = uuid.UUID(str(period))
                except ValueError:
                    period_uuid = None
                if period_uuid is not None:
                    resolved = uow.manager(OccupancyPeriod).filter(id=period_uuid, apartment_id=apartment_id).first()
                if resolved is None:
                    raise OccupancyPeriodNotFound(
                        "Period not found for this apartment",
                        details={"apartment_id": str(apartment_id), "period_id": str(period)},
                    )

            period_id = resolved.id if resolved else None
            balance = BalanceService.get_balance(apartment_id, period_id=period_id, uow=uow)
            page = LedgerService.get_ledger(apartment_id, limit=limit, offset=offset, period_id=period_id, uow=uow)

        return PeriodStatement(apartment_id=apartment_id, period=resolved, balance=balance, ledger=page)
