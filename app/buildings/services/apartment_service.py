"""
Apartment lifecycle: creation, move-in, move-out, write-off and deletion.

Move-in and move-out are the two lifecycle events that feed the ledger:

    start_occupancy
        vacant -> occupied, opens an occupancy period, backfills
        subscription months and (regular apartments only) building
        expenses since the occupancy start.

    terminate_occupancy
        occupied -> vacant, credits the unused days of the current month
        to the ledger owner, cascades to occupied storage/parking units,
        closes the occupancy period.

Usage:
    from buildings.services import ApartmentService

    apartment = ApartmentService.create_apartment(
        building.id, "4B",
        subscription_amount=Decimal("300.00"),
        subscription_status=SubscriptionStatus.ACTIVE,
    )
    ApartmentService.start_occupancy(apartment.id, date(2024, 1, 15), tenant_name="Dana")
    ApartmentService.terminate_occupancy(apartment.id, terminated_on=date(2024, 6, 10))
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import TYPE_CHECKING

from buildings.exceptions import (
    ApartmentAlreadyOccupied,
    ApartmentDeletionBlocked,
    ApartmentNotFound,
    ApartmentNotOccupied,
    BalanceAlreadyZero,
    BuildingNotFound,
    InvalidParentApartment,
)
from buildings.ledger.balance import BalanceService
from buildings.ledger.proration import ZERO, billing_today, termination_credit, to_money
from buildings.ledger.services import LedgerService
from buildings.models import (
    Apartment,
    ApartmentExpense,
    ApartmentStatus,
    ApartmentType,
    Building,
    SubscriptionStatus,
)
from buildings.services.expense_service import ExpenseService
from buildings.services.occupancy_service import OccupancyService
from buildings.services.subscription_service import SubscriptionService
from buildings.types import PendingCharge, UpcomingCharges
from core.services import BaseService

if TYPE_CHECKING:
    import uuid
    from datetime import date

    from core.services import UnitOfWork

logger = logging.getLogger(__name__)


class ApartmentService(BaseService):
    """
    Service for apartment lifecycle operations.

    All methods are class methods - no instance state is maintained.
    """

    @classmethod
    def get_apartment(cls, apartment_id: uuid.UUID, uow: UnitOfWork | None = None) -> Apartment:
        with cls.atomic(uow) as uow:
            apartment = uow.manager(Apartment).filter(id=apartment_id).first()
        if apartment is None:
            raise ApartmentNotFound(
                f"Apartment {apartment_id} not found",
                details={"apartment_id": str(apartment_id)},
            )
        return apartment

    # =========================================================================
    # Creation
    # =========================================================================

    @classmethod
    def _validate_parent(
        cls,
        building_id: uuid.UUID,
        apartment_type: str,
        parent_apartment_id: uuid.UUID | None,
        uow: UnitOfWork,
    ) -> uuid.UUID | None:
        """Return the parent id to store, validating it for child units."""
        if apartment_type == ApartmentType.REGULAR:
            # Regular apartments never keep a parent
            return None
        if parent_apartment_id is None:
            raise InvalidParentApartment(
                "Storage and parking units require a parent apartment",
                details={"apartment_type": apartment_type},
            )
        parent = uow.manager(Apartment).filter(id=parent_apartment_id).first()
        if parent is None:
            raise InvalidParentApartment(
                "Parent apartment not found",
                details={"parent_apartment_id": str(parent_apartment_id)},
            )
        if parent.apartment_type != ApartmentType.REGULAR:
            raise InvalidParentApartment(
                "Parent apartment must be a regular apartment",
                details={"parent_apartment_id": str(parent_apartment_id)},
            )
        if parent.building_id != building_id:
            raise InvalidParentApartment(
                "Parent apartment must be in the same building",
                details={"parent_apartment_id": str(parent_apartment_id), "building_id": str(building_id)},
            )
        return parent.id

    @classmethod
    def create_apartment(
        cls,
        building_id: uuid.UUID,
        apartment_number: str,
        floor: int | None = None,
        apartment_type: str = ApartmentType.REGULAR,
        parent_apartment_id: uuid.UUID | None = None,
        subscription_amount=ZERO,
        subscription_status: str = SubscriptionStatus.INACTIVE,
        status: str = ApartmentStatus.VACANT,
        occupancy_start: date | None = None,
        tenant_id: uuid.UUID | None = None,
        tenant_name: str = "",
        actor: str | None = None,
        as_of: date | None = None,
        uow: UnitOfWork | None = None,
    ) -> Apartment:
        """
        Create an apartment, storage or parking unit.

        An apartment created occupied goes through start_occupancy(), so it
        gets an occupancy period and its backfills like any other move-in.

        Raises:
            BuildingNotFound: Unknown building
            InvalidParentApartment: Child unit with a missing, non-regular or
                foreign parent
        """
        with cls.atomic(uow) as uow:
            if not uow.manager(Building).filter(id=building_id).exists():
                raise BuildingNotFound(
                    f"Building {building_id} not found",
                    details={"building_id": str(building_id)},
                )
            parent_id = cls._validate_parent(building_id, apartment_type, parent_apartment_id, uow)

            apartment = uow.manager(Apartment).create(
                building_id=building_id,
                apartment_number=apartment_number,
                floor=floor,
                apartment_type=apartment_type,
                parent_apartment_id=parent_id,
                subscription_amount=to_money(subscription_amount),
                subscription_status=subscription_status,
            )

            if status == ApartmentStatus.OCCUPIED:
                apartment = cls.start_occupancy(
                    apartment.id,
                    occupancy_start=occupancy_start,
                    tenant_id=tenant_id,
                    tenant_name=tenant_name,
                    actor=actor,
                    as_of=as_of,
                    uow=uow,
                )

        logger.info(
            "Apartment created",
            extra={
                "apartment_id": str(apartment.id),
                "building_id": str(building_id),
                "apartment_type": apartment_type,
            },
        )
        return apartment

    # =========================================================================
    # Move-in / move-out
    # =========================================================================

    @classmethod
    def start_occupancy(
        cls,
        apartment_id: uuid.UUID,
        occupancy_start: date | None = None,
        tenant_id: uuid.UUID | None = None,
        tenant_name: str = "",
        actor: str | None = None,
        as_of: date | None = None,
        uow: UnitOfWork | None = None,
    ) -> Apartment:
        """
        Move a vacant apartment to occupied.

        Opens an occupancy period, posts every subscription month since
        ``occupancy_start`` and, for regular apartments, charges this
        apartment its day-weighted share of building expenses dated since
        the start of the occupancy month.

        Args:
            apartment_id: Apartment moving in
            occupancy_start: First occupied day (default: today)
            tenant_id: Optional tenant identifier stored on the period
            tenant_name: Optional tenant name stored on the period
            actor: Who performed the move-in
            as_of: Last month to backfill (default: today)

        Raises:
            ApartmentNotFound: Unknown apartment
            ApartmentAlreadyOccupied: Apartment is already occupied
        """
        occupancy_start = occupancy_start or billing_today()
        with cls.atomic(uow) as uow:
            apartment = cls.get_apartment(apartment_id, uow=uow)
            if apartment.is_occupied:
                raise ApartmentAlreadyOccupied(
                    "Apartment is already occupied",
                    details={"apartment_id": str(apartment_id)},
                )

            OccupancyService.create_period(
                apartment.id,
                start_date=occupancy_start,
                tenant_id=tenant_id,
                tenant_name=tenant_name,
                uow=uow,
            )
            apartment.status = ApartmentStatus.OCCUPIED
            apartment.occupancy_start = occupancy_start
            apartment.save(using=uow.using, update_fields=["status", "occupancy_start", "updated_at"])

            SubscriptionService.backfill_subscriptions(apartment.id, actor=actor, as_of=as_of, uow=uow)
            if apartment.apartment_type == ApartmentType.REGULAR:
                ExpenseService.backfill_expenses_for_apartment(
                    apartment.id,
                    apartment.building_id,
                    occupancy_start,
                    actor=actor,
                    uow=uow,
                )
            BalanceService.refresh_cached_balance(apartment.id, uow=uow)
            apartment.refresh_from_db(using=uow.using)

        logger.info(
            "Occupancy started",
            extra={"apartment_id": str(apartment_id), "occupancy_start": str(occupancy_start)},
        )
        return apartment

    @classmethod
    def _credit_unused_days(
        cls,
        apartment: Apartment,
        terminated_on: date,
        actor: str | None,
        uow: UnitOfWork,
    ) -> Decimal:
        """Post the termination credit for one unit to its ledger owner."""
        if apartment.subscription_status != SubscriptionStatus.ACTIVE or apartment.subscription_amount <= 0:
            return ZERO
        credit = termination_credit(apartment.subscription_amount, terminated_on)
        if credit <= 0:
            return ZERO

        target_id = apartment.ledger_owner_id
        if apartment.is_child_unit:
            description = (
                f"{apartment.get_apartment_type_display()} {apartment.apartment_number} "
                f"occupancy credit {terminated_on.isoformat()}"
            )
        else:
            description = f"Occupancy termination credit {terminated_on.isoformat()}"

        LedgerService.record_occupancy_credit(
            target_id,
            credit,
            description,
            source_apartment_id=apartment.id,
            created_by=actor,
            occupancy_period_id=OccupancyService.get_active_period_id(target_id, uow=uow),
            uow=uow,
        )
        return credit

    @classmethod
    def _vacate(cls, apartment: Apartment, terminated_on: date, uow: UnitOfWork) -> None:
        OccupancyService.close_period(apartment.id, closed_on=terminated_on, uow=uow)
        apartment.status = ApartmentStatus.VACANT
        apartment.occupancy_start = None
        apartment.save(using=uow.using, update_fields=["status", "occupancy_start", "updated_at"])

    @classmethod
    def terminate_occupancy(
        cls,
        apartment_id: uuid.UUID,
        actor: str | None = None,
        terminated_on: date | None = None,
        uow: UnitOfWork | None = None,
    ) -> Apartment:
        """
        Move an occupied apartment to vacant.

        The termination day is the last occupied day; the remaining days of
        that month are credited to the ledger owner (the parent apartment
        for storage/parking units). Terminating a regular apartment first
        terminates its occupied child units, whose credits also land on
        this apartment's ledger, and only then closes its own period so the
        closing balance includes them.

        Raises:
            ApartmentNotFound: Unknown apartment
            ApartmentNotOccupied: Apartment is vacant
        """
        terminated_on = terminated_on or billing_today()
        with cls.atomic(uow) as uow:
            apartment = cls.get_apartment(apartment_id, uow=uow)
            if not apartment.is_occupied:
                raise ApartmentNotOccupied(
                    "Apartment is not occupied",
                    details={"apartment_id": str(apartment_id)},
                )

            credit = cls._credit_unused_days(apartment, terminated_on, actor, uow)

            if apartment.apartment_type == ApartmentType.REGULAR:
                children = uow.manager(Apartment).filter(
                    parent_apartment_id=apartment.id,
                    status=ApartmentStatus.OCCUPIED,
                ).order_by("apartment_number")
                for child in children:
                    cls._credit_unused_days(child, terminated_on, actor, uow)
                    cls._vacate(child, terminated_on, uow)
                    BalanceService.refresh_cached_balance(child.id, uow=uow)
                    logger.info(
                        "Child unit occupancy terminated",
                        extra={"apartment_id": str(child.id), "parent_apartment_id": str(apartment.id)},
                    )

            cls._vacate(apartment, terminated_on, uow)

            BalanceService.refresh_cached_balance(apartment.ledger_owner_id, uow=uow)
            if apartment.ledger_owner_id != apartment.id:
                BalanceService.refresh_cached_balance(apartment.id, uow=uow)
            apartment.refresh_from_db(using=uow.using)

        logger.info(
            "Occupancy terminated",
            extra={
                "apartment_id": str(apartment_id),
                "terminated_on": str(terminated_on),
                "credit": str(credit),
            },
        )
        return apartment

    # =========================================================================
    # Balance operations
    # =========================================================================

    @classmethod
    def write_off_balance(
        cls,
        apartment_id: uuid.UUID,
        actor: str | None = None,
        uow: UnitOfWork | None = None,
    ) -> Decimal:
        """
        Bring an apartment's balance to zero.

        A debt is cleared with a waiver credit, an overpayment with a debit
        adjustment, both for the absolute balance.

        Returns:
            The balance before the write-off

        Raises:
            ApartmentNotFound: Unknown apartment
            BalanceAlreadyZero: Nothing to write off
        """
        with cls.atomic(uow) as uow:
            apartment = cls.get_apartment(apartment_id, uow=uow)
            balance = BalanceService.get_balance(apartment.id, uow=uow)
            if balance == 0:
                raise BalanceAlreadyZero(
                    "Balance is already zero",
                    details={"apartment_id": str(apartment_id)},
                )

            period_id = OccupancyService.get_active_period_id(apartment.id, uow=uow)
            if balance < 0:
                LedgerService.record_waiver(
                    apartment.id,
                    -balance,
                    "Balance write-off (debt cleared)",
                    created_by=actor,
                    occupancy_period_id=period_id,
                    uow=uow,
                )
            else:
                LedgerService.record_debit_adjustment(
                    apartment.id,
                    balance,
                    "Balance write-off (overpayment cleared)",
                    created_by=actor,
                    occupancy_period_id=period_id,
                    uow=uow,
                )
            BalanceService.refresh_cached_balance(apartment.id, uow=uow)

        logger.info(
            "Balance written off",
            extra={"apartment_id": str(apartment_id), "previous_balance": str(balance)},
        )
        return balance

    @classmethod
    def get_upcoming_charges(cls, apartment_id: uuid.UUID, uow: UnitOfWork | None = None) -> UpcomingCharges:
        """
        Monthly subscription plus every unpaid, non-canceled expense remainder.

        The subscription amount counts only while the subscription is active.
        """
        with cls.atomic(uow) as uow:
            apartment = cls.get_apartment(apartment_id, uow=uow)
            shares = (
                uow.manager(ApartmentExpense)
                .filter(apartment_id=apartment.id, is_canceled=False)
                .select_related("expense")
                .order_by("expense__expense_date", "created_at")
            )
            pending = [
                PendingCharge(
                    apartment_expense_id=share.id,
                    description=share.expense.description,
                    remaining=share.remaining,
                )
                for share in shares
                if share.remaining > 0
            ]

        subscription = apartment.subscription_amount
        if apartment.subscription_status != SubscriptionStatus.ACTIVE:
            subscription = ZERO
        return UpcomingCharges(subscription_amount=to_money(subscription), pending_expenses=pending)

    # =========================================================================
    # Deletion
    # =========================================================================

    @classmethod
    def delete_apartment(cls, apartment_id: uuid.UUID, uow: UnitOfWork | None = None) -> None:
        """
        Delete an apartment and its ledger.

        Raises:
            ApartmentNotFound: Unknown apartment
            ApartmentDeletionBlocked: Apartment is occupied, has a non-zero
                ledger balance, or still has storage/parking units
        """
        with cls.atomic(uow) as uow:
            apartment = cls.get_apartment(apartment_id, uow=uow)
            if apartment.is_occupied:
                raise ApartmentDeletionBlocked(
                    "Cannot delete an occupied apartment. Terminate occupancy first.",
                    details={"apartment_id": str(apartment_id), "reason": "occupied"},
                )
            balance = BalanceService.get_balance(apartment.id, uow=uow)
            if balance != 0:
                raise ApartmentDeletionBlocked(
                    "Cannot delete an apartment with a non-zero balance",
                    details={"apartment_id": str(apartment_id), "reason": "balance", "balance": str(balance)},
                )
            if uow.manager(Apartment).filter(parent_apartment_id=apartment.id).exists():
                raise ApartmentDeletionBlocked(
                    "Cannot delete an apartment with linked storage or parking units",
                    details={"apartment_id": str(apartment_id), "reason": "children"},
                )
            apartment.delete(using=uow.using)

        logger.info("Apartment deleted", extra={"apartment_id": str(apartment_id)})
