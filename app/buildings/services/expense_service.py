"""
Building expenses: creation, splitting, recurrence and backfill.

Shares are computed with the largest-remainder method so they always
sum to the expense amount to the cent. Building-wide expenses are split
among occupied regular apartments only; storage and parking units never
share building expenses directly.

Historical shares are changed only by superseding them: the old debit is
reversed and a new debit is posted, both tagged with the occupancy period
of the original charge.

Usage:
    from buildings.services import ExpenseService

    expense = ExpenseService.create_expense(
        building.id, Decimal("100.00"), date(2024, 3, 5), description="Elevator repair",
    )

    # Scheduled batch
    stats = ExpenseService.process_recurring_expenses()
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import TYPE_CHECKING

from buildings.exceptions import (
    AlreadyCanceled,
    ApartmentExpenseNotFound,
    ApartmentNotFound,
    BuildingNotFound,
    ExpenseAmountLocked,
    ExpenseNotFound,
    NoOccupiedApartments,
    NothingToWaive,
)
from buildings.ledger.balance import BalanceService
from buildings.ledger.models import EntryType, ReferenceType
from buildings.ledger.proration import (
    billing_today,
    days_in_month,
    first_of_month,
    month_range,
    occupied_days,
    split_evenly,
    split_largest_remainder,
    to_money,
)
from buildings.ledger.services import LedgerService
from buildings.models import (
    Apartment,
    ApartmentExpense,
    ApartmentStatus,
    ApartmentType,
    Building,
    Expense,
    RecurringType,
)
from buildings.services.occupancy_service import OccupancyService
from core.exceptions import ValidationError
from core.services import BaseService, unit_of_work

if TYPE_CHECKING:
    import uuid
    from datetime import date

    from core.services import UnitOfWork

logger = logging.getLogger(__name__)


class ExpenseService(BaseService):
    """
    Create, split, recur, redistribute and cancel building expenses.

    All methods are class methods - no instance state is maintained.
    """

    # =========================================================================
    # Lookups
    # =========================================================================

    @classmethod
    def get_expense(cls, expense_id: uuid.UUID, uow: UnitOfWork | None = None) -> Expense:
        with cls.atomic(uow) as uow:
            expense = uow.manager(Expense).filter(id=expense_id).first()
        if expense is None:
            raise ExpenseNotFound(
                f"Expense {expense_id} not found",
                details={"expense_id": str(expense_id)},
            )
        return expense

    @classmethod
    def get_apartment_expense(cls, share_id: uuid.UUID, uow: UnitOfWork | None = None) -> ApartmentExpense:
        with cls.atomic(uow) as uow:
            share = uow.manager(ApartmentExpense).filter(id=share_id).first()
        if share is None:
            raise ApartmentExpenseNotFound(
                f"Apartment expense {share_id} not found",
                details={"apartment_expense_id": str(share_id)},
            )
        return share

    @classmethod
    def list_apartment_expenses(cls, apartment_id: uuid.UUID, uow: UnitOfWork | None = None) -> list[ApartmentExpense]:
        """
        Every expense share of an apartment, newest expense first.

        Each share exposes ``remaining`` (amount minus amount_paid, never
        negative) and its expense via ``share.expense``.
        """
        with cls.atomic(uow) as uow:
            return list(
                uow.manager(ApartmentExpense)
                .filter(apartment_id=apartment_id)
                .select_related("expense")
                .order_by("-expense__expense_date", "-created_at")
            )

    # =========================================================================
    # Creation and splitting
    # =========================================================================

    @classmethod
    def create_expense(
        cls,
        building_id: uuid.UUID,
        amount,
        expense_date: date,
        description: str = "",
        category: str = "",
        apartment_id: uuid.UUID | None = None,
        is_recurring: bool = False,
        recurring_type: str | None = None,
        recurring_start_date: date | None = None,
        recurring_end_date: date | None = None,
        actor: str | None = None,
        as_of: date | None = None,
        uow: UnitOfWork | None = None,
    ) -> Expense:
        """
        Create an expense and charge it.

        - Single-apartment expense (``apartment_id`` set): one share, one debit.
        - Building-wide expense: split evenly among occupied regular apartments.
        - Recurring template: not split itself; one child is generated for
          every month (or year) from ``recurring_start_date`` up to ``as_of``.

        Raises:
            BuildingNotFound: Unknown building
            ApartmentNotFound: Unknown apartment
            ValidationError: Bad amount, apartment in another building, or an
                incomplete recurring template
            NoOccupiedApartments: Building-wide expense with nobody to split among
        """
        amount = to_money(amount)
        if amount <= 0:
            raise ValidationError(
                f"Expense amount must be positive, got {amount}",
                error_code="INVALID_EXPENSE_AMOUNT",
                details={"amount": str(amount)},
            )
        if is_recurring:
            if apartment_id is not None:
                raise ValidationError(
                    "Recurring expenses are building-wide and cannot target one apartment",
                    error_code="INVALID_RECURRING_EXPENSE",
                )
            recurring_type = recurring_type or RecurringType.MONTHLY
            if recurring_type not in RecurringType.values:
                raise ValidationError(
                    f"Unknown recurring type: {recurring_type}",
                    error_code="INVALID_RECURRING_EXPENSE",
                    details={"recurring_type": recurring_type},
                )
            recurring_start_date = recurring_start_date or expense_date
            if recurring_end_date is not None and recurring_end_date < recurring_start_date:
                raise ValidationError(
                    "Recurring end date is before the start date",
                    error_code="INVALID_RECURRING_EXPENSE",
                )

        with cls.atomic(uow) as uow:
            if not uow.manager(Building).filter(id=building_id).exists():
                raise BuildingNotFound(
                    f"Building {building_id} not found",
                    details={"building_id": str(building_id)},
                )
            if apartment_id is not None:
                apartment = uow.manager(Apartment).filter(id=apartment_id).first()
                if apartment is None:
                    raise ApartmentNotFound(
                        f"Apartment {apartment_id} not found",
                        details={"apartment_id": str(apartment_id)},
                    )
                if apartment.building_id != building_id:
                    raise ValidationError(
                        "Apartment does not belong to the specified building",
                        error_code="APARTMENT_NOT_IN_BUILDING",
                        details={"apartment_id": str(apartment_id), "building_id": str(building_id)},
                    )

            expense = uow.manager(Expense).create(
                building_id=building_id,
                apartment_id=apartment_id,
                description=description or "",
                amount=amount,
                expense_date=expense_date,
                category=category or "",
                is_recurring=is_recurring,
                recurring_type=recurring_type if is_recurring else None,
                recurring_start_date=recurring_start_date if is_recurring else None,
                recurring_end_date=recurring_end_date if is_recurring else None,
            )

            if is_recurring:
                cls.generate_child_expenses(expense, actor=actor, as_of=as_of, uow=uow)
            elif apartment_id is not None:
                cls._charge_shares(
                    expense,
                    [(apartment_id, amount)],
                    description or "Expense charge",
                    actor,
                    uow,
                )
            else:
                apartment_ids = cls._occupied_regular_apartment_ids(building_id, uow)
                if not apartment_ids:
                    raise NoOccupiedApartments(
                        "No occupied apartments to split expense among",
                        details={"building_id": str(building_id)},
                    )
                cls._charge_shares(
                    expense,
                    split_evenly(amount, apartment_ids),
                    description or "Expense charge (split)",
                    actor,
                    uow,
                )

        logger.info(
            "Expense created",
            extra={
                "expense_id": str(expense.id),
                "building_id": str(building_id),
                "amount": str(amount),
                "is_recurring": is_recurring,
            },
        )
        return expense

    @staticmethod
    def _occupied_regular_apartment_ids(building_id: uuid.UUID, uow: UnitOfWork) -> list:
        return list(
            uow.manager(Apartment)
            .filter(
                building_id=building_id,
                status=ApartmentStatus.OCCUPIED,
                apartment_type=ApartmentType.REGULAR,
            )
            .order_by("id")
            .values_list("id", flat=True)
        )

    @classmethod
    def _charge_shares(
        cls,
        expense: Expense,
        shares: list[tuple],
        description: str,
        actor: str | None,
        uow: UnitOfWork,
    ) -> list[ApartmentExpense]:
        """Create one share and one debit per (apartment_id, amount), then refresh balances."""
        created = []
        for apartment_id, share_amount in shares:
            share = uow.manager(ApartmentExpense).create(
                apartment_id=apartment_id,
                expense=expense,
                amount=share_amount,
            )
            LedgerService.record_expense_charge(
                apartment_id,
                share.id,
                share_amount,
                description,
                created_by=actor,
                occupancy_period_id=OccupancyService.get_active_period_id(apartment_id, uow=uow),
                uow=uow,
            )
            created.append(share)
        for apartment_id, _ in shares:
            BalanceService.refresh_cached_balance(apartment_id, uow=uow)
        return created

    # =========================================================================
    # Recurring templates
    # =========================================================================

    @staticmethod
    def recurrence_months(expense: Expense, as_of: date) -> list[date]:
        """
        First-of-month dates a recurring template should have children for.

        Monthly templates cover every month from recurring_start_date to
        min(recurring_end_date, as_of). Yearly templates cover only the
        anniversary month of recurring_start_date in that range.
        """
        if not expense.recurring_start_date:
            return []
        end = as_of
        if expense.recurring_end_date and expense.recurring_end_date < end:
            end = expense.recurring_end_date
        months = month_range(expense.recurring_start_date, end)
        if expense.recurring_type == RecurringType.YEARLY:
            # Yearly charges fall once a year, not in every month of the range
            anniversary = expense.recurring_start_date.month
            months = [month for month in months if month.month == anniversary]
        return months

    @classmethod
    def generate_child_expenses(
        cls,
        parent: Expense,
        actor: str | None = None,
        as_of: date | None = None,
        uow: UnitOfWork | None = None,
    ) -> int:
        """
        Create the missing child expenses of a recurring template.

        Each child is dated the 1st of its month and split evenly among the
        occupied regular apartments at generation time. A month that
        already has a child is skipped. With a caller-supplied ``uow`` every
        month runs in it; without one each month gets its own unit of work,
        so a failure leaves earlier months committed.

        Returns:
            Number of child expenses created
        """
        months = cls.recurrence_months(parent, as_of or billing_today())
        created = 0
        for month in months:
            if uow is not None:
                created += cls._generate_child_for_month(parent, month, actor, uow)
            else:
                with unit_of_work() as own:
                    created += cls._generate_child_for_month(parent, month, actor, own)
        if created:
            logger.info(
                "Child expenses generated",
                extra={"expense_id": str(parent.id), "children_created": created},
            )
        return created

    @classmethod
    def _generate_child_for_month(cls, parent: Expense, month: date, actor: str | None, uow: UnitOfWork) -> int:
        child_date = first_of_month(month)
        if uow.manager(Expense).filter(parent_expense_id=parent.id, expense_date=child_date).exists():
            return 0

        child = uow.manager(Expense).create(
            building_id=parent.building_id,
            description=parent.description,
            amount=parent.amount,
            expense_date=child_date,
            category=parent.category,
            parent_expense=parent,
        )
        apartment_ids = cls._occupied_regular_apartment_ids(parent.building_id, uow)
        if not apartment_ids:
            logger.warning(
                "Recurring expense child has no occupied apartments to split among",
                extra={"expense_id": str(parent.id), "child_expense_id": str(child.id), "month": str(child_date)},
            )
            return 1
        cls._charge_shares(
            child,
            split_evenly(parent.amount, apartment_ids),
            parent.description or "Recurring expense charge",
            actor,
            uow,
        )
        return 1

    @classmethod
    def process_recurring_expenses(cls, as_of: date | None = None) -> dict:
        """
        Generate children for every recurring template.

        A failure on one template is logged and counted; the others still run.

        Returns:
            Dict with templates, children_created and failed counts
        """
        today = as_of or billing_today()
        stats = {"templates": 0, "children_created": 0, "failed": 0}
        templates = list(Expense.objects.filter(is_recurring=True, parent_expense__isnull=True).order_by("id"))

        logger.info("Processing recurring expenses", extra={"template_count": len(templates)})

        for template in templates:
            try:
                stats["children_created"] += cls.generate_child_expenses(template, as_of=today)
                stats["templates"] += 1
            except Exception:
                stats["failed"] += 1
                logger.exception(
                    "Failed to process recurring expense",
                    extra={"expense_id": str(template.id)},
                )

        logger.info("Processed recurring expenses", extra=stats)
        return stats

    # =========================================================================
    # Backfill on move-in
    # =========================================================================

    @staticmethod
    def _sharer_weight(occupancy_start: date | None, month: date) -> int:
        """
        Day weight of an apartment that already holds a share.

        Its share predates this backfill, so an unknown start or a start
        after the expense month still counts as a full month.
        """
        days = occupied_days(occupancy_start, month)
        return days or days_in_month(month.year, month.month)

    @classmethod
    def backfill_expenses_for_apartment(
        cls,
        apartment_id: uuid.UUID,
        building_id: uuid.UUID,
        occupancy_start: date,
        actor: str | None = None,
        uow: UnitOfWork | None = None,
    ) -> int:
        """
        Charge a newly occupied apartment its share of past building expenses.

        Considers non-recurring, building-wide expenses dated on or after the
        first day of the occupancy month that this apartment has no share
        of and that already have live shares. Each such expense is re-split
        by occupied days in the expense month: existing sharers by their own
        occupancy start, the new apartment by ``occupancy_start``. Existing
        shares whose amount changes are superseded (reversal + new debit in
        the original charge's period); the new apartment gets a new share.

        Returns:
            Number of expenses the apartment was charged for
        """
        with cls.atomic(uow) as uow:
            expenses = list(
                uow.manager(Expense)
                .filter(
                    building_id=building_id,
                    expense_date__gte=first_of_month(occupancy_start),
                    is_recurring=False,
                    apartment__isnull=True,
                )
                .exclude(shares__apartment_id=apartment_id)
                .order_by("expense_date", "id")
            )

            touched = {apartment_id}
            charged = 0
            for expense in expenses:
                live_shares = list(
                    uow.manager(ApartmentExpense)
                    .filter(expense=expense, is_canceled=False)
                    .select_related("apartment")
                    .order_by("apartment_id")
                )
                if not live_shares:
                    continue

                month = first_of_month(expense.expense_date)
                new_weight = occupied_days(occupancy_start, month)
                if new_weight <= 0:
                    continue

                parties = [
                    (share.apartment_id, cls._sharer_weight(share.apartment.occupancy_start, month))
                    for share in live_shares
                ]
                parties.append((apartment_id, new_weight))
                amounts = dict(split_largest_remainder(expense.amount, parties))
                description = expense.description or "Retroactive expense charge"

                for share in live_shares:
                    new_amount = amounts[share.apartment_id]
                    if new_amount != share.amount:
                        cls._supersede_share(share, new_amount, description, actor, uow)
                        touched.add(share.apartment_id)

                new_share = uow.manager(ApartmentExpense).create(
                    apartment_id=apartment_id,
                    expense=expense,
                    amount=amounts[apartment_id],
                )
                LedgerService.record_expense_charge(
                    apartment_id,
                    new_share.id,
                    new_share.amount,
                    description,
                    created_by=actor,
                    occupancy_period_id=OccupancyService.get_active_period_id(apartment_id, uow=uow),
                    uow=uow,
                )
                charged += 1

            for touched_id in sorted(touched, key=str):
                BalanceService.refresh_cached_balance(touched_id, uow=uow)

        if charged:
            logger.info(
                "Expenses backfilled for apartment",
                extra={"apartment_id": str(apartment_id), "expenses_charged": charged},
            )
        return charged

    @classmethod
    def _supersede_share(
        cls,
        share: ApartmentExpense,
        new_amount: Decimal,
        description: str,
        actor: str | None,
        uow: UnitOfWork,
    ) -> None:
        """
        Replace a share's debit with one for ``new_amount`` via reversal + re-charge.

        amount_paid is capped at the new amount.
        """
        period_id = LedgerService.find_entry_period_id(
            share.apartment_id, ReferenceType.EXPENSE, share.id, uow=uow
        )
        LedgerService.record_reversal(
            share.apartment_id,
            share.id,
            share.amount,
            EntryType.DEBIT,
            f"Reversal of expense charge {share.id} (redistributed)",
            created_by=actor,
            occupancy_period_id=period_id,
            uow=uow,
        )
        LedgerService.record_expense_charge(
            share.apartment_id,
            share.id,
            new_amount,
            description,
            created_by=actor,
            occupancy_period_id=period_id,
            uow=uow,
        )
        logger.debug(
            "Expense share redistributed",
            extra={
                "apartment_expense_id": str(share.id),
                "old_amount": str(share.amount),
                "new_amount": str(new_amount),
            },
        )
        share.amount = new_amount
        update_fields = ["amount", "updated_at"]
        # Paid beyond the new amount stays on the ledger as payment credit
        if share.amount_paid > new_amount:
            share.amount_paid = new_amount
            update_fields.append("amount_paid")
        share.save(using=uow.using, update_fields=update_fields)

    # =========================================================================
    # Updates, cancellation and waivers
    # =========================================================================

    @classmethod
    def update_expense(
        cls,
        expense_id: uuid.UUID,
        description: str | None = None,
        amount=None,
        expense_date: date | None = None,
        category: str | None = None,
        uow: UnitOfWork | None = None,
    ) -> Expense:
        """
        Edit an expense's descriptive fields.

        Raises:
            ExpenseNotFound: Unknown expense
            ExpenseAmountLocked: Amount change on an expense that has shares
        """
        with cls.atomic(uow) as uow:
            expense = cls.get_expense(expense_id, uow=uow)
            update_fields = ["updated_at"]

            if amount is not None:
                amount = to_money(amount)
                if amount != expense.amount:
                    if uow.manager(ApartmentExpense).filter(expense_id=expense.id).exists():
                        raise ExpenseAmountLocked(
                            "Cannot change amount on an expense that has already been split "
                            "among apartments. Cancel and recreate instead.",
                            details={"expense_id": str(expense.id)},
                        )
                    expense.amount = amount
                    update_fields.append("amount")
            if description is not None:
                expense.description = description
                update_fields.append("description")
            if expense_date is not None:
                expense.expense_date = expense_date
                update_fields.append("expense_date")
            if category is not None:
                expense.category = category
                update_fields.append("category")

            expense.save(using=uow.using, update_fields=update_fields)
        return expense

    @classmethod
    def delete_expense(cls, expense_id: uuid.UUID, actor: str | None = None, uow: UnitOfWork | None = None) -> Expense:
        """
        Reverse every live share of an expense, then delete it.

        Shares (and their payment allocations) are removed with the expense.
        """
        with cls.atomic(uow) as uow:
            expense = cls.get_expense(expense_id, uow=uow)
            affected = set()
            for share in uow.manager(ApartmentExpense).filter(expense=expense, is_canceled=False).order_by("id"):
                LedgerService.record_reversal(
                    share.apartment_id,
                    share.id,
                    share.amount,
                    EntryType.DEBIT,
                    f"Reversal of expense charge {share.id} (expense deleted)",
                    created_by=actor,
                    occupancy_period_id=LedgerService.find_entry_period_id(
                        share.apartment_id, ReferenceType.EXPENSE, share.id, uow=uow
                    ),
                    uow=uow,
                )
                affected.add(share.apartment_id)

            expense.delete(using=uow.using)

            for apartment_id in sorted(affected, key=str):
                BalanceService.refresh_cached_balance(apartment_id, uow=uow)

        logger.info(
            "Expense deleted",
            extra={"expense_id": str(expense_id), "shares_reversed": len(affected)},
        )
        return expense

    @classmethod
    def cancel_apartment_expense(
        cls,
        share_id: uuid.UUID,
        actor: str | None = None,
        uow: UnitOfWork | None = None,
    ) -> ApartmentExpense:
        """
        Cancel one share and reverse its full debit.

        Raises:
            ApartmentExpenseNotFound: Unknown share
            AlreadyCanceled: Share was already canceled
        """
        with cls.atomic(uow) as uow:
            share = cls.get_apartment_expense(share_id, uow=uow)
            if share.is_canceled:
                raise AlreadyCanceled(
                    "Apartment expense is already canceled",
                    details={"apartment_expense_id": str(share.id)},
                )
            share.is_canceled = True
            share.save(using=uow.using, update_fields=["is_canceled", "updated_at"])

            LedgerService.record_reversal(
                share.apartment_id,
                share.id,
                share.amount,
                EntryType.DEBIT,
                f"Reversal of expense charge {share.id}",
                created_by=actor,
                occupancy_period_id=LedgerService.find_entry_period_id(
                    share.apartment_id, ReferenceType.EXPENSE, share.id, uow=uow
                ),
                uow=uow,
            )
            BalanceService.refresh_cached_balance(share.apartment_id, uow=uow)
        return share

    @classmethod
    def waive_apartment_expense(
        cls,
        share_id: uuid.UUID,
        actor: str | None = None,
        uow: UnitOfWork | None = None,
    ) -> Decimal:
        """
        Forgive the unpaid part of a share.

        Marks the share fully paid and credits only the outstanding
        remainder; amounts already paid are left alone.

        Returns:
            The amount waived

        Raises:
            ApartmentExpenseNotFound: Unknown share
            AlreadyCanceled: Share is canceled
            NothingToWaive: Share is already fully paid
        """
        with cls.atomic(uow) as uow:
            share = cls.get_apartment_expense(share_id, uow=uow)
            if share.is_canceled:
                raise AlreadyCanceled(
                    "Cannot waive a canceled expense",
                    details={"apartment_expense_id": str(share.id)},
                )
            outstanding = to_money(share.amount - share.amount_paid)
            if outstanding <= 0:
                raise NothingToWaive(
                    "Nothing to waive",
                    details={"apartment_expense_id": str(share.id)},
                )

            share.amount_paid = share.amount
            share.save(using=uow.using, update_fields=["amount_paid", "updated_at"])

            LedgerService.record_waiver(
                share.apartment_id,
                outstanding,
                f"Waiver for expense {share.id}",
                reference_id=share.id,
                created_by=actor,
                occupancy_period_id=LedgerService.find_entry_period_id(
                    share.apartment_id, ReferenceType.EXPENSE, share.id, uow=uow
                ),
                uow=uow,
            )
            BalanceService.refresh_cached_balance(share.apartment_id, uow=uow)

        logger.info(
            "Apartment expense waived",
            extra={"apartment_expense_id": str(share_id), "amount": str(outstanding)},
        )
        return outstanding
