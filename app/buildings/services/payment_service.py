"""
Payment workflow.

A payment is posted to the ledger as a single credit. Allocations record
which expense shares or subscription debits the money paid for; they
bump ``ApartmentExpense.amount_paid`` but never touch the ledger, since the
payment credit already covers them.

Amounts are compared with a one-cent tolerance so allocations computed
from rounded figures are not rejected for a rounding difference.

Usage:
    from buildings.services import PaymentService
    from buildings.types import ExpenseAllocation

    payment = PaymentService.create_payment(
        apartment.id, "2024-03", Decimal("400.00"),
        allocations=[ExpenseAllocation(share.id, Decimal("100.00"))],
        actor="admin",
    )
    PaymentService.cancel_payment(payment.id, actor="admin")
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import TYPE_CHECKING

from django.db.models import Sum

from buildings.exceptions import (
    AllocationExceedsRemaining,
    AlreadyCanceled,
    ApartmentExpenseNotFound,
    ApartmentNotFound,
    PaymentNotFound,
    PaymentReductionBlocked,
)
from buildings.ledger.balance import BalanceService
from buildings.ledger.models import EntryType, LedgerEntry, ReferenceType
from buildings.ledger.proration import ZERO, to_money
from buildings.ledger.services import LedgerService
from buildings.ledger.types import MONTH_KEY_RE
from buildings.models import Apartment, ApartmentExpense, Payment, PaymentAllocation
from buildings.services.occupancy_service import OccupancyService
from core.exceptions import ValidationError
from core.services import BaseService

if TYPE_CHECKING:
    import uuid
    from collections.abc import Iterable

    from buildings.types import ExpenseAllocation, SubscriptionAllocation
    from core.services import UnitOfWork

logger = logging.getLogger(__name__)

# Rounding slack allowed when comparing allocations to what is owed
ALLOCATION_TOLERANCE = Decimal("0.01")


class PaymentService(BaseService):
    """
    Service for recording, correcting and canceling payments.

    All methods are class methods - no instance state is maintained.
    """

    @classmethod
    def get_payment(cls, payment_id: uuid.UUID, uow: UnitOfWork | None = None) -> Payment:
        with cls.atomic(uow) as uow:
            payment = uow.manager(Payment).filter(id=payment_id).first()
        if payment is None:
            raise PaymentNotFound(
                f"Payment {payment_id} not found",
                details={"payment_id": str(payment_id)},
            )
        return payment

    @staticmethod
    def _validate_month(month: str) -> None:
        if not MONTH_KEY_RE.match(month or ""):
            raise ValidationError(
                f"Invalid payment month: {month!r}. Use YYYY-MM.",
                error_code="INVALID_PAYMENT_MONTH",
                details={"month": month},
            )

    @staticmethod
    def _validate_amount(amount: Decimal) -> None:
        if amount <= 0:
            raise ValidationError(
                f"Payment amount must be positive, got {amount}",
                error_code="INVALID_PAYMENT_AMOUNT",
                details={"amount": str(amount)},
            )

    @classmethod
    def allocated_to_entry(cls, ledger_entry_id: uuid.UUID, uow: UnitOfWork) -> Decimal:
        """Sum of live allocations already applied to one subscription debit."""
        total = (
            uow.manager(PaymentAllocation)
            .filter(ledger_entry_id=ledger_entry_id, payment__is_canceled=False)
            .aggregate(total=Sum("amount_allocated"))["total"]
        )
        return to_money(total or ZERO)

    @classmethod
    def allocated_total(cls, payment_id: uuid.UUID, uow: UnitOfWork) -> Decimal:
        total = (
            uow.manager(PaymentAllocation)
            .filter(payment_id=payment_id)
            .aggregate(total=Sum("amount_allocated"))["total"]
        )
        return to_money(total or ZERO)

    # =========================================================================
    # Create
    # =========================================================================

    @classmethod
    def create_payment(
        cls,
        apartment_id: uuid.UUID,
        month: str,
        amount,
        allocations: Iterable[ExpenseAllocation] = (),
        subscription_allocations: Iterable[SubscriptionAllocation] = (),
        actor: str | None = None,
        uow: UnitOfWork | None = None,
    ) -> Payment:
        """
        Record a payment, apply its allocations and credit the ledger.

        Every allocation is validated before anything is written, so a
        rejected allocation leaves no trace. Allocations aimed at the same
        share or subscription debit are combined into one and checked
        against what remains as a whole.

        Args:
            apartment_id: Paying apartment
            month: Billing month (YYYY-MM)
            amount: Amount received
            allocations: Parts applied to this apartment's expense shares
            subscription_allocations: Parts applied to subscription debits
                on this apartment's ledger
            actor: Who recorded the payment

        Raises:
            ApartmentNotFound: Unknown apartment
            ApartmentExpenseNotFound: Share missing or owned by another apartment
            AllocationExceedsRemaining: An allocation, or their total, is
                larger than what is owed or paid
            ValidationError: Bad month, non-positive amount, canceled share,
                or a ledger entry that is not a subscription debit
        """
        amount = to_money(amount)
        cls._validate_month(month)
        cls._validate_amount(amount)
        allocations = list(allocations)
        subscription_allocations = list(subscription_allocations)

        allocated = sum((a.amount for a in allocations), ZERO) + sum(
            (a.amount for a in subscription_allocations), ZERO
        )
        if allocated > amount + ALLOCATION_TOLERANCE:
            raise AllocationExceedsRemaining(
                f"Total allocations ({allocated}) exceed payment amount ({amount})",
                details={"allocated": str(allocated), "amount": str(amount)},
            )

        with cls.atomic(uow) as uow:
            if not uow.manager(Apartment).filter(id=apartment_id).exists():
                raise ApartmentNotFound(
                    f"Apartment {apartment_id} not found",
                    details={"apartment_id": str(apartment_id)},
                )

            shares = [
                (cls._check_expense_allocation(apartment_id, share_id, share_amount, uow), share_amount)
                for share_id, share_amount in cls._merge_allocations(allocations, "apartment_expense_id")
            ]
            entries = [
                (cls._check_subscription_allocation(apartment_id, entry_id, entry_amount, uow), entry_amount)
                for entry_id, entry_amount in cls._merge_allocations(subscription_allocations, "ledger_entry_id")
            ]

            payment = uow.manager(Payment).create(apartment_id=apartment_id, month=month, amount=amount)

            for share, share_amount in shares:
                uow.manager(PaymentAllocation).create(
                    payment=payment,
                    apartment_expense=share,
                    amount_allocated=share_amount,
                )
                share.amount_paid = to_money(share.amount_paid + share_amount)
                share.save(using=uow.using, update_fields=["amount_paid", "updated_at"])

            for entry, entry_amount in entries:
                uow.manager(PaymentAllocation).create(
                    payment=payment,
                    ledger_entry=entry,
                    amount_allocated=entry_amount,
                )

            LedgerService.record_payment(
                apartment_id,
                payment.id,
                amount,
                created_by=actor,
                occupancy_period_id=OccupancyService.get_active_period_id(apartment_id, uow=uow),
                uow=uow,
            )
            BalanceService.refresh_cached_balance(apartment_id, uow=uow)

        logger.info(
            "Payment recorded",
            extra={
                "payment_id": str(payment.id),
                "apartment_id": str(apartment_id),
                "amount": str(amount),
                "allocations": len(shares) + len(entries),
            },
        )
        return payment

    @staticmethod
    def _merge_allocations(allocations: list, target_field: str) -> list[tuple[uuid.UUID, Decimal]]:
        """Combine allocations aimed at the same target, keeping first-seen order."""
        totals: dict[uuid.UUID, Decimal] = {}
        for allocation in allocations:
            target_id = getattr(allocation, target_field)
            totals[target_id] = to_money(totals.get(target_id, ZERO) + allocation.amount)
        return list(totals.items())

    @classmethod
    def _check_expense_allocation(
        cls,
        apartment_id: uuid.UUID,
        apartment_expense_id: uuid.UUID,
        amount: Decimal,
        uow: UnitOfWork,
    ) -> ApartmentExpense:
        share = (
            uow.manager(ApartmentExpense)
            .filter(id=apartment_expense_id, apartment_id=apartment_id)
            .first()
        )
        if share is None:
            raise ApartmentExpenseNotFound(
                "Apartment expense not found for this apartment",
                details={"apartment_expense_id": str(apartment_expense_id)},
            )
        if share.is_canceled:
            raise ValidationError(
                "Cannot allocate a payment to a canceled expense",
                error_code="CANCELED_EXPENSE",
                details={"apartment_expense_id": str(share.id)},
            )
        remaining = share.remaining
        if amount > remaining + ALLOCATION_TOLERANCE:
            raise AllocationExceedsRemaining(
                f"Allocation ({amount}) exceeds remaining ({remaining})",
                details={
                    "apartment_expense_id": str(share.id),
                    "allocation": str(amount),
                    "remaining": str(remaining),
                },
            )
        return share

    @classmethod
    def _check_subscription_allocation(
        cls,
        apartment_id: uuid.UUID,
        ledger_entry_id: uuid.UUID,
        amount: Decimal,
        uow: UnitOfWork,
    ) -> LedgerEntry:
        entry = uow.manager(LedgerEntry).filter(id=ledger_entry_id, apartment_id=apartment_id).first()
        if entry is None or entry.reference_type != ReferenceType.SUBSCRIPTION or entry.entry_type != EntryType.DEBIT:
            raise ValidationError(
                "Ledger entry is not a subscription charge on this apartment",
                error_code="INVALID_SUBSCRIPTION_ALLOCATION",
                details={"ledger_entry_id": str(ledger_entry_id)},
            )
        remaining = entry.amount - cls.allocated_to_entry(entry.id, uow)
        if amount > remaining + ALLOCATION_TOLERANCE:
            raise AllocationExceedsRemaining(
                f"Allocation ({amount}) exceeds remaining ({remaining})",
                details={
                    "ledger_entry_id": str(entry.id),
                    "allocation": str(amount),
                    "remaining": str(remaining),
                },
            )
        return entry

    # =========================================================================
    # Update / cancel
    # =========================================================================

    @classmethod
    def update_payment(
        cls,
        payment_id: uuid.UUID,
        month: str | None = None,
        amount=None,
        actor: str | None = None,
        uow: UnitOfWork | None = None,
    ) -> Payment:
        """
        Correct a payment's month or amount.

        An amount change reverses the old credit and posts a new one, both
        tagged with the period of the original credit.

        Raises:
            PaymentNotFound: Unknown payment
            AlreadyCanceled: Payment was canceled
            PaymentReductionBlocked: New amount is below the allocated total
        """
        with cls.atomic(uow) as uow:
            payment = cls.get_payment(payment_id, uow=uow)
            if payment.is_canceled:
                raise AlreadyCanceled(
                    "Cannot update a canceled payment",
                    details={"payment_id": str(payment.id)},
                )
            update_fields = ["updated_at"]

            if month is not None:
                cls._validate_month(month)
                payment.month = month
                update_fields.append("month")

            if amount is not None:
                new_amount = to_money(amount)
                cls._validate_amount(new_amount)
                if new_amount != payment.amount:
                    allocated = cls.allocated_total(payment.id, uow)
                    if new_amount + ALLOCATION_TOLERANCE < allocated:
                        raise PaymentReductionBlocked(
                            f"Cannot reduce payment below allocated total ({allocated})",
                            details={"payment_id": str(payment.id), "allocated": str(allocated)},
                        )
                    period_id = LedgerService.find_entry_period_id(
                        payment.apartment_id, ReferenceType.PAYMENT, payment.id, uow=uow
                    )
                    LedgerService.record_reversal(
                        payment.apartment_id,
                        payment.id,
                        payment.amount,
                        EntryType.CREDIT,
                        f"Reversal of payment {payment.id} (amount corrected)",
                        created_by=actor,
                        occupancy_period_id=period_id,
                        uow=uow,
                    )
                    LedgerService.record_payment(
                        payment.apartment_id,
                        payment.id,
                        new_amount,
                        created_by=actor,
                        occupancy_period_id=period_id,
                        uow=uow,
                    )
                    payment.amount = new_amount
                    update_fields.append("amount")

            payment.save(using=uow.using, update_fields=update_fields)
            BalanceService.refresh_cached_balance(payment.apartment_id, uow=uow)

        return payment

    @classmethod
    def cancel_payment(
        cls,
        payment_id: uuid.UUID,
        actor: str | None = None,
        uow: UnitOfWork | None = None,
    ) -> Payment:
        """
        Cancel a payment: unwind its allocations and reverse its credit.

        The reversal is tagged with the original credit's period, so a
        payment canceled after move-out is charged back to that tenancy.

        Raises:
            PaymentNotFound: Unknown payment
            AlreadyCanceled: Payment was already canceled
        """
        with cls.atomic(uow) as uow:
            payment = cls.get_payment(payment_id, uow=uow)
            if payment.is_canceled:
                raise AlreadyCanceled(
                    "Payment is already canceled",
                    details={"payment_id": str(payment.id)},
                )

            allocations = uow.manager(PaymentAllocation).filter(payment=payment).select_related("apartment_expense")
            for allocation in allocations:
                share = allocation.apartment_expense
                if share is None:
                    continue
                share.amount_paid = max(ZERO, to_money(share.amount_paid - allocation.amount_allocated))
                share.save(using=uow.using, update_fields=["amount_paid", "updated_at"])
            uow.manager(PaymentAllocation).filter(payment=payment).delete()

            payment.is_canceled = True
            payment.save(using=uow.using, update_fields=["is_canceled", "updated_at"])

            LedgerService.record_reversal(
                payment.apartment_id,
                payment.id,
                payment.amount,
                EntryType.CREDIT,
                f"Reversal of payment {payment.id}",
                created_by=actor,
                occupancy_period_id=LedgerService.find_entry_period_id(
                    payment.apartment_id, ReferenceType.PAYMENT, payment.id, uow=uow
                ),
                uow=uow,
            )
            BalanceService.refresh_cached_balance(payment.apartment_id, uow=uow)

        logger.info(
            "Payment canceled",
            extra={"payment_id": str(payment_id), "apartment_id": str(payment.apartment_id)},
        )
        return payment
