"""
Payment and payment allocation models.

A Payment is money received from an apartment. It is posted to the
ledger as one credit entry. Allocations record which expense shares or
subscription debits the money was applied to; they never touch the
ledger themselves.

Usage:
    from buildings.models import Payment, PaymentAllocation

    payment.allocations.filter(apartment_expense__isnull=False)
"""

from __future__ import annotations

from django.db import models
from django.db.models import Q

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class Payment(UUIDPrimaryKeyMixin, BaseModel):
    """
    Money received from an apartment.

    Fields:
        apartment: Paying apartment
        month: Billing month the payment is for (YYYY-MM)
        amount: Amount received
        is_canceled: Set when the payment's credit has been reversed
    """

    apartment = models.ForeignKey(
        "buildings.Apartment",
        on_delete=models.CASCADE,
        related_name="payments",
        help_text="Paying apartment",
    )
    month = models.CharField(
        max_length=7,
        help_text="Billing month in YYYY-MM format",
    )
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Amount received",
    )
    is_canceled = models.BooleanField(
        default=False,
        help_text="True once the payment has been reversed",
    )

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Payment {self.amount} for {self.month}"


class PaymentAllocation(UUIDPrimaryKeyMixin, BaseModel):
    """
    Part of a payment applied to one expense share or subscription debit.

    Exactly one of apartment_expense / ledger_entry is set.

    Fields:
        payment: Payment the money comes from
        apartment_expense: Expense share the money pays for
        ledger_entry: Subscription debit the money pays for
        amount_allocated: Amount applied
    """

    payment = models.ForeignKey(
        Payment,
        on_delete=models.CASCADE,
        related_name="allocations",
        help_text="Payment the money comes from",
    )
    apartment_expense = models.ForeignKey(
        "buildings.ApartmentExpense",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="allocations",
        help_text="Expense share being paid",
    )
    ledger_entry = models.ForeignKey(
        "buildings.LedgerEntry",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="allocations",
        help_text="Subscription debit being paid",
    )
    amount_allocated = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Amount applied",
    )

    class Meta:
        ordering = ["created_at"]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(apartment_expense__isnull=False, ledger_entry__isnull=True)
                    | Q(apartment_expense__isnull=True, ledger_entry__isnull=False)
                ),
                name="allocation_targets_exactly_one_charge",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.amount_allocated} from {self.payment_id}"
