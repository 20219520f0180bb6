"""
Expense and per-apartment expense share models.

An Expense is the building-level source record. The amount actually owed
by each apartment lives in an ApartmentExpense share; exactly one debit
ledger entry is posted per share when it is created.

Expense kinds:
    - Single-apartment expense: ``apartment`` is set, one share
    - Building-wide expense: split among occupied regular apartments
    - Recurring template: ``is_recurring`` parent that is never split
      itself; one child expense per month (or year) is generated from it

Usage:
    from buildings.models import ApartmentExpense, Expense, RecurringType

    template = Expense.objects.create(
        building=building,
        description="Cleaning",
        amount=Decimal("300.00"),
        expense_date=date(2024, 1, 1),
        is_recurring=True,
        recurring_type=RecurringType.MONTHLY,
        recurring_start_date=date(2024, 1, 1),
    )
    template.children.order_by("expense_date")
"""

from __future__ import annotations

from decimal import Decimal

from django.db import models
from django.db.models import Q

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class RecurringType(models.TextChoices):
    MONTHLY = "monthly", "Monthly"
    YEARLY = "yearly", "Yearly"


class Expense(UUIDPrimaryKeyMixin, BaseModel):
    """
    A building expense, optionally recurring.

    Fields:
        building: Building the expense belongs to
        apartment: Set for single-apartment expenses
        description: Free text shown on ledger entries
        amount: Total amount to be split
        expense_date: Date the expense applies to
        category: Free-form category label
        is_recurring: True for recurring templates
        recurring_type: monthly or yearly
        recurring_start_date: First month generated from the template
        recurring_end_date: Last day generation may cover (optional)
        parent_expense: Template a generated child belongs to

    Constraints:
        - One child per (parent_expense, expense_date)
    """

    building = models.ForeignKey(
        "buildings.Building",
        on_delete=models.CASCADE,
        related_name="expenses",
        help_text="Building this expense belongs to",
    )
    apartment = models.ForeignKey(
        "buildings.Apartment",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="direct_expenses",
        help_text="Set when the expense is charged to a single apartment",
    )
    description = models.CharField(
        max_length=500,
        blank=True,
        default="",
        help_text="Free text shown on ledger entries",
    )
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Total amount of the expense",
    )
    expense_date = models.DateField(
        db_index=True,
        help_text="Date the expense applies to",
    )
    category = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Free-form category label",
    )
    is_recurring = models.BooleanField(
        default=False,
        help_text="True for recurring templates",
    )
    recurring_type = models.CharField(
        max_length=20,
        choices=RecurringType.choices,
        null=True,
        blank=True,
        help_text="Cadence of a recurring template",
    )
    recurring_start_date = models.DateField(
        null=True,
        blank=True,
        help_text="First month generated from the template",
    )
    recurring_end_date = models.DateField(
        null=True,
        blank=True,
        help_text="Generation stops after this date",
    )
    parent_expense = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="children",
        help_text="Recurring template this expense was generated from",
    )

    class Meta:
        ordering = ["-expense_date", "-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["parent_expense", "expense_date"],
                condition=Q(parent_expense__isnull=False),
                name="one_child_expense_per_parent_and_date",
            ),
        ]
        indexes = [
            models.Index(fields=["building", "expense_date"], name="buildings_e_buildin_8d2a4b_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.description or 'Expense'} {self.amount} ({self.expense_date})"

    @property
    def is_single_apartment(self) -> bool:
        return self.apartment_id is not None


class ApartmentExpense(UUIDPrimaryKeyMixin, BaseModel):
    """
    One apartment's share of an expense.

    Fields:
        apartment: Apartment owing the share
        expense: Expense being shared
        amount: This apartment's share
        amount_paid: Running total applied through payment allocations
        is_canceled: Set when the share's debit has been reversed

    Constraints:
        - One share per (apartment, expense)
    """

    apartment = models.ForeignKey(
        "buildings.Apartment",
        on_delete=models.CASCADE,
        related_name="expense_shares",
        help_text="Apartment owing the share",
    )
    expense = models.ForeignKey(
        Expense,
        on_delete=models.CASCADE,
        related_name="shares",
        help_text="Expense being shared",
    )
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="This apartment's share",
    )
    amount_paid = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Amount applied through payment allocations",
    )
    is_canceled = models.BooleanField(
        default=False,
        help_text="True once the share's debit has been reversed",
    )

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["apartment", "expense"],
                name="one_share_per_apartment_and_expense",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.apartment_id} owes {self.amount} for {self.expense_id}"

    @property
    def remaining(self) -> Decimal:
        """Unpaid part of the share, never negative."""
        return max(Decimal("0.00"), self.amount - self.amount_paid)
