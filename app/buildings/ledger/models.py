"""
Ledger models for per-apartment accounts.

This module defines the append-only LedgerEntry table. Every charge,
payment, waiver, credit and correction of an apartment is one signed
row; the apartment's balance is the signed sum of its rows.

Sign convention:
    credit: increases the balance (apartment paid or is owed money)
    debit: decreases the balance (apartment owes money)

Usage:
    from buildings.ledger.models import EntryType, LedgerEntry, ReferenceType

    LedgerEntry.objects.filter(
        apartment_id=apartment.id,
        reference_type=ReferenceType.SUBSCRIPTION,
        billing_month="2024-03",
    ).exists()
"""

from __future__ import annotations

from decimal import Decimal

from django.db import models
from django.db.models import Q

from buildings.ledger.exceptions import LedgerEntryImmutable
from core.model_mixins import AppendOnlyMixin, UUIDPrimaryKeyMixin


class EntryType(models.TextChoices):
    """
    Direction of a ledger entry.

    Values:
        DEBIT: Increases what the apartment owes
        CREDIT: Decreases what the apartment owes
    """

    DEBIT = "debit", "Debit"
    CREDIT = "credit", "Credit"

    @classmethod
    def opposite(cls, entry_type: str) -> EntryType:
        """Return the direction that offsets ``entry_type``."""
        return cls.CREDIT if entry_type == cls.DEBIT else cls.DEBIT


class ReferenceType(models.TextChoices):
    """
    Semantic origin of a ledger entry.

    Values:
        PAYMENT: Money received (reference_id = payment id)
        EXPENSE: Expense share charge (reference_id = apartment expense id)
        SUBSCRIPTION: Monthly subscription charge (no reference_id)
        WAIVER: Forgiven debt, or a write-off adjustment
        OCCUPANCY_CREDIT: Prorated credit for unused days at move-out
        REVERSAL: Offset of an earlier entry (reference_id = that entry's
            reference_id)
    """

    PAYMENT = "payment", "Payment"
    EXPENSE = "expense", "Expense"
    SUBSCRIPTION = "subscription", "Subscription"
    WAIVER = "waiver", "Waiver"
    OCCUPANCY_CREDIT = "occupancy_credit", "Occupancy Credit"
    REVERSAL = "reversal", "Reversal"


class LedgerEntry(UUIDPrimaryKeyMixin, AppendOnlyMixin, models.Model):
    """
    One immutable posting against an apartment's account.

    Entries are never updated or deleted. Corrections are made by posting
    a reversal entry with the opposite entry_type.

    Fields:
        id: UUID primary key (from UUIDPrimaryKeyMixin)
        apartment: Apartment whose ledger this entry belongs to
        entry_type: debit or credit
        amount: Non-negative amount, two decimal places
        reference_type: Semantic origin of the entry
        reference_id: Originating record (payment, expense share, or the
            reference of the entry being reversed)
        description: Human-readable text
        created_by: Actor who posted the entry (null for batch jobs)
        occupancy_period: Tenancy active when the entry was posted
        billing_month: YYYY-MM month a subscription charge covers
        source_apartment_id: Unit actually billed; differs from apartment
            when a storage/parking charge is routed to its parent
        created_at: Timestamp when the entry was recorded

    Constraints:
        - amount must be non-negative
        - One subscription entry per (apartment, source unit, month)
    """

    append_only_error = LedgerEntryImmutable

    apartment = models.ForeignKey(
        "buildings.Apartment",
        on_delete=models.CASCADE,
        related_name="ledger_entries",
        help_text="Apartment whose ledger this entry belongs to",
    )
    entry_type = models.CharField(
        max_length=10,
        choices=EntryType.choices,
        help_text="debit or credit",
    )
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Non-negative amount; direction comes from entry_type",
    )
    reference_type = models.CharField(
        max_length=30,
        choices=ReferenceType.choices,
        help_text="Semantic origin of this entry",
    )
    reference_id = models.UUIDField(
        null=True,
        blank=True,
        help_text="UUID of the originating record",
    )
    description = models.TextField(
        blank=True,
        default="",
        help_text="Human-readable description of this entry",
    )
    created_by = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Actor who posted this entry (null for batch jobs)",
    )
    occupancy_period = models.ForeignKey(
        "buildings.OccupancyPeriod",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="ledger_entries",
        help_text="Tenancy active when this entry was posted",
    )
    billing_month = models.CharField(
        max_length=7,
        null=True,
        blank=True,
        help_text="YYYY-MM month a subscription charge covers",
    )
    source_apartment_id = models.UUIDField(
        null=True,
        blank=True,
        help_text="Unit actually billed (a child unit for routed charges)",
    )
    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="Timestamp when this entry was recorded",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name_plural = "ledger entries"
        indexes = [
            models.Index(fields=["apartment", "created_at"], name="buildings_l_apartme_5e7b21_idx"),
            models.Index(fields=["reference_type", "reference_id"], name="buildings_l_referen_a4c9d0_idx"),
            models.Index(
                fields=["apartment", "reference_type", "billing_month"],
                name="buildings_l_apartme_c81f36_idx",
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gte=0),
                name="ledger_entry_amount_non_negative",
            ),
            models.UniqueConstraint(
                fields=["apartment", "source_apartment_id", "billing_month"],
                condition=Q(reference_type="subscription"),
                name="one_subscription_charge_per_unit_and_month",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.get_entry_type_display()} {self.amount} ({self.reference_type})"

    @property
    def signed_amount(self) -> Decimal:
        """Contribution of this entry to the balance."""
        return self.amount if self.entry_type == EntryType.CREDIT else -self.amount
