"""
Initial schema for buildings, apartments, occupancy, expenses, payments
and the apartment ledger.

Changes:
    - Create Building, Apartment, OccupancyPeriod
    - Create Expense, ApartmentExpense
    - Create LedgerEntry (append-only) with the one-subscription-charge
      per unit and month constraint
    - Create Payment, PaymentAllocation
"""

import uuid
from decimal import Decimal

import django.db.models.deletion
from django.db import migrations, models


def uuid_pk():
    return (
        "id",
        models.UUIDField(
            default=uuid.uuid4,
            editable=False,
            primary_key=True,
            serialize=False,
            help_text="Unique identifier for this record",
        ),
    )


def timestamps():
    return [
        (
            "created_at",
            models.DateTimeField(
                auto_now_add=True,
                db_index=True,
                help_text="Timestamp when this record was created",
            ),
        ),
        (
            "updated_at",
            models.DateTimeField(
                auto_now=True,
                help_text="Timestamp when this record was last modified",
            ),
        ),
    ]


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        # =====================================================================
        # Building / Apartment
        # =====================================================================
        migrations.CreateModel(
            name="Building",
            fields=[
                *timestamps(),
                uuid_pk(),
                ("name", models.CharField(max_length=255, help_text="Display name of the building")),
                ("address", models.CharField(max_length=500, blank=True, default="", help_text="Street address")),
                (
                    "number_of_floors",
                    models.PositiveIntegerField(null=True, blank=True, help_text="Number of above-ground floors"),
                ),
            ],
            options={
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Apartment",
            fields=[
                *timestamps(),
                uuid_pk(),
                (
                    "apartment_number",
                    models.CharField(max_length=50, help_text="Unit number, unique within the building"),
                ),
                ("floor", models.IntegerField(null=True, blank=True, help_text="Floor number")),
                (
                    "apartment_type",
                    models.CharField(
                        max_length=20,
                        choices=[("regular", "Regular"), ("storage", "Storage"), ("parking", "Parking")],
                        default="regular",
                        help_text="Kind of unit",
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        max_length=20,
                        choices=[("occupied", "Occupied"), ("vacant", "Vacant")],
                        default="vacant",
                        db_index=True,
                        help_text="Occupancy status",
                    ),
                ),
                (
                    "subscription_amount",
                    models.DecimalField(
                        max_digits=12,
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Monthly subscription charge",
                    ),
                ),
                (
                    "subscription_status",
                    models.CharField(
                        max_length=20,
                        choices=[("active", "Active"), ("inactive", "Inactive")],
                        default="inactive",
                        help_text="Whether the monthly subscription is billed",
                    ),
                ),
                (
                    "occupancy_start",
                    models.DateField(null=True, blank=True, help_text="First occupied day of the current tenancy"),
                ),
                (
                    "cached_balance",
                    models.DecimalField(
                        max_digits=12,
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Signed ledger sum (credits minus debits)",
                    ),
                ),
                (
                    "building",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="apartments",
                        to="buildings.building",
                        help_text="Building this unit belongs to",
                    ),
                ),
                (
                    "parent_apartment",
                    models.ForeignKey(
                        null=True,
                        blank=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="child_units",
                        to="buildings.apartment",
                        help_text="Regular apartment this storage/parking unit belongs to",
                    ),
                ),
            ],
            options={
                "ordering": ["building", "apartment_number"],
                "indexes": [models.Index(fields=["building", "status"], name="buildings_a_buildin_3f9c1e_idx")],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("building", "apartment_number"),
                        name="unique_apartment_number_per_building",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="OccupancyPeriod",
            fields=[
                *timestamps(),
                uuid_pk(),
                ("tenant_id", models.UUIDField(null=True, blank=True, help_text="External id of the tenant")),
                (
                    "tenant_name",
                    models.CharField(max_length=255, blank=True, default="", help_text="Display name of the tenant"),
                ),
                (
                    "status",
                    models.CharField(
                        max_length=20,
                        choices=[("active", "Active"), ("closed", "Closed")],
                        default="active",
                        help_text="active while the tenancy runs, closed afterwards",
                    ),
                ),
                ("start_date", models.DateField(help_text="First occupied day")),
                ("end_date", models.DateField(null=True, blank=True, help_text="Day the period was closed")),
                (
                    "closing_balance",
                    models.DecimalField(
                        max_digits=12,
                        decimal_places=2,
                        null=True,
                        blank=True,
                        help_text="Signed sum of this period's ledger entries at close",
                    ),
                ),
                (
                    "apartment",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="occupancy_periods",
                        to="buildings.apartment",
                        help_text="Apartment being occupied",
                    ),
                ),
            ],
            options={
                "ordering": ["-start_date", "-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("apartment",),
                        condition=models.Q(status="active"),
                        name="one_active_occupancy_period_per_apartment",
                    ),
                ],
            },
        ),
        # =====================================================================
        # Expenses
        # =====================================================================
        migrations.CreateModel(
            name="Expense",
            fields=[
                *timestamps(),
                uuid_pk(),
                (
                    "description",
                    models.CharField(
                        max_length=500, blank=True, default="", help_text="Free text shown on ledger entries"
                    ),
                ),
                (
                    "amount",
                    models.DecimalField(max_digits=12, decimal_places=2, help_text="Total amount of the expense"),
                ),
                ("expense_date", models.DateField(db_index=True, help_text="Date the expense applies to")),
                (
                    "category",
                    models.CharField(max_length=255, blank=True, default="", help_text="Free-form category label"),
                ),
                ("is_recurring", models.BooleanField(default=False, help_text="True for recurring templates")),
                (
                    "recurring_type",
                    models.CharField(
                        max_length=20,
                        choices=[("monthly", "Monthly"), ("yearly", "Yearly")],
                        null=True,
                        blank=True,
                        help_text="Cadence of a recurring template",
                    ),
                ),
                (
                    "recurring_start_date",
                    models.DateField(null=True, blank=True, help_text="First month generated from the template"),
                ),
                (
                    "recurring_end_date",
                    models.DateField(null=True, blank=True, help_text="Generation stops after this date"),
                ),
                (
                    "apartment",
                    models.ForeignKey(
                        null=True,
                        blank=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="direct_expenses",
                        to="buildings.apartment",
                        help_text="Set when the expense is charged to a single apartment",
                    ),
                ),
                (
                    "building",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="expenses",
                        to="buildings.building",
                        help_text="Building this expense belongs to",
                    ),
                ),
                (
                    "parent_expense",
                    models.ForeignKey(
                        null=True,
                        blank=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="children",
                        to="buildings.expense",
                        help_text="Recurring template this expense was generated from",
                    ),
                ),
            ],
            options={
                "ordering": ["-expense_date", "-created_at"],
                "indexes": [models.Index(fields=["building", "expense_date"], name="buildings_e_buildin_8d2a4b_idx")],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("parent_expense", "expense_date"),
                        condition=models.Q(parent_expense__isnull=False),
                        name="one_child_expense_per_parent_and_date",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ApartmentExpense",
            fields=[
                *timestamps(),
                uuid_pk(),
                ("amount", models.DecimalField(max_digits=12, decimal_places=2, help_text="This apartment's share")),
                (
                    "amount_paid",
                    models.DecimalField(
                        max_digits=12,
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Amount applied through payment allocations",
                    ),
                ),
                (
                    "is_canceled",
                    models.BooleanField(default=False, help_text="True once the share's debit has been reversed"),
                ),
                (
                    "apartment",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="expense_shares",
                        to="buildings.apartment",
                        help_text="Apartment owing the share",
                    ),
                ),
                (
                    "expense",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="shares",
                        to="buildings.expense",
                        help_text="Expense being shared",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("apartment", "expense"),
                        name="one_share_per_apartment_and_expense",
                    ),
                ],
            },
        ),
        # =====================================================================
        # Ledger
        # =====================================================================
        migrations.CreateModel(
            name="LedgerEntry",
            fields=[
                uuid_pk(),
                (
                    "entry_type",
                    models.CharField(
                        max_length=10,
                        choices=[("debit", "Debit"), ("credit", "Credit")],
                        help_text="debit or credit",
                    ),
                ),
                (
                    "amount",
                    models.DecimalField(
                        max_digits=12,
                        decimal_places=2,
                        help_text="Non-negative amount; direction comes from entry_type",
                    ),
                ),
                (
                    "reference_type",
                    models.CharField(
                        max_length=30,
                        choices=[
                            ("payment", "Payment"),
                            ("expense", "Expense"),
                            ("subscription", "Subscription"),
                            ("waiver", "Waiver"),
                            ("occupancy_credit", "Occupancy Credit"),
                            ("reversal", "Reversal"),
                        ],
                        help_text="Semantic origin of this entry",
                    ),
                ),
                (
                    "reference_id",
                    models.UUIDField(null=True, blank=True, help_text="UUID of the originating record"),
                ),
                (
                    "description",
                    models.TextField(blank=True, default="", help_text="Human-readable description of this entry"),
                ),
                (
                    "created_by",
                    models.CharField(
                        max_length=255,
                        null=True,
                        blank=True,
                        help_text="Actor who posted this entry (null for batch jobs)",
                    ),
                ),
                (
                    "billing_month",
                    models.CharField(
                        max_length=7,
                        null=True,
                        blank=True,
                        help_text="YYYY-MM month a subscription charge covers",
                    ),
                ),
                (
                    "source_apartment_id",
                    models.UUIDField(
                        null=True,
                        blank=True,
                        help_text="Unit actually billed (a child unit for routed charges)",
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this entry was recorded",
                    ),
                ),
                (
                    "apartment",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="ledger_entries",
                        to="buildings.apartment",
                        help_text="Apartment whose ledger this entry belongs to",
                    ),
                ),
                (
                    "occupancy_period",
                    models.ForeignKey(
                        null=True,
                        blank=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="ledger_entries",
                        to="buildings.occupancyperiod",
                        help_text="Tenancy active when this entry was posted",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "verbose_name_plural": "ledger entries",
                "indexes": [
                    models.Index(fields=["apartment", "created_at"], name="buildings_l_apartme_5e7b21_idx"),
                    models.Index(fields=["reference_type", "reference_id"], name="buildings_l_referen_a4c9d0_idx"),
                    models.Index(
                        fields=["apartment", "reference_type", "billing_month"],
                        name="buildings_l_apartme_c81f36_idx",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(amount__gte=0),
                        name="ledger_entry_amount_non_negative",
                    ),
                    models.UniqueConstraint(
                        fields=("apartment", "source_apartment_id", "billing_month"),
                        condition=models.Q(reference_type="subscription"),
                        name="one_subscription_charge_per_unit_and_month",
                    ),
                ],
            },
        ),
        # =====================================================================
        # Payments
        # =====================================================================
        migrations.CreateModel(
            name="Payment",
            fields=[
                *timestamps(),
                uuid_pk(),
                ("month", models.CharField(max_length=7, help_text="Billing month in YYYY-MM format")),
                ("amount", models.DecimalField(max_digits=12, decimal_places=2, help_text="Amount received")),
                (
                    "is_canceled",
                    models.BooleanField(default=False, help_text="True once the payment has been reversed"),
                ),
                (
                    "apartment",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="payments",
                        to="buildings.apartment",
                        help_text="Paying apartment",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="PaymentAllocation",
            fields=[
                *timestamps(),
                uuid_pk(),
                (
                    "amount_allocated",
                    models.DecimalField(max_digits=12, decimal_places=2, help_text="Amount applied"),
                ),
                (
                    "apartment_expense",
                    models.ForeignKey(
                        null=True,
                        blank=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="allocations",
                        to="buildings.apartmentexpense",
                        help_text="Expense share being paid",
                    ),
                ),
                (
                    "ledger_entry",
                    models.ForeignKey(
                        null=True,
                        blank=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="allocations",
                        to="buildings.ledgerentry",
                        help_text="Subscription debit being paid",
                    ),
                ),
                (
                    "payment",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="allocations",
                        to="buildings.payment",
                        help_text="Payment the money comes from",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at"],
                "constraints": [
                    models.CheckConstraint(
                        condition=(
                            models.Q(apartment_expense__isnull=False, ledger_entry__isnull=True)
                            | models.Q(apartment_expense__isnull=True, ledger_entry__isnull=False)
                        ),
                        name="allocation_targets_exactly_one_charge",
                    ),
                ],
            },
        ),
    ]
