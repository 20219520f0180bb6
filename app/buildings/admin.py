"""
Buildings admin configuration.

This file imports admin configurations from the ledger submodule
and registers building domain models with the Django admin.

Balances, shares and ledger rows are written by the services only, so
the fields that feed the ledger are read-only here.
"""

from django.contrib import admin

from buildings.ledger.admin import LedgerEntryAdmin
from buildings.models import (
    Apartment,
    ApartmentExpense,
    Building,
    Expense,
    OccupancyPeriod,
    Payment,
    PaymentAllocation,
)

__all__ = [
    "LedgerEntryAdmin",
    "BuildingAdmin",
    "ApartmentAdmin",
    "OccupancyPeriodAdmin",
    "ExpenseAdmin",
    "ApartmentExpenseAdmin",
    "PaymentAdmin",
]


@admin.register(Building)
class BuildingAdmin(admin.ModelAdmin):
    list_display = ["name", "address", "number_of_floors", "created_at"]
    search_fields = ["name", "address"]
    readonly_fields = ["id", "created_at", "updated_at"]


class OccupancyPeriodInline(admin.TabularInline):
    """Inline display of an apartment's occupancy periods."""

    model = OccupancyPeriod
    extra = 0
    readonly_fields = [
        "id",
        "tenant_name",
        "status",
        "start_date",
        "end_date",
        "closing_balance",
    ]
    fields = readonly_fields
    can_delete = False

    def has_add_permission(self, request, obj=None) -> bool:
        return False


@admin.register(Apartment)
class ApartmentAdmin(admin.ModelAdmin):
    """
    Admin configuration for Apartment.

    cached_balance is shown but never editable; status and occupancy
    dates change through ApartmentService so the ledger follows.
    """

    list_display = [
        "apartment_number",
        "building",
        "apartment_type",
        "status",
        "subscription_amount",
        "subscription_status",
        "cached_balance",
    ]
    list_filter = ["apartment_type", "status", "subscription_status", "building"]
    search_fields = ["apartment_number", "building__name"]
    readonly_fields = [
        "id",
        "status",
        "occupancy_start",
        "cached_balance",
        "created_at",
        "updated_at",
    ]
    list_select_related = ["building"]
    inlines = [OccupancyPeriodInline]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "building", "apartment_number", "floor", "apartment_type", "parent_apartment"),
            },
        ),
        (
            "Subscription",
            {
                "fields": ("subscription_amount", "subscription_status"),
            },
        ),
        (
            "Occupancy",
            {
                "fields": ("status", "occupancy_start", "cached_balance"),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
                "classes": ("collapse",),
            },
        ),
    )

    def has_delete_permission(self, request, obj=None) -> bool:
        """Deletion goes through ApartmentService.delete_apartment guards."""
        return False


@admin.register(OccupancyPeriod)
class OccupancyPeriodAdmin(admin.ModelAdmin):
    list_display = ["apartment", "tenant_name", "status", "start_date", "end_date", "closing_balance"]
    list_filter = ["status"]
    search_fields = ["apartment__apartment_number", "tenant_name"]
    readonly_fields = [
        "id",
        "apartment",
        "tenant_id",
        "tenant_name",
        "status",
        "start_date",
        "end_date",
        "closing_balance",
        "created_at",
        "updated_at",
    ]

    def has_add_permission(self, request) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


class ApartmentExpenseInline(admin.TabularInline):
    """Inline display of the shares of an expense."""

    model = ApartmentExpense
    extra = 0
    readonly_fields = ["id", "apartment", "amount", "amount_paid", "is_canceled"]
    fields = readonly_fields
    can_delete = False

    def has_add_permission(self, request, obj=None) -> bool:
        return False


@admin.register(Expense)
class ExpenseAdmin(admin.ModelAdmin):
    list_display = [
        "description",
        "building",
        "amount",
        "expense_date",
        "category",
        "is_recurring",
        "recurring_type",
        "parent_expense",
    ]
    list_filter = ["is_recurring", "recurring_type", "category"]
    search_fields = ["description", "building__name"]
    readonly_fields = ["id", "amount", "parent_expense", "created_at", "updated_at"]
    date_hierarchy = "expense_date"
    inlines = [ApartmentExpenseInline]

    def has_add_permission(self, request) -> bool:
        """Expenses are created through ExpenseService so shares get charged."""
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(ApartmentExpense)
class ApartmentExpenseAdmin(admin.ModelAdmin):
    list_display = ["apartment", "expense", "amount", "amount_paid", "is_canceled"]
    list_filter = ["is_canceled"]
    search_fields = ["apartment__apartment_number", "expense__description"]
    readonly_fields = ["id", "apartment", "expense", "amount", "amount_paid", "is_canceled", "created_at", "updated_at"]

    def has_add_permission(self, request) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


class PaymentAllocationInline(admin.TabularInline):
    model = PaymentAllocation
    extra = 0
    readonly_fields = ["id", "apartment_expense", "ledger_entry", "amount_allocated"]
    fields = readonly_fields
    can_delete = False

    def has_add_permission(self, request, obj=None) -> bool:
        return False


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ["apartment", "month", "amount", "is_canceled", "created_at"]
    list_filter = ["is_canceled", "month"]
    search_fields = ["apartment__apartment_number", "month"]
    readonly_fields = ["id", "apartment", "month", "amount", "is_canceled", "created_at", "updated_at"]
    inlines = [PaymentAllocationInline]

    def has_add_permission(self, request) -> bool:
        """Payments are recorded through PaymentService so the ledger is credited."""
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False
