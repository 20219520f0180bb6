"""
Django admin configuration for ledger entries.

Key features:
- LedgerEntry is immutable (no add/edit/delete permissions)
- Filters by entry type, reference type and billing month
- Search by apartment, reference id and description
"""

from django.contrib import admin

from .models import LedgerEntry


@admin.register(LedgerEntry)
class LedgerEntryAdmin(admin.ModelAdmin):
    """
    Admin configuration for LedgerEntry.

    Ledger entries are immutable - they cannot be edited or deleted
    through the admin interface. Corrections are made with reversal
    entries posted by the services.
    """

    list_display = [
        "id",
        "created_at",
        "apartment",
        "entry_type",
        "amount",
        "reference_type",
        "billing_month",
        "description",
        "created_by",
    ]
    list_filter = ["entry_type", "reference_type", "created_at"]
    search_fields = [
        "id",
        "apartment__apartment_number",
        "reference_id",
        "billing_month",
        "description",
        "created_by",
    ]
    readonly_fields = [
        "id",
        "created_at",
        "apartment",
        "entry_type",
        "amount",
        "reference_type",
        "reference_id",
        "description",
        "created_by",
        "occupancy_period",
        "billing_month",
        "source_apartment_id",
    ]
    list_select_related = ["apartment"]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    fieldsets = (
        (
            "Entry Details",
            {
                "fields": ("id", "apartment", "entry_type", "amount", "created_at"),
            },
        ),
        (
            "Reference",
            {
                "fields": (
                    "reference_type",
                    "reference_id",
                    "billing_month",
                    "source_apartment_id",
                    "occupancy_period",
                ),
            },
        ),
        (
            "Additional Info",
            {
                "fields": ("description", "created_by"),
            },
        ),
    )

    def has_delete_permission(self, request, obj=None) -> bool:
        """Ledger entries are immutable - disable delete."""
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        """Ledger entries are immutable - disable edit."""
        return False

    def has_add_permission(self, request) -> bool:
        """
        Disable adding entries through admin.

        Entries are only created through LedgerService so the cached
        balance is refreshed in the same transaction.
        """
        return False
