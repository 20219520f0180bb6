"""
Apartment model and its lifecycle enums.

An apartment is the unit that owns a ledger. Storage and parking units
are child units: they belong to a regular apartment in the same building
and their charges and credits are posted to the parent's ledger.

Usage:
    from buildings.models import Apartment, ApartmentStatus, ApartmentType

    apartment = Apartment.objects.create(
        building=building,
        apartment_number="4B",
        subscription_amount=Decimal("300.00"),
        subscription_status=SubscriptionStatus.ACTIVE,
    )

    storage = Apartment.objects.create(
        building=building,
        apartment_number="S-1",
        apartment_type=ApartmentType.STORAGE,
        parent_apartment=apartment,
    )
    storage.ledger_owner_id  # apartment.id
"""

from __future__ import annotations

from decimal import Decimal

from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class ApartmentType(models.TextChoices):
    """
    Kinds of units in a building.

    Values:
        REGULAR: A dwelling; owns its own ledger and shares building expenses
        STORAGE: Storage room attached to a regular apartment
        PARKING: Parking space attached to a regular apartment
    """

    REGULAR = "regular", "Regular"
    STORAGE = "storage", "Storage"
    PARKING = "parking", "Parking"


class ApartmentStatus(models.TextChoices):
    OCCUPIED = "occupied", "Occupied"
    VACANT = "vacant", "Vacant"


class SubscriptionStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    INACTIVE = "inactive", "Inactive"


class Apartment(UUIDPrimaryKeyMixin, BaseModel):
    """
    A unit in a building that is billed through the ledger.

    Fields:
        building: Building the unit belongs to
        apartment_number: Unit number, unique within the building
        floor: Floor number (optional, negative for underground)
        apartment_type: regular, storage or parking
        parent_apartment: Regular apartment a storage/parking unit belongs to
        status: occupied or vacant
        subscription_amount: Monthly subscription charge
        subscription_status: Whether the monthly subscription is billed
        occupancy_start: First occupied day (null while vacant)
        cached_balance: Denormalized signed ledger sum, written only by
            BalanceService.refresh_cached_balance

    Note:
        cached_balance is positive when the apartment is in credit and
        negative when it owes money.
    """

    building = models.ForeignKey(
        "buildings.Building",
        on_delete=models.CASCADE,
        related_name="apartments",
        help_text="Building this unit belongs to",
    )
    apartment_number = models.CharField(
        max_length=50,
        help_text="Unit number, unique within the building",
    )
    floor = models.IntegerField(
        null=True,
        blank=True,
        help_text="Floor number",
    )
    apartment_type = models.CharField(
        max_length=20,
        choices=ApartmentType.choices,
        default=ApartmentType.REGULAR,
        help_text="Kind of unit",
    )
    parent_apartment = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="child_units",
        help_text="Regular apartment this storage/parking unit belongs to",
    )
    status = models.CharField(
        max_length=20,
        choices=ApartmentStatus.choices,
        default=ApartmentStatus.VACANT,
        db_index=True,
        help_text="Occupancy status",
    )
    subscription_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Monthly subscription charge",
    )
    subscription_status = models.CharField(
        max_length=20,
        choices=SubscriptionStatus.choices,
        default=SubscriptionStatus.INACTIVE,
        help_text="Whether the monthly subscription is billed",
    )
    occupancy_start = models.DateField(
        null=True,
        blank=True,
        help_text="First occupied day of the current tenancy",
    )
    cached_balance = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Signed ledger sum (credits minus debits)",
    )

    class Meta:
        ordering = ["building", "apartment_number"]
        constraints = [
            models.UniqueConstraint(
                fields=["building", "apartment_number"],
                name="unique_apartment_number_per_building",
            ),
        ]
        indexes = [
            models.Index(fields=["building", "status"], name="buildings_a_buildin_3f9c1e_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.get_apartment_type_display()} {self.apartment_number}"

    @property
    def is_child_unit(self) -> bool:
        """True for storage and parking units."""
        return self.apartment_type != ApartmentType.REGULAR

    @property
    def is_occupied(self) -> bool:
        return self.status == ApartmentStatus.OCCUPIED

    @property
    def ledger_owner_id(self):
        """
        Id of the apartment whose ledger receives this unit's postings.

        Child units post to their parent; a child unit with no parent
        (legacy data) falls back to itself.
        """
        if self.is_child_unit and self.parent_apartment_id:
            return self.parent_apartment_id
        return self.id

    @property
    def bills_subscription(self) -> bool:
        """Whether monthly subscription charges apply right now."""
        return (
            self.is_occupied
            and self.subscription_status == SubscriptionStatus.ACTIVE
            and self.subscription_amount > 0
            and self.occupancy_start is not None
        )
