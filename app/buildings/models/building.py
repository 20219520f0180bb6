"""
Building model.

A building groups apartments and owns building-wide expenses. It carries
no balance of its own; every ledger entry belongs to an apartment.

Usage:
    from buildings.models import Building

    building = Building.objects.create(name="Rothschild 12", address="Tel Aviv")
    building.apartments.filter(status=ApartmentStatus.OCCUPIED)
"""

from __future__ import annotations

from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class Building(UUIDPrimaryKeyMixin, BaseModel):
    """
    A residential building.

    Fields:
        name: Display name
        address: Street address (optional)
        number_of_floors: Above-ground floors (optional)
    """

    name = models.CharField(
        max_length=255,
        help_text="Display name of the building",
    )
    address = models.CharField(
        max_length=500,
        blank=True,
        default="",
        help_text="Street address",
    )
    number_of_floors = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="Number of above-ground floors",
    )

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name
