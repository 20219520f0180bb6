"""
Occupancy period model.

An occupancy period is one tenancy of an apartment. Ledger entries posted
while a period is active are tagged with it, so a period's balance can be
computed separately from the apartment's all-time balance.

Usage:
    from buildings.models import OccupancyPeriod, OccupancyPeriodStatus

    OccupancyPeriod.objects.filter(
        apartment=apartment,
        status=OccupancyPeriodStatus.ACTIVE,
    ).first()
"""

from __future__ import annotations

from django.db import models
from django.db.models import Q

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class OccupancyPeriodStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    CLOSED = "closed", "Closed"


class OccupancyPeriod(UUIDPrimaryKeyMixin, BaseModel):
    """
    A single tenancy of an apartment.

    Fields:
        apartment: Apartment being occupied
        tenant_id: External id of the tenant (optional)
        tenant_name: Display name of the tenant (optional)
        status: active or closed
        start_date: First occupied day
        end_date: Day the period was closed (null while active)
        closing_balance: Sum of this period's tagged entries at close

    Constraints:
        - At most one active period per apartment
    """

    apartment = models.ForeignKey(
        "buildings.Apartment",
        on_delete=models.CASCADE,
        related_name="occupancy_periods",
        help_text="Apartment being occupied",
    )
    tenant_id = models.UUIDField(
        null=True,
        blank=True,
        help_text="External id of the tenant",
    )
    tenant_name = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Display name of the tenant",
    )
    status = models.CharField(
        max_length=20,
        choices=OccupancyPeriodStatus.choices,
        default=OccupancyPeriodStatus.ACTIVE,
        help_text="active while the tenancy runs, closed afterwards",
    )
    start_date = models.DateField(
        help_text="First occupied day",
    )
    end_date = models.DateField(
        null=True,
        blank=True,
        help_text="Day the period was closed",
    )
    closing_balance = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Signed sum of this period's ledger entries at close",
    )

    class Meta:
        ordering = ["-start_date", "-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["apartment"],
                condition=Q(status="active"),
                name="one_active_occupancy_period_per_apartment",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.apartment_id} {self.start_date} ({self.status})"

    @property
    def is_active(self) -> bool:
        return self.status == OccupancyPeriodStatus.ACTIVE
