"""
Model mixins providing reusable functionality for Django models.

This module contains abstract mixin classes that can be combined with
BaseModel to add specific functionality. These are generic infrastructure
classes with no domain-specific logic.

Available Mixins:
    UUIDPrimaryKeyMixin: Use UUID as primary key
    AppendOnlyMixin: Rows can be inserted but never updated or deleted

Usage:
    from core.models import BaseModel
    from core.model_mixins import AppendOnlyMixin, UUIDPrimaryKeyMixin

    # Model with UUID primary key and timestamps
    class Building(UUIDPrimaryKeyMixin, BaseModel):
        name = models.CharField(max_length=255)

    # Append-only journal row
    class JournalLine(UUIDPrimaryKeyMixin, AppendOnlyMixin, models.Model):
        amount = models.DecimalField(max_digits=12, decimal_places=2)

Note:
    - Always list mixins before BaseModel in inheritance
    - Mixins are abstract and don't create database tables
"""

from __future__ import annotations

import uuid

from django.db import models


class UUIDPrimaryKeyMixin(models.Model):
    """
    Use UUID as primary key instead of auto-increment integer.

    Fields:
        id: UUIDField as primary key (auto-generated)

    Usage:
        class Apartment(UUIDPrimaryKeyMixin, BaseModel):
            apartment_number = models.CharField(max_length=50)

        apartment = Apartment.objects.create(apartment_number="4B")
        print(apartment.id)  # UUID like: 550e8400-e29b-41d4-a716-446655440000
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for this record",
    )

    class Meta:
        abstract = True


class AppendOnlyRowError(Exception):
    """Raised when an append-only row is updated or deleted."""


class AppendOnlyMixin(models.Model):
    """
    Forbid updates and deletes on individual rows.

    A row may be saved exactly once (the insert). Any later save() or
    delete() on the instance raises ``append_only_error`` (AppendOnlyRowError
    unless the model overrides it). Corrections must be written as new rows.

    Note:
        Bulk QuerySet.update()/delete() and database cascades bypass
        model methods and are not covered here. Admin permissions and
        service code are responsible for never issuing them.
    """

    # Subclasses may raise a domain exception instead
    append_only_error: type[Exception] = AppendOnlyRowError

    class Meta:
        abstract = True

    def save(self, *args, **kwargs) -> None:
        """Insert the row; refuse to overwrite an existing one."""
        if not self._state.adding:
            raise self.append_only_error(
                f"{self.__class__.__name__} {self.pk} is append-only and cannot be updated"
            )
        kwargs["force_insert"] = True
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        """Refuse to delete the row."""
        raise self.append_only_error(
            f"{self.__class__.__name__} {self.pk} is append-only and cannot be deleted"
        )
