"""
Base service layer patterns for business logic encapsulation.

This module provides foundational patterns for the service layer:
- UnitOfWork: Explicit handle for one open database transaction
- unit_of_work: Context manager that opens a UnitOfWork
- BaseService: Base class with common service utilities

Service Layer Philosophy:
    Services encapsulate business logic separate from models and tasks.
    Models handle data, services handle logic, tasks handle scheduling.

Transaction Composition:
    Every service operation that writes takes an optional ``uow`` argument.
    Passing a handle makes the operation part of the caller's transaction;
    omitting it makes the operation open and commit its own. Nesting is
    therefore visible in call signatures instead of being implied by
    whatever transaction happens to be open on the current thread.

Usage:
    from core.services import BaseService, unit_of_work

    class TenancyService(BaseService):
        @classmethod
        def move_in(cls, apartment_id, uow=None):
            with cls.atomic(uow) as uow:
                apartment = uow.manager(Apartment).get(id=apartment_id)
                ...

    # Compose two operations atomically
    with unit_of_work() as uow:
        LedgerService.record_entry(params, uow=uow)
        BalanceService.refresh_cached_balance(apartment_id, uow=uow)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

from django.db import DEFAULT_DB_ALIAS, transaction

if TYPE_CHECKING:
    from collections.abc import Iterator

    from django.db import models


class UnitOfWorkClosed(RuntimeError):
    """Raised when a UnitOfWork is used after its transaction has ended."""


class UnitOfWork:
    """
    Handle for one open atomic block on a database alias.

    Instances are created by unit_of_work() and are only valid inside
    the ``with`` block that produced them.

    Attributes:
        using: Database alias the transaction runs on
    """

    def __init__(self, using: str = DEFAULT_DB_ALIAS):
        self.using = using
        self._open = True

    def __repr__(self) -> str:
        state = "open" if self._open else "closed"
        return f"UnitOfWork(using={self.using!r}, {state})"

    @property
    def is_open(self) -> bool:
        return self._open

    def ensure_open(self) -> None:
        """
        Raise if the handle's transaction is no longer active.

        Raises:
            UnitOfWorkClosed: If the with-block has exited or the
                connection is not inside an atomic block
        """
        if not self._open:
            raise UnitOfWorkClosed(f"{self!r} has already been committed or rolled back")
        if not transaction.get_connection(self.using).in_atomic_block:
            raise UnitOfWorkClosed(f"{self!r} is not inside an atomic block")

    def manager(self, model: type[models.Model]) -> models.Manager:
        """
        Return the model's default manager bound to this transaction's alias.

        Example:
            uow.manager(Apartment).filter(status=ApartmentStatus.OCCUPIED)
        """
        self.ensure_open()
        return model._default_manager.db_manager(self.using)

    def on_commit(self, func) -> None:
        """Run ``func`` after the outermost transaction commits."""
        self.ensure_open()
        transaction.on_commit(func, using=self.using)

    def close(self) -> None:
        self._open = False


@contextmanager
def unit_of_work(using: str = DEFAULT_DB_ALIAS) -> Iterator[UnitOfWork]:
    """
    Open an atomic block and yield a handle for it.

    If the block raises, every write made through the handle is rolled
    back. The handle is closed on exit either way.

    Args:
        using: Database alias (default: "default")

    Yields:
        UnitOfWork bound to the open transaction
    """
    with transaction.atomic(using=using):
        uow = UnitOfWork(using=using)
        try:
            yield uow
        finally:
            uow.close()


class BaseService:
    """
    Base class for service layer classes.

    Provides common utilities for services:
    - Logging setup per service
    - Joining or opening a unit of work

    Design Notes:
        - Use @staticmethod or @classmethod (no instance state)
        - Services should be stateless
        - Raise core.exceptions subclasses for business rule failures
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """
        Get logger for this service.

        Returns a logger named after the service class for
        easy filtering in logs.
        """
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls, uow: UnitOfWork | None = None) -> Iterator[UnitOfWork]:
        """
        Join the caller's unit of work, or open a new one.

        Args:
            uow: Handle passed down by the caller, or None

        Yields:
            The caller's handle unchanged, or a freshly opened one that
            commits when the block exits

        Example:
            with cls.atomic(uow) as uow:
                uow.manager(Payment).create(...)
        """
        if uow is not None:
            uow.ensure_open()
            yield uow
            return
        with unit_of_work() as own:
            yield own
