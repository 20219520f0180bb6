"""
Ledger service layer for apartment accounts.

This module provides the LedgerService class which encapsulates all
writes to and lookups on the LedgerEntry table. All ledger writes
should go through this service so amounts are validated and entries
are tagged consistently.

Posting an entry does not refresh the apartment's cached balance. The
caller must call BalanceService.refresh_cached_balance() inside the same
unit of work before it commits.

Usage:
    from buildings.ledger.balance import BalanceService
    from buildings.ledger.services import LedgerService
    from core.services import unit_of_work

    with unit_of_work() as uow:
        LedgerService.record_payment(
            apartment.id, payment.id, Decimal("250.00"),
            created_by="admin", uow=uow,
        )
        BalanceService.refresh_cached_balance(apartment.id, uow=uow)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import IntegrityError, transaction

from buildings.ledger.models import EntryType, LedgerEntry, ReferenceType
from buildings.ledger.proration import to_money
from buildings.ledger.types import LedgerPage, RecordEntryParams
from core.services import BaseService

if TYPE_CHECKING:
    import uuid

    from core.services import UnitOfWork

logger = logging.getLogger(__name__)


class LedgerService(BaseService):
    """
    Service class for ledger operations.

    Key features:
    - Append-only writes (corrections are reversal entries)
    - Subscription charges keyed structurally by (ledger owner, billed
      unit, month), enforced by a database constraint
    - Every method joins the caller's unit of work or opens its own

    All methods are class methods - no instance state is maintained.
    """

    # =========================================================================
    # Writes
    # =========================================================================

    @classmethod
    def record_entry(cls, params: RecordEntryParams, uow: UnitOfWork | None = None) -> LedgerEntry:
        """
        Append one entry to an apartment's ledger.

        For subscription charges a second posting for the same ledger
        owner, billed unit and month is rejected by the database; the
        already-posted entry is returned instead and nothing is written.

        Args:
            params: Validated entry parameters
            uow: Caller's unit of work (optional)

        Returns:
            The created LedgerEntry (or the existing subscription charge)
        """
        with cls.atomic(uow) as uow:
            entries = uow.manager(LedgerEntry)
            try:
                # Savepoint so a duplicate does not poison the caller's transaction
                with transaction.atomic(using=uow.using):
                    entry = entries.create(
                        apartment_id=params.apartment_id,
                        entry_type=params.entry_type,
                        amount=params.amount,
                        reference_type=params.reference_type,
                        reference_id=params.reference_id,
                        description=params.description,
                        created_by=params.created_by,
                        occupancy_period_id=params.occupancy_period_id,
                        billing_month=params.billing_month,
                        source_apartment_id=params.source_apartment_id,
                    )
            except IntegrityError:
                if params.reference_type != ReferenceType.SUBSCRIPTION or not params.billing_month:
                    raise
                entry = entries.get(
                    apartment_id=params.apartment_id,
                    reference_type=ReferenceType.SUBSCRIPTION,
                    source_apartment_id=params.source_apartment_id,
                    billing_month=params.billing_month,
                )
                logger.info(
                    "Subscription charge already posted, skipping duplicate",
                    extra={
                        "apartment_id": str(params.apartment_id),
                        "billing_month": params.billing_month,
                        "entry_id": str(entry.id),
                    },
                )
                return entry

        logger.debug(
            "Ledger entry recorded",
            extra={
                "entry_id": str(entry.id),
                "apartment_id": str(params.apartment_id),
                "entry_type": params.entry_type,
                "reference_type": params.reference_type,
                "amount": str(params.amount),
            },
        )
        return entry

    @classmethod
    def record_reversal(
        cls,
        apartment_id: uuid.UUID,
        original_reference_id: uuid.UUID | None,
        amount,
        original_entry_type: str,
        description: str,
        created_by: str | None = None,
        occupancy_period_id: uuid.UUID | None = None,
        uow: UnitOfWork | None = None,
    ) -> LedgerEntry:
        """
        Post an entry that offsets an earlier one.

        The reversal has the opposite entry_type of ``original_entry_type``
        and references the same record as the original. Reversals are
        permanent; undoing one takes a second reversal.

        Example:
            # Cancel an expense share's debit
            LedgerService.record_reversal(
                share.apartment_id, share.id, share.amount, EntryType.DEBIT,
                f"Reversal of expense charge {share.id}", created_by=actor, uow=uow,
            )
        """
        return cls.record_entry(
            RecordEntryParams(
                apartment_id=apartment_id,
                entry_type=EntryType.opposite(original_entry_type),
                amount=to_money(amount),
                reference_type=ReferenceType.REVERSAL,
                reference_id=original_reference_id,
                description=description,
                created_by=created_by,
                occupancy_period_id=occupancy_period_id,
            ),
            uow=uow,
        )

    @classmethod
    def record_payment(
        cls,
        apartment_id: uuid.UUID,
        payment_id: uuid.UUID,
        amount,
        created_by: str | None = None,
        occupancy_period_id: uuid.UUID | None = None,
        uow: UnitOfWork | None = None,
    ) -> LedgerEntry:
        """Credit a received payment."""
        amount = to_money(amount)
        return cls.record_entry(
            RecordEntryParams(
                apartment_id=apartment_id,
                entry_type=EntryType.CREDIT,
                amount=amount,
                reference_type=ReferenceType.PAYMENT,
                reference_id=payment_id,
                description=f"Payment of {amount}",
                created_by=created_by,
                occupancy_period_id=occupancy_period_id,
            ),
            uow=uow,
        )

    @classmethod
    def record_expense_charge(
        cls,
        apartment_id: uuid.UUID,
        apartment_expense_id: uuid.UUID,
        amount,
        description: str,
        created_by: str | None = None,
        occupancy_period_id: uuid.UUID | None = None,
        uow: UnitOfWork | None = None,
    ) -> LedgerEntry:
        """Debit one apartment's share of an expense."""
        return cls.record_entry(
            RecordEntryParams(
                apartment_id=apartment_id,
                entry_type=EntryType.DEBIT,
                amount=to_money(amount),
                reference_type=ReferenceType.EXPENSE,
                reference_id=apartment_expense_id,
                description=description,
                created_by=created_by,
                occupancy_period_id=occupancy_period_id,
            ),
            uow=uow,
        )

    @classmethod
    def record_subscription_charge(
        cls,
        apartment_id: uuid.UUID,
        amount,
        billing_month: str,
        description: str | None = None,
        source_apartment_id: uuid.UUID | None = None,
        created_by: str | None = None,
        occupancy_period_id: uuid.UUID | None = None,
        uow: UnitOfWork | None = None,
    ) -> LedgerEntry:
        """
        Debit a monthly subscription charge.

        ``source_apartment_id`` defaults to ``apartment_id``; pass the child
        unit's id when routing a storage/parking charge to its parent.
        """
        return cls.record_entry(
            RecordEntryParams(
                apartment_id=apartment_id,
                entry_type=EntryType.DEBIT,
                amount=to_money(amount),
                reference_type=ReferenceType.SUBSCRIPTION,
                description=description or f"Monthly subscription {billing_month}",
                created_by=created_by,
                occupancy_period_id=occupancy_period_id,
                billing_month=billing_month,
                source_apartment_id=source_apartment_id or apartment_id,
            ),
            uow=uow,
        )

    @classmethod
    def record_waiver(
        cls,
        apartment_id: uuid.UUID,
        amount,
        description: str,
        reference_id: uuid.UUID | None = None,
        created_by: str | None = None,
        occupancy_period_id: uuid.UUID | None = None,
        uow: UnitOfWork | None = None,
    ) -> LedgerEntry:
        """Credit forgiven debt, optionally referencing the waived record."""
        return cls.record_entry(
            RecordEntryParams(
                apartment_id=apartment_id,
                entry_type=EntryType.CREDIT,
                amount=to_money(amount),
                reference_type=ReferenceType.WAIVER,
                reference_id=reference_id,
                description=description,
                created_by=created_by,
                occupancy_period_id=occupancy_period_id,
            ),
            uow=uow,
        )

    @classmethod
    def record_debit_adjustment(
        cls,
        apartment_id: uuid.UUID,
        amount,
        description: str,
        created_by: str | None = None,
        occupancy_period_id: uuid.UUID | None = None,
        uow: UnitOfWork | None = None,
    ) -> LedgerEntry:
        """Debit that clears a positive balance during a write-off."""
        return cls.record_entry(
            RecordEntryParams(
                apartment_id=apartment_id,
                entry_type=EntryType.DEBIT,
                amount=to_money(amount),
                reference_type=ReferenceType.WAIVER,
                description=description,
                created_by=created_by,
                occupancy_period_id=occupancy_period_id,
            ),
            uow=uow,
        )

    @classmethod
    def record_occupancy_credit(
        cls,
        apartment_id: uuid.UUID,
        amount,
        description: str,
        source_apartment_id: uuid.UUID | None = None,
        created_by: str | None = None,
        occupancy_period_id: uuid.UUID | None = None,
        uow: UnitOfWork | None = None,
    ) -> LedgerEntry:
        """Credit unused days of the month an occupancy ends in."""
        return cls.record_entry(
            RecordEntryParams(
                apartment_id=apartment_id,
                entry_type=EntryType.CREDIT,
                amount=to_money(amount),
                reference_type=ReferenceType.OCCUPANCY_CREDIT,
                description=description,
                created_by=created_by,
                occupancy_period_id=occupancy_period_id,
                source_apartment_id=source_apartment_id or apartment_id,
            ),
            uow=uow,
        )

    # =========================================================================
    # Reads
    # =========================================================================

    @classmethod
    def get_ledger(
        cls,
        apartment_id: uuid.UUID,
        limit: int | None = None,
        offset: int = 0,
        period_id: uuid.UUID | None = None,
        uow: UnitOfWork | None = None,
    ) -> LedgerPage:
        """
        Return one page of an apartment's ledger, newest first.

        Args:
            apartment_id: Apartment whose ledger to read
            limit: Page size (default LEDGER_PAGE_SIZE, capped at
                LEDGER_MAX_PAGE_SIZE)
            offset: Number of entries to skip
            period_id: Only entries tagged with this occupancy period

        Returns:
            LedgerPage with the entries and the total count
        """
        limit = settings.LEDGER_PAGE_SIZE if limit is None else limit
        limit = max(1, min(limit, settings.LEDGER_MAX_PAGE_SIZE))
        offset = max(0, offset)
        with cls.atomic(uow) as uow:
            queryset = uow.manager(LedgerEntry).filter(apartment_id=apartment_id)
            if period_id is not None:
                queryset = queryset.filter(occupancy_period_id=period_id)
            total = queryset.count()
            entries = list(queryset.order_by("-created_at", "-id")[offset : offset + limit])
        return LedgerPage(entries=entries, total=total, limit=limit, offset=offset)

    @classmethod
    def get_entry(cls, entry_id: uuid.UUID, uow: UnitOfWork | None = None) -> LedgerEntry | None:
        with cls.atomic(uow) as uow:
            return uow.manager(LedgerEntry).filter(id=entry_id).first()

    @classmethod
    def find_entry_period_id(
        cls,
        apartment_id: uuid.UUID,
        reference_type: str,
        reference_id: uuid.UUID,
        uow: UnitOfWork | None = None,
    ) -> uuid.UUID | None:
        """
        Return the occupancy period the original entry for a record was tagged with.

        Corrections (payment updates, cancellations) are tagged with this
        period rather than whichever period is active now, so a correction
        made after move-out lands in the tenancy it belongs to.

        Returns:
            The earliest matching entry's occupancy_period_id, or None
        """
        with cls.atomic(uow) as uow:
            return (
                uow.manager(LedgerEntry)
                .filter(
                    apartment_id=apartment_id,
                    reference_type=reference_type,
                    reference_id=reference_id,
                )
                .order_by("created_at")
                .values_list("occupancy_period_id", flat=True)
                .first()
            )

    @classmethod
    def has_entry_for_month(
        cls,
        apartment_id: uuid.UUID,
        reference_type: str,
        month: str,
        source_apartment_id: uuid.UUID | None = None,
        uow: UnitOfWork | None = None,
    ) -> bool:
        """
        Whether an entry for ``month`` already exists on an apartment's ledger.

        The lookup is structural: it matches billing_month and the billed
        unit, never the description, so differently worded postings for the
        same charge are still found.

        Args:
            apartment_id: Ledger owner
            reference_type: Usually ReferenceType.SUBSCRIPTION
            month: YYYY-MM
            source_apartment_id: Billed unit (defaults to the ledger owner)
        """
        with cls.atomic(uow) as uow:
            return (
                uow.manager(LedgerEntry)
                .filter(
                    apartment_id=apartment_id,
                    reference_type=reference_type,
                    billing_month=month,
                    source_apartment_id=source_apartment_id or apartment_id,
                )
                .exists()
            )

    @classmethod
    def has_entry_by_description(
        cls,
        apartment_id: uuid.UUID,
        reference_type: str,
        description: str,
        uow: UnitOfWork | None = None,
    ) -> bool:
        """
        Whether an entry with this exact description exists.

        Covers rows posted without a billing_month.
        """
        with cls.atomic(uow) as uow:
            return (
                uow.manager(LedgerEntry)
                .filter(
                    apartment_id=apartment_id,
                    reference_type=reference_type,
                    description=description,
                )
                .exists()
            )

