"""
Ledger-specific exceptions for apartment account operations.

This module provides a hierarchy of exceptions for ledger operations,
inheriting from the core exception base class for consistent payloads.

Exception Hierarchy:
    LedgerError (base)
    ├── InvalidLedgerAmount - Negative or sub-cent amounts
    └── LedgerEntryImmutable - Attempt to update or delete a posted entry

Usage:
    from buildings.ledger.exceptions import InvalidLedgerAmount

    if amount < 0:
        raise InvalidLedgerAmount(
            f"Ledger amount must be non-negative, got {amount}",
            details={"amount": str(amount)},
        )
"""

from __future__ import annotations

from core.exceptions import BaseApplicationError, ValidationError


class LedgerError(BaseApplicationError):
    """
    Base exception for all ledger operations.

    Example:
        try:
            LedgerService.record_entry(params, uow=uow)
        except LedgerError as e:
            logger.error(f"Ledger operation failed: {e}")
            raise
    """

    default_error_code: str = "LEDGER_ERROR"


class InvalidLedgerAmount(LedgerError, ValidationError):
    """
    Raised when an entry amount is negative or has more than two decimals.

    Entry amounts are always non-negative; the direction of the posting
    is carried by entry_type, never by the sign of the amount.
    """

    default_error_code: str = "INVALID_LEDGER_AMOUNT"


class LedgerEntryImmutable(LedgerError):
    """
    Raised when code tries to update or delete an existing ledger entry.

    Corrections must be posted as reversal entries referencing the
    original instead.
    """

    default_error_code: str = "LEDGER_ENTRY_IMMUTABLE"
