"""
Building-domain exceptions for apartment, occupancy, expense and payment operations.

Every exception here inherits one of the core families, so callers can
catch by family (NotFoundError, ConflictError, ValidationError) or by
the specific class.

Exception Hierarchy:
    NotFoundError
    ├── BuildingNotFound
    ├── ApartmentNotFound
    ├── ExpenseNotFound
    ├── ApartmentExpenseNotFound
    ├── PaymentNotFound
    └── OccupancyPeriodNotFound

    ConflictError (invariant violations)
    ├── ActivePeriodExists - Second active occupancy period
    ├── ApartmentNotOccupied - Terminating a vacant apartment
    ├── ApartmentAlreadyOccupied - Starting occupancy twice
    ├── ApartmentDeletionBlocked - Occupied, non-zero balance, or has children
    ├── PaymentReductionBlocked - New amount below allocated total
    ├── ExpenseAmountLocked - Amount change after shares exist
    └── AlreadyCanceled - Canceling a canceled share or payment

    ValidationError (arithmetic/boundary)
    ├── InvalidParentApartment - Bad storage/parking parent
    ├── AllocationExceedsRemaining - Allocation larger than what is owed
    ├── BalanceAlreadyZero - Write-off with nothing to write off
    ├── NothingToWaive - Waiving a fully paid share
    └── NoOccupiedApartments - Building-wide split with nobody to split among

Usage:
    from buildings.exceptions import ApartmentNotFound

    apartment = uow.manager(Apartment).filter(id=apartment_id).first()
    if apartment is None:
        raise ApartmentNotFound(
            f"Apartment {apartment_id} not found",
            details={"apartment_id": str(apartment_id)},
        )
"""

from __future__ import annotations

from core.exceptions import ConflictError, NotFoundError, ValidationError


# =============================================================================
# Not found
# =============================================================================


class BuildingNotFound(NotFoundError):
    default_error_code: str = "BUILDING_NOT_FOUND"


class ApartmentNotFound(NotFoundError):
    default_error_code: str = "APARTMENT_NOT_FOUND"


class ExpenseNotFound(NotFoundError):
    default_error_code: str = "EXPENSE_NOT_FOUND"


class ApartmentExpenseNotFound(NotFoundError):
    default_error_code: str = "APARTMENT_EXPENSE_NOT_FOUND"


class PaymentNotFound(NotFoundError):
    default_error_code: str = "PAYMENT_NOT_FOUND"


class OccupancyPeriodNotFound(NotFoundError):
    default_error_code: str = "OCCUPANCY_PERIOD_NOT_FOUND"


# =============================================================================
# Invariant violations
# =============================================================================


class ActivePeriodExists(ConflictError):
    """
    Raised when opening an occupancy period while another is active.

    The database also enforces this with a partial unique constraint;
    the service checks first so the error carries a useful message.
    """

    default_error_code: str = "ACTIVE_PERIOD_EXISTS"


class ApartmentNotOccupied(ConflictError):
    default_error_code: str = "APARTMENT_NOT_OCCUPIED"


class ApartmentAlreadyOccupied(ConflictError):
    default_error_code: str = "APARTMENT_ALREADY_OCCUPIED"


class ApartmentDeletionBlocked(ConflictError):
    """
    Raised when an apartment cannot be deleted.

    ``details["reason"]`` is one of "occupied", "balance", "children".
    """

    default_error_code: str = "APARTMENT_DELETION_BLOCKED"


class PaymentReductionBlocked(ConflictError):
    default_error_code: str = "PAYMENT_REDUCTION_BLOCKED"


class ExpenseAmountLocked(ConflictError):
    """Raised when changing the amount of an expense that has already been split."""

    default_error_code: str = "EXPENSE_AMOUNT_LOCKED"


class AlreadyCanceled(ConflictError):
    default_error_code: str = "ALREADY_CANCELED"


# =============================================================================
# Arithmetic / boundary
# =============================================================================


class InvalidParentApartment(ValidationError):
    """
    Raised when a storage or parking unit is given an unusable parent.

    The parent must exist, be a regular apartment, and belong to the
    same building as the child.
    """

    default_error_code: str = "INVALID_PARENT_APARTMENT"


class AllocationExceedsRemaining(ValidationError):
    default_error_code: str = "ALLOCATION_EXCEEDS_REMAINING"


class BalanceAlreadyZero(ValidationError):
    default_error_code: str = "BALANCE_ALREADY_ZERO"


class NothingToWaive(ValidationError):
    default_error_code: str = "NOTHING_TO_WAIVE"


class NoOccupiedApartments(ValidationError):
    default_error_code: str = "NO_OCCUPIED_APARTMENTS"
