"""
Base exception classes for application-wide error handling.

This module provides a standardized exception hierarchy that enables:
- Consistent error payloads for every caller of the service layer
- Machine-readable error codes for client handling
- Detailed error information for debugging

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Input or business-rule validation failures
    ├── NotFoundError - Referenced record does not exist
    └── ConflictError - Operation conflicts with current state

Usage:
    from core.exceptions import ConflictError, NotFoundError

    # Raise with message only
    raise NotFoundError("Apartment not found")

    # Raise with error code and details
    raise ConflictError(
        "Apartment is not occupied",
        error_code="APARTMENT_NOT_OCCUPIED",
        details={"apartment_id": str(apartment.id)},
    )

    # Convert to dict for an API response or a task result
    try:
        ...
    except BaseApplicationError as e:
        return e.to_dict()

Note:
    These exceptions are for domain/business logic errors. Anything else
    (database errors, bugs) propagates unchanged.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (ids, amounts, etc.)

    Example:
        try:
            ApartmentService.write_off_balance(apartment_id, actor="admin")
        except BaseApplicationError as e:
            logger.warning(f"Write-off rejected: {e.error_code}")
    """

    default_error_code: str = "APPLICATION_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        """
        Initialize the exception.

        Args:
            message: Human-readable error description
            error_code: Machine-readable error code (defaults to class default)
            details: Additional error context
        """
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary.

        Returns:
            Dict with error, error_code, and details keys

        Example:
            {
                "error": "Balance is already zero",
                "error_code": "BALANCE_ALREADY_ZERO",
                "details": {"apartment_id": "..."}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        """Return string representation with error code."""
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        """Return detailed representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input validation fails.

    Use for:
    - Invalid amounts (negative, more than two decimal places)
    - Business rule violations (allocation larger than what is owed)
    - Invalid relationships (storage unit whose parent is not regular)
    """

    default_error_code: str = "VALIDATION_ERROR"


class NotFoundError(BaseApplicationError):
    """
    Raised when a requested resource is not found.

    Example:
        apartment = Apartment.objects.filter(id=apartment_id).first()
        if not apartment:
            raise NotFoundError(
                f"Apartment {apartment_id} not found",
                error_code="APARTMENT_NOT_FOUND",
                details={"apartment_id": str(apartment_id)},
            )
    """

    default_error_code: str = "NOT_FOUND"


class ConflictError(BaseApplicationError):
    """
    Raised when operation conflicts with current resource state.

    Use for:
    - A second active occupancy period for the same apartment
    - Invalid state transitions (terminating a vacant apartment)
    - Deleting records that other records still depend on

    Note:
        HTTP 409 Conflict is the appropriate status for these errors.
    """

    default_error_code: str = "CONFLICT"
