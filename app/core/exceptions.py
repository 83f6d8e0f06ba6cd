"""
Base exception classes for application-wide error handling.

This module provides a standardized exception hierarchy that enables:
- Consistent error payloads for whatever layer consumes the engine
- Machine-readable error codes for client handling
- Detailed error information for debugging

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Input validation failures
    ├── NotFoundError - Resource not found
    └── ConflictError - State conflicts (invalid transitions, lock contention)

Usage:
    from core.exceptions import NotFoundError, ConflictError

    raise NotFoundError(
        f"Contract {contract_id} not found",
        error_code="CONTRACT_NOT_FOUND",
        details={"contract_id": str(contract_id)},
    )

    try:
        ...
    except BaseApplicationError as e:
        payload = e.to_dict()

Note:
    These exceptions are for domain/business logic errors. Domain apps
    (e.g. rental) subclass them with their own error codes.
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
        details: Additional error context (ids, amounts, counts)

    Example:
        try:
            AccountService.get_account(account_id)
        except BaseApplicationError as e:
            logger.warning(f"Lookup failed: {e.error_code}")
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
        Convert exception to a serializable dictionary.

        Returns:
            Dict with error, error_code, and details keys

        Example:
            {
                "error": "Contract 7f1c... not found",
                "error_code": "CONTRACT_NOT_FOUND",
                "details": {"contract_id": "7f1c..."}
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
    - Invalid amounts (zero or negative reloads)
    - Impossible meter readings
    - Missing required evidence

    Example:
        raise ValidationError(
            "Reload amount must be positive",
            error_code="INVALID_AMOUNT",
            details={"amount": "0"},
        )
    """

    default_error_code: str = "VALIDATION_ERROR"


class NotFoundError(BaseApplicationError):
    """
    Raised when a requested resource is not found.

    Use for single-resource lookups where existence is expected.
    List queries should return empty results instead.
    """

    default_error_code: str = "NOT_FOUND"


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with current resource state.

    Use for:
    - Invalid state transitions
    - Operations blocked by dependent records (open rentals)
    - Lock contention between concurrent runs
    - Insufficient funds for a charge

    Example:
        if contract.status != ContractStatus.ACTIVE:
            raise ConflictError(
                f"Contract is {contract.status}, must be active",
                error_code="CONTRACT_NOT_ACTIVE",
                details={"current_status": contract.status},
            )
    """

    default_error_code: str = "CONFLICT"
