"""
Rental-specific exceptions for ledger, lifecycle and billing operations.

This module provides a hierarchy of exceptions for rental operations,
inheriting from the core exception base classes for API consistency.
Each one also derives from its core category (NotFoundError,
ValidationError or ConflictError), so callers can handle a category
without listing every rental error.

Exception Hierarchy:
    RentalError (base)
    ├── InsufficientBalance - Movement would leave the balance negative
    ├── InvalidAmount - Non-positive reload or malformed amount
    ├── AccountNotFound - Client account lookup failures
    ├── ContractNotFound - Contract lookup failures
    ├── ContractNotActive - Withdrawal against a non-active contract
    ├── ActiveRentalsExist - Contract completion with assets still out
    ├── RentalNotFound - Asset rental lookup failures
    ├── AlreadyReturned - Operation on a rental that was returned
    ├── WrongTrackingType - Usage report on a non-machinery rental
    ├── AssetNotFound - Catalog lookup failures
    ├── AssetNotConfigured - Asset without a tracking type
    ├── InvalidMeterReading - Meter end reading below start reading
    └── MissingEvidence - Billable report without evidence URLs

    InvalidStateTransition - FSM transition not allowed (inherits ConflictError)
    LockAcquisitionError - Distributed lock contention (inherits ConflictError)

Usage:
    from rental.exceptions import InsufficientBalance, ActiveRentalsExist

    try:
        AccountService.apply_movement(params)
    except InsufficientBalance as e:
        print(f"Need {e.required_amount}, have {e.current_balance}")
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import (
    BaseApplicationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)

if TYPE_CHECKING:
    import uuid
    from decimal import Decimal
    from typing import Any


class RentalError(BaseApplicationError):
    """
    Base exception for all rental operations.

    Example:
        try:
            ContractService.withdraw_asset(...)
        except RentalError as e:
            logger.error(f"Withdrawal failed: {e}")
            payload = e.to_dict()
    """

    default_error_code: str = "RENTAL_ERROR"


class InsufficientBalance(RentalError, ConflictError):
    """
    Raised when a movement would take an account balance below zero.

    Attributes:
        account_id: The UUID of the account with insufficient funds
        current_balance: Balance before the attempted movement
        required_amount: Absolute amount of the attempted charge
    """

    default_error_code: str = "INSUFFICIENT_BALANCE"

    def __init__(
        self,
        account_id: uuid.UUID,
        current_balance: Decimal,
        required_amount: Decimal,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.account_id = account_id
        self.current_balance = current_balance
        self.required_amount = required_amount

        message = (
            f"Insufficient balance on account {account_id}: "
            f"current {current_balance}, required {required_amount}"
        )

        full_details = {
            "account_id": str(account_id),
            "current_balance": str(current_balance),
            "required_amount": str(required_amount),
        }
        if details:
            full_details.update(details)

        super().__init__(
            message=message,
            error_code=error_code,
            details=full_details,
        )


class InvalidAmount(RentalError, ValidationError):
    """Raised when an amount is not acceptable for the operation."""

    default_error_code: str = "INVALID_AMOUNT"


class AccountNotFound(RentalError, NotFoundError):
    """Raised when a client account cannot be found."""

    default_error_code: str = "ACCOUNT_NOT_FOUND"


class ContractNotFound(RentalError, NotFoundError):
    """Raised when a rental contract cannot be found."""

    default_error_code: str = "CONTRACT_NOT_FOUND"


class ContractNotActive(RentalError, ConflictError):
    """
    Raised when an operation requires an active contract.

    Withdrawals are only allowed on active contracts; suspended,
    completed and cancelled contracts reject them.
    """

    default_error_code: str = "CONTRACT_NOT_ACTIVE"


class ActiveRentalsExist(RentalError, ConflictError):
    """
    Raised when completing a contract that still has assets out.

    Attributes:
        rental_ids: Ids of rentals without an actual return date
    """

    default_error_code: str = "ACTIVE_RENTALS_EXIST"

    def __init__(
        self,
        contract_id: uuid.UUID,
        rental_ids: list[uuid.UUID],
        error_code: str | None = None,
    ):
        self.contract_id = contract_id
        self.rental_ids = rental_ids
        super().__init__(
            message=(
                f"Cannot complete contract {contract_id}: "
                f"{len(rental_ids)} assets still in use"
            ),
            error_code=error_code,
            details={
                "contract_id": str(contract_id),
                "count": len(rental_ids),
                "rental_ids": [str(rental_id) for rental_id in rental_ids],
            },
        )


class RentalNotFound(RentalError, NotFoundError):
    """Raised when an asset rental cannot be found."""

    default_error_code: str = "RENTAL_NOT_FOUND"


class AlreadyReturned(RentalError, ConflictError):
    """
    Raised when an asset rental has already been returned.

    Returned rentals accept no further usage reports and cannot be
    returned a second time.
    """

    default_error_code: str = "ALREADY_RETURNED"


class WrongTrackingType(RentalError, ValidationError):
    """Raised when a usage report targets a rental that is not MACHINERY."""

    default_error_code: str = "WRONG_TRACKING_TYPE"


class AssetNotFound(RentalError, NotFoundError):
    """Raised when a catalog asset cannot be found."""

    default_error_code: str = "ASSET_NOT_FOUND"


class AssetNotConfigured(RentalError, ValidationError):
    """Raised when an asset has no tracking type configured."""

    default_error_code: str = "ASSET_NOT_CONFIGURED"


class InvalidMeterReading(RentalError, ValidationError):
    """
    Raised when a meter reading goes backwards.

    Example:
        if hourometer_end < hourometer_start:
            raise InvalidMeterReading(
                "Invalid hourometer reading: end < start",
                details={"start": "120.00", "end": "110.00"},
            )
    """

    default_error_code: str = "INVALID_METER_READING"


class MissingEvidence(RentalError, ValidationError):
    """Raised when a billable usage report carries no evidence URLs."""

    default_error_code: str = "MISSING_EVIDENCE"


class InvalidStateTransition(ConflictError):
    """
    Raised when a contract state machine transition is not allowed.

    Wraps django-fsm's TransitionNotAllowed to provide the standard
    error format.

    Attributes:
        details: Contains current_state and transition name
    """

    default_error_code: str = "INVALID_STATE_TRANSITION"


class LockAcquisitionError(ConflictError):
    """
    Raised when another run already holds a batch lock.

    Attributes:
        details: Contains the lock key
    """

    default_error_code: str = "LOCK_ACQUISITION_FAILED"
