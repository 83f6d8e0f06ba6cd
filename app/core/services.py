"""
Base service layer patterns for business logic encapsulation.

This module provides foundational patterns for the service layer:
- ServiceResult: Result wrapper for failures reported as data
- BaseService: Base class with common service utilities

Pattern Comparison:
    - ServiceResult: Use for expected failures reported as data (dry runs, previews)
    - Exceptions: Use for failures that must abort the caller's operation

Usage:
    from core.services import BaseService, ServiceResult

    class ContractService(BaseService):
        @classmethod
        def complete_contract(cls, contract_id):
            with cls.atomic():
                contract = RentalContract.objects.select_for_update().get(pk=contract_id)
                contract.complete()
                contract.save()

            cls.get_logger().info(f"Completed contract {contract.id}")
            return contract
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Generator

# Generic type for ServiceResult data
T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Result wrapper for service operations that report failure as data.

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: Error message if failed (None if successful)
        error_code: Machine-readable error code

    Usage:
        result = UsageService.validate_usage_report(rental_id, readings, urls)
        if result.success:
            preview = result.data
        else:
            print(f"Error: {result.error} ({result.error_code})")
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        """Create a successful result carrying data."""
        return cls(success=True, data=data)

    @classmethod
    def from_exception(cls, exc: Exception, error_code: str | None = None) -> ServiceResult[T]:
        """
        Create a failed result from an exception.

        Application errors keep their own error_code and message; any other
        exception falls back to its class name.

        Args:
            exc: The caught exception
            error_code: Optional error code override
        """
        code = error_code or getattr(exc, "error_code", None)
        message = getattr(exc, "message", None) or str(exc)
        return cls(
            success=False,
            error=message,
            error_code=code or exc.__class__.__name__.upper(),
        )


class BaseService:
    """
    Base class for service layer classes.

    Provides common utilities for services:
    - Logging setup per service
    - Database transaction management

    Design Notes:
        - Use @staticmethod or @classmethod (no instance state)
        - Services should be stateless
        - Raise exceptions for failures the caller must not ignore
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
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        If any operation inside the block raises, every write in the
        block is rolled back.

        Example:
            with cls.atomic():
                usage = AssetUsage.objects.create(...)
                AccountService.apply_movement(params)
        """
        with transaction.atomic():
            yield
