"""
Protocol definitions for rental notification delivery.

The engine produces data (alert flags, missing-report candidates,
statement payloads) and hands delivery to a notifier. Email, push and
messaging adapters live outside this app; they only need to satisfy
RentalNotifier.

Available Protocols:
    RentalNotifier: Delivery interface used by the batch jobs

Implementations:
    LoggingNotifier: Default notifier, writes each payload to the log

Usage:
    from rental.protocols import get_notifier

    notifier = get_notifier()
    notifier.send_low_balance_alert(account)

    # settings.py
    RENTAL_NOTIFIER_CLASS = "messaging.adapters.RentalEmailNotifier"

Note:
    - @runtime_checkable allows isinstance() checks
    - The notifier class is resolved with django's import_string and
      instantiated without arguments
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from django.conf import settings
from django.utils.module_loading import import_string

if TYPE_CHECKING:
    from rental.models import AssetRental, ClientAccount
    from rental.types import AccountStatement

logger = logging.getLogger(__name__)

DEFAULT_NOTIFIER_CLASS = "rental.protocols.LoggingNotifier"


@runtime_checkable
class RentalNotifier(Protocol):
    """
    Protocol for delivering rental notifications.

    Implementations raise on delivery failure; the batch jobs record the
    failure for that item and move on to the next one.
    """

    def send_low_balance_alert(self, account: ClientAccount) -> None:
        """
        Warn the client that the balance reached the alert threshold.

        Args:
            account: Account whose balance is <= alert_amount
        """
        ...

    def send_missing_report_alert(self, rental: AssetRental) -> None:
        """
        Remind the operator that today's usage report is missing.

        Args:
            rental: Open MACHINERY rental with no report for today
        """
        ...

    def deliver_statement(self, account: ClientAccount, statement: AccountStatement) -> None:
        """
        Deliver a periodic account statement.

        Args:
            account: Account the statement belongs to
            statement: Movements and totals for the period
        """
        ...


class LoggingNotifier:
    """Notifier that only logs. Used when no delivery adapter is configured."""

    def send_low_balance_alert(self, account: ClientAccount) -> None:
        logger.warning(
            f"Low balance on account {account.id}: "
            f"{account.balance} <= {account.alert_amount}",
            extra={
                "account_id": str(account.id),
                "client_id": str(account.client_id),
                "balance": str(account.balance),
                "alert_amount": str(account.alert_amount),
            },
        )

    def send_missing_report_alert(self, rental: AssetRental) -> None:
        logger.warning(
            f"Missing usage report for rental {rental.id}",
            extra={
                "rental_id": str(rental.id),
                "contract_id": str(rental.contract_id),
                "operator_id": str(rental.operator_id) if rental.operator_id else None,
            },
        )

    def deliver_statement(self, account: ClientAccount, statement: AccountStatement) -> None:
        logger.info(
            f"Statement for account {account.id}: "
            f"{statement.movement_count} movements",
            extra=statement.summary(),
        )


def get_notifier() -> RentalNotifier:
    """Instantiate the notifier configured by RENTAL_NOTIFIER_CLASS."""
    path = getattr(settings, "RENTAL_NOTIFIER_CLASS", None) or DEFAULT_NOTIFIER_CLASS
    notifier_class = import_string(path)
    return notifier_class()


__all__ = [
    "RentalNotifier",
    "LoggingNotifier",
    "get_notifier",
]
