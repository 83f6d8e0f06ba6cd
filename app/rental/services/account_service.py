"""
Account service: the single mutation point for client balances.

Every balance change goes through AccountService.apply_movement, which
locks the account row, validates the non-negative balance invariant,
writes the immutable movement and updates the account counters in one
transaction. Movements on different accounts never contend.

Usage:
    from rental.services import AccountService
    from rental.types import MovementParams

    movement = AccountService.apply_movement(MovementParams(
        account_id=account.id,
        movement_type=MovementType.ADJUSTMENT,
        amount=Decimal("-1500"),
        description="Fuel surcharge",
        created_by="admin-3",
    ))

    AccountService.reload_credit(
        account_id=account.id,
        amount=Decimal("50000"),
        description="Bank transfer",
        created_by="cashier-1",
        payment_method="transfer",
        reference_number="TRX-9912",
    )
"""

from __future__ import annotations

import datetime
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

from django.conf import settings
from dateutil.relativedelta import relativedelta
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from core.services import BaseService

from rental.exceptions import AccountNotFound, InsufficientBalance, InvalidAmount
from rental.models import AccountMovement, AssetRental, ClientAccount, RentalContract
from rental.protocols import get_notifier
from rental.state_machines import ContractStatus, MovementType, StatementFrequency
from rental.types import ZERO, AccountStatement, MovementParams, to_decimal

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Constants
# =============================================================================

# Movement types that count toward total_reloaded
CREDIT_MOVEMENT_TYPES = (MovementType.INITIAL_CREDIT, MovementType.CREDIT_RELOAD)


def compute_next_statement_due(
    frequency: str,
    from_date: datetime.datetime,
) -> datetime.datetime | None:
    """
    Next statement due date for a frequency.

    Returns:
        from_date + 7 days (weekly), + 14 days (biweekly), + 1 month
        (monthly), or None for manual statements
    """
    if frequency == StatementFrequency.WEEKLY:
        return from_date + datetime.timedelta(days=7)
    if frequency == StatementFrequency.BIWEEKLY:
        return from_date + datetime.timedelta(days=14)
    if frequency == StatementFrequency.MONTHLY:
        return from_date + relativedelta(months=1)
    return None


class AccountService(BaseService):
    """
    Service for client accounts and their ledger.

    All methods are class/static methods - no instance state is kept.
    """

    # =========================================================================
    # Account Management
    # =========================================================================

    @classmethod
    def create_account(
        cls,
        tenant_id: uuid.UUID,
        client_id: uuid.UUID,
        initial_balance: Decimal = ZERO,
        alert_amount: Decimal | None = None,
        statement_frequency: str | None = None,
        notes: str | None = None,
        created_by: str = "system",
    ) -> ClientAccount:
        """
        Open an account for a client.

        The account starts at zero. A positive initial balance is applied
        as an INITIAL_CREDIT movement so the ledger reconciles from its
        first entry.

        Args:
            tenant_id: Owning tenant
            client_id: Client the account belongs to
            initial_balance: Optional opening credit
            alert_amount: Low-balance threshold (default RENTAL_DEFAULT_ALERT_AMOUNT)
            statement_frequency: Statement cadence (default RENTAL_DEFAULT_STATEMENT_FREQUENCY)
            notes: Free text
            created_by: Actor opening the account

        Returns:
            The new ClientAccount (refreshed after the initial credit)
        """
        initial_balance = to_decimal(initial_balance)
        if initial_balance < ZERO:
            raise InvalidAmount(
                "Initial balance cannot be negative",
                details={"initial_balance": str(initial_balance)},
            )

        if alert_amount is None:
            alert_amount = Decimal(str(settings.RENTAL_DEFAULT_ALERT_AMOUNT))
        frequency = statement_frequency or settings.RENTAL_DEFAULT_STATEMENT_FREQUENCY

        with cls.atomic():
            account = ClientAccount.objects.create(
                tenant_id=tenant_id,
                client_id=client_id,
                alert_amount=to_decimal(alert_amount),
                statement_frequency=frequency,
                next_statement_due=compute_next_statement_due(frequency, timezone.now()),
                notes=notes,
            )

            if initial_balance > ZERO:
                cls.apply_movement(
                    MovementParams(
                        account_id=account.id,
                        movement_type=MovementType.INITIAL_CREDIT,
                        amount=initial_balance,
                        description="Initial account balance",
                        created_by=created_by,
                    )
                )
                account.refresh_from_db()

        cls.get_logger().info(
            f"Created account {account.id} for client {client_id}",
            extra={
                "account_id": str(account.id),
                "client_id": str(client_id),
                "initial_balance": str(initial_balance),
            },
        )
        return account

    @staticmethod
    def get_account(account_id: uuid.UUID) -> ClientAccount:
        """
        Get account by ID.

        Raises:
            AccountNotFound: If account doesn't exist
        """
        try:
            return ClientAccount.objects.get(id=account_id)
        except ClientAccount.DoesNotExist:
            raise AccountNotFound(
                f"Account {account_id} not found",
                details={"account_id": str(account_id)},
            )

    @staticmethod
    def get_account_by_client(
        tenant_id: uuid.UUID,
        client_id: uuid.UUID,
    ) -> ClientAccount | None:
        """Get a client's account within a tenant, or None if it has none yet."""
        return ClientAccount.objects.filter(tenant_id=tenant_id, client_id=client_id).first()

    @classmethod
    def get_or_create_account_for_client(
        cls,
        tenant_id: uuid.UUID,
        client_id: uuid.UUID,
        created_by: str = "system",
    ) -> ClientAccount:
        """
        Get a client's account, opening an empty one with default settings
        if the client has none.

        A concurrent caller may open the same account first; the unique
        (tenant_id, client_id) constraint then rejects our insert and the
        winner's row is returned instead.
        """
        account = cls.get_account_by_client(tenant_id, client_id)
        if account is not None:
            return account
        try:
            with transaction.atomic():
                return cls.create_account(
                    tenant_id=tenant_id,
                    client_id=client_id,
                    created_by=created_by,
                )
        except IntegrityError:
            account = cls.get_account_by_client(tenant_id, client_id)
            if account is None:
                raise
            return account

    # =========================================================================
    # Ledger Mutation
    # =========================================================================

    @classmethod
    def apply_movement(cls, params: MovementParams) -> AccountMovement:
        """
        Apply one signed movement to an account.

        The account row is locked for the duration of the transaction so
        concurrent movements on the same account are serialized.

        Steps:
        1. Lock account, compute balance_after = balance + amount
        2. Reject with InsufficientBalance if balance_after < 0
        3. Write the movement
        4. Update balance, total_consumed (charges), total_reloaded (credits)
        5. Add charges to the contract's total_consumed
        6. Re-evaluate the low-balance alert

        Args:
            params: Movement parameters

        Returns:
            The created AccountMovement

        Raises:
            AccountNotFound: If the account doesn't exist
            InsufficientBalance: If the movement would leave balance < 0;
                nothing is written
        """
        log = cls.get_logger()
        amount = params.amount

        with transaction.atomic():
            account = (
                ClientAccount.objects.select_for_update()
                .filter(id=params.account_id)
                .first()
            )
            if account is None:
                raise AccountNotFound(
                    f"Account {params.account_id} not found",
                    details={"account_id": str(params.account_id)},
                )

            balance_before = account.balance
            balance_after = balance_before + amount

            if balance_after < ZERO:
                log.warning(
                    f"Rejected movement on account {account.id}: insufficient balance",
                    extra={
                        "account_id": str(account.id),
                        "movement_type": params.movement_type,
                        "current_balance": str(balance_before),
                        "amount": str(amount),
                    },
                )
                raise InsufficientBalance(
                    account_id=account.id,
                    current_balance=balance_before,
                    required_amount=abs(amount),
                )

            breakdown = params.cost_breakdown.as_fields() if params.cost_breakdown else {}
            movement = AccountMovement.objects.create(
                account=account,
                contract_id=params.contract_id,
                asset_rental_id=params.asset_rental_id,
                usage_report_id=params.usage_report_id,
                movement_type=params.movement_type,
                amount=amount,
                balance_before=balance_before,
                balance_after=balance_after,
                description=params.description,
                evidence_urls=list(params.evidence_urls),
                metadata=params.metadata,
                notes=params.notes,
                created_by=params.created_by,
                **breakdown,
            )

            account.balance = balance_after
            if amount < ZERO:
                account.total_consumed += abs(amount)
            if params.movement_type in CREDIT_MOVEMENT_TYPES:
                account.total_reloaded += amount
            if params.movement_type == MovementType.CREDIT_RELOAD:
                account.alert_triggered = False

            if params.contract_id and amount < ZERO:
                RentalContract.objects.filter(id=params.contract_id).update(
                    total_consumed=F("total_consumed") + abs(amount)
                )

            newly_triggered = cls.check_alerts(account, save=False)
            account.save(
                update_fields=[
                    "balance",
                    "total_consumed",
                    "total_reloaded",
                    "alert_triggered",
                    "last_alert_sent",
                    "updated_at",
                ]
            )

            if newly_triggered:
                transaction.on_commit(lambda: cls._notify_low_balance(account))

        log.info(
            f"Applied {params.movement_type} of {amount} to account {account.id}",
            extra={
                "account_id": str(account.id),
                "movement_id": str(movement.id),
                "movement_type": params.movement_type,
                "amount": str(amount),
                "balance_after": str(balance_after),
            },
        )
        return movement

    @classmethod
    def reload_credit(
        cls,
        account_id: uuid.UUID,
        amount: Decimal,
        description: str,
        created_by: str,
        payment_method: str | None = None,
        reference_number: str | None = None,
    ) -> AccountMovement:
        """
        Add prepaid credit to an account.

        Clears alert_triggered; if the new balance is still at or below
        the alert threshold the alert fires again.

        Raises:
            InvalidAmount: If amount <= 0
            AccountNotFound: If account doesn't exist
        """
        amount = to_decimal(amount)
        if amount <= ZERO:
            raise InvalidAmount(
                "Reload amount must be positive",
                details={"amount": str(amount)},
            )

        metadata: dict[str, Any] = {}
        if payment_method:
            metadata["payment_method"] = payment_method
        if reference_number:
            metadata["reference_number"] = reference_number

        return cls.apply_movement(
            MovementParams(
                account_id=account_id,
                movement_type=MovementType.CREDIT_RELOAD,
                amount=amount,
                description=description,
                metadata=metadata,
                created_by=created_by,
            )
        )

    # =========================================================================
    # Alerts
    # =========================================================================

    @staticmethod
    def check_alerts(account: ClientAccount, save: bool = True) -> bool:
        """
        Trip the low-balance alert if the balance is at or below threshold.

        Once tripped the flag stays set until a reload clears it.

        Args:
            account: Account to evaluate (caller holds the row lock when
                called from apply_movement)
            save: Persist the flag change immediately

        Returns:
            True if the alert was tripped by this call
        """
        if account.alert_triggered or account.balance > account.alert_amount:
            return False

        account.alert_triggered = True
        account.last_alert_sent = timezone.now()
        if save:
            account.save(update_fields=["alert_triggered", "last_alert_sent", "updated_at"])
        return True

    @classmethod
    def _notify_low_balance(cls, account: ClientAccount) -> None:
        try:
            get_notifier().send_low_balance_alert(account)
        except Exception:
            cls.get_logger().exception(
                f"Low balance notification failed for account {account.id}",
                extra={"account_id": str(account.id)},
            )

    # =========================================================================
    # Read Models
    # =========================================================================

    @classmethod
    def get_statement(
        cls,
        account_id: uuid.UUID,
        start: datetime.datetime | None = None,
        end: datetime.datetime | None = None,
    ) -> AccountStatement:
        """
        Build an account statement.

        Args:
            account_id: Account to report on
            start: Inclusive lower bound on movement created_at
            end: Inclusive upper bound on movement created_at

        Returns:
            AccountStatement with movements newest-first. When a bound is
            omitted the period uses the oldest/newest movement instead.

        Raises:
            AccountNotFound: If account doesn't exist
        """
        account = cls.get_account(account_id)

        queryset = AccountMovement.objects.filter(account=account)
        if start is not None:
            queryset = queryset.filter(created_at__gte=start)
        if end is not None:
            queryset = queryset.filter(created_at__lte=end)
        movements = list(queryset.order_by("-created_at"))

        period_charges = sum((-m.amount for m in movements if m.amount < ZERO), ZERO)
        period_credits = sum((m.amount for m in movements if m.amount > ZERO), ZERO)

        period_start = start or (movements[-1].created_at if movements else None)
        period_end = end or (movements[0].created_at if movements else None)

        return AccountStatement(
            account_id=account.id,
            client_id=account.client_id,
            current_balance=account.balance,
            total_consumed=account.total_consumed,
            total_reloaded=account.total_reloaded,
            period_charges=period_charges,
            period_credits=period_credits,
            period_start=period_start,
            period_end=period_end,
            movements=movements,
        )

    @staticmethod
    def get_client_balance(tenant_id: uuid.UUID, client_id: uuid.UUID) -> dict[str, Any]:
        """
        Consolidated balance summary for a client.

        Returns:
            Dict with has_account=False and zero totals when the client has
            no account; otherwise balances, alert state and counts of
            active contracts and open rentals
        """
        account = ClientAccount.objects.filter(tenant_id=tenant_id, client_id=client_id).first()
        if account is None:
            return {
                "has_account": False,
                "balance": ZERO,
                "total_consumed": ZERO,
                "total_reloaded": ZERO,
            }

        active_contracts = RentalContract.objects.filter(
            account=account,
            status=ContractStatus.ACTIVE,
        ).count()
        active_rentals = AssetRental.objects.open().filter(contract__account=account).count()

        return {
            "has_account": True,
            "account_id": account.id,
            "balance": account.balance,
            "total_consumed": account.total_consumed,
            "total_reloaded": account.total_reloaded,
            "active_contracts": active_contracts,
            "active_rentals": active_rentals,
            "alert_amount": account.alert_amount,
            "alert_triggered": account.alert_triggered,
            "statement_frequency": account.statement_frequency,
        }


__all__ = [
    "AccountService",
    "compute_next_statement_due",
]
