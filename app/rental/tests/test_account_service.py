"""
Tests for AccountService.

Covers the movement routine (balance arithmetic, the non-negative
balance invariant, counters), credit reloads, low-balance alerts,
account creation and statements.
"""

import datetime
import uuid
from decimal import Decimal

import pytest
from django.db.models import Sum
from freezegun import freeze_time

from rental.exceptions import AccountNotFound, InsufficientBalance, InvalidAmount
from rental.models import AccountMovement, ClientAccount
from rental.services import AccountService
from rental.services.account_service import compute_next_statement_due
from rental.state_machines import MovementType, StatementFrequency
from rental.tests.factories import ClientAccountFactory, RentalContractFactory
from rental.types import CostBreakdown, MovementParams


def charge(account_id, amount, **kwargs):
    return AccountService.apply_movement(
        MovementParams(
            account_id=account_id,
            movement_type=kwargs.pop("movement_type", MovementType.DAILY_CHARGE),
            amount=amount,
            created_by="tester",
            **kwargs,
        )
    )


# =============================================================================
# Account Creation
# =============================================================================


class TestCreateAccount:
    def test_initial_balance_is_a_ledger_movement(self, db):
        account = AccountService.create_account(
            tenant_id=uuid.uuid4(),
            client_id=uuid.uuid4(),
            initial_balance=Decimal("100000"),
            created_by="admin-1",
        )

        movement = account.movements.get()
        assert movement.movement_type == MovementType.INITIAL_CREDIT
        assert movement.amount == Decimal("100000")
        assert movement.balance_before == Decimal("0")
        assert movement.balance_after == Decimal("100000")
        assert account.balance == Decimal("100000")
        assert account.total_reloaded == Decimal("100000")

    def test_empty_account_has_no_movements(self, db, settings):
        settings.RENTAL_DEFAULT_ALERT_AMOUNT = Decimal("25000")
        settings.RENTAL_DEFAULT_STATEMENT_FREQUENCY = "weekly"

        account = AccountService.create_account(tenant_id=uuid.uuid4(), client_id=uuid.uuid4())

        assert account.balance == Decimal("0")
        assert account.movements.count() == 0
        assert account.alert_amount == Decimal("25000")
        assert account.statement_frequency == StatementFrequency.WEEKLY

    def test_negative_initial_balance_rejected(self, db):
        with pytest.raises(InvalidAmount):
            AccountService.create_account(
                tenant_id=uuid.uuid4(),
                client_id=uuid.uuid4(),
                initial_balance=Decimal("-1"),
            )

        assert ClientAccount.objects.count() == 0

    @freeze_time("2026-01-31 10:00:00")
    def test_first_statement_scheduled(self, db):
        account = AccountService.create_account(
            tenant_id=uuid.uuid4(),
            client_id=uuid.uuid4(),
            statement_frequency=StatementFrequency.MONTHLY,
        )

        assert account.next_statement_due.date() == datetime.date(2026, 2, 28)

    def test_manual_statements_not_scheduled(self, db):
        account = AccountService.create_account(
            tenant_id=uuid.uuid4(),
            client_id=uuid.uuid4(),
            statement_frequency=StatementFrequency.MANUAL,
        )

        assert account.next_statement_due is None

    def test_get_or_create_reuses_existing_account(self, account):
        same = AccountService.get_or_create_account_for_client(
            tenant_id=account.tenant_id,
            client_id=account.client_id,
        )

        assert same.id == account.id
        assert ClientAccount.objects.count() == 1

    def test_get_account_not_found(self, db):
        with pytest.raises(AccountNotFound):
            AccountService.get_account(uuid.uuid4())

    def test_get_account_by_client_missing(self, db):
        assert AccountService.get_account_by_client(uuid.uuid4(), uuid.uuid4()) is None

    def test_get_account_by_client_scoped_to_tenant(self, account):
        assert AccountService.get_account_by_client(uuid.uuid4(), account.client_id) is None
        assert AccountService.get_account_by_client(account.tenant_id, account.client_id) == account

    def test_same_client_gets_one_account_per_tenant(self, account):
        other = AccountService.get_or_create_account_for_client(
            tenant_id=uuid.uuid4(),
            client_id=account.client_id,
        )

        assert other.id != account.id
        assert ClientAccount.objects.filter(client_id=account.client_id).count() == 2

    def test_get_or_create_returns_concurrent_winner(self, account, mocker):
        # Another request opened the account between our lookup and insert
        mocker.patch.object(
            AccountService,
            "get_account_by_client",
            side_effect=[None, account],
        )

        same = AccountService.get_or_create_account_for_client(
            tenant_id=account.tenant_id,
            client_id=account.client_id,
        )

        assert same.id == account.id
        assert ClientAccount.objects.count() == 1


# =============================================================================
# Movements
# =============================================================================


class TestApplyMovement:
    def test_charge_updates_balance_and_consumed(self, account):
        movement = charge(account.id, Decimal("-56000"))

        account.refresh_from_db()
        assert movement.balance_before == Decimal("500000")
        assert movement.balance_after == Decimal("444000")
        assert account.balance == Decimal("444000")
        assert account.total_consumed == Decimal("56000")
        assert account.total_reloaded == Decimal("500000")

    def test_insufficient_balance_rejected_without_writes(self, db):
        """balance=150000, charge 200000: rejected, nothing changes."""
        account = AccountService.create_account(
            tenant_id=uuid.uuid4(),
            client_id=uuid.uuid4(),
            initial_balance=Decimal("150000"),
        )
        movements_before = AccountMovement.objects.count()

        with pytest.raises(InsufficientBalance) as exc_info:
            charge(account.id, Decimal("-200000"))

        account.refresh_from_db()
        assert account.balance == Decimal("150000")
        assert account.total_consumed == Decimal("0")
        assert AccountMovement.objects.count() == movements_before
        error = exc_info.value
        assert error.error_code == "INSUFFICIENT_BALANCE"
        assert error.current_balance == Decimal("150000")
        assert error.required_amount == Decimal("200000")
        assert error.details["account_id"] == str(account.id)

    def test_charge_to_exactly_zero_allowed(self, account):
        movement = charge(account.id, Decimal("-500000"))

        assert movement.balance_after == Decimal("0")

    def test_zero_amount_audit_movement(self, account):
        movement = charge(account.id, Decimal("0"), movement_type=MovementType.WITHDRAWAL_START)

        account.refresh_from_db()
        assert movement.balance_before == movement.balance_after == Decimal("500000")
        assert account.total_consumed == Decimal("0")

    def test_positive_adjustment_does_not_count_as_reload(self, account):
        charge(account.id, Decimal("1500"), movement_type=MovementType.ADJUSTMENT)

        account.refresh_from_db()
        assert account.balance == Decimal("501500")
        assert account.total_reloaded == Decimal("500000")

    def test_cost_breakdown_is_stored(self, account):
        movement = charge(
            account.id,
            Decimal("-56000"),
            cost_breakdown=CostBreakdown(
                machinery_cost=Decimal("40000"),
                operator_cost=Decimal("16000"),
            ),
        )

        movement.refresh_from_db()
        assert movement.machinery_cost == Decimal("40000")
        assert movement.operator_cost == Decimal("16000")
        assert movement.tool_cost is None

    def test_charge_adds_to_contract_consumption(self, account):
        contract = RentalContractFactory(account=account)

        charge(account.id, Decimal("-1200"), contract_id=contract.id)
        charge(account.id, Decimal("-800"), contract_id=contract.id)

        contract.refresh_from_db()
        assert contract.total_consumed == Decimal("2000")

    def test_unknown_account(self, db):
        with pytest.raises(AccountNotFound):
            charge(uuid.uuid4(), Decimal("-1"))

    def test_created_by_required(self, account):
        with pytest.raises(ValueError):
            MovementParams(
                account_id=account.id,
                movement_type=MovementType.ADJUSTMENT,
                amount=Decimal("1"),
                created_by="",
            )

    def test_ledger_reconciles(self, account):
        """Each movement chains off the previous one and the sum matches the balance."""
        charge(account.id, Decimal("-56000"))
        AccountService.reload_credit(account.id, Decimal("20000"), "Transfer", "cashier-1")
        charge(account.id, Decimal("-10000"))
        charge(account.id, Decimal("250"), movement_type=MovementType.ADJUSTMENT)

        account.refresh_from_db()
        movements = list(account.movements.order_by("created_at", "balance_before"))
        for movement in movements:
            assert movement.balance_after == movement.balance_before + movement.amount
            assert movement.balance_after >= 0
        total = account.movements.aggregate(total=Sum("amount"))["total"]
        assert total == account.balance == Decimal("454250")


# =============================================================================
# Reloads & Alerts
# =============================================================================


class TestReloadCredit:
    def test_reload(self, db):
        """balance=100000, reload 50000: balance 150000."""
        account = AccountService.create_account(
            tenant_id=uuid.uuid4(),
            client_id=uuid.uuid4(),
            initial_balance=Decimal("100000"),
            alert_amount=Decimal("10000"),
        )

        movement = AccountService.reload_credit(
            account_id=account.id,
            amount=Decimal("50000"),
            description="Bank transfer",
            created_by="cashier-1",
            payment_method="transfer",
            reference_number="TRX-9912",
        )

        account.refresh_from_db()
        assert account.balance == Decimal("150000")
        assert movement.movement_type == MovementType.CREDIT_RELOAD
        assert movement.amount == Decimal("50000")
        assert movement.balance_before == Decimal("100000")
        assert movement.balance_after == Decimal("150000")
        assert movement.metadata == {"payment_method": "transfer", "reference_number": "TRX-9912"}
        assert account.total_reloaded == Decimal("150000")

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-10")])
    def test_non_positive_reload_rejected(self, account, amount):
        with pytest.raises(InvalidAmount):
            AccountService.reload_credit(account.id, amount, "Bad", "cashier-1")

    def test_reload_clears_alert(self, account):
        charge(account.id, Decimal("-450000"))
        account.refresh_from_db()
        assert account.alert_triggered is True

        AccountService.reload_credit(account.id, Decimal("200000"), "Top up", "cashier-1")

        account.refresh_from_db()
        assert account.alert_triggered is False

    def test_reload_still_below_threshold_retriggers(self, account):
        charge(account.id, Decimal("-450000"))
        first_alert = ClientAccount.objects.get(id=account.id).last_alert_sent

        AccountService.reload_credit(account.id, Decimal("10000"), "Partial", "cashier-1")

        account.refresh_from_db()
        assert account.alert_triggered is True
        assert account.last_alert_sent >= first_alert


class TestAlerts:
    def test_crossing_threshold_triggers_once(self, account):
        charge(account.id, Decimal("-400000"))

        account.refresh_from_db()
        assert account.balance == Decimal("100000")
        assert account.alert_triggered is True
        assert account.last_alert_sent is not None
        first_sent = account.last_alert_sent

        charge(account.id, Decimal("-1000"))

        account.refresh_from_db()
        assert account.last_alert_sent == first_sent

    def test_notification_sent_on_commit(self, account, mocker, django_capture_on_commit_callbacks):
        notifier = mocker.MagicMock()
        mocker.patch("rental.services.account_service.get_notifier", return_value=notifier)

        with django_capture_on_commit_callbacks(execute=True):
            charge(account.id, Decimal("-450000"))

        notifier.send_low_balance_alert.assert_called_once()
        alerted = notifier.send_low_balance_alert.call_args[0][0]
        assert alerted.id == account.id

    def test_notification_failure_is_logged(self, account, mocker, django_capture_on_commit_callbacks):
        notifier = mocker.MagicMock()
        notifier.send_low_balance_alert.side_effect = RuntimeError("smtp down")
        mocker.patch("rental.services.account_service.get_notifier", return_value=notifier)

        with django_capture_on_commit_callbacks(execute=True):
            movement = charge(account.id, Decimal("-450000"))

        assert AccountMovement.objects.filter(id=movement.id).exists()

    def test_check_alerts_above_threshold(self, db):
        account = ClientAccountFactory(balance=Decimal("100000.01"))

        assert AccountService.check_alerts(account) is False
        assert account.alert_triggered is False

    def test_check_alerts_persists(self, db):
        account = ClientAccountFactory(balance=Decimal("5"))

        assert AccountService.check_alerts(account) is True
        account.refresh_from_db()
        assert account.alert_triggered is True


# =============================================================================
# Statements & Summaries
# =============================================================================


class TestStatements:
    def test_statement_totals(self, account):
        charge(account.id, Decimal("-56000"))
        AccountService.reload_credit(account.id, Decimal("20000"), "Transfer", "cashier-1")

        statement = AccountService.get_statement(account.id)

        assert statement.movement_count == 3
        assert statement.period_charges == Decimal("56000")
        assert statement.period_credits == Decimal("520000")
        assert statement.current_balance == Decimal("464000")
        assert statement.total_consumed == Decimal("56000")
        assert statement.movements[0].created_at >= statement.movements[-1].created_at
        assert statement.summary()["movement_count"] == 3

    def test_statement_period_filter(self, db):
        with freeze_time("2026-03-01 09:00:00"):
            account = AccountService.create_account(
                tenant_id=uuid.uuid4(),
                client_id=uuid.uuid4(),
                initial_balance=Decimal("100000"),
            )
        with freeze_time("2026-03-10 09:00:00"):
            charge(account.id, Decimal("-5000"))
        with freeze_time("2026-03-20 09:00:00"):
            charge(account.id, Decimal("-7000"))

        statement = AccountService.get_statement(
            account.id,
            start=datetime.datetime(2026, 3, 5, tzinfo=datetime.timezone.utc),
            end=datetime.datetime(2026, 3, 15, tzinfo=datetime.timezone.utc),
        )

        assert statement.movement_count == 1
        assert statement.period_charges == Decimal("5000")
        assert statement.period_credits == Decimal("0")

    def test_statement_unknown_account(self, db):
        with pytest.raises(AccountNotFound):
            AccountService.get_statement(uuid.uuid4())

    def test_client_balance_without_account(self, db):
        summary = AccountService.get_client_balance(uuid.uuid4(), uuid.uuid4())

        assert summary["has_account"] is False
        assert summary["balance"] == Decimal("0")

    def test_client_balance(self, machinery_rental, account):
        summary = AccountService.get_client_balance(account.tenant_id, account.client_id)

        assert summary["has_account"] is True
        assert summary["account_id"] == account.id
        assert summary["active_contracts"] == 1
        assert summary["active_rentals"] == 1


class TestComputeNextStatementDue:
    @pytest.mark.parametrize(
        "frequency,expected",
        [
            (StatementFrequency.WEEKLY, datetime.datetime(2026, 1, 22)),
            (StatementFrequency.BIWEEKLY, datetime.datetime(2026, 1, 29)),
            (StatementFrequency.MONTHLY, datetime.datetime(2026, 2, 15)),
            (StatementFrequency.MANUAL, None),
        ],
    )
    def test_frequencies(self, frequency, expected):
        assert compute_next_statement_due(frequency, datetime.datetime(2026, 1, 15)) == expected

    def test_monthly_clamps_to_month_end(self):
        result = compute_next_statement_due(
            StatementFrequency.MONTHLY, datetime.datetime(2026, 1, 31)
        )

        assert result == datetime.datetime(2026, 2, 28)

    def test_monthly_lands_on_leap_day(self):
        result = compute_next_statement_due(
            StatementFrequency.MONTHLY, datetime.datetime(2028, 1, 30, 9, 30)
        )

        assert result == datetime.datetime(2028, 2, 29, 9, 30)

    def test_monthly_rolls_over_year_end(self):
        result = compute_next_statement_due(
            StatementFrequency.MONTHLY, datetime.datetime(2026, 12, 31)
        )

        assert result == datetime.datetime(2027, 1, 31)
