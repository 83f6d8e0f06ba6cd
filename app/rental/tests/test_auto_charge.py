"""
Tests for the scheduled batch jobs.

Covers daily tool charges, missing report reminders, scheduled
statements, low-balance alerts, the single-flight lock around every run
and the Celery task wrappers. Redis is mocked through mock_redis and
delivery through the notifier double.
"""

import datetime
from decimal import Decimal

import pytest
from django.utils import timezone
from django_celery_beat.models import PeriodicTask
from freezegun import freeze_time

from rental.exceptions import InsufficientBalance
from rental.models import AccountMovement, AssetRental, ClientAccount
from rental.protocols import LoggingNotifier, RentalNotifier, get_notifier
from rental.state_machines import ContractStatus, MovementType, StatementFrequency
from rental.tests.factories import (
    AssetRentalFactory,
    AssetUsageFactory,
    ClientAccountFactory,
    RentalContractFactory,
    ToolRentalFactory,
)
from rental.types import JobKind
from rental.workers import (
    check_low_balance_alerts,
    notify_missing_reports,
    process_tool_charges,
    run_batch,
    send_scheduled_statements,
)
from rental.workers.auto_charge import BATCH_ACTOR


# =============================================================================
# Tool Charges
# =============================================================================


class TestToolCharges:
    def test_charges_daily_rate(self, mock_redis, notifier, tool_rental, account):
        result = run_batch(JobKind.TOOL_CHARGES, notifier=notifier)

        assert result.processed == 1
        assert result.failed == 0

        rental = AssetRental.objects.get(id=tool_rental.id)
        assert rental.days_elapsed == 1
        assert rental.total_cost == Decimal("10000")
        assert rental.last_charge_date is not None

        movement = AccountMovement.objects.get(
            asset_rental_id=tool_rental.id,
            movement_type=MovementType.DAILY_CHARGE,
        )
        assert movement.amount == Decimal("-10000")
        assert movement.tool_cost == Decimal("10000")
        assert movement.machinery_cost is None
        assert movement.metadata["auto_charge"] is True
        assert movement.created_by == BATCH_ACTOR

        account.refresh_from_db()
        assert account.balance == Decimal("490000")

    def test_insufficient_balance_is_counted_not_charged(self, db, mock_redis, notifier):
        """dailyRate=10000 against a 5000 balance: nothing written."""
        rental = ToolRentalFactory(contract__account__balance=Decimal("5000"))

        result = run_batch(JobKind.TOOL_CHARGES, notifier=notifier)

        assert result.insufficient_balance == 1
        assert result.processed == 0
        rental.refresh_from_db()
        assert rental.total_cost == Decimal("0")
        assert rental.days_elapsed == 0
        assert not AccountMovement.objects.filter(asset_rental_id=rental.id).exists()

    def test_same_day_rerun_is_skipped(self, mock_redis, notifier, tool_rental, account):
        run_batch(JobKind.TOOL_CHARGES, notifier=notifier)

        second = run_batch(JobKind.TOOL_CHARGES, notifier=notifier)

        assert second.processed == 0
        assert second.skipped == 1
        account.refresh_from_db()
        assert account.balance == Decimal("490000")

    def test_same_day_rerun_charges_when_dedup_disabled(
        self, settings, mock_redis, notifier, tool_rental, account
    ):
        settings.RENTAL_TOOL_CHARGE_SKIP_SAME_DAY = False

        run_batch(JobKind.TOOL_CHARGES, notifier=notifier)
        second = run_batch(JobKind.TOOL_CHARGES, notifier=notifier)

        assert second.processed == 1
        account.refresh_from_db()
        assert account.balance == Decimal("480000")

    def test_next_day_charges_again(self, mock_redis, notifier, db):
        with freeze_time("2026-06-10 00:01:00"):
            rental = ToolRentalFactory()
            run_batch(JobKind.TOOL_CHARGES, notifier=notifier)
        with freeze_time("2026-06-11 00:01:00"):
            result = run_batch(JobKind.TOOL_CHARGES, notifier=notifier)

        assert result.processed == 1
        rental.refresh_from_db()
        assert rental.days_elapsed == 2
        assert rental.total_cost == Decimal("20000")

    def test_rental_without_rate_is_skipped(self, db, mock_redis, notifier):
        ToolRentalFactory(daily_rate=None)

        result = run_batch(JobKind.TOOL_CHARGES, notifier=notifier)

        assert result.skipped == 1
        assert AccountMovement.objects.count() == 0

    def test_only_open_tools_under_active_contracts(self, db, mock_redis, notifier):
        ToolRentalFactory(contract=RentalContractFactory(status=ContractStatus.SUSPENDED))
        ToolRentalFactory(actual_return_date=timezone.now())
        AssetRentalFactory()

        result = run_batch(JobKind.TOOL_CHARGES, notifier=notifier)

        assert result.processed == result.skipped == result.insufficient_balance == 0

    def test_item_failure_does_not_stop_the_batch(self, db, mocker, mock_redis, notifier):
        ToolRentalFactory()
        ToolRentalFactory()
        mocker.patch(
            "rental.workers.auto_charge.charge_tool_rental",
            side_effect=[RuntimeError("connection reset"), "processed"],
        )

        result = run_batch(JobKind.TOOL_CHARGES, notifier=notifier)

        assert result.failed == 1
        assert result.processed == 1
        assert result.errors[0]["error"] == "connection reset"
        assert "rental_id" in result.errors[0]

    def test_balance_race_counts_as_insufficient(self, db, mocker, mock_redis, notifier):
        rental = ToolRentalFactory()
        mocker.patch(
            "rental.workers.auto_charge.charge_tool_rental",
            side_effect=InsufficientBalance(
                account_id=rental.contract.account_id,
                current_balance=Decimal("0"),
                required_amount=Decimal("10000"),
            ),
        )

        result = run_batch(JobKind.TOOL_CHARGES, notifier=notifier)

        assert result.insufficient_balance == 1
        assert result.failed == 0


# =============================================================================
# Single Flight
# =============================================================================


class TestRunBatch:
    def test_held_lock_skips_the_run(self, mock_redis, notifier, tool_rental):
        mock_redis.set.return_value = False

        result = run_batch(JobKind.TOOL_CHARGES, notifier=notifier)

        assert result.status == "skipped"
        assert result.to_dict()["processed"] == 0
        assert AssetRental.objects.get(id=tool_rental.id).days_elapsed == 0

    def test_lock_is_keyed_by_job_kind_and_released(self, db, settings, mock_redis, notifier):
        settings.RENTAL_BATCH_LOCK_TTL = 900

        run_batch(JobKind.STATEMENTS, notifier=notifier)

        args, kwargs = mock_redis.set.call_args
        assert args[0] == "lock:rental:batch:statements"
        assert kwargs["ex"] == 900
        mock_redis.eval.assert_called_once()

    def test_lock_released_when_job_raises(self, db, mocker, mock_redis, notifier):
        mocker.patch.dict(
            "rental.workers.auto_charge.JOBS",
            {JobKind.STATEMENTS: mocker.Mock(side_effect=RuntimeError("cannot enumerate"))},
        )

        with pytest.raises(RuntimeError):
            run_batch(JobKind.STATEMENTS, notifier=notifier)

        mock_redis.eval.assert_called_once()

    def test_accepts_job_kind_value(self, db, mock_redis, notifier):
        result = run_batch("missing_reports", notifier=notifier)

        assert result.job_kind == JobKind.MISSING_REPORTS
        assert result.status == "completed"

    def test_unknown_job_kind(self, db, mock_redis):
        with pytest.raises(ValueError):
            run_batch("payroll")

    def test_default_notifier_from_settings(self, db, mocker, mock_redis):
        get_notifier_mock = mocker.patch("rental.workers.auto_charge.get_notifier")

        run_batch(JobKind.LOW_BALANCE_ALERTS)

        get_notifier_mock.assert_called_once_with()


# =============================================================================
# Missing Reports
# =============================================================================


class TestMissingReports:
    def test_reminds_rentals_without_todays_report(self, mock_redis, notifier, machinery_rental):
        result = run_batch(JobKind.MISSING_REPORTS, notifier=notifier)

        assert result.processed == 1
        notifier.send_missing_report_alert.assert_called_once()
        assert notifier.send_missing_report_alert.call_args[0][0].id == machinery_rental.id

    def test_reported_today_is_not_reminded(self, db, mock_redis, notifier):
        rental = AssetRentalFactory()
        AssetUsageFactory(rental=rental, report_date=timezone.localdate())
        yesterday_only = AssetRentalFactory()
        AssetUsageFactory(
            rental=yesterday_only,
            report_date=timezone.localdate() - datetime.timedelta(days=1),
        )

        result = run_batch(JobKind.MISSING_REPORTS, notifier=notifier)

        assert result.processed == 1
        assert notifier.send_missing_report_alert.call_args[0][0].id == yesterday_only.id

    def test_tools_and_inactive_contracts_are_ignored(self, db, mock_redis, notifier):
        ToolRentalFactory()
        AssetRentalFactory(contract=RentalContractFactory(status=ContractStatus.SUSPENDED))

        result = run_batch(JobKind.MISSING_REPORTS, notifier=notifier)

        assert result.processed == 0
        notifier.send_missing_report_alert.assert_not_called()

    def test_delivery_failure_is_recorded(self, db, mock_redis, notifier):
        AssetRentalFactory()
        AssetRentalFactory()
        notifier.send_missing_report_alert.side_effect = [RuntimeError("push failed"), None]

        result = run_batch(JobKind.MISSING_REPORTS, notifier=notifier)

        assert result.failed == 1
        assert result.processed == 1


# =============================================================================
# Statements
# =============================================================================


@freeze_time("2026-06-15 08:00:00")
class TestScheduledStatements:
    def test_due_statement_is_delivered_and_rescheduled(self, db, mock_redis, notifier):
        account = ClientAccountFactory(
            statement_frequency=StatementFrequency.WEEKLY,
            next_statement_due=timezone.now() - datetime.timedelta(days=1),
        )

        result = run_batch(JobKind.STATEMENTS, notifier=notifier)

        assert result.processed == 1
        delivered_account, statement = notifier.deliver_statement.call_args[0]
        assert delivered_account.id == account.id
        assert statement.account_id == account.id

        account.refresh_from_db()
        assert account.last_statement_sent == timezone.now()
        assert account.next_statement_due == timezone.now() + datetime.timedelta(days=7)

    def test_due_later_today_is_included(self, db, mock_redis, notifier):
        ClientAccountFactory(next_statement_due=timezone.now() + datetime.timedelta(hours=10))

        result = run_batch(JobKind.STATEMENTS, notifier=notifier)

        assert result.processed == 1

    def test_never_scheduled_account_is_included(self, db, mock_redis, notifier):
        ClientAccountFactory(next_statement_due=None, last_statement_sent=None)

        result = run_batch(JobKind.STATEMENTS, notifier=notifier)

        assert result.processed == 1

    def test_not_due_and_manual_are_skipped(self, db, mock_redis, notifier):
        ClientAccountFactory(next_statement_due=timezone.now() + datetime.timedelta(days=3))
        ClientAccountFactory(
            statement_frequency=StatementFrequency.MANUAL,
            next_statement_due=timezone.now() - datetime.timedelta(days=3),
        )

        result = run_batch(JobKind.STATEMENTS, notifier=notifier)

        assert result.processed == 0
        notifier.deliver_statement.assert_not_called()

    def test_statement_covers_movements_since_last_statement(self, db, mock_redis, notifier):
        account = ClientAccountFactory(
            last_statement_sent=timezone.now() - datetime.timedelta(days=7),
            next_statement_due=timezone.now(),
        )
        old = AccountMovement.objects.create(
            account=account,
            movement_type=MovementType.ADJUSTMENT,
            amount=Decimal("-10"),
            balance_before=Decimal("500000"),
            balance_after=Decimal("499990"),
            created_by="tester",
        )
        AccountMovement.objects.filter(id=old.id).update(
            created_at=timezone.now() - datetime.timedelta(days=10)
        )
        recent = AccountMovement.objects.create(
            account=account,
            movement_type=MovementType.ADJUSTMENT,
            amount=Decimal("-20"),
            balance_before=Decimal("499990"),
            balance_after=Decimal("499970"),
            created_by="tester",
        )

        run_batch(JobKind.STATEMENTS, notifier=notifier)

        statement = notifier.deliver_statement.call_args[0][1]
        assert [m.id for m in statement.movements] == [recent.id]
        assert statement.period_charges == Decimal("20")

    def test_failed_delivery_keeps_schedule(self, db, mock_redis, notifier):
        due = timezone.now() - datetime.timedelta(days=1)
        account = ClientAccountFactory(next_statement_due=due)
        notifier.deliver_statement.side_effect = RuntimeError("smtp down")

        result = run_batch(JobKind.STATEMENTS, notifier=notifier)

        assert result.failed == 1
        assert result.errors == [{"account_id": str(account.id), "error": "smtp down"}]
        account.refresh_from_db()
        assert account.next_statement_due == due
        assert account.last_statement_sent is None


# =============================================================================
# Low Balance Alerts
# =============================================================================


class TestLowBalanceAlerts:
    def test_alerts_accounts_at_or_below_threshold(self, db, mock_redis, notifier):
        low = ClientAccountFactory(balance=Decimal("50000"))
        at_threshold = ClientAccountFactory(balance=Decimal("100000"))
        ClientAccountFactory(balance=Decimal("100000.01"))

        result = run_batch(JobKind.LOW_BALANCE_ALERTS, notifier=notifier)

        assert result.processed == 2
        alerted = {call[0][0].id for call in notifier.send_low_balance_alert.call_args_list}
        assert alerted == {low.id, at_threshold.id}
        low.refresh_from_db()
        assert low.alert_triggered is True
        assert low.last_alert_sent is not None

    def test_already_alerted_accounts_are_not_repeated(self, db, mock_redis, notifier):
        ClientAccountFactory(balance=Decimal("50000"), alert_triggered=True)

        result = run_batch(JobKind.LOW_BALANCE_ALERTS, notifier=notifier)

        assert result.processed == 0
        notifier.send_low_balance_alert.assert_not_called()

    def test_failed_alert_is_retried_next_run(self, db, mock_redis, notifier):
        account = ClientAccountFactory(balance=Decimal("50000"))
        notifier.send_low_balance_alert.side_effect = RuntimeError("sms gateway down")

        result = run_batch(JobKind.LOW_BALANCE_ALERTS, notifier=notifier)

        assert result.failed == 1
        assert result.errors[0]["account_id"] == str(account.id)
        assert ClientAccount.objects.get(id=account.id).alert_triggered is False


# =============================================================================
# Celery Tasks & Notifier
# =============================================================================


class TestCeleryTasks:
    @pytest.mark.parametrize(
        "task,job_kind",
        [
            (process_tool_charges, "tool_charges"),
            (notify_missing_reports, "missing_reports"),
            (send_scheduled_statements, "statements"),
            (check_low_balance_alerts, "low_balance_alerts"),
        ],
    )
    def test_tasks_return_batch_summary(self, db, mock_redis, task, job_kind):
        summary = task.apply().get()

        assert summary["job_kind"] == job_kind
        assert summary["status"] == "completed"
        assert summary["failed"] == 0

    def test_task_names_match_beat_schedule(self, db):
        scheduled = set(
            PeriodicTask.objects.filter(name__startswith="Rental:").values_list("task", flat=True)
        )

        assert scheduled == {
            process_tool_charges.name,
            notify_missing_reports.name,
            send_scheduled_statements.name,
            check_low_balance_alerts.name,
        }


class TestNotifier:
    def test_default_notifier(self):
        notifier = get_notifier()

        assert isinstance(notifier, LoggingNotifier)
        assert isinstance(notifier, RentalNotifier)

    def test_logging_notifier_logs(self, db, caplog):
        account = ClientAccountFactory(balance=Decimal("10"))

        LoggingNotifier().send_low_balance_alert(account)

        assert any(str(account.id) in record.message for record in caplog.records)

    def test_configured_notifier(self, settings):
        settings.RENTAL_NOTIFIER_CLASS = "unittest.mock.MagicMock"

        notifier = get_notifier()

        assert notifier.__class__.__name__ == "MagicMock"


def test_job_kind_values():
    assert {kind.value for kind in JobKind} == {
        "tool_charges",
        "missing_reports",
        "statements",
        "low_balance_alerts",
    }
