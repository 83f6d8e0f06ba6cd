"""
Auto-charge worker for scheduled rental batch jobs.

This module provides the batch entry point and the Celery tasks that
celery-beat fires on schedule:

Jobs:
- TOOL_CHARGES (00:01 daily): charge every open TOOL rental its daily rate
- MISSING_REPORTS (20:00 daily): remind operators of machinery without
  a usage report for today
- STATEMENTS (08:00 daily): deliver statements that are due
- LOW_BALANCE_ALERTS (hourly): alert accounts at or below their threshold

Every job is single-flight: a run holds a Redis lock keyed by job kind,
and a run that finds the lock taken returns status "skipped". Items are
processed independently; one item's failure is recorded and the batch
moves on.

Usage:
    from rental.workers import run_batch, process_tool_charges
    from rental.types import JobKind

    result = run_batch(JobKind.TOOL_CHARGES)
    print(result.processed, result.insufficient_balance)

    # Or through Celery
    process_tool_charges.delay()
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from celery import shared_task
from django.conf import settings
from django.db import transaction
from django.db.models import F, Q
from django.utils import timezone

from rental.exceptions import InsufficientBalance, LockAcquisitionError
from rental.locks import BatchLock
from rental.models import AssetRental, ClientAccount
from rental.protocols import get_notifier
from rental.services.account_service import AccountService, compute_next_statement_due
from rental.state_machines import MovementType, StatementFrequency
from rental.types import ZERO, BatchResult, CostBreakdown, JobKind, MovementParams

if TYPE_CHECKING:
    import datetime
    from collections.abc import Callable

    from rental.protocols import RentalNotifier

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Actor recorded on movements written by the batch
BATCH_ACTOR = "system:auto-charge"

# Per-item outcomes
PROCESSED = "processed"
SKIPPED = "skipped"
INSUFFICIENT = "insufficient_balance"


# =============================================================================
# Tool Charges
# =============================================================================


def charge_tool_rental(rental_id: uuid.UUID, today: datetime.date, skip_same_day: bool) -> str:
    """
    Charge one TOOL rental its daily rate.

    Runs in its own transaction with the rental row locked.

    Returns:
        "processed", "skipped" (returned, inactive contract, no rate,
        already charged today) or "insufficient_balance"
    """
    with transaction.atomic():
        rental = (
            AssetRental.objects.select_for_update()
            .select_related("asset", "contract")
            .filter(id=rental_id)
            .first()
        )
        if rental is None or not rental.is_open or not rental.contract.is_active:
            return SKIPPED

        daily_rate = rental.daily_rate or ZERO
        if daily_rate <= ZERO:
            logger.warning(
                f"Rental {rental.id} has no daily rate configured",
                extra={"rental_id": str(rental.id)},
            )
            return SKIPPED

        if (
            skip_same_day
            and rental.last_charge_date is not None
            and timezone.localdate(rental.last_charge_date) == today
        ):
            logger.info(
                f"Rental {rental.id} already charged today",
                extra={"rental_id": str(rental.id), "charge_date": today.isoformat()},
            )
            return SKIPPED

        account = ClientAccount.objects.get(id=rental.contract.account_id)
        if account.balance < daily_rate:
            logger.warning(
                f"Insufficient balance for rental {rental.id}",
                extra={
                    "rental_id": str(rental.id),
                    "account_id": str(account.id),
                    "required": str(daily_rate),
                    "available": str(account.balance),
                },
            )
            return INSUFFICIENT

        now = timezone.now()
        AssetRental.objects.filter(id=rental.id).update(
            days_elapsed=F("days_elapsed") + 1,
            total_cost=F("total_cost") + daily_rate,
            last_charge_date=now,
            updated_at=now,
        )

        asset = rental.asset
        AccountService.apply_movement(
            MovementParams(
                account_id=account.id,
                contract_id=rental.contract_id,
                asset_rental_id=rental.id,
                movement_type=MovementType.DAILY_CHARGE,
                amount=-daily_rate,
                cost_breakdown=CostBreakdown(tool_cost=daily_rate),
                description=(
                    f"Automatic daily charge - {asset.name} ({asset.code}): {daily_rate}/day"
                ),
                metadata={"auto_charge": True, "charge_date": today.isoformat()},
                created_by=BATCH_ACTOR,
            )
        )

    return PROCESSED


def process_tool_charges_batch(notifier: RentalNotifier) -> BatchResult:
    """Charge every open TOOL rental under an active contract."""
    result = BatchResult(job_kind=JobKind.TOOL_CHARGES)
    today = timezone.localdate()
    skip_same_day = settings.RENTAL_TOOL_CHARGE_SKIP_SAME_DAY

    rental_ids = list(
        AssetRental.objects.billable_tools().order_by("withdrawal_date").values_list("id", flat=True)
    )
    logger.info(f"Found {len(rental_ids)} active tool rentals")

    for rental_id in rental_ids:
        try:
            outcome = charge_tool_rental(rental_id, today, skip_same_day)
        except InsufficientBalance:
            # Balance dropped between the pre-check and the ledger write
            result.insufficient_balance += 1
            continue
        except Exception as e:
            logger.exception(
                f"Failed to charge rental {rental_id}",
                extra={"rental_id": str(rental_id)},
            )
            result.record_error(rental_id, e)
            continue

        if outcome == PROCESSED:
            result.processed += 1
        elif outcome == INSUFFICIENT:
            result.insufficient_balance += 1
        else:
            result.skipped += 1

    return result


# =============================================================================
# Missing Usage Reports
# =============================================================================


def notify_missing_reports_batch(notifier: RentalNotifier) -> BatchResult:
    """Remind operators of open machinery rentals with no report today."""
    result = BatchResult(job_kind=JobKind.MISSING_REPORTS)
    today = timezone.localdate()

    rentals = list(
        AssetRental.objects.billable_machinery()
        .exclude(usage_reports__report_date=today)
        .select_related("asset", "contract")
        .order_by("withdrawal_date")
    )
    logger.info(f"Found {len(rentals)} machinery rentals without a report for {today}")

    for rental in rentals:
        try:
            notifier.send_missing_report_alert(rental)
        except Exception as e:
            logger.exception(
                f"Failed to send missing report alert for rental {rental.id}",
                extra={"rental_id": str(rental.id)},
            )
            result.record_error(rental.id, e)
            continue
        result.processed += 1

    return result


# =============================================================================
# Scheduled Statements
# =============================================================================


def send_statement(account_id: uuid.UUID, notifier: RentalNotifier) -> None:
    """
    Deliver one account's statement and advance its schedule.

    The statement covers movements since the last statement was sent.
    The schedule only advances when delivery succeeds.
    """
    with transaction.atomic():
        account = ClientAccount.objects.select_for_update().get(id=account_id)
        now = timezone.now()
        statement = AccountService.get_statement(
            account.id,
            start=account.last_statement_sent,
            end=now,
        )
        notifier.deliver_statement(account, statement)

        account.last_statement_sent = now
        account.next_statement_due = compute_next_statement_due(account.statement_frequency, now)
        account.save(update_fields=["last_statement_sent", "next_statement_due", "updated_at"])


def send_scheduled_statements_batch(notifier: RentalNotifier) -> BatchResult:
    """Deliver statements for accounts whose next statement is due."""
    result = BatchResult(job_kind=JobKind.STATEMENTS)
    end_of_today = timezone.localtime().replace(hour=23, minute=59, second=59, microsecond=999999)

    account_ids = list(
        ClientAccount.objects.exclude(statement_frequency=StatementFrequency.MANUAL)
        .filter(
            Q(next_statement_due__lte=end_of_today)
            | Q(next_statement_due__isnull=True, last_statement_sent__isnull=True)
        )
        .values_list("id", flat=True)
    )
    logger.info(f"Found {len(account_ids)} accounts with statements due")

    for account_id in account_ids:
        try:
            send_statement(account_id, notifier)
        except Exception as e:
            logger.exception(
                f"Failed to send statement for account {account_id}",
                extra={"account_id": str(account_id)},
            )
            result.record_error(account_id, e, key="account_id")
            continue
        result.processed += 1

    return result


# =============================================================================
# Low Balance Alerts
# =============================================================================


def send_low_balance_alert(account_id: uuid.UUID, notifier: RentalNotifier) -> bool:
    """
    Alert one account if it is still at or below its threshold.

    Returns:
        True if an alert was sent, False if the account no longer qualifies
    """
    with transaction.atomic():
        account = ClientAccount.objects.select_for_update().get(id=account_id)
        if account.alert_triggered or account.balance > account.alert_amount:
            return False

        notifier.send_low_balance_alert(account)
        AccountService.check_alerts(account)
    return True


def check_low_balance_alerts_batch(notifier: RentalNotifier) -> BatchResult:
    """Alert accounts at or below their threshold that were not alerted yet."""
    result = BatchResult(job_kind=JobKind.LOW_BALANCE_ALERTS)

    account_ids = list(
        ClientAccount.objects.filter(
            alert_triggered=False,
            balance__lte=F("alert_amount"),
        ).values_list("id", flat=True)
    )
    logger.info(f"Found {len(account_ids)} accounts with low balance")

    for account_id in account_ids:
        try:
            sent = send_low_balance_alert(account_id, notifier)
        except Exception as e:
            logger.exception(
                f"Failed to send low balance alert for account {account_id}",
                extra={"account_id": str(account_id)},
            )
            result.record_error(account_id, e, key="account_id")
            continue

        if sent:
            result.processed += 1
        else:
            result.skipped += 1

    return result


# =============================================================================
# Entry Point
# =============================================================================

JOBS: dict[JobKind, Callable[[RentalNotifier], BatchResult]] = {
    JobKind.TOOL_CHARGES: process_tool_charges_batch,
    JobKind.MISSING_REPORTS: notify_missing_reports_batch,
    JobKind.STATEMENTS: send_scheduled_statements_batch,
    JobKind.LOW_BALANCE_ALERTS: check_low_balance_alerts_batch,
}


def run_batch(job_kind: JobKind | str, notifier: RentalNotifier | None = None) -> BatchResult:
    """
    Run one batch job under its single-flight lock.

    Args:
        job_kind: Which job to run
        notifier: Delivery adapter (default from RENTAL_NOTIFIER_CLASS)

    Returns:
        BatchResult with aggregate counters, or status "skipped" when
        another run of the same kind holds the lock

    Raises:
        Exception: Only when the candidate set cannot be enumerated
    """
    job_kind = JobKind(job_kind)
    notifier = notifier or get_notifier()
    lock = BatchLock(job_kind.value, ttl=settings.RENTAL_BATCH_LOCK_TTL)

    try:
        lock.acquire()
    except LockAcquisitionError:
        logger.info(
            f"Batch {job_kind.value} skipped - another run in progress",
            extra={"job_kind": job_kind.value},
        )
        return BatchResult.skipped_run(job_kind)

    try:
        logger.info(f"Starting batch {job_kind.value}", extra={"job_kind": job_kind.value})
        result = JOBS[job_kind](notifier)
    finally:
        lock.release()

    logger.info(
        f"Batch {job_kind.value} complete: processed {result.processed}, "
        f"failed {result.failed}, insufficient balance {result.insufficient_balance}, "
        f"skipped {result.skipped}",
        extra=result.to_dict(),
    )
    return result


# =============================================================================
# Celery Tasks
# =============================================================================


@shared_task(bind=True)
def process_tool_charges(self) -> dict:
    """Daily tool charge run (celery-beat, 00:01)."""
    return run_batch(JobKind.TOOL_CHARGES).to_dict()


@shared_task(bind=True)
def notify_missing_reports(self) -> dict:
    """Missing usage report reminders (celery-beat, 20:00)."""
    return run_batch(JobKind.MISSING_REPORTS).to_dict()


@shared_task(bind=True)
def send_scheduled_statements(self) -> dict:
    """Scheduled statement delivery (celery-beat, 08:00)."""
    return run_batch(JobKind.STATEMENTS).to_dict()


@shared_task(bind=True)
def check_low_balance_alerts(self) -> dict:
    """Low balance alerts (celery-beat, hourly)."""
    return run_batch(JobKind.LOW_BALANCE_ALERTS).to_dict()
