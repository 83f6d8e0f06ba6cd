"""
Workers for scheduled rental batch jobs.

This module contains the batch entry point and its Celery tasks:
- run_batch: Runs one JobKind under its single-flight lock
- process_tool_charges: Daily tool charges
- notify_missing_reports: Missing usage report reminders
- send_scheduled_statements: Statement delivery
- check_low_balance_alerts: Low balance alerts

Usage:
    from rental.workers import run_batch, process_tool_charges
    from rental.types import JobKind

    run_batch(JobKind.STATEMENTS)
    process_tool_charges.delay()
"""

from rental.workers.auto_charge import (
    check_low_balance_alerts,
    notify_missing_reports,
    process_tool_charges,
    run_batch,
    send_scheduled_statements,
)

__all__ = [
    "run_batch",
    "process_tool_charges",
    "notify_missing_reports",
    "send_scheduled_statements",
    "check_low_balance_alerts",
]
