"""
Celery tasks for the rental app.

Celery's autodiscovery imports this module; the tasks themselves live in
rental.workers.

Usage:
    from rental.tasks import check_low_balance_alerts

    check_low_balance_alerts.delay()
"""

from rental.workers import (
    check_low_balance_alerts,
    notify_missing_reports,
    process_tool_charges,
    send_scheduled_statements,
)

__all__ = [
    "process_tool_charges",
    "notify_missing_reports",
    "send_scheduled_statements",
    "check_low_balance_alerts",
]
