"""
Add Celery Beat schedules for the rental batch jobs.

This migration creates periodic task schedules for:
- Daily tool charges (00:01)
- Missing usage report reminders (20:00)
- Scheduled account statements (08:00)
- Hourly low-balance alert sweep
"""

from django.db import migrations

TASK_NAMES = [
    "Rental: Daily Tool Charges",
    "Rental: Missing Usage Reports",
    "Rental: Scheduled Statements",
    "Rental: Low Balance Alerts",
]


def create_periodic_tasks(apps, schema_editor):
    """Create periodic tasks for the rental batch jobs."""
    CrontabSchedule = apps.get_model("django_celery_beat", "CrontabSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    # =========================================================================
    # Crontab Schedules
    # =========================================================================

    # Daily at 00:01
    crontab_daily_0001, _ = CrontabSchedule.objects.get_or_create(
        minute="1",
        hour="0",
        day_of_week="*",
        day_of_month="*",
        month_of_year="*",
    )

    # Daily at 20:00
    crontab_daily_2000, _ = CrontabSchedule.objects.get_or_create(
        minute="0",
        hour="20",
        day_of_week="*",
        day_of_month="*",
        month_of_year="*",
    )

    # Daily at 08:00
    crontab_daily_0800, _ = CrontabSchedule.objects.get_or_create(
        minute="0",
        hour="8",
        day_of_week="*",
        day_of_month="*",
        month_of_year="*",
    )

    # Top of every hour
    crontab_hourly, _ = CrontabSchedule.objects.get_or_create(
        minute="0",
        hour="*",
        day_of_week="*",
        day_of_month="*",
        month_of_year="*",
    )

    # =========================================================================
    # Periodic Tasks
    # =========================================================================

    PeriodicTask.objects.get_or_create(
        name="Rental: Daily Tool Charges",
        defaults={
            "task": "rental.workers.auto_charge.process_tool_charges",
            "crontab": crontab_daily_0001,
            "enabled": True,
            "description": (
                "Charges one daily rate for every open TOOL rental under an "
                "active contract. Skips rentals already charged today."
            ),
        },
    )

    PeriodicTask.objects.get_or_create(
        name="Rental: Missing Usage Reports",
        defaults={
            "task": "rental.workers.auto_charge.notify_missing_reports",
            "crontab": crontab_daily_2000,
            "enabled": True,
            "description": (
                "Reminds operators of open MACHINERY rentals that have no "
                "usage report for today."
            ),
        },
    )

    PeriodicTask.objects.get_or_create(
        name="Rental: Scheduled Statements",
        defaults={
            "task": "rental.workers.auto_charge.send_scheduled_statements",
            "crontab": crontab_daily_0800,
            "enabled": True,
            "description": (
                "Sends account statements that are due and schedules the next "
                "one from the account's statement frequency."
            ),
        },
    )

    PeriodicTask.objects.get_or_create(
        name="Rental: Low Balance Alerts",
        defaults={
            "task": "rental.workers.auto_charge.check_low_balance_alerts",
            "crontab": crontab_hourly,
            "enabled": True,
            "description": (
                "Fires the low-balance alert for accounts at or below their "
                "threshold that have not been alerted yet."
            ),
        },
    )


def remove_periodic_tasks(apps, schema_editor):
    """Remove the periodic tasks on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    PeriodicTask.objects.filter(name__in=TASK_NAMES).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("rental", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_tasks, remove_periodic_tasks),
    ]
