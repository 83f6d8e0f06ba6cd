"""
Celery configuration for the rental billing engine.

Celery runs the rental batch jobs:
- Daily tool charges (00:01)
- Missing usage report reminders (20:00)
- Scheduled account statements (08:00)
- Hourly low-balance alert sweep

The schedule is created by the rental data migrations and read by
django_celery_beat's DatabaseScheduler. Redis is both the message broker and
result backend. Tasks are auto-discovered from all installed Django apps.

Usage:
    celery -A config worker -l info
    celery -A config beat -l info

    # Trigger a job by hand:
    from rental.tasks import process_tool_charges
    process_tool_charges.delay()

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

# Set the default Django settings module for the Celery worker
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

# Celery looks for a tasks.py module in each installed app
app.autodiscover_tasks()
