"""
Rental app configuration.

This app provides the rental credit ledger and usage billing engine:
- Prepaid client accounts with an append-only movement ledger
- Contract and asset rental lifecycle
- Standby-floor billing of machinery usage reports
- Scheduled auto-charge, statement and alert jobs
"""

from django.apps import AppConfig


class RentalConfig(AppConfig):
    """Configuration for the rental application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "rental"
    verbose_name = "Rental"
