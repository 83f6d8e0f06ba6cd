"""
State and choice enums for rental models.

These are Django TextChoices for database storage and admin integration.

State Machines Overview:

RentalContract States:
    active ⇄ suspended
    active → completed (only when no rental is still out)
    active/suspended → cancelled

    completed and cancelled are terminal.

AssetUsage States:
    pending → processed
    pending → rejected
"""

from django.db import models


class ContractStatus(models.TextChoices):
    """
    States for the RentalContract lifecycle.

    Terminal states: COMPLETED, CANCELLED

    State Flow:
        ACTIVE → SUSPENDED → ACTIVE (any number of times)
        ACTIVE → COMPLETED
        ACTIVE/SUSPENDED → CANCELLED
    """

    ACTIVE = "active", "Active"
    SUSPENDED = "suspended", "Suspended"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"


class MovementType(models.TextChoices):
    """
    Types of account movements.

    Values:
        INITIAL_CREDIT: Funding supplied when the account is opened
        CREDIT_RELOAD: Prepaid credit added by the client
        DAILY_CHARGE: Usage report or daily tool charge
        ADJUSTMENT: Manual correction (either sign)
        WITHDRAWAL_START: Zero-amount audit entry when an asset leaves
        RETURN_END: Zero-amount audit entry when an asset comes back
    """

    INITIAL_CREDIT = "INITIAL_CREDIT", "Initial Credit"
    CREDIT_RELOAD = "CREDIT_RELOAD", "Credit Reload"
    DAILY_CHARGE = "DAILY_CHARGE", "Daily Charge"
    ADJUSTMENT = "ADJUSTMENT", "Adjustment"
    WITHDRAWAL_START = "WITHDRAWAL_START", "Withdrawal Start"
    RETURN_END = "RETURN_END", "Return End"


class TrackingType(models.TextChoices):
    """
    Asset billing model.

    MACHINERY is metered (hourometer/odometer) and billed per hour with a
    standby floor. TOOL is billed a fixed daily rate by the auto-charge job.
    """

    MACHINERY = "MACHINERY", "Machinery"
    TOOL = "TOOL", "Tool"


class OperatorCostType(models.TextChoices):
    """
    How the equipment operator is charged.

    PER_DAY: flat daily amount (travel and lodging for far job sites)
    PER_HOUR: billed hours × rate (near job sites, follows the standby floor)
    """

    PER_DAY = "PER_DAY", "Per Day"
    PER_HOUR = "PER_HOUR", "Per Hour"


class StatementFrequency(models.TextChoices):
    """How often account statements are dispatched."""

    WEEKLY = "weekly", "Weekly"
    BIWEEKLY = "biweekly", "Biweekly"
    MONTHLY = "monthly", "Monthly"
    MANUAL = "manual", "Manual"


class UsageMetricType(models.TextChoices):
    """Meters reported on a daily usage report."""

    HOUROMETER = "HOUROMETER", "Hourometer"
    ODOMETER = "ODOMETER", "Odometer"
    BOTH = "BOTH", "Both"


class UsageStatus(models.TextChoices):
    """Processing status of a daily usage report."""

    PENDING = "pending", "Pending"
    PROCESSED = "processed", "Processed"
    REJECTED = "rejected", "Rejected"


class UsageSource(models.TextChoices):
    """Channel a usage report was submitted through."""

    APP = "APP", "Mobile App"
    WEB = "WEB", "Web"
    API = "API", "API"


__all__ = [
    "ContractStatus",
    "MovementType",
    "TrackingType",
    "OperatorCostType",
    "StatementFrequency",
    "UsageMetricType",
    "UsageStatus",
    "UsageSource",
]
