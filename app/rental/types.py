"""
Data types for rental ledger and billing operations.

This module defines dataclasses used throughout the rental engine
for type-safe data transfer between layers.

Types:
    CostBreakdown: Structured machinery/operator/tool split of a charge
    MovementParams: Parameters for applying a ledger movement
    MeterReadings: Hourometer/odometer snapshot at withdrawal or return
    UsageReadings: Meter readings on a daily usage report
    UsageCharges: Result of the standby-floor calculation
    UsageReportResult: Persisted usage report plus its ledger movement
    UsagePreview: Dry-run result of a usage report
    AccountStatement: Movements and totals for a statement period
    ProjectionResult: Consumption projection for a contract
    BatchResult: Aggregate counters of a batch job run
    JobKind: Scheduled batch job kinds

Usage:
    from decimal import Decimal
    from rental.types import MovementParams, CostBreakdown

    params = MovementParams(
        account_id=account.id,
        movement_type=MovementType.DAILY_CHARGE,
        amount=Decimal("-56000"),
        created_by="operator-17",
        cost_breakdown=CostBreakdown(
            machinery_cost=Decimal("40000"),
            operator_cost=Decimal("16000"),
        ),
    )
"""

from __future__ import annotations

import datetime
import uuid
from dataclasses import asdict, dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

ZERO = Decimal("0")


def to_decimal(value: Any) -> Decimal:
    """Coerce int/str/Decimal input to Decimal (floats go through str)."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


class JobKind(str, Enum):
    """
    Scheduled batch job kinds.

    Values double as lock key suffixes and log identifiers.
    """

    TOOL_CHARGES = "tool_charges"
    MISSING_REPORTS = "missing_reports"
    STATEMENTS = "statements"
    LOW_BALANCE_ALERTS = "low_balance_alerts"


@dataclass(frozen=True)
class CostBreakdown:
    """
    Split of a charge into its billable components.

    Only the components relevant to the charge are set: usage reports
    carry machinery and operator cost, tool charges carry tool cost.
    """

    machinery_cost: Decimal | None = None
    operator_cost: Decimal | None = None
    tool_cost: Decimal | None = None

    def as_fields(self) -> dict[str, Decimal | None]:
        """Model field values for AccountMovement."""
        return {
            "machinery_cost": self.machinery_cost,
            "operator_cost": self.operator_cost,
            "tool_cost": self.tool_cost,
        }


@dataclass
class MovementParams:
    """
    Parameters for applying a single ledger movement.

    Required Attributes:
        account_id: UUID of the client account
        movement_type: One of MovementType values
        amount: Signed amount (negative = charge, positive = credit)
        created_by: Identifier of the user or job applying the movement

    Optional Attributes:
        contract_id: Contract the movement is attributed to
        asset_rental_id: Asset rental the movement relates to
        usage_report_id: Usage report that produced the movement
        cost_breakdown: Structured machinery/operator/tool split
        description: Human-readable description
        evidence_urls: Evidence URIs (photos, receipts)
        metadata: Free-form audit notes
        notes: Operator notes
    """

    # Required fields
    account_id: uuid.UUID
    movement_type: str
    amount: Decimal
    created_by: str

    # Optional fields
    contract_id: uuid.UUID | None = None
    asset_rental_id: uuid.UUID | None = None
    usage_report_id: uuid.UUID | None = None
    cost_breakdown: CostBreakdown | None = None
    description: str = ""
    evidence_urls: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    notes: str | None = None

    def __post_init__(self) -> None:
        self.amount = to_decimal(self.amount)
        if not self.created_by:
            raise ValueError("created_by is required")


@dataclass(frozen=True)
class MeterReadings:
    """Hourometer/odometer snapshot taken when an asset leaves or comes back."""

    hourometer: Decimal | None = None
    odometer: Decimal | None = None


@dataclass
class UsageReadings:
    """
    Meter readings submitted on a daily usage report.

    hourometer_start defaults to the rental's current hourometer when
    omitted. Odometer readings are optional; distance is only computed
    when both ends are present.
    """

    metric_type: str = "HOUROMETER"
    hourometer_start: Decimal | None = None
    hourometer_end: Decimal | None = None
    odometer_start: Decimal | None = None
    odometer_end: Decimal | None = None
    report_date: datetime.date | None = None
    source: str = "APP"
    notes: str | None = None

    def __post_init__(self) -> None:
        for name in ("hourometer_start", "hourometer_end", "odometer_start", "odometer_end"):
            value = getattr(self, name)
            if value is not None:
                setattr(self, name, to_decimal(value))

    @property
    def has_odometer(self) -> bool:
        return self.odometer_start is not None and self.odometer_end is not None


@dataclass(frozen=True)
class UsageCharges:
    """
    Result of applying the standby floor and operator cost model to a day.

    Invariant: hours_billed >= hours_worked.
    """

    hours_worked: Decimal
    hours_billed: Decimal
    min_daily_hours: Decimal
    hourly_rate: Decimal
    operator_cost_type: str
    operator_cost_rate: Decimal
    machinery_cost: Decimal
    operator_cost: Decimal
    total_cost: Decimal
    km_traveled: Decimal | None = None

    @property
    def standby_applied(self) -> bool:
        return self.hours_billed > self.hours_worked

    @property
    def standby_hours(self) -> Decimal:
        return self.hours_billed - self.hours_worked

    @property
    def cost_breakdown(self) -> CostBreakdown:
        return CostBreakdown(
            machinery_cost=self.machinery_cost,
            operator_cost=self.operator_cost,
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["standby_applied"] = self.standby_applied
        return data


@dataclass
class UsageReportResult:
    """
    Outcome of a committed usage report.

    Attributes:
        usage: The persisted AssetUsage row
        movement: The DAILY_CHARGE AccountMovement
        charges: The computed UsageCharges
    """

    usage: Any
    movement: Any
    charges: UsageCharges

    @property
    def metrics(self) -> dict[str, Any]:
        return {
            "hours_worked": self.charges.hours_worked,
            "hours_billed": self.charges.hours_billed,
            "min_daily_hours": self.charges.min_daily_hours,
            "standby_applied": self.charges.standby_applied,
            "km_traveled": self.charges.km_traveled,
        }


@dataclass(frozen=True)
class UsagePreview:
    """Dry-run result of a usage report, nothing persisted."""

    rental_id: uuid.UUID
    charges: UsageCharges
    current_balance: Decimal

    @property
    def balance_after(self) -> Decimal:
        return self.current_balance - self.charges.total_cost

    @property
    def sufficient_balance(self) -> bool:
        return self.balance_after >= ZERO


@dataclass
class AccountStatement:
    """
    Movements and summary totals for one account and period.

    Movements are ordered newest-first.
    """

    account_id: uuid.UUID
    client_id: uuid.UUID
    current_balance: Decimal
    total_consumed: Decimal
    total_reloaded: Decimal
    period_charges: Decimal
    period_credits: Decimal
    period_start: datetime.datetime | None
    period_end: datetime.datetime | None
    movements: list[Any] = field(default_factory=list)

    @property
    def movement_count(self) -> int:
        return len(self.movements)

    def summary(self) -> dict[str, Any]:
        """Serializable summary, without the movement rows."""
        return {
            "account_id": str(self.account_id),
            "client_id": str(self.client_id),
            "current_balance": str(self.current_balance),
            "total_consumed": str(self.total_consumed),
            "total_reloaded": str(self.total_reloaded),
            "period_charges": str(self.period_charges),
            "period_credits": str(self.period_credits),
            "period_start": self.period_start.isoformat() if self.period_start else None,
            "period_end": self.period_end.isoformat() if self.period_end else None,
            "movement_count": self.movement_count,
        }


@dataclass(frozen=True)
class ProjectionResult:
    """
    Consumption projection for a contract's open rentals.

    days_until_empty is NO_CONSUMPTION_DAYS when nothing is consuming.
    """

    NO_CONSUMPTION_DAYS = 999

    contract_id: uuid.UUID
    current_balance: Decimal
    estimated_daily_cost: Decimal
    projection_days: int
    projected_consumption: Decimal
    projected_balance: Decimal
    days_until_empty: int
    needs_reload: bool
    recommended_reload: Decimal
    active_assets: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "contract_id": str(self.contract_id),
            "current_balance": str(self.current_balance),
            "estimated_daily_cost": str(self.estimated_daily_cost),
            "projection_days": self.projection_days,
            "projected_consumption": str(self.projected_consumption),
            "projected_balance": str(self.projected_balance),
            "days_until_empty": self.days_until_empty,
            "needs_reload": self.needs_reload,
            "recommended_reload": str(self.recommended_reload),
            "active_assets": self.active_assets,
        }


@dataclass
class BatchResult:
    """
    Aggregate counters of one batch job run.

    Attributes:
        job_kind: Which job ran
        status: "completed", or "skipped" when another run held the lock
        processed: Items acted on successfully
        failed: Items that raised an unexpected error
        insufficient_balance: Tool rentals the account could not cover
        skipped: Items intentionally not acted on (zero rate, already charged)
        errors: One {"<id key>": id, "error": message} per failed item
    """

    job_kind: JobKind
    status: str = "completed"
    processed: int = 0
    failed: int = 0
    insufficient_balance: int = 0
    skipped: int = 0
    errors: list[dict[str, str]] = field(default_factory=list)

    @classmethod
    def skipped_run(cls, job_kind: JobKind) -> BatchResult:
        return cls(job_kind=job_kind, status="skipped")

    def record_error(self, item_id: uuid.UUID, error: Exception, key: str = "rental_id") -> None:
        self.failed += 1
        self.errors.append({key: str(item_id), "error": str(error)})

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_kind": self.job_kind.value,
            "status": self.status,
            "processed": self.processed,
            "failed": self.failed,
            "insufficient_balance": self.insufficient_balance,
            "skipped": self.skipped,
            "errors": list(self.errors),
        }


__all__ = [
    "ZERO",
    "to_decimal",
    "JobKind",
    "CostBreakdown",
    "MovementParams",
    "MeterReadings",
    "UsageReadings",
    "UsageCharges",
    "UsageReportResult",
    "UsagePreview",
    "AccountStatement",
    "ProjectionResult",
    "BatchResult",
]
