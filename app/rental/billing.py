"""
Standby-floor billing arithmetic.

Pure functions with no database access. They are shared by usage report
processing, the usage report dry run and the consumption projection.

Billing rules for one day of a metered (MACHINERY) rental:

    hours_billed   = max(hours_worked, min_daily_hours)      # standby floor
    machinery_cost = hours_billed * hourly_rate
    operator_cost  = operator_cost_rate                      # PER_DAY
                   = hours_billed * operator_cost_rate       # otherwise
    total_cost     = machinery_cost + operator_cost

Distance never has a floor applied.

Usage:
    from decimal import Decimal
    from rental.billing import calculate_usage_charges

    charges = calculate_usage_charges(
        hours_worked=Decimal("6"),
        min_daily_hours=Decimal("8"),
        hourly_rate=Decimal("5000"),
        operator_cost_type="PER_HOUR",
        operator_cost_rate=Decimal("2000"),
    )
    charges.total_cost  # Decimal("56000.00")
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from rental.exceptions import InvalidMeterReading
from rental.state_machines import OperatorCostType
from rental.types import ZERO, UsageCharges, to_decimal

CENT = Decimal("0.01")


def quantize_money(value: Decimal) -> Decimal:
    """Round to cents, half up."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def meter_delta(start: Decimal | None, end: Decimal | None, meter: str) -> Decimal:
    """
    Difference between two meter readings.

    A missing end reading means nothing was reported (zero); a missing
    start reading counts from zero.

    Raises:
        InvalidMeterReading: If end < start
    """
    if end is None:
        return ZERO
    start_value = to_decimal(start) if start is not None else ZERO
    delta = to_decimal(end) - start_value
    if delta < ZERO:
        raise InvalidMeterReading(
            f"Invalid {meter} reading: end < start",
            details={"meter": meter, "start": str(start_value), "end": str(end)},
        )
    return delta


def operator_cost_for(
    hours_billed: Decimal,
    operator_cost_type: str | None,
    operator_cost_rate: Decimal,
) -> Decimal:
    """
    Operator (viáticos) cost for one day under the rental's cost model.

    Anything other than PER_DAY is billed per hour, including a rate
    recorded without a type. No operator means a zero rate.
    """
    if operator_cost_type == OperatorCostType.PER_DAY:
        return operator_cost_rate
    return hours_billed * operator_cost_rate


def calculate_usage_charges(
    hours_worked: Decimal,
    min_daily_hours: Decimal | None,
    hourly_rate: Decimal | None,
    operator_cost_type: str | None,
    operator_cost_rate: Decimal | None,
    km_traveled: Decimal | None = None,
) -> UsageCharges:
    """
    Apply the standby floor and the operator cost model to one day of usage.

    Args:
        hours_worked: Hours on the hourometer for the day (>= 0)
        min_daily_hours: Guaranteed minimum billable hours (None = no floor)
        hourly_rate: Machinery rate per billed hour
        operator_cost_type: PER_DAY, PER_HOUR or None (billed as PER_HOUR)
        operator_cost_rate: Operator rate per day or per billed hour (None = no operator)
        km_traveled: Distance for the day, passed through unchanged

    Returns:
        UsageCharges with hours_billed >= hours_worked

    Raises:
        InvalidMeterReading: If hours_worked or km_traveled is negative
    """
    hours_worked = to_decimal(hours_worked)
    if hours_worked < ZERO:
        raise InvalidMeterReading(
            "Invalid hourometer reading: end < start",
            details={"hours_worked": str(hours_worked)},
        )
    if km_traveled is not None and to_decimal(km_traveled) < ZERO:
        raise InvalidMeterReading(
            "Invalid odometer reading: end < start",
            details={"km_traveled": str(km_traveled)},
        )

    floor = to_decimal(min_daily_hours) if min_daily_hours is not None else ZERO
    rate = to_decimal(hourly_rate) if hourly_rate is not None else ZERO
    operator_rate = to_decimal(operator_cost_rate) if operator_cost_rate is not None else ZERO

    hours_billed = max(hours_worked, floor)
    machinery_cost = quantize_money(hours_billed * rate)
    operator_cost = quantize_money(
        operator_cost_for(hours_billed, operator_cost_type, operator_rate)
    )

    return UsageCharges(
        hours_worked=hours_worked,
        hours_billed=hours_billed,
        min_daily_hours=floor,
        hourly_rate=rate,
        operator_cost_type=operator_cost_type or "",
        operator_cost_rate=operator_rate,
        machinery_cost=machinery_cost,
        operator_cost=operator_cost,
        total_cost=machinery_cost + operator_cost,
        km_traveled=to_decimal(km_traveled) if km_traveled is not None else None,
    )


def standby_daily_cost(
    min_daily_hours: Decimal | None,
    hourly_rate: Decimal | None,
    operator_cost_type: str | None,
    operator_cost_rate: Decimal | None,
) -> Decimal:
    """Cost of an idle day: only the standby floor is billed."""
    return calculate_usage_charges(
        hours_worked=ZERO,
        min_daily_hours=min_daily_hours,
        hourly_rate=hourly_rate,
        operator_cost_type=operator_cost_type,
        operator_cost_rate=operator_cost_rate,
    ).total_cost


def describe_usage_charge(asset_name: str, asset_code: str, charges: UsageCharges) -> str:
    """
    Ledger description for a usage charge.

    Names the operator cost model and, when the floor kicked in, the
    worked vs. billed hours.
    """
    if charges.operator_cost_type == OperatorCostType.PER_DAY:
        operator_note = f" (operator: {charges.operator_cost:.2f}/day)"
    elif charges.operator_cost_rate > ZERO:
        operator_note = (
            f" (operator: {charges.hours_billed:.2f} hrs x {charges.operator_cost_rate:.2f})"
        )
    else:
        operator_note = ""

    standby_note = ""
    if charges.standby_applied:
        standby_note = (
            f" [standby applied: {charges.hours_worked:.2f} hrs worked, "
            f"{charges.hours_billed:.2f} hrs billed]"
        )

    return (
        f"Daily charge - {asset_name} ({asset_code}): "
        f"{charges.hours_billed:.2f} hrs x {charges.hourly_rate:.2f}"
        f"{operator_note}{standby_note}"
    )


__all__ = [
    "quantize_money",
    "meter_delta",
    "operator_cost_for",
    "calculate_usage_charges",
    "standby_daily_cost",
    "describe_usage_charge",
]
