"""
Tests for the rental data types.
"""

import datetime
import uuid
from decimal import Decimal

import pytest

from rental.types import (
    AccountStatement,
    BatchResult,
    CostBreakdown,
    JobKind,
    MovementParams,
    UsageCharges,
    UsagePreview,
    UsageReadings,
    to_decimal,
)


def standby_charges(**overrides):
    values = {
        "hours_worked": Decimal("6"),
        "hours_billed": Decimal("8"),
        "min_daily_hours": Decimal("8"),
        "hourly_rate": Decimal("5000"),
        "operator_cost_type": "PER_HOUR",
        "operator_cost_rate": Decimal("2000"),
        "machinery_cost": Decimal("40000"),
        "operator_cost": Decimal("16000"),
        "total_cost": Decimal("56000"),
    }
    values.update(overrides)
    return UsageCharges(**values)


class TestToDecimal:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (Decimal("1.10"), Decimal("1.10")),
            (5, Decimal("5")),
            ("12.5", Decimal("12.5")),
            (0.1, Decimal("0.1")),
        ],
    )
    def test_coercion(self, value, expected):
        assert to_decimal(value) == expected


class TestMovementParams:
    def test_amount_is_coerced(self):
        params = MovementParams(
            account_id=uuid.uuid4(),
            movement_type="ADJUSTMENT",
            amount="-1500",
            created_by="admin-3",
        )

        assert params.amount == Decimal("-1500")
        assert params.evidence_urls == []
        assert params.metadata == {}

    def test_actor_required(self):
        with pytest.raises(ValueError):
            MovementParams(
                account_id=uuid.uuid4(),
                movement_type="ADJUSTMENT",
                amount=Decimal("1"),
                created_by="",
            )


class TestUsageReadings:
    def test_readings_are_coerced(self):
        readings = UsageReadings(hourometer_start=1000, hourometer_end="1006.5")

        assert readings.hourometer_start == Decimal("1000")
        assert readings.hourometer_end == Decimal("1006.5")
        assert readings.metric_type == "HOUROMETER"
        assert readings.source == "APP"

    def test_has_odometer_needs_both_ends(self):
        assert UsageReadings(odometer_start=Decimal("1")).has_odometer is False
        assert UsageReadings(
            odometer_start=Decimal("1"), odometer_end=Decimal("5")
        ).has_odometer is True


class TestUsageCharges:
    def test_standby(self):
        charges = standby_charges()

        assert charges.standby_applied is True
        assert charges.standby_hours == Decimal("2")
        assert charges.to_dict()["standby_applied"] is True

    def test_no_standby_when_floor_is_met(self):
        charges = standby_charges(hours_worked=Decimal("10"), hours_billed=Decimal("10"))

        assert charges.standby_applied is False
        assert charges.standby_hours == Decimal("0")

    def test_cost_breakdown_has_no_tool_component(self):
        assert standby_charges().cost_breakdown == CostBreakdown(
            machinery_cost=Decimal("40000"),
            operator_cost=Decimal("16000"),
        )


class TestUsagePreview:
    def test_balance_after(self):
        preview = UsagePreview(
            rental_id=uuid.uuid4(),
            charges=standby_charges(),
            current_balance=Decimal("56000"),
        )

        assert preview.balance_after == Decimal("0")
        assert preview.sufficient_balance is True

    def test_insufficient(self):
        preview = UsagePreview(
            rental_id=uuid.uuid4(),
            charges=standby_charges(),
            current_balance=Decimal("55999.99"),
        )

        assert preview.sufficient_balance is False


def test_statement_summary():
    start = datetime.datetime(2026, 6, 1, tzinfo=datetime.timezone.utc)
    statement = AccountStatement(
        account_id=uuid.uuid4(),
        client_id=uuid.uuid4(),
        current_balance=Decimal("444000"),
        total_consumed=Decimal("56000"),
        total_reloaded=Decimal("0"),
        period_charges=Decimal("56000"),
        period_credits=Decimal("0"),
        period_start=start,
        period_end=None,
        movements=["m1", "m2"],
    )

    summary = statement.summary()

    assert summary["movement_count"] == 2
    assert summary["period_start"] == "2026-06-01T00:00:00+00:00"
    assert summary["period_end"] is None
    assert summary["current_balance"] == "444000"


class TestBatchResult:
    def test_record_error(self):
        result = BatchResult(job_kind=JobKind.STATEMENTS)
        account_id = uuid.uuid4()

        result.record_error(account_id, RuntimeError("smtp down"), key="account_id")

        assert result.failed == 1
        assert result.errors == [{"account_id": str(account_id), "error": "smtp down"}]

    def test_skipped_run(self):
        data = BatchResult.skipped_run(JobKind.TOOL_CHARGES).to_dict()

        assert data == {
            "job_kind": "tool_charges",
            "status": "skipped",
            "processed": 0,
            "failed": 0,
            "insufficient_balance": 0,
            "skipped": 0,
            "errors": [],
        }
