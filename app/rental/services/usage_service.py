"""
Usage billing service for metered (MACHINERY) rentals.

Operators submit one usage report per day with hourometer (and optionally
odometer) readings plus photo evidence. Each report is billed with the
standby floor and the rental's operator cost model, and the charge is
applied to the client's account in the same transaction as the report.

Usage:
    from rental.services import UsageService
    from rental.types import UsageReadings

    result = UsageService.process_usage_report(
        rental_id=rental.id,
        readings=UsageReadings(hourometer_start=100, hourometer_end=106),
        evidence_urls=["s3://evidence/hourometer-0612.jpg"],
        reported_by="operator-17",
    )
    result.charges.hours_billed  # 8 when min_daily_hours is 8

    preview = UsageService.validate_usage_report(rental.id, readings, urls)
    if not preview.success:
        print(preview.error_code)
"""

from __future__ import annotations

import math
import uuid
from typing import TYPE_CHECKING

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from core.services import BaseService, ServiceResult

from rental.billing import calculate_usage_charges, describe_usage_charge, meter_delta
from rental.exceptions import (
    AlreadyReturned,
    MissingEvidence,
    RentalError,
    RentalNotFound,
    WrongTrackingType,
)
from rental.models import AssetRental, AssetUsage
from rental.services.account_service import AccountService
from rental.state_machines import MovementType, UsageStatus
from rental.types import (
    ZERO,
    MovementParams,
    UsageCharges,
    UsagePreview,
    UsageReadings,
    UsageReportResult,
)

if TYPE_CHECKING:
    from typing import Any

    from django.db.models import QuerySet


class UsageService(BaseService):
    """
    Service for daily usage reports.

    All methods are class/static methods - no instance state is kept.
    """

    @staticmethod
    def _validate_rental(rental: AssetRental | None, rental_id: uuid.UUID) -> AssetRental:
        """
        Check a rental can receive usage reports.

        Raises:
            RentalNotFound, AlreadyReturned, WrongTrackingType
        """
        if rental is None:
            raise RentalNotFound(
                f"Rental {rental_id} not found",
                details={"rental_id": str(rental_id)},
            )
        if not rental.is_open:
            raise AlreadyReturned(
                f"Rental {rental.id} was already returned",
                details={"rental_id": str(rental.id)},
            )
        if not rental.is_machinery:
            raise WrongTrackingType(
                "Usage reports are only for MACHINERY rentals",
                details={"rental_id": str(rental.id), "tracking_type": rental.tracking_type},
            )
        return rental

    @staticmethod
    def _validate_evidence(evidence_urls: list[str] | None) -> list[str]:
        urls = [url for url in (evidence_urls or []) if url]
        if not urls:
            raise MissingEvidence("Evidence photos are required for usage reports")
        return urls

    @staticmethod
    def compute_charges(rental: AssetRental, readings: UsageReadings) -> UsageCharges:
        """
        Apply the standby floor to a report's readings for a rental.

        The hourometer start defaults to the rental's current reading.

        Raises:
            InvalidMeterReading: If a meter runs backwards
        """
        hourometer_start = readings.hourometer_start
        if hourometer_start is None:
            hourometer_start = rental.current_hourometer

        hours_worked = meter_delta(hourometer_start, readings.hourometer_end, "hourometer")
        km_traveled = None
        if readings.has_odometer:
            km_traveled = meter_delta(readings.odometer_start, readings.odometer_end, "odometer")

        return calculate_usage_charges(
            hours_worked=hours_worked,
            min_daily_hours=rental.min_daily_hours,
            hourly_rate=rental.hourly_rate,
            operator_cost_type=rental.operator_cost_type,
            operator_cost_rate=rental.operator_cost_rate,
            km_traveled=km_traveled,
        )

    @classmethod
    def process_usage_report(
        cls,
        rental_id: uuid.UUID,
        readings: UsageReadings,
        evidence_urls: list[str],
        reported_by: str,
    ) -> UsageReportResult:
        """
        Bill one day of machinery usage.

        The usage row, the rental's running totals and the DAILY_CHARGE
        movement commit together; any failure rolls all three back.

        Args:
            rental_id: Open MACHINERY rental being reported
            readings: Meter readings for the day
            evidence_urls: Non-empty list of evidence URIs
            reported_by: Operator submitting the report

        Returns:
            UsageReportResult with the usage row, movement and charges

        Raises:
            RentalNotFound, AlreadyReturned, WrongTrackingType,
            MissingEvidence, InvalidMeterReading
            InsufficientBalance: Propagated unchanged from the ledger
        """
        log = cls.get_logger()

        with transaction.atomic():
            rental = cls._validate_rental(
                AssetRental.objects.select_for_update()
                .select_related("asset", "contract")
                .filter(id=rental_id)
                .first(),
                rental_id,
            )
            urls = cls._validate_evidence(evidence_urls)
            charges = cls.compute_charges(rental, readings)

            hourometer_start = (
                readings.hourometer_start
                if readings.hourometer_start is not None
                else rental.current_hourometer
            )
            now = timezone.now()
            asset = rental.asset

            usage = AssetUsage.objects.create(
                rental=rental,
                asset=asset,
                report_date=readings.report_date or timezone.localdate(),
                reported_by=reported_by,
                metric_type=readings.metric_type,
                hourometer_start=hourometer_start,
                hourometer_end=readings.hourometer_end,
                odometer_start=readings.odometer_start,
                odometer_end=readings.odometer_end,
                hours_worked=charges.hours_worked,
                hours_billed=charges.hours_billed,
                km_traveled=charges.km_traveled,
                machinery_cost=charges.machinery_cost,
                operator_cost=charges.operator_cost,
                total_cost=charges.total_cost,
                evidence_urls=urls,
                source=readings.source,
                notes=readings.notes,
                status=UsageStatus.PROCESSED,
                processed_at=now,
            )

            updates: dict[str, Any] = {
                "total_hours_used": F("total_hours_used") + charges.hours_worked,
                "total_machinery_cost": F("total_machinery_cost") + charges.machinery_cost,
                "total_operator_cost": F("total_operator_cost") + charges.operator_cost,
                "total_cost": F("total_cost") + charges.total_cost,
                "last_charge_date": now,
                "updated_at": now,
            }
            if readings.hourometer_end is not None:
                updates["current_hourometer"] = readings.hourometer_end
            if readings.odometer_end is not None:
                updates["current_odometer"] = readings.odometer_end
            if charges.km_traveled:
                updates["total_km_used"] = F("total_km_used") + charges.km_traveled
            AssetRental.objects.filter(id=rental.id).update(**updates)

            movement = AccountService.apply_movement(
                MovementParams(
                    account_id=rental.contract.account_id,
                    contract_id=rental.contract_id,
                    asset_rental_id=rental.id,
                    usage_report_id=usage.id,
                    movement_type=MovementType.DAILY_CHARGE,
                    amount=-charges.total_cost,
                    cost_breakdown=charges.cost_breakdown,
                    description=describe_usage_charge(asset.name, asset.code, charges),
                    evidence_urls=urls,
                    metadata={
                        "hours_worked": str(charges.hours_worked),
                        "hours_billed": str(charges.hours_billed),
                        "min_daily_hours": str(charges.min_daily_hours),
                        "standby_applied": charges.standby_applied,
                        "operator_cost_type": charges.operator_cost_type,
                        "km_traveled": str(charges.km_traveled) if charges.km_traveled is not None else None,
                    },
                    created_by=reported_by,
                )
            )

        log.info(
            f"Processed usage report for rental {rental.id}: {charges.total_cost}",
            extra={
                "rental_id": str(rental.id),
                "usage_id": str(usage.id),
                "hours_worked": str(charges.hours_worked),
                "hours_billed": str(charges.hours_billed),
                "total_cost": str(charges.total_cost),
            },
        )
        return UsageReportResult(usage=usage, movement=movement, charges=charges)

    @classmethod
    def validate_usage_report(
        cls,
        rental_id: uuid.UUID,
        readings: UsageReadings,
        evidence_urls: list[str],
    ) -> ServiceResult[UsagePreview]:
        """
        Dry run of a usage report. Nothing is written.

        Returns:
            ServiceResult whose data is a UsagePreview on success, or
            whose error_code names the failing check
        """
        try:
            rental = cls._validate_rental(
                AssetRental.objects.select_related("contract__account")
                .filter(id=rental_id)
                .first(),
                rental_id,
            )
            cls._validate_evidence(evidence_urls)
            charges = cls.compute_charges(rental, readings)
        except RentalError as e:
            return ServiceResult.from_exception(e)

        return ServiceResult.success(
            UsagePreview(
                rental_id=rental.id,
                charges=charges,
                current_balance=rental.contract.account.balance,
            )
        )

    @staticmethod
    def get_usage_reports(rental_id: uuid.UUID) -> QuerySet[AssetUsage]:
        """Usage reports for a rental, newest first."""
        return AssetUsage.objects.filter(rental_id=rental_id).order_by(
            "-report_date", "-created_at"
        )

    @staticmethod
    def get_asset_usage_stats(rental_id: uuid.UUID) -> dict[str, Any]:
        """
        Usage statistics for a rental.

        Raises:
            RentalNotFound: If rental doesn't exist
        """
        rental = AssetRental.objects.select_related("asset").filter(id=rental_id).first()
        if rental is None:
            raise RentalNotFound(
                f"Rental {rental_id} not found",
                details={"rental_id": str(rental_id)},
            )

        reports = list(AssetUsage.objects.filter(rental=rental))
        end = rental.actual_return_date or timezone.now()
        days_active = math.ceil((end - rental.withdrawal_date).total_seconds() / 86400)

        total_hours_worked = sum((r.hours_worked for r in reports), ZERO)
        total_hours_billed = sum((r.hours_billed for r in reports), ZERO)

        return {
            "rental_id": rental.id,
            "asset_name": rental.asset.name,
            "asset_code": rental.asset.code,
            "withdrawal_date": rental.withdrawal_date,
            "return_date": rental.actual_return_date,
            "days_active": days_active,
            "total_reports": len(reports),
            "total_hours_worked": total_hours_worked,
            "total_hours_billed": total_hours_billed,
            "total_km": rental.total_km_used,
            "total_machinery_cost": rental.total_machinery_cost,
            "total_operator_cost": rental.total_operator_cost,
            "total_cost": rental.total_cost,
            "average_hours_per_day": (
                total_hours_worked / len(reports) if reports else ZERO
            ),
            "standby_applications": sum(1 for r in reports if r.standby_applied),
        }


__all__ = ["UsageService"]
