"""
AssetUsage model: one operator's daily usage report for a MACHINERY rental.
"""

from __future__ import annotations

from decimal import Decimal

from django.db import models
from django.utils import timezone

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from rental.state_machines import UsageMetricType, UsageSource, UsageStatus


class AssetUsage(UUIDPrimaryKeyMixin, BaseModel):
    """
    Daily usage report with the charges it produced.

    Invariant: hours_billed >= hours_worked (standby floor).

    Fields:
        rental / asset: Rental being reported and its catalog asset
        report_date: Day the report covers
        reported_by: Operator submitting the report
        metric_type: Which meters were read
        hourometer_start/end, odometer_start/end: Raw readings
        hours_worked / hours_billed / km_traveled: Derived metrics
        machinery_cost / operator_cost / total_cost: Charges
        evidence_urls: Required evidence URIs
        source: APP, WEB or API
        status: pending, processed or rejected
        processed_at: When the charge was applied
    """

    rental = models.ForeignKey(
        "rental.AssetRental",
        on_delete=models.PROTECT,
        related_name="usage_reports",
    )
    asset = models.ForeignKey(
        "rental.RentalAsset",
        on_delete=models.PROTECT,
        related_name="usage_reports",
    )

    report_date = models.DateField(default=timezone.localdate, db_index=True)
    reported_by = models.CharField(max_length=255)

    metric_type = models.CharField(
        max_length=20,
        choices=UsageMetricType.choices,
        default=UsageMetricType.HOUROMETER,
    )

    # ==========================================================================
    # Readings
    # ==========================================================================

    hourometer_start = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    hourometer_end = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    odometer_start = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    odometer_end = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)

    hours_worked = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    hours_billed = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    km_traveled = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)

    # ==========================================================================
    # Charges
    # ==========================================================================

    machinery_cost = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))
    operator_cost = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))
    total_cost = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))

    evidence_urls = models.JSONField(default=list)
    source = models.CharField(
        max_length=10,
        choices=UsageSource.choices,
        default=UsageSource.APP,
    )
    notes = models.TextField(null=True, blank=True)
    status = models.CharField(
        max_length=20,
        choices=UsageStatus.choices,
        default=UsageStatus.PENDING,
        db_index=True,
    )
    processed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-report_date", "-created_at"]
        verbose_name = "Asset Usage"
        verbose_name_plural = "Asset Usage Reports"
        indexes = [
            models.Index(fields=["rental", "report_date"]),
        ]
        constraints = [
            models.CheckConstraint(
                check=models.Q(hours_billed__gte=models.F("hours_worked")),
                name="asset_usage_billed_not_below_worked",
            ),
        ]

    def __str__(self) -> str:
        return f"AssetUsage({self.rental_id}, {self.report_date}, {self.total_cost})"

    @property
    def standby_applied(self) -> bool:
        return self.hours_billed > self.hours_worked
