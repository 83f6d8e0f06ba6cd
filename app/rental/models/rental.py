"""
AssetRental model: one asset's withdrawal-to-return span under a contract.
"""

from __future__ import annotations

from decimal import Decimal

from django.db import models
from django.utils import timezone

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from rental.state_machines import ContractStatus, OperatorCostType, TrackingType


class AssetRentalQuerySet(models.QuerySet):
    def open(self):
        """Rentals not yet returned."""
        return self.filter(actual_return_date__isnull=True)

    def billable_tools(self):
        """Open TOOL rentals under active contracts."""
        return self.open().filter(
            tracking_type=TrackingType.TOOL,
            contract__status=ContractStatus.ACTIVE,
        )

    def billable_machinery(self):
        """Open MACHINERY rentals under active contracts."""
        return self.open().filter(
            tracking_type=TrackingType.MACHINERY,
            contract__status=ContractStatus.ACTIVE,
        )


class AssetRental(UUIDPrimaryKeyMixin, BaseModel):
    """
    One physical withdrawal-to-return span for one asset.

    Rates are frozen from the catalog at withdrawal. actual_return_date
    is set exactly once; a returned rental is never billed again.

    Fields:
        contract: Owning contract
        asset: Catalog asset withdrawn
        tracking_type: MACHINERY or TOOL, fixed at creation
        hourly_rate / operator_cost_type / operator_cost_rate /
        min_daily_hours: Machinery billing configuration
        daily_rate: Tool billing configuration
        initial_/current_hourometer, initial_/current_odometer: Meters
        days_elapsed: Days charged (tools)
        total_*: Running totals
        last_charge_date: Last time the rental was charged
        withdrawal_date / expected_return_date / actual_return_date: Span
        operator_id: Equipment operator assigned
        withdrawal_evidence / return_evidence: Evidence URIs
        return_condition: Condition noted on return
    """

    contract = models.ForeignKey(
        "rental.RentalContract",
        on_delete=models.PROTECT,
        related_name="rentals",
    )
    asset = models.ForeignKey(
        "rental.RentalAsset",
        on_delete=models.PROTECT,
        related_name="rentals",
    )

    tracking_type = models.CharField(
        max_length=20,
        choices=TrackingType.choices,
        db_index=True,
    )

    # ==========================================================================
    # Frozen Rates
    # ==========================================================================

    hourly_rate = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    operator_cost_type = models.CharField(
        max_length=20,
        choices=OperatorCostType.choices,
        null=True,
        blank=True,
    )
    operator_cost_rate = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    min_daily_hours = models.DecimalField(
        max_digits=6,
        decimal_places=2,
        default=Decimal("0"),
        help_text="Standby floor copied from the asset at withdrawal",
    )
    daily_rate = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)

    # ==========================================================================
    # Meters & Counters
    # ==========================================================================

    initial_hourometer = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    current_hourometer = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    initial_odometer = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    current_odometer = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)

    days_elapsed = models.PositiveIntegerField(default=0)
    total_hours_used = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    total_km_used = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    total_machinery_cost = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))
    total_operator_cost = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))
    total_cost = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))
    last_charge_date = models.DateTimeField(null=True, blank=True)

    # ==========================================================================
    # Span
    # ==========================================================================

    withdrawal_date = models.DateTimeField(default=timezone.now)
    expected_return_date = models.DateTimeField(null=True, blank=True)
    actual_return_date = models.DateTimeField(null=True, blank=True, db_index=True)

    operator_id = models.UUIDField(null=True, blank=True)
    withdrawal_evidence = models.JSONField(default=list, blank=True)
    return_evidence = models.JSONField(default=list, blank=True)
    return_condition = models.CharField(max_length=255, null=True, blank=True)
    notes = models.TextField(null=True, blank=True)
    created_by = models.CharField(max_length=255)

    objects = AssetRentalQuerySet.as_manager()

    class Meta:
        ordering = ["-withdrawal_date"]
        verbose_name = "Asset Rental"
        verbose_name_plural = "Asset Rentals"
        indexes = [
            models.Index(fields=["contract", "actual_return_date"]),
            models.Index(fields=["tracking_type", "actual_return_date"]),
        ]

    def __str__(self) -> str:
        return f"AssetRental({self.id}, {self.tracking_type})"

    @property
    def is_open(self) -> bool:
        return self.actual_return_date is None

    @property
    def is_machinery(self) -> bool:
        return self.tracking_type == TrackingType.MACHINERY

    @property
    def is_tool(self) -> bool:
        return self.tracking_type == TrackingType.TOOL
