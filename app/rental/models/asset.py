"""
Rental asset catalog model.

RentalAsset holds the rate configuration the engine reads when an asset
is withdrawn. The engine never writes to it; rates are copied onto the
AssetRental so later catalog edits do not affect open rentals.
"""

from __future__ import annotations

from decimal import Decimal

from django.db import models

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from rental.state_machines import OperatorCostType, TrackingType


class RentalAsset(UUIDPrimaryKeyMixin, BaseModel):
    """
    Catalog entry for a rentable asset.

    Fields:
        tenant_id: Owning tenant
        name / code: Display identifiers
        tracking_type: MACHINERY or TOOL; null means not configured for rental
        price_per_hour: Machinery rate per billed hour
        price_per_day: Tool rate per day
        operator_cost_type: PER_DAY or PER_HOUR (null is billed per hour)
        operator_cost_rate: Operator rate per day or per billed hour
        min_daily_hours: Standby floor for machinery
    """

    tenant_id = models.UUIDField(db_index=True)
    name = models.CharField(max_length=255)
    code = models.CharField(max_length=50)

    tracking_type = models.CharField(
        max_length=20,
        choices=TrackingType.choices,
        null=True,
        blank=True,
        help_text="Billing model; assets without one cannot be withdrawn",
    )
    price_per_hour = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        null=True,
        blank=True,
    )
    price_per_day = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        null=True,
        blank=True,
    )
    operator_cost_type = models.CharField(
        max_length=20,
        choices=OperatorCostType.choices,
        null=True,
        blank=True,
    )
    operator_cost_rate = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        null=True,
        blank=True,
    )
    min_daily_hours = models.DecimalField(
        max_digits=6,
        decimal_places=2,
        default=Decimal("0"),
        help_text="Minimum billable hours per day (standby floor)",
    )

    class Meta:
        ordering = ["name"]
        verbose_name = "Rental Asset"
        verbose_name_plural = "Rental Assets"
        constraints = [
            models.UniqueConstraint(
                fields=["tenant_id", "code"],
                name="unique_rental_asset_code_per_tenant",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.code})"

    @property
    def is_configured(self) -> bool:
        return self.tracking_type in TrackingType.values
