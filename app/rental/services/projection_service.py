"""
Consumption projection for rental contracts.

Estimates what a contract's open rentals will cost per day and how long
the client's balance will last. Read-only: nothing is written.

Daily cost per open rental:
    TOOL        daily_rate
    MACHINERY   average total_cost of the most recent usage reports
                (RENTAL_USAGE_HISTORY_WINDOW, default 7); with no reports,
                the cost of a standby day (floor hours only)

Usage:
    from rental.services import ProjectionService

    projection = ProjectionService.project_consumption(contract.id, days=15)
    if projection.needs_reload:
        suggest_reload(projection.recommended_reload)
"""

from __future__ import annotations

import math
import uuid
from decimal import Decimal

from django.conf import settings

from core.services import BaseService

from rental.billing import quantize_money, standby_daily_cost
from rental.exceptions import ContractNotFound
from rental.models import AssetRental, AssetUsage, RentalContract
from rental.types import ZERO, ProjectionResult


class ProjectionService(BaseService):
    """Read-only consumption estimates. No instance state."""

    @staticmethod
    def estimate_rental_daily_cost(rental: AssetRental, history_window: int) -> Decimal:
        """Expected cost of one more day for an open rental."""
        if rental.is_tool:
            return rental.daily_rate or ZERO

        recent_costs = list(
            AssetUsage.objects.filter(rental=rental)
            .order_by("-report_date", "-created_at")
            .values_list("total_cost", flat=True)[:history_window]
        )
        if recent_costs:
            return quantize_money(sum(recent_costs, ZERO) / len(recent_costs))

        return standby_daily_cost(
            min_daily_hours=rental.min_daily_hours,
            hourly_rate=rental.hourly_rate,
            operator_cost_type=rental.operator_cost_type,
            operator_cost_rate=rental.operator_cost_rate,
        )

    @classmethod
    def project_consumption(
        cls,
        contract_id: uuid.UUID,
        days: int | None = None,
    ) -> ProjectionResult:
        """
        Project a contract's consumption over the next days.

        Args:
            contract_id: Contract to project
            days: Horizon in days (default RENTAL_PROJECTION_DEFAULT_DAYS)

        Returns:
            ProjectionResult; days_until_empty is 999 when the daily cost
            is zero

        Raises:
            ValueError: If days is not positive
            ContractNotFound: If contract doesn't exist
        """
        if days is None:
            days = settings.RENTAL_PROJECTION_DEFAULT_DAYS
        if days <= 0:
            raise ValueError("days must be positive")

        contract = RentalContract.objects.select_related("account").filter(id=contract_id).first()
        if contract is None:
            raise ContractNotFound(
                f"Contract {contract_id} not found",
                details={"contract_id": str(contract_id)},
            )

        history_window = settings.RENTAL_USAGE_HISTORY_WINDOW
        open_rentals = list(AssetRental.objects.open().filter(contract=contract))

        estimated_daily_cost = sum(
            (cls.estimate_rental_daily_cost(rental, history_window) for rental in open_rentals),
            ZERO,
        )

        current_balance = contract.account.balance
        projected_consumption = estimated_daily_cost * days
        projected_balance = current_balance - projected_consumption

        if estimated_daily_cost > ZERO:
            days_until_empty = math.floor(current_balance / estimated_daily_cost)
        else:
            days_until_empty = ProjectionResult.NO_CONSUMPTION_DAYS

        result = ProjectionResult(
            contract_id=contract.id,
            current_balance=current_balance,
            estimated_daily_cost=estimated_daily_cost,
            projection_days=days,
            projected_consumption=projected_consumption,
            projected_balance=projected_balance,
            days_until_empty=days_until_empty,
            needs_reload=projected_balance < ZERO,
            recommended_reload=max(ZERO, -projected_balance),
            active_assets=len(open_rentals),
        )

        cls.get_logger().debug(
            f"Projected contract {contract.code}: {estimated_daily_cost}/day",
            extra=result.to_dict(),
        )
        return result


__all__ = ["ProjectionService"]
