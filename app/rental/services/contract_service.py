"""
Contract and asset rental lifecycle service.

Handles contract creation and state transitions, and the withdrawal and
return of individual assets. Withdrawal and return never charge; they
write zero-amount audit movements. Billing happens through usage reports
(machinery) and the daily tool-charge batch (tools).

Usage:
    from rental.services import ContractService
    from rental.types import MeterReadings

    contract = ContractService.create_contract(
        tenant_id=tenant_id,
        business_unit_id=business_unit_id,
        client_id=client_id,
        created_by="sales-4",
    )

    rental = ContractService.withdraw_asset(
        contract_id=contract.id,
        asset_id=excavator.id,
        created_by="yard-2",
        readings=MeterReadings(hourometer=Decimal("1200")),
        evidence_urls=["s3://evidence/withdrawal-1.jpg"],
    )

    ContractService.return_asset(rental.id, created_by="yard-2", condition="good")
    ContractService.complete_contract(contract.id, created_by="sales-4")
"""

from __future__ import annotations

import datetime
import re
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

from django.db import IntegrityError, transaction
from django.utils import timezone

from django_fsm import TransitionNotAllowed

from core.services import BaseService

from rental.exceptions import (
    ActiveRentalsExist,
    AlreadyReturned,
    AssetNotConfigured,
    AssetNotFound,
    ContractNotActive,
    ContractNotFound,
    InvalidMeterReading,
    InvalidStateTransition,
    RentalNotFound,
)
from rental.models import AssetRental, ClientAccount, RentalAsset, RentalContract
from rental.services.account_service import AccountService
from rental.state_machines import ContractStatus, MovementType
from rental.types import ZERO, MeterReadings, MovementParams, to_decimal

if TYPE_CHECKING:
    from typing import Any

    from django.db.models import QuerySet


# =============================================================================
# Constants
# =============================================================================

CONTRACT_CODE_PATTERN = re.compile(r"^CON-\d{4}-(\d+)$")

# Attempts at inserting a contract before a code collision is re-raised
CONTRACT_CODE_ATTEMPTS = 3


class ContractService(BaseService):
    """
    Service for rental contracts and asset rentals.

    All methods are class/static methods - no instance state is kept.
    """

    # =========================================================================
    # Contracts
    # =========================================================================

    @classmethod
    def create_contract(
        cls,
        tenant_id: uuid.UUID,
        business_unit_id: uuid.UUID,
        client_id: uuid.UUID,
        created_by: str,
        start_date: datetime.datetime | None = None,
        estimated_end_date: datetime.datetime | None = None,
        estimated_total: Decimal | None = None,
        notes: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> RentalContract:
        """
        Create an active contract, opening the client's account if needed.

        Args:
            tenant_id / business_unit_id: Owning tenant and business unit
            client_id: Client being billed
            created_by: Actor creating the contract
            start_date: Defaults to now
            estimated_end_date / estimated_total: Informational
            notes / metadata: Free-form

        Returns:
            The new RentalContract with a CON-<year>-<seq> code
        """
        start = start_date or timezone.now()

        with cls.atomic():
            account = AccountService.get_or_create_account_for_client(
                tenant_id=tenant_id,
                client_id=client_id,
                created_by=created_by,
            )
            # Contracts for one client are numbered one at a time
            account = ClientAccount.objects.select_for_update().get(id=account.id)

            for attempt in range(1, CONTRACT_CODE_ATTEMPTS + 1):
                code = cls.generate_contract_code(tenant_id, business_unit_id, start.year)
                try:
                    with transaction.atomic():
                        contract = RentalContract.objects.create(
                            tenant_id=tenant_id,
                            business_unit_id=business_unit_id,
                            client_id=client_id,
                            account=account,
                            code=code,
                            status=ContractStatus.ACTIVE,
                            start_date=start,
                            estimated_end_date=estimated_end_date,
                            estimated_total=(
                                to_decimal(estimated_total)
                                if estimated_total is not None
                                else None
                            ),
                            notes=notes,
                            metadata=metadata or {},
                            created_by=created_by,
                        )
                    break
                except IntegrityError:
                    # Another business-unit request took the same code
                    if attempt == CONTRACT_CODE_ATTEMPTS:
                        raise
                    cls.get_logger().warning(
                        f"Contract code {code} already taken, retrying",
                        extra={
                            "business_unit_id": str(business_unit_id),
                            "attempt": attempt,
                        },
                    )

        cls.get_logger().info(
            f"Created contract {contract.code} for client {client_id}",
            extra={
                "contract_id": str(contract.id),
                "account_id": str(account.id),
                "client_id": str(client_id),
            },
        )
        return contract

    @staticmethod
    def generate_contract_code(
        tenant_id: uuid.UUID,
        business_unit_id: uuid.UUID,
        year: int,
    ) -> str:
        """
        Next contract code for a business unit and year.

        Sequences restart every year and are zero-padded to three digits:
        CON-2026-001, CON-2026-002, ...
        """
        prefix = f"CON-{year}-"
        codes = RentalContract.objects.filter(
            tenant_id=tenant_id,
            business_unit_id=business_unit_id,
            code__startswith=prefix,
        ).values_list("code", flat=True)

        sequence = 0
        for code in codes:
            match = CONTRACT_CODE_PATTERN.match(code)
            if match:
                sequence = max(sequence, int(match.group(1)))

        return f"{prefix}{sequence + 1:03d}"

    @staticmethod
    def get_contract(contract_id: uuid.UUID) -> RentalContract:
        """
        Get contract by ID.

        Raises:
            ContractNotFound: If contract doesn't exist
        """
        try:
            return RentalContract.objects.select_related("account").get(id=contract_id)
        except RentalContract.DoesNotExist:
            raise ContractNotFound(
                f"Contract {contract_id} not found",
                details={"contract_id": str(contract_id)},
            )

    @staticmethod
    def list_contracts(
        tenant_id: uuid.UUID,
        business_unit_id: uuid.UUID | None = None,
        client_id: uuid.UUID | None = None,
        status: str | None = None,
    ) -> QuerySet[RentalContract]:
        """Contracts for a tenant, newest first, optionally filtered."""
        queryset = RentalContract.objects.filter(tenant_id=tenant_id)
        if business_unit_id:
            queryset = queryset.filter(business_unit_id=business_unit_id)
        if client_id:
            queryset = queryset.filter(client_id=client_id)
        if status:
            queryset = queryset.filter(status=status)
        return queryset.select_related("account").order_by("-created_at")

    @staticmethod
    def get_open_rentals(contract_id: uuid.UUID) -> QuerySet[AssetRental]:
        """Rentals under a contract that have not been returned."""
        return (
            AssetRental.objects.open()
            .filter(contract_id=contract_id)
            .select_related("asset")
        )

    @staticmethod
    def _lock_contract(contract_id: uuid.UUID) -> RentalContract:
        contract = (
            RentalContract.objects.select_for_update()
            .filter(id=contract_id)
            .first()
        )
        if contract is None:
            raise ContractNotFound(
                f"Contract {contract_id} not found",
                details={"contract_id": str(contract_id)},
            )
        return contract

    @classmethod
    def _transition(
        cls,
        contract_id: uuid.UUID,
        transition_name: str,
        created_by: str,
        **kwargs: Any,
    ) -> RentalContract:
        """
        Run a named FSM transition on a locked contract.

        Raises:
            ContractNotFound: If contract doesn't exist
            InvalidStateTransition: If the transition isn't allowed from
                the current state
        """
        with transaction.atomic():
            contract = cls._lock_contract(contract_id)
            from_status = contract.status
            try:
                getattr(contract, transition_name)(**kwargs)
            except TransitionNotAllowed:
                raise InvalidStateTransition(
                    f"Cannot {transition_name} contract {contract.code} in status {from_status}",
                    details={
                        "contract_id": str(contract.id),
                        "current_state": from_status,
                        "transition": transition_name,
                    },
                )
            contract.save()

        cls.get_logger().info(
            f"Contract {contract.code}: {from_status} -> {contract.status}",
            extra={
                "contract_id": str(contract.id),
                "transition": transition_name,
                "created_by": created_by,
            },
        )
        return contract

    @classmethod
    def suspend_contract(
        cls,
        contract_id: uuid.UUID,
        reason: str,
        created_by: str,
    ) -> RentalContract:
        """Suspend an active contract (active -> suspended)."""
        return cls._transition(contract_id, "suspend", created_by, reason=reason)

    @classmethod
    def reactivate_contract(cls, contract_id: uuid.UUID, created_by: str) -> RentalContract:
        """Reactivate a suspended contract (suspended -> active)."""
        return cls._transition(contract_id, "reactivate", created_by)

    @classmethod
    def cancel_contract(
        cls,
        contract_id: uuid.UUID,
        reason: str,
        created_by: str,
    ) -> RentalContract:
        """Cancel an active or suspended contract. Terminal."""
        return cls._transition(contract_id, "cancel", created_by, reason=reason)

    @classmethod
    def complete_contract(cls, contract_id: uuid.UUID, created_by: str) -> RentalContract:
        """
        Complete a contract once every asset has been returned.

        Raises:
            ContractNotFound: If contract doesn't exist
            ActiveRentalsExist: If any rental has no actual return date;
                details carry the count and rental ids
            InvalidStateTransition: If the contract is not active
        """
        with transaction.atomic():
            contract = cls._lock_contract(contract_id)
            open_ids = list(
                AssetRental.objects.open()
                .filter(contract=contract)
                .values_list("id", flat=True)
            )
            if open_ids:
                raise ActiveRentalsExist(contract_id=contract.id, rental_ids=open_ids)

            return cls._transition(contract.id, "complete", created_by)

    # =========================================================================
    # Asset Rentals
    # =========================================================================

    @classmethod
    def withdraw_asset(
        cls,
        contract_id: uuid.UUID,
        asset_id: uuid.UUID,
        created_by: str,
        readings: MeterReadings | None = None,
        evidence_urls: list[str] | None = None,
        expected_return_date: datetime.datetime | None = None,
        operator_id: uuid.UUID | None = None,
        notes: str | None = None,
    ) -> AssetRental:
        """
        Start renting an asset under a contract.

        Rates are copied from the catalog so later catalog changes do not
        affect this rental. No charge is made; a zero-amount
        WITHDRAWAL_START movement records the event. A non-positive
        balance only logs a warning.

        Raises:
            ContractNotFound: If contract doesn't exist
            ContractNotActive: If contract status is not active
            AssetNotFound: If asset doesn't exist
            AssetNotConfigured: If asset has no tracking type
        """
        log = cls.get_logger()
        readings = readings or MeterReadings()
        evidence_urls = list(evidence_urls or [])

        with transaction.atomic():
            contract = cls._lock_contract(contract_id)
            if not contract.is_active:
                raise ContractNotActive(
                    f"Contract status is {contract.status}, must be active",
                    details={"contract_id": str(contract.id), "status": contract.status},
                )

            asset = RentalAsset.objects.filter(id=asset_id).first()
            if asset is None:
                raise AssetNotFound(
                    f"Asset {asset_id} not found",
                    details={"asset_id": str(asset_id)},
                )
            if not asset.is_configured:
                raise AssetNotConfigured(
                    f"Asset {asset.code} has no tracking type configured",
                    details={"asset_id": str(asset.id)},
                )

            account = contract.account
            if account.balance <= ZERO:
                log.warning(
                    f"Withdrawal on contract {contract.code} with balance {account.balance}",
                    extra={
                        "contract_id": str(contract.id),
                        "account_id": str(account.id),
                        "balance": str(account.balance),
                    },
                )

            hourometer = to_decimal(readings.hourometer) if readings.hourometer is not None else None
            odometer = to_decimal(readings.odometer) if readings.odometer is not None else None

            rental = AssetRental.objects.create(
                contract=contract,
                asset=asset,
                tracking_type=asset.tracking_type,
                hourly_rate=asset.price_per_hour,
                operator_cost_type=asset.operator_cost_type,
                operator_cost_rate=asset.operator_cost_rate,
                min_daily_hours=asset.min_daily_hours,
                daily_rate=asset.price_per_day,
                initial_hourometer=hourometer,
                current_hourometer=hourometer,
                initial_odometer=odometer,
                current_odometer=odometer,
                withdrawal_date=timezone.now(),
                expected_return_date=expected_return_date,
                operator_id=operator_id,
                withdrawal_evidence=evidence_urls,
                notes=notes,
                created_by=created_by,
            )

            AccountService.apply_movement(
                MovementParams(
                    account_id=account.id,
                    contract_id=contract.id,
                    asset_rental_id=rental.id,
                    movement_type=MovementType.WITHDRAWAL_START,
                    amount=ZERO,
                    description=f"Withdrawal of {asset.name} ({asset.code}) - tracking started",
                    evidence_urls=evidence_urls,
                    notes=notes,
                    created_by=created_by,
                )
            )

        log.info(
            f"Withdrew asset {asset.code} under contract {contract.code}",
            extra={
                "contract_id": str(contract.id),
                "rental_id": str(rental.id),
                "asset_id": str(asset.id),
                "tracking_type": rental.tracking_type,
            },
        )
        return rental

    @classmethod
    def return_asset(
        cls,
        rental_id: uuid.UUID,
        created_by: str,
        readings: MeterReadings | None = None,
        evidence_urls: list[str] | None = None,
        condition: str | None = None,
        notes: str | None = None,
        return_date: datetime.datetime | None = None,
    ) -> AssetRental:
        """
        Return a rented asset, ending its billing.

        Final meter readings replace the current ones. No charge is made;
        a zero-amount RETURN_END movement carries the rental's final
        totals in its metadata.

        Raises:
            RentalNotFound: If rental doesn't exist
            AlreadyReturned: If rental was already returned
            InvalidMeterReading: If a final reading is below the current one
        """
        readings = readings or MeterReadings()
        evidence_urls = list(evidence_urls or [])

        with transaction.atomic():
            rental = (
                AssetRental.objects.select_for_update()
                .filter(id=rental_id)
                .first()
            )
            if rental is None:
                raise RentalNotFound(
                    f"Rental {rental_id} not found",
                    details={"rental_id": str(rental_id)},
                )
            if not rental.is_open:
                raise AlreadyReturned(
                    f"Rental {rental.id} was already returned",
                    details={
                        "rental_id": str(rental.id),
                        "actual_return_date": rental.actual_return_date.isoformat(),
                    },
                )

            rental.current_hourometer = cls._final_reading(
                rental.current_hourometer, readings.hourometer, "hourometer"
            )
            rental.current_odometer = cls._final_reading(
                rental.current_odometer, readings.odometer, "odometer"
            )
            rental.actual_return_date = return_date or timezone.now()
            rental.return_evidence = evidence_urls
            rental.return_condition = condition
            if notes:
                rental.notes = f"{rental.notes}\n\nReturn: {notes}" if rental.notes else notes
            rental.save()

            contract = rental.contract
            asset = rental.asset
            AccountService.apply_movement(
                MovementParams(
                    account_id=contract.account_id,
                    contract_id=contract.id,
                    asset_rental_id=rental.id,
                    movement_type=MovementType.RETURN_END,
                    amount=ZERO,
                    description=(
                        f"Return of {asset.name} ({asset.code}) - tracking ended. "
                        f"Total: {rental.total_cost}"
                    ),
                    evidence_urls=evidence_urls,
                    metadata={
                        "condition": condition,
                        "total_hours_used": str(rental.total_hours_used),
                        "total_km_used": str(rental.total_km_used),
                        "total_cost": str(rental.total_cost),
                        "days_elapsed": rental.days_elapsed,
                    },
                    notes=notes,
                    created_by=created_by,
                )
            )

        cls.get_logger().info(
            f"Returned asset {asset.code} from contract {contract.code}",
            extra={
                "contract_id": str(contract.id),
                "rental_id": str(rental.id),
                "total_cost": str(rental.total_cost),
            },
        )
        return rental

    @staticmethod
    def _final_reading(
        current: Decimal | None,
        final: Decimal | None,
        meter: str,
    ) -> Decimal | None:
        if final is None:
            return current
        final = to_decimal(final)
        if current is not None and final < current:
            raise InvalidMeterReading(
                f"Invalid {meter} reading: final {final} < current {current}",
                details={"meter": meter, "current": str(current), "final": str(final)},
            )
        return final


__all__ = ["ContractService"]
