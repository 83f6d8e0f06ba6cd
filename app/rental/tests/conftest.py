"""
Pytest fixtures for rental tests.

Accounts, contracts and rentals built here go through the services, so
their ledger history is complete (INITIAL_CREDIT, WITHDRAWAL_START).
Use the factories directly when a test only needs rows.

Usage:
    def test_usage_report(machinery_rental, evidence):
        result = UsageService.process_usage_report(
            rental_id=machinery_rental.id,
            readings=UsageReadings(hourometer_end=Decimal("1006")),
            evidence_urls=evidence,
            reported_by="operator-1",
        )
        assert result.charges.hours_billed == Decimal("8")
"""

import uuid
from decimal import Decimal

import pytest

from rental.services import AccountService, ContractService
from rental.tests.factories import RentalAssetFactory, ToolAssetFactory
from rental.types import MeterReadings


# =============================================================================
# Infrastructure Doubles
# =============================================================================


@pytest.fixture
def mock_redis(mocker):
    """
    Mock Redis client for distributed lock tests.

    set() succeeds (lock free) and eval() reports a successful release.
    """
    mock_client = mocker.MagicMock()
    mock_client.set.return_value = True
    mock_client.get.return_value = None
    mock_client.eval.return_value = 1

    mocker.patch("rental.locks.get_redis_connection", return_value=mock_client)
    return mock_client


@pytest.fixture
def notifier(mocker):
    """Notifier double recording every delivery."""
    return mocker.MagicMock(name="notifier")


@pytest.fixture
def evidence():
    return ["s3://evidence/hourometer-0612.jpg"]


# =============================================================================
# Accounts & Contracts
# =============================================================================


@pytest.fixture
def tenant_id():
    return uuid.uuid4()


@pytest.fixture
def account(db, tenant_id):
    """Account opened with a 500000 INITIAL_CREDIT and a 100000 alert threshold."""
    return AccountService.create_account(
        tenant_id=tenant_id,
        client_id=uuid.uuid4(),
        initial_balance=Decimal("500000"),
        alert_amount=Decimal("100000"),
        created_by="admin-1",
    )


@pytest.fixture
def contract(db, account):
    """Active contract billed to the account fixture."""
    return ContractService.create_contract(
        tenant_id=account.tenant_id,
        business_unit_id=uuid.uuid4(),
        client_id=account.client_id,
        created_by="sales-1",
    )


# =============================================================================
# Catalog & Rentals
# =============================================================================


@pytest.fixture
def machinery_asset(db, tenant_id):
    """Excavator: 5000/hour, 8 hour floor, PER_HOUR operator at 2000."""
    return RentalAssetFactory(tenant_id=tenant_id)


@pytest.fixture
def tool_asset(db, tenant_id):
    """Rotary hammer billed 10000/day."""
    return ToolAssetFactory(tenant_id=tenant_id)


@pytest.fixture
def machinery_rental(contract, machinery_asset, evidence):
    """Open machinery rental withdrawn at hourometer 1000."""
    return ContractService.withdraw_asset(
        contract_id=contract.id,
        asset_id=machinery_asset.id,
        created_by="yard-1",
        readings=MeterReadings(hourometer=Decimal("1000")),
        evidence_urls=evidence,
    )


@pytest.fixture
def tool_rental(contract, tool_asset):
    """Open tool rental."""
    return ContractService.withdraw_asset(
        contract_id=contract.id,
        asset_id=tool_asset.id,
        created_by="yard-1",
    )
