"""
Rental domain models.

This module contains all rental-related models:
- ClientAccount: Prepaid credit balance per client
- AccountMovement: Immutable signed ledger entries against an account
- RentalAsset: Catalog rate configuration for rentable assets
- RentalContract: Contract grouping asset rentals for one client
- AssetRental: One asset's withdrawal-to-return span
- AssetUsage: Daily usage report for a metered asset
"""

from rental.models.account import AccountMovement, ClientAccount
from rental.models.asset import RentalAsset
from rental.models.contract import RentalContract
from rental.models.rental import AssetRental
from rental.models.usage import AssetUsage

__all__ = [
    "AccountMovement",
    "AssetRental",
    "AssetUsage",
    "ClientAccount",
    "RentalAsset",
    "RentalContract",
]
