"""
Rental service layer.

Services:
- AccountService: Client accounts and the movement ledger
- ContractService: Contract lifecycle and asset withdrawal/return
- UsageService: Daily usage reports billed with the standby floor
- ProjectionService: Read-only consumption projections
"""

from rental.services.account_service import AccountService
from rental.services.contract_service import ContractService
from rental.services.projection_service import ProjectionService
from rental.services.usage_service import UsageService

__all__ = [
    "AccountService",
    "ContractService",
    "ProjectionService",
    "UsageService",
]
