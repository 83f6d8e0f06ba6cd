"""
Rental app: prepaid credit ledger and usage-based billing for equipment rentals.

Components:
- models: ClientAccount, AccountMovement, RentalAsset, RentalContract,
  AssetRental, AssetUsage
- services: AccountService, ContractService, UsageService, ProjectionService
- billing: Standby-floor arithmetic (pure functions)
- workers: Scheduled batch jobs (tool charges, reminders, statements, alerts)

Note:
    Models and services are NOT imported here to avoid
    AppRegistryNotReady errors. Import them from their modules.
"""
