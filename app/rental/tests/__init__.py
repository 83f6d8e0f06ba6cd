"""
Tests for the rental app.

This package contains test modules for:
- test_models.py: Model constraints, immutability and querysets
- test_state_transitions.py: RentalContract state machine
- test_billing.py: Standby-floor arithmetic
- test_locks.py: BatchLock
- test_account_service.py: Ledger movements, reloads, alerts, statements
- test_contract_service.py: Contract lifecycle, withdrawal and return
- test_usage_service.py: Usage report billing and dry runs
- test_projection_service.py: Consumption projection
- test_auto_charge.py: Batch jobs, notifier and Celery tasks
- test_types.py: Data transfer types
- test_integration.py: Full rental lifecycle against the ledger
- test_concurrency.py: Parallel charges on one account (PostgreSQL)
- test_migrations.py: Schema migrations and the beat schedule

Usage:
    pytest app/rental/tests -v
"""
