"""
Pytest configuration for the app packages.

Tests run against the database from DATABASE_URL (SQLite when unset).
pytest-django builds the schema by running the migrations; the Redis-backed
batch locks are mocked in rental/tests/conftest.py.
"""

import pytest


def pytest_collection_modifyitems(items):
    """
    Auto-mark tests based on filename patterns.

    Mapping:
    - test_integration.py → e2e (full billing workflows)
    - service, worker and task tests → integration
    - test_models.py, test_billing.py, test_locks.py, etc. → unit
    - Unmatched files → integration (safe default for Django)

    Explicit markers on test functions/classes take precedence.
    """
    e2e_patterns = ["test_integration.py"]

    integration_patterns = [
        "test_account_service.py",
        "test_contract_service.py",
        "test_usage_service.py",
        "test_projection_service.py",
        "test_auto_charge.py",
        "test_concurrency.py",
        "test_migrations.py",
    ]

    unit_patterns = [
        "test_models.py",
        "test_billing.py",
        "test_types.py",
        "test_state_transitions.py",
        "test_locks.py",
        "test_exceptions.py",
    ]

    for item in items:
        # Skip if test already has unit/integration/e2e marker
        existing_markers = {m.name for m in item.iter_markers()}
        if existing_markers & {"unit", "integration", "e2e"}:
            continue

        filename = str(item.fspath).split("/")[-1]

        if any(pattern in filename for pattern in e2e_patterns):
            item.add_marker(pytest.mark.e2e)
        elif any(pattern in filename for pattern in integration_patterns):
            item.add_marker(pytest.mark.integration)
        elif any(pattern in filename for pattern in unit_patterns):
            item.add_marker(pytest.mark.unit)
        else:
            item.add_marker(pytest.mark.integration)
