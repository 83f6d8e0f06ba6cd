"""
State machine enums and helpers for rental models.

This module defines the state and choice enums used by rental models,
including the django-fsm driven contract status.
"""

from rental.state_machines.states import (
    ContractStatus,
    MovementType,
    OperatorCostType,
    StatementFrequency,
    TrackingType,
    UsageMetricType,
    UsageSource,
    UsageStatus,
)

__all__ = [
    "ContractStatus",
    "MovementType",
    "OperatorCostType",
    "StatementFrequency",
    "TrackingType",
    "UsageMetricType",
    "UsageSource",
    "UsageStatus",
]
