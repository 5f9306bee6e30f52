"""
Domain Services Package

Architectural Intent:
- Contains domain services implementing provisioning logic
- Services depend only on ports, never on concrete adapters
"""

from lambdaform.domain.services.capacity_prober import (
    CapacityProber,
    CapacityProbeResult,
)
from lambdaform.domain.services.change_planner import (
    ChangePlan,
    PlanAction,
    plan_instance_change,
    plan_ssh_key_change,
)
from lambdaform.domain.services.drift_detection import (
    ReconcileResult,
    find_instance,
    reconcile_instance,
)

__all__ = [
    "CapacityProber",
    "CapacityProbeResult",
    "ChangePlan",
    "PlanAction",
    "plan_instance_change",
    "plan_ssh_key_change",
    "ReconcileResult",
    "find_instance",
    "reconcile_instance",
]
