"""
Drift Detection Service

Architectural Intent:
- Read-time reconciliation of a tracked snapshot against the provider's
  authoritative instance list
- A tracked id missing from the list is drift: surfaced as DriftError, never
  silently reset to absent, so the caller decides whether to recreate

Domain Logic:
- The list is not assumed sorted; a linear scan stops at the first exact id
  match (deterministic, O(n))
- On a match the observed record replaces the snapshot's observed record
  wholesale, and the declared fields are re-sourced from it
- Declared fields whose value changed remotely are reported so the caller can
  log them (they will force a replacement on the next plan)
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, Optional

from lambdaform.domain.entities.instance_state import InstanceState
from lambdaform.domain.errors import DriftError
from lambdaform.domain.value_objects.observed_instance import ObservedInstance


@dataclass(frozen=True)
class ReconcileResult:
    state: InstanceState
    scanned: int
    changed_fields: tuple[str, ...] = ()

    @property
    def has_remote_changes(self) -> bool:
        return bool(self.changed_fields)


def find_instance(
    instances: Iterable[ObservedInstance], instance_id: str
) -> tuple[Optional[ObservedInstance], int]:
    """Return the first instance whose id matches, and how many were scanned."""
    scanned = 0
    for instance in instances:
        scanned += 1
        if instance.id == instance_id:
            return instance, scanned
    return None, scanned


def reconcile_instance(
    state: InstanceState, instances: Iterable[ObservedInstance]
) -> ReconcileResult:
    observed, scanned = find_instance(instances, state.id)
    if observed is None:
        raise DriftError(
            f"instance {state.id} not found in provider instance list; "
            "it was probably deleted outside lambdaform",
            operation="read",
            resource_id=state.id,
            detail=f"scanned {scanned} instance(s)",
        )

    refreshed = state.refreshed(observed)
    before = state.declared_fields()
    after = refreshed.declared_fields()
    # An imported snapshot has no declared values yet; filling them is not a change.
    changed = tuple(
        name
        for name in after
        if before[name] not in (None, "", ()) and before[name] != after[name]
    )
    return ReconcileResult(state=refreshed, scanned=scanned, changed_fields=changed)
