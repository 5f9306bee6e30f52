"""
Instance State Module

Architectural Intent:
- InstanceState is the snapshot the registry persists for one declared
  instance; the reconciler itself holds no state between calls
- All state changes produce new instances (frozen dataclass)
- Lifecycle transitions are enforced by domain methods

Lifecycle:
    ABSENT -> PROVISIONING -> PRESENT -> DELETING -> ABSENT
    PROVISIONING -> ABSENT        (launch failed, nothing persisted)
    DELETING -> PRESENT           (terminate failed, still tracked)
    DELETING -> DELETING          (an interrupted destroy is retried)
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Optional

from lambdaform.domain.value_objects.instance_spec import DesiredInstanceSpec
from lambdaform.domain.value_objects.observed_instance import ObservedInstance


class ResourceLifecycle(Enum):
    ABSENT = "absent"
    PROVISIONING = "provisioning"
    PRESENT = "present"
    DELETING = "deleting"


_ALLOWED_TRANSITIONS: dict[ResourceLifecycle, frozenset[ResourceLifecycle]] = {
    ResourceLifecycle.ABSENT: frozenset({ResourceLifecycle.PROVISIONING}),
    ResourceLifecycle.PROVISIONING: frozenset(
        {ResourceLifecycle.PRESENT, ResourceLifecycle.ABSENT}
    ),
    ResourceLifecycle.PRESENT: frozenset(
        {ResourceLifecycle.PRESENT, ResourceLifecycle.DELETING}
    ),
    ResourceLifecycle.DELETING: frozenset(
        {
            ResourceLifecycle.ABSENT,
            ResourceLifecycle.PRESENT,
            ResourceLifecycle.DELETING,
        }
    ),
}


def can_transition(source: ResourceLifecycle, target: ResourceLifecycle) -> bool:
    return target in _ALLOWED_TRANSITIONS[source]


def advance(
    source: ResourceLifecycle, target: ResourceLifecycle, subject: str = "Instance"
) -> ResourceLifecycle:
    """Return target, or raise ValueError if source cannot move there."""
    if not can_transition(source, target):
        raise ValueError(
            f"{subject} cannot move from {source.value} to {target.value}"
        )
    return target


@dataclass(frozen=True)
class InstanceState:
    id: str
    instance_type_name: str
    region_name: str
    ssh_key_names: tuple[str, ...] = ()
    filesystem_names: tuple[str, ...] = ()
    name: Optional[str] = None
    lifecycle: ResourceLifecycle = ResourceLifecycle.PRESENT
    observed: Optional[ObservedInstance] = None
    untracked_instance_ids: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Tracked instance id cannot be empty")
        object.__setattr__(self, "ssh_key_names", tuple(self.ssh_key_names))
        object.__setattr__(self, "filesystem_names", tuple(self.filesystem_names))
        object.__setattr__(
            self, "untracked_instance_ids", tuple(self.untracked_instance_ids)
        )

    @staticmethod
    def launched(
        spec: DesiredInstanceSpec,
        instance_id: str,
        untracked_instance_ids: tuple[str, ...] = (),
    ) -> InstanceState:
        """Snapshot for a freshly launched instance (PROVISIONING -> PRESENT)."""
        provisioning = InstanceState(
            id=instance_id,
            instance_type_name=spec.instance_type_name,
            region_name=spec.region_name,
            ssh_key_names=spec.ssh_key_names,
            filesystem_names=spec.filesystem_names,
            name=spec.name,
            lifecycle=ResourceLifecycle.PROVISIONING,
            untracked_instance_ids=untracked_instance_ids,
        )
        return provisioning.mark_present()

    @staticmethod
    def for_import(instance_id: str) -> InstanceState:
        """Minimal snapshot used to adopt an existing instance by id."""
        return InstanceState(id=instance_id, instance_type_name="", region_name="")

    def refreshed(self, observed: ObservedInstance) -> InstanceState:
        """Replace the observed record and re-source declared fields from it.

        The remote record is authoritative: nothing of the previous observed
        record survives, and the declared fields take the observed names.
        """
        if observed.id != self.id:
            raise ValueError(
                f"Observed instance {observed.id} does not match tracked id {self.id}"
            )
        return replace(
            self,
            name=observed.name,
            instance_type_name=observed.instance_type.name,
            region_name=observed.region.name,
            ssh_key_names=observed.ssh_key_names,
            filesystem_names=observed.filesystem_names,
            observed=observed,
        )

    def mark_deleting(self) -> InstanceState:
        return self._transition(ResourceLifecycle.DELETING)

    def mark_present(self) -> InstanceState:
        return self._transition(ResourceLifecycle.PRESENT)

    def _transition(self, target: ResourceLifecycle) -> InstanceState:
        return replace(
            self, lifecycle=advance(self.lifecycle, target, f"Instance {self.id}")
        )

    def declared_fields(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "instance_type_name": self.instance_type_name,
            "region_name": self.region_name,
            "ssh_key_names": self.ssh_key_names,
            "filesystem_names": self.filesystem_names,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "instance_type_name": self.instance_type_name,
            "region_name": self.region_name,
            "ssh_key_names": list(self.ssh_key_names),
            "filesystem_names": list(self.filesystem_names),
            "lifecycle": self.lifecycle.value,
            "observed": self.observed.to_dict() if self.observed else None,
            "untracked_instance_ids": list(self.untracked_instance_ids),
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> InstanceState:
        observed = data.get("observed")
        return InstanceState(
            id=data["id"],
            name=data.get("name"),
            instance_type_name=data.get("instance_type_name", ""),
            region_name=data.get("region_name", ""),
            ssh_key_names=tuple(data.get("ssh_key_names") or ()),
            filesystem_names=tuple(data.get("filesystem_names") or ()),
            lifecycle=ResourceLifecycle(data.get("lifecycle", "present")),
            observed=ObservedInstance.from_dict(observed) if observed else None,
            untracked_instance_ids=tuple(data.get("untracked_instance_ids") or ()),
        )

    def __str__(self) -> str:
        return f"instance {self.id} ({self.lifecycle.value})"
