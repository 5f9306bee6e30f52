"""
Resource Lifecycle Events

Domain Events:
- InstanceLaunched: a launch call returned an id that is now tracked
- LaunchAnomalyDetected: a launch returned more ids than requested
- InstanceDriftDetected: a tracked instance vanished from the provider list
- InstanceTerminated: a terminate call reported the tracked id gone
- SSHKeyAdded / SSHKeyDeleted: SSH key lifecycle
"""

from dataclasses import dataclass

from lambdaform.domain.events.event_base import DomainEvent


@dataclass(frozen=True)
class InstanceLaunched(DomainEvent):
    instance_type_name: str = ""
    region_name: str = ""
    capacity_attempts: int = 0


@dataclass(frozen=True)
class LaunchAnomalyDetected(DomainEvent):
    untracked_instance_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class InstanceDriftDetected(DomainEvent):
    details: str = ""


@dataclass(frozen=True)
class InstanceTerminated(DomainEvent):
    terminated_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class SSHKeyAdded(DomainEvent):
    name: str = ""


@dataclass(frozen=True)
class SSHKeyDeleted(DomainEvent):
    name: str = ""
