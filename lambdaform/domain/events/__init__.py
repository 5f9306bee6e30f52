"""
Domain Events Package

Architectural Intent:
- Contains domain events raised by the resource reconcilers
- Events are the primary mechanism for cross-boundary communication
"""

from lambdaform.domain.events.event_base import DomainEvent
from lambdaform.domain.events.resource_events import (
    InstanceLaunched,
    LaunchAnomalyDetected,
    InstanceDriftDetected,
    InstanceTerminated,
    SSHKeyAdded,
    SSHKeyDeleted,
)

__all__ = [
    "DomainEvent",
    "InstanceLaunched",
    "LaunchAnomalyDetected",
    "InstanceDriftDetected",
    "InstanceTerminated",
    "SSHKeyAdded",
    "SSHKeyDeleted",
]
