"""
Domain Ports Package

Architectural Intent:
- Contains port interfaces (abstract contracts) for external dependencies
- Ports define what the domain needs, adapters implement how
- Follows Hexagonal Architecture principles
"""

from lambdaform.domain.ports.cloud_api_port import CloudAPIPort
from lambdaform.domain.ports.clock_port import ClockPort
from lambdaform.domain.ports.event_bus_port import EventBusPort
from lambdaform.domain.ports.resource_port import ResourceReconcilerPort
from lambdaform.domain.ports.state_store_port import StateStorePort
from lambdaform.domain.ports.telemetry_port import TelemetryPort

__all__ = [
    "CloudAPIPort",
    "ClockPort",
    "EventBusPort",
    "ResourceReconcilerPort",
    "StateStorePort",
    "TelemetryPort",
]
