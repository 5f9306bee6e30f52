"""
lambdaform Telemetry Infrastructure

Architectural Intent:
- OpenTelemetry integration for observability
- Metrics and traces for capacity polling and instance lifecycle
"""

from lambdaform.infrastructure.telemetry.otel_exporter import (
    OTELExporter,
    OTELConfig,
    create_exporter,
)

__all__ = [
    "OTELExporter",
    "OTELConfig",
    "create_exporter",
]
