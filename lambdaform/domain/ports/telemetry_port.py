"""
Telemetry Port

Architectural Intent:
- Metrics and tracing hooks used by the reconcilers
- Implemented by the OpenTelemetry exporter; optional everywhere
"""

from typing import Any, Optional, Protocol, runtime_checkable


@runtime_checkable
class TelemetryPort(Protocol):
    def record_metric(
        self,
        name: str,
        value: float,
        unit: str = "",
        attributes: Optional[dict[str, str]] = None,
    ) -> None: ...

    def start_span(
        self, name: str, attributes: Optional[dict[str, str]] = None
    ) -> Optional[Any]: ...

    def end_span(self, span: Any, error: Optional[BaseException] = None) -> None: ...

    def record_capacity_probe(
        self,
        instance_type_name: str,
        region_name: str,
        attempts: int,
        waited_seconds: float,
    ) -> None: ...

    def record_launch(
        self, instance_id: str, instance_type_name: str, region_name: str
    ) -> None: ...

    def record_drift(self, instance_id: str) -> None: ...

    def record_termination(self, instance_id: str, count: int) -> None: ...
