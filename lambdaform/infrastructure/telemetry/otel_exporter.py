"""
OpenTelemetry Exporter for lambdaform

Architectural Intent:
- Exports reconciler telemetry (capacity polling, launches, drift,
  terminations) to OTLP-compatible backends
- Implements TelemetryPort; every reconciler accepts it as an optional
  collaborator, so telemetry never changes reconciliation behaviour

Security:
- Endpoint defaults to empty string (must be explicitly configured)
- Non-localhost http:// endpoints rejected unless insecure=True
- Validation in __post_init__ prevents accidental plaintext export
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Any
from urllib.parse import urlparse
import logging
from datetime import datetime, UTC

logger = logging.getLogger(__name__)


@dataclass
class OTELConfig:
    endpoint: str = ""
    service_name: str = "lambdaform"
    environment: str = "development"
    enable_traces: bool = True
    enable_metrics: bool = True
    insecure: bool = False

    def __post_init__(self) -> None:
        if self.endpoint:
            parsed = urlparse(self.endpoint)
            is_localhost = parsed.hostname in ("localhost", "127.0.0.1", "::1")
            if parsed.scheme == "http" and not is_localhost and not self.insecure:
                raise ValueError(
                    f"Non-localhost HTTP endpoint '{self.endpoint}' requires "
                    "insecure=True or use https://. "
                    "Set insecure=True to explicitly allow plaintext export."
                )


class OTELExporter:
    """
    OpenTelemetry exporter for reconciler telemetry.

    Metrics are always buffered locally (the CLI prints a summary from the
    buffer); when the SDK is initialized they are also forwarded to OTLP
    counters.
    """

    def __init__(self, config: OTELConfig):
        self.config = config
        self._initialized = False
        self._metrics_buffer: list[dict[str, Any]] = []
        self._meter: Any = None
        self._tracer: Any = None
        self._counters: dict[str, Any] = {}

    @property
    def enabled(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Initialize OpenTelemetry SDK and exporters."""
        if not self.config.endpoint:
            logger.info("OTEL endpoint not configured, telemetry disabled")
            return

        try:
            from opentelemetry import trace, metrics
            from opentelemetry.sdk.trace import TracerProvider
            from opentelemetry.sdk.trace.export import BatchSpanProcessor
            from opentelemetry.sdk.resources import Resource, SERVICE_NAME
            from opentelemetry.sdk.metrics import MeterProvider
            from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
            from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
                OTLPSpanExporter,
            )
            from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import (
                OTLPMetricExporter,
            )
        except ImportError:
            logger.warning("OpenTelemetry SDK not installed, telemetry disabled")
            return

        resource = Resource(
            attributes={
                SERVICE_NAME: self.config.service_name,
                "environment": self.config.environment,
            }
        )

        if self.config.enable_traces:
            provider = TracerProvider(resource=resource)
            provider.add_span_processor(
                BatchSpanProcessor(
                    OTLPSpanExporter(
                        endpoint=self.config.endpoint, insecure=self.config.insecure
                    )
                )
            )
            trace.set_tracer_provider(provider)
            self._tracer = trace.get_tracer(__name__)

        if self.config.enable_metrics:
            reader = PeriodicExportingMetricReader(
                OTLPMetricExporter(
                    endpoint=self.config.endpoint, insecure=self.config.insecure
                )
            )
            metrics.set_meter_provider(
                MeterProvider(resource=resource, metric_readers=[reader])
            )
            self._meter = metrics.get_meter(__name__)

        self._initialized = True
        logger.info("OTEL telemetry exporting to %s", self.config.endpoint)

    def _get_counter(self, name: str, unit: str = "") -> Any:
        """Get or create a counter for a metric name."""
        if name not in self._counters and self._meter:
            self._counters[name] = self._meter.create_counter(name, unit=unit)
        return self._counters.get(name)

    def record_metric(
        self,
        name: str,
        value: float,
        unit: str = "",
        attributes: Optional[dict[str, str]] = None,
    ) -> None:
        """Record a metric value."""
        self._metrics_buffer.append(
            {
                "name": name,
                "value": value,
                "unit": unit,
                "attributes": attributes or {},
                "timestamp": datetime.now(UTC).isoformat(),
            }
        )

        if self._initialized:
            counter = self._get_counter(name, unit)
            if counter:
                counter.add(value, attributes=attributes or {})

    def record_capacity_probe(
        self,
        instance_type_name: str,
        region_name: str,
        attempts: int,
        waited_seconds: float,
    ) -> None:
        attributes = {"instance_type": instance_type_name, "region": region_name}
        self.record_metric("lambdaform.capacity.attempts", attempts, attributes=attributes)
        self.record_metric(
            "lambdaform.capacity.wait_seconds", waited_seconds, unit="s", attributes=attributes
        )

    def record_launch(
        self, instance_id: str, instance_type_name: str, region_name: str
    ) -> None:
        self.record_metric(
            "lambdaform.instance.launched",
            1.0,
            attributes={
                "instance_id": instance_id,
                "instance_type": instance_type_name,
                "region": region_name,
            },
        )

    def record_drift(self, instance_id: str) -> None:
        self.record_metric(
            "lambdaform.instance.drift", 1.0, attributes={"instance_id": instance_id}
        )

    def record_termination(self, instance_id: str, count: int) -> None:
        self.record_metric(
            "lambdaform.instance.terminated",
            float(count),
            attributes={"instance_id": instance_id},
        )

    def metric_totals(self) -> dict[str, float]:
        """Sum of buffered values per metric name."""
        totals: dict[str, float] = {}
        for entry in self._metrics_buffer:
            totals[entry["name"]] = totals.get(entry["name"], 0.0) + entry["value"]
        return totals

    def start_span(
        self,
        name: str,
        attributes: Optional[dict[str, str]] = None,
    ) -> Optional[Any]:
        """Start a tracing span, or return None when tracing is disabled."""
        if not self._initialized or self._tracer is None:
            return None
        return self._tracer.start_span(name, attributes=attributes or {})

    def end_span(self, span: Any, error: Optional[BaseException] = None) -> None:
        """End a tracing span, recording the error that closed it if any."""
        if span is None:
            return
        if error is not None:
            span.record_exception(error)
            span.set_attribute("error", True)
        span.end()

    async def export(self) -> None:
        """Flush buffered telemetry.

        With the SDK initialized, metrics are exported by the
        PeriodicExportingMetricReader; the local buffer is just cleared.
        """
        if not self._initialized:
            return

        exported_count = len(self._metrics_buffer)
        self._metrics_buffer.clear()
        if exported_count:
            logger.debug("Flushed %d buffered metrics", exported_count)


async def create_exporter(
    endpoint: Optional[str] = None,
    service_name: str = "lambdaform",
    insecure: bool = False,
) -> OTELExporter:
    """Factory function to create and initialize an exporter."""
    config = OTELConfig(
        endpoint=endpoint or "",
        service_name=service_name,
        insecure=insecure,
    )
    exporter = OTELExporter(config)
    await exporter.initialize()
    return exporter
