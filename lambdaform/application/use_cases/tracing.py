"""
Span helper shared by the reconcilers.
"""

from contextlib import contextmanager
from typing import Any, Iterator, Optional

from lambdaform.domain.ports.telemetry_port import TelemetryPort


@contextmanager
def traced(
    telemetry: Optional[TelemetryPort],
    name: str,
    attributes: Optional[dict[str, str]] = None,
) -> Iterator[Any]:
    """Wrap a block in a span; the span records the exception that ends it."""
    span = telemetry.start_span(name, attributes) if telemetry else None
    try:
        yield span
    except BaseException as exc:
        if telemetry:
            telemetry.end_span(span, exc)
        raise
    else:
        if telemetry:
            telemetry.end_span(span)
