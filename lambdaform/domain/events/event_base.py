"""
Domain Events Module

Architectural Intent:
- Base class for domain events raised by the reconcilers
- Events are immutable and capture significant lifecycle occurrences
  (launch, drift, termination) for subscribers such as audit or telemetry
- aggregate_id is the provider-issued id of the resource concerned
"""

from dataclasses import dataclass, field, fields
from datetime import datetime, UTC
from typing import Any


@dataclass(frozen=True)
class DomainEvent:
    aggregate_id: str = ""
    occurred_at: str = field(
        default_factory=lambda: datetime.now(UTC).isoformat(), repr=False
    )

    @property
    def event_type(self) -> str:
        return self.__class__.__name__

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"event_type": self.event_type}
        for f in fields(self):
            value = getattr(self, f.name)
            payload[f.name] = list(value) if isinstance(value, tuple) else value
        return payload
