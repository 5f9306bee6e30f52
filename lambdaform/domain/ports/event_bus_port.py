"""
Event Bus Port

Architectural Intent:
- Abstract interface for publishing resource lifecycle events
- Reconcilers publish; audit, telemetry or CLI output subscribe
"""

from typing import Protocol, Callable, Awaitable, runtime_checkable
from lambdaform.domain.events.event_base import DomainEvent


@runtime_checkable
class EventBusPort(Protocol):
    async def publish(self, events: list[DomainEvent]) -> None: ...

    def subscribe(
        self, event_type: type, handler: Callable[[DomainEvent], Awaitable[None]]
    ) -> None: ...
