"""
Event Bus Infrastructure

Architectural Intent:
- In-memory event bus for resource lifecycle events
- Supports async subscription handlers, dispatched in subscription order
- Keeps a bounded history of published events for CLI summaries and tests
"""

import logging
from collections import deque
from typing import Callable, Awaitable
from lambdaform.domain.events.event_base import DomainEvent

logger = logging.getLogger(__name__)


class EventBus:
    def __init__(self, history_size: int = 256) -> None:
        self._handlers: dict[type, list[Callable[[DomainEvent], Awaitable[None]]]] = {}
        self._history: deque[DomainEvent] = deque(maxlen=history_size)

    @property
    def history(self) -> list[DomainEvent]:
        return list(self._history)

    async def publish(self, events: list[DomainEvent]) -> None:
        for event in events:
            self._history.append(event)
            logger.debug("Publishing %s for %s", event.event_type, event.aggregate_id)
            for handler in self._handlers.get(type(event), []):
                await handler(event)

    def subscribe(
        self, event_type: type, handler: Callable[[DomainEvent], Awaitable[None]]
    ) -> None:
        self._handlers.setdefault(event_type, []).append(handler)
