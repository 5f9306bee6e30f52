"""
Clock Port

Architectural Intent:
- Injected time source for retry-with-deadline loops
- Lets tests simulate many polls across a long capacity window without real
  wall-clock delay
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class ClockPort(Protocol):
    def monotonic(self) -> float:
        """Seconds on a monotonic clock."""
        ...

    async def sleep(self, seconds: float) -> None:
        """Suspend cooperatively for the given number of seconds."""
        ...
