"""
System Clock

Architectural Intent:
- Production ClockPort: time.monotonic for deadlines, asyncio.sleep for
  cooperative suspension between capacity polls
"""

import asyncio
import time


class SystemClock:
    def monotonic(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)
