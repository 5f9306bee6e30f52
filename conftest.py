"""Global test configuration.

Provides a fake monotonic clock so capacity polling windows of many minutes
run instantly and deterministically.
"""

import pytest


class FakeClock:
    """ClockPort whose sleep advances time instead of waiting."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()
