"""
Time source for delivery scheduling.

Workers and the local queue take a Clock so tests can control timestamps,
durations and backoff sleeps without real waiting.
"""

import asyncio
import time
from datetime import datetime, timezone


class Clock:
    """Wall clock, monotonic timer and sleep backed by the real time."""

    def now(self) -> datetime:
        """Current UTC time (timezone-aware)."""
        return datetime.now(timezone.utc)

    def monotonic(self) -> float:
        """Seconds from an arbitrary origin, for measuring durations."""
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


system_clock = Clock()
