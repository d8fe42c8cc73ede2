"""Pause policies used between retries and between batch iterations."""

from __future__ import annotations

import asyncio


class DelayPolicy:
    """Fixed pause before the next attempt.

    ``attempt`` is the zero-based number of the attempt that just finished,
    so subclasses can implement backoff without changing call sites.
    """

    def __init__(self, seconds: float = 1.0):
        self.seconds = max(0.0, seconds)

    def delay_for(self, attempt: int) -> float:
        return self.seconds

    async def wait(self, attempt: int = 0) -> None:
        seconds = self.delay_for(attempt)
        if seconds > 0:
            await asyncio.sleep(seconds)


NO_DELAY = DelayPolicy(0.0)
