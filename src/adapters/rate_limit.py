"""Request throttling.

Spaces the start of consecutive requests by `1 / max_requests_per_second`.
Scoped to one client; requests of a traversal are sequential anyway, the lock
only matters when a caller runs several operations concurrently.
"""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable


class RequestThrottle:
    def __init__(
        self,
        max_requests_per_second: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_requests_per_second <= 0:
            raise ValueError("max_requests_per_second must be positive")
        self.interval = 1.0 / max_requests_per_second
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._next_slot: float | None = None

    async def wait(self) -> None:
        """Return once the caller may start its request."""

        async with self._lock:
            now = self._clock()
            if self._next_slot is not None and now < self._next_slot:
                await self._sleep(self._next_slot - now)
                now = self._next_slot
            self._next_slot = now + self.interval
