"""
Request quota scheduling for outbound GitHub queries.
"""

import asyncio
import math
import time
from typing import Awaitable, Callable, TypeVar

from pr_scorecard.config import get_requests_per_minute

T = TypeVar("T")


class QuotaGuard:
    """
    Admit at most ``requests_per_window`` units of work per window.

    The bucket is refilled to full capacity at every window boundary rather
    than trickled continuously. Units that arrive while the bucket is empty
    wait, and are released in submission order once the next window opens.

    Example:
        >>> guard = QuotaGuard(requests_per_window=60)
        >>> data = await guard.schedule(lambda: transport_call())
    """

    def __init__(
        self,
        requests_per_window: float | None = None,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Args:
            requests_per_window: Budget per window. Defaults to the configured
                requests per minute. Fractional budgets are floored, minimum 1.
            window_seconds: Window length in seconds.
            clock: Monotonic clock, injectable for tests.
            sleep: Async sleep function, injectable for tests.
        """
        if requests_per_window is None:
            requests_per_window = get_requests_per_minute()
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.capacity = max(1, int(requests_per_window))
        self.window_seconds = window_seconds
        self._clock = clock
        self._sleep = sleep
        self._remaining = self.capacity
        self._window_start: float | None = None
        # asyncio.Lock wakes waiters in FIFO order
        self._lock = asyncio.Lock()

    @property
    def remaining(self) -> int:
        """Units still admissible in the current window."""
        return self._remaining

    def _roll_window(self, now: float) -> float:
        """Refill on a window boundary and return the current window start."""
        if self._window_start is None:
            self._window_start = now
            self._remaining = self.capacity
            return now
        elapsed = now - self._window_start
        if elapsed >= self.window_seconds:
            windows = math.floor(elapsed / self.window_seconds)
            self._window_start += windows * self.window_seconds
            self._remaining = self.capacity
        return self._window_start

    async def acquire(self) -> None:
        """Wait until one unit of capacity is available and take it."""
        async with self._lock:
            while True:
                now = self._clock()
                window_start = self._roll_window(now)
                if self._remaining > 0:
                    self._remaining -= 1
                    return
                await self._sleep(window_start + self.window_seconds - now)

    async def schedule(self, work: Callable[[], Awaitable[T]]) -> T:
        """
        Run ``work`` once the quota admits it.

        Args:
            work: Zero-argument callable returning an awaitable.

        Returns:
            The result of the awaited work.
        """
        await self.acquire()
        return await work()
