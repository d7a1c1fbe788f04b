"""Shared cap on concurrent requests against one node."""
import asyncio

from .constants import MAX_CONCURRENT_REQUESTS


class ConcurrencyLimiter:
    """
    Counting semaphore shared by key-page and value requests.

    One limiter is created per pipeline run and passed explicitly to every
    component issuing remote calls, so separate runs never share permits.
    """

    def __init__(self, capacity: int = MAX_CONCURRENT_REQUESTS):
        """
        Initialize a new limiter.

        Args:
            capacity: Maximum number of requests in flight at once
        """
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._semaphore = asyncio.Semaphore(capacity)
        self.in_flight = 0
        self.peak_in_flight = 0
        self.total_acquired = 0

    async def acquire(self) -> None:
        await self._semaphore.acquire()
        self.in_flight += 1
        self.total_acquired += 1
        if self.in_flight > self.peak_in_flight:
            self.peak_in_flight = self.in_flight

    def release(self) -> None:
        self.in_flight -= 1
        self._semaphore.release()

    async def __aenter__(self) -> "ConcurrencyLimiter":
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()

    def stats(self) -> dict:
        return {
            "capacity": self.capacity,
            "in_flight": self.in_flight,
            "peak_in_flight": self.peak_in_flight,
            "total_acquired": self.total_acquired,
        }
