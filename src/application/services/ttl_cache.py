"""
Small value cache with an explicit freshness window.

The clock is injected so that tests can move time without sleeping. Concurrent
refreshes are not coordinated: the last writer wins, which is acceptable because
the cached value only mirrors an external catalog.
"""

import time
from typing import Awaitable, Callable, Generic, Optional, TypeVar

T = TypeVar("T")


class TTLCache(Generic[T]):
    def __init__(
        self,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._ttl = ttl_seconds
        self._clock = clock
        self._value: Optional[T] = None
        self._stored_at: Optional[float] = None

    def get(self) -> Optional[T]:
        """Return the cached value while fresh, else None."""
        if self.is_stale():
            return None
        return self._value

    def is_stale(self) -> bool:
        if self._stored_at is None:
            return True
        return self._clock() - self._stored_at >= self._ttl

    def put(self, value: T) -> None:
        self._value = value
        self._stored_at = self._clock()

    async def refresh_if_stale(self, loader: Callable[[], Awaitable[T]]) -> T:
        """Return the fresh value, awaiting *loader* first when the entry is stale."""
        if self.is_stale():
            self.put(await loader())
        return self._value
