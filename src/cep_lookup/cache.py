"""
In-memory address cache with optional TTL and size limit.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from .base import AddressCache
from .models import Address, CacheEntry

logger = logging.getLogger(__name__)


class InMemoryCache(AddressCache):
    """
    Dict-backed cache.

    Expired entries are evicted lazily when read. When full, the oldest
    inserted entry is evicted (insertion order, not access order).
    Not shared across processes.
    """

    def __init__(
        self,
        ttl: Optional[float] = None,
        max_size: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the cache.

        Args:
            ttl: Entry lifetime in seconds (None = never expires)
            max_size: Maximum number of entries (None = unbounded)
            clock: Monotonic time source, injectable for tests
        """
        if ttl is not None and ttl < 0:
            raise ValueError("ttl must be >= 0")
        if max_size is not None and max_size <= 0:
            raise ValueError("max_size must be > 0")

        self.ttl = ttl
        self.max_size = max_size
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def _expired(self, entry: CacheEntry) -> bool:
        return self.ttl is not None and self._clock() - entry.timestamp > self.ttl

    def _live_entry(self, key: str) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._expired(entry):
            del self._entries[key]
            logger.debug(f"Cache entry expired: {key}")
            return None
        return entry

    def get(self, key: str) -> Optional[Address]:
        entry = self._live_entry(key)
        return entry.value if entry else None

    def set(self, key: str, value: Address) -> None:
        # re-inserting moves the key to the newest position
        self._entries.pop(key, None)
        if self.max_size is not None and len(self._entries) >= self.max_size:
            oldest = next(iter(self._entries))
            del self._entries[oldest]
            logger.debug(f"Cache full, evicted: {oldest}")
        self._entries[key] = CacheEntry(value=value, timestamp=self._clock())

    def has(self, key: str) -> bool:
        return self._live_entry(key) is not None

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has(key)
