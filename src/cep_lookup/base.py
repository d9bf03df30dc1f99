"""
Abstract base classes for the lookup system.

These define the interfaces that pluggable caches and rate limiters
must follow. Providers have their own base class in `providers.py`.
"""

from abc import ABC, abstractmethod
from typing import Optional

from .models import Address


class AddressCache(ABC):
    """
    Abstract base for address caches.

    Keys are canonical 8-digit CEPs. A distributed or persistent cache
    can be swapped in by implementing this interface; the orchestrator
    itself only calls `get` and `set`.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[Address]:
        """Return the cached address, or None if absent or expired."""
        pass

    @abstractmethod
    def set(self, key: str, value: Address) -> None:
        """Cache an address."""
        pass

    def has(self, key: str) -> bool:
        """Check for a live entry. Default implementation calls get()."""
        return self.get(key) is not None

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove an entry if present."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Remove all entries."""
        pass


class RateLimiter(ABC):
    """
    Abstract base for rate limiters.

    Unlike a throttle, a limiter never waits: it either admits the
    request or raises RateLimitError.
    """

    @abstractmethod
    def acquire(self) -> None:
        """
        Admit one request.

        Raises:
            RateLimitError: If the request is over the limit
        """
        pass

    def reset(self) -> None:
        """Forget recorded requests."""
        pass
