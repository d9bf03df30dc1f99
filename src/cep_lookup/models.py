"""
Core data models for CEP lookup operations.

These immutable, frozen dataclasses serve as the contract between
the validator, the providers, the cache and the race orchestrator.
"""

from __future__ import annotations

from dataclasses import dataclass, field, asdict
from enum import StrEnum
from typing import Any, Optional


class LookupEvent(StrEnum):
    """Names of the events emitted by a lookup."""
    SUCCESS = "success"
    FAILURE = "failure"
    CACHE_HIT = "cache:hit"


@dataclass(frozen=True)
class Address:
    """
    A standardized address resolved from a CEP.

    `service` identifies the provider that produced the address. `ibge`
    (municipality code) and `ddd` (area code) are only present when a
    provider returns them or enrichment fills them in.
    """
    cep: str
    state: str
    city: str
    neighborhood: str
    street: str
    service: str
    ibge: Optional[str] = None
    ddd: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, dropping unset optional fields."""
        data = asdict(self)
        for key in ("ibge", "ddd"):
            if data[key] is None:
                del data[key]
        return data


@dataclass(frozen=True)
class CacheEntry:
    """A cached address and the clock reading at which it was stored."""
    value: Address
    timestamp: float


@dataclass(frozen=True)
class RateLimitOptions:
    """Sliding window admission: at most `requests` lookups every `per` seconds."""
    requests: int
    per: float

    def __post_init__(self) -> None:
        if self.requests <= 0:
            raise ValueError("requests must be > 0")
        if self.per <= 0:
            raise ValueError("per must be > 0")


@dataclass(frozen=True)
class BulkCepResult:
    """
    Outcome of one CEP inside a bulk lookup.

    Exactly one of `data` and `error` is populated.
    """
    cep: str
    data: Any = None
    provider: Optional[str] = None
    error: Optional[BaseException] = None

    def __post_init__(self) -> None:
        if (self.data is None) == (self.error is None):
            raise ValueError("BulkCepResult needs exactly one of data or error")

    def is_success(self) -> bool:
        return self.error is None


# Event payloads

@dataclass(frozen=True)
class SuccessEvent:
    provider: str
    cep: str
    duration: float  # milliseconds
    address: Address


@dataclass(frozen=True)
class FailureEvent:
    provider: str
    cep: str
    duration: float  # milliseconds
    error: BaseException


@dataclass(frozen=True)
class CacheHitEvent:
    cep: str


@dataclass(frozen=True)
class ProviderTiming:
    """Latency measured for one provider during warmup."""
    provider: str
    duration: float = field(default=float("inf"))  # milliseconds
    ok: bool = False
