"""
- Models: Data structures (Address, BulkCepResult, event payloads, ...)
- Base classes: Abstract interfaces for caches and rate limiters
- Validation: CEP validation and formatting
- Enrichment: Address sanitization and DDD fallback
- Providers: Upstream services and their response transforms
- Throttling: Rate limiting for lookups
- Lookup: The race orchestrator
"""

from .models import (
    Address,
    BulkCepResult,
    CacheEntry,
    RateLimitOptions,
    LookupEvent,
    SuccessEvent,
    FailureEvent,
    CacheHitEvent,
    ProviderTiming,
)

from .base import (
    AddressCache,
    RateLimiter,
)

from .errors import (
    CepLookupError,
    CepValidationError,
    RateLimitError,
    ProviderTimeoutError,
    CepNotFoundError,
    ProviderResponseError,
    AllProvidersFailedError,
)

from .validation import (
    validate_cep,
    cep_digits,
    is_valid_cep,
    format_cep,
)

from .enrichment import (
    DDD_BY_STATE,
    ddd_for_state,
    sanitize_address,
    enrich_address,
)

from .cache import InMemoryCache

from .throttling import (
    SlidingWindowRateLimiter,
    NoOpRateLimiter,
)

from .events import EventEmitter
from .cancellation import CancellationToken
from .fetchers import Fetcher, HttpxFetcher

from .providers import (
    Provider,
    CallableProvider,
    ViaCepProvider,
    BrasilApiProvider,
    OpenCepProvider,
    ApiCepProvider,
    default_providers,
)

from .race import first_success
from .settings import LookupSettings
from .lookup import CepLookup, CONTROL_CEP
from .export import results_to_frame
from .logging_config import setup_logging

__all__ = [
    # Models
    "Address",
    "BulkCepResult",
    "CacheEntry",
    "RateLimitOptions",
    "LookupEvent",
    "SuccessEvent",
    "FailureEvent",
    "CacheHitEvent",
    "ProviderTiming",
    # Base classes
    "AddressCache",
    "RateLimiter",
    # Errors
    "CepLookupError",
    "CepValidationError",
    "RateLimitError",
    "ProviderTimeoutError",
    "CepNotFoundError",
    "ProviderResponseError",
    "AllProvidersFailedError",
    # Validation / enrichment
    "validate_cep",
    "is_valid_cep",
    "format_cep",
    "cep_digits",
    "DDD_BY_STATE",
    "ddd_for_state",
    "sanitize_address",
    "enrich_address",
    # Cache / throttling / events
    "InMemoryCache",
    "SlidingWindowRateLimiter",
    "NoOpRateLimiter",
    "EventEmitter",
    "CancellationToken",
    # Transport / providers
    "Fetcher",
    "HttpxFetcher",
    "Provider",
    "CallableProvider",
    "ViaCepProvider",
    "BrasilApiProvider",
    "OpenCepProvider",
    "ApiCepProvider",
    "default_providers",
    # Orchestration
    "first_success",
    "LookupSettings",
    "CepLookup",
    "CONTROL_CEP",
    "results_to_frame",
    "setup_logging",
]
