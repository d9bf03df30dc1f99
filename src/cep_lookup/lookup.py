"""
Race orchestrator: resolves CEPs by racing several providers.

A lookup goes through rate limiting, validation and the cache before
any network work. On a cache miss the highest-priority provider is
dispatched alone; the others join after `stagger_delay` seconds, or
immediately if it fails. The first provider to produce an address wins,
every other request is cancelled, and the address is sanitized,
enriched, cached and announced through the `success` event.

Example:
    from cep_lookup import CepLookup, InMemoryCache, default_providers

    async with CepLookup(default_providers(), cache=InMemoryCache(ttl=3600)) as client:
        await client.warmup()
        address = await client.lookup("01001-000")
"""

from __future__ import annotations

import asyncio
import dataclasses
import functools
import logging
import math
import time
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence, TypeVar, Union

from tqdm import tqdm

from .base import AddressCache, RateLimiter
from .cache import InMemoryCache
from .cancellation import CancellationToken
from .enrichment import enrich_address, sanitize_address
from .errors import CepValidationError, ProviderResponseError, ProviderTimeoutError, RateLimitError
from .events import EventEmitter, Listener
from .fetchers import Fetcher, HttpxFetcher
from .models import (
    Address,
    BulkCepResult,
    CacheHitEvent,
    FailureEvent,
    LookupEvent,
    ProviderTiming,
    RateLimitOptions,
    SuccessEvent,
)
from .providers import Provider
from .race import first_success
from .settings import LookupSettings
from .throttling import build_rate_limiter
from .validation import cep_digits, validate_cep

T = TypeVar("T")

# Praça da Sé, São Paulo: known-good CEP used to probe provider latency
CONTROL_CEP = "01001000"


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


class CepLookup:
    """
    Multi-provider CEP resolver.

    Instances own their rate limiter history, provider ranking and event
    listeners; the cache is owned too unless the caller shares one.
    """

    def __init__(
        self,
        providers: Sequence[Provider],
        fetcher: Optional[Fetcher] = None,
        cache: Optional[AddressCache] = None,
        rate_limit: Union[None, RateLimitOptions, Mapping[str, Any], RateLimiter] = None,
        stagger_delay: float = 0.1,
        retries: int = 0,
        retry_delay: float = 1.0,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the resolver.

        Args:
            providers: Providers in initial priority order (at least one)
            fetcher: Async `(url, token) -> raw` callable (default: HttpxFetcher)
            cache: Optional cache with get/set/clear
            rate_limit: RateLimitOptions, {"requests": n, "per": seconds} or a RateLimiter
            stagger_delay: Head start for the primary provider, in seconds
            retries: Extra race attempts after a total failure
            retry_delay: Base backoff in seconds, doubled on each retry
            logger: Logger for the lookup trace (default: module logger)
        """
        providers = list(providers)
        if not providers:
            raise ValueError("At least one provider is required")
        names = [p.name for p in providers]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Provider names must be unique, duplicated: {duplicates}")
        if stagger_delay < 0:
            raise ValueError("stagger_delay must be >= 0")
        if retries < 0:
            raise ValueError("retries must be >= 0")
        if retry_delay < 0:
            raise ValueError("retry_delay must be >= 0")

        self._providers = providers
        self._ranked = list(providers)
        self._owns_fetcher = fetcher is None
        self.fetcher: Fetcher = fetcher if fetcher is not None else HttpxFetcher()
        self.cache = cache
        self.rate_limiter = build_rate_limiter(rate_limit)
        self.stagger_delay = stagger_delay
        self.retries = retries
        self.retry_delay = retry_delay
        self.logger = logger or logging.getLogger(__name__)
        self.last_warmup: list[ProviderTiming] = []
        self._emitter = EventEmitter()

        self.logger.info(
            f"Initialized CepLookup: providers={names}, "
            f"stagger_delay={stagger_delay}s, retries={retries}, "
            f"cache={'on' if cache is not None else 'off'}"
        )

    @classmethod
    def from_settings(cls, settings: Optional[LookupSettings] = None, **overrides: Any) -> "CepLookup":
        """
        Build a resolver from LookupSettings (environment / .env by default).

        Keyword overrides are passed straight to the constructor and win
        over the settings, e.g. `fetcher=` in tests.
        """
        settings = settings or LookupSettings()
        kwargs: dict[str, Any] = {
            "providers": [Provider.from_name(n, timeout=settings.provider_timeout) for n in settings.providers],
            "stagger_delay": settings.stagger_delay,
            "retries": settings.retries,
            "retry_delay": settings.retry_delay,
        }
        if settings.cache_enabled:
            kwargs["cache"] = InMemoryCache(ttl=settings.cache_ttl, max_size=settings.cache_max_size)
        if settings.rate_limit_requests is not None:
            kwargs["rate_limit"] = RateLimitOptions(settings.rate_limit_requests, settings.rate_limit_per)
        if "fetcher" not in overrides:
            kwargs["fetcher"] = HttpxFetcher(timeout=settings.http_timeout)
        kwargs.update(overrides)

        instance = cls(**kwargs)
        # the fetcher built here is ours to close
        instance._owns_fetcher = "fetcher" not in overrides
        return instance

    # --- Properties ---------------------------------------------------------
    @property
    def providers(self) -> list[Provider]:
        """Providers in configured order."""
        return list(self._providers)

    @property
    def ranked_providers(self) -> list[Provider]:
        """Providers in the priority order used by the next race."""
        return list(self._ranked)

    # --- Events -------------------------------------------------------------
    def on(self, event: Union[str, LookupEvent], listener: Listener) -> None:
        self._emitter.on(event, listener)

    def off(self, event: Union[str, LookupEvent], listener: Listener) -> None:
        self._emitter.off(event, listener)

    # --- Lookup -------------------------------------------------------------
    async def lookup(self, cep: str, mapper: Optional[Callable[[Address], T]] = None) -> Union[Address, T]:
        """
        Resolve a single CEP.

        Args:
            cep: "NNNNNNNN" or "NNNNN-NNN"
            mapper: Optional function applied to the resulting Address

        Returns:
            The Address (or the mapper's output)

        Raises:
            RateLimitError: The rate limit is exhausted (never retried)
            CepValidationError: Malformed CEP (never retried)
            AllProvidersFailedError: Every provider failed on the last attempt
            Exception: With a single provider, that provider's own error
        """
        self.rate_limiter.acquire()
        clean_cep = validate_cep(cep)
        self.logger.debug(f"lookup:start cep={clean_cep}")

        if self.cache is not None:
            cached = self.cache.get(clean_cep)
            if cached is not None:
                self.logger.debug(f"cache:hit cep={clean_cep}")
                self._emitter.emit(LookupEvent.CACHE_HIT, CacheHitEvent(cep=clean_cep))
                return mapper(cached) if mapper else cached

        attempt = 0
        while True:
            try:
                address = await self._race(clean_cep)
                break
            except (CepValidationError, RateLimitError):
                raise
            except Exception as e:
                self.logger.warning(
                    f"Attempt {attempt + 1}/{1 + self.retries} failed for {clean_cep}: {e}"
                )
                if attempt >= self.retries:
                    raise
            attempt += 1
            delay = self.retry_delay * (2 ** (attempt - 1))
            self.logger.debug(f"retry:attempt attempt={attempt} cep={clean_cep} delay={delay}s")
            await asyncio.sleep(delay)

        return mapper(address) if mapper else address

    async def lookup_many(
        self,
        ceps: Iterable[str],
        concurrency: int = 5,
        mapper: Optional[Callable[[Address], T]] = None,
        progress: bool = False,
    ) -> list[BulkCepResult]:
        """
        Resolve many CEPs with at most `concurrency` lookups in flight.

        Workers pull the next index from a shared cursor, so slow CEPs do
        not hold back a pre-assigned share of the input. Per-CEP errors
        are recorded in the result instead of aborting the batch.

        Args:
            ceps: CEPs to resolve
            concurrency: Number of workers
            mapper: Optional function applied to each Address
            progress: Show a tqdm progress bar

        Returns:
            One BulkCepResult per input, in input order
        """
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        ceps = list(ceps)
        if not ceps:
            return []

        results: list[Optional[BulkCepResult]] = [None] * len(ceps)
        cursor = 0

        with tqdm(total=len(ceps), desc="CEP lookup", disable=not progress) as pbar:

            async def worker() -> None:
                nonlocal cursor
                while cursor < len(ceps):
                    index = cursor
                    cursor += 1
                    cep = ceps[index]
                    try:
                        address = await self.lookup(cep)
                        data = mapper(address) if mapper else address
                        results[index] = BulkCepResult(cep=cep, data=data, provider=address.service)
                    except Exception as e:
                        self.logger.warning(f"Bulk lookup failed for {cep!r}: {e}")
                        results[index] = BulkCepResult(cep=cep, error=e)
                    pbar.update(1)

            workers = min(concurrency, len(ceps))
            await asyncio.gather(*(worker() for _ in range(workers)))

        failed = sum(1 for r in results if r is not None and not r.is_success())
        self.logger.info(f"Bulk lookup complete: {len(ceps) - failed} success, {failed} failed")
        return [r for r in results if r is not None]

    async def warmup(self) -> list[Provider]:
        """
        Probe every provider with a known-good CEP and rank them by latency.

        Failed providers rank last (infinite duration). The new order is
        used as priority by subsequent lookups. Neither the cache nor the
        lookup events are touched.

        Returns:
            Providers sorted fastest first
        """
        token = CancellationToken()

        async def probe(provider: Provider) -> ProviderTiming:
            start = time.perf_counter()
            try:
                await self._fetch(provider, provider.build_url(CONTROL_CEP), token)
            except Exception as e:
                self.logger.debug(f"warmup: {provider.name} failed: {e}")
                return ProviderTiming(provider=provider.name, duration=math.inf, ok=False)
            return ProviderTiming(provider=provider.name, duration=_elapsed_ms(start), ok=True)

        try:
            timings = await asyncio.gather(*(probe(p) for p in self._providers))
        finally:
            token.cancel()

        order = sorted(range(len(timings)), key=lambda i: timings[i].duration)
        self._ranked = [self._providers[i] for i in order]
        self.last_warmup = [timings[i] for i in order]

        self.logger.info(
            "Warmup ranking: "
            + ", ".join(f"{t.provider}={t.duration:.0f}ms" for t in self.last_warmup)
        )
        return list(self._ranked)

    # --- Internals ----------------------------------------------------------
    async def _fetch(self, provider: Provider, url: str, token: CancellationToken) -> Any:
        """Call the fetcher, bounded by the provider's timeout when it has one."""
        if provider.timeout is None:
            return await self.fetcher(url, token)
        async with asyncio.timeout(provider.timeout):
            return await self.fetcher(url, token)

    def _emit_failure(self, provider: Provider, cep: str, start: float, error: BaseException) -> None:
        self.logger.debug(f"provider:failure provider={provider.name} cep={cep} error={error}")
        self._emitter.emit(
            LookupEvent.FAILURE,
            FailureEvent(provider=provider.name, cep=cep, duration=_elapsed_ms(start), error=error),
        )

    @staticmethod
    def _check_cep(provider: Provider, address: Address, cep: str) -> Address:
        """Reject an answer for another CEP and stamp the canonical form on the rest."""
        returned = cep_digits(address.cep)
        if returned != cep:
            raise ProviderResponseError(
                provider.name,
                [{"loc": ("cep",), "msg": f"expected CEP {cep}, got {address.cep!r}", "type": "value_error"}],
            )
        return dataclasses.replace(address, cep=cep)

    async def _dispatch(
        self, provider: Provider, cep: str, token: CancellationToken
    ) -> tuple[Provider, Address, float]:
        """
        Run one provider branch: build URL, fetch, transform, check the CEP.

        Returns:
            Tuple of (provider, transformed address, duration in ms)
        """
        start = time.perf_counter()
        self.logger.debug(f"provider:start provider={provider.name} cep={cep}")
        try:
            url = provider.build_url(cep)
            try:
                raw = await self._fetch(provider, url, token)
            except TimeoutError:
                # a TimeoutError raised by the fetcher itself is an ordinary failure
                if provider.timeout is None:
                    raise
                error = ProviderTimeoutError(provider.name, provider.timeout)
                self._emit_failure(provider, cep, start, error)
                raise error from None
            address = self._check_cep(provider, provider.transform(raw), cep)
        except ProviderTimeoutError:
            # already reported by the timeout path
            raise
        except Exception as e:
            self._emit_failure(provider, cep, start, e)
            raise
        return provider, address, _elapsed_ms(start)

    async def _race(self, cep: str) -> Address:
        """One attempt over the current priority order."""
        token = CancellationToken()
        primary, *backups = self._ranked

        if not backups:
            try:
                winner = await self._dispatch(primary, cep, token)
            finally:
                token.cancel()
        else:
            branches = [functools.partial(self._dispatch, p, cep, token) for p in self._ranked]
            winner = await first_success(branches, self.stagger_delay, token=token)

        provider, address, duration = winner
        address = enrich_address(sanitize_address(address))
        self.logger.debug(f"provider:success provider={provider.name} cep={cep} duration={duration:.0f}ms")

        if self.cache is not None:
            self.cache.set(cep, address)
        self._emitter.emit(
            LookupEvent.SUCCESS,
            SuccessEvent(provider=provider.name, cep=cep, duration=duration, address=address),
        )
        return address

    # --- Resources ----------------------------------------------------------
    async def aclose(self) -> None:
        """Close the default fetcher's HTTP client."""
        if self._owns_fetcher and hasattr(self.fetcher, "aclose"):
            await self.fetcher.aclose()

    async def __aenter__(self) -> "CepLookup":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
