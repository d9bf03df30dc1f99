import asyncio

import pytest

from cep_lookup import (
    AllProvidersFailedError,
    CepLookup,
    CepValidationError,
    RateLimitError,
    SlidingWindowRateLimiter,
)

from conftest import FakeFetcher, address_payload, make_provider


class FlakyFetcher:
    """Fails the first `failures` calls, then answers."""

    def __init__(self, failures, payload=None):
        self.failures = failures
        self.payload = payload or address_payload()
        self.calls = 0

    async def __call__(self, url, token=None):
        self.calls += 1
        if self.calls <= self.failures:
            raise ConnectionError(f"attempt {self.calls} failed")
        return dict(self.payload)


@pytest.fixture
def sleeps(monkeypatch):
    """Record backoff sleeps without waiting for them."""
    recorded = []
    real_sleep = asyncio.sleep

    async def fake_sleep(delay, *args, **kwargs):
        recorded.append(delay)
        await real_sleep(0)

    monkeypatch.setattr("cep_lookup.lookup.asyncio.sleep", fake_sleep)
    return recorded


def test_succeeds_on_second_attempt(sleeps):
    fetcher = FlakyFetcher(failures=1)
    client = CepLookup(providers=[make_provider("P")], fetcher=fetcher, retries=1, retry_delay=0.01)

    address = asyncio.run(client.lookup("01001000"))

    assert address.service == "P"
    assert fetcher.calls == 2
    assert sleeps == [0.01]


def test_exhausted_retries_raise_last_error(sleeps):
    fetcher = FlakyFetcher(failures=10)
    client = CepLookup(providers=[make_provider("P")], fetcher=fetcher, retries=2, retry_delay=0.01)

    with pytest.raises(ConnectionError, match="attempt 3 failed"):
        asyncio.run(client.lookup("01001000"))
    assert fetcher.calls == 3


def test_backoff_doubles(sleeps):
    client = CepLookup(
        providers=[make_provider("P")],
        fetcher=FlakyFetcher(failures=10),
        retries=3,
        retry_delay=0.5,
    )

    with pytest.raises(ConnectionError):
        asyncio.run(client.lookup("01001000"))
    assert sleeps == [0.5, 1.0, 2.0]


def test_no_retry_by_default():
    fetcher = FlakyFetcher(failures=1)
    client = CepLookup(providers=[make_provider("P")], fetcher=fetcher)

    with pytest.raises(ConnectionError):
        asyncio.run(client.lookup("01001000"))
    assert fetcher.calls == 1


def test_validation_error_not_retried(sleeps):
    fetcher = FlakyFetcher(failures=0)
    client = CepLookup(providers=[make_provider("P")], fetcher=fetcher, retries=3, retry_delay=0.01)

    with pytest.raises(CepValidationError):
        asyncio.run(client.lookup("abc"))
    assert fetcher.calls == 0
    assert sleeps == []


def test_rate_limit_error_not_retried(clock, sleeps):
    fetcher = FlakyFetcher(failures=0)
    client = CepLookup(
        providers=[make_provider("P")],
        fetcher=fetcher,
        retries=3,
        retry_delay=0.01,
        rate_limit=SlidingWindowRateLimiter(requests=1, per=10.0, clock=clock),
    )

    asyncio.run(client.lookup("01001000"))
    with pytest.raises(RateLimitError):
        asyncio.run(client.lookup("01001000"))
    assert fetcher.calls == 1
    assert sleeps == []


def test_retry_replays_every_provider(sleeps):
    fetcher = FakeFetcher({
        "one": (0, ConnectionError("one down")),
        "two": (0, ValueError("two broken")),
    })
    client = CepLookup(
        providers=[make_provider("One"), make_provider("Two")],
        fetcher=fetcher,
        retries=1,
        retry_delay=0.01,
        stagger_delay=0,
    )

    with pytest.raises(AllProvidersFailedError) as excinfo:
        asyncio.run(client.lookup("01001000"))

    assert len(fetcher.calls) == 4
    assert [type(e) for e in excinfo.value.errors] == [ConnectionError, ValueError]


def test_retry_emits_failure_per_attempt(recorded_events, sleeps):
    client = CepLookup(
        providers=[make_provider("P")],
        fetcher=FlakyFetcher(failures=2),
        retries=2,
        retry_delay=0.01,
    )
    events = recorded_events(client)

    asyncio.run(client.lookup("01001000"))

    assert len(events["failure"]) == 2
    assert len(events["success"]) == 1
