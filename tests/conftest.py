from __future__ import annotations

import asyncio
import copy
from typing import Any

import pytest

from cep_lookup import Address, CallableProvider


SE_RESPONSE = {
    "cep": "01001-000",
    "logradouro": "Praça da Sé",
    "bairro": "Sé",
    "localidade": "São Paulo",
    "uf": "SP",
}


class FakeFetcher:
    """
    Stand-in for the HTTP transport.

    `routes` maps a URL substring to (delay_seconds, outcome). An outcome
    that is an exception is raised, anything else is returned (copied).
    Aborted URLs are recorded through the cancellation token callback.
    """

    def __init__(self, routes: dict[str, tuple[float, Any]]):
        self.routes = routes
        self.calls: list[str] = []
        self.aborted: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def _route(self, url: str) -> tuple[float, Any]:
        for key, route in self.routes.items():
            if key in url:
                return route
        raise AssertionError(f"no route for {url}")

    async def __call__(self, url: str, token=None) -> Any:
        self.calls.append(url)
        delay, outcome = self._route(url)

        def on_abort() -> None:
            self.aborted.append(url)

        if token is not None:
            token.add_callback(on_abort)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if delay:
                await asyncio.sleep(delay)
        finally:
            self.in_flight -= 1
            if token is not None:
                token.remove_callback(on_abort)

        if isinstance(outcome, BaseException):
            raise outcome
        return copy.deepcopy(outcome)


def make_provider(name: str, timeout: float | None = None) -> CallableProvider:
    """Provider whose raw response is already Address-shaped."""
    return CallableProvider(
        name=name,
        build_url=lambda cep: f"http://{name.lower()}.test/{cep}",
        transform=lambda raw: Address(service=name, **raw),
        timeout=timeout,
    )


def address_payload(**overrides: Any) -> dict[str, Any]:
    payload = {
        "cep": "01001000",
        "state": "SP",
        "city": "São Paulo",
        "neighborhood": "Sé",
        "street": "Praça da Sé",
    }
    payload.update(overrides)
    return payload


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recorded_events():
    """Attach recording listeners to a CepLookup: `record(client)` -> dict of lists."""
    def record(client):
        events: dict[str, list] = {"success": [], "failure": [], "cache:hit": []}
        for name, bucket in events.items():
            client.on(name, bucket.append)
        return events
    return record
