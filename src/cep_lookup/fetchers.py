"""
Fetch capability used by providers.

A fetcher is any `async (url, token=None) -> raw` callable. The default
HttpxFetcher performs an HTTP GET and returns the decoded JSON body,
raising on non-2xx responses.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

import httpx

from .cancellation import CancellationToken

logger = logging.getLogger(__name__)

Fetcher = Callable[[str, Optional[CancellationToken]], Awaitable[Any]]

DEFAULT_HEADERS = {"Accept": "application/json"}


class HttpxFetcher:
    """
    httpx-based fetcher.

    Registers a callback on the race's CancellationToken that cancels the
    request task, so losing requests are aborted at the socket level.
    """

    def __init__(
        self,
        timeout: float = 10.0,
        headers: Optional[dict[str, str]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the fetcher.

        Args:
            timeout: HTTP timeout in seconds (per request)
            headers: Extra request headers
            client: Shared AsyncClient; one is created lazily if omitted
        """
        self.timeout = timeout
        self.headers = {**DEFAULT_HEADERS, **(headers or {})}
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers=self.headers,
                follow_redirects=True,
            )
        return self._client

    async def __call__(self, url: str, token: Optional[CancellationToken] = None) -> Any:
        if token is not None and token.is_cancelled():
            raise asyncio.CancelledError()

        task = asyncio.current_task()
        on_cancel = task.cancel if task is not None else None
        if token is not None and on_cancel is not None:
            token.add_callback(on_cancel)
        try:
            logger.debug(f"GET {url}")
            response = await self._get_client().get(url)
            logger.debug(f"GET {url} -> {response.status_code}")
            # non-2xx is a provider failure
            response.raise_for_status()
            return response.json()
        finally:
            if token is not None and on_cancel is not None:
                token.remove_callback(on_cancel)

    async def aclose(self) -> None:
        """Close the underlying client if this fetcher created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
