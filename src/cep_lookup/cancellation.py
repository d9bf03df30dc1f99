"""Cooperative cancellation shared by the branches of one lookup race.

Every provider request of a race receives the same CancellationToken.
When the race settles the orchestrator cancels the token, which runs
the cleanup callbacks the fetchers registered (aborting I/O, clearing
timers). Fetchers remove their callback when they finish normally so
nothing leaks between races.
"""

from __future__ import annotations

import logging
from typing import Callable

logger = logging.getLogger(__name__)


class CancellationToken:
    """Single-loop cancellation token with cleanup callbacks.

    Examples:
        >>> token = CancellationToken()
        >>> token.add_callback(lambda: print("aborted"))
        >>> token.cancel()
        aborted
        >>> token.is_cancelled()
        True
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._callbacks: list[Callable[[], object]] = []

    def is_cancelled(self) -> bool:
        return self._cancelled

    def add_callback(self, callback: Callable[[], object]) -> None:
        """Register `callback` to run on cancellation.

        If the token is already cancelled the callback runs immediately.
        """
        if self._cancelled:
            callback()
            return
        self._callbacks.append(callback)

    def remove_callback(self, callback: Callable[[], object]) -> None:
        """Deregister `callback`; a no-op if it already ran or was never added."""
        try:
            self._callbacks.remove(callback)
        except ValueError:
            pass

    def cancel(self) -> None:
        """Mark the token cancelled and run every registered callback once."""
        if self._cancelled:
            return
        self._cancelled = True
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback()
            except Exception:
                logger.exception(f"Cancellation callback {callback!r} failed")
