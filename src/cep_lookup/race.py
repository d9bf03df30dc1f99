"""
First-success race combinator with staggered backup dispatch.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Sequence, TypeVar

from .cancellation import CancellationToken
from .errors import AllProvidersFailedError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _outcome(task: asyncio.Task) -> Optional[BaseException]:
    if task.cancelled():
        return asyncio.CancelledError()
    return task.exception()


async def first_success(
    factories: Sequence[Callable[[], Awaitable[T]]],
    stagger_delay: float = 0.0,
    token: Optional[CancellationToken] = None,
) -> T:
    """
    Return the result of the first branch that succeeds.

    factories[0] starts immediately. The remaining factories start
    together once `stagger_delay` seconds pass without a success, or as
    soon as the first branch fails, whichever comes first.

    When the race settles (either way) `token` is cancelled and every
    branch still running is cancelled and awaited.

    Args:
        factories: Zero-argument callables returning awaitables, in priority order
        stagger_delay: Head start given to the first branch, in seconds
        token: Cancellation token shared with the branches

    Returns:
        The first successful result

    Raises:
        AllProvidersFailedError: Every branch failed; errors are in factory order
    """
    if not factories:
        raise ValueError("first_success needs at least one branch")

    loop = asyncio.get_running_loop()
    tasks: list[asyncio.Task] = []
    pending: set[asyncio.Task] = set()

    def dispatch(factory: Callable[[], Awaitable[T]]) -> None:
        task = asyncio.ensure_future(factory())
        tasks.append(task)
        pending.add(task)

    try:
        dispatch(factories[0])
        backups = list(factories[1:])
        deadline = loop.time() + stagger_delay

        while pending:
            timeout = max(0.0, deadline - loop.time()) if backups else None
            done, _ = await asyncio.wait(pending, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
            pending.difference_update(done)

            winners = [t for t in sorted(done, key=tasks.index) if _outcome(t) is None]
            if winners:
                return winners[0].result()

            if backups:
                # stagger timer fired or the first branch failed
                logger.debug(f"Dispatching {len(backups)} backup branches")
                for factory in backups:
                    dispatch(factory)
                backups = []

        raise AllProvidersFailedError([_outcome(t) for t in tasks])
    finally:
        if token is not None:
            token.cancel()
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
