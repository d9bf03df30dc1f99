import asyncio
import time

import pytest

from cep_lookup import AllProvidersFailedError, CancellationToken, first_success


def _branch(log, name, delay, result=None, error=None):
    async def run():
        log.append(("start", name))
        try:
            await asyncio.sleep(delay)
        except asyncio.CancelledError:
            log.append(("cancelled", name))
            raise
        if error is not None:
            raise error
        return result
    return run


def test_primary_within_stagger_runs_alone():
    log = []

    async def main():
        return await first_success(
            [_branch(log, "a", 0.01, result="A"), _branch(log, "b", 0.01, result="B")],
            stagger_delay=1.0,
        )

    assert asyncio.run(main()) == "A"
    assert ("start", "b") not in log


def test_backups_start_after_stagger_and_can_win():
    log = []

    async def main():
        return await first_success(
            [_branch(log, "slow", 1.0, result="slow"), _branch(log, "fast", 0.01, result="fast")],
            stagger_delay=0.05,
        )

    assert asyncio.run(main()) == "fast"
    assert ("cancelled", "slow") in log


def test_primary_failure_dispatches_backups_immediately():
    log = []

    async def main():
        start = time.perf_counter()
        result = await first_success(
            [
                _branch(log, "primary", 0.0, error=RuntimeError("down")),
                _branch(log, "backup", 0.01, result="backup"),
            ],
            stagger_delay=5.0,
        )
        return result, time.perf_counter() - start

    result, elapsed = asyncio.run(main())
    assert result == "backup"
    assert elapsed < 1.0


def test_all_failures_aggregate_in_dispatch_order():
    first, second, third = ValueError("1"), KeyError("2"), RuntimeError("3")
    log = []

    async def main():
        return await first_success(
            [
                _branch(log, "a", 0.03, error=first),
                _branch(log, "b", 0.0, error=second),
                _branch(log, "c", 0.01, error=third),
            ],
            stagger_delay=0.0,
        )

    with pytest.raises(AllProvidersFailedError) as excinfo:
        asyncio.run(main())
    assert excinfo.value.errors == [first, second, third]


def test_token_cancelled_on_success_and_failure():
    async def succeed():
        token = CancellationToken()
        await first_success([_branch([], "a", 0.0, result=1)], token=token)
        return token

    async def fail():
        token = CancellationToken()
        with pytest.raises(AllProvidersFailedError):
            await first_success([_branch([], "a", 0.0, error=ValueError())], token=token)
        return token

    assert asyncio.run(succeed()).is_cancelled()
    assert asyncio.run(fail()).is_cancelled()


def test_needs_at_least_one_branch():
    with pytest.raises(ValueError):
        asyncio.run(first_success([]))


def test_cancellation_token_callbacks():
    token = CancellationToken()
    calls = []

    def keep():
        calls.append("keep")

    def dropped():
        calls.append("dropped")

    token.add_callback(keep)
    token.add_callback(dropped)
    token.remove_callback(dropped)
    token.remove_callback(dropped)

    token.cancel()
    token.cancel()
    assert calls == ["keep"]

    token.add_callback(lambda: calls.append("late"))
    assert calls == ["keep", "late"]
