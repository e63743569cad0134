from __future__ import annotations

import pytest

from samapp.timeouts import wait_until


@pytest.mark.asyncio
async def test_returns_first_truthy_result() -> None:
    results = iter([None, 0, "ready"])

    assert await wait_until(lambda: next(results), timeout=1.0, interval=0.001) == "ready"


@pytest.mark.asyncio
async def test_accepts_async_predicate() -> None:
    calls = 0

    async def predicate() -> bool:
        nonlocal calls
        calls += 1
        return calls >= 2

    assert await wait_until(predicate, timeout=1.0, interval=0.001) is True
    assert calls == 2


@pytest.mark.asyncio
async def test_not_truthy_accepts_falsy_values() -> None:
    assert await wait_until(lambda: 0, timeout=0.1, interval=0.01, truthy=False) == 0


@pytest.mark.asyncio
async def test_times_out_with_none_after_at_least_one_call() -> None:
    calls = 0

    def predicate() -> None:
        nonlocal calls
        calls += 1
        return None

    assert await wait_until(predicate, timeout=0.05, interval=0.01) is None
    assert calls >= 1
