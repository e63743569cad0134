from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from typing import TypeVar

T = TypeVar("T")


async def wait_until(
    predicate: Callable[[], Awaitable[T | None] | T | None],
    *,
    timeout: float = 5.0,
    interval: float = 0.5,
    truthy: bool = True,
) -> T | None:
    """
    Call `predicate` every `interval` seconds until it succeeds or `timeout` elapses.

    With `truthy=True` success means a truthy result; otherwise any result that is not None.
    The predicate always runs at least once. Returns None on timeout.
    """

    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while True:
        result = predicate()
        if inspect.isawaitable(result):
            result = await result
        if (result if truthy else result is not None):
            return result  # type: ignore[return-value]

        remaining = deadline - loop.time()
        if remaining <= 0:
            return None
        await asyncio.sleep(min(interval, remaining))
