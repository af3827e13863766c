"""Base future primitives over asyncio.

asyncio futures have no continuation registration of their own; ``then``
provides it the way promise-style code expects: handlers run once the
source settles, and the returned task settles with the handler's outcome.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

T = TypeVar("T")
R = TypeVar("R")

OnFulfilled = Callable[[Any], Any]
OnRejected = Callable[[BaseException], Any]


def resolved(value: T) -> asyncio.Future[T]:
    """Create an already-fulfilled future on the running loop."""
    future = asyncio.get_running_loop().create_future()
    future.set_result(value)
    return future


def rejected(exc: BaseException) -> asyncio.Future[Any]:
    """Create an already-rejected future on the running loop."""
    future = asyncio.get_running_loop().create_future()
    future.set_exception(exc)
    return future


async def settle(value: Awaitable[T] | T) -> T:
    """Await ``value`` if it is awaitable, otherwise return it unchanged."""
    if inspect.isawaitable(value):
        return await value
    return value


def copy_outcome(target: asyncio.Future[Any], source: asyncio.Future[Any]) -> None:
    """Copy the outcome of a settled ``source`` onto ``target``.

    Does nothing if ``target`` already settled, so it can serve as a
    done-callback for adopting another future.
    """
    if target.done():
        return
    if source.cancelled():
        target.cancel()
        return
    exc = source.exception()
    if exc is not None:
        target.set_exception(exc)
    else:
        target.set_result(source.result())


async def _continue(
    source: Awaitable[Any],
    on_fulfilled: OnFulfilled | None,
    on_rejected: OnRejected | None,
) -> Any:
    try:
        value = await source
    except Exception as exc:
        if on_rejected is None:
            raise
        return await settle(on_rejected(exc))
    # Outside the try: a failing fulfillment handler is not routed to on_rejected
    if on_fulfilled is None:
        return value
    return await settle(on_fulfilled(value))


def then(
    source: Awaitable[Any],
    on_fulfilled: OnFulfilled | None = None,
    on_rejected: OnRejected | None = None,
) -> asyncio.Task[Any]:
    """Register continuations on ``source``.

    Args:
        source: Future, task or coroutine to continue from
        on_fulfilled: Called with the resolved value; may return an awaitable
        on_rejected: Called with the exception if ``source`` fails

    Returns:
        Task settling with the outcome of whichever handler ran, or with the
        outcome of ``source`` if the matching handler is omitted.
    """
    return asyncio.ensure_future(_continue(source, on_fulfilled, on_rejected))
