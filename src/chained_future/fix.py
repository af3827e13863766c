"""Fixed-point runner - stack-safe driver for unbounded recurrences."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import NoReturn, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class FixConfig:
    """Runner settings.

    Attributes:
        yield_every: Yield to the event loop after this many iterations, so a
            sequence of already-settled futures cannot starve other tasks.
            0 never yields explicitly.
        name: Name of the runner task.
    """

    yield_every: int = 1
    name: str | None = None

    def __post_init__(self) -> None:
        if self.yield_every < 0:
            raise ValueError("yield_every must not be negative")


async def _drive(step: Callable[[T], Awaitable[T]], seed: T, config: FixConfig) -> NoReturn:
    current = seed
    iteration = 0
    logger.debug("Recurrence %s started", config.name or hex(id(seed)))
    try:
        while True:
            # Explicit loop: stack depth stays constant and only `current` is retained
            current = await step(current)
            iteration += 1
            if config.yield_every and iteration % config.yield_every == 0:
                await asyncio.sleep(0)
    except BaseException as exc:
        logger.debug(
            "Recurrence %s stopped after %d iterations: %r",
            config.name or hex(id(seed)),
            iteration,
            exc,
        )
        raise


def fix(
    step: Callable[[T], Awaitable[T]],
    seed: T,
    config: FixConfig | None = None,
) -> asyncio.Task[NoReturn]:
    """Drive ``step`` repeatedly, starting from ``seed``.

    Each awaited result of ``step`` is fed back into ``step``. The awaitable
    returned by ``step`` is awaited exactly once, so ``T`` may itself be
    awaitable (such as a chained future).

    Args:
        step: Async function producing the next value from the current one
        seed: Initial value
        config: Runner settings

    Returns:
        Task that fails with the first exception raised by any step and
        otherwise never completes. Cancel it to stop the recurrence.
    """
    config = config or FixConfig()
    loop = asyncio.get_running_loop()
    return loop.create_task(_drive(step, seed, config), name=config.name)
