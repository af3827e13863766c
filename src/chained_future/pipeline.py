"""Append-only step sequence shared by every iteration of a recurrence."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from chained_future.kernel.errors import PipelineSealedError

Step = Callable[[Any], Any]


class Pipeline:
    """Mutable builder of transformation steps.

    A pipeline is shared by reference: every chained future produced for a
    later iteration holds the same instance. It is sealed the first time it
    is folded into a continuation; from then on appending raises
    PipelineSealedError, so an in-flight iteration never sees its steps
    change underneath it.
    """

    __slots__ = ("_steps", "_sealed")

    def __init__(self, steps: list[Step] | None = None) -> None:
        self._steps: list[Step] = list(steps) if steps else []
        self._sealed = False

    @property
    def sealed(self) -> bool:
        return self._sealed

    def append(self, step: Step) -> None:
        if self._sealed:
            raise PipelineSealedError(
                f"Cannot append {step_name(step)!r}: pipeline already drives a continuation"
            )
        self._steps.append(step)

    def seal(self) -> tuple[Step, ...]:
        """Freeze the pipeline and return its steps."""
        self._sealed = True
        return tuple(self._steps)

    def __len__(self) -> int:
        return len(self._steps)

    def __repr__(self) -> str:
        names = ", ".join(step_name(step) for step in self._steps)
        state = "sealed" if self._sealed else "open"
        return f"Pipeline([{names}], {state})"


def step_name(step: Step) -> str:
    return getattr(step, "__qualname__", None) or repr(step)
