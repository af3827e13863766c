"""Chained future - composition primitive for recurring futures.

Usage::

    chained = promote(first_page)
    runner = chained.flat_map(a).flat_map(b).map(c).for_each(fn)

behaves like awaiting, for every item of the sequence in turn::

    item -> a -> b -> c -> fn, then successor(item) -> a -> b -> c -> fn, ...

until some stage, callback or successor fails. The default successor reads
the ``next`` field of each raw item.
"""

from __future__ import annotations

import asyncio
import contextlib
import functools
import inspect
from collections.abc import Awaitable, Callable, Generator, Mapping
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from chained_future.fix import FixConfig, fix
from chained_future.kernel import future
from chained_future.kernel.errors import (
    InvalidRejectionError,
    NotAwaitableError,
    SuccessorNotFoundError,
)
from chained_future.kernel.trace import Trace
from chained_future.pipeline import Pipeline, Step, step_name

T = TypeVar("T")
U = TypeVar("U")

Successor = Callable[[Any], Awaitable[Any]]
Executor = Callable[[Callable[..., None], Callable[[Any], None]], Any]


def field_picker(name: str) -> Successor:
    """Return a successor picker reading ``name`` off each raw item.

    Mappings are read by key, anything else by attribute. A missing field
    raises SuccessorNotFoundError, which ends the recurrence as a rejection.
    """

    def pick(item: Any) -> Any:
        if isinstance(item, Mapping):
            try:
                return item[name]
            except KeyError:
                raise SuccessorNotFoundError(name, item) from None
        try:
            return getattr(item, name)
        except AttributeError:
            raise SuccessorNotFoundError(name, item) from None

    pick.__qualname__ = f"field_picker({name!r})"
    return pick


@dataclass
class _Accumulator:
    value: Any


class ChainedFuture(Generic[T]):
    """A future with a pipeline of steps and a successor picker.

    Wraps an inner asyncio future. Steps appended via flat_map/map/accumulate
    run, in order, before any fulfillment continuation registered via then()
    or await. The pipeline, successor and trace are shared by reference with
    every chained future produced for later iterations by for_each().

    Attributes:
        inner: The wrapped future; settlement is delegated to it.
        pipeline: Steps applied to every resolved item.
        successor: Picks the future of the next item from a raw item.
        trace: Optional trace recording iterations and stages.
    """

    def __init__(
        self,
        source: Awaitable[T],
        successor: Successor | None = None,
        *,
        pipeline: Pipeline | None = None,
        trace: Trace | None = None,
    ) -> None:
        if isinstance(source, ChainedFuture):
            source = source.inner
        if not inspect.isawaitable(source):
            raise NotAwaitableError(source)
        self._inner: asyncio.Future[T] = asyncio.ensure_future(source)
        self._successor = successor or field_picker("next")
        self._pipeline = pipeline if pipeline is not None else Pipeline()
        self._trace = trace

    @classmethod
    def create(
        cls,
        executor: Executor,
        successor: Successor | None = None,
        *,
        trace: Trace | None = None,
    ) -> ChainedFuture[Any]:
        """Construct from an executor, like a promise.

        ``executor(resolve, reject)`` is called immediately. Only the first
        call to either settles the future; resolving with an awaitable adopts
        its outcome. Rejecting with something other than an exception rejects
        with InvalidRejectionError. An exception raised by the executor
        rejects the future.
        """
        target = asyncio.get_running_loop().create_future()
        locked = False

        def resolve(value: Any = None) -> None:
            nonlocal locked
            if locked:
                return
            locked = True
            if inspect.isawaitable(value):
                adopted = asyncio.ensure_future(value)
                adopted.add_done_callback(functools.partial(future.copy_outcome, target))
            else:
                target.set_result(value)

        def reject(reason: Any) -> None:
            nonlocal locked
            if locked:
                return
            locked = True
            if not isinstance(reason, BaseException):
                reason = InvalidRejectionError(reason)
            target.set_exception(reason)

        try:
            executor(resolve, reject)
        except Exception as exc:
            reject(exc)
        return cls(target, successor, trace=trace)

    @classmethod
    def from_future(
        cls,
        source: Awaitable[T],
        successor: Successor | None = None,
        *,
        trace: Trace | None = None,
    ) -> ChainedFuture[T]:
        """Wrap an existing future, task or coroutine."""
        return cls(source, successor, trace=trace)

    field_picker = staticmethod(field_picker)

    @property
    def inner(self) -> asyncio.Future[T]:
        return self._inner

    @property
    def pipeline(self) -> Pipeline:
        return self._pipeline

    @property
    def successor(self) -> Successor:
        return self._successor

    @property
    def trace(self) -> Trace | None:
        return self._trace

    def flat_map(self, fn: Callable[[Any], Awaitable[Any] | Any]) -> ChainedFuture[Any]:
        """Append an asynchronous step to the pipeline.

        Args:
            fn: Takes the current value, returns the next value or an
                awaitable of it

        Returns:
            This chained future, for fluent composition
        """
        self._pipeline.append(fn)
        return self

    def map(self, fn: Callable[[Any], U]) -> ChainedFuture[U]:
        """Append a synchronous step to the pipeline."""

        def apply(value: Any) -> asyncio.Future[U]:
            return future.resolved(fn(value))

        apply.__qualname__ = f"map({step_name(fn)})"
        return self.flat_map(apply)

    def accumulate(
        self,
        fn: Callable[[U, Any], Awaitable[U] | U],
        initial: U,
    ) -> ChainedFuture[U]:
        """Turn the pipeline's values into a running fold.

        Appends two steps: one computing ``fn(accumulated, value)`` and one
        storing the result as the new accumulation and passing it on. Later
        steps and for_each see the accumulated value. The accumulation is
        private to this call.

        Args:
            fn: Takes the previous accumulation and the current value, returns
                the next accumulation or an awaitable of it
            initial: Accumulation before the first item

        Returns:
            This chained future, for fluent composition
        """
        cell = _Accumulator(initial)

        def fold(value: Any) -> Awaitable[U] | U:
            return fn(cell.value, value)

        def store(accumulated: U) -> U:
            cell.value = accumulated
            return accumulated

        return self.flat_map(fold).flat_map(store)

    def then(
        self,
        on_fulfilled: Callable[[Any], Any] | None = None,
        on_rejected: Callable[[BaseException], Any] | None = None,
    ) -> asyncio.Task[Any]:
        """Register continuations, running the pipeline before on_fulfilled.

        Without on_fulfilled (a catch) the pipeline is skipped entirely. A
        failing stage skips the remaining stages and on_fulfilled; only then
        is on_rejected called, with the original exception.
        """
        if on_fulfilled is None:
            return future.then(self._inner, None, on_rejected)
        if not self._pipeline:
            return future.then(self._inner, on_fulfilled, on_rejected)
        steps = self._pipeline.seal()
        return future.then(self._transformed(steps), on_fulfilled, on_rejected)

    def catch(self, on_rejected: Callable[[BaseException], Any]) -> asyncio.Task[Any]:
        return self.then(None, on_rejected)

    def for_each(self, fn: Callable[[Any], Any], config: FixConfig | None = None) -> asyncio.Task[Any]:
        """Run ``fn`` on every item of the recurring sequence.

        For each item: run the pipeline, call ``fn`` with the result (awaiting
        it if it returns an awaitable), then request the next item from the
        successor picker applied to the raw item. Iterations never overlap.

        Args:
            fn: Side-effect callback; its result is discarded
            config: Runner settings

        Returns:
            Runner task. It fails with the first error of any iteration and
            otherwise never completes.
        """
        steps = self._pipeline.seal()
        trace = self._trace
        index = 0

        async def step(current: ChainedFuture[Any]) -> ChainedFuture[Any]:
            nonlocal index
            scope = trace.iteration(index) if trace is not None else contextlib.nullcontext()
            with scope as iteration_id:
                raw, value = await current._apply(steps, iteration_id)
                await future.settle(fn(value))
                successor = current._next(raw)
            index += 1
            return successor

        return fix(step, self, config)

    def _next(self, raw: Any) -> ChainedFuture[Any]:
        return ChainedFuture(
            self._successor(raw),
            self._successor,
            pipeline=self._pipeline,
            trace=self._trace,
        )

    async def _apply(
        self,
        steps: tuple[Step, ...],
        parent_id: int | None = None,
    ) -> tuple[Any, Any]:
        raw = await self._inner
        value = raw
        for index, step in enumerate(steps):
            value = await self._run_stage(index, step, value, parent_id)
        return raw, value

    async def _transformed(self, steps: tuple[Step, ...]) -> Any:
        _, value = await self._apply(steps)
        return value

    async def _run_stage(self, index: int, step: Step, value: Any, parent_id: int | None) -> Any:
        if self._trace is None:
            return await future.settle(step(value))
        with self._trace.stage(index, step_name(step), parent_id):
            return await future.settle(step(value))

    def __await__(self) -> Generator[Any, None, T]:
        # An empty pipeline stays open, as with then()
        steps = self._pipeline.seal() if self._pipeline else ()
        return self._transformed(steps).__await__()

    def __repr__(self) -> str:
        if not self._inner.done():
            state = "pending"
        elif self._inner.cancelled():
            state = "cancelled"
        elif self._inner.exception() is not None:
            state = "rejected"
        else:
            state = "fulfilled"
        return f"<ChainedFuture {state} steps={len(self._pipeline)}>"


def promote(
    source: Awaitable[T],
    successor: Successor | None = None,
    *,
    trace: Trace | None = None,
) -> ChainedFuture[T]:
    """Wrap ``source`` in a chained future. The source keeps its identity."""
    return ChainedFuture.from_future(source, successor, trace=trace)
