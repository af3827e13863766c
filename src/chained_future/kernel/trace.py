"""Runtime trace infrastructure - separate from sequence values.

A trace records what a recurrence did: which iteration ran, which pipeline
stage ran inside it, how long each took and where it failed. Values flowing
through the pipeline are never stored, only stage names and error text.
"""

from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


@dataclass(frozen=True)
class TraceEvent:
    """A single recorded event.

    Attributes:
        action: One of iteration_begin/end/error or stage_begin/end/error
        id: Sequential event id within its trace
        parent_id: Id of the enclosing event, if any
        timestamp: When the event was recorded
        info: Iteration index, stage index and name, error text
        duration_ms: Execution duration for *_end events
    """

    action: str
    id: int = 0
    parent_id: int | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    info: dict[str, Any] = field(default_factory=dict)
    duration_ms: float | None = None


class Trace:
    """Event log for iterations and pipeline stages.

    Parents are always passed explicitly: a trace may be shared by a
    recurrence and by unrelated continuations on the same loop, so there
    is no implicit "current" event.
    """

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled
        self._events: list[TraceEvent] = []

    @contextmanager
    def iteration(self, index: int) -> Iterator[int | None]:
        """Record one recurrence iteration around the enclosed block.

        Yields the iteration event id (None when disabled), to be passed as
        parent to the stages run inside it.
        """
        begin_id = self._record("iteration_begin", {"index": index})
        start_time = time.perf_counter()
        try:
            yield begin_id
        except Exception as exc:
            self._record("iteration_error", {"index": index, "error": repr(exc)}, begin_id)
            raise
        self._record("iteration_end", {"index": index}, begin_id, _elapsed_ms(start_time))

    @contextmanager
    def stage(self, index: int, name: str, parent_id: int | None = None) -> Iterator[int | None]:
        """Record one pipeline stage around the enclosed block."""
        begin_id = self._record("stage_begin", {"index": index, "name": name}, parent_id)
        start_time = time.perf_counter()
        try:
            yield begin_id
        except Exception as exc:
            self._record("stage_error", {"index": index, "error": repr(exc)}, begin_id)
            raise
        self._record("stage_end", {"index": index}, begin_id, _elapsed_ms(start_time))

    def _record(
        self,
        action: str,
        info: dict[str, Any],
        parent_id: int | None = None,
        duration_ms: float | None = None,
    ) -> int | None:
        if not self.enabled:
            return None
        event_id = len(self._events)
        self._events.append(
            TraceEvent(
                action=action,
                id=event_id,
                parent_id=parent_id,
                info=info,
                duration_ms=duration_ms,
            )
        )
        return event_id

    def get_events(self) -> list[TraceEvent]:
        """Get a copy of all recorded events."""
        return list(self._events)

    def find_all(self, action: str) -> list[TraceEvent]:
        """Get all events with the given action, in recording order."""
        return [ev for ev in self._events if ev.action == action]

    def children(self, event_id: int | None) -> list[TraceEvent]:
        """Get the events recorded under ``event_id`` (None: top level)."""
        return [ev for ev in self._events if ev.parent_id == event_id]

    def __len__(self) -> int:
        return len(self._events)

    def clear(self) -> None:
        self._events.clear()


def _elapsed_ms(start_time: float) -> float:
    return (time.perf_counter() - start_time) * 1000
