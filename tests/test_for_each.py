import asyncio

import pytest

from chained_future import (
    ChainedFuture,
    FixConfig,
    NotAwaitableError,
    PipelineSealedError,
    SequenceEnd,
    SuccessorNotFoundError,
    promote,
    rejected,
    resolved,
)
from fakes import PendingSequence, link_sequence, scripted_sequence


async def drain(ticks: int = 20) -> None:
    for _ in range(ticks):
        await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_for_each_end_to_end() -> None:
    collected = []
    chained = promote(scripted_sequence([1, 2, 3], SequenceEnd("done")))
    loop_task = chained.map(lambda o: o["v"] * 10).for_each(collected.append)

    with pytest.raises(SequenceEnd, match="done"):
        await loop_task
    assert collected == [10, 20, 30]


@pytest.mark.asyncio
async def test_for_each_calls_fn_before_requesting_successor() -> None:
    log = []

    def successor(item):
        log.append(f"successor:{item['v']}")
        return item["next"]

    chained = promote(scripted_sequence([1, 2, 3]), successor)
    loop_task = chained.for_each(lambda item: log.append(f"fn:{item['v']}"))

    with pytest.raises(SequenceEnd):
        await loop_task
    assert log == [
        "fn:1", "successor:1",
        "fn:2", "successor:2",
        "fn:3", "successor:3",
    ]


@pytest.mark.asyncio
async def test_iterations_never_overlap() -> None:
    active = 0
    peak = 0

    async def slow_stage(item):
        nonlocal active, peak
        active += 1
        peak = max(peak, active)
        await asyncio.sleep(0)
        return item

    def finish(item):
        nonlocal active
        active -= 1

    chained = promote(scripted_sequence(list(range(20)))).flat_map(slow_stage)
    with pytest.raises(SequenceEnd):
        await chained.for_each(finish)
    assert peak == 1
    assert active == 0


@pytest.mark.asyncio
async def test_for_each_waits_for_pending_items() -> None:
    sequence = PendingSequence()
    seen = []
    loop_task = promote(sequence.head).map(lambda o: o["v"]).for_each(seen.append)

    await drain()
    assert seen == []

    sequence.release("a")
    await drain()
    assert seen == ["a"]

    sequence.release("b")
    await drain()
    assert seen == ["a", "b"]
    assert not loop_task.done()

    sequence.finish(SequenceEnd("no more pages"))
    with pytest.raises(SequenceEnd, match="no more pages"):
        await loop_task


@pytest.mark.asyncio
async def test_for_each_awaits_async_callback() -> None:
    seen = []

    async def store(value):
        await asyncio.sleep(0)
        seen.append(value)

    with pytest.raises(SequenceEnd):
        await promote(scripted_sequence(["x", "y"])).map(lambda o: o["v"]).for_each(store)
    assert seen == ["x", "y"]


@pytest.mark.asyncio
async def test_accumulate_with_for_each_observes_running_totals() -> None:
    observed = []
    chained = (
        promote(scripted_sequence([1, 2, 3]))
        .map(lambda o: o["v"])
        .accumulate(lambda acc, v: resolved(acc + v), 0)
    )
    with pytest.raises(SequenceEnd):
        await chained.for_each(observed.append)
    assert observed == [1, 3, 6]


@pytest.mark.asyncio
async def test_separate_accumulations_do_not_share_state() -> None:
    totals = []
    counts = []
    chained = (
        promote(scripted_sequence([2, 4]))
        .map(lambda o: o["v"])
        .accumulate(lambda acc, v: acc + v, 0)
        .accumulate(lambda acc, total: acc + 1, 0)
        .accumulate(lambda acc, count: acc + [count], [])
    )

    def observe(history):
        counts.append(list(history))

    with pytest.raises(SequenceEnd):
        await chained.for_each(observe)
    assert counts == [[1], [1, 2]]

    other = promote(scripted_sequence([5])).map(lambda o: o["v"]).accumulate(lambda acc, v: acc + v, 0)
    with pytest.raises(SequenceEnd):
        await other.for_each(totals.append)
    assert totals == [5]


@pytest.mark.asyncio
async def test_successors_share_pipeline_and_successor() -> None:
    seen = []

    def successor(item):
        return item["next"]

    chained = promote(scripted_sequence([1, 2]), successor).map(lambda o: o["v"])
    pipeline = chained.pipeline

    nxt = chained._next({"v": 1, "next": resolved("end")})
    assert nxt.pipeline is pipeline
    assert nxt.successor is successor

    with pytest.raises(SequenceEnd):
        await chained.for_each(seen.append)
    assert seen == [1, 2]


@pytest.mark.asyncio
async def test_stage_failure_ends_recurrence_with_original_error() -> None:
    seen = []
    error = ValueError("bad item")

    def check(item):
        if item["v"] == 2:
            raise error
        return item["v"]

    loop_task = promote(scripted_sequence([1, 2, 3])).map(check).for_each(seen.append)
    with pytest.raises(ValueError) as info:
        await loop_task
    assert info.value is error
    assert seen == [1]


@pytest.mark.asyncio
async def test_missing_successor_field_ends_recurrence() -> None:
    items = resolved({"v": 1})
    with pytest.raises(SuccessorNotFoundError):
        await promote(items).for_each(lambda item: None)


@pytest.mark.asyncio
async def test_non_awaitable_successor_ends_recurrence() -> None:
    items = resolved({"v": 1, "next": "not a future"})
    with pytest.raises(NotAwaitableError):
        await promote(items).for_each(lambda item: None)


@pytest.mark.asyncio
async def test_for_each_seals_pipeline() -> None:
    chained = promote(scripted_sequence([1])).map(lambda o: o["v"])
    loop_task = chained.for_each(lambda v: None)
    with pytest.raises(PipelineSealedError):
        chained.map(str)
    with pytest.raises(SequenceEnd):
        await loop_task


@pytest.mark.asyncio
async def test_for_each_is_stack_safe() -> None:
    limit = 10_000
    count = 0

    def successor(n):
        if n == limit:
            return rejected(SequenceEnd("limit"))
        return resolved(n + 1)

    def observe(n):
        nonlocal count
        count += 1

    chained = ChainedFuture(resolved(1), successor).map(lambda n: n)
    with pytest.raises(SequenceEnd, match="limit"):
        await chained.for_each(observe, FixConfig(yield_every=100))
    assert count == limit


@pytest.mark.asyncio
async def test_for_each_over_link_items() -> None:
    seen = []
    with pytest.raises(SequenceEnd):
        await promote(link_sequence(["p1", "p2"])).map(lambda link: link.value).for_each(seen.append)
    assert seen == ["p1", "p2"]


@pytest.mark.asyncio
async def test_rejection_handler_can_restart_iteration() -> None:
    seen = []
    attempts = 0

    async def run_once():
        nonlocal attempts
        attempts += 1
        chained = promote(scripted_sequence([attempts])).map(lambda o: o["v"])
        await chained.for_each(seen.append)

    for _ in range(2):
        with pytest.raises(SequenceEnd):
            await run_once()
    assert seen == [1, 2]
