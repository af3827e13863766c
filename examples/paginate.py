from __future__ import annotations

import asyncio
import logging

from chained_future import FixConfig, Link, SequenceEnd, Trace, promote

PAGES = {
    None: (["alpha", "beta"], "c1"),
    "c1": (["gamma"], "c2"),
    "c2": (["delta", "epsilon"], None),
}


async def fetch_page(cursor: str | None) -> Link[list[str]]:
    """Simulated paginated API: each page links to the request for the next one."""
    await asyncio.sleep(0.01)
    rows, next_cursor = PAGES[cursor]
    if next_cursor is None:
        nxt = asyncio.get_running_loop().create_future()
        nxt.set_exception(SequenceEnd("last page"))
    else:
        nxt = asyncio.ensure_future(fetch_page(next_cursor))
    return Link(value=rows, next=nxt)


async def main() -> None:
    trace = Trace()
    pages = (
        promote(fetch_page(None), trace=trace)
        .map(lambda link: link.value)
        .accumulate(lambda total, rows: total + len(rows), 0)
    )
    runner = pages.for_each(lambda total: print(f"rows so far: {total}"), FixConfig(name="pages"))
    try:
        await runner
    except SequenceEnd as end:
        print(f"finished: {end}")

    for event in trace.get_events():
        print(f"  {event.id:>2} {event.action:<16} parent={event.parent_id} {event.info}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG, format="%(levelname)-5.5s [%(name)s] %(message)s")
    asyncio.run(main())
