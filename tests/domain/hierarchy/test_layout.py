from __future__ import annotations

import asyncio

from agencytree.domain.hierarchy import LayoutScheduler, VisibleNode, VisibleSet


def _visible(*ids: str) -> VisibleSet:
    return VisibleSet(nodes=tuple(VisibleNode(id=node_id, depth=0) for node_id in ids))


def test_only_latest_request_is_laid_out() -> None:
    laid_out: list[tuple[str, ...]] = []

    async def layout(visible: VisibleSet) -> tuple[str, ...]:
        laid_out.append(visible.node_ids)
        return visible.node_ids

    async def scenario() -> tuple[str, ...] | None:
        scheduler = LayoutScheduler(layout, debounce=0.02)
        scheduler.request(_visible("a"))
        await asyncio.sleep(0.005)
        scheduler.request(_visible("a", "b"))
        await asyncio.sleep(0.005)
        scheduler.request(_visible("a", "b", "c"))
        return await scheduler.flush()

    assert asyncio.run(scenario()) == ("a", "b", "c")
    assert laid_out == [("a", "b", "c")]


def test_requests_after_quiet_period_each_run() -> None:
    calls = 0

    async def layout(visible: VisibleSet) -> int:
        nonlocal calls
        calls += 1
        return len(visible)

    async def scenario() -> LayoutScheduler[int]:
        scheduler = LayoutScheduler(layout, debounce=0.001)
        scheduler.request(_visible("a"))
        await scheduler.flush()
        scheduler.request(_visible("a", "b"))
        await scheduler.flush()
        return scheduler

    scheduler = asyncio.run(scenario())

    assert calls == 2
    assert scheduler.current == 2
    assert scheduler.completed_runs == 2


def test_failed_layout_keeps_previous_result() -> None:
    async def layout(visible: VisibleSet) -> str:
        if "bad" in visible.node_ids:
            raise RuntimeError("layout engine crashed")
        return ",".join(visible.node_ids)

    notified: list[str] = []

    async def scenario() -> LayoutScheduler[str]:
        scheduler = LayoutScheduler(layout, debounce=0.001, on_layout=notified.append)
        scheduler.request(_visible("a", "b"))
        await scheduler.flush()
        scheduler.request(_visible("bad"))
        await scheduler.flush()
        return scheduler

    scheduler = asyncio.run(scenario())

    assert scheduler.current == "a,b"
    assert isinstance(scheduler.last_error, RuntimeError)
    assert notified == ["a,b"]


def test_aclose_cancels_pending_layout() -> None:
    calls = 0

    async def layout(visible: VisibleSet) -> int:
        nonlocal calls
        calls += 1
        return len(visible)

    async def scenario() -> bool:
        scheduler = LayoutScheduler(layout, debounce=0.05)
        scheduler.request(_visible("a"))
        await scheduler.aclose()
        await asyncio.sleep(0.08)
        return scheduler.pending

    assert asyncio.run(scenario()) is False
    assert calls == 0


def test_new_request_cancels_the_superseded_task() -> None:
    async def layout(visible: VisibleSet) -> int:
        return len(visible)

    async def scenario() -> tuple[bool, bool, int | None]:
        scheduler = LayoutScheduler(layout, debounce=0.05)
        scheduler.request(_visible("a"))
        first = scheduler._pending  # noqa: SLF001  # type: ignore[reportPrivateUsage]
        scheduler.request(_visible("a", "b"))
        result = await scheduler.flush()
        assert first is not None
        return first.cancelled(), scheduler.pending, result

    assert asyncio.run(scenario()) == (True, False, 2)
