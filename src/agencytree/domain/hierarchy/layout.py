"""Debounced hand-off of visible sets to an expensive layout step."""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from .traversal import VisibleSet

log = getLogger(__name__)

DEFAULT_LAYOUT_DEBOUNCE_SECONDS = 0.06


class LayoutScheduler[T]:
    """Run ``layout`` on the latest visible set once requests go quiet.

    Each ``request`` cancels the pending one and restarts the quiet period, so only
    the newest visible set is laid out. A failing layout keeps the previous
    ``current`` result.
    """

    def __init__(
        self,
        layout: Callable[[VisibleSet], Awaitable[T]],
        *,
        debounce: float = DEFAULT_LAYOUT_DEBOUNCE_SECONDS,
        on_layout: Callable[[T], None] | None = None,
    ) -> None:
        self._layout = layout
        self.debounce = max(0.0, debounce)
        self.on_layout = on_layout
        self.current: T | None = None
        self.last_error: Exception | None = None
        self.completed_runs = 0
        self._pending: asyncio.Task[None] | None = None

    @property
    def pending(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def request(self, visible: VisibleSet) -> None:
        """Schedule a layout of ``visible``; requires a running event loop."""

        task = self._pending
        if task is not None and not task.done():
            task.cancel()
        self._pending = asyncio.get_running_loop().create_task(self._run(visible))

    async def _run(self, visible: VisibleSet) -> None:
        await asyncio.sleep(self.debounce)
        try:
            result = await self._layout(visible)
        except Exception as exc:  # noqa: BLE001
            self.last_error = exc
            log.warning("Layout of %s nodes failed, keeping previous layout: %s", len(visible), exc)
            return
        self.current = result
        self.last_error = None
        self.completed_runs += 1
        log.debug("Laid out %s nodes", len(visible))
        if self.on_layout is not None:
            self.on_layout(result)

    async def flush(self) -> T | None:
        """Wait until no layout is pending and return the current result."""

        while self._pending is not None and not self._pending.done():
            await asyncio.wait({self._pending})
        return self.current

    async def aclose(self) -> None:
        task = self._pending
        self._pending = None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.wait({task})
