"""Minimum-spacing gate shared by every request of one fetch pipeline."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from aiolimiter import AsyncLimiter

if TYPE_CHECKING:
    from types import TracebackType

log = getLogger(__name__)


class RateLimiter:
    """Grant at most one request per ``min_interval`` seconds.

    Waiters are released in arrival order. The first grant is immediate; a
    non-positive interval disables throttling entirely.
    """

    def __init__(self, min_interval: float) -> None:
        self.min_interval = min_interval
        self._limiter: AsyncLimiter | None = (
            AsyncLimiter(1, min_interval) if min_interval > 0 else None
        )
        self._grants = 0

    @property
    def grants(self) -> int:
        return self._grants

    async def acquire(self) -> None:
        if self._limiter is not None:
            if not self._limiter.has_capacity():
                log.debug("Rate limit gate closed; waiting up to %.3fs", self.min_interval)
            await self._limiter.acquire()
        self._grants += 1

    async def __aenter__(self) -> RateLimiter:
        await self.acquire()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        return None
