"""In-flight de-duplication with a short-lived response cache."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, cast

from agencytree.config.http_resilience import DEFAULT_CACHE_TTL_SECONDS

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

log = getLogger(__name__)

type Producer[T] = Callable[[], Awaitable[T]]


@dataclass(frozen=True)
class CacheStats:
    """Expose basic cache metrics for diagnostics."""

    size: int
    hits: int
    misses: int
    ttl_seconds: float


@dataclass(slots=True)
class CacheEntry:
    key: str
    future: asyncio.Future[object]
    created_at: float
    ttl: float
    settled_at: float | None = None
    eviction: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return not self.future.done()

    def is_fresh(self, now: float) -> bool:
        if self.pending:
            return True
        if self.settled_at is None:
            return False
        return now - self.settled_at < self.ttl


class RequestCache:
    """Share in-flight work per key and keep successful results for ``ttl`` seconds.

    The entry for a key is registered before the producer first suspends, so every
    caller arriving while the request is in flight awaits the same future. Failures
    are never cached: the entry is dropped and the error is raised in every waiter.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_CACHE_TTL_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    async def get[T](self, key: str, producer: Producer[T]) -> T:
        entry = self._entries.get(key)
        if entry is not None:
            if entry.pending:
                self._hits += 1
                log.debug("Joining in-flight request for %s", key)
                return cast("T", await asyncio.shield(entry.future))
            if entry.is_fresh(self._clock()):
                self._hits += 1
                log.debug("Serving cached response for %s", key)
                return cast("T", entry.future.result())
            self._evict(entry)

        self._misses += 1
        loop = asyncio.get_running_loop()
        entry = CacheEntry(
            key=key,
            future=loop.create_future(),
            created_at=self._clock(),
            ttl=self.ttl,
        )
        self._entries[key] = entry

        try:
            value = await producer()
        except Exception as exc:
            self._evict(entry)
            entry.future.set_exception(exc)
            # waiters may not exist; mark the exception as retrieved
            entry.future.exception()
            raise
        except asyncio.CancelledError:
            self._evict(entry)
            entry.future.cancel()
            raise

        entry.settled_at = self._clock()
        entry.future.set_result(value)
        if self._entries.get(key) is entry:
            if self.ttl > 0:
                entry.eviction = loop.call_later(self.ttl, self._evict, entry)
            else:
                self._evict(entry)
        return value

    def invalidate(self, key: str) -> None:
        entry = self._entries.get(key)
        if entry is not None:
            self._evict(entry)

    def clear(self) -> None:
        """Drop every entry; in-flight requests still complete for their own callers."""

        for entry in self._entries.values():
            if entry.eviction is not None:
                entry.eviction.cancel()
        self._entries.clear()
        log.debug("Request cache cleared")

    def stats(self) -> CacheStats:
        return CacheStats(
            size=len(self._entries),
            hits=self._hits,
            misses=self._misses,
            ttl_seconds=self.ttl,
        )

    def _evict(self, entry: CacheEntry) -> None:
        if entry.eviction is not None:
            entry.eviction.cancel()
            entry.eviction = None
        if self._entries.get(entry.key) is entry:
            del self._entries[entry.key]
