"""Staggered per-entity fetches with independent outcomes."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable, Iterator

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FetchSuccess[T]:
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class FetchFailure:
    error: Exception

    @property
    def ok(self) -> bool:
        return False


type FetchOutcome[T] = FetchSuccess[T] | FetchFailure


@dataclass(frozen=True, slots=True)
class FanOutResult[K, T]:
    """Outcome per input id; every distinct id appears exactly once."""

    outcomes: dict[K, FetchOutcome[T]]

    def __len__(self) -> int:
        return len(self.outcomes)

    def __iter__(self) -> Iterator[K]:
        return iter(self.outcomes)

    def __getitem__(self, key: K) -> FetchOutcome[T]:
        return self.outcomes[key]

    @property
    def successes(self) -> dict[K, T]:
        return {
            key: outcome.value
            for key, outcome in self.outcomes.items()
            if isinstance(outcome, FetchSuccess)
        }

    @property
    def failures(self) -> dict[K, Exception]:
        return {
            key: outcome.error
            for key, outcome in self.outcomes.items()
            if isinstance(outcome, FetchFailure)
        }

    def value_or(self, key: K, default: T) -> T:
        outcome = self.outcomes.get(key)
        if isinstance(outcome, FetchSuccess):
            return outcome.value
        return default


class FanOutFetcher:
    """Launch one fetch per id, the i-th delayed by ``i * min_interval`` seconds.

    All operations run concurrently; a failing item is recorded as
    ``FetchFailure`` and never cancels or delays the others.
    """

    def __init__(self, min_interval: float) -> None:
        self.min_interval = max(0.0, min_interval)

    async def fetch_many[K, T](
        self,
        ids: Iterable[K],
        per_item_fetch: Callable[[K], Awaitable[T]],
    ) -> FanOutResult[K, T]:
        unique_ids = list(dict.fromkeys(ids))
        if not unique_ids:
            return FanOutResult(outcomes={})

        async def run(index: int, item_id: K) -> FetchOutcome[T]:
            delay = index * self.min_interval
            if delay > 0:
                await asyncio.sleep(delay)
            try:
                return FetchSuccess(await per_item_fetch(item_id))
            except Exception as exc:  # noqa: BLE001
                log.warning("Fetch for %s failed: %s", item_id, exc)
                return FetchFailure(exc)

        outcomes = await asyncio.gather(
            *(run(index, item_id) for index, item_id in enumerate(unique_ids))
        )
        result: FanOutResult[K, T] = FanOutResult(
            outcomes=dict(zip(unique_ids, outcomes, strict=True))
        )
        failed = len(result.failures)
        log.info(
            "Fan-out finished: %s succeeded, %s failed", len(unique_ids) - failed, failed
        )
        return result
