"""Configuration types for resilient HTTP clients."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    from collections.abc import Mapping

DEFAULT_MIN_INTERVAL_SECONDS = 0.05
DEFAULT_CACHE_TTL_SECONDS = 30.0


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """Transport-level retry settings.

    ``total`` defaults to zero: transport errors reach the caller untouched and
    pagination aborts on the first failed page. Raise it only for deployments that
    accept duplicated upstream requests.
    """

    total: int = 0
    backoff_factor: float = 0.5
    max_backoff_wait: float = 60.0
    respect_retry_after_header: bool = True
    allowed_methods: frozenset[str] = field(default_factory=lambda: frozenset({"GET", "HEAD"}))
    status_forcelist: frozenset[int] = field(
        default_factory=lambda: frozenset({429, 500, 502, 503, 504})
    )
    retry_on_exceptions: tuple[type[httpx.HTTPError], ...] = (
        httpx.TimeoutException,
        httpx.NetworkError,
        httpx.RemoteProtocolError,
    )
    backoff_jitter: float = 1.0


@dataclass(slots=True, frozen=True)
class RateLimit:
    min_interval_seconds: float = DEFAULT_MIN_INTERVAL_SECONDS


@dataclass(slots=True, frozen=True)
class CacheConfig:
    enabled: bool = True
    ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS


@dataclass(slots=True, frozen=True)
class ResilienceConfig:
    name: str
    base_url: str | None = None
    timeout_seconds: float = 30.0
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    ratelimit: RateLimit | None = field(default_factory=RateLimit)
    cache: CacheConfig | None = field(default_factory=CacheConfig)
    default_headers: Mapping[str, str] | None = None
