"""Per-session fetch pipeline: one transport, one rate limiter, one request cache."""

from __future__ import annotations

import hashlib
from logging import getLogger
from typing import TYPE_CHECKING

from agencytree.config.http_resilience import DEFAULT_CACHE_TTL_SECONDS

from .errors import TransportError
from .rate_limiter import RateLimiter
from .request_cache import RequestCache

if TYPE_CHECKING:
    from types import TracebackType

    from agencytree.config.http_resilience import ResilienceConfig
    from agencytree.domain.model import UploadFile
    from agencytree.domain.ports import Transport, TransportResponse

log = getLogger(__name__)


def credential_identity(credential: str) -> str:
    """Short digest identifying a credential without exposing it."""

    return hashlib.sha256(credential.encode("utf-8")).hexdigest()[:16]


class FetchPipeline:
    """Route every outbound request through a shared limiter and cache.

    Instances are created once per session and injected into the fetchers; tests
    build isolated instances around fake transports. Closing the pipeline closes
    the transport.
    """

    def __init__(
        self,
        transport: Transport,
        credential: str,
        *,
        limiter: RateLimiter | None = None,
        cache: RequestCache | None = None,
    ) -> None:
        self.transport = transport
        # explicit None checks: an empty RequestCache is falsy
        self.limiter = limiter if limiter is not None else RateLimiter(0.0)
        self.cache = cache if cache is not None else RequestCache(DEFAULT_CACHE_TTL_SECONDS)
        self._credential = credential
        self._credential_id = credential_identity(credential)

    @classmethod
    def from_config(
        cls,
        transport: Transport,
        credential: str,
        config: ResilienceConfig,
    ) -> FetchPipeline:
        min_interval = config.ratelimit.min_interval_seconds if config.ratelimit else 0.0
        ttl = config.cache.ttl_seconds if config.cache and config.cache.enabled else 0.0
        return cls(
            transport,
            credential,
            limiter=RateLimiter(min_interval),
            cache=RequestCache(ttl),
        )

    async def __aenter__(self) -> FetchPipeline:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        self.cache.clear()
        await self.transport.aclose()

    def cache_key(self, path: str) -> str:
        return f"{path}:{self._credential_id}"

    async def get_json(self, path: str) -> object:
        """GET ``path`` and return the decoded body; non-2xx raises ``TransportError``."""

        await self.limiter.acquire()

        async def produce() -> object:
            response = await self.transport.http_get(path, self._credential)
            return _checked_body(response, path)

        return await self.cache.get(self.cache_key(path), produce)

    async def post_file(self, path: str, file: UploadFile) -> object:
        """POST a multipart upload; never cached."""

        await self.limiter.acquire()
        response = await self.transport.http_post_multipart(path, self._credential, file)
        return _checked_body(response, path)

    def refresh(self) -> None:
        """Forget cached responses so the next reads hit the network."""

        self.cache.clear()


def _checked_body(response: TransportResponse, path: str) -> object:
    if not response.ok:
        log.warning("Request to %s failed with HTTP %s", path, response.status)
        raise TransportError(response.status, response.body, path=path)
    return response.body
