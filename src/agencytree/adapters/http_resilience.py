from __future__ import annotations

from dataclasses import dataclass, field
from typing import (
    TYPE_CHECKING,
    TypedDict,
    Unpack,
)

import httpx
from httpx_retries import Retry, RetryTransport

from agencytree.config.http_resilience import RetryPolicy
from agencytree.domain.ports import TransportResponse

if TYPE_CHECKING:
    from types import TracebackType

    from httpx._client import UseClientDefault
    from httpx._types import (
        AuthTypes,
        CookieTypes,
        HeaderTypes,
        QueryParamTypes,
        RequestContent,
        RequestData,
        RequestExtensions,
        RequestFiles,
        TimeoutTypes,
        URLTypes,
    )

    from agencytree.config.http_resilience import ResilienceConfig
    from agencytree.domain.model import UploadFile


def build_retry(policy: RetryPolicy) -> Retry:
    return Retry(
        total=policy.total,
        backoff_factor=policy.backoff_factor,
        max_backoff_wait=policy.max_backoff_wait,
        respect_retry_after_header=policy.respect_retry_after_header,
        allowed_methods=tuple(policy.allowed_methods),
        status_forcelist=tuple(policy.status_forcelist),
        retry_on_exceptions=policy.retry_on_exceptions,
        backoff_jitter=policy.backoff_jitter,
    )


class RequestOptions(TypedDict, total=False):
    content: RequestContent | None
    data: RequestData | None
    files: RequestFiles | None
    json: object
    params: QueryParamTypes | None
    headers: HeaderTypes | None
    cookies: CookieTypes | None
    auth: AuthTypes | UseClientDefault | None
    follow_redirects: bool | UseClientDefault
    timeout: TimeoutTypes | UseClientDefault
    extensions: RequestExtensions | None


class AsyncClientOptions(TypedDict, total=False):
    base_url: str
    timeout: TimeoutTypes
    headers: HeaderTypes
    transport: httpx.AsyncBaseTransport


class ResilientClient:
    """``httpx.AsyncClient`` with the configured retry transport.

    Throttling and response caching live in the fetch pipeline, which owns one
    rate limiter and one request cache per session.
    """

    def __init__(self, config: ResilienceConfig) -> None:
        self.config = config

        retry_transport = RetryTransport(retry=build_retry(config.retry))
        headers = dict(config.default_headers) if config.default_headers else None

        client_kwargs: AsyncClientOptions = {
            "timeout": config.timeout_seconds,
            "transport": retry_transport,
        }
        if config.base_url is not None:
            client_kwargs["base_url"] = config.base_url
        if headers is not None:
            client_kwargs["headers"] = headers

        self._client = httpx.AsyncClient(**client_kwargs)

    async def __aenter__(self) -> ResilientClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        method: str,
        url: URLTypes,
        **kwargs: Unpack[RequestOptions],
    ) -> httpx.Response:
        return await self._client.request(method, url, **kwargs)

    async def get(
        self,
        url: URLTypes,
        **kwargs: Unpack[RequestOptions],
    ) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(
        self,
        url: URLTypes,
        **kwargs: Unpack[RequestOptions],
    ) -> httpx.Response:
        return await self.request("POST", url, **kwargs)


def decode_body(response: httpx.Response) -> object:
    """Return parsed JSON for JSON responses and text otherwise."""

    content_type = response.headers.get("content-type", "")
    if "json" in content_type:
        try:
            return response.json()
        except ValueError:
            return response.text
    return response.text


@dataclass(slots=True)
class HttpxTransport:
    """Transport port backed by a ``ResilientClient``."""

    client: ResilientClient
    accept: str = field(default="application/json")

    @classmethod
    def from_config(cls, config: ResilienceConfig) -> HttpxTransport:
        return cls(client=ResilientClient(config))

    async def http_get(self, path: str, credential: str) -> TransportResponse:
        response = await self.client.get(
            path,
            headers={"Authorization": credential, "Accept": self.accept},
        )
        return TransportResponse(status=response.status_code, body=decode_body(response))

    async def http_post_multipart(
        self,
        path: str,
        credential: str,
        file: UploadFile,
    ) -> TransportResponse:
        response = await self.client.post(
            path,
            headers={"Authorization": credential, "Accept": self.accept},
            files={"file": (file.filename, file.content, file.content_type)},
        )
        return TransportResponse(status=response.status_code, body=decode_body(response))

    async def aclose(self) -> None:
        await self.client.aclose()
