"""Transport and credential ports consumed by the fetch layer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from agencytree.domain.model import UploadFile


@dataclass(frozen=True, slots=True)
class TransportResponse:
    """Status code plus a decoded body (JSON value, or text when not JSON)."""

    status: int
    body: object

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


@runtime_checkable
class Transport(Protocol):
    async def http_get(self, path: str, credential: str) -> TransportResponse: ...

    async def http_post_multipart(
        self,
        path: str,
        credential: str,
        file: UploadFile,
    ) -> TransportResponse: ...

    async def aclose(self) -> None: ...


@runtime_checkable
class CredentialProvider(Protocol):
    """Yields an opaque bearer/Basic token per logical account."""

    def token_for(self, account: str) -> str: ...
