"""Builders and fakes shared by hierarchy and fetch-layer tests."""

from __future__ import annotations

import inspect
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from agencytree.domain.model import RelationRecord, RelationStatus
from agencytree.domain.ports import TransportResponse

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from agencytree.domain.model import UploadFile

    type GetHandler = Callable[[str], TransportResponse | Awaitable[TransportResponse]]
    type PostHandler = Callable[[str, UploadFile], TransportResponse]

BASE_TIME = datetime(2024, 1, 1, tzinfo=UTC)


def make_record(
    producer_id: str,
    *,
    upline: str | None = None,
    npn: str | None = None,
    firm_id: str = "323",
    status: RelationStatus = RelationStatus.ACTIVE,
    added_on: datetime | None = BASE_TIME,
    branch_code: str | None = None,
    errors: str = "",
) -> RelationRecord:
    return RelationRecord(
        producer_id=producer_id,
        firm_id=firm_id,
        status=status,
        branch_code=branch_code,
        added_on=added_on,
        upline=upline,
        npn=npn,
        errors=errors,
    )


def relation_payload(
    producer_id: int | str,
    *,
    upline: str | None = None,
    npn: str | None = None,
    ga_id: int = 323,
    status: str = "Active",
    added_on: str = "2024-01-01T00:00:00",
) -> dict[str, object]:
    return {
        "gaId": ga_id,
        "producerId": producer_id,
        "branchCode": "MAIN",
        "upline": upline,
        "status": status,
        "addedOn": added_on,
        "errors": None,
        "warnings": None,
        "npn": npn,
    }


def chain_records(length: int, *, prefix: str = "p") -> list[RelationRecord]:
    """A single upline chain ``p0 <- p1 <- ... <- p{length-1}``."""

    records = [make_record(f"{prefix}0")]
    for index in range(1, length):
        records.append(
            make_record(
                f"{prefix}{index}",
                upline=f"{prefix}{index - 1}",
                added_on=BASE_TIME + timedelta(minutes=index),
            )
        )
    return records


_OFFSET = re.compile(r"[?&]offset=(\d+)")
_LIMIT = re.compile(r"[?&]limit=(\d+)")


def page_params(path: str) -> tuple[int, int]:
    offset = _OFFSET.search(path)
    limit = _LIMIT.search(path)
    assert offset is not None and limit is not None, path
    return int(offset.group(1)), int(limit.group(1))


@dataclass
class FakeTransport:
    """In-memory ``Transport`` recording every call it receives."""

    get_handler: GetHandler | None = None
    post_handler: PostHandler | None = None
    gets: list[str] = field(default_factory=list)
    posts: list[tuple[str, UploadFile]] = field(default_factory=list)
    credentials: list[str] = field(default_factory=list)
    closed: bool = False

    async def http_get(self, path: str, credential: str) -> TransportResponse:
        self.gets.append(path)
        self.credentials.append(credential)
        if self.get_handler is None:
            return TransportResponse(404, "not found")
        response = self.get_handler(path)
        if inspect.isawaitable(response):
            response = await response
        return response

    async def http_post_multipart(
        self,
        path: str,
        credential: str,
        file: UploadFile,
    ) -> TransportResponse:
        self.posts.append((path, file))
        self.credentials.append(credential)
        if self.post_handler is None:
            return TransportResponse(404, "not found")
        return self.post_handler(path, file)

    async def aclose(self) -> None:
        self.closed = True


def paged_handler(
    sizes: list[int],
    *,
    fail_at_offset: int | None = None,
) -> Callable[[str], TransportResponse]:
    """Serve pages of the given sizes, each row tagged with its absolute index."""

    def handler(path: str) -> TransportResponse:
        offset, limit = page_params(path)
        if fail_at_offset is not None and offset == fail_at_offset:
            return TransportResponse(503, "upstream unavailable")
        page_number = offset // limit
        size = sizes[page_number] if page_number < len(sizes) else 0
        return TransportResponse(200, [{"row": offset + index} for index in range(size)])

    return handler
