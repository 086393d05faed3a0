"""Offset/limit pagination over an unbounded record set."""

from __future__ import annotations

import re
from datetime import UTC, date, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from .errors import PaginationError, PayloadError

if TYPE_CHECKING:
    from .pipeline import FetchPipeline

log = getLogger(__name__)

CANONICAL_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"
EPOCH_FALLBACK = "1970-01-01T00:00:00"
DEFAULT_PAGE_SIZE = 1000

_ALTERNATE_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d",
    "%Y/%m/%d %H:%M:%S",
    "%m/%d/%Y",
    "%m/%d/%Y %H:%M:%S",
    "%d.%m.%Y",
    "%Y%m%d",
)
_EMBEDDED_DATE = re.compile(r"(\d{4})-(\d{1,2})-(\d{1,2})")


def _canonical(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(UTC).replace(tzinfo=None)
    return value.strftime(CANONICAL_TIMESTAMP_FORMAT)


def normalize_timestamp(value: str | datetime | date) -> str:
    """Return ``value`` as ``YYYY-MM-DDTHH:MM:SS`` in UTC.

    Naive inputs are taken as UTC. Strings that are not ISO-8601 are tried against a
    few common formats, then scanned for an embedded ``YYYY-MM-DD``; as a last resort
    the epoch start is returned so the caller fetches a superset instead of failing.
    """

    if isinstance(value, datetime):
        return _canonical(value)
    if isinstance(value, date):
        return _canonical(datetime(value.year, value.month, value.day))

    text = value.strip()
    iso_text = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        return _canonical(datetime.fromisoformat(iso_text))
    except ValueError:
        pass

    for fmt in _ALTERNATE_FORMATS:
        try:
            return _canonical(datetime.strptime(text, fmt))  # noqa: DTZ007
        except ValueError:
            continue

    match = _EMBEDDED_DATE.search(text)
    if match:
        year, month, day = (int(part) for part in match.groups())
        try:
            parsed = datetime(year, month, day)  # noqa: DTZ001
        except ValueError:
            pass
        else:
            log.warning("Timestamp %r only partially understood; using %s", value, parsed.date())
            return _canonical(parsed)

    log.warning("Unparseable timestamp %r; falling back to %s", value, EPOCH_FALLBACK)
    return EPOCH_FALLBACK


def with_page_params(path: str, *, offset: int, limit: int) -> str:
    separator = "&" if "?" in path else "?"
    return f"{path}{separator}offset={offset}&limit={limit}"


class PaginatedFetcher:
    """Accumulate every page of ``path`` in ascending-offset order.

    A page shorter than ``page_size`` ends the loop. The first failing page aborts
    the whole operation with ``PaginationError``; records gathered so far are
    discarded.
    """

    def __init__(self, pipeline: FetchPipeline) -> None:
        self._pipeline = pipeline

    async def fetch_all(self, path: str, page_size: int = DEFAULT_PAGE_SIZE) -> list[object]:
        if page_size < 1:
            raise ValueError("page_size must be positive")

        records: list[object] = []
        offset = 0
        pages = 0
        log.info("Starting paginated fetch of %s (page_size=%s)", path, page_size)

        while True:
            page_path = with_page_params(path, offset=offset, limit=page_size)
            try:
                payload = await self._pipeline.get_json(page_path)
                if not isinstance(payload, list):
                    raise PayloadError(
                        f"Expected a JSON list page, got {type(payload).__name__}",
                        path=page_path,
                    )
            except Exception as exc:
                log.error("Paginated fetch of %s failed at offset %s: %s", path, offset, exc)
                raise PaginationError(
                    f"Fetching {path} failed at offset {offset}: {exc}",
                    offset=offset,
                    path=path,
                ) from exc

            records.extend(payload)
            pages += 1
            log.debug(
                "Fetched %s records at offset %s (total %s)", len(payload), offset, len(records)
            )

            if len(payload) < page_size:
                break
            offset += page_size

        log.info(
            "Finished paginated fetch of %s: %s records in %s pages", path, len(records), pages
        )
        return records
