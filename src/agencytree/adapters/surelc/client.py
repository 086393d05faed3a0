"""SureLC endpoints used to assemble the producer hierarchy."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING
from urllib.parse import quote

from pydantic import ValidationError

from agencytree.adapters.fetching import (
    FetchError,
    PaginatedFetcher,
    PayloadError,
    normalize_timestamp,
)
from agencytree.adapters.fetching.pagination import DEFAULT_PAGE_SIZE
from agencytree.domain.model import DETAIL_SECTIONS, ProducerDetail, ProducerLabel

from .schema import ProducerPayload, RelationPayload
from .translator import parse_producer_label, relation_from_model

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping
    from datetime import date, datetime

    from agencytree.adapters.fetching import FetchPipeline
    from agencytree.config import SureLcConfig
    from agencytree.domain.model import RelationRecord

log = getLogger(__name__)


def relations_after_path(since: str | datetime | date) -> str:
    return f"/firm/relationship/after/{quote(normalize_timestamp(since), safe='')}"


@dataclass(slots=True)
class SureLcClient:
    """Typed access to the SureLC web service through a shared fetch pipeline."""

    pipeline: FetchPipeline
    config: SureLcConfig

    async def fetch_firm_relations_after(
        self,
        since: str | datetime | date,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> list[RelationRecord]:
        path = relations_after_path(since)
        payloads = await PaginatedFetcher(self.pipeline).fetch_all(path, page_size)

        records: list[RelationRecord] = []
        skipped = 0
        for payload in payloads:
            try:
                model = RelationPayload.model_validate(payload)
            except ValidationError as exc:
                skipped += 1
                log.warning("Skipping malformed relation row: %s", exc.errors()[:1])
                continue
            records.append(relation_from_model(model))

        firm_records = [record for record in records if record.firm_id == self.config.firm_id]
        log.info(
            "Fetched %s relations for firm %s since %s "
            "(%s malformed rows skipped, %s rows of other firms dropped)",
            len(firm_records),
            self.config.firm_id,
            normalize_timestamp(since),
            skipped,
            len(records) - len(firm_records),
        )
        return firm_records

    async def fetch_producer_label(self, producer_id: str) -> ProducerLabel:
        """Display label for ``producer_id``; failures degrade to a placeholder."""

        try:
            body = await self.pipeline.get_json(f"/producer/{quote(producer_id, safe='')}")
            return parse_producer_label(body, producer_id=producer_id)
        except (FetchError, ValidationError) as exc:
            log.warning("Using placeholder label for producer %s: %s", producer_id, exc)
            return ProducerLabel.fallback(producer_id)

    async def fetch_producer_by_npn(self, npn: str) -> ProducerPayload | None:
        path = f"/producer/npn/{quote(npn, safe='')}"
        try:
            body = await self.pipeline.get_json(path)
            return ProducerPayload.model_validate(body)
        except (FetchError, ValidationError) as exc:
            log.warning("Lookup of producer by NPN %s failed: %s", npn, exc)
            return None

    async def fetch_producer_relationship(self, producer_id: str) -> RelationRecord | None:
        path = f"/producer/{quote(producer_id, safe='')}/relationship"
        try:
            body = await self.pipeline.get_json(path)
            if isinstance(body, list):
                if not body:
                    return None
                body = body[0]
            return relation_from_model(RelationPayload.model_validate(body))
        except (FetchError, ValidationError) as exc:
            log.warning("Relationship lookup for producer %s failed: %s", producer_id, exc)
            return None

    async def require_producer(self, producer_id: str) -> ProducerPayload:
        """Like ``fetch_producer_label`` but raising; used for per-item fan-out."""

        path = f"/producer/{quote(producer_id, safe='')}"
        body = await self.pipeline.get_json(path)
        try:
            return ProducerPayload.model_validate(body)
        except ValidationError as exc:
            raise PayloadError(f"Unexpected producer payload: {exc}", path=path) from exc

    async def fetch_producer_licenses(self, producer_id: str) -> list[Mapping[str, object]]:
        return await self._fetch_rows(f"/producer/{quote(producer_id, safe='')}/licenses")

    async def fetch_producer_appointments(self, producer_id: str) -> list[Mapping[str, object]]:
        return await self._fetch_rows(f"/producer/{quote(producer_id, safe='')}/appointments")

    async def fetch_producer_contracts(self, producer_id: str) -> list[Mapping[str, object]]:
        return await self._fetch_rows(f"/contract/producer/{quote(producer_id, safe='')}")

    async def fetch_producer_detail(self, producer_id: str) -> ProducerDetail:
        """Licenses, appointments and contracts of one producer.

        A failing section is logged and listed in ``ProducerDetail.missing``; only when
        every section fails is the last error raised.
        """

        fetchers: dict[str, Callable[[str], Awaitable[list[Mapping[str, object]]]]] = {
            "licenses": self.fetch_producer_licenses,
            "appointments": self.fetch_producer_appointments,
            "contracts": self.fetch_producer_contracts,
        }
        rows: dict[str, tuple[Mapping[str, object], ...]] = {}
        last_error: FetchError | None = None
        for section in DETAIL_SECTIONS:
            try:
                rows[section] = tuple(await fetchers[section](producer_id))
            except FetchError as exc:
                last_error = exc
                log.warning("No %s for producer %s: %s", section, producer_id, exc)

        if last_error is not None and not rows:
            raise last_error
        return ProducerDetail(
            producer_id=producer_id,
            licenses=rows.get("licenses", ()),
            appointments=rows.get("appointments", ()),
            contracts=rows.get("contracts", ()),
            missing=frozenset(section for section in DETAIL_SECTIONS if section not in rows),
        )

    async def _fetch_rows(self, path: str) -> list[Mapping[str, object]]:
        body = await self.pipeline.get_json(path)
        if not isinstance(body, list):
            raise PayloadError(f"Expected a JSON list, got {type(body).__name__}", path=path)
        rows: list[Mapping[str, object]] = []
        for row in body:
            if not isinstance(row, dict):
                raise PayloadError(f"Expected JSON objects, got {type(row).__name__}", path=path)
            rows.append(row)
        return rows
