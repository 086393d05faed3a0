"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace
from logging import getLogger
from types import MappingProxyType
from typing import TYPE_CHECKING

from agencytree.adapters.fetching import (
    FanOutFetcher,
    FetchPipeline,
    UploadJobMonitor,
    UploadValidationError,
    validate_upload_file,
)
from agencytree.adapters.http_resilience import HttpxTransport
from agencytree.adapters.surelc import EnvCredentialProvider, SureLcClient, label_from_model
from agencytree.config import (
    get_surelc_config,
    get_sync_config,
    get_upload_config,
    get_view_config,
)
from agencytree.domain.hierarchy import (
    HierarchyView,
    LayoutScheduler,
    ViewState,
    build_hierarchy_graph,
    summarize_graph,
)
from agencytree.domain.model import ProducerDetail, ProducerLabel, UploadFile

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable, Mapping
    from pathlib import Path

    from agencytree.adapters.fetching import FanOutResult
    from agencytree.config import ResilienceConfig, SureLcConfig, SyncConfig, UploadConfig
    from agencytree.domain.hierarchy import BuildOptions, VisibleSet
    from agencytree.domain.model import HierarchyGraph, RelationRecord, UploadJob
    from agencytree.domain.ports import CredentialProvider, Transport


log = getLogger(__name__)


def _empty_mapping() -> Mapping[str, object]:
    return MappingProxyType({})


@dataclass(frozen=True, slots=True)
class SyncResult:
    graph: HierarchyGraph
    records: tuple[RelationRecord, ...]
    labels: Mapping[str, ProducerLabel] = field(default_factory=_empty_mapping)
    enrichment_failures: Mapping[str, Exception] = field(default_factory=_empty_mapping)
    details: Mapping[str, ProducerDetail] = field(default_factory=_empty_mapping)
    detail_failures: Mapping[str, Exception] = field(default_factory=_empty_mapping)


def build_fetch_pipeline(
    resilience: ResilienceConfig,
    account: str,
    *,
    credentials: CredentialProvider | None = None,
    transport: Transport | None = None,
) -> FetchPipeline:
    """Create the per-session pipeline; the caller owns (and closes) it."""

    provider = credentials if credentials is not None else EnvCredentialProvider()
    token = provider.token_for(account)
    if transport is None:
        transport = HttpxTransport.from_config(resilience)
    return FetchPipeline.from_config(transport, token, resilience)


async def enrich_producer_labels_async(
    client: SureLcClient,
    producer_ids: Iterable[str],
    *,
    min_interval: float,
) -> FanOutResult[str, ProducerLabel]:
    """Fetch one display label per producer; failures stay in the result."""

    async def fetch_label(producer_id: str) -> ProducerLabel:
        return label_from_model(await client.require_producer(producer_id), producer_id=producer_id)

    return await FanOutFetcher(min_interval).fetch_many(producer_ids, fetch_label)


async def fetch_producer_details_async(
    client: SureLcClient,
    producer_ids: Iterable[str],
    *,
    min_interval: float,
) -> FanOutResult[str, ProducerDetail]:
    """Fetch licenses, appointments and contracts per producer, staggered."""

    return await FanOutFetcher(min_interval).fetch_many(producer_ids, client.fetch_producer_detail)


async def sync_firm_hierarchy_async(
    *,
    pipeline: FetchPipeline,
    surelc: SureLcConfig,
    sync: SyncConfig,
    enrich: bool = False,
    details: bool = False,
    options: BuildOptions | None = None,
) -> SyncResult:
    client = SureLcClient(pipeline, surelc)
    records = await client.fetch_firm_relations_after(sync.since, sync.page_size)
    producer_ids = [record.producer_id for record in records]

    labels: dict[str, ProducerLabel] = {}
    failures: Mapping[str, Exception] = {}
    if enrich:
        result = await enrich_producer_labels_async(
            client,
            producer_ids,
            min_interval=sync.fan_out_interval_seconds,
        )
        failures = result.failures
        labels = {
            producer_id: result.value_or(producer_id, ProducerLabel.fallback(producer_id))
            for producer_id in result
        }
        if failures:
            log.warning(
                "Label enrichment degraded: %s of %s producers use placeholders",
                len(failures),
                len(result),
            )

    producer_details: dict[str, ProducerDetail] = {}
    detail_failures: Mapping[str, Exception] = {}
    if details:
        detail_result = await fetch_producer_details_async(
            client,
            producer_ids,
            min_interval=sync.fan_out_interval_seconds,
        )
        detail_failures = detail_result.failures
        producer_details = {
            producer_id: detail_result.value_or(
                producer_id, ProducerDetail.unavailable(producer_id)
            )
            for producer_id in detail_result
        }
        partial = sum(1 for detail in producer_details.values() if not detail.complete)
        if partial:
            log.warning(
                "Producer detail incomplete for %s of %s producers (%s without any detail)",
                partial,
                len(producer_details),
                len(detail_failures),
            )

    graph = build_hierarchy_graph(records, labels=labels, options=options)
    return SyncResult(
        graph=graph,
        records=tuple(records),
        labels=MappingProxyType(labels),
        enrichment_failures=MappingProxyType(dict(failures)),
        details=MappingProxyType(producer_details),
        detail_failures=MappingProxyType(dict(detail_failures)),
    )


def sync_firm_hierarchy(
    *,
    account: str | None = None,
    firm_id: str | None = None,
    since: str | None = None,
    page_size: int | None = None,
    enrich: bool = False,
    details: bool = False,
    options: BuildOptions | None = None,
    credentials: CredentialProvider | None = None,
    transport: Transport | None = None,
) -> SyncResult:
    """Fetch the firm's relations and build its hierarchy graph."""

    surelc = get_surelc_config(account=account, firm_id=firm_id)
    base = get_sync_config()
    sync = replace(
        base,
        since=since or base.since,
        page_size=page_size if page_size is not None else base.page_size,
    )
    log.info(
        "Starting SureLC sync: account=%s, firm=%s, since=%s, page_size=%s, enrich=%s, "
        "details=%s",
        surelc.account,
        surelc.firm_id,
        sync.since,
        sync.page_size,
        enrich,
        details,
    )

    async def run() -> SyncResult:
        pipeline = build_fetch_pipeline(
            surelc.resilience,
            surelc.account,
            credentials=credentials,
            transport=transport,
        )
        async with pipeline:
            return await sync_firm_hierarchy_async(
                pipeline=pipeline,
                surelc=surelc,
                sync=sync,
                enrich=enrich,
                details=details,
                options=options,
            )

    result = asyncio.run(run())
    summary = summarize_graph(result.graph)
    log.info(
        f"Finished SureLC sync: records={len(result.records)}, producers={summary.producers}, "
        f"roots={summary.roots}, synthetic_attachments={summary.synthetic_attachments}, "
        f"duplicate_groups={summary.duplicate_groups}"
    )
    return result


def _upload_resilience(surelc: SureLcConfig, upload: UploadConfig) -> ResilienceConfig:
    if upload.base_url is None:
        return surelc.resilience
    return replace(surelc.resilience, name="upload", base_url=upload.base_url)


def upload_hierarchy_file(
    path: Path | str,
    *,
    account: str | None = None,
    poll_interval: float | None = None,
    on_progress: Callable[[UploadJob], None] | None = None,
    credentials: CredentialProvider | None = None,
    transport: Transport | None = None,
) -> UploadJob:
    """Validate, submit and follow a hierarchy upload until it settles."""

    upload = get_upload_config()
    if poll_interval is not None:
        upload = replace(upload, poll_interval_seconds=poll_interval)

    file = UploadFile.from_path(path)
    # rejected files never reach credential lookup or the network
    validation = validate_upload_file(file, upload)
    if not validation.is_valid:
        raise UploadValidationError(validation.errors)

    surelc = get_surelc_config(account=account)
    log.info("Uploading %s (%s bytes)", file.filename, file.size)

    async def run() -> UploadJob:
        pipeline = build_fetch_pipeline(
            _upload_resilience(surelc, upload),
            surelc.account,
            credentials=credentials,
            transport=transport,
        )
        async with pipeline:
            monitor = UploadJobMonitor(pipeline, config=upload, on_progress=on_progress)
            return await monitor.submit(file)

    return asyncio.run(run())


def build_hierarchy_view[T](
    graph: HierarchyGraph,
    state: ViewState | None = None,
    *,
    layout: Callable[[VisibleSet], Awaitable[T]] | None = None,
    on_layout: Callable[[T], None] | None = None,
) -> HierarchyView:
    """View over ``graph`` with the configured child page size and layout debounce.

    Without ``layout`` no scheduler is attached and the view stays synchronous.
    """

    view_config = get_view_config()
    if state is None:
        state = ViewState(children_page_size=view_config.children_page_size)
    scheduler: LayoutScheduler[T] | None = None
    if layout is not None:
        scheduler = LayoutScheduler(
            layout,
            debounce=view_config.layout_debounce_seconds,
            on_layout=on_layout,
        )
    return HierarchyView(graph, state, scheduler=scheduler)
