"""Turn flat relation records into a validated producer tree.

Degraded input never raises: unresolvable, self-referencing, ambiguous or cyclic
uplines attach the producer under a synthetic root for its firm, and the reason
is recorded in ``HierarchyIssues``. Every pass is iterative, so deep chains do not
hit the recursion limit.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from agencytree.domain.model import (
    BranchSummary,
    HierarchyGraph,
    HierarchyIssues,
    HierarchyNode,
    NodeMetrics,
    RelationStatus,
    UplineSource,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from datetime import datetime

    from agencytree.domain.model import ProducerLabel, RelationRecord

log = getLogger(__name__)

SYNTHETIC_ROOT_PREFIX = "synthetic:"


@dataclass(frozen=True, slots=True)
class BuildOptions:
    attach_orphans_to_synthetic_root: bool = False
    placeholder_name: str = "Agent {id}"
    synthetic_root_name: str = "Unassigned uplines ({firm_id})"


def synthetic_root_id(firm_id: str) -> str:
    return f"{SYNTHETIC_ROOT_PREFIX}{firm_id}"


def _normalize_npn(value: str | None) -> str | None:
    if value is None:
        return None
    text = value.strip()
    return text or None


def _is_newer_or_same(candidate: RelationRecord, current: RelationRecord) -> bool:
    if candidate.added_on is None:
        return current.added_on is None
    if current.added_on is None:
        return True
    return candidate.added_on >= current.added_on


def _select_records(
    records: Iterable[RelationRecord],
) -> tuple[dict[str, RelationRecord], dict[str, datetime | None]]:
    """Pick the latest record per producer, keeping first-discovery order."""

    chosen: dict[str, RelationRecord] = {}
    last_seen: dict[str, datetime | None] = {}
    for record in records:
        producer_id = record.producer_id
        current = chosen.get(producer_id)
        if current is None or _is_newer_or_same(record, current):
            chosen[producer_id] = record
        seen = last_seen.get(producer_id)
        if record.added_on is not None and (seen is None or record.added_on > seen):
            last_seen[producer_id] = record.added_on
        else:
            last_seen.setdefault(producer_id, seen)
    return chosen, last_seen


@dataclass(slots=True)
class _IssueCollector:
    missing_npn: set[str]
    duplicate_npn: set[str]
    upline_not_found: set[str]
    cycle_break: set[str]
    self_reference: set[str]

    @classmethod
    def empty(cls) -> _IssueCollector:
        return cls(set(), set(), set(), set(), set())

    def freeze(self) -> HierarchyIssues:
        return HierarchyIssues(
            missing_npn=frozenset(self.missing_npn),
            duplicate_npn=frozenset(self.duplicate_npn),
            upline_not_found=frozenset(self.upline_not_found),
            cycle_break=frozenset(self.cycle_break),
            self_reference=frozenset(self.self_reference),
        )


class _Forest:
    """Union-find over accepted upline edges.

    A producer gets its parent exactly once and is the root of its own tree until
    then, so linking it under ``parent_id`` closes a cycle iff ``parent_id`` already
    sits in that tree.
    """

    def __init__(self) -> None:
        self._up: dict[str, str] = {}

    def find(self, node_id: str) -> str:
        path: list[str] = []
        while node_id in self._up:
            path.append(node_id)
            node_id = self._up[node_id]
        for item in path:
            self._up[item] = node_id
        return node_id

    def closes_cycle(self, node_id: str, parent_id: str) -> bool:
        return self.find(parent_id) == node_id

    def link(self, node_id: str, parent_id: str) -> None:
        self._up[node_id] = parent_id


def build_hierarchy_graph(
    records: Iterable[RelationRecord],
    *,
    labels: Mapping[str, ProducerLabel] | None = None,
    options: BuildOptions | None = None,
) -> HierarchyGraph:
    """Build a ``HierarchyGraph`` from relation records.

    ``labels`` supplies display names (and NPNs missing from the records) by
    producer id. Producers without a label get ``options.placeholder_name``.
    """

    opts = options or BuildOptions()
    label_map = labels or {}
    chosen, last_seen = _select_records(records)
    issues = _IssueCollector.empty()

    npns: dict[str, str | None] = {}
    ids_by_npn: dict[str, list[str]] = {}
    for producer_id, record in chosen.items():
        label = label_map.get(producer_id)
        npn = _normalize_npn(record.npn) or _normalize_npn(label.npn if label else None)
        npns[producer_id] = npn
        if npn is None:
            issues.missing_npn.add(producer_id)
        else:
            ids_by_npn.setdefault(npn, []).append(producer_id)

    # parent resolution
    parents: dict[str, str] = {}
    forest = _Forest()
    synthetic_children: dict[str, list[str]] = {}
    synthetic_firms: dict[str, str] = {}

    def attach_to_synthetic(producer_id: str) -> None:
        firm_id = chosen[producer_id].firm_id
        root_id = synthetic_root_id(firm_id)
        synthetic_firms.setdefault(root_id, firm_id)
        synthetic_children.setdefault(root_id, []).append(producer_id)

    for producer_id, record in chosen.items():
        upline = (record.upline or "").strip()
        if not upline:
            if opts.attach_orphans_to_synthetic_root:
                attach_to_synthetic(producer_id)
            continue

        if upline in chosen:
            parent_id: str | None = upline
        else:
            matches = ids_by_npn.get(upline, [])
            parent_id = matches[0] if len(matches) == 1 else None
            if len(matches) > 1:
                log.debug(
                    "Upline %s of %s matches %s producers by NPN",
                    upline,
                    producer_id,
                    len(matches),
                )

        if parent_id is None:
            issues.upline_not_found.add(producer_id)
            attach_to_synthetic(producer_id)
        elif parent_id == producer_id:
            issues.self_reference.add(producer_id)
            attach_to_synthetic(producer_id)
        elif forest.closes_cycle(producer_id, parent_id):
            issues.cycle_break.add(producer_id)
            attach_to_synthetic(producer_id)
        else:
            parents[producer_id] = parent_id
            forest.link(producer_id, parent_id)

    children: dict[str, list[str]] = {producer_id: [] for producer_id in chosen}
    for producer_id in chosen:
        parent_id = parents.get(producer_id)
        if parent_id is not None:
            children[parent_id].append(producer_id)
    children.update(synthetic_children)

    synthetic_ids = set(synthetic_children)
    full_parents: dict[str, str] = dict(parents)
    for root_id, members in synthetic_children.items():
        for member in members:
            full_parents[member] = root_id

    real_roots = [producer_id for producer_id in chosen if producer_id not in full_parents]
    synthetic_roots = list(synthetic_children)
    root_ids = (*real_roots, *synthetic_roots)

    # duplicate grouping
    groups: dict[str, tuple[str | None, int]] = {}
    for npn, members in ids_by_npn.items():
        if len(members) > 1:
            issues.duplicate_npn.update(members)
            for member in members:
                groups[member] = (f"npn:{npn}", len(members))
        else:
            groups[members[0]] = (None, 1)

    # depth top-down, then summaries bottom-up over the reversed pre-order
    depths: dict[str, int] = {}
    order: list[str] = []
    stack = [(root_id, 0) for root_id in reversed(root_ids)]
    while stack:
        node_id, depth = stack.pop()
        depths[node_id] = depth
        order.append(node_id)
        stack.extend((child_id, depth + 1) for child_id in reversed(children[node_id]))

    summaries: dict[str, BranchSummary] = {}
    descendants: dict[str, int] = {}
    for node_id in reversed(order):
        if node_id in synthetic_ids:
            own = BranchSummary()
        else:
            own = BranchSummary.for_status(chosen[node_id].status)
        total = own
        count = 0
        for child_id in children[node_id]:
            total = total + summaries[child_id]
            count += descendants[child_id] + 1
        summaries[node_id] = total
        descendants[node_id] = count

    nodes: dict[str, HierarchyNode] = {}
    for producer_id, record in chosen.items():
        label = label_map.get(producer_id)
        group_id, group_size = groups.get(producer_id, (None, 0))
        nodes[producer_id] = HierarchyNode(
            id=producer_id,
            name=label.name if label else opts.placeholder_name.format(id=producer_id),
            firm_id=record.firm_id,
            parent_id=full_parents.get(producer_id),
            children_ids=tuple(children[producer_id]),
            depth=depths[producer_id],
            npn=npns[producer_id],
            status=record.status,
            branch_code=record.branch_code,
            branch_summary=summaries[producer_id],
            metrics=NodeMetrics(
                descendant_count=descendants[producer_id],
                direct_reports=len(children[producer_id]),
                last_seen=last_seen.get(producer_id),
            ),
            duplicate_group_id=group_id,
            duplicate_group_size=group_size,
            upline_source=(
                UplineSource.SYNTHETIC
                if full_parents.get(producer_id) in synthetic_ids
                else UplineSource.REAL
            ),
            has_errors=record.has_errors,
            has_warnings=record.has_warnings,
        )

    for root_id in synthetic_roots:
        firm_id = synthetic_firms[root_id]
        nodes[root_id] = HierarchyNode(
            id=root_id,
            name=opts.synthetic_root_name.format(firm_id=firm_id),
            firm_id=firm_id,
            children_ids=tuple(children[root_id]),
            depth=0,
            branch_summary=summaries[root_id],
            metrics=NodeMetrics(
                descendant_count=descendants[root_id],
                direct_reports=len(children[root_id]),
            ),
            upline_source=UplineSource.SYNTHETIC,
            is_synthetic=True,
        )

    graph = HierarchyGraph(
        nodes_by_id=nodes,
        root_ids=root_ids,
        synthetic_root_ids=tuple(synthetic_roots),
        issues=issues.freeze(),
    )
    summary = summarize_graph(graph)
    log.info(
        "Built hierarchy: %s producers, %s roots (%s synthetic), %s synthetic attachments, "
        "%s duplicate NPN groups, max depth %s",
        summary.producers,
        summary.roots,
        summary.synthetic_roots,
        summary.synthetic_attachments,
        summary.duplicate_groups,
        summary.max_depth,
    )
    degraded = len(issues.upline_not_found) + len(issues.cycle_break) + len(issues.self_reference)
    if degraded:
        log.warning(
            "%s producers attached to synthetic roots "
            "(%s unresolved, %s cycles, %s self references)",
            degraded,
            len(issues.upline_not_found),
            len(issues.cycle_break),
            len(issues.self_reference),
        )
    return graph


@dataclass(frozen=True, slots=True)
class GraphSummary:
    producers: int
    roots: int
    synthetic_roots: int
    synthetic_attachments: int
    duplicate_groups: int
    max_depth: int
    branch_summary: BranchSummary


def summarize_graph(graph: HierarchyGraph) -> GraphSummary:
    producers = [node for node in graph if not node.is_synthetic]
    groups = {node.duplicate_group_id for node in producers if node.duplicate_group_id}
    branch_summary = BranchSummary()
    for node in producers:
        branch_summary = branch_summary + BranchSummary.for_status(node.status)
    return GraphSummary(
        producers=len(producers),
        roots=len(graph.root_ids),
        synthetic_roots=len(graph.synthetic_root_ids),
        synthetic_attachments=graph.synthetic_attachment_count,
        duplicate_groups=len(groups),
        max_depth=max((node.depth for node in graph), default=0),
        branch_summary=branch_summary,
    )


def count_by_kind(graph: HierarchyGraph) -> dict[str, int]:
    """Node counts by status, plus ``synthetic`` for generated roots."""

    counts = {status.value: 0 for status in RelationStatus}
    counts["synthetic"] = 0
    for node in graph:
        if node.is_synthetic:
            counts["synthetic"] += 1
        elif node.status is not None:
            counts[node.status.value] += 1
    return counts
