"""Hierarchy graph containers.

The graph is an arena: nodes live in one mapping keyed by id and refer to their
parent and children by id only. Graphs are built wholesale by
``agencytree.domain.hierarchy.builder`` and never patched afterwards; a fresh
sync produces a fresh graph.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

from .enums import RelationStatus, UplineSource

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping
    from datetime import datetime


@dataclass(frozen=True, slots=True)
class BranchSummary:
    """Active/inactive/pending counts over a whole subtree."""

    active: int = 0
    inactive: int = 0
    pending: int = 0

    @property
    def total(self) -> int:
        return self.active + self.inactive + self.pending

    @classmethod
    def for_status(cls, status: RelationStatus | None) -> BranchSummary:
        if status is RelationStatus.ACTIVE:
            return cls(active=1)
        if status is RelationStatus.INACTIVE:
            return cls(inactive=1)
        if status is RelationStatus.PENDING:
            return cls(pending=1)
        return cls()

    def __add__(self, other: BranchSummary) -> BranchSummary:
        return BranchSummary(
            active=self.active + other.active,
            inactive=self.inactive + other.inactive,
            pending=self.pending + other.pending,
        )


@dataclass(frozen=True, slots=True)
class NodeMetrics:
    descendant_count: int = 0
    direct_reports: int = 0
    last_seen: datetime | None = None


@dataclass(frozen=True, slots=True)
class HierarchyNode:
    id: str
    name: str
    firm_id: str
    parent_id: str | None = None
    children_ids: tuple[str, ...] = ()
    depth: int = 0
    npn: str | None = None
    status: RelationStatus | None = None
    branch_code: str | None = None
    branch_summary: BranchSummary = field(default_factory=BranchSummary)
    metrics: NodeMetrics = field(default_factory=NodeMetrics)
    duplicate_group_id: str | None = None
    duplicate_group_size: int = 0
    upline_source: UplineSource = UplineSource.REAL
    is_synthetic: bool = False
    has_errors: bool = False
    has_warnings: bool = False

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    @property
    def has_duplicate_npn(self) -> bool:
        return self.duplicate_group_size > 1


@dataclass(frozen=True, slots=True)
class HierarchyIssues:
    """Node ids that resolved to a documented fallback during the build."""

    missing_npn: frozenset[str] = frozenset()
    duplicate_npn: frozenset[str] = frozenset()
    upline_not_found: frozenset[str] = frozenset()
    cycle_break: frozenset[str] = frozenset()
    self_reference: frozenset[str] = frozenset()

    def needs_review(self, node_id: str) -> bool:
        return any(
            node_id in group
            for group in (
                self.missing_npn,
                self.duplicate_npn,
                self.upline_not_found,
                self.cycle_break,
                self.self_reference,
            )
        )

    def counts(self) -> dict[str, int]:
        return {
            "missing_npn": len(self.missing_npn),
            "duplicate_npn": len(self.duplicate_npn),
            "upline_not_found": len(self.upline_not_found),
            "cycle_break": len(self.cycle_break),
            "self_reference": len(self.self_reference),
        }


def _empty_nodes() -> Mapping[str, HierarchyNode]:
    return MappingProxyType({})


@dataclass(frozen=True, slots=True)
class HierarchyGraph:
    """Validated producer tree.

    ``root_ids`` lists real roots in discovery order followed by synthetic roots in
    creation order. ``nodes_by_id`` is read-only.
    """

    nodes_by_id: Mapping[str, HierarchyNode] = field(default_factory=_empty_nodes)
    root_ids: tuple[str, ...] = ()
    synthetic_root_ids: tuple[str, ...] = ()
    issues: HierarchyIssues = field(default_factory=HierarchyIssues)

    def __post_init__(self) -> None:
        if not isinstance(self.nodes_by_id, MappingProxyType):
            object.__setattr__(self, "nodes_by_id", MappingProxyType(dict(self.nodes_by_id)))

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.nodes_by_id

    def __len__(self) -> int:
        return len(self.nodes_by_id)

    def __iter__(self) -> Iterator[HierarchyNode]:
        return iter(self.nodes_by_id.values())

    def get(self, node_id: str | None) -> HierarchyNode | None:
        if node_id is None:
            return None
        return self.nodes_by_id.get(node_id)

    def children_of(self, node_id: str) -> tuple[HierarchyNode, ...]:
        node = self.nodes_by_id.get(node_id)
        if node is None:
            return ()
        return tuple(
            self.nodes_by_id[child_id]
            for child_id in node.children_ids
            if child_id in self.nodes_by_id
        )

    @property
    def synthetic_attachment_count(self) -> int:
        return sum(
            len(self.nodes_by_id[root_id].children_ids) for root_id in self.synthetic_root_ids
        )

    def validate_invariants(self) -> None:
        """Raise ``ValueError`` when any tree invariant is violated."""

        for root_id in self.root_ids:
            root = self.nodes_by_id.get(root_id)
            if root is None:
                raise ValueError(f"Root id does not exist: {root_id}")
            if root.parent_id is not None:
                raise ValueError(f"Root {root_id} has parent {root.parent_id}")

        expected_roots = {node.id for node in self.nodes_by_id.values() if node.parent_id is None}
        if expected_roots != set(self.root_ids) or len(self.root_ids) != len(expected_roots):
            raise ValueError("root_ids does not match the set of parentless nodes")

        for node in self.nodes_by_id.values():
            if len(set(node.children_ids)) != len(node.children_ids):
                raise ValueError(f"Node {node.id} lists duplicate children")
            for child_id in node.children_ids:
                child = self.nodes_by_id.get(child_id)
                if child is None:
                    raise ValueError(f"Node {node.id} references missing child {child_id}")
                if child.parent_id != node.id:
                    raise ValueError(
                        f"Child {child_id} of {node.id} points at parent {child.parent_id}"
                    )
            if node.parent_id is not None:
                parent = self.nodes_by_id.get(node.parent_id)
                if parent is None:
                    raise ValueError(f"Node {node.id} references missing parent {node.parent_id}")
                if node.id not in parent.children_ids:
                    raise ValueError(f"Node {node.id} missing from children of {parent.id}")

        # every node must be reachable from exactly one root; unreachable nodes sit on a cycle
        reached: set[str] = set()
        stack = list(self.root_ids)
        while stack:
            node_id = stack.pop()
            if node_id in reached:
                raise ValueError(f"Node {node_id} reachable twice")
            reached.add(node_id)
            stack.extend(self.nodes_by_id[node_id].children_ids)
        if len(reached) != len(self.nodes_by_id):
            unreachable = sorted(set(self.nodes_by_id) - reached)
            raise ValueError(f"Nodes unreachable from any root (cycle): {unreachable[:10]}")
