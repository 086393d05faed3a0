"""Compute the bounded, highlight-aware slice of a hierarchy shown to the user."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from logging import getLogger
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

    from agencytree.domain.model import HierarchyGraph, HierarchyNode

log = getLogger(__name__)

DEFAULT_CHILDREN_PAGE_SIZE = 10


def _no_overrides() -> Mapping[str, int]:
    return MappingProxyType({})


@dataclass(frozen=True, slots=True)
class ViewState:
    """Everything the traversal reads besides the graph itself."""

    expanded_ids: frozenset[str] = frozenset()
    depth_limit: int | None = None
    scope_root_id: str | None = None
    child_page_index: int = 0
    children_page_size: int = DEFAULT_CHILDREN_PAGE_SIZE
    show_all_children: bool = False
    child_page_overrides: Mapping[str, int] = field(default_factory=_no_overrides)
    highlighted_path: tuple[str, ...] = ()
    hovered_id: str | None = None
    focus_lens: bool = False
    selected_id: str | None = None

    def __post_init__(self) -> None:
        if self.children_page_size < 1:
            raise ValueError("children_page_size must be at least 1")
        if self.depth_limit is not None and self.depth_limit < 0:
            raise ValueError("depth_limit must not be negative")
        if not isinstance(self.expanded_ids, frozenset):
            object.__setattr__(self, "expanded_ids", frozenset(self.expanded_ids))
        if not isinstance(self.highlighted_path, tuple):
            object.__setattr__(self, "highlighted_path", tuple(self.highlighted_path))
        if not isinstance(self.child_page_overrides, MappingProxyType):
            object.__setattr__(
                self, "child_page_overrides", MappingProxyType(dict(self.child_page_overrides))
            )

    def __hash__(self) -> int:
        return hash(
            (
                self.expanded_ids,
                self.depth_limit,
                self.scope_root_id,
                self.child_page_index,
                self.children_page_size,
                self.show_all_children,
                frozenset(self.child_page_overrides.items()),
                self.highlighted_path,
                self.hovered_id,
                self.focus_lens,
                self.selected_id,
            )
        )


@dataclass(frozen=True, slots=True)
class VisibleNode:
    id: str
    depth: int
    expanded: bool = False
    has_children: bool = False
    highlighted: bool = False
    dimmed: bool = False
    selected: bool = False
    child_page: int = 0
    child_page_count: int = 1


@dataclass(frozen=True, slots=True)
class VisibleEdge:
    id: str
    source: str
    target: str
    highlighted: bool = False


@dataclass(frozen=True, slots=True)
class VisibleSet:
    nodes: tuple[VisibleNode, ...] = ()
    edges: tuple[VisibleEdge, ...] = ()

    def __len__(self) -> int:
        return len(self.nodes)

    @property
    def node_ids(self) -> tuple[str, ...]:
        return tuple(node.id for node in self.nodes)


@dataclass(frozen=True, slots=True)
class ChildWindow:
    child_ids: tuple[str, ...]
    page: int
    page_count: int


def page_count(child_count: int, page_size: int) -> int:
    return max(1, math.ceil(child_count / page_size))


def child_window(node: HierarchyNode, state: ViewState) -> ChildWindow:
    """Children of ``node`` shown on its current page.

    Small families and ``show_all_children`` show everything. Otherwise the node's
    own page override wins over the global page index, clamped to the valid range.
    """

    children = node.children_ids
    size = state.children_page_size
    if state.show_all_children or len(children) <= size:
        return ChildWindow(children, 0, 1)

    pages = page_count(len(children), size)
    requested = state.child_page_overrides.get(node.id, state.child_page_index)
    page = min(max(requested, 0), pages - 1)
    start = page * size
    return ChildWindow(children[start : start + size], page, pages)


def hover_set(graph: HierarchyGraph, hovered_id: str | None) -> frozenset[str]:
    """The hovered node, its parent and its direct children."""

    node = graph.get(hovered_id)
    if node is None:
        return frozenset()
    members = {node.id, *node.children_ids}
    if node.parent_id is not None:
        members.add(node.parent_id)
    return frozenset(members)


def _start_ids(graph: HierarchyGraph, scope_root_id: str | None) -> tuple[str, ...]:
    if scope_root_id is not None:
        if scope_root_id in graph:
            return (scope_root_id,)
        log.warning("Scope root %s is not in the graph; showing all roots", scope_root_id)
    return graph.root_ids


def compute_visible_set(graph: HierarchyGraph, state: ViewState) -> VisibleSet:
    """Pre-order walk producing the visible nodes and edges for ``state``.

    The function is pure: the graph is only read, and equal inputs give equal
    output. Ids that no longer resolve (a stale graph) are skipped with a warning.
    Edges follow the pre-order of their parents, each parent emitting the edges to
    its whole child window when it is visited.
    """

    if state.hovered_id is not None and state.hovered_id not in graph:
        log.warning("Hovered node %s is not in the graph; ignoring hover", state.hovered_id)
    hovered = hover_set(graph, state.hovered_id)
    highlighted_ids = frozenset(state.highlighted_path) | hovered
    hover_active = bool(hovered)

    nodes: list[VisibleNode] = []
    visible_ids: set[str] = set()
    # (parent, child) pairs in visit order; filtered to visible endpoints below
    links: list[tuple[str, str]] = []

    start_ids = _start_ids(graph, state.scope_root_id)
    stack: list[tuple[str, int]] = [(node_id, 0) for node_id in reversed(start_ids)]
    while stack:
        node_id, depth = stack.pop()
        node = graph.get(node_id)
        if node is None:
            log.warning("Skipping node %s missing from the graph", node_id)
            continue
        if node_id in visible_ids:
            log.warning("Skipping node %s reached twice", node_id)
            continue

        expanded = node_id in state.expanded_ids
        window = child_window(node, state)
        highlighted = node_id in highlighted_ids
        nodes.append(
            VisibleNode(
                id=node_id,
                depth=depth,
                expanded=expanded,
                has_children=bool(node.children_ids),
                highlighted=highlighted,
                dimmed=(state.focus_lens and not highlighted)
                or (hover_active and node_id not in hovered),
                selected=node_id == state.selected_id,
                child_page=window.page,
                child_page_count=window.page_count,
            )
        )
        visible_ids.add(node_id)

        can_go_deeper = state.depth_limit is None or depth < state.depth_limit
        if node.children_ids and expanded and can_go_deeper:
            for child_id in window.child_ids:
                links.append((node_id, child_id))
            stack.extend((child_id, depth + 1) for child_id in reversed(window.child_ids))

    edges = tuple(
        VisibleEdge(
            id=f"{source}-{target}",
            source=source,
            target=target,
            highlighted=source in highlighted_ids and target in highlighted_ids,
        )
        for source, target in links
        if source in visible_ids and target in visible_ids
    )
    return VisibleSet(nodes=tuple(nodes), edges=edges)
