"""Interactive view state over a hierarchy graph."""

from __future__ import annotations

from dataclasses import replace
from logging import getLogger
from typing import TYPE_CHECKING, Any

from .queries import path_to_root
from .traversal import ViewState, VisibleSet, compute_visible_set

if TYPE_CHECKING:
    from collections.abc import Iterable

    from agencytree.domain.model import HierarchyGraph

    from .layout import LayoutScheduler

log = getLogger(__name__)


class HierarchyView:
    """Own a graph plus its ``ViewState`` and translate gestures into new states.

    ``visible`` is computed once per (graph, state) pair. When a scheduler is
    attached, every effective change forwards the new visible set to it; gestures
    that leave the state unchanged do not.
    """

    def __init__(
        self,
        graph: HierarchyGraph,
        state: ViewState | None = None,
        *,
        scheduler: LayoutScheduler[Any] | None = None,
    ) -> None:
        self._graph = graph
        self._state = state or ViewState()
        self.scheduler = scheduler
        self._memo: tuple[HierarchyGraph, ViewState, VisibleSet] | None = None
        self.computations = 0

    @property
    def graph(self) -> HierarchyGraph:
        return self._graph

    @property
    def state(self) -> ViewState:
        return self._state

    @property
    def visible(self) -> VisibleSet:
        memo = self._memo
        if memo is not None and memo[0] is self._graph and memo[1] == self._state:
            return memo[2]
        visible = compute_visible_set(self._graph, self._state)
        self.computations += 1
        self._memo = (self._graph, self._state, visible)
        return visible

    def _apply(self, state: ViewState) -> bool:
        if state == self._state:
            return False
        self._state = state
        self._publish()
        return True

    def _publish(self) -> None:
        if self.scheduler is not None:
            self.scheduler.request(self.visible)

    def _known(self, node_id: str, gesture: str) -> bool:
        if node_id in self._graph:
            return True
        log.warning("Ignoring %s for unknown node %s", gesture, node_id)
        return False

    # expand / collapse

    def toggle_expanded(self, node_id: str) -> bool:
        if not self._known(node_id, "toggle"):
            return False
        expanded = self._state.expanded_ids ^ {node_id}
        return self._apply(replace(self._state, expanded_ids=expanded))

    def expand_all(self) -> bool:
        expanded = frozenset(node.id for node in self._graph if node.children_ids)
        return self._apply(replace(self._state, expanded_ids=expanded))

    def collapse_all(self) -> bool:
        return self._apply(replace(self._state, expanded_ids=frozenset()))

    # scope and depth

    def set_scope(self, node_id: str | None) -> bool:
        if node_id is not None and not self._known(node_id, "scope"):
            return False
        return self._apply(replace(self._state, scope_root_id=node_id))

    def set_depth_limit(self, depth_limit: int | None) -> bool:
        return self._apply(replace(self._state, depth_limit=depth_limit))

    # child pagination

    def set_page(self, page_index: int) -> bool:
        return self._apply(replace(self._state, child_page_index=max(0, page_index)))

    def set_node_page(self, node_id: str, page_index: int) -> bool:
        if not self._known(node_id, "page change"):
            return False
        overrides = dict(self._state.child_page_overrides)
        overrides[node_id] = max(0, page_index)
        return self._apply(replace(self._state, child_page_overrides=overrides))

    def toggle_show_all_children(self) -> bool:
        return self._apply(
            replace(self._state, show_all_children=not self._state.show_all_children)
        )

    # highlight, hover, focus, selection

    def set_highlighted_path(self, node_ids: Iterable[str]) -> bool:
        return self._apply(replace(self._state, highlighted_path=tuple(node_ids)))

    def highlight_path_to(self, node_id: str) -> bool:
        """Highlight the chain from the root to ``node_id`` and expand its ancestors."""

        if not self._known(node_id, "highlight"):
            return False
        path = path_to_root(self._graph, node_id)
        expanded = self._state.expanded_ids | frozenset(path[:-1])
        return self._apply(replace(self._state, highlighted_path=path, expanded_ids=expanded))

    def set_hovered(self, node_id: str | None) -> bool:
        return self._apply(replace(self._state, hovered_id=node_id))

    def toggle_focus_lens(self) -> bool:
        return self._apply(replace(self._state, focus_lens=not self._state.focus_lens))

    def select(self, node_id: str | None) -> bool:
        if node_id is not None and not self._known(node_id, "selection"):
            return False
        return self._apply(replace(self._state, selected_id=node_id))

    # graph refresh

    def replace_graph(self, graph: HierarchyGraph) -> None:
        """Swap in a freshly built graph, dropping state that refers to vanished nodes."""

        state = self._state
        scope = state.scope_root_id if state.scope_root_id in graph else None
        if state.scope_root_id is not None and scope is None:
            log.info("Scope %s vanished after refresh; showing all roots", state.scope_root_id)
        self._graph = graph
        self._state = replace(
            state,
            expanded_ids=frozenset(node_id for node_id in state.expanded_ids if node_id in graph),
            child_page_overrides={
                node_id: page
                for node_id, page in state.child_page_overrides.items()
                if node_id in graph
            },
            scope_root_id=scope,
            highlighted_path=tuple(
                node_id for node_id in state.highlighted_path if node_id in graph
            ),
            hovered_id=state.hovered_id if state.hovered_id in graph else None,
            selected_id=state.selected_id if state.selected_id in graph else None,
        )
        self._publish()
