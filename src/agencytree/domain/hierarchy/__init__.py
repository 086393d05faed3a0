"""Hierarchy building, traversal and view state."""

from __future__ import annotations

from .builder import (
    BuildOptions,
    GraphSummary,
    build_hierarchy_graph,
    count_by_kind,
    summarize_graph,
    synthetic_root_id,
)
from .layout import LayoutScheduler
from .queries import find_by_npn, find_by_producer_id, iter_subtree, path_to_root
from .traversal import (
    ChildWindow,
    ViewState,
    VisibleEdge,
    VisibleNode,
    VisibleSet,
    child_window,
    compute_visible_set,
    hover_set,
)
from .view import HierarchyView

__all__ = [
    "BuildOptions",
    "ChildWindow",
    "GraphSummary",
    "HierarchyView",
    "LayoutScheduler",
    "ViewState",
    "VisibleEdge",
    "VisibleNode",
    "VisibleSet",
    "build_hierarchy_graph",
    "child_window",
    "compute_visible_set",
    "count_by_kind",
    "find_by_npn",
    "find_by_producer_id",
    "hover_set",
    "iter_subtree",
    "path_to_root",
    "summarize_graph",
    "synthetic_root_id",
]
