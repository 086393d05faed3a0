"""Read-only lookups over a built hierarchy."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

    from agencytree.domain.model import HierarchyGraph, HierarchyNode

log = getLogger(__name__)


def path_to_root(graph: HierarchyGraph, node_id: str) -> tuple[str, ...]:
    """Ids from the root down to ``node_id``; empty when the id is unknown."""

    path: list[str] = []
    seen: set[str] = set()
    current = graph.get(node_id)
    while current is not None:
        if current.id in seen:
            log.warning("Parent chain of %s loops at %s", node_id, current.id)
            break
        seen.add(current.id)
        path.append(current.id)
        current = graph.get(current.parent_id)
    path.reverse()
    return tuple(path)


def _normalize(value: str | None) -> str:
    return (value or "").strip()


def find_by_npn(graph: HierarchyGraph, npn: str) -> tuple[HierarchyNode, ...]:
    wanted = _normalize(npn)
    if not wanted:
        return ()
    return tuple(node for node in graph if _normalize(node.npn) == wanted)


def find_by_producer_id(graph: HierarchyGraph, producer_id: str) -> HierarchyNode | None:
    return graph.get(_normalize(producer_id))


def iter_subtree(graph: HierarchyGraph, node_id: str) -> Iterator[HierarchyNode]:
    """Pre-order walk of ``node_id`` and everything below it."""

    stack = [node_id]
    while stack:
        node = graph.get(stack.pop())
        if node is None:
            continue
        yield node
        stack.extend(reversed(node.children_ids))
