from __future__ import annotations

import pytest

from agencytree.domain.hierarchy import (
    ViewState,
    VisibleSet,
    build_hierarchy_graph,
    child_window,
    compute_visible_set,
    hover_set,
)
from agencytree.domain.model import HierarchyGraph, HierarchyNode
from tests.helpers.relations import make_record


@pytest.fixture
def wide_graph() -> HierarchyGraph:
    records = [make_record("boss")]
    records.extend(make_record(f"k{index:02d}", upline="boss") for index in range(25))
    return build_hierarchy_graph(records)


def _ids(visible: VisibleSet) -> list[str]:
    return [node.id for node in visible.nodes]


def test_collapsed_graph_shows_only_roots(small_graph: HierarchyGraph) -> None:
    visible = compute_visible_set(small_graph, ViewState())

    assert _ids(visible) == ["root", "c"]
    assert visible.edges == ()
    assert visible.nodes[0].has_children
    assert not visible.nodes[0].expanded


def test_preorder_walk_of_expanded_nodes(small_graph: HierarchyGraph) -> None:
    state = ViewState(expanded_ids=frozenset({"root", "a"}))

    visible = compute_visible_set(small_graph, state)

    assert _ids(visible) == ["root", "a", "a1", "a2", "b", "c"]
    assert [node.depth for node in visible.nodes] == [0, 1, 2, 2, 1, 0]
    # edges follow the order in which parents are visited
    assert [edge.id for edge in visible.edges] == ["root-a", "root-b", "a-a1", "a-a2"]


def test_depth_limit_stops_descent(small_graph: HierarchyGraph) -> None:
    state = ViewState(expanded_ids=frozenset({"root", "a"}), depth_limit=1)

    assert _ids(compute_visible_set(small_graph, state)) == ["root", "a", "b", "c"]


def test_scope_root_restricts_walk(small_graph: HierarchyGraph) -> None:
    state = ViewState(expanded_ids=frozenset({"a"}), scope_root_id="a")

    visible = compute_visible_set(small_graph, state)

    assert _ids(visible) == ["a", "a1", "a2"]
    assert visible.nodes[0].depth == 0


def test_unknown_scope_falls_back_to_all_roots(small_graph: HierarchyGraph) -> None:
    visible = compute_visible_set(small_graph, ViewState(scope_root_id="gone"))

    assert _ids(visible) == ["root", "c"]


def test_child_window_last_partial_page(wide_graph: HierarchyGraph) -> None:
    state = ViewState(
        expanded_ids=frozenset({"boss"}),
        children_page_size=10,
        child_page_index=2,
    )

    visible = compute_visible_set(wide_graph, state)

    children = wide_graph.nodes_by_id["boss"].children_ids
    assert _ids(visible)[1:] == list(children[20:25])
    assert visible.nodes[0].child_page == 2
    assert visible.nodes[0].child_page_count == 3
    assert len(visible.edges) == 5


@pytest.mark.parametrize(("requested", "expected_page"), [(-3, 0), (0, 0), (1, 1), (99, 2)])
def test_page_index_is_clamped(
    wide_graph: HierarchyGraph, requested: int, expected_page: int
) -> None:
    node = wide_graph.nodes_by_id["boss"]

    window = child_window(node, ViewState(child_page_index=requested))

    assert window.page == expected_page
    assert window.child_ids == node.children_ids[expected_page * 10 : expected_page * 10 + 10]


def test_node_override_beats_global_page(wide_graph: HierarchyGraph) -> None:
    node = wide_graph.nodes_by_id["boss"]
    state = ViewState(child_page_index=0, child_page_overrides={"boss": 1})

    assert child_window(node, state).child_ids == node.children_ids[10:20]


def test_show_all_children_disables_paging(wide_graph: HierarchyGraph) -> None:
    state = ViewState(expanded_ids=frozenset({"boss"}), show_all_children=True)

    visible = compute_visible_set(wide_graph, state)

    assert len(visible) == 26
    assert visible.nodes[0].child_page_count == 1


def test_small_families_are_not_paginated(small_graph: HierarchyGraph) -> None:
    node = small_graph.nodes_by_id["root"]

    window = child_window(node, ViewState(children_page_size=2, child_page_index=5))

    assert window.child_ids == ("a", "b")


def test_hover_highlights_one_hop_and_dims_the_rest(small_graph: HierarchyGraph) -> None:
    state = ViewState(expanded_ids=frozenset({"root", "a"}), hovered_id="a")

    visible = compute_visible_set(small_graph, state)
    flags = {node.id: (node.highlighted, node.dimmed) for node in visible.nodes}

    assert hover_set(small_graph, "a") == frozenset({"a", "root", "a1", "a2"})
    assert flags["a"] == (True, False)
    assert flags["root"] == (True, False)
    assert flags["a1"] == (True, False)
    assert flags["b"] == (False, True)
    assert flags["c"] == (False, True)
    highlighted_edges = {edge.id for edge in visible.edges if edge.highlighted}
    assert highlighted_edges == {"root-a", "a-a1", "a-a2"}


def test_focus_lens_dims_everything_off_the_path(small_graph: HierarchyGraph) -> None:
    state = ViewState(
        expanded_ids=frozenset({"root", "a"}),
        highlighted_path=("root", "a", "a2"),
        focus_lens=True,
    )

    visible = compute_visible_set(small_graph, state)
    dimmed = {node.id for node in visible.nodes if node.dimmed}

    assert dimmed == {"a1", "b", "c"}
    assert {edge.id for edge in visible.edges if edge.highlighted} == {"root-a", "a-a2"}


def test_highlight_without_focus_lens_dims_nothing(small_graph: HierarchyGraph) -> None:
    state = ViewState(expanded_ids=frozenset({"root"}), highlighted_path=("root", "b"))

    visible = compute_visible_set(small_graph, state)

    assert not any(node.dimmed for node in visible.nodes)
    assert [node.id for node in visible.nodes if node.highlighted] == ["root", "b"]


def test_selection_flag(small_graph: HierarchyGraph) -> None:
    visible = compute_visible_set(small_graph, ViewState(selected_id="c"))

    assert [node.id for node in visible.nodes if node.selected] == ["c"]


def test_traversal_is_deterministic(wide_graph: HierarchyGraph) -> None:
    state = ViewState(
        expanded_ids=frozenset({"boss"}),
        child_page_index=1,
        hovered_id="k12",
        highlighted_path=("boss", "k12"),
        focus_lens=True,
    )

    first = compute_visible_set(wide_graph, state)
    second = compute_visible_set(wide_graph, state)

    assert first == second
    assert first is not second


def test_stale_child_reference_is_skipped() -> None:
    parent = HierarchyNode(id="p", name="P", firm_id="1", children_ids=("gone", "kid"))
    kid = HierarchyNode(id="kid", name="K", firm_id="1", parent_id="p", depth=1)
    stale = HierarchyGraph(nodes_by_id={"p": parent, "kid": kid}, root_ids=("p", "ghost"))

    visible = compute_visible_set(stale, ViewState(expanded_ids=frozenset({"p"})))

    assert _ids(visible) == ["p", "kid"]
    assert [edge.id for edge in visible.edges] == ["p-kid"]


def test_invalid_state_is_rejected() -> None:
    with pytest.raises(ValueError, match="children_page_size"):
        ViewState(children_page_size=0)
    with pytest.raises(ValueError, match="depth_limit"):
        ViewState(depth_limit=-1)


def test_view_state_normalizes_collections() -> None:
    state = ViewState(
        expanded_ids={"a"},  # type: ignore[arg-type]
        highlighted_path=["a", "b"],  # type: ignore[arg-type]
        child_page_overrides={"a": 1},
    )

    assert state == ViewState(
        expanded_ids=frozenset({"a"}),
        highlighted_path=("a", "b"),
        child_page_overrides={"a": 1},
    )
    assert hash(state) == hash(
        ViewState(
            expanded_ids=frozenset({"a"}),
            highlighted_path=("a", "b"),
            child_page_overrides={"a": 1},
        )
    )
