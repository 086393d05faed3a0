from __future__ import annotations

import random
from datetime import timedelta

import pytest

from agencytree.domain.hierarchy import (
    BuildOptions,
    build_hierarchy_graph,
    count_by_kind,
    summarize_graph,
    synthetic_root_id,
)
from agencytree.domain.model import (
    BranchSummary,
    HierarchyGraph,
    ProducerLabel,
    RelationStatus,
    UplineSource,
)
from tests.helpers.relations import BASE_TIME, chain_records, make_record


def _assert_acyclic(graph: HierarchyGraph) -> None:
    for node in graph:
        seen = {node.id}
        parent = graph.get(node.parent_id)
        while parent is not None:
            assert parent.id not in seen, f"{node.id} reaches itself"
            seen.add(parent.id)
            parent = graph.get(parent.parent_id)


def test_small_graph_structure(small_graph: HierarchyGraph) -> None:
    small_graph.validate_invariants()

    assert small_graph.root_ids == ("root", "c")
    assert small_graph.synthetic_root_ids == ()
    root = small_graph.nodes_by_id["root"]
    assert root.children_ids == ("a", "b")
    assert small_graph.nodes_by_id["a"].children_ids == ("a1", "a2")
    assert small_graph.nodes_by_id["a1"].depth == 2
    assert root.metrics.descendant_count == 4
    assert root.metrics.direct_reports == 2
    assert root.branch_summary == BranchSummary(active=3, inactive=1, pending=1)
    assert small_graph.nodes_by_id["a"].branch_summary == BranchSummary(
        active=1, inactive=1, pending=1
    )
    assert small_graph.nodes_by_id["c"].metrics.descendant_count == 0


def test_placeholder_and_label_names() -> None:
    records = [make_record("1"), make_record("2", upline="1")]
    labels = {"1": ProducerLabel(producer_id="1", name="Jane Roe", npn="777")}

    graph = build_hierarchy_graph(records, labels=labels)

    assert graph.nodes_by_id["1"].name == "Jane Roe"
    assert graph.nodes_by_id["1"].npn == "777"
    assert graph.nodes_by_id["2"].name == "Agent 2"


def test_latest_record_wins_and_last_seen_is_max() -> None:
    old = make_record("1", upline="x", added_on=BASE_TIME)
    new = make_record("1", upline="2", added_on=BASE_TIME + timedelta(days=3))
    older_again = make_record("1", upline="y", added_on=BASE_TIME - timedelta(days=1))

    graph = build_hierarchy_graph([old, make_record("2"), new, older_again])

    assert graph.nodes_by_id["1"].parent_id == "2"
    assert graph.nodes_by_id["1"].metrics.last_seen == BASE_TIME + timedelta(days=3)
    assert len(graph) == 2


def test_upline_may_reference_an_npn() -> None:
    records = [make_record("10", npn="555"), make_record("11", upline="555")]

    graph = build_hierarchy_graph(records)

    assert graph.nodes_by_id["11"].parent_id == "10"
    assert graph.nodes_by_id["11"].upline_source is UplineSource.REAL


def test_unresolved_upline_attaches_to_synthetic_root() -> None:
    records = [make_record("1"), make_record("2", upline="missing", firm_id="323")]

    graph = build_hierarchy_graph(records)
    graph.validate_invariants()

    synthetic = synthetic_root_id("323")
    assert graph.root_ids == ("1", synthetic)
    assert graph.synthetic_root_ids == (synthetic,)
    assert graph.nodes_by_id["2"].parent_id == synthetic
    assert graph.nodes_by_id["2"].upline_source is UplineSource.SYNTHETIC
    assert graph.nodes_by_id["2"].depth == 1
    assert graph.nodes_by_id[synthetic].is_synthetic
    assert graph.issues.upline_not_found == frozenset({"2"})
    assert graph.synthetic_attachment_count == 1


def test_self_reference_is_broken() -> None:
    graph = build_hierarchy_graph([make_record("1", upline="1")])
    graph.validate_invariants()

    assert graph.issues.self_reference == frozenset({"1"})
    assert graph.nodes_by_id["1"].parent_id == synthetic_root_id("323")


@pytest.mark.parametrize("length", [2, 3, 7])
def test_cycles_are_broken_under_synthetic_root(length: int) -> None:
    records = [
        make_record(f"c{index}", upline=f"c{(index + 1) % length}") for index in range(length)
    ]

    graph = build_hierarchy_graph(records)
    graph.validate_invariants()
    _assert_acyclic(graph)

    assert len(graph.issues.cycle_break) == 1
    assert graph.synthetic_attachment_count == 1
    assert graph.synthetic_root_ids == (synthetic_root_id("323"),)
    assert len(graph) == length + 1


def test_random_inputs_always_build_valid_trees() -> None:
    rng = random.Random(20240101)
    for _ in range(25):
        size = rng.randint(1, 60)
        ids = [str(index) for index in range(size)]
        records = [
            make_record(
                producer_id,
                upline=rng.choice([*ids, None, "ghost"]),
                npn=rng.choice([None, "1", "2", "3", f"u{producer_id}"]),
                firm_id=rng.choice(["323", "400"]),
            )
            for producer_id in ids
        ]

        graph = build_hierarchy_graph(records)

        graph.validate_invariants()
        _assert_acyclic(graph)
        assert sum(1 for node in graph if not node.is_synthetic) == size


def test_duplicate_npn_grouping() -> None:
    records = [
        make_record("1", npn="123456"),
        make_record("2", npn=" 123456 "),
        make_record("3", npn="999999"),
        make_record("4"),
    ]

    graph = build_hierarchy_graph(records)
    nodes = graph.nodes_by_id

    assert nodes["1"].duplicate_group_id == nodes["2"].duplicate_group_id == "npn:123456"
    assert nodes["1"].duplicate_group_size == 2
    assert nodes["1"].has_duplicate_npn
    assert nodes["3"].duplicate_group_id is None
    assert nodes["3"].duplicate_group_size <= 1
    assert nodes["4"].duplicate_group_size == 0
    assert graph.issues.duplicate_npn == frozenset({"1", "2"})
    assert graph.issues.missing_npn == frozenset({"4"})
    review = {node_id for node_id in nodes if graph.issues.needs_review(node_id)}
    assert review == {"1", "2", "4"}


def test_ambiguous_npn_upline_is_unresolved() -> None:
    records = [
        make_record("1", npn="42"),
        make_record("2", npn="42"),
        make_record("3", upline="42"),
    ]

    graph = build_hierarchy_graph(records)

    assert graph.issues.upline_not_found == frozenset({"3"})


def test_orphans_can_attach_to_synthetic_root() -> None:
    records = [make_record("1"), make_record("2", upline="1")]

    graph = build_hierarchy_graph(
        records, options=BuildOptions(attach_orphans_to_synthetic_root=True)
    )

    assert graph.root_ids == (synthetic_root_id("323"),)
    assert graph.nodes_by_id["1"].upline_source is UplineSource.SYNTHETIC
    assert graph.nodes_by_id["2"].depth == 2


def test_synthetic_roots_are_per_firm() -> None:
    records = [
        make_record("1", upline="nope", firm_id="A"),
        make_record("2", upline="nope", firm_id="B"),
        make_record("3", upline="nope", firm_id="A"),
    ]

    graph = build_hierarchy_graph(records)

    assert graph.synthetic_root_ids == (synthetic_root_id("A"), synthetic_root_id("B"))
    assert graph.nodes_by_id[synthetic_root_id("A")].children_ids == ("1", "3")


def test_deep_chain_does_not_recurse() -> None:
    graph = build_hierarchy_graph(chain_records(5000))

    assert graph.nodes_by_id["p4999"].depth == 4999
    assert graph.nodes_by_id["p0"].metrics.descendant_count == 4999


def test_empty_input_builds_empty_graph() -> None:
    graph = build_hierarchy_graph([])

    graph.validate_invariants()
    assert len(graph) == 0
    assert graph.root_ids == ()


def test_end_to_end_scenario_counts() -> None:
    records = []
    # ten real roots, each with a flat team
    for index in range(2300):
        producer_id = f"p{index}"
        upline = None if index < 10 else f"p{index % 10}"
        records.append(make_record(producer_id, upline=upline, npn=f"npn-{index}"))
    # two duplicate pairs
    records[100] = make_record("p100", upline="p0", npn="123456")
    records[200] = make_record("p200", upline="p0", npn="123456")
    records[300] = make_record("p300", upline="p0", npn="654321")
    records[400] = make_record("p400", upline="p0", npn="654321")
    # three unresolvable uplines
    for index in (500, 600, 700):
        records[index] = make_record(f"p{index}", upline=f"ghost-{index}", npn=f"npn-{index}")

    graph = build_hierarchy_graph(records)
    summary = summarize_graph(graph)

    graph.validate_invariants()
    groups = {node.duplicate_group_id for node in graph if node.duplicate_group_id}
    assert groups == {"npn:123456", "npn:654321"}
    assert all(
        node.duplicate_group_size == 2 for node in graph if node.duplicate_group_id is not None
    )
    assert graph.synthetic_attachment_count == 3
    real_roots = [root_id for root_id in graph.root_ids if root_id not in graph.synthetic_root_ids]
    assert len(real_roots) == 10
    assert len(graph.root_ids) == len(real_roots) + len(graph.synthetic_root_ids)
    assert summary.producers == 2300
    assert summary.duplicate_groups == 2
    assert summary.synthetic_attachments == 3


def test_count_by_kind() -> None:
    records = [
        make_record("1"),
        make_record("2", upline="1", status=RelationStatus.PENDING),
        make_record("3", upline="ghost", status=RelationStatus.INACTIVE),
    ]

    counts = count_by_kind(build_hierarchy_graph(records))

    assert counts == {"active": 1, "inactive": 1, "pending": 1, "synthetic": 1}
