from __future__ import annotations

import os

import pytest

from agencytree.domain.hierarchy import build_hierarchy_graph
from agencytree.domain.model import HierarchyGraph, RelationStatus
from tests.helpers.relations import make_record

_ENV_PREFIXES = ("SURELC_", "AGENCYTREE_")


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in list(os.environ):
        if name.startswith(_ENV_PREFIXES):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def small_graph() -> HierarchyGraph:
    """root -> (a -> (a1, a2), b); c is an unrelated root."""

    records = [
        make_record("root", npn="100"),
        make_record("a", upline="root", npn="200"),
        make_record("a1", upline="a", npn="201", status=RelationStatus.PENDING),
        make_record("a2", upline="a", npn="202", status=RelationStatus.INACTIVE),
        make_record("b", upline="root", npn="300"),
        make_record("c", npn="400"),
    ]
    return build_hierarchy_graph(records)
