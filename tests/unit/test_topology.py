# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_flow

import random
from typing import List, Tuple

import pytest

from coreason_flow.core.models import WorkflowEdge, WorkflowNode
from coreason_flow.engine.topology import (
    CyclicDependencyError,
    downstream,
    execution_layers,
    find_cycles,
    upstream,
)


def _graph(pairs: List[Tuple[str, str]], extra: Tuple[str, ...] = ()) -> Tuple[List[WorkflowNode], List[WorkflowEdge]]:
    ids: List[str] = []
    for s, t in pairs:
        for n in (s, t):
            if n not in ids:
                ids.append(n)
    ids.extend(n for n in extra if n not in ids)
    nodes = [WorkflowNode(id=n, type="transform") for n in ids]
    edges = [WorkflowEdge(id=f"{s}-{t}", source=s, target=t) for s, t in pairs]
    return nodes, edges


def _ids(nodes: List[WorkflowNode]) -> List[str]:
    return [n.id for n in nodes]


def test_linear_upstream() -> None:
    """Test A -> B -> C"""
    nodes, edges = _graph([("A", "B"), ("B", "C")])
    assert _ids(upstream("C", nodes, edges)) == ["B", "A"]
    assert _ids(upstream("A", nodes, edges)) == []


def test_diamond_has_no_duplicates() -> None:
    """Test A -> B, A -> C, B -> D, C -> D (Diamond)"""
    nodes, edges = _graph([("A", "B"), ("A", "C"), ("B", "D"), ("C", "D")])
    result = _ids(upstream("D", nodes, edges))
    assert sorted(result) == ["A", "B", "C"]
    assert result[-1] == "A"


def test_cycle_terminates_and_excludes_start() -> None:
    """Test A -> B -> C -> A"""
    nodes, edges = _graph([("A", "B"), ("B", "C"), ("C", "A")])
    result = _ids(upstream("A", nodes, edges))
    assert result == ["C", "B"]


def test_unknown_node_and_dangling_edges() -> None:
    nodes, edges = _graph([("A", "B")])
    edges.append(WorkflowEdge(id="ghost-B", source="ghost", target="B"))
    assert _ids(upstream("B", nodes, edges)) == ["A"]
    assert upstream("missing", nodes, edges) == []


def test_upstream_is_stable_across_calls() -> None:
    nodes, edges = _graph([("A", "C"), ("B", "C"), ("C", "D")])
    assert _ids(upstream("D", nodes, edges)) == _ids(upstream("D", nodes, edges))


def test_random_graphs_never_repeat_ancestors() -> None:
    rng = random.Random(7)
    names = [f"n{i}" for i in range(25)]
    for _ in range(20):
        pairs = [(rng.choice(names), rng.choice(names)) for _ in range(60)]
        pairs = [(s, t) for s, t in dict.fromkeys(pairs) if s != t]
        nodes, edges = _graph(pairs, tuple(names))
        for name in names:
            result = _ids(upstream(name, nodes, edges))
            assert len(result) == len(set(result))
            assert name not in result


def test_downstream() -> None:
    nodes, edges = _graph([("A", "B"), ("B", "C"), ("A", "D")])
    assert sorted(_ids(downstream("A", nodes, edges))) == ["B", "C", "D"]
    assert downstream("C", nodes, edges) == []


def test_execution_layers() -> None:
    nodes, edges = _graph([("A", "B"), ("A", "C"), ("B", "D"), ("C", "D")])
    assert execution_layers(nodes, edges) == [["A"], ["B", "C"], ["D"]]


def test_execution_layers_cyclic_graph() -> None:
    """Test A -> B -> A"""
    nodes, edges = _graph([("A", "B"), ("B", "A")])
    with pytest.raises(CyclicDependencyError):
        execution_layers(nodes, edges)


def test_find_cycles() -> None:
    nodes, edges = _graph([("A", "B"), ("B", "A"), ("B", "C")])
    cycles = find_cycles(nodes, edges)
    assert len(cycles) == 1
    assert sorted(cycles[0]) == ["A", "B"]
    assert find_cycles(*_graph([("A", "B")])) == []
