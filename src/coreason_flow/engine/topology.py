# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_flow

from typing import Dict, List, Sequence

import networkx as nx

from coreason_flow.core.models import WorkflowEdge, WorkflowNode
from coreason_flow.engine.graph_store import build_digraph


class CyclicDependencyError(Exception):
    """Raised when the graph contains a cycle."""

    pass


def _by_id(nodes: Sequence[WorkflowNode]) -> Dict[str, WorkflowNode]:
    return {node.id: node for node in nodes}


def upstream(node_id: str, nodes: Sequence[WorkflowNode], edges: Sequence[WorkflowEdge]) -> List[WorkflowNode]:
    """
    Returns every node transitively reachable by following edges backward.

    Nearest ancestors come first. Each ancestor appears once and the start
    node is never included, even when a cycle leads back to it.

    Args:
        node_id: The node whose ancestors are wanted.
        nodes: Current node list.
        edges: Current edge list. Edges with a dangling endpoint are ignored.

    Returns:
        List[WorkflowNode]: Ancestors in traversal order, or [] for an unknown id.
    """
    graph = build_digraph(nodes, edges)
    if node_id not in graph:
        return []
    lookup = _by_id(nodes)
    return [lookup[ancestor] for _, ancestor in nx.bfs_edges(graph, node_id, reverse=True)]


def downstream(node_id: str, nodes: Sequence[WorkflowNode], edges: Sequence[WorkflowEdge]) -> List[WorkflowNode]:
    """Returns every node reachable by following edges forward, nearest first."""
    graph = build_digraph(nodes, edges)
    if node_id not in graph:
        return []
    lookup = _by_id(nodes)
    return [lookup[successor] for _, successor in nx.bfs_edges(graph, node_id)]


def find_cycles(nodes: Sequence[WorkflowNode], edges: Sequence[WorkflowEdge]) -> List[List[str]]:
    """Lists the elementary cycles of the graph as node id lists."""
    graph = build_digraph(nodes, edges)
    return [list(cycle) for cycle in nx.simple_cycles(graph)]


def execution_layers(nodes: Sequence[WorkflowNode], edges: Sequence[WorkflowEdge]) -> List[List[str]]:
    """Returns the topological generations (execution layers) of the graph.

    Annotation nodes carry no handles and are left out.

    Raises:
        CyclicDependencyError: If the graph contains a cycle.
    """
    runnable = [node for node in nodes if node.type != "sticky-note"]
    graph = build_digraph(runnable, edges)
    try:
        return [sorted(layer) for layer in nx.topological_generations(graph)]
    except nx.NetworkXUnfeasible as e:
        raise CyclicDependencyError("Cannot determine execution layers for a cyclic graph.") from e
