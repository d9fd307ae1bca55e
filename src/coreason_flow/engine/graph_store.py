# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_flow

from typing import Any, Callable, Dict, Iterable, List, Literal, Mapping, Optional, Tuple, Union

import networkx as nx
from pydantic import BaseModel, ConfigDict, ValidationError

from coreason_flow.core.models import Position, WorkflowEdge, WorkflowNode, merge_partial
from coreason_flow.core.node_types import get_spec, input_handles, output_handles
from coreason_flow.utils.logger import logger

ChangeKind = Literal[
    "node_added",
    "node_updated",
    "node_removed",
    "node_moved",
    "edge_added",
    "edge_updated",
    "edge_removed",
    "cleared",
    "canvas_replaced",
    "restored",
]

PositionLike = Union[Position, Mapping[str, float], Tuple[float, float]]


class GraphChange(BaseModel):
    """Notification sent to store listeners after a successful mutation."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: ChangeKind
    target_id: Optional[str] = None


class GraphSnapshot(BaseModel):
    """Immutable copy of the node and edge lists."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    nodes: Tuple[WorkflowNode, ...] = ()
    edges: Tuple[WorkflowEdge, ...] = ()


ChangeListener = Callable[[GraphChange], None]


def _to_position(position: PositionLike) -> Position:
    if isinstance(position, Position):
        return position
    if isinstance(position, Mapping):
        return Position(x=position.get("x", 0.0), y=position.get("y", 0.0))
    x, y = position
    return Position(x=x, y=y)


class GraphStore:
    """
    Owns the canonical node and edge lists of one workflow canvas.

    All mutations are synchronous and total: unknown ids are no-ops and
    rejected edges return False. Nothing here raises for bad input, since
    callers are UI event handlers that can race with stale ids.
    """

    def __init__(
        self,
        nodes: Optional[Iterable[WorkflowNode]] = None,
        edges: Optional[Iterable[WorkflowEdge]] = None,
    ) -> None:
        self._nodes: List[WorkflowNode] = list(nodes or [])
        self._edges: List[WorkflowEdge] = list(edges or [])
        self._listeners: List[ChangeListener] = []

    # --- Read access ---

    @property
    def nodes(self) -> List[WorkflowNode]:
        return list(self._nodes)

    @property
    def edges(self) -> List[WorkflowEdge]:
        return list(self._edges)

    def get_node(self, node_id: str) -> Optional[WorkflowNode]:
        for node in self._nodes:
            if node.id == node_id:
                return node
        return None

    def get_edge(self, edge_id: str) -> Optional[WorkflowEdge]:
        for edge in self._edges:
            if edge.id == edge_id:
                return edge
        return None

    def incident_edges(self, node_id: str) -> List[WorkflowEdge]:
        return [e for e in self._edges if e.source == node_id or e.target == node_id]

    # --- Listeners ---

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Registers a change listener. Returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self, kind: ChangeKind, target_id: Optional[str] = None) -> None:
        change = GraphChange(kind=kind, target_id=target_id)
        for listener in list(self._listeners):
            listener(change)

    # --- Node mutations ---

    def add_node(self, node: WorkflowNode) -> bool:
        if self.get_node(node.id) is not None:
            logger.warning(f"Rejected node '{node.id}': id already in use")
            return False
        self._nodes.append(node)
        self._notify("node_added", node.id)
        return True

    def update_node(self, node_id: str, partial: Mapping[str, Any]) -> bool:
        """Shallow-merges `partial` into the node. The id cannot be changed."""
        index = self._node_index(node_id)
        if index is None:
            return False

        current = self._nodes[index]
        updates = {k: v for k, v in partial.items() if k != "id"}
        try:
            updated = merge_partial(current, updates)
        except ValidationError as e:
            logger.warning(f"Rejected update for node '{node_id}': {e.error_count()} invalid field(s)")
            return False

        if updated == current:
            return True
        self._nodes[index] = updated
        self._notify("node_updated", node_id)
        return True

    def remove_node(self, node_id: str) -> bool:
        """Removes the node and every edge touching it."""
        index = self._node_index(node_id)
        if index is None:
            return False
        del self._nodes[index]
        self._edges = [e for e in self._edges if e.source != node_id and e.target != node_id]
        self._notify("node_removed", node_id)
        return True

    def move_node(self, node_id: str, position: PositionLike) -> bool:
        index = self._node_index(node_id)
        if index is None:
            return False

        new_position = _to_position(position)
        current = self._nodes[index]
        if current.position == new_position:
            return True
        self._nodes[index] = current.model_copy(update={"position": new_position})
        self._notify("node_moved", node_id)
        return True

    def set_sticky_color(self, node_id: str, color: str) -> bool:
        """Sets the colour of an annotation node's config."""
        node = self.get_node(node_id)
        if node is None:
            return False
        return self.update_node(node_id, {"config": {**node.config, "color": color}})

    # --- Edge mutations ---

    def can_connect(self, edge: WorkflowEdge, ignore_edge_id: Optional[str] = None) -> Tuple[bool, str]:
        """
        Checks whether `edge` may be added to the current graph.

        Returns:
            (True, "") or (False, reason).
        """
        source = self.get_node(edge.source)
        if source is None:
            return False, f"Source node '{edge.source}' does not exist"
        target = self.get_node(edge.target)
        if target is None:
            return False, f"Target node '{edge.target}' does not exist"

        if edge.source_handle not in output_handles(source):
            return False, f"Node '{source.id}' ({source.type}) has no output handle '{edge.source_handle}'"
        if edge.target_handle not in input_handles(target):
            return False, f"Node '{target.id}' ({target.type}) has no input handle '{edge.target_handle}'"

        if edge.source == edge.target and not get_spec(source.type).supports_self_loop:
            return False, f"Node type '{source.type}' does not support self-loops"

        for existing in self._edges:
            if existing.id == ignore_edge_id:
                continue
            if existing.id == edge.id:
                return False, f"Edge id '{edge.id}' already in use"
            if existing.connection_key == edge.connection_key:
                return False, "An identical connection already exists"

        return True, ""

    def add_edge(self, edge: WorkflowEdge) -> bool:
        ok, reason = self.can_connect(edge)
        if not ok:
            logger.warning(f"Rejected edge '{edge.id}': {reason}")
            return False
        self._edges.append(edge)
        self._notify("edge_added", edge.id)
        return True

    def update_edge(self, edge_id: str, partial: Mapping[str, Any]) -> bool:
        index = self._edge_index(edge_id)
        if index is None:
            return False

        current = self._edges[index]
        updates = {k: v for k, v in partial.items() if k != "id"}
        try:
            updated = merge_partial(current, updates)
        except ValidationError as e:
            logger.warning(f"Rejected update for edge '{edge_id}': {e.error_count()} invalid field(s)")
            return False

        if updated.connection_key != current.connection_key:
            ok, reason = self.can_connect(updated, ignore_edge_id=edge_id)
            if not ok:
                logger.warning(f"Rejected update for edge '{edge_id}': {reason}")
                return False

        if updated == current:
            return True
        self._edges[index] = updated
        self._notify("edge_updated", edge_id)
        return True

    def remove_edge(self, edge_id: str) -> bool:
        index = self._edge_index(edge_id)
        if index is None:
            return False
        del self._edges[index]
        self._notify("edge_removed", edge_id)
        return True

    # --- Bulk operations ---

    def clear(self) -> bool:
        if not self._nodes and not self._edges:
            return False
        self._nodes = []
        self._edges = []
        self._notify("cleared")
        return True

    def set_canvas(self, nodes: Iterable[WorkflowNode], edges: Iterable[WorkflowEdge]) -> None:
        """Replaces the whole graph. Callers are responsible for validating it first."""
        self._nodes = list(nodes)
        self._edges = list(edges)
        self._notify("canvas_replaced")

    def snapshot(self) -> GraphSnapshot:
        return GraphSnapshot(
            nodes=tuple(n.model_copy(deep=True) for n in self._nodes),
            edges=tuple(e.model_copy(deep=True) for e in self._edges),
        )

    def restore(self, snapshot: GraphSnapshot) -> None:
        self._nodes = [n.model_copy(deep=True) for n in snapshot.nodes]
        self._edges = [e.model_copy(deep=True) for e in snapshot.edges]
        self._notify("restored")

    # --- Graph view ---

    def to_digraph(self) -> nx.DiGraph:
        return build_digraph(self._nodes, self._edges)

    # --- Helpers ---

    def _node_index(self, node_id: str) -> Optional[int]:
        for i, node in enumerate(self._nodes):
            if node.id == node_id:
                return i
        return None

    def _edge_index(self, edge_id: str) -> Optional[int]:
        for i, edge in enumerate(self._edges):
            if edge.id == edge_id:
                return i
        return None


def build_digraph(nodes: Iterable[WorkflowNode], edges: Iterable[WorkflowEdge]) -> nx.DiGraph:
    """
    Builds a NetworkX DiGraph from node and edge lists.

    Edges with a dangling endpoint are skipped. Parallel edges between the
    same pair of nodes (different handles) collapse into one graph edge.
    """
    graph = nx.DiGraph()
    for node in nodes:
        graph.add_node(node.id, type=node.type, label=node.display_label)

    for edge in edges:
        if edge.source not in graph or edge.target not in graph:
            continue
        attrs: Dict[str, Any] = {"id": edge.id, "handles": (edge.source_handle, edge.target_handle)}
        if edge.condition:
            attrs["condition"] = edge.condition.expression
        graph.add_edge(edge.source, edge.target, **attrs)

    return graph
