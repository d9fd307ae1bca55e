# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_flow

import json
import uuid
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from coreason_flow.core.models import Position, WorkflowDocument, WorkflowEdge, WorkflowNode, WorkflowSettings
from coreason_flow.utils.logger import logger

EXPORT_EXCLUDED_KEYS = ("_id", "id", "orgId", "createdBy", "lastModifiedBy", "stats")


class ImportFormatError(Exception):
    """Raised when an imported workflow definition is malformed."""

    pass


def _short_id() -> str:
    return uuid.uuid4().hex[:8]


def new_node_id(node_type: str) -> str:
    return f"{node_type}_{_short_id()}"


def new_edge_id() -> str:
    return f"edge_{_short_id()}"


class ImportPlan(BaseModel):
    """Validated, re-identified content of an import, ready to apply in one step."""

    model_config = ConfigDict(extra="forbid")

    nodes: List[WorkflowNode] = Field(default_factory=list)
    edges: List[WorkflowEdge] = Field(default_factory=list)
    settings: Optional[WorkflowSettings] = None
    id_mapping: Dict[str, str] = Field(default_factory=dict)
    dropped_edges: int = 0


def _load_payload(payload: Union[str, bytes, Mapping[str, Any]]) -> Mapping[str, Any]:
    if isinstance(payload, (str, bytes)):
        try:
            data = json.loads(payload)
        except ValueError as e:
            raise ImportFormatError(f"Invalid workflow definition: not valid JSON ({e})") from e
    else:
        data = payload
    if not isinstance(data, Mapping):
        raise ImportFormatError("Invalid workflow definition: expected a JSON object")
    return data


def _remap(mapping: Mapping[str, str], ref: Any) -> Optional[str]:
    return mapping.get(ref) if isinstance(ref, str) else None


def parse_import(
    payload: Union[str, bytes, Mapping[str, Any]],
    default_source_handle: str = "output",
    default_target_handle: str = "input",
) -> ImportPlan:
    """
    Parses and validates a workflow definition without touching any graph.

    Nodes get fresh ids and edges are remapped through the id translation
    table. Edges that are malformed or do not point at an imported node are
    dropped and counted in `dropped_edges`.

    Raises:
        ImportFormatError: If the definition is malformed.
    """
    data = _load_payload(payload)
    canvas = data.get("canvas")
    if not isinstance(canvas, Mapping) or not isinstance(canvas.get("nodes"), list):
        raise ImportFormatError("Invalid workflow definition: missing canvas.nodes array")

    plan = ImportPlan()
    for index, raw in enumerate(canvas["nodes"]):
        if not isinstance(raw, Mapping):
            raise ImportFormatError(f"Invalid node at index {index}: expected an object")
        try:
            node = WorkflowNode.model_validate(raw)
        except ValidationError as e:
            raise ImportFormatError(f"Invalid node at index {index}: {e.error_count()} invalid field(s)") from e
        if node.id in plan.id_mapping:
            raise ImportFormatError(f"Duplicate node id '{node.id}'")
        new_id = new_node_id(node.type)
        plan.id_mapping[node.id] = new_id
        plan.nodes.append(node.model_copy(update={"id": new_id}))

    raw_edges = canvas.get("edges") or []
    if not isinstance(raw_edges, list):
        raise ImportFormatError("Invalid workflow definition: canvas.edges must be an array")

    for index, raw in enumerate(raw_edges):
        if not isinstance(raw, Mapping):
            logger.warning(f"Dropping edge at index {index}: expected an object")
            plan.dropped_edges += 1
            continue
        source = _remap(plan.id_mapping, raw.get("source"))
        target = _remap(plan.id_mapping, raw.get("target"))
        if source is None or target is None:
            logger.warning(f"Dropping edge at index {index}: references a node that is not in the definition")
            plan.dropped_edges += 1
            continue
        fields = {
            **raw,
            "id": new_edge_id(),
            "source": source,
            "target": target,
            "sourceHandle": raw.get("sourceHandle") or default_source_handle,
            "targetHandle": raw.get("targetHandle") or default_target_handle,
        }
        fields.pop("source_handle", None)
        fields.pop("target_handle", None)
        try:
            plan.edges.append(WorkflowEdge.model_validate(fields))
        except ValidationError as e:
            logger.warning(f"Dropping edge at index {index}: {e.error_count()} invalid field(s)")
            plan.dropped_edges += 1

    raw_settings = data.get("settings")
    if isinstance(raw_settings, Mapping):
        try:
            plan.settings = WorkflowSettings.model_validate(raw_settings)
        except ValidationError as e:
            raise ImportFormatError(f"Invalid workflow settings: {e.error_count()} invalid field(s)") from e

    return plan


def export_document(workflow: WorkflowDocument) -> Dict[str, Any]:
    """Returns the portable definition of a workflow: no ids, owner or stats."""
    exported = workflow.to_wire()
    for key in EXPORT_EXCLUDED_KEYS:
        exported.pop(key, None)
    return exported


def export_filename(workflow: WorkflowDocument) -> str:
    base = "-".join((workflow.name or "workflow").lower().split())
    return f"{base}-definition.json"


class Clipboard(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    nodes: Tuple[WorkflowNode, ...] = ()
    edges: Tuple[WorkflowEdge, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.nodes


def copy_selection(nodes: Sequence[WorkflowNode], edges: Sequence[WorkflowEdge], node_ids: Iterable[str]) -> Clipboard:
    """Copies the selected nodes together with every edge touching them."""
    selected = set(node_ids)
    return Clipboard(
        nodes=tuple(n.model_copy(deep=True) for n in nodes if n.id in selected),
        edges=tuple(e.model_copy(deep=True) for e in edges if e.source in selected or e.target in selected),
    )


def paste(
    clipboard: Clipboard, offset: Tuple[float, float] = (50.0, 50.0)
) -> Tuple[List[WorkflowNode], List[WorkflowEdge]]:
    """
    Materializes clipboard content with fresh ids and shifted positions.

    Only edges whose endpoints were both copied are kept.
    """
    dx, dy = offset
    mapping: Dict[str, str] = {}
    new_nodes: List[WorkflowNode] = []
    for node in clipboard.nodes:
        new_id = new_node_id(node.type)
        mapping[node.id] = new_id
        position = Position(x=node.position.x + dx, y=node.position.y + dy)
        new_nodes.append(node.model_copy(update={"id": new_id, "position": position}, deep=True))

    new_edges = [
        edge.model_copy(
            update={"id": new_edge_id(), "source": mapping[edge.source], "target": mapping[edge.target]}, deep=True
        )
        for edge in clipboard.edges
        if edge.source in mapping and edge.target in mapping
    ]
    return new_nodes, new_edges
