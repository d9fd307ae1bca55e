# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_flow

from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from coreason_flow.core.models import CatalogEntry, WorkflowEdge, WorkflowNode, WorkflowVariable
from coreason_flow.engine.output_schema import node_prefix, outputs_for_node
from coreason_flow.engine.resolver import find_references
from coreason_flow.engine.topology import upstream
from coreason_flow.utils.logger import logger

AMBIENT_ENTRIES: Tuple[CatalogEntry, ...] = (
    CatalogEntry(path="workflow.id", name="Workflow ID", type="string", source="Workflow"),
    CatalogEntry(path="workflow.name", name="Workflow Name", type="string", source="Workflow"),
    CatalogEntry(path="execution.id", name="Execution ID", type="string", source="Execution"),
    CatalogEntry(path="execution.startedAt", name="Started At", type="date", source="Execution"),
    CatalogEntry(path="trigger.type", name="Trigger Type", type="string", source="Trigger"),
    CatalogEntry(path="trigger.payload", name="Trigger Payload", type="object", source="Trigger"),
    CatalogEntry(
        path="variables",
        name="Workflow Variables",
        type="object",
        description="Variables declared in workflow settings",
        source="Workflow",
    ),
)

_VARIABLE_TYPES = {"string", "number", "boolean", "object", "array"}


def _variable_entry(variable: WorkflowVariable) -> CatalogEntry:
    return CatalogEntry(
        path=f"variables.{variable.name}",
        name=variable.name,
        type=variable.type if variable.type in _VARIABLE_TYPES else "any",
        description=variable.description,
        source="Variables",
    )


def catalog_for(
    node_id: str,
    nodes: Sequence[WorkflowNode],
    edges: Sequence[WorkflowEdge],
    variables: Optional[Iterable[WorkflowVariable]] = None,
) -> List[CatalogEntry]:
    """
    Builds the list of data paths visible to `node_id`.

    Ambient entries come first, then declared workflow variables, then the
    outputs of each upstream node in traversal order. The node's own outputs
    are never included.
    """
    entries: List[CatalogEntry] = list(AMBIENT_ENTRIES)
    entries.extend(_variable_entry(v) for v in variables or [])
    for ancestor in upstream(node_id, nodes, edges):
        entries.extend(outputs_for_node(ancestor))
    return entries


def group_by_source(entries: Iterable[CatalogEntry]) -> Dict[str, List[CatalogEntry]]:
    """Groups entries by their source label, preserving first-seen order."""
    groups: Dict[str, List[CatalogEntry]] = {}
    for entry in entries:
        groups.setdefault(entry.source, []).append(entry)
    return groups


def search(entries: Iterable[CatalogEntry], query: str) -> List[CatalogEntry]:
    needle = query.strip().lower()
    if not needle:
        return list(entries)
    return [
        e for e in entries if needle in e.name.lower() or needle in e.path.lower() or needle in e.source.lower()
    ]


def reference(path: str) -> str:
    """Returns the template token that inserts `path` into a config value."""
    return f"{{{{{path}}}}}"


def _covers(entry_path: str, ref: str) -> bool:
    base = entry_path[:-2] if entry_path.endswith(".*") else entry_path
    return ref == base or ref.startswith(base + ".") or ref.startswith(base + "[")


def unresolved_references(
    node_id: str,
    nodes: Sequence[WorkflowNode],
    edges: Sequence[WorkflowEdge],
    variables: Optional[Iterable[WorkflowVariable]] = None,
) -> List[str]:
    """
    Lists `{{ path }}` references in the node's config that its catalog does not cover.

    Any path under an upstream node's `nodes.<id>` prefix counts as covered,
    since declared outputs are not exhaustive.
    """
    node = next((n for n in nodes if n.id == node_id), None)
    if node is None:
        return []

    entries = catalog_for(node_id, nodes, edges, variables)
    upstream_prefixes = {node_prefix(e.source_node_id) for e in entries if e.source_node_id}

    missing: List[str] = []
    for ref in find_references(node.config):
        if any(_covers(prefix, ref) for prefix in upstream_prefixes):
            continue
        if any(_covers(e.path, ref) for e in entries):
            continue
        if ref not in missing:
            missing.append(ref)

    if missing:
        logger.debug(f"Node '{node_id}' references {len(missing)} unknown path(s)")
    return missing
