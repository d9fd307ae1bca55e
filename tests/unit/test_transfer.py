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
from typing import Any, Dict

import pytest

from coreason_flow.core.models import Canvas, Position, WorkflowDocument, WorkflowEdge, WorkflowNode
from coreason_flow.editor.transfer import (
    ImportFormatError,
    copy_selection,
    export_document,
    export_filename,
    paste,
    parse_import,
)


def _definition() -> Dict[str, Any]:
    return {
        "name": "Imported",
        "canvas": {
            "nodes": [
                {"id": "a", "type": "manual-trigger", "position": {"x": 0, "y": 0}},
                {"id": "b", "type": "transform", "position": {"x": 200, "y": 0}, "config": {"mode": "expression"}},
            ],
            "edges": [{"id": "old-edge", "source": "a", "target": "b"}],
        },
        "settings": {"executionMode": "sequential"},
    }


def test_import_assigns_fresh_ids() -> None:
    plan = parse_import(_definition())

    assert set(plan.id_mapping) == {"a", "b"}
    assert plan.id_mapping["a"].startswith("manual-trigger_")
    assert plan.id_mapping["b"].startswith("transform_")
    assert [n.id for n in plan.nodes] == [plan.id_mapping["a"], plan.id_mapping["b"]]
    assert plan.nodes[1].config == {"mode": "expression"}

    edge = plan.edges[0]
    assert edge.id != "old-edge" and edge.id.startswith("edge_")
    assert edge.source == plan.id_mapping["a"]
    assert edge.target == plan.id_mapping["b"]
    assert (edge.source_handle, edge.target_handle) == ("output", "input")
    assert plan.settings is not None and plan.settings.execution_mode == "sequential"


def test_import_accepts_json_text() -> None:
    plan = parse_import(json.dumps(_definition()))
    assert len(plan.nodes) == 2


def test_import_uses_configured_default_handles() -> None:
    plan = parse_import(_definition(), default_source_handle="out", default_target_handle="in")
    assert (plan.edges[0].source_handle, plan.edges[0].target_handle) == ("out", "in")


@pytest.mark.parametrize(  # type: ignore
    "payload",
    [{}, {"canvas": {}}, {"canvas": {"nodes": "nope"}}, {"canvas": []}],
)
def test_import_requires_node_array(payload: Dict[str, Any]) -> None:
    with pytest.raises(ImportFormatError, match="missing canvas.nodes array"):
        parse_import(payload)


def test_import_rejects_invalid_json() -> None:
    with pytest.raises(ImportFormatError, match="not valid JSON"):
        parse_import("{not json")
    with pytest.raises(ImportFormatError, match="expected a JSON object"):
        parse_import("[1, 2]")


def test_import_drops_dangling_and_malformed_edges() -> None:
    definition = _definition()
    definition["canvas"]["edges"] += [
        {"source": "a", "target": "ghost"},
        "not-an-edge",
        {"source": "a", "target": "b", "type": "zigzag"},
    ]
    plan = parse_import(definition)

    assert len(plan.nodes) == 2
    assert len(plan.edges) == 1
    assert plan.edges[0].source == plan.id_mapping["a"]
    assert plan.dropped_edges == 3


def test_import_rejects_malformed_nodes() -> None:
    definition = _definition()
    definition["canvas"]["nodes"].append({"id": "c"})
    with pytest.raises(ImportFormatError, match="Invalid node at index 2"):
        parse_import(definition)

    duplicate = _definition()
    duplicate["canvas"]["nodes"].append({"id": "a", "type": "transform"})
    with pytest.raises(ImportFormatError, match="Duplicate node id 'a'"):
        parse_import(duplicate)


def test_export_drops_identity_and_stats() -> None:
    workflow = WorkflowDocument(
        id="wf-1",
        org_id="org-1",
        name="My Flow",
        canvas=Canvas(nodes=[WorkflowNode(id="A", type="manual-trigger")]),
    )
    exported = export_document(workflow)

    for key in ("id", "orgId", "stats"):
        assert key not in exported
    assert exported["name"] == "My Flow"
    assert exported["canvas"]["nodes"][0]["id"] == "A"
    assert export_filename(workflow) == "my-flow-definition.json"

    # an export can be imported again
    assert len(parse_import(exported).nodes) == 1


def test_copy_and_paste() -> None:
    nodes = [
        WorkflowNode(id="A", type="transform", position=Position(x=0, y=0)),
        WorkflowNode(id="B", type="transform", position=Position(x=100, y=10)),
        WorkflowNode(id="C", type="transform"),
    ]
    edges = [
        WorkflowEdge(id="e1", source="A", target="B"),
        WorkflowEdge(id="e2", source="B", target="C"),
    ]
    clipboard = copy_selection(nodes, edges, ["A", "B"])
    assert [n.id for n in clipboard.nodes] == ["A", "B"]
    assert [e.id for e in clipboard.edges] == ["e1", "e2"]

    new_nodes, new_edges = paste(clipboard, offset=(50, 25))
    assert all(n.id not in ("A", "B") for n in new_nodes)
    assert [(n.position.x, n.position.y) for n in new_nodes] == [(50, 25), (150, 35)]
    assert len(new_edges) == 1
    assert (new_edges[0].source, new_edges[0].target) == (new_nodes[0].id, new_nodes[1].id)

    # pasting twice yields distinct ids
    again, _ = paste(clipboard)
    assert {n.id for n in again}.isdisjoint({n.id for n in new_nodes})


def test_empty_clipboard() -> None:
    clipboard = copy_selection([], [], ["A"])
    assert clipboard.is_empty
    assert paste(clipboard) == ([], [])
