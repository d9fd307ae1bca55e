# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_flow

import pytest

from coreason_flow.core.models import WorkflowNode
from coreason_flow.core.node_types import NODE_TYPES
from coreason_flow.engine.output_schema import OUTPUT_SCHEMAS, outputs_for, outputs_for_node


@pytest.mark.parametrize("node_type", sorted(NODE_TYPES) + ["my-custom-node", ""])  # type: ignore
def test_outputs_never_empty(node_type: str) -> None:
    entries = outputs_for(node_type, "n1")
    assert entries
    for entry in entries:
        assert entry.path.startswith("nodes.n1")
        assert entry.source_node_id == "n1"


def test_unknown_type_falls_back_to_generic_output() -> None:
    entries = outputs_for("my-custom-node", "x")
    assert len(entries) == 1
    assert entries[0].path == "nodes.x.output"
    assert entries[0].type == "any"
    assert entries[0].source == "my-custom-node"


def test_mongodb_query_outputs() -> None:
    paths = {e.path: e.type for e in outputs_for("mongodb-query", "Q")}
    assert paths["nodes.Q.documents"] == "array"
    assert paths["nodes.Q.count"] == "number"
    assert paths["nodes.Q.metadata.executionTimeMs"] == "number"


def test_code_node_exposes_root_path() -> None:
    paths = [e.path for e in outputs_for("code", "js")]
    assert paths == ["nodes.js", "nodes.js._execution.durationMs"]


def test_label_is_used_as_source() -> None:
    node = WorkflowNode(id="T", type="form-trigger", label="Signup Form")
    entries = outputs_for_node(node)
    assert {e.source for e in entries} == {"Signup Form"}
    assert "nodes.T.submittedAt" in [e.path for e in entries]


def test_every_registered_node_type_has_a_declared_schema() -> None:
    missing = [t for t in NODE_TYPES if t not in OUTPUT_SCHEMAS and t != "sticky-note"]
    assert missing == []
