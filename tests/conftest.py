# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_flow

from typing import Any, List, Tuple

import pytest

from coreason_flow.core.models import Position, WorkflowEdge, WorkflowNode

pytest_plugins = ("pytest_asyncio",)


def node(node_id: str, node_type: str = "transform", **kwargs: Any) -> WorkflowNode:
    return WorkflowNode(id=node_id, type=node_type, position=Position(x=0, y=0), **kwargs)


def edge(edge_id: str, source: str, target: str, **kwargs: Any) -> WorkflowEdge:
    return WorkflowEdge(id=edge_id, source=source, target=target, **kwargs)


@pytest.fixture  # type: ignore
def trigger_query_condition() -> Tuple[List[WorkflowNode], List[WorkflowEdge]]:
    """T (form-trigger) -> Q (mongodb-query) -> C (conditional)"""
    nodes = [
        node("T", "form-trigger", label="Signup Form"),
        node("Q", "mongodb-query", label="Find User"),
        node("C", "conditional"),
    ]
    edges = [edge("e1", "T", "Q"), edge("e2", "Q", "C")]
    return nodes, edges
