# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_flow

"""
coreason-flow: graph model and data-flow engine for the visual workflow builder.
"""

__version__ = "0.1.0"

from coreason_flow.core.config import EditorConfig
from coreason_flow.core.interfaces import BackendError, WorkflowBackend, WorkflowNotFoundError
from coreason_flow.core.models import (
    CatalogEntry,
    ExecutionStatus,
    Outcome,
    WorkflowDocument,
    WorkflowEdge,
    WorkflowNode,
    WorkflowStatus,
)
from coreason_flow.editor.session import WorkflowEditor
from coreason_flow.editor.transfer import ImportFormatError, parse_import
from coreason_flow.engine.catalog import catalog_for
from coreason_flow.engine.conditions import (
    Condition,
    ConditionGroup,
    compile_group,
    evaluate_group,
    match_switch,
    parse_expression,
)
from coreason_flow.engine.graph_store import GraphStore
from coreason_flow.engine.history import EditHistory
from coreason_flow.engine.output_schema import outputs_for
from coreason_flow.engine.topology import upstream
from coreason_flow.events.protocol import EditorEvent
from coreason_flow.lifecycle.state_machine import WorkflowLifecycle

__all__ = [
    "BackendError",
    "CatalogEntry",
    "Condition",
    "ConditionGroup",
    "EditHistory",
    "EditorConfig",
    "EditorEvent",
    "ExecutionStatus",
    "GraphStore",
    "ImportFormatError",
    "Outcome",
    "WorkflowBackend",
    "WorkflowDocument",
    "WorkflowEdge",
    "WorkflowEditor",
    "WorkflowLifecycle",
    "WorkflowNode",
    "WorkflowNotFoundError",
    "WorkflowStatus",
    "catalog_for",
    "compile_group",
    "evaluate_group",
    "match_switch",
    "outputs_for",
    "parse_expression",
    "parse_import",
    "upstream",
]
