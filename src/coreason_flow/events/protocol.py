# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_flow

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

EditorEventType = Literal[
    "WORKFLOW_LOADED",
    "WORKFLOW_SAVED",
    "WORKFLOW_IMPORTED",
    "EXECUTION_STARTED",
    "STATUS_CHANGED",
    "WORKFLOW_PUBLISHED",
    "ERROR",
]


class EditorEvent(BaseModel):
    """
    The unit of communication between an editor session and whoever
    displays its results (toasts, status bar, audit trail).
    """

    model_config = ConfigDict(extra="forbid")

    event_type: EditorEventType
    workflow_id: str
    timestamp: float
    message: str = ""
    payload: Dict[str, Any] = Field(default_factory=dict)


class WorkflowSaved(BaseModel):
    model_config = ConfigDict(extra="forbid")
    version: int


class ExecutionStarted(BaseModel):
    model_config = ConfigDict(extra="forbid")
    execution_id: str


class StatusChanged(BaseModel):
    model_config = ConfigDict(extra="forbid")
    previous: str
    status: str


class WorkflowPublished(BaseModel):
    model_config = ConfigDict(extra="forbid")
    published_version: int


class WorkflowImported(BaseModel):
    model_config = ConfigDict(extra="forbid")
    node_count: int
    edge_count: int
    skipped_edges: int = 0


class EditorError(BaseModel):
    model_config = ConfigDict(extra="forbid")
    action: str
    error_message: str
    stale: bool = False
    detail: Optional[str] = None
