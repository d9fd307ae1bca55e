# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_flow

import re
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Generic, List, Literal, Mapping, Optional, Tuple, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")
M = TypeVar("M", bound="CanvasModel")

VariableType = Literal["string", "number", "boolean", "date", "array", "object", "any"]


class CanvasModel(BaseModel):
    """
    Base for every persisted workflow entity.

    Field names are snake_case in Python and camelCase on the wire.
    Unknown keys in stored documents are ignored.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


def merge_partial(model: M, partial: Mapping[str, Any]) -> M:
    """
    Shallow-merges `partial` over `model` and re-validates.

    Keys may be given either as field names or as wire aliases.
    Raises pydantic.ValidationError if the result is invalid.
    """
    data = model.model_dump(by_alias=True)
    fields = type(model).model_fields
    for key, value in partial.items():
        field = fields.get(key)
        data[field.alias if field is not None and field.alias else key] = value
    return type(model).model_validate(data)


class Position(CanvasModel):
    x: float = 0.0
    y: float = 0.0


class RetryPolicy(CanvasModel):
    max_retries: int = 3
    backoff_multiplier: float = 2.0
    initial_delay_ms: int = 1000


class RunCondition(CanvasModel):
    expression: str
    skip_on_false: bool = True


class WorkflowNode(CanvasModel):
    """
    Represents a single node in the workflow graph.

    `config` is opaque here; its shape is owned by the node type.
    """

    id: str
    type: str  # e.g., "form-trigger", "mongodb-query", "conditional"
    position: Position = Field(default_factory=Position)
    config: Dict[str, Any] = Field(default_factory=dict)

    label: Optional[str] = None
    notes: Optional[str] = None
    collapsed: Optional[bool] = None

    enabled: bool = True
    timeout: Optional[int] = None
    retry_policy: Optional[RetryPolicy] = None
    run_condition: Optional[RunCondition] = None

    @property
    def display_label(self) -> str:
        return self.label or self.type


class EdgeCondition(CanvasModel):
    expression: str
    label: Optional[str] = None


class EdgeStyle(CanvasModel):
    stroke: Optional[str] = None
    stroke_width: Optional[float] = None
    stroke_dasharray: Optional[str] = None


class DataMapping(CanvasModel):
    source_field: str
    target_field: str
    transform: Optional[str] = None


class WorkflowEdge(CanvasModel):
    """
    Represents a directed, handle-qualified edge between two nodes.
    """

    id: str
    source: str
    source_handle: str = "output"
    target: str
    target_handle: str = "input"

    mapping: Optional[List[DataMapping]] = None
    condition: Optional[EdgeCondition] = None  # gates traversal at execution time

    # Visual only
    type: Optional[Literal["default", "straight", "step", "smoothstep"]] = None
    animated: Optional[bool] = None
    style: Optional[EdgeStyle] = None

    @property
    def connection_key(self) -> Tuple[str, str, str, str]:
        return (self.source, self.source_handle, self.target, self.target_handle)


class Viewport(CanvasModel):
    x: float = 0.0
    y: float = 0.0
    zoom: float = 1.0


class Canvas(CanvasModel):
    nodes: List[WorkflowNode] = Field(default_factory=list)
    edges: List[WorkflowEdge] = Field(default_factory=list)
    viewport: Viewport = Field(default_factory=Viewport)


class EmbedSettings(CanvasModel):
    enabled: bool = False
    allow_public_execution: bool = False
    allowed_origins: List[str] = Field(default_factory=list)


class WorkflowSettings(CanvasModel):
    execution_mode: Literal["sequential", "parallel", "auto", "immediate"] = "auto"
    max_execution_time: int = 300000  # ms
    retry_policy: RetryPolicy = Field(default_factory=RetryPolicy)
    error_handling: Literal["stop", "continue", "rollback"] = "stop"
    timezone: str = "UTC"
    embed: Optional[EmbedSettings] = None


class WorkflowVariable(CanvasModel):
    id: str
    name: str
    type: Literal["string", "number", "boolean", "object", "array"] = "string"
    default_value: Any = None
    description: Optional[str] = None


class WorkflowStats(CanvasModel):
    """Aggregate execution counters. Maintained by the execution service."""

    total_executions: int = 0
    successful_executions: int = 0
    failed_executions: int = 0
    avg_execution_time_ms: float = 0.0
    last_executed_at: Optional[datetime] = None


class WorkflowStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    ARCHIVED = "archived"


class ExecutionStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class WorkflowDocument(CanvasModel):
    """
    The workflow as persisted by the workflow service.
    """

    id: str
    org_id: str
    name: str
    description: Optional[str] = None
    slug: str = ""
    tags: List[str] = Field(default_factory=list)

    canvas: Canvas = Field(default_factory=Canvas)
    settings: WorkflowSettings = Field(default_factory=WorkflowSettings)
    variables: List[WorkflowVariable] = Field(default_factory=list)

    status: WorkflowStatus = WorkflowStatus.DRAFT
    version: int = 1
    published_version: Optional[int] = None

    stats: WorkflowStats = Field(default_factory=WorkflowStats)


# Fields owned by the workflow service; a save never overwrites them from the client copy.
SERVICE_FIELDS = ("version", "published_version", "status", "stats")


class ExecutionRecord(CanvasModel):
    """
    A run record owned by the execution service. Read-only here.
    """

    id: str
    workflow_id: str
    workflow_version: int = 1
    status: ExecutionStatus = ExecutionStatus.PENDING
    current_node_id: Optional[str] = None
    completed_nodes: List[str] = Field(default_factory=list)
    failed_nodes: List[str] = Field(default_factory=list)
    skipped_nodes: List[str] = Field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class CatalogEntry(BaseModel):
    """
    A typed data path a node may reference.

    Describes what should exist at runtime for the source node type,
    not a verified runtime value.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid", frozen=True)

    path: str
    name: str
    type: VariableType = "any"
    description: Optional[str] = None
    source: str
    source_node_id: str = ""


class Outcome(BaseModel, Generic[T]):
    """
    Result of a call across the service boundary.
    """

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    success: bool
    message: str = ""
    value: Optional[T] = None
    stale: bool = False

    @classmethod
    def ok(cls, value: Optional[T] = None, message: str = "") -> "Outcome[T]":
        return cls(success=True, value=value, message=message)

    @classmethod
    def fail(cls, message: str, stale: bool = False) -> "Outcome[T]":
        return cls(success=False, message=message, stale=stale)


def generate_slug(name: str) -> str:
    """Generate a URL-safe slug from a name."""
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower())
    slug = re.sub(r"^-|-$", "", slug)
    return slug[:50]
