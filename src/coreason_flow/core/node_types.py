# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_flow

from typing import Any, Dict, List, Literal, Mapping, Tuple

from pydantic import BaseModel, ConfigDict, Field

from coreason_flow.core.models import WorkflowNode

NodeCategory = Literal[
    "triggers",
    "logic",
    "integrations",
    "actions",
    "data",
    "ai",
    "custom",
    "annotations",
]

# Value kinds understood by the config panel.
ValueKind = Literal["string", "number", "boolean", "object", "array", "any"]

DEFAULT_INPUTS: Tuple[str, ...] = ("input",)
DEFAULT_OUTPUTS: Tuple[str, ...] = ("output",)


class NodeTypeSpec(BaseModel):
    """
    Static description of a node type: ports and config shape.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    type: str
    name: str
    category: NodeCategory
    inputs: Tuple[str, ...] = DEFAULT_INPUTS
    outputs: Tuple[str, ...] = DEFAULT_OUTPUTS
    supports_self_loop: bool = False
    config_schema: Dict[str, ValueKind] = Field(default_factory=dict)

    @property
    def is_trigger(self) -> bool:
        return self.category == "triggers"


def _spec(type_: str, name: str, category: NodeCategory, **kwargs: Any) -> NodeTypeSpec:
    return NodeTypeSpec(type=type_, name=name, category=category, **kwargs)


_TRIGGER_IO: Dict[str, Any] = {"inputs": (), "outputs": DEFAULT_OUTPUTS}

NODE_TYPES: Dict[str, NodeTypeSpec] = {
    spec.type: spec
    for spec in [
        # Triggers
        _spec("manual-trigger", "Manual Start", "triggers", **_TRIGGER_IO),
        _spec("form-trigger", "Form Submission", "triggers", config_schema={"formId": "string"}, **_TRIGGER_IO),
        _spec("webhook-trigger", "Webhook", "triggers", config_schema={"secret": "string"}, **_TRIGGER_IO),
        _spec(
            "schedule-trigger",
            "Schedule",
            "triggers",
            config_schema={"schedule": "object", "timezone": "string", "payload": "object"},
            **_TRIGGER_IO,
        ),
        # Logic
        _spec(
            "conditional",
            "If/Else",
            "logic",
            outputs=("true", "false"),
            config_schema={"conditions": "array", "combineWith": "string"},
        ),
        _spec(
            "switch",
            "Switch",
            "logic",
            outputs=(),  # derived from config, see output_handles()
            config_schema={"field": "string", "cases": "array", "defaultOutput": "string", "matchMode": "string"},
        ),
        _spec(
            "loop",
            "Loop",
            "logic",
            outputs=("output", "loop"),
            supports_self_loop=True,
            config_schema={"items": "any", "maxIterations": "number"},
        ),
        _spec("delay", "Delay", "logic", config_schema={"duration": "number", "unit": "string"}),
        # Integrations
        _spec(
            "http-request",
            "HTTP Request",
            "integrations",
            config_schema={
                "url": "string",
                "method": "string",
                "headers": "object",
                "queryParams": "object",
                "body": "any",
                "bodyType": "string",
                "auth": "object",
                "timeout": "number",
                "followRedirects": "boolean",
            },
        ),
        _spec(
            "mongodb-query",
            "MongoDB Query",
            "integrations",
            config_schema={
                "connectionId": "string",
                "collection": "string",
                "operation": "string",
                "query": "object",
                "projection": "object",
                "sort": "object",
                "limit": "number",
                "skip": "number",
                "pipeline": "array",
                "distinctField": "string",
            },
        ),
        _spec(
            "mongodb-write",
            "MongoDB Write",
            "integrations",
            config_schema={
                "connectionId": "string",
                "collection": "string",
                "operation": "string",
                "document": "any",
                "filter": "object",
                "options": "object",
            },
        ),
        _spec(
            "google-sheets",
            "Google Sheets",
            "integrations",
            config_schema={
                "connectionId": "string",
                "spreadsheetId": "string",
                "action": "string",
                "range": "string",
                "values": "array",
            },
        ),
        _spec(
            "atlas-cluster",
            "Atlas Cluster",
            "integrations",
            config_schema={"credentialId": "string", "projectId": "string", "clusterName": "string", "operation": "string"},
        ),
        _spec(
            "atlas-data-api",
            "Atlas Data API",
            "integrations",
            config_schema={
                "credentialId": "string",
                "dataSource": "string",
                "database": "string",
                "collection": "string",
                "operation": "string",
                "filter": "object",
                "pipeline": "array",
            },
        ),
        # Actions
        _spec(
            "email-send",
            "Send Email",
            "actions",
            config_schema={"to": "string", "from": "string", "subject": "string", "body": "string", "replyTo": "string"},
        ),
        _spec("notification", "Notification", "actions", config_schema={"title": "string", "message": "string"}),
        # Data
        _spec(
            "transform",
            "Transform",
            "data",
            config_schema={"mode": "string", "expression": "string", "mappings": "array", "template": "any"},
        ),
        _spec(
            "filter",
            "Filter",
            "data",
            config_schema={"inputField": "string", "outputField": "string", "conditions": "array", "combineWith": "string"},
        ),
        _spec("merge", "Merge", "data", config_schema={"mode": "string"}),
        # AI
        _spec("ai-prompt", "AI Prompt", "ai", config_schema={"prompt": "string", "model": "string", "temperature": "number"}),
        _spec("ai-classify", "AI Classify", "ai", config_schema={"text": "string", "categories": "array"}),
        _spec("ai-extract", "AI Extract", "ai", config_schema={"text": "string", "schema": "object"}),
        # Custom
        _spec("code", "Code", "custom", config_schema={"code": "string", "timeout": "number"}),
        # Annotations
        _spec(
            "sticky-note",
            "Sticky Note",
            "annotations",
            inputs=(),
            outputs=(),
            config_schema={"content": "string", "color": "string", "width": "number", "height": "number"},
        ),
    ]
}


def get_spec(node_type: str) -> NodeTypeSpec:
    """
    Returns the spec for `node_type`.

    Unknown (custom) types get a permissive single input/output spec.
    """
    spec = NODE_TYPES.get(node_type)
    if spec is None:
        return NodeTypeSpec(type=node_type, name=node_type, category="custom")
    return spec


def is_known_type(node_type: str) -> bool:
    return node_type in NODE_TYPES


def input_handles(node: WorkflowNode) -> Tuple[str, ...]:
    return get_spec(node.type).inputs


def output_handles(node: WorkflowNode) -> Tuple[str, ...]:
    """
    Output handles of a node. Switch nodes expose one handle per case output
    plus the default output.
    """
    if node.type == "switch":
        handles: List[str] = []
        cases = node.config.get("cases")
        if isinstance(cases, list):
            for case in cases:
                if isinstance(case, Mapping):
                    output = case.get("output")
                    if isinstance(output, str) and output and output not in handles:
                        handles.append(output)
        default_output = node.config.get("defaultOutput") or "default"
        if isinstance(default_output, str) and default_output not in handles:
            handles.append(default_output)
        return tuple(handles)
    return get_spec(node.type).outputs


def _kind_of(value: Any) -> ValueKind:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, Mapping):
        return "object"
    if isinstance(value, (list, tuple)):
        return "array"
    return "any"


def validate_config(node_type: str, config: Mapping[str, Any]) -> List[str]:
    """
    Checks config values against the type's schema table.

    Returns human-readable issues. Unknown keys, None values and `{{ }}`
    template strings are accepted since they resolve at runtime.
    """
    schema = get_spec(node_type).config_schema
    issues: List[str] = []
    for key, value in config.items():
        expected = schema.get(key)
        if expected is None or expected == "any" or value is None:
            continue
        if isinstance(value, str) and "{{" in value:
            continue
        actual = _kind_of(value)
        if actual != expected:
            issues.append(f"Field '{key}' of {node_type} expects {expected}, got {actual}")
    return issues
