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
Declared output shapes per node type.

These tables document what the execution service writes under
`nodes.<id>` after a node runs. Nothing here can observe the real values,
so the tables must be updated whenever the runtime handlers change.
"""

from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from coreason_flow.core.models import CatalogEntry, VariableType, WorkflowNode


class OutputTemplate(BaseModel):
    """One output path relative to `nodes.<id>`. An empty suffix is the node root."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    suffix: str
    name: str
    type: VariableType = "any"
    description: Optional[str] = None


def _t(suffix: str, name: str, type_: VariableType, description: Optional[str] = None) -> OutputTemplate:
    return OutputTemplate(suffix=suffix, name=name, type=type_, description=description)


PASS_THROUGH = _t("data", "Pass-through Data", "object", "Input data passed through")

FALLBACK: Tuple[OutputTemplate, ...] = (_t("output", "Output", "any"),)

OUTPUT_SCHEMAS: Dict[str, Tuple[OutputTemplate, ...]] = {
    # Triggers
    "form-trigger": (
        _t("data", "Form Data", "object", "All submitted form fields"),
        _t("data.*", "Any Field", "any", "Access any form field by name"),
        _t("submittedAt", "Submitted At", "date"),
        _t("formId", "Form ID", "string"),
        _t("respondent", "Respondent", "object"),
        _t("respondent.email", "Respondent Email", "string"),
        _t("respondent.userId", "Respondent User ID", "string"),
    ),
    "webhook-trigger": (
        _t("body", "Request Body", "object"),
        _t("headers", "Headers", "object"),
        _t("query", "Query Params", "object"),
        _t("method", "HTTP Method", "string"),
    ),
    "manual-trigger": (
        _t("triggeredBy", "Triggered By", "string"),
        _t("triggeredAt", "Triggered At", "date"),
    ),
    "schedule-trigger": (
        _t("scheduledTime", "Scheduled Time", "date"),
        _t("executionTime", "Execution Time", "date"),
    ),
    # Integrations
    "http-request": (
        _t("data", "Response Data", "any", "Parsed response body (JSON or text)"),
        _t("status", "Status Code", "number"),
        _t("statusText", "Status Text", "string"),
        _t("headers", "Response Headers", "object"),
        _t("ok", "Is OK (2xx)", "boolean"),
        _t("url", "Final URL", "string", "URL after redirects"),
    ),
    "mongodb-query": (
        _t("documents", "Documents", "array", "Array of matched documents (find/aggregate)"),
        _t("document", "Document", "object", "Single document (findOne)"),
        _t("count", "Count", "number"),
        _t("found", "Found", "boolean", "Whether document was found (findOne)"),
        _t("values", "Distinct Values", "array", "Array of distinct values"),
        _t("metadata.collection", "Collection", "string"),
        _t("metadata.operation", "Operation", "string"),
        _t("metadata.executionTimeMs", "Query Time (ms)", "number"),
    ),
    "mongodb-write": (
        _t("insertedId", "Inserted ID", "string"),
        _t("modifiedCount", "Modified Count", "number"),
        _t("matchedCount", "Matched Count", "number"),
    ),
    "google-sheets": (
        _t("values", "Row Values", "array", "Rows read from the range"),
        _t("updatedRange", "Updated Range", "string"),
        _t("updatedRows", "Updated Rows", "number"),
    ),
    "atlas-cluster": (
        _t("cluster", "Cluster", "object"),
        _t("stateName", "State", "string"),
        _t("success", "Success", "boolean"),
    ),
    "atlas-data-api": (
        _t("documents", "Documents", "array"),
        _t("document", "Document", "object"),
        _t("insertedId", "Inserted ID", "string"),
        _t("matchedCount", "Matched Count", "number"),
        _t("modifiedCount", "Modified Count", "number"),
    ),
    # Actions
    "email-send": (
        _t("success", "Success", "boolean"),
        _t("messageId", "Message ID", "string"),
        _t("to", "Recipient", "string"),
    ),
    "notification": (
        _t("success", "Success", "boolean"),
        _t("notificationId", "Notification ID", "string"),
    ),
    # Data
    "transform": (_t("result", "Transformed Data", "any"),),
    "filter": (
        _t("filtered", "Filtered Items", "array", "Items that passed the filter"),
        _t("removed", "Removed Items", "array", "Items that were filtered out"),
        _t("counts.total", "Total Count", "number"),
        _t("counts.passed", "Passed Count", "number"),
        _t("counts.removed", "Removed Count", "number"),
        _t("counts.passRate", "Pass Rate (%)", "number"),
        _t("first", "First Item", "any"),
        _t("last", "Last Item", "any"),
        _t("isEmpty", "Is Empty", "boolean"),
    ),
    "merge": (
        _t("merged", "Merged Data", "any"),
        _t("sources", "Source Count", "number"),
    ),
    # AI
    "ai-prompt": (
        _t("response", "AI Response", "string"),
        _t("usage", "Token Usage", "object"),
    ),
    "ai-classify": (
        _t("category", "Category", "string"),
        _t("confidence", "Confidence", "number"),
    ),
    "ai-extract": (
        _t("extracted", "Extracted Fields", "object"),
        _t("usage", "Token Usage", "object"),
    ),
    # Logic
    "conditional": (
        _t("result", "Condition Result", "boolean", "true if conditions passed"),
        _t("branch", "Chosen Branch", "string", '"true" or "false"'),
        PASS_THROUGH,
        _t("evaluatedConditions", "Evaluated Conditions", "array", "Details of each condition evaluation"),
    ),
    "switch": (
        _t("output", "Output Branch", "string", "Name of matched output branch"),
        _t("matchedCase", "Matched Case", "any", 'Value that matched, or "default"'),
        _t("matchedIndex", "Matched Index", "number", "Index of matched case (-1 for default)"),
        _t("isDefault", "Is Default", "boolean", "True if default branch was taken"),
        _t("fieldValue", "Field Value", "any", "The value that was evaluated"),
        PASS_THROUGH,
    ),
    "loop": (
        _t("currentItem", "Current Item", "any"),
        _t("index", "Current Index", "number"),
        _t("results", "Loop Results", "array"),
    ),
    "delay": (
        _t("delayedUntil", "Delayed Until", "date"),
        _t("actualDelayMs", "Actual Delay (ms)", "number"),
        _t("data", "Pass-through Data", "object"),
    ),
    # Custom
    "code": (
        _t("", "Code Output", "object", "Whatever the code returns"),
        _t("_execution.durationMs", "Execution Time", "number", "How long the code took to run (ms)"),
    ),
}


def output_templates(node_type: str) -> List[OutputTemplate]:
    """Returns the declared outputs of a node type. Unknown types get a single generic output."""
    return list(OUTPUT_SCHEMAS.get(node_type, FALLBACK))


def node_prefix(node_id: str) -> str:
    return f"nodes.{node_id}"


def outputs_for(node_type: str, node_id: str, label: Optional[str] = None) -> List[CatalogEntry]:
    """
    Materializes the output templates of `node_type` for a concrete node.

    Args:
        node_type: The node type tag.
        node_id: Id used as the path prefix.
        label: Display label used as the entry source. Defaults to the node type.

    Returns:
        List[CatalogEntry]: Never empty.
    """
    prefix = node_prefix(node_id)
    source = label or node_type
    return [
        CatalogEntry(
            path=f"{prefix}.{template.suffix}" if template.suffix else prefix,
            name=template.name,
            type=template.type,
            description=template.description,
            source=source,
            source_node_id=node_id,
        )
        for template in output_templates(node_type)
    ]


def outputs_for_node(node: WorkflowNode) -> List[CatalogEntry]:
    return outputs_for(node.type, node.id, node.label)
