# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_flow

import time

from coreason_flow.events.protocol import (
    EditorError,
    EditorEvent,
    ExecutionStarted,
    StatusChanged,
    WorkflowImported,
    WorkflowPublished,
    WorkflowSaved,
)


class EventFactory:
    """
    Factory for creating standardized EditorEvents.
    Reduces boilerplate in the editor session.
    """

    @staticmethod
    def create_loaded(workflow_id: str, name: str) -> EditorEvent:
        return EditorEvent(
            event_type="WORKFLOW_LOADED",
            workflow_id=workflow_id,
            timestamp=time.time(),
            message=f"Loaded workflow '{name}'",
        )

    @staticmethod
    def create_saved(workflow_id: str, version: int) -> EditorEvent:
        payload = WorkflowSaved(version=version)
        return EditorEvent(
            event_type="WORKFLOW_SAVED",
            workflow_id=workflow_id,
            timestamp=time.time(),
            message="Workflow saved successfully",
            payload=payload.model_dump(),
        )

    @staticmethod
    def create_execution_started(workflow_id: str, execution_id: str) -> EditorEvent:
        payload = ExecutionStarted(execution_id=execution_id)
        return EditorEvent(
            event_type="EXECUTION_STARTED",
            workflow_id=workflow_id,
            timestamp=time.time(),
            message=f"Workflow execution started (ID: {execution_id})",
            payload=payload.model_dump(),
        )

    @staticmethod
    def create_status_changed(workflow_id: str, previous: str, status: str) -> EditorEvent:
        payload = StatusChanged(previous=previous, status=status)
        label = "activated" if status == "active" else status
        return EditorEvent(
            event_type="STATUS_CHANGED",
            workflow_id=workflow_id,
            timestamp=time.time(),
            message=f"Workflow {label}",
            payload=payload.model_dump(),
        )

    @staticmethod
    def create_published(workflow_id: str, published_version: int) -> EditorEvent:
        payload = WorkflowPublished(published_version=published_version)
        return EditorEvent(
            event_type="WORKFLOW_PUBLISHED",
            workflow_id=workflow_id,
            timestamp=time.time(),
            message=f"Workflow published as version {published_version}",
            payload=payload.model_dump(),
        )

    @staticmethod
    def create_imported(workflow_id: str, node_count: int, edge_count: int, skipped_edges: int = 0) -> EditorEvent:
        payload = WorkflowImported(node_count=node_count, edge_count=edge_count, skipped_edges=skipped_edges)
        message = f"Imported {node_count} nodes and {edge_count} connections"
        if skipped_edges:
            message += f" ({skipped_edges} invalid connections skipped)"
        return EditorEvent(
            event_type="WORKFLOW_IMPORTED",
            workflow_id=workflow_id,
            timestamp=time.time(),
            message=message,
            payload=payload.model_dump(),
        )

    @staticmethod
    def create_error(workflow_id: str, action: str, message: str, stale: bool = False) -> EditorEvent:
        payload = EditorError(action=action, error_message=message, stale=stale)
        return EditorEvent(
            event_type="ERROR",
            workflow_id=workflow_id,
            timestamp=time.time(),
            message=message,
            payload=payload.model_dump(),
        )
