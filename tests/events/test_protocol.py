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
from pydantic import ValidationError

from coreason_flow.events.factory import EventFactory
from coreason_flow.events.protocol import EditorEvent, StatusChanged


def test_saved_event() -> None:
    event = EventFactory.create_saved("wf-1", 4)
    assert event.event_type == "WORKFLOW_SAVED"
    assert event.workflow_id == "wf-1"
    assert event.message == "Workflow saved successfully"
    assert event.payload == {"version": 4}
    assert event.timestamp > 0


def test_execution_started_event() -> None:
    event = EventFactory.create_execution_started("wf-1", "exec-9")
    assert event.message == "Workflow execution started (ID: exec-9)"
    assert event.payload == {"execution_id": "exec-9"}


@pytest.mark.parametrize(  # type: ignore
    "status, message",
    [("active", "Workflow activated"), ("paused", "Workflow paused"), ("archived", "Workflow archived")],
)
def test_status_changed_event(status: str, message: str) -> None:
    event = EventFactory.create_status_changed("wf-1", "draft", status)
    assert event.message == message
    assert StatusChanged.model_validate(event.payload).status == status


def test_published_imported_and_loaded_events() -> None:
    assert EventFactory.create_published("wf-1", 3).payload == {"published_version": 3}
    imported = EventFactory.create_imported("wf-1", 4, 3)
    assert imported.message == "Imported 4 nodes and 3 connections"
    skipped = EventFactory.create_imported("wf-1", 4, 1, skipped_edges=2)
    assert skipped.message == "Imported 4 nodes and 1 connections (2 invalid connections skipped)"
    assert skipped.payload == {"node_count": 4, "edge_count": 1, "skipped_edges": 2}
    assert EventFactory.create_loaded("wf-1", "Onboarding").message == "Loaded workflow 'Onboarding'"


def test_error_event() -> None:
    event = EventFactory.create_error("wf-1", "save", "Failed to save workflow", stale=True)
    assert event.event_type == "ERROR"
    assert event.payload == {
        "action": "save",
        "error_message": "Failed to save workflow",
        "stale": True,
        "detail": None,
    }


def test_event_rejects_unknown_type_and_extra_fields() -> None:
    with pytest.raises(ValidationError):
        EditorEvent(event_type="NODE_START", workflow_id="wf-1", timestamp=0.0)  # type: ignore[arg-type]
    with pytest.raises(ValidationError):
        EditorEvent.model_validate({"event_type": "ERROR", "workflow_id": "wf-1", "timestamp": 0.0, "run_id": "x"})
