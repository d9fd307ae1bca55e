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

from coreason_flow.core.models import ExecutionStatus, WorkflowDocument, WorkflowNode, WorkflowStatus
from coreason_flow.lifecycle.state_machine import (
    WorkflowLifecycle,
    can_transition,
    can_transition_execution,
    is_terminal,
)


def _workflow(status: WorkflowStatus = WorkflowStatus.DRAFT) -> WorkflowDocument:
    return WorkflowDocument(id="wf-1", org_id="org-1", name="Flow", status=status)


def test_archived_cannot_activate_directly() -> None:
    lifecycle = WorkflowLifecycle()
    workflow = _workflow(WorkflowStatus.ARCHIVED)

    result = lifecycle.transition(workflow, WorkflowStatus.ACTIVE)
    assert result.ok is False
    assert result.value is None
    assert "archived" in result.message and "active" in result.message
    assert workflow.status == WorkflowStatus.ARCHIVED


def test_archived_reactivates_through_draft() -> None:
    lifecycle = WorkflowLifecycle()
    drafted = lifecycle.transition(_workflow(WorkflowStatus.ARCHIVED), WorkflowStatus.DRAFT)
    assert drafted.ok and drafted.value is not None

    activated = lifecycle.transition(drafted.value, WorkflowStatus.ACTIVE)
    assert activated.ok
    assert activated.value is not None
    assert activated.value.status == WorkflowStatus.ACTIVE


def test_transition_does_not_mutate_input() -> None:
    workflow = _workflow()
    result = WorkflowLifecycle().transition(workflow, WorkflowStatus.ACTIVE)
    assert result.value is not None and result.value is not workflow
    assert workflow.status == WorkflowStatus.DRAFT


@pytest.mark.parametrize(  # type: ignore
    "current, target, allowed",
    [
        (WorkflowStatus.DRAFT, WorkflowStatus.ACTIVE, True),
        (WorkflowStatus.DRAFT, WorkflowStatus.PAUSED, False),
        (WorkflowStatus.DRAFT, WorkflowStatus.ARCHIVED, True),
        (WorkflowStatus.ACTIVE, WorkflowStatus.PAUSED, True),
        (WorkflowStatus.ACTIVE, WorkflowStatus.DRAFT, False),
        (WorkflowStatus.PAUSED, WorkflowStatus.ACTIVE, True),
        (WorkflowStatus.PAUSED, WorkflowStatus.ARCHIVED, True),
        (WorkflowStatus.ARCHIVED, WorkflowStatus.PAUSED, False),
        (WorkflowStatus.ACTIVE, WorkflowStatus.ACTIVE, False),
    ],
)
def test_workflow_transition_table(current: WorkflowStatus, target: WorkflowStatus, allowed: bool) -> None:
    assert can_transition(current, target) is allowed


def test_execution_transitions() -> None:
    lifecycle = WorkflowLifecycle()
    assert can_transition_execution(ExecutionStatus.PENDING, ExecutionStatus.RUNNING)
    assert can_transition_execution(ExecutionStatus.RUNNING, ExecutionStatus.PAUSED)
    assert can_transition_execution(ExecutionStatus.PAUSED, ExecutionStatus.RUNNING)
    assert not can_transition_execution(ExecutionStatus.PENDING, ExecutionStatus.COMPLETED)

    result = lifecycle.transition_execution(ExecutionStatus.COMPLETED, ExecutionStatus.RUNNING)
    assert result.ok is False
    assert lifecycle.transition_execution(ExecutionStatus.RUNNING, ExecutionStatus.FAILED).value == (
        ExecutionStatus.FAILED
    )


@pytest.mark.parametrize(  # type: ignore
    "status, terminal",
    [
        (ExecutionStatus.PENDING, False),
        (ExecutionStatus.RUNNING, False),
        (ExecutionStatus.PAUSED, False),
        (ExecutionStatus.COMPLETED, True),
        (ExecutionStatus.FAILED, True),
        (ExecutionStatus.CANCELLED, True),
    ],
)
def test_terminal_states(status: ExecutionStatus, terminal: bool) -> None:
    assert is_terminal(status) is terminal


def test_version_and_publish_axis() -> None:
    lifecycle = WorkflowLifecycle()
    workflow = _workflow()
    assert lifecycle.has_unpublished_changes(workflow)

    published = lifecycle.publish(workflow)
    assert published.published_version == 1
    assert not lifecycle.has_unpublished_changes(published)

    saved = lifecycle.record_save(published)
    assert saved.version == 2
    assert lifecycle.has_unpublished_changes(saved)

    acknowledged = lifecycle.publish(saved, published_version=2)
    assert not lifecycle.has_unpublished_changes(acknowledged)


def test_can_run_requires_a_node() -> None:
    lifecycle = WorkflowLifecycle()
    empty = _workflow()
    assert lifecycle.can_run(empty).ok is False
    assert lifecycle.can_run(empty, node_count=2).ok is True

    with_node = empty.model_copy(deep=True)
    with_node.canvas.nodes.append(WorkflowNode(id="A", type="manual-trigger"))
    assert lifecycle.can_run(with_node).ok is True
