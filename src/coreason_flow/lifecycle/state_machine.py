# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_flow

from typing import Dict, FrozenSet, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict

from coreason_flow.core.models import ExecutionStatus, WorkflowDocument, WorkflowStatus
from coreason_flow.utils.logger import logger

S = TypeVar("S")

WORKFLOW_TRANSITIONS: Dict[WorkflowStatus, FrozenSet[WorkflowStatus]] = {
    WorkflowStatus.DRAFT: frozenset({WorkflowStatus.ACTIVE, WorkflowStatus.ARCHIVED}),
    WorkflowStatus.ACTIVE: frozenset({WorkflowStatus.PAUSED, WorkflowStatus.ARCHIVED}),
    WorkflowStatus.PAUSED: frozenset({WorkflowStatus.ACTIVE, WorkflowStatus.ARCHIVED}),
    WorkflowStatus.ARCHIVED: frozenset({WorkflowStatus.DRAFT}),
}

EXECUTION_TRANSITIONS: Dict[ExecutionStatus, FrozenSet[ExecutionStatus]] = {
    ExecutionStatus.PENDING: frozenset({ExecutionStatus.RUNNING, ExecutionStatus.CANCELLED}),
    ExecutionStatus.RUNNING: frozenset(
        {ExecutionStatus.PAUSED, ExecutionStatus.COMPLETED, ExecutionStatus.FAILED, ExecutionStatus.CANCELLED}
    ),
    ExecutionStatus.PAUSED: frozenset({ExecutionStatus.RUNNING, ExecutionStatus.CANCELLED}),
    ExecutionStatus.COMPLETED: frozenset(),
    ExecutionStatus.FAILED: frozenset(),
    ExecutionStatus.CANCELLED: frozenset(),
}


class TransitionResult(BaseModel, Generic[S]):
    """Outcome of a status change. `value` is the updated object on success."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    ok: bool
    message: str = ""
    value: Optional[S] = None


def can_transition(current: WorkflowStatus, target: WorkflowStatus) -> bool:
    return target in WORKFLOW_TRANSITIONS.get(current, frozenset())


def can_transition_execution(current: ExecutionStatus, target: ExecutionStatus) -> bool:
    return target in EXECUTION_TRANSITIONS.get(current, frozenset())


def is_terminal(status: ExecutionStatus) -> bool:
    return not EXECUTION_TRANSITIONS.get(status)


class WorkflowLifecycle:
    """
    Governs workflow status and the version/published-version axis.

    Every operation returns a new document; the input is never mutated.
    """

    def transition(self, workflow: WorkflowDocument, target: WorkflowStatus) -> TransitionResult[WorkflowDocument]:
        current = workflow.status
        if not can_transition(current, target):
            message = f"Cannot change workflow status from '{current.value}' to '{target.value}'"
            logger.warning(f"Workflow {workflow.id}: {message}")
            return TransitionResult(ok=False, message=message)

        updated = workflow.model_copy(update={"status": target}, deep=True)
        logger.info(f"Workflow {workflow.id} status {current.value} -> {target.value}")
        return TransitionResult(ok=True, value=updated)

    def transition_execution(
        self, current: ExecutionStatus, target: ExecutionStatus
    ) -> TransitionResult[ExecutionStatus]:
        if not can_transition_execution(current, target):
            message = f"Cannot change execution status from '{current.value}' to '{target.value}'"
            logger.warning(message)
            return TransitionResult(ok=False, message=message)
        return TransitionResult(ok=True, value=target)

    def record_save(self, workflow: WorkflowDocument) -> WorkflowDocument:
        """Applies a structural save: the version counter advances by one."""
        return workflow.model_copy(update={"version": workflow.version + 1}, deep=True)

    def publish(self, workflow: WorkflowDocument, published_version: Optional[int] = None) -> WorkflowDocument:
        """Marks the saved version (or the version acknowledged by the service) as published."""
        version = workflow.version if published_version is None else published_version
        return workflow.model_copy(update={"published_version": version}, deep=True)

    def has_unpublished_changes(self, workflow: WorkflowDocument) -> bool:
        return workflow.published_version is None or workflow.version > workflow.published_version

    def can_run(self, workflow: WorkflowDocument, node_count: Optional[int] = None) -> TransitionResult[None]:
        """A workflow can run once it has at least one node."""
        count = len(workflow.canvas.nodes) if node_count is None else node_count
        if count == 0:
            return TransitionResult(ok=False, message="Add at least one node before running the workflow")
        return TransitionResult(ok=True)
