# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_flow

import uuid
from typing import Dict, List, Optional, Tuple

from coreason_flow.core.interfaces import BackendError, WorkflowBackend, WorkflowNotFoundError
from coreason_flow.core.models import SERVICE_FIELDS, ExecutionRecord, WorkflowDocument, WorkflowStatus
from coreason_flow.lifecycle.state_machine import WorkflowLifecycle
from coreason_flow.utils.logger import logger


class InMemoryWorkflowBackend(WorkflowBackend):
    """
    Workflow service kept in process memory.

    Mirrors the service rules the editor relies on: every save of an
    existing workflow bumps `version`, activation and publishing set
    `published_version` to the saved version.
    """

    def __init__(self) -> None:
        self._workflows: Dict[Tuple[str, str], WorkflowDocument] = {}
        self.executions: List[ExecutionRecord] = []
        self._lifecycle = WorkflowLifecycle()

    def _get(self, org_id: str, workflow_id: str) -> WorkflowDocument:
        stored = self._workflows.get((org_id, workflow_id))
        if stored is None:
            raise WorkflowNotFoundError(f"Workflow {workflow_id} not found")
        return stored

    async def save(self, workflow: WorkflowDocument) -> WorkflowDocument:
        key = (workflow.org_id, workflow.id)
        existing = self._workflows.get(key)
        if existing is None:
            stored = workflow.model_copy(deep=True)
        else:
            stored = self._lifecycle.record_save(
                workflow.model_copy(update={field: getattr(existing, field) for field in SERVICE_FIELDS})
            )
        self._workflows[key] = stored
        logger.info(f"Saved workflow {workflow.id} (version {stored.version})")
        return stored.model_copy(deep=True)

    async def load(self, org_id: str, workflow_id: str) -> Optional[WorkflowDocument]:
        stored = self._workflows.get((org_id, workflow_id))
        return stored.model_copy(deep=True) if stored is not None else None

    async def execute(self, org_id: str, workflow_id: str) -> str:
        workflow = self._get(org_id, workflow_id)
        execution = ExecutionRecord(id=uuid.uuid4().hex, workflow_id=workflow.id, workflow_version=workflow.version)
        self.executions.append(execution)
        logger.info(f"Queued execution {execution.id} for workflow {workflow_id}")
        return execution.id

    async def set_status(self, org_id: str, workflow_id: str, status: WorkflowStatus) -> WorkflowDocument:
        workflow = self._get(org_id, workflow_id)
        result = self._lifecycle.transition(workflow, status)
        if not result.ok or result.value is None:
            raise BackendError(result.message)

        updated = result.value
        if status == WorkflowStatus.ACTIVE:
            updated = self._lifecycle.publish(updated)
        self._workflows[(org_id, workflow_id)] = updated
        return updated.model_copy(deep=True)

    async def publish(self, org_id: str, workflow_id: str) -> int:
        published = self._lifecycle.publish(self._get(org_id, workflow_id))
        self._workflows[(org_id, workflow_id)] = published
        logger.info(f"Published workflow {workflow_id} as version {published.published_version}")
        return published.version
