# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_flow

from typing import Optional, Protocol

from coreason_flow.core.models import WorkflowDocument, WorkflowStatus


class BackendError(Exception):
    """Raised by a WorkflowBackend when the remote call fails."""

    pass


class WorkflowNotFoundError(BackendError):
    """Raised when a workflow does not exist for the organization."""

    pass


class WorkflowBackend(Protocol):
    """
    Interface for the workflow service (persistence, execution, publishing).

    Implementations raise on failure; the editor turns failures into outcomes.
    Every call must be idempotent on retry.
    """

    async def save(self, workflow: WorkflowDocument) -> WorkflowDocument:
        """Persists the workflow and returns the stored copy (authoritative version)."""
        ...

    async def load(self, org_id: str, workflow_id: str) -> Optional[WorkflowDocument]:
        """Loads a workflow. Returns None when it does not exist."""
        ...

    async def execute(self, org_id: str, workflow_id: str) -> str:
        """Triggers a run and returns the execution id."""
        ...

    async def set_status(self, org_id: str, workflow_id: str, status: WorkflowStatus) -> WorkflowDocument:
        """Changes the workflow status and returns the stored copy."""
        ...

    async def publish(self, org_id: str, workflow_id: str) -> int:
        """Publishes the saved version. Returns the new published version."""
        ...
