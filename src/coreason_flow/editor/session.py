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
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Set, Union

from pydantic import ValidationError

from coreason_flow.core.config import EditorConfig
from coreason_flow.core.interfaces import WorkflowBackend
from coreason_flow.core.models import (
    SERVICE_FIELDS,
    Canvas,
    CatalogEntry,
    Outcome,
    Viewport,
    WorkflowDocument,
    WorkflowEdge,
    WorkflowNode,
    WorkflowStatus,
    WorkflowVariable,
    generate_slug,
    merge_partial,
)
from coreason_flow.editor.transfer import (
    Clipboard,
    ImportFormatError,
    ImportPlan,
    copy_selection,
    export_document,
    new_edge_id,
    parse_import,
    paste,
)
from coreason_flow.engine import catalog, topology
from coreason_flow.engine.graph_store import GraphStore, PositionLike
from coreason_flow.engine.history import EditHistory
from coreason_flow.events.factory import EventFactory
from coreason_flow.events.sink import AsyncEventSink, LoggingEventSink
from coreason_flow.lifecycle.state_machine import WorkflowLifecycle
from coreason_flow.utils.logger import logger


class WorkflowEditor:
    """
    One open workflow: graph, history, lifecycle and the service boundary.

    Graph edits are synchronous and recorded in the edit history. Calls to
    the workflow service are async and return an Outcome; each action
    ignores re-entrant calls while it is in flight, and results that arrive
    after a newer load are discarded.
    """

    def __init__(
        self,
        backend: WorkflowBackend,
        org_id: str,
        config: Optional[EditorConfig] = None,
        sink: Optional[AsyncEventSink] = None,
    ) -> None:
        self.backend = backend
        self.org_id = org_id
        self.config = config or EditorConfig()
        self.sink: AsyncEventSink = sink or LoggingEventSink()

        self.store = GraphStore()
        self.history = EditHistory(self.store, limit=self.config.history_limit)
        self.lifecycle = WorkflowLifecycle()

        self.workflow: Optional[WorkflowDocument] = None
        self.viewport = Viewport()
        self._clipboard = Clipboard()
        self._load_token = 0
        self._in_flight: Set[str] = set()

    # --- State ---

    @property
    def nodes(self) -> List[WorkflowNode]:
        return self.store.nodes

    @property
    def edges(self) -> List[WorkflowEdge]:
        return self.store.edges

    @property
    def dirty(self) -> bool:
        return self.history.dirty

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo

    @property
    def has_unpublished_changes(self) -> bool:
        return self.workflow is not None and self.lifecycle.has_unpublished_changes(self.workflow)

    def is_busy(self, action: str) -> bool:
        return action in self._in_flight

    def current_document(self) -> Optional[WorkflowDocument]:
        """The loaded workflow with the live graph and viewport applied."""
        if self.workflow is None:
            return None
        canvas = Canvas(nodes=self.store.nodes, edges=self.store.edges, viewport=self.viewport)
        return self.workflow.model_copy(update={"canvas": canvas}, deep=True)

    def new_workflow(self, name: str, description: Optional[str] = None) -> WorkflowDocument:
        """Starts a fresh, unsaved draft."""
        workflow = WorkflowDocument(
            id=uuid.uuid4().hex,
            org_id=self.org_id,
            name=name,
            description=description,
            slug=generate_slug(name),
        )
        self._load_token += 1
        self._apply_loaded(workflow)
        self.history.mark_dirty()
        return workflow

    def _apply_loaded(self, workflow: WorkflowDocument) -> None:
        self.workflow = workflow
        self.viewport = workflow.canvas.viewport
        self.store.set_canvas(workflow.canvas.nodes, workflow.canvas.edges)
        self.history.reset()

    # --- Graph edits ---

    def add_node(self, node: WorkflowNode) -> bool:
        return self.store.add_node(node)

    def update_node(self, node_id: str, partial: Mapping[str, Any]) -> bool:
        return self.store.update_node(node_id, partial)

    def remove_node(self, node_id: str) -> bool:
        return self.store.remove_node(node_id)

    def move_node(self, node_id: str, position: PositionLike) -> bool:
        return self.store.move_node(node_id, position)

    def add_edge(self, edge: WorkflowEdge) -> bool:
        return self.store.add_edge(edge)

    def connect(
        self,
        source: str,
        target: str,
        source_handle: Optional[str] = None,
        target_handle: Optional[str] = None,
    ) -> Optional[WorkflowEdge]:
        """Creates an edge with a fresh id. Returns None if the connection is rejected."""
        edge = WorkflowEdge(
            id=new_edge_id(),
            source=source,
            source_handle=source_handle or self.config.default_source_handle,
            target=target,
            target_handle=target_handle or self.config.default_target_handle,
        )
        return edge if self.store.add_edge(edge) else None

    def update_edge(self, edge_id: str, partial: Mapping[str, Any]) -> bool:
        return self.store.update_edge(edge_id, partial)

    def remove_edge(self, edge_id: str) -> bool:
        return self.store.remove_edge(edge_id)

    def clear_canvas(self) -> bool:
        return self.store.clear()

    def set_sticky_color(self, node_id: str, color: str) -> bool:
        return self.store.set_sticky_color(node_id, color)

    def begin_drag(self) -> None:
        self.history.begin_drag()

    def end_drag(self) -> None:
        self.history.end_drag()

    def undo(self) -> bool:
        return self.history.undo()

    def redo(self) -> bool:
        return self.history.redo()

    def set_viewport(self, viewport: Viewport) -> None:
        # Presentation only, never dirty.
        self.viewport = viewport

    # --- Workflow-level edits ---

    def update_settings(self, partial: Mapping[str, Any]) -> bool:
        if self.workflow is None:
            return False
        try:
            settings = merge_partial(self.workflow.settings, partial)
        except ValidationError as e:
            logger.warning(f"Rejected settings update: {e.error_count()} invalid field(s)")
            return False
        self.workflow = self.workflow.model_copy(update={"settings": settings})
        self.history.mark_dirty()
        return True

    def update_metadata(
        self,
        name: Optional[str] = None,
        description: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
    ) -> bool:
        if self.workflow is None:
            return False
        updates: Dict[str, Any] = {}
        if name is not None:
            updates["name"] = name
        if description is not None:
            updates["description"] = description
        if tags is not None:
            updates["tags"] = list(tags)
        if not updates:
            return False
        self.workflow = self.workflow.model_copy(update=updates)
        self.history.mark_dirty()
        return True

    def set_variables(self, variables: Iterable[WorkflowVariable]) -> bool:
        if self.workflow is None:
            return False
        self.workflow = self.workflow.model_copy(update={"variables": list(variables)})
        self.history.mark_dirty()
        return True

    # --- Data flow ---

    def upstream(self, node_id: str) -> List[WorkflowNode]:
        return topology.upstream(node_id, self.store.nodes, self.store.edges)

    def catalog_for(self, node_id: str) -> List[CatalogEntry]:
        variables = self.workflow.variables if self.workflow is not None else None
        return catalog.catalog_for(node_id, self.store.nodes, self.store.edges, variables)

    def unresolved_references(self, node_id: str) -> List[str]:
        variables = self.workflow.variables if self.workflow is not None else None
        return catalog.unresolved_references(node_id, self.store.nodes, self.store.edges, variables)

    # --- Clipboard ---

    def copy(self, node_ids: Iterable[str]) -> Clipboard:
        self._clipboard = copy_selection(self.store.nodes, self.store.edges, node_ids)
        return self._clipboard

    def paste(self) -> List[str]:
        """Pastes the clipboard as one undoable action. Returns the new node ids."""
        if self._clipboard.is_empty:
            return []
        new_nodes, new_edges = paste(self._clipboard, self.config.paste_offset)
        with self.history.group():
            added = [node.id for node in new_nodes if self.store.add_node(node)]
            for edge in new_edges:
                self.store.add_edge(edge)
        return added

    # --- Import / export ---

    def _filter_plan(self, plan: ImportPlan) -> ImportPlan:
        trial = GraphStore(self.store.nodes + plan.nodes, self.store.edges)
        kept: List[WorkflowEdge] = []
        for edge in plan.edges:
            ok, reason = trial.can_connect(edge)
            if not ok:
                logger.warning(f"Dropping imported connection {edge.source} -> {edge.target}: {reason}")
                continue
            trial.add_edge(edge)
            kept.append(edge)
        dropped = plan.dropped_edges + len(plan.edges) - len(kept)
        return plan.model_copy(update={"edges": kept, "dropped_edges": dropped})

    async def import_document(self, payload: Union[str, bytes, Mapping[str, Any]]) -> Outcome[ImportPlan]:
        """
        Adds the nodes and edges of a workflow definition to the canvas.

        The definition is fully validated before anything is applied; a
        rejected import leaves the graph untouched. Connections that cannot
        be made are skipped and reported in the outcome message.
        """
        workflow_id = self.workflow.id if self.workflow is not None else ""
        try:
            plan = parse_import(payload, self.config.default_source_handle, self.config.default_target_handle)
        except ImportFormatError as e:
            logger.warning(f"Import rejected: {e}")
            await self.sink.emit(EventFactory.create_error(workflow_id, "import", str(e)))
            return Outcome.fail(str(e))

        plan = self._filter_plan(plan)
        with self.history.group():
            for node in plan.nodes:
                self.store.add_node(node)
            for edge in plan.edges:
                self.store.add_edge(edge)
        if plan.settings is not None and self.workflow is not None:
            self.workflow = self.workflow.model_copy(update={"settings": plan.settings})
            self.history.mark_dirty()

        event = EventFactory.create_imported(workflow_id, len(plan.nodes), len(plan.edges), plan.dropped_edges)
        logger.info(event.message)
        await self.sink.emit(event)
        return Outcome.ok(plan, message=event.message)

    def export_document(self) -> Optional[Dict[str, Any]]:
        document = self.current_document()
        return export_document(document) if document is not None else None

    # --- Service boundary ---

    async def _exclusive(self, action: str, call: Callable[[], Awaitable[Outcome[Any]]]) -> Outcome[Any]:
        if action in self._in_flight:
            logger.debug(f"Ignoring '{action}': already in progress")
            return Outcome.fail(f"{action.capitalize()} already in progress")
        self._in_flight.add(action)
        try:
            return await call()
        finally:
            self._in_flight.discard(action)

    def _is_stale(self, token: int) -> bool:
        return token != self._load_token

    async def _stale(self, action: str) -> Outcome[Any]:
        logger.info(f"Discarding stale '{action}' response")
        return Outcome.fail("Discarded response for a workflow that is no longer open", stale=True)

    async def _failed(self, action: str, message: str, error: Optional[BaseException] = None) -> Outcome[Any]:
        workflow_id = self.workflow.id if self.workflow is not None else ""
        if error is not None:
            logger.error(f"{action} failed for workflow {workflow_id}: {error}")
        await self.sink.emit(EventFactory.create_error(workflow_id, action, message))
        return Outcome.fail(message)

    async def load(self, workflow_id: str) -> Outcome[WorkflowDocument]:
        """Loads a workflow, replacing the current one. Only the newest load is applied."""
        self._load_token += 1
        token = self._load_token
        try:
            workflow = await self.backend.load(self.org_id, workflow_id)
        except Exception as e:
            if self._is_stale(token):
                return await self._stale("load")
            return await self._failed("load", "Failed to load workflow", e)

        if self._is_stale(token):
            return await self._stale("load")
        if workflow is None:
            return await self._failed("load", f"Workflow {workflow_id} not found")

        self._apply_loaded(workflow)
        logger.info(f"Loaded workflow {workflow.id} ({len(workflow.canvas.nodes)} nodes)")
        await self.sink.emit(EventFactory.create_loaded(workflow.id, workflow.name))
        return Outcome.ok(workflow)

    async def _save(self, token: int) -> Outcome[WorkflowDocument]:
        document = self.current_document()
        if document is None:
            return Outcome.fail("No workflow loaded")

        revision = self.history.revision
        try:
            stored = await self.backend.save(document)
        except Exception as e:
            if self._is_stale(token):
                return await self._stale("save")
            return await self._failed("save", "Failed to save workflow", e)

        if self._is_stale(token):
            return await self._stale("save")

        if self.history.revision == revision:
            self.workflow = stored
            self.history.mark_saved()
        elif self.workflow is not None:
            # Edits made while the request was in flight stay local and unsaved.
            self.workflow = self.workflow.model_copy(update={field: getattr(stored, field) for field in SERVICE_FIELDS})
        logger.info(f"Saved workflow {stored.id} (version {stored.version})")
        await self.sink.emit(EventFactory.create_saved(stored.id, stored.version))
        return Outcome.ok(stored, message="Workflow saved successfully")

    async def save(self) -> Outcome[WorkflowDocument]:
        token = self._load_token
        return await self._exclusive("save", lambda: self._save(token))

    async def _run(self, token: int) -> Outcome[str]:
        if self.workflow is None:
            return Outcome.fail("No workflow loaded")
        check = self.lifecycle.can_run(self.workflow, len(self.store.nodes))
        if not check.ok:
            return Outcome.fail(check.message)

        if self.dirty:
            saved = await self._exclusive("save", lambda: self._save(token))
            if not saved.success:
                if saved.stale:
                    return saved
                return Outcome.fail("Please save workflow before running")

        workflow_id = self.workflow.id
        try:
            execution_id = await self.backend.execute(self.org_id, workflow_id)
        except Exception as e:
            if self._is_stale(token):
                return await self._stale("run")
            return await self._failed("run", "Failed to start workflow execution", e)

        if self._is_stale(token):
            return await self._stale("run")
        logger.info(f"Started execution {execution_id} for workflow {workflow_id}")
        await self.sink.emit(EventFactory.create_execution_started(workflow_id, execution_id))
        return Outcome.ok(execution_id, message=f"Workflow execution started (ID: {execution_id})")

    async def run(self) -> Outcome[str]:
        """Triggers an execution, saving first if there are unsaved changes."""
        token = self._load_token
        return await self._exclusive("run", lambda: self._run(token))

    async def _publish(self, token: int) -> Outcome[int]:
        if self.workflow is None:
            return Outcome.fail("No workflow loaded")

        if self.dirty:
            saved = await self._exclusive("save", lambda: self._save(token))
            if not saved.success:
                if saved.stale:
                    return saved
                return Outcome.fail("Please save workflow before publishing")

        workflow_id = self.workflow.id
        try:
            published_version = await self.backend.publish(self.org_id, workflow_id)
        except Exception as e:
            if self._is_stale(token):
                return await self._stale("publish")
            return await self._failed("publish", "Failed to publish workflow", e)

        if self._is_stale(token):
            return await self._stale("publish")
        self.workflow = self.lifecycle.publish(self.workflow, published_version)
        logger.info(f"Published workflow {workflow_id} as version {published_version}")
        await self.sink.emit(EventFactory.create_published(workflow_id, published_version))
        return Outcome.ok(published_version, message=f"Workflow published as version {published_version}")

    async def publish(self) -> Outcome[int]:
        """Publishes the saved version, saving first if there are unsaved changes."""
        token = self._load_token
        return await self._exclusive("publish", lambda: self._publish(token))

    async def _set_status(self, token: int, status: WorkflowStatus) -> Outcome[WorkflowDocument]:
        if self.workflow is None:
            return Outcome.fail("No workflow loaded")

        previous = self.workflow.status
        check = self.lifecycle.transition(self.workflow, status)
        if not check.ok:
            return Outcome.fail(check.message)

        workflow_id = self.workflow.id
        try:
            stored = await self.backend.set_status(self.org_id, workflow_id, status)
        except Exception as e:
            if self._is_stale(token):
                return await self._stale("status")
            return await self._failed("status", "Failed to update workflow status", e)

        if self._is_stale(token):
            return await self._stale("status")
        self.workflow = self.workflow.model_copy(
            update={"status": stored.status, "published_version": stored.published_version, "version": stored.version}
        )
        await self.sink.emit(EventFactory.create_status_changed(workflow_id, previous.value, stored.status.value))
        return Outcome.ok(stored)

    async def set_status(self, status: WorkflowStatus) -> Outcome[WorkflowDocument]:
        """Changes the workflow status. The local document is untouched if the service rejects it."""
        token = self._load_token
        return await self._exclusive("status", lambda: self._set_status(token, status))

    def close(self) -> None:
        """Detaches from the store and invalidates in-flight responses."""
        self._load_token += 1
        self.history.detach()