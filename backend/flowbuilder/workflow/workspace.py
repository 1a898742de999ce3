"""
Flow Workspace — the single object canvas collaborators hold.

Bundles the graph being edited with its persistence and execution
collaborators, and exposes the observable flags a UI binds to
(saving / loading state, the list of stored workflows, the AI
connections, whether a run is in progress).

Usage::

    async with FlowWorkspace() as workspace:
        workspace.graph.add_node("prompt")
        result = await workspace.run_workflow()
        workspace.save()
"""

from __future__ import annotations

from logging import getLogger
from typing import Any, Dict, List, Optional

from flowbuilder.config import ExecutionConfig
from flowbuilder.workflow.compute_client import ComputeClient
from flowbuilder.workflow.errors import WorkflowError, WorkflowNotFoundError
from flowbuilder.workflow.graph_store import GraphStore
from flowbuilder.workflow.node_executor import NodeExecutor
from flowbuilder.workflow.workflow_executor import WorkflowExecutor, WorkflowRunResult
from flowbuilder.workflow.workflow_model import AIConnection, WorkflowSnapshot
from flowbuilder.workflow.workflow_store import (
    AIConnectionStore,
    WorkflowStore,
    get_connection_store,
    get_workflow_store,
)

logger = getLogger(__name__)


class FlowWorkspace:
    """Graph + stores + executors for one editing session."""

    def __init__(
        self,
        graph: Optional[GraphStore] = None,
        workflow_store: Optional[WorkflowStore] = None,
        connection_store: Optional[AIConnectionStore] = None,
        client: Optional[ComputeClient] = None,
        execution_config: Optional[ExecutionConfig] = None,
    ) -> None:
        self.execution_config = execution_config or ExecutionConfig.get_default_instance()
        self.graph = graph or GraphStore(
            default_class_name=self.execution_config.default_class_name,
        )
        self.workflow_store = workflow_store or get_workflow_store()
        self.connection_store = connection_store or get_connection_store()
        self.client = client or ComputeClient()
        self.node_executor = NodeExecutor(self.graph, self.client, self.execution_config)
        self.executor = WorkflowExecutor(self.graph, self.node_executor, self.execution_config)

        self.is_saving = False
        self.save_error: Optional[str] = None
        self.is_loading = False
        self.load_error: Optional[str] = None
        self.last_saved: Optional[str] = None
        self.available_workflows: List[str] = []
        self.ai_connections: List[AIConnection] = []
        self.last_run: Optional[WorkflowRunResult] = None

    @property
    def is_workflow_running(self) -> bool:
        return self.executor.is_running

    # ========================================================================
    # Workflows
    # ========================================================================

    def save(self) -> WorkflowSnapshot:
        """Upsert the current graph under its project name."""
        self.is_saving = True
        self.save_error = None
        try:
            snapshot = self.workflow_store.save(self.graph.to_snapshot())
            self.last_saved = snapshot.last_modified
            self.refresh_workflows()
            return snapshot
        except (WorkflowError, OSError) as e:
            self.save_error = getattr(e, "message", None) or str(e)
            logger.error(f"Failed to save workflow '{self.graph.project_name}': {self.save_error}")
            raise
        finally:
            self.is_saving = False

    def load(self, name: str) -> WorkflowSnapshot:
        """Replace the graph with the stored workflow ``name``.

        Raises:
            WorkflowNotFoundError: Nothing stored under ``name``; the
                current graph is left untouched.
        """
        self.is_loading = True
        self.load_error = None
        try:
            snapshot = self.workflow_store.load(name)
            if snapshot is None:
                self.load_error = f"Workflow '{name}' not found"
                raise WorkflowNotFoundError(self.load_error)
            self.graph.replace_state(snapshot)
            self.last_saved = snapshot.last_modified
            logger.info(f"Workflow loaded: {name}")
            return snapshot
        finally:
            self.is_loading = False

    def load_snapshot(self, snapshot: WorkflowSnapshot) -> None:
        """Open an unsaved snapshot (e.g. a template) in the graph."""
        self.graph.replace_state(snapshot)
        self.last_saved = None

    def new_workflow(self, name: Optional[str] = None) -> None:
        if name:
            self.graph.reset(name)
        else:
            self.graph.reset()
        self.last_saved = None

    def refresh_workflows(self) -> List[str]:
        self.available_workflows = self.workflow_store.list_names()
        return self.available_workflows

    def delete_workflow(self, name: str) -> bool:
        deleted = self.workflow_store.delete(name)
        self.refresh_workflows()
        return deleted

    def rename_workflow(self, old_name: str, new_name: str) -> WorkflowSnapshot:
        """Rename a stored workflow, and the open project if it is the one renamed."""
        snapshot = self.workflow_store.rename(old_name, new_name)
        if self.graph.project_name == old_name:
            self.graph.set_project_name(snapshot.project_name)
            self.last_saved = snapshot.last_modified
        self.refresh_workflows()
        return snapshot

    # ========================================================================
    # AI connections
    # ========================================================================

    def refresh_connections(self) -> List[AIConnection]:
        self.ai_connections = self.connection_store.list_all()
        return self.ai_connections

    def add_connection(self, fields: Dict[str, Any]) -> AIConnection:
        connection = self.connection_store.add(fields)
        self.refresh_connections()
        return connection

    def update_connection(self, connection_id: str, updates: Dict[str, Any]) -> AIConnection:
        connection = self.connection_store.update(connection_id, updates)
        self.refresh_connections()
        return connection

    def delete_connection(self, connection_id: str) -> bool:
        deleted = self.connection_store.delete(connection_id)
        self.refresh_connections()
        return deleted

    # ========================================================================
    # Execution
    # ========================================================================

    async def run_workflow(self) -> WorkflowRunResult:
        """Run the current graph once.

        Raises:
            WorkflowAlreadyRunningError: If a run is already in progress.
        """
        self.last_run = await self.executor.run()
        return self.last_run

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "FlowWorkspace":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
