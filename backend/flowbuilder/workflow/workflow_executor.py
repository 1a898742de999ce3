"""
Workflow Executor — single-pass breadth-first run over a GraphStore.

A run starts at the Start node, executes nodes one at a time in FIFO
order and, after each node, schedules the targets of every outgoing
edge that currently carries a non-null output. Each node runs at most
once per run, so cycles terminate.

Usage::

    executor = WorkflowExecutor(store, NodeExecutor(store))
    result = await executor.run()
"""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from logging import getLogger
from typing import Any, Deque, Dict, List, Optional, Set

from flowbuilder.config import ExecutionConfig
from flowbuilder.logging import RunLogger
from flowbuilder.workflow.errors import WorkflowAlreadyRunningError
from flowbuilder.workflow.graph_store import GraphStore
from flowbuilder.workflow.node_executor import NodeExecutor
from flowbuilder.workflow.workflow_model import generate_id

logger = getLogger(__name__)


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class RunStatus(str, Enum):
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass
class WorkflowRunResult:
    """Summary of one run."""
    run_id: str
    status: RunStatus
    visited: List[str] = field(default_factory=list)
    node_errors: Dict[str, str] = field(default_factory=dict)
    error: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
    duration_ms: int = 0
    run_logger: Optional[RunLogger] = None

    @property
    def succeeded(self) -> bool:
        return self.status == RunStatus.COMPLETED and not self.node_errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "status": self.status.value,
            "visited": list(self.visited),
            "node_errors": dict(self.node_errors),
            "error": self.error,
            "warnings": list(self.warnings),
            "duration_ms": self.duration_ms,
        }


def is_error_output(output: Any) -> bool:
    """True for the ``{"error": ...}`` shape produced by failing nodes."""
    return isinstance(output, dict) and "error" in output


class WorkflowExecutor:
    """Drives one run at a time over a ``GraphStore``."""

    def __init__(
        self,
        store: GraphStore,
        node_executor: Optional[NodeExecutor] = None,
        execution_config: Optional[ExecutionConfig] = None,
    ) -> None:
        self.store = store
        self.node_executor = node_executor or NodeExecutor(store)
        self.execution_config = execution_config or self.node_executor.execution_config
        self._state = RunState.IDLE

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == RunState.RUNNING

    async def run(self) -> WorkflowRunResult:
        """Execute the workflow once.

        Raises:
            WorkflowAlreadyRunningError: If a run is already in progress.
        """
        if self._state == RunState.RUNNING:
            raise WorkflowAlreadyRunningError(
                f"Workflow '{self.store.project_name}' is already running"
            )

        self._state = RunState.RUNNING
        run_id = generate_id()
        run_logger = RunLogger(run_id, self.store.project_name)
        started = time.perf_counter()
        try:
            start = self.store.get_start_node()
            if start is None:
                reason = "No start node found"
                run_logger.log_run_aborted(reason)
                return WorkflowRunResult(
                    run_id=run_id,
                    status=RunStatus.ABORTED,
                    error=reason,
                    run_logger=run_logger,
                )

            warnings = self.store.to_snapshot().validate_graph()
            for message in warnings:
                logger.warning(f"[{run_id}] Graph check: {message}")

            run_logger.log_run_start(start.id)
            visited, node_errors = await self._traverse(start.id, run_logger, run_id)

            duration_ms = int((time.perf_counter() - started) * 1000)
            run_logger.log_run_end(len(visited), duration_ms)
            return WorkflowRunResult(
                run_id=run_id,
                status=RunStatus.COMPLETED,
                visited=visited,
                node_errors=node_errors,
                warnings=warnings,
                duration_ms=duration_ms,
                run_logger=run_logger,
            )
        finally:
            self._state = RunState.IDLE

    # ========================================================================
    # Traversal
    # ========================================================================

    async def _traverse(
        self,
        start_id: str,
        run_logger: RunLogger,
        run_id: str,
    ) -> tuple[List[str], Dict[str, str]]:
        queue: Deque[str] = deque([start_id])
        queued: Set[str] = {start_id}
        visited: List[str] = []
        seen: Set[str] = set()
        node_errors: Dict[str, str] = {}
        suppress = self.execution_config.suppress_error_propagation

        while queue:
            node_id = queue.popleft()
            queued.discard(node_id)
            if node_id in seen:
                continue
            if self.store.get_node(node_id) is None:
                logger.debug(f"[{run_id}] Node {node_id} was removed before it ran; skipping")
                continue

            await self.node_executor.execute(node_id, run_logger=run_logger, run_id=run_id)
            seen.add(node_id)
            visited.append(node_id)

            node = self.store.get_node(node_id)
            output = node.data.output if node else None
            failed = is_error_output(output)
            if failed:
                node_errors[node_id] = str(output["error"])

            # Edges are read after execution; condition nodes have just gated them.
            for edge in self.store.get_outgoing_edges(node_id):
                target = edge.target
                if edge.data.output is None:
                    run_logger.log_edge_decision(edge.id, node_id, target, False, "no output")
                    continue
                if suppress and is_error_output(edge.data.output):
                    run_logger.log_edge_decision(edge.id, node_id, target, False, "error output")
                    continue
                if target in seen or target in queued:
                    run_logger.log_edge_decision(edge.id, node_id, target, False, "already scheduled")
                    continue
                queue.append(target)
                queued.add(target)
                run_logger.log_edge_decision(edge.id, node_id, target, True)

        return visited, node_errors
