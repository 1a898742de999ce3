"""
Node Executor — run one node against the current graph state.

Resolves the node's input from its incoming edges, dispatches to the
registered ``BaseNode`` implementation for its ``NodeType``, and
commits the result back into the ``GraphStore``. Failures never
escape: they become an error-shaped output on the node.
"""

from __future__ import annotations

import time
from logging import getLogger
from typing import Any, Dict, Optional

from flowbuilder.config import ComputeConfig, ExecutionConfig
from flowbuilder.logging import RunLogger
from flowbuilder.workflow.compute_client import ComputeClient
from flowbuilder.workflow.graph_store import GraphStore
from flowbuilder.workflow.nodes import get_node_registry
from flowbuilder.workflow.nodes.base import ExecutionContext, NodeResult
from flowbuilder.workflow.workflow_model import NodeType, WorkflowNode

logger = getLogger(__name__)


class NodeExecutor:
    """Executes individual nodes of a ``GraphStore``."""

    def __init__(
        self,
        store: GraphStore,
        client: Optional[ComputeClient] = None,
        execution_config: Optional[ExecutionConfig] = None,
    ) -> None:
        self.store = store
        self.client = client or ComputeClient()
        self.execution_config = execution_config or ExecutionConfig.get_default_instance()
        self._registry = get_node_registry()

    @property
    def compute_config(self) -> ComputeConfig:
        return self.client.config

    def resolve_input(self, node: WorkflowNode) -> Any:
        """Input seen by ``node`` given the current edge outputs.

        Merge nodes receive the record outputs of their incoming edges
        keyed by source node ID, shallow-merged when one source feeds
        several edges; all other variants take the output of the first
        incoming edge that carries one, or an empty record.
        """
        incoming = self.store.get_incoming_edges(node.id)
        if node.type == NodeType.MERGE:
            collected: Dict[str, Any] = {}
            for edge in incoming:
                if isinstance(edge.data.output, dict):
                    collected[edge.source] = {**collected.get(edge.source, {}), **edge.data.output}
            return collected
        for edge in incoming:
            if edge.data.output is not None:
                return edge.data.output
        return {}

    async def execute(
        self,
        node_id: str,
        run_logger: Optional[RunLogger] = None,
        run_id: str = "",
    ) -> Optional[NodeResult]:
        """Execute a single node and commit its output.

        Returns None for an unknown node ID.
        """
        node = self.store.get_node(node_id)
        if node is None:
            logger.debug(f"Skipping unknown node {node_id}")
            return None

        started = time.perf_counter()
        self.store.set_node_executing(node_id, True)
        if run_logger:
            run_logger.log_node_enter(node_id, node.type.value, node.data.label)

        try:
            input_data = self.resolve_input(node)
            self.store.set_node_input_data(node_id, input_data)

            result = await self._dispatch(node, input_data, run_logger, run_id)

            if result.input_snapshot is not None:
                self.store.set_node_input_data(node_id, result.input_snapshot)
            self.store.set_node_output(node_id, result.output)
            if result.edge_outputs is not None:
                for edge_id, output in result.edge_outputs.items():
                    self.store.set_edge_output(edge_id, output)

            if run_logger:
                if result.is_error:
                    run_logger.log_node_error(node_id, result.error)
                run_logger.log_node_exit(
                    node_id, result.output, int((time.perf_counter() - started) * 1000)
                )
            return result
        finally:
            self.store.set_node_executing(node_id, False)

    async def _dispatch(
        self,
        node: WorkflowNode,
        input_data: Any,
        run_logger: Optional[RunLogger],
        run_id: str,
    ) -> NodeResult:
        implementation = self._registry.get(node.type)
        if implementation is None:
            return NodeResult.failure(f"Unknown node type: {node.type.value}")

        context = ExecutionContext(
            store=self.store,
            client=self.client,
            compute_config=self.compute_config,
            execution_config=self.execution_config,
            run_logger=run_logger,
            run_id=run_id,
        )
        try:
            return await implementation.execute(node, input_data, context)
        except Exception as e:
            logger.exception(f"Node {node.id} ({node.type.value}) raised during execution")
            return NodeResult.failure("Execution failed", str(e))
