"""
Workflow Engine — graph model, execution and persistence for visual LLM pipelines.

Architecture:
    nodes/            — BaseNode ABC + one implementation per NodeType
    workflow_model    — Data models for nodes, edges, snapshots, AI connections
    graph_store       — Canonical mutable graph and its mutation API
    conditions        — Restricted condition-expression evaluator
    compute_client    — HTTP client for the node compute service
    node_executor     — Runs one node and commits its output
    workflow_executor — Breadth-first run over the graph
    workflow_store    — JSON-file persistence for workflows and AI connections
    workspace         — Façade bundling all of the above
    templates         — Initial graph and example workflows
"""

from flowbuilder.workflow.nodes.base import (
    BaseNode,
    NodeParameter,
    NodeResult,
    ExecutionContext,
    NodeRegistry,
    get_node_registry,
)
from flowbuilder.workflow.workflow_model import (
    AIConnection,
    Connection,
    NodeType,
    WorkflowEdge,
    WorkflowNode,
    WorkflowSnapshot,
)
from flowbuilder.workflow.errors import (
    ComputeServiceError,
    ConditionSyntaxError,
    ConnectionNotFoundError,
    WorkflowAlreadyRunningError,
    WorkflowError,
    WorkflowNameError,
    WorkflowNotFoundError,
)
from flowbuilder.workflow.conditions import evaluate_condition, parse_condition
from flowbuilder.workflow.graph_store import GraphStore
from flowbuilder.workflow.compute_client import ComputeClient
from flowbuilder.workflow.node_executor import NodeExecutor
from flowbuilder.workflow.workflow_executor import (
    RunState,
    RunStatus,
    WorkflowExecutor,
    WorkflowRunResult,
)
from flowbuilder.workflow.workflow_store import (
    AIConnectionStore,
    WorkflowStore,
    get_connection_store,
    get_workflow_store,
)
from flowbuilder.workflow.workspace import FlowWorkspace

__all__ = [
    "BaseNode",
    "NodeParameter",
    "NodeResult",
    "ExecutionContext",
    "NodeRegistry",
    "get_node_registry",
    "AIConnection",
    "Connection",
    "NodeType",
    "WorkflowEdge",
    "WorkflowNode",
    "WorkflowSnapshot",
    "ComputeServiceError",
    "ConditionSyntaxError",
    "ConnectionNotFoundError",
    "WorkflowAlreadyRunningError",
    "WorkflowError",
    "WorkflowNameError",
    "WorkflowNotFoundError",
    "evaluate_condition",
    "parse_condition",
    "GraphStore",
    "ComputeClient",
    "NodeExecutor",
    "RunState",
    "RunStatus",
    "WorkflowExecutor",
    "WorkflowRunResult",
    "AIConnectionStore",
    "WorkflowStore",
    "get_connection_store",
    "get_workflow_store",
    "FlowWorkspace",
]
