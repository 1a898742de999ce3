"""
Node Base — the common interface every node variant implements.

Each concrete node class declares its ``node_type`` (one ``NodeType``
member), display metadata, and ``parameters`` whose defaults seed the
configuration of newly added nodes. ``execute`` receives the resolved
input and returns a ``NodeResult``; it must not raise for expected
failures (missing configuration, unreachable compute service).

Classes are registered into the global ``NodeRegistry`` with the
``@register_node`` decorator; the node executor dispatches on
``NodeType`` through that registry.
"""

from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Type

from flowbuilder.config import ComputeConfig, ExecutionConfig
from flowbuilder.logging import RunLogger
from flowbuilder.workflow.workflow_model import NodeType, WorkflowNode

if TYPE_CHECKING:
    from flowbuilder.workflow.compute_client import ComputeClient
    from flowbuilder.workflow.graph_store import GraphStore

logger = getLogger(__name__)


@dataclass
class NodeParameter:
    """One configurable setting of a node variant."""
    name: str
    label: str
    type: str = "string"
    default: Any = None
    required: bool = False
    description: str = ""
    group: str = "general"


@dataclass
class NodeResult:
    """Outcome of one node execution.

    ``output`` is committed as the node's output. ``edge_outputs``
    (condition nodes only) maps outgoing edge IDs to their gated
    output instead. ``input_snapshot`` overrides the input recorded
    into ``inputData`` when the variant wants to show something else.
    """
    output: Any = None
    error: Optional[str] = None
    edge_outputs: Optional[Dict[str, Any]] = None
    input_snapshot: Any = None

    @property
    def is_error(self) -> bool:
        return self.error is not None

    @classmethod
    def ok(cls, output: Any, **kwargs: Any) -> "NodeResult":
        return cls(output=output, **kwargs)

    @classmethod
    def failure(cls, message: str, details: Optional[str] = None) -> "NodeResult":
        """Structured error value; ``details`` is set for transport failures."""
        output: Dict[str, Any] = {"error": message}
        if details is not None:
            output["details"] = details
        return cls(output=output, error=message if details is None else f"{message}: {details}")


@dataclass
class ExecutionContext:
    """Run-scoped collaborators handed to every node execution."""
    store: "GraphStore"
    client: "ComputeClient"
    compute_config: ComputeConfig = field(default_factory=ComputeConfig)
    execution_config: ExecutionConfig = field(default_factory=ExecutionConfig)
    run_logger: Optional[RunLogger] = None
    run_id: str = ""

    @property
    def class_name(self) -> str:
        return self.store.class_name


class BaseNode(ABC):
    """Abstract base for all node variants."""

    node_type: NodeType
    label: str = ""
    description: str = ""
    category: str = "workflow"
    parameters: List[NodeParameter] = []

    def default_config(self) -> Dict[str, Any]:
        """Configuration seeded onto a node when it is added to a graph."""
        return {
            p.name: copy.deepcopy(p.default)
            for p in self.parameters
            if p.default is not None
        }

    @abstractmethod
    async def execute(
        self,
        node: WorkflowNode,
        input_data: Any,
        context: ExecutionContext,
    ) -> NodeResult:
        """Run the node against its resolved input."""


class NodeRegistry:
    """Map ``NodeType`` → node implementation instance."""

    def __init__(self) -> None:
        self._nodes: Dict[NodeType, BaseNode] = {}

    def register(self, node: BaseNode) -> None:
        if node.node_type in self._nodes:
            logger.debug(f"Replacing node implementation for {node.node_type.value}")
        self._nodes[node.node_type] = node

    def get(self, node_type: NodeType | str) -> Optional[BaseNode]:
        try:
            return self._nodes.get(NodeType(node_type))
        except ValueError:
            return None


_registry = NodeRegistry()


def get_node_registry() -> NodeRegistry:
    """Return the process-wide node registry."""
    return _registry


def register_node(cls: Type[BaseNode]) -> Type[BaseNode]:
    """Class decorator: instantiate and register a node implementation."""
    _registry.register(cls())
    return cls
