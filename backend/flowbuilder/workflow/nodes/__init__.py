"""
Workflow Nodes Package.

Auto-registers all concrete node implementations into the global NodeRegistry.
Import this package to ensure all nodes are available.
"""

from flowbuilder.workflow.nodes.base import (
    BaseNode,
    ExecutionContext,
    NodeParameter,
    NodeRegistry,
    NodeResult,
    get_node_registry,
    register_node,
)

# Import all node modules to trigger registration
from flowbuilder.workflow.nodes import io_nodes        # noqa: F401
from flowbuilder.workflow.nodes import model_nodes     # noqa: F401
from flowbuilder.workflow.nodes import logic_nodes     # noqa: F401
from flowbuilder.workflow.nodes import resource_nodes  # noqa: F401


__all__ = [
    "BaseNode",
    "ExecutionContext",
    "NodeParameter",
    "NodeRegistry",
    "NodeResult",
    "get_node_registry",
    "register_node",
]
