"""
Resource Nodes — configuration holders for RAG settings and groups.

Neither node computes anything during a run; both pass their input
through. The Groups node's ``config["groups"]`` is read by Agent nodes
to resolve memory and tool references.
"""

from __future__ import annotations

from typing import Any

from flowbuilder.workflow.nodes.base import (
    BaseNode,
    ExecutionContext,
    NodeParameter,
    NodeResult,
    register_node,
)
from flowbuilder.workflow.workflow_model import NodeType, WorkflowNode


@register_node
class RagNode(BaseNode):
    node_type = NodeType.RAG
    label = "RAG"
    description = "Retrieval configuration"
    category = "rag"

    parameters = []

    async def execute(
        self,
        node: WorkflowNode,
        input_data: Any,
        context: ExecutionContext,
    ) -> NodeResult:
        return NodeResult.ok(input_data)


@register_node
class GroupsNode(BaseNode):
    """Holds memory and tool groups.

    Each entry of ``groups`` is a dict with ``id``, ``name``, ``type``
    (``"memory"`` or ``"tools"``) and type-specific fields
    (``memoryType`` for memory; ``description`` and ``code`` for tools).
    """

    node_type = NodeType.GROUPS
    label = "Groups"
    description = "Memory and tool groups referenced by agents"
    category = "resource"

    parameters = [
        NodeParameter(name="groups", label="Groups", type="list", default=[], group="groups"),
    ]

    async def execute(
        self,
        node: WorkflowNode,
        input_data: Any,
        context: ExecutionContext,
    ) -> NodeResult:
        return NodeResult.ok(input_data)
