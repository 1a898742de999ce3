"""
Logic Nodes — branching, merging and control-flow placeholders.

These nodes never call the compute service. The Condition node gates
each outgoing edge independently; the Merge node assembles one record
from the outputs of several upstream nodes.
"""

from __future__ import annotations

from logging import getLogger
from typing import Any, Dict, List

from flowbuilder.workflow.conditions import evaluate_condition
from flowbuilder.workflow.nodes.base import (
    BaseNode,
    ExecutionContext,
    NodeParameter,
    NodeResult,
    register_node,
)
from flowbuilder.workflow.workflow_model import NodeType, WorkflowNode

logger = getLogger(__name__)


# ============================================================================
# Condition
# ============================================================================


@register_node
class ConditionNode(BaseNode):
    """Route the input along every outgoing edge whose label holds.

    Each edge label is a boolean expression over the input, which is
    bound to the workflow's declared class name. An edge whose
    expression is false (or fails to evaluate) carries null, so its
    target is not scheduled.
    """

    node_type = NodeType.CONDITION
    label = "Condition"
    description = "Branch on expressions written on outgoing edges"
    category = "logic"

    parameters = []

    async def execute(
        self,
        node: WorkflowNode,
        input_data: Any,
        context: ExecutionContext,
    ) -> NodeResult:
        class_name = context.class_name
        edge_outputs: Dict[str, Any] = {}
        for edge in context.store.get_outgoing_edges(node.id):
            expression = edge.data.label or ""
            passed = evaluate_condition(expression, input_data, class_name)
            edge_outputs[edge.id] = input_data if passed else None
            if context.run_logger:
                context.run_logger.log_edge_decision(
                    edge.id, node.id, edge.target, passed,
                    reason=f"{expression} → {passed}",
                )
        return NodeResult.ok(input_data, edge_outputs=edge_outputs)


# ============================================================================
# Merge
# ============================================================================


def _present(value: Any) -> bool:
    # Empty containers still count as present.
    if isinstance(value, (dict, list)):
        return True
    return bool(value)


@register_node
class MergeNode(BaseNode):
    """Combine fields from several upstream outputs into one record.

    ``input_data`` maps source node ID → the record that source sent.
    Each mapping ``{outputKey, sourceNodeId, sourceNodeKey}`` copies one
    field; mappings pointing at a missing source or key are skipped.
    """

    node_type = NodeType.MERGE
    label = "Merge"
    description = "Merge fields from multiple inputs"
    category = "logic"

    parameters = [
        NodeParameter(
            name="mergeMappings",
            label="Merge Mappings",
            type="list",
            default=[],
            description="List of {outputKey, sourceNodeId, sourceNodeKey}.",
            group="merge",
        ),
    ]

    async def execute(
        self,
        node: WorkflowNode,
        input_data: Any,
        context: ExecutionContext,
    ) -> NodeResult:
        sources: Dict[str, Any] = input_data if isinstance(input_data, dict) else {}
        merged: Dict[str, Any] = {}

        mappings = node.data.config.get("mergeMappings") or []
        if not mappings:
            logger.warning(f"Merge node {node.id}: no merge mappings defined; output will be empty")

        for mapping in mappings:
            if not isinstance(mapping, dict):
                continue
            output_key = mapping.get("outputKey")
            source_id = mapping.get("sourceNodeId")
            source_key = mapping.get("sourceNodeKey")
            if not output_key or not source_id or not source_key:
                logger.warning(f"Merge node {node.id}: incomplete mapping {mapping} skipped")
                continue

            source_output = sources.get(source_id)
            if not isinstance(source_output, dict):
                logger.warning(
                    f"Merge node {node.id}: no output from source {source_id}; "
                    f"'{output_key}' skipped"
                )
                continue
            if source_key not in source_output:
                logger.warning(
                    f"Merge node {node.id}: key '{source_key}' missing in output of "
                    f"{source_id}; '{output_key}' skipped"
                )
                continue
            merged[output_key] = source_output[source_key]

        incoming: List[Any] = [
            edge.data.output
            for edge in context.store.get_incoming_edges(node.id)
            if _present(edge.data.output)
        ]
        return NodeResult.ok(merged, input_snapshot=incoming)


# ============================================================================
# Loop / Function
# ============================================================================


@register_node
class LoopNode(BaseNode):
    """Describe a repetition. The run engine executes each node once."""

    node_type = NodeType.LOOP
    label = "Loop"
    description = "Repeat a section of the workflow"
    category = "logic"

    parameters = [
        NodeParameter(name="repetitions", label="Repetitions", type="number", default=1, group="loop"),
    ]

    async def execute(
        self,
        node: WorkflowNode,
        input_data: Any,
        context: ExecutionContext,
    ) -> NodeResult:
        repetitions = node.data.config.get("repetitions", 1)
        return NodeResult.ok({
            "message": f"Loop will execute {repetitions} times",
            "repetitions": repetitions,
            "currentIteration": 0,
            "input": input_data,
        })


@register_node
class FunctionNode(BaseNode):
    node_type = NodeType.FUNCTION
    label = "Function"
    description = "Custom function placeholder"
    category = "logic"

    parameters = []

    async def execute(
        self,
        node: WorkflowNode,
        input_data: Any,
        context: ExecutionContext,
    ) -> NodeResult:
        return NodeResult.ok({"result": "Function executed", "input": input_data})
