"""
I/O Nodes — workflow entry and exit points.

The Start node declares the workflow's state class (name, kind and
typed variables) and asks the compute service to materialize the
initial state. The End node simply passes its input through so the
final state can be inspected.
"""

from __future__ import annotations

import json
import re
from logging import getLogger
from typing import Any, Dict, List

from flowbuilder.workflow.errors import ComputeServiceError
from flowbuilder.workflow.nodes.base import (
    BaseNode,
    ExecutionContext,
    NodeParameter,
    NodeResult,
    register_node,
)
from flowbuilder.workflow.workflow_model import NodeType, WorkflowNode

logger = getLogger(__name__)

_INT_PREFIX = re.compile(r"^\s*[+-]?\d+")
_FLOAT_PREFIX = re.compile(r"^\s*[+-]?(\d+\.?\d*([eE][+-]?\d+)?|\.\d+([eE][+-]?\d+)?)")


# ============================================================================
# Variable coercion
# ============================================================================


def _parse_json_container(raw: Any, container: type) -> Any:
    if isinstance(raw, container):
        return raw
    try:
        value = json.loads(raw or ("[]" if container is list else "{}"))
    except (TypeError, ValueError):
        return container()
    return value if isinstance(value, container) else container()


def coerce_variable_value(var_type: str, raw: Any) -> Any:
    """Turn a declared default (usually a string) into its typed value.

    ``int`` / ``float`` read the leading number and fall back to zero;
    ``list`` / ``dict`` parse JSON and fall back to an empty container;
    anything else passes through as a string.
    """
    if var_type == "int":
        if isinstance(raw, (int, float)) and not isinstance(raw, bool):
            return int(raw)
        match = _INT_PREFIX.match(str(raw or ""))
        return int(match.group()) if match else 0
    if var_type == "float":
        if isinstance(raw, (int, float)) and not isinstance(raw, bool):
            return float(raw)
        match = _FLOAT_PREFIX.match(str(raw or ""))
        return float(match.group()) if match else 0.0
    if var_type == "list":
        return _parse_json_container(raw, list)
    if var_type == "dict":
        return _parse_json_container(raw, dict)
    return raw or ""


def build_start_payload(config: Dict[str, Any]) -> Dict[str, Any]:
    """Payload for the start endpoint: class name, class type, typed variables."""
    variables: List[Dict[str, Any]] = []
    for variable in config.get("variables") or []:
        var_type = variable.get("type", "str")
        variables.append({
            "variableName": variable.get("name", ""),
            "variableType": var_type,
            "defaultValue": coerce_variable_value(var_type, variable.get("defaultValue")),
            "selectVariable": variable.get("selectVariable", ""),
        })
    return {
        "className": config.get("className") or "",
        "classType": config.get("classType") or "TypedDict",
        "variables": variables,
    }


# ============================================================================
# Start
# ============================================================================


@register_node
class StartNode(BaseNode):
    """Entry point. Materializes the initial state through the compute service."""

    node_type = NodeType.START
    label = "Start"
    description = "Starting point of the workflow"

    parameters = [
        NodeParameter(
            name="className",
            label="Class Name",
            default="",
            required=True,
            description="Name of the state class; conditions refer to the input by this name.",
            group="state",
        ),
        NodeParameter(
            name="classType",
            label="Class Type",
            type="select",
            default="TypedDict",
            description="TypedDict or BaseModel.",
            group="state",
        ),
        NodeParameter(
            name="variables",
            label="Variables",
            type="list",
            default=[],
            description="Declared state variables: name, type, defaultValue, selectVariable.",
            group="state",
        ),
    ]

    async def execute(
        self,
        node: WorkflowNode,
        input_data: Any,
        context: ExecutionContext,
    ) -> NodeResult:
        payload = build_start_payload(node.data.config)
        try:
            response = await context.client.post_start(payload)
        except ComputeServiceError as e:
            logger.error(f"[{context.run_id}] start node {node.id}: {e.message}")
            return NodeResult.failure("Failed to connect to start node API", e.message)
        return NodeResult.ok(response)


# ============================================================================
# End
# ============================================================================


@register_node
class EndNode(BaseNode):
    """Terminal node. Echoes its input."""

    node_type = NodeType.END
    label = "End"
    description = "End of workflow"

    parameters = [
        NodeParameter(
            name="receiveKey",
            label="Receive Key",
            default="",
            description="Key of the final state to highlight in the output inspector.",
            group="output",
        ),
    ]

    async def execute(
        self,
        node: WorkflowNode,
        input_data: Any,
        context: ExecutionContext,
    ) -> NodeResult:
        return NodeResult.ok(input_data)
