"""
Model Nodes — prompt, agent and embedding nodes.

These nodes hand their work to the external compute service (or, for
embeddings without a configured endpoint, to a local deterministic
encoder). Missing required configuration short-circuits into a
structured ``{"error": ...}`` output before any request is made.
"""

from __future__ import annotations

import hashlib
from logging import getLogger
from typing import Any, Dict, List, Optional

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

DEFAULT_AGENT_OUTPUT_KEY = "agent_response"
DEFAULT_USER_PROMPT_KEY = "user_input"
DEFAULT_SYSTEM_PROMPT_KEY = "system_message"
DEFAULT_MEMORY_TYPE = "ConversationBufferMemory"

_PROMPT_TEMPLATE = (
    "# Enter your prompt template here\n\n"
    "System: You are a helpful AI assistant.\n\n"
    "User: {user_input}\n\n"
    "Assistant:"
)
_SYSTEM_PROMPT_TEMPLATE = "You are a helpful AI assistant."


def _as_record(value: Any) -> Dict[str, Any]:
    return dict(value) if isinstance(value, dict) else {}


# ============================================================================
# Prompt
# ============================================================================


@register_node
class PromptNode(BaseNode):
    """Render a prompt template against the input via the compute service.

    The service substitutes ``{field}`` placeholders from ``param`` and
    returns the new state with the result stored under ``return_key``.
    """

    node_type = NodeType.PROMPT
    label = "Prompt"
    description = "Define a prompt template for LLM interaction"
    category = "model"

    parameters = [
        NodeParameter(
            name="template",
            label="Prompt Template",
            type="prompt_template",
            default=_PROMPT_TEMPLATE,
            description="Use {field_name} to reference input fields.",
            group="prompt",
        ),
        NodeParameter(
            name="outputVariable",
            label="Output Variable",
            default=DEFAULT_USER_PROMPT_KEY,
            required=True,
            description="State key the rendered prompt is stored under.",
            group="output",
        ),
    ]

    async def execute(
        self,
        node: WorkflowNode,
        input_data: Any,
        context: ExecutionContext,
    ) -> NodeResult:
        config = node.data.config
        output_variable = config.get("outputVariable") or ""
        if not output_variable:
            return NodeResult.failure("Output variable name is required")

        payload = {
            "template": config.get("template") or "",
            "param": input_data,
            "return_key": output_variable,
        }
        try:
            response = await context.client.post_prompt(payload)
        except ComputeServiceError as e:
            logger.error(f"[{context.run_id}] {self.node_type.value} node {node.id}: {e.message}")
            return NodeResult.failure("Failed to connect to prompt node API", e.message)
        return NodeResult.ok(response)


@register_node
class SystemPromptNode(PromptNode):
    """Same contract as ``PromptNode``; conventionally fills the system message."""

    node_type = NodeType.SYSTEM_PROMPT
    label = "System Prompt"
    description = "Define system and user prompts for LLM interaction"

    parameters = [
        NodeParameter(
            name="template",
            label="System Prompt Template",
            type="prompt_template",
            default=_SYSTEM_PROMPT_TEMPLATE,
            group="prompt",
        ),
        NodeParameter(
            name="outputVariable",
            label="Output Variable",
            default=DEFAULT_SYSTEM_PROMPT_KEY,
            required=True,
            group="output",
        ),
    ]


# ============================================================================
# Agent
# ============================================================================


def _find_group(context: ExecutionContext, group_id: str) -> Optional[Dict[str, Any]]:
    groups_node = context.store.get_groups_node()
    if groups_node is None:
        return None
    for group in groups_node.data.config.get("groups") or []:
        if isinstance(group, dict) and group.get("id") == group_id:
            return group
    return None


def resolve_memory_type(context: ExecutionContext, memory_group: str) -> Optional[str]:
    """Memory type string of a memory group defined on the Groups node."""
    if not memory_group:
        return None
    group = _find_group(context, memory_group)
    if group is None or group.get("type") != "memory":
        logger.info(f"Memory group {memory_group} is not a memory group or was not found")
        return None
    return group.get("memoryType") or DEFAULT_MEMORY_TYPE


def resolve_tools(context: ExecutionContext, tool_ids: Any) -> List[Dict[str, str]]:
    """Turn selected tool group IDs into ``{name, description, code}`` entries."""
    if not isinstance(tool_ids, list):
        return []
    tools: List[Dict[str, str]] = []
    for tool_id in tool_ids:
        group = _find_group(context, tool_id)
        if group is None or group.get("type") != "tools":
            logger.warning(f"Tool {tool_id} not found on the Groups node; skipped")
            continue
        tools.append({
            "name": group.get("name") or "Unnamed Tool",
            "description": group.get("description") or "No description",
            "code": group.get("code") or "",
        })
    return tools


@register_node
class AgentNode(BaseNode):
    """Call an agent model with prompts read from the input state.

    The response is merged into the input under the configured
    output key.
    """

    node_type = NodeType.AGENT
    label = "Agent"
    description = "Agent that can execute tools"
    category = "model"

    parameters = [
        NodeParameter(name="model", label="Model", type="select", default="", required=True, group="model"),
        NodeParameter(
            name="userPromptInputKey",
            label="User Prompt Key",
            default=DEFAULT_USER_PROMPT_KEY,
            description="Input key holding the user prompt.",
            group="prompt",
        ),
        NodeParameter(
            name="systemPromptInputKey",
            label="System Prompt Key",
            default=DEFAULT_SYSTEM_PROMPT_KEY,
            description="Input key holding the system prompt.",
            group="prompt",
        ),
        NodeParameter(
            name="memoryGroup",
            label="Memory Group",
            type="select",
            default="",
            description="ID of a memory group defined on the Groups node.",
            group="memory",
        ),
        NodeParameter(
            name="tools",
            label="Tools",
            type="list",
            default=[],
            description="IDs of tool groups defined on the Groups node.",
            group="tools",
        ),
        NodeParameter(
            name="agentOutputVariable",
            label="Output Variable",
            default=DEFAULT_AGENT_OUTPUT_KEY,
            group="output",
        ),
    ]

    async def execute(
        self,
        node: WorkflowNode,
        input_data: Any,
        context: ExecutionContext,
    ) -> NodeResult:
        config = node.data.config
        model = config.get("model")
        if not model:
            return NodeResult.failure("Agent model is required in configuration.")

        output_key = config.get("agentOutputVariable") or DEFAULT_AGENT_OUTPUT_KEY
        system_key = config.get("systemPromptInputKey") or DEFAULT_SYSTEM_PROMPT_KEY
        user_key = config.get("userPromptInputKey") or DEFAULT_USER_PROMPT_KEY

        record = _as_record(input_data)
        system_prompt = record.get(system_key)
        user_prompt = record.get(user_key)
        memory_group = config.get("memoryGroup") or None

        payload = {
            "model": model,
            "system_prompt": system_prompt if isinstance(system_prompt, str) else "",
            "user_prompt": user_prompt if isinstance(user_prompt, str) else "",
            "memory_group": memory_group,
            "tools": resolve_tools(context, config.get("tools")),
            "memory_type": resolve_memory_type(context, memory_group or ""),
            "return_key": output_key,
        }
        logger.debug(
            f"[{context.run_id}] agent node {node.id}: model={model}, "
            f"tools={len(payload['tools'])}, memory_type={payload['memory_type']}"
        )

        try:
            response = await context.client.post_agent(payload)
        except ComputeServiceError as e:
            logger.error(f"[{context.run_id}] agent node {node.id}: {e.message}")
            return NodeResult.failure("Failed to connect to agent node API", e.message)

        return NodeResult.ok({**record, output_key: response})


# ============================================================================
# Embedding
# ============================================================================


def deterministic_embedding(text: str, dim: int = 64) -> List[float]:
    """Small hashed bag-of-words embedding, L2-normalized."""
    vec = [0.0] * dim
    for token in text.lower().split():
        h = int(hashlib.sha256(token.encode()).hexdigest(), 16)
        vec[h % dim] += 1.0
    norm = sum(v * v for v in vec) ** 0.5 or 1.0
    return [v / norm for v in vec]


@register_node
class EmbeddingNode(BaseNode):
    """Embed one input column into an output column."""

    node_type = NodeType.EMBEDDING
    label = "Embedding"
    description = "Generate embeddings from text using configured models"
    category = "rag"

    parameters = [
        NodeParameter(name="model", label="Embedding Model", type="select", required=True, group="model"),
        NodeParameter(name="inputColumn", label="Input Column", required=True, group="columns"),
        NodeParameter(name="outputColumn", label="Output Column", required=True, group="columns"),
    ]

    async def execute(
        self,
        node: WorkflowNode,
        input_data: Any,
        context: ExecutionContext,
    ) -> NodeResult:
        config = node.data.config
        if not config.get("model"):
            return NodeResult.failure("Embedding model must be selected")
        if not config.get("inputColumn"):
            return NodeResult.failure("Input column must be selected")
        if not config.get("outputColumn"):
            return NodeResult.failure("Output column must be selected")

        record = _as_record(input_data)
        value = record.get(config["inputColumn"])
        text = value if isinstance(value, str) else ("" if value is None else str(value))

        if context.client.has_embedding_endpoint:
            try:
                response = await context.client.post_embedding({
                    "model": config["model"],
                    "input": text,
                })
            except ComputeServiceError as e:
                logger.error(f"[{context.run_id}] embedding node {node.id}: {e.message}")
                return NodeResult.failure("Failed to connect to embedding node API", e.message)
            vector = response.get("embedding") if isinstance(response, dict) else response
        else:
            vector = deterministic_embedding(text, context.execution_config.embedding_dim)

        return NodeResult.ok({**record, config["outputColumn"]: vector})
