"""
Workflow Data Models — nodes, edges, viewport, snapshots and AI connections.

These are the serializable data structures that describe a
user-designed workflow graph. They are mutated by ``GraphStore``,
executed by ``WorkflowExecutor`` and persisted by ``WorkflowStore``.

Field aliases are camelCase so that a dumped snapshot
(``model_dump(by_alias=True)``) has the same shape the canvas uses.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


def generate_id() -> str:
    """Short random identifier for nodes, edges and connections."""
    return uuid.uuid4().hex[:12]


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class NodeType(str, Enum):
    """Closed set of node variants."""
    START = "start"
    END = "end"
    PROMPT = "prompt"
    SYSTEM_PROMPT = "systemPrompt"
    AGENT = "agent"
    CONDITION = "condition"
    FUNCTION = "function"
    LOOP = "loop"
    MERGE = "merge"
    EMBEDDING = "embedding"
    RAG = "rag"
    GROUPS = "groups"


class NodePosition(BaseModel):
    """Canvas position. Layout only."""
    x: float = 0
    y: float = 0


class Viewport(BaseModel):
    """Canvas viewport. View only."""
    x: float = 0
    y: float = 0
    zoom: float = 1


class NodeData(BaseModel):
    """Per-node state record.

    ``config`` is the free-form, variant-specific configuration.
    ``output`` is the last computed value, ``input_data`` the input
    seen on the last execution. ``icon`` is a UI-only value and is
    never serialized.
    """
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    label: str = ""
    description: Optional[str] = None
    code: Optional[str] = None
    icon: Optional[Any] = Field(default=None, exclude=True)
    config: Dict[str, Any] = Field(default_factory=dict)
    output: Optional[Any] = None
    is_executing: bool = Field(False, alias="isExecuting")
    input_data: Optional[Any] = Field(None, alias="inputData")


class WorkflowNode(BaseModel):
    """A single node placed on the workflow canvas."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=generate_id)
    type: NodeType
    position: NodePosition = Field(default_factory=NodePosition)
    data: NodeData = Field(default_factory=NodeData)

    @property
    def label(self) -> str:
        return self.data.label


class EdgeData(BaseModel):
    """Per-edge state: the materialized output and an optional condition label."""
    model_config = ConfigDict(extra="allow")

    output: Optional[Any] = None
    label: Optional[str] = None


class WorkflowEdge(BaseModel):
    """A directed edge between two nodes."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=generate_id)
    source: str  # source node ID
    target: str  # target node ID
    source_handle: Optional[str] = Field(None, alias="sourceHandle")
    target_handle: Optional[str] = Field(None, alias="targetHandle")
    animated: bool = True
    data: EdgeData = Field(default_factory=EdgeData)


class Connection(BaseModel):
    """A connect request coming from the canvas."""
    model_config = ConfigDict(populate_by_name=True)

    source: str
    target: str
    source_handle: Optional[str] = Field(None, alias="sourceHandle")
    target_handle: Optional[str] = Field(None, alias="targetHandle")


class WorkflowSnapshot(BaseModel):
    """A complete workflow, persisted as one unit keyed by ``project_name``."""
    model_config = ConfigDict(populate_by_name=True)

    project_name: str = Field("New Workflow", alias="projectName")
    nodes: List[WorkflowNode] = Field(default_factory=list)
    edges: List[WorkflowEdge] = Field(default_factory=list)
    viewport: Viewport = Field(default_factory=Viewport)
    last_modified: str = Field(default_factory=utc_now_iso, alias="lastModified")

    def touch(self) -> None:
        """Update the ``last_modified`` timestamp."""
        self.last_modified = utc_now_iso()

    def get_node(self, node_id: str) -> Optional[WorkflowNode]:
        """Find a node by ID."""
        for n in self.nodes:
            if n.id == node_id:
                return n
        return None

    def get_start_node(self) -> Optional[WorkflowNode]:
        """Find the first node of type 'start'."""
        for n in self.nodes:
            if n.type == NodeType.START:
                return n
        return None

    def validate_graph(self) -> List[str]:
        """Check the structural expectations of the executor.

        Returns a list of error messages (empty = valid). Nothing here
        is enforced on mutation; this is advisory.
        """
        errors: List[str] = []

        start_nodes = [n for n in self.nodes if n.type == NodeType.START]
        if len(start_nodes) == 0:
            errors.append("Workflow must have exactly one Start node.")
        elif len(start_nodes) > 1:
            errors.append("Workflow must have exactly one Start node (found multiple).")

        node_ids = {n.id for n in self.nodes}
        if len(node_ids) != len(self.nodes):
            errors.append("Workflow contains duplicate node IDs.")

        for edge in self.edges:
            if edge.source not in node_ids:
                errors.append(f"Edge references unknown source node: {edge.source}")
            if edge.target not in node_ids:
                errors.append(f"Edge references unknown target node: {edge.target}")

        return errors


class AIConnection(BaseModel):
    """A saved model/provider connection record, keyed by ``id``."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=generate_id)
    name: str
    type: Literal["language", "embedding"]
    provider: str
    model: str
    api_key: Optional[str] = Field(None, alias="apiKey")
    temperature: Optional[float] = None  # language models only
    max_tokens: Optional[int] = Field(None, alias="maxTokens")  # language models only
    status: Literal["active", "draft", "archived"] = "draft"
    last_modified: str = Field(default_factory=utc_now_iso, alias="lastModified")
