"""
Graph Store — the canonical, mutable node/edge state of one workflow.

All structure and per-node / per-edge state lives here. The node
executor and the workflow executor only read it or call its narrow
mutators; canvas collaborators call the coarse mutation API
(``add_node``, ``update_node_data``, ``remove_node``, ``remove_edge``,
``on_connect``).

Mutations that reference an unknown node or edge ID are silently
ignored. The store is not thread-safe; all mutation happens on the
event loop that drives the run.
"""

from __future__ import annotations

from logging import getLogger
from typing import Any, Dict, List, Optional, Set, Union

from pydantic import BaseModel

from flowbuilder.workflow.conditions import default_condition_label, evaluate_condition
from flowbuilder.workflow.nodes import get_node_registry
from flowbuilder.workflow.templates import DEFAULT_PROJECT_NAME, create_initial_nodes
from flowbuilder.workflow.workflow_model import (
    Connection,
    EdgeData,
    NodeData,
    NodePosition,
    NodeType,
    Viewport,
    WorkflowEdge,
    WorkflowNode,
    WorkflowSnapshot,
    generate_id,
)

logger = getLogger(__name__)

_CIRCULAR = "[Circular]"
_SKIP = object()


# ============================================================================
# Structural comparison
# ============================================================================


def _normalize(value: Any, path: Set[int]) -> Any:
    """Reduce a value to plain data for comparison.

    Callables and ``icon`` entries are dropped; a container that
    appears inside itself is replaced by a marker.
    """
    if callable(value) and not isinstance(value, type):
        return _SKIP
    if isinstance(value, BaseModel):
        value = dict(value)
    if isinstance(value, dict):
        if id(value) in path:
            return _CIRCULAR
        path.add(id(value))
        try:
            result = {}
            for key, item in value.items():
                if key == "icon":
                    continue
                norm = _normalize(item, path)
                if norm is not _SKIP:
                    result[key] = norm
            return result
        finally:
            path.discard(id(value))
    if isinstance(value, (list, tuple)):
        if id(value) in path:
            return _CIRCULAR
        path.add(id(value))
        try:
            items = [_normalize(item, path) for item in value]
            return [None if item is _SKIP else item for item in items]
        finally:
            path.discard(id(value))
    return value


def deep_equal(left: Any, right: Any) -> bool:
    """Recursive structural equality, ignoring functions and icons."""
    return _normalize(left, set()) == _normalize(right, set())


# ============================================================================
# Graph Store
# ============================================================================


class GraphStore:
    """Mutable node/edge graph of the workflow being edited and run."""

    def __init__(
        self,
        project_name: str = DEFAULT_PROJECT_NAME,
        default_class_name: str = "data",
    ) -> None:
        self.project_name = project_name
        self.default_class_name = default_class_name
        self.viewport = Viewport()
        self._nodes: List[WorkflowNode] = create_initial_nodes()
        self._edges: List[WorkflowEdge] = []

    # ── Readers ──

    @property
    def nodes(self) -> List[WorkflowNode]:
        return list(self._nodes)

    @property
    def edges(self) -> List[WorkflowEdge]:
        return list(self._edges)

    def get_node(self, node_id: str) -> Optional[WorkflowNode]:
        for node in self._nodes:
            if node.id == node_id:
                return node
        return None

    def get_edge(self, edge_id: str) -> Optional[WorkflowEdge]:
        for edge in self._edges:
            if edge.id == edge_id:
                return edge
        return None

    def get_outgoing_edges(self, node_id: str) -> List[WorkflowEdge]:
        return [e for e in self._edges if e.source == node_id]

    def get_incoming_edges(self, node_id: str) -> List[WorkflowEdge]:
        return [e for e in self._edges if e.target == node_id]

    def get_start_node(self) -> Optional[WorkflowNode]:
        for node in self._nodes:
            if node.type == NodeType.START:
                return node
        return None

    def get_groups_node(self) -> Optional[WorkflowNode]:
        for node in self._nodes:
            if node.type == NodeType.GROUPS:
                return node
        return None

    @property
    def class_name(self) -> str:
        """Name bound to the input when evaluating condition labels."""
        start = self.get_start_node()
        name = (start.data.config.get("className") or "").strip() if start else ""
        return name or self.default_class_name

    # ── Node mutation ──

    def add_node(
        self,
        node_type: Union[NodeType, str],
        position: Optional[Union[NodePosition, Dict[str, float]]] = None,
        initial_data: Optional[Union[NodeData, Dict[str, Any]]] = None,
    ) -> str:
        """Create a node and return its new ID.

        The requested label is made unique against existing labels,
        and the variant's default configuration is merged under any
        configuration passed in.
        """
        node_type = NodeType(node_type)
        data = _coerce_node_data(initial_data)
        implementation = get_node_registry().get(node_type)

        defaults = implementation.default_config() if implementation else {}
        base_label = data.label or (implementation.label if implementation else node_type.value)

        data.label = self._unique_label(base_label)
        data.config = {**defaults, **data.config}
        data.output = None
        data.input_data = None
        data.is_executing = False

        if isinstance(position, dict):
            position = NodePosition(**position)

        node = WorkflowNode(
            id=generate_id(),
            type=node_type,
            position=position or NodePosition(),
            data=data,
        )
        self._nodes.append(node)
        logger.debug(f"Node added: {node.data.label} ({node_type.value}, {node.id})")
        return node.id

    def update_node_data(
        self,
        node_id: str,
        data: Union[NodeData, Dict[str, Any]],
    ) -> bool:
        """Replace a node's data wholesale.

        No-op (returns False) for an unknown ID or data deep-equal to
        the current data. Edges leaving the node are updated only when
        ``output`` itself changed.
        """
        node = self.get_node(node_id)
        if node is None:
            return False

        new_data = _coerce_node_data(data)
        if deep_equal(node.data, new_data):
            return False

        output_changed = not deep_equal(node.data.output, new_data.output)
        node.data = new_data
        if output_changed:
            for edge in self.get_outgoing_edges(node_id):
                edge.data.output = new_data.output
        return True

    def remove_node(self, node_id: str) -> None:
        """Remove a node, its incident edges, and invalidate its neighbours."""
        if self.get_node(node_id) is None:
            return

        affected: Set[str] = set()
        for edge in self._edges:
            if edge.source == node_id:
                affected.add(edge.target)
            elif edge.target == node_id:
                affected.add(edge.source)

        self._nodes = [n for n in self._nodes if n.id != node_id]
        self._edges = [
            e for e in self._edges if e.source != node_id and e.target != node_id
        ]
        for node in self._nodes:
            if node.id in affected:
                node.data.output = None
        logger.debug(f"Node removed: {node_id} (invalidated {len(affected)} neighbours)")

    # ── Edge mutation ──

    def on_connect(
        self,
        connection: Union[Connection, Dict[str, Any]],
    ) -> Optional[str]:
        """Create an edge for a canvas connection and return its ID.

        Returns None when either endpoint is unknown or an identical
        connection already exists.
        """
        if isinstance(connection, dict):
            connection = Connection.model_validate(connection)

        source = self.get_node(connection.source)
        if source is None or self.get_node(connection.target) is None:
            return None

        for edge in self._edges:
            if (
                edge.source == connection.source
                and edge.target == connection.target
                and edge.source_handle == connection.source_handle
                and edge.target_handle == connection.target_handle
            ):
                return None

        label = (
            default_condition_label(self.class_name)
            if source.type == NodeType.CONDITION
            else None
        )
        edge = WorkflowEdge(
            id=generate_id(),
            source=connection.source,
            target=connection.target,
            source_handle=connection.source_handle,
            target_handle=connection.target_handle,
            data=EdgeData(output=None, label=label),
        )
        self._edges.append(edge)
        return edge.id

    def remove_edge(self, edge_id: str) -> None:
        """Remove an edge and clear its source node's output."""
        edge = self.get_edge(edge_id)
        if edge is None:
            return
        self._edges = [e for e in self._edges if e.id != edge_id]
        source = self.get_node(edge.source)
        if source is not None:
            source.data.output = None

    # ── Narrow mutators ──

    def set_node_output(self, node_id: str, output: Any) -> None:
        """Set a node's output and materialize it onto its outgoing edges.

        Edges leaving a condition node receive the output only when
        their label evaluates true; otherwise null.
        """
        node = self.get_node(node_id)
        if node is None:
            return
        node.data.output = output

        is_condition = node.type == NodeType.CONDITION
        class_name = self.class_name
        for edge in self.get_outgoing_edges(node_id):
            if is_condition:
                passed = evaluate_condition(edge.data.label or "", output, class_name)
                edge.data.output = output if passed else None
            else:
                edge.data.output = output

    def set_edge_output(self, edge_id: str, output: Any) -> None:
        edge = self.get_edge(edge_id)
        if edge is not None:
            edge.data.output = output

    def set_node_executing(self, node_id: str, is_executing: bool) -> None:
        node = self.get_node(node_id)
        if node is not None:
            node.data.is_executing = is_executing

    def set_node_input_data(self, node_id: str, input_data: Any) -> None:
        node = self.get_node(node_id)
        if node is not None:
            node.data.input_data = input_data

    def update_edge_label(self, edge_id: str, label: str) -> None:
        edge = self.get_edge(edge_id)
        if edge is not None:
            edge.data.label = label

    # ── Whole-state ──

    def set_project_name(self, name: str) -> None:
        self.project_name = name

    def set_viewport(self, viewport: Union[Viewport, Dict[str, float]]) -> None:
        self.viewport = Viewport(**viewport) if isinstance(viewport, dict) else viewport

    def to_snapshot(self) -> WorkflowSnapshot:
        """Copy the current state into a persistable snapshot."""
        return WorkflowSnapshot(
            project_name=self.project_name,
            nodes=[n.model_copy(deep=True) for n in self._nodes],
            edges=[e.model_copy(deep=True) for e in self._edges],
            viewport=self.viewport.model_copy(),
        )

    def replace_state(self, snapshot: WorkflowSnapshot) -> None:
        """Replace the entire graph with a snapshot's contents."""
        self.project_name = snapshot.project_name
        self._nodes = [n.model_copy(deep=True) for n in snapshot.nodes]
        self._edges = [e.model_copy(deep=True) for e in snapshot.edges]
        self.viewport = snapshot.viewport.model_copy()

    def reset(self, project_name: str = DEFAULT_PROJECT_NAME) -> None:
        """Return to a fresh graph holding only the start node."""
        self.project_name = project_name
        self.viewport = Viewport()
        self._nodes = create_initial_nodes()
        self._edges = []

    # ── Internals ──

    def _unique_label(self, base_label: str) -> str:
        existing = {n.data.label for n in self._nodes}
        label = base_label
        counter = 1
        while label in existing:
            label = f"{base_label} {counter}"
            counter += 1
        return label


def _coerce_node_data(data: Optional[Union[NodeData, Dict[str, Any]]]) -> NodeData:
    if data is None:
        return NodeData()
    if isinstance(data, NodeData):
        return data.model_copy(deep=True)
    return NodeData.model_validate(data)
