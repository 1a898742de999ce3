"""
Workflow Templates.

Factory functions returning ready-made graph contents: the initial
graph every fresh workspace starts from, and small example workflows
users can load and study.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from flowbuilder.workflow.workflow_model import (
    EdgeData,
    NodeData,
    NodePosition,
    NodeType,
    WorkflowEdge,
    WorkflowNode,
    WorkflowSnapshot,
)

DEFAULT_PROJECT_NAME = "New Workflow"


def create_initial_nodes() -> List[WorkflowNode]:
    """A fresh graph holds a single Start node with ID ``start``."""
    return [
        WorkflowNode(
            id="start",
            type=NodeType.START,
            position=NodePosition(x=100, y=100),
            data=NodeData(
                label="Start",
                description="Starting point of the workflow",
                config={
                    "className": "",
                    "classType": "TypedDict",
                    "variables": [],
                },
            ),
        )
    ]


# ============================================================================
# Branching Prompt Template
# ============================================================================


def create_branching_template() -> WorkflowSnapshot:
    """Start → Condition → (Prompt | End).

    Topology::
        start → check ─[State['score'] > 0]──→ prompt → end
                      └[State['score'] <= 0]─→ end
    """

    nodes: List[WorkflowNode] = []
    edges: List[WorkflowEdge] = []

    def _add(
        ntype: NodeType,
        nid: str,
        label: str,
        x: float,
        y: float,
        cfg: Optional[Dict[str, Any]] = None,
    ) -> None:
        nodes.append(WorkflowNode(
            id=nid, type=ntype, position=NodePosition(x=x, y=y),
            data=NodeData(label=label, config=cfg or {}),
        ))

    def _edge(src: str, tgt: str, lbl: Optional[str] = None) -> None:
        edges.append(WorkflowEdge(
            id=f"{src}-{tgt}", source=src, target=tgt,
            data=EdgeData(output=None, label=lbl),
        ))

    _add(NodeType.START, "start", "Start", 288, 64, {
        "className": "State",
        "classType": "TypedDict",
        "variables": [
            {"name": "score", "type": "int", "defaultValue": "1", "selectVariable": ""},
            {"name": "user_input", "type": "str", "defaultValue": "", "selectVariable": ""},
        ],
    })
    _add(NodeType.CONDITION, "check", "Check Score", 288, 192)
    _add(NodeType.PROMPT, "prompt", "Prompt", 96, 320, {
        "template": "Summarize: {user_input}",
        "outputVariable": "user_input",
    })
    _add(NodeType.END, "end", "End", 288, 448, {"receiveKey": ""})

    _edge("start", "check")
    _edge("check", "prompt", "State['score'] > 0")
    _edge("check", "end", "State['score'] <= 0")
    _edge("prompt", "end")

    return WorkflowSnapshot(
        project_name="Branching Prompt",
        nodes=nodes,
        edges=edges,
    )
