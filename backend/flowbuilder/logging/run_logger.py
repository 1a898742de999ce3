"""
Run Logger — structured per-run event log.

One ``RunLogger`` is created for every workflow run. It keeps an
in-memory list of events (node enter / exit, edge decisions, errors)
that collaborators can show in an output inspector, and mirrors each
event to the module logger.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from logging import getLogger
from typing import Any, Dict, List, Optional

logger = getLogger(__name__)

_PREVIEW_CHARS = 200


@dataclass
class RunEvent:
    """A single entry in the run log."""
    kind: str
    node_id: Optional[str] = None
    message: str = ""
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "node_id": self.node_id,
            "message": self.message,
            "data": self.data,
            "timestamp": self.timestamp,
        }


class RunLogger:
    """Collect run events for one workflow execution."""

    def __init__(self, run_id: str, workflow_name: str = "") -> None:
        self.run_id = run_id
        self.workflow_name = workflow_name
        self._events: List[RunEvent] = []

    @property
    def events(self) -> List[RunEvent]:
        return list(self._events)

    def _record(self, event: RunEvent) -> None:
        self._events.append(event)

    def log_run_start(self, start_node_id: str) -> None:
        self._record(RunEvent(kind="run_start", node_id=start_node_id))
        logger.info(
            f"[{self.run_id}] 🚀 Running workflow '{self.workflow_name}' "
            f"from start node {start_node_id}"
        )

    def log_run_end(self, visited: int, duration_ms: int) -> None:
        self._record(RunEvent(
            kind="run_end",
            message=f"{visited} nodes executed",
            data={"visited": visited, "duration_ms": duration_ms},
        ))
        logger.info(
            f"[{self.run_id}] 🏁 Workflow '{self.workflow_name}' finished: "
            f"{visited} nodes in {duration_ms}ms"
        )

    def log_run_aborted(self, reason: str) -> None:
        self._record(RunEvent(kind="run_aborted", message=reason))
        logger.error(f"[{self.run_id}] Workflow '{self.workflow_name}' aborted: {reason}")

    def log_node_enter(self, node_id: str, node_type: str, label: str) -> None:
        self._record(RunEvent(
            kind="node_enter",
            node_id=node_id,
            message=label,
            data={"node_type": node_type},
        ))
        logger.info(f"[{self.run_id}] ⚙️ Executing node '{label}' ({node_type}, {node_id})")

    def log_node_exit(self, node_id: str, output: Any, duration_ms: int) -> None:
        preview = make_output_preview(output)
        self._record(RunEvent(
            kind="node_exit",
            node_id=node_id,
            message=preview or "",
            data={"duration_ms": duration_ms},
        ))
        logger.info(f"[{self.run_id}] ✅ Node {node_id} done in {duration_ms}ms: {preview}")

    def log_node_error(self, node_id: str, error: str) -> None:
        self._record(RunEvent(kind="node_error", node_id=node_id, message=error[:500]))
        logger.warning(f"[{self.run_id}] Node {node_id} produced an error: {error[:500]}")

    def log_edge_decision(
        self,
        edge_id: str,
        source: str,
        target: str,
        scheduled: bool,
        reason: str = "",
    ) -> None:
        self._record(RunEvent(
            kind="edge_decision",
            node_id=source,
            message=reason,
            data={"edge_id": edge_id, "target": target, "scheduled": scheduled},
        ))
        arrow = "➕" if scheduled else "➖"
        logger.debug(
            f"[{self.run_id}]   {arrow} edge {edge_id} → {target}"
            + (f" ({reason})" if reason else "")
        )


def make_output_preview(output: Any) -> Optional[str]:
    """Extract a short preview string from a node output."""
    if output is None:
        return None
    if isinstance(output, str):
        return output[:_PREVIEW_CHARS]
    if isinstance(output, dict):
        if "error" in output:
            return f"error: {str(output['error'])[:_PREVIEW_CHARS]}"
        keys = list(output.keys())
        if not keys:
            return "{}"
        return f"keys: {', '.join(str(k) for k in keys[:10])}"
    if isinstance(output, list):
        return f"{len(output)} items"
    return str(output)[:_PREVIEW_CHARS]
