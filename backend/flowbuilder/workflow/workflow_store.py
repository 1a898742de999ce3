"""
Workflow Store — JSON-file persistence for workflow snapshots.

Each record lives in its own JSON file under a configurable
directory, keyed by the percent-encoded form of its name (workflows)
or ID (AI connections), so distinct names never share a file. Single writes are atomic (temp file +
replace); a rename is two writes and can leave a duplicate behind if
interrupted, never a loss.
"""

from __future__ import annotations

import json
import os
import tempfile
from logging import getLogger
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from pydantic import ValidationError

from flowbuilder.config import StorageConfig
from flowbuilder.workflow.errors import (
    ConnectionNotFoundError,
    WorkflowNameError,
    WorkflowNotFoundError,
)
from flowbuilder.workflow.workflow_model import (
    AIConnection,
    WorkflowSnapshot,
    generate_id,
    utc_now_iso,
)

logger = getLogger(__name__)


class _JsonRecordStore:
    """One JSON document per key in a directory."""

    def __init__(self, storage_dir: Path) -> None:
        self._dir = Path(storage_dir)
        self._dir.mkdir(parents=True, exist_ok=True)

    @property
    def storage_dir(self) -> Path:
        return self._dir

    def _path_for(self, key: str) -> Path:
        # Percent-encoding keeps distinct keys on distinct files. A leading
        # dot is escaped so keys never look like hidden or ".tmp-" files.
        safe_key = quote(key.strip(), safe="")
        if safe_key.startswith("."):
            safe_key = "%2E" + safe_key[1:]
        return self._dir / f"{safe_key or '_'}.json"

    def _write(self, key: str, payload: Dict[str, Any]) -> None:
        path = self._path_for(key)
        fd, tmp = tempfile.mkstemp(dir=self._dir, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
            os.replace(tmp, path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def _read(self, key: str) -> Optional[Dict[str, Any]]:
        path = self._path_for(key)
        if not path.exists():
            return None
        return json.loads(path.read_text(encoding="utf-8"))

    def _remove(self, key: str) -> bool:
        path = self._path_for(key)
        if path.exists():
            path.unlink()
            return True
        return False

    def _read_all(self) -> List[Dict[str, Any]]:
        records: List[Dict[str, Any]] = []
        for path in sorted(self._dir.glob("*.json")):
            if path.name.startswith(".tmp-"):
                continue
            try:
                records.append(json.loads(path.read_text(encoding="utf-8")))
            except (OSError, ValueError) as e:
                logger.warning(f"Skipping malformed record file {path.name}: {e}")
        return records


# ============================================================================
# Workflows
# ============================================================================


class WorkflowStore(_JsonRecordStore):
    """Persist and load ``WorkflowSnapshot`` objects keyed by project name."""

    def __init__(self, storage_dir: Optional[Path] = None) -> None:
        super().__init__(storage_dir or StorageConfig.get_default_instance().workflows_dir)
        logger.info(f"WorkflowStore initialized at {self._dir}")

    # ── CRUD ──

    def save(self, snapshot: WorkflowSnapshot) -> WorkflowSnapshot:
        """Save (create or update) a snapshot under its project name."""
        name = snapshot.project_name.strip()
        if not name:
            raise WorkflowNameError("Workflow name must not be empty")
        snapshot.touch()
        self._write(name, snapshot.model_dump(mode="json", by_alias=True))
        logger.info(f"Workflow saved: {name} ({len(snapshot.nodes)} nodes, {len(snapshot.edges)} edges)")
        return snapshot

    def load(self, name: str) -> Optional[WorkflowSnapshot]:
        """Load a snapshot by project name; None when absent or unreadable."""
        try:
            data = self._read(name)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read workflow {name}: {e}")
            return None
        if data is None:
            return None
        try:
            return WorkflowSnapshot.model_validate(data)
        except ValidationError as e:
            logger.error(f"Failed to load workflow {name}: {e}")
            return None

    def delete(self, name: str) -> bool:
        """Delete a stored workflow."""
        if self._remove(name):
            logger.info(f"Workflow deleted: {name}")
            return True
        return False

    def list_names(self) -> List[str]:
        """Project names of all stored workflows, sorted."""
        names = [
            record.get("projectName")
            for record in self._read_all()
            if isinstance(record, dict) and record.get("projectName")
        ]
        return sorted(names)

    def exists(self, name: str) -> bool:
        return self._path_for(name).exists()

    def rename(self, old_name: str, new_name: str) -> WorkflowSnapshot:
        """Store ``old_name`` under ``new_name`` and drop the old record.

        Raises:
            WorkflowNameError: New name empty, unchanged, or already taken.
            WorkflowNotFoundError: Nothing stored under ``old_name``.
        """
        new_name = (new_name or "").strip()
        if not new_name:
            raise WorkflowNameError("New workflow name must not be empty")
        if new_name == old_name:
            raise WorkflowNameError("New workflow name is the same as the current one")
        if self.exists(new_name):
            raise WorkflowNameError(f"A workflow named '{new_name}' already exists")

        snapshot = self.load(old_name)
        if snapshot is None:
            raise WorkflowNotFoundError(f"Workflow '{old_name}' not found")

        snapshot.project_name = new_name
        self.save(snapshot)
        self._remove(old_name)
        logger.info(f"Workflow renamed: {old_name} → {new_name}")
        return snapshot


# ============================================================================
# AI Connections
# ============================================================================


class AIConnectionStore(_JsonRecordStore):
    """Persist ``AIConnection`` records keyed by ID."""

    def __init__(self, storage_dir: Optional[Path] = None) -> None:
        super().__init__(storage_dir or StorageConfig.get_default_instance().connections_dir)
        logger.info(f"AIConnectionStore initialized at {self._dir}")

    def list_all(self) -> List[AIConnection]:
        connections: List[AIConnection] = []
        for record in self._read_all():
            try:
                connections.append(AIConnection.model_validate(record))
            except ValidationError as e:
                logger.warning(f"Skipping malformed AI connection record: {e}")
        return sorted(connections, key=lambda c: c.name)

    def get(self, connection_id: str) -> Optional[AIConnection]:
        try:
            data = self._read(connection_id)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read AI connection {connection_id}: {e}")
            return None
        return AIConnection.model_validate(data) if data is not None else None

    def add(self, fields: Dict[str, Any]) -> AIConnection:
        """Create a connection with a fresh ID."""
        connection = AIConnection.model_validate({
            **fields,
            "id": generate_id(),
            "lastModified": utc_now_iso(),
        })
        self._save(connection)
        logger.info(f"AI connection added: {connection.name} ({connection.id})")
        return connection

    def update(self, connection_id: str, updates: Dict[str, Any]) -> AIConnection:
        """Apply partial updates. The ID itself cannot change."""
        current = self.get(connection_id)
        if current is None:
            raise ConnectionNotFoundError(f"AI connection '{connection_id}' not found")
        aliases = {
            name: info.alias or name for name, info in AIConnection.model_fields.items()
        }
        merged = {
            **current.model_dump(by_alias=True),
            **{aliases.get(key, key): value for key, value in updates.items()},
            "id": connection_id,
            "lastModified": utc_now_iso(),
        }
        connection = AIConnection.model_validate(merged)
        self._save(connection)
        logger.info(f"AI connection updated: {connection.name} ({connection_id})")
        return connection

    def delete(self, connection_id: str) -> bool:
        if self._remove(connection_id):
            logger.info(f"AI connection deleted: {connection_id}")
            return True
        return False

    def _save(self, connection: AIConnection) -> None:
        self._write(connection.id, connection.model_dump(mode="json", by_alias=True))


# ── Singletons ──

_store_instance: Optional[WorkflowStore] = None
_connection_store_instance: Optional[AIConnectionStore] = None


def get_workflow_store() -> WorkflowStore:
    """Return the global WorkflowStore singleton."""
    global _store_instance
    if _store_instance is None:
        _store_instance = WorkflowStore()
    return _store_instance


def get_connection_store() -> AIConnectionStore:
    """Return the global AIConnectionStore singleton."""
    global _connection_store_instance
    if _connection_store_instance is None:
        _connection_store_instance = AIConnectionStore()
    return _connection_store_instance
