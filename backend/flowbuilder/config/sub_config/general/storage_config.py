"""
Storage Configuration.

Where workflow snapshots and AI connection records are written.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List

from flowbuilder.config.base import BaseConfig, ConfigField, FieldType, register_config

_DEFAULT_ROOT = Path(__file__).resolve().parents[4] / "data"


@register_config
@dataclass
class StorageConfig(BaseConfig):
    """Local snapshot store locations."""

    storage_dir: str = str(_DEFAULT_ROOT)
    workflows_subdir: str = "workflows"
    connections_subdir: str = "ai_connections"

    _ENV_MAP = {
        "storage_dir": "FLOWBUILDER_STORAGE_DIR",
    }

    @classmethod
    def get_config_name(cls) -> str:
        return "storage"

    @classmethod
    def get_display_name(cls) -> str:
        return "Storage"

    @property
    def workflows_dir(self) -> Path:
        return Path(self.storage_dir) / self.workflows_subdir

    @property
    def connections_dir(self) -> Path:
        return Path(self.storage_dir) / self.connections_subdir

    @classmethod
    def get_fields_metadata(cls) -> List[ConfigField]:
        return [
            ConfigField(
                name="storage_dir",
                field_type=FieldType.PATH,
                label="Storage Directory",
                description="Root directory for saved workflows and AI connections",
                default=str(_DEFAULT_ROOT),
                required=True,
                group="storage",
            ),
        ]
