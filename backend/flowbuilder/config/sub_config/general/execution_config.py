"""
Execution Configuration.

Run-time switches for the workflow executor.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

from flowbuilder.config.base import BaseConfig, ConfigField, FieldType, register_config


@register_config
@dataclass
class ExecutionConfig(BaseConfig):
    """Traversal behaviour of ``WorkflowExecutor``."""

    # Error-shaped outputs ({"error": ...}) do not schedule successors.
    suppress_error_propagation: bool = True
    embedding_dim: int = 64
    default_class_name: str = "data"

    _ENV_MAP = {
        "suppress_error_propagation": "FLOWBUILDER_SUPPRESS_ERROR_PROPAGATION",
        "embedding_dim": "FLOWBUILDER_EMBEDDING_DIM",
    }

    @classmethod
    def get_config_name(cls) -> str:
        return "execution"

    @classmethod
    def get_display_name(cls) -> str:
        return "Execution"

    @classmethod
    def get_fields_metadata(cls) -> List[ConfigField]:
        return [
            ConfigField(
                name="suppress_error_propagation",
                field_type=FieldType.BOOLEAN,
                label="Stop On Node Error",
                description="Do not run successors of a node whose output is an error",
                default=True,
                group="behavior",
            ),
            ConfigField(
                name="embedding_dim",
                field_type=FieldType.NUMBER,
                label="Local Embedding Dimension",
                default=64,
                min_value=8,
                max_value=4096,
                group="behavior",
            ),
        ]
