"""
Configuration — dataclass configs loaded from environment variables.
"""

from flowbuilder.config.base import (
    BaseConfig,
    ConfigField,
    FieldType,
    get_config_class,
    list_config_classes,
    register_config,
)
from flowbuilder.config.sub_config.general.compute_config import ComputeConfig
from flowbuilder.config.sub_config.general.execution_config import ExecutionConfig
from flowbuilder.config.sub_config.general.storage_config import StorageConfig

__all__ = [
    "BaseConfig",
    "ConfigField",
    "FieldType",
    "get_config_class",
    "list_config_classes",
    "register_config",
    "ComputeConfig",
    "ExecutionConfig",
    "StorageConfig",
]
