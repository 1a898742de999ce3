"""
Configuration Base — dataclass configs with field metadata and a registry.

Every concrete config is a ``@dataclass`` subclass of ``BaseConfig``
decorated with ``@register_config``. Defaults come from environment
variables through ``_ENV_MAP`` (see ``env_utils.read_env_defaults``).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from logging import getLogger
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

logger = getLogger(__name__)

T = TypeVar("T", bound="BaseConfig")


class FieldType(str, Enum):
    """Editor widget type for a config field."""
    STRING = "string"
    PASSWORD = "password"
    NUMBER = "number"
    BOOLEAN = "boolean"
    SELECT = "select"
    URL = "url"
    PATH = "path"


@dataclass
class ConfigField:
    """Metadata describing one editable config field."""
    name: str
    field_type: FieldType
    label: str
    description: str = ""
    default: Any = None
    required: bool = False
    placeholder: str = ""
    options: List[Dict[str, Any]] = field(default_factory=list)
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    group: str = "general"
    secure: bool = False
    apply_change: Optional[Callable[[Any, Any], None]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.field_type.value,
            "label": self.label,
            "description": self.description,
            "default": self.default,
            "required": self.required,
            "placeholder": self.placeholder,
            "options": self.options,
            "min": self.min_value,
            "max": self.max_value,
            "group": self.group,
            "secure": self.secure,
        }


@dataclass
class BaseConfig:
    """Base class for all dataclass configs."""

    _ENV_MAP = {}

    @classmethod
    def get_default_instance(cls: Type[T]) -> T:
        from flowbuilder.config.sub_config.general.env_utils import read_env_defaults

        defaults = read_env_defaults(cls._ENV_MAP, cls.__dataclass_fields__)
        return cls(**defaults)

    @classmethod
    def get_config_name(cls) -> str:
        raise NotImplementedError

    @classmethod
    def get_display_name(cls) -> str:
        return cls.get_config_name()

    @classmethod
    def get_description(cls) -> str:
        return ""

    @classmethod
    def get_category(cls) -> str:
        return "general"

    @classmethod
    def get_fields_metadata(cls) -> List[ConfigField]:
        return []

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ── Registry ──

_CONFIG_REGISTRY: Dict[str, Type[BaseConfig]] = {}


def register_config(cls: Type[T]) -> Type[T]:
    """Class decorator that registers a config under its config name."""
    _CONFIG_REGISTRY[cls.get_config_name()] = cls
    return cls


def get_config_class(name: str) -> Optional[Type[BaseConfig]]:
    return _CONFIG_REGISTRY.get(name)


def list_config_classes() -> List[Type[BaseConfig]]:
    return list(_CONFIG_REGISTRY.values())
