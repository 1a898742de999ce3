"""
Environment helpers for dataclass configs.

``read_env_defaults`` turns an ``_ENV_MAP`` into constructor kwargs,
coercing each raw string to the declared dataclass field type.
"""

from __future__ import annotations

import os
from dataclasses import MISSING, Field
from logging import getLogger
from typing import Any, Callable, Dict

logger = getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _coerce(raw: str, type_hint: Any) -> Any:
    hint = type_hint if isinstance(type_hint, str) else getattr(type_hint, "__name__", str(type_hint))
    if hint == "bool":
        return raw.strip().lower() in _TRUE_VALUES
    if hint == "int":
        return int(raw)
    if hint == "float":
        return float(raw)
    return raw


def read_env_defaults(
    env_map: Dict[str, str],
    fields: Dict[str, Field],
) -> Dict[str, Any]:
    """Build kwargs for a config dataclass from environment variables.

    Variables that are unset or fail to parse fall back to the
    dataclass default.
    """
    values: Dict[str, Any] = {}
    for field_name, env_name in env_map.items():
        raw = os.environ.get(env_name)
        if raw is None or field_name not in fields:
            continue
        try:
            values[field_name] = _coerce(raw, fields[field_name].type)
        except ValueError:
            default = fields[field_name].default
            logger.warning(
                f"Ignoring invalid value for {env_name}: {raw!r} "
                f"(using default {default if default is not MISSING else None!r})"
            )
    return values


def env_sync(env_name: str) -> Callable[[Any, Any], None]:
    """Return an ``apply_change`` hook that mirrors a field into ``os.environ``."""

    def _apply(old_value: Any, new_value: Any) -> None:
        if new_value is None or new_value == "":
            os.environ.pop(env_name, None)
        else:
            os.environ[env_name] = str(new_value)

    return _apply
