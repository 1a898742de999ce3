"""
Compute Service Configuration.

Controls where the node executor sends start / prompt / agent /
embedding requests, and how long it waits for them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

from flowbuilder.config.base import BaseConfig, ConfigField, FieldType, register_config
from flowbuilder.config.sub_config.general.env_utils import env_sync


@register_config
@dataclass
class ComputeConfig(BaseConfig):
    """External compute endpoints used by node handlers."""

    base_url: str = "http://localhost:8000"
    start_path: str = "/workflow/node/startnode"
    prompt_path: str = "/workflow/node/promptnode"
    agent_path: str = "/workflow/node/agentnode"
    embedding_path: str = ""  # empty = local deterministic embedding
    request_timeout: float = 60.0
    connect_timeout: float = 10.0

    _ENV_MAP = {
        "base_url": "FLOWBUILDER_COMPUTE_BASE_URL",
        "start_path": "FLOWBUILDER_START_PATH",
        "prompt_path": "FLOWBUILDER_PROMPT_PATH",
        "agent_path": "FLOWBUILDER_AGENT_PATH",
        "embedding_path": "FLOWBUILDER_EMBEDDING_PATH",
        "request_timeout": "FLOWBUILDER_REQUEST_TIMEOUT",
        "connect_timeout": "FLOWBUILDER_CONNECT_TIMEOUT",
    }

    @classmethod
    def get_config_name(cls) -> str:
        return "compute"

    @classmethod
    def get_display_name(cls) -> str:
        return "Compute Service"

    @classmethod
    def get_description(cls) -> str:
        return "Base URL, endpoint paths and timeouts of the node compute service."

    def url_for(self, path: str) -> str:
        return self.base_url.rstrip("/") + "/" + path.lstrip("/")

    @classmethod
    def get_fields_metadata(cls) -> List[ConfigField]:
        return [
            ConfigField(
                name="base_url",
                field_type=FieldType.URL,
                label="Compute Base URL",
                description="Root URL of the node compute service",
                default="http://localhost:8000",
                required=True,
                group="endpoints",
                apply_change=env_sync("FLOWBUILDER_COMPUTE_BASE_URL"),
            ),
            ConfigField(
                name="embedding_path",
                field_type=FieldType.STRING,
                label="Embedding Path",
                description="Leave empty to compute embeddings locally",
                default="",
                group="endpoints",
            ),
            ConfigField(
                name="request_timeout",
                field_type=FieldType.NUMBER,
                label="Request Timeout (s)",
                description="Total timeout for one compute request",
                default=60.0,
                min_value=1,
                max_value=600,
                group="timeouts",
            ),
            ConfigField(
                name="connect_timeout",
                field_type=FieldType.NUMBER,
                label="Connect Timeout (s)",
                default=10.0,
                min_value=1,
                max_value=120,
                group="timeouts",
            ),
        ]
