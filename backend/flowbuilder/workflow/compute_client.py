"""
Compute Client — async JSON POSTs to the node compute service.

Start, prompt, agent (and optionally embedding) nodes delegate their
work to an external HTTP service. Every failure mode (connect error,
timeout, non-2xx status, non-JSON body) is raised as
``ComputeServiceError`` so node handlers can turn it into a
structured error output.
"""

from __future__ import annotations

from logging import getLogger
from typing import Any, Dict, Optional

import httpx

from flowbuilder.config import ComputeConfig
from flowbuilder.workflow.errors import ComputeServiceError

logger = getLogger(__name__)

_BODY_PREVIEW_CHARS = 1000


class ComputeClient:
    """Thin wrapper around ``httpx.AsyncClient`` bound to ``ComputeConfig``.

    The underlying client is created lazily and can be injected
    (e.g. with an ``httpx.MockTransport``) for tests.
    """

    def __init__(
        self,
        config: Optional[ComputeConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.config = config or ComputeConfig.get_default_instance()
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(
                    self.config.request_timeout,
                    connect=self.config.connect_timeout,
                ),
                headers={"Content-Type": "application/json"},
            )
        return self._client

    async def post_json(self, path: str, payload: Dict[str, Any]) -> Any:
        """POST ``payload`` to ``path`` and return the decoded JSON body."""
        url = self.config.url_for(path)
        client = self._get_client()
        try:
            response = await client.post(url, json=payload)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            body = e.response.text[:_BODY_PREVIEW_CHARS] if e.response.text else None
            logger.error(f"Compute request to {url} failed with status {e.response.status_code}")
            raise ComputeServiceError(
                f"API request failed with status {e.response.status_code}"
                + (f": {body}" if body else ""),
                url=url,
                status_code=e.response.status_code,
                response_body=body,
            ) from e
        except httpx.TimeoutException as e:
            logger.error(f"Compute request to {url} timed out: {e}")
            raise ComputeServiceError(f"Request to {url} timed out", url=url) from e
        except httpx.HTTPError as e:
            logger.error(f"Compute request to {url} failed: {e}")
            raise ComputeServiceError(
                f"Failed to reach {url}: {e or type(e).__name__}", url=url
            ) from e
        except ValueError as e:
            logger.error(f"Compute response from {url} is not valid JSON: {e}")
            raise ComputeServiceError(f"Invalid JSON response from {url}", url=url) from e

    async def post_start(self, payload: Dict[str, Any]) -> Any:
        return await self.post_json(self.config.start_path, payload)

    async def post_prompt(self, payload: Dict[str, Any]) -> Any:
        return await self.post_json(self.config.prompt_path, payload)

    async def post_agent(self, payload: Dict[str, Any]) -> Any:
        return await self.post_json(self.config.agent_path, payload)

    async def post_embedding(self, payload: Dict[str, Any]) -> Any:
        return await self.post_json(self.config.embedding_path, payload)

    @property
    def has_embedding_endpoint(self) -> bool:
        return bool(self.config.embedding_path)

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
