"""Client for the backend Query Execution Service."""
from __future__ import annotations

import logging
from typing import Any, Protocol
from urllib.parse import urlparse

import httpx

from vizboard.core.errors import ServerError

from .http import build_headers, parse_json, send

logger = logging.getLogger(__name__)


class QueryService(Protocol):
    """Turns a natural-language query into a raw dashboard specification."""

    async def submit_query(self, text: str) -> dict[str, Any]: ...


class QueryServiceClient:
    """HTTP implementation posting ``{"query": text}`` to ``{base_url}/query``."""

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        timeout: float = 300.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        parsed = urlparse(base_url)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError("base_url must include scheme and host")

        self._base_url = base_url.rstrip("/")
        self._headers = build_headers(token)
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None

    @property
    def query_url(self) -> str:
        return f"{self._base_url}/query"

    async def submit_query(self, text: str) -> dict[str, Any]:
        logger.info("Submitting query (%d chars)", len(text))
        response = await send(self._client, "POST", self.query_url, json={"query": text}, headers=self._headers)
        payload = parse_json(response)
        if not isinstance(payload, dict):
            raise ServerError("Malformed dashboard specification", status_code=response.status_code)
        return payload

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


__all__ = ["QueryService", "QueryServiceClient"]
