"""Shared request helpers translating ``httpx`` failures into dashboard errors."""
from __future__ import annotations

import logging
from typing import Any

import httpx

from vizboard.core.errors import DashboardError, NetworkError, RequestTimeoutError, ServerError

logger = logging.getLogger(__name__)


def build_headers(token: str | None) -> dict[str, str]:
    headers = {"Accept": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def _error_detail(response: httpx.Response) -> str | None:
    try:
        payload = response.json()
    except ValueError:
        return None
    if isinstance(payload, dict) and payload.get("detail"):
        detail = payload["detail"]
        return detail if isinstance(detail, str) else str(detail)
    return None


async def send(client: httpx.AsyncClient, method: str, url: str, **kwargs: Any) -> httpx.Response:
    """Issue a request; raise the matching ``DashboardError`` on failure."""

    try:
        response = await client.request(method, url, **kwargs)
    except httpx.TimeoutException as exc:
        logger.warning("%s %s timed out: %s", method, url, exc)
        raise RequestTimeoutError() from exc
    except httpx.TransportError as exc:
        logger.warning("%s %s failed to connect: %s", method, url, exc)
        raise NetworkError() from exc

    if response.is_error:
        detail = _error_detail(response)
        logger.warning("%s %s returned HTTP %s", method, url, response.status_code)
        if detail:
            raise ServerError(detail, status_code=response.status_code)
        raise ServerError(
            f"Request failed with status code {response.status_code}",
            status_code=response.status_code,
            title=DashboardError.title,
        )
    return response


def parse_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise ServerError("Malformed response from server", status_code=response.status_code) from exc


__all__ = ["build_headers", "parse_json", "send"]
