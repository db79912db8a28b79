"""Client for the Dataset Store (listing, upload, preview, schema, mappings)."""
from __future__ import annotations

import asyncio
import io
import json
import logging
from typing import Any, Awaitable, Callable, Mapping, Protocol
from urllib.parse import urlparse

import httpx

from vizboard.core.errors import ServerError

from .http import build_headers, parse_json, send

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]


class DatasetStore(Protocol):
    async def list(self, **params: Any) -> dict[str, Any]: ...

    async def get(self, dataset_id: str) -> dict[str, Any]: ...

    async def upload(
        self,
        filename: str,
        content: bytes,
        metadata: Mapping[str, Any],
        on_progress: ProgressCallback | None = None,
        *,
        content_type: str | None = None,
    ) -> dict[str, Any]: ...

    async def delete(self, dataset_id: str) -> None: ...

    async def bulk_delete(self, dataset_ids: list[str]) -> None: ...

    async def get_schema(self, dataset_id: str) -> dict[str, Any]: ...

    async def get_preview(self, dataset_id: str, page: int = 1, page_size: int = 50) -> dict[str, Any]: ...

    async def get_mapping(self) -> dict[str, Any]: ...

    async def generate_mapping(self) -> dict[str, Any]: ...

    async def wait_for_mapping(
        self,
        *,
        max_attempts: int = 5,
        initial_delay: float = 1.0,
        backoff: float = 2.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> dict[str, Any] | None: ...


class _ProgressReader(io.BytesIO):
    """Byte buffer reporting the percentage consumed as the request body is read."""

    def __init__(self, content: bytes, on_progress: ProgressCallback | None) -> None:
        super().__init__(content)
        self._total = len(content)
        self._sent = 0
        self._last = -1
        self._on_progress = on_progress

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        position = super().seek(offset, whence)
        if whence == io.SEEK_SET and offset == 0:
            self._sent = 0
        return position

    def read(self, size: int | None = -1) -> bytes:
        chunk = super().read(size)
        self._sent += len(chunk)
        if self._on_progress is not None:
            progress = round(self._sent * 100 / self._total) if self._total else 100
            if progress != self._last:
                self._last = progress
                self._on_progress(progress)
        return chunk


class DatasetStoreClient:
    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        parsed = urlparse(base_url)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError("base_url must include scheme and host")

        self._base_url = base_url.rstrip("/")
        self._headers = build_headers(token)
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _url(self, path: str) -> str:
        return f"{self._base_url}{path}"

    async def _json(self, method: str, path: str, **kwargs: Any) -> Any:
        response = await send(self._client, method, self._url(path), headers=self._headers, **kwargs)
        return parse_json(response)

    # ------------------------------------------------------------------
    # datasets
    # ------------------------------------------------------------------
    async def list(
        self,
        *,
        page: int | None = None,
        page_size: int | None = None,
        search: str | None = None,
        sort: str | None = None,
    ) -> dict[str, Any]:
        params = {
            key: value
            for key, value in {"page": page, "page_size": page_size, "search": search, "sort": sort}.items()
            if value is not None
        }
        payload = await self._json("GET", "/datasets", params=params)
        if isinstance(payload, list):
            return {"items": payload, "total": len(payload)}
        return payload

    async def get(self, dataset_id: str) -> dict[str, Any]:
        return await self._json("GET", f"/datasets/{dataset_id}")

    async def upload(
        self,
        filename: str,
        content: bytes,
        metadata: Mapping[str, Any],
        on_progress: ProgressCallback | None = None,
        *,
        content_type: str | None = None,
    ) -> dict[str, Any]:
        form: dict[str, str] = {"name": str(metadata.get("name") or filename)}
        if metadata.get("description"):
            form["description"] = str(metadata["description"])
        if metadata.get("tags"):
            form["tags"] = json.dumps(list(metadata["tags"]))

        reader = _ProgressReader(content, on_progress)
        files = {"file": (filename, reader, content_type or "application/octet-stream")}
        logger.info("Uploading %s (%d bytes)", filename, len(content))
        return await self._json("POST", "/datasets/upload", data=form, files=files)

    async def delete(self, dataset_id: str) -> None:
        await send(self._client, "DELETE", self._url(f"/datasets/{dataset_id}"), headers=self._headers)

    async def bulk_delete(self, dataset_ids: list[str]) -> None:
        await send(self._client, "POST", self._url("/datasets/bulk-delete"), json={"ids": dataset_ids}, headers=self._headers)

    async def get_schema(self, dataset_id: str) -> dict[str, Any]:
        return await self._json("GET", f"/datasets/{dataset_id}/schema")

    async def get_preview(self, dataset_id: str, page: int = 1, page_size: int = 50) -> dict[str, Any]:
        return await self._json("GET", f"/datasets/{dataset_id}/preview", params={"page": page, "page_size": page_size})

    # ------------------------------------------------------------------
    # mappings
    # ------------------------------------------------------------------
    async def get_mapping(self) -> dict[str, Any]:
        return await self._json("GET", "/mappings")

    async def generate_mapping(self) -> dict[str, Any]:
        return await self._json("POST", "/mappings/generate")

    async def wait_for_mapping(
        self,
        *,
        max_attempts: int = 5,
        initial_delay: float = 1.0,
        backoff: float = 2.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> dict[str, Any] | None:
        """Poll ``/mappings`` until it exists; ``None`` once attempts run out.

        A 404 means the mapping is still being generated.
        """

        delay = initial_delay
        for attempt in range(1, max_attempts + 1):
            await sleep(delay)
            try:
                return await self.get_mapping()
            except ServerError as exc:
                if exc.status_code != 404:
                    raise
                logger.debug("Mapping not ready (attempt %d/%d)", attempt, max_attempts)
            delay *= backoff
        logger.warning("Mapping still missing after %d attempts", max_attempts)
        return None

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


__all__ = ["DatasetStore", "DatasetStoreClient", "ProgressCallback"]
