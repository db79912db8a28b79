"""Dataset ingestion and management use cases."""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from pathlib import PurePath
from typing import Any, Callable, Iterable, Mapping

from vizboard.core.errors import DashboardError, UploadError
from vizboard.domain import UploadTask
from vizboard.infrastructure import DatasetStore, NotificationSink, emit

logger = logging.getLogger(__name__)

FINISHED = ("complete", "error")


@dataclass(slots=True)
class PendingUpload:
    filename: str
    content: bytes
    content_type: str | None = None


def upload_name(base: str | None, filename: str, batch_size: int) -> str:
    """``"Sales - q1.csv"`` for batches, the base name (or file stem) otherwise."""

    base = (base or "").strip()
    if not base:
        return PurePath(filename).stem or filename
    return f"{base} - {filename}" if batch_size > 1 else base


class DatasetService:
    """Coordinates uploads and dataset housekeeping against the Dataset Store."""

    def __init__(
        self,
        store: DatasetStore,
        *,
        notifier: NotificationSink | None = None,
        clock: Callable[[], float] = time.time,
        max_uploads: int = 100,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._clock = clock
        self._max_uploads = max_uploads
        self._uploads: dict[str, UploadTask] = {}
        self._datasets: list[dict[str, Any]] = []

    # ------------------------------------------------------------------
    # listing
    # ------------------------------------------------------------------
    @property
    def datasets(self) -> list[dict[str, Any]]:
        return list(self._datasets)

    async def list_datasets(self, **params: Any) -> dict[str, Any]:
        try:
            payload = await self._store.list(**params)
        except DashboardError as exc:
            emit(self._notifier, "Failed to load datasets", exc.detail, "error")
            raise
        items = payload.get("items") if isinstance(payload, dict) else None
        self._datasets = list(items or [])
        return payload

    async def reload(self) -> None:
        try:
            await self.list_datasets()
        except DashboardError:
            logger.warning("Dataset list reload failed")

    # ------------------------------------------------------------------
    # uploads
    # ------------------------------------------------------------------
    def uploads(self) -> list[UploadTask]:
        return list(self._uploads.values())

    def get_upload(self, upload_id: str) -> UploadTask | None:
        return self._uploads.get(upload_id)

    def clear_uploads(self) -> int:
        """Forget every finished upload; in-flight ones are kept."""

        finished = [key for key, task in self._uploads.items() if task.status in FINISHED]
        for key in finished:
            del self._uploads[key]
        return len(finished)

    def _evict_finished(self) -> None:
        # oldest finished first
        excess = len(self._uploads) - self._max_uploads
        if excess <= 0:
            return
        for key in [key for key, task in self._uploads.items() if task.status in FINISHED][:excess]:
            del self._uploads[key]

    def _register(self, upload: PendingUpload) -> UploadTask:
        base_id = f"{upload.filename}-{int(self._clock() * 1000)}"
        upload_id = base_id
        suffix = 1
        while upload_id in self._uploads:
            upload_id = f"{base_id}-{suffix}"
            suffix += 1
        task = UploadTask(upload_id=upload_id, filename=upload.filename, size=len(upload.content))
        self._uploads[upload_id] = task
        self._evict_finished()
        return task

    async def _upload_one(self, task: UploadTask, upload: PendingUpload, metadata: Mapping[str, Any]) -> None:
        def on_progress(progress: int) -> None:
            task.progress = max(0, min(int(progress), 100))
            if task.progress >= 100 and task.status == "uploading":
                task.status = "processing"

        try:
            dataset = await self._store.upload(
                upload.filename,
                upload.content,
                metadata,
                on_progress,
                content_type=upload.content_type,
            )
        except DashboardError as exc:
            error = UploadError(exc.detail)
        except Exception:
            logger.exception("Upload of %s failed", upload.filename)
            error = UploadError()
        else:
            task.status = "complete"
            task.progress = 100
            dataset_id = dataset.get("id") if isinstance(dataset, dict) else None
            task.dataset_id = str(dataset_id) if dataset_id is not None else None
            logger.info("Uploaded %s as dataset %s", upload.filename, task.dataset_id)
            emit(self._notifier, "Upload successful", f"{upload.filename} has been uploaded successfully.", "success")
            return

        task.status = "error"
        task.error = error.detail
        logger.warning("Upload of %s failed: %s", upload.filename, error.detail)
        emit(self._notifier, error.title, error.detail, "error")

    async def upload_many(
        self,
        uploads: Iterable[PendingUpload],
        *,
        name: str | None = None,
        description: str | None = None,
        tags: list[str] | None = None,
    ) -> list[UploadTask]:
        """Upload every file concurrently; one failure never aborts the others."""

        batch = list(uploads)
        tasks = [self._register(upload) for upload in batch]
        jobs = []
        for task, upload in zip(tasks, batch):
            metadata = {
                "name": upload_name(name, upload.filename, len(batch)),
                "description": description or None,
                "tags": list(tags) if tags else None,
            }
            jobs.append(self._upload_one(task, upload, metadata))
        await asyncio.gather(*jobs)

        if any(task.status == "complete" for task in tasks):
            await self.reload()
        return tasks

    # ------------------------------------------------------------------
    # housekeeping
    # ------------------------------------------------------------------
    async def delete(self, dataset_id: str) -> None:
        try:
            await self._store.delete(dataset_id)
        except DashboardError as exc:
            emit(self._notifier, "Failed to delete dataset", exc.detail, "error")
            raise
        self._datasets = [item for item in self._datasets if str(item.get("id")) != str(dataset_id)]
        emit(self._notifier, "Dataset deleted", "The dataset has been permanently deleted.", "success")

    async def bulk_delete(self, dataset_ids: list[str]) -> None:
        try:
            await self._store.bulk_delete(dataset_ids)
        except DashboardError as exc:
            emit(self._notifier, "Failed to delete datasets", exc.detail, "error")
            raise
        removed = {str(item) for item in dataset_ids}
        self._datasets = [item for item in self._datasets if str(item.get("id")) not in removed]
        emit(self._notifier, "Datasets deleted", f"{len(dataset_ids)} datasets have been permanently deleted.", "success")

    async def schema(self, dataset_id: str) -> dict[str, Any]:
        try:
            return await self._store.get_schema(dataset_id)
        except DashboardError:
            emit(self._notifier, "Failed to load schema", "Could not retrieve dataset schema", "error")
            raise

    async def generate_mapping(self, **poll: Any) -> dict[str, Any] | None:
        """Start mapping generation and poll until the mapping is available."""

        try:
            response = await self._store.generate_mapping()
            if response.get("status") == "completed":
                emit(self._notifier, "Mapping Generated", "Your organization mapping has been successfully generated.", "success")
                return await self._store.get_mapping()
            emit(
                self._notifier,
                "Mapping Generation Started",
                "Your organization mapping is being generated. This may take a few moments.",
            )
            return await self._store.wait_for_mapping(**poll)
        except DashboardError as exc:
            emit(self._notifier, "Generation Failed", exc.detail, "error")
            raise


__all__ = ["DatasetService", "PendingUpload", "upload_name"]
