from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile

from vizboard.application import DatasetService, PendingUpload
from vizboard.core.errors import DashboardError, ServerError

router = APIRouter(prefix="/datasets", tags=["datasets"])


def get_dataset_service(request: Request) -> DatasetService:
    return request.app.state.datasets


def _http_error(exc: DashboardError) -> HTTPException:
    if isinstance(exc, ServerError) and exc.status_code == 404:
        return HTTPException(status_code=404, detail=exc.detail)
    return HTTPException(status_code=502, detail=exc.message)


def _parse_tags(raw: str | None) -> list[str] | None:
    if not raw or not raw.strip():
        return None
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        parsed = raw.split(",")
    if not isinstance(parsed, list):
        parsed = [parsed]
    tags = [str(tag).strip() for tag in parsed if str(tag).strip()]
    return tags or None


@router.get("")
async def list_datasets(
    page: int | None = Query(default=None),
    page_size: int | None = Query(default=None),
    search: str | None = Query(default=None),
    sort: str | None = Query(default=None),
    service: DatasetService = Depends(get_dataset_service),
) -> dict:
    try:
        return await service.list_datasets(page=page, page_size=page_size, search=search, sort=sort)
    except DashboardError as exc:
        raise _http_error(exc) from exc


@router.post("/upload")
async def upload_datasets(
    files: list[UploadFile] = File(...),
    name: str | None = Form(default=None),
    description: str | None = Form(default=None),
    tags: str | None = Form(default=None),
    service: DatasetService = Depends(get_dataset_service),
) -> dict:
    """Upload one or more files; each file is tracked as its own upload task."""
    if not files:
        raise HTTPException(status_code=400, detail="At least one file must be provided")

    pending: list[PendingUpload] = []
    for upload in files:
        try:
            if not upload.filename:
                raise HTTPException(status_code=400, detail="Uploaded file must have a filename")
            content = await upload.read()
            pending.append(PendingUpload(Path(upload.filename).name, content, upload.content_type))
        finally:
            await upload.close()

    tasks = await service.upload_many(pending, name=name, description=description, tags=_parse_tags(tags))
    return {"items": [asdict(task) for task in tasks]}


@router.get("/uploads")
async def list_uploads(service: DatasetService = Depends(get_dataset_service)) -> dict:
    return {"items": [asdict(task) for task in service.uploads()]}


@router.delete("/uploads")
async def clear_uploads(service: DatasetService = Depends(get_dataset_service)) -> dict:
    return {"cleared": service.clear_uploads()}


@router.post("/bulk-delete")
async def bulk_delete_datasets(payload: dict, service: DatasetService = Depends(get_dataset_service)) -> dict:
    ids = payload.get("ids")
    if not isinstance(ids, list) or not ids:
        raise HTTPException(status_code=400, detail="ids is required")
    try:
        await service.bulk_delete([str(item) for item in ids])
    except DashboardError as exc:
        raise _http_error(exc) from exc
    return {"deleted": [str(item) for item in ids]}


@router.post("/mappings/generate")
async def generate_mapping(service: DatasetService = Depends(get_dataset_service)) -> dict:
    try:
        mapping = await service.generate_mapping()
    except DashboardError as exc:
        raise _http_error(exc) from exc
    return {"status": "completed" if mapping is not None else "pending", "mapping": mapping}


@router.delete("/{dataset_id}")
async def delete_dataset(dataset_id: str, service: DatasetService = Depends(get_dataset_service)) -> dict:
    try:
        await service.delete(dataset_id)
    except DashboardError as exc:
        raise _http_error(exc) from exc
    return {"dataset_id": dataset_id, "deleted": True}


@router.get("/{dataset_id}/schema")
async def get_dataset_schema(dataset_id: str, service: DatasetService = Depends(get_dataset_service)) -> dict:
    try:
        return await service.schema(dataset_id)
    except DashboardError as exc:
        raise _http_error(exc) from exc
