from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from vizboard.application import DashboardController, DashboardService, DashboardView
from vizboard.core.errors import DashboardError, DashboardNotReadyError, ValidationError
from vizboard.core.tables import TableView

router = APIRouter(prefix="/dashboards", tags=["dashboards"])


def get_dashboard_service(request: Request) -> DashboardService:
    return request.app.state.dashboards


def _controller(service: DashboardService, session_id: str) -> DashboardController:
    controller = service.get(session_id)
    if controller is None:
        raise HTTPException(status_code=404, detail="dashboard session not found")
    return controller


def _http_error(exc: DashboardError) -> HTTPException:
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=400, detail=exc.message)
    if isinstance(exc, DashboardNotReadyError):
        return HTTPException(status_code=409, detail=exc.message)
    return HTTPException(status_code=502, detail=exc.message)


def _serialise_table(table: TableView) -> dict[str, Any]:
    payload = asdict(table)
    payload["summary"] = table.summary
    return payload


def _serialise_view(view: DashboardView) -> dict[str, Any]:
    payload = asdict(view)
    payload["filter_summary"] = view.filter_summary
    payload["tables"] = [_serialise_table(table) for table in view.tables]
    return payload


@router.post("")
async def create_dashboard(service: DashboardService = Depends(get_dashboard_service)) -> dict:
    controller = service.create_session()
    return {"session_id": controller.session.session_id}


@router.get("/{session_id}")
async def get_dashboard(session_id: str, service: DashboardService = Depends(get_dashboard_service)) -> dict:
    return _serialise_view(_controller(service, session_id).render())


@router.delete("/{session_id}")
async def delete_dashboard(session_id: str, service: DashboardService = Depends(get_dashboard_service)) -> dict:
    if not service.remove(session_id):
        raise HTTPException(status_code=404, detail="dashboard session not found")
    return {"session_id": session_id, "deleted": True}


@router.post("/{session_id}/query")
async def submit_query(
    session_id: str,
    payload: dict,
    service: DashboardService = Depends(get_dashboard_service),
) -> dict:
    controller = _controller(service, session_id)
    try:
        await controller.submit(payload.get("query"))
    except DashboardError as exc:
        raise _http_error(exc) from exc
    return _serialise_view(controller.render())


@router.post("/{session_id}/regenerate")
async def regenerate_dashboard(session_id: str, service: DashboardService = Depends(get_dashboard_service)) -> dict:
    controller = _controller(service, session_id)
    try:
        await controller.regenerate()
    except DashboardError as exc:
        raise _http_error(exc) from exc
    return _serialise_view(controller.render())


@router.post("/{session_id}/specification")
async def load_specification(
    session_id: str,
    payload: dict,
    service: DashboardService = Depends(get_dashboard_service),
) -> dict:
    """Accept ``{"json": "<document>"}``, ``{"specification": {...}}`` or the bare specification."""
    controller = _controller(service, session_id)
    try:
        if "json" in payload:
            controller.load_specification_json(payload["json"])
        elif isinstance(payload.get("specification"), dict):
            controller.load_specification(payload["specification"])
        else:
            controller.load_specification(payload)
    except DashboardError as exc:
        raise _http_error(exc) from exc
    return _serialise_view(controller.render())


@router.post("/{session_id}/datasets/{dataset_id}")
async def load_dataset(
    session_id: str,
    dataset_id: str,
    service: DashboardService = Depends(get_dashboard_service),
) -> dict:
    controller = _controller(service, session_id)
    try:
        await controller.load_dataset_preview(dataset_id)
    except DashboardError as exc:
        raise _http_error(exc) from exc
    return _serialise_view(controller.render())


@router.put("/{session_id}/filters/{field}")
async def set_filter(
    session_id: str,
    field: str,
    payload: dict,
    service: DashboardService = Depends(get_dashboard_service),
) -> dict:
    controller = _controller(service, session_id)
    try:
        controller.set_filter(field, payload.get("value"))
    except DashboardError as exc:
        raise _http_error(exc) from exc
    return _serialise_view(controller.render())


@router.delete("/{session_id}/filters/{field}")
async def clear_filter(session_id: str, field: str, service: DashboardService = Depends(get_dashboard_service)) -> dict:
    controller = _controller(service, session_id)
    try:
        controller.clear_filter(field)
    except DashboardError as exc:
        raise _http_error(exc) from exc
    return _serialise_view(controller.render())


@router.delete("/{session_id}/filters")
async def clear_filters(session_id: str, service: DashboardService = Depends(get_dashboard_service)) -> dict:
    controller = _controller(service, session_id)
    try:
        controller.clear_filters()
    except DashboardError as exc:
        raise _http_error(exc) from exc
    return _serialise_view(controller.render())


@router.get("/{session_id}/tables/{table_id}")
async def get_table(
    session_id: str,
    table_id: str,
    search: str | None = Query(default=None),
    sort: str | None = Query(default=None),
    page: int | None = Query(default=None),
    service: DashboardService = Depends(get_dashboard_service),
) -> dict:
    controller = _controller(service, session_id)
    try:
        table = controller.table_view(table_id, search=search, sort=sort, page=page)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="table not found") from exc
    except DashboardError as exc:
        raise _http_error(exc) from exc
    return _serialise_table(table)


@router.get("/{session_id}/notifications")
async def list_dashboard_notifications(
    session_id: str,
    service: DashboardService = Depends(get_dashboard_service),
) -> dict:
    controller = _controller(service, session_id)
    return {"items": [item.to_dict() for item in controller.notifications]}
