from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("")
async def list_notifications(request: Request) -> dict:
    """Recent application-wide notifications (uploads, dataset housekeeping)."""
    recent = getattr(request.app.state.notifier, "recent", None)
    items = recent() if callable(recent) else []
    return {"items": [item.to_dict() for item in items]}


@router.delete("")
async def clear_notifications(request: Request) -> dict:
    clear = getattr(request.app.state.notifier, "clear", None)
    if callable(clear):
        clear()
    return {"cleared": True}
