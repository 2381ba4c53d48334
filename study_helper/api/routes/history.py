"""
API endpoints for the caller's saved study results.
"""
import math
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, status

from study_helper.dependencies.auth import RequestContext, get_request_context
from study_helper.dependencies.services import get_history_store, get_settings
from study_helper.core.config import Settings
from study_helper.models.history import HistoryEntry
from study_helper.schemas.history import HistoryCreate
from study_helper.services.history_store import HistoryStore, MAX_PAGE_SIZE

router = APIRouter()


def serialize_history(entry: HistoryEntry) -> Dict[str, Any]:
    return {
        "id": entry.id,
        "type": entry.type,
        "inputText": entry.input_text,
        "result": entry.result,
        "url": entry.url,
        "createdAt": entry.created_at.isoformat() if entry.created_at else None,
    }


@router.post("", status_code=status.HTTP_201_CREATED)
def save_history(
    body: HistoryCreate,
    ctx: RequestContext = Depends(get_request_context),
    store: HistoryStore = Depends(get_history_store),
):
    entry = store.save(ctx.account.id, body.type, body.input_text, body.result, body.url)
    return {
        "success": True,
        "message": "History saved successfully",
        "history": serialize_history(entry),
    }


@router.get("")
def get_history(
    type: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = Query(MAX_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    skip: int = Query(0, ge=0),
    ctx: RequestContext = Depends(get_request_context),
    store: HistoryStore = Depends(get_history_store),
):
    """
    List the caller's history, newest first.
    Optionally filter by type and search input/result text (case-insensitive).
    """
    entries, total = store.list(ctx.account.id, type=type, search=search, limit=limit, skip=skip)
    return {
        "success": True,
        "count": len(entries),
        "history": [serialize_history(e) for e in entries],
        "pagination": {
            "total": total,
            "limit": limit,
            "skip": skip,
            "hasMore": total > skip + limit,
            "page": skip // limit + 1,
            "totalPages": math.ceil(total / limit),
        },
    }


@router.get("/stats")
def get_history_stats(
    ctx: RequestContext = Depends(get_request_context),
    store: HistoryStore = Depends(get_history_store),
):
    return {"success": True, "stats": store.stats(ctx.account.id)}


@router.delete("/clear")
def clear_history(
    ctx: RequestContext = Depends(get_request_context),
    store: HistoryStore = Depends(get_history_store),
):
    deleted = store.clear(ctx.account.id)
    return {
        "success": True,
        "message": f"All history cleared. {deleted} items deleted.",
        "deletedCount": deleted,
    }


@router.delete("/cleanup")
def cleanup_old_history(
    days: Optional[int] = Query(None, ge=1),
    ctx: RequestContext = Depends(get_request_context),
    store: HistoryStore = Depends(get_history_store),
    settings: Settings = Depends(get_settings),
):
    """Delete the caller's entries older than ``days`` (default: retention setting)"""
    days = days or settings.history_retention_days
    deleted = store.cleanup(ctx.account.id, days)
    return {
        "success": True,
        "message": f"Deleted history older than {days} days",
        "deletedCount": deleted,
    }


@router.get("/{history_id}")
def get_history_by_id(
    history_id: int,
    ctx: RequestContext = Depends(get_request_context),
    store: HistoryStore = Depends(get_history_store),
):
    entry = store.get(ctx.account.id, history_id)
    return {"success": True, "history": serialize_history(entry)}


@router.delete("/{history_id}")
def delete_history(
    history_id: int,
    ctx: RequestContext = Depends(get_request_context),
    store: HistoryStore = Depends(get_history_store),
):
    store.delete(ctx.account.id, history_id)
    return {"success": True, "message": "History item deleted successfully"}
