"""Run log API: list, detail, stats, chart data, clear."""

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from stock_sync.api.deps import get_service
from stock_sync.service import StockSyncService

router = APIRouter(prefix="/logs", tags=["logs"])


@router.get("")
def list_logs(
    type: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: StockSyncService = Depends(get_service),
) -> dict[str, Any]:
    items = service.get_logs(type=type, status=status, limit=limit, offset=offset)
    return {
        "items": [entry.model_dump(mode="json") for entry in items],
        "total": service.count_logs(type=type, status=status),
    }


@router.get("/stats")
def stats(days: int = Query(30, ge=1), service: StockSyncService = Depends(get_service)) -> dict[str, Any]:
    return service.get_stats(days).model_dump(mode="json")


@router.get("/chart")
def chart(days: int = Query(14, ge=1, le=366), service: StockSyncService = Depends(get_service)) -> list[dict[str, Any]]:
    return [point.model_dump() for point in service.get_chart_data(days)]


@router.get("/{entry_id}")
def get_log(entry_id: int, service: StockSyncService = Depends(get_service)) -> dict[str, Any]:
    entry = service.get_log(entry_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Log not found.")
    return entry.model_dump(mode="json")


@router.delete("")
def clear(service: StockSyncService = Depends(get_service)) -> dict[str, str]:
    service.clear_logs()
    return {"message": "Logs cleared successfully."}
