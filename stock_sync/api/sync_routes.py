"""Sync API: run, pre-flight checks, settings, toggle, status."""

from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from stock_sync.api.deps import get_service, unwrap
from stock_sync.models.settings import MissingSkuAction
from stock_sync.service import StockSyncService

router = APIRouter(tags=["sync"])


class UrlBody(BaseModel):
    url: Optional[str] = None


class ToggleBody(BaseModel):
    enabled: bool


class SettingsUpdate(BaseModel):
    csv_url: Optional[str] = None
    sku_column: Optional[str] = None
    quantity_column: Optional[str] = None
    schedule_interval: Optional[str] = None
    enabled: Optional[bool] = None
    disable_ssl: Optional[bool] = None
    missing_sku_action: Optional[MissingSkuAction] = None


@router.post("/sync/run")
def run_sync(service: StockSyncService = Depends(get_service)) -> dict[str, Any]:
    """Start a manual sync and wait for its summary."""
    return unwrap(service.run_manual_sync())


@router.post("/sync/test-connection")
def test_connection(body: UrlBody, service: StockSyncService = Depends(get_service)) -> dict[str, Any]:
    return unwrap(service.test_connection(body.url))


@router.post("/sync/preview")
def preview(body: UrlBody, service: StockSyncService = Depends(get_service)) -> dict[str, Any]:
    return unwrap(service.preview_columns(body.url))


@router.post("/sync/toggle")
def toggle(body: ToggleBody, service: StockSyncService = Depends(get_service)) -> dict[str, Any]:
    return unwrap(service.toggle_sync(body.enabled))


@router.get("/settings")
def get_settings(service: StockSyncService = Depends(get_service)) -> dict[str, Any]:
    return service.get_settings().model_dump()


@router.put("/settings")
def put_settings(body: SettingsUpdate, service: StockSyncService = Depends(get_service)) -> dict[str, Any]:
    """Partial update: omitted fields keep their current value."""
    return unwrap(service.save_config(**body.model_dump(exclude_none=True)))


@router.get("/status")
def status(service: StockSyncService = Depends(get_service)) -> dict[str, Any]:
    return service.get_status().model_dump(mode="json")


@router.get("/sync/hidden")
def hidden_products(service: StockSyncService = Depends(get_service)) -> dict[str, int]:
    """SKU to product id for products hidden because their SKU left the feed."""
    return service.hidden_products()


@router.delete("/sync/hidden")
def clear_hidden_products(service: StockSyncService = Depends(get_service)) -> dict[str, Any]:
    return unwrap(service.clear_hidden_products())
