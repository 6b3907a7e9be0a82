"""License API: activate, deactivate, check, show."""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from stock_sync.api.deps import get_service, unwrap_license
from stock_sync.service import StockSyncService

router = APIRouter(prefix="/license", tags=["license"])


class ActivateBody(BaseModel):
    license_key: str


@router.get("")
def show(service: StockSyncService = Depends(get_service)) -> dict[str, Any]:
    return service.license_info().model_dump(mode="json")


@router.post("/activate")
def activate(body: ActivateBody, service: StockSyncService = Depends(get_service)) -> dict[str, Any]:
    return unwrap_license(service.activate_license(body.license_key))


@router.post("/deactivate")
def deactivate(service: StockSyncService = Depends(get_service)) -> dict[str, Any]:
    """Always clears the local license; remote failures are reported but not raised."""
    result = service.deactivate_license()
    return result.model_dump(mode="json")


@router.post("/check")
def check(service: StockSyncService = Depends(get_service)) -> dict[str, Any]:
    return unwrap_license(service.check_license())
