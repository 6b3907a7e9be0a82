"""Shared route helpers: service lookup and result unwrapping."""

from typing import Any

from fastapi import Request

from stock_sync.errors import SyncError
from stock_sync.models.license import LicenseResult
from stock_sync.models.sync import SyncResult
from stock_sync.service import StockSyncService

CONFLICT_CODES = frozenset({"busy", "rate_limited"})


class OperationFailedError(SyncError):
    """A failed SyncResult/LicenseResult on its way to the HTTP error handler."""

    def __init__(self, code: str | None, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, details)
        self.code = code or "operation_failed"

    @property
    def status_code(self) -> int:
        return 409 if self.code in CONFLICT_CODES else 400


def get_service(request: Request) -> StockSyncService:
    return request.app.state.service


def unwrap(result: SyncResult) -> dict[str, Any]:
    if not result.success:
        raise OperationFailedError(result.error_code, result.message, result.data or None)
    return result.model_dump(mode="json")


def unwrap_license(result: LicenseResult) -> dict[str, Any]:
    if not result.success:
        raise OperationFailedError(
            f"license_{result.status.value}",
            result.message,
            {"status": result.status.value, "grace_days_remaining": result.grace_days_remaining},
        )
    return result.model_dump(mode="json")
