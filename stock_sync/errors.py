"""Abort-class errors of a reconciliation run, each carrying a stable code.

They are raised inside components and turned into ``SyncResult`` failures at
the engine/service boundary, so trigger contexts never see them uncaught.
"""

from typing import Any


class SyncError(Exception):
    """Base error: ``code`` is stable, ``message`` is shown to the operator verbatim."""

    code = "sync_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if self.details:
            payload["details"] = self.details
        return payload


class LicenseInvalidError(SyncError):
    code = "license_invalid"


class ConfigMissingError(SyncError):
    code = "config_missing"


class FetchError(SyncError):
    code = "fetch_error"

    def __init__(self, message: str, status_code: int | None = None, reason: str | None = None):
        details: dict[str, Any] = {}
        if status_code is not None:
            details["status_code"] = status_code
        if reason:
            details["reason"] = reason
        super().__init__(message, details)
        self.status_code = status_code
        self.reason = reason


class EmptyFeedError(SyncError):
    code = "empty_feed"


class ColumnNotFoundError(SyncError):
    code = "column_not_found"

    def __init__(self, which: str, column: str, available: list[str]):
        label = "SKU" if which == "sku" else "Quantity"
        message = (
            f'{label} column "{column}" not found in CSV. '
            f"Available columns: {', '.join(available)}"
        )
        super().__init__(message, {"which": which, "column": column, "available": available})
        self.which = which
        self.column = column
        self.available = available


class SyncBusyError(SyncError):
    code = "busy"


class RateLimitedError(SyncError):
    code = "rate_limited"

    def __init__(self, wait_seconds: int):
        super().__init__(
            f"Please wait {wait_seconds} seconds before starting another sync.",
            {"wait_seconds": wait_seconds},
        )
        self.wait_seconds = wait_seconds
