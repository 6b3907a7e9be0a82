"""License API client and the license gate."""

from stock_sync.license.client import ApiResponse, LicenseApiClient, normalize_domain
from stock_sync.license.guard import LicenseGuard, SyncSwitch, status_from_reason

__all__ = [
    "ApiResponse",
    "LicenseApiClient",
    "normalize_domain",
    "LicenseGuard",
    "SyncSwitch",
    "status_from_reason",
]
