"""Pydantic models for stock sync."""

from stock_sync.models.feed import FeedPreview, FeedRow, FeedSnapshot
from stock_sync.models.license import (
    LicenseData,
    LicenseInfo,
    LicenseResult,
    LicenseState,
    LicenseStatus,
    mask_key,
)
from stock_sync.models.logs import ChartPoint, LogEntry, LogEntryCreate, SyncStats
from stock_sync.models.settings import MISSING_SKU_ACTIONS, SyncSettings
from stock_sync.models.sync import (
    EntityResult,
    Outcome,
    ProductRef,
    RunSummary,
    ScheduleStatus,
    SyncResult,
)

__all__ = [
    "FeedRow",
    "FeedSnapshot",
    "FeedPreview",
    "LicenseStatus",
    "LicenseData",
    "LicenseState",
    "LicenseResult",
    "LicenseInfo",
    "mask_key",
    "LogEntryCreate",
    "LogEntry",
    "SyncStats",
    "ChartPoint",
    "SyncSettings",
    "MISSING_SKU_ACTIONS",
    "ProductRef",
    "Outcome",
    "EntityResult",
    "RunSummary",
    "ScheduleStatus",
    "SyncResult",
]
