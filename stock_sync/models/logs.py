"""Run log entry models."""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel

LogType = Literal["sync", "watchdog", "license"]
LogStatus = Literal["success", "error", "warning"]


class LogEntryCreate(BaseModel):
    """Entry handed to the run log; duration is derived from stats start/end when present."""

    type: LogType = "sync"
    trigger: Optional[str] = None
    status: LogStatus = "success"
    message: str = ""
    stats: dict[str, Any] = {}
    errors: list[str] = []
    duration: float = 0.0


class LogEntry(LogEntryCreate):
    id: int
    created_at: datetime


class SyncStats(BaseModel):
    """Aggregates over the sync entries of the last N days."""

    total_syncs: int = 0
    successful_syncs: int = 0
    failed_syncs: int = 0
    success_rate: float = 0.0
    avg_duration: float = 0.0
    total_updated: int = 0
    total_processed: int = 0
    last_success: Optional[LogEntry] = None
    by_trigger: dict[str, int] = {}


class ChartPoint(BaseModel):
    date: str
    success: int = 0
    error: int = 0
    updated: int = 0
