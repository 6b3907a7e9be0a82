"""Reconciliation run models: catalog product view, per-entity results, run summary and result."""

from datetime import datetime
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel

Trigger = Literal["manual", "scheduled"]
Visibility = Literal["published", "private"]
CatalogVisibility = Literal["visible", "hidden"]


class ProductRef(BaseModel):
    """Catalog product as seen by the engine (storage is owned by the catalog)."""

    product_id: int
    sku: str
    stock_quantity: Optional[int] = None
    manage_stock: bool = False
    status: Visibility = "published"
    catalog_visibility: CatalogVisibility = "visible"


class Outcome(str, Enum):
    UPDATED = "updated"
    SKIPPED = "skipped"
    NOT_FOUND = "not_found"
    SET_ZERO = "set_zero"
    SET_PRIVATE = "set_private"
    RESTORED = "restored"
    UNCHANGED = "unchanged"
    ERROR = "error"


class EntityResult(BaseModel):
    """What happened to one SKU; errors are data here, not exceptions."""

    sku: str
    outcome: Outcome
    message: Optional[str] = None


class RunSummary(BaseModel):
    """Counters of one run; handed to the run log and then dropped."""

    trigger: Trigger = "manual"
    total_rows: int = 0
    processed: int = 0
    updated: int = 0
    skipped: int = 0
    not_found: int = 0
    missing_set_zero: int = 0
    missing_set_private: int = 0
    missing_restored: int = 0
    errors: int = 0
    error_messages: list[str] = []
    start_time: float = 0.0
    end_time: float = 0.0

    @property
    def duration(self) -> float:
        if not self.start_time or not self.end_time:
            return 0.0
        return round(self.end_time - self.start_time, 2)

    def record(self, result: EntityResult) -> None:
        """Fold one per-entity result into the counters."""
        if result.outcome is Outcome.UPDATED:
            self.updated += 1
        elif result.outcome is Outcome.SKIPPED:
            self.skipped += 1
        elif result.outcome is Outcome.NOT_FOUND:
            self.not_found += 1
        elif result.outcome is Outcome.SET_ZERO:
            self.missing_set_zero += 1
        elif result.outcome is Outcome.SET_PRIVATE:
            self.missing_set_private += 1
        elif result.outcome is Outcome.RESTORED:
            self.missing_restored += 1
        elif result.outcome is Outcome.ERROR:
            self.errors += 1
            if result.message:
                self.error_messages.append(result.message)

    def stats(self) -> dict[str, Any]:
        """Counters as stored on the run log entry (error messages travel separately)."""
        return self.model_dump(exclude={"error_messages"})


class SyncResult(BaseModel):
    """Structured outcome of an operator-facing operation."""

    success: bool
    message: str
    error_code: Optional[str] = None
    stats: Optional[dict[str, Any]] = None
    data: dict[str, Any] = {}

    @classmethod
    def failure(cls, error_code: str, message: str, **kwargs: Any) -> "SyncResult":
        return cls(success=False, error_code=error_code, message=message, **kwargs)


class ScheduleStatus(BaseModel):
    """Scheduler state as shown to the operator."""

    enabled: bool
    interval: str
    interval_display: str
    next_run: Optional[datetime] = None
    next_run_human: Optional[str] = None
    last_sync: Optional[datetime] = None
    last_sync_stats: Optional[dict[str, Any]] = None
    watchdog_last: Optional[datetime] = None
    is_running: bool = False
