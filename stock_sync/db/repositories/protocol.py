"""Run log protocol (what the engine, scheduler and license guard write to)."""

from typing import Optional, Protocol

from stock_sync.models.logs import ChartPoint, LogEntry, LogEntryCreate, SyncStats


class RunLogStore(Protocol):
    """Append-only event record with aggregate statistics."""

    def append(self, entry: LogEntryCreate) -> int:
        """Store one entry and return its id. Oldest entries beyond retention are pruned."""
        ...

    def query_recent(
        self,
        type: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[LogEntry]:
        """Newest first, optionally filtered by type and status."""
        ...

    def get_by_id(self, entry_id: int) -> Optional[LogEntry]:
        ...

    def count(self, type: Optional[str] = None, status: Optional[str] = None) -> int:
        ...

    def get_stats(self, days: int = 30) -> SyncStats:
        ...

    def get_chart_data(self, days: int = 14) -> list[ChartPoint]:
        ...

    def clear(self) -> None:
        ...

    def delete(self, entry_id: int) -> bool:
        ...
