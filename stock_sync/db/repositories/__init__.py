"""DB repositories."""

from stock_sync.db.repositories.protocol import RunLogStore
from stock_sync.db.repositories.run_log_repo import SqlRunLog

__all__ = ["RunLogStore", "SqlRunLog"]
