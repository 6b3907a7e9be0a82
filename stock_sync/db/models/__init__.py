"""Re-export all ORM models so Base.metadata has all tables."""

from stock_sync.db.models.product import Product
from stock_sync.db.models.sync_log import SyncLog

__all__ = ["Product", "SyncLog"]
