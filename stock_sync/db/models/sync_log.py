"""ORM model for run log entries (sync, watchdog and license events)."""

from datetime import datetime
from typing import Optional

from sqlalchemy import Float, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from stock_sync.db.base import Base, utcnow


class SyncLog(Base):
    """Append-only event row; stats and errors are JSON text."""

    __tablename__ = "sync_logs"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    type: Mapped[str] = mapped_column(String(32), nullable=False, default="sync", index=True)
    trigger_type: Mapped[Optional[str]] = mapped_column(String(32), nullable=True, index=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="success", index=True)
    message: Mapped[str] = mapped_column(Text, nullable=False, default="")
    stats_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    errors_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    duration: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, index=True)
