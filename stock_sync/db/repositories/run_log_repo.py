"""Run log repository: append with retention, queries, stats and chart data."""

import json
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from sqlalchemy import delete, func, select

from stock_sync.config import LOG_RETENTION
from stock_sync.db import SessionScope, get_session
from stock_sync.db.models.sync_log import SyncLog
from stock_sync.models.logs import ChartPoint, LogEntry, LogEntryCreate, SyncStats
from stock_sync.state.store import StateStore, to_iso
from stock_sync.utils.logger import get_logger

logger = get_logger("stock_sync.db.run_log")

LAST_SYNC_TIME_KEY = "last_sync_time"
LAST_SYNC_STATS_KEY = "last_sync_stats"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def _loads(raw: Optional[str], default: Any) -> Any:
    if not raw:
        return default
    try:
        return json.loads(raw)
    except ValueError:
        return default


def _to_entry(row: SyncLog) -> LogEntry:
    return LogEntry(
        id=row.id,
        type=row.type,
        trigger=row.trigger_type,
        status=row.status,
        message=row.message or "",
        stats=_loads(row.stats_json, {}),
        errors=_loads(row.errors_json, []),
        duration=row.duration or 0.0,
        created_at=_as_utc(row.created_at),
    )


class SqlRunLog:
    """RunLogStore over the ``sync_logs`` table."""

    def __init__(
        self,
        session_scope: SessionScope = get_session,
        state: Optional[StateStore] = None,
        retention: int = LOG_RETENTION,
        now: Callable[[], datetime] = _utcnow,
    ):
        self._session = session_scope
        self._state = state
        self._retention = retention
        self._now = now

    def append(self, entry: LogEntryCreate) -> int:
        duration = entry.duration
        start, end = entry.stats.get("start_time"), entry.stats.get("end_time")
        if start and end:
            duration = round(float(end) - float(start), 2)

        with self._session() as session:
            row = SyncLog(
                type=entry.type,
                trigger_type=entry.trigger,
                status=entry.status,
                message=entry.message,
                stats_json=json.dumps(entry.stats, default=str),
                errors_json=json.dumps(entry.errors, default=str),
                duration=float(duration or 0.0),
                created_at=self._now(),
            )
            session.add(row)
            session.flush()
            entry_id = row.id
            self._prune(session)

        if entry.type == "sync" and entry.status == "success" and self._state is not None:
            self._state.update({
                LAST_SYNC_TIME_KEY: to_iso(self._now()),
                LAST_SYNC_STATS_KEY: entry.stats,
            })
        logger.debug("run_log.append", id=entry_id, type=entry.type, status=entry.status)
        return entry_id

    def _prune(self, session) -> None:
        """Delete oldest entries beyond retention."""
        total = session.scalar(select(func.count(SyncLog.id))) or 0
        excess = total - self._retention
        if excess <= 0:
            return
        oldest = select(SyncLog.id).order_by(SyncLog.created_at.asc(), SyncLog.id.asc()).limit(excess)
        ids = list(session.scalars(oldest).all())
        session.execute(delete(SyncLog).where(SyncLog.id.in_(ids)))

    @staticmethod
    def _filtered(q, type: Optional[str], status: Optional[str]):
        if type:
            q = q.where(SyncLog.type == type)
        if status:
            q = q.where(SyncLog.status == status)
        return q

    def query_recent(
        self,
        type: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[LogEntry]:
        with self._session() as session:
            q = self._filtered(select(SyncLog), type, status)
            q = q.order_by(SyncLog.created_at.desc(), SyncLog.id.desc()).limit(limit).offset(offset)
            return [_to_entry(row) for row in session.scalars(q).all()]

    def get_by_id(self, entry_id: int) -> Optional[LogEntry]:
        with self._session() as session:
            row = session.get(SyncLog, entry_id)
            return _to_entry(row) if row is not None else None

    def count(self, type: Optional[str] = None, status: Optional[str] = None) -> int:
        with self._session() as session:
            q = self._filtered(select(func.count(SyncLog.id)), type, status)
            return int(session.scalar(q) or 0)

    def last_success(self) -> Optional[LogEntry]:
        with self._session() as session:
            row = session.scalars(
                select(SyncLog)
                .where(SyncLog.type == "sync", SyncLog.status == "success")
                .order_by(SyncLog.created_at.desc(), SyncLog.id.desc())
                .limit(1)
            ).first()
            return _to_entry(row) if row is not None else None

    def get_stats(self, days: int = 30) -> SyncStats:
        since = self._now() - timedelta(days=days)
        with self._session() as session:
            rows = list(session.scalars(
                select(SyncLog).where(SyncLog.type == "sync", SyncLog.created_at >= since)
            ).all())

        successes = [r for r in rows if r.status == "success"]
        failed = sum(1 for r in rows if r.status == "error")
        total_updated = 0
        total_processed = 0
        for row in successes:
            stats = _loads(row.stats_json, {})
            if isinstance(stats, dict):
                total_updated += int(stats.get("updated") or 0)
                total_processed += int(stats.get("processed") or 0)

        by_trigger: dict[str, int] = {}
        for row in rows:
            key = row.trigger_type or "unknown"
            by_trigger[key] = by_trigger.get(key, 0) + 1

        total = len(rows)
        avg_duration = sum(r.duration or 0.0 for r in successes) / len(successes) if successes else 0.0
        return SyncStats(
            total_syncs=total,
            successful_syncs=len(successes),
            failed_syncs=failed,
            success_rate=round(len(successes) / total * 100, 1) if total else 0.0,
            avg_duration=round(avg_duration, 2),
            total_updated=total_updated,
            total_processed=total_processed,
            last_success=self.last_success(),
            by_trigger=by_trigger,
        )

    def get_chart_data(self, days: int = 14) -> list[ChartPoint]:
        """One point per day, oldest first, ending today (UTC)."""
        today = self._now().date()
        points = {
            (today - timedelta(days=i)).isoformat(): ChartPoint(date=(today - timedelta(days=i)).isoformat())
            for i in range(days - 1, -1, -1)
        }
        since = datetime.combine(today - timedelta(days=days - 1), datetime.min.time(), tzinfo=timezone.utc)
        with self._session() as session:
            rows = list(session.scalars(
                select(SyncLog).where(SyncLog.type == "sync", SyncLog.created_at >= since)
            ).all())

        for row in rows:
            point = points.get(_as_utc(row.created_at).date().isoformat())
            if point is None:
                continue
            if row.status == "success":
                point.success += 1
                stats = _loads(row.stats_json, {})
                if isinstance(stats, dict):
                    point.updated += int(stats.get("updated") or 0)
            elif row.status == "error":
                point.error += 1
        return list(points.values())

    def clear(self) -> None:
        with self._session() as session:
            session.execute(delete(SyncLog))
        logger.info("run_log.cleared")

    def delete(self, entry_id: int) -> bool:
        with self._session() as session:
            row = session.get(SyncLog, entry_id)
            if row is None:
                return False
            session.delete(row)
            return True
