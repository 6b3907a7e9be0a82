"""Sync schedule lifecycle, the run lease, and the watchdog that repairs a stalled schedule."""

from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Callable, Generator, Optional

from stock_sync.config import RUN_LEASE_SECONDS
from stock_sync.db.repositories.protocol import RunLogStore
from stock_sync.db.repositories.run_log_repo import LAST_SYNC_STATS_KEY, LAST_SYNC_TIME_KEY
from stock_sync.errors import SyncBusyError
from stock_sync.models.logs import LogEntryCreate
from stock_sync.models.sync import ScheduleStatus
from stock_sync.scheduler.intervals import (
    DEFAULT_INTERVAL,
    interval_display,
    interval_seconds,
    is_sync_interval,
)
from stock_sync.scheduler.triggers import (
    LICENSE_CHECK_TRIGGER,
    SYNC_TRIGGER,
    WATCHDOG_TRIGGER,
    TriggerStore,
)
from stock_sync.state.settings_store import SettingsStore
from stock_sync.state.store import Clock, StateStore, from_iso, to_iso, utcnow
from stock_sync.utils.logger import get_logger

logger = get_logger("stock_sync.scheduler")

RUNNING_LEASE = "sync_running"
LAST_SCHEDULED_KEY = "last_scheduled_at"
WATCHDOG_HEARTBEAT_KEY = "watchdog_last_check"


def humanize_delta(seconds: float) -> str:
    seconds = max(0, int(seconds))
    for unit, size in (("day", 86400), ("hour", 3600), ("min", 60)):
        if seconds >= size:
            count = round(seconds / size)
            return f"{count} {unit}{'s' if count != 1 else ''}"
    return f"{seconds} secs"


class Scheduler:
    """Owns the ``sync`` trigger, the system triggers and the leased running flag."""

    def __init__(
        self,
        triggers: TriggerStore,
        settings: SettingsStore,
        store: StateStore,
        run_log: RunLogStore,
        license_valid: Callable[[], bool],
        now: Clock = utcnow,
        lease_seconds: int = RUN_LEASE_SECONDS,
    ):
        self._triggers = triggers
        self._settings = settings
        self._store = store
        self._run_log = run_log
        self._license_valid = license_valid
        self._now = now
        self._lease_seconds = lease_seconds

    @property
    def triggers(self) -> TriggerStore:
        return self._triggers

    @property
    def clock(self) -> Clock:
        return self._now

    # Schedule lifecycle

    def _interval_key(self, interval: Optional[str] = None) -> str:
        key = interval or self._settings.load().schedule_interval
        if not is_sync_interval(key):
            logger.warning("scheduler.unknown_interval", interval=key, fallback=DEFAULT_INTERVAL)
            return DEFAULT_INTERVAL
        return key

    def _arm_sync(self, first_run_at: datetime, interval: str) -> None:
        self._triggers.clear(SYNC_TRIGGER)
        self._triggers.schedule_recurring(SYNC_TRIGGER, first_run_at, interval)

    def schedule(self, interval: Optional[str] = None) -> datetime:
        """Arm the sync trigger one interval from now and make sure the watchdog exists."""
        key = self._interval_key(interval)
        now = self._now()
        first_run = now + timedelta(seconds=interval_seconds(key))
        self._arm_sync(first_run, key)
        self.ensure_system_triggers()
        if self._settings.load().schedule_interval != key:
            self._settings.update(schedule_interval=key)
        self._store.set(LAST_SCHEDULED_KEY, to_iso(now))
        logger.info("scheduler.scheduled", interval=key, next_run=to_iso(first_run))
        return first_run

    def unschedule(self) -> None:
        """Clear the sync trigger only; system triggers are independent."""
        self._triggers.clear(SYNC_TRIGGER)
        logger.info("scheduler.unscheduled")

    def reschedule(self) -> Optional[datetime]:
        """Re-arm the next sync relative to now. No-op when sync is disabled."""
        if not self.is_enabled():
            return None
        key = self._interval_key()
        next_run = self._now() + timedelta(seconds=interval_seconds(key))
        self._arm_sync(next_run, key)
        logger.debug("scheduler.rescheduled", interval=key, next_run=to_iso(next_run))
        return next_run

    def ensure_system_triggers(self) -> None:
        """Arm the watchdog and the daily license check if they are missing."""
        now = self._now()
        if self._triggers.next_run_at(WATCHDOG_TRIGGER) is None:
            self._triggers.schedule_recurring(WATCHDOG_TRIGGER, now, WATCHDOG_TRIGGER)
        if self._triggers.next_run_at(LICENSE_CHECK_TRIGGER) is None:
            self._triggers.schedule_recurring(LICENSE_CHECK_TRIGGER, now, LICENSE_CHECK_TRIGGER)

    def next_run(self) -> Optional[datetime]:
        return self._triggers.next_run_at(SYNC_TRIGGER)

    # Enable switch (also driven by the license daily check)

    def is_enabled(self) -> bool:
        return self._settings.load().enabled

    def disable_sync(self) -> None:
        self._settings.update(enabled=False)
        self.unschedule()

    def enable_sync(self) -> bool:
        """Turn sync back on and re-arm; refused when no feed URL is configured."""
        settings = self._settings.load()
        if not settings.csv_url:
            return False
        self._settings.update(enabled=True)
        self.schedule(settings.schedule_interval)
        return True

    # Run lease

    def is_running(self) -> bool:
        return self._store.has_lease(RUNNING_LEASE)

    def set_running(self, running: bool = True) -> None:
        if running:
            self._store.set_lease(RUNNING_LEASE, self._lease_seconds)
        else:
            self._store.release_lease(RUNNING_LEASE)

    @contextmanager
    def running(self) -> Generator[None, None, None]:
        """Hold the run lease for the block; SyncBusyError if another run holds it."""
        if not self._store.acquire_lease(RUNNING_LEASE, self._lease_seconds):
            raise SyncBusyError("A sync is already in progress.")
        try:
            yield
        finally:
            self._store.release_lease(RUNNING_LEASE)

    # Watchdog

    def _watchdog_log(self, message: str) -> None:
        self._run_log.append(LogEntryCreate(type="watchdog", status="warning", message=message))
        logger.warning("scheduler.watchdog", message=message)

    def watchdog_check(self) -> Optional[str]:
        """Repair a missing or stuck sync trigger. Returns what was done, if anything."""
        if not self.is_enabled():
            return None

        if not self._license_valid():
            self.disable_sync()
            self._watchdog_log("Watchdog: License invalid. Sync disabled.")
            return "license_invalid"

        now = self._now()
        key = self._interval_key()
        next_run = self._triggers.next_run_at(SYNC_TRIGGER)
        action: Optional[str] = None

        if next_run is None:
            self._arm_sync(now, key)
            self._watchdog_log("Watchdog: Sync cron was missing. Rescheduled successfully.")
            action = "rescheduled_missing"
        elif next_run < now - timedelta(seconds=2 * interval_seconds(key)):
            self._arm_sync(now, key)
            self._watchdog_log("Watchdog: Sync cron was stuck/overdue. Rescheduled successfully.")
            action = "rescheduled_overdue"

        self._store.set(WATCHDOG_HEARTBEAT_KEY, to_iso(now))
        return action

    # Status

    def get_status(self) -> ScheduleStatus:
        settings = self._settings.load()
        now = self._now()
        next_run = self.next_run()
        next_human: Optional[str] = None
        if next_run is not None:
            diff = (next_run - now).total_seconds()
            next_human = "Overdue" if diff < 0 else humanize_delta(diff)
        return ScheduleStatus(
            enabled=settings.enabled,
            interval=settings.schedule_interval,
            interval_display=interval_display(settings.schedule_interval),
            next_run=next_run,
            next_run_human=next_human,
            last_sync=from_iso(self._store.get(LAST_SYNC_TIME_KEY)),
            last_sync_stats=self._store.get(LAST_SYNC_STATS_KEY),
            watchdog_last=from_iso(self._store.get(WATCHDOG_HEARTBEAT_KEY)),
            is_running=self.is_running(),
        )
