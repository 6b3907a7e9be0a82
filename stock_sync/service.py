"""Operator surface over the engine, scheduler and license guard.

The CLI, the HTTP API and the trigger runner all go through StockSyncService;
``build_service()`` is the one place where components are wired together.
"""

from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from stock_sync.catalog.protocol import CatalogStore
from stock_sync.catalog.sql import SqlCatalog
from stock_sync.config import MANUAL_SYNC_COOLDOWN_SECONDS, STATE_PATH
from stock_sync.db import SessionScope, get_session
from stock_sync.db.repositories.protocol import RunLogStore
from stock_sync.db.repositories.run_log_repo import SqlRunLog
from stock_sync.errors import LicenseInvalidError, RateLimitedError, SyncBusyError
from stock_sync.feed.fetcher import FeedFetcher
from stock_sync.license.client import LicenseApiClient
from stock_sync.license.guard import LicenseGuard
from stock_sync.models.license import LicenseInfo, LicenseResult, mask_key
from stock_sync.models.logs import ChartPoint, LogEntry, LogEntryCreate, SyncStats
from stock_sync.models.settings import SyncSettings
from stock_sync.models.sync import ScheduleStatus, SyncResult, Trigger
from stock_sync.scheduler.scheduler import Scheduler
from stock_sync.scheduler.triggers import JsonTriggerStore
from stock_sync.state.settings_store import SettingsStore
from stock_sync.state.store import Clock, StateStore, from_iso, to_iso, utcnow
from stock_sync.state.tracker import MissingSkuTracker
from stock_sync.sync.engine import ReconciliationEngine
from stock_sync.utils.logger import bind_context, get_logger, unbind_context

logger = get_logger("stock_sync.service")

LAST_MANUAL_SYNC_KEY = "last_manual_sync_at"
LICENSE_REQUIRED_MESSAGE = "Please activate a valid license first."


class StockSyncService:
    """Every operator action, returning structured results instead of raising."""

    def __init__(
        self,
        engine: ReconciliationEngine,
        scheduler: Scheduler,
        license_guard: LicenseGuard,
        settings: SettingsStore,
        run_log: RunLogStore,
        store: StateStore,
        catalog: Optional[CatalogStore] = None,
        tracker: Optional[MissingSkuTracker] = None,
        now: Clock = utcnow,
        manual_cooldown_seconds: int = MANUAL_SYNC_COOLDOWN_SECONDS,
    ):
        self.engine = engine
        self.scheduler = scheduler
        self.license = license_guard
        self.settings = settings
        self.run_log = run_log
        self.store = store
        self.catalog = catalog
        self.tracker = tracker or MissingSkuTracker(store)
        self._now = now
        self._cooldown = manual_cooldown_seconds

    # Sync

    def _cooldown_remaining(self) -> int:
        last = from_iso(self.store.get(LAST_MANUAL_SYNC_KEY))
        if last is None:
            return 0
        elapsed = (self._now() - last).total_seconds()
        return max(0, int(self._cooldown - elapsed))

    def run_manual_sync(self) -> SyncResult:
        if self.scheduler.is_running():
            busy = SyncBusyError("A sync is already in progress.")
            return SyncResult.failure(busy.code, busy.message)

        wait = self._cooldown_remaining()
        if wait > 0:
            limited = RateLimitedError(wait)
            return SyncResult.failure(limited.code, limited.message, data={"wait_seconds": wait})
        self.store.set(LAST_MANUAL_SYNC_KEY, to_iso(self._now()))

        return self._run_leased("manual")

    def run_scheduled_sync(self) -> SyncResult:
        return self._run_leased("scheduled")

    def _run_leased(self, trigger: Trigger) -> SyncResult:
        bind_context(run_id=f"{trigger}-{int(self._now().timestamp())}")
        try:
            with self.scheduler.running():
                return self.engine.run(trigger)
        except SyncBusyError as e:
            logger.warning("service.sync.busy", trigger=trigger)
            return SyncResult.failure(e.code, e.message)
        except Exception as e:
            logger.exception("service.sync.unexpected_error", trigger=trigger, error=str(e))
            message = f"Sync failed: {str(e) or type(e).__name__}"
            self.run_log.append(LogEntryCreate(type="sync", trigger=trigger, status="error", message=message))
            return SyncResult.failure("unexpected_error", message)
        finally:
            unbind_context("run_id")

    def _license_failure(self) -> Optional[SyncResult]:
        if self.license.is_valid():
            return None
        return SyncResult.failure(LicenseInvalidError.code, LICENSE_REQUIRED_MESSAGE)

    def test_connection(self, url: Optional[str] = None) -> SyncResult:
        return self._license_failure() or self.engine.test_connection(url)

    def preview_columns(self, url: Optional[str] = None) -> SyncResult:
        return self._license_failure() or self.engine.preview_columns(url)

    # Settings and schedule

    def get_settings(self) -> SyncSettings:
        return self.settings.load()

    def save_config(self, **changes: Any) -> SyncResult:
        """Merge, validate and persist settings; schedule when enabled with a feed URL."""
        failure = self._license_failure()
        if failure is not None:
            return failure
        try:
            saved = self.settings.update(**changes)
        except (ValidationError, ValueError) as e:
            return SyncResult.failure("invalid_config", str(e))

        if saved.enabled and saved.csv_url:
            self.scheduler.schedule(saved.schedule_interval)
        else:
            self.scheduler.unschedule()
        logger.info("service.settings.saved", enabled=saved.enabled, interval=saved.schedule_interval)
        return SyncResult(success=True, message="Settings saved successfully.", data=saved.model_dump())

    def toggle_sync(self, enabled: bool) -> SyncResult:
        failure = self._license_failure()
        if failure is not None:
            return failure
        if enabled:
            if not self.settings.load().csv_url:
                self.settings.update(enabled=False)
                return SyncResult.failure("config_missing", "Please configure a CSV URL in settings first.")
            self.settings.update(enabled=True)
            self.scheduler.schedule()
            return SyncResult(success=True, message="Sync enabled successfully.", data={"enabled": True})
        self.scheduler.disable_sync()
        return SyncResult(success=True, message="Sync disabled.", data={"enabled": False})

    def get_status(self) -> ScheduleStatus:
        return self.scheduler.get_status()

    # Products hidden by the private policy

    def hidden_products(self) -> dict[str, int]:
        return self.tracker.entries()

    def clear_hidden_products(self) -> SyncResult:
        """Forget the hidden-product list; those products stay private and are no longer restored."""
        released = self.tracker.entries()
        self.tracker.clear()
        logger.info("service.tracker.cleared", count=len(released))
        return SyncResult(
            success=True,
            message=f"Stopped tracking {len(released)} hidden product(s).",
            data={"skus": sorted(released)},
        )

    def watchdog_check(self) -> Optional[str]:
        return self.scheduler.watchdog_check()

    # License

    def activate_license(self, license_key: str) -> LicenseResult:
        result = self.license.activate(license_key)
        if result.success:
            self.scheduler.ensure_system_triggers()
        return result

    def deactivate_license(self) -> LicenseResult:
        result = self.license.deactivate()
        self.scheduler.disable_sync()
        return result

    def check_license(self) -> LicenseResult:
        return self.license.check()

    def daily_license_check(self) -> Optional[LicenseResult]:
        return self.license.daily_check(self.scheduler)

    def license_info(self) -> LicenseInfo:
        state = self.license.state
        return LicenseInfo(
            key=mask_key(state.key),
            status=state.status,
            is_valid=self.license.is_valid(),
            data=state.data,
            last_check_at=state.last_check_at,
            grace_period_started_at=state.grace_period_started_at,
            grace_days_remaining=self.license.grace_days_remaining(),
            remaining_days=self.license.remaining_days(),
            is_expired=self.license.is_expired(),
        )

    # Run log

    def get_logs(
        self,
        type: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[LogEntry]:
        return self.run_log.query_recent(type=type, status=status, limit=limit, offset=offset)

    def count_logs(self, type: Optional[str] = None, status: Optional[str] = None) -> int:
        return self.run_log.count(type=type, status=status)

    def get_log(self, entry_id: int) -> Optional[LogEntry]:
        return self.run_log.get_by_id(entry_id)

    def clear_logs(self) -> None:
        self.run_log.clear()

    def get_stats(self, days: int = 30) -> SyncStats:
        return self.run_log.get_stats(days)

    def get_chart_data(self, days: int = 14) -> list[ChartPoint]:
        return self.run_log.get_chart_data(days)


def build_service(
    state_path: str | Path = STATE_PATH,
    session_scope: SessionScope = get_session,
    fetcher: Optional[FeedFetcher] = None,
    license_client: Optional[LicenseApiClient] = None,
    catalog: Optional[CatalogStore] = None,
    now: Clock = utcnow,
) -> StockSyncService:
    """Wire every component; the only place dependencies are assembled."""
    store = StateStore(state_path, now=now)
    settings = SettingsStore(store)
    run_log = SqlRunLog(session_scope, state=store, now=now)
    catalog = catalog if catalog is not None else SqlCatalog(session_scope)
    guard = LicenseGuard(license_client or LicenseApiClient(), store, run_log, now=now)
    scheduler = Scheduler(
        JsonTriggerStore(store),
        settings,
        store,
        run_log,
        license_valid=guard.is_valid,
        now=now,
    )
    tracker = MissingSkuTracker(store)
    engine = ReconciliationEngine(
        catalog=catalog,
        fetcher=fetcher or FeedFetcher(),
        settings=settings,
        tracker=tracker,
        run_log=run_log,
        license_valid=guard.is_valid,
        reschedule=scheduler.reschedule,
    )
    return StockSyncService(
        engine=engine,
        scheduler=scheduler,
        license_guard=guard,
        settings=settings,
        run_log=run_log,
        store=store,
        catalog=catalog,
        tracker=tracker,
        now=now,
    )
