"""Reconciliation engine: fetch -> parse -> batched diff/update -> missing-SKU policy -> run log.

Abort-class failures (license, config, fetch, parse) end the run before any
catalog write and come back as a failed ``SyncResult``. Failures on single
products are per-entity results folded into the run summary; they never
abort the run.
"""

import time
from typing import Callable, Iterator, Optional

from opentelemetry.trace import SpanKind

from stock_sync.catalog.protocol import CatalogStore
from stock_sync.config import PREVIEW_TIMEOUT_SECONDS, SYNC_BATCH_SIZE
from stock_sync.db.repositories.protocol import RunLogStore
from stock_sync.errors import ConfigMissingError, LicenseInvalidError, SyncError
from stock_sync.feed.fetcher import FeedFetcher
from stock_sync.feed.parser import FeedParser
from stock_sync.models.feed import FeedSnapshot
from stock_sync.models.logs import LogEntryCreate
from stock_sync.models.settings import SyncSettings
from stock_sync.models.sync import EntityResult, Outcome, RunSummary, SyncResult, Trigger
from stock_sync.state.settings_store import SettingsStore
from stock_sync.state.tracker import MissingSkuTracker
from stock_sync.utils.logger import bind_context, get_logger, unbind_context
from stock_sync.utils.tracing import get_tracer

logger = get_logger("stock_sync.sync.engine")

SAMPLE_SIZE = 5


def chunked(items: dict[str, int], size: int) -> Iterator[dict[str, int]]:
    """Split a mapping into ordered chunks of at most ``size`` entries."""
    batch: dict[str, int] = {}
    for key, value in items.items():
        batch[key] = value
        if len(batch) >= size:
            yield batch
            batch = {}
    if batch:
        yield batch


class ReconciliationEngine:
    """Reconcile the feed against the catalog."""

    def __init__(
        self,
        catalog: CatalogStore,
        fetcher: FeedFetcher,
        settings: SettingsStore,
        tracker: MissingSkuTracker,
        run_log: RunLogStore,
        license_valid: Callable[[], bool],
        reschedule: Optional[Callable[[], object]] = None,
        parser: Optional[FeedParser] = None,
        batch_size: int = SYNC_BATCH_SIZE,
        clock: Callable[[], float] = time.time,
    ):
        self._catalog = catalog
        self._fetcher = fetcher
        self._settings = settings
        self._tracker = tracker
        self._run_log = run_log
        self._license_valid = license_valid
        self._reschedule = reschedule
        self._parser = parser or FeedParser()
        self._batch_size = batch_size
        self._clock = clock

    # Run

    def run(self, trigger: Trigger = "manual") -> SyncResult:
        summary = RunSummary(trigger=trigger)
        bind_context(sync_trigger=trigger)
        tracer = get_tracer()
        try:
            with tracer.start_as_current_span(
                "sync.run", kind=SpanKind.INTERNAL, attributes={"sync.trigger": trigger}
            ) as span:
                result = self._run(summary)
                span.set_attribute("sync.success", result.success)
                span.set_attribute("sync.updated", summary.updated)
                span.set_attribute("sync.errors", summary.errors)
                return result
        finally:
            unbind_context("sync_trigger")

    def _run(self, summary: RunSummary) -> SyncResult:
        if not self._license_valid():
            self._log_error(summary.trigger, "Invalid or expired license. Sync aborted.")
            error = LicenseInvalidError("Invalid or expired license.")
            return SyncResult.failure(error.code, error.message)

        settings = self._settings.load()
        if not settings.csv_url:
            error = ConfigMissingError("CSV URL is not configured.")
            self._log_error(summary.trigger, error.message)
            return SyncResult.failure(error.code, error.message)

        summary.start_time = self._clock()
        logger.info("sync.run.start", url=settings.csv_url, missing_sku_action=settings.missing_sku_action)

        try:
            snapshot = self._load_feed(settings)
        except SyncError as e:
            logger.warning("sync.run.aborted", code=e.code, error=e.message)
            self._log_run(summary, success=False, message=e.message)
            return SyncResult.failure(e.code, e.message, stats=summary.stats())

        summary.total_rows = len(snapshot)
        for batch in chunked(snapshot.quantities, self._batch_size):
            self._process_batch(batch, summary)

        if settings.missing_sku_action != "ignore":
            self._process_missing(snapshot, settings.missing_sku_action, summary)

        summary.end_time = self._clock()
        self._log_run(summary, success=True, message=f"Sync completed in {summary.duration} seconds")
        if self._reschedule is not None:
            # One run-log entry per run: a failed reschedule is only logged
            try:
                self._reschedule()
            except Exception as e:
                logger.exception("sync.run.reschedule_failed", error=str(e))

        message = (
            f"Sync completed. Updated: {summary.updated}, Skipped: {summary.skipped}, "
            f"Not found: {summary.not_found}, Errors: {summary.errors}"
        )
        logger.info(
            "sync.run.completed",
            processed=summary.processed,
            updated=summary.updated,
            skipped=summary.skipped,
            not_found=summary.not_found,
            errors=summary.errors,
            duration=summary.duration,
        )
        return SyncResult(success=True, message=message, stats=summary.stats())

    def _load_feed(self, settings: SyncSettings) -> FeedSnapshot:
        raw = self._fetcher.fetch(settings.csv_url, verify_ssl=not settings.disable_ssl)
        return self._parser.parse(raw, settings.sku_column, settings.quantity_column)

    # Batched update

    def _process_batch(self, batch: dict[str, int], summary: RunSummary) -> None:
        with get_tracer().start_as_current_span(
            "sync.batch", kind=SpanKind.INTERNAL, attributes={"sync.batch_size": len(batch)}
        ):
            product_ids = self._catalog.find_product_ids_by_sku(list(batch))
            for sku, quantity in batch.items():
                summary.processed += 1
                product_id = product_ids.get(sku)
                if product_id is None:
                    summary.record(EntityResult(sku=sku, outcome=Outcome.NOT_FOUND))
                    continue
                summary.record(self._update_product(sku, product_id, quantity))
            self._catalog.invalidate_stock_caches()

    def _update_product(self, sku: str, product_id: int, quantity: int) -> EntityResult:
        try:
            product = self._catalog.get_product(product_id)
            if product is None:
                return EntityResult(sku=sku, outcome=Outcome.NOT_FOUND)

            manage_enabled = False
            if not product.manage_stock:
                self._catalog.set_manage_stock(product_id, True)
                manage_enabled = True

            if product.stock_quantity == quantity:
                if manage_enabled:
                    self._catalog.save(product_id)
                return EntityResult(sku=sku, outcome=Outcome.SKIPPED)

            self._catalog.set_stock_quantity(product_id, quantity)
            self._catalog.save(product_id)
            return EntityResult(sku=sku, outcome=Outcome.UPDATED)
        except Exception as e:
            logger.warning("sync.product.error", sku=sku, product_id=product_id, error=str(e))
            return EntityResult(sku=sku, outcome=Outcome.ERROR, message=f"Error updating SKU {sku}: {e}")

    # Missing-SKU policy

    def _process_missing(self, snapshot: FeedSnapshot, action: str, summary: RunSummary) -> None:
        with get_tracer().start_as_current_span(
            "sync.missing_skus", kind=SpanKind.INTERNAL, attributes={"sync.missing_sku_action": action}
        ) as span:
            catalog_skus = self._catalog.all_skus()
            missing = {sku: pid for sku, pid in catalog_skus.items() if sku not in snapshot}
            span.set_attribute("sync.missing_count", len(missing))

            if action == "zero":
                for sku, product_id in missing.items():
                    summary.record(self._zero_missing(sku, product_id))
            elif action == "private":
                tracked = self._tracker.entries()
                # Restore runs to completion before anything is hidden.
                for result in self._restore_returned(snapshot, tracked):
                    summary.record(result)
                self._tracker.save(tracked)
                for result in self._hide_missing(missing, tracked):
                    summary.record(result)
                self._tracker.save(tracked)

            self._catalog.invalidate_stock_caches()

    def _zero_missing(self, sku: str, product_id: int) -> EntityResult:
        try:
            product = self._catalog.get_product(product_id)
            if product is None or not product.manage_stock or product.stock_quantity == 0:
                return EntityResult(sku=sku, outcome=Outcome.UNCHANGED)
            self._catalog.set_stock_quantity(product_id, 0)
            self._catalog.save(product_id)
            return EntityResult(sku=sku, outcome=Outcome.SET_ZERO)
        except Exception as e:
            return self._missing_error(sku, e)

    def _restore_returned(self, snapshot: FeedSnapshot, tracked: dict[str, int]) -> list[EntityResult]:
        """Publish tracked products whose SKU is back in the feed; mutates ``tracked``."""
        results: list[EntityResult] = []
        for sku in [s for s in tracked if s in snapshot]:
            product_id = tracked[sku]
            try:
                product = self._catalog.get_product(product_id)
                if product is None or product.status != "private":
                    # Gone, or made public by someone else: nothing left to restore.
                    del tracked[sku]
                    results.append(EntityResult(sku=sku, outcome=Outcome.UNCHANGED))
                    continue
                self._catalog.set_visibility(product_id, "published")
                self._catalog.save(product_id)
                del tracked[sku]
                results.append(EntityResult(sku=sku, outcome=Outcome.RESTORED))
            except Exception as e:
                results.append(self._missing_error(sku, e))
        return results

    def _hide_missing(self, missing: dict[str, int], tracked: dict[str, int]) -> list[EntityResult]:
        """Make missing, untracked, still-public products private; mutates ``tracked``."""
        results: list[EntityResult] = []
        for sku, product_id in missing.items():
            if sku in tracked:
                continue
            try:
                product = self._catalog.get_product(product_id)
                if product is None or product.status == "private":
                    continue
                self._catalog.set_visibility(product_id, "private")
                self._catalog.save(product_id)
                tracked[sku] = product_id
                results.append(EntityResult(sku=sku, outcome=Outcome.SET_PRIVATE))
            except Exception as e:
                results.append(self._missing_error(sku, e))
        return results

    def _missing_error(self, sku: str, error: Exception) -> EntityResult:
        logger.warning("sync.missing_sku.error", sku=sku, error=str(error))
        return EntityResult(sku=sku, outcome=Outcome.ERROR, message=f"Error handling missing SKU {sku}: {error}")

    # Run log

    def _log_error(self, trigger: str, message: str) -> None:
        logger.warning("sync.run.rejected", error=message)
        self._run_log.append(LogEntryCreate(type="sync", trigger=trigger, status="error", message=message))

    def _log_run(self, summary: RunSummary, success: bool, message: str) -> None:
        self._run_log.append(
            LogEntryCreate(
                type="sync",
                trigger=summary.trigger,
                status="success" if success else "error",
                message=message,
                stats=summary.stats(),
                errors=list(summary.error_messages),
                duration=summary.duration,
            )
        )

    # Pre-flight checks (no catalog writes)

    def test_connection(self, url: Optional[str] = None) -> SyncResult:
        settings = self._settings.load()
        url = (url or "").strip() or settings.csv_url
        if not url:
            return SyncResult.failure(ConfigMissingError.code, "CSV URL is empty.")
        try:
            raw = self._fetcher.fetch(url, verify_ssl=not settings.disable_ssl)
            snapshot = self._parser.parse(raw, settings.sku_column, settings.quantity_column)
        except SyncError as e:
            return SyncResult.failure(e.code, e.message)
        count = len(snapshot)
        sample = dict(list(snapshot.quantities.items())[:SAMPLE_SIZE])
        return SyncResult(
            success=True,
            message=f"Connection successful! Found {count} products in CSV.",
            data={"count": count, "sample": sample},
        )

    def preview_columns(self, url: Optional[str] = None) -> SyncResult:
        settings = self._settings.load()
        url = (url or "").strip() or settings.csv_url
        if not url:
            return SyncResult.failure(ConfigMissingError.code, "CSV URL is empty.")
        try:
            raw = self._fetcher.fetch(url, verify_ssl=not settings.disable_ssl, timeout=PREVIEW_TIMEOUT_SECONDS)
            preview = self._parser.preview(raw, SAMPLE_SIZE)
        except SyncError as e:
            return SyncResult.failure(e.code, e.message)
        return SyncResult(
            success=True,
            message=f"Found {len(preview.columns)} columns.",
            data=preview.model_dump(),
        )
