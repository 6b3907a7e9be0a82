"""Tests for the operator service: license gating, config, manual-run guards, wiring."""

import tempfile
import unittest
from pathlib import Path

import sys

# Allow importing stock_sync when running from project root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import httpx

from helpers import CannedFetcher, FrozenClock, InMemoryCatalog, license_transport, memory_session_scope
from stock_sync.license.client import LicenseApiClient
from stock_sync.scheduler.triggers import LICENSE_CHECK_TRIGGER, WATCHDOG_TRIGGER
from stock_sync.service import LICENSE_REQUIRED_MESSAGE, build_service

FEED_URL = "https://feeds.example.com/stock.csv"
VALID = httpx.Response(200, json={"data": {"valid": True, "activated": True}})


class ExplodingCatalog(InMemoryCatalog):
    def find_product_ids_by_sku(self, skus):
        raise RuntimeError("catalog offline")


def build(tmp: str, clock: FrozenClock, catalog=None, feed: str = "sku,quantity\nA,5\n", responses=None):
    responses = responses if responses is not None else {"activate": VALID, "validate": VALID}
    client = LicenseApiClient(
        base_url="https://licenses.example.com/api/v3",
        site_url="https://shop.example.com",
        transport=license_transport(responses),
    )
    return build_service(
        state_path=Path(tmp) / "state.json",
        session_scope=memory_session_scope(),
        fetcher=CannedFetcher(feed),
        license_client=client,
        catalog=catalog if catalog is not None else InMemoryCatalog.with_products(
            {"sku": "A", "stock_quantity": 1, "manage_stock": True}
        ),
        now=clock,
    )


class ServiceTestCase(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.clock = FrozenClock()
        self.service = build(self._tmp.name, self.clock)

    def tearDown(self):
        self._tmp.cleanup()

    def licensed(self):
        self.assertTrue(self.service.activate_license("ABCD-EFGH-IJKL").success)

    def configured(self):
        self.licensed()
        self.assertTrue(self.service.save_config(csv_url=FEED_URL, enabled=True).success)


class TestLicenseGating(ServiceTestCase):
    def test_config_and_preflight_need_a_license(self):
        for result in (
            self.service.save_config(csv_url=FEED_URL),
            self.service.test_connection(FEED_URL),
            self.service.preview_columns(FEED_URL),
            self.service.toggle_sync(True),
        ):
            self.assertFalse(result.success)
            self.assertEqual(result.message, LICENSE_REQUIRED_MESSAGE)

    def test_manual_sync_without_license_is_logged(self):
        result = self.service.run_manual_sync()
        self.assertEqual(result.error_code, "license_invalid")
        self.assertEqual(self.service.count_logs(type="sync", status="error"), 1)

    def test_activation_arms_system_triggers(self):
        self.licensed()
        triggers = self.service.scheduler.triggers
        self.assertIsNotNone(triggers.next_run_at(WATCHDOG_TRIGGER))
        self.assertIsNotNone(triggers.next_run_at(LICENSE_CHECK_TRIGGER))

    def test_license_info_masks_key(self):
        self.licensed()
        info = self.service.license_info()
        self.assertEqual(info.key, "ABCD******IJKL")
        self.assertTrue(info.is_valid)

    def test_deactivation_disables_sync(self):
        self.configured()
        self.service.deactivate_license()
        self.assertFalse(self.service.get_settings().enabled)
        self.assertIsNone(self.service.get_status().next_run)


class TestConfig(ServiceTestCase):
    def test_save_config_schedules(self):
        self.configured()
        status = self.service.get_status()
        self.assertTrue(status.enabled)
        self.assertIsNotNone(status.next_run)

    def test_save_config_rejects_unknown_interval(self):
        self.licensed()
        result = self.service.save_config(schedule_interval="fortnightly")
        self.assertFalse(result.success)
        self.assertEqual(result.error_code, "invalid_config")

    def test_disabling_unschedules(self):
        self.configured()
        self.service.save_config(enabled=False)
        self.assertIsNone(self.service.get_status().next_run)

    def test_toggle_requires_url(self):
        self.licensed()
        result = self.service.toggle_sync(True)
        self.assertEqual(result.message, "Please configure a CSV URL in settings first.")
        self.assertFalse(self.service.get_settings().enabled)

    def test_toggle_on_and_off(self):
        self.licensed()
        self.service.save_config(csv_url=FEED_URL)
        self.assertEqual(self.service.toggle_sync(True).message, "Sync enabled successfully.")
        self.assertIsNotNone(self.service.get_status().next_run)
        self.assertEqual(self.service.toggle_sync(False).message, "Sync disabled.")
        self.assertIsNone(self.service.get_status().next_run)


class TestManualSync(ServiceTestCase):
    def test_run_updates_catalog(self):
        self.configured()
        result = self.service.run_manual_sync()
        self.assertTrue(result.success)
        self.assertEqual(self.service.catalog.by_sku("A").stock_quantity, 5)
        self.assertIsNotNone(self.service.get_status().last_sync)
        self.assertFalse(self.service.scheduler.is_running())

    def test_cooldown_between_manual_runs(self):
        self.configured()
        self.service.run_manual_sync()
        self.clock.advance(seconds=10)
        limited = self.service.run_manual_sync()
        self.assertEqual(limited.error_code, "rate_limited")
        self.assertEqual(limited.data["wait_seconds"], 20)
        self.assertIn("Please wait 20 seconds", limited.message)

        self.clock.advance(seconds=21)
        self.assertTrue(self.service.run_manual_sync().success)

    def test_scheduled_runs_ignore_cooldown(self):
        self.configured()
        self.service.run_manual_sync()
        self.assertTrue(self.service.run_scheduled_sync().success)

    def test_busy_while_another_run_holds_the_lease(self):
        self.configured()
        self.service.scheduler.set_running(True)
        result = self.service.run_manual_sync()
        self.assertEqual(result.error_code, "busy")
        self.assertEqual(result.message, "A sync is already in progress.")
        self.assertEqual(self.service.run_scheduled_sync().error_code, "busy")

    def test_lease_released_after_unexpected_error(self):
        self.service = build(self._tmp.name, self.clock, catalog=ExplodingCatalog())
        self.configured()
        result = self.service.run_scheduled_sync()
        self.assertFalse(result.success)
        self.assertEqual(result.error_code, "unexpected_error")
        self.assertFalse(self.service.scheduler.is_running())
        self.assertEqual(self.service.get_logs(type="sync")[0].message, "Sync failed: catalog offline")


class TestHiddenProducts(ServiceTestCase):
    def test_private_policy_products_can_be_released(self):
        self.service = build(
            self._tmp.name,
            self.clock,
            catalog=InMemoryCatalog.with_products(
                {"sku": "A", "stock_quantity": 1, "manage_stock": True},
                {"sku": "GONE", "stock_quantity": 3, "manage_stock": True},
            ),
        )
        self.configured()
        self.service.save_config(missing_sku_action="private")
        self.assertTrue(self.service.run_manual_sync().success)
        self.assertEqual(self.service.hidden_products(), {"GONE": 2})

        result = self.service.clear_hidden_products()
        self.assertEqual(result.message, "Stopped tracking 1 hidden product(s).")
        self.assertEqual(self.service.hidden_products(), {})
        self.assertEqual(self.service.catalog.by_sku("GONE").status, "private")


class TestRunLogQueries(ServiceTestCase):
    def test_logs_and_stats(self):
        self.configured()
        self.service.run_manual_sync()
        self.assertEqual(self.service.count_logs(type="sync"), 1)
        entry = self.service.get_logs(type="sync")[0]
        self.assertEqual(self.service.get_log(entry.id).message, entry.message)
        self.assertEqual(self.service.get_stats().successful_syncs, 1)
        self.assertEqual(len(self.service.get_chart_data(3)), 3)
        self.service.clear_logs()
        self.assertEqual(self.service.count_logs(), 0)


if __name__ == "__main__":
    unittest.main()
