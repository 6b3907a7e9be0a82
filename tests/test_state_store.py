"""Tests for the JSON state store, leases, settings and the missing-SKU tracker."""

import json
import multiprocessing
import tempfile
import unittest
from pathlib import Path

import sys

# Allow importing stock_sync when running from project root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from helpers import FrozenClock
from stock_sync.state.settings_store import SettingsStore
from stock_sync.state.store import StateStore, from_iso, to_iso
from stock_sync.state.tracker import MissingSkuTracker


class StoreTestCase(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "state.json"
        self.clock = FrozenClock()
        self.store = StateStore(self.path, now=self.clock)

    def tearDown(self):
        self._tmp.cleanup()


class TestStateStore(StoreTestCase):
    def test_values_survive_new_instance(self):
        self.store.set("a", {"b": 1})
        self.store.update({"c": 2, "d": [1, 2]})
        reopened = StateStore(self.path)
        self.assertEqual(reopened.get("a"), {"b": 1})
        self.assertEqual(reopened.get("d"), [1, 2])
        self.assertEqual(reopened.get("missing", "default"), "default")

    def test_delete(self):
        self.store.set("a", 1)
        self.store.delete("a")
        self.store.delete("never-set")
        self.assertIsNone(self.store.get("a"))

    def test_corrupt_file_reads_as_empty(self):
        self.path.write_text("{not json", encoding="utf-8")
        self.assertIsNone(self.store.get("a"))
        self.store.set("a", 1)
        self.assertEqual(self.store.get("a"), 1)

    def test_lease_blocks_until_released(self):
        self.assertTrue(self.store.acquire_lease("run", 60))
        self.assertTrue(self.store.has_lease("run"))
        self.assertFalse(self.store.acquire_lease("run", 60))
        self.store.release_lease("run")
        self.assertFalse(self.store.has_lease("run"))
        self.assertTrue(self.store.acquire_lease("run", 60))

    def test_lease_expires(self):
        self.store.acquire_lease("run", 1800)
        self.clock.advance(minutes=29)
        self.assertTrue(self.store.has_lease("run"))
        self.clock.advance(minutes=2)
        self.assertFalse(self.store.has_lease("run"))
        self.assertTrue(self.store.acquire_lease("run", 1800))

    def test_set_lease_refreshes(self):
        self.store.set_lease("run", 60)
        self.clock.advance(seconds=50)
        self.store.set_lease("run", 60)
        self.clock.advance(seconds=50)
        self.assertTrue(self.store.has_lease("run"))


def _race_for_lease(path, barrier, results):
    barrier.wait()
    results.put(StateStore(path).acquire_lease("sync_running", 1800))


def _write_keys(path, prefix, count, barrier):
    barrier.wait()
    store = StateStore(path)
    for i in range(count):
        store.set(f"{prefix}-{i}", i)


@unittest.skipUnless("fork" in multiprocessing.get_all_start_methods(), "needs fork")
class TestCrossProcess(StoreTestCase):
    """Separate processes (CLI and server) share one state file."""

    workers = 4

    def _run(self, target, args_for, results=None):
        ctx = multiprocessing.get_context("fork")
        barrier = ctx.Barrier(self.workers)
        procs = [ctx.Process(target=target, args=args_for(n, barrier)) for n in range(self.workers)]
        for proc in procs:
            proc.start()
        # drain before joining so no child blocks on a full pipe
        collected = [results.get(timeout=30) for _ in procs] if results is not None else []
        for proc in procs:
            proc.join(timeout=60)
            self.assertEqual(proc.exitcode, 0)
        return collected

    def test_only_one_process_acquires_the_lease(self):
        ctx = multiprocessing.get_context("fork")
        for round_no in range(10):
            path = Path(self._tmp.name) / f"lease-{round_no}.json"
            results = ctx.Queue()
            won = self._run(_race_for_lease, lambda n, barrier: (path, barrier, results), results)
            self.assertEqual(won.count(True), 1)

    def test_concurrent_writers_keep_every_key(self):
        self._run(_write_keys, lambda n, barrier: (self.path, f"p{n}", 50, barrier))
        data = json.loads(self.path.read_text(encoding="utf-8"))
        self.assertEqual(len(data), self.workers * 50)
        self.assertEqual(data["p3-49"], 49)
        self.assertEqual(list(self.path.parent.glob("*.tmp")), [])


class TestIsoHelpers(unittest.TestCase):
    def test_round_trip_keeps_utc(self):
        now = FrozenClock()()
        self.assertEqual(to_iso(now), "2024-05-01T12:00:00Z")
        self.assertEqual(from_iso(to_iso(now)), now)

    def test_naive_and_garbage(self):
        self.assertIsNotNone(from_iso("2024-05-01T12:00:00").tzinfo)
        self.assertIsNone(from_iso("yesterday"))
        self.assertIsNone(from_iso(None))


class TestSettingsStore(StoreTestCase):
    def test_defaults(self):
        settings = SettingsStore(self.store).load()
        self.assertEqual(settings.csv_url, "")
        self.assertEqual((settings.sku_column, settings.quantity_column), ("sku", "quantity"))
        self.assertEqual(settings.schedule_interval, "hourly")
        self.assertFalse(settings.enabled)
        self.assertEqual(settings.missing_sku_action, "ignore")

    def test_update_merges_and_normalizes(self):
        store = SettingsStore(self.store)
        store.update(csv_url=" https://feeds.example.com/a.csv ", sku_column="  ", missing_sku_action="bogus")
        store.update(enabled=True, quantity_column=None)
        settings = store.load()
        self.assertEqual(settings.csv_url, "https://feeds.example.com/a.csv")
        self.assertEqual(settings.sku_column, "sku")
        self.assertEqual(settings.missing_sku_action, "ignore")
        self.assertTrue(settings.enabled)

    def test_unknown_interval_rejected_on_save(self):
        with self.assertRaises(ValueError):
            SettingsStore(self.store).update(schedule_interval="fortnightly")

    def test_unknown_stored_interval_falls_back(self):
        self.store.set("settings", {"schedule_interval": "fortnightly", "csv_url": "x"})
        settings = SettingsStore(self.store).load()
        self.assertEqual(settings.schedule_interval, "hourly")
        self.assertEqual(settings.csv_url, "x")


class TestMissingSkuTracker(StoreTestCase):
    def test_entries_persist(self):
        tracker = MissingSkuTracker(self.store)
        self.assertEqual(tracker.entries(), {})
        tracker.save({"Y": 2})
        self.assertEqual(MissingSkuTracker(StateStore(self.path)).entries(), {"Y": 2})
        tracker.clear()
        self.assertEqual(tracker.entries(), {})


if __name__ == "__main__":
    unittest.main()
