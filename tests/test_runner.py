"""Tests for the trigger runner: due triggers fire once, failures do not stop the loop."""

import asyncio
import tempfile
import unittest
from pathlib import Path

import sys

# Allow importing stock_sync when running from project root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from helpers import FrozenClock
from stock_sync.scheduler.runner import TriggerRunner
from stock_sync.scheduler.triggers import JsonTriggerStore
from stock_sync.state.store import StateStore


class TestTriggerRunner(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.clock = FrozenClock()
        self.triggers = JsonTriggerStore(StateStore(Path(self._tmp.name) / "state.json", now=self.clock))
        self.fired: list[str] = []

    def tearDown(self):
        self._tmp.cleanup()

    def runner(self, handlers) -> TriggerRunner:
        return TriggerRunner(self.triggers, handlers, now=self.clock, tick_seconds=0.01)

    def test_fires_due_triggers_once(self):
        self.triggers.schedule_recurring("sync", self.clock(), "hourly")
        self.triggers.schedule_recurring("watchdog", self.clock().replace(hour=13), "watchdog")
        runner = self.runner({"sync": lambda: self.fired.append("sync"), "watchdog": lambda: self.fired.append("w")})

        self.assertEqual(asyncio.run(runner.run_due()), ["sync"])
        self.assertEqual(asyncio.run(runner.run_due()), [])
        self.assertEqual(self.fired, ["sync"])

        self.clock.advance(hours=1)
        self.assertEqual(sorted(asyncio.run(runner.run_due())), ["sync", "watchdog"])

    def test_failing_handler_still_advances(self):
        def boom():
            raise RuntimeError("boom")

        self.triggers.schedule_recurring("sync", self.clock(), "hourly")
        runner = self.runner({"sync": boom})
        self.assertEqual(asyncio.run(runner.run_due()), ["sync"])
        self.assertGreater(self.triggers.next_run_at("sync"), self.clock())

    def test_unknown_trigger_is_skipped(self):
        self.triggers.schedule_recurring("legacy", self.clock(), "daily")
        self.assertEqual(asyncio.run(self.runner({}).run_due()), [])
        self.assertGreater(self.triggers.next_run_at("legacy"), self.clock())

    def test_run_forever_stops_on_cancel(self):
        self.triggers.schedule_recurring("sync", self.clock(), "hourly")
        runner = self.runner({"sync": lambda: self.fired.append("sync")})

        async def run():
            task = asyncio.create_task(runner.run_forever())
            await asyncio.sleep(0.05)
            task.cancel()
            with self.assertRaises(asyncio.CancelledError):
                await task

        asyncio.run(run())
        self.assertEqual(self.fired, ["sync"])


if __name__ == "__main__":
    unittest.main()
