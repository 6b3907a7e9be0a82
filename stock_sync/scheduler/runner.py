"""Trigger runner: asyncio loop that fires due durable triggers."""

import asyncio
from typing import Any, Callable

from stock_sync.config import RUNNER_TICK_SECONDS
from stock_sync.scheduler.triggers import (
    LICENSE_CHECK_TRIGGER,
    SYNC_TRIGGER,
    WATCHDOG_TRIGGER,
    TriggerStore,
)
from stock_sync.state.store import Clock, utcnow
from stock_sync.utils.logger import get_logger

logger = get_logger("stock_sync.scheduler.runner")


class TriggerRunner:
    """Poll the trigger store every tick; advance each due trigger, then run its handler in a thread."""

    def __init__(
        self,
        triggers: TriggerStore,
        handlers: dict[str, Callable[[], Any]],
        now: Clock = utcnow,
        tick_seconds: float = RUNNER_TICK_SECONDS,
    ):
        self._triggers = triggers
        self._handlers = handlers
        self._now = now
        self._tick = tick_seconds

    @classmethod
    def for_service(cls, service, **kwargs: Any) -> "TriggerRunner":
        """Runner dispatching sync, watchdog and license-check triggers to the service."""
        handlers = {
            SYNC_TRIGGER: service.run_scheduled_sync,
            WATCHDOG_TRIGGER: service.watchdog_check,
            LICENSE_CHECK_TRIGGER: service.daily_license_check,
        }
        return cls(service.scheduler.triggers, handlers, now=service.scheduler.clock, **kwargs)

    async def run_due(self) -> list[str]:
        """Fire every due trigger once. Returns the names that were dispatched."""
        now = self._now()
        fired: list[str] = []
        for name in self._triggers.due(now):
            handler = self._handlers.get(name)
            # Advanced before dispatch: a failing handler still moves to its next occurrence.
            self._triggers.advance(name, now)
            if handler is None:
                logger.warning("runner.unknown_trigger", trigger=name)
                continue
            logger.info("runner.trigger.fired", trigger=name)
            try:
                await asyncio.to_thread(handler)
            except Exception as e:
                logger.exception("runner.trigger.error", trigger=name, error=str(e))
            fired.append(name)
        return fired

    async def run_forever(self) -> None:
        """Tick until cancelled."""
        logger.info("runner.started", tick_seconds=self._tick)
        try:
            while True:
                await self.run_due()
                await asyncio.sleep(self._tick)
        except asyncio.CancelledError:
            logger.info("runner.stopped")
            raise
