"""Durable recurring triggers: "run at or after T, repeating every interval"."""

from datetime import datetime, timedelta
from typing import Optional, Protocol

from stock_sync.scheduler.intervals import interval_seconds
from stock_sync.state.store import StateStore, from_iso, to_iso

TRIGGERS_KEY = "triggers"

SYNC_TRIGGER = "sync"
WATCHDOG_TRIGGER = "watchdog"
LICENSE_CHECK_TRIGGER = "license_check"


class TriggerStore(Protocol):
    """Durable named recurring triggers."""

    def schedule_recurring(self, name: str, first_run_at: datetime, interval_key: str) -> None:
        ...

    def clear(self, name: str) -> None:
        ...

    def next_run_at(self, name: str) -> Optional[datetime]:
        ...

    def interval_of(self, name: str) -> Optional[str]:
        ...

    def due(self, now: datetime) -> list[str]:
        """Names whose next run is at or before ``now``."""
        ...

    def advance(self, name: str, now: datetime) -> Optional[datetime]:
        """Move a fired trigger to its next occurrence; returns it."""
        ...


class JsonTriggerStore:
    """TriggerStore kept in the JSON state file under one key."""

    def __init__(self, store: StateStore):
        self._store = store

    def _all(self) -> dict[str, dict[str, str]]:
        return dict(self._store.get(TRIGGERS_KEY) or {})

    def _write(self, triggers: dict[str, dict[str, str]]) -> None:
        self._store.set(TRIGGERS_KEY, triggers)

    def schedule_recurring(self, name: str, first_run_at: datetime, interval_key: str) -> None:
        triggers = self._all()
        triggers[name] = {"next_run_at": to_iso(first_run_at), "interval": interval_key}
        self._write(triggers)

    def clear(self, name: str) -> None:
        triggers = self._all()
        if name in triggers:
            del triggers[name]
            self._write(triggers)

    def next_run_at(self, name: str) -> Optional[datetime]:
        trigger = self._all().get(name)
        return from_iso(trigger.get("next_run_at")) if trigger else None

    def interval_of(self, name: str) -> Optional[str]:
        trigger = self._all().get(name)
        return trigger.get("interval") if trigger else None

    def due(self, now: datetime) -> list[str]:
        due: list[str] = []
        for name, trigger in self._all().items():
            next_run = from_iso(trigger.get("next_run_at"))
            if next_run is not None and next_run <= now:
                due.append(name)
        return due

    def advance(self, name: str, now: datetime) -> Optional[datetime]:
        triggers = self._all()
        trigger = triggers.get(name)
        if not trigger:
            return None
        step = timedelta(seconds=interval_seconds(trigger.get("interval", "")))
        previous = from_iso(trigger.get("next_run_at")) or now
        next_run = previous + step
        if next_run <= now:
            # missed occurrences are not replayed
            next_run = now + step
        trigger["next_run_at"] = to_iso(next_run)
        triggers[name] = trigger
        self._write(triggers)
        return next_run
