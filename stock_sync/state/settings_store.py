"""Persisted sync settings."""

from typing import Any

from pydantic import ValidationError

from stock_sync.models.settings import SyncSettings
from stock_sync.scheduler.intervals import DEFAULT_INTERVAL, is_sync_interval
from stock_sync.state.store import StateStore
from stock_sync.utils.logger import get_logger

logger = get_logger("stock_sync.state.settings")

SETTINGS_KEY = "settings"


class SettingsStore:
    """Load/save ``SyncSettings`` under one state key.

    Loading never fails: unreadable or unknown values fall back to defaults.
    Saving rejects an unknown schedule interval.
    """

    def __init__(self, store: StateStore):
        self._store = store

    def load(self) -> SyncSettings:
        raw = self._store.get(SETTINGS_KEY) or {}
        try:
            settings = SyncSettings.model_validate(raw)
        except ValidationError as e:
            logger.warning("settings.load_invalid", error=str(e))
            settings = SyncSettings()
        if not is_sync_interval(settings.schedule_interval):
            settings = settings.model_copy(update={"schedule_interval": DEFAULT_INTERVAL})
        return settings

    def save(self, settings: SyncSettings) -> SyncSettings:
        if not is_sync_interval(settings.schedule_interval):
            raise ValueError(f"Unknown schedule interval: {settings.schedule_interval}")
        self._store.set(SETTINGS_KEY, settings.model_dump())
        return settings

    def update(self, **changes: Any) -> SyncSettings:
        """Merge changes over the current settings, validate and save."""
        current = self.load().model_dump()
        current.update({k: v for k, v in changes.items() if v is not None})
        return self.save(SyncSettings.model_validate(current))
