"""JSON-file state: key/value store with leases, settings, missing-SKU tracker."""

from stock_sync.state.settings_store import SettingsStore
from stock_sync.state.store import StateStore
from stock_sync.state.tracker import MissingSkuTracker

__all__ = ["StateStore", "SettingsStore", "MissingSkuTracker"]
