"""SKUs the engine made private because they vanished from the feed."""

from stock_sync.state.store import StateStore

TRACKER_KEY = "privatized_products"


class MissingSkuTracker:
    """Persisted SKU -> product_id map.

    An entry exists exactly while the engine is responsible for a product
    being private; it is removed when the SKU reappears and the product is
    restored (or turns out to be gone or already public).
    """

    def __init__(self, store: StateStore):
        self._store = store

    def entries(self) -> dict[str, int]:
        raw = self._store.get(TRACKER_KEY) or {}
        return {str(sku): int(product_id) for sku, product_id in raw.items()}

    def save(self, entries: dict[str, int]) -> None:
        self._store.set(TRACKER_KEY, dict(entries))

    def clear(self) -> None:
        self._store.delete(TRACKER_KEY)
