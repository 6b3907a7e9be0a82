"""Catalog store protocol: the keyed product store the feed is reconciled against."""

from typing import Iterable, Optional, Protocol

from stock_sync.models.sync import ProductRef, Visibility


class CatalogStore(Protocol):
    """Keyed read/write access to catalog products.

    ``set_*`` calls stage a change on one product; ``save`` persists it.
    Only ``published`` and ``private`` products are visible to lookups.
    """

    def find_product_ids_by_sku(self, skus: Iterable[str]) -> dict[str, int]:
        """Bulk SKU -> product id lookup for one batch; unknown SKUs are absent."""
        ...

    def get_product(self, product_id: int) -> Optional[ProductRef]:
        """Current product state, or None if it no longer exists."""
        ...

    def all_skus(self) -> dict[str, int]:
        """Every non-empty SKU in the catalog with its product id."""
        ...

    def set_stock_quantity(self, product_id: int, quantity: int) -> None:
        ...

    def set_manage_stock(self, product_id: int, enabled: bool) -> None:
        ...

    def set_visibility(self, product_id: int, status: Visibility) -> None:
        """``private`` also hides the product from the catalog; ``published`` shows it again."""
        ...

    def save(self, product_id: int) -> None:
        ...

    def invalidate_stock_caches(self) -> None:
        ...
