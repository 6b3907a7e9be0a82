"""CatalogStore over the ``products`` table."""

from typing import Any, Iterable, Optional

from sqlalchemy import select

from stock_sync.db import SessionScope, get_session
from stock_sync.db.models.product import Product
from stock_sync.models.sync import ProductRef, Visibility
from stock_sync.utils.logger import get_logger

logger = get_logger("stock_sync.catalog.sql")

LOOKUP_STATUSES = ("published", "private")


def _to_ref(row: Product) -> ProductRef:
    return ProductRef(
        product_id=row.id,
        sku=row.sku,
        stock_quantity=row.stock_quantity,
        manage_stock=row.manage_stock,
        status=row.status,
        catalog_visibility=row.catalog_visibility,
    )


class SqlCatalog:
    """Products table with staged per-product changes and a read-through cache."""

    def __init__(self, session_scope: SessionScope = get_session):
        self._session = session_scope
        self._pending: dict[int, dict[str, Any]] = {}
        self._cache: dict[int, ProductRef] = {}

    # Lookups

    def find_product_ids_by_sku(self, skus: Iterable[str]) -> dict[str, int]:
        wanted = [s for s in skus if s]
        if not wanted:
            return {}
        with self._session() as session:
            rows = session.execute(
                select(Product.sku, Product.id)
                .where(Product.sku.in_(wanted))
                .where(Product.status.in_(LOOKUP_STATUSES))
            ).all()
        return {sku: product_id for sku, product_id in rows}

    def get_product(self, product_id: int) -> Optional[ProductRef]:
        cached = self._cache.get(product_id)
        if cached is not None:
            return cached
        with self._session() as session:
            row = session.get(Product, product_id)
            if row is None:
                return None
            ref = _to_ref(row)
        self._cache[product_id] = ref
        return ref

    def all_skus(self) -> dict[str, int]:
        with self._session() as session:
            rows = session.execute(
                select(Product.sku, Product.id)
                .where(Product.sku != "")
                .where(Product.status.in_(LOOKUP_STATUSES))
            ).all()
        return {sku: product_id for sku, product_id in rows}

    # Staged writes

    def set_stock_quantity(self, product_id: int, quantity: int) -> None:
        self._pending.setdefault(product_id, {})["stock_quantity"] = quantity

    def set_manage_stock(self, product_id: int, enabled: bool) -> None:
        self._pending.setdefault(product_id, {})["manage_stock"] = enabled

    def set_visibility(self, product_id: int, status: Visibility) -> None:
        changes = self._pending.setdefault(product_id, {})
        changes["status"] = status
        changes["catalog_visibility"] = "hidden" if status == "private" else "visible"

    def save(self, product_id: int) -> None:
        changes = self._pending.pop(product_id, None)
        if not changes:
            return
        with self._session() as session:
            row = session.get(Product, product_id)
            if row is None:
                raise LookupError(f"Product {product_id} no longer exists")
            for field, value in changes.items():
                setattr(row, field, value)
        self._cache.pop(product_id, None)

    def invalidate_stock_caches(self) -> None:
        self._cache.clear()

    # Catalog administration (CLI seeding, listing)

    def add_product(
        self,
        sku: str,
        name: str = "",
        stock_quantity: Optional[int] = None,
        manage_stock: bool = False,
        status: Visibility = "published",
    ) -> ProductRef:
        with self._session() as session:
            row = Product(
                sku=sku,
                name=name,
                stock_quantity=stock_quantity,
                manage_stock=manage_stock,
                status=status,
                catalog_visibility="hidden" if status == "private" else "visible",
            )
            session.add(row)
            session.flush()
            ref = _to_ref(row)
        logger.info("catalog.product_added", sku=sku, product_id=ref.product_id)
        return ref

    def list_products(self, limit: int = 100, offset: int = 0) -> list[ProductRef]:
        with self._session() as session:
            rows = session.scalars(
                select(Product).order_by(Product.sku).limit(limit).offset(offset)
            ).all()
            return [_to_ref(row) for row in rows]

    def get_by_sku(self, sku: str) -> Optional[ProductRef]:
        with self._session() as session:
            row = session.scalars(select(Product).where(Product.sku == sku)).first()
            return _to_ref(row) if row is not None else None
