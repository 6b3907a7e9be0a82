"""Shared test doubles: frozen clock, in-memory catalog, canned feed fetcher, list run log."""

from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

import httpx

from stock_sync.db import make_engine, make_session_scope
from stock_sync.errors import FetchError
from stock_sync.models.logs import LogEntryCreate
from stock_sync.models.sync import ProductRef


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: Optional[datetime] = None):
        self.current = start or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


class InMemoryCatalog:
    """CatalogStore keeping products in a dict; changes are staged until save()."""

    def __init__(self, products: Iterable[ProductRef] = ()):
        self.products: dict[int, ProductRef] = {p.product_id: p for p in products}
        self.pending: dict[int, dict] = {}
        self.saves: list[int] = []
        self.fail_on_save: set[int] = set()

    @classmethod
    def with_products(cls, *rows: dict) -> "InMemoryCatalog":
        products = [ProductRef(product_id=i, **row) for i, row in enumerate(rows, start=1)]
        return cls(products)

    def by_sku(self, sku: str) -> ProductRef:
        return next(p for p in self.products.values() if p.sku == sku)

    def find_product_ids_by_sku(self, skus: Iterable[str]) -> dict[str, int]:
        wanted = set(skus)
        return {p.sku: p.product_id for p in self.products.values() if p.sku in wanted}

    def get_product(self, product_id: int) -> Optional[ProductRef]:
        return self.products.get(product_id)

    def all_skus(self) -> dict[str, int]:
        return {p.sku: p.product_id for p in self.products.values() if p.sku}

    def set_stock_quantity(self, product_id: int, quantity: int) -> None:
        self.pending.setdefault(product_id, {})["stock_quantity"] = quantity

    def set_manage_stock(self, product_id: int, enabled: bool) -> None:
        self.pending.setdefault(product_id, {})["manage_stock"] = enabled

    def set_visibility(self, product_id: int, status: str) -> None:
        changes = self.pending.setdefault(product_id, {})
        changes["status"] = status
        changes["catalog_visibility"] = "hidden" if status == "private" else "visible"

    def save(self, product_id: int) -> None:
        if product_id in self.fail_on_save:
            self.pending.pop(product_id, None)
            raise RuntimeError("database is locked")
        changes = self.pending.pop(product_id, {})
        self.products[product_id] = self.products[product_id].model_copy(update=changes)
        self.saves.append(product_id)

    def invalidate_stock_caches(self) -> None:
        pass


class CannedFetcher:
    """FeedFetcher stand-in returning a fixed body (or raising)."""

    def __init__(self, body: bytes | str = b"", error: Optional[Exception] = None):
        self.body = body.encode("utf-8") if isinstance(body, str) else body
        self.error = error
        self.calls: list[dict] = []

    def fetch(self, url: str, verify_ssl: bool = True, timeout: Optional[float] = None) -> bytes:
        self.calls.append({"url": url, "verify_ssl": verify_ssl, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.body


def failing_fetcher(status_code: int = 500) -> CannedFetcher:
    return CannedFetcher(
        error=FetchError(f"Failed to fetch CSV. HTTP status: {status_code}", status_code=status_code)
    )


class ListRunLog:
    """Run log double collecting appended entries."""

    def __init__(self):
        self.entries: list[LogEntryCreate] = []

    def append(self, entry: LogEntryCreate) -> int:
        self.entries.append(entry)
        return len(self.entries)

    def messages(self, type: Optional[str] = None) -> list[str]:
        return [e.message for e in self.entries if type is None or e.type == type]


def memory_session_scope():
    """Session scope over a fresh in-memory SQLite database."""
    return make_session_scope(make_engine("sqlite://"))


def license_transport(responses: dict[str, httpx.Response | Exception], calls: Optional[list] = None):
    """httpx.MockTransport answering license endpoints by path suffix (validate/activate/deactivate)."""

    def handler(request: httpx.Request) -> httpx.Response:
        endpoint = request.url.path.rsplit("/", 1)[-1]
        if calls is not None:
            calls.append(endpoint)
        response = responses.get(endpoint)
        if response is None:
            return httpx.Response(404, json={"message": "Not found"})
        if isinstance(response, Exception):
            raise response
        return response

    return httpx.MockTransport(handler)
