"""Catalog store protocol and its SQL implementation."""

from stock_sync.catalog.protocol import CatalogStore
from stock_sync.catalog.sql import SqlCatalog

__all__ = ["CatalogStore", "SqlCatalog"]
