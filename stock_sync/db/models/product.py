"""ORM model for catalog products (the stock the feed is reconciled against)."""

from typing import Optional

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from stock_sync.db.base import Base, TimestampMixin


class Product(Base, TimestampMixin):
    """One row per product, keyed for the feed by unique SKU."""

    __tablename__ = "products"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    sku: Mapped[str] = mapped_column(String(128), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    stock_quantity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    manage_stock: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # published | private
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="published", index=True)
    # visible | hidden
    catalog_visibility: Mapped[str] = mapped_column(String(16), nullable=False, default="visible")
