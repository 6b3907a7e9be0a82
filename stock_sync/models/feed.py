"""Parsed feed models."""

from typing import NamedTuple

from pydantic import BaseModel


class FeedRow(NamedTuple):
    """One parsed data line: SKU and its clamped, non-negative quantity."""

    sku: str
    quantity: int


class FeedSnapshot(BaseModel):
    """SKU -> quantity mapping of one feed, plus where the key columns were found."""

    quantities: dict[str, int]
    headers: list[str]
    sku_index: int
    quantity_index: int
    delimiter: str

    def __len__(self) -> int:
        return len(self.quantities)

    def __contains__(self, sku: object) -> bool:
        return sku in self.quantities

    @property
    def skus(self) -> set[str]:
        return set(self.quantities)


class FeedPreview(BaseModel):
    """Header and first data rows of a feed, for column mapping before a run."""

    columns: list[str]
    sample: list[list[str]]
    delimiter: str
