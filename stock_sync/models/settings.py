"""Sync settings: one typed struct, defaulted once at load and validated at the boundary."""

from typing import Any, Literal

from pydantic import BaseModel, field_validator

MissingSkuAction = Literal["ignore", "zero", "private"]
MISSING_SKU_ACTIONS: tuple[str, ...] = ("ignore", "zero", "private")


class SyncSettings(BaseModel):
    """Operator-editable sync configuration."""

    csv_url: str = ""
    sku_column: str = "sku"
    quantity_column: str = "quantity"
    schedule_interval: str = "hourly"
    enabled: bool = False
    disable_ssl: bool = False
    missing_sku_action: MissingSkuAction = "ignore"

    @field_validator("csv_url", mode="before")
    @classmethod
    def _strip_url(cls, value: Any) -> str:
        return str(value or "").strip()

    @field_validator("sku_column", "quantity_column", mode="before")
    @classmethod
    def _column_name(cls, value: Any, info) -> str:
        name = str(value or "").strip()
        if not name:
            return "sku" if info.field_name == "sku_column" else "quantity"
        return name

    @field_validator("missing_sku_action", mode="before")
    @classmethod
    def _missing_action(cls, value: Any) -> str:
        action = str(value or "").strip().lower()
        return action if action in MISSING_SKU_ACTIONS else "ignore"
