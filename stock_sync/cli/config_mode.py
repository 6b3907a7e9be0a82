"""Config mode: show and change sync settings, toggle scheduled sync."""

from typing import Optional

import typer

from stock_sync.scheduler.intervals import SYNC_INTERVALS

from .shared import console, get_service, logger, print_result


def show() -> None:
    """Print the saved sync settings."""
    settings = get_service().get_settings()
    for key, value in settings.model_dump().items():
        console.print(f"  {key}: {value}")


def set_config(
    csv_url: Optional[str] = typer.Option(None, "--csv-url", help="Feed URL"),
    sku_column: Optional[str] = typer.Option(None, "--sku-column", help="Header of the SKU column"),
    quantity_column: Optional[str] = typer.Option(None, "--quantity-column", help="Header of the quantity column"),
    interval: Optional[str] = typer.Option(
        None, "--interval", "-i", help=f"One of: {', '.join(SYNC_INTERVALS)}"
    ),
    enabled: Optional[bool] = typer.Option(None, "--enabled/--disabled", help="Scheduled sync on/off"),
    disable_ssl: Optional[bool] = typer.Option(None, "--disable-ssl/--verify-ssl", help="Skip TLS verification"),
    missing_sku_action: Optional[str] = typer.Option(
        None, "--missing-sku-action", "-m", help="ignore, zero or private"
    ),
) -> None:
    """Change settings; omitted options keep their current value."""
    log = logger.bind(command="config-set")
    result = get_service().save_config(
        csv_url=csv_url,
        sku_column=sku_column,
        quantity_column=quantity_column,
        schedule_interval=interval,
        enabled=enabled,
        disable_ssl=disable_ssl,
        missing_sku_action=missing_sku_action,
    )
    log.info("config.saved", success=result.success)
    print_result(result)


def toggle(
    enabled: bool = typer.Argument(..., help="true to enable scheduled sync, false to disable"),
) -> None:
    """Enable or disable scheduled sync."""
    print_result(get_service().toggle_sync(enabled))
