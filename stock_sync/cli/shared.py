"""Shared CLI helpers: console, logger, service wiring, result formatting."""

from functools import lru_cache
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from stock_sync.models.license import LicenseResult
from stock_sync.models.sync import SyncResult
from stock_sync.service import StockSyncService, build_service
from stock_sync.utils.logger import get_logger

console = Console()
logger = get_logger("stock_sync.cli")


@lru_cache(maxsize=1)
def get_service() -> StockSyncService:
    """The service wired from config (state file + database from .env)."""
    return build_service()


def stats_table(stats: dict[str, Any], title: str = "Sync stats") -> Table:
    table = Table(title=title)
    table.add_column("Counter", style="cyan")
    table.add_column("Value", justify="right")
    for key, value in stats.items():
        table.add_row(key, str(value))
    return table


def print_result(result: SyncResult) -> None:
    """Print a SyncResult; exit with code 1 when it failed."""
    if not result.success:
        console.print(f"[red]{result.message}[/red] [dim]({result.error_code})[/dim]")
        raise typer.Exit(1)
    console.print(f"[green]{result.message}[/green]")
    if result.stats:
        console.print(stats_table(result.stats))


def print_license_result(result: LicenseResult) -> None:
    colour = "green" if result.success else "red"
    console.print(f"[{colour}]{result.message}[/{colour}]")
    console.print(f"  Status: {result.status.value}")
    if result.grace_days_remaining is not None:
        console.print(f"  Grace days remaining: {result.grace_days_remaining}")
    if not result.success:
        raise typer.Exit(1)
