"""Sync mode: manual run, pre-flight checks, schedule status and watchdog."""

from typing import Optional

import typer

from stock_sync.utils.logger import bind_context, clear_context

from .shared import console, get_service, logger, print_result


def sync() -> None:
    """Run a manual sync now and print the run summary."""
    log = logger.bind(command="sync")
    log.info("sync.start")
    bind_context(command="sync")
    try:
        result = get_service().run_manual_sync()
    finally:
        clear_context()
    log.info("sync.finished", success=result.success, code=result.error_code)
    print_result(result)


def test_connection(
    url: Optional[str] = typer.Option(None, "--url", "-u", help="Feed URL (defaults to the saved one)"),
) -> None:
    """Fetch and parse the feed without touching the catalog."""
    result = get_service().test_connection(url)
    if result.success:
        console.print(f"[green]{result.message}[/green]")
        for sku, quantity in result.data.get("sample", {}).items():
            console.print(f"  {sku}: {quantity}")
        return
    print_result(result)


def preview(
    url: Optional[str] = typer.Option(None, "--url", "-u", help="Feed URL (defaults to the saved one)"),
) -> None:
    """Show the feed's columns and first rows."""
    result = get_service().preview_columns(url)
    if not result.success:
        print_result(result)
        return

    from rich.table import Table

    columns = result.data["columns"]
    table = Table(title=f"Feed preview (delimiter: {result.data['delimiter']})")
    for column in columns:
        table.add_column(column)
    for row in result.data["sample"]:
        table.add_row(*(row + [""] * (len(columns) - len(row)))[: len(columns)])
    console.print(table)


def status() -> None:
    """Show schedule state: enabled, interval, next run, last sync."""
    info = get_service().get_status()
    console.print("\n[bold]Schedule[/bold]")
    console.print(f"  Enabled: {'yes' if info.enabled else 'no'}")
    console.print(f"  Interval: {info.interval_display}")
    if info.next_run is not None:
        console.print(f"  Next run: {info.next_run.isoformat()} ({info.next_run_human})")
    else:
        console.print("  Next run: [dim]not scheduled[/dim]")
    console.print(f"  Last sync: {info.last_sync.isoformat() if info.last_sync else '[dim]never[/dim]'}")
    console.print(f"  Running: {'yes' if info.is_running else 'no'}")
    if info.watchdog_last is not None:
        console.print(f"  Watchdog last check: {info.watchdog_last.isoformat()}")


def watchdog() -> None:
    """Run the watchdog check once."""
    action = get_service().watchdog_check()
    logger.info("watchdog.cli", action=action)
    console.print(f"[green]Watchdog: {action}[/green]" if action else "[dim]Watchdog: nothing to do.[/dim]")


def hidden(
    clear: bool = typer.Option(False, "--clear", help="Stop tracking; the products stay private"),
) -> None:
    """List products made private because their SKU left the feed."""
    service = get_service()
    if clear:
        print_result(service.clear_hidden_products())
        return
    entries = service.hidden_products()
    if not entries:
        console.print("[dim]No hidden products tracked.[/dim]")
        return
    for sku, product_id in sorted(entries.items()):
        console.print(f"  {sku}: product {product_id}")
