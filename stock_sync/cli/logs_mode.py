"""Logs mode: list recent run log entries and aggregate stats."""

from typing import Optional

import typer
from rich.table import Table

from .shared import console, get_service, stats_table


def logs(
    type: Optional[str] = typer.Option(None, "--type", "-t", help="sync, watchdog or license"),
    status: Optional[str] = typer.Option(None, "--status", "-s", help="success, error or warning"),
    limit: int = typer.Option(20, "--limit", "-n", help="Entries to show"),
    clear: bool = typer.Option(False, "--clear", help="Delete all entries instead of listing"),
) -> None:
    """List run log entries, newest first."""
    service = get_service()
    if clear:
        service.clear_logs()
        console.print("[green]Logs cleared successfully.[/green]")
        return

    entries = service.get_logs(type=type, status=status, limit=limit)
    if not entries:
        console.print("[dim]No log entries.[/dim]")
        return
    table = Table(title=f"Run log ({service.count_logs(type=type, status=status)} total)")
    table.add_column("ID", justify="right")
    table.add_column("When")
    table.add_column("Type", style="cyan")
    table.add_column("Trigger")
    table.add_column("Status")
    table.add_column("Message")
    colours = {"success": "green", "error": "red", "warning": "yellow"}
    for entry in entries:
        colour = colours.get(entry.status, "white")
        table.add_row(
            str(entry.id),
            entry.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            entry.type,
            entry.trigger or "",
            f"[{colour}]{entry.status}[/{colour}]",
            entry.message,
        )
    console.print(table)


def stats(days: int = typer.Option(30, "--days", "-d", help="Window in days")) -> None:
    """Aggregate sync statistics over the last N days."""
    summary = get_service().get_stats(days)
    data = summary.model_dump(mode="json")
    data.pop("by_trigger", None)
    console.print(stats_table(data, title=f"Sync stats (last {days} days)"))
    for trigger, count in summary.by_trigger.items():
        console.print(f"  {trigger}: {count}")
