"""Catalog mode: list and seed products in the local catalog."""

from typing import Optional

import typer
from rich.table import Table

from stock_sync.catalog.sql import SqlCatalog

from .shared import console, get_service, logger


def _catalog() -> SqlCatalog:
    catalog = get_service().catalog
    if not isinstance(catalog, SqlCatalog):
        console.print("[red]The configured catalog does not support administration.[/red]")
        raise typer.Exit(1)
    return catalog


def list_products(
    limit: int = typer.Option(100, "--limit", "-n"),
    offset: int = typer.Option(0, "--offset"),
) -> None:
    """List products with their stock and visibility."""
    products = _catalog().list_products(limit=limit, offset=offset)
    table = Table(title="Catalog")
    table.add_column("ID", justify="right")
    table.add_column("SKU", style="cyan")
    table.add_column("Stock", justify="right")
    table.add_column("Managed", justify="center")
    table.add_column("Status")
    for product in products:
        table.add_row(
            str(product.product_id),
            product.sku,
            "" if product.stock_quantity is None else str(product.stock_quantity),
            "yes" if product.manage_stock else "no",
            product.status,
        )
    console.print(table)


def add_product(
    sku: str = typer.Argument(..., help="Product SKU"),
    name: str = typer.Option("", "--name"),
    stock: Optional[int] = typer.Option(None, "--stock", help="Initial stock quantity"),
    manage_stock: bool = typer.Option(False, "--manage-stock/--no-manage-stock"),
    private: bool = typer.Option(False, "--private", help="Create as private"),
) -> None:
    """Add a product to the local catalog."""
    catalog = _catalog()
    if catalog.get_by_sku(sku) is not None:
        console.print(f"[red]SKU {sku} already exists.[/red]")
        raise typer.Exit(1)
    product = catalog.add_product(
        sku,
        name=name,
        stock_quantity=stock,
        manage_stock=manage_stock,
        status="private" if private else "published",
    )
    logger.info("catalog.cli.added", sku=sku, product_id=product.product_id)
    console.print(f"[green]Added {sku} (id {product.product_id}).[/green]")
