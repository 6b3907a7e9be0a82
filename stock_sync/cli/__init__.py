"""CLI commands: one module per mode (sync, config, license, logs, catalog, serve)."""

from typer import Typer

from stock_sync.cli import catalog_mode, config_mode, license_mode, logs_mode, serve_mode, sync_mode
from stock_sync.utils.tracing import init_tracing

init_tracing()

app = Typer(help="Stock sync from a remote CSV feed")
license_app = Typer(help="Manage the product license")
catalog_app = Typer(help="Inspect and seed the local catalog")
config_app = Typer(help="Show and change sync settings")


def register_commands() -> None:
    """Register all CLI commands on the global app."""
    app.command()(sync_mode.sync)
    app.command(name="test-connection")(sync_mode.test_connection)
    app.command()(sync_mode.preview)
    app.command()(sync_mode.status)
    app.command()(sync_mode.watchdog)
    app.command()(sync_mode.hidden)
    app.command()(config_mode.toggle)
    config_app.command(name="show")(config_mode.show)
    config_app.command(name="set")(config_mode.set_config)
    app.add_typer(config_app, name="config")
    license_app.command()(license_mode.activate)
    license_app.command()(license_mode.deactivate)
    license_app.command()(license_mode.check)
    license_app.command()(license_mode.show)
    app.add_typer(license_app, name="license")
    app.command()(logs_mode.logs)
    app.command()(logs_mode.stats)
    catalog_app.command(name="list")(catalog_mode.list_products)
    catalog_app.command(name="add")(catalog_mode.add_product)
    app.add_typer(catalog_app, name="catalog")
    app.command()(serve_mode.serve)


register_commands()
