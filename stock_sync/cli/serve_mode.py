"""Serve mode: run the HTTP API with the trigger runner in its event loop."""

import sys

import typer
import uvicorn

from stock_sync.api.server import create_app
from stock_sync.config import API_HOST, API_PORT
from stock_sync.db import init_db

from .shared import console, get_service, logger


def serve(
    port: int = typer.Option(API_PORT, "--port", "-p", help="Port for the API server"),
    host: str = typer.Option(API_HOST, "--host", "-h", help="Bind host"),
    no_runner: bool = typer.Option(False, "--no-runner", help="Serve the API without firing scheduled triggers"),
) -> None:
    """Start the API server; scheduled sync, watchdog and license checks run in-process."""
    init_db()
    log = logger.bind(command="serve", port=port)
    log.info("serve.start", runner=not no_runner)

    app = create_app(service=get_service(), start_runner=not no_runner)

    console.print(f"[green]Starting API server on http://{host}:{port}[/green]")
    console.print("[dim]Endpoints: /sync/*, /settings, /status, /license/*, /logs/*, GET /health[/dim]")
    try:
        uvicorn.run(
            app,
            host=host,
            port=port,
            log_level="info",
            timeout_graceful_shutdown=15,
        )
    except KeyboardInterrupt:
        console.print("\n[dim]Shutting down...[/dim]")
        sys.exit(0)
