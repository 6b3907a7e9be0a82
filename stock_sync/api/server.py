"""FastAPI app: operator HTTP API plus the trigger runner as a lifespan task."""

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from stock_sync.api.deps import OperationFailedError
from stock_sync.api.license_routes import router as license_router
from stock_sync.api.log_routes import router as log_router
from stock_sync.api.sync_routes import router as sync_router
from stock_sync.scheduler.runner import TriggerRunner
from stock_sync.service import StockSyncService, build_service
from stock_sync.utils.logger import get_logger

logger = get_logger("stock_sync.api.server")


async def _shutdown_runner(app: FastAPI, timeout: float = 10.0) -> None:
    """Cancel the runner task and wait for it to finish."""
    task: Optional[asyncio.Task] = getattr(app.state, "runner_task", None)
    if task is None:
        return
    task.cancel()
    try:
        await asyncio.wait_for(asyncio.gather(task, return_exceptions=True), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("api.lifespan.shutdown_timeout", timeout=timeout)
    app.state.runner_task = None


@asynccontextmanager
async def _lifespan(app: FastAPI, start_runner: bool = True):
    """Arm the system triggers and start the runner loop in the server's event loop."""
    service: StockSyncService = app.state.service
    app.state.runner_task = None
    if start_runner:
        service.scheduler.ensure_system_triggers()
        runner = TriggerRunner.for_service(service)
        app.state.runner_task = asyncio.create_task(runner.run_forever())
        logger.info("api.lifespan.runner_started")

    yield

    await _shutdown_runner(app)


def create_app(service: Optional[StockSyncService] = None, start_runner: bool = True) -> FastAPI:
    """Create the FastAPI app around a service (built from config when not given)."""
    app = FastAPI(
        title="Stock Sync",
        version="0.1.0",
        lifespan=lambda app: _lifespan(app, start_runner=start_runner),
    )
    app.state.service = service or build_service()

    @app.exception_handler(OperationFailedError)
    def operation_failed_handler(_: Request, exc: OperationFailedError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    def request_validation_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"code": "validation_error", "message": "Invalid request", "details": exc.errors()},
        )

    app.include_router(sync_router)
    app.include_router(license_router)
    app.include_router(log_router)

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    return app
