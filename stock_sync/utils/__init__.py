"""Utility modules."""

from stock_sync.utils.logger import bind_context, clear_context, get_logger, unbind_context
from stock_sync.utils.tracing import get_tracer, init_tracing, shutdown_tracing

__all__ = [
    "bind_context",
    "clear_context",
    "get_logger",
    "unbind_context",
    "get_tracer",
    "init_tracing",
    "shutdown_tracing",
]
