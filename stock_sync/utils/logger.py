"""structlog setup: coloured console for operators, JSONL file for the run history."""

from __future__ import annotations

import logging
from typing import Any

import structlog

from stock_sync.config import LOG_FILE, LOG_LEVEL, VERBOSE_LOGGING

_configured = False

# Per-request lines from the HTTP stack would drown out sync events
_QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def _level() -> int:
    if VERBOSE_LOGGING:
        return logging.DEBUG
    if LOG_LEVEL.isdigit():
        return int(LOG_LEVEL)
    return getattr(logging, LOG_LEVEL, logging.INFO)


def _handler(handler: logging.Handler, renderer: Any, pre_chain: list, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=pre_chain))
    return handler


def _configure_logging() -> None:
    global _configured
    if _configured:
        return

    level = _level()
    shared = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)
    root.addHandler(_handler(logging.StreamHandler(), structlog.dev.ConsoleRenderer(colors=True), shared, level))
    root.addHandler(
        _handler(logging.FileHandler(LOG_FILE, encoding="utf-8"), structlog.processors.JSONRenderer(), shared, level)
    )
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            *shared,
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )
    _configured = True


def get_logger(name: str = "stock_sync") -> structlog.stdlib.BoundLogger:
    """Module logger; configures logging on first use."""
    _configure_logging()
    return structlog.get_logger(name)


def bind_context(**context: Any) -> None:
    """Attach context (run id, trigger) to every following log line."""
    structlog.contextvars.bind_contextvars(**context)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
