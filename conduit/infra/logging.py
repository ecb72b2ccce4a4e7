"""structlog setup shared by every runtime component."""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _resolve_level(log_level: str) -> int:
    name = (log_level or "").upper()
    if name not in _LEVELS:
        name = "INFO"
    return getattr(logging, name)


def configure_logging(log_level: str = "INFO", json_format: bool = False) -> None:
    """Configure structlog for the process. Safe to call more than once."""
    level = _resolve_level(log_level)
    renderer: Any = (
        structlog.processors.JSONRenderer()
        if json_format
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None) -> Any:
    return structlog.get_logger(name)
