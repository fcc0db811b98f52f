"""Structured logging configuration using structlog."""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog


def setup_logging(level: str = "info", fmt: str = "json") -> None:
    """Configure structlog output to stderr.

    ``fmt="json"`` emits one JSON object per line; ``fmt="console"`` uses the
    human-readable dev renderer.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    renderer: Any = (
        structlog.dev.ConsoleRenderer(colors=False) if fmt == "console" else structlog.processors.JSONRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(component: str) -> structlog.stdlib.BoundLogger:
    """Get a logger bound with a component name."""
    return structlog.get_logger(component=component)  # type: ignore[return-value]


def scan_context(**values: Any) -> Any:
    """Bind *values* (e.g. ``scan_id``) to every log line emitted inside the block.

    Context variables are copied into tasks created within the block, so
    concurrent discovery workers inherit the scan identifiers.
    """
    return structlog.contextvars.bound_contextvars(**values)
