"""Structured logging configuration using structlog."""

import logging
import sys
from typing import Any, TextIO

import structlog
from structlog.contextvars import (
    bind_contextvars,
    clear_contextvars,
    merge_contextvars,
)

HANDLER_NAME = "search_sync"


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    add_timestamps: bool = True,
    stream: TextIO | None = None,
) -> None:
    """Configure structured logging for the service.

    Sync modules log through ``logging.getLogger(__name__)``. A structlog
    ``ProcessorFormatter`` on the root handler renders those records with the
    same processors as structlog output, so bound context and JSON apply to
    both.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        json_format: Output logs as JSON (True) or human-readable (False).
        add_timestamps: Include timestamps in log output.
        stream: Destination for log lines, stdout by default.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors: list[Any] = [
        merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
    ]
    if add_timestamps:
        shared_processors.append(structlog.processors.TimeStamper(fmt="iso", utc=True))

    renderer: Any
    if json_format:
        renderer = structlog.processors.JSONRenderer(indent=None, sort_keys=True)
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
    )
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    # Reconfiguring replaces the previous handler instead of stacking another.
    for existing in list(root.handlers):
        if existing.get_name() == HANDLER_NAME:
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(log_level)

    # The NATS and Qdrant SDKs are chatty at DEBUG.
    for noisy in ("nats", "httpx", "httpcore", "grpc"):
        logging.getLogger(noisy).setLevel(max(log_level, logging.INFO))


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger instance.

    Args:
        name: Logger name (defaults to caller module).

    Returns:
        Configured structlog logger (BoundLogger).
    """
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context variables to the current context.

    These values are merged into every log line within the same async
    context, whether it comes from structlog or a stdlib logger.

    Example:
        >>> bind_context(document_id="abc", change_type="update")
        >>> logger.info("indexing")
        # Output includes: {"document_id": "abc", "change_type": "update", ...}
    """
    bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all context variables.

    Called after each consumed message so context does not leak between events.
    """
    clear_contextvars()
