"""Structured logging for the meshdivert CLI.

Log records are rendered by structlog and written to stderr, so manifests
printed on stdout can be piped straight into ``kubectl apply -f -``.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog


# The kubernetes client logs full request and response bodies at DEBUG.
QUIET_LOGGERS = ("urllib3", "kubernetes")


def _renderer(format_type: str) -> structlog.types.Processor:
    if format_type == "console":
        return structlog.dev.ConsoleRenderer(
            colors=sys.stderr.isatty(),
            exception_formatter=structlog.dev.rich_traceback,
        )
    return structlog.processors.JSONRenderer()


def configure_logging(
    level: str = "INFO",
    format_type: str = "json",
) -> None:
    """Route structlog events to stderr.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        format_type: "json" for one object per line, "console" for humans.
    """
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if format_type != "console":
        processors.append(structlog.processors.format_exc_info)
    processors.append(_renderer(format_type))

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    numeric_level = getattr(logging, level.upper())
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(numeric_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger, typically ``get_logger(__name__)``."""
    return structlog.get_logger(name)


def add_context(**kwargs: Any) -> None:
    """Bind fields to every later log entry of the current context."""
    structlog.contextvars.bind_contextvars(**kwargs)


class LogContext:
    """Context manager binding log fields for the duration of a block.

    Example:
        with LogContext(virtual_service="service-a", target_namespace="cindy"):
            logger.info("divert_started")
    """

    def __init__(self, **kwargs: Any) -> None:
        self._context = kwargs
        self._tokens: dict[str, Any] | None = None

    def __enter__(self) -> LogContext:
        self._tokens = structlog.contextvars.bind_contextvars(**self._context)
        return self

    def __exit__(self, *args: Any) -> None:
        if self._tokens is not None:
            structlog.contextvars.reset_contextvars(**self._tokens)
