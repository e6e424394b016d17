"""
Structured logging configuration.

Provides consistent logging across the application and an injectable
observability hook that receives the same structured events.
"""

import logging
import sys
from typing import Any, Callable, Optional

import structlog
from structlog.types import Processor

# Receives (event_name, fields) for every emitted event.
EventHook = Callable[[str, dict[str, Any]], None]


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
) -> None:
    """
    Configure application-wide structured logging.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: Whether to output logs in JSON format.
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper()),
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Get a structured logger for the given module name.

    Args:
        name: Logger name, typically __name__.

    Returns:
        Configured structlog logger instance.
    """
    return structlog.get_logger(name)


_hook_logger = get_logger(__name__)


def emit_event(
    hook: Optional[EventHook],
    event: str,
    level: str = "info",
    **fields: Any,
) -> None:
    """
    Log a structured event and forward it to an observability hook.

    Hook failures are logged and never reach the caller.
    """
    getattr(_hook_logger, level)(event, **fields)
    if hook is None:
        return
    try:
        hook(event, dict(fields))
    except Exception as cb_err:
        _hook_logger.warning("Observability hook failed", hook_event=event, error=str(cb_err))


class LogContext:
    """Context manager for adding temporary log context."""

    def __init__(self, **kwargs):
        self.context = kwargs
        self._token = None

    def __enter__(self):
        self._token = structlog.contextvars.bind_contextvars(**self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._token:
            structlog.contextvars.unbind_contextvars(*self.context.keys())
