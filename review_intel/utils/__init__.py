"""Utils module for the App Review Intelligence client."""

from review_intel.utils.logger import LogContext, emit_event, get_logger, setup_logging
from review_intel.utils.errors import (
    AppError,
    AppTimeoutError,
    ErrorHandler,
    JobFailure,
    TransportError,
    ValidationError,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "emit_event",
    "LogContext",
    "ErrorHandler",
    "AppError",
    "AppTimeoutError",
    "JobFailure",
    "TransportError",
    "ValidationError",
]
