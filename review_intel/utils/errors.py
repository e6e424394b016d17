"""
Error taxonomy and centralized error handling.

Only transport failures and backend-reported job failures are user-visible.
Missing sub-resources and malformed fields never raise; they degrade to
empty values where they are read.
"""

import asyncio
from typing import Optional

# =============================================================================
# Custom Exceptions
# =============================================================================

class AppError(Exception):
    """Base application exception."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class TransportError(AppError):
    """Network or HTTP failure talking to the backend."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        endpoint: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.endpoint = endpoint


class JobFailure(AppError):
    """Backend reported a terminal failure for an analysis job."""

    def __init__(self, message: str, app_id: Optional[str] = None):
        super().__init__(message)
        self.app_id = app_id


class AppTimeoutError(AppError):
    pass


class ValidationError(AppError):
    """User input rejected before any backend call is made."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code


# =============================================================================
# Error Handler
# =============================================================================

class ErrorHandler:
    """Centralized error categorization."""

    USER_VISIBLE = {"TRANSPORT_ERROR", "JOB_FAILURE"}

    @staticmethod
    def categorize_error(error: BaseException) -> str:
        """Categorize errors for appropriate handling."""
        if isinstance(error, TransportError):
            return "TRANSPORT_ERROR"
        if isinstance(error, JobFailure):
            return "JOB_FAILURE"
        if isinstance(error, (AppTimeoutError, asyncio.TimeoutError)):
            return "TIMEOUT_ERROR"
        if isinstance(error, (ValidationError, ValueError, TypeError)):
            return "VALIDATION_ERROR"
        if isinstance(error, (ConnectionError, OSError)):
            return "TRANSPORT_ERROR"

        err_str = str(error).lower()
        if "timeout" in err_str: return "TIMEOUT_ERROR"
        if "connection" in err_str: return "TRANSPORT_ERROR"

        return "UNKNOWN_ERROR"

    @classmethod
    def is_user_visible(cls, error: BaseException) -> bool:
        return cls.categorize_error(error) in cls.USER_VISIBLE
