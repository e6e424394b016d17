import asyncio

import pytest

from review_intel.utils.errors import (
    AppError,
    AppTimeoutError,
    ErrorHandler,
    JobFailure,
    TransportError,
    ValidationError,
)


def test_transport_error_carries_context():
    error = TransportError("HTTP error 502", status_code=502, endpoint="GET /apps/1/overview")
    assert isinstance(error, AppError)
    assert str(error) == "HTTP error 502"
    assert error.status_code == 502
    assert error.endpoint == "GET /apps/1/overview"


def test_validation_error_code():
    error = ValidationError(code="EMPTY_QUERY", message="Please enter a question")
    assert error.code == "EMPTY_QUERY"
    assert error.message == "Please enter a question"


@pytest.mark.parametrize("error,category", [
    (TransportError("down"), "TRANSPORT_ERROR"),
    (JobFailure("failed", app_id="1"), "JOB_FAILURE"),
    (AppTimeoutError("slow"), "TIMEOUT_ERROR"),
    (asyncio.TimeoutError(), "TIMEOUT_ERROR"),
    (ValidationError("X", "bad"), "VALIDATION_ERROR"),
    (ValueError("bad"), "VALIDATION_ERROR"),
    (ConnectionResetError(), "TRANSPORT_ERROR"),
    (RuntimeError("read timeout"), "TIMEOUT_ERROR"),
    (RuntimeError("connection dropped"), "TRANSPORT_ERROR"),
    (RuntimeError("boom"), "UNKNOWN_ERROR"),
])
def test_categorize_error(error, category):
    assert ErrorHandler.categorize_error(error) == category


def test_only_transport_and_job_failures_are_user_visible():
    assert ErrorHandler.is_user_visible(TransportError("down"))
    assert ErrorHandler.is_user_visible(JobFailure("failed"))
    assert not ErrorHandler.is_user_visible(AppTimeoutError("slow"))
    assert not ErrorHandler.is_user_visible(KeyError("field"))
