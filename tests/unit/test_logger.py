import logging
import structlog
from unittest.mock import MagicMock, patch

from review_intel.utils.logger import LogContext, emit_event, get_logger, setup_logging


def test_setup_logging():
    # Calling it shouldn't crash
    setup_logging(level="DEBUG", json_format=False)
    setup_logging(level="INFO", json_format=True)


def test_get_logger():
    logger = get_logger("test_module")
    assert logger is not None
    logger.info("test message", key="value")


def test_log_context_binds_and_unbinds():
    with LogContext(job_id="job-1", app_id="123"):
        bound = structlog.contextvars.get_contextvars()
        assert bound["job_id"] == "job-1"
        assert bound["app_id"] == "123"
    assert "job_id" not in structlog.contextvars.get_contextvars()


def test_emit_event_forwards_fields():
    hook = MagicMock()
    emit_event(hook, "job.ready", app_id="123", progress=100)
    hook.assert_called_once_with("job.ready", {"app_id": "123", "progress": 100})


def test_emit_event_without_hook():
    emit_event(None, "job.poll", level="debug", attempt=1)


def test_emit_event_swallows_hook_failure():
    hook = MagicMock(side_effect=RuntimeError("sink down"))
    emit_event(hook, "job.failed", level="warning", error="boom")
    hook.assert_called_once()


def test_cli_setup_logger(settings):
    from review_intel.main import setup_logger

    with patch("review_intel.main.get_settings", return_value=settings):
        setup_logger(verbose=True)
        setup_logger(verbose=False)
    assert logging.getLogger("httpx").level == logging.WARNING


def test_cli_logger_uses_configured_level(settings):
    from review_intel.main import setup_logger

    configured = settings.model_copy(update={"log_level": "ERROR", "debug": False})
    with patch("review_intel.main.get_settings", return_value=configured), \
            patch("review_intel.main.setup_logging") as mock_setup:
        setup_logger(verbose=False)
        mock_setup.assert_called_once_with(level="ERROR", json_format=configured.log_json)

        mock_setup.reset_mock()
        setup_logger(verbose=True)
        mock_setup.assert_called_once_with(level="DEBUG", json_format=configured.log_json)
