import pytest
from unittest.mock import patch
from pydantic import ValidationError

from review_intel.config.settings import Settings, get_settings


def test_defaults():
    with patch.dict("os.environ", {}, clear=True):
        settings = Settings(_env_file=None)
    assert settings.api_base_url == "http://localhost:3000/api"
    assert settings.poll_interval_seconds == 2.0
    assert settings.max_poll_attempts == 300
    assert settings.progress_policy == "ratchet"
    assert settings.use_response_cache is True
    assert settings.log_level == "WARNING"


def test_real_settings_with_env():
    with patch.dict("os.environ", {
        "REVIEW_API_BASE_URL": "https://reviews.example.com/api/",
        "POLL_INTERVAL_SECONDS": "0.5",
        "MAX_POLL_ATTEMPTS": "0",
        "PROGRESS_POLICY": "clamp",
        "USE_RESPONSE_CACHE": "false",
        "LOG_LEVEL": "DEBUG",
    }, clear=True):
        settings = Settings(_env_file=None)

    assert settings.api_base_url == "https://reviews.example.com/api"
    assert settings.poll_interval_seconds == 0.5
    assert settings.max_poll_attempts == 0
    assert settings.progress_policy == "clamp"
    assert settings.use_response_cache is False
    assert settings.log_level == "DEBUG"


def test_field_names_are_accepted():
    settings = Settings(_env_file=None, api_base_url="http://backend.test", max_poll_attempts=5)
    assert settings.api_base_url == "http://backend.test"
    assert settings.max_poll_attempts == 5


@pytest.mark.parametrize("overrides", [
    {"api_base_url": "ftp://backend"},
    {"api_base_url": ""},
    {"poll_interval_seconds": -1},
    {"max_poll_attempts": -3},
    {"progress_policy": "sometimes"},
])
def test_invalid_values_rejected(overrides):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **overrides)


def test_get_settings_is_cached():
    get_settings.cache_clear()
    try:
        assert get_settings() is get_settings()
    finally:
        get_settings.cache_clear()
