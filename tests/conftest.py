import pytest
from unittest.mock import AsyncMock, patch

from review_intel.config.settings import Settings
from review_intel.services.api_client import ReviewIntelClient


@pytest.fixture
def settings():
    """Real settings with instant polling and no .env lookup."""
    return Settings(
        _env_file=None,
        api_base_url="http://backend.test/api",
        poll_interval_seconds=0.0,
        max_poll_attempts=20,
        progress_policy="ratchet",
        use_response_cache=True,
    )


@pytest.fixture
def backend():
    """AsyncMock standing in for ReviewIntelClient; every endpoint is awaitable."""
    mock = AsyncMock(spec=ReviewIntelClient)
    mock.init_app.return_value = {"status": "initializing", "progress": 0}
    mock.get_init_status.return_value = {"status": "ready", "progress": 100}
    mock.discover_competitors.return_value = {"competitors": []}
    mock.get_competitors.return_value = {"competitors": []}
    mock.get_swot.return_value = {}
    return mock


@pytest.fixture
def events():
    """Observability hook that records (event, fields) pairs."""
    recorded = []

    def hook(event, fields):
        recorded.append((event, fields))

    hook.recorded = recorded
    return hook


@pytest.fixture
def overview_payload():
    return {
        "metadata": {
            "trackName": "Notes Pro",
            "artworkUrl512": "https://example.com/icon.png",
            "averageUserRating": 4.6,
            "userRatingCount": 0,
            "sellerName": "Acme Inc",
            "genres": ["Productivity", "Utilities"],
            "version": "3.2.1",
            "bundleId": "com.acme.notes",
        },
        "quickInsights": {"issues": [{"title": "Sync fails"}]},
        "ratingHistory": [
            {"version": "3.0.0", "rating": 4.1},
            {"version": "3.1.0", "avgRating": "4.3"},
            {"version": "3.2.0", "rating": None},
            {"version": "3.2.1", "averageRating": 4.5},
        ],
        "memo": {
            "summary": "Users love the editor but sync is flaky.",
            "keyFindings": ["Sync regressions since 3.1", {"text": "Widget praised"}],
            "positiveDrivers": [{"title": "Editor", "count": 30}, {"title": "Widgets", "mentions": 10}],
            "problems": [{"title": "Sync", "count": 20}],
            "actions": ["Fix sync"],
        },
        "sampleReviews": [{"stars": 5, "content": "Great app", "userName": "sam"}],
        "alerts": ["Rating dropped after 3.1.0"],
    }


@pytest.fixture
def timeline_payload():
    return {
        "viewBy": "version",
        "versions": [
            {"version": "v2.0.0", "rating": 3.9, "ratingChange": -0.4, "introduced": [{"title": "Crash on launch"}]},
            {"version": "1.2.0", "rating": 4.1, "releaseDate": None},
            {"version": "1.3.0", "avgRating": 4.3, "resolved": "Login bug, Dark mode glitch"},
        ],
    }


@pytest.fixture
def swot_payload():
    return {
        "swot": {
            "strengths": [{"title": "Fast editor"}, "Offline mode"],
            "weaknesses": [{"description": "Sync reliability"}],
            "opportunities": [],
            "threats": [{"name": "Bundled OS notes app"}],
        },
        "opportunities": ["Team plans"],
        "featureMatrix": [
            {"feature": "Offline", "mainApp": True, "comp0": True, "competitors": [False, True], "insight": "Parity win"},
            {"name": "Collaboration", "you": False, "competitors": [True, True, False], "note": "Clear gap vs rivals"},
        ],
        "strategicInsights": [{"text": "Double down on offline"}, "Ship collaboration"],
    }


@pytest.fixture
def patch_settings(settings):
    """Patch get_settings in modules that read it at call time."""
    with patch("review_intel.main.get_settings", return_value=settings):
        yield settings
