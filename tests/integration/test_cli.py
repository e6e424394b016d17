"""
Integration tests for the CLI using Click's CliRunner.
"""

from unittest.mock import patch

import pytest
from click.testing import CliRunner

from review_intel import __version__
from review_intel.main import cli
from review_intel.utils.errors import TransportError
from review_intel.utils.logger import setup_logging

# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def quiet_logging():
    """Configure logging once, outside the runner, so log lines never land in command output."""
    setup_logging(level="WARNING", json_format=False)
    with patch("review_intel.main.setup_logger"):
        yield


@pytest.fixture
def mock_client(backend, patch_settings):
    """Patches ReviewIntelClient so every command talks to the AsyncMock backend."""
    backend.__aenter__.return_value = backend
    backend.__aexit__.return_value = None
    with patch("review_intel.main.ReviewIntelClient", return_value=backend):
        yield backend

# =============================================================================
# Tests
# =============================================================================

def test_cli_help(runner):
    result = runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    assert "App Review Intelligence" in result.output
    for command in ("analyze", "overview", "issues", "timeline", "competitors", "report", "validate-setup"):
        assert command in result.output


def test_cli_version(runner):
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_analyze_success(runner, mock_client):
    mock_client.get_init_status.side_effect = [{"progress": 50, "message": "Analyzing reviews"}, {"status": "ready"}]

    result = runner.invoke(cli, ["analyze", "https://apps.apple.com/app/id123"])

    assert result.exit_code == 0, result.output
    assert "Analysis ready." in result.output
    mock_client.init_app.assert_awaited_once_with("123", True)
    assert mock_client.get_init_status.await_count == 2


def test_analyze_without_competitors(runner, mock_client):
    mock_client.init_app.return_value = {"status": "ready"}
    result = runner.invoke(cli, ["analyze", "123", "--no-competitors"])
    assert result.exit_code == 0, result.output
    mock_client.init_app.assert_awaited_once_with("123", False)


def test_analyze_backend_failure(runner, mock_client):
    mock_client.get_init_status.return_value = {"status": "failed", "error": "Quota exceeded"}
    result = runner.invoke(cli, ["analyze", "123"])
    assert result.exit_code == 1
    assert "Quota exceeded" in result.output


def test_analyze_invalid_app_id(runner, mock_client):
    result = runner.invoke(cli, ["analyze", "not-an-app"])
    assert result.exit_code == 1
    assert "Please enter a valid App Store ID" in result.output
    mock_client.init_app.assert_not_awaited()


def test_overview_json(runner, mock_client, overview_payload):
    mock_client.get_overview.return_value = overview_payload
    result = runner.invoke(cli, ["overview", "123", "--format", "json"])
    assert result.exit_code == 0, result.output
    assert '"name": "Notes Pro"' in result.output
    assert '"direction": "up"' in result.output


def test_overview_table(runner, mock_client, overview_payload):
    mock_client.get_overview.return_value = overview_payload
    mock_client.discover_competitors.return_value = {"competitors": [{"appId": "9", "name": "Bear"}]}
    result = runner.invoke(cli, ["overview", "123"])
    assert result.exit_code == 0, result.output
    assert "Notes Pro" in result.output
    assert "Bear" in result.output
    assert "Rating dropped after 3.1.0" in result.output


def test_issues_markdown_filtered(runner, mock_client):
    mock_client.get_issues.return_value = {"issues": [
        {"title": "Crash", "severity": "critical", "count": 4},
        {"title": "Typo", "severity": "low"},
    ]}
    result = runner.invoke(cli, ["issues", "123", "--severity", "critical", "--format", "markdown"])
    assert result.exit_code == 0, result.output
    assert "| critical | Crash | 4 | - |" in result.output
    assert "Typo" not in result.output


def test_issues_rejects_unknown_filter(runner, mock_client):
    result = runner.invoke(cli, ["issues", "123", "--severity", "urgent"])
    assert result.exit_code == 2


def test_issue_detail(runner, mock_client):
    mock_client.get_issue_detail.return_value = {
        "issue": {"title": "Sync fails", "severity": "high"},
        "recommendations": ["Retry uploads"],
        "supportingReviews": [{"text": "Lost my notes"}],
    }
    result = runner.invoke(cli, ["issue", "123", "sync"])
    assert result.exit_code == 0, result.output
    assert "# Sync fails" in result.output
    assert "- Retry uploads" in result.output
    assert "> Lost my notes" in result.output


def test_requests_json_counts(runner, mock_client):
    mock_client.get_requests.return_value = {"requests": [
        {"title": "Dark mode", "priority": "high", "competitorHas": ["Bear"]},
        {"title": "Export"},
    ]}
    result = runner.invoke(cli, ["requests", "123", "--filter", "competitive", "--format", "json"])
    assert result.exit_code == 0, result.output
    assert '"competitive": 1' in result.output
    assert "Dark mode" in result.output
    assert "Export" not in result.output


def test_strengths_markdown(runner, mock_client):
    mock_client.get_strengths.return_value = [{"title": "Fast", "count": 9}]
    result = runner.invoke(cli, ["strengths", "123", "--format", "markdown"])
    assert result.exit_code == 0, result.output
    assert "| Fast | 9 |" in result.output


def test_timeline_markdown(runner, mock_client, timeline_payload):
    mock_client.get_regression_timeline.return_value = timeline_payload
    result = runner.invoke(cli, ["timeline", "123", "--format", "markdown"])
    assert result.exit_code == 0, result.output
    mock_client.get_regression_timeline.assert_awaited_once_with("123", view="version")
    assert result.output.index("v2.0.0") < result.output.index("1.2.0")


def test_competitors_markdown(runner, mock_client, swot_payload):
    mock_client.get_swot.return_value = swot_payload
    result = runner.invoke(cli, ["competitors", "123", "--format", "markdown"])
    assert result.exit_code == 0, result.output
    assert "### SWOT Analysis" in result.output
    assert "- Team plans" in result.output


def test_competitors_empty(runner, mock_client):
    result = runner.invoke(cli, ["competitors", "123"])
    assert result.exit_code == 0, result.output
    assert "No competitive data available yet." in result.output


def test_roadmap_not_generated(runner, mock_client):
    mock_client.get_roadmap.side_effect = TransportError("Not found", status_code=404)
    result = runner.invoke(cli, ["roadmap", "123"])
    assert result.exit_code == 0, result.output
    assert "Roadmap not generated yet." in result.output


def test_ask_markdown(runner, mock_client):
    mock_client.query.return_value = {"answer": "Mostly sync complaints", "sources": ["Review 1"]}
    result = runner.invoke(cli, ["ask", "123", "What hurts ratings?", "--format", "markdown"])
    assert result.exit_code == 0, result.output
    assert "Mostly sync complaints" in result.output
    mock_client.query.assert_awaited_once_with("123", "What hurts ratings?")


def test_apps_empty(runner, mock_client):
    mock_client.list_apps.return_value = {"apps": []}
    result = runner.invoke(cli, ["apps"])
    assert result.exit_code == 0, result.output
    assert "No analyzed apps yet." in result.output


def test_transport_error_exits_with_message(runner, mock_client):
    mock_client.get_issues.side_effect = TransportError("Backend unavailable", status_code=503)
    result = runner.invoke(cli, ["issues", "123"])
    assert result.exit_code == 1
    assert "Backend unavailable" in result.output


def test_report_markdown(runner, mock_client, overview_payload, timeline_payload, tmp_path):
    mock_client.get_overview.return_value = overview_payload
    mock_client.get_issues.return_value = {"issues": [{"title": "Sync fails"}]}
    mock_client.get_requests.return_value = {"requests": []}
    mock_client.get_regression_timeline.return_value = timeline_payload
    mock_client.get_roadmap.return_value = {"recommendations": [{"title": "Fix sync", "priority": "high"}]}

    result = runner.invoke(cli, ["report", "id123", "--output-dir", str(tmp_path)])

    assert result.exit_code == 0, result.output
    content = (tmp_path / "app_123.md").read_text(encoding="utf-8")
    assert content.startswith("# App Review Intelligence Report: Notes Pro")
    assert "Sync fails" in content
    assert "Fix sync" in content


def test_report_json(runner, mock_client, tmp_path):
    mock_client.get_overview.return_value = {"name": "Notes Pro"}
    mock_client.get_issues.return_value = []
    mock_client.get_requests.return_value = []
    mock_client.get_regression_timeline.return_value = {}
    mock_client.get_roadmap.return_value = None

    result = runner.invoke(cli, ["report", "123", "--output-dir", str(tmp_path), "--format", "json"])
    assert result.exit_code == 0, result.output
    assert (tmp_path / "app_123.json").exists()


def test_validate_setup(runner, patch_settings):
    result = runner.invoke(cli, ["validate-setup"])
    assert result.exit_code == 0
    assert "http://backend.test/api" in result.output
    assert "ratchet" in result.output
