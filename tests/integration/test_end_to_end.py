"""
End-to-end flow against an in-process fake backend.

A real ReviewIntelClient talks to an httpx.MockTransport router, so the
job controller, view loaders and report rendering run unmodified.
"""

import httpx
import pytest

from review_intel.pipeline.job_controller import JobController
from review_intel.pipeline.views import ReviewViews
from review_intel.services.api_client import ReviewIntelClient
from review_intel.utils.formatters import generate_app_report


class FakeBackend:
    """Routes requests by path and counts status polls."""

    def __init__(self, overview, timeline, swot):
        self.status_responses = [
            {"status": "analyzing", "progress": 30, "message": "Fetching reviews"},
            {"status": "analyzing", "progress": 70, "message": "Clustering issues"},
            {"status": "completed", "progress": 100},
        ]
        self.polls = 0
        self.discover_calls = 0
        self.routes = {
            "/api/apps/123/overview": overview,
            "/api/apps/123/issues": {"issues": [
                {"issueId": "sync", "title": "Sync fails", "severity": "high", "mentions": 40},
                {"issueId": "typo", "title": "Typo in settings", "severity": "low", "status": "resolved"},
            ]},
            "/api/apps/123/requests": {"requests": [{"feature": "Dark mode", "priority": "high"}]},
            "/api/apps/123/regression-timeline": timeline,
            "/api/apps/123/competitors": {"competitors": [{"appId": "1", "name": "Bear", "rating": 4.7}]},
            "/api/apps/123/competitors/swot": swot,
            "/api/apps/123/roadmap": {"recommendations": [{"title": "Fix sync", "priority": "high"}]},
        }

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/api/apps/123/init":
            return httpx.Response(200, json={"status": "initializing", "progress": 0})
        if path == "/api/apps/123/init/status":
            response = self.status_responses[min(self.polls, len(self.status_responses) - 1)]
            self.polls += 1
            return httpx.Response(200, json=response)
        if path == "/api/apps/123/competitors/discover":
            self.discover_calls += 1
            if self.discover_calls > 1:
                return httpx.Response(409, json={"error": "Competitors already discovered"})
            return httpx.Response(200, json={"competitors": [{"appId": "1", "name": "Bear"}]})
        if path in self.routes:
            return httpx.Response(200, json=self.routes[path])
        return httpx.Response(404, json={"message": f"No route for {path}"})


@pytest.mark.asyncio
async def test_analyze_then_load_every_view(settings, events, overview_payload, timeline_payload, swot_payload):
    fake = FakeBackend(overview_payload, timeline_payload, swot_payload)
    progress = []

    async with ReviewIntelClient(settings=settings, transport=httpx.MockTransport(fake.handle)) as client:
        async with JobController(
            client,
            settings=settings,
            on_event=events,
            progress_callback=lambda pct, msg: progress.append(pct),
        ) as controller:
            job = await controller.run("https://apps.apple.com/app/id123")

        assert job.status == "ready"
        assert fake.polls == 3
        assert progress == [0, 30, 70, 100]

        views = ReviewViews(client, settings=settings, on_event=events)
        dashboard = await views.load_dashboard("123")
        issues = await views.load_issues("123")
        requests = await views.load_requests("123")
        timeline = await views.load_timeline("123")
        # second discovery is rejected by the backend; analysis still completes
        analysis = await views.load_competitors("123")
        roadmap = await views.load_roadmap("123")

    assert [c.name for c in dashboard.competitors] == ["Bear"]
    assert [i.id for i in issues] == ["sync", "typo"]
    assert requests[0].title == "Dark mode"
    assert timeline.display[0].period_key == "v2.0.0"
    assert analysis.discovery_error == "Competitors already discovered"
    assert [c.name for c in analysis.competitors] == ["Bear"]
    assert analysis.feature_matrix[1].verdict == "gap"
    assert roadmap.by_priority()["high"][0].title == "Fix sync"

    report = generate_app_report("123", dashboard, issues, requests, timeline, analysis, roadmap)
    assert "# App Review Intelligence Report: Notes Pro" in report
    assert "| high | Sync fails | 40 | - |" in report
    assert "### Feature Comparison" in report

    names = [name for name, _ in events.recorded]
    assert names.index("job.submitted") < names.index("job.ready")
    assert "competitors.discovery_failed" in names


@pytest.mark.asyncio
async def test_missing_sub_resources_degrade_to_empty(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/competitors/discover"):
            return httpx.Response(200, json={})
        if request.url.path.endswith("/roadmap"):
            return httpx.Response(404, json={"message": "Roadmap not generated"})
        return httpx.Response(200, json={})

    async with ReviewIntelClient(settings=settings, transport=httpx.MockTransport(handler)) as client:
        views = ReviewViews(client, settings=settings)
        dashboard = await views.load_dashboard("123")
        issues = await views.load_issues("123")
        timeline = await views.load_timeline("123", view="monthly")
        analysis = await views.load_competitors("123")
        roadmap = await views.load_roadmap("123")

    assert dashboard.overview.metadata.name is None
    assert dashboard.competitors == []
    assert issues == []
    assert timeline.is_empty
    assert not analysis.has_data
    assert analysis.swot_available is True
    assert roadmap is None
