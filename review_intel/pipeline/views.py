"""
View loaders for the review-intelligence dashboard.

Each loader fetches one screen's worth of backend data and returns
canonical models. Transport errors propagate to the caller unless the
view explicitly tolerates them:

    - Dashboard: competitor discovery runs alongside the overview fetch and
      its failure leaves the competitor list empty.
    - Roadmap: a failed fetch means "not generated yet" and yields None.
    - Previously analyzed apps: a failed fetch yields an empty list.
"""

import asyncio
from collections import deque
from typing import Any, Optional

from review_intel.analyzers.insights import normalize_issue_detail, normalize_overview
from review_intel.analyzers.timeline import build_timeline
from review_intel.config.settings import Settings, get_settings
from review_intel.extractors.record_normalizer import normalize, normalize_many
from review_intel.models.schemas import (
    CompetitiveAnalysis,
    CompetitorSummary,
    Dashboard,
    FeatureRequest,
    Issue,
    IssueDetail,
    QueryHistoryEntry,
    QueryResult,
    Roadmap,
    Strength,
    Timeline,
)
from review_intel.pipeline.competitive import CompetitivePipeline, extract_competitor_list
from review_intel.services.api_client import ReviewBackend
from review_intel.services.validation_service import ValidationService
from review_intel.utils.errors import TransportError
from review_intel.utils.logger import EventHook, emit_event, get_logger

logger = get_logger(__name__)

QUERY_HISTORY_LIMIT = 10


def _items(payload: Any, key: str) -> list[Any]:
    """List under ``key``, or the payload itself when it is already a list."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get(key), list):
        return payload[key]
    return []


class ReviewViews:
    """
    Loads and normalizes every dashboard view for one backend.

    Example:
        >>> async with ReviewIntelClient() as client:
        ...     views = ReviewViews(client)
        ...     issues = await views.load_issues("389801252")
    """

    def __init__(
        self,
        backend: ReviewBackend,
        settings: Optional[Settings] = None,
        on_event: Optional[EventHook] = None,
        validator: Optional[ValidationService] = None,
    ):
        self.backend = backend
        self.settings = settings or get_settings()
        self.on_event = on_event
        self.validator = validator or ValidationService()
        self._query_history: deque[QueryHistoryEntry] = deque(maxlen=QUERY_HISTORY_LIMIT)

    # =========================================================================
    # Dashboard
    # =========================================================================

    async def _discover_quietly(self, app_id: str) -> tuple[list[CompetitorSummary], Optional[str]]:
        try:
            payload = await self.backend.discover_competitors(app_id)
        except Exception as e:
            error = str(e) or type(e).__name__
            emit_event(
                self.on_event,
                "dashboard.discovery_failed",
                level="warning",
                app_id=app_id,
                error=error,
            )
            return [], error
        return [normalize("competitor", item) for item in extract_competitor_list(payload)], None

    async def load_dashboard(self, app_id: str) -> Dashboard:
        """Overview plus background competitor discovery."""
        app_id = self.validator.validate_app_id(app_id)
        overview_payload, (competitors, discovery_error) = await asyncio.gather(
            self.backend.get_overview(app_id),
            self._discover_quietly(app_id),
        )
        dashboard = Dashboard(
            overview=normalize_overview(overview_payload),
            competitors=competitors,
            discovery_error=discovery_error,
        )
        emit_event(
            self.on_event,
            "dashboard.loaded",
            app_id=app_id,
            competitors=len(competitors),
            has_memo=dashboard.overview.memo is not None,
        )
        return dashboard

    # =========================================================================
    # Issues, Requests, Strengths
    # =========================================================================

    async def load_issues(self, app_id: str) -> list[Issue]:
        app_id = self.validator.validate_app_id(app_id)
        payload = await self.backend.get_issues(app_id)
        return normalize_many("issue", _items(payload, "issues"))

    async def load_issue_detail(self, app_id: str, issue_id: str) -> IssueDetail:
        app_id = self.validator.validate_app_id(app_id)
        payload = await self.backend.get_issue_detail(app_id, issue_id)
        if isinstance(payload, dict) and "issue" not in payload:
            logger.warning("Issue detail incomplete", app_id=app_id, issue_id=issue_id)
        return normalize_issue_detail(payload)

    async def load_requests(self, app_id: str) -> list[FeatureRequest]:
        app_id = self.validator.validate_app_id(app_id)
        payload = await self.backend.get_requests(app_id)
        return normalize_many("request", _items(payload, "requests"))

    async def load_strengths(self, app_id: str) -> list[Strength]:
        app_id = self.validator.validate_app_id(app_id)
        payload = await self.backend.get_strengths(app_id)
        return normalize_many("strength", _items(payload, "strengths"))

    # =========================================================================
    # Timeline & Competitors
    # =========================================================================

    async def load_timeline(self, app_id: str, view: str = "version") -> Timeline:
        app_id = self.validator.validate_app_id(app_id)
        view = self.validator.validate_view(view)
        payload = await self.backend.get_regression_timeline(app_id, view=view)
        timeline = build_timeline(payload, view)
        emit_event(
            self.on_event,
            "timeline.loaded",
            app_id=app_id,
            view=view,
            entries=len(timeline.display),
            notice=timeline.notice,
        )
        return timeline

    async def load_competitors(self, app_id: str) -> CompetitiveAnalysis:
        app_id = self.validator.validate_app_id(app_id)
        pipeline = CompetitivePipeline(self.backend, settings=self.settings, on_event=self.on_event)
        return await pipeline.run(app_id)

    async def analyze_competitors(
        self,
        app_id: str,
        competitor_ids: list[str],
        days: int = 365,
    ) -> Any:
        """Trigger a head-to-head analysis against chosen competitors."""
        app_id = self.validator.validate_app_id(app_id)
        competitor_ids = self.validator.validate_competitor_ids(competitor_ids)
        emit_event(
            self.on_event,
            "competitors.analyze_requested",
            app_id=app_id,
            competitor_ids=competitor_ids,
            days=days,
        )
        return await self.backend.analyze_competitors(app_id, competitor_ids, days=days)

    # =========================================================================
    # Roadmap & Query
    # =========================================================================

    async def load_roadmap(self, app_id: str) -> Optional[Roadmap]:
        """Roadmap recommendations, or None when none have been generated."""
        app_id = self.validator.validate_app_id(app_id)
        try:
            payload = await self.backend.get_roadmap(app_id)
        except TransportError as e:
            logger.info("Roadmap not available yet", app_id=app_id, error=e.message)
            return None
        if not isinstance(payload, dict):
            return None
        summary = payload.get("summary")
        return Roadmap(
            summary=summary if isinstance(summary, dict) else {},
            recommendations=normalize_many("roadmap_item", _items(payload, "recommendations")),
        )

    async def ask(self, app_id: str, question: str) -> QueryResult:
        """Ask a question and record it in the bounded query history."""
        app_id = self.validator.validate_app_id(app_id)
        question = self.validator.validate_query(question)
        payload = await self.backend.query(app_id, question)
        result: QueryResult = normalize("query_result", payload)
        self._query_history.appendleft(QueryHistoryEntry(query=question, answer=result.answer))
        emit_event(
            self.on_event,
            "query.answered",
            app_id=app_id,
            has_answer=bool(result.answer),
            sources=len(result.sources),
        )
        return result

    @property
    def query_history(self) -> list[QueryHistoryEntry]:
        """Most recent first."""
        return list(self._query_history)

    # =========================================================================
    # Previously Analyzed Apps
    # =========================================================================

    async def list_apps(self) -> list[CompetitorSummary]:
        try:
            payload = await self.backend.list_apps()
        except TransportError as e:
            logger.warning("Failed to load analyzed apps", error=e.message)
            return []
        return normalize_many("competitor", _items(payload, "apps"))


__all__ = ["ReviewViews", "QUERY_HISTORY_LIMIT"]
