"""
Pydantic models and schemas for the App Review Intelligence client.

This module defines the canonical records produced from loosely-typed
backend payloads, plus the job and view models exposed to callers.

Models:
    - AppMetadata, Issue, FeatureRequest, Strength, CompetitorSummary: Canonical entities
    - TimelineEntry, ChartPoint, Timeline: Reconstructed release/rating timeline
    - AnalysisJob, JobStep: Analysis job lifecycle state
    - DiscoveryResult, CompetitiveAnalysis, SWOTAnalysis: Competitive data
    - AppOverview, Memo, RatingTrend, RatingDrivers, Dashboard: Overview views
    - RoadmapItem, Roadmap, IssueDetail, QueryResult, QueryHistoryEntry: Remaining views
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional, Self, Union

from pydantic import (
    BaseModel as PydanticBaseModel,
    ConfigDict,
    Field,
)


# =============================================================================
# Base Configuration
# =============================================================================

class BaseModel(PydanticBaseModel):
    """Base model with common configuration for all schemas."""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=False,
        populate_by_name=True,
        use_enum_values=True,
        extra="ignore",
    )

    def to_json(self, **kwargs) -> str:
        """Serialize model to JSON string."""
        return self.model_dump_json(indent=2, **kwargs)

    def to_dict(self, **kwargs) -> dict[str, Any]:
        """Serialize model to dictionary."""
        return self.model_dump(**kwargs)

    @classmethod
    def from_json(cls, json_str: str) -> Self:
        """Deserialize model from JSON string."""
        return cls.model_validate_json(json_str)


class CanonicalRecord(BaseModel):
    """
    A record normalized from a backend payload.

    Source fields with no canonical counterpart are kept verbatim in
    ``extras`` so newer backend schemas lose nothing on the way through.
    """

    extras: dict[str, Any] = Field(default_factory=dict)


# =============================================================================
# Enums
# =============================================================================

class JobStatus(str, Enum):
    """Status of an analysis job as reported to callers."""
    PENDING = "pending"
    INITIALIZING = "initializing"
    ANALYZING = "analyzing"
    READY = "ready"
    FAILED = "failed"


class JobPhase(str, Enum):
    """Lifecycle phase of the job controller."""
    IDLE = "idle"
    SUBMITTING = "submitting"
    POLLING = "polling"
    READY = "ready"
    FAILED = "failed"


class StepStatus(str, Enum):
    """Status of an individual backend analysis step."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class TimelineView(str, Enum):
    """Timeline grouping requested from the backend."""
    VERSION = "version"
    MONTHLY = "monthly"


TERMINAL_JOB_STATUSES = (JobStatus.READY, JobStatus.FAILED)


# =============================================================================
# Canonical Entities
# =============================================================================

class AppMetadata(CanonicalRecord):
    """App Store metadata for the analyzed app."""

    name: Optional[str] = None
    icon_url: Optional[str] = None
    rating: Optional[float] = Field(default=None, ge=0.0, le=5.0)
    review_count: Optional[int] = Field(default=None, ge=0)
    developer: Optional[str] = None
    category: Optional[str] = None
    version: Optional[str] = None
    release_date: Optional[str] = None
    price: Optional[Union[float, str]] = None
    description: Optional[str] = None


class SampleReview(CanonicalRecord):
    rating: Optional[int] = Field(default=None, ge=0, le=5)
    title: Optional[str] = None
    body: Optional[str] = None
    version: Optional[str] = None
    date: Optional[str] = None
    author: Optional[str] = None


class Issue(CanonicalRecord):
    """A recurring user-reported problem."""

    id: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    severity: str = "medium"
    count: Optional[int] = None
    first_seen: Optional[str] = None
    status: Optional[str] = None
    impact_score: Optional[float] = None
    sample_review: Optional[SampleReview] = None

    @property
    def is_resolved(self) -> bool:
        return (self.status or "").lower() == "resolved"


class FeatureRequest(CanonicalRecord):
    """A feature users are asking for."""

    id: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    priority: str = "medium"
    count: Optional[int] = None
    demand: Optional[str] = None
    competitor_has: list[Any] = Field(default_factory=list)


class Strength(CanonicalRecord):
    """Something users praise."""

    id: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    count: Optional[int] = None
    sentiment: str = "positive"


class CompetitorSummary(CanonicalRecord):
    """Summary card for a competing app."""

    app_id: Optional[str] = None
    name: Optional[str] = None
    icon_url: Optional[str] = None
    rating: Optional[float] = Field(default=None, ge=0.0, le=5.0)
    review_count: Optional[int] = Field(default=None, ge=0)
    category: Optional[str] = None
    developer: Optional[str] = None


class RoadmapItem(CanonicalRecord):
    """A prioritized product recommendation."""

    id: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[str] = None
    category: Optional[str] = None
    impact: Optional[str] = None
    recommendation: Optional[str] = None
    competitive_context: Optional[str] = None
    issue_id: Optional[str] = None
    evidence: dict[str, Any] = Field(default_factory=dict)


class QueryResult(CanonicalRecord):
    """Answer to a natural-language question about the app's reviews."""

    answer: Optional[str] = None
    sources: list[Any] = Field(default_factory=list)
    confidence: Optional[Union[float, str]] = None


# =============================================================================
# Timeline Models
# =============================================================================

class TimelineEntry(CanonicalRecord):
    """
    One period (release or month) of the regression timeline.

    ``ordinal`` is a derived sort key and is never treated as source data.
    """

    period_key: str = ""
    ordinal: float = 0.0
    rating: Optional[float] = None
    rating_change: float = 0.0
    introduced_issues: list[str] = Field(default_factory=list)
    resolved_issues: list[str] = Field(default_factory=list)
    key_events: list[str] = Field(default_factory=list)
    review_count: Optional[int] = None
    summary: str = ""
    release_date: Optional[str] = None


class ChartPoint(BaseModel):
    label: str
    rating: float


class Timeline(BaseModel):
    """Display sequence (newest first) and chart sequence (oldest first)."""

    view: TimelineView = Field(default=TimelineView.VERSION, validate_default=True)
    display: list[TimelineEntry] = Field(default_factory=list)
    chart_points: list[ChartPoint] = Field(default_factory=list)
    notice: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.display


# =============================================================================
# Job Models
# =============================================================================

class JobStep(BaseModel):
    name: str
    status: StepStatus = Field(default=StepStatus.PENDING, validate_default=True)


class AnalysisJob(BaseModel):
    """
    A single backend analysis job, owned by the job controller.

    Example:
        >>> job = AnalysisJob(app_id="389801252")
        >>> job.is_terminal
        False
    """

    job_id: str = ""
    app_id: str
    status: JobStatus = Field(default=JobStatus.PENDING, validate_default=True)
    progress: int = Field(default=0, ge=0, le=100)
    message: Optional[str] = None
    steps: list[JobStep] = Field(default_factory=list)
    error: Optional[str] = None
    error_type: Optional[str] = None
    include_competitors: bool = True
    poll_count: int = 0
    started_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_JOB_STATUSES


# =============================================================================
# Competitive Models
# =============================================================================

class DiscoveryResult(BaseModel):
    competitors: list[CompetitorSummary] = Field(default_factory=list)


class SWOTAnalysis(BaseModel):
    """SWOT quadrants, each an ordered list of text items."""

    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    opportunities: list[str] = Field(default_factory=list)
    threats: list[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.strengths or self.weaknesses or self.opportunities or self.threats)


class FeatureMatrixRow(BaseModel):
    """One feature compared across the app and its top competitors."""

    feature: str = ""
    main_app: bool = False
    competitors: list[bool] = Field(default_factory=list)
    insight: Optional[str] = None
    verdict: str = "neutral"  # gap, advantage, neutral


class CompetitiveAnalysis(BaseModel):
    """
    Competitive view assembled from the SWOT and competitor-list fetches.

    Either source may be absent; an empty analysis is a valid result.
    """

    competitors: list[CompetitorSummary] = Field(default_factory=list)
    swot: SWOTAnalysis = Field(default_factory=SWOTAnalysis)
    feature_matrix: list[FeatureMatrixRow] = Field(default_factory=list)
    strategic_insights: list[str] = Field(default_factory=list)
    discovery: Optional[DiscoveryResult] = None
    discovery_error: Optional[str] = None
    swot_available: bool = False
    competitors_available: bool = False

    @property
    def has_swot_data(self) -> bool:
        return not self.swot.is_empty

    @property
    def has_data(self) -> bool:
        return bool(self.competitors) or self.has_swot_data or bool(self.feature_matrix)


# =============================================================================
# Overview Models
# =============================================================================

class RatingTrend(BaseModel):
    direction: str = "stable"  # up, down, stable
    change: float = 0.0
    period: Optional[str] = None
    periods_compared: Optional[int] = None


class RatingDrivers(BaseModel):
    positive_mentions: int = 0
    negative_mentions: int = 0
    positive_percent: int = 50
    sentiment: str = "mixed"  # positive, negative, mixed


class Memo(BaseModel):
    """Executive memo produced by the backend analysis."""

    summary: str = ""
    key_findings: list[str] = Field(default_factory=list)
    strengths: list[Any] = Field(default_factory=list)
    issues: list[Any] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    alerts: list[str] = Field(default_factory=list)
    sample_reviews: list[SampleReview] = Field(default_factory=list)


class AppOverview(BaseModel):
    metadata: AppMetadata = Field(default_factory=AppMetadata)
    quick_insights: dict[str, Any] = Field(default_factory=dict)
    rating_history: list[dict[str, Any]] = Field(default_factory=list)
    metrics: dict[str, Any] = Field(default_factory=dict)
    memo: Optional[Memo] = None
    sample_reviews: list[SampleReview] = Field(default_factory=list)
    alerts: list[str] = Field(default_factory=list)
    rating_trend: Optional[RatingTrend] = None
    rating_drivers: Optional[RatingDrivers] = None


class Dashboard(BaseModel):
    overview: AppOverview
    competitors: list[CompetitorSummary] = Field(default_factory=list)
    discovery_error: Optional[str] = None


class IssueDetail(BaseModel):
    issue: Issue = Field(default_factory=Issue)
    impact: dict[str, Any] = Field(default_factory=dict)
    timeline: list[dict[str, Any]] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    supporting_reviews: list[SampleReview] = Field(default_factory=list)


class QueryHistoryEntry(BaseModel):
    query: str
    answer: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class Roadmap(BaseModel):
    summary: dict[str, Any] = Field(default_factory=dict)
    recommendations: list[RoadmapItem] = Field(default_factory=list)

    def by_priority(self) -> dict[str, list[RoadmapItem]]:
        """Group recommendations as high/medium/low; a missing priority counts as low."""
        groups: dict[str, list[RoadmapItem]] = {"high": [], "medium": [], "low": []}
        for item in self.recommendations:
            priority = (item.priority or "").lower()
            groups[priority if priority in ("high", "medium") else "low"].append(item)
        return groups
