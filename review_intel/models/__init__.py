"""Data models module for the App Review Intelligence client."""

from review_intel.models.schemas import (
    # Base Models
    BaseModel,
    CanonicalRecord,

    # Enums
    JobStatus,
    JobPhase,
    StepStatus,
    TimelineView,

    # Canonical Entities
    AppMetadata,
    SampleReview,
    Issue,
    FeatureRequest,
    Strength,
    CompetitorSummary,
    RoadmapItem,
    QueryResult,

    # Timeline Models
    TimelineEntry,
    ChartPoint,
    Timeline,

    # Job Models
    JobStep,
    AnalysisJob,

    # Competitive Models
    DiscoveryResult,
    SWOTAnalysis,
    FeatureMatrixRow,
    CompetitiveAnalysis,

    # View Models
    RatingTrend,
    RatingDrivers,
    Memo,
    AppOverview,
    Dashboard,
    IssueDetail,
    QueryHistoryEntry,
    Roadmap,
)

__all__ = [
    # Base Models
    "BaseModel",
    "CanonicalRecord",

    # Enums
    "JobStatus",
    "JobPhase",
    "StepStatus",
    "TimelineView",

    # Canonical Entities
    "AppMetadata",
    "SampleReview",
    "Issue",
    "FeatureRequest",
    "Strength",
    "CompetitorSummary",
    "RoadmapItem",
    "QueryResult",

    # Timeline Models
    "TimelineEntry",
    "ChartPoint",
    "Timeline",

    # Job Models
    "JobStep",
    "AnalysisJob",

    # Competitive Models
    "DiscoveryResult",
    "SWOTAnalysis",
    "FeatureMatrixRow",
    "CompetitiveAnalysis",

    # View Models
    "RatingTrend",
    "RatingDrivers",
    "Memo",
    "AppOverview",
    "Dashboard",
    "IssueDetail",
    "QueryHistoryEntry",
    "Roadmap",
]
