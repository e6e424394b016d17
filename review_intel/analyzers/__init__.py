"""Analyzers module for the App Review Intelligence client."""

from review_intel.analyzers.temporal import resolve_ordinal, version_ordinal
from review_intel.analyzers.timeline import MONTHLY_FALLBACK_NOTICE, build_timeline
from review_intel.analyzers.insights import (
    compute_rating_drivers,
    compute_rating_trend,
    filter_issues,
    filter_requests,
    normalize_overview,
)

__all__ = [
    # Temporal ordering
    "resolve_ordinal",
    "version_ordinal",
    # Timeline
    "MONTHLY_FALLBACK_NOTICE",
    "build_timeline",
    # Insights
    "compute_rating_drivers",
    "compute_rating_trend",
    "filter_issues",
    "filter_requests",
    "normalize_overview",
]
