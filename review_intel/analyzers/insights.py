"""
Insight derivations over normalized review-analysis data.

Computes the overview-level signals the dashboard shows next to the raw
backend content: rating trend, rating drivers, memo sections, and the
severity / priority breakdowns used to filter issue and request lists.
All functions are pure and degrade to empty values on malformed input.
"""

import math
from typing import Any, Iterable, Optional

from review_intel.extractors.record_normalizer import (
    coerce_number,
    extract_text,
    normalize,
    normalize_many,
)
from review_intel.models.schemas import (
    AppMetadata,
    AppOverview,
    FeatureRequest,
    Issue,
    IssueDetail,
    Memo,
    RatingDrivers,
    RatingTrend,
    SampleReview,
)
from review_intel.utils.logger import get_logger

logger = get_logger(__name__)

HISTORY_RATING_KEYS = ("rating", "avgRating", "averageRating", "avg", "value", "score")
TREND_WINDOW = 3
TREND_THRESHOLD = 0.05

SEVERITY_LEVELS = ("critical", "high", "medium", "low")
PRIORITY_LEVELS = ("high", "medium", "low")


def _first_present(raw: dict[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def _as_list(value: Any) -> list[Any]:
    return list(value) if isinstance(value, list) else []


def _texts(items: Iterable[Any]) -> list[str]:
    return [text for text in (extract_text(item) for item in items) if text]


# =============================================================================
# Rating Trend
# =============================================================================

def history_rating(item: Any) -> Optional[float]:
    """Rating of a history point, read from the first non-null rating alias."""
    if not isinstance(item, dict):
        return None
    return coerce_number(_first_present(item, HISTORY_RATING_KEYS))


def compute_rating_trend(
    quick_insights: Optional[dict[str, Any]],
    rating_history: Any,
) -> Optional[RatingTrend]:
    """
    Rating trend for the overview header.

    A backend-provided ``quickInsights.ratingTrend`` wins. Otherwise the
    last three history points with a numeric rating are compared; fewer
    than two usable points gives None.
    """
    provided = (quick_insights or {}).get("ratingTrend")
    if isinstance(provided, dict) and provided:
        direction = provided.get("direction")
        return RatingTrend(
            direction=direction if direction in ("up", "down", "stable") else "stable",
            change=coerce_number(provided.get("change")) or 0.0,
            period=extract_text(provided.get("period")) or None,
        )

    ratings = [r for r in (history_rating(item) for item in _as_list(rating_history)) if r is not None]
    if len(ratings) < 2:
        return None

    recent = ratings[-TREND_WINDOW:]
    change = recent[-1] - recent[0]
    if change > TREND_THRESHOLD:
        direction = "up"
    elif change < -TREND_THRESHOLD:
        direction = "down"
    else:
        direction = "stable"
    return RatingTrend(direction=direction, change=round(change, 4), periods_compared=len(recent))


# =============================================================================
# Rating Drivers
# =============================================================================

def mention_count(item: Any) -> int:
    """Mentions carried by a driver; anything without a positive count counts once."""
    if not isinstance(item, dict):
        return 1
    for key in ("count", "mentions"):
        number = coerce_number(item.get(key))
        if number:
            return int(number)
    return 1


def compute_rating_drivers(strengths: Any, issues: Any) -> RatingDrivers:
    """Positive vs negative mention balance across memo strengths and issues."""
    positive = sum(mention_count(item) for item in _as_list(strengths))
    negative = sum(mention_count(item) for item in _as_list(issues))
    total = positive + negative

    percent = math.floor(positive / total * 100 + 0.5) if total > 0 else 50
    if percent >= 60:
        sentiment = "positive"
    elif percent <= 40:
        sentiment = "negative"
    else:
        sentiment = "mixed"

    return RatingDrivers(
        positive_mentions=positive,
        negative_mentions=negative,
        positive_percent=percent,
        sentiment=sentiment,
    )


# =============================================================================
# Memo & Overview
# =============================================================================

def normalize_memo(raw: Any, fallback_reviews: Any = None) -> Optional[Memo]:
    """
    Normalize the executive memo, which may be plain text or an object.

    Review samples fall back to the overview-level ``sampleReviews``.
    """
    if isinstance(raw, str):
        return Memo(summary=raw.strip()) if raw.strip() else None
    if not isinstance(raw, dict):
        return None

    reviews = _first_present(raw, ("sampleReviews", "reviews"))
    if reviews is None:
        reviews = fallback_reviews

    return Memo(
        summary=extract_text(_first_present(raw, ("summary", "text", "content"))),
        key_findings=_texts(_as_list(_first_present(raw, ("keyFindings", "findings", "insights")))),
        strengths=_as_list(_first_present(raw, ("strengths", "positiveDrivers", "positive", "pros", "likes"))),
        issues=_as_list(_first_present(
            raw,
            ("issues", "negativeDrivers", "weaknesses", "negative", "cons", "dislikes", "problems"),
        )),
        recommendations=_texts(_as_list(_first_present(raw, ("recommendations", "actions", "suggestions")))),
        alerts=_texts(_as_list(_first_present(raw, ("alerts", "warnings")))),
        sample_reviews=normalize_many("review", _as_list(reviews)),
    )


def normalize_overview(payload: Any) -> AppOverview:
    """Build the overview from a nested or flat overview payload."""
    if not isinstance(payload, dict):
        return AppOverview()

    metadata: AppMetadata = normalize("app_metadata", payload)
    quick_insights = payload.get("quickInsights")
    quick_insights = quick_insights if isinstance(quick_insights, dict) else {}
    metrics = payload.get("metrics")
    rating_history = [item for item in _as_list(payload.get("ratingHistory")) if isinstance(item, dict)]
    sample_reviews: list[SampleReview] = normalize_many("review", _as_list(payload.get("sampleReviews")))
    memo = normalize_memo(payload.get("memo"), fallback_reviews=payload.get("sampleReviews"))
    logger.debug(
        "Overview normalized",
        app_name=metadata.name,
        history_points=len(rating_history),
        has_memo=memo is not None,
    )

    return AppOverview(
        metadata=metadata,
        quick_insights=quick_insights,
        rating_history=rating_history,
        metrics=metrics if isinstance(metrics, dict) else {},
        memo=memo,
        sample_reviews=sample_reviews,
        alerts=_texts(_as_list(payload.get("alerts"))),
        rating_trend=compute_rating_trend(quick_insights, rating_history),
        rating_drivers=compute_rating_drivers(memo.strengths, memo.issues) if memo else None,
    )


def normalize_issue_detail(payload: Any) -> IssueDetail:
    if not isinstance(payload, dict):
        return IssueDetail()
    impact = payload.get("impact")
    return IssueDetail(
        issue=normalize("issue", payload.get("issue")),
        impact=impact if isinstance(impact, dict) else {},
        timeline=[item for item in _as_list(payload.get("timeline")) if isinstance(item, dict)],
        recommendations=_texts(_as_list(payload.get("recommendations"))),
        supporting_reviews=normalize_many("review", _as_list(payload.get("supportingReviews"))),
    )


# =============================================================================
# Breakdowns & Filters
# =============================================================================

def severity_counts(issues: Iterable[Issue]) -> dict[str, int]:
    counts = {level: 0 for level in SEVERITY_LEVELS}
    for issue in issues:
        counts[issue.severity] = counts.get(issue.severity, 0) + 1
    return counts


def filter_issues(issues: list[Issue], selected: str = "all") -> list[Issue]:
    """Filter by "all", "active", "resolved" or a severity level."""
    if selected == "all":
        return list(issues)
    if selected == "active":
        return [issue for issue in issues if not issue.is_resolved]
    if selected == "resolved":
        return [issue for issue in issues if issue.is_resolved]
    return [issue for issue in issues if issue.severity == selected]


def priority_counts(requests: Iterable[FeatureRequest]) -> dict[str, int]:
    counts = {level: 0 for level in PRIORITY_LEVELS}
    counts["competitive"] = 0
    for request in requests:
        counts[request.priority] = counts.get(request.priority, 0) + 1
        if request.competitor_has:
            counts["competitive"] += 1
    return counts


def filter_requests(requests: list[FeatureRequest], selected: str = "all") -> list[FeatureRequest]:
    """Filter by "all", "competitive" (a competitor already ships it) or a priority."""
    if selected == "all":
        return list(requests)
    if selected == "competitive":
        return [request for request in requests if request.competitor_has]
    return [request for request in requests if request.priority == selected]


__all__ = [
    "history_rating",
    "compute_rating_trend",
    "mention_count",
    "compute_rating_drivers",
    "normalize_memo",
    "normalize_overview",
    "normalize_issue_detail",
    "severity_counts",
    "filter_issues",
    "priority_counts",
    "filter_requests",
]
