import pytest

from review_intel.analyzers.insights import (
    compute_rating_drivers,
    compute_rating_trend,
    filter_issues,
    filter_requests,
    history_rating,
    mention_count,
    normalize_issue_detail,
    normalize_memo,
    normalize_overview,
    priority_counts,
    severity_counts,
)
from review_intel.extractors.record_normalizer import normalize_many


# =============================================================================
# Rating trend
# =============================================================================

def test_trend_uses_last_three_valid_ratings():
    history = [
        {"rating": 2.0},
        {"rating": 4.1},
        {"avgRating": "4.3"},
        {"rating": None},
        {"averageRating": 4.5},
    ]
    trend = compute_rating_trend({}, history)
    assert trend.direction == "up"
    assert trend.change == pytest.approx(0.4)
    assert trend.periods_compared == 3


def test_trend_direction_thresholds():
    assert compute_rating_trend({}, [{"rating": 4.5}, {"rating": 4.0}]).direction == "down"
    assert compute_rating_trend({}, [{"rating": 4.0}, {"rating": 4.04}]).direction == "stable"


def test_trend_needs_two_points():
    assert compute_rating_trend({}, [{"rating": 4.0}]) is None
    assert compute_rating_trend(None, None) is None
    assert compute_rating_trend({}, [{"rating": "abc"}, {"value": 3}]) is None


def test_provided_trend_wins():
    trend = compute_rating_trend(
        {"ratingTrend": {"direction": "down", "change": "-0.2", "period": "30 days"}},
        [{"rating": 1.0}, {"rating": 5.0}],
    )
    assert trend.direction == "down"
    assert trend.change == -0.2
    assert trend.period == "30 days"


def test_history_rating_alias_order():
    assert history_rating({"score": 3, "rating": 4}) == 4.0
    assert history_rating({"rating": None, "value": 2.5}) == 2.5
    assert history_rating("4.0") is None


# =============================================================================
# Rating drivers
# =============================================================================

def test_drivers_weight_by_mentions():
    drivers = compute_rating_drivers(
        [{"title": "Editor", "count": 30}, {"title": "Widgets", "mentions": 10}],
        [{"title": "Sync", "count": 20}],
    )
    assert drivers.positive_mentions == 40
    assert drivers.negative_mentions == 20
    assert drivers.positive_percent == 67
    assert drivers.sentiment == "positive"


def test_drivers_without_mentions_are_neutral():
    drivers = compute_rating_drivers([], [])
    assert drivers.positive_percent == 50
    assert drivers.sentiment == "mixed"


@pytest.mark.parametrize("positive,negative,sentiment", [
    (3, 2, "positive"),
    (2, 3, "negative"),
    (1, 1, "mixed"),
])
def test_drivers_sentiment_boundaries(positive, negative, sentiment):
    drivers = compute_rating_drivers(["s"] * positive, ["i"] * negative)
    assert drivers.sentiment == sentiment


def test_mention_count_defaults_to_one():
    assert mention_count("text") == 1
    assert mention_count({"count": 0}) == 1
    assert mention_count({"mentions": "12"}) == 12


# =============================================================================
# Memo & overview
# =============================================================================

def test_memo_from_plain_string():
    memo = normalize_memo("  Users are happy.  ")
    assert memo.summary == "Users are happy."
    assert memo.key_findings == []


def test_memo_absent_or_blank():
    assert normalize_memo(None) is None
    assert normalize_memo("   ") is None
    assert normalize_memo(42) is None


def test_memo_alias_precedence():
    memo = normalize_memo({
        "text": "Summary text",
        "insights": ["Finding"],
        "pros": [{"title": "Fast"}],
        "cons": [{"title": "Crashy"}],
        "suggestions": [{"text": "Add export"}],
        "warnings": ["Heads up"],
        "reviews": [{"rating": 4, "body": "Nice"}],
    })
    assert memo.summary == "Summary text"
    assert memo.key_findings == ["Finding"]
    assert memo.strengths == [{"title": "Fast"}]
    assert memo.issues == [{"title": "Crashy"}]
    assert memo.recommendations == ["Add export"]
    assert memo.alerts == ["Heads up"]
    assert memo.sample_reviews[0].body == "Nice"


def test_overview_normalization(overview_payload):
    overview = normalize_overview(overview_payload)

    assert overview.metadata.name == "Notes Pro"
    assert overview.metadata.review_count == 0
    assert overview.metadata.category == "Productivity"
    assert overview.metadata.extras == {"bundleId": "com.acme.notes"}
    assert overview.rating_trend.direction == "up"
    assert overview.memo.summary.startswith("Users love")
    assert overview.memo.key_findings == ["Sync regressions since 3.1", "Widget praised"]
    assert overview.memo.sample_reviews[0].author == "sam"
    assert overview.rating_drivers.sentiment == "positive"
    assert overview.alerts == ["Rating dropped after 3.1.0"]
    assert overview.quick_insights == {"issues": [{"title": "Sync fails"}]}


def test_overview_from_flat_payload_without_memo():
    overview = normalize_overview({"name": "Flat App", "rating": 3.2})
    assert overview.metadata.name == "Flat App"
    assert overview.memo is None
    assert overview.rating_drivers is None
    assert overview.rating_trend is None


def test_overview_malformed_payload():
    overview = normalize_overview(["not", "a", "dict"])
    assert overview.metadata.name is None
    assert overview.rating_history == []


def test_issue_detail():
    detail = normalize_issue_detail({
        "issue": {"id": "sync", "title": "Sync fails", "severity": "high"},
        "impact": {"ratingImpact": -0.3},
        "timeline": [{"version": "3.1.0", "count": 12}, "junk"],
        "recommendations": ["Retry uploads"],
        "supportingReviews": [{"rating": 1, "text": "Lost data"}],
    })
    assert detail.issue.severity == "high"
    assert detail.impact == {"ratingImpact": -0.3}
    assert len(detail.timeline) == 1
    assert detail.supporting_reviews[0].body == "Lost data"


# =============================================================================
# Breakdowns & filters
# =============================================================================

@pytest.fixture
def issues():
    return normalize_many("issue", [
        {"title": "Crash", "severity": "critical"},
        {"title": "Sync", "severity": "high", "status": "resolved"},
        {"title": "Typo"},
        {"title": "Lag", "severity": "low", "status": "active"},
    ])


def test_severity_counts(issues):
    assert severity_counts(issues) == {"critical": 1, "high": 1, "medium": 1, "low": 1}


@pytest.mark.parametrize("selected,titles", [
    ("all", ["Crash", "Sync", "Typo", "Lag"]),
    ("active", ["Crash", "Typo", "Lag"]),
    ("resolved", ["Sync"]),
    ("critical", ["Crash"]),
    ("medium", ["Typo"]),
])
def test_filter_issues(issues, selected, titles):
    assert [i.title for i in filter_issues(issues, selected)] == titles


def test_request_breakdowns():
    requests = normalize_many("request", [
        {"title": "Dark mode", "priority": "high", "competitorHas": ["Bear"]},
        {"title": "Export"},
        {"title": "Tags", "priority": "low"},
    ])
    assert priority_counts(requests) == {"high": 1, "medium": 1, "low": 1, "competitive": 1}
    assert [r.title for r in filter_requests(requests, "competitive")] == ["Dark mode"]
    assert [r.title for r in filter_requests(requests, "medium")] == ["Export"]
    assert len(filter_requests(requests)) == 3
