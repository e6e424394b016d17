"""
Versioned alias tables for backend payload normalization.

The backend has shipped several payload schemas over time, so the same
canonical field can arrive under five or more names. Each record kind has
one RecordMapping listing, per canonical field, the ordered source paths
to try. The first candidate that yields a usable value wins, so resolution
order is fixed by this table alone.

Strategies:
    - text: first present, non-empty scalar, stringified
    - number / integer: first value coercible to a number (0 is valid)
    - scalar: first number or non-empty string, kept as-is
    - list: first present value, coerced defensively to a list
    - mapping: first present dict
    - record: first present dict, normalized as another record kind
    - raw: first non-None value, untouched

Bump ``ALIAS_TABLE_VERSION`` whenever a candidate is added or reordered.
"""

from dataclasses import dataclass
from typing import Any, Optional

ALIAS_TABLE_VERSION = 3


@dataclass(frozen=True)
class FieldRule:
    """Resolution rule for one canonical field."""
    field: str
    candidates: tuple[str, ...]
    strategy: str = "text"
    default: Any = None
    bounds: Optional[tuple[Optional[float], Optional[float]]] = None
    text_keys: tuple[str, ...] = ()
    record_kind: Optional[str] = None

    def __repr__(self) -> str:
        return f"FieldRule({self.field}, {self.strategy}, {list(self.candidates)})"


@dataclass(frozen=True)
class RecordMapping:
    """Alias table for one canonical record kind."""
    kind: str
    version: int
    rules: tuple[FieldRule, ...]
    containers: tuple[str, ...] = ()

    @property
    def consumed_keys(self) -> frozenset[str]:
        """Top-level source keys read by any rule; everything else is an extra."""
        return frozenset(
            candidate.split(".", 1)[0]
            for rule in self.rules
            for candidate in rule.candidates
        )


RATING_BOUNDS = (0.0, 5.0)
COUNT_BOUNDS = (0.0, None)

# Text-bearing sub-fields, in precedence order, for free-text extraction
GENERIC_TEXT_KEYS = ("title", "name", "text", "description", "message", "en", "value")
ISSUE_TEXT_KEYS = ("title", "name", "issueId", "issue", "text", "description", "message", "summary")
EVENT_TEXT_KEYS = ("description", "text", "event", "name", "title", "message", "summary", "content")
SWOT_TEXT_KEYS = ("title", "name", "text", "description", "message")


# =============================================================================
# Record Mappings
# =============================================================================

APP_METADATA_MAPPING = RecordMapping(
    kind="app_metadata",
    version=ALIAS_TABLE_VERSION,
    containers=("metadata", "app", "appMetadata"),
    rules=(
        FieldRule("name", ("name", "trackName", "appName")),
        FieldRule("icon_url", ("iconUrl", "icon", "artworkUrl512", "artworkUrl100", "artworkUrl60", "artwork")),
        FieldRule(
            "rating",
            ("rating", "averageUserRating", "averageUserRatingForCurrentVersion", "stars"),
            strategy="number",
            bounds=RATING_BOUNDS,
        ),
        FieldRule(
            "review_count",
            ("reviewCount", "userRatingCount", "userRatingCountForCurrentVersion", "ratingCount", "reviews"),
            strategy="integer",
            bounds=COUNT_BOUNDS,
        ),
        FieldRule("developer", ("developer", "sellerName", "artistName", "seller")),
        FieldRule("category", ("category", "primaryGenreName", "genre", "genres.0")),
        FieldRule("version", ("version", "currentVersion", "bundleShortVersion")),
        FieldRule("release_date", ("releaseDate", "currentVersionReleaseDate", "updatedDate")),
        FieldRule("price", ("price", "formattedPrice"), strategy="scalar"),
        FieldRule("description", ("description", "trackDescription", "desc")),
    ),
)

REVIEW_MAPPING = RecordMapping(
    kind="review",
    version=ALIAS_TABLE_VERSION,
    rules=(
        FieldRule("rating", ("rating", "stars", "score"), strategy="integer", bounds=RATING_BOUNDS),
        FieldRule("title", ("title", "subject")),
        FieldRule("body", ("body", "text", "content")),
        FieldRule("version", ("version", "appVersion")),
        FieldRule("date", ("date", "updated", "createdAt")),
        FieldRule("author", ("author", "userName", "reviewer")),
    ),
)

ISSUE_MAPPING = RecordMapping(
    kind="issue",
    version=ALIAS_TABLE_VERSION,
    rules=(
        FieldRule("id", ("id", "issueId")),
        FieldRule("title", ("title", "name", "issue")),
        FieldRule("description", ("description", "summary", "text")),
        FieldRule("severity", ("severity", "level"), default="medium"),
        FieldRule("count", ("count", "mentions", "reportCount"), strategy="integer", bounds=COUNT_BOUNDS),
        FieldRule("first_seen", ("firstSeen", "first_seen")),
        FieldRule("status", ("status",)),
        FieldRule("impact_score", ("impactScore", "impact_score"), strategy="number"),
        FieldRule("sample_review", ("sampleReview", "sample_review"), strategy="record", record_kind="review"),
    ),
)

REQUEST_MAPPING = RecordMapping(
    kind="request",
    version=ALIAS_TABLE_VERSION,
    rules=(
        FieldRule("id", ("id", "requestId")),
        FieldRule("title", ("title", "name", "feature", "request")),
        FieldRule("description", ("description", "summary", "text")),
        FieldRule("priority", ("priority",), default="medium"),
        FieldRule("count", ("count", "mentions", "requestCount"), strategy="integer", bounds=COUNT_BOUNDS),
        FieldRule("demand", ("demand", "demandLevel")),
        FieldRule("competitor_has", ("competitorHas", "competitor_has"), strategy="list"),
    ),
)

STRENGTH_MAPPING = RecordMapping(
    kind="strength",
    version=ALIAS_TABLE_VERSION,
    rules=(
        FieldRule("id", ("id", "strengthId")),
        FieldRule("title", ("title", "name", "strength")),
        FieldRule("description", ("description", "summary", "text")),
        FieldRule("count", ("count", "mentions"), strategy="integer", bounds=COUNT_BOUNDS),
        FieldRule("sentiment", ("sentiment",), default="positive"),
    ),
)

COMPETITOR_MAPPING = RecordMapping(
    kind="competitor",
    version=ALIAS_TABLE_VERSION,
    rules=(
        FieldRule("app_id", ("appId", "id", "trackId")),
        FieldRule("name", ("name", "trackName", "appName")),
        FieldRule("icon_url", ("iconUrl", "icon", "artworkUrl512", "artworkUrl100", "artworkUrl60")),
        FieldRule("rating", ("rating", "averageUserRating"), strategy="number", bounds=RATING_BOUNDS),
        FieldRule(
            "review_count",
            ("reviewCount", "userRatingCount"),
            strategy="integer",
            bounds=COUNT_BOUNDS,
        ),
        FieldRule("category", ("category", "primaryGenreName")),
        FieldRule("developer", ("developer", "sellerName", "artistName")),
    ),
)

TIMELINE_ENTRY_MAPPING = RecordMapping(
    kind="timeline_entry",
    version=ALIAS_TABLE_VERSION,
    rules=(
        FieldRule("period_key", ("version", "month", "period", "date", "_key"), default=""),
        FieldRule("rating", ("rating", "avgRating", "averageRating"), strategy="number"),
        FieldRule("rating_change", ("ratingChange", "change"), strategy="number", default=0.0),
        FieldRule(
            "introduced_issues",
            ("introduced", "newIssues"),
            strategy="list",
            text_keys=ISSUE_TEXT_KEYS,
        ),
        FieldRule(
            "resolved_issues",
            ("resolved", "fixedIssues"),
            strategy="list",
            text_keys=ISSUE_TEXT_KEYS,
        ),
        FieldRule("key_events", ("keyEvents", "events"), strategy="list", text_keys=EVENT_TEXT_KEYS),
        FieldRule("review_count", ("reviewCount", "reviews"), strategy="integer", bounds=COUNT_BOUNDS),
        FieldRule("summary", ("summary", "description"), default=""),
        FieldRule("release_date", ("releaseDate", "release_date")),
    ),
)

ROADMAP_ITEM_MAPPING = RecordMapping(
    kind="roadmap_item",
    version=ALIAS_TABLE_VERSION,
    rules=(
        FieldRule("id", ("id",)),
        FieldRule("title", ("title", "name")),
        FieldRule("description", ("description", "summary")),
        FieldRule("priority", ("priority",)),
        FieldRule("category", ("category", "type")),
        FieldRule("impact", ("impact",)),
        FieldRule("recommendation", ("recommendation", "action")),
        FieldRule("competitive_context", ("competitiveContext", "competitive_context")),
        FieldRule("issue_id", ("issueId", "issue_id")),
        FieldRule("evidence", ("evidence",), strategy="mapping"),
    ),
)

QUERY_RESULT_MAPPING = RecordMapping(
    kind="query_result",
    version=ALIAS_TABLE_VERSION,
    rules=(
        FieldRule("answer", ("answer", "response", "text")),
        FieldRule("sources", ("sources", "references"), strategy="list"),
        FieldRule("confidence", ("confidence",), strategy="scalar"),
    ),
)


# =============================================================================
# Registry
# =============================================================================

MAPPING_REGISTRY: dict[str, RecordMapping] = {
    mapping.kind: mapping
    for mapping in (
        APP_METADATA_MAPPING,
        REVIEW_MAPPING,
        ISSUE_MAPPING,
        REQUEST_MAPPING,
        STRENGTH_MAPPING,
        COMPETITOR_MAPPING,
        TIMELINE_ENTRY_MAPPING,
        ROADMAP_ITEM_MAPPING,
        QUERY_RESULT_MAPPING,
    )
}


def get_mapping(kind: str) -> RecordMapping:
    """
    Get the alias table for a record kind.

    Raises:
        KeyError: If the kind is not registered
    """
    if kind not in MAPPING_REGISTRY:
        available = ", ".join(MAPPING_REGISTRY.keys())
        raise KeyError(f"Record kind '{kind}' not found. Available: {available}")
    return MAPPING_REGISTRY[kind]


__all__ = [
    "ALIAS_TABLE_VERSION",
    "FieldRule",
    "RecordMapping",
    "GENERIC_TEXT_KEYS",
    "ISSUE_TEXT_KEYS",
    "EVENT_TEXT_KEYS",
    "SWOT_TEXT_KEYS",
    "MAPPING_REGISTRY",
    "get_mapping",
]
