"""
Canonical record normalizer.

Maps loosely-typed backend payloads onto the canonical pydantic records
using the alias tables in ``review_intel.extractors.aliases``. Every public
function here is pure and total: absent or malformed fields become None
or an empty collection, and nothing raises for bad payload data.

Example:
    >>> record = normalize("app_metadata", {"app": {"trackName": "Notes", "userRatingCount": 0}})
    >>> record.name, record.review_count
    ('Notes', 0)
"""

import json
import math
from typing import Any, Iterable, Optional

from pydantic import ValidationError as PydanticValidationError

from review_intel.extractors.aliases import (
    GENERIC_TEXT_KEYS,
    FieldRule,
    RecordMapping,
    get_mapping,
)
from review_intel.models.schemas import (
    AppMetadata,
    CanonicalRecord,
    CompetitorSummary,
    FeatureRequest,
    Issue,
    QueryResult,
    RoadmapItem,
    SampleReview,
    Strength,
    TimelineEntry,
)
from review_intel.utils.logger import get_logger

logger = get_logger(__name__)

RECORD_MODELS: dict[str, type[CanonicalRecord]] = {
    "app_metadata": AppMetadata,
    "review": SampleReview,
    "issue": Issue,
    "request": FeatureRequest,
    "strength": Strength,
    "competitor": CompetitorSummary,
    "timeline_entry": TimelineEntry,
    "roadmap_item": RoadmapItem,
    "query_result": QueryResult,
}

_MISSING = object()


# =============================================================================
# Coercions
# =============================================================================

def resolve_path(raw: Any, path: str) -> Any:
    """
    Read a dotted path such as ``genres.0`` from nested dicts and lists.

    Returns None when any segment is missing.
    """
    value = _resolve(raw, path)
    return None if value is _MISSING else value


def _resolve(raw: Any, path: str) -> Any:
    current = raw
    for segment in path.split("."):
        if isinstance(current, dict):
            if segment not in current:
                return _MISSING
            current = current[segment]
        elif isinstance(current, list) and segment.isdigit():
            index = int(segment)
            if index >= len(current):
                return _MISSING
            current = current[index]
        else:
            return _MISSING
    return current


def coerce_number(value: Any) -> Optional[float]:
    """Coerce a value to a finite float; booleans and junk give None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def coerce_list(value: Any) -> list[Any]:
    """
    Defensively coerce a value to a list.

    - list: items that are None or "" are dropped
    - dict: wrapped in a singleton list
    - string: JSON-parsed when it holds a list or object, otherwise split
      on comma, then semicolon, otherwise a single-item list
    - anything else: empty list
    """
    if isinstance(value, (list, tuple)):
        return [item for item in value if item is not None and item != ""]
    if isinstance(value, dict):
        return [value]
    if not isinstance(value, str):
        return []

    text = value.strip()
    if not text:
        return []

    try:
        parsed = json.loads(text)
    except ValueError:
        parsed = None
    if isinstance(parsed, list):
        return [item for item in parsed if item is not None and item != ""]
    if isinstance(parsed, dict):
        return [parsed]

    for delimiter in (",", ";"):
        if delimiter in text:
            return [part.strip() for part in text.split(delimiter) if part.strip()]
    return [text]


def safe_string(value: Any) -> str:
    """Render any value as display text without leaking object reprs."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (bool, int, float)):
        return str(value).lower() if isinstance(value, bool) else str(value)
    if isinstance(value, (list, tuple)):
        return ", ".join(text for text in (safe_string(item) for item in value) if text)
    if isinstance(value, dict):
        for key in GENERIC_TEXT_KEYS:
            text = value.get(key)
            if isinstance(text, str) and text:
                return text
        try:
            dumped = json.dumps(value, default=str)
        except (TypeError, ValueError):
            return ""
        return dumped if len(dumped) < 200 else ""
    return ""


def extract_text(value: Any, keys: Iterable[str] = GENERIC_TEXT_KEYS) -> str:
    """
    Pull human-readable text out of a string or nested object.

    Sub-fields are tried in the order given; candidates that look like
    serialized structures (leading ``{`` or ``[``) are rejected.
    """
    if value is None or value == "":
        return ""
    if isinstance(value, str):
        return value
    if not isinstance(value, dict):
        return safe_string(value)

    for key in keys:
        text = safe_string(value.get(key)).strip()
        if text and not text.startswith(("{", "[")):
            return text
    return ""


# =============================================================================
# Field Strategies
# =============================================================================

def _candidates(raw: dict[str, Any], rule: FieldRule) -> Iterable[Any]:
    for path in rule.candidates:
        value = _resolve(raw, path)
        if value is not _MISSING and value is not None:
            yield value


def _within(number: float, bounds: Optional[tuple[Optional[float], Optional[float]]]) -> bool:
    if bounds is None:
        return True
    low, high = bounds
    return (low is None or number >= low) and (high is None or number <= high)


def _apply_rule(raw: dict[str, Any], rule: FieldRule) -> Any:
    strategy = rule.strategy

    if strategy == "text":
        for value in _candidates(raw, rule):
            if isinstance(value, (dict, list, tuple)):
                continue
            text = safe_string(value).strip()
            if text:
                return text
        return rule.default

    if strategy in ("number", "integer"):
        # only the first non-null candidate is considered
        for value in _candidates(raw, rule):
            number = coerce_number(value)
            if number is None or not _within(number, rule.bounds):
                return rule.default
            return int(number) if strategy == "integer" else number
        return rule.default

    if strategy == "scalar":
        for value in _candidates(raw, rule):
            if isinstance(value, bool):
                continue
            if isinstance(value, (int, float)) and math.isfinite(value):
                return value
            if isinstance(value, str) and value.strip():
                return value.strip()
        return rule.default

    if strategy == "list":
        for value in _candidates(raw, rule):
            items = coerce_list(value)
            if rule.text_keys:
                items = [text for text in (extract_text(item, rule.text_keys) for item in items) if text]
            return items
        return [] if rule.default is None else list(rule.default)

    if strategy == "mapping":
        for value in _candidates(raw, rule):
            if isinstance(value, dict):
                return value
        return {} if rule.default is None else dict(rule.default)

    if strategy == "record":
        for value in _candidates(raw, rule):
            if isinstance(value, dict) and rule.record_kind:
                return normalize(rule.record_kind, value)
        return rule.default

    # raw
    for value in _candidates(raw, rule):
        return value
    return rule.default


# =============================================================================
# Public API
# =============================================================================

def unwrap(raw: Any, mapping: RecordMapping) -> Any:
    """Descend into the first container key holding an object, if any."""
    if not isinstance(raw, dict):
        return raw
    for key in mapping.containers:
        nested = raw.get(key)
        if isinstance(nested, dict):
            return nested
    return raw


def normalize_fields(kind: str, raw: Any) -> dict[str, Any]:
    """Resolve canonical field values and extras for ``raw`` as a plain dict."""
    mapping = get_mapping(kind)
    source = unwrap(raw, mapping)
    if not isinstance(source, dict):
        return {"extras": {}}

    values = {rule.field: _apply_rule(source, rule) for rule in mapping.rules}
    consumed = mapping.consumed_keys
    values["extras"] = {key: value for key, value in source.items() if key not in consumed}
    return values


def normalize(kind: str, raw: Any) -> CanonicalRecord:
    """
    Normalize a raw payload into the canonical record for ``kind``.

    Args:
        kind: Registered record kind (see ``MAPPING_REGISTRY``)
        raw: Any JSON-decoded value; non-objects give an empty record

    Returns:
        The canonical pydantic record

    Raises:
        KeyError: Only for an unregistered kind
    """
    model = RECORD_MODELS[get_mapping(kind).kind]
    values = normalize_fields(kind, raw)
    try:
        return model.model_validate(values)
    except PydanticValidationError as e:
        logger.warning(
            "Malformed record degraded to extras",
            kind=kind,
            errors=e.error_count(),
        )
        return model(extras=values.get("extras", {}))


def normalize_many(kind: str, raw_items: Any) -> list[CanonicalRecord]:
    """Normalize every object in a list-like payload, skipping non-objects."""
    return [normalize(kind, item) for item in coerce_list(raw_items) if isinstance(item, dict)]


__all__ = [
    "RECORD_MODELS",
    "resolve_path",
    "coerce_number",
    "coerce_list",
    "safe_string",
    "extract_text",
    "unwrap",
    "normalize_fields",
    "normalize",
    "normalize_many",
]
