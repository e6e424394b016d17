"""
Temporal ordinal resolution for timeline entries.

Timeline periods arrive keyed by ISO dates, "YYYY-MM" strings, free-form
month names or semantic-version strings. ``resolve_ordinal`` maps any of
them to a sortable number so mixed payloads order consistently.

Resolution order (first match wins):
    1. Full date field (releaseDate, release_date, date) -> epoch milliseconds
    2. "YYYY-MM" / "YYYY/MM" in month, period or _key -> first of that month
    3. Free-form month string in the same fields -> best-effort calendar parse
    4. Version string (version, _key), optional "v" -> MAJOR*10000 + MINOR*100 + PATCH
    5. Otherwise 0
"""

import re
from datetime import datetime, timezone
from typing import Any, Optional

from dateutil import parser as date_parser

DATE_FIELDS = ("releaseDate", "release_date", "date")
MONTH_FIELDS = ("month", "period", "_key")
VERSION_FIELDS = ("version", "_key")

_YEAR_MONTH = re.compile(r"^(\d{4})[-/](\d{1,2})(?!\d)")
_MONTH_NAME = re.compile(
    r"\b(jan|feb|mar|apr|may|jun|jul|aug|sep|sept|oct|nov|dec)[a-z]*\b",
    re.IGNORECASE,
)
_LEADING_DIGITS = re.compile(r"^(\d+)")
_VERSION_SHAPE = re.compile(r"^v?\d+(\.\d*)*", re.IGNORECASE)
_DEFAULT_DAY = datetime(2000, 1, 1)


def _epoch_ms(moment: datetime) -> float:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.timestamp() * 1000


def parse_date(value: Any) -> Optional[datetime]:
    """Parse an explicit date string; naive results are treated as UTC."""
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        pass
    try:
        return date_parser.isoparse(text)
    except (ValueError, OverflowError):
        pass
    try:
        return date_parser.parse(text, default=_DEFAULT_DAY)
    except (ValueError, OverflowError):
        return None


def parse_year_month(value: Any) -> Optional[datetime]:
    """Parse "YYYY-MM" (or "YYYY/MM") to the first day of that month."""
    if not isinstance(value, str):
        return None
    match = _YEAR_MONTH.match(value.strip())
    if not match:
        return None
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        return None
    return datetime(year, month, 1, tzinfo=timezone.utc)


def parse_month_name(value: Any) -> Optional[datetime]:
    """Best-effort parse of strings such as "January 2025" or "Mar 2024"."""
    if not isinstance(value, str) or not _MONTH_NAME.search(value):
        return None
    try:
        return date_parser.parse(value.strip(), default=_DEFAULT_DAY, fuzzy=True)
    except (ValueError, OverflowError):
        return None


def version_ordinal(value: Any) -> Optional[float]:
    """
    Map a version string to ``MAJOR*10000 + MINOR*100 + PATCH``.

    Each component contributes its leading digits (or 0), so pre-release
    tags such as "1.2.0-beta" are ignored.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not _VERSION_SHAPE.match(text):
        return None
    if text[:1] in ("v", "V"):
        text = text[1:]

    parts = text.split(".")
    components = []
    for part in (parts + ["0", "0"])[:3]:
        match = _LEADING_DIGITS.match(part)
        components.append(int(match.group(1)) if match else 0)
    major, minor, patch = components
    return float(major * 10000 + minor * 100 + patch)


def resolve_ordinal(entry: Any) -> float:
    """
    Derive a sortable ordinal for a raw timeline entry.

    Total over any input: unrecognized shapes sink to 0.

    Example:
        >>> resolve_ordinal({"version": "v1.2.0"}) < resolve_ordinal({"version": "1.3.0"})
        True
    """
    if not isinstance(entry, dict):
        return 0.0

    for field in DATE_FIELDS:
        moment = parse_date(entry.get(field))
        if moment is not None:
            return _epoch_ms(moment)

    for field in MONTH_FIELDS:
        moment = parse_year_month(entry.get(field))
        if moment is not None:
            return _epoch_ms(moment)

    for field in MONTH_FIELDS:
        moment = parse_month_name(entry.get(field))
        if moment is not None:
            return _epoch_ms(moment)

    for field in VERSION_FIELDS:
        ordinal = version_ordinal(entry.get(field))
        if ordinal is not None:
            return ordinal

    return 0.0


__all__ = [
    "parse_date",
    "parse_year_month",
    "parse_month_name",
    "version_ordinal",
    "resolve_ordinal",
]
