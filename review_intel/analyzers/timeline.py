"""
Timeline reconstruction engine.

Turns a raw regression-timeline payload into two sequences:
    - display: entries newest first, each with a guaranteed label
    - chart_points: (label, rating) pairs oldest first, gaps dropped

The display sequence is always the exact reverse of the ascending order
the chart is built from. Entries without a usable label or numeric rating
are dropped from the chart only.
"""

from typing import Any, Optional, Union

from review_intel.analyzers.temporal import resolve_ordinal
from review_intel.extractors.record_normalizer import normalize, safe_string
from review_intel.models.schemas import ChartPoint, Timeline, TimelineEntry, TimelineView
from review_intel.utils.logger import get_logger

logger = get_logger(__name__)

VIEW_CONTAINER_KEYS: dict[str, tuple[str, ...]] = {
    TimelineView.MONTHLY.value: ("monthlyView", "monthly", "months", "monthlyTimeline"),
    TimelineView.VERSION.value: ("versionView", "versions", "releases"),
}
GENERIC_CONTAINER_KEYS = ("timeline", "versions", "data", "entries", "items", "history", "records", "results")
METADATA_KEYS = frozenset({"viewBy", "status", "message", "error", "metadata", "app"})

DISPLAY_LABEL_FIELDS: dict[str, tuple[str, ...]] = {
    TimelineView.MONTHLY.value: ("month", "period", "date", "_key", "version"),
    TimelineView.VERSION.value: ("version", "date", "_key", "month"),
}
CHART_LABEL_FIELDS: dict[str, tuple[str, ...]] = {
    TimelineView.MONTHLY.value: ("month", "period", "date", "_key"),
    TimelineView.VERSION.value: ("version", "date", "_key"),
}
SYNTHETIC_LABEL = {
    TimelineView.MONTHLY.value: "Month",
    TimelineView.VERSION.value: "Version",
}

MONTHLY_FALLBACK_NOTICE = "Monthly aggregation not available. Showing version-based data."


def _view_value(view: Union[str, TimelineView]) -> str:
    return TimelineView(view).value


def _first_list(payload: dict[str, Any], keys: tuple[str, ...]) -> list[Any]:
    for key in keys:
        value = payload.get(key)
        if isinstance(value, list) and value:
            return value
    return []


def locate_entries(payload: Any, view: Union[str, TimelineView]) -> list[dict[str, Any]]:
    """
    Find the raw entry list inside a timeline payload.

    Tries view-specific containers, then a bare list payload, then generic
    containers, then the payload's own object-valued keys (tagged with
    ``_key``). Returns an empty list when nothing matches.
    """
    view_value = _view_value(view)
    entries: list[Any] = []

    if isinstance(payload, dict):
        entries = _first_list(payload, VIEW_CONTAINER_KEYS[view_value])

    if not entries:
        if isinstance(payload, list):
            entries = payload
        elif isinstance(payload, dict):
            entries = _first_list(payload, GENERIC_CONTAINER_KEYS)

    if not entries and isinstance(payload, dict):
        entries = [
            {**value, "_key": key}
            for key, value in payload.items()
            if key not in METADATA_KEYS and isinstance(value, dict)
        ]

    return [entry for entry in entries if isinstance(entry, dict)]


def _first_label(raw: dict[str, Any], fields: tuple[str, ...]) -> Optional[str]:
    for field in fields:
        text = safe_string(raw.get(field)).strip()
        if text:
            return text
    return None


def display_label(raw: dict[str, Any], view: Union[str, TimelineView], position: int) -> str:
    """Label for a display entry; falls back to "Month N" / "Version N" (1-based)."""
    view_value = _view_value(view)
    return _first_label(raw, DISPLAY_LABEL_FIELDS[view_value]) or f"{SYNTHETIC_LABEL[view_value]} {position + 1}"


def chart_label(raw: dict[str, Any], view: Union[str, TimelineView]) -> Optional[str]:
    return _first_label(raw, CHART_LABEL_FIELDS[_view_value(view)])


def _is_version_shaped(raw: dict[str, Any]) -> bool:
    return not raw.get("month") and not raw.get("period") and bool(raw.get("version"))


def build_timeline(payload: Any, view: Union[str, TimelineView] = TimelineView.VERSION) -> Timeline:
    """
    Reconstruct the display and chart sequences for a timeline payload.

    Args:
        payload: Raw JSON from the regression-timeline endpoint
        view: "version" or "monthly"

    Returns:
        Timeline with display (newest first), chart_points (oldest first)
        and an optional notice when monthly data is really per-version
    """
    view_value = _view_value(view)
    raw_entries = locate_entries(payload, view_value)
    if not raw_entries:
        logger.debug("No timeline entries found", view=view_value)
        return Timeline(view=view_value)

    # sorted() is stable, so equal ordinals keep payload order
    ascending = sorted(
        ((raw, resolve_ordinal(raw), normalize("timeline_entry", raw)) for raw in raw_entries),
        key=lambda item: item[1],
    )
    descending = list(reversed(ascending))

    display: list[TimelineEntry] = []
    for position, (raw, ordinal, entry) in enumerate(descending):
        display.append(entry.model_copy(update={
            "period_key": display_label(raw, view_value, position),
            "ordinal": ordinal,
        }))

    chart_points: list[ChartPoint] = []
    for raw, _, entry in ascending:
        label = chart_label(raw, view_value)
        if label and entry.rating is not None:
            chart_points.append(ChartPoint(label=label, rating=entry.rating))

    notice = None
    if view_value == TimelineView.MONTHLY.value and _is_version_shaped(descending[0][0]):
        notice = MONTHLY_FALLBACK_NOTICE
        logger.warning("Monthly timeline fell back to version data", entries=len(display))

    logger.debug(
        "Timeline built",
        view=view_value,
        entries=len(display),
        chart_points=len(chart_points),
    )
    return Timeline(view=view_value, display=display, chart_points=chart_points, notice=notice)


__all__ = [
    "MONTHLY_FALLBACK_NOTICE",
    "locate_entries",
    "display_label",
    "chart_label",
    "build_timeline",
]
