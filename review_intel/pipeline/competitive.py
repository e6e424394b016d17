"""
Competitive intelligence pipeline using LangGraph.

Sequences competitor discovery, then fetches the SWOT analysis and the
competitor list in parallel, then assembles a CompetitiveAnalysis.

Graph structure:
    discover -> fetch_analysis -> assemble -> END

Failure policy:
    - Discovery is idempotent on the backend, so a failed discovery is
      recorded as ``discovery_error`` and the graph continues.
    - The two analysis fetches join on all: a failing branch yields None
      and never aborts its sibling.
    - Missing data is an empty analysis, not an error.
"""

import asyncio
import operator
import time
from functools import wraps
from typing import Annotated, Any, Callable, Optional, TypedDict
from uuid import uuid4

from langgraph.graph import END, StateGraph

from review_intel.config.settings import Settings, get_settings
from review_intel.extractors.aliases import SWOT_TEXT_KEYS
from review_intel.extractors.record_normalizer import extract_text, normalize
from review_intel.models.schemas import (
    CompetitiveAnalysis,
    CompetitorSummary,
    DiscoveryResult,
    FeatureMatrixRow,
    SWOTAnalysis,
)
from review_intel.services.api_client import ReviewBackend
from review_intel.utils.logger import EventHook, emit_event, get_logger

logger = get_logger(__name__)

COMPETITOR_LIST_KEYS = ("competitors", "topCompetitors", "discovered")
SWOT_QUADRANTS = ("strengths", "weaknesses", "opportunities", "threats")
FEATURE_MATRIX_KEYS = ("featureMatrix", "featureComparison", "features")
INSIGHT_KEYS = ("strategicInsights", "insights", "recommendations")
MATRIX_COMPETITOR_COLUMNS = 3


# =============================================================================
# State Definition
# =============================================================================

class CompetitiveStateDict(TypedDict, total=False):
    """LangGraph state for one competitive-analysis run."""
    run_id: str
    app_id: str
    discovery: Any
    discovery_error: Optional[str]
    swot_raw: Any
    competitors_raw: Any
    branch_errors: Annotated[list[str], operator.add]
    analysis: Optional[dict[str, Any]]
    step_timings: dict[str, int]


# =============================================================================
# Result Assembly
# =============================================================================

def _first_list(payload: Any, keys: tuple[str, ...]) -> list[Any]:
    if not isinstance(payload, dict):
        return []
    for key in keys:
        value = payload.get(key)
        if isinstance(value, list) and value:
            return value
    return []


def extract_competitor_list(payload: Any) -> list[dict[str, Any]]:
    """Raw competitor objects from a competitors or discovery payload."""
    items = _first_list(payload, COMPETITOR_LIST_KEYS)
    if not items and isinstance(payload, list):
        items = payload
    return [item for item in items if isinstance(item, dict)]


def resolve_competitors(competitors_raw: Any, swot_raw: Any) -> list[CompetitorSummary]:
    """
    Competitors from the dedicated list first, then SWOT-embedded ones.

    First non-empty source wins.
    """
    items = extract_competitor_list(competitors_raw)
    if not items:
        items = [item for item in _first_list(swot_raw, COMPETITOR_LIST_KEYS) if isinstance(item, dict)]
    return [normalize("competitor", item) for item in items]


def _swot_container(swot_raw: Any) -> dict[str, Any]:
    if not isinstance(swot_raw, dict):
        return {}
    nested = swot_raw.get("swot")
    if isinstance(nested, dict) and nested:
        return nested
    analysis = swot_raw.get("analysis")
    if isinstance(analysis, dict) and isinstance(analysis.get("swot"), dict) and analysis["swot"]:
        return analysis["swot"]
    return swot_raw


def _texts(items: list[Any]) -> list[str]:
    return [text for text in (extract_text(item, SWOT_TEXT_KEYS) for item in items) if text]


def resolve_swot(swot_raw: Any) -> SWOTAnalysis:
    """SWOT quadrants from ``swot``, ``analysis.swot`` or the top level."""
    container = _swot_container(swot_raw)
    top_level = swot_raw if isinstance(swot_raw, dict) else {}
    quadrants = {}
    for quadrant in SWOT_QUADRANTS:
        items = container.get(quadrant)
        if not isinstance(items, list) or not items:
            items = top_level.get(quadrant)
        quadrants[quadrant] = _texts(items if isinstance(items, list) else [])
    return SWOTAnalysis(**quadrants)


def _verdict(insight: str) -> str:
    lowered = insight.lower()
    if "gap" in lowered:
        return "gap"
    if "win" in lowered or "advantage" in lowered:
        return "advantage"
    return "neutral"


def resolve_feature_matrix(
    swot_raw: Any,
    competitors: list[CompetitorSummary],
) -> list[FeatureMatrixRow]:
    """Feature comparison rows against the first three competitors."""
    rows = []
    columns = competitors[:MATRIX_COMPETITOR_COLUMNS]
    for row in _first_list(swot_raw, FEATURE_MATRIX_KEYS):
        if not isinstance(row, dict):
            continue
        listed = row.get("competitors") if isinstance(row.get("competitors"), list) else []
        flags = []
        for j, competitor in enumerate(columns):
            has_feature = (
                row.get(f"comp{j}")
                or (competitor.app_id is not None and row.get(competitor.app_id))
                or (j < len(listed) and listed[j])
            )
            flags.append(bool(has_feature))
        insight = extract_text(row.get("insight") or row.get("note")) or None
        rows.append(FeatureMatrixRow(
            feature=extract_text(row.get("feature") or row.get("name")),
            main_app=bool(row.get("mainApp") or row.get("you") or row.get("hasFeature")),
            competitors=flags,
            insight=insight,
            verdict=_verdict(insight) if insight else "neutral",
        ))
    return rows


def resolve_insights(swot_raw: Any) -> list[str]:
    return _texts(_first_list(swot_raw, INSIGHT_KEYS))


def assemble_competitive_analysis(
    swot_raw: Any,
    competitors_raw: Any,
    discovery_raw: Any = None,
    discovery_error: Optional[str] = None,
) -> CompetitiveAnalysis:
    """Combine both (possibly absent) branch results into one analysis."""
    competitors = resolve_competitors(competitors_raw, swot_raw)
    discovery = None
    if discovery_raw is not None:
        discovery = DiscoveryResult(
            competitors=[normalize("competitor", item) for item in extract_competitor_list(discovery_raw)]
        )
    return CompetitiveAnalysis(
        competitors=competitors,
        swot=resolve_swot(swot_raw),
        feature_matrix=resolve_feature_matrix(swot_raw, competitors),
        strategic_insights=resolve_insights(swot_raw),
        discovery=discovery,
        discovery_error=discovery_error,
        swot_available=swot_raw is not None,
        competitors_available=competitors_raw is not None,
    )


# =============================================================================
# Node Decorator
# =============================================================================

def track_timing(func: Callable):
    """Decorator to track node execution timing."""
    @wraps(func)
    async def wrapper(self, state: CompetitiveStateDict) -> dict[str, Any]:
        start_time = time.time()
        node_name = func.__name__.strip("_").replace("_node", "")

        logger.info(f"Starting node: {node_name}", run_id=state.get("run_id"))
        result = await func(self, state)
        duration_ms = int((time.time() - start_time) * 1000)

        step_timings = dict(state.get("step_timings") or {})
        step_timings[node_name] = duration_ms
        result["step_timings"] = step_timings

        logger.info(
            f"Completed node: {node_name}",
            run_id=state.get("run_id"),
            duration_ms=duration_ms,
        )
        return result

    return wrapper


# =============================================================================
# Pipeline
# =============================================================================

class CompetitivePipeline:
    """
    Discovery-then-analysis workflow for an app's competitors.

    Example:
        >>> async with ReviewIntelClient() as client:
        ...     analysis = await CompetitivePipeline(client).run("389801252")
        ...     print(analysis.has_data)
    """

    def __init__(
        self,
        backend: ReviewBackend,
        settings: Optional[Settings] = None,
        on_event: Optional[EventHook] = None,
    ):
        self.backend = backend
        self.settings = settings or get_settings()
        self.on_event = on_event
        self._graph = self._build_graph()

    def _build_graph(self):
        graph = StateGraph(CompetitiveStateDict)

        graph.add_node("discover", self._discover_node)
        graph.add_node("fetch_analysis", self._fetch_analysis_node)
        graph.add_node("assemble", self._assemble_node)

        graph.set_entry_point("discover")
        graph.add_edge("discover", "fetch_analysis")
        graph.add_edge("fetch_analysis", "assemble")
        graph.add_edge("assemble", END)

        return graph.compile()

    # =========================================================================
    # Node Implementations
    # =========================================================================

    @track_timing
    async def _discover_node(self, state: CompetitiveStateDict) -> dict[str, Any]:
        app_id = state["app_id"]
        try:
            discovery = await self.backend.discover_competitors(app_id)
        except Exception as e:
            # Already-discovered apps answer with an error; analysis still proceeds
            error = str(e) or type(e).__name__
            emit_event(
                self.on_event,
                "competitors.discovery_failed",
                level="warning",
                app_id=app_id,
                error=error,
            )
            return {"discovery": None, "discovery_error": error}

        emit_event(self.on_event, "competitors.discovered", app_id=app_id)
        return {"discovery": discovery, "discovery_error": None}

    async def _isolated(self, branch: str, app_id: str, fetch: Callable) -> tuple[Any, Optional[str]]:
        try:
            return await fetch(app_id), None
        except Exception as e:
            error = f"{branch}: {str(e) or type(e).__name__}"
            emit_event(
                self.on_event,
                "competitors.branch_failed",
                level="warning",
                app_id=app_id,
                branch=branch,
                error=error,
            )
            return None, error

    @track_timing
    async def _fetch_analysis_node(self, state: CompetitiveStateDict) -> dict[str, Any]:
        app_id = state["app_id"]
        (swot_raw, swot_error), (competitors_raw, competitors_error) = await asyncio.gather(
            self._isolated("swot", app_id, self.backend.get_swot),
            self._isolated("competitors", app_id, self.backend.get_competitors),
        )
        return {
            "swot_raw": swot_raw,
            "competitors_raw": competitors_raw,
            "branch_errors": [error for error in (swot_error, competitors_error) if error],
        }

    @track_timing
    async def _assemble_node(self, state: CompetitiveStateDict) -> dict[str, Any]:
        analysis = assemble_competitive_analysis(
            state.get("swot_raw"),
            state.get("competitors_raw"),
            discovery_raw=state.get("discovery"),
            discovery_error=state.get("discovery_error"),
        )
        emit_event(
            self.on_event,
            "competitors.assembled",
            app_id=state["app_id"],
            competitors=len(analysis.competitors),
            has_swot=analysis.has_swot_data,
            feature_rows=len(analysis.feature_matrix),
            has_data=analysis.has_data,
        )
        return {"analysis": analysis.model_dump()}

    # =========================================================================
    # Execution
    # =========================================================================

    async def run(self, app_id: str, run_id: Optional[str] = None) -> CompetitiveAnalysis:
        """
        Run discovery and the parallel analysis fetches for an app.

        Args:
            app_id: Cleaned App Store id
            run_id: Optional run ID for log correlation

        Returns:
            CompetitiveAnalysis, possibly empty
        """
        run_id = run_id or str(uuid4())
        initial_state: CompetitiveStateDict = {
            "run_id": run_id,
            "app_id": app_id,
            "discovery": None,
            "discovery_error": None,
            "swot_raw": None,
            "competitors_raw": None,
            "branch_errors": [],
            "analysis": None,
            "step_timings": {},
        }

        logger.info("Starting competitive pipeline", run_id=run_id, app_id=app_id)
        final_state = await self._graph.ainvoke(initial_state)

        logger.info(
            "Competitive pipeline completed",
            run_id=run_id,
            app_id=app_id,
            branch_errors=final_state.get("branch_errors", []),
            duration_ms=sum(final_state.get("step_timings", {}).values()),
        )
        return CompetitiveAnalysis(**(final_state.get("analysis") or {}))


__all__ = [
    "CompetitiveStateDict",
    "extract_competitor_list",
    "resolve_competitors",
    "resolve_swot",
    "resolve_feature_matrix",
    "resolve_insights",
    "assemble_competitive_analysis",
    "CompetitivePipeline",
]
