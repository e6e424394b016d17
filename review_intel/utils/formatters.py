"""
Report formatting utilities.

Renders canonical models as Markdown for terminal output and saved reports.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional

from review_intel.models.schemas import (
    AnalysisJob,
    AppMetadata,
    CompetitiveAnalysis,
    Dashboard,
    FeatureRequest,
    Issue,
    QueryResult,
    Roadmap,
    Strength,
    Timeline,
)

logger = logging.getLogger(__name__)

PROGRESS_BAR_WIDTH = 20


def _cell(value) -> str:
    """Table-safe cell text."""
    if value is None or value == "":
        return "-"
    return str(value).replace("|", "-").replace("\n", " ")


def _truncate(text: Optional[str], limit: int = 60) -> str:
    text = text or ""
    return text[:limit] + "..." if len(text) > limit else text


def _bullets(items: Iterable[str], empty: str = "*None.*") -> str:
    lines = [f"- {item}" for item in items]
    return "\n".join(lines) if lines else empty


def format_rating(rating: Optional[float]) -> str:
    return f"{rating:.1f} ⭐" if rating is not None else "N/A"


def format_metadata_table(metadata: AppMetadata) -> str:
    """
    Create formatted markdown table for app metadata.

    | Field | Value |
    |-------|-------|
    | Name | Example App |
    | Rating | 4.5 ⭐ |
    | Reviews | 12,345 |
    """
    reviews = f"{metadata.review_count:,}" if metadata.review_count is not None else "N/A"
    rows = [
        f"| Name | {_cell(metadata.name)} |",
        f"| Developer | {_cell(metadata.developer)} |",
        f"| Category | {_cell(metadata.category)} |",
        f"| Version | {_cell(metadata.version)} |",
        f"| Rating | {format_rating(metadata.rating)} |",
        f"| Reviews | {reviews} |",
        f"| Price | {_cell(metadata.price)} |",
    ]

    header = "| Field | Value |\n|-------|-------|"
    return header + "\n" + "\n".join(rows)


def format_issues_table(issues: List[Issue]) -> str:
    if not issues:
        return "*No issues found.*"

    header = "| Severity | Issue | Mentions | Status |\n|----------|-------|----------|--------|"
    rows = [
        f"| {issue.severity} | {_cell(_truncate(issue.title))} | {_cell(issue.count)} | {_cell(issue.status)} |"
        for issue in issues
    ]
    return header + "\n" + "\n".join(rows)


def format_requests_table(requests: List[FeatureRequest]) -> str:
    if not requests:
        return "*No feature requests found.*"

    header = "| Priority | Request | Mentions | Competitors |\n|----------|---------|----------|-------------|"
    rows = []
    for request in requests:
        competitors = ", ".join(str(c) for c in request.competitor_has) if request.competitor_has else None
        rows.append(
            f"| {request.priority} | {_cell(_truncate(request.title))} | "
            f"{_cell(request.count)} | {_cell(competitors)} |"
        )
    return header + "\n" + "\n".join(rows)


def format_strengths_table(strengths: List[Strength]) -> str:
    if not strengths:
        return "*No strengths found.*"

    header = "| Strength | Mentions |\n|----------|----------|"
    rows = [f"| {_cell(_truncate(s.title))} | {_cell(s.count)} |" for s in strengths]
    return header + "\n" + "\n".join(rows)


def format_timeline_table(timeline: Timeline) -> str:
    """
    Create formatted markdown table for the regression timeline, newest first.

    | Period | Rating | Change | Introduced | Resolved |
    |--------|--------|--------|------------|----------|
    | 2.1.0 | 4.2 ⭐ | -0.30 | Login crash | - |
    """
    if timeline.is_empty:
        return "*No timeline data available.*"

    lines = []
    if timeline.notice:
        lines.append(f"> {timeline.notice}\n")

    lines.append("| Period | Rating | Change | Introduced | Resolved |")
    lines.append("|--------|--------|--------|------------|----------|")
    for entry in timeline.display:
        lines.append(
            f"| {_cell(entry.period_key)} | {format_rating(entry.rating)} | {entry.rating_change:+.2f} | "
            f"{_cell(', '.join(entry.introduced_issues))} | {_cell(', '.join(entry.resolved_issues))} |"
        )
    return "\n".join(lines)


def format_competitive_analysis(analysis: CompetitiveAnalysis) -> str:
    """Competitors, SWOT quadrants, feature matrix and strategic insights."""
    if not analysis.has_data:
        return "*No competitive data available yet.*"

    sections = []
    if analysis.competitors:
        rows = [
            f"| {_cell(c.name)} | {format_rating(c.rating)} | "
            f"{f'{c.review_count:,}' if c.review_count is not None else '-'} |"
            for c in analysis.competitors
        ]
        sections.append(
            "### Competitors\n| App | Rating | Reviews |\n|-----|--------|---------|\n" + "\n".join(rows)
        )

    if analysis.has_swot_data:
        swot = analysis.swot
        sections.append(f"""### SWOT Analysis
**Strengths:**
{_bullets(swot.strengths)}

**Weaknesses:**
{_bullets(swot.weaknesses)}

**Opportunities:**
{_bullets(swot.opportunities)}

**Threats:**
{_bullets(swot.threats)}""")

    if analysis.feature_matrix:
        names = [_cell(c.name) for c in analysis.competitors[:3]]
        header = "| Feature | You | " + " | ".join(names) + " | Verdict |" if names else "| Feature | You | Verdict |"
        divider = "|" + "---|" * (len(names) + 3)
        rows = []
        for row in analysis.feature_matrix:
            marks = ["✅" if has else "❌" for has in row.competitors]
            cells = [_cell(row.feature), "✅" if row.main_app else "❌", *marks, row.verdict]
            rows.append("| " + " | ".join(cells) + " |")
        sections.append("### Feature Comparison\n" + header + "\n" + divider + "\n" + "\n".join(rows))

    if analysis.strategic_insights:
        sections.append("### Strategic Insights\n" + _bullets(analysis.strategic_insights))

    return "\n\n".join(sections)


def format_roadmap(roadmap: Optional[Roadmap]) -> str:
    """Recommendations grouped by priority."""
    if roadmap is None or not roadmap.recommendations:
        return "*Roadmap not generated yet.*"

    sections = []
    for priority, items in roadmap.by_priority().items():
        if not items:
            continue
        lines = [f"### {priority.title()} Priority"]
        for item in items:
            meta = ", ".join(v for v in (item.category, f"{item.impact} impact" if item.impact else None) if v)
            lines.append(f"- **{_truncate(item.title, 80) or 'Untitled'}**" + (f" ({meta})" if meta else ""))
            if item.recommendation:
                lines.append(f"  - {item.recommendation}")
        sections.append("\n".join(lines))
    return "\n\n".join(sections)


def format_job_status(job: AnalysisJob) -> str:
    """
    One-line status plus per-step checklist.

    Example:
        analyzing [#########-----------] 45% Fetching reviews
    """
    filled = int(PROGRESS_BAR_WIDTH * job.progress / 100)
    bar = "#" * filled + "-" * (PROGRESS_BAR_WIDTH - filled)
    lines = [f"{job.status} [{bar}] {job.progress}%" + (f" {job.message}" if job.message else "")]

    for step in job.steps:
        mark = {"completed": "x", "in_progress": "~"}.get(step.status, " ")
        lines.append(f"- [{mark}] {step.name}")

    if job.error:
        lines.append(f"**Error:** {job.error}")
    return "\n".join(lines)


def format_query_result(result: QueryResult) -> str:
    lines = [result.answer or "*No answer returned.*"]
    if result.confidence is not None:
        lines.append(f"\n_Confidence: {result.confidence}_")
    if result.sources:
        lines.append("\n**Sources:**")
        lines.extend(f"- {_truncate(str(source), 120)}" for source in result.sources)
    return "\n".join(lines)


def generate_app_report(
    app_id: str,
    dashboard: Dashboard,
    issues: List[Issue],
    requests: List[FeatureRequest],
    timeline: Timeline,
    analysis: CompetitiveAnalysis,
    roadmap: Optional[Roadmap],
) -> str:
    """
    Generate the complete app report content.

    Structure:
    # App Review Intelligence Report: {app name}
    ## Executive Summary
    ## App Overview
    ## Top Issues
    ## Feature Requests
    ## Release Timeline
    ## Competitive Landscape
    ## Roadmap
    """
    timestamp = datetime.utcnow().strftime("%Y-%m-%d %H:%M UTC")
    overview = dashboard.overview
    name = overview.metadata.name or app_id
    summary = overview.memo.summary if overview.memo and overview.memo.summary else "*No summary available.*"

    trend = ""
    if overview.rating_trend:
        trend = f"\n\n**Rating trend:** {overview.rating_trend.direction} ({overview.rating_trend.change:+.2f})"

    return f"""# App Review Intelligence Report: {name}

## Executive Summary
{summary}{trend}

## App Overview
{format_metadata_table(overview.metadata)}

## Top Issues
{format_issues_table(issues[:10])}

## Feature Requests
{format_requests_table(requests[:10])}

## Release Timeline
{format_timeline_table(timeline)}

## Competitive Landscape
{format_competitive_analysis(analysis)}

## Roadmap
{format_roadmap(roadmap)}

---
Generated on: {timestamp}
App Store ID: {app_id}
"""


def save_report(report: str, output_path: Path, format: str = "markdown") -> Path:
    """
    Save report to file.

    Args:
        report: Report content (Markdown, or JSON text for ``json``)
        output_path: Destination path (without extension, or with)
        format: 'markdown' or 'json'
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    base_path = output_path.with_suffix("")

    if format == "markdown":
        file_path = base_path.with_suffix(".md")
    elif format == "json":
        file_path = base_path.with_suffix(".json")
    else:
        raise ValueError(f"Unsupported format: {format}")

    file_path.write_text(report, encoding="utf-8")
    logger.info(f"Saved {format} report to {file_path}")
    return file_path
