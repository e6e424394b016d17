"""
App Review Intelligence - CLI Entry Point.
Terminal dashboard using Click and Rich.
"""

import sys
import asyncio
import json
import logging
from pathlib import Path
from functools import wraps
from typing import Any, Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table

from review_intel import __version__
from review_intel.analyzers.insights import (
    filter_issues,
    filter_requests,
    priority_counts,
    severity_counts,
)
from review_intel.config.settings import get_settings
from review_intel.models.schemas import JobStatus
from review_intel.pipeline.job_controller import JobController
from review_intel.pipeline.views import ReviewViews
from review_intel.services.api_client import ReviewIntelClient
from review_intel.services.validation_service import ValidationService
from review_intel.utils.formatters import (
    format_competitive_analysis,
    format_issues_table,
    format_job_status,
    format_metadata_table,
    format_query_result,
    format_rating,
    format_requests_table,
    format_roadmap,
    format_strengths_table,
    format_timeline_table,
    generate_app_report,
    save_report,
)
from review_intel.utils.logger import setup_logging

# Initialize Rich Console
console = Console()

FORMATS = ["table", "markdown", "json"]

# =============================================================================
# Helper Functions
# =============================================================================

def async_command(f):
    """Decorator to run async click commands."""
    @wraps(f)
    def wrapper(*args, **kwargs):
        return asyncio.run(f(*args, **kwargs))
    return wrapper


def setup_logger(verbose: bool):
    """Configure logging based on verbosity."""
    settings = get_settings()
    level = "DEBUG" if verbose or settings.debug else settings.log_level
    setup_logging(level=level, json_format=settings.log_json)
    # Silence third-party libs
    logging.getLogger("httpx").setLevel(logging.WARNING)


def format_option(f):
    return click.option(
        "--format", "fmt",
        type=click.Choice(FORMATS),
        default="table",
        help="Output format",
    )(f)


def verbose_option(f):
    return click.option("--verbose", is_flag=True, help="Detailed logging")(f)


def fail(error: Exception, verbose: bool = False):
    """Print an error in red and exit with status 1."""
    console.print(f"[bold red]Error:[/bold red] {error}")
    if verbose:
        console.print_exception()
    sys.exit(1)


def print_json(data: Any):
    console.print_json(json.dumps(data, default=str))


def dump(models) -> Any:
    if isinstance(models, list):
        return [m.model_dump(mode="json") for m in models]
    return models.model_dump(mode="json") if models is not None else None


async def run_view(verbose: bool, loader):
    """Open a client, run ``loader(views)`` and return its result."""
    setup_logger(verbose)
    settings = get_settings()
    try:
        async with ReviewIntelClient(settings=settings) as client:
            return await loader(ReviewViews(client, settings=settings))
    except Exception as e:
        fail(e, verbose)

# =============================================================================
# CLI Group
# =============================================================================

@click.group()
@click.version_option(version=__version__)
def cli():
    """App Review Intelligence"""
    pass

# =============================================================================
# Commands
# =============================================================================

@cli.command()
@click.argument('app_id')
@click.option('--no-competitors', is_flag=True, help='Skip competitor discovery during analysis')
@verbose_option
@async_command
async def analyze(app_id: str, no_competitors: bool, verbose: bool):
    """
    Run the backend analysis job for an app and wait for it to finish.

    APP_ID: App Store ID or URL (e.g., 389801252)
    """
    setup_logger(verbose)
    settings = get_settings()

    console.print(Panel.fit(f"[bold blue]App Review Analysis[/bold blue]\nTarget: [cyan]{app_id}[/cyan]"))

    try:
        async with ReviewIntelClient(settings=settings) as client:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                console=console,
            ) as progress:
                task = progress.add_task("[cyan]Starting analysis...", total=100)

                def update_progress(pct, msg):
                    progress.update(task, completed=pct, description=f"[cyan]{msg or 'Analyzing...'}")

                async with JobController(client, settings=settings, progress_callback=update_progress) as controller:
                    job = await controller.run(app_id, include_competitors=not no_competitors)

                if job.status == JobStatus.READY.value:
                    progress.update(task, completed=100, description="[green]Analysis complete!")

    except Exception as e:
        fail(e, verbose)

    if job.status != JobStatus.READY.value:
        fail(job.error or f"Analysis ended in status {job.status}", verbose)

    table = Table(title="Analysis Summary", show_header=False)
    table.add_row("App ID", job.app_id)
    table.add_row("Job ID", job.job_id)
    table.add_row("Status", "[green]Ready[/green]")
    table.add_row("Status Checks", str(job.poll_count))
    console.print(table)
    console.print("[green]✓[/green] Analysis ready.")


@cli.command()
@click.argument('app_id')
@format_option
@verbose_option
@async_command
async def overview(app_id: str, fmt: str, verbose: bool):
    """Show app metadata, memo and rating signals."""
    dashboard = await run_view(verbose, lambda views: views.load_dashboard(app_id))
    data = dashboard.overview

    if fmt == "json":
        print_json(dump(dashboard))
        return

    memo = data.memo.summary if data.memo else ""
    if fmt == "markdown":
        click.echo(format_metadata_table(data.metadata))
        if memo:
            click.echo(f"\n{memo}")
        return

    table = Table(title=data.metadata.name or app_id, show_header=False)
    table.add_row("Developer", data.metadata.developer or "-")
    table.add_row("Category", data.metadata.category or "-")
    table.add_row("Rating", format_rating(data.metadata.rating))
    table.add_row("Reviews", f"{data.metadata.review_count:,}" if data.metadata.review_count is not None else "-")
    if data.rating_trend:
        table.add_row("Trend", f"{data.rating_trend.direction} ({data.rating_trend.change:+.2f})")
    if data.rating_drivers:
        table.add_row("Sentiment", f"{data.rating_drivers.sentiment} ({data.rating_drivers.positive_percent}% positive)")
    if dashboard.competitors:
        table.add_row("Competitors", ", ".join(c.name or c.app_id or "?" for c in dashboard.competitors))
    console.print(table)
    if memo:
        console.print(Panel(memo, title="Summary"))
    for alert in data.alerts:
        console.print(f"[yellow]⚠ {alert}[/yellow]")


@cli.command()
@click.argument('app_id')
@click.option('--severity', type=click.Choice(ValidationService.ISSUE_FILTERS), default='all',
              help='Filter by status or severity')
@format_option
@verbose_option
@async_command
async def issues(app_id: str, severity: str, fmt: str, verbose: bool):
    """List recurring user-reported issues."""
    all_issues = await run_view(verbose, lambda views: views.load_issues(app_id))
    selected = filter_issues(all_issues, severity)

    if fmt == "json":
        print_json({"counts": severity_counts(all_issues), "issues": dump(selected)})
    elif fmt == "markdown":
        click.echo(format_issues_table(selected))
    else:
        table = Table(title=f"Issues ({len(selected)}/{len(all_issues)})")
        table.add_column("ID")
        table.add_column("Severity")
        table.add_column("Issue")
        table.add_column("Mentions", justify="right")
        for issue in selected:
            table.add_row(issue.id or "-", issue.severity, issue.title or "-", str(issue.count or "-"))
        console.print(table)


@cli.command()
@click.argument('app_id')
@click.argument('issue_id')
@format_option
@verbose_option
@async_command
async def issue(app_id: str, issue_id: str, fmt: str, verbose: bool):
    """Show one issue with impact, timeline and supporting reviews."""
    detail = await run_view(verbose, lambda views: views.load_issue_detail(app_id, issue_id))

    if fmt == "json":
        print_json(dump(detail))
        return

    click.echo(f"# {detail.issue.title or issue_id}\n")
    if detail.issue.description:
        click.echo(f"{detail.issue.description}\n")
    click.echo(f"Severity: {detail.issue.severity}")
    for recommendation in detail.recommendations:
        click.echo(f"- {recommendation}")
    for review in detail.supporting_reviews[:5]:
        click.echo(f"> {review.body or review.title or ''}")


@cli.command()
@click.argument('app_id')
@click.option('--filter', 'selected', type=click.Choice(ValidationService.REQUEST_FILTERS), default='all',
              help='Filter by priority or competitive')
@format_option
@verbose_option
@async_command
async def requests(app_id: str, selected: str, fmt: str, verbose: bool):
    """List feature requests."""
    all_requests = await run_view(verbose, lambda views: views.load_requests(app_id))
    shown = filter_requests(all_requests, selected)

    if fmt == "json":
        print_json({"counts": priority_counts(all_requests), "requests": dump(shown)})
    elif fmt == "markdown":
        click.echo(format_requests_table(shown))
    else:
        table = Table(title=f"Feature Requests ({len(shown)}/{len(all_requests)})")
        table.add_column("Priority")
        table.add_column("Request")
        table.add_column("Mentions", justify="right")
        table.add_column("Competitors")
        for request in shown:
            table.add_row(
                request.priority,
                request.title or "-",
                str(request.count or "-"),
                ", ".join(str(c) for c in request.competitor_has) or "-",
            )
        console.print(table)


@cli.command()
@click.argument('app_id')
@format_option
@verbose_option
@async_command
async def strengths(app_id: str, fmt: str, verbose: bool):
    """List what users praise."""
    items = await run_view(verbose, lambda views: views.load_strengths(app_id))

    if fmt == "json":
        print_json(dump(items))
    elif fmt == "markdown":
        click.echo(format_strengths_table(items))
    else:
        table = Table(title="Strengths")
        table.add_column("Strength")
        table.add_column("Mentions", justify="right")
        for item in items:
            table.add_row(item.title or "-", str(item.count or "-"))
        console.print(table)


@cli.command()
@click.argument('app_id')
@click.option('--view', type=click.Choice(['version', 'monthly']), default='version', help='Timeline grouping')
@format_option
@verbose_option
@async_command
async def timeline(app_id: str, view: str, fmt: str, verbose: bool):
    """Show the release/rating regression timeline, newest first."""
    result = await run_view(verbose, lambda views: views.load_timeline(app_id, view))

    if fmt == "json":
        print_json(dump(result))
        return
    if fmt == "markdown":
        click.echo(format_timeline_table(result))
        return

    if result.notice:
        console.print(f"[yellow]{result.notice}[/yellow]")
    table = Table(title=f"Timeline ({view})")
    table.add_column("Period")
    table.add_column("Rating")
    table.add_column("Change", justify="right")
    table.add_column("Introduced")
    table.add_column("Resolved")
    for entry in result.display:
        color = "red" if entry.rating_change < 0 else "green"
        table.add_row(
            entry.period_key,
            format_rating(entry.rating),
            f"[{color}]{entry.rating_change:+.2f}[/{color}]",
            ", ".join(entry.introduced_issues) or "-",
            ", ".join(entry.resolved_issues) or "-",
        )
    console.print(table)


@cli.command()
@click.argument('app_id')
@format_option
@verbose_option
@async_command
async def competitors(app_id: str, fmt: str, verbose: bool):
    """Discover competitors and show SWOT and feature comparison."""
    analysis = await run_view(verbose, lambda views: views.load_competitors(app_id))

    if fmt == "json":
        print_json(dump(analysis))
        return
    if analysis.discovery_error:
        console.print(f"[dim]Discovery skipped: {analysis.discovery_error}[/dim]")
    if fmt == "markdown" or not analysis.has_data:
        click.echo(format_competitive_analysis(analysis))
        return

    table = Table(title="Competitors")
    table.add_column("App")
    table.add_column("Rating")
    table.add_column("Reviews", justify="right")
    for comp in analysis.competitors:
        table.add_row(
            comp.name or comp.app_id or "-",
            format_rating(comp.rating),
            f"{comp.review_count:,}" if comp.review_count is not None else "-",
        )
    console.print(table)

    if analysis.has_swot_data:
        swot = Table(title="SWOT")
        for quadrant in ("strengths", "weaknesses", "opportunities", "threats"):
            swot.add_column(quadrant.title())
        quadrants = [analysis.swot.strengths, analysis.swot.weaknesses,
                     analysis.swot.opportunities, analysis.swot.threats]
        swot.add_row(*["\n".join(f"• {item}" for item in items) or "-" for items in quadrants])
        console.print(swot)

    for insight in analysis.strategic_insights:
        console.print(f"[cyan]→[/cyan] {insight}")


@cli.command()
@click.argument('app_id')
@format_option
@verbose_option
@async_command
async def roadmap(app_id: str, fmt: str, verbose: bool):
    """Show prioritized product recommendations."""
    result = await run_view(verbose, lambda views: views.load_roadmap(app_id))

    if fmt == "json":
        print_json(dump(result))
    elif fmt == "markdown" or result is None:
        click.echo(format_roadmap(result))
    else:
        for priority, items in result.by_priority().items():
            if not items:
                continue
            table = Table(title=f"{priority.title()} Priority")
            table.add_column("Recommendation")
            table.add_column("Category")
            table.add_column("Impact")
            for item in items:
                table.add_row(item.title or "-", item.category or "-", item.impact or "-")
            console.print(table)


@cli.command()
@click.argument('app_id')
@click.argument('question')
@format_option
@verbose_option
@async_command
async def ask(app_id: str, question: str, fmt: str, verbose: bool):
    """
    Ask a natural-language question about an app's reviews.

    QUESTION: e.g. "What do users say about battery drain?"
    """
    result = await run_view(verbose, lambda views: views.ask(app_id, question))

    if fmt == "json":
        print_json(dump(result))
    elif fmt == "markdown":
        click.echo(format_query_result(result))
    else:
        console.print(Panel(result.answer or "No answer returned.", title="Answer"))
        if result.sources:
            console.print(f"[dim]{len(result.sources)} source(s)[/dim]")


@cli.command()
@format_option
@verbose_option
@async_command
async def apps(fmt: str, verbose: bool):
    """List previously analyzed apps."""
    items = await run_view(verbose, lambda views: views.list_apps())

    if fmt == "json":
        print_json(dump(items))
        return
    if not items:
        click.echo("No analyzed apps yet.")
        return

    table = Table(title="Analyzed Apps")
    table.add_column("App ID")
    table.add_column("Name")
    table.add_column("Rating")
    for app in items:
        table.add_row(app.app_id or "-", app.name or "-", format_rating(app.rating))
    console.print(table)


@cli.command()
@click.argument('app_id')
@click.option('--output-dir', default='outputs/reports', help='Output directory')
@click.option('--format', 'fmt', type=click.Choice(['markdown', 'json']), default='markdown', help='Report format')
@verbose_option
@async_command
async def report(app_id: str, output_dir: str, fmt: str, verbose: bool):
    """
    Save a full report for an already analyzed app.

    Loads every view and writes one Markdown (or JSON) file.
    """
    async def load_all(views: ReviewViews):
        dashboard, issue_list, request_list, timeline_view, analysis, roadmap_view = await asyncio.gather(
            views.load_dashboard(app_id),
            views.load_issues(app_id),
            views.load_requests(app_id),
            views.load_timeline(app_id),
            views.load_competitors(app_id),
            views.load_roadmap(app_id),
        )
        return dashboard, issue_list, request_list, timeline_view, analysis, roadmap_view

    dashboard, issue_list, request_list, timeline_view, analysis, roadmap_view = await run_view(verbose, load_all)
    clean_id = ValidationService().clean_app_id(app_id)

    if fmt == "json":
        content = json.dumps({
            "app_id": clean_id,
            "dashboard": dump(dashboard),
            "issues": dump(issue_list),
            "requests": dump(request_list),
            "timeline": dump(timeline_view),
            "competitive": dump(analysis),
            "roadmap": dump(roadmap_view),
        }, indent=2, default=str)
    else:
        content = generate_app_report(
            clean_id, dashboard, issue_list, request_list, timeline_view, analysis, roadmap_view,
        )

    path = save_report(content, Path(output_dir) / f"app_{clean_id}", fmt)
    console.print(f"[green]✓[/green] Report saved to {path}")


@cli.command()
def validate_setup():
    """Show the effective backend configuration."""
    console.print("[bold]Validating Setup...[/bold]")

    try:
        settings = get_settings()

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Check")
        table.add_column("Value")

        table.add_row("Backend URL", settings.api_base_url)
        table.add_row("Response Cache", "on" if settings.use_response_cache else "off")
        table.add_row("Poll Interval", f"{settings.poll_interval_seconds}s")
        table.add_row(
            "Poll Budget",
            str(settings.max_poll_attempts) if settings.max_poll_attempts else "unbounded",
        )
        table.add_row("Progress Policy", settings.progress_policy)
        table.add_row("Environment", settings.app_env)

        console.print(table)

    except Exception as e:
        console.print(f"[bold red]Configuration Error:[/bold red] {e}")
        sys.exit(1)

if __name__ == "__main__":
    cli()
