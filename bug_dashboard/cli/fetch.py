"""CLI commands for fetching issues and showing metrics."""

import asyncio
from datetime import datetime

import typer
from github import Auth, Github
from rich.console import Console
from rich.table import Table

from ..config import DashboardConfig
from ..context import DashboardContext
from ..github_client.errors import GitHubApiError
from ..github_client.repos import REPO_OWNERS, get_owner, repo_enable_env_var
from ..metrics.aggregator import (
    calculate_combined_bug_metrics,
    format_bug_metrics,
    generate_bug_trends,
    get_repository_stats,
    is_bug_issue,
)
from ..services.loader import SweepResult
from ..utils.date_parser import parse_date_input, relative_date_to_absolute
from .options import (
    BUGS_ONLY_OPTION,
    LAST_DAYS_OPTION,
    MAX_PAGES_OPTION,
    REPO_OPTION,
    SINCE_OPTION,
    STATE_OPTION,
    WEEKS_OPTION,
)

console = Console()


def load_config() -> DashboardConfig:
    """Read configuration, exiting with a readable error when it is malformed."""
    try:
        return DashboardConfig()
    except ValueError as e:
        console.print(f"❌ Error: {e}")
        raise typer.Exit(1)


def _resolve_since(since: str | None, last_days: int | None) -> datetime | None:
    if since and last_days is not None:
        raise ValueError("Cannot combine --since with --last-days")
    if since:
        return parse_date_input(since)
    if last_days is not None:
        return relative_date_to_absolute(days=last_days)
    return None


def _resolve_repos(config: DashboardConfig, repos: list[str] | None) -> list[str]:
    if not repos:
        return config.enabled_repositories()
    for repo in repos:
        get_owner(repo)
    return repos


async def _sweep(
    config: DashboardConfig,
    repos: list[str],
    state: str,
    since: datetime | None,
    max_pages: int,
) -> SweepResult:
    ctx = DashboardContext.from_config(config)
    ctx.loader.enabled_repos = repos
    try:
        return await ctx.loader.fetch_all_repository_issues(
            state=state, since=since, max_pages=max_pages
        )
    finally:
        await ctx.aclose()


def _run_sweep(
    repo: list[str] | None,
    state: str,
    since: str | None,
    last_days: int | None,
    max_pages: int,
) -> tuple[list[str], SweepResult]:
    try:
        config = DashboardConfig()
        repos = _resolve_repos(config, repo)
        since_dt = _resolve_since(since, last_days)
        if state not in ("open", "closed", "all"):
            raise ValueError(f"Invalid state '{state}'. Expected open, closed, or all")
    except ValueError as e:
        console.print(f"❌ Error: {e}")
        raise typer.Exit(1)

    if not config.has_token():
        console.print("⚠️  GITHUB_TOKEN is not set, showing demo data")

    console.print(f"🔎 Fetching issues from {', '.join(repos)}...")
    try:
        sweep = asyncio.run(_sweep(config, repos, state, since_dt, max_pages))
    except GitHubApiError as e:
        console.print(f"❌ Error: {e}")
        console.print("Please check your GitHub token and network connection.")
        raise typer.Exit(1)

    if sweep.demo:
        console.print("📝 Showing demo data (GitHub returned no usable issues)")
    for result in sweep.results:
        if result.error:
            console.print(f"⚠️  {result.repository}: {result.status.value} ({result.error})")
    return repos, sweep


def fetch(
    repo: list[str] | None = REPO_OPTION,
    state: str = STATE_OPTION,
    since: str | None = SINCE_OPTION,
    last_days: int | None = LAST_DAYS_OPTION,
    max_pages: int = MAX_PAGES_OPTION,
    bugs_only: bool = BUGS_ONLY_OPTION,
) -> None:
    """Fetch issues once and print bug metrics per repository.

    Examples:
        bug-dashboard fetch
        bug-dashboard fetch --repo Fuser --state open --last-days 30
    """
    repos, sweep = _run_sweep(repo, state, since, last_days, max_pages)
    issues = [i for i in sweep.issues if is_bug_issue(i)] if bugs_only else sweep.issues

    combined = calculate_combined_bug_metrics(issues, repos)

    table = Table(title="Bug Metrics")
    table.add_column("Repository", style="cyan")
    table.add_column("Total", justify="right")
    table.add_column("Open", justify="right", style="yellow")
    table.add_column("Closed", justify="right", style="green")
    table.add_column("Burn Rate", justify="right", style="magenta")
    table.add_column("Avg Resolution", justify="right")
    table.add_column("Recent", justify="right")

    for metrics in [*combined.by_repository.values(), combined.overall]:
        formatted = format_bug_metrics(metrics)
        table.add_row(
            metrics.repository,
            str(metrics.total_bugs),
            str(metrics.open_bugs),
            str(metrics.closed_bugs),
            formatted["burnRateFormatted"],
            formatted["avgResolutionTimeFormatted"],
            formatted["recentActivityFormatted"],
        )

    console.print(table)
    console.print(f"✨ Processed {len(issues)} issues")


def trends(
    repo: list[str] | None = REPO_OPTION,
    weeks: int = WEEKS_OPTION,
    max_pages: int = MAX_PAGES_OPTION,
) -> None:
    """Print weekly created/closed/open counts per repository."""
    if weeks <= 0:
        console.print("❌ Error: --weeks must be a positive integer")
        raise typer.Exit(1)

    repos, sweep = _run_sweep(repo, "all", None, None, max_pages)

    table = Table(title=f"Bug Trends (last {weeks} weeks)")
    table.add_column("Week", style="cyan")
    table.add_column("Repository", style="magenta")
    table.add_column("Created", justify="right", style="yellow")
    table.add_column("Closed", justify="right", style="green")
    table.add_column("Open at End", justify="right")

    for row in generate_bug_trends(sweep.issues, weeks=weeks, repos=repos):
        table.add_row(
            row.date,
            row.repository,
            str(row.open_bugs),
            str(row.closed_bugs),
            str(row.total_open),
        )

    console.print(table)


def repos() -> None:
    """List supported repositories and whether they are enabled."""
    config = load_config()
    stats = get_repository_stats([], enabled=config.repo_flags)

    table = Table(title="Repositories")
    table.add_column("Repository", style="cyan")
    table.add_column("Owner")
    table.add_column("Enabled", style="green")
    table.add_column("Toggle Variable", style="dim")

    for name, owner in REPO_OWNERS.items():
        table.add_row(
            name,
            owner,
            "yes" if stats[name].enabled else "no",
            repo_enable_env_var(name),
        )

    console.print(table)


def quota() -> None:
    """Show GitHub's authoritative rate limit for the configured token."""
    config = load_config()
    github = Github(auth=Auth.Token(config.github_token)) if config.github_token else Github()

    try:
        rate = github.get_rate_limit().rate
    except Exception as e:
        console.print(f"❌ Could not check rate limit: {e}")
        raise typer.Exit(1)

    table = Table(title="GitHub API Rate Limit")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Authenticated", "yes" if config.has_token() else "no")
    table.add_row("Limit", str(rate.limit))
    table.add_row("Remaining", str(rate.remaining))
    table.add_row("Resets At", rate.reset.isoformat())
    console.print(table)
