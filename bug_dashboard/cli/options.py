"""Shared CLI option definitions for consistent shorthand mappings."""

import typer

REPO_OPTION = typer.Option(
    None,
    "--repo",
    "-r",
    help="Repository to include (can be used multiple times, default: all enabled)",
)

STATE_OPTION = typer.Option("all", "--state", "-s", help="Issue state: open, closed, or all")

SINCE_OPTION = typer.Option(
    None, "--since", help="Only issues updated since this date (e.g. 2024-01-01)"
)

LAST_DAYS_OPTION = typer.Option(
    None, "--last-days", help="Only issues updated in the last N days"
)

MAX_PAGES_OPTION = typer.Option(
    15, "--max-pages", help="Maximum pages of 100 issues to fetch per repository"
)

BUGS_ONLY_OPTION = typer.Option(
    False, "--bugs-only", help="Only count issues whose labels or title look like bugs"
)

WEEKS_OPTION = typer.Option(12, "--weeks", "-w", help="Number of weeks to show")
