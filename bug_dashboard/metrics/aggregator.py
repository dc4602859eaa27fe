"""Bug metric calculations over normalized issues.

Every function here is pure: the same issues (and the same ``now``/``today``)
always produce the same result.
"""

import math
from collections.abc import Iterable, Sequence
from datetime import date, datetime, time, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from ..github_client.models import GitHubIssue
from ..github_client.repos import SUPPORTED_REPOS
from .models import BugMetrics, BugTrend, CombinedBugMetrics, RepositoryStats

BUG_KEYWORDS = ("bug", "defect", "issue", "error", "fix", "broken")
SECONDS_PER_DAY = 24 * 60 * 60


def _utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _round_half_up(value: Decimal, places: str = "1") -> Decimal:
    return value.quantize(Decimal(places), rounding=ROUND_HALF_UP)


def is_bug_issue(issue: GitHubIssue) -> bool:
    """Check labels and title for bug keywords."""
    label_names = [label.name.lower() for label in issue.labels]
    title = issue.title.lower()
    return any(
        keyword in name for keyword in BUG_KEYWORDS for name in label_names
    ) or any(keyword in title for keyword in BUG_KEYWORDS)


def calculate_resolution_time(issue: GitHubIssue) -> int:
    """Whole days (rounded up) from creation to close, 0 for open issues."""
    if issue.state != "closed" or issue.closed_at is None:
        return 0
    elapsed = abs((_utc(issue.closed_at) - _utc(issue.created_at)).total_seconds())
    return math.ceil(elapsed / SECONDS_PER_DAY)


def calculate_average_resolution_time(issues: Iterable[GitHubIssue]) -> int:
    closed = [issue for issue in issues if issue.state == "closed"]
    if not closed:
        return 0
    total = sum(calculate_resolution_time(issue) for issue in closed)
    return int(_round_half_up(Decimal(total) / Decimal(len(closed))))


def count_recent_activity(
    issues: Iterable[GitHubIssue], days: int = 30, now: datetime | None = None
) -> int:
    """Count issues created within the last ``days`` days."""
    cutoff = _utc(now or datetime.now(timezone.utc)) - timedelta(days=days)
    return sum(1 for issue in issues if _utc(issue.created_at) >= cutoff)


def calculate_bug_metrics(
    issues: Sequence[GitHubIssue],
    repository: str = "All",
    now: datetime | None = None,
) -> BugMetrics:
    """Summarize a collection of issues.

    All issues count, not only bug-labelled ones.
    """
    total = len(issues)
    open_count = sum(1 for issue in issues if issue.state == "open")
    closed_count = sum(1 for issue in issues if issue.state == "closed")

    burn_rate = 0.0
    if total > 0:
        burn_rate = float(
            _round_half_up(Decimal(closed_count * 100) / Decimal(total), "0.1")
        )

    return BugMetrics(
        repository=repository,
        total_bugs=total,
        open_bugs=open_count,
        closed_bugs=closed_count,
        burn_rate=burn_rate,
        avg_resolution_time=calculate_average_resolution_time(issues),
        recent_activity=count_recent_activity(issues, 30, now),
    )


def calculate_combined_bug_metrics(
    issues: Sequence[GitHubIssue],
    repos: Sequence[str] = SUPPORTED_REPOS,
    now: datetime | None = None,
) -> CombinedBugMetrics:
    by_repository = {
        repo: calculate_bug_metrics(
            [issue for issue in issues if issue.repository == repo], repo, now
        )
        for repo in repos
    }
    return CombinedBugMetrics(
        overall=calculate_bug_metrics(issues, "All Repositories", now),
        by_repository=by_repository,
    )


def generate_bug_trends(
    issues: Sequence[GitHubIssue],
    weeks: int = 12,
    repos: Sequence[str] = SUPPORTED_REPOS,
    today: date | None = None,
) -> list[BugTrend]:
    """Weekly created/closed/open counts per repository, oldest week first.

    Weeks start Monday 00:00 UTC and the current (partial) week is included.
    """
    today = today or datetime.now(timezone.utc).date()
    this_monday = today - timedelta(days=today.weekday())
    trends: list[BugTrend] = []

    for offset in range(weeks - 1, -1, -1):
        week_day = this_monday - timedelta(weeks=offset)
        week_start = datetime.combine(week_day, time.min, tzinfo=timezone.utc)
        week_end = week_start + timedelta(days=7)

        for repo in repos:
            repo_issues = [issue for issue in issues if issue.repository == repo]
            created = 0
            closed = 0
            open_at_end = 0
            for issue in repo_issues:
                created_at = _utc(issue.created_at)
                closed_at = _utc(issue.closed_at) if issue.closed_at else None
                if week_start <= created_at < week_end:
                    created += 1
                if closed_at is not None and week_start <= closed_at < week_end:
                    closed += 1
                if created_at < week_end and (closed_at is None or closed_at >= week_end):
                    open_at_end += 1

            trends.append(
                BugTrend(
                    date=week_day.isoformat(),
                    open_bugs=created,
                    closed_bugs=closed,
                    total_open=open_at_end,
                    repository=repo,
                )
            )

    return trends


def get_repository_stats(
    issues: Sequence[GitHubIssue],
    enabled: dict[str, bool] | None = None,
    repos: Sequence[str] = SUPPORTED_REPOS,
    now: datetime | None = None,
) -> dict[str, RepositoryStats]:
    """Per-repository counts; every fetched issue counts as a bug."""
    fetched_at = _utc(now or datetime.now(timezone.utc)).isoformat()
    stats = {}
    for repo in repos:
        repo_issues = [issue for issue in issues if issue.repository == repo]
        stats[repo] = RepositoryStats(
            name=repo,
            enabled=(enabled or {}).get(repo, True),
            last_fetched=fetched_at,
            issue_count=len(repo_issues),
            bug_count=len(repo_issues),
        )
    return stats


def format_bug_metrics(metrics: BugMetrics) -> dict[str, Any]:
    """Add display strings to a metrics payload."""
    return {
        **metrics.model_dump(by_alias=True),
        "burnRateFormatted": f"{metrics.burn_rate}%",
        "avgResolutionTimeFormatted": f"{metrics.avg_resolution_time} days",
        "recentActivityFormatted": f"{metrics.recent_activity} bugs (30 days)",
    }
