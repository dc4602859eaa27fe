"""HTTP route handlers for dashboard data."""

import logging
import time
from collections.abc import Awaitable
from datetime import datetime, timezone
from typing import Any, Literal

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse

from ..context import DashboardContext
from ..github_client.errors import RateLimitExceededError
from ..github_client.models import GitHubIssue
from ..github_client.repos import DASHBOARD_REPOS
from ..metrics.aggregator import calculate_combined_bug_metrics, generate_bug_trends
from ..metrics.models import BugTrend, CamelModel, CombinedBugMetrics
from ..storage.cache import CacheKeys
from ..utils.date_parser import parse_date_input

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["dashboard"])

CRITICAL_METRICS_TTL = 5 * 60.0
FULL_METRICS_TTL = 15 * 60.0


class DashboardResponse(CamelModel):
    """Response body for the dashboard endpoint."""

    issues: list[GitHubIssue]
    metrics: CombinedBugMetrics
    trends: list[BugTrend]
    load_time: int
    total_issues: int
    background_loading: bool
    timestamp: str
    error: str | None = None


class RefreshResponse(CamelModel):
    """Response body for a background refresh request."""

    message: str
    timestamp: str


class BugsResponse(CamelModel):
    """Response body for the bugs endpoint."""

    success: bool
    issues: list[GitHubIssue]
    metrics: CombinedBugMetrics
    fetched_at: str
    repositories: list[str]
    demo: bool


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def get_context(request: Request) -> DashboardContext:
    """Get DashboardContext from application state."""
    return request.app.state.context


async def _refresh_after_background(
    ctx: DashboardContext, background: Awaitable[list[GitHubIssue]]
) -> None:
    full = await background
    ctx.cache.set(
        CacheKeys.COMBINED_METRICS,
        calculate_combined_bug_metrics(full),
        FULL_METRICS_TTL,
    )
    ctx.cache.set(CacheKeys.PROGRESSION_DATA, generate_bug_trends(full), FULL_METRICS_TTL)
    logger.info(f"🔄 Background data updated ({len(full)} total issues)")


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    request: Request,
    priority: Literal["critical", "full"] = "critical",
    clear_cache: bool = Query(False, alias="clearCache"),
) -> Any:
    """Dashboard issues, metrics and weekly trends."""
    ctx = get_context(request)
    loader = ctx.loader

    try:
        if clear_cache:
            loader.clear_cache()

        logger.info(f"🚀 Dashboard requested with priority: {priority}")
        start = time.perf_counter()

        if priority == "critical":
            load = await loader.load_dashboard_data(DASHBOARD_REPOS)
            issues = load.critical
            metrics = calculate_combined_bug_metrics(issues)
            trends = generate_bug_trends(issues)
            ctx.cache.set(CacheKeys.COMBINED_METRICS, metrics, CRITICAL_METRICS_TTL)
            loader.spawn(
                _refresh_after_background(ctx, load.background),
                name="dashboard-refresh",
            )
            background_loading = True
        else:
            issues = await loader.load_all_repos(DASHBOARD_REPOS)
            metrics = calculate_combined_bug_metrics(issues)
            trends = generate_bug_trends(issues)
            ctx.cache.set(CacheKeys.COMBINED_METRICS, metrics, FULL_METRICS_TTL)
            ctx.cache.set(CacheKeys.PROGRESSION_DATA, trends, FULL_METRICS_TTL)
            background_loading = False

        load_time = int((time.perf_counter() - start) * 1000)
        logger.info(f"⚡ {priority} data loaded in {load_time}ms ({len(issues)} issues)")

        return DashboardResponse(
            issues=issues,
            metrics=metrics,
            trends=trends,
            load_time=load_time,
            total_issues=len(issues),
            background_loading=background_loading,
            timestamp=_now(),
        )

    except Exception as e:
        logger.error(f"❌ Dashboard error: {e}")

        cached_metrics = loader.get_cached_metrics("all")
        if cached_metrics is not None:
            logger.info("🔄 Returning cached fallback data")
            return DashboardResponse(
                issues=[],
                metrics=cached_metrics,
                trends=ctx.cache.get(CacheKeys.PROGRESSION_DATA) or [],
                load_time=0,
                total_issues=0,
                background_loading=False,
                timestamp=_now(),
                error="Live data unavailable, showing cached data",
            )

        return JSONResponse(
            status_code=500,
            content={
                "error": "Failed to load dashboard data",
                "message": str(e),
                "timestamp": _now(),
            },
        )


@router.post("/dashboard", response_model=RefreshResponse)
async def refresh_dashboard(request: Request) -> RefreshResponse:
    """Clear the cache and reload every dashboard repository in the background."""
    ctx = get_context(request)
    logger.info("🔄 Starting background refresh...")
    ctx.loader.clear_cache()
    ctx.loader.preload_in_background(DASHBOARD_REPOS)
    return RefreshResponse(message="Background refresh started", timestamp=_now())


@router.get("/github/bugs", response_model=BugsResponse)
async def get_bugs(
    request: Request,
    since: str | None = None,
    state: Literal["open", "closed", "all"] = "all",
) -> Any:
    """Issues from every enabled repository with combined metrics."""
    ctx = get_context(request)

    try:
        since_dt = parse_date_input(since) if since else None
    except ValueError as e:
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": str(e), "fetchedAt": _now()},
        )

    try:
        sweep = await ctx.loader.fetch_all_repository_issues(
            state=state, since=since_dt, per_page=100
        )
    except RateLimitExceededError as e:
        logger.error(f"Failed to fetch GitHub bug data: {e}")
        return JSONResponse(
            status_code=429,
            content={"success": False, "error": str(e), "fetchedAt": _now()},
        )
    except Exception as e:
        logger.error(f"Failed to fetch GitHub bug data: {e}")
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": str(e) or "Failed to fetch bug data from GitHub",
                "fetchedAt": _now(),
            },
        )

    logger.info(f"Fetched {len(sweep.issues)} total issues")
    return BugsResponse(
        success=True,
        issues=sweep.issues,
        metrics=calculate_combined_bug_metrics(sweep.issues),
        fetched_at=_now(),
        repositories=list(ctx.loader.enabled_repos),
        demo=sweep.demo,
    )


@router.get("/health")
async def health(request: Request) -> dict[str, Any]:
    """Dependency health plus local rate limit usage."""
    ctx = get_context(request)
    report = await ctx.stability.health_check(ctx.client)
    return {
        **report,
        "rate_limit": ctx.rate_guard.stats(),
        "cache_entries": len(ctx.cache),
        "background_tasks": ctx.loader.pending_background,
    }
