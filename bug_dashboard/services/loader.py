"""Cache-aware issue loading on top of the paginated GitHub client."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine, Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from ..github_client.client import GitHubClient
from ..github_client.demo import demo_issues
from ..github_client.errors import (
    AuthorizationDeniedError,
    GitHubApiError,
    RateLimitExceededError,
    is_retryable,
)
from ..github_client.models import GitHubIssue
from ..github_client.repos import DASHBOARD_REPOS, SUPPORTED_REPOS
from ..resilience.stability import StabilityManager
from ..storage.cache import CacheKeys, DataCache

logger = logging.getLogger(__name__)

FRESH_FOR = 2 * 60.0
CRITICAL_TTL = 2 * 60.0
BACKGROUND_TTL = 10 * 60.0
CRITICAL_PAGE_CAP = 3
DASHBOARD_CRITICAL_PAGES = 2
SWEEP_MAX_PAGES = 15
SWEEP_STAGGER = 0.1


class Priority(str, Enum):
    """How much of a repository to load."""

    CRITICAL = "critical"
    BACKGROUND = "background"


class LoadStatus(str, Enum):
    """Why a load produced the issues it did."""

    OK = "ok"
    EMPTY = "empty"
    AUTH_DENIED = "auth_denied"
    RATE_LIMITED = "rate_limited"
    STALE_CACHE = "stale_cache"
    FAILED = "failed"


class LoadResult(BaseModel):
    """Outcome of loading one repository."""

    repository: str
    issues: list[GitHubIssue] = Field(default_factory=list)
    status: LoadStatus
    from_cache: bool = False
    error: str | None = None


class SweepResult(BaseModel):
    """Outcome of fetching every enabled repository."""

    issues: list[GitHubIssue] = Field(default_factory=list)
    results: list[LoadResult] = Field(default_factory=list)
    demo: bool = False

    @property
    def repositories(self) -> list[str]:
        return [result.repository for result in self.results]


@dataclass
class DashboardLoad:
    """Critical issues now, fuller issue set when ``background`` resolves."""

    critical: list[GitHubIssue]
    results: list[LoadResult]
    background: "asyncio.Task[list[GitHubIssue]]"


def _status_for_error(error: Exception) -> LoadStatus:
    if isinstance(error, AuthorizationDeniedError):
        return LoadStatus.AUTH_DENIED
    if isinstance(error, RateLimitExceededError):
        return LoadStatus.RATE_LIMITED
    return LoadStatus.FAILED


class IssueLoader:
    """Serves issues from cache when fresh and from GitHub otherwise.

    Full (background priority) results are cached per repository under
    ``issues:<repo>``; partial critical results go under
    ``issues:<repo>:critical`` so they never shadow a complete set.
    """

    def __init__(
        self,
        client: GitHubClient,
        cache: DataCache,
        stability: StabilityManager,
        *,
        enabled_repos: Sequence[str] = SUPPORTED_REPOS,
        max_retries: int = 3,
        stagger: float = SWEEP_STAGGER,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.client = client
        self.cache = cache
        self.stability = stability
        self.enabled_repos = list(enabled_repos)
        self.max_retries = max_retries
        self.stagger = stagger
        self._sleep = sleep
        self._background: set[asyncio.Task[Any]] = set()

    @staticmethod
    def _cache_keys(repo: str, priority: Priority) -> list[str]:
        full = CacheKeys.issues(repo)
        if priority is Priority.CRITICAL:
            return [full, CacheKeys.critical_issues(repo)]
        return [full]

    async def load_repo_result(
        self,
        repo: str,
        *,
        priority: Priority | str = Priority.CRITICAL,
        max_pages: int | None = None,
        cache_first: bool = True,
    ) -> LoadResult:
        """Load one repository, falling back to cached data on failure.

        Never raises for fetch failures; the returned status says what happened.
        """
        priority = Priority(priority)
        keys = self._cache_keys(repo, priority)

        if cache_first:
            for key in keys:
                cached = self.cache.get(key)
                if cached is not None and not self.cache.is_stale(key, FRESH_FOR):
                    logger.info(f"📦 Using cached data for {repo} ({len(cached)} issues)")
                    return LoadResult(
                        repository=repo,
                        issues=cached,
                        status=LoadStatus.OK if cached else LoadStatus.EMPTY,
                        from_cache=True,
                    )

        if priority is Priority.CRITICAL:
            pages = (
                CRITICAL_PAGE_CAP
                if max_pages is None
                else min(max_pages, CRITICAL_PAGE_CAP)
            )
            ttl = CRITICAL_TTL
        else:
            pages = max_pages
            ttl = BACKGROUND_TTL

        try:
            issues = await self.stability.retry_with_backoff(
                lambda: self.client.fetch_repository_issues(repo, max_pages=pages),
                self.max_retries,
                f"fetch:{repo}:{priority.value}",
                retryable=is_retryable,
            )
        except Exception as e:
            logger.error(f"❌ Failed to load {repo}: {e}")
            for key in keys:
                stale = self.cache.get(key)
                if stale is not None:
                    logger.info(f"🔄 Using stale cache for {repo}")
                    return LoadResult(
                        repository=repo,
                        issues=stale,
                        status=LoadStatus.STALE_CACHE,
                        from_cache=True,
                        error=str(e),
                    )
            return LoadResult(
                repository=repo, status=_status_for_error(e), error=str(e)
            )

        self.cache.set(keys[-1], issues, ttl)
        logger.info(
            f"✅ Loaded {len(issues)} issues for {repo} ({priority.value} priority)"
        )
        return LoadResult(
            repository=repo,
            issues=issues,
            status=LoadStatus.OK if issues else LoadStatus.EMPTY,
        )

    async def load_repo_data(
        self,
        repo: str,
        *,
        priority: Priority | str = Priority.CRITICAL,
        max_pages: int | None = None,
        cache_first: bool = True,
    ) -> list[GitHubIssue]:
        """Load one repository's issues; an empty list when nothing is available."""
        result = await self.load_repo_result(
            repo, priority=priority, max_pages=max_pages, cache_first=cache_first
        )
        return result.issues

    async def _load_all(
        self, repos: Sequence[str], priority: Priority, cache_first: bool
    ) -> list[GitHubIssue]:
        results = await asyncio.gather(
            *(
                self.load_repo_result(repo, priority=priority, cache_first=cache_first)
                for repo in repos
            )
        )
        return [issue for result in results for issue in result.issues]

    async def load_all_repos(
        self, repos: Sequence[str] = DASHBOARD_REPOS
    ) -> list[GitHubIssue]:
        """Load full issue sets for several repositories, cache first."""
        return await self._load_all(repos, Priority.BACKGROUND, cache_first=True)

    async def load_dashboard_data(
        self, repos: Sequence[str] = DASHBOARD_REPOS
    ) -> DashboardLoad:
        """Load a small critical set now and start loading everything else.

        Background loads start before the critical set is awaited, so a shared
        first page is only requested once.
        """
        background = self.spawn(
            self._load_all(repos, Priority.BACKGROUND, cache_first=True),
            name="dashboard-background",
        )
        results = list(
            await asyncio.gather(
                *(
                    self.load_repo_result(
                        repo,
                        priority=Priority.CRITICAL,
                        max_pages=DASHBOARD_CRITICAL_PAGES,
                        cache_first=True,
                    )
                    for repo in repos
                )
            )
        )
        critical = [issue for result in results for issue in result.issues]
        return DashboardLoad(critical=critical, results=results, background=background)

    def preload_in_background(
        self, repos: Sequence[str] = DASHBOARD_REPOS
    ) -> "asyncio.Task[list[GitHubIssue]]":
        """Re-fetch every repository without waiting for the result."""
        logger.info(f"🔄 Preloading {', '.join(repos)} in background")
        return self.spawn(
            self._load_all(repos, Priority.BACKGROUND, cache_first=False),
            name="preload",
        )

    def spawn(
        self, coro: Coroutine[Any, Any, Any], name: str | None = None
    ) -> "asyncio.Task[Any]":
        """Start a tracked background task whose failure is logged."""
        task = asyncio.create_task(coro, name=name)
        self._background.add(task)
        task.add_done_callback(self._on_background_done)
        return task

    def _on_background_done(self, task: "asyncio.Task[Any]") -> None:
        self._background.discard(task)
        if task.cancelled():
            logger.warning(f"Background task {task.get_name()} was cancelled")
            return
        error = task.exception()
        if error is not None:
            logger.error(f"❌ Background task {task.get_name()} failed: {error}")

    @property
    def pending_background(self) -> int:
        return len(self._background)

    async def wait_background(self) -> None:
        """Wait for every tracked background task, including ones they start."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def cancel_background(self) -> None:
        for task in list(self._background):
            task.cancel()
        await asyncio.gather(*list(self._background), return_exceptions=True)

    async def fetch_all_repository_issues(
        self,
        *,
        state: str = "all",
        since: datetime | None = None,
        labels: list[str] | None = None,
        per_page: int = 100,
        max_pages: int | None = SWEEP_MAX_PAGES,
    ) -> SweepResult:
        """Fetch every enabled repository, staggering the start of each.

        Demo data is returned when there is no token, or when no repository
        produced any issue without a hard failure (empty or denied).

        Raises:
            RateLimitExceededError: Every repository failed on quota
            GitHubApiError: Every repository failed for other reasons
        """
        repos = self.enabled_repos
        logger.info(f"Fetching issues from {len(repos)} repositories: {repos}")

        if not self.client.token:
            logger.info("No GitHub token found - returning demo data")
            return SweepResult(issues=demo_issues(), demo=True)

        async def fetch_one(index: int, repo: str) -> LoadResult:
            await self._sleep(index * self.stagger)
            try:
                issues = await self.stability.retry_with_backoff(
                    lambda: self.client.fetch_repository_issues(
                        repo,
                        state=state,
                        since=since,
                        labels=labels,
                        per_page=per_page,
                        max_pages=max_pages,
                    ),
                    self.max_retries,
                    f"sweep:{repo}",
                    retryable=is_retryable,
                )
            except Exception as e:
                if isinstance(e, AuthorizationDeniedError):
                    logger.warning(
                        f"🔒 403 Forbidden for {repo} - the token likely needs "
                        f"SAML authorization"
                    )
                else:
                    logger.error(f"Failed to fetch from {repo}: {e}")
                return LoadResult(
                    repository=repo, status=_status_for_error(e), error=str(e)
                )
            return LoadResult(
                repository=repo,
                issues=issues,
                status=LoadStatus.OK if issues else LoadStatus.EMPTY,
            )

        results = list(
            await asyncio.gather(
                *(fetch_one(index, repo) for index, repo in enumerate(repos))
            )
        )
        issues = [issue for result in results for issue in result.issues]

        if results and all(r.status is LoadStatus.RATE_LIMITED for r in results):
            raise RateLimitExceededError(
                "Rate limit exceeded for all repositories"
            )
        hard_failures = (LoadStatus.FAILED, LoadStatus.RATE_LIMITED)
        if results and all(r.status in hard_failures for r in results):
            raise GitHubApiError(
                "Failed to fetch issues from all repositories", status=502
            )

        if not issues:
            logger.info(
                "No issues fetched (empty or denied repositories) - returning demo data"
            )
            return SweepResult(issues=demo_issues(), results=results, demo=True)

        return SweepResult(issues=issues, results=results)

    def get_cached_metrics(self, repo: str = "all") -> Any | None:
        key = CacheKeys.COMBINED_METRICS if repo == "all" else CacheKeys.metrics(repo)
        return self.cache.get(key)

    def clear_cache(self) -> None:
        self.cache.clear()
