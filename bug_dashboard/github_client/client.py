"""Async GitHub REST client with throttling and paginated issue fetching."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

import httpx

from .. import __version__
from ..resilience.rate_limit import RateLimitGuard
from ..utils.date_parser import format_timestamp_for_github
from .errors import GitHubConnectionError, RateLimitExceededError, error_for_status
from .models import GitHubIssue
from .repos import full_name

logger = logging.getLogger(__name__)

GITHUB_API_BASE = "https://api.github.com"
DEFAULT_PER_PAGE = 100
DEFAULT_PAGE_DELAY = 0.05
VALID_STATES = ("open", "closed", "all")


class GitHubClient:
    """GitHub REST API client used by the issue loader."""

    def __init__(
        self,
        token: str | None = None,
        *,
        rate_guard: RateLimitGuard | None = None,
        base_url: str = GITHUB_API_BASE,
        timeout: float = 30.0,
        page_delay: float = DEFAULT_PAGE_DELAY,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            token: GitHub token. Requests are unauthenticated when None, which
                gives a much lower quota.
            rate_guard: Shared self-throttling guard
            base_url: API root
            timeout: Per-request wall clock budget in seconds
            page_delay: Pause between successive page requests in seconds
            sleep: Async sleep used for the page delay
            transport: Optional httpx transport (tests)
        """
        self.token = token
        self.rate_guard = rate_guard or RateLimitGuard()
        self.page_delay = page_delay
        self._sleep = sleep

        headers = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": f"bug-dashboard/{__version__}",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        else:
            logger.warning("GitHub token not found. API requests will be limited.")

        self._http = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )
        self._inflight: dict[str, asyncio.Future[httpx.Response]] = {}

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _send(
        self,
        path: str,
        params: dict[str, str],
        repository: str | None,
        throttle: bool,
    ) -> httpx.Response:
        if throttle:
            if self.rate_guard.provider_exhausted():
                reset_at = self.rate_guard.provider_reset
                raise RateLimitExceededError(
                    f"Rate limit exceeded. Resets at {reset_at.isoformat() if reset_at else 'unknown'}",
                    repository=repository,
                    reset_at=reset_at,
                )
            await self.rate_guard.acquire()

        try:
            response = await self._http.get(path, params=params)
        except httpx.TransportError as e:
            raise GitHubConnectionError(
                f"Failed to reach GitHub API: {e}", repository
            ) from e

        self.rate_guard.observe_response(response.headers)

        if not response.is_success:
            raise error_for_status(
                response.status_code, response.reason_phrase, repository or path
            )
        return response

    async def _get(
        self,
        path: str,
        params: dict[str, str] | None = None,
        repository: str | None = None,
        throttle: bool = True,
    ) -> httpx.Response:
        """GET a path, sharing one request between concurrent identical calls."""
        params = params or {}
        key = str(self._http.build_request("GET", path, params=params).url)

        pending = self._inflight.get(key)
        if pending is not None:
            logger.debug(f"Joining in-flight request for {key}")
            return await asyncio.shield(pending)

        task = asyncio.ensure_future(self._send(path, params, repository, throttle))
        self._inflight[key] = task
        try:
            return await asyncio.shield(task)
        finally:
            if self._inflight.get(key) is task:
                del self._inflight[key]

    async def fetch_repository_issues(
        self,
        repo: str,
        *,
        state: str = "all",
        since: datetime | None = None,
        labels: list[str] | None = None,
        per_page: int = DEFAULT_PER_PAGE,
        max_pages: int | None = None,
    ) -> list[GitHubIssue]:
        """Fetch a repository's issues page by page.

        Pull requests are filtered out. The walk stops on the first page with
        fewer than ``per_page`` records, or after ``max_pages`` pages.

        Args:
            repo: Supported repository name
            state: Issue state (open, closed, all)
            since: Only issues updated at or after this time
            labels: Label names, all of which must be present
            per_page: Page size requested from GitHub
            max_pages: Page cap, None for no cap

        Returns:
            Issues in page order

        Raises:
            GitHubApiError: On any non-2xx response; the walk is abandoned
        """
        if state not in VALID_STATES:
            raise ValueError(f"Invalid state '{state}'. Expected one of: open, closed, all")
        if max_pages is not None and max_pages < 1:
            return []

        path = f"/repos/{full_name(repo)}/issues"
        issues: list[GitHubIssue] = []
        page = 1

        while True:
            params = {
                "state": state,
                "per_page": str(per_page),
                "page": str(page),
                "sort": "updated",
                "direction": "desc",
            }
            if labels:
                params["labels"] = ",".join(labels)
            if since is not None:
                params["since"] = format_timestamp_for_github(since)

            response = await self._get(path, params, repository=repo)
            records: list[dict[str, Any]] = response.json()

            actual = [r for r in records if not r.get("pull_request")]
            issues.extend(GitHubIssue.from_api(r, repo) for r in actual)
            logger.info(
                f"📄 Fetched page {page} for {repo}: {len(actual)} issues "
                f"({len(records) - len(actual)} PRs filtered, total: {len(issues)})"
            )

            if len(records) < per_page:
                break
            if max_pages is not None and page >= max_pages:
                break

            page += 1
            await self._sleep(self.page_delay)

        return issues

    async def get_rate_limit(self) -> dict[str, Any]:
        """Fetch GitHub's view of the current quota."""
        response = await self._get("/rate_limit", throttle=False)
        return response.json()
