"""Tests for GitHub client."""

import asyncio
from datetime import datetime, timedelta, timezone

import httpx
import pytest
import pytest_asyncio
import respx

from bug_dashboard.github_client.client import GITHUB_API_BASE, GitHubClient
from bug_dashboard.github_client.errors import (
    AuthorizationDeniedError,
    GitHubApiError,
    GitHubConnectionError,
    GitHubServerError,
    RateLimitExceededError,
)
from bug_dashboard.resilience.rate_limit import RateLimitGuard

ISSUES_PATH = "/repos/NVIDIA/Fuser/issues"


def paged(pages):
    """Respond with ``pages[n - 1]`` for page n and an empty page after."""

    def handler(request: httpx.Request) -> httpx.Response:
        page = int(request.url.params["page"])
        body = pages[page - 1] if page <= len(pages) else []
        return httpx.Response(200, json=body)

    return handler


@pytest.fixture
def github_api():
    with respx.mock(base_url=GITHUB_API_BASE, assert_all_called=False) as mock:
        yield mock


@pytest.fixture
def guard(clock) -> RateLimitGuard:
    return RateLimitGuard(min_spacing=0, clock=clock, sleep=clock.sleep)


@pytest_asyncio.fixture
async def client(guard, clock):
    client = GitHubClient("test_token", rate_guard=guard, sleep=clock.sleep)
    yield client
    await client.aclose()


class TestPagination:
    """Test the page walk and its stop rule."""

    @pytest.mark.asyncio
    async def test_stops_on_short_page(self, client, github_api, raw_issue) -> None:
        """Test a page shorter than per_page ends the walk."""
        route = github_api.get(ISSUES_PATH).mock(
            side_effect=paged(
                [
                    [raw_issue(n) for n in range(100)],
                    [raw_issue(n) for n in range(100, 200)],
                    [raw_issue(n) for n in range(200, 237)],
                ]
            )
        )

        issues = await client.fetch_repository_issues("Fuser")

        assert len(issues) == 237
        assert route.call_count == 3

    @pytest.mark.asyncio
    async def test_exact_multiple_needs_empty_page(
        self, client, github_api, raw_issue
    ) -> None:
        """Test an exact multiple of per_page costs one extra request."""
        route = github_api.get(ISSUES_PATH).mock(
            side_effect=paged(
                [
                    [raw_issue(n) for n in range(100)],
                    [raw_issue(n) for n in range(100, 200)],
                ]
            )
        )

        issues = await client.fetch_repository_issues("Fuser")

        assert len(issues) == 200
        assert route.call_count == 3

    @pytest.mark.asyncio
    async def test_max_pages_caps_requests(self, client, github_api, raw_issue) -> None:
        """Test the walk stops at max_pages even when pages are full."""
        full = [raw_issue(n) for n in range(100)]
        route = github_api.get(ISSUES_PATH).mock(side_effect=paged([full] * 5))

        issues = await client.fetch_repository_issues("Fuser", max_pages=2)

        assert len(issues) == 200
        assert route.call_count == 2

    @pytest.mark.asyncio
    async def test_zero_max_pages_sends_nothing(self, client, github_api) -> None:
        """Test a non-positive page cap returns no issues."""
        route = github_api.get(ISSUES_PATH)

        assert await client.fetch_repository_issues("Fuser", max_pages=0) == []
        assert route.call_count == 0

    @pytest.mark.asyncio
    async def test_pull_requests_filtered(
        self, client, github_api, raw_issue, raw_pull_request
    ) -> None:
        """Test records carrying pull_request are dropped."""
        github_api.get(ISSUES_PATH).mock(
            side_effect=paged(
                [[raw_issue(1), raw_pull_request(2), raw_issue(3), raw_pull_request(4)]]
            )
        )

        issues = await client.fetch_repository_issues("Fuser")

        assert [issue.number for issue in issues] == [1, 3]
        assert all(issue.repository == "Fuser" for issue in issues)

    @pytest.mark.asyncio
    async def test_stop_rule_counts_pull_requests(
        self, client, github_api, raw_issue, raw_pull_request
    ) -> None:
        """Test a full page of mostly pull requests still continues the walk."""
        first = [raw_issue(n) for n in range(60)] + [
            raw_pull_request(n) for n in range(60, 100)
        ]
        route = github_api.get(ISSUES_PATH).mock(
            side_effect=paged([first, [raw_issue(200)]])
        )

        issues = await client.fetch_repository_issues("Fuser")

        assert len(issues) == 61
        assert route.call_count == 2

    @pytest.mark.asyncio
    async def test_page_delay_between_pages(
        self, client, clock, github_api, raw_issue
    ) -> None:
        """Test the client pauses between successive pages only."""
        github_api.get(ISSUES_PATH).mock(
            side_effect=paged([[raw_issue(n) for n in range(100)], [raw_issue(100)]])
        )

        await client.fetch_repository_issues("Fuser")

        assert clock.sleeps == [0.05]


class TestRequests:
    """Test request construction."""

    @pytest.mark.asyncio
    async def test_query_parameters(self, client, github_api) -> None:
        """Test state, paging, sort, labels and since are sent."""
        route = github_api.get(ISSUES_PATH).mock(return_value=httpx.Response(200, json=[]))

        await client.fetch_repository_issues(
            "Fuser",
            state="open",
            since=datetime(2024, 1, 1, 9, 30, tzinfo=timezone.utc),
            labels=["bug", "triage"],
            per_page=50,
        )

        params = route.calls.last.request.url.params
        assert params["state"] == "open"
        assert params["per_page"] == "50"
        assert params["page"] == "1"
        assert params["sort"] == "updated"
        assert params["direction"] == "desc"
        assert params["labels"] == "bug,triage"
        assert params["since"] == "2024-01-01T09:30:00Z"

    @pytest.mark.asyncio
    async def test_owner_resolved_per_repository(self, client, github_api) -> None:
        """Test lightning-thunder is fetched from Lightning-AI."""
        route = github_api.get("/repos/Lightning-AI/lightning-thunder/issues").mock(
            return_value=httpx.Response(200, json=[])
        )

        await client.fetch_repository_issues("lightning-thunder")

        assert route.called

    @pytest.mark.asyncio
    async def test_headers_with_token(self, client, github_api) -> None:
        """Test the bearer token and API version headers are sent."""
        route = github_api.get(ISSUES_PATH).mock(return_value=httpx.Response(200, json=[]))

        await client.fetch_repository_issues("Fuser")

        headers = route.calls.last.request.headers
        assert headers["Authorization"] == "Bearer test_token"
        assert headers["Accept"] == "application/vnd.github.v3+json"
        assert headers["User-Agent"].startswith("bug-dashboard/")

    @pytest.mark.asyncio
    async def test_no_authorization_without_token(self, guard, github_api) -> None:
        """Test unauthenticated clients send no Authorization header."""
        route = github_api.get(ISSUES_PATH).mock(return_value=httpx.Response(200, json=[]))

        async with GitHubClient(None, rate_guard=guard) as client:
            await client.fetch_repository_issues("Fuser")

        assert "Authorization" not in route.calls.last.request.headers

    @pytest.mark.asyncio
    async def test_invalid_state(self, client) -> None:
        """Test an unknown state is rejected before any request."""
        with pytest.raises(ValueError, match="Invalid state"):
            await client.fetch_repository_issues("Fuser", state="merged")

    @pytest.mark.asyncio
    async def test_unsupported_repository(self, client) -> None:
        """Test repositories outside the owner table are rejected."""
        with pytest.raises(ValueError, match="Unsupported repository"):
            await client.fetch_repository_issues("pytorch")

    @pytest.mark.asyncio
    async def test_concurrent_identical_requests_shared(
        self, client, github_api, raw_issue
    ) -> None:
        """Test two concurrent fetches of the same page send one request."""
        route = github_api.get(ISSUES_PATH).mock(
            return_value=httpx.Response(200, json=[raw_issue(1)])
        )

        first, second = await asyncio.gather(
            client.fetch_repository_issues("Fuser"),
            client.fetch_repository_issues("Fuser"),
        )

        assert route.call_count == 1
        assert len(first) == len(second) == 1

    @pytest.mark.asyncio
    async def test_rate_limit_headers_recorded(self, client, guard, github_api) -> None:
        """Test GitHub's quota headers reach the rate guard."""
        github_api.get(ISSUES_PATH).mock(
            return_value=httpx.Response(
                200,
                json=[],
                headers={"x-ratelimit-remaining": "4999", "x-ratelimit-reset": "1718193600"},
            )
        )

        await client.fetch_repository_issues("Fuser")

        assert guard.provider_remaining == 4999


class TestErrors:
    """Test classification of failed requests."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status,error_type",
        [
            (403, AuthorizationDeniedError),
            (429, RateLimitExceededError),
            (500, GitHubServerError),
            (502, GitHubServerError),
            (404, GitHubApiError),
        ],
    )
    async def test_status_mapping(self, client, github_api, status, error_type) -> None:
        """Test each failing status raises its error type."""
        github_api.get(ISSUES_PATH).mock(return_value=httpx.Response(status))

        with pytest.raises(error_type) as exc_info:
            await client.fetch_repository_issues("Fuser")

        assert exc_info.value.status == status
        assert exc_info.value.repository == "Fuser"
        assert f"GitHub API error: {status}" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_failure_mid_walk_abandons(self, client, github_api, raw_issue) -> None:
        """Test an error on a later page discards earlier pages."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.params["page"] == "1":
                return httpx.Response(200, json=[raw_issue(n) for n in range(100)])
            return httpx.Response(500)

        github_api.get(ISSUES_PATH).mock(side_effect=handler)

        with pytest.raises(GitHubServerError):
            await client.fetch_repository_issues("Fuser")

    @pytest.mark.asyncio
    async def test_transport_error(self, client, github_api) -> None:
        """Test network failures become connection errors."""
        github_api.get(ISSUES_PATH).mock(side_effect=httpx.ConnectError("refused"))

        with pytest.raises(GitHubConnectionError) as exc_info:
            await client.fetch_repository_issues("Fuser")

        assert exc_info.value.status == 0

    @pytest.mark.asyncio
    async def test_exhausted_provider_quota_blocks_request(
        self, client, guard, github_api
    ) -> None:
        """Test no request is sent while GitHub reports an empty quota."""
        reset = datetime.now(timezone.utc) + timedelta(minutes=10)
        guard.observe_response(
            {
                "x-ratelimit-remaining": "0",
                "x-ratelimit-reset": str(int(reset.timestamp())),
            }
        )
        route = github_api.get(ISSUES_PATH)

        with pytest.raises(RateLimitExceededError) as exc_info:
            await client.fetch_repository_issues("Fuser")

        assert route.call_count == 0
        assert exc_info.value.reset_at is not None


@pytest.mark.asyncio
async def test_get_rate_limit_is_not_throttled(client, guard, github_api) -> None:
    """Test the quota endpoint does not count against the local window."""
    github_api.get("/rate_limit").mock(
        return_value=httpx.Response(200, json={"rate": {"limit": 5000, "remaining": 4990}})
    )

    result = await client.get_rate_limit()

    assert result["rate"]["remaining"] == 4990
    assert guard.requests_in_window == 0
