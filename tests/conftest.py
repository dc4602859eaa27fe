"""Test configuration and fixtures."""

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from bug_dashboard.github_client.models import GitHubIssue, GitHubLabel, GitHubUser

NOW = datetime(2024, 6, 12, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Monotonic clock that only moves when told to, or when slept on."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += max(seconds, 0)


@pytest.fixture
def clock() -> FakeClock:
    """Fake clock shared by cache, guard and stability manager."""
    return FakeClock()


def _raw_issue(number: int, **overrides: Any) -> dict[str, Any]:
    record: dict[str, Any] = {
        "id": 1000 + number,
        "number": number,
        "title": f"Issue {number}",
        "state": "open",
        "labels": [],
        "created_at": "2024-01-01T00:00:00Z",
        "updated_at": "2024-01-02T00:00:00Z",
        "closed_at": None,
        "html_url": f"https://github.com/NVIDIA/Fuser/issues/{number}",
        "body": None,
        "user": {"login": "octocat", "avatar_url": "https://example.com/a.png"},
        "assignees": [],
    }
    record.update(overrides)
    return record


def _raw_pull_request(number: int) -> dict[str, Any]:
    return _raw_issue(number, pull_request={"url": f"https://api.github.com/pulls/{number}"})


@pytest.fixture
def raw_issue() -> Callable[..., dict[str, Any]]:
    """Factory for REST API issue records."""
    return _raw_issue


@pytest.fixture
def raw_pull_request() -> Callable[[int], dict[str, Any]]:
    """Factory for REST API pull request records on the issues endpoint."""
    return _raw_pull_request


@pytest.fixture
def make_issue() -> Callable[..., GitHubIssue]:
    """Factory for normalized issues relative to a fixed ``NOW``."""
    counter = iter(range(1, 100_000))

    def _make(
        repository: str = "Fuser",
        *,
        state: str = "open",
        created_days_ago: float = 10,
        closed_days_ago: float | None = None,
        title: str | None = None,
        labels: list[str] | None = None,
        now: datetime = NOW,
    ) -> GitHubIssue:
        number = next(counter)
        created_at = now - timedelta(days=created_days_ago)
        closed_at = (
            now - timedelta(days=closed_days_ago)
            if closed_days_ago is not None
            else None
        )
        if closed_at is not None:
            state = "closed"
        return GitHubIssue(
            id=number,
            number=number,
            title=title or f"Issue {number}",
            state=state,
            labels=[GitHubLabel(name=name, color="ededed") for name in labels or []],
            created_at=created_at,
            updated_at=closed_at or created_at,
            closed_at=closed_at,
            user=GitHubUser(login="octocat"),
            repository=repository,
        )

    return _make
