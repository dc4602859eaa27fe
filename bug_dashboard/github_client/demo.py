"""Placeholder issues served when GitHub returns nothing usable.

Used when no token is configured, or when every repository came back empty
or denied (typically organization SAML enforcement on the token).
"""

from datetime import datetime, timedelta, timezone

from .models import GitHubIssue, GitHubLabel, GitHubUser

BUG = GitHubLabel(name="bug", color="ff0000", description="Something is not working")


def _user(login: str) -> GitHubUser:
    return GitHubUser(login=login, avatar_url=f"https://github.com/identicons/{login}.png")


def _label(name: str, color: str) -> GitHubLabel:
    return GitHubLabel(name=name, color=color)


def _issue(
    now: datetime,
    *,
    id: int,
    number: int,
    repository: str,
    owner: str,
    title: str,
    labels: list[GitHubLabel],
    created_days_ago: int,
    updated_days_ago: int,
    closed_days_ago: int | None,
    author: str,
    assignees: list[str],
) -> GitHubIssue:
    closed_at = (
        now - timedelta(days=closed_days_ago) if closed_days_ago is not None else None
    )
    return GitHubIssue(
        id=id,
        number=number,
        title=title,
        state="closed" if closed_at else "open",
        labels=labels,
        created_at=now - timedelta(days=created_days_ago),
        updated_at=now - timedelta(days=updated_days_ago),
        closed_at=closed_at,
        html_url=f"https://github.com/{owner}/{repository}/issues/{number}",
        user=_user(author),
        assignees=[_user(a) for a in assignees],
        repository=repository,
    )


def demo_issues(now: datetime | None = None) -> list[GitHubIssue]:
    """Build the demo issue set relative to ``now``."""
    now = now or datetime.now(timezone.utc)
    te = {"repository": "TransformerEngine", "owner": "NVIDIA"}
    fuser = {"repository": "Fuser", "owner": "NVIDIA"}

    return [
        _issue(
            now, id=1, number=2011, **te,
            title="[basic_linear] dtype inference is incorrect",
            labels=[BUG, _label("priority: high", "ff6b6b")],
            created_days_ago=5, updated_days_ago=1, closed_days_ago=None,
            author="user1", assignees=[],
        ),
        _issue(
            now, id=2, number=2010, **te,
            title="Installation Failure with PyTorch 2.5.1 + CUDA 12.1",
            labels=[BUG, _label("installation", "0052cc"), _label("P0", "b60205")],
            created_days_ago=75, updated_days_ago=2, closed_days_ago=None,
            author="user2", assignees=["developer1"],
        ),
        _issue(
            now, id=3, number=1995, **te,
            title="Memory leak in fp8 training",
            labels=[BUG, _label("memory", "ffa500")],
            created_days_ago=20, updated_days_ago=3, closed_days_ago=3,
            author="user3", assignees=["developer2"],
        ),
        _issue(
            now, id=4, number=1989, **te,
            title="Performance regression in attention layer",
            labels=[BUG, _label("performance", "00ff00")],
            created_days_ago=25, updated_days_ago=10, closed_days_ago=10,
            author="user4", assignees=[],
        ),
        _issue(
            now, id=5, number=845, **fuser,
            title="Segmentation fault in fusion kernel",
            labels=[BUG, _label("crash", "800080"), _label("critical", "b60205")],
            created_days_ago=90, updated_days_ago=1, closed_days_ago=None,
            author="user5", assignees=[],
        ),
        _issue(
            now, id=6, number=832, **fuser,
            title="Incorrect reduction results with large tensors",
            labels=[BUG, _label("reduction", "ffff00")],
            created_days_ago=8, updated_days_ago=4, closed_days_ago=None,
            author="user6", assignees=["developer3"],
        ),
        _issue(
            now, id=7, number=821, **fuser,
            title="Build fails with CUDA 12.8",
            labels=[BUG, _label("build", "0052cc")],
            created_days_ago=15, updated_days_ago=5, closed_days_ago=5,
            author="user7", assignees=[],
        ),
        _issue(
            now, id=8, number=815, **fuser,
            title="Memory optimization for large models",
            labels=[BUG, _label("memory", "ffa500")],
            created_days_ago=30, updated_days_ago=12, closed_days_ago=12,
            author="user8", assignees=["developer4"],
        ),
    ]
