"""Pydantic models for GitHub issue data.

These models are normalized projections of GitHub's REST API v3 issue objects.
API Reference: https://docs.github.com/en/rest/issues/issues
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator


class GitHubUser(BaseModel):
    """GitHub user projection carried on issues and assignees.

    API Reference: https://docs.github.com/en/rest/users/users
    """

    login: str = Field(..., description="GitHub username/login (string)")
    avatar_url: str = Field("", description="URL of the user's avatar image")


class GitHubLabel(BaseModel):
    """GitHub label model representing repository labels.

    API Reference: https://docs.github.com/en/rest/issues/labels
    """

    name: str = Field(..., description="Name of the label (string)")
    color: str = Field(
        ..., description="Hexadecimal color code without leading # (string)"
    )
    description: str | None = Field(
        None, description="Short description of the label (string, max 100 characters)"
    )


class GitHubIssue(BaseModel):
    """Normalized GitHub issue, stamped with the repository it came from.

    Pull requests returned by the issues endpoint are never converted into
    this model.
    """

    id: int = Field(..., description="Globally unique issue identifier (integer)")
    number: int = Field(..., description="Issue number within the repository (integer)")
    title: str = Field(..., description="Short description/title of the issue (string)")
    state: Literal["open", "closed"] = Field(
        ..., description="Current state: 'open' or 'closed'"
    )
    labels: list[GitHubLabel] = Field(
        default_factory=list, description="Labels attached to the issue"
    )
    created_at: datetime = Field(..., description="Timestamp of issue creation")
    updated_at: datetime = Field(..., description="Timestamp of last issue update")
    closed_at: datetime | None = Field(
        None, description="Timestamp the issue was closed, null while open"
    )
    html_url: str = Field("", description="Browser URL of the issue")
    body: str | None = Field(None, description="Issue description in markdown")
    user: GitHubUser = Field(..., description="Creator/author of the issue")
    assignees: list[GitHubUser] = Field(
        default_factory=list, description="Users currently assigned to the issue"
    )
    repository: str = Field(..., description="Repository the issue was fetched from")

    @model_validator(mode="after")
    def _check_lifecycle(self) -> "GitHubIssue":
        if self.state == "open" and self.closed_at is not None:
            raise ValueError("open issues cannot have closed_at set")
        if self.updated_at < self.created_at:
            raise ValueError("updated_at must not be earlier than created_at")
        if self.closed_at is not None and self.closed_at < self.created_at:
            raise ValueError("closed_at must not be earlier than created_at")
        return self

    @classmethod
    def from_api(cls, raw: dict[str, Any], repository: str) -> "GitHubIssue":
        """Build an issue from a raw REST API record."""
        return cls(
            id=raw["id"],
            number=raw["number"],
            title=raw["title"],
            state=raw["state"],
            labels=[
                GitHubLabel(
                    name=label["name"],
                    color=label.get("color", ""),
                    description=label.get("description"),
                )
                for label in raw.get("labels") or []
            ],
            created_at=raw["created_at"],
            updated_at=raw["updated_at"],
            closed_at=raw.get("closed_at"),
            html_url=raw.get("html_url", ""),
            body=raw.get("body"),
            user=_convert_user(raw["user"]),
            assignees=[_convert_user(a) for a in raw.get("assignees") or []],
            repository=repository,
        )


def _convert_user(raw: dict[str, Any]) -> GitHubUser:
    return GitHubUser(login=raw["login"], avatar_url=raw.get("avatar_url") or "")
