"""GitHub client package for API interaction."""

from .client import GitHubClient
from .errors import (
    AuthorizationDeniedError,
    GitHubApiError,
    GitHubConnectionError,
    GitHubServerError,
    RateLimitExceededError,
)
from .models import GitHubIssue, GitHubLabel, GitHubUser

__all__ = [
    "AuthorizationDeniedError",
    "GitHubApiError",
    "GitHubClient",
    "GitHubConnectionError",
    "GitHubIssue",
    "GitHubLabel",
    "GitHubServerError",
    "GitHubUser",
    "RateLimitExceededError",
]
