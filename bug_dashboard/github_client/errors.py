"""Errors raised while talking to the GitHub REST API."""

from datetime import datetime


class GitHubApiError(Exception):
    """A failed GitHub API call for one repository."""

    def __init__(self, message: str, status: int, repository: str | None = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.repository = repository


class AuthorizationDeniedError(GitHubApiError):
    """HTTP 403, usually organization SAML/SSO enforcement on the token.

    Retrying with the same credential will not help.
    """


class RateLimitExceededError(GitHubApiError):
    """GitHub's quota is exhausted until ``reset_at``."""

    def __init__(
        self,
        message: str,
        status: int = 429,
        repository: str | None = None,
        reset_at: datetime | None = None,
    ):
        super().__init__(message, status, repository)
        self.reset_at = reset_at


class GitHubServerError(GitHubApiError):
    """HTTP 5xx from GitHub."""


class GitHubConnectionError(GitHubApiError):
    """The request never produced a response (DNS, connect, timeout)."""

    def __init__(self, message: str, repository: str | None = None):
        super().__init__(message, 0, repository)


def is_retryable(error: Exception) -> bool:
    """Only transient server and network failures are worth retrying."""
    return isinstance(error, (GitHubServerError, GitHubConnectionError))


def error_for_status(status: int, reason: str, repository: str) -> GitHubApiError:
    """Map a non-2xx status to the matching error type."""
    message = f"GitHub API error: {status} {reason} ({repository})"
    if status == 403:
        return AuthorizationDeniedError(message, status, repository)
    if status == 429:
        return RateLimitExceededError(message, status, repository)
    if status >= 500:
        return GitHubServerError(message, status, repository)
    return GitHubApiError(message, status, repository)
