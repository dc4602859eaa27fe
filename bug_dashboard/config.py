"""Configuration for the bug dashboard, read from environment variables."""

import os
from typing import Any, Callable, Optional

from .github_client.repos import SUPPORTED_REPOS, repo_enable_env_var


def _env_number(name: str, default: str, cast: Callable[[str], Any]) -> Any:
    raw = os.getenv(name, default)
    try:
        return cast(raw)
    except ValueError:
        kind = "an integer" if cast is int else "a number"
        raise ValueError(f"{name} must be {kind}, got '{raw}'") from None


class DashboardConfig:
    """Runtime configuration for the fetch pipeline and HTTP service."""

    def __init__(self) -> None:
        """Initialize configuration from environment variables.

        Raises:
            ValueError: If a numeric variable cannot be parsed
        """
        self.github_token: Optional[str] = os.getenv("GITHUB_TOKEN") or None
        self.host: str = os.getenv("DASHBOARD_HOST", "127.0.0.1")
        self.port: int = _env_number("DASHBOARD_PORT", "8000", int)
        self.request_timeout: float = _env_number(
            "DASHBOARD_REQUEST_TIMEOUT", "30", float
        )
        self.log_level: str = os.getenv("DASHBOARD_LOG_LEVEL", "INFO").upper()
        self.repo_flags: dict[str, bool] = {
            repo: os.getenv(repo_enable_env_var(repo), "true").lower() != "false"
            for repo in SUPPORTED_REPOS
        }

    def has_token(self) -> bool:
        """Check if a GitHub token is configured."""
        return self.github_token is not None

    def enabled_repositories(self) -> list[str]:
        """Repositories included in the fetch-all sweep."""
        return [repo for repo in SUPPORTED_REPOS if self.repo_flags.get(repo, True)]

    def validate(self) -> None:
        """Validate configuration and raise error if invalid."""
        if not 0 < self.port < 65536:
            raise ValueError(f"DASHBOARD_PORT must be between 1 and 65535, got {self.port}")
        if self.request_timeout <= 0:
            raise ValueError("DASHBOARD_REQUEST_TIMEOUT must be a positive number")
        if not self.enabled_repositories():
            raise ValueError(
                "All repositories are disabled. Unset one of: "
                + ", ".join(repo_enable_env_var(r) for r in SUPPORTED_REPOS)
            )
