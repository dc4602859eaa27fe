"""Dependency container for the fetch pipeline."""

from dataclasses import dataclass

from .config import DashboardConfig
from .github_client.client import GitHubClient
from .resilience.rate_limit import HOURLY_QUOTA, UNAUTHENTICATED_QUOTA, RateLimitGuard
from .resilience.stability import StabilityManager
from .services.loader import IssueLoader
from .storage.cache import DataCache


@dataclass(frozen=True)
class DashboardContext:
    """Process-wide shared state, built once and injected everywhere.

    Tests build their own context with fake clocks and transports instead of
    touching any global state.
    """

    config: DashboardConfig
    cache: DataCache
    rate_guard: RateLimitGuard
    stability: StabilityManager
    client: GitHubClient
    loader: IssueLoader

    @classmethod
    def from_config(cls, config: DashboardConfig | None = None) -> "DashboardContext":
        """Create the production context from environment configuration."""
        config = config or DashboardConfig()
        cache = DataCache()
        rate_guard = RateLimitGuard(
            hourly_quota=HOURLY_QUOTA if config.has_token() else UNAUTHENTICATED_QUOTA
        )
        stability = StabilityManager(jitter=0.1)
        client = GitHubClient(
            config.github_token,
            rate_guard=rate_guard,
            timeout=config.request_timeout,
        )
        loader = IssueLoader(
            client,
            cache,
            stability,
            enabled_repos=config.enabled_repositories(),
        )
        return cls(
            config=config,
            cache=cache,
            rate_guard=rate_guard,
            stability=stability,
            client=client,
            loader=loader,
        )

    async def aclose(self) -> None:
        """Stop background work and close the HTTP client."""
        await self.loader.cancel_background()
        await self.client.aclose()
