"""Tests for the dependency container."""

import pytest

from bug_dashboard.config import DashboardConfig
from bug_dashboard.context import DashboardContext


@pytest.mark.asyncio
async def test_from_config_wires_shared_state(monkeypatch) -> None:
    """Test every component shares the same cache, guard and manager."""
    monkeypatch.setenv("GITHUB_TOKEN", "test_token")
    monkeypatch.setenv("ENABLE_LIGHTNING_THUNDER", "false")

    ctx = DashboardContext.from_config(DashboardConfig())

    assert ctx.client.token == "test_token"
    assert ctx.client.rate_guard is ctx.rate_guard
    assert ctx.loader.client is ctx.client
    assert ctx.loader.cache is ctx.cache
    assert ctx.loader.stability is ctx.stability
    assert ctx.loader.enabled_repos == ["TransformerEngine", "Fuser"]

    await ctx.aclose()


def test_contexts_are_isolated() -> None:
    """Test two contexts never share mutable state."""
    first = DashboardContext.from_config(DashboardConfig())
    second = DashboardContext.from_config(DashboardConfig())

    first.cache.set("k", "v")

    assert second.cache.get("k") is None
    assert first.stability is not second.stability


@pytest.mark.asyncio
async def test_quota_follows_authentication(monkeypatch) -> None:
    """Test the local budget matches GitHub's quota for the credential."""
    monkeypatch.setenv("GITHUB_TOKEN", "test_token")
    authenticated = DashboardContext.from_config(DashboardConfig())

    monkeypatch.delenv("GITHUB_TOKEN")
    anonymous = DashboardContext.from_config(DashboardConfig())

    assert authenticated.rate_guard.hourly_quota == 5000
    assert authenticated.rate_guard.reserve == 100
    assert anonymous.rate_guard.hourly_quota == 60
    assert anonymous.rate_guard.reserve == 6

    await anonymous.rate_guard.acquire()
    assert anonymous.rate_guard.requests_in_window == 1

    await authenticated.aclose()
    await anonymous.aclose()
