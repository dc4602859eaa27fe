"""Services that orchestrate fetching, caching and fallback."""

from .loader import (
    DashboardLoad,
    IssueLoader,
    LoadResult,
    LoadStatus,
    Priority,
    SweepResult,
)

__all__ = [
    "DashboardLoad",
    "IssueLoader",
    "LoadResult",
    "LoadStatus",
    "Priority",
    "SweepResult",
]
