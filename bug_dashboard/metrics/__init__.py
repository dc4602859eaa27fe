"""Bug metrics derived from fetched issues."""

from .aggregator import (
    calculate_bug_metrics,
    calculate_combined_bug_metrics,
    generate_bug_trends,
)
from .models import BugMetrics, BugTrend, CombinedBugMetrics, RepositoryStats

__all__ = [
    "BugMetrics",
    "BugTrend",
    "CombinedBugMetrics",
    "RepositoryStats",
    "calculate_bug_metrics",
    "calculate_combined_bug_metrics",
    "generate_bug_trends",
]
