"""GitHub bug dashboard: resilient issue fetching, caching and metrics."""

__version__ = "0.1.0"
