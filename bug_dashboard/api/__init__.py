"""HTTP API serving dashboard data."""

from .app import create_app

__all__ = ["create_app"]
