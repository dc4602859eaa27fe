"""Command line interface for the bug dashboard."""
