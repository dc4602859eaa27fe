"""Main CLI entry point."""

import logging

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler

from .fetch import fetch, quota, repos, trends

load_dotenv()

app = typer.Typer(
    name="bug-dashboard",
    help="GitHub bug metrics for NVIDIA and Lightning-AI repositories",
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)
console = Console()


def configure_logging(level: str) -> None:
    """Route library logging through rich at the given level."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
        force=True,
    )


app.command(name="fetch", context_settings={"help_option_names": ["-h", "--help"]})(
    fetch
)
app.command(name="trends", context_settings={"help_option_names": ["-h", "--help"]})(
    trends
)
app.command(name="repos", context_settings={"help_option_names": ["-h", "--help"]})(
    repos
)
app.command(name="quota", context_settings={"help_option_names": ["-h", "--help"]})(
    quota
)


@app.command(context_settings={"help_option_names": ["-h", "--help"]})
def serve(
    host: str | None = typer.Option(None, "--host", help="Bind address"),
    port: int | None = typer.Option(None, "--port", "-p", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
) -> None:
    """Run the dashboard HTTP service."""
    import uvicorn

    from ..config import DashboardConfig

    try:
        config = DashboardConfig()
        config.validate()
    except ValueError as e:
        console.print(f"❌ Error: {e}")
        raise typer.Exit(1)

    configure_logging(config.log_level)
    if not config.has_token():
        console.print("⚠️  GITHUB_TOKEN is not set, the service will serve demo data")

    uvicorn.run(
        "bug_dashboard.api.app:create_app",
        factory=True,
        host=host or config.host,
        port=port or config.port,
        reload=reload,
        log_level=config.log_level.lower(),
    )


@app.command(context_settings={"help_option_names": ["-h", "--help"]})
def version() -> None:
    """Show version information."""
    from bug_dashboard import __version__

    console.print(f"Bug Dashboard v{__version__}")


if __name__ == "__main__":
    app()
