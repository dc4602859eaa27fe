"""FastAPI application entry point."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..context import DashboardContext
from .routes import router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the shared context on startup and tear it down on shutdown."""
    app.state.context = DashboardContext.from_config()
    logger.info("Dashboard context ready")

    yield

    await app.state.context.aclose()


def create_app(context: DashboardContext | None = None) -> FastAPI:
    """Create FastAPI application.

    Args:
        context: Optional DashboardContext for testing. If None, the lifespan
                 handler builds one from the environment.

    Returns:
        Configured FastAPI application
    """
    if context is not None:
        app = FastAPI(title="Bug Dashboard", version=__version__)
        app.state.context = context
    else:
        app = FastAPI(title="Bug Dashboard", version=__version__, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )
    app.include_router(router)

    return app
