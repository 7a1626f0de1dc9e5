"""FastAPI application factory for the read-only BMSB JSON API."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI

from bmsb.api.routes import api
from bmsb.config import ApiSettings
from bmsb.data.database import BMSBDatabase
from bmsb.data.store import BMSBStore
from bmsb.logging import get_logger

logger = get_logger(__name__)


def database_lifespan(db_path: str) -> Callable[[FastAPI], Any]:
    """Lifespan that owns the database connection for the app's lifetime.

    The connection is opened inside the server's event loop and exposed to
    route handlers as ``app.state.store``.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        async with BMSBDatabase(db_path) as database:
            app.state.store = BMSBStore(database)
            logger.info("api_started", db_path=db_path)
            yield
        logger.info("api_stopped")

    return lifespan


def create_app(
    settings: ApiSettings | None = None,
    lifespan: Any = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: API settings (default limit, summary window).
        lifespan: Optional async context manager for startup/shutdown,
                  normally ``database_lifespan(path)``.
    """
    app = FastAPI(
        title="Bull Market Support Band",
        lifespan=lifespan,
    )
    app.state.settings = settings or ApiSettings()
    app.include_router(api.router, prefix="/api")
    return app
