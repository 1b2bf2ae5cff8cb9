"""FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ledger.api import editor_router
from ledger.core.config import settings
from ledger.core.logging import get_logger, setup_logging
from ledger.db.base import dispose_engine

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown events."""
    setup_logging()
    logger.info(
        "Ledger API starting",
        environment=settings.environment,
        editor_enabled=settings.editor_enabled,
        editor_dry_run=settings.editor_dry_run,
    )
    yield
    await dispose_engine()


def create_app() -> FastAPI:
    """Application factory for creating the FastAPI instance."""
    app = FastAPI(
        title="Ledger Editor API",
        description=(
            "Operator API for the automated editor that turns intake items into "
            "published, sourced claim cards.\n\n"
            "## Features\n"
            "- **Editor runs**: Trigger and inspect editor passes\n"
        ),
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(
        editor_router,
        prefix="/api/v1/editor",
        tags=["Editor"],
    )

    @app.get("/health", tags=["Health"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint for container orchestration."""
        return {"status": "healthy", "version": settings.app_version}

    @app.get("/", tags=["Root"])
    async def root() -> dict[str, str]:
        """Root endpoint with API information."""
        return {
            "service": "Ledger Editor API",
            "version": settings.app_version,
            "docs": "/docs",
            "health": "/health",
        }

    return app


app = create_app()
