"""
Hookline API - FastAPI Application

Main entry point for the FastAPI application.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from src.config import get_settings
from src.core.database import close_db, init_db
from src.jobs.rabbitmq import rabbitmq
from src.routers import (
    health_router,
    hooks_router,
    webhook_endpoints_router,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# Suppress noisy third-party loggers
logging.getLogger("aiormq").setLevel(logging.WARNING)
logging.getLogger("aio_pika").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    # Startup
    logger.info("Starting Hookline API...")
    settings = get_settings()

    # Initialize database
    logger.info("Initializing database connection...")
    await init_db()
    logger.info("Database connection established")

    logger.info(f"Hookline API started in {settings.environment} mode")

    yield

    # Shutdown
    logger.info("Shutting down Hookline API...")

    await rabbitmq.close()
    await close_db()
    logger.info("Hookline API shutdown complete")


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    settings = get_settings()

    # Interactive docs stay off in production
    show_docs = not settings.is_production

    app = FastAPI(
        title="Hookline API",
        description="Inbound platform webhooks and outbound webhook delivery",
        version="1.0.0",
        docs_url="/docs" if show_docs else None,
        redoc_url="/redoc" if show_docs else None,
        openapi_url="/openapi.json" if show_docs else None,
        lifespan=lifespan,
    )

    # Register routers
    app.include_router(health_router)
    app.include_router(hooks_router)
    app.include_router(webhook_endpoints_router)

    # Root endpoint
    @app.get("/")
    async def root():
        return {
            "name": "Hookline API",
            "version": "1.0.0",
            "docs": "/docs" if show_docs else None,
        }

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "src.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
    )
