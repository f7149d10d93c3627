"""FastAPI application for Usage Stats.

This module provides the main application setup and router configuration.
All route handlers are organized in the api/routers/ directory.
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import get_config
from api.routers import auth_router, stats_router, system_router, uploads_router
from storage.database import DatabaseError, close_database, init_database

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    config = get_config()
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Requests retry the init lazily, so a backend that is down at startup
    # does not keep the API from coming up
    try:
        await init_database()
    except DatabaseError as e:
        logger.warning(f"Database not initialized at startup: {e.message}")

    logger.info("Usage Stats API started")

    yield

    logger.info("Usage Stats API shutting down")
    close_database()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    application = FastAPI(
        title="Usage Stats",
        description="Ingest workspace usage reports and serve aggregated statistics",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Configure CORS
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # =========================================================================
    # Router Registration
    # =========================================================================

    # System routes (health)
    application.include_router(system_router)

    # Schema init and accounts
    application.include_router(auth_router)

    # Data import
    application.include_router(uploads_router)

    # Aggregated reads
    application.include_router(stats_router)

    return application


app = create_app()


def main() -> None:
    """Run the API with uvicorn on the configured host and port."""
    config = get_config()
    uvicorn.run(
        "api.main:app",
        host=config.api_host,
        port=config.api_port,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    main()
