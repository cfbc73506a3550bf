"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures exception handlers, and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from psycopg_pool import ConnectionPool

from src.adapters.repository.memory import InMemoryAccountRepository
from src.adapters.repository.postgres import PostgresAccountRepository, run_migrations
from src.adapters.scheduler import ExpirySweeper
from src.api.auth import router as auth_router
from src.api.dependencies import build_email_sender
from src.api.errors import register_exception_handlers
from src.config.settings import get_settings

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "auth",
        "description": "Account provisioning and recovery - signup and password reset with emailed OTPs",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Creates the repository (database pool + migrations for postgres)
    - Creates the email sender
    - Starts the expired-record sweep
    - Stops the sweep and closes the pool on shutdown
    """
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    logger.info("Starting application...")

    pool = None
    if settings.storage_backend == "postgres":
        logger.info("Connecting to database...")
        pool = ConnectionPool(
            conninfo=settings.database_url,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
            open=True,
        )

        logger.info("Running database migrations...")
        try:
            run_migrations(pool)
        except Exception:
            logger.error("Database migrations failed; closing connection pool")
            pool.close()
            raise
        repository = PostgresAccountRepository(pool)
    else:
        logger.warning("Using in-memory storage; accounts are lost on restart")
        repository = InMemoryAccountRepository()

    # Store adapters in app state for dependency injection
    app.state.repository = repository
    app.state.email_sender = build_email_sender(settings)

    sweeper = ExpirySweeper(repository, settings.sweep_interval_seconds)
    if settings.sweep_enabled:
        sweeper.start()

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    sweeper.shutdown()
    if pool is not None:
        pool.close()
        logger.info("Database connection pool closed")


app = FastAPI(
    title="uptime-accounts",
    description="Uptime dashboard account API - signup and password recovery with emailed OTP codes",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

register_exception_handlers(app)

app.include_router(auth_router, prefix="/auth")


@app.get("/health")
def health_check(request: Request) -> dict[str, str]:
    """
    Health check endpoint with storage validation.

    Returns 200 OK if application and storage are healthy.
    """
    request.app.state.repository.ping()
    return {"status": "healthy"}
