"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures logging, routers, and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import run_migrations
from src.api.dependencies import (
    build_email_sender,
    build_identity_service,
    build_purge_scheduler,
)
from src.api.v1 import router as v1_router
from src.config.settings import get_settings

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "v1",
        "description": "Identity Provisioning API v1 - Institutional signup, OTP verification, "
        "login and password reset",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Creates database connection pool and runs migrations (postgres backend)
    - Starts worker pools for bcrypt and OTP mail delivery
    - Builds the identity service and its mail transport
    - Schedules periodic purging of expired OTPs
    - Stops the scheduler, closes the transport and pools on shutdown
    """
    settings = get_settings()

    logger.info("Starting application...")
    if settings.jwt_secret_key == "change-me":
        logger.warning("JWT_SECRET_KEY is the default placeholder; set it before deploying")

    pool = None
    if settings.storage_backend == "postgres":
        logger.info("Connecting to database...")
        pool = ConnectionPool(
            conninfo=settings.database_url,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
        )

        logger.info("Running database migrations...")
        run_migrations(pool)
    else:
        logger.warning("Using in-memory storage; accounts are lost on restart")

    hash_executor = ThreadPoolExecutor(
        max_workers=settings.hash_workers, thread_name_prefix="bcrypt"
    )
    notify_executor = ThreadPoolExecutor(
        max_workers=settings.notify_workers, thread_name_prefix="otp-mail"
    )
    email_sender = build_email_sender(settings)

    service = build_identity_service(
        settings,
        pool=pool,
        hash_executor=hash_executor,
        notify_executor=notify_executor,
        email_sender=email_sender,
    )
    app.state.pool = pool
    app.state.identity_service = service

    scheduler = build_purge_scheduler(service, settings.purge_interval_seconds)
    if scheduler is not None:
        scheduler.start()
        logger.info("Purging expired OTPs every %ds", settings.purge_interval_seconds)

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    if scheduler is not None:
        scheduler.shutdown(wait=False)
    hash_executor.shutdown(wait=True)
    # Deliveries still in flight are abandoned; their records stay valid.
    notify_executor.shutdown(wait=False, cancel_futures=True)
    email_sender.close()
    if pool is not None:
        pool.close()
        logger.info("Database connection pool closed")


app = FastAPI(
    title="unigram-identity",
    description="Identity provisioning for an institution-restricted social app",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

# Include v1 API routes
app.include_router(v1_router, prefix="/v1")


@app.get("/health")
def health_check(request: Request) -> dict[str, str]:
    """
    Health check endpoint with database validation.

    Returns 200 OK if application and database are healthy.
    Raises exception if database connection fails.
    """
    pool = getattr(request.app.state, "pool", None)
    if pool is not None:
        with pool.connection() as conn:
            conn.execute("SELECT 1")

    return {"status": "healthy"}
