"""
FastAPI application for authcore.

Builds the app, registers exception handlers and the v1 router, and owns
the process-wide resources (connection pool, email sender) through the
lifespan.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import run_migrations
from src.adapters.smtp.background import BackgroundEmailSender
from src.adapters.smtp.console import ConsoleEmailSender
from src.api.errors import register_exception_handlers
from src.api.v1 import router as v1_router
from src.config.settings import get_settings

logger = logging.getLogger(__name__)

tags_metadata = [
    {
        "name": "v1",
        "description": "Signup with emailed one-time codes, password setup, "
        "login and refresh-token sessions",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Open shared resources before serving and release them afterwards.

    Startup configures logging, opens the pool, applies migrations and
    starts the background email sender. Shutdown drains queued emails
    before the pool is closed.
    """
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    logger.info("Opening connection pool (min=%d, max=%d)", settings.pool_min_size, settings.pool_max_size)
    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
    )
    run_migrations(pool)

    email_sender = BackgroundEmailSender(ConsoleEmailSender(), max_workers=settings.email_workers)
    app.state.pool = pool
    app.state.email_sender = email_sender
    logger.info("authcore ready")

    try:
        yield
    finally:
        logger.info("Draining email queue")
        email_sender.shutdown(wait=True)
        pool.close()
        logger.info("Connection pool closed")


app = FastAPI(
    title="authcore",
    description="Account lifecycle and session API - signup, OTP verification, "
    "password setup, login and refresh-token rotation",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

register_exception_handlers(app)
app.include_router(v1_router, prefix="/v1")


@app.get("/health")
def health_check(request: Request) -> dict[str, str]:
    """Report healthy once the database answers SELECT 1."""
    with request.app.state.pool.connection() as conn:
        conn.execute("SELECT 1")
    return {"status": "healthy"}
