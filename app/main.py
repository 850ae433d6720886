"""
Donor Registry API: Application entry-point.

Initializes the FastAPI application, registers middleware, exception handlers
and routers, and manages the application lifecycle (table creation on startup).
"""

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from sqlalchemy import text
from sqlmodel import SQLModel

from app.api.router import api_router
from app.core.config import settings
from app.core.exceptions import add_exception_handlers
from app.core.logging import setup_logging
from app.db.session import AsyncSessionLocal, engine
from app.middleware import RequestIDMiddleware, RequestTimingMiddleware

setup_logging()
logger = logging.getLogger(__name__)

DB_CONNECT_RETRIES = 5
DB_CONNECT_INITIAL_DELAY = 2  # seconds, doubles each attempt


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup: register table models and create missing tables, retrying with
    exponential back-off.  If the database stays unreachable the app still
    starts (degraded); ``/health`` then reports ``database: false``.

    Shutdown: dispose of the connection pool.
    """
    from app.db import base as _models  # noqa: F401  (populates SQLModel.metadata)

    retry_delay = DB_CONNECT_INITIAL_DELAY
    for attempt in range(1, DB_CONNECT_RETRIES + 1):
        try:
            logger.info("Connecting to database (attempt %d/%d)…", attempt, DB_CONNECT_RETRIES)
            async with engine.begin() as conn:
                await conn.run_sync(SQLModel.metadata.create_all)
            logger.info("Database tables ready")
            break
        except Exception as exc:
            if attempt < DB_CONNECT_RETRIES:
                logger.warning(
                    "Database connection failed (attempt %d/%d): %s, retrying in %ds",
                    attempt,
                    DB_CONNECT_RETRIES,
                    exc,
                    retry_delay,
                )
                await asyncio.sleep(retry_delay)
                retry_delay *= 2
            else:
                logger.error(
                    "Could not connect to database after %d attempts; starting in "
                    "DEGRADED mode. Last error: %s",
                    DB_CONNECT_RETRIES,
                    exc,
                )

    yield

    logger.info("Shutting down: disposing connection pool")
    await engine.dispose()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    description="Manage donor records and report on donor signups.",
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
    lifespan=lifespan,
)

# ── Middleware (last added = outermost) ──
app.add_middleware(GZipMiddleware, minimum_size=500)
app.add_middleware(RequestTimingMiddleware)
app.add_middleware(RequestIDMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)

add_exception_handlers(app)

app.include_router(api_router, prefix=settings.API_PREFIX)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Liveness / readiness probe.

    Runs ``SELECT 1`` so a pod that has lost its database is reported as
    ``degraded`` instead of ``ok``.
    """
    db_healthy = True
    try:
        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
    except Exception:
        logger.warning("Health check: database unreachable", exc_info=True)
        db_healthy = False

    return {
        "status": "ok" if db_healthy else "degraded",
        "version": "1.0.0",
        "database": db_healthy,
    }
