"""
Database session management.

Provides the async SQLAlchemy engine, the session factory, and the
``get_db`` dependency injected into endpoints via ``Depends()``.
"""

from collections.abc import AsyncGenerator
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from app.core.config import settings


def pg_connect_args(ssl_mode: Optional[str]) -> Dict[str, Any]:
    """asyncpg accepts libpq sslmode names directly as ``ssl``."""
    return {"ssl": ssl_mode} if ssl_mode else {}


def build_engine(
    url: str, echo: bool = False, ssl_mode: Optional[str] = settings.POSTGRES_SSLMODE
) -> AsyncEngine:
    """
    Create an async engine for ``url``.

    SQLite URLs get a ``StaticPool`` so every connection shares the same
    in-memory database; anything else gets the configured connection pool
    and, when ``ssl_mode`` is set, that TLS mode.
    """
    if url.startswith("sqlite"):
        return create_async_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_async_engine(
        url,
        echo=echo,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True,
        connect_args=pg_connect_args(ssl_mode),
    )


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False: attributes stay readable after commit without
    # a lazy load, which async sessions cannot do implicitly.
    return async_sessionmaker(bind=bind, class_=AsyncSession, expire_on_commit=False)


engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)
AsyncSessionLocal = build_session_factory(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that yields an async database session.

    The session is closed when the request finishes, returning its
    connection to the pool.
    """
    async with AsyncSessionLocal() as session:
        yield session
