"""
Database Connection Management

Async SQLAlchemy 2.0 engine and session factory. One request gets one
session; the session commits when the request's work finishes and rolls back
on any error.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import structlog
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool, StaticPool

from webhub.config import get_settings
from webhub.database.models import Base
from webhub.errors import ConfigurationError

logger = structlog.get_logger(__name__)
settings = get_settings()

# Global engine and session factory
_engine: Optional[AsyncEngine] = None
_async_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def _on_sqlite_connect(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
    # Let SQLAlchemy emit BEGIN itself so SAVEPOINT works
    dbapi_connection.isolation_level = None


def _on_sqlite_begin(conn) -> None:
    conn.exec_driver_sql("BEGIN")


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    """
    Create an async engine for ``url``.

    SQLite gets foreign-key enforcement and explicit BEGIN handling (needed
    for SAVEPOINT) per connection, and in-memory SQLite shares a single
    connection so every session sees the same database.
    """
    engine_config = {
        "echo": echo,
        "future": True,
    }

    if url.startswith("sqlite"):
        if ":memory:" in url:
            engine_config.update({
                "poolclass": StaticPool,
                "connect_args": {"check_same_thread": False},
            })
    else:
        # asyncpg handles its own connection pooling internally
        engine_config.update({
            "poolclass": NullPool,
            "pool_pre_ping": True,
        })

    engine = create_async_engine(url, **engine_config)

    if url.startswith("sqlite"):
        event.listen(engine.sync_engine, "connect", _on_sqlite_connect)
        event.listen(engine.sync_engine, "begin", _on_sqlite_begin)

    return engine


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory used by the app and by tests"""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def create_tables(engine: AsyncEngine) -> None:
    """Create any missing tables (CREATE TABLE IF NOT EXISTS semantics)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_database(url: Optional[str] = None) -> AsyncEngine:
    """
    Initialize the database engine and ensure the schema exists.

    Args:
        url: Override for the configured database URL

    Returns:
        AsyncEngine: The initialized database engine

    Raises:
        ConfigurationError: If the store cannot be reached. Startup must abort.
    """
    global _engine, _async_session_factory

    if _engine is not None:
        logger.warning("Database already initialized")
        return _engine

    target = url or settings.database.async_url
    engine = build_engine(target, echo=settings.database.echo)

    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        await create_tables(engine)
    except Exception as e:
        logger.error("Failed to connect to database", error=str(e), error_type=type(e).__name__)
        await engine.dispose()
        raise ConfigurationError(f"Database unreachable: {e}") from e

    _engine = engine
    _async_session_factory = build_session_factory(engine)

    logger.info(
        "Database connection established",
        dialect=engine.dialect.name,
        database=engine.url.database,
    )
    return _engine


async def close_database() -> None:
    """Dispose of the engine and forget the session factory."""
    global _engine, _async_session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _async_session_factory = None
        logger.info("Database connection pool closed")


def get_engine() -> AsyncEngine:
    """
    Get the database engine.

    Raises:
        RuntimeError: If database is not initialized
    """
    if _engine is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return _engine


@asynccontextmanager
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Get a database session.

    Commits on success, rolls back and re-raises on error.

    Example:
        async with get_db() as db:
            result = await db.execute(query)
    """
    if _async_session_factory is None:
        logger.error("Database not initialized when get_db() called")
        raise RuntimeError("Database not initialized. Call init_database() first.")

    session = _async_session_factory()
    try:
        yield session
        await session.commit()
    except Exception as e:
        logger.debug("Database session rolled back", error=str(e), error_type=type(e).__name__)
        await session.rollback()
        raise
    finally:
        await session.close()


async def get_db_dependency() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency for database sessions.

    Example:
        @router.get("/webapps")
        async def list_webapps(db: AsyncSession = Depends(get_db_dependency)):
            ...
    """
    async with get_db() as session:
        yield session


async def check_database_health() -> dict:
    """
    Check database health status.

    Returns:
        dict: Health status with latency information
    """
    import time

    try:
        start = time.perf_counter()
        async with get_db() as db:
            await db.execute(text("SELECT 1"))
        latency_ms = (time.perf_counter() - start) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(latency_ms, 2),
        }
    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e),
        }
