"""
Database configuration and session management.
Uses async SQLAlchemy for non-blocking database operations.

Logging:
- SQL echo disabled (noise)
- slow queries (1s and above) logged as WARNING
- session errors logged and counted
"""
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import HTTPException
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from schoolshare.config import get_settings
from schoolshare.exceptions import SchoolShareError
from schoolshare.utils.prometheus_metrics import db_errors_total

_logger = logging.getLogger("schoolshare.db")

settings = get_settings()

# Slow query threshold (seconds)
SLOW_QUERY_THRESHOLD = 1.0

_database_url = settings.database_url.strip()


def build_engine(url: str) -> AsyncEngine:
    """Create the async engine, with a connection pool unless running on SQLite."""
    if "sqlite" in url:
        new_engine = create_async_engine(url, echo=False, poolclass=NullPool)
        configure_sqlite(new_engine)
    else:
        new_engine = create_async_engine(
            url,
            echo=False,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            pool_recycle=settings.db_pool_recycle,
            pool_pre_ping=True,
        )
    _install_slow_query_logging(new_engine)
    return new_engine


def configure_sqlite(target: AsyncEngine) -> None:
    """
    Let SQLAlchemy emit BEGIN itself so SAVEPOINTs behave on (aio)sqlite,
    and turn on foreign keys so ON DELETE rules apply.
    """

    @event.listens_for(target.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(target.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def _install_slow_query_logging(target: AsyncEngine) -> None:
    @event.listens_for(target.sync_engine, "before_cursor_execute")
    def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        conn.info.setdefault("query_start_time", []).append(time.perf_counter())

    @event.listens_for(target.sync_engine, "after_cursor_execute")
    def _after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        start_times = conn.info.get("query_start_time")
        if start_times:
            elapsed = time.perf_counter() - start_times.pop()
            if elapsed >= SLOW_QUERY_THRESHOLD:
                # first 100 chars only
                short_stmt = statement[:100] + "..." if len(statement) > 100 else statement
                _logger.warning(
                    "Slow query",
                    extra={"event": "db", "ms": round(elapsed * 1000), "query": short_stmt},
                )


engine = build_engine(_database_url)

# Create async session factory
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


async def init_db() -> None:
    """Initialize database by creating all tables."""
    # models must be imported so that their tables are registered on Base.metadata
    import schoolshare.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections properly."""
    await engine.dispose()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency that provides a database session.
    The whole request is one unit of work: commit on success, rollback on error.

    Usage:
        @router.get("/items")
        async def get_items(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            # client-facing errors roll back silently; only unexpected failures are DB errors
            if not isinstance(e, (HTTPException, SchoolShareError)):
                db_errors_total.inc()
                _logger.error(
                    "DB error",
                    extra={
                        "event": "db",
                        "error_type": type(e).__name__,
                        "error": str(e)[:200],
                    },
                )
            raise


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Context manager for database sessions outside of request context.
    Useful for scripts and maintenance commands.

    Usage:
        async with get_db_context() as session:
            result = await session.execute(query)
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            _logger.error(
                "DB context error",
                extra={
                    "event": "db",
                    "error_type": type(e).__name__,
                    "error": str(e)[:200],
                },
            )
            await session.rollback()
            raise
