"""
Database session configuration.

This module handles database engine creation and session management
using SQLAlchemy with async support (PostgreSQL in production, SQLite
for local runs and tests). It also provides the unit of work used by
every mutating engine operation.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from backend.app.core.config import settings
from backend.app.core.exceptions import StoreFailureError


def configure_sqlite(engine: AsyncEngine, immediate: bool = True) -> AsyncEngine:
    """
    Harden a SQLite engine for ledger use.

    Enables foreign keys on every connection and, when ``immediate`` is set,
    opens each transaction with ``BEGIN IMMEDIATE`` so writers are serialized
    by the database lock instead of failing on lock upgrade.
    """
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()
        if immediate:
            # Let SQLAlchemy emit BEGIN itself
            dbapi_conn.isolation_level = None

    if immediate:
        @event.listens_for(engine.sync_engine, "begin")
        def _on_begin(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def build_engine(database_url: str, **kwargs) -> AsyncEngine:
    """Create an async engine, applying pool options only where they apply."""
    if database_url.startswith("sqlite"):
        connect_args = kwargs.pop("connect_args", {})
        connect_args.setdefault("timeout", settings.sqlite_busy_timeout)
        return configure_sqlite(
            create_async_engine(database_url, echo=settings.db_echo, connect_args=connect_args, **kwargs)
        )

    return create_async_engine(
        database_url,
        echo=settings.db_echo,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        future=True,
        **kwargs
    )


# Create async engine
engine = build_engine(settings.database_url)

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

# Create declarative base for models
Base = declarative_base()


async def get_db():
    """
    FastAPI dependency for database sessions.

    Yields an async database session and ensures it's properly closed.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


@asynccontextmanager
async def transaction(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Atomic unit of work over one session.

    The body performs all of its reads and writes through ``db``. On normal
    exit the unit is committed; on any exception it is rolled back, so no
    partial state is ever visible. Store-level errors (including a failed
    commit) surface as StoreFailureError; application errors propagate as-is.

    Usage:
        async with transaction(db):
            ...
    """
    try:
        yield db
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise StoreFailureError(f"Transaction aborted: {type(exc).__name__}") from exc
    except BaseException:
        await db.rollback()
        raise
