"""Async SQLAlchemy engine and session management."""

from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from timeoff.config import settings


def build_engine(url: str, **kwargs: Any) -> AsyncEngine:
    """Create an async engine for either backend.

    PostgreSQL (asyncpg) gets a sized connection pool. SQLite (aiosqlite)
    keeps the dialect's default pool, switches foreign keys on so user
    deletes cascade, and opens every transaction with ``BEGIN IMMEDIATE``
    so concurrent writers queue on the file lock instead of failing.
    """
    if make_url(url).get_backend_name() == "sqlite":
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        eng = create_async_engine(url, **kwargs)
        event.listen(eng.sync_engine, "connect", _configure_sqlite_connection)
        event.listen(eng.sync_engine, "begin", _begin_immediate)
        return eng

    kwargs.setdefault("pool_size", 10)
    kwargs.setdefault("max_overflow", 20)
    kwargs.setdefault("pool_pre_ping", True)
    return create_async_engine(url, **kwargs)


def _configure_sqlite_connection(dbapi_conn, connection_record) -> None:
    # Let SQLAlchemy emit BEGIN itself (see _begin_immediate)
    dbapi_conn.isolation_level = None
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _begin_immediate(conn) -> None:
    conn.exec_driver_sql("BEGIN IMMEDIATE")


# Async engine for FastAPI
engine = build_engine(
    settings.DATABASE_URL,
    echo=settings.ENVIRONMENT == "development",
)

# Async session factory
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass
