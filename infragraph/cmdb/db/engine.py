"""Async SQLAlchemy engine and session factory.

PostgreSQL goes through psycopg3 which supports both sync and async with the
same ``postgresql+psycopg://`` URL.  SQLite (``sqlite+aiosqlite://``) is
accepted for local runs and the test suite.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
    """SQLite ignores FOREIGN KEY clauses (and their cascades) unless asked per connection."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine(database_url: str, **kwargs: object) -> AsyncEngine:
    """Create an async SQLAlchemy engine with production-ready pool settings.

    Default pool parameters for PostgreSQL are tuned for a small service:

    - **pool_size=5**: baseline connections kept open.
    - **max_overflow=10**: burst capacity above pool_size.
    - **pool_pre_ping=True**: test connections before checkout to handle
      server-side disconnects (PG restarts, idle timeouts).
    - **pool_recycle=3600**: recycle connections after 1 hour to avoid
      issues with load-balancers or firewalls that drop idle TCP.

    SQLite gets no pool tuning; in-memory databases share one connection via
    ``StaticPool`` so every session sees the same data.  All defaults can be
    overridden via *kwargs*.
    """
    is_sqlite = database_url.startswith("sqlite")
    if is_sqlite:
        defaults: dict[str, object] = {"echo": False}
        if ":memory:" in database_url or database_url.rstrip("/").endswith(":"):
            defaults["poolclass"] = StaticPool
    else:
        defaults = {
            "echo": False,
            "pool_size": 5,
            "max_overflow": 10,
            "pool_pre_ping": True,
            "pool_recycle": 3600,
        }
    defaults.update(kwargs)
    engine = create_async_engine(database_url, **defaults)  # type: ignore[arg-type]

    if is_sqlite:
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to *engine*.

    ``expire_on_commit=False`` so that ORM instances remain usable after
    commit without triggering lazy loads (important for async code where
    implicit IO is forbidden).
    """
    return async_sessionmaker(engine, expire_on_commit=False)
