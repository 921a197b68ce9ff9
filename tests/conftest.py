"""Shared test fixtures: one isolated database session per test.

By default every test gets a fresh in-memory SQLite database (aiosqlite)
built from ``Base.metadata``.  With ``INFRAGRAPH_TEST_BACKEND=postgres`` the
same tests run against a PostgreSQL 17 container managed by
testcontainers-python: the container is session-scoped, the schema comes from
the Alembic migrations, and each test runs inside a savepoint that is rolled
back afterwards.

The PostgreSQL backend requires Docker.
"""

from __future__ import annotations

import os
from collections.abc import AsyncIterator, Iterator
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool

from infragraph.cmdb.db.engine import create_engine, create_session_factory
from infragraph.cmdb.db.tables import Base
from infragraph.cmdb.settings import _get_settings_cached

TEST_BACKEND = os.environ.get("INFRAGRAPH_TEST_BACKEND", "sqlite")


def _set_env(key: str, value: str) -> None:
    """Set an env var and invalidate the settings cache."""
    os.environ[key] = value
    _get_settings_cached.cache_clear()


# ---------------------------------------------------------------------------
# Session-scoped: PostgreSQL container and schema migration (opt-in)
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def pg_container() -> Iterator[object]:
    """Start a PostgreSQL 17 container for the test session."""
    from testcontainers.postgres import PostgresContainer

    with PostgresContainer(
        image="postgres:17",
        username="test",
        password="test",
        dbname="infragraph_test",
        driver="psycopg",
    ) as pg:
        yield pg


@pytest.fixture(scope="session")
def pg_url(pg_container) -> str:
    """PostgreSQL URL (psycopg3 dialect) with Alembic migrations applied."""
    url = pg_container.get_connection_url()
    _set_env("INFRAGRAPH_DATABASE_URL", url)

    from alembic import command
    from alembic.config import Config

    ini_path = Path(__file__).parent.parent / "infragraph" / "cmdb" / "alembic.ini"
    command.upgrade(Config(str(ini_path)), "head")
    return url


# ---------------------------------------------------------------------------
# Function-scoped: isolated DB session
# ---------------------------------------------------------------------------


async def _sqlite_session() -> AsyncIterator[AsyncSession]:
    engine = create_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with create_session_factory(engine)() as session:
        yield session
    await engine.dispose()


async def _postgres_session(url: str) -> AsyncIterator[AsyncSession]:
    """``session.commit()`` inside tested code only releases a savepoint."""
    engine = create_async_engine(url, poolclass=NullPool)
    async with engine.connect() as conn:
        await conn.begin()
        session = AsyncSession(bind=conn, join_transaction_mode="create_savepoint", expire_on_commit=False)
        yield session
        await session.close()
        await conn.rollback()
    await engine.dispose()


@pytest.fixture
async def db_session(request: pytest.FixtureRequest) -> AsyncIterator[AsyncSession]:
    """Async SQLAlchemy session on a clean database."""
    if TEST_BACKEND == "postgres":
        sessions = _postgres_session(request.getfixturevalue("pg_url"))
    else:
        sessions = _sqlite_session()
    async for session in sessions:
        yield session
