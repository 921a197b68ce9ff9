"""FastAPI dependency injection for DB sessions, Redis and the broadcaster.

Usage in route handlers::

    @router.post("/things")
    async def create_thing(db: DbSession, broadcaster: Broadcaster, thing: ThingCreate) -> ThingResponse:
        ...

Dependencies raise HTTP 503 if the backing service was not configured
(INFRAGRAPH_DATABASE_URL / INFRAGRAPH_REDIS_URL unset).
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Annotated

import redis.asyncio as aioredis
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from infragraph.cmdb.broadcast import ChangeBroadcaster
from infragraph.cmdb.settings import CMDBSettings, get_settings


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """Yield an async SQLAlchemy session, closing it after the request.

    Managers commit or roll back their own transactions.  If the handler
    raises, the session is simply closed and any implicit transaction is
    rolled back by the connection pool.
    """
    session_factory = request.app.state.db_session_factory
    if session_factory is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database not configured (INFRAGRAPH_DATABASE_URL is unset).",
        )
    session: AsyncSession = session_factory()
    try:
        yield session
    finally:
        await session.close()


async def get_redis(request: Request) -> aioredis.Redis:
    """Return the shared async Redis client."""
    client: aioredis.Redis | None = request.app.state.redis
    if client is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Redis not configured (INFRAGRAPH_REDIS_URL is unset).",
        )
    return client


def get_broadcaster(request: Request) -> ChangeBroadcaster:
    """Return the process-wide broadcaster, falling back to a no-op one."""
    broadcaster: ChangeBroadcaster | None = getattr(request.app.state, "broadcaster", None)
    return broadcaster or ChangeBroadcaster()


# -- Annotated type aliases for concise route signatures ---------------------

DbSession = Annotated[AsyncSession, Depends(get_db)]
"""Annotated dependency: async SQLAlchemy session (auto-closed after request)."""

RedisClient = Annotated[aioredis.Redis, Depends(get_redis)]
"""Annotated dependency: shared async Redis client."""

Broadcaster = Annotated[ChangeBroadcaster, Depends(get_broadcaster)]
"""Annotated dependency: post-commit change broadcaster."""

Settings = Annotated[CMDBSettings, Depends(get_settings)]
"""Annotated dependency: cached service settings."""
