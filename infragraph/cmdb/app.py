from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from fastapi import FastAPI
from fastapi.routing import APIRouter
from loguru import logger
from sse_starlette.sse import AppStatus

from infragraph.cmdb.broadcast import ChangeBroadcaster
from infragraph.cmdb.db.engine import create_engine, create_session_factory
from infragraph.cmdb.log import setup_logging
from infragraph.cmdb.managers.workspaces import ensure_default_workspace
from infragraph.cmdb.notify import RedisChangeSink
from infragraph.cmdb.settings import get_settings


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    # -- Startup ---------------------------------------------------------------
    settings = get_settings()
    setup_logging(settings.log_level, sql_level=settings.log_sql_level, serialize=settings.log_json)
    logger.info("CMDB service starting (host={}, port={})", settings.host, settings.port)

    # -- Initialise state fields (always present, possibly None) ----------------
    _app.state.db_engine = None
    _app.state.db_session_factory = None
    _app.state.redis = None

    # -- Database --------------------------------------------------------------
    if settings.database_url:
        engine = create_engine(settings.database_url)
        _app.state.db_engine = engine
        _app.state.db_session_factory = create_session_factory(engine)
        logger.info("Database: connected ({})", engine.url.get_backend_name())
    else:
        logger.warning("INFRAGRAPH_DATABASE_URL not set -- database features disabled")

    # -- Redis -----------------------------------------------------------------
    if settings.redis_url:
        _app.state.redis = aioredis.from_url(
            settings.redis_url,
            decode_responses=False,
            socket_connect_timeout=5,
            retry_on_timeout=True,
        )
        _app.state.broadcaster = ChangeBroadcaster(
            RedisChangeSink(_app.state.redis, prefix=settings.broadcast_channel_prefix)
        )
        logger.info("Redis: connected (channel prefix={})", settings.broadcast_channel_prefix)
    else:
        _app.state.broadcaster = ChangeBroadcaster()
        logger.warning("INFRAGRAPH_REDIS_URL not set -- change broadcasting disabled")

    # -- SSE -------------------------------------------------------------------
    AppStatus.disable_automatic_graceful_drain()

    # -- Default workspace -----------------------------------------------------
    if _app.state.db_session_factory is not None:
        async with _app.state.db_session_factory() as db:
            workspace = await ensure_default_workspace(db, settings.default_workspace_name)
            logger.info("Default workspace: {} ({!r})", workspace.id, workspace.name)

    yield

    # -- Shutdown --------------------------------------------------------------
    logger.info("CMDB service shutting down")

    AppStatus.should_exit = True

    if _app.state.redis is not None:
        await _app.state.redis.aclose()
        logger.info("Redis: closed")

    if _app.state.db_engine is not None:
        await _app.state.db_engine.dispose()
        logger.info("Database: disposed")


app = FastAPI(title="Infragraph CMDB", lifespan=lifespan)

# ---------------------------------------------------------------------------
# API router -- all backend endpoints live under /api
# ---------------------------------------------------------------------------
api = APIRouter(prefix="/api")


@api.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


from infragraph.cmdb.routers.connections import router as connections_router  # noqa: E402
from infragraph.cmdb.routers.edge_routes import router as edge_routes_router  # noqa: E402
from infragraph.cmdb.routers.groups import router as groups_router  # noqa: E402
from infragraph.cmdb.routers.items import router as items_router  # noqa: E402
from infragraph.cmdb.routers.service_connections import router as service_connections_router  # noqa: E402
from infragraph.cmdb.routers.service_edge_routes import router as service_edge_routes_router  # noqa: E402
from infragraph.cmdb.routers.service_groups import router as service_groups_router  # noqa: E402
from infragraph.cmdb.routers.service_items import router as service_items_router  # noqa: E402
from infragraph.cmdb.routers.services import router as services_router  # noqa: E402
from infragraph.cmdb.routers.workspaces import router as workspaces_router  # noqa: E402

api.include_router(workspaces_router)
api.include_router(groups_router)
api.include_router(items_router)
api.include_router(connections_router)
api.include_router(edge_routes_router)
api.include_router(services_router)
api.include_router(service_groups_router)
api.include_router(service_items_router)
api.include_router(service_connections_router)
api.include_router(service_edge_routes_router)

app.include_router(api)
