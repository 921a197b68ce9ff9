"""Service connection endpoints (RPC-style)."""

from __future__ import annotations

from fastapi import APIRouter, Query, status

from infragraph.cmdb.db.tables import ServiceConnection
from infragraph.cmdb.deps import Broadcaster, DbSession, Settings
from infragraph.cmdb.managers import service_graph
from infragraph.cmdb.models.api import ConnectionDelete, ServiceConnectionCreate, ServiceConnectionResponse
from infragraph.cmdb.routers.errors import domain_errors

router = APIRouter(prefix="/service-connections", tags=["service-connections"])


@router.post("/create", response_model=ServiceConnectionResponse, status_code=status.HTTP_201_CREATED)
async def create_service_connection(
    body: ServiceConnectionCreate, db: DbSession, broadcaster: Broadcaster, settings: Settings
) -> ServiceConnection:
    """Create a directed edge inside a service diagram.  Duplicates follow the configured policy."""
    with domain_errors():
        conn = await service_graph.create_service_connection(
            db,
            body.service_id,
            body.shape,
            body.source_id,
            body.target_id,
            on_conflict=settings.connection_conflict_policy,
        )
    await broadcaster.items_changed(db, conn.workspace_id)
    return conn


@router.post("/delete")
async def delete_service_connection(
    body: ConnectionDelete, db: DbSession, broadcaster: Broadcaster
) -> dict[str, int]:
    with domain_errors():
        removed = await service_graph.delete_service_connection(db, body.shape, body.source_id, body.target_id)
    if removed is None:
        return {"deleted": 0}
    await broadcaster.items_changed(db, removed.workspace_id)
    return {"deleted": 1}


@router.get("/list", response_model=list[ServiceConnectionResponse])
async def list_service_connections(db: DbSession, service_id: int = Query(...)) -> list[ServiceConnection]:
    with domain_errors():
        return await service_graph.list_service_connections(db, service_id)
