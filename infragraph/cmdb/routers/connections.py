"""Connection endpoints (RPC-style)."""

from __future__ import annotations

from fastapi import APIRouter, Query, status

from infragraph.cmdb.db.tables import Connection
from infragraph.cmdb.deps import Broadcaster, DbSession, Settings
from infragraph.cmdb.managers import connections
from infragraph.cmdb.models.api import ConnectionCreate, ConnectionDelete, ConnectionResponse
from infragraph.cmdb.routers.errors import domain_errors

router = APIRouter(prefix="/connections", tags=["connections"])


@router.post("/create", response_model=ConnectionResponse, status_code=status.HTTP_201_CREATED)
async def create_connection(
    body: ConnectionCreate, db: DbSession, broadcaster: Broadcaster, settings: Settings
) -> Connection:
    """Create a directed edge.

    Creating an edge that already exists returns it unchanged, unless the
    service is configured to reject duplicates (409).
    """
    with domain_errors():
        conn = await connections.create_connection(
            db,
            body.shape,
            body.source_id,
            body.target_id,
            body.workspace_id,
            on_conflict=settings.connection_conflict_policy,
        )
    await broadcaster.items_changed(db, conn.workspace_id)
    return conn


@router.post("/delete")
async def delete_connection(body: ConnectionDelete, db: DbSession, broadcaster: Broadcaster) -> dict[str, int]:
    """Delete an edge and its edge handles.  Reports how many edges were removed."""
    with domain_errors():
        removed = await connections.delete_connection(db, body.shape, body.source_id, body.target_id)
    if removed is None:
        return {"deleted": 0}
    await broadcaster.items_changed(db, removed.workspace_id)
    return {"deleted": 1}


@router.get("/list", response_model=list[ConnectionResponse])
async def list_connections(db: DbSession, workspace_id: int = Query(...)) -> list[Connection]:
    return await connections.list_connections(db, workspace_id)
