"""Edge handle endpoints.

Request and response bodies use the camelCase keys the canvas client sends
(``edgeId``, ``sourceHandle``, ``targetHandle``, ``workspaceId``).
"""

from __future__ import annotations

from fastapi import APIRouter, Query, status

from infragraph.cmdb.db.tables import EdgeRoute
from infragraph.cmdb.deps import Broadcaster, DbSession
from infragraph.cmdb.managers import edge_routes
from infragraph.cmdb.models.api import (
    EdgeRouteBulkResponse,
    EdgeRouteBulkUpsert,
    EdgeRouteResponse,
    EdgeRouteUpsert,
    HandlePair,
)
from infragraph.cmdb.routers.errors import domain_errors

router = APIRouter(prefix="/edge-handles", tags=["edge-handles"])


@router.get("/list", response_model=dict[str, HandlePair], response_model_by_alias=True)
async def list_edge_handles(db: DbSession, workspace_id: int = Query(...)) -> dict[str, HandlePair]:
    """Map edge ids of existing connections to their handle pair."""
    routes = await edge_routes.list_routes(db, workspace_id)
    return {
        route.edge_id: HandlePair(source_handle=route.source_handle, target_handle=route.target_handle)
        for route in routes
    }


@router.get("/get", response_model=EdgeRouteResponse)
async def get_edge_handle(db: DbSession, edge_id: str = Query(..., alias="edgeId")) -> EdgeRoute:
    with domain_errors():
        return await edge_routes.get_route(db, edge_id)


@router.post("/upsert", response_model=EdgeRouteResponse)
async def upsert_edge_handle(body: EdgeRouteUpsert, db: DbSession, broadcaster: Broadcaster) -> EdgeRoute:
    with domain_errors():
        route = await edge_routes.upsert_route(
            db, body.edge_id, body.source_handle, body.target_handle, body.workspace_id
        )
    await broadcaster.items_changed(db, route.workspace_id)
    return route


@router.post("/bulk", response_model=EdgeRouteBulkResponse)
async def bulk_upsert_edge_handles(
    body: EdgeRouteBulkUpsert, db: DbSession, broadcaster: Broadcaster
) -> EdgeRouteBulkResponse:
    """Upsert many edge handles in one transaction."""
    with domain_errors():
        routes = await edge_routes.bulk_upsert_routes(db, body.workspace_id, body.edge_handles)
    await broadcaster.items_changed(db, body.workspace_id)
    return EdgeRouteBulkResponse(
        count=len(routes),
        data=[EdgeRouteResponse.model_validate(route) for route in routes],
    )


@router.post("/delete", status_code=status.HTTP_204_NO_CONTENT)
async def delete_edge_handle(
    db: DbSession, broadcaster: Broadcaster, edge_id: str = Query(..., alias="edgeId")
) -> None:
    """Delete the handles of one edge.  Deleting handles that do not exist is a no-op."""
    with domain_errors():
        route = await edge_routes.delete_route(db, edge_id)
    if route is not None:
        await broadcaster.items_changed(db, route.workspace_id)
