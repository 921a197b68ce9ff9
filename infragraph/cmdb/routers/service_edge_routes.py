"""Service edge handle endpoints.

Same camelCase bodies as ``/edge-handles``, keyed by ``serviceId`` instead of
``workspaceId``.
"""

from __future__ import annotations

from fastapi import APIRouter, Query, status

from infragraph.cmdb.db.tables import ServiceEdgeRoute
from infragraph.cmdb.deps import Broadcaster, DbSession
from infragraph.cmdb.managers import service_graph
from infragraph.cmdb.models.api import (
    HandlePair,
    ServiceEdgeRouteBulkResponse,
    ServiceEdgeRouteBulkUpsert,
    ServiceEdgeRouteResponse,
    ServiceEdgeRouteUpsert,
)
from infragraph.cmdb.routers.errors import domain_errors

router = APIRouter(prefix="/service-edge-handles", tags=["service-edge-handles"])


@router.get("/list", response_model=dict[str, HandlePair], response_model_by_alias=True)
async def list_service_edge_handles(db: DbSession, service_id: int = Query(...)) -> dict[str, HandlePair]:
    """Map edge ids of existing service connections to their handle pair."""
    with domain_errors():
        routes = await service_graph.list_service_routes(db, service_id)
    return {
        route.edge_id: HandlePair(source_handle=route.source_handle, target_handle=route.target_handle)
        for route in routes
    }


@router.get("/get", response_model=ServiceEdgeRouteResponse)
async def get_service_edge_handle(db: DbSession, edge_id: str = Query(..., alias="edgeId")) -> ServiceEdgeRoute:
    with domain_errors():
        return await service_graph.get_service_route(db, edge_id)


@router.post("/upsert", response_model=ServiceEdgeRouteResponse)
async def upsert_service_edge_handle(
    body: ServiceEdgeRouteUpsert, db: DbSession, broadcaster: Broadcaster
) -> ServiceEdgeRoute:
    with domain_errors():
        route = await service_graph.upsert_service_route(
            db, body.edge_id, body.source_handle, body.target_handle, body.service_id
        )
    await broadcaster.items_changed(db, route.workspace_id)
    return route


@router.post("/bulk", response_model=ServiceEdgeRouteBulkResponse)
async def bulk_upsert_service_edge_handles(
    body: ServiceEdgeRouteBulkUpsert, db: DbSession, broadcaster: Broadcaster
) -> ServiceEdgeRouteBulkResponse:
    with domain_errors():
        routes = await service_graph.bulk_upsert_service_routes(db, body.service_id, body.edge_handles)
    if routes:
        await broadcaster.items_changed(db, routes[0].workspace_id)
    return ServiceEdgeRouteBulkResponse(
        count=len(routes),
        data=[ServiceEdgeRouteResponse.model_validate(route) for route in routes],
    )


@router.post("/delete", status_code=status.HTTP_204_NO_CONTENT)
async def delete_service_edge_handle(
    db: DbSession, broadcaster: Broadcaster, edge_id: str = Query(..., alias="edgeId")
) -> None:
    with domain_errors():
        route = await service_graph.delete_service_route(db, edge_id)
    if route is not None:
        await broadcaster.items_changed(db, route.workspace_id)
