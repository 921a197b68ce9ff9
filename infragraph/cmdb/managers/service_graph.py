"""Edges and edge handles of service diagrams.

Mirrors :mod:`connections` and :mod:`edge_routes` for the service tables.
Both endpoints of a service connection must belong to the connection's
service.
"""

from __future__ import annotations

from collections.abc import Mapping

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from infragraph.cmdb.db.tables import ServiceConnection, ServiceEdgeRoute, ServiceGroup, ServiceItem
from infragraph.cmdb.errors import NotFoundError
from infragraph.cmdb.log import workspace_logger
from infragraph.cmdb.managers import connections, edge_routes
from infragraph.cmdb.managers.services import get_service
from infragraph.cmdb.managers.tx import atomic
from infragraph.cmdb.models.api import HandlePair
from infragraph.cmdb.models.enums import ConflictPolicy, ConnectionShape


async def _require_endpoint(db: AsyncSession, *, is_group: bool, endpoint_id: int, service_id: int) -> None:
    model = ServiceGroup if is_group else ServiceItem
    row = await db.get(model, endpoint_id)
    if row is None or row.service_id != service_id:
        kind = "Service group" if is_group else "Service item"
        raise NotFoundError(f"{kind} {endpoint_id} not found in service {service_id}")


async def create_service_connection(
    db: AsyncSession,
    service_id: int,
    shape: ConnectionShape,
    source_id: int,
    target_id: int,
    *,
    on_conflict: ConflictPolicy = ConflictPolicy.IGNORE,
) -> ServiceConnection:
    service = await get_service(db, service_id)
    await _require_endpoint(db, is_group=shape.source_is_group, endpoint_id=source_id, service_id=service_id)
    await _require_endpoint(db, is_group=shape.target_is_group, endpoint_id=target_id, service_id=service_id)

    conn = await connections.insert_edge(
        db,
        ServiceConnection,
        shape,
        source_id,
        target_id,
        on_conflict=on_conflict,
        service_id=service_id,
        workspace_id=service.workspace_id,
    )
    workspace_logger(service.workspace_id).debug(
        "Service connection ready: {} {} -> {} (service={})", shape, source_id, target_id, service_id
    )
    return conn


async def delete_service_connection(
    db: AsyncSession, shape: ConnectionShape, source_id: int, target_id: int
) -> ServiceConnection | None:
    return await connections.remove_edge(db, ServiceConnection, ServiceEdgeRoute, shape, source_id, target_id)


async def list_service_connections(db: AsyncSession, service_id: int) -> list[ServiceConnection]:
    await get_service(db, service_id)
    result = await db.execute(
        select(ServiceConnection)
        .where(ServiceConnection.service_id == service_id)
        .order_by(ServiceConnection.id.asc())
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Edge handles
# ---------------------------------------------------------------------------


async def list_service_routes(db: AsyncSession, service_id: int) -> list[ServiceEdgeRoute]:
    """Edge handles of a service whose edge currently exists."""
    routes = (
        (await db.execute(select(ServiceEdgeRoute).where(ServiceEdgeRoute.service_id == service_id))).scalars().all()
    )
    return edge_routes.live_routes(routes, await list_service_connections(db, service_id))


async def get_service_route(db: AsyncSession, edge_id: str) -> ServiceEdgeRoute:
    return await edge_routes.get_route(db, edge_id, model=ServiceEdgeRoute)


async def upsert_service_route(
    db: AsyncSession,
    edge_id: str,
    source_handle: str,
    target_handle: str,
    service_id: int,
) -> ServiceEdgeRoute:
    ref = edge_routes.parse_edge_id(edge_id)
    service = await get_service(db, service_id)
    async with atomic(db):
        route = await edge_routes.store_route(
            db,
            ServiceEdgeRoute,
            ref,
            source_handle,
            target_handle,
            service_id=service_id,
            workspace_id=service.workspace_id,
        )
    await db.refresh(route)
    return route


async def bulk_upsert_service_routes(
    db: AsyncSession,
    service_id: int,
    handles: Mapping[str, HandlePair],
) -> list[ServiceEdgeRoute]:
    """Upsert many service edge handles in one transaction, validating every id first."""
    refs = {edge_id: edge_routes.parse_edge_id(edge_id) for edge_id in handles}
    service = await get_service(db, service_id)
    routes = []
    async with atomic(db):
        for edge_id, pair in handles.items():
            routes.append(
                await edge_routes.store_route(
                    db,
                    ServiceEdgeRoute,
                    refs[edge_id],
                    pair.source_handle,
                    pair.target_handle,
                    service_id=service_id,
                    workspace_id=service.workspace_id,
                )
            )
    for route in routes:
        await db.refresh(route)
    return routes


async def delete_service_route(db: AsyncSession, edge_id: str) -> ServiceEdgeRoute | None:
    return await edge_routes.delete_route(db, edge_id, model=ServiceEdgeRoute)
