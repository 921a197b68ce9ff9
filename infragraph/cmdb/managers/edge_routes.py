"""Edge routing ("edge handle") records.

A record says which handle of each endpoint a drawn edge attaches to.  It is
keyed by the canonical edge id string but stored together with its structured
:class:`EdgeRef`, which is what cascades and cloning work with.  Incoming ids
are always parsed first, so ``e01-2`` and ``e1-2`` name the same record.

Records are only reported for edges that still exist as connections; the
cascade helpers below remove them eagerly as well.  The helpers take the
record model, so service diagrams reuse them with :class:`ServiceEdgeRoute`.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from sqlalchemy import and_, delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from infragraph.cmdb.db.tables import Connection, EdgeRoute
from infragraph.cmdb.edges import EdgeIdError, EdgeRef
from infragraph.cmdb.errors import NotFoundError, ValidationError
from infragraph.cmdb.managers.tx import atomic
from infragraph.cmdb.managers.workspaces import get_workspace
from infragraph.cmdb.models.api import HandlePair
from infragraph.cmdb.models.enums import ConnectionShape

_ITEM_SOURCE = (ConnectionShape.ITEM_ITEM, ConnectionShape.ITEM_GROUP)
_ITEM_TARGET = (ConnectionShape.ITEM_ITEM, ConnectionShape.GROUP_ITEM)
_GROUP_SOURCE = (ConnectionShape.GROUP_ITEM, ConnectionShape.GROUP_GROUP)
_GROUP_TARGET = (ConnectionShape.ITEM_GROUP, ConnectionShape.GROUP_GROUP)


class EdgeRouteNotFoundError(NotFoundError):
    """Raised when no routing record exists for an edge id."""


def parse_edge_id(edge_id: str) -> EdgeRef:
    """Parse an edge id from the API.  Raises ``ValidationError`` if unrecognised."""
    try:
        return EdgeRef.parse(edge_id)
    except EdgeIdError as exc:
        raise ValidationError(str(exc)) from None


def live_routes(routes: Iterable[Any], edges: Iterable[Any]) -> list[Any]:
    """Keep the routing records whose edge is among *edges*."""
    live = {edge.ref for edge in edges}
    return [route for route in routes if route.ref in live]


async def list_routes(db: AsyncSession, workspace_id: int) -> list[EdgeRoute]:
    """List the routing records of a workspace whose edge currently exists."""
    routes = (await db.execute(select(EdgeRoute).where(EdgeRoute.workspace_id == workspace_id))).scalars().all()
    connections = (await db.execute(select(Connection).where(Connection.workspace_id == workspace_id))).scalars()
    return live_routes(routes, connections)


async def get_route(db: AsyncSession, edge_id: str, *, model: type = EdgeRoute) -> Any:
    """Look up the record of one edge.  Raises ``EdgeRouteNotFoundError`` if there is none."""
    ref = parse_edge_id(edge_id)
    result = await db.execute(select(model).where(model.edge_id == str(ref)))
    route = result.scalar_one_or_none()
    if route is None:
        raise EdgeRouteNotFoundError(f"No edge handles for {edge_id!r}")
    return route


async def upsert_route(
    db: AsyncSession,
    edge_id: str,
    source_handle: str,
    target_handle: str,
    workspace_id: int,
) -> EdgeRoute:
    """Create or replace the routing record of one edge (idempotent)."""
    ref = parse_edge_id(edge_id)
    await get_workspace(db, workspace_id)
    async with atomic(db):
        route = await store_route(db, EdgeRoute, ref, source_handle, target_handle, workspace_id=workspace_id)
    await db.refresh(route)
    return route


async def bulk_upsert_routes(
    db: AsyncSession,
    workspace_id: int,
    handles: Mapping[str, HandlePair],
) -> list[EdgeRoute]:
    """Upsert many routing records in one transaction.

    Every edge id is validated before anything is written.
    """
    refs = {edge_id: parse_edge_id(edge_id) for edge_id in handles}
    await get_workspace(db, workspace_id)
    routes = []
    async with atomic(db):
        for edge_id, pair in handles.items():
            routes.append(
                await store_route(
                    db, EdgeRoute, refs[edge_id], pair.source_handle, pair.target_handle, workspace_id=workspace_id
                )
            )
    for route in routes:
        await db.refresh(route)
    return routes


async def delete_route(db: AsyncSession, edge_id: str, *, model: type = EdgeRoute) -> Any:
    """Delete the routing record of one edge.  Returns it, or ``None`` if there was none."""
    ref = parse_edge_id(edge_id)
    route = (await db.execute(select(model).where(model.edge_id == str(ref)))).scalar_one_or_none()
    if route is None:
        return None
    async with atomic(db):
        await db.delete(route)
    return route


async def store_route(
    db: AsyncSession,
    model: type,
    ref: EdgeRef,
    source_handle: str,
    target_handle: str,
    **owner: int,
) -> Any:
    """Insert or update the *model* record for *ref*.  Does not commit.

    *owner* holds the scope columns (``workspace_id``, ``service_id``).
    """
    edge_id = str(ref)
    result = await db.execute(select(model).where(model.edge_id == edge_id))
    route = result.scalar_one_or_none()
    if route is None:
        route = model(
            edge_id=edge_id,
            kind=ref.kind.value,
            source_ref=ref.a,
            target_ref=ref.b,
            source_handle=source_handle,
            target_handle=target_handle,
            **owner,
        )
        db.add(route)
    else:
        route.source_handle = source_handle
        route.target_handle = target_handle
        for key, value in owner.items():
            setattr(route, key, value)
    await db.flush()
    return route


# ---------------------------------------------------------------------------
# Cascade helpers.  These run inside the caller's transaction and do not commit.
# ---------------------------------------------------------------------------


async def delete_routes_for_edge(db: AsyncSession, ref: EdgeRef, *, model: type = EdgeRoute) -> None:
    await db.execute(delete(model).where(model.edge_id == str(ref)))


async def delete_routes_for_item(db: AsyncSession, item_id: int, *, model: type = EdgeRoute) -> None:
    await db.execute(
        delete(model).where(
            or_(
                and_(model.kind.in_(_ITEM_SOURCE), model.source_ref == item_id),
                and_(model.kind.in_(_ITEM_TARGET), model.target_ref == item_id),
            )
        )
    )


async def delete_routes_for_group(db: AsyncSession, group_id: int, *, model: type = EdgeRoute) -> None:
    await db.execute(
        delete(model).where(
            or_(
                and_(model.kind.in_(_GROUP_SOURCE), model.source_ref == group_id),
                and_(model.kind.in_(_GROUP_TARGET), model.target_ref == group_id),
            )
        )
    )
