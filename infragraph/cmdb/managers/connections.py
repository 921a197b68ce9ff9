"""Connection graph store.

Connections are directed edges between items and groups.  Each row has
exactly one source column (``source_id`` XOR ``source_group_id``) and exactly
one target column (``target_id`` XOR ``target_group_id``) populated; the four
combinations are the :class:`ConnectionShape` values.  A ``(source, target)``
pair exists at most once per shape.

Both endpoints of a connection must live in the connection's workspace.

The edge helpers (``find_edge``, ``insert_edge``, ``remove_edge`` and the
cascades) take the edge model as a parameter; service diagrams store their
edges in :class:`ServiceConnection` with the same column layout.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from infragraph.cmdb.db.tables import Connection, EdgeRoute, Group, Item
from infragraph.cmdb.edges import EdgeRef
from infragraph.cmdb.errors import ConflictError, NotFoundError, TransactionError, ValidationError
from infragraph.cmdb.log import workspace_logger
from infragraph.cmdb.managers import edge_routes
from infragraph.cmdb.managers.tx import atomic
from infragraph.cmdb.managers.workspaces import get_workspace
from infragraph.cmdb.models.enums import ConflictPolicy, ConnectionShape

_ENDPOINT_KEYS: dict[ConnectionShape, tuple[str, str]] = {
    ConnectionShape.ITEM_ITEM: ("source_id", "target_id"),
    ConnectionShape.ITEM_GROUP: ("source_id", "target_group_id"),
    ConnectionShape.GROUP_ITEM: ("source_group_id", "target_id"),
    ConnectionShape.GROUP_GROUP: ("source_group_id", "target_group_id"),
}


def check_endpoints(conn: Any) -> None:
    """Enforce exactly one populated column per side.  Raises ``ValidationError``."""
    if (conn.source_id is None) == (conn.source_group_id is None):
        raise ValidationError("Connection needs exactly one of source_id / source_group_id")
    if (conn.target_id is None) == (conn.target_group_id is None):
        raise ValidationError("Connection needs exactly one of target_id / target_group_id")


def _shape_filter(model: type, shape: ConnectionShape, source_id: int, target_id: int) -> list:
    source_key, target_key = _ENDPOINT_KEYS[shape]
    return [getattr(model, source_key) == source_id, getattr(model, target_key) == target_id]


async def find_edge(db: AsyncSession, model: type, shape: ConnectionShape, source_id: int, target_id: int) -> Any:
    result = await db.execute(select(model).where(*_shape_filter(model, shape, source_id, target_id)))
    return result.scalar_one_or_none()


async def insert_edge(
    db: AsyncSession,
    model: type,
    shape: ConnectionShape,
    source_id: int,
    target_id: int,
    *,
    on_conflict: ConflictPolicy,
    **owner: int,
) -> Any:
    """Insert one edge row of *model*, honouring the duplicate policy.

    *owner* holds the non-endpoint columns (``workspace_id``, ``service_id``).
    A concurrent insert of the same pair is resolved as a duplicate.
    """
    existing = await find_edge(db, model, shape, source_id, target_id)
    if existing is not None:
        if on_conflict == ConflictPolicy.ERROR:
            raise ConflictError(f"Connection {shape} {source_id} -> {target_id} already exists")
        return existing

    source_key, target_key = _ENDPOINT_KEYS[shape]
    row = model(**owner, **{source_key: source_id, target_key: target_id})
    check_endpoints(row)

    try:
        async with atomic(db):
            db.add(row)
    except TransactionError as exc:
        # Lost a race against a concurrent create of the same pair.
        if not isinstance(exc.__cause__, IntegrityError):
            raise
        existing = await find_edge(db, model, shape, source_id, target_id)
        if existing is None:
            raise
        if on_conflict == ConflictPolicy.ERROR:
            raise ConflictError(f"Connection {shape} {source_id} -> {target_id} already exists") from None
        return existing

    await db.refresh(row)
    return row


async def remove_edge(
    db: AsyncSession,
    model: type,
    route_model: type,
    shape: ConnectionShape,
    source_id: int,
    target_id: int,
) -> Any:
    """Delete one edge with its routing record.  Returns the removed row or ``None``."""
    row = await find_edge(db, model, shape, source_id, target_id)
    if row is None:
        return None
    async with atomic(db):
        await db.delete(row)
        await edge_routes.delete_routes_for_edge(db, EdgeRef(shape, source_id, target_id), model=route_model)
    return row


async def _require_endpoint(db: AsyncSession, *, is_group: bool, endpoint_id: int, workspace_id: int) -> None:
    model = Group if is_group else Item
    row = await db.get(model, endpoint_id)
    if row is None or row.workspace_id != workspace_id:
        kind = "Group" if is_group else "Item"
        raise NotFoundError(f"{kind} {endpoint_id} not found in workspace {workspace_id}")


async def _require_item(db: AsyncSession, item_id: int) -> Item:
    item = await db.get(Item, item_id)
    if item is None:
        raise NotFoundError(f"Item {item_id} not found")
    return item


async def create_connection(
    db: AsyncSession,
    shape: ConnectionShape,
    source_id: int | None,
    target_id: int | None,
    workspace_id: int | None,
    *,
    on_conflict: ConflictPolicy = ConflictPolicy.IGNORE,
) -> Connection:
    """Create a directed edge of the given shape.

    With ``on_conflict=IGNORE`` an existing ``(source, target)`` pair is
    returned unchanged; with ``ERROR`` it raises ``ConflictError``.
    """
    if source_id is None or target_id is None:
        raise ValidationError("source_id and target_id are required")
    if workspace_id is None:
        raise ValidationError("workspace_id is required")

    await get_workspace(db, workspace_id)
    await _require_endpoint(db, is_group=shape.source_is_group, endpoint_id=source_id, workspace_id=workspace_id)
    await _require_endpoint(db, is_group=shape.target_is_group, endpoint_id=target_id, workspace_id=workspace_id)

    conn = await insert_edge(
        db, Connection, shape, source_id, target_id, on_conflict=on_conflict, workspace_id=workspace_id
    )
    workspace_logger(workspace_id).debug("Connection ready: {} {} -> {}", shape, source_id, target_id)
    return conn


async def delete_connection(
    db: AsyncSession, shape: ConnectionShape, source_id: int, target_id: int
) -> Connection | None:
    """Delete the edge and its routing record.  Returns the removed row, ``None`` if there was none."""
    return await remove_edge(db, Connection, EdgeRoute, shape, source_id, target_id)


async def list_connections(db: AsyncSession, workspace_id: int) -> list[Connection]:
    result = await db.execute(
        select(Connection).where(Connection.workspace_id == workspace_id).order_by(Connection.id.asc())
    )
    return list(result.scalars().all())


async def list_for_item(db: AsyncSession, item_id: int) -> list[Connection]:
    """All edges where the item is the source or the target."""
    await _require_item(db, item_id)
    result = await db.execute(
        select(Connection)
        .where(or_(Connection.source_id == item_id, Connection.target_id == item_id))
        .order_by(Connection.id.asc())
    )
    return list(result.scalars().all())


async def list_for_group(db: AsyncSession, group_id: int) -> list[Connection]:
    """All edges where the group is the source or the target."""
    if await db.get(Group, group_id) is None:
        raise NotFoundError(f"Group {group_id} not found")
    result = await db.execute(
        select(Connection)
        .where(or_(Connection.source_group_id == group_id, Connection.target_group_id == group_id))
        .order_by(Connection.id.asc())
    )
    return list(result.scalars().all())


async def list_dependents(db: AsyncSession, item_id: int) -> list[Item]:
    """Items reached by an outgoing item -> item edge from *item_id*."""
    await _require_item(db, item_id)
    result = await db.execute(
        select(Item)
        .join(Connection, Connection.target_id == Item.id)
        .where(Connection.source_id == item_id)
        .order_by(Item.id.asc())
    )
    return list(result.scalars().unique().all())


async def list_dependencies(db: AsyncSession, item_id: int) -> list[Item]:
    """Items with an item -> item edge pointing at *item_id*."""
    await _require_item(db, item_id)
    result = await db.execute(
        select(Item)
        .join(Connection, Connection.source_id == Item.id)
        .where(Connection.target_id == item_id)
        .order_by(Item.id.asc())
    )
    return list(result.scalars().unique().all())


# ---------------------------------------------------------------------------
# Cascade helpers.  These run inside the caller's transaction and do not commit.
# ---------------------------------------------------------------------------


async def delete_connections_for_item(db: AsyncSession, item_id: int, *, model: type = Connection) -> None:
    await db.execute(delete(model).where(or_(model.source_id == item_id, model.target_id == item_id)))


async def delete_connections_for_group(db: AsyncSession, group_id: int, *, model: type = Connection) -> None:
    await db.execute(
        delete(model).where(or_(model.source_group_id == group_id, model.target_group_id == group_id))
    )
