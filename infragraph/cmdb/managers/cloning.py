"""Workspace duplication.

Copies a workspace's groups, items, connections and edge routing records into
a brand-new workspace in a single transaction.  Ids are remapped in dependency
order (groups, then items, then edges), so every copied row points only at
rows of the copy.

Rows whose references cannot be remapped (dangling edges, routing records for
vanished endpoints) are skipped.  Any store error aborts the whole copy.
"""

from __future__ import annotations

import json
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from infragraph.cmdb.db.tables import Connection, EdgeRoute, Group, Item, Workspace
from infragraph.cmdb.log import workspace_logger
from infragraph.cmdb.managers.connections import check_endpoints
from infragraph.cmdb.managers.tx import atomic
from infragraph.cmdb.managers.workspaces import get_workspace


def coerce_images(value: Any) -> list:
    """Normalise stored image data to a list; anything malformed becomes ``[]``."""
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return []
    return value if isinstance(value, list) else []


def _remap(mapping: dict[int, int], old_id: int | None) -> int | None:
    return None if old_id is None else mapping.get(old_id)


async def _copy_groups(db: AsyncSession, source_id: int, target_id: int) -> dict[int, int]:
    group_map: dict[int, int] = {}
    groups = (await db.execute(select(Group).where(Group.workspace_id == source_id).order_by(Group.id))).scalars()
    for old in groups.all():
        new = Group(
            workspace_id=target_id,
            name=old.name,
            description=old.description,
            color=old.color,
            position=old.position,
        )
        db.add(new)
        await db.flush()
        group_map[old.id] = new.id
    return group_map


async def _copy_items(db: AsyncSession, source_id: int, target_id: int, group_map: dict[int, int]) -> dict[int, int]:
    item_map: dict[int, int] = {}
    items = (await db.execute(select(Item).where(Item.workspace_id == source_id).order_by(Item.id))).scalars()
    for old in items.all():
        new_group_id = _remap(group_map, old.group_id)
        new = Item(
            workspace_id=target_id,
            group_id=new_group_id,
            order_in_group=old.order_in_group if new_group_id is not None else None,
            name=old.name,
            type=old.type,
            description=old.description,
            status=old.status,
            ip=old.ip,
            category=old.category,
            location=old.location,
            env_type=old.env_type,
            images=coerce_images(old.images),
            position=old.position,
            storage=old.storage,
        )
        db.add(new)
        await db.flush()
        item_map[old.id] = new.id
    return item_map


async def _copy_connections(
    db: AsyncSession,
    source_id: int,
    target_id: int,
    item_map: dict[int, int],
    group_map: dict[int, int],
) -> int:
    copied = 0
    rows = (
        await db.execute(select(Connection).where(Connection.workspace_id == source_id).order_by(Connection.id))
    ).scalars()
    for old in rows.all():
        new = Connection(
            workspace_id=target_id,
            source_id=_remap(item_map, old.source_id),
            source_group_id=_remap(group_map, old.source_group_id),
            target_id=_remap(item_map, old.target_id),
            target_group_id=_remap(group_map, old.target_group_id),
        )
        if new.source_id is None and new.source_group_id is None:
            continue
        if new.target_id is None and new.target_group_id is None:
            continue
        check_endpoints(new)
        db.add(new)
        copied += 1
    await db.flush()
    return copied


async def _copy_routes(
    db: AsyncSession,
    source_id: int,
    target_id: int,
    item_map: dict[int, int],
    group_map: dict[int, int],
) -> int:
    copied = 0
    rows = (
        await db.execute(select(EdgeRoute).where(EdgeRoute.workspace_id == source_id).order_by(EdgeRoute.id))
    ).scalars()
    for old in rows.all():
        ref = old.ref.remap(item_map, group_map)
        if ref is None:
            continue
        db.add(
            EdgeRoute(
                edge_id=str(ref),
                kind=ref.kind.value,
                source_ref=ref.a,
                target_ref=ref.b,
                source_handle=old.source_handle,
                target_handle=old.target_handle,
                workspace_id=target_id,
            )
        )
        copied += 1
    await db.flush()
    return copied


async def duplicate_workspace(db: AsyncSession, source_workspace_id: int, new_name: str | None = None) -> Workspace:
    """Copy a workspace under a new id.

    The copy is never the default workspace.  Without *new_name* it is called
    ``"<source name> (Copy)"``.  Raises ``WorkspaceNotFoundError`` for an
    unknown source; on any other failure nothing is written.
    """
    source = await get_workspace(db, source_workspace_id)
    workspace = Workspace(
        name=new_name or f"{source.name} (Copy)",
        description=source.description,
        is_default=False,
    )

    async with atomic(db):
        db.add(workspace)
        await db.flush()
        group_map = await _copy_groups(db, source.id, workspace.id)
        item_map = await _copy_items(db, source.id, workspace.id, group_map)
        connection_count = await _copy_connections(db, source.id, workspace.id, item_map, group_map)
        route_count = await _copy_routes(db, source.id, workspace.id, item_map, group_map)

    await db.refresh(workspace)
    workspace_logger(workspace.id).info(
        "Workspace {} duplicated as {} ({} groups, {} items, {} connections, {} edge handles)",
        source.id,
        workspace.id,
        len(group_map),
        len(item_map),
        connection_count,
        route_count,
    )
    return workspace
