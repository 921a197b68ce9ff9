"""Group CRUD operations.

Groups are containers for items inside one workspace.  Deleting a group
ungroups its members (their order is cleared, not renumbered into another
group) and removes every connection and routing record that names it.
"""

from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from infragraph.cmdb.db.tables import Group, Item
from infragraph.cmdb.errors import NotFoundError, ValidationError
from infragraph.cmdb.log import workspace_logger
from infragraph.cmdb.managers import connections, edge_routes
from infragraph.cmdb.managers.tx import atomic
from infragraph.cmdb.managers.workspaces import get_workspace
from infragraph.cmdb.models.api import GroupCreate, GroupUpdate, Position


class GroupNotFoundError(NotFoundError):
    """Raised when a group is not found."""


async def create_group(db: AsyncSession, body: GroupCreate) -> Group:
    """Create a group.  Raises ``ValidationError`` without a workspace."""
    if body.workspace_id is None:
        raise ValidationError("workspace_id is required")
    await get_workspace(db, body.workspace_id)

    group = Group(
        workspace_id=body.workspace_id,
        name=body.name,
        description=body.description,
        color=body.color,
        position=body.position.model_dump() if body.position else None,
    )
    async with atomic(db):
        db.add(group)
    await db.refresh(group)
    return group


async def list_groups(db: AsyncSession, workspace_id: int) -> list[Group]:
    result = await db.execute(select(Group).where(Group.workspace_id == workspace_id).order_by(Group.id.asc()))
    return list(result.scalars().all())


async def get_group(db: AsyncSession, group_id: int) -> Group:
    """Get a group by ID.  Raises ``GroupNotFoundError`` if missing."""
    group = await db.get(Group, group_id)
    if group is None:
        raise GroupNotFoundError(f"Group {group_id} not found")
    return group


async def update_group(db: AsyncSession, group_id: int, body: GroupUpdate) -> Group:
    """Partially update a group.  Raises ``GroupNotFoundError`` if missing."""
    group = await get_group(db, group_id)

    changes = body.model_dump(exclude_unset=True)
    for required in ("name", "color"):
        if required in changes and changes[required] is None:
            changes.pop(required)
    if not changes:
        return group

    async with atomic(db):
        for key, value in changes.items():
            setattr(group, key, value)
    return group


async def update_group_position(db: AsyncSession, group_id: int, position: Position) -> Group:
    group = await get_group(db, group_id)
    async with atomic(db):
        group.position = position.model_dump()
    return group


async def delete_group(db: AsyncSession, group_id: int) -> int:
    """Delete a group, ungrouping its items.  Returns the workspace it belonged to."""
    group = await get_group(db, group_id)
    workspace_id = group.workspace_id

    async with atomic(db):
        await db.execute(
            update(Item)
            .where(Item.group_id == group_id, Item.workspace_id == workspace_id)
            .values(group_id=None, order_in_group=None)
            .execution_options(synchronize_session="fetch")
        )
        await connections.delete_connections_for_group(db, group_id)
        await edge_routes.delete_routes_for_group(db, group_id)
        await db.delete(group)
    workspace_logger(workspace_id).info("Group {} deleted", group_id)
    return workspace_id
