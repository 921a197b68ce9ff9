"""Item CRUD operations.

Items inside a group carry ``order_in_group``; placement changes go through
:mod:`infragraph.cmdb.managers.ordering`, which keeps each group's orders at
exactly ``0..n-1`` within the item's workspace.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from infragraph.cmdb.db.tables import Group, Item
from infragraph.cmdb.errors import NotFoundError, ValidationError
from infragraph.cmdb.log import workspace_logger
from infragraph.cmdb.managers import connections, edge_routes, ordering, services
from infragraph.cmdb.managers.tx import atomic
from infragraph.cmdb.managers.workspaces import get_workspace
from infragraph.cmdb.models.api import ItemCreate, ItemUpdate, Position


class ItemNotFoundError(NotFoundError):
    """Raised when an item is not found."""


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


async def create_item(db: AsyncSession, body: ItemCreate, *, clamp: bool = True) -> Item:
    """Create an item, appending it to its group unless ``order_in_group`` is given.

    Raises ``ValidationError`` without a workspace and ``NotFoundError`` if the
    workspace or the group (within that workspace) does not exist.
    """
    if body.workspace_id is None:
        raise ValidationError("workspace_id is required")
    await get_workspace(db, body.workspace_id)

    fields = body.model_dump(exclude={"group_id", "order_in_group"})
    item = Item(**fields)

    async with atomic(db):
        if body.group_id is not None:
            await ordering.require_group(db, Group, body.group_id, item)
            item.order_in_group = await ordering.open_slot(db, item, body.group_id, body.order_in_group, clamp=clamp)
            item.group_id = body.group_id
        db.add(item)
    await db.refresh(item)
    return item


async def list_items(db: AsyncSession, workspace_id: int) -> list[Item]:
    """List a workspace's items grouped together, in group order, ungrouped last."""
    result = await db.execute(
        select(Item)
        .where(Item.workspace_id == workspace_id)
        .order_by(Item.group_id.asc().nulls_last(), Item.order_in_group.asc().nulls_last(), Item.id.asc())
    )
    return list(result.scalars().all())


async def get_item(db: AsyncSession, item_id: int) -> Item:
    """Get an item by ID.  Raises ``ItemNotFoundError`` if missing."""
    item = await db.get(Item, item_id)
    if item is None:
        raise ItemNotFoundError(f"Item {item_id} not found")
    return item


async def update_item(db: AsyncSession, item_id: int, body: ItemUpdate, *, clamp: bool = True) -> Item:
    """Partially update an item.

    Group membership changes are applied through the ordering engine in the
    same transaction as the field changes.
    """
    item = await get_item(db, item_id)

    changes = body.model_dump(exclude_unset=True)
    placement = {key: changes.pop(key) for key in ("group_id", "order_in_group") if key in changes}
    for required in ("name", "status", "images"):
        if required in changes and changes[required] is None:
            changes.pop(required)

    async with atomic(db):
        for key, value in changes.items():
            setattr(item, key, value)
        if placement:
            group_id = placement.get("group_id", item.group_id)
            await ordering.move(db, item, group_id, placement.get("order_in_group"), clamp=clamp, group_model=Group)
    return item


async def update_item_position(db: AsyncSession, item_id: int, position: Position) -> Item:
    item = await get_item(db, item_id)
    async with atomic(db):
        item.position = position.model_dump()
    return item


async def update_item_status(db: AsyncSession, item_id: int, status: str) -> Item:
    item = await get_item(db, item_id)
    async with atomic(db):
        item.status = status
    return item


async def set_item_group(
    db: AsyncSession,
    item_id: int,
    group_id: int | None,
    order: int | None = None,
    *,
    clamp: bool = True,
) -> Item:
    """Move an item into *group_id* (``None`` ungroups it).

    The gap in the old group is closed; in the new group the item is inserted
    at *order* (later members shift up) or appended after the current maximum.
    """
    item = await get_item(db, item_id)
    async with atomic(db):
        await ordering.move(db, item, group_id, order, clamp=clamp, group_model=Group)
    return item


async def reorder_item(db: AsyncSession, item_id: int, new_order: int, *, clamp: bool = True) -> Item:
    """Move an item to *new_order* within its current group.

    Raises ``ItemNotFoundError`` for an unknown item and ``NotGroupedError``
    (an ``InvalidStateError``) when the item has no group.
    """
    item = await get_item(db, item_id)
    async with atomic(db):
        await ordering.reorder(db, item, new_order, clamp=clamp)
    return item


async def delete_item(db: AsyncSession, item_id: int) -> int:
    """Delete an item with its connections, routing records and services.

    The item's group is renumbered to stay dense.  Returns the workspace id.
    """
    item = await get_item(db, item_id)
    workspace_id = item.workspace_id
    async with atomic(db):
        await ordering.close_slot(db, item)
        await connections.delete_connections_for_item(db, item_id)
        await edge_routes.delete_routes_for_item(db, item_id)
        await services.delete_services_for_item(db, item_id)
        await db.delete(item)
    workspace_logger(workspace_id).info("Item {} deleted", item_id)
    return workspace_id
