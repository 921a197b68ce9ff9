"""Item endpoints (RPC-style).

Every mutation that can change what a workspace's item list looks like is
followed by a broadcast of that list once the transaction has committed.
"""

from __future__ import annotations

from fastapi import APIRouter, Query, status

from infragraph.cmdb.db.tables import Connection, Item
from infragraph.cmdb.deps import Broadcaster, DbSession, Settings
from infragraph.cmdb.managers import connections, impact, items, workspaces
from infragraph.cmdb.models.api import (
    AffectedItemResponse,
    ConnectionResponse,
    ItemCreate,
    ItemGroupUpdate,
    ItemPositionUpdate,
    ItemReorder,
    ItemResponse,
    ItemStatusUpdate,
    ItemUpdate,
)
from infragraph.cmdb.routers.errors import domain_errors

router = APIRouter(prefix="/items", tags=["items"])


@router.post("/create", response_model=ItemResponse, status_code=status.HTTP_201_CREATED)
async def create_item(body: ItemCreate, db: DbSession, broadcaster: Broadcaster, settings: Settings) -> Item:
    """Create an item, optionally inside a group at a given position."""
    with domain_errors():
        item = await items.create_item(db, body, clamp=settings.clamp_reorder)
    await broadcaster.items_changed(db, item.workspace_id)
    return item


@router.get("/list", response_model=list[ItemResponse])
async def list_items(db: DbSession, workspace_id: int = Query(...)) -> list[Item]:
    """List a workspace's items by group and in-group order, ungrouped last."""
    return await items.list_items(db, workspace_id)


@router.post("/trigger-update", status_code=status.HTTP_202_ACCEPTED)
async def trigger_update(db: DbSession, broadcaster: Broadcaster, workspace_id: int = Query(...)) -> dict[str, str]:
    """Re-broadcast the current item list of a workspace."""
    with domain_errors():
        await workspaces.get_workspace(db, workspace_id)
    await broadcaster.items_changed(db, workspace_id)
    return {"status": "broadcast"}


@router.get("/{item_id}/get", response_model=ItemResponse)
async def get_item(item_id: int, db: DbSession) -> Item:
    with domain_errors():
        return await items.get_item(db, item_id)


@router.post("/{item_id}/update", response_model=ItemResponse)
async def update_item(
    item_id: int,
    body: ItemUpdate,
    db: DbSession,
    broadcaster: Broadcaster,
    settings: Settings,
) -> Item:
    """Partially update an item.  A new ``group_id`` moves it between groups."""
    with domain_errors():
        item = await items.update_item(db, item_id, body, clamp=settings.clamp_reorder)
    await broadcaster.items_changed(db, item.workspace_id)
    return item


@router.post("/{item_id}/position", response_model=ItemResponse)
async def update_item_position(item_id: int, body: ItemPositionUpdate, db: DbSession, broadcaster: Broadcaster) -> Item:
    with domain_errors():
        item = await items.update_item_position(db, item_id, body.position)
    await broadcaster.items_changed(db, item.workspace_id)
    return item


@router.post("/{item_id}/status", response_model=ItemResponse)
async def update_item_status(item_id: int, body: ItemStatusUpdate, db: DbSession, broadcaster: Broadcaster) -> Item:
    with domain_errors():
        item = await items.update_item_status(db, item_id, body.status)
    await broadcaster.items_changed(db, item.workspace_id)
    return item


@router.post("/{item_id}/group", response_model=ItemResponse)
async def set_item_group(
    item_id: int,
    body: ItemGroupUpdate,
    db: DbSession,
    broadcaster: Broadcaster,
    settings: Settings,
) -> Item:
    """Move an item into another group (``group_id: null`` ungroups it)."""
    with domain_errors():
        item = await items.set_item_group(db, item_id, body.group_id, body.order_in_group, clamp=settings.clamp_reorder)
    await broadcaster.items_changed(db, item.workspace_id)
    return item


@router.post("/{item_id}/reorder", response_model=ItemResponse)
async def reorder_item(
    item_id: int,
    body: ItemReorder,
    db: DbSession,
    broadcaster: Broadcaster,
    settings: Settings,
) -> Item:
    """Move an item to ``new_order`` within its group; siblings shift to keep orders dense."""
    with domain_errors():
        item = await items.reorder_item(db, item_id, body.new_order, clamp=settings.clamp_reorder)
    await broadcaster.items_changed(db, item.workspace_id)
    return item


@router.post("/{item_id}/delete", status_code=status.HTTP_204_NO_CONTENT)
async def delete_item(item_id: int, db: DbSession, broadcaster: Broadcaster) -> None:
    with domain_errors():
        workspace_id = await items.delete_item(db, item_id)
    await broadcaster.items_changed(db, workspace_id)


@router.get("/{item_id}/connections", response_model=list[ConnectionResponse])
async def list_item_connections(item_id: int, db: DbSession) -> list[Connection]:
    with domain_errors():
        return await connections.list_for_item(db, item_id)


@router.get("/{item_id}/dependents", response_model=list[ItemResponse])
async def list_dependents(item_id: int, db: DbSession) -> list[Item]:
    """Items this item connects to directly."""
    with domain_errors():
        return await connections.list_dependents(db, item_id)


@router.get("/{item_id}/dependencies", response_model=list[ItemResponse])
async def list_dependencies(item_id: int, db: DbSession) -> list[Item]:
    """Items connecting directly to this item."""
    with domain_errors():
        return await connections.list_dependencies(db, item_id)


@router.get("/{item_id}/affected", response_model=list[AffectedItemResponse])
async def list_affected_items(item_id: int, db: DbSession, settings: Settings) -> list[AffectedItemResponse]:
    """Items reachable downstream of this item, each with its minimum hop level."""
    with domain_errors():
        affected = await impact.get_affected_items(db, item_id, settings.affected_max_depth)
    return [
        AffectedItemResponse.model_validate({**ItemResponse.model_validate(item).model_dump(), "level": level})
        for item, level in affected
    ]
