"""Service item endpoints (RPC-style)."""

from __future__ import annotations

from fastapi import APIRouter, Query, status

from infragraph.cmdb.db.tables import ServiceItem
from infragraph.cmdb.deps import Broadcaster, DbSession, Settings
from infragraph.cmdb.managers import services
from infragraph.cmdb.models.api import (
    ItemGroupUpdate,
    ItemPositionUpdate,
    ItemReorder,
    ServiceItemCreate,
    ServiceItemResponse,
    ServiceItemUpdate,
)
from infragraph.cmdb.routers.errors import domain_errors

router = APIRouter(prefix="/service-items", tags=["service-items"])


@router.post("/create", response_model=ServiceItemResponse, status_code=status.HTTP_201_CREATED)
async def create_service_item(
    body: ServiceItemCreate, db: DbSession, broadcaster: Broadcaster, settings: Settings
) -> ServiceItem:
    with domain_errors():
        item = await services.create_service_item(db, body, clamp=settings.clamp_reorder)
    await broadcaster.items_changed(db, item.workspace_id)
    return item


@router.get("/list", response_model=list[ServiceItemResponse])
async def list_service_items(db: DbSession, service_id: int = Query(...)) -> list[ServiceItem]:
    """List a service's items by group and in-group order, ungrouped last."""
    with domain_errors():
        return await services.list_service_items(db, service_id)


@router.get("/{item_id}/get", response_model=ServiceItemResponse)
async def get_service_item(item_id: int, db: DbSession) -> ServiceItem:
    with domain_errors():
        return await services.get_service_item(db, item_id)


@router.post("/{item_id}/update", response_model=ServiceItemResponse)
async def update_service_item(
    item_id: int,
    body: ServiceItemUpdate,
    db: DbSession,
    broadcaster: Broadcaster,
    settings: Settings,
) -> ServiceItem:
    with domain_errors():
        item = await services.update_service_item(db, item_id, body, clamp=settings.clamp_reorder)
    await broadcaster.items_changed(db, item.workspace_id)
    return item


@router.post("/{item_id}/position", response_model=ServiceItemResponse)
async def update_service_item_position(
    item_id: int, body: ItemPositionUpdate, db: DbSession, broadcaster: Broadcaster
) -> ServiceItem:
    with domain_errors():
        item = await services.update_service_item_position(db, item_id, body.position)
    await broadcaster.items_changed(db, item.workspace_id)
    return item


@router.post("/{item_id}/group", response_model=ServiceItemResponse)
async def set_service_item_group(
    item_id: int,
    body: ItemGroupUpdate,
    db: DbSession,
    broadcaster: Broadcaster,
    settings: Settings,
) -> ServiceItem:
    """Move a service item into another group of its service (``group_id: null`` ungroups it)."""
    with domain_errors():
        item = await services.set_service_item_group(
            db, item_id, body.group_id, body.order_in_group, clamp=settings.clamp_reorder
        )
    await broadcaster.items_changed(db, item.workspace_id)
    return item


@router.post("/{item_id}/reorder", response_model=ServiceItemResponse)
async def reorder_service_item(
    item_id: int,
    body: ItemReorder,
    db: DbSession,
    broadcaster: Broadcaster,
    settings: Settings,
) -> ServiceItem:
    with domain_errors():
        item = await services.reorder_service_item(db, item_id, body.new_order, clamp=settings.clamp_reorder)
    await broadcaster.items_changed(db, item.workspace_id)
    return item


@router.post("/{item_id}/delete", status_code=status.HTTP_204_NO_CONTENT)
async def delete_service_item(item_id: int, db: DbSession, broadcaster: Broadcaster) -> None:
    with domain_errors():
        workspace_id = await services.delete_service_item(db, item_id)
    await broadcaster.items_changed(db, workspace_id)
