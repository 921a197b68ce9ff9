"""Services and their diagrams.

A service belongs to one CMDB item and inherits its workspace.  Each service
has its own small diagram: service groups, service items ordered inside those
groups, edges between them and edge handles
(:mod:`infragraph.cmdb.managers.service_graph`).  Service items use the same
dense ordering as CMDB items, scoped by workspace and service.

Deleting a service, or the item that runs it, removes its whole diagram.
"""

from __future__ import annotations

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from infragraph.cmdb.db.tables import Item, Service, ServiceConnection, ServiceEdgeRoute, ServiceGroup, ServiceItem
from infragraph.cmdb.errors import NotFoundError
from infragraph.cmdb.log import workspace_logger
from infragraph.cmdb.managers import connections, edge_routes, ordering
from infragraph.cmdb.managers.tx import atomic
from infragraph.cmdb.models.api import (
    GroupUpdate,
    Position,
    ServiceCreate,
    ServiceGroupCreate,
    ServiceIconUpdate,
    ServiceItemCreate,
    ServiceItemUpdate,
    ServiceUpdate,
)
from infragraph.cmdb.models.enums import ServiceIconType


class ServiceNotFoundError(NotFoundError):
    """Raised when a service is not found."""


class ServiceGroupNotFoundError(NotFoundError):
    """Raised when a service group is not found."""


class ServiceItemNotFoundError(NotFoundError):
    """Raised when a service item is not found."""


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


async def create_service(db: AsyncSession, body: ServiceCreate) -> Service:
    """Attach a new service to a CMDB item.  Raises ``NotFoundError`` for an unknown item."""
    item = await db.get(Item, body.item_id)
    if item is None:
        raise NotFoundError(f"Item {body.item_id} not found")

    service = Service(workspace_id=item.workspace_id, **body.model_dump())
    async with atomic(db):
        db.add(service)
    await db.refresh(service)
    return service


async def list_services(db: AsyncSession, item_id: int) -> list[Service]:
    """Services of an item, oldest first."""
    if await db.get(Item, item_id) is None:
        raise NotFoundError(f"Item {item_id} not found")
    result = await db.execute(
        select(Service).where(Service.item_id == item_id).order_by(Service.created_at.asc(), Service.id.asc())
    )
    return list(result.scalars().all())


async def get_service(db: AsyncSession, service_id: int) -> Service:
    service = await db.get(Service, service_id)
    if service is None:
        raise ServiceNotFoundError(f"Service {service_id} not found")
    return service


async def update_service(db: AsyncSession, service_id: int, body: ServiceUpdate) -> Service:
    """Partially update name, status and description."""
    service = await get_service(db, service_id)

    changes = body.model_dump(exclude_unset=True)
    for required in ("name", "status"):
        if required in changes and changes[required] is None:
            changes.pop(required)
    if not changes:
        return service

    async with atomic(db):
        for key, value in changes.items():
            setattr(service, key, value)
    await db.refresh(service)
    return service


async def update_service_icon(db: AsyncSession, service_id: int, body: ServiceIconUpdate) -> Service:
    """Switch the icon.  A preset icon clears the stored path."""
    service = await get_service(db, service_id)
    async with atomic(db):
        service.icon_type = body.icon_type.value
        service.icon_name = body.icon_name
        if body.icon_type == ServiceIconType.PRESET:
            service.icon_path = None
        elif body.icon_path is not None:
            service.icon_path = body.icon_path
    await db.refresh(service)
    return service


async def delete_service(db: AsyncSession, service_id: int) -> int:
    """Delete a service with its diagram.  Returns the workspace id."""
    service = await get_service(db, service_id)
    workspace_id = service.workspace_id
    async with atomic(db):
        await _delete_diagrams(db, Service.id == service_id)
        await db.delete(service)
    workspace_logger(workspace_id).info("Service {} deleted", service_id)
    return workspace_id


async def delete_services_for_item(db: AsyncSession, item_id: int) -> None:
    """Cascade helper for item deletion.  Runs in the caller's transaction."""
    await _delete_diagrams(db, Service.item_id == item_id)
    await db.execute(delete(Service).where(Service.item_id == item_id))


async def _delete_diagrams(db: AsyncSession, *criteria) -> None:
    owned = select(Service.id).where(*criteria)
    for model in (ServiceEdgeRoute, ServiceConnection, ServiceItem, ServiceGroup):
        await db.execute(delete(model).where(model.service_id.in_(owned)))


# ---------------------------------------------------------------------------
# Service groups
# ---------------------------------------------------------------------------


async def create_service_group(db: AsyncSession, body: ServiceGroupCreate) -> ServiceGroup:
    service = await get_service(db, body.service_id)
    group = ServiceGroup(
        service_id=service.id,
        workspace_id=service.workspace_id,
        name=body.name,
        description=body.description,
        color=body.color,
        position=body.position.model_dump() if body.position else None,
    )
    async with atomic(db):
        db.add(group)
    await db.refresh(group)
    return group


async def list_service_groups(db: AsyncSession, service_id: int) -> list[ServiceGroup]:
    await get_service(db, service_id)
    result = await db.execute(
        select(ServiceGroup).where(ServiceGroup.service_id == service_id).order_by(ServiceGroup.id.asc())
    )
    return list(result.scalars().all())


async def get_service_group(db: AsyncSession, group_id: int) -> ServiceGroup:
    group = await db.get(ServiceGroup, group_id)
    if group is None:
        raise ServiceGroupNotFoundError(f"Service group {group_id} not found")
    return group


async def update_service_group(db: AsyncSession, group_id: int, body: GroupUpdate) -> ServiceGroup:
    group = await get_service_group(db, group_id)

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


async def update_service_group_position(db: AsyncSession, group_id: int, position: Position) -> ServiceGroup:
    group = await get_service_group(db, group_id)
    async with atomic(db):
        group.position = position.model_dump()
    return group


async def delete_service_group(db: AsyncSession, group_id: int) -> int:
    """Delete a service group, ungrouping its members.  Returns the workspace id."""
    group = await get_service_group(db, group_id)
    workspace_id = group.workspace_id
    async with atomic(db):
        await db.execute(
            update(ServiceItem)
            .where(ServiceItem.group_id == group_id, ServiceItem.service_id == group.service_id)
            .values(group_id=None, order_in_group=None)
            .execution_options(synchronize_session="fetch")
        )
        await connections.delete_connections_for_group(db, group_id, model=ServiceConnection)
        await edge_routes.delete_routes_for_group(db, group_id, model=ServiceEdgeRoute)
        await db.delete(group)
    workspace_logger(workspace_id).info("Service group {} deleted (service={})", group_id, group.service_id)
    return workspace_id


# ---------------------------------------------------------------------------
# Service items
# ---------------------------------------------------------------------------


async def create_service_item(db: AsyncSession, body: ServiceItemCreate, *, clamp: bool = True) -> ServiceItem:
    """Create a service item, appending it to its group unless ``order_in_group`` is given."""
    service = await get_service(db, body.service_id)

    fields = body.model_dump(exclude={"group_id", "order_in_group"})
    item = ServiceItem(workspace_id=service.workspace_id, **fields)

    async with atomic(db):
        if body.group_id is not None:
            await ordering.require_group(db, ServiceGroup, body.group_id, item)
            item.order_in_group = await ordering.open_slot(db, item, body.group_id, body.order_in_group, clamp=clamp)
            item.group_id = body.group_id
        db.add(item)
    await db.refresh(item)
    return item


async def list_service_items(db: AsyncSession, service_id: int) -> list[ServiceItem]:
    """Items of a service diagram by group and in-group order, ungrouped last."""
    await get_service(db, service_id)
    result = await db.execute(
        select(ServiceItem)
        .where(ServiceItem.service_id == service_id)
        .order_by(
            ServiceItem.group_id.asc().nulls_last(),
            ServiceItem.order_in_group.asc().nulls_last(),
            ServiceItem.id.asc(),
        )
    )
    return list(result.scalars().all())


async def get_service_item(db: AsyncSession, item_id: int) -> ServiceItem:
    item = await db.get(ServiceItem, item_id)
    if item is None:
        raise ServiceItemNotFoundError(f"Service item {item_id} not found")
    return item


async def update_service_item(
    db: AsyncSession, item_id: int, body: ServiceItemUpdate, *, clamp: bool = True
) -> ServiceItem:
    """Partially update a service item.  Group changes go through the ordering engine."""
    item = await get_service_item(db, item_id)

    changes = body.model_dump(exclude_unset=True)
    placement = {key: changes.pop(key) for key in ("group_id", "order_in_group") if key in changes}
    for required in ("name", "status"):
        if required in changes and changes[required] is None:
            changes.pop(required)

    async with atomic(db):
        for key, value in changes.items():
            setattr(item, key, value)
        if placement:
            group_id = placement.get("group_id", item.group_id)
            await ordering.move(
                db, item, group_id, placement.get("order_in_group"), clamp=clamp, group_model=ServiceGroup
            )
    await db.refresh(item)
    return item


async def update_service_item_position(db: AsyncSession, item_id: int, position: Position) -> ServiceItem:
    item = await get_service_item(db, item_id)
    async with atomic(db):
        item.position = position.model_dump()
    await db.refresh(item)
    return item


async def set_service_item_group(
    db: AsyncSession,
    item_id: int,
    group_id: int | None,
    order: int | None = None,
    *,
    clamp: bool = True,
) -> ServiceItem:
    """Move a service item into another group of its service (``None`` ungroups it)."""
    item = await get_service_item(db, item_id)
    async with atomic(db):
        await ordering.move(db, item, group_id, order, clamp=clamp, group_model=ServiceGroup)
    await db.refresh(item)
    return item


async def reorder_service_item(db: AsyncSession, item_id: int, new_order: int, *, clamp: bool = True) -> ServiceItem:
    item = await get_service_item(db, item_id)
    async with atomic(db):
        await ordering.reorder(db, item, new_order, clamp=clamp)
    await db.refresh(item)
    return item


async def delete_service_item(db: AsyncSession, item_id: int) -> int:
    """Delete a service item with its edges and edge handles.  Returns the workspace id."""
    item = await get_service_item(db, item_id)
    workspace_id = item.workspace_id
    async with atomic(db):
        await ordering.close_slot(db, item)
        await connections.delete_connections_for_item(db, item_id, model=ServiceConnection)
        await edge_routes.delete_routes_for_item(db, item_id, model=ServiceEdgeRoute)
        await db.delete(item)
    workspace_logger(workspace_id).info("Service item {} deleted (service={})", item_id, item.service_id)
    return workspace_id
