"""Service group endpoints (RPC-style)."""

from __future__ import annotations

from fastapi import APIRouter, Query, status

from infragraph.cmdb.db.tables import ServiceGroup
from infragraph.cmdb.deps import Broadcaster, DbSession
from infragraph.cmdb.managers import services
from infragraph.cmdb.models.api import GroupUpdate, Position, ServiceGroupCreate, ServiceGroupResponse
from infragraph.cmdb.routers.errors import domain_errors

router = APIRouter(prefix="/service-groups", tags=["service-groups"])


@router.post("/create", response_model=ServiceGroupResponse, status_code=status.HTTP_201_CREATED)
async def create_service_group(body: ServiceGroupCreate, db: DbSession, broadcaster: Broadcaster) -> ServiceGroup:
    with domain_errors():
        group = await services.create_service_group(db, body)
    await broadcaster.items_changed(db, group.workspace_id)
    return group


@router.get("/list", response_model=list[ServiceGroupResponse])
async def list_service_groups(db: DbSession, service_id: int = Query(...)) -> list[ServiceGroup]:
    with domain_errors():
        return await services.list_service_groups(db, service_id)


@router.get("/{group_id}/get", response_model=ServiceGroupResponse)
async def get_service_group(group_id: int, db: DbSession) -> ServiceGroup:
    with domain_errors():
        return await services.get_service_group(db, group_id)


@router.post("/{group_id}/update", response_model=ServiceGroupResponse)
async def update_service_group(
    group_id: int, body: GroupUpdate, db: DbSession, broadcaster: Broadcaster
) -> ServiceGroup:
    with domain_errors():
        group = await services.update_service_group(db, group_id, body)
    await broadcaster.items_changed(db, group.workspace_id)
    return group


@router.post("/{group_id}/position", response_model=ServiceGroupResponse)
async def update_service_group_position(
    group_id: int, body: Position, db: DbSession, broadcaster: Broadcaster
) -> ServiceGroup:
    with domain_errors():
        group = await services.update_service_group_position(db, group_id, body)
    await broadcaster.items_changed(db, group.workspace_id)
    return group


@router.post("/{group_id}/delete", status_code=status.HTTP_204_NO_CONTENT)
async def delete_service_group(group_id: int, db: DbSession, broadcaster: Broadcaster) -> None:
    """Delete a service group.  Its items stay in the service, ungrouped."""
    with domain_errors():
        workspace_id = await services.delete_service_group(db, group_id)
    await broadcaster.items_changed(db, workspace_id)
