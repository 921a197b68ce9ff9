"""Group endpoints (RPC-style)."""

from __future__ import annotations

from fastapi import APIRouter, Query, status

from infragraph.cmdb.db.tables import Connection, Group
from infragraph.cmdb.deps import Broadcaster, DbSession
from infragraph.cmdb.managers import connections, groups
from infragraph.cmdb.models.api import ConnectionResponse, GroupCreate, GroupResponse, GroupUpdate, Position
from infragraph.cmdb.routers.errors import domain_errors

router = APIRouter(prefix="/groups", tags=["groups"])


@router.post("/create", response_model=GroupResponse, status_code=status.HTTP_201_CREATED)
async def create_group(body: GroupCreate, db: DbSession, broadcaster: Broadcaster) -> Group:
    with domain_errors():
        group = await groups.create_group(db, body)
    await broadcaster.items_changed(db, group.workspace_id)
    return group


@router.get("/list", response_model=list[GroupResponse])
async def list_groups(db: DbSession, workspace_id: int = Query(...)) -> list[Group]:
    """List the groups of a workspace."""
    return await groups.list_groups(db, workspace_id)


@router.get("/{group_id}/get", response_model=GroupResponse)
async def get_group(group_id: int, db: DbSession) -> Group:
    with domain_errors():
        return await groups.get_group(db, group_id)


@router.post("/{group_id}/update", response_model=GroupResponse)
async def update_group(group_id: int, body: GroupUpdate, db: DbSession, broadcaster: Broadcaster) -> Group:
    """Partially update a group."""
    with domain_errors():
        group = await groups.update_group(db, group_id, body)
    await broadcaster.items_changed(db, group.workspace_id)
    return group


@router.post("/{group_id}/position", response_model=GroupResponse)
async def update_group_position(group_id: int, body: Position, db: DbSession, broadcaster: Broadcaster) -> Group:
    with domain_errors():
        group = await groups.update_group_position(db, group_id, body)
    await broadcaster.items_changed(db, group.workspace_id)
    return group


@router.post("/{group_id}/delete", status_code=status.HTTP_204_NO_CONTENT)
async def delete_group(group_id: int, db: DbSession, broadcaster: Broadcaster) -> None:
    """Delete a group.  Its items stay in the workspace, ungrouped."""
    with domain_errors():
        workspace_id = await groups.delete_group(db, group_id)
    await broadcaster.items_changed(db, workspace_id)


@router.get("/{group_id}/connections", response_model=list[ConnectionResponse])
async def list_group_connections(group_id: int, db: DbSession) -> list[Connection]:
    """Connections where the group is the source or the target."""
    with domain_errors():
        return await connections.list_for_group(db, group_id)
