"""Workspace endpoints (RPC-style).

All write operations use POST; reads use GET.  ``/{workspace_id}/events``
streams live item updates as Server-Sent Events.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import APIRouter, Request, status
from loguru import logger
from sse_starlette.sse import EventSourceResponse

from infragraph.cmdb.db.tables import Workspace
from infragraph.cmdb.deps import Broadcaster, DbSession, RedisClient, Settings
from infragraph.cmdb.managers import cloning, workspaces
from infragraph.cmdb.models.api import WorkspaceCreate, WorkspaceDuplicate, WorkspaceResponse, WorkspaceUpdate
from infragraph.cmdb.models.enums import ChangeEvent
from infragraph.cmdb.notify import channel_name
from infragraph.cmdb.routers.errors import domain_errors

router = APIRouter(prefix="/workspaces", tags=["workspaces"])

_EVENT_POLL_SECONDS = 15.0


@router.post("/create", response_model=WorkspaceResponse, status_code=status.HTTP_201_CREATED)
async def create_workspace(body: WorkspaceCreate, db: DbSession) -> Workspace:
    """Create a new (non-default) workspace."""
    with domain_errors():
        return await workspaces.create_workspace(db, body)


@router.get("/list", response_model=list[WorkspaceResponse])
async def list_workspaces(db: DbSession) -> list[Workspace]:
    """List all workspaces, the default one first."""
    return await workspaces.list_workspaces(db)


@router.get("/default/get", response_model=WorkspaceResponse)
async def get_default_workspace(db: DbSession) -> Workspace:
    with domain_errors():
        return await workspaces.get_default_workspace(db)


@router.get("/{workspace_id}/get", response_model=WorkspaceResponse)
async def get_workspace(workspace_id: int, db: DbSession) -> Workspace:
    with domain_errors():
        return await workspaces.get_workspace(db, workspace_id)


@router.post("/{workspace_id}/update", response_model=WorkspaceResponse)
async def update_workspace(workspace_id: int, body: WorkspaceUpdate, db: DbSession) -> Workspace:
    """Partially update a workspace."""
    with domain_errors():
        return await workspaces.update_workspace(db, workspace_id, body)


@router.post("/{workspace_id}/delete", status_code=status.HTTP_204_NO_CONTENT)
async def delete_workspace(workspace_id: int, db: DbSession) -> None:
    """Delete a workspace with all its groups, items and connections.

    The default workspace cannot be deleted (400).
    """
    with domain_errors():
        await workspaces.delete_workspace(db, workspace_id)


@router.post("/{workspace_id}/set-default", response_model=WorkspaceResponse)
async def set_default_workspace(workspace_id: int, db: DbSession) -> Workspace:
    with domain_errors():
        return await workspaces.set_default_workspace(db, workspace_id)


@router.post("/{workspace_id}/duplicate", response_model=WorkspaceResponse, status_code=status.HTTP_201_CREATED)
async def duplicate_workspace(
    workspace_id: int,
    db: DbSession,
    broadcaster: Broadcaster,
    body: WorkspaceDuplicate | None = None,
) -> Workspace:
    """Copy a workspace's groups, items, connections and edge handles."""
    with domain_errors():
        workspace = await cloning.duplicate_workspace(db, workspace_id, body.name if body else None)
    await broadcaster.items_changed(db, workspace.id)
    return workspace


@router.get("/{workspace_id}/events")
async def stream_workspace_events(
    workspace_id: int,
    request: Request,
    db: DbSession,
    redis: RedisClient,
    settings: Settings,
) -> EventSourceResponse:
    """Stream ``cmdb_update`` events of one workspace.

    Each event's data is the JSON document published by the change sink.
    """
    with domain_errors():
        await workspaces.get_workspace(db, workspace_id)
    channel = channel_name(settings.broadcast_channel_prefix, workspace_id)

    async def _events() -> AsyncIterator[dict]:
        pubsub = redis.pubsub()
        await pubsub.subscribe(channel)
        logger.debug("SSE subscriber attached to {}", channel)
        try:
            while not await request.is_disconnected():
                message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=_EVENT_POLL_SECONDS)
                if message is None:
                    continue
                data = message["data"]
                if isinstance(data, bytes):
                    data = data.decode()
                yield {"event": ChangeEvent.CMDB_UPDATE.value, "data": data}
        finally:
            await pubsub.unsubscribe(channel)
            await pubsub.aclose()
            logger.debug("SSE subscriber detached from {}", channel)

    return EventSourceResponse(_events(), ping=int(_EVENT_POLL_SECONDS))
