"""Workspace CRUD operations.

Encapsulates workspace data access plus the ``is_default`` rules: at most one
workspace is the default at any time, and the default can never be deleted.
Copying a workspace lives in :mod:`infragraph.cmdb.managers.cloning`.
"""

from __future__ import annotations

from loguru import logger
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from infragraph.cmdb.db.tables import (
    Connection,
    EdgeRoute,
    Group,
    Item,
    Service,
    ServiceConnection,
    ServiceEdgeRoute,
    ServiceGroup,
    ServiceItem,
    Workspace,
)
from infragraph.cmdb.errors import InvalidStateError, NotFoundError
from infragraph.cmdb.log import workspace_logger
from infragraph.cmdb.managers.tx import atomic
from infragraph.cmdb.models.api import WorkspaceCreate, WorkspaceUpdate


class WorkspaceNotFoundError(NotFoundError):
    """Raised when a workspace is not found."""


async def create_workspace(db: AsyncSession, body: WorkspaceCreate) -> Workspace:
    """Create a new, non-default workspace."""
    workspace = Workspace(name=body.name, description=body.description, is_default=False)
    async with atomic(db):
        db.add(workspace)
    await db.refresh(workspace)
    return workspace


async def list_workspaces(db: AsyncSession) -> list[Workspace]:
    """List workspaces, default first, then oldest first."""
    stmt = select(Workspace).order_by(Workspace.is_default.desc(), Workspace.created_at.asc(), Workspace.id.asc())
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_workspace(db: AsyncSession, workspace_id: int) -> Workspace:
    """Get a workspace by ID.  Raises ``WorkspaceNotFoundError`` if missing."""
    workspace = await db.get(Workspace, workspace_id)
    if workspace is None:
        raise WorkspaceNotFoundError(f"Workspace {workspace_id} not found")
    return workspace


async def get_default_workspace(db: AsyncSession) -> Workspace:
    """Return the default workspace.  Raises ``WorkspaceNotFoundError`` if there is none."""
    result = await db.execute(select(Workspace).where(Workspace.is_default.is_(True)).limit(1))
    workspace = result.scalar_one_or_none()
    if workspace is None:
        raise WorkspaceNotFoundError("No default workspace")
    return workspace


async def update_workspace(db: AsyncSession, workspace_id: int, body: WorkspaceUpdate) -> Workspace:
    """Partially update a workspace.  Raises ``WorkspaceNotFoundError`` if missing."""
    workspace = await get_workspace(db, workspace_id)

    changes = body.model_dump(exclude_unset=True)
    if changes.get("name", "") is None:
        changes.pop("name")
    if not changes:
        return workspace

    async with atomic(db):
        for key, value in changes.items():
            setattr(workspace, key, value)
    await db.refresh(workspace)
    return workspace


async def delete_workspace(db: AsyncSession, workspace_id: int) -> None:
    """Delete a workspace and everything it owns.

    Raises ``WorkspaceNotFoundError`` if missing and ``InvalidStateError`` for
    the default workspace.  Child rows are removed explicitly so the result
    does not depend on the backend enforcing foreign-key cascades.
    """
    workspace = await get_workspace(db, workspace_id)
    if workspace.is_default:
        raise InvalidStateError("Cannot delete default workspace")

    async with atomic(db):
        for model in (ServiceEdgeRoute, ServiceConnection, ServiceItem, ServiceGroup, Service):
            await db.execute(delete(model).where(model.workspace_id == workspace_id))
        await db.execute(delete(EdgeRoute).where(EdgeRoute.workspace_id == workspace_id))
        await db.execute(delete(Connection).where(Connection.workspace_id == workspace_id))
        await db.execute(delete(Item).where(Item.workspace_id == workspace_id))
        await db.execute(delete(Group).where(Group.workspace_id == workspace_id))
        await db.delete(workspace)
    workspace_logger(workspace_id).info("Workspace {} deleted", workspace_id)


async def set_default_workspace(db: AsyncSession, workspace_id: int) -> Workspace:
    """Make *workspace_id* the only default workspace."""
    workspace = await get_workspace(db, workspace_id)
    async with atomic(db):
        await _unset_all_defaults(db)
        workspace.is_default = True
    await db.refresh(workspace)
    return workspace


async def ensure_default_workspace(db: AsyncSession, name: str) -> Workspace:
    """Return the default workspace, creating one called *name* if there is none."""
    result = await db.execute(select(Workspace).where(Workspace.is_default.is_(True)).limit(1))
    existing = result.scalar_one_or_none()
    if existing is not None:
        return existing

    workspace = Workspace(name=name, is_default=True)
    async with atomic(db):
        db.add(workspace)
    await db.refresh(workspace)
    logger.info("Created default workspace {} ({!r})", workspace.id, name)
    return workspace


async def _unset_all_defaults(db: AsyncSession) -> None:
    """Set ``is_default=False`` on all workspaces."""
    await db.execute(
        update(Workspace)
        .where(Workspace.is_default.is_(True))
        .values(is_default=False)
        .execution_options(synchronize_session="fetch")
    )
