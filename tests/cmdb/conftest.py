"""Shared fixtures for CMDB tests."""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from infragraph.cmdb.app import app
from infragraph.cmdb.broadcast import ChangeBroadcaster
from infragraph.cmdb.db.tables import Group, Item, Workspace
from infragraph.cmdb.deps import get_db
from infragraph.cmdb.managers import groups, items, workspaces
from infragraph.cmdb.models.api import GroupCreate, ItemCreate, WorkspaceCreate


class RecordingSink:
    """Change sink that keeps every broadcast in memory."""

    def __init__(self) -> None:
        self.calls: list[tuple[int, list[dict]]] = []

    async def broadcast(self, workspace_id: int, items: list[dict]) -> None:
        self.calls.append((workspace_id, items))


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
async def client(db_session: AsyncSession, sink: RecordingSink) -> AsyncIterator[AsyncClient]:
    """Async HTTP client wired to the app with the test DB session.

    The app lifespan does NOT run under ``ASGITransport``, so state fields are
    pre-set here and ``get_db`` is overridden to hand out ``db_session``.
    """

    async def _override_get_db() -> AsyncIterator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db

    app.state.db_engine = None
    app.state.db_session_factory = None
    app.state.redis = None
    app.state.broadcaster = ChangeBroadcaster(sink)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Data builders (go through the managers, commit like production code)
# ---------------------------------------------------------------------------


@pytest.fixture
async def workspace(db_session: AsyncSession) -> Workspace:
    return await workspaces.create_workspace(db_session, WorkspaceCreate(name="Lab"))


@pytest.fixture
def make_group(db_session: AsyncSession, workspace: Workspace) -> Callable[..., Awaitable[Group]]:
    async def _make(name: str = "Rack", workspace_id: int | None = None) -> Group:
        body = GroupCreate(workspace_id=workspace_id or workspace.id, name=name)
        return await groups.create_group(db_session, body)

    return _make


@pytest.fixture
def make_item(db_session: AsyncSession, workspace: Workspace) -> Callable[..., Awaitable[Item]]:
    async def _make(name: str, group_id: int | None = None, workspace_id: int | None = None, **fields) -> Item:
        body = ItemCreate(workspace_id=workspace_id or workspace.id, name=name, group_id=group_id, **fields)
        return await items.create_item(db_session, body)

    return _make


@pytest.fixture
def group_orders(db_session: AsyncSession) -> Callable[[int], Awaitable[dict[int, int | None]]]:
    """Read ``{item_id: order_in_group}`` for a group straight from the table."""

    async def _read(group_id: int) -> dict[int, int | None]:
        result = await db_session.execute(select(Item.id, Item.order_in_group).where(Item.group_id == group_id))
        return {row.id: row.order_in_group for row in result}

    return _read
