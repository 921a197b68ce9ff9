"""Tests for workspace duplication."""

from __future__ import annotations

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from infragraph.cmdb.db.tables import Connection, EdgeRoute, Group, Item, Workspace
from infragraph.cmdb.errors import NotFoundError
from infragraph.cmdb.managers import cloning, connections, edge_routes, workspaces
from infragraph.cmdb.managers.cloning import coerce_images, duplicate_workspace
from infragraph.cmdb.models.enums import ConnectionShape

pytestmark = pytest.mark.integration


async def _rows(db: AsyncSession, model, workspace_id: int) -> list:
    result = await db.execute(select(model).where(model.workspace_id == workspace_id).order_by(model.id))
    return list(result.scalars().all())


async def _count(db: AsyncSession, model) -> int:
    return (await db.execute(select(func.count(model.id)))).scalar_one()


@pytest.fixture
async def populated(db_session: AsyncSession, workspace, make_group, make_item):
    """Two groups, three items, three connections and three routing records.

    One routing record points at an item that no longer exists and must not
    survive the copy.
    """
    g1 = await make_group("Frontend")
    g2 = await make_group("Backend")
    web = await make_item("web", group_id=g1.id, images=["nginx.png"])
    api = await make_item("api", group_id=g2.id)
    db = await make_item("db", group_id=g2.id)

    await connections.create_connection(db_session, ConnectionShape.ITEM_ITEM, web.id, api.id, workspace.id)
    await connections.create_connection(db_session, ConnectionShape.ITEM_ITEM, api.id, db.id, workspace.id)
    await connections.create_connection(db_session, ConnectionShape.GROUP_GROUP, g1.id, g2.id, workspace.id)

    await edge_routes.upsert_route(db_session, f"e{web.id}-{api.id}", "right", "left", workspace.id)
    await edge_routes.upsert_route(db_session, f"group-e{g1.id}-{g2.id}", "bottom", "top", workspace.id)
    await edge_routes.upsert_route(db_session, f"e{db.id}-999999", "right", "left", workspace.id)
    return {"groups": (g1, g2), "items": (web, api, db)}


async def test_duplicate_copies_everything(db_session: AsyncSession, workspace, populated):
    copy = await duplicate_workspace(db_session, workspace.id, "Lab v2")

    assert copy.id != workspace.id
    assert copy.name == "Lab v2"
    assert copy.is_default is False

    new_groups = await _rows(db_session, Group, copy.id)
    new_items = await _rows(db_session, Item, copy.id)
    new_connections = await _rows(db_session, Connection, copy.id)
    new_routes = await _rows(db_session, EdgeRoute, copy.id)

    assert [g.name for g in new_groups] == ["Frontend", "Backend"]
    assert [i.name for i in new_items] == ["web", "api", "db"]
    assert len(new_connections) == 3
    assert len(new_routes) == 2


async def test_duplicate_remaps_ids(db_session: AsyncSession, workspace, populated):
    copy = await duplicate_workspace(db_session, workspace.id)

    old_g1, old_g2 = populated["groups"]
    old_items = populated["items"]
    new_g1, new_g2 = await _rows(db_session, Group, copy.id)
    new_web, new_api, new_db = await _rows(db_session, Item, copy.id)

    assert {new_g1.id, new_g2.id}.isdisjoint({old_g1.id, old_g2.id})
    assert {i.id for i in (new_web, new_api, new_db)}.isdisjoint({i.id for i in old_items})

    assert (new_web.group_id, new_web.order_in_group) == (new_g1.id, 0)
    assert (new_api.group_id, new_api.order_in_group) == (new_g2.id, 0)
    assert (new_db.group_id, new_db.order_in_group) == (new_g2.id, 1)

    edges = {conn.ref for conn in await _rows(db_session, Connection, copy.id)}
    assert {str(ref) for ref in edges} == {
        f"e{new_web.id}-{new_api.id}",
        f"e{new_api.id}-{new_db.id}",
        f"group-e{new_g1.id}-{new_g2.id}",
    }

    copied_routes = await _rows(db_session, EdgeRoute, copy.id)
    routes = {route.edge_id: (route.source_handle, route.target_handle) for route in copied_routes}
    assert routes == {
        f"e{new_web.id}-{new_api.id}": ("right", "left"),
        f"group-e{new_g1.id}-{new_g2.id}": ("bottom", "top"),
    }


async def test_duplicate_keeps_source_intact(db_session: AsyncSession, workspace, populated):
    before = [(i.id, i.group_id, i.order_in_group) for i in await _rows(db_session, Item, workspace.id)]
    await duplicate_workspace(db_session, workspace.id)
    after = [(i.id, i.group_id, i.order_in_group) for i in await _rows(db_session, Item, workspace.id)]
    assert after == before
    assert len(await _rows(db_session, Connection, workspace.id)) == 3


async def test_duplicate_default_name_and_images(db_session: AsyncSession, workspace, populated):
    copy = await duplicate_workspace(db_session, workspace.id)
    assert copy.name == "Lab (Copy)"
    web = (await _rows(db_session, Item, copy.id))[0]
    assert web.images == ["nginx.png"]


async def test_duplicate_of_default_is_not_default(db_session: AsyncSession):
    default = await workspaces.ensure_default_workspace(db_session, "Default Workspace")
    copy = await duplicate_workspace(db_session, default.id)
    assert copy.is_default is False
    assert (await workspaces.get_default_workspace(db_session)).id == default.id


async def test_duplicate_empty_workspace(db_session: AsyncSession, workspace):
    copy = await duplicate_workspace(db_session, workspace.id)
    assert await _rows(db_session, Item, copy.id) == []


async def test_duplicate_unknown_workspace(db_session: AsyncSession):
    with pytest.raises(NotFoundError):
        await duplicate_workspace(db_session, 999_999)


async def test_failed_duplicate_writes_nothing(db_session: AsyncSession, workspace, populated, monkeypatch):
    source_id = workspace.id
    tables = (Workspace, Group, Item, Connection, EdgeRoute)
    before = [await _count(db_session, model) for model in tables]

    async def _fail(*args, **kwargs):
        msg = "connection lost"
        raise RuntimeError(msg)

    # Groups and items of the copy are already flushed at this point.
    monkeypatch.setattr(cloning, "_copy_connections", _fail)
    with pytest.raises(RuntimeError):
        await duplicate_workspace(db_session, source_id, "Half copy")

    assert [await _count(db_session, model) for model in tables] == before
    names = (await db_session.execute(select(Workspace.name))).scalars().all()
    assert "Half copy" not in names


@pytest.mark.parametrize(
    ("stored", "expected"),
    [
        (["a.png", "b.png"], ["a.png", "b.png"]),
        ('["a.png"]', ["a.png"]),
        ("not json", []),
        ('{"a": 1}', []),
        (None, []),
        ({"a": 1}, []),
    ],
)
def test_coerce_images(stored, expected):
    assert coerce_images(stored) == expected
