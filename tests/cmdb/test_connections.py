"""Tests for the connection graph store."""

from __future__ import annotations

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from infragraph.cmdb.db.tables import Connection, EdgeRoute
from infragraph.cmdb.errors import ConflictError, NotFoundError, ValidationError
from infragraph.cmdb.managers import connections, edge_routes, groups, items, workspaces
from infragraph.cmdb.managers.connections import check_endpoints
from infragraph.cmdb.models.api import WorkspaceCreate
from infragraph.cmdb.models.enums import ConflictPolicy, ConnectionShape

pytestmark = pytest.mark.integration


async def _count(db: AsyncSession) -> int:
    return (await db.execute(select(func.count(Connection.id)))).scalar_one()


async def test_create_item_to_item(db_session: AsyncSession, workspace, make_item):
    web = await make_item("web")
    db = await make_item("db")
    conn = await connections.create_connection(db_session, ConnectionShape.ITEM_ITEM, web.id, db.id, workspace.id)
    assert conn.source_id == web.id
    assert conn.target_id == db.id
    assert conn.source_group_id is None
    assert conn.target_group_id is None
    assert conn.shape == ConnectionShape.ITEM_ITEM


async def test_duplicate_create_is_idempotent(db_session: AsyncSession, workspace, make_item):
    a = await make_item("a")
    b = await make_item("b")
    first = await connections.create_connection(db_session, ConnectionShape.ITEM_ITEM, a.id, b.id, workspace.id)
    second = await connections.create_connection(db_session, ConnectionShape.ITEM_ITEM, a.id, b.id, workspace.id)
    assert second.id == first.id
    assert await _count(db_session) == 1


async def test_duplicate_create_with_error_policy(db_session: AsyncSession, workspace, make_item):
    a = await make_item("a")
    b = await make_item("b")
    await connections.create_connection(db_session, ConnectionShape.ITEM_ITEM, a.id, b.id, workspace.id)
    with pytest.raises(ConflictError):
        await connections.create_connection(
            db_session, ConnectionShape.ITEM_ITEM, a.id, b.id, workspace.id, on_conflict=ConflictPolicy.ERROR
        )


async def test_reverse_direction_is_a_different_edge(db_session: AsyncSession, workspace, make_item):
    a = await make_item("a")
    b = await make_item("b")
    await connections.create_connection(db_session, ConnectionShape.ITEM_ITEM, a.id, b.id, workspace.id)
    await connections.create_connection(db_session, ConnectionShape.ITEM_ITEM, b.id, a.id, workspace.id)
    assert await _count(db_session) == 2


async def test_same_ids_in_different_shapes_do_not_collide(db_session: AsyncSession, workspace, make_item, make_group):
    item = await make_item("a")
    group = await make_group("g")
    await connections.create_connection(db_session, ConnectionShape.ITEM_GROUP, item.id, group.id, workspace.id)
    await connections.create_connection(db_session, ConnectionShape.GROUP_ITEM, group.id, item.id, workspace.id)
    shapes = {conn.shape for conn in await connections.list_connections(db_session, workspace.id)}
    assert shapes == {ConnectionShape.ITEM_GROUP, ConnectionShape.GROUP_ITEM}


async def test_group_to_group(db_session: AsyncSession, workspace, make_group):
    g1 = await make_group("g1")
    g2 = await make_group("g2")
    conn = await connections.create_connection(db_session, ConnectionShape.GROUP_GROUP, g1.id, g2.id, workspace.id)
    assert conn.source_group_id == g1.id
    assert conn.target_group_id == g2.id
    assert conn.source_id is None
    assert conn.target_id is None
    assert [c.id for c in await connections.list_for_group(db_session, g1.id)] == [conn.id]


async def test_missing_fields_are_rejected(db_session: AsyncSession, workspace, make_item):
    a = await make_item("a")
    with pytest.raises(ValidationError):
        await connections.create_connection(db_session, ConnectionShape.ITEM_ITEM, a.id, None, workspace.id)
    with pytest.raises(ValidationError):
        await connections.create_connection(db_session, ConnectionShape.ITEM_ITEM, a.id, a.id, None)


async def test_endpoint_must_exist_in_workspace(db_session: AsyncSession, workspace, make_item):
    other = await workspaces.create_workspace(db_session, WorkspaceCreate(name="Other"))
    local = await make_item("local")
    foreign = await make_item("foreign", workspace_id=other.id)
    with pytest.raises(NotFoundError):
        await connections.create_connection(db_session, ConnectionShape.ITEM_ITEM, local.id, foreign.id, workspace.id)
    with pytest.raises(NotFoundError):
        await connections.create_connection(db_session, ConnectionShape.ITEM_ITEM, local.id, 999_999, workspace.id)


def test_check_endpoints_requires_exactly_one_column_per_side():
    check_endpoints(Connection(workspace_id=1, source_id=1, target_group_id=2))
    with pytest.raises(ValidationError):
        check_endpoints(Connection(workspace_id=1, source_id=1, source_group_id=1, target_id=2))
    with pytest.raises(ValidationError):
        check_endpoints(Connection(workspace_id=1, source_id=1))


async def test_delete_connection_removes_edge_and_handles(db_session: AsyncSession, workspace, make_item):
    a = await make_item("a")
    b = await make_item("b")
    await connections.create_connection(db_session, ConnectionShape.ITEM_ITEM, a.id, b.id, workspace.id)
    await edge_routes.upsert_route(db_session, f"e{a.id}-{b.id}", "right", "left", workspace.id)

    removed = await connections.delete_connection(db_session, ConnectionShape.ITEM_ITEM, a.id, b.id)

    assert removed is not None
    assert removed.workspace_id == workspace.id
    assert await _count(db_session) == 0
    assert (await db_session.execute(select(func.count(EdgeRoute.id)))).scalar_one() == 0


async def test_delete_missing_connection_removes_nothing(db_session: AsyncSession, workspace, make_item):
    a = await make_item("a")
    b = await make_item("b")
    assert await connections.delete_connection(db_session, ConnectionShape.ITEM_ITEM, a.id, b.id) is None


async def test_deleting_item_cascades_to_its_connections(db_session: AsyncSession, workspace, make_item, make_group):
    a = await make_item("a")
    b = await make_item("b")
    c = await make_item("c")
    group = await make_group("g")
    await connections.create_connection(db_session, ConnectionShape.ITEM_ITEM, a.id, b.id, workspace.id)
    await connections.create_connection(db_session, ConnectionShape.ITEM_ITEM, c.id, a.id, workspace.id)
    await connections.create_connection(db_session, ConnectionShape.ITEM_GROUP, a.id, group.id, workspace.id)
    keep = await connections.create_connection(db_session, ConnectionShape.ITEM_ITEM, b.id, c.id, workspace.id)

    await items.delete_item(db_session, a.id)

    remaining = await connections.list_connections(db_session, workspace.id)
    assert [conn.id for conn in remaining] == [keep.id]


async def test_deleting_group_cascades_to_its_connections(db_session: AsyncSession, workspace, make_item, make_group):
    a = await make_item("a")
    g1 = await make_group("g1")
    g2 = await make_group("g2")
    await connections.create_connection(db_session, ConnectionShape.GROUP_GROUP, g1.id, g2.id, workspace.id)
    await connections.create_connection(db_session, ConnectionShape.ITEM_GROUP, a.id, g1.id, workspace.id)
    keep = await connections.create_connection(db_session, ConnectionShape.ITEM_GROUP, a.id, g2.id, workspace.id)

    await groups.delete_group(db_session, g1.id)

    remaining = await connections.list_connections(db_session, workspace.id)
    assert [conn.id for conn in remaining] == [keep.id]


async def test_dependents_and_dependencies(db_session: AsyncSession, workspace, make_item, make_group):
    lb = await make_item("lb")
    app = await make_item("app")
    cache = await make_item("cache")
    group = await make_group("g")
    await connections.create_connection(db_session, ConnectionShape.ITEM_ITEM, lb.id, app.id, workspace.id)
    await connections.create_connection(db_session, ConnectionShape.ITEM_ITEM, app.id, cache.id, workspace.id)
    await connections.create_connection(db_session, ConnectionShape.ITEM_GROUP, app.id, group.id, workspace.id)

    assert [i.id for i in await connections.list_dependents(db_session, app.id)] == [cache.id]
    assert [i.id for i in await connections.list_dependencies(db_session, app.id)] == [lb.id]
    assert len(await connections.list_for_item(db_session, app.id)) == 3


async def test_listing_for_unknown_item(db_session: AsyncSession):
    with pytest.raises(NotFoundError):
        await connections.list_for_item(db_session, 999_999)
    with pytest.raises(NotFoundError):
        await connections.list_dependents(db_session, 999_999)
