"""Tests for affected-items resolution."""

from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from infragraph.cmdb.errors import NotFoundError
from infragraph.cmdb.managers import connections, impact
from infragraph.cmdb.models.enums import ConnectionShape

pytestmark = pytest.mark.integration


@pytest.fixture
def link(db_session: AsyncSession, workspace):
    async def _link(source, target, shape: ConnectionShape = ConnectionShape.ITEM_ITEM):
        await connections.create_connection(db_session, shape, source.id, target.id, workspace.id)

    return _link


async def _levels(db: AsyncSession, item_id: int, max_depth: int = impact.DEFAULT_MAX_DEPTH) -> dict[int, int]:
    return {item.id: level for item, level in await impact.get_affected_items(db, item_id, max_depth)}


async def test_chain_levels(db_session: AsyncSession, make_item, link):
    a, b, c, d = [await make_item(name) for name in "abcd"]
    await link(a, b)
    await link(b, c)
    await link(c, d)
    assert await _levels(db_session, a.id) == {b.id: 1, c.id: 2, d.id: 3}


async def test_cycle_excludes_start_item(db_session: AsyncSession, make_item, link):
    one, two, three = [await make_item(name) for name in ("1", "2", "3")]
    await link(one, two)
    await link(two, three)
    await link(three, one)
    assert await _levels(db_session, one.id) == {two.id: 1, three.id: 2}


async def test_minimum_level_wins(db_session: AsyncSession, make_item, link):
    a, b, c = [await make_item(name) for name in "abc"]
    await link(a, b)
    await link(b, c)
    await link(a, c)
    assert await _levels(db_session, a.id) == {b.id: 1, c.id: 1}


async def test_results_sorted_by_level_then_id(db_session: AsyncSession, make_item, link):
    a, b, c, d = [await make_item(name) for name in "abcd"]
    await link(a, c)
    await link(a, b)
    await link(b, d)
    affected = await impact.get_affected_items(db_session, a.id)
    assert [(item.id, level) for item, level in affected] == [(b.id, 1), (c.id, 1), (d.id, 2)]


async def test_depth_bound(db_session: AsyncSession, make_item, link):
    chain = [await make_item(f"n{i}") for i in range(13)]
    for source, target in zip(chain, chain[1:]):
        await link(source, target)

    levels = await _levels(db_session, chain[0].id)
    assert len(levels) == 10
    assert max(levels.values()) == 10
    assert chain[11].id not in levels

    assert await _levels(db_session, chain[0].id, max_depth=2) == {chain[1].id: 1, chain[2].id: 2}


async def test_group_edges_are_not_followed(db_session: AsyncSession, make_item, make_group, link):
    a, b = [await make_item(name) for name in "ab"]
    group = await make_group("g")
    await link(a, group, ConnectionShape.ITEM_GROUP)
    await link(group, b, ConnectionShape.GROUP_ITEM)
    assert await _levels(db_session, a.id) == {}


async def test_item_without_outgoing_edges(db_session: AsyncSession, make_item, link):
    a, b = [await make_item(name) for name in "ab"]
    await link(a, b)
    assert await impact.get_affected_items(db_session, b.id) == []


async def test_unknown_start_item(db_session: AsyncSession):
    with pytest.raises(NotFoundError):
        await impact.get_affected_items(db_session, 999_999)
