"""Affected-items resolution (impact analysis).

Starting from one item, follow outgoing item -> item connections breadth
first, one hop per level, up to ``max_depth`` hops.  Every reachable item is
reported once, with the smallest hop count at which it was reached.  The
start item itself is never part of the result, even when a cycle leads back
to it.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from infragraph.cmdb.db.tables import Connection, Item
from infragraph.cmdb.errors import NotFoundError

DEFAULT_MAX_DEPTH = 10


async def _targets_of(db: AsyncSession, sources: set[int]) -> set[int]:
    result = await db.execute(
        select(Connection.target_id).where(
            Connection.source_id.in_(sorted(sources)),
            Connection.target_id.is_not(None),
        )
    )
    return set(result.scalars().all())


async def resolve_levels(db: AsyncSession, item_id: int, max_depth: int = DEFAULT_MAX_DEPTH) -> dict[int, int]:
    """Map every item reachable from *item_id* to its minimum hop distance."""
    levels: dict[int, int] = {}
    frontier = {item_id}
    for level in range(1, max_depth + 1):
        reached = await _targets_of(db, frontier)
        frontier = {target for target in reached if target != item_id and target not in levels}
        if not frontier:
            break
        for target in frontier:
            levels[target] = level
    return levels


async def get_affected_items(
    db: AsyncSession,
    item_id: int,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> list[tuple[Item, int]]:
    """Return ``(item, level)`` pairs ordered by level, then item id.

    Raises ``NotFoundError`` for an unknown start item.  An item without
    outgoing connections yields an empty list.
    """
    if await db.get(Item, item_id) is None:
        raise NotFoundError(f"Item {item_id} not found")

    levels = await resolve_levels(db, item_id, max_depth)
    if not levels:
        return []

    result = await db.execute(select(Item).where(Item.id.in_(list(levels))))
    return sorted(((item, levels[item.id]) for item in result.scalars()), key=lambda pair: (pair[1], pair[0].id))
