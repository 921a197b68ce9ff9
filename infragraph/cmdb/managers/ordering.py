"""Dense in-group ordering.

Shared by CMDB items and service items.  A member model carries ``group_id``,
``order_in_group`` and an ``order_scope`` naming the columns that delimit one
ordering universe (``workspace_id`` for items, ``workspace_id`` plus
``service_id`` for service items).  Within a scope the members of a group have
orders exactly ``0..n-1``; every insert, move, reorder and removal renumbers
the neighbours it displaces.  Ungrouped members have ``order_in_group = NULL``.

None of these functions commit.  Callers run them inside :func:`tx.atomic`.
"""

from __future__ import annotations

from typing import Any

from loguru import logger
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from infragraph.cmdb.errors import InvalidStateError, NotFoundError


class NotGroupedError(InvalidStateError):
    """Raised when reordering a member that belongs to no group."""


def _scope(member: Any) -> list:
    model = type(member)
    return [getattr(model, column) == getattr(member, column) for column in model.order_scope]


def _clamp(value: int, upper: int) -> int:
    return max(0, min(value, upper))


async def require_group(db: AsyncSession, group_model: type, group_id: int, member: Any) -> Any:
    """Load *group_id* and check it lives in *member*'s scope.  Raises ``NotFoundError``."""
    group = await db.get(group_model, group_id)
    if group is None or any(getattr(group, column) != getattr(member, column) for column in member.order_scope):
        raise NotFoundError(f"Group {group_id} not found in workspace {member.workspace_id}")
    return group


async def member_count(db: AsyncSession, member: Any, group_id: int, *, exclude: int | None = None) -> int:
    model = type(member)
    stmt = select(func.count(model.id)).where(model.group_id == group_id, *_scope(member))
    if exclude is not None:
        stmt = stmt.where(model.id != exclude)
    return (await db.execute(stmt)).scalar_one()


async def next_order(db: AsyncSession, member: Any, group_id: int) -> int:
    model = type(member)
    stmt = select(func.coalesce(func.max(model.order_in_group), -1)).where(
        model.group_id == group_id, *_scope(member)
    )
    return (await db.execute(stmt)).scalar_one() + 1


async def shift(db: AsyncSession, member: Any, group_id: int, delta: int, *criteria) -> None:
    """Add *delta* to ``order_in_group`` of the members of *group_id* matching *criteria*."""
    model = type(member)
    await db.execute(
        update(model)
        .where(model.group_id == group_id, *_scope(member), *criteria)
        .values(order_in_group=model.order_in_group + delta)
        .execution_options(synchronize_session="fetch")
    )


async def open_slot(db: AsyncSession, member: Any, group_id: int, order: int | None, *, clamp: bool) -> int:
    """Make room for *member* in *group_id* and return the order it should take."""
    model = type(member)
    if order is None:
        return await next_order(db, member, group_id)
    if clamp:
        order = _clamp(order, await member_count(db, member, group_id, exclude=member.id))
    await shift(db, member, group_id, 1, model.order_in_group >= order, model.id != member.id)
    return order


async def close_slot(db: AsyncSession, member: Any) -> None:
    """Close the gap *member* leaves in its current group."""
    if member.group_id is None or member.order_in_group is None:
        return
    model = type(member)
    await shift(
        db,
        member,
        member.group_id,
        -1,
        model.order_in_group > member.order_in_group,
        model.id != member.id,
    )


async def reorder(db: AsyncSession, member: Any, new_order: int, *, clamp: bool) -> None:
    """Move *member* to *new_order* inside its group, shifting the members in between."""
    if member.group_id is None:
        raise NotGroupedError(f"{type(member).__name__} {member.id} is not in a group")

    model = type(member)
    group_id = member.group_id
    others = await member_count(db, member, group_id, exclude=member.id)
    # A grouped member without an order is treated as sitting just past the end.
    old_order = member.order_in_group if member.order_in_group is not None else others
    if clamp:
        new_order = _clamp(new_order, others)

    if new_order == old_order:
        if member.order_in_group is None:
            member.order_in_group = new_order
            await db.flush()
        return

    logger.debug("Reordering {} {} in group {}: {} -> {}", model.__name__, member.id, group_id, old_order, new_order)
    if old_order < new_order:
        await shift(
            db,
            member,
            group_id,
            -1,
            model.order_in_group > old_order,
            model.order_in_group <= new_order,
            model.id != member.id,
        )
    else:
        await shift(
            db,
            member,
            group_id,
            1,
            model.order_in_group >= new_order,
            model.order_in_group < old_order,
            model.id != member.id,
        )
    member.order_in_group = new_order
    await db.flush()


async def move(
    db: AsyncSession,
    member: Any,
    group_id: int | None,
    order: int | None,
    *,
    clamp: bool,
    group_model: type,
) -> None:
    """Move *member* into *group_id* (``None`` ungroups it).

    The gap in the old group is closed first.  In the new group the member is
    inserted at *order* or appended after the current maximum.  Moving into
    the group it is already in with an explicit *order* is a reorder.
    """
    if group_id is not None:
        await require_group(db, group_model, group_id, member)

    if member.group_id == group_id:
        if group_id is not None and order is not None:
            await reorder(db, member, order, clamp=clamp)
        return

    old_group_id = member.group_id
    await close_slot(db, member)
    new_order = None if group_id is None else await open_slot(db, member, group_id, order, clamp=clamp)
    member.group_id = group_id
    member.order_in_group = new_order
    await db.flush()
    logger.debug(
        "{} {} moved: group {} -> {} at {}", type(member).__name__, member.id, old_group_id, group_id, new_order
    )
