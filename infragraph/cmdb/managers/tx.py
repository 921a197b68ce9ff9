"""Transaction scope shared by all mutating managers."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from infragraph.cmdb.errors import TransactionError


@asynccontextmanager
async def atomic(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Commit everything issued in the block, or roll all of it back.

    Store failures surface as ``TransactionError``; domain errors raised in
    the block propagate unchanged after the rollback.
    """
    try:
        yield db
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.warning("Transaction rolled back: {}", exc)
        raise TransactionError(str(exc)) from exc
    except Exception:
        await db.rollback()
        raise
