"""Post-commit change broadcasting.

Routers call :meth:`ChangeBroadcaster.items_changed` after a mutation has been
committed.  The broadcaster reads the workspace's current items and hands them
to the configured sink.  It never raises: a failed broadcast is logged and the
mutating request still succeeds.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from infragraph.cmdb.log import workspace_logger
from infragraph.cmdb.managers.items import list_items
from infragraph.cmdb.models.api import ItemResponse
from infragraph.cmdb.notify.base import ChangeSink, NullChangeSink

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


class ChangeBroadcaster:
    """Instantiated once during app lifespan around the configured sink."""

    def __init__(self, sink: ChangeSink | None = None) -> None:
        self._sink: ChangeSink = sink or NullChangeSink()

    async def items_changed(self, db: AsyncSession, workspace_id: int) -> None:
        """Push the full item list of *workspace_id* to the sink."""
        try:
            items = await list_items(db, workspace_id)
            payload = [ItemResponse.model_validate(item).model_dump(mode="json") for item in items]
            await self._sink.broadcast(workspace_id, payload)
        except Exception:
            workspace_logger(workspace_id).opt(exception=True).warning("Broadcast failed")
