"""Redis pub/sub change sink."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from loguru import logger

from infragraph.cmdb.models.enums import ChangeEvent
from infragraph.cmdb.notify.base import channel_name

if TYPE_CHECKING:
    import redis.asyncio as aioredis


class RedisChangeSink:
    """Publish workspace snapshots to ``{prefix}:{workspace_id}``.

    Subscribers (the SSE endpoint, other service instances) receive a JSON
    document ``{"event": "cmdb_update", "workspace_id": ..., "items": [...]}``.
    """

    def __init__(self, client: aioredis.Redis, prefix: str = "cmdb") -> None:
        self._client = client
        self._prefix = prefix

    async def broadcast(self, workspace_id: int, items: list[dict]) -> None:
        payload = json.dumps(
            {"event": ChangeEvent.CMDB_UPDATE.value, "workspace_id": workspace_id, "items": items},
            default=str,
        )
        receivers = await self._client.publish(channel_name(self._prefix, workspace_id), payload)
        logger.debug("Broadcast workspace {} ({} items) to {} subscribers", workspace_id, len(items), receivers)
