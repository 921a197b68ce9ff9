"""Change sink interface.

After a mutation commits, the full item list of the affected workspace is
pushed to a sink, which fans it out to connected clients.  Delivery is best
effort: callers log sink failures and never report them to the client that
triggered the change.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


def channel_name(prefix: str, workspace_id: int) -> str:
    """Pub/sub channel carrying the updates of one workspace."""
    return f"{prefix}:{workspace_id}"


@runtime_checkable
class ChangeSink(Protocol):
    """Async protocol for publishing workspace snapshots."""

    async def broadcast(self, workspace_id: int, items: list[dict]) -> None:
        """Publish the current items of *workspace_id*."""
        ...


class NullChangeSink:
    """Sink that drops everything.  Used when Redis is not configured."""

    async def broadcast(self, workspace_id: int, items: list[dict]) -> None:
        return None
