"""Change-notification sinks for live workspace updates."""

from infragraph.cmdb.notify.base import ChangeSink, NullChangeSink, channel_name
from infragraph.cmdb.notify.redis import RedisChangeSink

__all__ = ["ChangeSink", "NullChangeSink", "RedisChangeSink", "channel_name"]
