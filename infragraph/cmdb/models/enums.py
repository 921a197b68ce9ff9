"""Shared enumerations used across the CMDB service."""

from __future__ import annotations

from enum import StrEnum

# -- Connections -------------------------------------------------------------


class ConnectionShape(StrEnum):
    """Endpoint kinds of a directed edge, written ``{source}-{target}``."""

    ITEM_ITEM = "item-item"
    ITEM_GROUP = "item-group"
    GROUP_ITEM = "group-item"
    GROUP_GROUP = "group-group"

    @property
    def source_is_group(self) -> bool:
        return self.value.startswith("group")

    @property
    def target_is_group(self) -> bool:
        return self.value.endswith("group")


class ConflictPolicy(StrEnum):
    """What creating an already existing connection does."""

    IGNORE = "ignore"
    ERROR = "error"


# -- Items -------------------------------------------------------------------


class ItemStatus(StrEnum):
    """Well-known item statuses.  The column accepts any short string."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    MAINTENANCE = "maintenance"
    DOWN = "down"


# -- Broadcast ---------------------------------------------------------------


class ChangeEvent(StrEnum):
    CMDB_UPDATE = "cmdb_update"


# -- Services ----------------------------------------------------------------


class ServiceIconType(StrEnum):
    """Where a service's icon comes from."""

    PRESET = "preset"
    UPLOAD = "upload"
