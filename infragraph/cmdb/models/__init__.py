"""Data models for the CMDB service."""

from infragraph.cmdb.models.api import (
    AffectedItemResponse,
    ConnectionCreate,
    ConnectionDelete,
    ConnectionResponse,
    EdgeRouteBulkResponse,
    EdgeRouteBulkUpsert,
    EdgeRouteResponse,
    EdgeRouteUpsert,
    GroupCreate,
    GroupResponse,
    GroupUpdate,
    HandlePair,
    ItemCreate,
    ItemGroupUpdate,
    ItemPositionUpdate,
    ItemReorder,
    ItemResponse,
    ItemStatusUpdate,
    ItemUpdate,
    Position,
    WorkspaceCreate,
    WorkspaceDuplicate,
    WorkspaceResponse,
    WorkspaceUpdate,
)
from infragraph.cmdb.models.enums import ChangeEvent, ConflictPolicy, ConnectionShape, ItemStatus

__all__ = [
    "AffectedItemResponse",
    # Enums
    "ChangeEvent",
    "ConflictPolicy",
    # Connections
    "ConnectionCreate",
    "ConnectionDelete",
    "ConnectionResponse",
    "ConnectionShape",
    # Edge routing
    "EdgeRouteBulkResponse",
    "EdgeRouteBulkUpsert",
    "EdgeRouteResponse",
    "EdgeRouteUpsert",
    # Groups
    "GroupCreate",
    "GroupResponse",
    "GroupUpdate",
    "HandlePair",
    # Items
    "ItemCreate",
    "ItemGroupUpdate",
    "ItemPositionUpdate",
    "ItemReorder",
    "ItemResponse",
    "ItemStatus",
    "ItemStatusUpdate",
    "ItemUpdate",
    "Position",
    # Workspaces
    "WorkspaceCreate",
    "WorkspaceDuplicate",
    "WorkspaceResponse",
    "WorkspaceUpdate",
]
