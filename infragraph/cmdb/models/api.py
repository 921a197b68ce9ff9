"""API request / response schemas for CRUD endpoints.

These thin schemas sit between HTTP and the ORM layer:

- **Create** schemas validate user input and provide defaults.
- **Update** schemas allow partial updates via ``exclude_unset``.
- **Response** schemas serialize ORM rows via ``from_attributes``.

Edge routing payloads keep the camelCase keys the canvas client sends
(``edgeId``, ``sourceHandle``, ``targetHandle``); snake_case is accepted too.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from infragraph.cmdb.models.enums import ConnectionShape, ItemStatus, ServiceIconType


class Position(BaseModel):
    """2-D canvas position."""

    x: float
    y: float


# ---------------------------------------------------------------------------
# Workspace
# ---------------------------------------------------------------------------


class WorkspaceCreate(BaseModel):
    name: str = Field(min_length=1)
    description: str | None = None


class WorkspaceUpdate(BaseModel):
    """Partial workspace update."""

    name: str | None = Field(default=None, min_length=1)
    description: str | None = None


class WorkspaceDuplicate(BaseModel):
    """Input for copying a workspace.  The copy is named ``"<source> (Copy)"`` if no name is given."""

    name: str | None = Field(default=None, min_length=1)


class WorkspaceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None = None
    is_default: bool
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Group
# ---------------------------------------------------------------------------


class GroupCreate(BaseModel):
    workspace_id: int | None = None
    name: str = Field(min_length=1)
    description: str | None = None
    color: str = Field(default="#e0e7ff", max_length=7)
    position: Position | None = None


class GroupUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    color: str | None = Field(default=None, max_length=7)
    position: Position | None = None


class GroupResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    workspace_id: int
    name: str
    description: str | None = None
    color: str
    position: Position | None = None
    created_at: datetime


# ---------------------------------------------------------------------------
# Item
# ---------------------------------------------------------------------------


class ItemCreate(BaseModel):
    """Input for creating an item.

    ``workspace_id`` is checked by the manager so that a missing value is
    reported as a domain ``ValidationError``.  ``order_in_group`` inserts the
    item at that position; when omitted the item is appended to its group.
    """

    workspace_id: int | None = None
    name: str = Field(min_length=1, max_length=100)
    type: str | None = None
    description: str | None = None
    status: str = ItemStatus.ACTIVE
    ip: str | None = None
    category: str | None = None
    location: str | None = None
    env_type: str | None = None
    images: list = Field(default_factory=list)
    position: Position | None = None
    storage: dict | None = None
    group_id: int | None = None
    order_in_group: int | None = None


class ItemUpdate(BaseModel):
    """Partial item update.

    A changed ``group_id`` / ``order_in_group`` goes through the ordering
    engine, so group density is preserved.
    """

    name: str | None = Field(default=None, min_length=1, max_length=100)
    type: str | None = None
    description: str | None = None
    status: str | None = None
    ip: str | None = None
    category: str | None = None
    location: str | None = None
    env_type: str | None = None
    images: list | None = None
    storage: dict | None = None
    group_id: int | None = None
    order_in_group: int | None = None


class ItemGroupUpdate(BaseModel):
    """Move an item into another group (or out of any group with ``group_id=None``)."""

    group_id: int | None = None
    order_in_group: int | None = Field(default=None, ge=0)


class ItemReorder(BaseModel):
    new_order: int = Field(ge=0)


class ItemPositionUpdate(BaseModel):
    position: Position


class ItemStatusUpdate(BaseModel):
    status: str = Field(min_length=1, max_length=30)


class ItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    workspace_id: int
    group_id: int | None = None
    order_in_group: int | None = None
    name: str
    type: str | None = None
    description: str | None = None
    status: str
    ip: str | None = None
    category: str | None = None
    location: str | None = None
    env_type: str | None = None
    images: list = Field(default_factory=list)
    position: Position | None = None
    storage: dict | None = None


class AffectedItemResponse(ItemResponse):
    """An item reachable from the queried item, with its hop distance."""

    level: int


# ---------------------------------------------------------------------------
# Connection
# ---------------------------------------------------------------------------


class ConnectionCreate(BaseModel):
    shape: ConnectionShape = ConnectionShape.ITEM_ITEM
    source_id: int
    target_id: int
    workspace_id: int | None = None


class ConnectionDelete(BaseModel):
    shape: ConnectionShape = ConnectionShape.ITEM_ITEM
    source_id: int
    target_id: int


class ConnectionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    workspace_id: int
    shape: ConnectionShape
    source_id: int | None = None
    source_group_id: int | None = None
    target_id: int | None = None
    target_group_id: int | None = None
    created_at: datetime


# ---------------------------------------------------------------------------
# Edge routing
# ---------------------------------------------------------------------------


class HandlePair(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    source_handle: str = Field(alias="sourceHandle", min_length=1, max_length=50)
    target_handle: str = Field(alias="targetHandle", min_length=1, max_length=50)


class EdgeRouteUpsert(HandlePair):
    edge_id: str = Field(alias="edgeId", min_length=1, max_length=255)
    workspace_id: int = Field(alias="workspaceId")


class EdgeRouteBulkUpsert(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    workspace_id: int = Field(alias="workspaceId")
    edge_handles: dict[str, HandlePair] = Field(alias="edgeHandles")


class EdgeRouteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    edge_id: str
    source_handle: str
    target_handle: str
    workspace_id: int
    updated_at: datetime


class EdgeRouteBulkResponse(BaseModel):
    count: int
    data: list[EdgeRouteResponse]


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class ServiceCreate(BaseModel):
    item_id: int
    name: str = Field(min_length=1, max_length=255)
    status: str = Field(default=ItemStatus.ACTIVE, max_length=30)
    icon_type: ServiceIconType = ServiceIconType.PRESET
    icon_name: str | None = Field(default=None, max_length=100)
    icon_path: str | None = Field(default=None, max_length=255)
    description: str | None = None


class ServiceUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    status: str | None = Field(default=None, max_length=30)
    description: str | None = None


class ServiceIconUpdate(BaseModel):
    """Replace a service's icon.  ``icon_path`` is kept when switching to ``upload`` without a new path."""

    icon_type: ServiceIconType
    icon_name: str | None = Field(default=None, max_length=100)
    icon_path: str | None = Field(default=None, max_length=255)


class ServiceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    item_id: int
    workspace_id: int
    name: str
    status: str
    icon_type: str
    icon_name: str | None = None
    icon_path: str | None = None
    description: str | None = None
    created_at: datetime
    updated_at: datetime


class ServiceGroupCreate(BaseModel):
    service_id: int
    name: str = Field(min_length=1)
    description: str | None = None
    color: str = Field(default="#e0e7ff", max_length=7)
    position: Position | None = None


class ServiceGroupResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    service_id: int
    workspace_id: int
    name: str
    description: str | None = None
    color: str
    position: Position | None = None
    created_at: datetime


class ServiceItemCreate(BaseModel):
    """Input for creating a service item.  Its workspace is the service's."""

    service_id: int
    name: str = Field(min_length=1, max_length=100)
    type: str | None = None
    description: str | None = None
    status: str = ItemStatus.ACTIVE
    ip: str | None = None
    category: str | None = None
    location: str | None = None
    position: Position | None = None
    group_id: int | None = None
    order_in_group: int | None = Field(default=None, ge=0)


class ServiceItemUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    type: str | None = None
    description: str | None = None
    status: str | None = None
    ip: str | None = None
    category: str | None = None
    location: str | None = None
    group_id: int | None = None
    order_in_group: int | None = None


class ServiceItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    service_id: int
    workspace_id: int
    group_id: int | None = None
    order_in_group: int | None = None
    name: str
    type: str | None = None
    description: str | None = None
    status: str
    ip: str | None = None
    category: str | None = None
    location: str | None = None
    position: Position | None = None
    created_at: datetime
    updated_at: datetime


class ServiceConnectionCreate(BaseModel):
    service_id: int
    shape: ConnectionShape = ConnectionShape.ITEM_ITEM
    source_id: int
    target_id: int


class ServiceConnectionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    service_id: int
    workspace_id: int
    shape: ConnectionShape
    source_id: int | None = None
    source_group_id: int | None = None
    target_id: int | None = None
    target_group_id: int | None = None
    created_at: datetime


class ServiceEdgeRouteUpsert(HandlePair):
    edge_id: str = Field(alias="edgeId", min_length=1, max_length=255)
    service_id: int = Field(alias="serviceId")


class ServiceEdgeRouteBulkUpsert(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    service_id: int = Field(alias="serviceId")
    edge_handles: dict[str, HandlePair] = Field(alias="edgeHandles")


class ServiceEdgeRouteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    edge_id: str
    source_handle: str
    target_handle: str
    service_id: int
    workspace_id: int
    updated_at: datetime


class ServiceEdgeRouteBulkResponse(BaseModel):
    count: int
    data: list[ServiceEdgeRouteResponse]
