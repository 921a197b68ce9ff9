"""SQLAlchemy ORM models.

These are the single source of truth for the database schema. Alembic reads
``Base.metadata`` to autogenerate migration scripts.

Uses SQLAlchemy 2.0 declarative style with ``Mapped`` type annotations.
JSON columns are JSONB on PostgreSQL and plain JSON everywhere else so the
same models back the SQLite test database.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    false,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from infragraph.cmdb.edges import EdgeRef
from infragraph.cmdb.models.enums import ConnectionShape

# Timezone-aware timestamp type for all datetime columns.
TimestampTZ = DateTime(timezone=True)

JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Declarative base with naming convention for constraints."""

    pass


# Apply naming convention to the metadata for deterministic constraint names.
Base.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_N_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Workspace(Base):
    __tablename__ = "workspaces"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text)
    is_default: Mapped[bool] = mapped_column(default=False, server_default=false())
    created_at: Mapped[datetime] = mapped_column(TimestampTZ, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(TimestampTZ, server_default=func.now(), onupdate=func.now())


class Group(Base):
    __tablename__ = "cmdb_groups"
    __table_args__ = (Index("ix_cmdb_groups_workspace_id", "workspace_id"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    workspace_id: Mapped[int] = mapped_column(ForeignKey("workspaces.id", ondelete="CASCADE"))
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text)
    color: Mapped[str] = mapped_column(String(7), default="#e0e7ff", server_default="#e0e7ff")
    position: Mapped[dict | None] = mapped_column(JSONType)
    created_at: Mapped[datetime] = mapped_column(TimestampTZ, server_default=func.now())


class Item(Base):
    __tablename__ = "cmdb_items"
    __table_args__ = (
        Index("ix_cmdb_items_workspace_id", "workspace_id"),
        Index("ix_cmdb_items_group_order", "group_id", "order_in_group"),
    )

    # Columns delimiting one in-group ordering (see managers.ordering).
    order_scope = ("workspace_id",)

    id: Mapped[int] = mapped_column(primary_key=True)
    workspace_id: Mapped[int] = mapped_column(ForeignKey("workspaces.id", ondelete="CASCADE"))
    group_id: Mapped[int | None] = mapped_column(ForeignKey("cmdb_groups.id", ondelete="SET NULL"))
    order_in_group: Mapped[int | None]
    name: Mapped[str] = mapped_column(String(100))
    type: Mapped[str | None] = mapped_column(String(50))
    description: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(30), default="active", server_default="active")
    ip: Mapped[str | None] = mapped_column(String(45))
    category: Mapped[str | None] = mapped_column(String(12))
    location: Mapped[str | None] = mapped_column(String(50))
    env_type: Mapped[str | None] = mapped_column(String(12))
    images: Mapped[list] = mapped_column(JSONType, nullable=False, default=list, server_default="[]")
    position: Mapped[dict | None] = mapped_column(JSONType)
    storage: Mapped[dict | None] = mapped_column(JSONType)
    created_at: Mapped[datetime] = mapped_column(TimestampTZ, server_default=func.now())


def _endpoint_checks() -> tuple[CheckConstraint, CheckConstraint]:
    return (
        CheckConstraint(
            "(source_id IS NOT NULL AND source_group_id IS NULL)"
            " OR (source_id IS NULL AND source_group_id IS NOT NULL)",
            name="source_exclusive",
        ),
        CheckConstraint(
            "(target_id IS NOT NULL AND target_group_id IS NULL)"
            " OR (target_id IS NULL AND target_group_id IS NOT NULL)",
            name="target_exclusive",
        ),
    )


class _EdgeEndpoints:
    """Shape and routing reference of a row with item XOR group endpoint columns."""

    @property
    def shape(self) -> ConnectionShape:
        source = "group" if self.source_group_id is not None else "item"
        target = "group" if self.target_group_id is not None else "item"
        return ConnectionShape(f"{source}-{target}")

    @property
    def ref(self) -> EdgeRef:
        """The routing reference that identifies this edge."""
        source = self.source_group_id if self.source_id is None else self.source_id
        target = self.target_group_id if self.target_id is None else self.target_id
        return EdgeRef(self.shape, source, target)


class Connection(_EdgeEndpoints, Base):
    """Directed edge between two endpoints, each an item XOR a group."""

    __tablename__ = "connections"
    __table_args__ = (
        *_endpoint_checks(),
        # NULLs never collide, so each constraint only binds rows of one shape.
        UniqueConstraint("source_id", "target_id"),
        UniqueConstraint("source_id", "target_group_id"),
        UniqueConstraint("source_group_id", "target_id"),
        UniqueConstraint("source_group_id", "target_group_id"),
        Index("ix_connections_workspace_id", "workspace_id"),
        Index("ix_connections_source_id", "source_id"),
        Index("ix_connections_target_id", "target_id"),
        Index("ix_connections_source_group_id", "source_group_id"),
        Index("ix_connections_target_group_id", "target_group_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    workspace_id: Mapped[int] = mapped_column(ForeignKey("workspaces.id", ondelete="CASCADE"))
    source_id: Mapped[int | None] = mapped_column(ForeignKey("cmdb_items.id", ondelete="CASCADE"))
    source_group_id: Mapped[int | None] = mapped_column(ForeignKey("cmdb_groups.id", ondelete="CASCADE"))
    target_id: Mapped[int | None] = mapped_column(ForeignKey("cmdb_items.id", ondelete="CASCADE"))
    target_group_id: Mapped[int | None] = mapped_column(ForeignKey("cmdb_groups.id", ondelete="CASCADE"))
    created_at: Mapped[datetime] = mapped_column(TimestampTZ, server_default=func.now())


class EdgeRoute(Base):
    """Which handle each end of a drawn edge attaches to.

    ``edge_id`` is the serialised :class:`EdgeRef`; ``kind`` / ``source_ref`` /
    ``target_ref`` hold the same reference in structured form so cascades and
    workspace cloning never have to parse strings.
    """

    __tablename__ = "edge_handles"
    __table_args__ = (Index("ix_edge_handles_workspace_id", "workspace_id"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    edge_id: Mapped[str] = mapped_column(String(255), unique=True)
    kind: Mapped[str] = mapped_column(String(16))
    source_ref: Mapped[int]
    target_ref: Mapped[int]
    source_handle: Mapped[str] = mapped_column(String(50))
    target_handle: Mapped[str] = mapped_column(String(50))
    workspace_id: Mapped[int] = mapped_column(ForeignKey("workspaces.id", ondelete="CASCADE"))
    created_at: Mapped[datetime] = mapped_column(TimestampTZ, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(TimestampTZ, server_default=func.now(), onupdate=func.now())

    @property
    def ref(self) -> EdgeRef:
        return EdgeRef(ConnectionShape(self.kind), self.source_ref, self.target_ref)


# ---------------------------------------------------------------------------
# Services: a per-item diagram with its own groups, items, edges and routing.
# ---------------------------------------------------------------------------


class Service(Base):
    """A service running on a CMDB item."""

    __tablename__ = "services"
    __table_args__ = (
        Index("ix_services_item_id", "item_id"),
        Index("ix_services_workspace_id", "workspace_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    item_id: Mapped[int] = mapped_column(ForeignKey("cmdb_items.id", ondelete="CASCADE"))
    workspace_id: Mapped[int] = mapped_column(ForeignKey("workspaces.id", ondelete="CASCADE"))
    name: Mapped[str] = mapped_column(String(255))
    status: Mapped[str] = mapped_column(String(30), default="active", server_default="active")
    icon_type: Mapped[str] = mapped_column(String(20), default="preset", server_default="preset")
    icon_name: Mapped[str | None] = mapped_column(String(100))
    icon_path: Mapped[str | None] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(TimestampTZ, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(TimestampTZ, server_default=func.now(), onupdate=func.now())


class ServiceGroup(Base):
    __tablename__ = "service_groups"
    __table_args__ = (Index("ix_service_groups_service_id", "service_id"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    service_id: Mapped[int] = mapped_column(ForeignKey("services.id", ondelete="CASCADE"))
    workspace_id: Mapped[int] = mapped_column(ForeignKey("workspaces.id", ondelete="CASCADE"))
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text)
    color: Mapped[str] = mapped_column(String(7), default="#e0e7ff", server_default="#e0e7ff")
    position: Mapped[dict | None] = mapped_column(JSONType)
    created_at: Mapped[datetime] = mapped_column(TimestampTZ, server_default=func.now())


class ServiceItem(Base):
    __tablename__ = "service_items"
    __table_args__ = (
        Index("ix_service_items_service_id", "service_id"),
        Index("ix_service_items_group_order", "group_id", "order_in_group"),
    )

    order_scope = ("workspace_id", "service_id")

    id: Mapped[int] = mapped_column(primary_key=True)
    service_id: Mapped[int] = mapped_column(ForeignKey("services.id", ondelete="CASCADE"))
    workspace_id: Mapped[int] = mapped_column(ForeignKey("workspaces.id", ondelete="CASCADE"))
    group_id: Mapped[int | None] = mapped_column(ForeignKey("service_groups.id", ondelete="SET NULL"))
    order_in_group: Mapped[int | None]
    name: Mapped[str] = mapped_column(String(100))
    type: Mapped[str | None] = mapped_column(String(50))
    description: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(30), default="active", server_default="active")
    ip: Mapped[str | None] = mapped_column(String(45))
    category: Mapped[str | None] = mapped_column(String(12))
    location: Mapped[str | None] = mapped_column(String(50))
    position: Mapped[dict | None] = mapped_column(JSONType)
    created_at: Mapped[datetime] = mapped_column(TimestampTZ, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(TimestampTZ, server_default=func.now(), onupdate=func.now())


class ServiceConnection(_EdgeEndpoints, Base):
    """Directed edge inside one service diagram.  Same shapes as :class:`Connection`."""

    __tablename__ = "service_connections"
    __table_args__ = (
        *_endpoint_checks(),
        UniqueConstraint("source_id", "target_id"),
        UniqueConstraint("source_id", "target_group_id"),
        UniqueConstraint("source_group_id", "target_id"),
        UniqueConstraint("source_group_id", "target_group_id"),
        Index("ix_service_connections_service_id", "service_id"),
        Index("ix_service_connections_source_id", "source_id"),
        Index("ix_service_connections_target_id", "target_id"),
        Index("ix_service_connections_source_group_id", "source_group_id"),
        Index("ix_service_connections_target_group_id", "target_group_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    service_id: Mapped[int] = mapped_column(ForeignKey("services.id", ondelete="CASCADE"))
    workspace_id: Mapped[int] = mapped_column(ForeignKey("workspaces.id", ondelete="CASCADE"))
    source_id: Mapped[int | None] = mapped_column(ForeignKey("service_items.id", ondelete="CASCADE"))
    source_group_id: Mapped[int | None] = mapped_column(ForeignKey("service_groups.id", ondelete="CASCADE"))
    target_id: Mapped[int | None] = mapped_column(ForeignKey("service_items.id", ondelete="CASCADE"))
    target_group_id: Mapped[int | None] = mapped_column(ForeignKey("service_groups.id", ondelete="CASCADE"))
    created_at: Mapped[datetime] = mapped_column(TimestampTZ, server_default=func.now())


class ServiceEdgeRoute(Base):
    """Edge handles of a service diagram, keyed like :class:`EdgeRoute`."""

    __tablename__ = "service_edge_handles"
    __table_args__ = (Index("ix_service_edge_handles_service_id", "service_id"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    edge_id: Mapped[str] = mapped_column(String(255), unique=True)
    kind: Mapped[str] = mapped_column(String(16))
    source_ref: Mapped[int]
    target_ref: Mapped[int]
    source_handle: Mapped[str] = mapped_column(String(50))
    target_handle: Mapped[str] = mapped_column(String(50))
    service_id: Mapped[int] = mapped_column(ForeignKey("services.id", ondelete="CASCADE"))
    workspace_id: Mapped[int] = mapped_column(ForeignKey("workspaces.id", ondelete="CASCADE"))
    created_at: Mapped[datetime] = mapped_column(TimestampTZ, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(TimestampTZ, server_default=func.now(), onupdate=func.now())

    @property
    def ref(self) -> EdgeRef:
        return EdgeRef(ConnectionShape(self.kind), self.source_ref, self.target_ref)
