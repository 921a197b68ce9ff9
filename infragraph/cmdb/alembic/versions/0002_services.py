"""services

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-20 10:30:00.000000
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "0002"
down_revision: str | None = "0001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_JSON = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _timestamp(name: str) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)


def _fk(table: str, column: str, referred: str, ondelete: str = "CASCADE") -> sa.ForeignKeyConstraint:
    return sa.ForeignKeyConstraint(
        [column],
        [f"{referred}.id"],
        name=op.f(f"fk_{table}_{column}_{referred}"),
        ondelete=ondelete,
    )


def upgrade() -> None:
    op.create_table(
        "services",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("workspace_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=30), server_default="active", nullable=False),
        sa.Column("icon_type", sa.String(length=20), server_default="preset", nullable=False),
        sa.Column("icon_name", sa.String(length=100), nullable=True),
        sa.Column("icon_path", sa.String(length=255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        _fk("services", "item_id", "cmdb_items"),
        _fk("services", "workspace_id", "workspaces"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_services")),
    )
    op.create_index("ix_services_item_id", "services", ["item_id"])
    op.create_index("ix_services_workspace_id", "services", ["workspace_id"])

    op.create_table(
        "service_groups",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("service_id", sa.Integer(), nullable=False),
        sa.Column("workspace_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("color", sa.String(length=7), server_default="#e0e7ff", nullable=False),
        sa.Column("position", _JSON, nullable=True),
        _timestamp("created_at"),
        _fk("service_groups", "service_id", "services"),
        _fk("service_groups", "workspace_id", "workspaces"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_service_groups")),
    )
    op.create_index("ix_service_groups_service_id", "service_groups", ["service_id"])

    op.create_table(
        "service_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("service_id", sa.Integer(), nullable=False),
        sa.Column("workspace_id", sa.Integer(), nullable=False),
        sa.Column("group_id", sa.Integer(), nullable=True),
        sa.Column("order_in_group", sa.Integer(), nullable=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("type", sa.String(length=50), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=30), server_default="active", nullable=False),
        sa.Column("ip", sa.String(length=45), nullable=True),
        sa.Column("category", sa.String(length=12), nullable=True),
        sa.Column("location", sa.String(length=50), nullable=True),
        sa.Column("position", _JSON, nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        _fk("service_items", "group_id", "service_groups", ondelete="SET NULL"),
        _fk("service_items", "service_id", "services"),
        _fk("service_items", "workspace_id", "workspaces"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_service_items")),
    )
    op.create_index("ix_service_items_service_id", "service_items", ["service_id"])
    op.create_index("ix_service_items_group_order", "service_items", ["group_id", "order_in_group"])

    op.create_table(
        "service_connections",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("service_id", sa.Integer(), nullable=False),
        sa.Column("workspace_id", sa.Integer(), nullable=False),
        sa.Column("source_id", sa.Integer(), nullable=True),
        sa.Column("source_group_id", sa.Integer(), nullable=True),
        sa.Column("target_id", sa.Integer(), nullable=True),
        sa.Column("target_group_id", sa.Integer(), nullable=True),
        _timestamp("created_at"),
        sa.CheckConstraint(
            "(source_id IS NOT NULL AND source_group_id IS NULL)"
            " OR (source_id IS NULL AND source_group_id IS NOT NULL)",
            name=op.f("ck_service_connections_source_exclusive"),
        ),
        sa.CheckConstraint(
            "(target_id IS NOT NULL AND target_group_id IS NULL)"
            " OR (target_id IS NULL AND target_group_id IS NOT NULL)",
            name=op.f("ck_service_connections_target_exclusive"),
        ),
        _fk("service_connections", "service_id", "services"),
        _fk("service_connections", "workspace_id", "workspaces"),
        _fk("service_connections", "source_id", "service_items"),
        _fk("service_connections", "source_group_id", "service_groups"),
        _fk("service_connections", "target_id", "service_items"),
        _fk("service_connections", "target_group_id", "service_groups"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_service_connections")),
        sa.UniqueConstraint("source_id", "target_id", name=op.f("uq_service_connections_source_id_target_id")),
        sa.UniqueConstraint(
            "source_id", "target_group_id", name=op.f("uq_service_connections_source_id_target_group_id")
        ),
        sa.UniqueConstraint(
            "source_group_id", "target_id", name=op.f("uq_service_connections_source_group_id_target_id")
        ),
        sa.UniqueConstraint(
            "source_group_id",
            "target_group_id",
            name=op.f("uq_service_connections_source_group_id_target_group_id"),
        ),
    )
    for column in ("service_id", "source_id", "target_id", "source_group_id", "target_group_id"):
        op.create_index(f"ix_service_connections_{column}", "service_connections", [column])

    op.create_table(
        "service_edge_handles",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("edge_id", sa.String(length=255), nullable=False),
        sa.Column("kind", sa.String(length=16), nullable=False),
        sa.Column("source_ref", sa.Integer(), nullable=False),
        sa.Column("target_ref", sa.Integer(), nullable=False),
        sa.Column("source_handle", sa.String(length=50), nullable=False),
        sa.Column("target_handle", sa.String(length=50), nullable=False),
        sa.Column("service_id", sa.Integer(), nullable=False),
        sa.Column("workspace_id", sa.Integer(), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        _fk("service_edge_handles", "service_id", "services"),
        _fk("service_edge_handles", "workspace_id", "workspaces"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_service_edge_handles")),
        sa.UniqueConstraint("edge_id", name=op.f("uq_service_edge_handles_edge_id")),
    )
    op.create_index("ix_service_edge_handles_service_id", "service_edge_handles", ["service_id"])


def downgrade() -> None:
    op.drop_index("ix_service_edge_handles_service_id", table_name="service_edge_handles")
    op.drop_table("service_edge_handles")
    for column in ("target_group_id", "source_group_id", "target_id", "source_id", "service_id"):
        op.drop_index(f"ix_service_connections_{column}", table_name="service_connections")
    op.drop_table("service_connections")
    op.drop_index("ix_service_items_group_order", table_name="service_items")
    op.drop_index("ix_service_items_service_id", table_name="service_items")
    op.drop_table("service_items")
    op.drop_index("ix_service_groups_service_id", table_name="service_groups")
    op.drop_table("service_groups")
    op.drop_index("ix_services_workspace_id", table_name="services")
    op.drop_index("ix_services_item_id", table_name="services")
    op.drop_table("services")
