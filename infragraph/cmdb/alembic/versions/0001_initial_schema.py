"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_JSON = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    op.create_table(
        "workspaces",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_default", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_workspaces")),
    )

    op.create_table(
        "cmdb_groups",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("workspace_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("color", sa.String(length=7), server_default="#e0e7ff", nullable=False),
        sa.Column("position", _JSON, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(
            ["workspace_id"],
            ["workspaces.id"],
            name=op.f("fk_cmdb_groups_workspace_id_workspaces"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_cmdb_groups")),
    )
    op.create_index("ix_cmdb_groups_workspace_id", "cmdb_groups", ["workspace_id"])

    op.create_table(
        "cmdb_items",
        sa.Column("id", sa.Integer(), nullable=False),
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
        sa.Column("env_type", sa.String(length=12), nullable=True),
        sa.Column("images", _JSON, server_default="[]", nullable=False),
        sa.Column("position", _JSON, nullable=True),
        sa.Column("storage", _JSON, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(
            ["group_id"],
            ["cmdb_groups.id"],
            name=op.f("fk_cmdb_items_group_id_cmdb_groups"),
            ondelete="SET NULL",
        ),
        sa.ForeignKeyConstraint(
            ["workspace_id"],
            ["workspaces.id"],
            name=op.f("fk_cmdb_items_workspace_id_workspaces"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_cmdb_items")),
    )
    op.create_index("ix_cmdb_items_workspace_id", "cmdb_items", ["workspace_id"])
    op.create_index("ix_cmdb_items_group_order", "cmdb_items", ["group_id", "order_in_group"])

    op.create_table(
        "connections",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("workspace_id", sa.Integer(), nullable=False),
        sa.Column("source_id", sa.Integer(), nullable=True),
        sa.Column("source_group_id", sa.Integer(), nullable=True),
        sa.Column("target_id", sa.Integer(), nullable=True),
        sa.Column("target_group_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(
            "(source_id IS NOT NULL AND source_group_id IS NULL)"
            " OR (source_id IS NULL AND source_group_id IS NOT NULL)",
            name=op.f("ck_connections_source_exclusive"),
        ),
        sa.CheckConstraint(
            "(target_id IS NOT NULL AND target_group_id IS NULL)"
            " OR (target_id IS NULL AND target_group_id IS NOT NULL)",
            name=op.f("ck_connections_target_exclusive"),
        ),
        sa.ForeignKeyConstraint(
            ["source_group_id"],
            ["cmdb_groups.id"],
            name=op.f("fk_connections_source_group_id_cmdb_groups"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["source_id"],
            ["cmdb_items.id"],
            name=op.f("fk_connections_source_id_cmdb_items"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["target_group_id"],
            ["cmdb_groups.id"],
            name=op.f("fk_connections_target_group_id_cmdb_groups"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["target_id"],
            ["cmdb_items.id"],
            name=op.f("fk_connections_target_id_cmdb_items"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["workspace_id"],
            ["workspaces.id"],
            name=op.f("fk_connections_workspace_id_workspaces"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_connections")),
        sa.UniqueConstraint("source_id", "target_id", name=op.f("uq_connections_source_id_target_id")),
        sa.UniqueConstraint("source_id", "target_group_id", name=op.f("uq_connections_source_id_target_group_id")),
        sa.UniqueConstraint("source_group_id", "target_id", name=op.f("uq_connections_source_group_id_target_id")),
        sa.UniqueConstraint(
            "source_group_id",
            "target_group_id",
            name=op.f("uq_connections_source_group_id_target_group_id"),
        ),
    )
    op.create_index("ix_connections_workspace_id", "connections", ["workspace_id"])
    op.create_index("ix_connections_source_id", "connections", ["source_id"])
    op.create_index("ix_connections_target_id", "connections", ["target_id"])
    op.create_index("ix_connections_source_group_id", "connections", ["source_group_id"])
    op.create_index("ix_connections_target_group_id", "connections", ["target_group_id"])

    op.create_table(
        "edge_handles",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("edge_id", sa.String(length=255), nullable=False),
        sa.Column("kind", sa.String(length=16), nullable=False),
        sa.Column("source_ref", sa.Integer(), nullable=False),
        sa.Column("target_ref", sa.Integer(), nullable=False),
        sa.Column("source_handle", sa.String(length=50), nullable=False),
        sa.Column("target_handle", sa.String(length=50), nullable=False),
        sa.Column("workspace_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(
            ["workspace_id"],
            ["workspaces.id"],
            name=op.f("fk_edge_handles_workspace_id_workspaces"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_edge_handles")),
        sa.UniqueConstraint("edge_id", name=op.f("uq_edge_handles_edge_id")),
    )
    op.create_index("ix_edge_handles_workspace_id", "edge_handles", ["workspace_id"])


def downgrade() -> None:
    op.drop_index("ix_edge_handles_workspace_id", table_name="edge_handles")
    op.drop_table("edge_handles")
    for column in ("target_group_id", "source_group_id", "target_id", "source_id", "workspace_id"):
        op.drop_index(f"ix_connections_{column}", table_name="connections")
    op.drop_table("connections")
    op.drop_index("ix_cmdb_items_group_order", table_name="cmdb_items")
    op.drop_index("ix_cmdb_items_workspace_id", table_name="cmdb_items")
    op.drop_table("cmdb_items")
    op.drop_index("ix_cmdb_groups_workspace_id", table_name="cmdb_groups")
    op.drop_table("cmdb_groups")
    op.drop_table("workspaces")
