"""App wiring, settings and schema smoke tests."""

from __future__ import annotations

import logging
import sys

import pytest
from httpx import ASGITransport, AsyncClient
from loguru import logger
from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncSession

from infragraph.cmdb.app import app
from infragraph.cmdb.log import setup_logging, workspace_logger
from infragraph.cmdb.models.enums import ConflictPolicy
from infragraph.cmdb.settings import CMDBSettings


async def test_health():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        resp = await client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


async def test_routes_answer_503_without_database():
    app.state.db_session_factory = None
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        resp = await client.get("/api/workspaces/list")
    assert resp.status_code == 503


def test_settings_defaults(monkeypatch: pytest.MonkeyPatch):
    for name in ("INFRAGRAPH_DATABASE_URL", "INFRAGRAPH_REDIS_URL", "INFRAGRAPH_CONNECTION_CONFLICT_POLICY"):
        monkeypatch.delenv(name, raising=False)
    settings = CMDBSettings(_env_file=None)
    assert settings.database_url is None
    assert settings.connection_conflict_policy == ConflictPolicy.IGNORE
    assert settings.clamp_reorder is True
    assert settings.affected_max_depth == 10
    assert settings.broadcast_channel_prefix == "cmdb"
    assert (settings.log_sql_level, settings.log_json) == ("WARNING", False)


def test_settings_from_environment(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("INFRAGRAPH_CONNECTION_CONFLICT_POLICY", "error")
    monkeypatch.setenv("INFRAGRAPH_AFFECTED_MAX_DEPTH", "3")
    settings = CMDBSettings(_env_file=None)
    assert settings.connection_conflict_policy == ConflictPolicy.ERROR
    assert settings.affected_max_depth == 3


@pytest.mark.integration
async def test_schema_has_all_tables(db_session: AsyncSession):
    conn = await db_session.connection()
    tables = await conn.run_sync(lambda sync_conn: set(inspect(sync_conn).get_table_names()))
    assert {"workspaces", "cmdb_groups", "cmdb_items", "connections", "edge_handles"} <= tables
    assert {"services", "service_groups", "service_items", "service_connections", "service_edge_handles"} <= tables


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    logger.remove()
    logger.add(sys.stderr)
    root.handlers[:] = handlers
    root.setLevel(level)


def test_log_lines_carry_workspace(restore_logging):
    setup_logging("debug", sql_level="info")
    lines: list[str] = []
    logger.add(lines.append, format="{extra[workspace]} {message}")

    workspace_logger(7).info("Item {} deleted", 3)
    logger.info("startup")
    logging.getLogger("infragraph.stdlib").warning("from stdlib")

    assert [line.strip() for line in lines] == ["7 Item 3 deleted", "- startup", "- from stdlib"]
    assert logging.getLogger("sqlalchemy.engine").level == logging.INFO
    assert logging.getLogger("uvicorn.access").level == logging.WARNING
