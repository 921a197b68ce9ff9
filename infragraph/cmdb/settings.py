"""Service configuration loaded from INFRAGRAPH_* environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

from infragraph.cmdb.models.enums import ConflictPolicy


class CMDBSettings(BaseSettings):
    """CMDB service settings.

    All fields are read from environment variables with the ``INFRAGRAPH_``
    prefix.  For example, ``INFRAGRAPH_LOG_LEVEL=DEBUG`` maps to ``log_level``.
    """

    model_config = SettingsConfigDict(
        env_prefix="INFRAGRAPH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"

    log_sql_level: str = "WARNING"
    """Level of the ``sqlalchemy.engine`` logger; ``INFO`` logs every statement."""

    log_json: bool = False
    """Write log lines as JSON objects instead of the coloured text format."""

    # -- Infrastructure --------------------------------------------------------
    database_url: str | None = None
    """SQLAlchemy async URL (``postgresql+psycopg://`` or ``sqlite+aiosqlite://``)."""

    redis_url: str | None = None
    """Redis connection string.  Required for live change broadcasting."""

    broadcast_channel_prefix: str = "cmdb"
    """Pub/sub channels are named ``{prefix}:{workspace_id}``."""

    # -- Core behaviour --------------------------------------------------------
    connection_conflict_policy: ConflictPolicy = ConflictPolicy.IGNORE
    """What creating an already existing connection does.

    ``ignore`` returns the existing row (idempotent create); ``error`` raises
    ``ConflictError`` which the HTTP layer answers with 409.
    """

    clamp_reorder: bool = True
    """Clamp requested group positions into the valid range so the ordering stays dense."""

    affected_max_depth: int = 10
    """Maximum hop count followed when resolving affected items."""

    default_workspace_name: str = "Default Workspace"

    # -- Server ----------------------------------------------------------------
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 8000


def get_settings() -> CMDBSettings:
    """Return a cached settings instance.

    Reads from environment variables and ``.env`` on first call, then returns
    the same object.  Call ``_get_settings_cached.cache_clear()`` in tests to
    force a re-read after overriding env vars.
    """
    return _get_settings_cached()


def _get_settings_cached() -> CMDBSettings:
    """Inner function wrapped by lru_cache (allows type-safe cache_clear)."""
    return CMDBSettings()


# Apply lru_cache at runtime so the function is only called once.
from functools import lru_cache  # noqa: E402

_get_settings_cached = lru_cache(maxsize=1)(_get_settings_cached)
