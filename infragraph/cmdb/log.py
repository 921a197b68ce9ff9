"""Logging for the CMDB service.

loguru is the only sink.  Records of stdlib loggers (uvicorn, sqlalchemy,
alembic) are re-emitted through it.  Every line names the workspace it is
about, or ``-``; code working on one workspace logs through
:func:`workspace_logger`.
"""

from __future__ import annotations

import logging
import sys

from loguru import logger

_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<magenta>ws={extra[workspace]}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)

# Minimum levels of chatty third-party loggers.  SQL statements are governed
# by ``setup_logging(sql_level=...)`` instead.
_THIRD_PARTY_LEVELS = {
    "uvicorn.access": logging.WARNING,
    "aiosqlite": logging.WARNING,
    "alembic.runtime.migration": logging.INFO,
}


class _InterceptHandler(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip the logging module's own frames so the call site is reported.
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def workspace_logger(workspace_id: int | None):
    """Return a logger whose lines are tagged with *workspace_id*."""
    return logger.bind(workspace="-" if workspace_id is None else workspace_id)


def setup_logging(level: str = "INFO", *, sql_level: str = "WARNING", serialize: bool = False) -> None:
    """Install the service's loguru sink and route stdlib logging into it.

    ``serialize=True`` writes one JSON object per line for log shippers.
    Call once at process startup.
    """
    level = level.upper()

    logger.remove()
    logger.configure(extra={"workspace": "-"})
    logger.add(sys.stderr, level=level, format=_FORMAT, serialize=serialize)

    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)
    logging.getLogger("sqlalchemy.engine").setLevel(sql_level.upper())
    for name, minimum in _THIRD_PARTY_LEVELS.items():
        logging.getLogger(name).setLevel(minimum)

    logger.info("Logging initialised (level={}, sql={}, json={})", level, sql_level.upper(), serialize)
