"""Declarative base and engine helpers shared by both storage engines."""

import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Engine, event
from sqlalchemy.orm import declarative_base

logger = logging.getLogger(__name__)

Base: Any = declarative_base()


def utc_now_iso() -> str:
    """Current UTC time as an ISO 8601 string with millisecond precision."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def enable_sqlite_pragmas(engine: Engine, *, wal: bool = True) -> None:
    """Turn on foreign keys (and WAL journaling) for every new SQLite connection."""

    @event.listens_for(engine, "connect")
    def _set_pragmas(dbapi_connection, connection_record):  # noqa: ARG001
        cursor = dbapi_connection.cursor()
        try:
            if wal:
                cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA foreign_keys=ON")
        finally:
            cursor.close()


def table_names() -> list[str]:
    """Names of every declared table, in dependency order."""
    # Import all models here so they are registered with Base.metadata
    from pantry_store import models  # noqa: F401

    return [table.name for table in Base.metadata.sorted_tables]
