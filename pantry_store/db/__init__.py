"""Storage engine selection and the process-wide store handle."""

import logging

from pantry_store.config import Settings, get_settings
from pantry_store.db.adapter import ExecuteResult, PantryStore, Transaction
from pantry_store.db.postgres import PostgresStore
from pantry_store.db.sqlite import SQLiteStore
from pantry_store.errors import StoreNotInitializedError

logger = logging.getLogger(__name__)

_store: PantryStore | None = None


def create_store(settings: Settings | None = None) -> PantryStore:
    """Build the engine named by ``db_type`` without opening it."""
    settings = settings or get_settings()

    if settings.db_type == "postgres":
        return PostgresStore(
            settings.database_url,
            pool_size=settings.db_pool_size,
            pool_recycle=settings.db_pool_recycle,
            connect_timeout=settings.db_connect_timeout,
            echo=settings.echo_sql,
            legacy_user_id=settings.legacy_user_id,
        )

    return SQLiteStore(
        settings.db_path,
        echo=settings.echo_sql,
        legacy_user_id=settings.legacy_user_id,
    )


async def init_store(settings: Settings | None = None) -> PantryStore:
    """Open the process store once; later calls return the same handle."""
    global _store

    if _store is not None:
        return _store

    store = create_store(settings)
    logger.info(f"[DB] Initializing {store.engine_name} store")
    await store.initialize()
    _store = store
    return store


def current_store() -> PantryStore:
    """The open process store."""
    if _store is None:
        raise StoreNotInitializedError()
    return _store


async def close_store() -> None:
    """Close the process store so a later ``init_store`` starts fresh."""
    global _store

    if _store is None:
        return

    store, _store = _store, None
    await store.close()


__all__ = [
    "ExecuteResult",
    "PantryStore",
    "PostgresStore",
    "SQLiteStore",
    "Transaction",
    "close_store",
    "create_store",
    "current_store",
    "init_store",
]
