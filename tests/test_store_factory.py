"""Store selection and process handle tests."""

import pytest
import pytest_asyncio

from pantry_store.config import Settings
from pantry_store.db import (
    PostgresStore,
    SQLiteStore,
    close_store,
    create_store,
    current_store,
    init_store,
)
from pantry_store.errors import StoreNotInitializedError


@pytest.fixture
def settings(tmp_path):
    return Settings(db_type="sqlite", db_path=str(tmp_path / "data" / "pantry.db"), db_echo=False)


@pytest_asyncio.fixture
async def reset_store():
    yield
    await close_store()


def test_create_store_sqlite(settings):
    store = create_store(settings)
    assert isinstance(store, SQLiteStore)
    assert store.engine_name == "sqlite"
    assert not store.is_initialized


def test_create_store_postgres():
    settings = Settings(
        db_type="postgres",
        database_url="postgresql+asyncpg://pantry:secret@db:5432/pantry",
        db_pool_size=7,
        db_pool_recycle=45,
    )
    store = create_store(settings)
    assert isinstance(store, PostgresStore)
    assert store.engine_name == "postgres"
    assert store.database_url == "postgresql+asyncpg://pantry:secret@db:5432/pantry"
    assert store.pool_recycle == 45
    assert not store.is_initialized


def test_production_rejects_localhost_database():
    with pytest.raises(ValueError, match="localhost"):
        Settings(db_type="postgres", environment="production")


def test_sql_echo_defaults_to_development():
    assert Settings(environment="development").echo_sql is True
    assert Settings(environment="production").echo_sql is False
    assert Settings(environment="development", db_echo=False).echo_sql is False


@pytest.mark.asyncio
async def test_init_store_returns_cached_handle(settings, tmp_path, reset_store):
    """Test a second init returns the same open store."""
    first = await init_store(settings)
    second = await init_store(settings)

    assert first is second
    assert current_store() is first
    assert first.is_initialized
    assert (tmp_path / "data" / "pantry.db").exists()


@pytest.mark.asyncio
async def test_close_store_allows_reinit(settings, reset_store):
    """Test closing clears the handle so the next init opens a fresh store."""
    first = await init_store(settings)
    await close_store()

    assert not first.is_initialized
    with pytest.raises(StoreNotInitializedError):
        current_store()

    second = await init_store(settings)
    assert second is not first
    assert second.is_initialized


@pytest.mark.asyncio
async def test_close_store_without_init():
    await close_store()
    with pytest.raises(StoreNotInitializedError):
        current_store()


@pytest.mark.asyncio
async def test_uninitialized_store_raises(tmp_path):
    store = SQLiteStore(str(tmp_path / "pantry.db"))
    with pytest.raises(StoreNotInitializedError, match="Database not initialized"):
        await store.get_item_by_id("user-1", "item-1")


@pytest.mark.asyncio
async def test_in_memory_store(user_id):
    store = SQLiteStore(":memory:")
    await store.initialize()
    try:
        assert await store.get_all_items(user_id) == []
    finally:
        await store.close()
