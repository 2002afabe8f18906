"""Pytest configuration and fixtures."""

import os

import pytest
import pytest_asyncio

from pantry_store.db import PostgresStore, SQLiteStore
from pantry_store.schemas.pantry import PantryItemCreate
from pantry_store.services.subscription import SubscriptionService

# Pooled engine: PostgreSQL when TEST_DATABASE_URL is set, aiosqlite otherwise
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")

# Child tables first so foreign keys never block the cleanup
CLEANUP_TABLES = [
    "activities",
    "pantry_items",
    "usage_limits",
    "user_subscriptions",
    "product_cache",
    "client_errors",
]


def build_store(engine: str, tmp_path):
    """Create an uninitialized store of the given engine kind."""
    if engine == "sqlite":
        return SQLiteStore(str(tmp_path / "pantry.db"))

    url = TEST_DATABASE_URL or f"sqlite+aiosqlite:///{tmp_path / 'pooled.db'}"
    return PostgresStore(url, pool_size=5)


@pytest_asyncio.fixture(params=["sqlite", "pooled"])
async def store(request, tmp_path):
    """An initialized store, once per engine."""
    store = build_store(request.param, tmp_path)
    await store.initialize()

    yield store

    # PostgreSQL outlives the test, so clean up all data after it
    if request.param == "pooled" and TEST_DATABASE_URL:
        for table in CLEANUP_TABLES:
            await store.execute(f"DELETE FROM {table}")
    await store.close()


@pytest.fixture
def subscriptions(store):
    return SubscriptionService(store)


@pytest.fixture
def user_id():
    return "user-1"


@pytest.fixture
def other_user_id():
    return "user-2"


@pytest.fixture
def make_item(store, user_id):
    """Factory that creates a pantry item for the default tenant."""

    async def _make_item(
        name: str = "Apple",
        quantity: float = 5,
        unit: str = "pieces",
        category: str = "produce",
        barcode: str | None = None,
        owner: str | None = None,
    ):
        data = PantryItemCreate(
            name=name, quantity=quantity, unit=unit, category=category, barcode=barcode
        )
        return await store.create_item(owner or user_id, data)

    return _make_item
