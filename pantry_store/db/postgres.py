"""PostgreSQL pantry store.

Async SQLAlchemy engine over asyncpg with a bounded connection pool. Each
multi-statement operation checks out one connection, runs BEGIN ... COMMIT on
it and rolls back if anything raises. The engine also accepts a
``sqlite+aiosqlite`` URL, which local development and the test suite use.
"""

import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any, TypeVar
from uuid import uuid4

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.pool import AsyncAdaptedQueuePool

from pantry_store.database import enable_sqlite_pragmas, utc_now_iso
from pantry_store.db import statements
from pantry_store.db.adapter import ExecuteResult, PantryStore, Params, Transaction
from pantry_store.db.mappers import (
    map_activity_row,
    map_client_error_row,
    map_pantry_item_row,
    map_product_row,
)
from pantry_store.db.migrate import run_migrations_async
from pantry_store.errors import StoreNotInitializedError
from pantry_store.schemas.activity import Activity, ActivitySource, ActivityType
from pantry_store.schemas.client_error import ClientError, ClientErrorCreate
from pantry_store.schemas.pantry import PantryItem, PantryItemCreate, PantryItemUpdate
from pantry_store.schemas.product import ProductCacheInput, ProductInfo

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def _fetch_item(conn: AsyncConnection, user_id: str, item_id: str) -> PantryItem | None:
    result = await conn.execute(statements.select_item_by_id(user_id, item_id))
    row = result.mappings().first()
    return map_pantry_item_row(row) if row else None


async def _query(conn: AsyncConnection, sql: str, params: Params) -> list[dict[str, Any]]:
    result = await conn.execute(text(sql), dict(params or {}))
    return [dict(row) for row in result.mappings()]


async def _execute(conn: AsyncConnection, sql: str, params: Params) -> ExecuteResult:
    result = await conn.execute(text(sql), dict(params or {}))
    return ExecuteResult(changes=result.rowcount)


class _ConnectionTransaction:
    """Transaction runner over one checked-out pool connection."""

    def __init__(self, conn: AsyncConnection):
        self._conn = conn

    async def query(self, sql: str, params: Params = None) -> list[dict[str, Any]]:
        return await _query(self._conn, sql, params)

    async def execute(self, sql: str, params: Params = None) -> ExecuteResult:
        return await _execute(self._conn, sql, params)


class PostgresStore(PantryStore):
    """Pooled, asynchronous pantry store."""

    engine_name = "postgres"

    def __init__(
        self,
        database_url: str,
        *,
        pool_size: int = 20,
        pool_recycle: int = 30,
        connect_timeout: float = 2.0,
        echo: bool = False,
        legacy_user_id: str = "legacy-user",
    ):
        self.database_url = database_url
        self._pool_size = pool_size
        self.pool_recycle = pool_recycle
        self._connect_timeout = connect_timeout
        self._echo = echo
        self._legacy_user_id = legacy_user_id
        self._engine: AsyncEngine | None = None

    async def initialize(self) -> None:
        if self._engine is not None:
            logger.warning("[DB] PostgreSQL store already initialized; ignoring initialize()")
            return

        engine = create_async_engine(
            self.database_url,
            poolclass=AsyncAdaptedQueuePool,
            pool_size=self._pool_size,
            max_overflow=0,
            pool_recycle=self.pool_recycle,
            pool_timeout=self._connect_timeout,
            pool_pre_ping=True,
            connect_args={"timeout": self._connect_timeout},
            echo=self._echo,
        )
        if engine.dialect.name == "sqlite":
            enable_sqlite_pragmas(engine.sync_engine)

        try:
            await run_migrations_async(engine, legacy_user_id=self._legacy_user_id)
        except Exception:
            await engine.dispose()
            raise

        self._engine = engine
        logger.info(f"[DB] PostgreSQL store initialized (pool_size={self._pool_size})")

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            logger.info("[DB] PostgreSQL store closed")

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None

    @property
    def dialect_name(self) -> str:
        return self._get_engine().dialect.name

    def _get_engine(self) -> AsyncEngine:
        if self._engine is None:
            raise StoreNotInitializedError()
        return self._engine

    @asynccontextmanager
    async def _begin(self) -> AsyncIterator[AsyncConnection]:
        """Check out a connection and hold one transaction on it."""
        async with self._get_engine().connect() as conn:
            trans = await conn.begin()
            try:
                yield conn
            except Exception as e:
                logger.error(f"[DB] Transaction rolled back: {e}")
                await trans.rollback()
                raise
            await trans.commit()

    # ------------------------------------------------------------------
    # Pantry items
    # ------------------------------------------------------------------

    async def get_all_items(self, user_id: str, category: str | None = None) -> list[PantryItem]:
        async with self._get_engine().connect() as conn:
            result = await conn.execute(
                statements.select_items(user_id, category, self.dialect_name)
            )
            rows = result.mappings().all()

        logger.debug(
            f"[DB] get_all_items: user_id={user_id}, category={category or 'all'}, found={len(rows)}"
        )
        return [map_pantry_item_row(row) for row in rows]

    async def get_item_by_id(self, user_id: str, item_id: str) -> PantryItem | None:
        async with self._get_engine().connect() as conn:
            return await _fetch_item(conn, user_id, item_id)

    async def get_item_by_name(self, user_id: str, name: str) -> PantryItem | None:
        async with self._get_engine().connect() as conn:
            result = await conn.execute(statements.select_item_by_name(user_id, name))
            row = result.mappings().first()
        return map_pantry_item_row(row) if row else None

    async def create_item(self, user_id: str, data: PantryItemCreate) -> PantryItem:
        values = {
            "id": str(uuid4()),
            "user_id": user_id,
            "name": data.name,
            "barcode": data.barcode or None,
            "quantity": data.quantity,
            "unit": data.unit,
            "category": data.category,
            "last_updated": utc_now_iso(),
        }

        async with self._begin() as conn:
            await conn.execute(statements.insert_item(values))

        logger.debug(f"[DB] create_item: id={values['id']}")
        return map_pantry_item_row(values)

    async def update_item(
        self, user_id: str, item_id: str, changes: PantryItemUpdate
    ) -> PantryItem | None:
        values = statements.item_update_values(changes, utc_now_iso())

        async with self._begin() as conn:
            result = await conn.execute(statements.update_item(user_id, item_id, values))
            if result.rowcount == 0:
                return None
            return await _fetch_item(conn, user_id, item_id)

    async def delete_item(self, user_id: str, item_id: str) -> bool:
        async with self._begin() as conn:
            result = await conn.execute(statements.delete_item(user_id, item_id))
        return result.rowcount > 0

    async def adjust_item_quantity(
        self, user_id: str, item_id: str, delta: float
    ) -> PantryItem | None:
        async with self._begin() as conn:
            existing = await _fetch_item(conn, user_id, item_id)
            if existing is None:
                return None

            quantity = statements.clamp_quantity(existing.quantity + delta)
            await conn.execute(
                statements.update_quantity(user_id, item_id, quantity, utc_now_iso())
            )
            return await _fetch_item(conn, user_id, item_id)

    async def get_categories(self, user_id: str) -> list[str]:
        async with self._get_engine().connect() as conn:
            result = await conn.execute(statements.select_categories(user_id, self.dialect_name))
            return list(result.scalars())

    # ------------------------------------------------------------------
    # Activity ledger
    # ------------------------------------------------------------------

    async def get_activities(
        self,
        user_id: str,
        limit: int = 20,
        offset: int = 0,
        item_id: str | None = None,
    ) -> list[Activity]:
        async with self._get_engine().connect() as conn:
            result = await conn.execute(
                statements.select_activities(user_id, limit, offset, item_id)
            )
            return [map_activity_row(row) for row in result.mappings()]

    async def get_activity_count(self, user_id: str, item_id: str | None = None) -> int:
        async with self._get_engine().connect() as conn:
            result = await conn.execute(statements.count_activities(user_id, item_id))
            return int(result.scalar_one())

    async def log_activity(
        self,
        user_id: str,
        item_id: str,
        activity_type: ActivityType,
        amount: float,
        source: ActivitySource = ActivitySource.MANUAL,
    ) -> Activity | None:
        """Append an activity and apply it to the item's quantity atomically.

        The item is read without a row lock, so two concurrent calls on the
        same item each apply their delta to the quantity they read and the
        last commit wins.
        """
        activity_type = ActivityType(activity_type)

        async with self._begin() as conn:
            item = await _fetch_item(conn, user_id, item_id)
            if item is None:
                return None

            recorded, delta = statements.ledger_change(activity_type, amount, item.quantity)
            now = utc_now_iso()
            values = {
                "id": str(uuid4()),
                "user_id": user_id,
                "item_id": item_id,
                "item_name": item.name,
                "type": activity_type.value,
                "amount": recorded,
                "timestamp": now,
                "source": ActivitySource(source).value,
            }
            await conn.execute(statements.insert_activity(values))
            await conn.execute(
                statements.update_quantity(
                    user_id, item_id, statements.clamp_quantity(item.quantity + delta), now
                )
            )

        return map_activity_row(values)

    # ------------------------------------------------------------------
    # Raw access for the subscription service
    # ------------------------------------------------------------------

    async def query(self, sql: str, params: Params = None) -> list[dict[str, Any]]:
        async with self._get_engine().connect() as conn:
            return await _query(conn, sql, params)

    async def execute(self, sql: str, params: Params = None) -> ExecuteResult:
        async with self._begin() as conn:
            return await _execute(conn, sql, params)

    async def transaction(self, fn: Callable[[Transaction], Awaitable[T]]) -> T:
        async with self._begin() as conn:
            return await fn(_ConnectionTransaction(conn))

    # ------------------------------------------------------------------
    # Product cache
    # ------------------------------------------------------------------

    async def get_product_by_barcode(
        self, barcode: str, max_age_days: int | None = None
    ) -> ProductInfo | None:
        async with self._get_engine().connect() as conn:
            result = await conn.execute(statements.select_product(barcode, max_age_days))
            row = result.mappings().first()
        return map_product_row(row) if row else None

    async def save_product(self, product: ProductCacheInput) -> None:
        nutrition = json.dumps(product.nutrition) if product.nutrition else None
        async with self._begin() as conn:
            await conn.execute(
                statements.upsert_product(product, nutrition, utc_now_iso(), self.dialect_name)
            )

    # ------------------------------------------------------------------
    # Client errors
    # ------------------------------------------------------------------

    async def save_client_error(self, error: ClientErrorCreate) -> str:
        error_id = str(uuid4())
        async with self._begin() as conn:
            await conn.execute(statements.insert_client_error(error_id, error))
        return error_id

    async def get_client_errors(
        self, resolved: bool | None = None, limit: int = 50
    ) -> list[ClientError]:
        async with self._get_engine().connect() as conn:
            result = await conn.execute(statements.select_client_errors(resolved, limit))
            return [map_client_error_row(row) for row in result.mappings()]

    async def mark_error_resolved(self, error_id: str) -> bool:
        async with self._begin() as conn:
            result = await conn.execute(statements.resolve_client_error(error_id))
        return result.rowcount > 0
