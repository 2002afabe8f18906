"""SQLite pantry store.

One persistent connection (``StaticPool``) in WAL mode. Every call runs
synchronously on the calling thread, so a coroutine of this store never
suspends mid-operation. A transaction is a ``with engine.begin()`` block:
when it raises, SQLite rolls back before the exception propagates.

Helpers that take a ``Connection`` must be given the connection of the
enclosing block. Opening a second connection context inside a transaction
would hand back the same shared connection and reset it.
"""

import json
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, TypeVar
from uuid import uuid4

from sqlalchemy import Connection, Engine, create_engine, text
from sqlalchemy.pool import StaticPool

from pantry_store.database import enable_sqlite_pragmas, utc_now_iso
from pantry_store.db import statements
from pantry_store.db.adapter import ExecuteResult, PantryStore, Params, Transaction
from pantry_store.db.mappers import (
    map_activity_row,
    map_client_error_row,
    map_pantry_item_row,
    map_product_row,
)
from pantry_store.db.migrate import run_migrations
from pantry_store.errors import PersistenceError, StoreNotInitializedError
from pantry_store.schemas.activity import Activity, ActivitySource, ActivityType
from pantry_store.schemas.client_error import ClientError, ClientErrorCreate
from pantry_store.schemas.pantry import PantryItem, PantryItemCreate, PantryItemUpdate
from pantry_store.schemas.product import ProductCacheInput, ProductInfo

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _fetch_item(conn: Connection, user_id: str, item_id: str) -> PantryItem | None:
    row = conn.execute(statements.select_item_by_id(user_id, item_id)).mappings().first()
    return map_pantry_item_row(row) if row else None


def _query(conn: Connection, sql: str, params: Params) -> list[dict[str, Any]]:
    return [dict(row) for row in conn.execute(text(sql), dict(params or {})).mappings()]


def _execute(conn: Connection, sql: str, params: Params) -> ExecuteResult:
    result = conn.execute(text(sql), dict(params or {}))
    return ExecuteResult(changes=result.rowcount, last_id=result.lastrowid)


class _ConnectionTransaction:
    """Transaction runner over the store's single connection."""

    def __init__(self, conn: Connection):
        self._conn = conn

    async def query(self, sql: str, params: Params = None) -> list[dict[str, Any]]:
        return _query(self._conn, sql, params)

    async def execute(self, sql: str, params: Params = None) -> ExecuteResult:
        return _execute(self._conn, sql, params)


class SQLiteStore(PantryStore):
    """Embedded, synchronous pantry store."""

    engine_name = "sqlite"

    def __init__(self, db_path: str, *, echo: bool = False, legacy_user_id: str = "legacy-user"):
        self.db_path = db_path
        self._echo = echo
        self._legacy_user_id = legacy_user_id
        self._engine: Engine | None = None

    async def initialize(self) -> None:
        if self._engine is not None:
            logger.warning("[DB] SQLite store already initialized; ignoring initialize()")
            return

        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        engine = create_engine(
            f"sqlite:///{self.db_path}",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
            echo=self._echo,
        )
        enable_sqlite_pragmas(engine)

        try:
            run_migrations(engine, legacy_user_id=self._legacy_user_id)
        except Exception:
            engine.dispose()
            raise

        self._engine = engine
        logger.info(f"[DB] SQLite store initialized at {self.db_path}")

    async def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            logger.info("[DB] SQLite store closed")

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None

    def _get_engine(self) -> Engine:
        if self._engine is None:
            raise StoreNotInitializedError()
        return self._engine

    # ------------------------------------------------------------------
    # Pantry items
    # ------------------------------------------------------------------

    async def get_all_items(self, user_id: str, category: str | None = None) -> list[PantryItem]:
        with self._get_engine().connect() as conn:
            rows = conn.execute(statements.select_items(user_id, category, "sqlite")).mappings().all()

        logger.debug(
            f"[DB] get_all_items: user_id={user_id}, category={category or 'all'}, found={len(rows)}"
        )
        return [map_pantry_item_row(row) for row in rows]

    async def get_item_by_id(self, user_id: str, item_id: str) -> PantryItem | None:
        with self._get_engine().connect() as conn:
            return _fetch_item(conn, user_id, item_id)

    async def get_item_by_name(self, user_id: str, name: str) -> PantryItem | None:
        with self._get_engine().connect() as conn:
            row = conn.execute(statements.select_item_by_name(user_id, name)).mappings().first()
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

        with self._get_engine().begin() as conn:
            result = conn.execute(statements.insert_item(values))
            logger.debug(f"[DB] create_item: id={values['id']}, changes={result.rowcount}")
            if result.rowcount == 0:
                raise PersistenceError("Failed to insert item: no rows affected")

        return map_pantry_item_row(values)

    async def update_item(
        self, user_id: str, item_id: str, changes: PantryItemUpdate
    ) -> PantryItem | None:
        values = statements.item_update_values(changes, utc_now_iso())

        with self._get_engine().begin() as conn:
            if _fetch_item(conn, user_id, item_id) is None:
                return None

            result = conn.execute(statements.update_item(user_id, item_id, values))
            if result.rowcount == 0:
                logger.warning(f"[DB] update_item: no rows updated for user_id={user_id}, id={item_id}")
                return None

            return _fetch_item(conn, user_id, item_id)

    async def delete_item(self, user_id: str, item_id: str) -> bool:
        with self._get_engine().begin() as conn:
            result = conn.execute(statements.delete_item(user_id, item_id))
        return result.rowcount > 0

    async def adjust_item_quantity(
        self, user_id: str, item_id: str, delta: float
    ) -> PantryItem | None:
        with self._get_engine().begin() as conn:
            existing = _fetch_item(conn, user_id, item_id)
            if existing is None:
                return None

            quantity = statements.clamp_quantity(existing.quantity + delta)
            result = conn.execute(
                statements.update_quantity(user_id, item_id, quantity, utc_now_iso())
            )
            logger.debug(
                f"[DB] adjust_item_quantity: id={item_id}, delta={delta}, changes={result.rowcount}"
            )
            if result.rowcount == 0:
                logger.warning(
                    f"[DB] adjust_item_quantity: no rows updated for user_id={user_id}, id={item_id}"
                )
                return None

            return _fetch_item(conn, user_id, item_id)

    async def get_categories(self, user_id: str) -> list[str]:
        with self._get_engine().connect() as conn:
            return list(conn.execute(statements.select_categories(user_id, "sqlite")).scalars())

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
        with self._get_engine().connect() as conn:
            rows = conn.execute(
                statements.select_activities(user_id, limit, offset, item_id)
            ).mappings()
            return [map_activity_row(row) for row in rows]

    async def get_activity_count(self, user_id: str, item_id: str | None = None) -> int:
        with self._get_engine().connect() as conn:
            return conn.execute(statements.count_activities(user_id, item_id)).scalar_one()

    async def log_activity(
        self,
        user_id: str,
        item_id: str,
        activity_type: ActivityType,
        amount: float,
        source: ActivitySource = ActivitySource.MANUAL,
    ) -> Activity | None:
        activity_type = ActivityType(activity_type)

        with self._get_engine().begin() as conn:
            item = _fetch_item(conn, user_id, item_id)
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
            conn.execute(statements.insert_activity(values))
            conn.execute(
                statements.update_quantity(
                    user_id, item_id, statements.clamp_quantity(item.quantity + delta), now
                )
            )

        return map_activity_row(values)

    # ------------------------------------------------------------------
    # Raw access for the subscription service
    # ------------------------------------------------------------------

    async def query(self, sql: str, params: Params = None) -> list[dict[str, Any]]:
        with self._get_engine().connect() as conn:
            return _query(conn, sql, params)

    async def execute(self, sql: str, params: Params = None) -> ExecuteResult:
        with self._get_engine().begin() as conn:
            return _execute(conn, sql, params)

    async def transaction(self, fn: Callable[[Transaction], Awaitable[T]]) -> T:
        """Run ``fn`` atomically.

        ``fn`` must only await the ``Transaction`` methods; anything that truly
        suspends would let another coroutine onto the shared connection.
        """
        try:
            with self._get_engine().begin() as conn:
                return await fn(_ConnectionTransaction(conn))
        except Exception as e:
            logger.error(f"[DB] Transaction rolled back: {e}")
            raise

    # ------------------------------------------------------------------
    # Product cache
    # ------------------------------------------------------------------

    async def get_product_by_barcode(
        self, barcode: str, max_age_days: int | None = None
    ) -> ProductInfo | None:
        with self._get_engine().connect() as conn:
            row = conn.execute(statements.select_product(barcode, max_age_days)).mappings().first()
        return map_product_row(row) if row else None

    async def save_product(self, product: ProductCacheInput) -> None:
        nutrition = json.dumps(product.nutrition) if product.nutrition else None
        with self._get_engine().begin() as conn:
            conn.execute(statements.upsert_product(product, nutrition, utc_now_iso(), "sqlite"))

    # ------------------------------------------------------------------
    # Client errors
    # ------------------------------------------------------------------

    async def save_client_error(self, error: ClientErrorCreate) -> str:
        error_id = str(uuid4())
        with self._get_engine().begin() as conn:
            conn.execute(statements.insert_client_error(error_id, error))
        return error_id

    async def get_client_errors(
        self, resolved: bool | None = None, limit: int = 50
    ) -> list[ClientError]:
        with self._get_engine().connect() as conn:
            rows = conn.execute(statements.select_client_errors(resolved, limit)).mappings()
            return [map_client_error_row(row) for row in rows]

    async def mark_error_resolved(self, error_id: str) -> bool:
        with self._get_engine().begin() as conn:
            result = conn.execute(statements.resolve_client_error(error_id))
        return result.rowcount > 0
