"""Statement builders shared by both storage engines.

Builders return SQLAlchemy Core constructs; each engine executes them with its
own connection so the dialect decides parameter style and quoting.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy import ColumnElement, Delete, Insert, Select, Update, delete, func, insert, select, update
from sqlalchemy.dialects import postgresql, sqlite

from pantry_store.models import (
    ActivityRecord,
    ClientErrorRecord,
    PantryItemRecord,
    ProductCacheRecord,
)
from pantry_store.schemas.activity import ActivityType
from pantry_store.schemas.client_error import ClientErrorCreate
from pantry_store.schemas.pantry import PantryItemUpdate
from pantry_store.schemas.product import ProductCacheInput

pantry_items = PantryItemRecord.__table__
activities = ActivityRecord.__table__
product_cache = ProductCacheRecord.__table__
client_errors = ClientErrorRecord.__table__


def case_insensitive(column: Any, dialect_name: str) -> ColumnElement:
    """Ordering expression that treats "apple" and "Apple" as equal."""
    if dialect_name == "sqlite":
        return column.collate("NOCASE")
    return func.lower(column)


# ---------------------------------------------------------------------------
# Pantry items
# ---------------------------------------------------------------------------


def select_items(user_id: str, category: str | None, dialect_name: str) -> Select:
    stmt = select(pantry_items).where(pantry_items.c.user_id == user_id)
    if category:
        stmt = stmt.where(pantry_items.c.category == category)
    return stmt.order_by(case_insensitive(pantry_items.c.name, dialect_name))


def select_item_by_id(user_id: str, item_id: str) -> Select:
    return select(pantry_items).where(
        pantry_items.c.user_id == user_id,
        pantry_items.c.id == item_id,
    )


def select_item_by_name(user_id: str, name: str) -> Select:
    return (
        select(pantry_items)
        .where(
            pantry_items.c.user_id == user_id,
            func.lower(pantry_items.c.name) == func.lower(name),
        )
        .limit(1)
    )


def insert_item(values: dict[str, Any]) -> Insert:
    return insert(pantry_items).values(**values)


def item_update_values(changes: PantryItemUpdate, now: str) -> dict[str, Any]:
    """Turn the fields set on ``changes`` into column values.

    last_updated is always included. An empty barcode is stored as NULL.
    """
    values = changes.model_dump(include=changes.model_fields_set)
    if "barcode" in values:
        values["barcode"] = values["barcode"] or None
    values["last_updated"] = now
    return values


def update_item(user_id: str, item_id: str, values: dict[str, Any]) -> Update:
    return (
        update(pantry_items)
        .where(pantry_items.c.user_id == user_id, pantry_items.c.id == item_id)
        .values(**values)
    )


def update_quantity(user_id: str, item_id: str, quantity: float, now: str) -> Update:
    return update_item(user_id, item_id, {"quantity": quantity, "last_updated": now})


def delete_item(user_id: str, item_id: str) -> Delete:
    return delete(pantry_items).where(
        pantry_items.c.user_id == user_id,
        pantry_items.c.id == item_id,
    )


def select_categories(user_id: str, dialect_name: str) -> Select:
    # GROUP BY instead of DISTINCT so PostgreSQL accepts ORDER BY lower(category)
    return (
        select(pantry_items.c.category)
        .where(pantry_items.c.user_id == user_id)
        .group_by(pantry_items.c.category)
        .order_by(case_insensitive(pantry_items.c.category, dialect_name))
    )


# ---------------------------------------------------------------------------
# Activity ledger
# ---------------------------------------------------------------------------


def ledger_change(
    activity_type: ActivityType, amount: float, current_quantity: float
) -> tuple[float, float]:
    """Return ``(recorded_amount, quantity_delta)`` for an activity.

    REMOVE records at most what was on hand. ADJUST takes a signed delta and
    records its magnitude.
    """
    if activity_type == ActivityType.ADD:
        return amount, amount
    if activity_type == ActivityType.REMOVE:
        return min(amount, current_quantity), -amount
    if activity_type == ActivityType.ADJUST:
        return abs(amount), amount
    raise ValueError(f"Unknown activity type: {activity_type}")


def clamp_quantity(quantity: float) -> float:
    return max(0.0, quantity)


def select_activities(user_id: str, limit: int, offset: int, item_id: str | None) -> Select:
    stmt = select(activities).where(activities.c.user_id == user_id)
    if item_id:
        stmt = stmt.where(activities.c.item_id == item_id)
    return stmt.order_by(activities.c.timestamp.desc()).limit(limit).offset(offset)


def count_activities(user_id: str, item_id: str | None) -> Select:
    stmt = select(func.count()).select_from(activities).where(activities.c.user_id == user_id)
    if item_id:
        stmt = stmt.where(activities.c.item_id == item_id)
    return stmt


def insert_activity(values: dict[str, Any]) -> Insert:
    return insert(activities).values(**values)


# ---------------------------------------------------------------------------
# Product cache
# ---------------------------------------------------------------------------


def select_product(barcode: str, max_age_days: int | None = None) -> Select:
    stmt = select(product_cache).where(product_cache.c.barcode == barcode)
    if max_age_days is not None:
        cutoff = datetime.now(UTC) - timedelta(days=max_age_days)
        cutoff_iso = cutoff.isoformat(timespec="milliseconds").replace("+00:00", "Z")
        stmt = stmt.where(product_cache.c.info_last_synced >= cutoff_iso)
    return stmt


def upsert_product(product: ProductCacheInput, nutrition_json: str | None, now: str, dialect_name: str):
    """INSERT ... ON CONFLICT(barcode) DO UPDATE for the active dialect."""
    dialect_insert = postgresql.insert if dialect_name == "postgresql" else sqlite.insert
    values = {
        "barcode": product.barcode,
        "name": product.name,
        "brand": product.brand,
        "category": product.category,
        "image_url": product.image_url,
        "ingredients": product.ingredients,
        "nutrition": nutrition_json,
        "source": product.source,
        "info_last_synced": now,
        "updated_at": now,
    }
    stmt = dialect_insert(product_cache).values(**values)
    refreshed = {key: stmt.excluded[key] for key in values if key != "barcode"}
    return stmt.on_conflict_do_update(index_elements=["barcode"], set_=refreshed)


# ---------------------------------------------------------------------------
# Client errors
# ---------------------------------------------------------------------------


def insert_client_error(error_id: str, error: ClientErrorCreate) -> Insert:
    return insert(client_errors).values(id=error_id, **error.model_dump())


def select_client_errors(resolved: bool | None, limit: int) -> Select:
    stmt = select(client_errors)
    if resolved is not None:
        stmt = stmt.where(client_errors.c.resolved == resolved)
    return stmt.order_by(client_errors.c.created_at.desc()).limit(limit)


def resolve_client_error(error_id: str) -> Update:
    return update(client_errors).where(client_errors.c.id == error_id).values(resolved=True)
