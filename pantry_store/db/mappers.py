"""Row mappers: storage rows to domain entities.

Each mapper takes a row mapping (``Row._mapping`` or a plain dict) and does
no I/O, so they can be tested without a live connection.
"""

import json
from collections.abc import Mapping
from typing import Any

from pantry_store.schemas.activity import Activity
from pantry_store.schemas.client_error import ClientError
from pantry_store.schemas.pantry import PantryItem
from pantry_store.schemas.product import ProductInfo
from pantry_store.schemas.subscription import UsageLimits, UserSubscription

Row = Mapping[str, Any]


def map_pantry_item_row(row: Row) -> PantryItem:
    return PantryItem(
        id=row["id"],
        user_id=row["user_id"],
        name=row["name"],
        barcode=row["barcode"] or None,
        quantity=row["quantity"],
        unit=row["unit"],
        category=row["category"],
        last_updated=row["last_updated"],
    )


def map_activity_row(row: Row) -> Activity:
    return Activity(
        id=row["id"],
        user_id=row["user_id"],
        item_id=row["item_id"],
        item_name=row["item_name"],
        type=row["type"],
        amount=row["amount"],
        timestamp=row["timestamp"],
        source=row["source"],
    )


def map_user_subscription_row(row: Row) -> UserSubscription:
    return UserSubscription(
        id=row["id"],
        user_id=row["user_id"],
        tier=row["tier"],
        stripe_customer_id=row["stripe_customer_id"],
        stripe_subscription_id=row["stripe_subscription_id"],
        stripe_price_id=row["stripe_price_id"],
        subscription_status=row["subscription_status"],
        subscription_start_date=row["subscription_start_date"],
        subscription_end_date=row["subscription_end_date"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def map_usage_limits_row(row: Row) -> UsageLimits:
    return UsageLimits(
        id=row["id"],
        user_id=row["user_id"],
        month=row["month"],
        receipt_scans=row["receipt_scans"] or 0,
        ai_calls=row["ai_calls"] or 0,
        voice_sessions=row["voice_sessions"] or 0,
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def map_product_row(row: Row) -> ProductInfo:
    """Map a product_cache row; nutrition is stored as a JSON string."""
    nutrition = row["nutrition"]
    return ProductInfo(
        barcode=row["barcode"],
        name=row["name"],
        brand=row["brand"],
        category=row["category"],
        image_url=row["image_url"],
        ingredients=row["ingredients"],
        nutrition=json.loads(nutrition) if nutrition else None,
        source=row["source"],
        info_last_synced=row["info_last_synced"],
    )


def map_client_error_row(row: Row) -> ClientError:
    return ClientError(
        id=row["id"],
        user_id=row["user_id"],
        error_type=row["error_type"],
        error_message=row["error_message"],
        error_stack=row["error_stack"],
        component=row["component"],
        url=row["url"],
        user_agent=row["user_agent"],
        resolved=bool(row["resolved"]),
        created_at=row["created_at"],
    )
