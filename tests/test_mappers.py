"""Row mapper tests; no database needed."""

from datetime import UTC, datetime

from pantry_store.db.mappers import (
    map_activity_row,
    map_client_error_row,
    map_pantry_item_row,
    map_product_row,
    map_usage_limits_row,
    map_user_subscription_row,
)
from pantry_store.schemas.activity import ActivitySource, ActivityType
from pantry_store.schemas.subscription import UserTier


def test_map_pantry_item_row():
    item = map_pantry_item_row(
        {
            "id": "item-1",
            "user_id": "user-1",
            "name": "Apple",
            "barcode": "",
            "quantity": 5,
            "unit": "pieces",
            "category": "produce",
            "last_updated": "2024-03-01T12:30:00.000Z",
            "created_at": "2024-03-01 12:30:00",
        }
    )

    assert item.id == "item-1"
    assert item.barcode is None
    assert item.quantity == 5.0
    assert item.last_updated == datetime(2024, 3, 1, 12, 30, tzinfo=UTC)


def test_map_activity_row():
    activity = map_activity_row(
        {
            "id": "act-1",
            "user_id": "user-1",
            "item_id": "item-1",
            "item_name": "Apple",
            "type": "REMOVE",
            "amount": 2.5,
            "timestamp": "2024-03-01T12:30:00.000Z",
            "source": "VISUAL_USAGE",
        }
    )

    assert activity.type == ActivityType.REMOVE
    assert activity.source == ActivitySource.VISUAL_USAGE
    assert activity.amount == 2.5


def test_map_user_subscription_row():
    subscription = map_user_subscription_row(
        {
            "id": "sub-1",
            "user_id": "user-1",
            "tier": "family",
            "stripe_customer_id": "cus_123",
            "stripe_subscription_id": None,
            "stripe_price_id": None,
            "subscription_status": None,
            "subscription_start_date": None,
            "subscription_end_date": None,
            "created_at": "2024-03-01 12:30:00",
            "updated_at": "2024-03-01T12:30:00.000Z",
        }
    )

    assert subscription.tier == UserTier.FAMILY
    assert subscription.stripe_customer_id == "cus_123"
    assert subscription.subscription_status is None


def test_map_usage_limits_row_defaults_missing_counters():
    usage = map_usage_limits_row(
        {
            "id": "usage-1",
            "user_id": "user-1",
            "month": "2024-03",
            "receipt_scans": None,
            "ai_calls": 4,
            "voice_sessions": None,
            "created_at": datetime(2024, 3, 1, tzinfo=UTC),
            "updated_at": "2024-03-01T00:00:00.000Z",
        }
    )

    assert usage.receipt_scans == 0
    assert usage.ai_calls == 4
    assert usage.voice_sessions == 0


def test_map_product_row_decodes_nutrition():
    row = {
        "barcode": "123",
        "name": "Cola",
        "brand": None,
        "category": "beverages",
        "image_url": None,
        "ingredients": None,
        "nutrition": '{"energy_kcal": 42}',
        "source": "openfoodfacts",
        "info_last_synced": "2024-03-01T00:00:00.000Z",
    }

    assert map_product_row(row).nutrition == {"energy_kcal": 42}
    assert map_product_row({**row, "nutrition": None}).nutrition is None


def test_map_client_error_row_coerces_resolved():
    error = map_client_error_row(
        {
            "id": "err-1",
            "user_id": None,
            "error_type": "TypeError",
            "error_message": "boom",
            "error_stack": None,
            "component": None,
            "url": None,
            "user_agent": None,
            "resolved": 1,
            "created_at": "2024-03-01 12:30:00",
        }
    )

    assert error.resolved is True
    assert error.user_id is None
