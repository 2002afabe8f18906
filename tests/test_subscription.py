"""Subscription tier and usage gate tests, run against both storage engines."""

import math

import pytest

from pantry_store.schemas.subscription import (
    SubscriptionStatus,
    SubscriptionUpdate,
    UsageCounter,
    UserTier,
)
from pantry_store.services.subscription import current_month


async def set_tier(subscriptions, user_id, tier):
    await subscriptions.get_or_create_user_subscription(user_id)
    return await subscriptions.update_user_subscription(user_id, SubscriptionUpdate(tier=tier))


@pytest.mark.asyncio
async def test_get_or_create_user_subscription(subscriptions, user_id):
    """Test a new tenant gets one free subscription."""
    assert await subscriptions.get_user_subscription(user_id) is None

    created = await subscriptions.get_or_create_user_subscription(user_id)
    again = await subscriptions.get_or_create_user_subscription(user_id)

    assert created.tier == UserTier.FREE
    assert created.user_id == user_id
    assert created.stripe_customer_id is None
    assert again.id == created.id


@pytest.mark.asyncio
async def test_update_user_subscription(subscriptions, user_id):
    """Test a partial update only writes the fields it sets."""
    await subscriptions.get_or_create_user_subscription(user_id)

    updated = await subscriptions.update_user_subscription(
        user_id,
        SubscriptionUpdate(
            tier=UserTier.PRO,
            stripe_customer_id="cus_123",
            subscription_status=SubscriptionStatus.ACTIVE,
        ),
    )
    assert updated.tier == UserTier.PRO
    assert updated.stripe_customer_id == "cus_123"
    assert updated.subscription_status == SubscriptionStatus.ACTIVE

    updated = await subscriptions.update_user_subscription(
        user_id, SubscriptionUpdate(stripe_price_id="price_456")
    )
    assert updated.tier == UserTier.PRO
    assert updated.stripe_customer_id == "cus_123"
    assert updated.stripe_price_id == "price_456"


@pytest.mark.asyncio
async def test_update_user_subscription_missing(subscriptions, user_id):
    """Test updating a tenant without a subscription returns None."""
    result = await subscriptions.update_user_subscription(
        user_id, SubscriptionUpdate(tier=UserTier.PRO)
    )
    assert result is None


@pytest.mark.asyncio
async def test_downgrade_to_free(subscriptions, user_id):
    """Test a cancellation drops the tenant back to the free tier."""
    await subscriptions.get_or_create_user_subscription(user_id)
    await subscriptions.update_user_subscription(
        user_id,
        SubscriptionUpdate(
            tier=UserTier.FAMILY,
            stripe_customer_id="cus_123",
            stripe_subscription_id="sub_123",
            stripe_price_id="price_family",
            subscription_status=SubscriptionStatus.ACTIVE,
        ),
    )

    downgraded = await subscriptions.downgrade_to_free(user_id)

    assert downgraded.tier == UserTier.FREE
    assert downgraded.subscription_status == SubscriptionStatus.CANCELED
    assert downgraded.stripe_subscription_id is None
    assert downgraded.stripe_price_id is None
    assert downgraded.stripe_customer_id == "cus_123"
    assert downgraded.subscription_end_date is not None


@pytest.mark.asyncio
async def test_can_add_items_free_tier(subscriptions, user_id):
    """Test the free tier stops at 50 items."""
    below = await subscriptions.can_add_items(user_id, 49)
    assert below.allowed is True
    assert below.remaining == 1

    at_limit = await subscriptions.can_add_items(user_id, 50)
    assert at_limit.allowed is False
    assert at_limit.remaining == 0


@pytest.mark.asyncio
async def test_can_add_items_unlimited(subscriptions, user_id):
    """Test paid tiers have no item limit."""
    await set_tier(subscriptions, user_id, UserTier.PRO)

    check = await subscriptions.can_add_items(user_id, 10_000)
    assert check.allowed is True
    assert math.isinf(check.remaining)


@pytest.mark.asyncio
async def test_can_scan_receipt_counts_usage(subscriptions, user_id):
    """Test the free tier allows five receipt scans a month."""
    first = await subscriptions.can_scan_receipt(user_id)
    assert first.allowed is True
    assert first.remaining == 5

    for _ in range(5):
        await subscriptions.increment_usage(user_id, UsageCounter.RECEIPT_SCANS)

    exhausted = await subscriptions.can_scan_receipt(user_id)
    assert exhausted.allowed is False
    assert exhausted.remaining == 0


@pytest.mark.asyncio
async def test_can_use_ai(subscriptions, user_id, other_user_id):
    """Test AI is unavailable on free and unlimited on family."""
    free = await subscriptions.can_use_ai(user_id)
    assert free.allowed is False
    assert free.remaining == 0

    await set_tier(subscriptions, other_user_id, UserTier.FAMILY)
    family = await subscriptions.can_use_ai(other_user_id)
    assert family.allowed is True
    assert math.isinf(family.remaining)


@pytest.mark.asyncio
async def test_feature_flags_per_tier(subscriptions, user_id, other_user_id):
    """Test voice, multi-device and sharing follow the tier table."""
    assert await subscriptions.can_use_voice_assistant(user_id) is False
    assert await subscriptions.has_multi_device(user_id) is False
    assert await subscriptions.has_shared_inventory(user_id) is False

    await set_tier(subscriptions, user_id, UserTier.PRO)
    assert await subscriptions.can_use_voice_assistant(user_id) is True
    assert await subscriptions.has_multi_device(user_id) is True
    assert await subscriptions.has_shared_inventory(user_id) is False

    await set_tier(subscriptions, other_user_id, UserTier.FAMILY)
    assert await subscriptions.has_shared_inventory(other_user_id) is True


@pytest.mark.asyncio
async def test_increment_usage(subscriptions, user_id):
    """Test counters are bumped independently in the current month."""
    usage = await subscriptions.increment_usage(user_id, UsageCounter.AI_CALLS)
    usage = await subscriptions.increment_usage(user_id, UsageCounter.AI_CALLS)
    usage = await subscriptions.increment_usage(user_id, UsageCounter.VOICE_SESSIONS)

    assert usage.month == current_month()
    assert usage.ai_calls == 2
    assert usage.voice_sessions == 1
    assert usage.receipt_scans == 0


@pytest.mark.asyncio
async def test_usage_limits_are_per_month(subscriptions, user_id):
    """Test each month key gets its own counters."""
    await subscriptions.increment_usage(user_id, UsageCounter.RECEIPT_SCANS)

    past = await subscriptions.get_or_create_usage_limits(user_id, "2020-01")
    current = await subscriptions.get_or_create_usage_limits(user_id)

    assert past.month == "2020-01"
    assert past.receipt_scans == 0
    assert current.receipt_scans == 1
    assert past.id != current.id


@pytest.mark.asyncio
async def test_get_user_tier_info_free(subscriptions, user_id):
    """Test tier info for a free tenant without a paid subscription."""
    await subscriptions.increment_usage(user_id, UsageCounter.RECEIPT_SCANS)

    info = await subscriptions.get_user_tier_info(user_id, current_item_count=12)

    assert info.tier == UserTier.FREE
    assert info.limits.max_items == 50
    assert info.limits.receipt_scans_per_month == 5
    assert info.limits.ai_calls_per_month == 0
    assert info.usage.current_items == 12
    assert info.usage.receipt_scans_this_month == 1
    assert info.subscription is None


@pytest.mark.asyncio
async def test_get_user_tier_info_unlimited(subscriptions, user_id):
    """Test unlimited limits are reported as -1 with the paid summary."""
    await subscriptions.get_or_create_user_subscription(user_id)
    await subscriptions.update_user_subscription(
        user_id,
        SubscriptionUpdate(
            tier=UserTier.FAMILY,
            stripe_customer_id="cus_123",
            subscription_status=SubscriptionStatus.TRIALING,
        ),
    )

    info = await subscriptions.get_user_tier_info(user_id, current_item_count=0)

    assert info.limits.max_items == -1
    assert info.limits.receipt_scans_per_month == -1
    assert info.limits.ai_calls_per_month == -1
    assert info.limits.max_family_members == 5
    assert info.subscription.stripe_customer_id == "cus_123"
    assert info.subscription.status == SubscriptionStatus.TRIALING


@pytest.mark.asyncio
async def test_gate_does_not_block_writes(store, subscriptions, user_id, make_item):
    """Test item creation ignores the tier limit; the gate only advises."""
    for index in range(3):
        await make_item(name=f"Item {index}")

    check = await subscriptions.can_add_items(user_id, 50)
    assert check.allowed is False

    await make_item(name="One more")
    assert len(await store.get_all_items(user_id)) == 4
