"""Subscription tiers and monthly usage counters.

The checks here are advisory. Item CRUD never consults them, so a caller that
checks and then writes can race another caller doing the same.
"""

import logging
import math
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from pantry_store.database import utc_now_iso
from pantry_store.db.adapter import PantryStore, Transaction
from pantry_store.db.mappers import map_usage_limits_row, map_user_subscription_row
from pantry_store.schemas.subscription import (
    TIER_LIMITS,
    SubscriptionStatus,
    SubscriptionSummary,
    SubscriptionUpdate,
    TierLimits,
    TierLimitsInfo,
    TierUsageInfo,
    UsageCheck,
    UsageCounter,
    UsageLimits,
    UserSubscription,
    UserTier,
    UserTierInfo,
)

logger = logging.getLogger(__name__)

SELECT_SUBSCRIPTION = "SELECT * FROM user_subscriptions WHERE user_id = :user_id"

INSERT_FREE_SUBSCRIPTION = (
    "INSERT INTO user_subscriptions (id, user_id, tier, updated_at) "
    "VALUES (:id, :user_id, 'free', :now) "
    "ON CONFLICT (user_id) DO NOTHING"
)

SELECT_USAGE = "SELECT * FROM usage_limits WHERE user_id = :user_id AND month = :month"

INSERT_EMPTY_USAGE = (
    "INSERT INTO usage_limits "
    "(id, user_id, month, receipt_scans, ai_calls, voice_sessions, updated_at) "
    "VALUES (:id, :user_id, :month, 0, 0, 0, :now) "
    "ON CONFLICT (user_id, month) DO NOTHING"
)


def current_month() -> str:
    """Usage period key, ``YYYY-MM`` in UTC."""
    return datetime.now(UTC).strftime("%Y-%m")


def _reported_limit(limit: float) -> int:
    return -1 if math.isinf(limit) else int(limit)


def _check(limit: float, used: int) -> UsageCheck:
    if math.isinf(limit):
        return UsageCheck(allowed=True, remaining=math.inf)
    remaining = limit - used
    return UsageCheck(allowed=remaining > 0, remaining=remaining)


class SubscriptionService:
    """Tier lookups, usage counting and advisory limit checks for a store."""

    def __init__(self, store: PantryStore):
        self.store = store

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    async def get_user_subscription(self, user_id: str) -> UserSubscription | None:
        rows = await self.store.query(SELECT_SUBSCRIPTION, {"user_id": user_id})
        return map_user_subscription_row(rows[0]) if rows else None

    async def get_or_create_user_subscription(self, user_id: str) -> UserSubscription:
        """Return the tenant's subscription, creating a free one if absent."""

        async def find_or_create(tx: Transaction) -> dict[str, Any]:
            result = await tx.execute(
                INSERT_FREE_SUBSCRIPTION,
                {"id": str(uuid4()), "user_id": user_id, "now": utc_now_iso()},
            )
            if result.changes:
                logger.info(f"[SUBSCRIPTION] Created free tier subscription for user_id={user_id}")
            rows = await tx.query(SELECT_SUBSCRIPTION, {"user_id": user_id})
            return rows[0]

        row = await self.store.transaction(find_or_create)
        return map_user_subscription_row(row)

    async def update_user_subscription(
        self, user_id: str, changes: SubscriptionUpdate
    ) -> UserSubscription | None:
        """Write the fields set on ``changes``; ``None`` if no subscription exists."""
        if await self.get_user_subscription(user_id) is None:
            return None

        values = changes.model_dump(mode="json", include=changes.model_fields_set)
        values["updated_at"] = utc_now_iso()
        assignments = ", ".join(f"{column} = :{column}" for column in values)

        await self.store.execute(
            f"UPDATE user_subscriptions SET {assignments} WHERE user_id = :user_id",
            {**values, "user_id": user_id},
        )
        return await self.get_user_subscription(user_id)

    async def downgrade_to_free(self, user_id: str) -> UserSubscription | None:
        """Drop the tenant to the free tier after a cancellation."""
        now = utc_now_iso()
        await self.store.execute(
            "UPDATE user_subscriptions "
            "SET tier = :tier, stripe_subscription_id = NULL, stripe_price_id = NULL, "
            "subscription_status = :status, subscription_end_date = :now, updated_at = :now "
            "WHERE user_id = :user_id",
            {
                "tier": UserTier.FREE.value,
                "status": SubscriptionStatus.CANCELED.value,
                "now": now,
                "user_id": user_id,
            },
        )
        logger.info(f"[SUBSCRIPTION] Downgraded user_id={user_id} to free tier")
        return await self.get_user_subscription(user_id)

    async def get_tier_limits(self, user_id: str) -> TierLimits:
        subscription = await self.get_or_create_user_subscription(user_id)
        return TIER_LIMITS[subscription.tier]

    # ------------------------------------------------------------------
    # Usage counters
    # ------------------------------------------------------------------

    async def get_or_create_usage_limits(
        self, user_id: str, month: str | None = None
    ) -> UsageLimits:
        """Return the tenant's counters for ``month`` (default: this month)."""
        month = month or current_month()

        async def find_or_create(tx: Transaction) -> dict[str, Any]:
            await tx.execute(
                INSERT_EMPTY_USAGE,
                {"id": str(uuid4()), "user_id": user_id, "month": month, "now": utc_now_iso()},
            )
            rows = await tx.query(SELECT_USAGE, {"user_id": user_id, "month": month})
            return rows[0]

        row = await self.store.transaction(find_or_create)
        return map_usage_limits_row(row)

    async def increment_usage(self, user_id: str, counter: UsageCounter) -> UsageLimits:
        """Add one to a monthly counter and return the updated counters."""
        column = UsageCounter(counter).value
        month = current_month()
        params = {"user_id": user_id, "month": month}

        async def bump(tx: Transaction) -> dict[str, Any]:
            await tx.execute(
                INSERT_EMPTY_USAGE,
                {**params, "id": str(uuid4()), "now": utc_now_iso()},
            )
            await tx.execute(
                f"UPDATE usage_limits SET {column} = COALESCE({column}, 0) + 1, "
                "updated_at = :now WHERE user_id = :user_id AND month = :month",
                {**params, "now": utc_now_iso()},
            )
            rows = await tx.query(SELECT_USAGE, params)
            return rows[0]

        row = await self.store.transaction(bump)
        logger.debug(f"[SUBSCRIPTION] Incremented {column} for user_id={user_id}, month={month}")
        return map_usage_limits_row(row)

    # ------------------------------------------------------------------
    # Tier checks
    # ------------------------------------------------------------------

    async def can_add_items(self, user_id: str, current_item_count: int) -> UsageCheck:
        limits = await self.get_tier_limits(user_id)
        return _check(limits.max_items, current_item_count)

    async def can_scan_receipt(self, user_id: str) -> UsageCheck:
        limits = await self.get_tier_limits(user_id)
        if math.isinf(limits.receipt_scans_per_month):
            return _check(limits.receipt_scans_per_month, 0)
        usage = await self.get_or_create_usage_limits(user_id)
        return _check(limits.receipt_scans_per_month, usage.receipt_scans)

    async def can_use_ai(self, user_id: str) -> UsageCheck:
        limits = await self.get_tier_limits(user_id)
        if math.isinf(limits.ai_calls_per_month):
            return _check(limits.ai_calls_per_month, 0)
        usage = await self.get_or_create_usage_limits(user_id)
        return _check(limits.ai_calls_per_month, usage.ai_calls)

    async def can_use_voice_assistant(self, user_id: str) -> bool:
        return (await self.get_tier_limits(user_id)).voice_assistant

    async def has_multi_device(self, user_id: str) -> bool:
        return (await self.get_tier_limits(user_id)).multi_device

    async def has_shared_inventory(self, user_id: str) -> bool:
        return (await self.get_tier_limits(user_id)).shared_inventory

    async def get_user_tier_info(self, user_id: str, current_item_count: int) -> UserTierInfo:
        """Tier, limits, usage and paid-subscription summary for display."""
        subscription = await self.get_or_create_user_subscription(user_id)
        usage = await self.get_or_create_usage_limits(user_id)
        limits = TIER_LIMITS[subscription.tier]

        summary = None
        if subscription.stripe_customer_id:
            summary = SubscriptionSummary(
                status=subscription.subscription_status,
                stripe_customer_id=subscription.stripe_customer_id,
                stripe_subscription_id=subscription.stripe_subscription_id,
                subscription_end_date=subscription.subscription_end_date,
            )

        return UserTierInfo(
            tier=subscription.tier,
            limits=TierLimitsInfo(
                max_items=_reported_limit(limits.max_items),
                receipt_scans_per_month=_reported_limit(limits.receipt_scans_per_month),
                ai_calls_per_month=_reported_limit(limits.ai_calls_per_month),
                voice_assistant=limits.voice_assistant,
                multi_device=limits.multi_device,
                shared_inventory=limits.shared_inventory,
                max_family_members=limits.max_family_members,
            ),
            usage=TierUsageInfo(
                current_items=current_item_count,
                receipt_scans_this_month=usage.receipt_scans,
                ai_calls_this_month=usage.ai_calls,
                voice_sessions_this_month=usage.voice_sessions,
            ),
            subscription=summary,
        )
