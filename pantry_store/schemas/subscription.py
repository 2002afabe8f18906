"""Subscription tier and usage schemas."""

import math
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel


class UserTier(StrEnum):
    """Subscription tiers."""

    FREE = "free"
    PRO = "pro"
    FAMILY = "family"


class SubscriptionStatus(StrEnum):
    """Payment-processor subscription status."""

    ACTIVE = "active"
    CANCELED = "canceled"
    INCOMPLETE = "incomplete"
    INCOMPLETE_EXPIRED = "incomplete_expired"
    PAST_DUE = "past_due"
    TRIALING = "trialing"
    UNPAID = "unpaid"


class UsageCounter(StrEnum):
    """Monthly usage counters, valued by their column name."""

    RECEIPT_SCANS = "receipt_scans"
    AI_CALLS = "ai_calls"
    VOICE_SESSIONS = "voice_sessions"


class TierLimits(BaseModel):
    """Feature limits for a tier. ``math.inf`` means unlimited."""

    max_items: float
    receipt_scans_per_month: float
    ai_calls_per_month: float
    voice_assistant: bool
    multi_device: bool
    shared_inventory: bool
    max_family_members: int


TIER_LIMITS: dict[UserTier, TierLimits] = {
    UserTier.FREE: TierLimits(
        max_items=50,
        receipt_scans_per_month=5,
        ai_calls_per_month=0,
        voice_assistant=False,
        multi_device=False,
        shared_inventory=False,
        max_family_members=1,
    ),
    UserTier.PRO: TierLimits(
        max_items=math.inf,
        receipt_scans_per_month=math.inf,
        ai_calls_per_month=math.inf,
        voice_assistant=True,
        multi_device=True,
        shared_inventory=False,
        max_family_members=1,
    ),
    UserTier.FAMILY: TierLimits(
        max_items=math.inf,
        receipt_scans_per_month=math.inf,
        ai_calls_per_month=math.inf,
        voice_assistant=True,
        multi_device=True,
        shared_inventory=True,
        max_family_members=5,
    ),
}


class UserSubscription(BaseModel):
    """Subscription record for a tenant."""

    id: str
    user_id: str
    tier: UserTier
    stripe_customer_id: str | None = None
    stripe_subscription_id: str | None = None
    stripe_price_id: str | None = None
    subscription_status: SubscriptionStatus | None = None
    subscription_start_date: str | None = None
    subscription_end_date: str | None = None
    created_at: datetime
    updated_at: datetime


class SubscriptionUpdate(BaseModel):
    """Partial subscription update; only explicitly set fields are written."""

    tier: UserTier | None = None
    stripe_customer_id: str | None = None
    stripe_subscription_id: str | None = None
    stripe_price_id: str | None = None
    subscription_status: SubscriptionStatus | None = None
    subscription_start_date: str | None = None
    subscription_end_date: str | None = None


class UsageLimits(BaseModel):
    """Usage counters for one tenant in one month."""

    id: str
    user_id: str
    month: str  # YYYY-MM
    receipt_scans: int = 0
    ai_calls: int = 0
    voice_sessions: int = 0
    created_at: datetime
    updated_at: datetime


class UsageCheck(BaseModel):
    """Answer of an advisory quota check."""

    allowed: bool
    remaining: float


class TierLimitsInfo(BaseModel):
    """Limits as reported to clients; -1 means unlimited."""

    max_items: int
    receipt_scans_per_month: int
    ai_calls_per_month: int
    voice_assistant: bool
    multi_device: bool
    shared_inventory: bool
    max_family_members: int


class TierUsageInfo(BaseModel):
    """Current usage figures."""

    current_items: int
    receipt_scans_this_month: int
    ai_calls_this_month: int
    voice_sessions_this_month: int


class SubscriptionSummary(BaseModel):
    """Paid subscription details, present once a customer exists."""

    status: SubscriptionStatus | None
    stripe_customer_id: str | None
    stripe_subscription_id: str | None
    subscription_end_date: str | None


class UserTierInfo(BaseModel):
    """Tier, limits, usage and subscription summary for a tenant."""

    tier: UserTier
    limits: TierLimitsInfo
    usage: TierUsageInfo
    subscription: SubscriptionSummary | None
