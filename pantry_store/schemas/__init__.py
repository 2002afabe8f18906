"""Pydantic schemas for domain entities and inputs."""

from pantry_store.schemas.activity import (
    Activity,
    ActivitySource,
    ActivityType,
    UsageDetection,
    VisualUsageResult,
)
from pantry_store.schemas.client_error import ClientError, ClientErrorCreate
from pantry_store.schemas.pantry import PantryItem, PantryItemCreate, PantryItemUpdate
from pantry_store.schemas.product import ProductCacheInput, ProductInfo
from pantry_store.schemas.subscription import (
    TIER_LIMITS,
    SubscriptionStatus,
    SubscriptionUpdate,
    UsageCheck,
    UsageCounter,
    UsageLimits,
    UserSubscription,
    UserTier,
    UserTierInfo,
)

__all__ = [
    "PantryItem",
    "PantryItemCreate",
    "PantryItemUpdate",
    "Activity",
    "ActivityType",
    "ActivitySource",
    "UsageDetection",
    "VisualUsageResult",
    "ProductCacheInput",
    "ProductInfo",
    "ClientError",
    "ClientErrorCreate",
    "UserTier",
    "SubscriptionStatus",
    "UserSubscription",
    "SubscriptionUpdate",
    "UsageLimits",
    "UsageCounter",
    "UsageCheck",
    "UserTierInfo",
    "TIER_LIMITS",
]
