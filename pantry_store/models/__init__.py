"""SQLAlchemy table models."""

from pantry_store.models.activity import ActivityRecord
from pantry_store.models.client_error import ClientErrorRecord
from pantry_store.models.migration import MigrationRecord
from pantry_store.models.pantry import PantryItemRecord
from pantry_store.models.product_cache import ProductCacheRecord
from pantry_store.models.subscription import UserSubscriptionRecord
from pantry_store.models.usage import UsageLimitsRecord

__all__ = [
    "PantryItemRecord",
    "ActivityRecord",
    "UserSubscriptionRecord",
    "UsageLimitsRecord",
    "ProductCacheRecord",
    "ClientErrorRecord",
    "MigrationRecord",
]
