"""Services built on top of a pantry store."""

from pantry_store.services.subscription import SubscriptionService, current_month

__all__ = ["SubscriptionService", "current_month"]
