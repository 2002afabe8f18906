"""User subscription model (one row per tenant)."""

from sqlalchemy import Column, Index, String

from pantry_store.database import Base
from pantry_store.models.mixins import TimestampMixin


class UserSubscriptionRecord(Base, TimestampMixin):
    """Subscription tier and payment-processor references for a tenant."""

    __tablename__ = "user_subscriptions"
    __table_args__ = (Index("idx_user_subscriptions_user_id", "user_id"),)

    id = Column(String, primary_key=True)  # UUID
    user_id = Column(String, unique=True, nullable=False)
    tier = Column(String, nullable=False, default="free")  # "free" | "pro" | "family"

    # Null until a paid relationship exists
    stripe_customer_id = Column(String, nullable=True)
    stripe_subscription_id = Column(String, nullable=True)
    stripe_price_id = Column(String, nullable=True)
    subscription_status = Column(String, nullable=True)
    subscription_start_date = Column(String, nullable=True)
    subscription_end_date = Column(String, nullable=True)
