"""Monthly usage counters per tenant."""

from sqlalchemy import Column, Index, Integer, String, UniqueConstraint

from pantry_store.database import Base
from pantry_store.models.mixins import TimestampMixin


class UsageLimitsRecord(Base, TimestampMixin):
    """Usage counters for one tenant in one calendar month."""

    __tablename__ = "usage_limits"
    __table_args__ = (
        UniqueConstraint("user_id", "month", name="uq_usage_limits_user_month"),
        Index("idx_usage_limits_user_id", "user_id"),
    )

    id = Column(String, primary_key=True)  # UUID
    user_id = Column(String, nullable=False)
    month = Column(String, nullable=False)  # YYYY-MM
    receipt_scans = Column(Integer, default=0)
    ai_calls = Column(Integer, default=0)
    voice_sessions = Column(Integer, default=0)
