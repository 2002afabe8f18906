"""Activity model: the append-only quantity ledger."""

from sqlalchemy import CheckConstraint, Column, Float, ForeignKey, Index, String

from pantry_store.database import Base
from pantry_store.models.mixins import CreatedAtMixin


class ActivityRecord(Base, CreatedAtMixin):
    """One quantity change against a pantry item.

    Rows are never updated. They disappear only when their item is deleted.
    """

    __tablename__ = "activities"
    __table_args__ = (
        CheckConstraint("type IN ('ADD', 'REMOVE', 'ADJUST')", name="ck_activities_type"),
        CheckConstraint(
            "source IN ('MANUAL', 'RECEIPT_SCAN', 'VISUAL_USAGE')", name="ck_activities_source"
        ),
        Index("idx_activities_user_id", "user_id"),
        Index("idx_activities_item_id", "item_id"),
        Index("idx_activities_timestamp", "timestamp"),
        Index("idx_activities_type", "type"),
    )

    id = Column(String, primary_key=True)  # UUID
    user_id = Column(String, nullable=False)
    item_id = Column(String, ForeignKey("pantry_items.id", ondelete="CASCADE"), nullable=False)
    item_name = Column(String, nullable=False)  # Snapshot at write time
    type = Column(String, nullable=False)
    amount = Column(Float, nullable=False)  # Always non-negative
    timestamp = Column(String, nullable=False)  # ISO 8601
    source = Column(String, nullable=False, default="MANUAL")
