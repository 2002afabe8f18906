"""Pantry item model for tracking what a tenant has at home."""

from sqlalchemy import Column, Float, Index, String

from pantry_store.database import Base
from pantry_store.models.mixins import CreatedAtMixin


class PantryItemRecord(Base, CreatedAtMixin):
    """Pantry item row, owned by exactly one tenant."""

    __tablename__ = "pantry_items"
    __table_args__ = (
        Index("idx_pantry_items_user_id", "user_id"),
        Index("idx_pantry_items_category", "category"),
        Index("idx_pantry_items_name", "name"),
        Index("idx_pantry_items_barcode", "barcode"),
    )

    id = Column(String, primary_key=True)  # UUID
    user_id = Column(String, nullable=False)
    name = Column(String, nullable=False)
    barcode = Column(String, nullable=True)
    quantity = Column(Float, nullable=False, default=0)
    unit = Column(String, nullable=False)
    category = Column(String, nullable=False)
    last_updated = Column(String, nullable=False)  # ISO 8601
