"""Product cache model for barcode lookups."""

from sqlalchemy import Column, Index, String, Text

from pantry_store.database import Base
from pantry_store.models.mixins import TimestampMixin


class ProductCacheRecord(Base, TimestampMixin):
    """Cached product details keyed by barcode. Shared by all tenants."""

    __tablename__ = "product_cache"
    __table_args__ = (Index("idx_product_cache_updated_at", "updated_at"),)

    barcode = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    brand = Column(String, nullable=True)
    category = Column(String, nullable=False)
    image_url = Column(String, nullable=True)
    ingredients = Column(Text, nullable=True)
    nutrition = Column(Text, nullable=True)  # JSON object
    source = Column(String, nullable=False)
    info_last_synced = Column(String, nullable=False)  # ISO 8601
