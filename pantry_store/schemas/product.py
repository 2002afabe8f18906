"""Product cache schemas."""

from typing import Any

from pydantic import BaseModel


class ProductCacheInput(BaseModel):
    """Product details to cache for a barcode."""

    barcode: str
    name: str
    category: str
    source: str
    brand: str | None = None
    image_url: str | None = None
    ingredients: str | None = None
    nutrition: dict[str, Any] | None = None


class ProductInfo(ProductCacheInput):
    """Cached product details."""

    info_last_synced: str
