"""Pantry item schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class PantryItemCreate(BaseModel):
    """Create a pantry item."""

    name: str
    quantity: float = Field(..., ge=0)
    unit: str
    category: str
    barcode: str | None = None


class PantryItemUpdate(BaseModel):
    """Update a pantry item.

    Only fields explicitly set are written; see ``model_fields_set``.
    An empty barcode clears the stored value.
    """

    name: str | None = None
    barcode: str | None = None
    quantity: float | None = Field(None, ge=0)
    unit: str | None = None
    category: str | None = None


class PantryItem(BaseModel):
    """A pantry item owned by one tenant."""

    id: str
    user_id: str
    name: str
    barcode: str | None = None
    quantity: float
    unit: str
    category: str
    last_updated: datetime
