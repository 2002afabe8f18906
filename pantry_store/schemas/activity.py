"""Activity ledger schemas."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class ActivityType(StrEnum):
    """Kind of quantity change."""

    ADD = "ADD"
    REMOVE = "REMOVE"
    ADJUST = "ADJUST"


class ActivitySource(StrEnum):
    """Where a quantity change came from."""

    MANUAL = "MANUAL"
    RECEIPT_SCAN = "RECEIPT_SCAN"
    VISUAL_USAGE = "VISUAL_USAGE"


class Activity(BaseModel):
    """Immutable ledger entry."""

    id: str
    user_id: str
    item_id: str
    item_name: str
    type: ActivityType
    amount: float
    timestamp: datetime
    source: ActivitySource


class UsageDetection(BaseModel):
    """Consumption detected by the vision system."""

    name: str
    quantity_used: float = Field(..., ge=0)


class VisualUsageResult(BaseModel):
    """Outcome of a visual usage batch. Failures do not abort the batch."""

    processed: list[UsageDetection] = Field(default_factory=list)
    activities: list[Activity] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
