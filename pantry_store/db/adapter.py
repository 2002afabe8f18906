"""Storage contract shared by every pantry store engine.

Every operation is a coroutine. The embedded engine completes each call
without suspending; the pooled engine awaits real I/O. Callers cannot tell
the difference.
"""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Protocol, TypeVar

from pantry_store.schemas.activity import (
    Activity,
    ActivitySource,
    ActivityType,
    UsageDetection,
    VisualUsageResult,
)
from pantry_store.schemas.client_error import ClientError, ClientErrorCreate
from pantry_store.schemas.pantry import PantryItem, PantryItemCreate, PantryItemUpdate
from pantry_store.schemas.product import ProductCacheInput, ProductInfo

T = TypeVar("T")

Params = Mapping[str, Any] | None


@dataclass(slots=True)
class ExecuteResult:
    """Outcome of a raw INSERT/UPDATE/DELETE."""

    changes: int
    last_id: int | str | None = None


class Transaction(Protocol):
    """Statement runner bound to one open transaction."""

    async def query(self, sql: str, params: Params = None) -> list[dict[str, Any]]:
        """Run a SELECT inside the transaction."""

    async def execute(self, sql: str, params: Params = None) -> ExecuteResult:
        """Run a write inside the transaction."""


class PantryStore(ABC):
    """Tenant-scoped pantry inventory and activity ledger.

    ``user_id`` is mandatory on every tenant operation and scopes every query;
    no call returns another tenant's rows. Missing targets are reported by
    returning ``None`` (``False`` for deletes), never by raising.
    """

    engine_name: str = ""

    @abstractmethod
    async def initialize(self) -> None:
        """Open the connection(s) and bring the schema up to date.

        Calling it again before ``close`` does nothing.
        """

    @abstractmethod
    async def close(self) -> None:
        """Release the connection(s). The store may be initialized again."""

    @property
    @abstractmethod
    def is_initialized(self) -> bool:
        """Whether ``initialize`` has run and ``close`` has not."""

    # ------------------------------------------------------------------
    # Pantry items
    # ------------------------------------------------------------------

    @abstractmethod
    async def get_all_items(self, user_id: str, category: str | None = None) -> list[PantryItem]:
        """All items for the tenant, ordered by name ignoring case."""

    @abstractmethod
    async def get_item_by_id(self, user_id: str, item_id: str) -> PantryItem | None:
        """Look up one item by id."""

    @abstractmethod
    async def get_item_by_name(self, user_id: str, name: str) -> PantryItem | None:
        """Look up one item by exact name, ignoring case."""

    @abstractmethod
    async def create_item(self, user_id: str, data: PantryItemCreate) -> PantryItem:
        """Persist a new item with a fresh id."""

    @abstractmethod
    async def update_item(
        self, user_id: str, item_id: str, changes: PantryItemUpdate
    ) -> PantryItem | None:
        """Write the fields set on ``changes`` and bump last_updated."""

    @abstractmethod
    async def delete_item(self, user_id: str, item_id: str) -> bool:
        """Delete an item and, by cascade, its activities."""

    @abstractmethod
    async def adjust_item_quantity(
        self, user_id: str, item_id: str, delta: float
    ) -> PantryItem | None:
        """Add ``delta`` to the quantity, never going below zero."""

    @abstractmethod
    async def get_categories(self, user_id: str) -> list[str]:
        """Distinct categories for the tenant, ordered ignoring case."""

    # ------------------------------------------------------------------
    # Activity ledger
    # ------------------------------------------------------------------

    @abstractmethod
    async def get_activities(
        self,
        user_id: str,
        limit: int = 20,
        offset: int = 0,
        item_id: str | None = None,
    ) -> list[Activity]:
        """Most recent activities first."""

    @abstractmethod
    async def get_activity_count(self, user_id: str, item_id: str | None = None) -> int:
        """Total activities, for pagination."""

    @abstractmethod
    async def log_activity(
        self,
        user_id: str,
        item_id: str,
        activity_type: ActivityType,
        amount: float,
        source: ActivitySource = ActivitySource.MANUAL,
    ) -> Activity | None:
        """Append an activity and apply it to the item's quantity atomically."""

    async def process_visual_usage(
        self,
        user_id: str,
        detections: Sequence[UsageDetection],
        source: ActivitySource = ActivitySource.VISUAL_USAGE,
    ) -> VisualUsageResult:
        """Log a REMOVE for every detection that matches an item by name.

        Unmatched detections are reported in ``errors`` and the rest of the
        batch still runs.
        """
        result = VisualUsageResult()

        for detection in detections:
            item = await self.get_item_by_name(user_id, detection.name)
            if item is None:
                result.errors.append(f"Item not found: {detection.name}")
                continue

            activity = await self.log_activity(
                user_id,
                item.id,
                ActivityType.REMOVE,
                detection.quantity_used,
                source,
            )
            if activity is None:
                result.errors.append(f"Failed to log usage for: {detection.name}")
                continue

            result.processed.append(detection)
            result.activities.append(activity)

        return result

    # ------------------------------------------------------------------
    # Raw access for the subscription service
    # ------------------------------------------------------------------

    @abstractmethod
    async def query(self, sql: str, params: Params = None) -> list[dict[str, Any]]:
        """Run a SELECT written with ``:name`` bind parameters."""

    @abstractmethod
    async def execute(self, sql: str, params: Params = None) -> ExecuteResult:
        """Run an INSERT/UPDATE/DELETE written with ``:name`` bind parameters."""

    @abstractmethod
    async def transaction(self, fn: Callable[[Transaction], Awaitable[T]]) -> T:
        """Run ``fn`` inside one transaction, rolling back if it raises.

        ``fn`` must issue its statements through the ``Transaction`` it
        receives, not through the store.
        """

    # ------------------------------------------------------------------
    # Product cache
    # ------------------------------------------------------------------

    @abstractmethod
    async def get_product_by_barcode(
        self, barcode: str, max_age_days: int | None = None
    ) -> ProductInfo | None:
        """Cached product, optionally only if synced within ``max_age_days``."""

    @abstractmethod
    async def save_product(self, product: ProductCacheInput) -> None:
        """Insert or refresh a cached product."""

    # ------------------------------------------------------------------
    # Client errors
    # ------------------------------------------------------------------

    @abstractmethod
    async def save_client_error(self, error: ClientErrorCreate) -> str:
        """Store a client error and return its id."""

    @abstractmethod
    async def get_client_errors(
        self, resolved: bool | None = None, limit: int = 50
    ) -> list[ClientError]:
        """Newest client errors first."""

    @abstractmethod
    async def mark_error_resolved(self, error_id: str) -> bool:
        """Flag a client error as resolved."""
