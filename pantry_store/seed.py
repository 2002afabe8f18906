"""Demo inventory for development databases."""

import logging
import random
from dataclasses import dataclass, field

from pantry_store.db.adapter import PantryStore
from pantry_store.schemas.activity import ActivitySource, ActivityType
from pantry_store.schemas.pantry import PantryItemCreate

logger = logging.getLogger(__name__)

DEMO_USER_ID = "seed_user_test_123"

# (name, quantity, unit, category)
SAMPLE_ITEMS: list[tuple[str, float, str, str]] = [
    # Produce
    ("Organic Bananas", 6, "pieces", "produce"),
    ("Gala Apples", 4, "pieces", "produce"),
    ("Avocados", 3, "pieces", "produce"),
    ("Roma Tomatoes", 5, "pieces", "produce"),
    ("Yellow Onions", 3, "pieces", "produce"),
    ("Garlic", 1, "bulb", "produce"),
    ("Fresh Spinach", 1, "bag", "produce"),
    ("Broccoli", 2, "heads", "produce"),
    ("Carrots", 1, "lbs", "produce"),
    # Dairy
    ("Whole Milk", 1, "gallon", "dairy"),
    ("Large Eggs", 12, "pieces", "dairy"),
    ("Cheddar Cheese", 0.5, "lbs", "dairy"),
    ("Greek Yogurt", 4, "cups", "dairy"),
    ("Butter", 1, "sticks", "dairy"),
    ("Heavy Cream", 1, "pint", "dairy"),
    # Pantry
    ("Long Grain Rice", 2, "lbs", "pantry"),
    ("Spaghetti", 1, "lbs", "pantry"),
    ("All-Purpose Flour", 5, "lbs", "pantry"),
    ("Granulated Sugar", 2, "lbs", "pantry"),
    ("Extra Virgin Olive Oil", 16, "oz", "pantry"),
    ("Canned Tomatoes", 3, "cans", "pantry"),
    ("Black Beans", 2, "cans", "pantry"),
    ("Chicken Broth", 32, "oz", "pantry"),
    ("Soy Sauce", 8, "oz", "pantry"),
    ("Honey", 12, "oz", "pantry"),
    ("Peanut Butter", 16, "oz", "pantry"),
    ("Oats", 18, "oz", "pantry"),
    # Meat
    ("Chicken Breast", 2, "lbs", "meat"),
    ("Ground Beef", 1, "lbs", "meat"),
    ("Bacon", 1, "pack", "meat"),
    ("Salmon Fillet", 1, "lbs", "meat"),
    # Bakery
    ("Sandwich Bread", 1, "loaf", "bakery"),
    ("Bagels", 6, "pieces", "bakery"),
    ("Flour Tortillas", 8, "pieces", "bakery"),
    # Beverages
    ("Sparkling Water", 12, "cans", "beverages"),
    ("Coffee Beans", 12, "oz", "beverages"),
    ("Orange Juice", 64, "oz", "beverages"),
    # Frozen
    ("Frozen Broccoli", 1, "bag", "frozen"),
    ("Ice Cream", 1, "pint", "frozen"),
    ("Frozen Pizza", 2, "pieces", "frozen"),
]


@dataclass
class SeedSummary:
    user_id: str
    items: int = 0
    activities: int = 0
    categories: dict[str, int] = field(default_factory=dict)


async def clear_user_data(store: PantryStore, user_id: str) -> int:
    """Delete every item of a tenant; their activities go with them."""
    removed = 0
    for item in await store.get_all_items(user_id):
        if await store.delete_item(user_id, item.id):
            removed += 1
    return removed


async def seed_demo_data(
    store: PantryStore, user_id: str = DEMO_USER_ID, seed: int | None = None
) -> SeedSummary:
    """Replace a tenant's inventory with the sample items and some history.

    The first 15 items get random manual ADD/REMOVE activity (some REMOVEs
    as visual usage); the next five get a receipt-scan ADD. Pass ``seed``
    for a reproducible history.
    """
    rng = random.Random(seed)

    cleared = await clear_user_data(store, user_id)
    if cleared:
        logger.info(f"[SEED] Cleared {cleared} existing items for user {user_id}")

    item_ids = []
    for name, quantity, unit, category in SAMPLE_ITEMS:
        item = await store.create_item(
            user_id, PantryItemCreate(name=name, quantity=quantity, unit=unit, category=category)
        )
        item_ids.append(item.id)
    logger.info(f"[SEED] Created {len(item_ids)} items for user {user_id}")

    planned: list[tuple[str, ActivityType, float, ActivitySource]] = []
    for item_id in item_ids[:15]:
        if rng.random() > 0.4:
            planned.append((item_id, ActivityType.ADD, rng.randint(1, 5), ActivitySource.MANUAL))
        if rng.random() > 0.7:
            source = ActivitySource.VISUAL_USAGE if rng.random() > 0.5 else ActivitySource.MANUAL
            planned.append((item_id, ActivityType.REMOVE, rng.randint(1, 3), source))
    for item_id in item_ids[15:20]:
        planned.append((item_id, ActivityType.ADD, rng.randint(1, 3), ActivitySource.RECEIPT_SCAN))

    summary = SeedSummary(user_id=user_id, items=len(item_ids))
    for item_id, activity_type, amount, source in planned:
        if await store.log_activity(user_id, item_id, activity_type, amount, source):
            summary.activities += 1
    logger.info(f"[SEED] Created {summary.activities} activities")

    for item in await store.get_all_items(user_id):
        summary.categories[item.category] = summary.categories.get(item.category, 0) + 1
    return summary
