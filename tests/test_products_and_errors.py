"""Product cache, client error log and raw statement tests."""

import pytest

from pantry_store.schemas.client_error import ClientErrorCreate
from pantry_store.schemas.product import ProductCacheInput


def make_product(**overrides) -> ProductCacheInput:
    fields = {
        "barcode": "5000112546415",
        "name": "Cola",
        "brand": "Fizz Co",
        "category": "beverages",
        "source": "openfoodfacts",
        "nutrition": {"energy_kcal": 42, "sugars_g": 10.6},
    }
    fields.update(overrides)
    return ProductCacheInput(**fields)


@pytest.mark.asyncio
async def test_save_and_get_product(store):
    """Test a cached product round-trips, nutrition included."""
    await store.save_product(make_product())

    product = await store.get_product_by_barcode("5000112546415")

    assert product is not None
    assert product.name == "Cola"
    assert product.brand == "Fizz Co"
    assert product.nutrition == {"energy_kcal": 42, "sugars_g": 10.6}
    assert product.info_last_synced


@pytest.mark.asyncio
async def test_save_product_refreshes_existing(store):
    """Test saving the same barcode again updates the cached row."""
    await store.save_product(make_product())
    await store.save_product(make_product(name="Cola Zero", nutrition=None))

    product = await store.get_product_by_barcode("5000112546415")
    assert product.name == "Cola Zero"
    assert product.nutrition is None

    rows = await store.query("SELECT COUNT(*) AS total FROM product_cache")
    assert rows[0]["total"] == 1


@pytest.mark.asyncio
async def test_get_product_unknown_barcode(store):
    """Test an uncached barcode returns None."""
    assert await store.get_product_by_barcode("0000000000000") is None


@pytest.mark.asyncio
async def test_get_product_max_age(store):
    """Test stale products are ignored when a max age is given."""
    await store.save_product(make_product())
    await store.execute(
        "UPDATE product_cache SET info_last_synced = :synced WHERE barcode = :barcode",
        {"synced": "2020-01-01T00:00:00.000Z", "barcode": "5000112546415"},
    )

    assert await store.get_product_by_barcode("5000112546415", max_age_days=30) is None
    assert await store.get_product_by_barcode("5000112546415") is not None


@pytest.mark.asyncio
async def test_save_client_error(store, user_id):
    """Test a reported client error is stored unresolved."""
    error_id = await store.save_client_error(
        ClientErrorCreate(
            user_id=user_id,
            error_type="TypeError",
            error_message="Cannot read properties of undefined",
            component="InventoryList",
        )
    )

    [error] = await store.get_client_errors()
    assert error.id == error_id
    assert error.user_id == user_id
    assert error.component == "InventoryList"
    assert error.resolved is False


@pytest.mark.asyncio
async def test_mark_error_resolved(store):
    """Test resolving an error moves it out of the unresolved list."""
    first = await store.save_client_error(ClientErrorCreate(error_type="E", error_message="one"))
    second = await store.save_client_error(ClientErrorCreate(error_type="E", error_message="two"))

    assert await store.mark_error_resolved(first) is True
    assert await store.mark_error_resolved("does-not-exist") is False

    assert [e.id for e in await store.get_client_errors(resolved=False)] == [second]
    assert [e.id for e in await store.get_client_errors(resolved=True)] == [first]
    assert len(await store.get_client_errors()) == 2
    assert len(await store.get_client_errors(limit=1)) == 1


@pytest.mark.asyncio
async def test_execute_reports_changes(store, user_id, make_item):
    """Test raw writes report the affected row count."""
    await make_item(name="Apple")
    await make_item(name="Pear")

    result = await store.execute(
        "UPDATE pantry_items SET unit = :unit WHERE user_id = :user_id",
        {"unit": "kg", "user_id": user_id},
    )
    assert result.changes == 2

    rows = await store.query(
        "SELECT name, unit FROM pantry_items WHERE user_id = :user_id ORDER BY name",
        {"user_id": user_id},
    )
    assert rows == [{"name": "Apple", "unit": "kg"}, {"name": "Pear", "unit": "kg"}]


@pytest.mark.asyncio
async def test_transaction_commits(store, user_id, make_item):
    """Test every statement inside a successful transaction is kept."""
    item = await make_item(quantity=1)

    async def work(tx):
        await tx.execute(
            "UPDATE pantry_items SET quantity = :quantity WHERE id = :id",
            {"quantity": 9, "id": item.id},
        )
        rows = await tx.query("SELECT quantity FROM pantry_items WHERE id = :id", {"id": item.id})
        return rows[0]["quantity"]

    assert await store.transaction(work) == 9
    assert (await store.get_item_by_id(user_id, item.id)).quantity == 9


@pytest.mark.asyncio
async def test_transaction_rolls_back_on_error(store, user_id, make_item):
    """Test a failing transaction leaves no trace."""
    item = await make_item(quantity=1)

    async def work(tx):
        await tx.execute(
            "UPDATE pantry_items SET quantity = :quantity WHERE id = :id",
            {"quantity": 9, "id": item.id},
        )
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        await store.transaction(work)

    assert (await store.get_item_by_id(user_id, item.id)).quantity == 1
