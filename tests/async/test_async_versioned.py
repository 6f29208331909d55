import pytest

from rowguard import Applied, AsyncRowGuardDB, ConflictDetected, NotFound, VersionToken, async_attempt_save


@pytest.mark.asyncio
async def test_async_save_bumps_token_and_detects_stale(async_db):
    store = async_db.versioned_products
    p = await store.first()
    t0 = p.row_version

    p.stock = 90
    outcome = await async_attempt_save(store, p)
    assert isinstance(outcome, Applied)
    assert p.row_version != t0
    assert outcome.row_version == p.row_version
    assert outcome.current["stock"] == 90

    # simulate an external writer
    await async_db.adapter.execute(
        "UPDATE products_with_version SET stock = 50 WHERE id = ?;", [p.id]
    )
    await async_db.adapter.commit()

    p.name = "Mine"
    conflict = await async_attempt_save(store, p)
    assert isinstance(conflict, ConflictDetected)
    assert conflict.current["stock"] == 50
    assert (await store.get(p.id)).name == "Widget"


@pytest.mark.asyncio
async def test_async_retry_after_reload(async_db):
    store = async_db.versioned_products
    p = await store.first()
    await store.write_direct(p.id, {"stock": 50})
    p.price = "27.50"
    assert not (await async_attempt_save(store, p)).ok

    fresh = await store.get(p.id)
    fresh.price = "27.50"
    assert (await async_attempt_save(store, fresh)).ok
    stored = await store.get(p.id)
    assert (stored.stock, str(stored.price)) == (50, "27.50")


@pytest.mark.asyncio
async def test_async_missing_row(async_db):
    outcome = await async_db.versioned_products.write(-1, {"stock": 1}, VersionToken.from_counter(1))
    assert isinstance(outcome, NotFound)
    assert await async_db.versioned_products.find(-1) is None


@pytest.mark.asyncio
async def test_async_handles_share_file(tmp_path):
    path = tmp_path / "async.db"
    a = await AsyncRowGuardDB.on_disk(path).connect()
    b = await AsyncRowGuardDB.on_disk(path).connect(install=False)
    try:
        seeded = await a.reset_versioned_products()
        token = seeded.row_version
        first = await a.versioned_products.write(seeded.id, {"stock": 1}, token)
        second = await b.versioned_products.write(seeded.id, {"stock": 2}, token)
        assert isinstance(first, Applied)
        assert isinstance(second, ConflictDetected)
        assert (await b.versioned_products.get(seeded.id)).stock == 1
    finally:
        await a.close()
        await b.close()
