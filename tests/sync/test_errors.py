import pytest

from rowguard import RowGuardDB, StoreUnavailableError


def test_closed_handle_is_unavailable():
    db = RowGuardDB.in_memory()
    pid = db.reset_versioned_products().id
    db.close()
    with pytest.raises(StoreUnavailableError):
        db.versioned_products.get(pid)
    with pytest.raises(StoreUnavailableError):
        db.products.write_direct(pid, {"stock": 1})


def test_locked_database_surfaces_without_retry(disk_path):
    holder = RowGuardDB.on_disk(disk_path, install=False)
    writer = RowGuardDB.on_disk(disk_path, install=False, busy_timeout_ms=0)
    try:
        product = writer.versioned_products.first()
        holder.adapter.execute("BEGIN IMMEDIATE;")

        product.stock = 1
        with pytest.raises(StoreUnavailableError) as info:
            writer.versioned_products.write(product.id, {"stock": 1}, product.row_version)
        assert "locked" in str(info.value)

        holder.adapter.execute("ROLLBACK;")
        # nothing was written and the handle is still usable
        assert writer.versioned_products.write(product.id, {"stock": 1}, product.row_version).ok
    finally:
        holder.close()
        writer.close()


def test_failed_block_rolls_back(db, vproduct):
    store = db.versioned_products
    with pytest.raises(RuntimeError):
        with store._transaction("test"):
            db.adapter.execute("UPDATE products_with_version SET stock = 0 WHERE id = ?;", [vproduct.id])
            raise RuntimeError("boom")
    after = store.get(vproduct.id)
    assert after.stock == 100
    assert after.row_version == vproduct.row_version
