from decimal import Decimal

import pytest

from rowguard import Applied, NotFound, RecordNotFoundError, RowGuardDB, save


def test_reset_leaves_exactly_one_seed_row(db):
    db.products.insert("Gadget", 5, "9.50")
    assert db.products.count() == 2
    seeded = db.reset_products()
    assert db.products.count() == 1
    assert (seeded.name, seeded.stock, seeded.price) == ("Widget", 100, Decimal("25.99"))


def test_insert_and_get_roundtrip(db):
    p = db.products.insert("Gadget", 5, Decimal("9.5"))
    got = db.products.get(p.id)
    assert got.values() == {"id": p.id, "name": "Gadget", "stock": 5, "price": Decimal("9.50")}
    assert [r.id for r in db.products.all()] == sorted(r.id for r in db.products.all())


def test_get_missing_raises_and_find_returns_none(db):
    assert db.products.find(-1) is None
    with pytest.raises(RecordNotFoundError) as info:
        db.products.get(-1)
    assert info.value.record_id == -1
    assert isinstance(info.value, LookupError)


def test_first_on_empty_table_raises():
    db = RowGuardDB.in_memory()
    try:
        with pytest.raises(RecordNotFoundError):
            db.products.first()
    finally:
        db.close()


def test_write_applies_only_given_fields(db, product):
    outcome = db.products.write(product.id, {"price": "30"})
    assert isinstance(outcome, Applied)
    assert outcome.row_version is None
    assert outcome.written == ("price",)
    stored = db.products.get(product.id)
    assert stored.price == Decimal("30.00")
    assert stored.name == "Widget"


def test_write_missing_row_is_not_found(db):
    outcome = db.products.write(-1, {"stock": 1})
    assert isinstance(outcome, NotFound)
    assert not outcome.ok


def test_write_rejects_unknown_or_store_owned_fields(db, product):
    for field in ("id", "row_version", "colour"):
        with pytest.raises(ValueError):
            db.products.write(product.id, {field: 1})
    assert db.products.get(product.id).values() == product.values()


def test_write_rejects_overlong_name_before_the_store(db, vproduct):
    token = vproduct.row_version
    with pytest.raises(ValueError):
        db.versioned_products.write(vproduct.id, {"name": "x" * 101}, token)
    with pytest.raises(ValueError):
        db.products.write_direct(db.products.first().id, {"name": "x" * 101})
    assert db.versioned_products.current_token(vproduct.id) == token
    outcome = db.versioned_products.write(vproduct.id, {"name": "x" * 100}, token)
    assert isinstance(outcome, Applied)


@pytest.mark.parametrize("stock", [1.9, Decimal("2.5"), "1.9", True, None, float("inf")])
def test_write_rejects_non_whole_stock(db, vproduct, stock):
    with pytest.raises(ValueError):
        db.versioned_products.write(vproduct.id, {"stock": stock}, vproduct.row_version)
    assert db.versioned_products.get(vproduct.id).stock == vproduct.stock


def test_write_accepts_integral_stock_values(db, product):
    for stock, stored in ((7.0, 7), (Decimal("8"), 8), ("9", 9)):
        db.products.write(product.id, {"stock": stock})
        assert db.products.get(product.id).stock == stored


def test_write_direct_reports_rows_touched(db, product):
    assert db.products.write_direct(product.id, {"stock": 75}) == 1
    assert db.products.write_direct(-1, {"stock": 75}) == 0
    assert db.products.write_direct(product.id, {}) == 0


def test_disjoint_fields_external_value_survives(db, product):
    product.name = "Super Widget"
    product.price = "29.99"
    db.products.write_direct(product.id, {"stock": 75})

    assert save(db.products, product).ok
    stored = db.products.get(product.id)
    assert (stored.name, stored.stock, stored.price) == ("Super Widget", 75, Decimal("29.99"))
    assert not product.is_dirty


def test_overlapping_field_local_value_wins(db, product):
    product.stock = 1000
    db.products.write_direct(product.id, {"stock": 75, "name": "Other"})

    save(db.products, product)
    stored = db.products.get(product.id)
    assert stored.stock == 1000
    assert stored.name == "Other"


def test_save_with_nothing_dirty_writes_nothing(db, product):
    db.products.write_direct(product.id, {"stock": 1})
    assert save(db.products, product).ok
    assert db.products.get(product.id).stock == 1


def test_on_disk_handles_see_each_other(disk_path):
    a = RowGuardDB.on_disk(disk_path, install=False)
    b = RowGuardDB.on_disk(disk_path, install=False)
    try:
        pid = a.products.first().id
        b.products.write_direct(pid, {"stock": 3})
        assert a.products.get(pid).stock == 3
    finally:
        a.close()
        b.close()
