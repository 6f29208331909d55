from decimal import Decimal

import pytest
from pydantic import ValidationError

from rowguard import FieldChange, Stage, capture, diff


def test_capture_is_pure(vproduct):
    snap = capture(vproduct, Stage.INITIAL_LOAD)
    assert snap.stage is Stage.INITIAL_LOAD
    assert snap.row_version == vproduct.row_version.encode()
    assert not vproduct.is_dirty


def test_bare_snapshot_has_no_token(product):
    assert capture(product).row_version is None


def test_snapshot_is_immutable(product):
    snap = capture(product)
    with pytest.raises(ValidationError):
        snap.stock = 1


def test_snapshot_does_not_follow_the_record(product):
    snap = capture(product)
    product.stock = 5
    assert snap.stock == 100


def test_diff_lists_changed_fields(db, vproduct):
    before = capture(vproduct)
    db.versioned_products.write_direct(vproduct.id, {"stock": 50})
    after = capture(db.versioned_products.get(vproduct.id))

    changes = diff(before, after)
    assert FieldChange("stock", 100, 50) in changes
    assert {c.field for c in changes} == {"stock", "row_version"}
    assert diff(after, after) == set()


def test_diff_of_local_mutation(product):
    before = capture(product)
    product.price = "29.99"
    assert diff(before, capture(product)) == {FieldChange("price", Decimal("25.99"), Decimal("29.99"))}


def test_diff_refuses_different_rows(db, product):
    other = db.products.insert("Gadget", 1, "1")
    with pytest.raises(ValueError):
        diff(capture(product), capture(other))
