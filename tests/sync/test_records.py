from decimal import Decimal

import pytest
from pydantic import ValidationError

from rowguard import Product, VersionedProduct


def test_fresh_copy_is_clean(product):
    assert not product.is_dirty
    assert product.pending_changes() == {}
    assert product.values() == {"id": product.id, "name": "Widget", "stock": 100, "price": Decimal("25.99")}


def test_assignment_marks_field_dirty(product):
    product.name = "Super Widget"
    product.price = "29.99"
    assert product.dirty_fields == {"name", "price"}
    assert product.pending_changes() == {"name": "Super Widget", "price": Decimal("29.99")}


def test_assigning_equal_value_still_marks_dirty(product):
    product.stock = product.stock
    assert product.dirty_fields == {"stock"}


def test_id_is_immutable(product):
    with pytest.raises(ValidationError):
        product.id = 42
    assert not product.is_dirty


def test_assignment_is_validated(product):
    with pytest.raises(ValidationError):
        product.stock = "many"
    with pytest.raises(ValidationError):
        product.price = "cheap"
    with pytest.raises(ValidationError):
        product.name = "x" * 101


def test_price_is_two_decimal_fixed_point():
    p = Product(id=1, name="A", stock=1, price=29.999)
    assert p.price == Decimal("30.00")
    p.price = 1
    assert str(p.price) == "1.00"


def test_stock_sign_is_not_enforced(product):
    product.stock = -5
    assert product.pending_changes() == {"stock": -5}


def test_row_version_is_read_only(vproduct):
    token = vproduct.row_version
    assert token is not None
    with pytest.raises(AttributeError):
        vproduct.row_version = None
    assert vproduct.row_version == token


def test_unsaved_versioned_copy_has_no_token():
    assert VersionedProduct(id=1, name="A", stock=1, price="1").row_version is None
