import pytest

from rowguard import RowGuardDB


@pytest.fixture(scope="function")
def db():
    """in-memory handle with one seed row in each table"""
    db = RowGuardDB.in_memory()
    db.reset_products()
    db.reset_versioned_products()

    yield db

    db.close()


@pytest.fixture(scope="function")
def product(db):
    return db.products.first()


@pytest.fixture(scope="function")
def vproduct(db):
    return db.versioned_products.first()


@pytest.fixture(scope="function")
def disk_path(tmp_path):
    """seeded on-disk database file; open extra handles with install=False"""
    path = tmp_path / "rowguard.db"
    db = RowGuardDB.on_disk(path)
    db.reset_products()
    db.reset_versioned_products()
    db.close()
    return path
