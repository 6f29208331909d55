import pytest

from rowguard import RowGuardDB


@pytest.fixture(scope="function")
def disk_path(tmp_path):
    path = tmp_path / "contention.db"
    db = RowGuardDB.on_disk(path)
    db.reset_versioned_products()
    db.close()
    return path
