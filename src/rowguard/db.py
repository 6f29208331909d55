from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from sqler.adapter import SQLiteAdapter

from .config import get_settings
from .records import Product, VersionedProduct
from .schema import install_schema
from .store import ProductStore, VersionedProductStore

logger = logging.getLogger(__name__)


class RowGuardDB:
    """Explicit store handle: one SQLite connection plus the two product stores.

    English: Pass the handle into every operation; reset is an ordinary call.
    日本語: ハンドルを各操作に明示的に渡します。リセットも通常の呼び出しです。
    """

    def __init__(self, adapter: SQLiteAdapter, *, busy_timeout_ms: Optional[int] = None):
        self.adapter = adapter
        self.adapter.connect()
        timeout = get_settings().busy_timeout_ms if busy_timeout_ms is None else busy_timeout_ms
        self.adapter.execute(f"PRAGMA busy_timeout = {int(timeout)};")
        # per-connection; the row_version triggers rely on it
        self.adapter.execute("PRAGMA recursive_triggers = OFF;")
        self.products = ProductStore(self.adapter)
        self.versioned_products = VersionedProductStore(self.adapter)

    @classmethod
    def in_memory(cls, **kwargs) -> "RowGuardDB":
        """Private in-memory database with the schema installed."""
        db = cls(SQLiteAdapter.in_memory(shared=False), **kwargs)
        db.install()
        return db

    @classmethod
    def on_disk(cls, path: str | Path, *, install: bool = True, **kwargs) -> "RowGuardDB":
        """File database in WAL mode.

        Open one handle per execution context; pass ``install=False`` for
        extra handles on a file whose schema is already in place.
        """
        db = cls(SQLiteAdapter(str(path)), **kwargs)
        if install:
            db.adapter.execute("PRAGMA journal_mode=WAL;")
            db.adapter.commit()
            db.install()
        return db

    @classmethod
    def from_settings(cls) -> "RowGuardDB":
        settings = get_settings()
        if settings.db_path:
            return cls.on_disk(settings.db_path)
        return cls.in_memory()

    def install(self) -> None:
        install_schema(self.adapter)
        logger.debug("schema installed")

    def seed(self) -> None:
        """Insert the seed row into each empty table (startup convenience)."""
        if self.products.count() == 0:
            self.products.reset()
        if self.versioned_products.count() == 0:
            self.versioned_products.reset()

    def reset_products(self) -> Product:
        return self.products.reset()

    def reset_versioned_products(self) -> VersionedProduct:
        return self.versioned_products.reset()

    def close(self) -> None:
        self.adapter.close()

    def __enter__(self) -> "RowGuardDB":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
