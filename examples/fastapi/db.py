from __future__ import annotations

import threading
from typing import Optional

from rowguard import RowGuardDB

"""
DB bootstrap utilities for the FastAPI example.

English: Create/close a process-wide RowGuardDB handle and seed empty tables.
日本語: プロセス全体で共有する RowGuardDB を生成/破棄し、空のテーブルに初期データを入れます。
"""

_db: Optional[RowGuardDB] = None

# one connection is shared by the threadpool; transactions on it must not interleave
db_lock = threading.Lock()


def init_db(path: str | None = None) -> RowGuardDB:
    """Initialize the global DB (on-disk when path is set, otherwise in-memory).

    日本語: グローバル DB を初期化します（path 指定でオンディスク、未指定でインメモリ）。
    """
    global _db
    if _db is not None:
        return _db
    _db = RowGuardDB.on_disk(path) if path else RowGuardDB.in_memory()
    _db.seed()
    return _db


def get_db() -> RowGuardDB:
    """Return the initialized DB or raise if not yet started.

    日本語: 初期化済み DB を返します（未初期化なら例外）。
    """
    if _db is None:
        raise RuntimeError("DB not initialized. Did you forget to start the app with lifespan?")
    return _db


def close_db() -> None:
    """Close and clear the global DB.

    日本語: グローバル DB をクローズして解放します。
    """
    global _db
    if _db is not None:
        _db.close()
        _db = None
