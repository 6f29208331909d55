from __future__ import annotations

import contextlib
import logging
from pathlib import Path
from typing import Any, AsyncIterator, Mapping, Optional, Sequence

from sqler.adapter import AsyncSQLiteAdapter

from .config import get_settings
from .errors import RecordNotFoundError, StoreUnavailableError
from .outcomes import Applied, ConflictDetected, NotFound, WriteOutcome
from .records import SEED_NAME, SEED_PRICE, SEED_STOCK, VersionedProduct
from .schema import VERSIONED_PRODUCTS, install_schema_async
from .store import STORE_ERRORS, column_values, to_column, versioned_from_row
from .token import VersionToken

"""
Async handle for versioned products.

English: Same conditional-write protocol as the sync store, on sqler's
AsyncSQLiteAdapter. Each coroutine context should own its handle.
日本語: 同期版と同じ条件付き書き込みを非同期アダプタ上で提供します。
"""

logger = logging.getLogger(__name__)


class AsyncVersionedProductStore:
    table = VERSIONED_PRODUCTS
    _select = f"SELECT id, name, stock, price, row_version FROM {VERSIONED_PRODUCTS}"

    def __init__(self, adapter: AsyncSQLiteAdapter):
        self.adapter = adapter

    @contextlib.asynccontextmanager
    async def _store_errors(self, op: str) -> AsyncIterator[None]:
        try:
            yield
        except STORE_ERRORS as exc:
            logger.error("%s on %s failed: %s", op, self.table, exc)
            raise StoreUnavailableError(f"{op} on {self.table} failed: {exc}") from exc

    @contextlib.asynccontextmanager
    async def _transaction(self, op: str) -> AsyncIterator[None]:
        async with self._store_errors(op):
            await self.adapter.execute("BEGIN IMMEDIATE;")
            try:
                yield
                await self.adapter.commit()
            except BaseException:
                # the connection may already be closed or the transaction gone
                with contextlib.suppress(*STORE_ERRORS):
                    await self.adapter.execute("ROLLBACK;")
                raise

    async def _fetch_one(self, sql: str, params: Sequence[Any] = ()) -> Optional[Sequence[Any]]:
        async with await self.adapter.execute(sql, list(params)) as cur:
            rows = await cur.fetchall()
        return rows[0] if rows else None

    async def find(self, record_id: int) -> Optional[VersionedProduct]:
        async with self._store_errors("find"):
            row = await self._fetch_one(f"{self._select} WHERE id = ?;", [record_id])
        return None if row is None else versioned_from_row(row)

    async def get(self, record_id: int) -> VersionedProduct:
        record = await self.find(record_id)
        if record is None:
            raise RecordNotFoundError(self.table, record_id)
        return record

    async def first(self) -> VersionedProduct:
        async with self._store_errors("first"):
            row = await self._fetch_one(f"{self._select} ORDER BY id LIMIT 1;")
        if row is None:
            raise RecordNotFoundError(self.table, None)
        return versioned_from_row(row)

    async def write_direct(self, record_id: int, changes: Mapping[str, Any]) -> int:
        columns, params = column_values(changes)
        if not columns:
            return 0
        assignments = ", ".join(f"{c} = ?" for c in columns)
        async with self._transaction("write_direct"):
            await self.adapter.execute(
                f"UPDATE {self.table} SET {assignments} WHERE id = ?;", [*params, record_id]
            )
            touched = (await self._fetch_one("SELECT changes();"))[0]
        return touched

    async def write(
        self, record_id: int, changes: Mapping[str, Any], expected_token: VersionToken
    ) -> WriteOutcome:
        """See :meth:`rowguard.store.VersionedProductStore.write`."""
        if not isinstance(expected_token, VersionToken):
            raise TypeError("expected_token must be a VersionToken")
        columns, params = column_values(changes)
        async with self._transaction("write"):
            matched = False
            if columns:
                assignments = ", ".join(f"{c} = ?" for c in columns)
                await self.adapter.execute(
                    f"UPDATE {self.table} SET {assignments} WHERE id = ? AND row_version = ?;",
                    [*params, record_id, expected_token.counter],
                )
                matched = (await self._fetch_one("SELECT changes();"))[0] == 1
            row = await self._fetch_one(f"{self._select} WHERE id = ?;", [record_id])

        if row is None:
            logger.warning("conditional write on %s: row %s not found", self.table, record_id)
            return NotFound(record_id=record_id, table=self.table)
        actual = VersionToken.from_counter(row[4])
        if matched or (not columns and actual == expected_token):
            return Applied(
                record_id=record_id,
                row_version=actual,
                written=tuple(columns),
                current=versioned_from_row(row).values(),
            )
        logger.warning(
            "conflict on %s row %s: expected token %s, found %s",
            self.table, record_id, expected_token, actual,
        )
        return ConflictDetected(
            record_id=record_id,
            expected=expected_token,
            actual=actual,
            current=versioned_from_row(row).values(),
        )

    async def reset(self) -> VersionedProduct:
        async with self._transaction("reset"):
            await self.adapter.execute(f"DELETE FROM {self.table};")
            await self.adapter.execute(
                f"INSERT INTO {self.table} (name, stock, price) VALUES (?, ?, ?);",
                [SEED_NAME, SEED_STOCK, to_column("price", SEED_PRICE)],
            )
            record_id = (await self._fetch_one("SELECT last_insert_rowid();"))[0]
        logger.info("%s reset to seed row %s", self.table, record_id)
        return await self.get(record_id)


class AsyncRowGuardDB:
    """Async store handle. ``await connect()`` before use, ``await close()`` after."""

    def __init__(self, adapter: AsyncSQLiteAdapter):
        self.adapter = adapter
        self.versioned_products = AsyncVersionedProductStore(adapter)

    @classmethod
    def in_memory(cls) -> "AsyncRowGuardDB":
        return cls(AsyncSQLiteAdapter.in_memory(shared=False))

    @classmethod
    def on_disk(cls, path: str | Path) -> "AsyncRowGuardDB":
        # sqler opens on-disk async databases in WAL mode
        return cls(AsyncSQLiteAdapter.on_disk(str(path)))

    async def connect(self, *, install: bool = True) -> "AsyncRowGuardDB":
        await self.adapter.connect()
        await self.adapter.execute(f"PRAGMA busy_timeout = {get_settings().busy_timeout_ms};")
        if install:
            await install_schema_async(self.adapter)
        else:
            await self.adapter.execute("PRAGMA recursive_triggers = OFF;")
        return self

    async def reset_versioned_products(self) -> VersionedProduct:
        return await self.versioned_products.reset()

    async def close(self) -> None:
        await self.adapter.close()


async def async_attempt_save(store: AsyncVersionedProductStore, record: VersionedProduct) -> WriteOutcome:
    """Async counterpart of :func:`rowguard.conflicts.attempt_save`."""
    if record.row_version is None:
        raise ValueError("record was not loaded from a store; it has no row_version")
    outcome = await store.write(record.id, record.pending_changes(), record.row_version)
    if isinstance(outcome, Applied):
        record._adopt(outcome.row_version)
    else:
        logger.warning("save of %s row %s rejected: %s", store.table, record.id, outcome.kind)
    return outcome
