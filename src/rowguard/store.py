from __future__ import annotations

import contextlib
import logging
import sqlite3
from decimal import Decimal
from typing import Any, Generic, Iterator, Mapping, Optional, Sequence, TypeVar

from sqler.adapter import NotConnectedError

from .errors import RecordNotFoundError, StoreUnavailableError
from .outcomes import Applied, ConflictDetected, NotFound, WriteOutcome
from .records import (
    SEED_NAME,
    SEED_PRICE,
    SEED_STOCK,
    Product,
    TrackedRecord,
    VersionedProduct,
    to_name,
    to_price,
    to_stock,
)
from .schema import PRODUCTS, VERSIONED_PRODUCTS, WRITABLE_COLUMNS
from .token import VersionToken

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=TrackedRecord)

STORE_ERRORS = (sqlite3.OperationalError, NotConnectedError)


def column_values(changes: Mapping[str, Any]) -> tuple[list[str], list[Any]]:
    """Validate a field subset and convert it to (columns, params) in a stable order."""
    unknown = set(changes) - set(WRITABLE_COLUMNS)
    if unknown:
        raise ValueError(f"cannot write field(s): {', '.join(sorted(unknown))}")
    columns = [c for c in WRITABLE_COLUMNS if c in changes]
    return columns, [to_column(c, changes[c]) for c in columns]


def to_column(name: str, value: Any) -> Any:
    if name == "price":
        return str(to_price(value))
    if name == "stock":
        return to_stock(value)
    return to_name(value)


def product_from_row(row: Sequence[Any]) -> Product:
    return Product(id=row[0], name=row[1], stock=row[2], price=row[3])


def versioned_from_row(row: Sequence[Any]) -> VersionedProduct:
    """Build a copy from (id, name, stock, price, row_version)."""
    record = VersionedProduct(id=row[0], name=row[1], stock=row[2], price=row[3])
    record._adopt(VersionToken.from_counter(row[4]))
    return record


class TableStore(Generic[R]):
    """Shared read, seed and direct-write paths over one product table.

    A store borrows the adapter of its ``RowGuardDB`` handle; one handle is
    used from one execution context at a time.
    """

    table: str
    columns: Sequence[str] = ("id", "name", "stock", "price")

    def __init__(self, adapter):
        self.adapter = adapter

    # -- plumbing ---------------------------------------------------------

    @contextlib.contextmanager
    def _store_errors(self, op: str) -> Iterator[None]:
        try:
            yield
        except STORE_ERRORS as exc:
            logger.error("%s on %s failed: %s", op, self.table, exc)
            raise StoreUnavailableError(f"{op} on {self.table} failed: {exc}") from exc

    @contextlib.contextmanager
    def _transaction(self, op: str) -> Iterator[None]:
        """Run the block in one write transaction, committed on success."""
        with self._store_errors(op):
            # IMMEDIATE takes the write lock up front so concurrent writers queue
            self.adapter.execute("BEGIN IMMEDIATE;")
            try:
                yield
                self.adapter.commit()
            except BaseException:
                self._rollback()
                raise

    def _rollback(self) -> None:
        # the connection may already be closed or the transaction gone
        with contextlib.suppress(*STORE_ERRORS):
            self.adapter.execute("ROLLBACK;")

    def _fetch_one(self, sql: str, params: Sequence[Any] = ()) -> Optional[Sequence[Any]]:
        rows = self.adapter.execute(sql, list(params)).fetchall()
        return rows[0] if rows else None

    def _select(self) -> str:
        return f"SELECT {', '.join(self.columns)} FROM {self.table}"

    def _load(self, row: Sequence[Any]) -> R:
        raise NotImplementedError

    # -- reads ------------------------------------------------------------

    def find(self, record_id: int) -> Optional[R]:
        with self._store_errors("find"):
            row = self._fetch_one(f"{self._select()} WHERE id = ?;", [record_id])
        return None if row is None else self._load(row)

    def get(self, record_id: int) -> R:
        """Load a fresh, clean copy of the row or raise ``RecordNotFoundError``."""
        record = self.find(record_id)
        if record is None:
            raise RecordNotFoundError(self.table, record_id)
        return record

    def first(self) -> R:
        with self._store_errors("first"):
            row = self._fetch_one(f"{self._select()} ORDER BY id LIMIT 1;")
        if row is None:
            raise RecordNotFoundError(self.table, None)
        return self._load(row)

    def all(self) -> list[R]:
        with self._store_errors("all"):
            rows = self.adapter.execute(f"{self._select()} ORDER BY id;").fetchall()
        return [self._load(row) for row in rows]

    def count(self) -> int:
        with self._store_errors("count"):
            return self._fetch_one(f"SELECT COUNT(*) FROM {self.table};")[0]

    # -- writes -----------------------------------------------------------

    def _insert(self, name: str, stock: int, price: Decimal | str) -> int:
        self.adapter.execute(
            f"INSERT INTO {self.table} (name, stock, price) VALUES (?, ?, ?);",
            [to_column("name", name), to_column("stock", stock), to_column("price", price)],
        )
        return self._fetch_one("SELECT last_insert_rowid();")[0]

    def insert(self, name: str, stock: int, price: Decimal | str) -> R:
        with self._transaction("insert"):
            record_id = self._insert(name, stock, price)
        logger.debug("inserted %s row %s", self.table, record_id)
        return self.get(record_id)

    def write_direct(self, record_id: int, changes: Mapping[str, Any]) -> int:
        """Unconditional write of a field subset, bypassing any loaded copy.

        This is the path an independent writer takes. Returns the number of
        rows touched (0 when the id is unknown).
        """
        columns, params = column_values(changes)
        if not columns:
            return 0
        assignments = ", ".join(f"{c} = ?" for c in columns)
        with self._transaction("write_direct"):
            self.adapter.execute(
                f"UPDATE {self.table} SET {assignments} WHERE id = ?;", [*params, record_id]
            )
            touched = self._fetch_one("SELECT changes();")[0]
        logger.debug("direct write on %s row %s: %s", self.table, record_id, columns)
        return touched

    def reset(self) -> R:
        """Delete every row and insert the single seed row."""
        with self._transaction("reset"):
            self.adapter.execute(f"DELETE FROM {self.table};")
            record_id = self._insert(SEED_NAME, SEED_STOCK, SEED_PRICE)
        logger.info("%s reset to seed row %s", self.table, record_id)
        return self.get(record_id)


class ProductStore(TableStore[Product]):
    """Bare products: every write succeeds, field by field."""

    table = PRODUCTS

    def _load(self, row: Sequence[Any]) -> Product:
        return product_from_row(row)

    def write(self, record_id: int, changes: Mapping[str, Any]) -> Applied | NotFound:
        """Apply ``changes`` with no comparison step; last writer wins per field."""
        columns, params = column_values(changes)
        with self._transaction("write"):
            if columns:
                assignments = ", ".join(f"{c} = ?" for c in columns)
                self.adapter.execute(
                    f"UPDATE {self.table} SET {assignments} WHERE id = ?;", [*params, record_id]
                )
                found = self._fetch_one("SELECT changes();")[0] == 1
            else:
                found = self._fetch_one(f"SELECT 1 FROM {self.table} WHERE id = ?;", [record_id]) is not None
        if not found:
            logger.warning("write on %s: row %s not found", self.table, record_id)
            return NotFound(record_id=record_id, table=self.table)
        logger.debug("applied %s to %s row %s", columns, self.table, record_id)
        return Applied(record_id=record_id, written=tuple(columns))


class VersionedProductStore(TableStore[VersionedProduct]):
    """Products guarded by a store-assigned ``row_version`` token."""

    table = VERSIONED_PRODUCTS
    columns = ("id", "name", "stock", "price", "row_version")

    def _load(self, row: Sequence[Any]) -> VersionedProduct:
        return versioned_from_row(row)

    def current_token(self, record_id: int) -> VersionToken:
        with self._store_errors("current_token"):
            row = self._fetch_one(f"SELECT row_version FROM {self.table} WHERE id = ?;", [record_id])
        if row is None:
            raise RecordNotFoundError(self.table, record_id)
        return VersionToken.from_counter(row[0])

    def write(
        self, record_id: int, changes: Mapping[str, Any], expected_token: VersionToken
    ) -> WriteOutcome:
        """Apply ``changes`` only if the stored token still equals ``expected_token``.

        The comparison and the update are one ``UPDATE ... WHERE row_version = ?``
        statement, so two writers holding the same token cannot both succeed.
        The outcome is decided and the resulting row read inside the same
        transaction. An empty change set only compares.
        """
        if not isinstance(expected_token, VersionToken):
            raise TypeError("expected_token must be a VersionToken")
        columns, params = column_values(changes)
        with self._transaction("write"):
            matched = False
            if columns:
                assignments = ", ".join(f"{c} = ?" for c in columns)
                self.adapter.execute(
                    f"UPDATE {self.table} SET {assignments} WHERE id = ? AND row_version = ?;",
                    [*params, record_id, expected_token.counter],
                )
                matched = self._fetch_one("SELECT changes();")[0] == 1
            row = self._fetch_one(f"{self._select()} WHERE id = ?;", [record_id])

        if row is None:
            logger.warning("conditional write on %s: row %s not found", self.table, record_id)
            return NotFound(record_id=record_id, table=self.table)

        actual = VersionToken.from_counter(row[4])
        if matched or (not columns and actual == expected_token):
            logger.debug(
                "applied %s to %s row %s, token %s -> %s",
                columns, self.table, record_id, expected_token, actual,
            )
            return Applied(
                record_id=record_id,
                row_version=actual,
                written=tuple(columns),
                current=self._load(row).values(),
            )

        logger.warning(
            "conflict on %s row %s: expected token %s, found %s",
            self.table, record_id, expected_token, actual,
        )
        return ConflictDetected(
            record_id=record_id,
            expected=expected_token,
            actual=actual,
            current=self._load(row).values(),
        )
