from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .outcomes import ConflictDetected


class RowGuardError(Exception):
    """Base class for rowguard errors."""


class RecordNotFoundError(RowGuardError, LookupError):
    """Raised when an operation targets an id absent from the store."""

    def __init__(self, table: str, record_id: int | None):
        self.table = table
        self.record_id = record_id
        if record_id is None:
            super().__init__(f"no rows in {table}")
        else:
            super().__init__(f"{table} row {record_id} not found")


class StoreUnavailableError(RowGuardError):
    """The backing store could not complete the call (closed, busy, I/O).

    The failed statement has been rolled back. Retrying a conditional write
    safely needs a fresh read of the token first, so no retry happens here.
    """


class StaleVersionError(RowGuardError):
    """Exception form of a ``ConflictDetected`` outcome."""

    def __init__(self, conflict: ConflictDetected):
        self.conflict = conflict
        super().__init__(
            f"row {conflict.record_id} was modified by another writer "
            f"(expected {conflict.expected}, found {conflict.actual})"
        )
