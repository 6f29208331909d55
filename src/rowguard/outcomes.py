from __future__ import annotations

from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, field_serializer

from .errors import RecordNotFoundError, StaleVersionError
from .token import VersionToken

"""
Tagged results of a write.

English: Conflicts are ordinary results the caller branches on, not exceptions.
``raise_for_outcome`` is there for callers that want the exception form.
日本語: 競合は例外ではなく結果として返します。
"""


class _Outcome(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    record_id: int

    @property
    def ok(self) -> bool:
        return False

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class Applied(_Outcome):
    """The write was committed.

    For versioned rows ``row_version`` and ``current`` are the token and values
    read back in the write's own transaction. Both are ``None`` for bare products.
    """

    kind: Literal["applied"] = "applied"
    row_version: Optional[VersionToken] = None
    written: tuple[str, ...] = ()
    current: Optional[dict[str, Any]] = None

    @property
    def ok(self) -> bool:
        return True

    @field_serializer("row_version")
    def _token_b64(self, token: Optional[VersionToken]) -> Optional[str]:
        return None if token is None else token.encode()


class ConflictDetected(_Outcome):
    """The stored token no longer matched; nothing was written.

    ``actual`` and ``current`` are the row's token and values as persisted at
    the moment of the failed comparison, so the caller can reconcile without
    another read.
    """

    kind: Literal["conflict_detected"] = "conflict_detected"
    expected: VersionToken
    actual: VersionToken
    current: dict[str, Any]

    @field_serializer("expected", "actual")
    def _token_b64(self, token: VersionToken) -> str:
        return token.encode()


class NotFound(_Outcome):
    kind: Literal["not_found"] = "not_found"
    table: str


WriteOutcome = Union[Applied, ConflictDetected, NotFound]


def raise_for_outcome(outcome: WriteOutcome) -> Applied:
    """Return ``outcome`` when applied, otherwise raise its exception form."""
    if isinstance(outcome, Applied):
        return outcome
    if isinstance(outcome, ConflictDetected):
        raise StaleVersionError(outcome)
    raise RecordNotFoundError(outcome.table, outcome.record_id)
