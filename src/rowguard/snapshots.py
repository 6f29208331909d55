from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict

from .records import TrackedRecord, VersionedProduct


class Stage(str, Enum):
    INITIAL_LOAD = "initial_load"
    AFTER_LOCAL_MUTATION = "after_local_mutation"
    AFTER_EXTERNAL_WRITE = "after_external_write"
    AFTER_SAVE_ATTEMPT = "after_save_attempt"
    FINAL = "final"


class FieldChange(NamedTuple):
    field: str
    old: Any
    new: Any


class Snapshot(BaseModel):
    """Read-only evidence of a record's observable state at one step.

    ``row_version`` is the base64 token for versioned records, ``None`` for
    bare ones. A snapshot never writes back to the store.
    """

    model_config = ConfigDict(frozen=True)

    compared_fields: ClassVar[tuple[str, ...]] = ("name", "stock", "price", "row_version")

    stage: Optional[Stage] = None
    id: int
    name: str
    stock: int
    price: Decimal
    row_version: Optional[str] = None


def capture(record: TrackedRecord, stage: Optional[Stage] = None) -> Snapshot:
    token = record.row_version if isinstance(record, VersionedProduct) else None
    return Snapshot(
        stage=stage,
        id=record.id,
        name=record.name,
        stock=record.stock,
        price=record.price,
        row_version=None if token is None else token.encode(),
    )


def diff(a: Snapshot, b: Snapshot) -> set[FieldChange]:
    """Fields whose value differs from ``a`` to ``b``."""
    if a.id != b.id:
        raise ValueError(f"cannot diff snapshots of different rows ({a.id} vs {b.id})")
    return {
        FieldChange(name, getattr(a, name), getattr(b, name))
        for name in Snapshot.compared_fields
        if getattr(a, name) != getattr(b, name)
    }
