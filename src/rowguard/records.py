from __future__ import annotations

from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation
from typing import Any, ClassVar, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator

from .token import VersionToken

"""
In-memory record copies with per-field dirty tracking.

English: Assigning a field marks it dirty; stores write exactly the dirty set.
日本語: フィールドへの代入で dirty になり、保存時は dirty なフィールドだけを書き込みます。
"""

SEED_NAME = "Widget"
SEED_STOCK = 100
SEED_PRICE = Decimal("25.99")
NAME_MAX_LENGTH = 100

_CENTS = Decimal("0.01")


def to_name(value: Any) -> str:
    name = str(value)
    if len(name) > NAME_MAX_LENGTH:
        raise ValueError(f"name longer than {NAME_MAX_LENGTH} characters")
    return name


def to_stock(value: Any) -> int:
    """Coerce to a whole stock count; fractional values are rejected, not truncated."""
    if isinstance(value, bool):
        raise ValueError(f"not a stock count: {value!r}")
    try:
        stock = int(value)
    except (TypeError, ValueError, OverflowError) as exc:
        raise ValueError(f"not a stock count: {value!r}") from exc
    if not isinstance(value, str) and stock != value:
        raise ValueError(f"not a whole stock count: {value!r}")
    return stock


def to_price(value: Any) -> Decimal:
    """Coerce to a two-decimal fixed-point price (the stored precision)."""
    if isinstance(value, float):
        value = repr(value)
    try:
        return Decimal(value).quantize(_CENTS, rounding=ROUND_HALF_EVEN)
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"not a price: {value!r}") from exc


class TrackedRecord(BaseModel):
    """Disposable copy of a product row.

    ``id`` is immutable. Any assignment to a tracked field (even of an equal
    value) adds it to ``dirty_fields``.
    """

    model_config = ConfigDict(validate_assignment=True)

    tracked_fields: ClassVar[tuple[str, ...]] = ("name", "stock", "price")

    id: int = Field(frozen=True)
    name: str = Field(max_length=NAME_MAX_LENGTH)
    stock: int
    price: Decimal

    _dirty: set[str] = PrivateAttr(default_factory=set)

    @field_validator("price", mode="before")
    @classmethod
    def _quantize_price(cls, value: Any) -> Decimal:
        return to_price(value)

    def __setattr__(self, name: str, value: Any) -> None:
        super().__setattr__(name, value)
        if name in self.tracked_fields:
            self._dirty.add(name)

    @property
    def dirty_fields(self) -> frozenset[str]:
        return frozenset(self._dirty)

    @property
    def is_dirty(self) -> bool:
        return bool(self._dirty)

    def pending_changes(self) -> dict[str, Any]:
        """Values of the locally assigned fields, ready for a write."""
        return {name: getattr(self, name) for name in self.tracked_fields if name in self._dirty}

    def mark_clean(self) -> None:
        self._dirty.clear()

    def values(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "stock": self.stock, "price": self.price}


class Product(TrackedRecord):
    """Row of ``products``: no concurrency metadata, last writer wins per field."""


class VersionedProduct(TrackedRecord):
    """Row of ``products_with_version`` carrying the store-assigned token.

    日本語: ストアが割り当てる行バージョン付きのレコード。
    """

    _row_version: Optional[VersionToken] = PrivateAttr(default=None)

    @property
    def row_version(self) -> Optional[VersionToken]:
        return self._row_version

    def _adopt(self, token: VersionToken) -> None:
        # store-only: called on load and after an applied write
        self._row_version = token
        self._dirty.clear()
