from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, Field

from rowguard import Applied, Product, VersionedProduct

"""
Pydantic request/response schemas for the FastAPI example.

English: Keep API shapes explicit and OpenAPI-friendly. Tokens travel as base64.
日本語: API 形状を明示して OpenAPI に反映します。トークンは base64 で送受信します。
"""


class ProductOut(BaseModel):
    """Bare product row.

    日本語: バージョンなしの商品。
    """

    id: int
    name: str
    stock: int
    price: Decimal

    @classmethod
    def from_record(cls, record: Product) -> "ProductOut":
        return cls(**record.values())


class VersionedProductOut(ProductOut):
    """Versioned product row with its row_version rendered as base64.

    日本語: base64 の row_version 付き商品。
    """

    row_version: str = Field(examples=["AAAAAAAAB9E="])

    @classmethod
    def from_record(cls, record: VersionedProduct) -> "VersionedProductOut":
        return cls(**record.values(), row_version=record.row_version.encode())

    @classmethod
    def from_applied(cls, applied: Applied) -> "VersionedProductOut":
        return cls(**applied.current, row_version=applied.row_version.encode())


class ProductPatch(BaseModel):
    """Partial update (PATCH); only the fields sent are written.

    日本語: 部分更新。送信したフィールドだけを書き込みます。
    """

    name: Optional[str] = Field(default=None, max_length=100)
    stock: Optional[int] = None
    price: Optional[Decimal] = None


class DemoOut(BaseModel):
    """Result of one demonstration run.

    日本語: デモ実行結果。
    """

    message: str
    details: dict[str, Any]
    explanation: dict[str, Any]
