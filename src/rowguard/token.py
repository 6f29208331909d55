from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass

TOKEN_SIZE = 8


@dataclass(frozen=True, slots=True)
class VersionToken:
    """Opaque row version stamped by the store on every write.

    Eight raw bytes holding the database-wide write counter (big-endian), the
    same shape as a SQL Server ``rowversion``. Only equality is meaningful.
    Tokens are rendered as base64 wherever they leave the process.
    """

    raw: bytes

    def __post_init__(self):
        if not isinstance(self.raw, (bytes, bytearray)):
            raise TypeError("VersionToken expects bytes")
        if len(self.raw) != TOKEN_SIZE:
            raise ValueError(f"VersionToken must be {TOKEN_SIZE} bytes, got {len(self.raw)}")
        object.__setattr__(self, "raw", bytes(self.raw))

    @classmethod
    def from_counter(cls, value: int) -> "VersionToken":
        """Build a token from the integer kept in the ``row_version`` column."""
        return cls(int(value).to_bytes(TOKEN_SIZE, "big", signed=False))

    @property
    def counter(self) -> int:
        """Integer form used when comparing against the stored column."""
        return int.from_bytes(self.raw, "big", signed=False)

    def encode(self) -> str:
        return base64.b64encode(self.raw).decode("ascii")

    @classmethod
    def decode(cls, text: str) -> "VersionToken":
        """Parse the base64 rendering produced by :meth:`encode`."""
        try:
            raw = base64.b64decode(text.encode("ascii"), validate=True)
        except (binascii.Error, UnicodeEncodeError) as exc:
            raise ValueError(f"not a base64 version token: {text!r}") from exc
        return cls(raw)

    def __str__(self) -> str:
        return self.encode()

    def __repr__(self) -> str:
        return f"VersionToken({self.encode()!r})"
