"""Binary blob datatype (table ``blob`` columns)."""

from __future__ import annotations

import base64
from typing import TYPE_CHECKING, Any

from .base import SerializableForTable

if TYPE_CHECKING:
    from ..serdes.ctx import DesCtx, SerCtx, Signal


class DataAPIBlob(SerializableForTable):
    """Raw bytes, sent as ``{"$binary": "<base64>"}``."""

    __slots__ = ("_raw",)

    def __init__(self, data: bytes | bytearray | memoryview):
        self._raw = bytes(data)

    @classmethod
    def from_base64(cls, encoded: str) -> DataAPIBlob:
        return cls(base64.b64decode(encoded))

    def to_bytes(self) -> bytes:
        return self._raw

    def to_base64(self) -> str:
        return base64.b64encode(self._raw).decode("ascii")

    def serialize_for_table(self, ctx: SerCtx) -> Signal:
        return ctx.done({"$binary": self.to_base64()})

    @classmethod
    def deserialize_for_table(cls, key: str | int, value: Any, ctx: DesCtx, raw: Any) -> Signal:
        if isinstance(value, dict):
            value = value["$binary"]
        return ctx.done(cls.from_base64(value))

    def __len__(self) -> int:
        return len(self._raw)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, DataAPIBlob):
            return self._raw == other._raw
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._raw)

    def __repr__(self) -> str:
        return f"DataAPIBlob(len={len(self._raw)})"
