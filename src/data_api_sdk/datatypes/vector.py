"""Vector datatype."""

from __future__ import annotations

import base64
import struct
from collections.abc import Iterator, Sequence
from typing import TYPE_CHECKING, Any

from .base import SerializableForCollection, SerializableForTable

if TYPE_CHECKING:
    from ..serdes.ctx import DesCtx, SerCtx, Signal


class DataAPIVector(SerializableForCollection, SerializableForTable):
    """
    An embedding vector.

    Sent over the wire as ``{"$binary": "<base64 of big-endian float32s>"}``;
    accepted back either in that form or as a plain list of numbers.

    Args:
        value: A sequence of floats, packed big-endian float32 bytes, a
            ``{"$binary": ...}`` dict, or another vector
    """

    __slots__ = ("_values",)

    def __init__(self, value: Sequence[float] | bytes | dict[str, str] | DataAPIVector):
        if isinstance(value, DataAPIVector):
            self._values: tuple[float, ...] = value._values
        elif isinstance(value, (bytes, bytearray)):
            self._values = self._unpack(bytes(value))
        elif isinstance(value, dict):
            if "$binary" not in value:
                raise ValueError(f"Invalid vector representation: {value!r}")
            self._values = self._unpack(base64.b64decode(value["$binary"]))
        elif isinstance(value, Sequence) and not isinstance(value, str):
            self._values = tuple(float(v) for v in value)
        else:
            raise TypeError(f"Can't build a vector from {type(value).__name__}")

    @staticmethod
    def _unpack(raw: bytes) -> tuple[float, ...]:
        if len(raw) % 4:
            raise ValueError(f"Binary vector length must be a multiple of 4, got {len(raw)} bytes")
        return struct.unpack(f">{len(raw) // 4}f", raw)

    def to_list(self) -> list[float]:
        return list(self._values)

    def to_bytes(self) -> bytes:
        return struct.pack(f">{len(self._values)}f", *self._values)

    def to_base64(self) -> str:
        return base64.b64encode(self.to_bytes()).decode("ascii")

    def serialize_for_collection(self, ctx: SerCtx) -> Signal:
        return ctx.done({"$binary": self.to_base64()})

    def serialize_for_table(self, ctx: SerCtx) -> Signal:
        return ctx.done({"$binary": self.to_base64()})

    @classmethod
    def deserialize_for_collection(cls, key: str | int, value: Any, ctx: DesCtx, raw: Any) -> Signal:
        return ctx.done(cls(value))

    @classmethod
    def deserialize_for_table(cls, key: str | int, value: Any, ctx: DesCtx, raw: Any) -> Signal:
        return ctx.done(cls(value))

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[float]:
        return iter(self._values)

    def __getitem__(self, index: int) -> float:
        return self._values[index]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, DataAPIVector):
            return self._values == other._values
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._values)

    def __repr__(self) -> str:
        preview = ", ".join(f"{v:g}" for v in self._values[:5])
        more = ", ..." if len(self._values) > 5 else ""
        return f"DataAPIVector([{preview}{more}], len={len(self._values)})"
