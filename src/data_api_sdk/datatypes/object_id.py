"""ObjectId datatype."""

from __future__ import annotations

import itertools
import os
import re
import secrets
import time
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from ..exceptions import SerDesError
from .base import SerializableForCollection, SerializableForTable

if TYPE_CHECKING:
    from ..serdes.ctx import DesCtx, SerCtx, Signal

_HEX24 = re.compile(r"^[0-9a-fA-F]{24}$")

_RANDOM = secrets.token_bytes(3)
_PID = (os.getpid() % 0xFFFF).to_bytes(2, "big")
_counter = itertools.count(secrets.randbelow(0xFFFFFF))


def _generate(timestamp: int | None = None) -> str:
    seconds = int(time.time()) if timestamp is None else timestamp
    raw = (
        (seconds % 0xFFFFFFFF).to_bytes(4, "big")
        + _RANDOM
        + _PID
        + (next(_counter) % 0xFFFFFF).to_bytes(3, "big")
    )
    return raw.hex()


class ObjectId(SerializableForCollection, SerializableForTable):
    """
    A 12-byte MongoDB-style object id.

    Args:
        value: 24-char hex string, another ObjectId, an epoch-seconds
            timestamp to generate from, or None to generate a new id
    """

    __slots__ = ("_raw",)

    def __init__(self, value: str | int | ObjectId | None = None):
        if isinstance(value, ObjectId):
            self._raw = value._raw
        elif isinstance(value, str):
            if not _HEX24.match(value):
                raise ValueError("ObjectId must be a 24-character hex string")
            self._raw = value.lower()
        elif value is None or (isinstance(value, int) and not isinstance(value, bool)):
            self._raw = _generate(value)
        else:
            raise TypeError(f"ObjectId must be a string, an int, None or an ObjectId, got {type(value).__name__}")

    @property
    def timestamp(self) -> datetime:
        """Creation time encoded in the first four bytes."""
        return datetime.fromtimestamp(int(self._raw[:8], 16), tz=UTC)

    def serialize_for_collection(self, ctx: SerCtx) -> Signal:
        return ctx.done({"$objectId": self._raw})

    def serialize_for_table(self, ctx: SerCtx) -> Signal:
        raise SerDesError("ObjectId can't be stored in a table; use a string or a uuid column instead", ctx.path)

    @classmethod
    def deserialize_for_collection(cls, key: str | int, value: Any, ctx: DesCtx, raw: Any) -> Signal:
        return ctx.done(cls(value["$objectId"]))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ObjectId):
            return self._raw == other._raw
        if isinstance(other, str):
            return self._raw == other.lower()
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._raw)

    def __str__(self) -> str:
        return self._raw

    def __repr__(self) -> str:
        return f'ObjectId("{self._raw}")'
