"""
Capability interfaces for self-serializing datatypes.

A class implementing one of these is serialized by calling the method on the
instance, unless a codec claims the value first. Classes may also provide
the matching ``deserialize_for_*`` classmethod so they can be passed directly
to ``CollectionCodecs.for_type``/``TableCodecs.for_type``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..serdes.ctx import SerCtx, Signal


class SerializableForCollection(ABC):
    """Datatype that knows how to serialize itself into a collection document."""

    @abstractmethod
    def serialize_for_collection(self, ctx: SerCtx) -> Signal: ...


class SerializableForTable(ABC):
    """Datatype that knows how to serialize itself into a table row."""

    @abstractmethod
    def serialize_for_table(self, ctx: SerCtx) -> Signal: ...
