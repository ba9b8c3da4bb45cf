"""
Ser/des context and codec signals.

Every codec function returns exactly one ``Signal``. The context object is
created fresh for each top-level ``serialize``/``deserialize`` call and is
threaded explicitly through the whole tree walk.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import IntEnum, StrEnum
from typing import TYPE_CHECKING, Any, Final

from ..exceptions import SerDesError

if TYPE_CHECKING:
    from .codecs import CodecRegistry


class _Unset:
    """Marker for "no replacement value" in a signal."""

    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Final = _Unset()


class SignalKind(IntEnum):
    """What the engine should do with the value a codec produced."""

    DONE = 0
    RECURSE = 1
    CONTINUE = 2
    NEVERMIND = 3


@dataclass(frozen=True, slots=True)
class Signal:
    """
    The return contract of every codec function.

    Attributes:
        kind: The signal kind
        value: Replacement value for the current node, or ``UNSET`` to keep it
    """

    kind: SignalKind
    value: Any = UNSET

    @property
    def has_value(self) -> bool:
        return self.value is not UNSET

    @property
    def is_terminal(self) -> bool:
        """True for signals that stop codec matching at the current node."""
        return self.kind in (SignalKind.DONE, SignalKind.RECURSE)


NEVERMIND: Final = Signal(SignalKind.NEVERMIND)


class SerDesTarget(StrEnum):
    """What kind of document is being (de)serialized."""

    RECORD = "record"
    FILTER = "filter"
    SORT = "sort"
    PROJECTION = "projection"
    INSERTED_ID = "insertedId"


PostMap = Callable[[Any], Any]


@dataclass
class BaseSerDesCtx:
    """
    State shared by serialization and deserialization walks.

    Attributes:
        root_obj: The top-level document being built
        target: What the document represents (record, filter, ...)
        registry: The codec registry of the serializer running this walk
        path: Keys/indices from the root to the current node
        custom_state: Free-form storage for codecs that need to share state
    """

    root_obj: Any
    target: SerDesTarget
    registry: CodecRegistry
    path: list[str | int] = field(default_factory=list)
    custom_state: dict[str, Any] = field(default_factory=dict)
    _post_maps: list[list[PostMap]] = field(default_factory=list, repr=False)

    @property
    def key(self) -> str | int:
        """Key of the current node (``""`` for the root)."""
        return self.path[-1] if self.path else ""

    @property
    def depth(self) -> int:
        return len(self.path)

    def done(self, value: Any = UNSET) -> Signal:
        """Final value for this node; its children won't be visited."""
        return Signal(SignalKind.DONE, value)

    def recurse(self, value: Any = UNSET) -> Signal:
        """Substitute the value (if given) and walk into its children."""
        return Signal(SignalKind.RECURSE, value)

    def continue_(self, value: Any = UNSET) -> Signal:
        """Substitute the value (if given) and match codecs against it again."""
        return Signal(SignalKind.CONTINUE, value)

    def replace(self, value: Any) -> Signal:
        """Shorthand for ``continue_(value)``."""
        return Signal(SignalKind.CONTINUE, value)

    def nevermind(self) -> Signal:
        """This codec doesn't handle the value; try the next one."""
        return NEVERMIND

    def map_after(self, fn: PostMap) -> None:
        """
        Register a transform to run once the current node's subtree is done.

        Callbacks of one node run in registration order, after all of its
        children were processed; each return value replaces the node value.
        """
        if not self._post_maps:
            raise SerDesError("map_after() may only be called while a node is being processed", self.path)
        self._post_maps[-1].append(fn)


@dataclass
class SerCtx(BaseSerDesCtx):
    """Serialization context."""

    mutate_in_place: bool = False
    big_nums_present: bool = False


@dataclass
class DesCtx(BaseSerDesCtx):
    """Deserialization context."""

    raw_response: dict[str, Any] = field(default_factory=dict)
