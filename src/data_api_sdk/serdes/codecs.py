"""
Codec definitions and the codec registry.

A codec claims responsibility for (de)serializing the values found at some
location of a document tree. Codecs are partitioned into tiers which the
engine consults in a fixed order for every node:

1. name   - the node's key equals the codec's name
2. path   - the full path matches the codec's pattern (``"*"`` = any segment)
3. type   - deserialize: the node's type tag; serialize: the value's class
4. custom - catch-all codecs with optional guard predicates

Within a tier, codecs run in registration order.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, ClassVar

from ..exceptions import CodecConfigurationError
from .ctx import DesCtx, SerCtx, Signal

SerializeFn = Callable[[str | int, Any, SerCtx], Signal]
DeserializeFn = Callable[[str | int, Any, DesCtx, Any], Signal]
SerializeGuard = Callable[[Any, SerCtx], bool]
DeserializeGuard = Callable[[Any, DesCtx], bool]

PATH_WILDCARD = "*"


class CodecKind(StrEnum):
    """Matching strategy of a codec."""

    NAME = "name"
    PATH = "path"
    TYPE = "type"
    CLASS = "class"
    CUSTOM = "custom"


def parse_path(path: str | Sequence[str | int]) -> tuple[str | int, ...]:
    """Normalize a dotted path string or a segment sequence into a tuple."""
    if isinstance(path, str):
        return tuple(path.split(".")) if path else ()
    return tuple(path)


def path_matches(pattern: Sequence[str | int], path: Sequence[str | int]) -> bool:
    """Check a path pattern against a concrete path of the same length.

    Segments are compared as strings so that ``"0"`` matches list index ``0``.
    """
    if len(pattern) != len(path):
        return False
    return all(exp == PATH_WILDCARD or str(exp) == str(act) for exp, act in zip(pattern, path))


@dataclass(frozen=True)
class Codec:
    """
    A single (de)serialization rule.

    Attributes:
        kind: Matching strategy
        match: Field name, path pattern, type tag or class (depending on kind)
        serialize: ``(key, value, ctx) -> Signal``
        deserialize: ``(key, value, ctx, raw) -> Signal``
        serialize_class: Class whose instances this codec serializes
        serialize_guard: Predicate selecting values to serialize
        deserialize_guard: Predicate selecting values to deserialize (custom codecs)
    """

    kind: CodecKind
    match: Any = None
    serialize: SerializeFn | None = None
    deserialize: DeserializeFn | None = None
    serialize_class: type | None = None
    serialize_guard: SerializeGuard | None = None
    deserialize_guard: DeserializeGuard | None = None

    def validate(self) -> None:
        """Raise ``CodecConfigurationError`` if this codec can't be registered."""
        if not isinstance(self.kind, CodecKind):
            raise CodecConfigurationError(f"Unknown codec kind: {self.kind!r}")

        if self.serialize is None and self.deserialize is None:
            raise CodecConfigurationError(f"{self.kind} codec for {self.match!r} defines neither serialize nor deserialize")

        if self.kind == CodecKind.NAME:
            if not isinstance(self.match, str) or not self.match:
                raise CodecConfigurationError(f"Name codec requires a non-empty field name, got {self.match!r}")
        elif self.kind == CodecKind.PATH:
            if not isinstance(self.match, tuple) or not self.match:
                raise CodecConfigurationError(
                    "Path codec requires at least one path segment; use a custom codec to target the whole document"
                )
            if any(seg == "" for seg in self.match):
                raise CodecConfigurationError(f"Path codec contains an empty segment: {self.match!r}")
        elif self.kind == CodecKind.TYPE:
            if not isinstance(self.match, str) or not self.match:
                raise CodecConfigurationError(f"Type codec requires a non-empty type tag, got {self.match!r}")
        elif self.kind == CodecKind.CLASS:
            if not isinstance(self.match, type):
                raise CodecConfigurationError(f"Class codec requires a class, got {self.match!r}")
            if self.serialize is None:
                raise CodecConfigurationError(f"Class codec for {self.match.__name__} requires a serialize function")

        if self.serialize_class is not None and not isinstance(self.serialize_class, type):
            raise CodecConfigurationError(f"serialize_class must be a class, got {self.serialize_class!r}")

    @property
    def serializes_by_class(self) -> bool:
        """True if this codec belongs to the serialization class tier."""
        return self.serialize is not None and (
            self.kind == CodecKind.CLASS
            or (self.kind == CodecKind.TYPE and (self.serialize_class is not None or self.serialize_guard is not None))
        )

    def claims_class(self, value: Any, ctx: SerCtx) -> bool:
        cls = self.match if self.kind == CodecKind.CLASS else self.serialize_class
        if cls is not None and isinstance(value, cls):
            return self.serialize_guard is None or self.serialize_guard(value, ctx)
        return cls is None and self.serialize_guard is not None and self.serialize_guard(value, ctx)

    def _conflict_key(self) -> tuple[str, Any] | None:
        """Identity used to detect two codecs unconditionally claiming the same thing."""
        if self.kind == CodecKind.TYPE and self.deserialize is not None:
            return ("type", self.match)
        if self.kind == CodecKind.CLASS and self.serialize_guard is None:
            return ("class", self.match)
        return None


class Codecs:
    """
    Factory for codecs.

    Subclasses name the capability methods used when a datatype class is
    passed instead of explicit functions (see ``CollectionCodecs`` and
    ``TableCodecs``).
    """

    serialize_method: ClassVar[str | None] = None
    deserialize_method: ClassVar[str | None] = None

    @classmethod
    def _fns_from_class(cls, codec_class: type) -> dict[str, Any]:
        fns: dict[str, Any] = {}
        if cls.deserialize_method and hasattr(codec_class, cls.deserialize_method):
            fns["deserialize"] = getattr(codec_class, cls.deserialize_method)
        if cls.serialize_method and hasattr(codec_class, cls.serialize_method):
            method = cls.serialize_method

            def serialize(_key: str | int, value: Any, ctx: SerCtx) -> Signal:
                if not isinstance(value, codec_class):
                    return ctx.nevermind()
                result: Signal = getattr(value, method)(ctx)
                return result

            fns["serialize"] = serialize
            fns["serialize_class"] = codec_class
        if not fns:
            raise CodecConfigurationError(f"{codec_class.__name__} does not implement {cls.__name__} capabilities")
        return fns

    @classmethod
    def for_name(
        cls,
        name: str,
        codec_class: type | None = None,
        *,
        serialize: SerializeFn | None = None,
        deserialize: DeserializeFn | None = None,
    ) -> Codec:
        """Codec for every field named ``name``, at any depth."""
        if codec_class is not None:
            fns = cls._fns_from_class(codec_class)
            fns.pop("serialize_class", None)
            codec = Codec(CodecKind.NAME, name, **fns)
        else:
            codec = Codec(CodecKind.NAME, name, serialize=serialize, deserialize=deserialize)
        codec.validate()
        return codec

    @classmethod
    def for_path(
        cls,
        path: str | Sequence[str | int],
        *,
        serialize: SerializeFn | None = None,
        deserialize: DeserializeFn | None = None,
    ) -> Codec:
        """Codec for the field at ``path`` (``"a.*.b"`` or ``["a", "*", "b"]``)."""
        codec = Codec(CodecKind.PATH, parse_path(path), serialize=serialize, deserialize=deserialize)
        codec.validate()
        return codec

    @classmethod
    def for_type(
        cls,
        type_tag: str,
        codec_class: type | None = None,
        *,
        serialize: SerializeFn | None = None,
        deserialize: DeserializeFn | None = None,
        serialize_class: type | None = None,
        serialize_guard: SerializeGuard | None = None,
    ) -> Codec:
        """
        Codec for a logical type.

        Deserialization matches nodes whose type tag equals ``type_tag``.
        Serialization only happens when ``serialize_class`` or
        ``serialize_guard`` identifies the values to claim.
        """
        if codec_class is not None:
            codec = Codec(CodecKind.TYPE, type_tag, **cls._fns_from_class(codec_class))
        else:
            codec = Codec(
                CodecKind.TYPE,
                type_tag,
                serialize=serialize,
                deserialize=deserialize,
                serialize_class=serialize_class,
                serialize_guard=serialize_guard,
            )
        codec.validate()
        return codec

    @classmethod
    def for_class(
        cls,
        klass: type,
        *,
        serialize: SerializeFn,
        guard: SerializeGuard | None = None,
    ) -> Codec:
        """Serialization-only codec for instances of ``klass``."""
        codec = Codec(CodecKind.CLASS, klass, serialize=serialize, serialize_guard=guard)
        codec.validate()
        return codec

    @classmethod
    def custom(
        cls,
        *,
        serialize: SerializeFn | None = None,
        deserialize: DeserializeFn | None = None,
        serialize_guard: SerializeGuard | None = None,
        deserialize_guard: DeserializeGuard | None = None,
    ) -> Codec:
        """Catch-all codec, tried last at every node its guard accepts."""
        codec = Codec(
            CodecKind.CUSTOM,
            serialize=serialize,
            deserialize=deserialize,
            serialize_guard=serialize_guard,
            deserialize_guard=deserialize_guard,
        )
        codec.validate()
        return codec


class CodecRegistry:
    """
    Codecs partitioned into matching tiers.

    Each positional argument is a group of codecs (e.g. user codecs, then the
    built-in defaults). Groups are registered in order, so codecs of earlier
    groups win ties within a tier. Two codecs of the same group
    unconditionally claiming the same type tag or class are rejected.
    """

    def __init__(self, *groups: Iterable[Codec]):
        self._name: dict[str, list[Codec]] = {}
        self._path: list[Codec] = []
        self._type: dict[str, list[Codec]] = {}
        self._class: list[Codec] = []
        self._custom: list[Codec] = []
        self._count = 0

        for group in groups:
            group = list(group)
            self._check_group(group)
            for codec in group:
                self._register(codec)

    @staticmethod
    def _check_group(group: list[Codec]) -> None:
        seen: set[tuple[str, Any]] = set()
        for codec in group:
            if not isinstance(codec, Codec):
                raise CodecConfigurationError(f"Expected a Codec, got {codec!r}")
            codec.validate()
            conflict = codec._conflict_key()
            if conflict is None:
                continue
            if conflict in seen:
                what = conflict[1].__name__ if isinstance(conflict[1], type) else conflict[1]
                raise CodecConfigurationError(f"Multiple codecs unconditionally claim {conflict[0]} {what!r}")
            seen.add(conflict)

    def _register(self, codec: Codec) -> None:
        self._count += 1
        match codec.kind:
            case CodecKind.NAME:
                self._name.setdefault(codec.match, []).append(codec)
            case CodecKind.PATH:
                self._path.append(codec)
            case CodecKind.TYPE:
                if codec.deserialize is not None:
                    self._type.setdefault(codec.match, []).append(codec)
                if codec.serializes_by_class:
                    self._class.append(codec)
            case CodecKind.CLASS:
                self._class.append(codec)
            case CodecKind.CUSTOM:
                self._custom.append(codec)

    def __len__(self) -> int:
        return self._count

    def type_codecs(self, type_tag: str) -> list[Codec]:
        """Deserializing codecs registered for ``type_tag``, in registration order."""
        return list(self._type.get(type_tag, ()))

    def serialize_candidates(self, key: str | int, path: Sequence[str | int], value: Any, ctx: SerCtx) -> Iterator[Codec]:
        """Yield the codecs to try when serializing a node, tier by tier."""
        for codec in self._name.get(str(key), ()):
            if codec.serialize is not None:
                yield codec

        for codec in self._path:
            if codec.serialize is not None and path_matches(codec.match, path):
                yield codec

        for codec in self._class:
            if codec.claims_class(value, ctx):
                yield codec

        for codec in self._custom:
            if codec.serialize is not None and (codec.serialize_guard is None or codec.serialize_guard(value, ctx)):
                yield codec

    def deserialize_candidates(
        self,
        key: str | int,
        path: Sequence[str | int],
        value: Any,
        ctx: DesCtx,
        type_tag: str | None,
    ) -> Iterator[Codec]:
        """Yield the codecs to try when deserializing a node, tier by tier."""
        for codec in self._name.get(str(key), ()):
            if codec.deserialize is not None:
                yield codec

        for codec in self._path:
            if codec.deserialize is not None and path_matches(codec.match, path):
                yield codec

        if type_tag is not None:
            yield from self._type.get(type_tag, ())

        for codec in self._custom:
            if codec.deserialize is not None and (
                codec.deserialize_guard is None or codec.deserialize_guard(value, ctx)
            ):
                yield codec
