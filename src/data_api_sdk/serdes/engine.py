"""
Ser/des engine.

Walks a document tree depth-first, asking the codec registry at every node
which codec handles it, then applies the per-node ``map_after`` callbacks
once the node's children are processed.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from decimal import Decimal
from typing import Any, ClassVar, Final

from ..exceptions import SerDesError
from .codecs import Codec, CodecRegistry
from .ctx import DesCtx, SerCtx, SerDesTarget, Signal, SignalKind
from .key_transformer import KeyTransformer

MAX_DEPTH: Final = 250
MAX_SAFE_INTEGER: Final = 2**53 - 1


def is_big_number(value: Any) -> bool:
    """True for values that can't survive a round-trip through a JSON double."""
    if isinstance(value, bool):
        return False
    if isinstance(value, Decimal):
        return True
    return isinstance(value, int) and abs(value) > MAX_SAFE_INTEGER


class SerDes:
    """
    Base ser/des engine.

    Subclasses provide the default codecs and the capability interface used
    by self-serializing datatypes, and may resolve type tags for nodes being
    deserialized.

    Args:
        codecs: User codecs, registered before ``defaults``
        defaults: Built-in codecs of the concrete engine
        mutate_in_place: Serialize containers in place instead of copying them
        key_transformer: Optional key renaming applied around the walk
    """

    capability: ClassVar[type | None] = None
    capability_method: ClassVar[str] = ""

    def __init__(
        self,
        codecs: Iterable[Codec] = (),
        *,
        defaults: Iterable[Codec] = (),
        mutate_in_place: bool = False,
        key_transformer: KeyTransformer | None = None,
    ):
        self.registry = CodecRegistry(list(codecs), list(defaults))
        self.mutate_in_place = mutate_in_place
        self.key_transformer = key_transformer

    @property
    def big_numbers_enabled(self) -> bool:
        """Whether responses should be parsed with exact numbers."""
        return False

    # ==================== Public API ====================

    def serialize(self, obj: Any, target: SerDesTarget = SerDesTarget.RECORD) -> tuple[Any, bool]:
        """
        Serialize a document for the wire.

        Args:
            obj: The document (usually a dict)
            target: What the document represents

        Returns:
            Tuple of (serialized document, whether big numbers are present)
        """
        if obj is None:
            return None, False

        ctx = self._new_ser_ctx(obj, target)
        result = self._serialize_node("", obj, ctx)

        if self.key_transformer is not None:
            result = self.key_transformer.serialize(result)
        return result, ctx.big_nums_present

    def deserialize(
        self,
        raw: Any,
        raw_response: dict[str, Any] | None = None,
        target: SerDesTarget = SerDesTarget.RECORD,
    ) -> Any:
        """
        Deserialize a wire document.

        Args:
            raw: The parsed JSON value
            raw_response: The full response the value came from
            target: What the document represents

        Returns:
            The deserialized document
        """
        if raw is None:
            return None

        if self.key_transformer is not None:
            raw = self.key_transformer.deserialize(raw)

        ctx = self._new_des_ctx(raw, raw_response or {}, target)
        return self._finish_deserialize(self._deserialize_node("", ctx.root_obj, ctx), ctx)

    # ==================== Hooks ====================

    def _new_ser_ctx(self, obj: Any, target: SerDesTarget) -> SerCtx:
        return SerCtx(root_obj=obj, target=target, registry=self.registry, mutate_in_place=self.mutate_in_place)

    def _new_des_ctx(self, raw: Any, raw_response: dict[str, Any], target: SerDesTarget) -> DesCtx:
        return DesCtx(root_obj=raw, target=target, registry=self.registry, raw_response=raw_response)

    def _type_tag(self, key: str | int, value: Any, ctx: DesCtx) -> str | None:
        """Logical type of a wire value, used to pick type-tier codecs."""
        return None

    def _finish_deserialize(self, value: Any, ctx: DesCtx) -> Any:
        """Last step of ``deserialize``, run on the root after every codec and post-map."""
        return value

    def _serialize_default(self, key: str | int, value: Any, ctx: SerCtx) -> Signal:
        if self.capability is not None and isinstance(value, self.capability):
            signal: Signal = getattr(value, self.capability_method)(ctx)
            return signal

        if is_big_number(value):
            ctx.big_nums_present = True
            return ctx.done()

        if isinstance(value, (dict, list, tuple)):
            return ctx.recurse()

        return ctx.done()

    def _deserialize_default(self, key: str | int, value: Any, ctx: DesCtx) -> Signal:
        if isinstance(value, (dict, list)):
            return ctx.recurse()
        return ctx.done()

    # ==================== Walk ====================

    def _serialize_node(self, key: str | int, value: Any, ctx: SerCtx) -> Any:
        ctx._post_maps.append([])

        value, descend = self._apply_codecs(
            key,
            value,
            ctx,
            candidates=lambda v: self.registry.serialize_candidates(key, ctx.path, v, ctx),
            call=lambda codec, v: codec.serialize(key, v, ctx),  # type: ignore[misc]
            default=lambda v: self._serialize_default(key, v, ctx),
        )

        if descend and ctx.depth < MAX_DEPTH:
            value = self._walk_children(value, ctx, self._serialize_node, copy=not ctx.mutate_in_place)

        return self._run_post_maps(value, ctx)

    def _deserialize_node(self, key: str | int, value: Any, ctx: DesCtx) -> Any:
        ctx._post_maps.append([])
        raw = value
        type_tag = self._type_tag(key, value, ctx)

        value, descend = self._apply_codecs(
            key,
            value,
            ctx,
            candidates=lambda v: self.registry.deserialize_candidates(key, ctx.path, v, ctx, type_tag),
            call=lambda codec, v: codec.deserialize(key, v, ctx, raw),  # type: ignore[misc]
            default=lambda v: self._deserialize_default(key, v, ctx),
        )

        if descend and ctx.depth < MAX_DEPTH:
            value = self._walk_children(value, ctx, self._deserialize_node, copy=True)

        return self._run_post_maps(value, ctx)

    def _apply_codecs(
        self,
        key: str | int,
        value: Any,
        ctx: SerCtx | DesCtx,
        candidates: Callable[[Any], Iterator[Codec]],
        call: Callable[[Codec, Any], Any],
        default: Callable[[Any], Signal],
    ) -> tuple[Any, bool]:
        """
        Run the codec tiers for one node.

        Returns:
            Tuple of (new node value, whether to walk its children)
        """
        exhausted: set[int] = set()

        while True:
            restart = False

            for codec in candidates(value):
                if id(codec) in exhausted:
                    continue

                signal = call(codec, value)
                if not isinstance(signal, Signal):
                    raise SerDesError(
                        f"{codec.kind} codec for {codec.match!r} returned {type(signal).__name__}, expected a Signal",
                        ctx.path,
                    )
                if signal.kind == SignalKind.NEVERMIND:
                    continue
                if signal.has_value:
                    value = signal.value
                if signal.kind == SignalKind.CONTINUE:
                    exhausted.add(id(codec))
                    restart = True
                    break
                return value, signal.kind == SignalKind.RECURSE

            if restart:
                continue

            signal = default(value)
            if signal.has_value:
                value = signal.value
            if signal.kind == SignalKind.CONTINUE:
                continue
            return value, signal.kind == SignalKind.RECURSE

    @staticmethod
    def _walk_children(
        value: Any,
        ctx: SerCtx | DesCtx,
        visit: Callable[[str | int, Any, Any], Any],
        copy: bool,
    ) -> Any:
        if isinstance(value, dict):
            out = {} if copy else value
            for k, v in list(value.items()):
                ctx.path.append(k)
                out[k] = visit(k, v, ctx)
                ctx.path.pop()
            return out

        if isinstance(value, (list, tuple)):
            if not copy and isinstance(value, list):
                for i, v in enumerate(value):
                    ctx.path.append(i)
                    value[i] = visit(i, v, ctx)
                    ctx.path.pop()
                return value

            items = []
            for i, v in enumerate(value):
                ctx.path.append(i)
                items.append(visit(i, v, ctx))
                ctx.path.pop()
            return items

        return value

    @staticmethod
    def _run_post_maps(value: Any, ctx: SerCtx | DesCtx) -> Any:
        for fn in ctx._post_maps.pop():
            value = fn(value)
        return value
