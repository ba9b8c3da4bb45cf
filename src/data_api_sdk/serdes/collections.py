"""
Collection ser/des.

Collection documents are schemaless; typed values travel as single-key
"extended JSON" objects such as ``{"$date": 1700000000000}`` or
``{"$uuid": "..."}``, whose key is the node's type tag.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from ..datatypes import DataAPIVector, ObjectId, SerializableForCollection
from ..exceptions import SerDesError
from .big_numbers import NumRep, NumRepFn, coerce_nums, num_rep_fn_from_config
from .codecs import Codec, Codecs
from .ctx import DesCtx, SerCtx, SerDesTarget, Signal
from .engine import SerDes
from .key_transformer import KeyTransformer

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


class CollectionCodecs(Codecs):
    """Codec factory for collections; datatype classes use the ``*_for_collection`` methods."""

    serialize_method = "serialize_for_collection"
    deserialize_method = "deserialize_for_collection"

    @classmethod
    def defaults(cls) -> list[Codec]:
        """The built-in collection codecs."""
        return [
            cls.for_type("$date", serialize_class=datetime, serialize=_ser_date, deserialize=_des_date),
            cls.for_name("$vector", DataAPIVector),
            cls.for_type("$uuid", serialize_class=UUID, serialize=_ser_uuid, deserialize=_des_uuid),
            cls.for_type("$objectId", ObjectId),
        ]


def _ser_date(key: str | int, value: datetime, ctx: SerCtx) -> Signal:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return ctx.done({"$date": (value - EPOCH) // timedelta(milliseconds=1)})


def _des_date(key: str | int, value: dict[str, Any], ctx: DesCtx, raw: Any) -> Signal:
    return ctx.done(EPOCH + timedelta(milliseconds=int(value["$date"])))


def _ser_uuid(key: str | int, value: UUID, ctx: SerCtx) -> Signal:
    return ctx.done({"$uuid": str(value)})


def _des_uuid(key: str | int, value: dict[str, Any], ctx: DesCtx, raw: Any) -> Signal:
    return ctx.done(UUID(value["$uuid"]))


class CollectionSerDes(SerDes):
    """
    Ser/des engine for collection documents.

    Args:
        codecs: User codecs, tried before the defaults
        mutate_in_place: Serialize containers in place
        key_transformer: Optional key renaming
        enable_big_numbers: ``{"path.*": rep}`` mapping or ``path -> rep``
            function. Enables exact number parsing of responses and coerces
            every number to the representation configured for its path.
    """

    capability = SerializableForCollection
    capability_method = "serialize_for_collection"

    def __init__(
        self,
        codecs: Iterable[Codec] = (),
        *,
        mutate_in_place: bool = False,
        key_transformer: KeyTransformer | None = None,
        enable_big_numbers: Mapping[str, NumRep | str] | NumRepFn | None = None,
    ):
        super().__init__(
            codecs,
            defaults=CollectionCodecs.defaults(),
            mutate_in_place=mutate_in_place,
            key_transformer=key_transformer,
        )
        self._get_num_rep: NumRepFn | None
        if enable_big_numbers is None:
            self._get_num_rep = None
        elif callable(enable_big_numbers):
            self._get_num_rep = enable_big_numbers
        else:
            self._get_num_rep = num_rep_fn_from_config(enable_big_numbers)

    @property
    def big_numbers_enabled(self) -> bool:
        """Whether responses should be parsed with exact numbers."""
        return self._get_num_rep is not None

    def _new_des_ctx(self, raw: Any, raw_response: dict[str, Any], target: SerDesTarget) -> DesCtx:
        if self._get_num_rep is not None:
            raw = coerce_nums(raw, self._get_num_rep)
        return super()._new_des_ctx(raw, raw_response, target)

    def _serialize_default(self, key: str | int, value: Any, ctx: SerCtx) -> Signal:
        # documents have no column type to read "NaN"/"Infinity" strings back as floats
        if isinstance(value, float) and not math.isfinite(value):
            raise SerDesError(f"Non-finite number {value!r} can't be stored in a collection document", ctx.path)
        return super()._serialize_default(key, value, ctx)

    def _type_tag(self, key: str | int, value: Any, ctx: DesCtx) -> str | None:
        if isinstance(value, dict) and len(value) == 1:
            return next(iter(value))
        return None
