"""
Table ser/des.

Table rows are typed by the schema the Data API returns alongside them
(``status.projectionSchema`` for rows, ``status.primaryKeySchema`` for
inserted ids). A column's declared type is the type tag of its value.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time
from decimal import Decimal
from ipaddress import IPv4Address, IPv6Address, ip_address
from typing import Any
from uuid import UUID

from ..datatypes import DataAPIBlob, DataAPIDuration, DataAPIVector, SerializableForTable
from ..exceptions import SerDesError
from .codecs import Codec, Codecs
from .ctx import DesCtx, SerCtx, SerDesTarget, Signal, SignalKind
from .engine import SerDes
from .key_transformer import KeyTransformer

ColumnDefinition = dict[str, Any]


def resolve_column_type(column: ColumnDefinition) -> str:
    """Type tag of a column; unsupported columns use their CQL definition."""
    if column.get("type") == "UNSUPPORTED":
        return str(column.get("apiSupport", {}).get("cqlDefinition", "UNSUPPORTED"))
    return str(column.get("type"))


@dataclass
class TableDesCtx(DesCtx):
    """Deserialization context carrying the table schema of the response."""

    table_schema: dict[str, ColumnDefinition] = field(default_factory=dict)
    parsing_primary_key: bool = False

    def column(self, name: str | int) -> ColumnDefinition | None:
        return self.table_schema.get(str(name))

    def parse_element(self, type_tag: str | None, value: Any) -> Any:
        """Deserialize a collection element with the first codec of its type."""
        if type_tag is None or value is None:
            return value
        for codec in self.registry.type_codecs(type_tag):
            signal = codec.deserialize(self.key, value, self, value)  # type: ignore[misc]
            if signal.kind != SignalKind.NEVERMIND:
                return signal.value if signal.has_value else value
        return value


def _sparse_default(column: ColumnDefinition) -> Any:
    match resolve_column_type(column):
        case "map":
            return {}
        case "set":
            return set()
        case "list":
            return []
        case _:
            return None


class TableCodecs(Codecs):
    """Codec factory for tables; datatype classes use the ``*_for_table`` methods."""

    serialize_method = "serialize_for_table"
    deserialize_method = "deserialize_for_table"

    @classmethod
    def defaults(cls) -> list[Codec]:
        """The built-in table codecs, one per understood column type."""
        return [
            cls.for_type("bigint", deserialize=_des_int),
            cls.for_type("counter", deserialize=_des_int),
            cls.for_type("varint", deserialize=_des_int),
            cls.for_type("int", deserialize=_des_int),
            cls.for_type("smallint", deserialize=_des_int),
            cls.for_type("tinyint", deserialize=_des_int),
            cls.for_type("float", deserialize=_des_float),
            cls.for_type("double", deserialize=_des_float),
            cls.for_type("decimal", deserialize=_des_decimal),
            # datetime subclasses date, so timestamp must come first
            cls.for_type("timestamp", serialize_class=datetime, serialize=_ser_timestamp, deserialize=_des_timestamp),
            cls.for_type("date", serialize_class=date, serialize=_ser_isoformat, deserialize=_des_date),
            cls.for_type("time", serialize_class=time, serialize=_ser_isoformat, deserialize=_des_time),
            cls.for_type("uuid", serialize_class=UUID, serialize=_ser_str, deserialize=_des_uuid),
            cls.for_type("timeuuid", deserialize=_des_uuid),
            cls.for_type("inet", serialize_guard=_is_ip, serialize=_ser_str, deserialize=_des_inet),
            cls.for_type("blob", DataAPIBlob),
            cls.for_class(bytes, serialize=_ser_bytes),
            cls.for_type("vector", DataAPIVector),
            cls.for_type("duration", DataAPIDuration),
            cls.for_type("map", serialize_guard=_is_non_str_keyed_map, serialize=_ser_map, deserialize=_des_map),
            cls.for_type("set", serialize_guard=_is_set, serialize=_ser_set, deserialize=_des_set),
            cls.for_type("list", deserialize=_des_list),
        ]


# ==================== Scalars ====================


def _des_int(key: str | int, value: Any, ctx: DesCtx, raw: Any) -> Signal:
    return ctx.done(int(value))


def _des_float(key: str | int, value: Any, ctx: DesCtx, raw: Any) -> Signal:
    return ctx.done(float(value))


def _des_decimal(key: str | int, value: Any, ctx: DesCtx, raw: Any) -> Signal:
    if isinstance(value, Decimal):
        return ctx.done(value)
    return ctx.done(Decimal(str(value)))


def _ser_timestamp(key: str | int, value: datetime, ctx: SerCtx) -> Signal:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return ctx.done(value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z"))


def _des_timestamp(key: str | int, value: Any, ctx: DesCtx, raw: Any) -> Signal:
    return ctx.done(datetime.fromisoformat(value))


def _ser_isoformat(key: str | int, value: date | time, ctx: SerCtx) -> Signal:
    return ctx.done(value.isoformat())


def _des_date(key: str | int, value: Any, ctx: DesCtx, raw: Any) -> Signal:
    return ctx.done(date.fromisoformat(value))


def _des_time(key: str | int, value: Any, ctx: DesCtx, raw: Any) -> Signal:
    # the API returns up to nanosecond precision
    whole, _, frac = value.partition(".")
    return ctx.done(time.fromisoformat(f"{whole}.{frac[:6]}" if frac else whole))


def _ser_str(key: str | int, value: Any, ctx: SerCtx) -> Signal:
    return ctx.done(str(value))


def _des_uuid(key: str | int, value: Any, ctx: DesCtx, raw: Any) -> Signal:
    return ctx.done(UUID(value))


def _is_ip(value: Any, ctx: SerCtx) -> bool:
    return isinstance(value, (IPv4Address, IPv6Address))


def _des_inet(key: str | int, value: Any, ctx: DesCtx, raw: Any) -> Signal:
    return ctx.done(ip_address(value))


def _ser_bytes(key: str | int, value: bytes, ctx: SerCtx) -> Signal:
    return ctx.done(DataAPIBlob(value).serialize_for_table(ctx).value)


# ==================== Collections ====================


def _is_non_str_keyed_map(value: Any, ctx: SerCtx) -> bool:
    return ctx.depth > 0 and isinstance(value, dict) and any(not isinstance(k, str) for k in value)


def _ser_map(key: str | int, value: dict[Any, Any], ctx: SerCtx) -> Signal:
    return ctx.recurse([[k, v] for k, v in value.items()])


def _is_set(value: Any, ctx: SerCtx) -> bool:
    return isinstance(value, (set, frozenset))


def _ser_set(key: str | int, value: set[Any] | frozenset[Any], ctx: SerCtx) -> Signal:
    return ctx.replace(list(value))


def _column_of(key: str | int, ctx: DesCtx) -> tuple[TableDesCtx, ColumnDefinition]:
    column = ctx.column(key) if isinstance(ctx, TableDesCtx) else None
    if column is None:
        raise SerDesError(f"No column definition for {key!r}", ctx.path)
    return ctx, column  # type: ignore[return-value]


def _des_map(key: str | int, value: Any, ctx: DesCtx, raw: Any) -> Signal:
    tctx, column = _column_of(key, ctx)
    entries = value if isinstance(value, list) else value.items()
    return ctx.done(
        {
            tctx.parse_element(column.get("keyType"), k): tctx.parse_element(column.get("valueType"), v)
            for k, v in entries
        }
    )


def _des_set(key: str | int, value: Any, ctx: DesCtx, raw: Any) -> Signal:
    tctx, column = _column_of(key, ctx)
    return ctx.done({tctx.parse_element(column.get("valueType"), v) for v in value})


def _des_list(key: str | int, value: Any, ctx: DesCtx, raw: Any) -> Signal:
    tctx, column = _column_of(key, ctx)
    return ctx.done([tctx.parse_element(column.get("valueType"), v) for v in value])


class TableSerDes(SerDes):
    """
    Ser/des engine for table rows.

    Args:
        codecs: User codecs, tried before the defaults
        mutate_in_place: Serialize containers in place
        key_transformer: Optional key renaming (also applied to schema keys)
        sparse_data: Leave columns absent from a row absent instead of
            filling them with empty values
    """

    capability = SerializableForTable
    capability_method = "serialize_for_table"

    def __init__(
        self,
        codecs: Iterable[Codec] = (),
        *,
        mutate_in_place: bool = False,
        key_transformer: KeyTransformer | None = None,
        sparse_data: bool = False,
    ):
        super().__init__(
            codecs,
            defaults=TableCodecs.defaults(),
            mutate_in_place=mutate_in_place,
            key_transformer=key_transformer,
        )
        self.sparse_data = sparse_data

    @property
    def big_numbers_enabled(self) -> bool:
        return True

    def _new_des_ctx(self, raw: Any, raw_response: dict[str, Any], target: SerDesTarget) -> DesCtx:
        status = raw_response.get("status") or {}

        if target == SerDesTarget.INSERTED_ID or (status.get("primaryKeySchema") and isinstance(raw, list)):
            schema = status.get("primaryKeySchema")
            parsing_primary_key = True
        else:
            schema = status.get("projectionSchema")
            parsing_primary_key = False

        if schema is None:
            raise SerDesError("No table schema found in response")

        if self.key_transformer is not None:
            schema = {self.key_transformer.deserialize_key(name, [name]): col for name, col in schema.items()}

        if parsing_primary_key and isinstance(raw, list):
            raw = {name: raw[i] for i, name in enumerate(schema) if i < len(raw)}

        return TableDesCtx(
            root_obj=raw,
            target=target,
            registry=self.registry,
            raw_response=raw_response,
            table_schema=dict(schema),
            parsing_primary_key=parsing_primary_key,
        )

    def _type_tag(self, key: str | int, value: Any, ctx: DesCtx) -> str | None:
        if ctx.depth != 1 or value is None or not isinstance(ctx, TableDesCtx):
            return None
        column = ctx.column(key)
        return resolve_column_type(column) if column is not None else None

    def _serialize_default(self, key: str | int, value: Any, ctx: SerCtx) -> Signal:
        # float/double columns accept these spellings and send them back the same way
        if isinstance(value, float) and not math.isfinite(value):
            if math.isnan(value):
                return ctx.done("NaN")
            return ctx.done("Infinity" if value > 0 else "-Infinity")
        return super()._serialize_default(key, value, ctx)

    def _deserialize_default(self, key: str | int, value: Any, ctx: DesCtx) -> Signal:
        if ctx.depth == 0 and isinstance(value, dict):
            return ctx.recurse()
        return ctx.done()

    def _finish_deserialize(self, value: Any, ctx: DesCtx) -> Any:
        if self.sparse_data or not isinstance(ctx, TableDesCtx) or ctx.parsing_primary_key:
            return value
        if not isinstance(value, dict):
            return value
        missing = {name: _sparse_default(col) for name, col in ctx.table_schema.items() if name not in value}
        return {**value, **missing} if missing else value
