"""Tests for table row ser/des."""

from __future__ import annotations

import math
from datetime import UTC, date, datetime, time
from decimal import Decimal
from ipaddress import IPv4Address
from typing import Any
from uuid import UUID

import pytest

from data_api_sdk import Camel2SnakeCase, DataAPIBlob, DataAPIDuration, DataAPIVector, ObjectId
from data_api_sdk.exceptions import SerDesError
from data_api_sdk.serdes import SerDesTarget, TableCodecs, TableSerDes

ROW_ID = UUID("3f2504e0-4f89-11d3-9a0c-0305e82c3301")


def _response(schema: dict[str, Any], key: str = "projectionSchema") -> dict[str, Any]:
    return {"status": {key: schema}}


SCHEMA = {
    "id": {"type": "uuid"},
    "name": {"type": "text"},
    "age": {"type": "int"},
    "score": {"type": "double"},
    "balance": {"type": "decimal"},
    "joined": {"type": "timestamp"},
    "birthday": {"type": "date"},
    "alarm": {"type": "time"},
    "ip": {"type": "inet"},
    "photo": {"type": "blob"},
    "embedding": {"type": "vector", "dimension": 2},
    "ttl": {"type": "duration"},
    "tags": {"type": "set", "valueType": "text"},
    "scores": {"type": "list", "valueType": "int"},
    "attrs": {"type": "map", "keyType": "text", "valueType": "int"},
    "by_day": {"type": "map", "keyType": "date", "valueType": "text"},
}


class TestSerialize:
    """Tests for table row serialization."""

    def test_scalar_types(self) -> None:
        row = {
            "id": ROW_ID,
            "joined": datetime(2024, 3, 1, 12, 0, 0, 123456, tzinfo=UTC),
            "birthday": date(1990, 5, 17),
            "alarm": time(7, 30),
            "ip": IPv4Address("10.0.0.1"),
            "ttl": DataAPIDuration("1d2h"),
        }

        wire, _ = TableSerDes().serialize(row)

        assert wire == {
            "id": str(ROW_ID),
            "joined": "2024-03-01T12:00:00.123Z",
            "birthday": "1990-05-17",
            "alarm": "07:30:00",
            "ip": "10.0.0.1",
            "ttl": "1d2h",
        }

    def test_binary_types(self) -> None:
        vector = DataAPIVector([1.0, 2.0])
        wire, _ = TableSerDes().serialize({"photo": b"\x00\x01", "blob": DataAPIBlob(b"\x02"), "embedding": vector})

        assert wire == {
            "photo": {"$binary": "AAE="},
            "blob": {"$binary": "Ag=="},
            "embedding": {"$binary": vector.to_base64()},
        }

    def test_set_becomes_list(self) -> None:
        wire, _ = TableSerDes().serialize({"tags": {"a"}})
        assert wire == {"tags": ["a"]}

    def test_str_keyed_map_stays_object(self) -> None:
        wire, _ = TableSerDes().serialize({"attrs": {"x": 1}})
        assert wire == {"attrs": {"x": 1}}

    def test_non_str_keyed_map_becomes_pairs(self) -> None:
        wire, _ = TableSerDes().serialize({"by_day": {date(2024, 1, 2): "x"}})
        assert wire == {"by_day": [["2024-01-02", "x"]]}

    def test_decimal_flags_big_numbers(self) -> None:
        wire, big = TableSerDes().serialize({"balance": Decimal("12345678901234567890.5")})
        assert wire == {"balance": Decimal("12345678901234567890.5")}
        assert big is True

    def test_object_id_rejected(self) -> None:
        with pytest.raises(SerDesError, match="ObjectId"):
            TableSerDes().serialize({"id": ObjectId()})

    def test_non_finite_floats_round_trip(self) -> None:
        serdes = TableSerDes()
        schema = {"a": {"type": "float"}, "b": {"type": "double"}, "c": {"type": "double"}}

        wire, _ = serdes.serialize({"a": float("nan"), "b": float("inf"), "c": float("-inf")})
        assert wire == {"a": "NaN", "b": "Infinity", "c": "-Infinity"}

        row = serdes.deserialize(wire, _response(schema))
        assert math.isnan(row["a"])
        assert row["b"] == float("inf")
        assert row["c"] == float("-inf")


class TestDeserialize:
    """Tests for table row deserialization against a schema."""

    def test_typed_columns(self) -> None:
        raw = {
            "id": str(ROW_ID),
            "name": "Ada",
            "age": 36,
            "score": Decimal("9.5"),
            "balance": Decimal("10.10"),
            "joined": "2024-03-01T12:00:00.123Z",
            "birthday": "1990-05-17",
            "alarm": "07:30:00.123456789",
            "ip": "10.0.0.1",
            "photo": {"$binary": "AAE="},
            "embedding": [1.0, 2.0],
            "ttl": "1d2h",
            "tags": ["a", "b"],
            "scores": [1, 2],
            "attrs": {"x": 1},
            "by_day": [["2024-01-02", "x"]],
        }

        row = TableSerDes().deserialize(raw, _response(SCHEMA))

        assert row == {
            "id": ROW_ID,
            "name": "Ada",
            "age": 36,
            "score": 9.5,
            "balance": Decimal("10.10"),
            "joined": datetime(2024, 3, 1, 12, 0, 0, 123000, tzinfo=UTC),
            "birthday": date(1990, 5, 17),
            "alarm": time(7, 30, 0, 123456),
            "ip": IPv4Address("10.0.0.1"),
            "photo": DataAPIBlob(b"\x00\x01"),
            "embedding": DataAPIVector([1.0, 2.0]),
            "ttl": DataAPIDuration("1d2h"),
            "tags": {"a", "b"},
            "scores": [1, 2],
            "attrs": {"x": 1},
            "by_day": {date(2024, 1, 2): "x"},
        }
        assert isinstance(row["score"], float)

    def test_missing_columns_populated(self) -> None:
        schema = {
            "a": {"type": "map", "keyType": "text", "valueType": "int"},
            "b": {"type": "set", "valueType": "int"},
            "c": {"type": "list", "valueType": "int"},
            "d": {"type": "int"},
            "e": {"type": "text"},
        }

        row = TableSerDes().deserialize({"d": 5}, _response(schema))

        assert row == {"a": {}, "b": set(), "c": [], "d": 5, "e": None}

    def test_sparse_data(self) -> None:
        schema = {"d": {"type": "int"}, "e": {"type": "text"}}
        row = TableSerDes(sparse_data=True).deserialize({"d": 5}, _response(schema))

        assert row == {"d": 5}

    @pytest.mark.parametrize("signal", ["recurse", "done"])
    def test_root_codec_keeps_missing_columns_populated(self, signal: str) -> None:
        root_codec = TableCodecs.custom(
            deserialize=lambda key, value, ctx, raw: getattr(ctx, signal)(),
            deserialize_guard=lambda value, ctx: ctx.depth == 0,
        )
        schema = {"a": {"type": "map", "keyType": "text", "valueType": "int"}, "d": {"type": "int"}}

        row = TableSerDes([root_codec]).deserialize({"d": 5}, _response(schema))

        assert row == {"a": {}, "d": 5}

    def test_populated_row_is_a_copy(self) -> None:
        raw = {"d": 5}
        TableSerDes().deserialize(raw, _response({"d": {"type": "int"}, "e": {"type": "text"}}))

        assert raw == {"d": 5}

    def test_null_values_kept(self) -> None:
        row = TableSerDes().deserialize({"age": None}, _response({"age": {"type": "int"}}))
        assert row == {"age": None}

    def test_unsupported_column_uses_cql_definition(self) -> None:
        schema = {"x": {"type": "UNSUPPORTED", "apiSupport": {"cqlDefinition": "frozen<list<int>>"}}}
        row = TableSerDes().deserialize({"x": [1]}, _response(schema))

        assert row == {"x": [1]}

    def test_missing_schema(self) -> None:
        with pytest.raises(SerDesError, match="No table schema"):
            TableSerDes().deserialize({"a": 1}, {"status": {}})

    def test_primary_key(self) -> None:
        schema = {"id": {"type": "uuid"}, "day": {"type": "date"}}
        key = TableSerDes().deserialize(
            [str(ROW_ID), "2024-01-02"],
            _response(schema, "primaryKeySchema"),
            SerDesTarget.INSERTED_ID,
        )

        assert key == {"id": ROW_ID, "day": date(2024, 1, 2)}

    def test_primary_key_not_populated(self) -> None:
        schema = {"id": {"type": "uuid"}, "day": {"type": "date"}}
        key = TableSerDes().deserialize([str(ROW_ID)], _response(schema, "primaryKeySchema"), SerDesTarget.INSERTED_ID)

        assert key == {"id": ROW_ID}

    def test_key_transformer_applies_to_schema(self) -> None:
        serdes = TableSerDes(key_transformer=Camel2SnakeCase())
        schema = {"first_name": {"type": "text"}, "birth_day": {"type": "date"}}

        row = serdes.deserialize({"first_name": "Ada", "birth_day": "1990-05-17"}, _response(schema))

        assert row == {"firstName": "Ada", "birthDay": date(1990, 5, 17)}
