"""Tests for the Data API datatypes."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from data_api_sdk import DataAPIBlob, DataAPIDuration, DataAPIVector, ObjectId


class TestObjectId:
    """Tests for ObjectId."""

    def test_from_hex(self) -> None:
        oid = ObjectId("65F1A2B3C4D5E6F708192A3B")
        assert str(oid) == "65f1a2b3c4d5e6f708192a3b"
        assert oid == "65f1a2b3c4d5e6f708192a3b"

    def test_invalid_hex(self) -> None:
        with pytest.raises(ValueError, match="24-character hex"):
            ObjectId("not-an-id")

    def test_invalid_type(self) -> None:
        with pytest.raises(TypeError):
            ObjectId(1.5)  # type: ignore[arg-type]

    def test_generated_ids_are_unique(self) -> None:
        ids = {str(ObjectId()) for _ in range(100)}
        assert len(ids) == 100

    def test_timestamp(self) -> None:
        oid = ObjectId(1_700_000_000)
        assert oid.timestamp == datetime.fromtimestamp(1_700_000_000, tz=UTC)

    def test_hash_and_copy(self) -> None:
        oid = ObjectId()
        assert ObjectId(oid) == oid
        assert len({oid, ObjectId(oid)}) == 1


class TestDataAPIVector:
    """Tests for DataAPIVector."""

    def test_from_list(self) -> None:
        vector = DataAPIVector([1, 2.5])
        assert vector.to_list() == [1.0, 2.5]
        assert len(vector) == 2
        assert vector[1] == 2.5

    def test_binary_round_trip(self) -> None:
        vector = DataAPIVector([0.5, -1.0, 3.0])
        assert DataAPIVector({"$binary": vector.to_base64()}) == vector
        assert DataAPIVector(vector.to_bytes()) == vector

    def test_invalid_binary_length(self) -> None:
        with pytest.raises(ValueError, match="multiple of 4"):
            DataAPIVector(b"\x00\x01\x02")

    def test_invalid_dict(self) -> None:
        with pytest.raises(ValueError, match="Invalid vector"):
            DataAPIVector({"values": "x"})

    def test_string_rejected(self) -> None:
        with pytest.raises(TypeError):
            DataAPIVector("1,2")  # type: ignore[arg-type]

    def test_repr_is_truncated(self) -> None:
        assert repr(DataAPIVector(range(10))).endswith(", ...], len=10)")


class TestDataAPIBlob:
    """Tests for DataAPIBlob."""

    def test_base64(self) -> None:
        blob = DataAPIBlob(b"hello")
        assert blob.to_base64() == "aGVsbG8="
        assert DataAPIBlob.from_base64("aGVsbG8=") == blob
        assert len(blob) == 5


class TestDataAPIDuration:
    """Tests for DataAPIDuration parsing and formatting."""

    @pytest.mark.parametrize(
        ("text", "months", "days", "nanos"),
        [
            ("1y2mo", 14, 0, 0),
            ("3w4d", 0, 25, 0),
            ("1h30m", 0, 0, 90 * 60 * 1_000_000_000),
            ("1s500ms", 0, 0, 1_500_000_000),
            ("2us3ns", 0, 0, 2003),
            ("5µs", 0, 0, 5000),
            ("P1Y2M3DT4H5M6S", 14, 3, (4 * 3600 + 5 * 60 + 6) * 1_000_000_000),
            ("PT0.5S", 0, 0, 500_000_000),
            ("P2W", 0, 14, 0),
            ("-1d", 0, -1, 0),
        ],
    )
    def test_parse(self, text: str, months: int, days: int, nanos: int) -> None:
        duration = DataAPIDuration(text)
        assert (duration.months, duration.days, duration.nanoseconds) == (months, days, nanos)

    @pytest.mark.parametrize("text", ["", "-", "1x", "P", "PT", "P1DT", "1d garbage"])
    def test_invalid(self, text: str) -> None:
        with pytest.raises(ValueError):
            DataAPIDuration(text)

    def test_mixed_signs_rejected(self) -> None:
        with pytest.raises(ValueError, match="same sign"):
            DataAPIDuration(months=1, days=-1)

    def test_short_string(self) -> None:
        assert DataAPIDuration("P1Y2M3DT4H5M6.007S").to_short_string() == "1y2mo3d4h5m6s7ms"
        assert DataAPIDuration("-3w").to_short_string() == "-21d"
        assert DataAPIDuration("0s").to_short_string() == "0s"

    def test_equality(self) -> None:
        assert DataAPIDuration("1d") == DataAPIDuration(days=1)
        assert DataAPIDuration("1d") != DataAPIDuration("24h")
