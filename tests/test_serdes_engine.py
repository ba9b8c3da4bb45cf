"""Tests for the ser/des engine walk, signals and post-maps."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

import pytest

from data_api_sdk.exceptions import SerDesError
from data_api_sdk.serdes import MAX_DEPTH, Codecs, SerDes, Signal, SignalKind


class Money:
    def __init__(self, cents: int):
        self.cents = cents


# =============================================================================
# Signals
# =============================================================================


class TestSignals:
    """Tests for the Signal value object."""

    def test_unset_value(self) -> None:
        signal = Signal(SignalKind.DONE)
        assert not signal.has_value
        assert signal.is_terminal

    def test_value_none_is_a_value(self) -> None:
        assert Signal(SignalKind.DONE, None).has_value

    def test_continue_is_not_terminal(self) -> None:
        assert not Signal(SignalKind.CONTINUE, 1).is_terminal
        assert not Signal(SignalKind.NEVERMIND).is_terminal


# =============================================================================
# Walk
# =============================================================================


class TestSerializeWalk:
    """Tests for serialization without user codecs."""

    def test_none_document(self) -> None:
        assert SerDes().serialize(None) == (None, False)

    def test_plain_document_is_copied(self) -> None:
        doc = {"a": 1, "b": [1, 2, {"c": "x"}]}
        result, big = SerDes().serialize(doc)

        assert result == doc
        assert result is not doc
        assert result["b"] is not doc["b"]
        assert big is False

    def test_mutate_in_place(self) -> None:
        doc = {"when": Money(5)}
        serdes = SerDes([Codecs.for_class(Money, serialize=lambda k, v, ctx: ctx.done(v.cents))], mutate_in_place=True)

        result, _ = serdes.serialize(doc)

        assert result is doc
        assert doc == {"when": 5}

    def test_original_untouched_without_mutate_in_place(self) -> None:
        money = Money(5)
        doc = {"when": money}
        serdes = SerDes([Codecs.for_class(Money, serialize=lambda k, v, ctx: ctx.done(v.cents))])

        result, _ = serdes.serialize(doc)

        assert result == {"when": 5}
        assert doc["when"] is money

    def test_tuples_become_lists(self) -> None:
        result, _ = SerDes().serialize({"t": (1, 2)})
        assert result == {"t": [1, 2]}

    def test_custom_state_shared_across_nodes(self) -> None:
        def number_money(key: str | int, value: Money, ctx: Any) -> Signal:
            seen = ctx.custom_state["money_seen"] = ctx.custom_state.get("money_seen", 0) + 1
            return ctx.done(f"{value.cents}#{seen}")

        serdes = SerDes([Codecs.for_class(Money, serialize=number_money)])

        assert serdes.serialize({"a": Money(1), "b": [Money(2), Money(3)]})[0] == {"a": "1#1", "b": ["2#2", "3#3"]}
        assert serdes.serialize({"a": Money(4)})[0] == {"a": "4#1"}

    def test_big_numbers_flag(self) -> None:
        serdes = SerDes()

        assert serdes.serialize({"a": Decimal("1.5")})[1] is True
        assert serdes.serialize({"a": 2**53})[1] is True
        assert serdes.serialize({"a": 2**53 - 1})[1] is False
        assert serdes.serialize({"a": True})[1] is False

    def test_depth_cap(self) -> None:
        doc: dict[str, Any] = {}
        node = doc
        for _ in range(MAX_DEPTH + 50):
            node["n"] = {}
            node = node["n"]

        result, _ = SerDes().serialize(doc)

        depth = 0
        node = result
        while "n" in node:
            node = node["n"]
            depth += 1
        assert depth == MAX_DEPTH + 50


class TestCodecDispatch:
    """Tests for codec signals during serialization."""

    def test_name_codec_applies_at_any_depth(self) -> None:
        codec = Codecs.for_name("secret", serialize=lambda k, v, ctx: ctx.done("***"))
        result, _ = SerDes([codec]).serialize({"secret": "a", "nested": {"secret": "b"}, "other": "c"})

        assert result == {"secret": "***", "nested": {"secret": "***"}, "other": "c"}

    def test_path_codec_with_wildcard(self) -> None:
        codec = Codecs.for_path("users.*.age", serialize=lambda k, v, ctx: ctx.done(str(v)))
        result, _ = SerDes([codec]).serialize({"users": [{"age": 1}, {"age": 2}], "age": 3})

        assert result == {"users": [{"age": "1"}, {"age": "2"}], "age": 3}

    def test_name_tier_wins_over_path_tier(self) -> None:
        by_path = Codecs.for_path("price", serialize=lambda k, v, ctx: ctx.done("path"))
        by_name = Codecs.for_name("price", serialize=lambda k, v, ctx: ctx.done("name"))

        result, _ = SerDes([by_path, by_name]).serialize({"price": 1})
        assert result == {"price": "name"}

    def test_nevermind_falls_through(self) -> None:
        declines = Codecs.for_name("a", serialize=lambda k, v, ctx: ctx.nevermind())
        accepts = Codecs.for_path("a", serialize=lambda k, v, ctx: ctx.done("taken"))

        result, _ = SerDes([declines, accepts]).serialize({"a": 1})
        assert result == {"a": "taken"}

    def test_recurse_walks_replacement(self) -> None:
        wrap = Codecs.for_name("wrap", serialize=lambda k, v, ctx: ctx.recurse({"inner": v}))
        shout = Codecs.for_name("inner", serialize=lambda k, v, ctx: ctx.done(v.upper()))

        result, _ = SerDes([wrap, shout]).serialize({"wrap": "hi"})
        assert result == {"wrap": {"inner": "HI"}}

    def test_done_skips_children(self) -> None:
        stop = Codecs.for_name("raw", serialize=lambda k, v, ctx: ctx.done())
        shout = Codecs.for_name("x", serialize=lambda k, v, ctx: ctx.done("changed"))

        result, _ = SerDes([stop, shout]).serialize({"raw": {"x": "kept"}})
        assert result == {"raw": {"x": "kept"}}

    def test_continue_restarts_matching(self) -> None:
        to_cents = Codecs.for_class(Money, serialize=lambda k, v, ctx: ctx.replace(v.cents))

        def price_to_str(key: Any, value: Any, ctx: Any) -> Signal:
            if isinstance(value, int):
                return ctx.done(f"{value}c")
            return ctx.nevermind()

        by_name = Codecs.for_name("price", serialize=price_to_str)

        result, _ = SerDes([to_cents, by_name]).serialize({"price": Money(500)})
        assert result == {"price": "500c"}

    def test_continuing_codec_not_retried_on_same_node(self) -> None:
        calls: list[Any] = []

        def bump(key: Any, value: Any, ctx: Any) -> Signal:
            calls.append(value)
            return ctx.continue_(value + 1)

        result, _ = SerDes([Codecs.for_name("n", serialize=bump)]).serialize({"n": 1})

        assert result == {"n": 2}
        assert calls == [1]

    def test_non_signal_return_is_an_error(self) -> None:
        codec = Codecs.for_name("a", serialize=lambda k, v, ctx: "oops")
        with pytest.raises(SerDesError, match="expected a Signal"):
            SerDes([codec]).serialize({"a": 1})

    def test_codec_exception_propagates(self) -> None:
        def boom(key: Any, value: Any, ctx: Any) -> Signal:
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            SerDes([Codecs.for_name("a", serialize=boom)]).serialize({"a": 1, "b": 2})

    def test_custom_codec_sees_root(self) -> None:
        seen: list[Any] = []

        def record(key: Any, value: Any, ctx: Any) -> Signal:
            seen.append((key, ctx.depth))
            return ctx.nevermind()

        SerDes([Codecs.custom(serialize=record)]).serialize({"a": [1]})
        assert seen == [("", 0), ("a", 1), (0, 2)]


class TestPostMaps:
    """Tests for map_after callbacks."""

    def test_children_before_parents(self) -> None:
        order: list[Any] = []

        def track(key: Any, value: Any, ctx: Any) -> Signal:
            path = tuple(ctx.path)
            ctx.map_after(lambda v: order.append(path) or v)
            return ctx.nevermind()

        SerDes([Codecs.custom(serialize=track)]).serialize({"a": {"b": 1}, "c": 2})

        assert order == [("a", "b"), ("a",), ("c",), ()]

    def test_same_node_callbacks_in_registration_order(self) -> None:
        def plus_one(key: Any, value: Any, ctx: Any) -> Signal:
            ctx.map_after(lambda v: v + 1)
            return ctx.nevermind()

        def times_ten(key: Any, value: Any, ctx: Any) -> Signal:
            ctx.map_after(lambda v: v * 10)
            return ctx.nevermind()

        codecs = [Codecs.for_name("n", serialize=plus_one), Codecs.for_path("n", serialize=times_ten)]
        result, _ = SerDes(codecs).serialize({"n": 5})

        assert result == {"n": 60}

    def test_post_map_replaces_value(self) -> None:
        def count_keys(key: Any, value: Any, ctx: Any) -> Signal:
            ctx.map_after(lambda v: {**v, "count": len(v)})
            return ctx.nevermind()

        codec = Codecs.custom(serialize=count_keys, serialize_guard=lambda v, ctx: ctx.depth == 0)
        result, _ = SerDes([codec]).serialize({"a": 1, "b": 2})

        assert result == {"a": 1, "b": 2, "count": 2}


class TestDeserializeWalk:
    """Tests for deserialization through the base engine."""

    def test_none_document(self) -> None:
        assert SerDes().deserialize(None) is None

    def test_plain_document_is_copied(self) -> None:
        raw = {"a": [1, {"b": 2}]}
        result = SerDes().deserialize(raw)

        assert result == raw
        assert result is not raw

    def test_name_codec(self) -> None:
        codec = Codecs.for_name("cents", deserialize=lambda k, v, ctx, raw: ctx.done(Money(v)))
        result = SerDes([codec]).deserialize({"cents": 250})

        assert isinstance(result["cents"], Money)
        assert result["cents"].cents == 250

    def test_codec_receives_raw_value(self) -> None:
        seen: list[Any] = []

        def first(key: Any, value: Any, ctx: Any, raw: Any) -> Signal:
            return ctx.continue_(value * 2)

        def second(key: Any, value: Any, ctx: Any, raw: Any) -> Signal:
            seen.append((value, raw))
            return ctx.done()

        codecs = [Codecs.for_name("n", deserialize=first), Codecs.for_path("n", deserialize=second)]
        assert SerDes(codecs).deserialize({"n": 2}) == {"n": 4}
        assert seen == [(4, 2)]
