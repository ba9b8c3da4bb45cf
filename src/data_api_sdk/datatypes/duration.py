"""Duration datatype (table ``duration`` columns)."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from .base import SerializableForTable

if TYPE_CHECKING:
    from ..serdes.ctx import DesCtx, SerCtx, Signal

NS_PER_US = 1_000
NS_PER_MS = 1_000_000
NS_PER_SEC = 1_000_000_000
NS_PER_MIN = 60 * NS_PER_SEC
NS_PER_HOUR = 60 * NS_PER_MIN

_BASIC = re.compile(r"(\d+)(y|mo|w|d|h|ms|us|µs|ns|m|s)", re.IGNORECASE)
_ISO_STANDARD = re.compile(
    r"^P(?:(\d+)Y)?(?:(\d+)M)?(?:(\d+)D)?(?:T(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)(?:\.(\d{1,9}))?S)?)?$"
)
_ISO_WEEK = re.compile(r"^P(\d+)W$")

# unit -> (months, days, nanoseconds) per unit
_UNITS: dict[str, tuple[int, int, int]] = {
    "y": (12, 0, 0),
    "mo": (1, 0, 0),
    "w": (0, 7, 0),
    "d": (0, 1, 0),
    "h": (0, 0, NS_PER_HOUR),
    "m": (0, 0, NS_PER_MIN),
    "s": (0, 0, NS_PER_SEC),
    "ms": (0, 0, NS_PER_MS),
    "us": (0, 0, NS_PER_US),
    "µs": (0, 0, NS_PER_US),
    "ns": (0, 0, 1),
}


def _parse(text: str) -> tuple[int, int, int]:
    negative = text.startswith("-")
    body = text[1:] if negative else text
    if not body:
        raise ValueError("Invalid duration: empty string (use e.g. '0s' or 'PT0S' for a zero duration)")

    months = days = nanos = 0

    if body.startswith("P"):
        if match := _ISO_WEEK.match(body):
            days = int(match.group(1)) * 7
        elif (match := _ISO_STANDARD.match(body)) and body not in ("P", "PT") and not body.endswith("T"):
            y, mo, d, h, mi, s, frac = match.groups()
            months = int(y or 0) * 12 + int(mo or 0)
            days = int(d or 0)
            nanos = int(h or 0) * NS_PER_HOUR + int(mi or 0) * NS_PER_MIN + int(s or 0) * NS_PER_SEC
            if frac:
                nanos += int(frac.ljust(9, "0"))
        else:
            raise ValueError(f"Invalid ISO-8601 duration: {text!r}")
    else:
        pos = 0
        for match in _BASIC.finditer(body):
            if match.start() != pos:
                break
            amount, unit = int(match.group(1)), match.group(2).lower()
            dm, dd, dn = _UNITS[unit]
            months += amount * dm
            days += amount * dd
            nanos += amount * dn
            pos = match.end()
        if pos != len(body):
            raise ValueError(f"Invalid duration: {text!r}")

    if negative:
        return -months, -days, -nanos
    return months, days, nanos


class DataAPIDuration(SerializableForTable):
    """
    A CQL-style duration made of months, days and nanoseconds.

    Accepts the short unit format (``"1y2mo3w4d5h6m7s8ms9us10ns"``, optionally
    negated with a leading ``-``) and ISO-8601 (``"P1Y2M3DT4H5M6.5S"``,
    ``"P3W"``). The three components are kept separately since months and
    days don't have a fixed length.
    """

    __slots__ = ("months", "days", "nanoseconds")

    def __init__(self, value: str | None = None, *, months: int = 0, days: int = 0, nanoseconds: int = 0):
        if value is not None:
            months, days, nanoseconds = _parse(value)

        signs = {(c > 0) - (c < 0) for c in (months, days, nanoseconds)} - {0}
        if len(signs) > 1:
            raise ValueError("Duration components must all have the same sign")

        self.months = months
        self.days = days
        self.nanoseconds = nanoseconds

    def is_negative(self) -> bool:
        return self.months < 0 or self.days < 0 or self.nanoseconds < 0

    def is_zero(self) -> bool:
        return self.months == 0 and self.days == 0 and self.nanoseconds == 0

    def to_short_string(self) -> str:
        if self.is_zero():
            return "0s"

        months, days, nanos = abs(self.months), abs(self.days), abs(self.nanoseconds)
        parts = []
        for amount, unit in ((months // 12, "y"), (months % 12, "mo"), (days, "d")):
            if amount:
                parts.append(f"{amount}{unit}")
        for size, unit in (
            (NS_PER_HOUR, "h"),
            (NS_PER_MIN, "m"),
            (NS_PER_SEC, "s"),
            (NS_PER_MS, "ms"),
            (NS_PER_US, "us"),
            (1, "ns"),
        ):
            amount, nanos = divmod(nanos, size)
            if amount:
                parts.append(f"{amount}{unit}")

        return ("-" if self.is_negative() else "") + "".join(parts)

    def serialize_for_table(self, ctx: SerCtx) -> Signal:
        return ctx.done(self.to_short_string())

    @classmethod
    def deserialize_for_table(cls, key: str | int, value: Any, ctx: DesCtx, raw: Any) -> Signal:
        return ctx.done(cls(value))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, DataAPIDuration):
            return (self.months, self.days, self.nanoseconds) == (other.months, other.days, other.nanoseconds)
        return NotImplemented

    def __hash__(self) -> int:
        return hash((self.months, self.days, self.nanoseconds))

    def __str__(self) -> str:
        return self.to_short_string()

    def __repr__(self) -> str:
        return f'DataAPIDuration("{self.to_short_string()}")'
