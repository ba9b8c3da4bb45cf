"""
Per-path number coercion for collections.

When big numbers are enabled, responses are parsed with every non-integer
number as a ``Decimal`` and every integer as an exact ``int``. Each number is
then coerced to the representation configured for its path.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from enum import StrEnum
from typing import Any

from ..exceptions import NumCoercionError
from .codecs import PATH_WILDCARD
from .engine import MAX_DEPTH, MAX_SAFE_INTEGER


class NumRep(StrEnum):
    """Target representation of a number found in a collection document."""

    NUMBER = "number"
    BIGINT = "bigint"
    BIGNUMBER = "bignumber"
    STRING = "string"
    NUMBER_OR_STRING = "number_or_string"


NumRepFn = Callable[[Sequence[str | int]], NumRep | str]


@dataclass
class _RepNode:
    rep: NumRep | None = None
    children: dict[str, _RepNode] = field(default_factory=dict)


def num_rep_fn_from_config(config: Mapping[str, NumRep | str]) -> NumRepFn:
    """
    Build a path -> representation function from a ``{"a.*.b": rep}`` mapping.

    Exact segments win over ``"*"``. A wildcard's representation also applies
    to everything below it unless a deeper rule overrides it. Unmatched paths
    default to ``NumRep.NUMBER``.
    """
    root = _RepNode()

    for path, rep in config.items():
        node = root
        for segment in path.split("."):
            node = node.children.setdefault(segment, _RepNode())
        node.rep = NumRep(rep)

    def get_rep(path: Sequence[str | int]) -> NumRep:
        node: _RepNode | None = root
        rep: NumRep | None = None

        for i in range(len(path) + 1):
            if node is None:
                break
            if i == len(path):
                return node.rep or rep or NumRep.NUMBER

            exact = node.children.get(str(path[i]))
            if exact is not None:
                node = exact
            else:
                node = node.children.get(PATH_WILDCARD)
                if node is not None and node.rep is not None:
                    rep = node.rep

        return rep or NumRep.NUMBER

    return get_rep


def _float_is_exact(value: Decimal) -> bool:
    return Decimal(repr(float(value))) == value


def coerce_number(value: int | float | Decimal, rep: NumRep, path: list[str | int]) -> Any:
    """
    Coerce a single number.

    Raises:
        NumCoercionError: If ``value`` can't be represented as ``rep``
    """
    if isinstance(value, Decimal):
        source = "bignumber"
        if rep == NumRep.NUMBER:
            if not value.is_finite() or not _float_is_exact(value):
                raise NumCoercionError(path, value, source, rep)
            return float(value)
        if rep == NumRep.BIGINT:
            if not value.is_finite() or value != value.to_integral_value():
                raise NumCoercionError(path, value, source, rep)
            return int(value)
        if rep == NumRep.BIGNUMBER:
            return value
        if rep == NumRep.NUMBER_OR_STRING and value.is_finite() and _float_is_exact(value):
            return float(value)
        return str(value)

    if isinstance(value, float):
        if rep == NumRep.BIGINT:
            if not value.is_integer():
                raise NumCoercionError(path, value, "number", rep)
            return int(value)
        if rep == NumRep.BIGNUMBER:
            return Decimal(repr(value))
        if rep == NumRep.STRING:
            return repr(value)
        return value

    safe = abs(value) <= MAX_SAFE_INTEGER
    if rep == NumRep.NUMBER:
        if not safe:
            raise NumCoercionError(path, value, "bignumber", rep)
        return value
    if rep == NumRep.BIGINT:
        return value
    if rep == NumRep.BIGNUMBER:
        return Decimal(value)
    if rep == NumRep.NUMBER_OR_STRING and safe:
        return value
    return str(value)


def coerce_nums(value: Any, get_rep: NumRepFn, path: list[str | int] | None = None) -> Any:
    """Return a copy of ``value`` with every number coerced per its path."""
    path = [] if path is None else path

    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        return coerce_number(value, NumRep(get_rep(path)), list(path))
    if len(path) >= MAX_DEPTH:
        return value

    if isinstance(value, dict):
        out = {}
        for k, v in value.items():
            path.append(k)
            out[k] = coerce_nums(v, get_rep, path)
            path.pop()
        return out

    if isinstance(value, list):
        items = []
        for i, v in enumerate(value):
            path.append(i)
            items.append(coerce_nums(v, get_rep, path))
            path.pop()
        return items

    return value
